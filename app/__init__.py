"""
Flashcard identity application code.

This package contains the account lifecycle implementation:
- auth: Password hashing, credential and token stores, verification, sign-in
- registration: Registration and email verification flows
- user: Profile and password management
- services: Email delivery
- config: Application settings

Uses generic infrastructure from the common/ package.
"""
