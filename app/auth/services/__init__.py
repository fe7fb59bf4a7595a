"""
Auth services - password hashing, credential and token stores, verification.
"""
