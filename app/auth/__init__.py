"""
Auth module - credentials, tokens, verification and sign-in flows.
"""
