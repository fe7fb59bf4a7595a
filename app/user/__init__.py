"""
User module - profile lookup and updates.
"""
