"""
Identity collection names, indexes and id helpers.
"""
