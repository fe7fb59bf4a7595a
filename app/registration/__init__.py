"""
Registration module - account creation and email verification flows.
"""
