"""
Identity Schemas.

Pydantic models for request validation.
"""

from app.schemas.auth import *
from app.schemas.registration import *
from app.schemas.user import *
