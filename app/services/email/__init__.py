"""
Email module - verification and password reset emails.
"""

from app.services.email.email_service import EmailService
from app.services.email.email_token_serializer import EmailTokenSerializer

__all__ = ["EmailService", "EmailTokenSerializer"]
