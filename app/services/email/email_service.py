"""
Email service for sending verification and password reset emails.

Supports SMTP and console logging modes.
"""

import logging
from datetime import timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

import aiosmtplib

from app.auth.models import EmailTokenData
from app.options import EmailOptions
from app.services.email.email_token_serializer import EmailTokenSerializer
from common.utils.exceptions import InvalidArgumentException

logger = logging.getLogger(__name__)

VERIFY_EMAIL_SUBJECT = "Verify your email address"
FORGOT_PASSWORD_SUBJECT = "Reset your password"


def get_validity_text(validity_period: Optional[timedelta]) -> str:
    """
    Describe how long a link stays valid, in its largest whole unit.

    Examples:
        >>> get_validity_text(timedelta(days=1))
        'This link is valid for 1 day.'
        >>> get_validity_text(timedelta(hours=2, minutes=30))
        'This link is valid for 2 hours.'
    """
    if validity_period is None:
        return ""

    days = validity_period.days
    hours = validity_period.seconds // 3600
    minutes = (validity_period.seconds % 3600) // 60

    if days > 0:
        amount, unit = days, "day"
    elif hours > 0:
        amount, unit = hours, "hour"
    else:
        amount, unit = max(minutes, 1), "minute"

    plural = "s" if amount > 1 else ""
    return f"This link is valid for {amount} {unit}{plural}."


def add_query_parameter(url: str, name: str, value: str) -> str:
    """Append a query parameter to a URL, keeping any existing query."""
    scheme, netloc, path, query, fragment = urlsplit(url)
    extra = urlencode({name: value})
    query = f"{query}&{extra}" if query else extra
    return urlunsplit((scheme, netloc, path, query, fragment))


class EmailService:
    """
    Email service with multi-mode support.

    Modes:
        - console: Log emails to console (development)
        - smtp: Send via SMTP
    """

    def __init__(self, options: EmailOptions, serializer: EmailTokenSerializer):
        """
        Initialize email service.

        Args:
            options: Sender, SMTP and link settings
            serializer: Packs verification tokens into link parameters
        """
        self._options = options
        self._serializer = serializer
        self._mode = options.mode

        if self._mode == "smtp" and not options.smtp_host:
            logger.warning("SMTP host not configured, falling back to console mode")
            self._mode = "console"

        logger.info(f"Email service initialized in {self._mode} mode")

    async def send_verification_email(
        self,
        email_address: str,
        name: str,
        token_data: EmailTokenData,
    ) -> dict:
        """
        Send email verification email.

        The email links to both the verify and the reject registration pages.

        Args:
            email_address: Recipient email address
            name: Recipient display name
            token_data: Pepper, token, user name and validity period

        Returns:
            dict with success status and message
        """
        link_token = self._serialize(token_data)
        verify_url = self._link(self._options.verify_email_url, link_token)
        reject_url = self._link(self._options.reject_registration_url, link_token)
        validity_text = get_validity_text(token_data.validity_period)

        text = (
            f"Hi {name},\n\n"
            f"Please verify your email address by opening this link:\n{verify_url}\n\n"
            f"{validity_text}\n\n"
            f"If you did not create an account, you can reject this registration:\n{reject_url}\n"
        )
        html = f"""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, Helvetica, sans-serif; line-height: 1.6; color: #333333;">
    <h1 style="font-size: 24px;">{VERIFY_EMAIL_SUBJECT}</h1>
    <p>Hi {name},</p>
    <p>Please verify your email address by clicking the button below.</p>
    <p><a href="{verify_url}" style="display: inline-block; padding: 12px 24px; background-color: #2D4A47; color: #ffffff; text-decoration: none;">Verify email</a></p>
    <p>{validity_text}</p>
    <p style="font-size: 12px;">If you did not create an account, <a href="{reject_url}">reject this registration</a>.</p>
</body>
</html>
"""

        return await self._send(email_address, name, VERIFY_EMAIL_SUBJECT, html, text)

    async def send_forgot_password_email(
        self,
        email_address: str,
        name: str,
        token_data: EmailTokenData,
    ) -> dict:
        """
        Send password reset email.

        Args:
            email_address: Recipient email address
            name: Recipient display name
            token_data: Pepper, token, user name and validity period

        Returns:
            dict with success status and message
        """
        link_token = self._serialize(token_data)
        reset_url = self._link(self._options.reset_password_url, link_token)
        validity_text = get_validity_text(token_data.validity_period)

        text = (
            f"Hi {name},\n\n"
            f"Reset your password by opening this link:\n{reset_url}\n\n"
            f"{validity_text}\n\n"
            "If you did not ask to reset your password, you can ignore this email.\n"
        )
        html = f"""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, Helvetica, sans-serif; line-height: 1.6; color: #333333;">
    <h1 style="font-size: 24px;">{FORGOT_PASSWORD_SUBJECT}</h1>
    <p>Hi {name},</p>
    <p><a href="{reset_url}" style="display: inline-block; padding: 12px 24px; background-color: #2D4A47; color: #ffffff; text-decoration: none;">Reset password</a></p>
    <p>{validity_text}</p>
    <p style="font-size: 12px;">If you did not ask to reset your password, you can ignore this email.</p>
</body>
</html>
"""

        return await self._send(email_address, name, FORGOT_PASSWORD_SUBJECT, html, text)

    def _serialize(self, token_data: EmailTokenData) -> str:
        if not token_data.pepper or not token_data.token or not token_data.user_name:
            raise InvalidArgumentException(message="Email token data is incomplete")
        return self._serializer.serialize(token_data.pepper, token_data.token, token_data.user_name)

    def _link(self, base_url: str, link_token: str) -> str:
        return add_query_parameter(base_url, self._options.token_query_parameter, link_token)

    async def _send(
        self,
        to: str,
        name: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """
        Send email via configured provider.

        Returns:
            dict with success status and details
        """
        if self._mode == "console":
            return self._send_console(to, subject, text)
        elif self._mode == "smtp":
            return await self._send_smtp(to, name, subject, html, text)
        else:
            logger.error(f"Unknown email mode: {self._mode}")
            return {"success": False, "error": f"Unknown email mode: {self._mode}"}

    def _send_console(self, to: str, subject: str, text: str) -> dict:
        """Log email to console (development mode)."""
        logger.info("=" * 60)
        logger.info("EMAIL (console mode)")
        logger.info(f"To: {to}")
        logger.info(f"Subject: {subject}")
        logger.info("-" * 60)
        logger.info(text)
        logger.info("=" * 60)

        return {
            "success": True,
            "mode": "console",
            "message": "Email logged to console",
        }

    async def _send_smtp(
        self,
        to: str,
        name: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Send email via SMTP."""
        options = self._options
        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = formataddr((options.from_name, options.from_email))
            message["To"] = formataddr((name or "", to))

            message.attach(MIMEText(text, "plain"))
            message.attach(MIMEText(html, "html"))

            # Port 465 is implicit TLS; anything else upgrades with STARTTLS.
            use_tls = options.smtp_port == 465

            await aiosmtplib.send(
                message,
                hostname=options.smtp_host,
                port=options.smtp_port,
                username=options.smtp_user,
                password=options.smtp_password,
                use_tls=use_tls,
                start_tls=not use_tls,
            )

            logger.info(f"Email sent via SMTP to {to}")
            return {
                "success": True,
                "mode": "smtp",
                "message": "Email sent via SMTP",
            }

        except aiosmtplib.SMTPException as e:
            logger.error(f"Failed to send email via SMTP: {e}")
            return {
                "success": False,
                "error": str(e),
            }
