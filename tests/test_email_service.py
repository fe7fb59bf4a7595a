"""Unit tests for EmailService."""

import base64
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from app.auth.models import EmailTokenData
from app.options import EmailOptions, VerificationOptions
from app.services.email.email_service import EmailService, add_query_parameter, get_validity_text
from app.services.email.email_token_serializer import EmailTokenSerializer
from common.utils.exceptions import InvalidArgumentException


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def serializer():
    return EmailTokenSerializer(VerificationOptions())


@pytest.fixture
def token_data():
    return EmailTokenData(
        pepper=base64.b64encode(b"\x01" * 32).decode("ascii"),
        token=base64.b64encode(b"\x02" * 64).decode("ascii"),
        user_name="learner01",
        validity_period=timedelta(days=1),
    )


@pytest.fixture
def console_service(serializer):
    return EmailService(EmailOptions(mode="console"), serializer)


@pytest.fixture
def smtp_service(serializer):
    return EmailService(
        EmailOptions(
            mode="smtp",
            smtp_host="smtp.flashcards.io",
            smtp_port=465,
            smtp_user="mailer",
            smtp_password="mailer-secret",
        ),
        serializer,
    )


# ─────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────


class TestGetValidityText:
    @pytest.mark.parametrize(
        "period, expected",
        [
            (timedelta(days=1), "This link is valid for 1 day."),
            (timedelta(days=3, hours=4), "This link is valid for 3 days."),
            (timedelta(hours=2, minutes=30), "This link is valid for 2 hours."),
            (timedelta(minutes=45), "This link is valid for 45 minutes."),
            (timedelta(seconds=30), "This link is valid for 1 minute."),
        ],
    )
    def test_largest_whole_unit(self, period, expected):
        assert get_validity_text(period) == expected

    def test_no_period(self):
        assert get_validity_text(None) == ""


class TestAddQueryParameter:
    def test_adds_query(self):
        assert add_query_parameter("https://app.flashcards.io/verify", "token", "abc") == (
            "https://app.flashcards.io/verify?token=abc"
        )

    def test_keeps_existing_query(self):
        assert add_query_parameter("https://app.flashcards.io/verify?lang=sv", "token", "abc") == (
            "https://app.flashcards.io/verify?lang=sv&token=abc"
        )

    def test_encodes_value(self):
        assert add_query_parameter("https://app.flashcards.io/verify", "token", "a=b") == (
            "https://app.flashcards.io/verify?token=a%3Db"
        )


# ─────────────────────────────────────────────────────────────────
# Sending
# ─────────────────────────────────────────────────────────────────


class TestSendVerificationEmail:
    @pytest.mark.asyncio
    async def test_console_mode(self, console_service, token_data):
        result = await console_service.send_verification_email("learner01@flashcards.io", "Ada", token_data)

        assert result["success"] is True
        assert result["mode"] == "console"

    @pytest.mark.asyncio
    async def test_links_carry_serialized_token(self, console_service, serializer, token_data):
        link_token = serializer.serialize(token_data.pepper, token_data.token, token_data.user_name)

        with patch.object(console_service, "_send", new_callable=AsyncMock) as send:
            await console_service.send_verification_email("learner01@flashcards.io", "Ada", token_data)

        to, name, subject, html, text = send.call_args[0]
        assert to == "learner01@flashcards.io"
        assert f"http://localhost:3000/verify-email?token={link_token}" in text
        assert f"http://localhost:3000/reject-registration?token={link_token}" in text
        assert "This link is valid for 1 day." in text
        assert "verify-email?token=" in html

    @pytest.mark.asyncio
    async def test_incomplete_token_data_raises(self, console_service):
        with pytest.raises(InvalidArgumentException):
            await console_service.send_verification_email(
                "learner01@flashcards.io", "Ada", EmailTokenData(pepper="", token="", user_name="learner01")
            )


class TestSendForgotPasswordEmail:
    @pytest.mark.asyncio
    async def test_links_to_reset_page(self, console_service, token_data):
        with patch.object(console_service, "_send", new_callable=AsyncMock) as send:
            await console_service.send_forgot_password_email("learner01@flashcards.io", "Ada", token_data)

        to, name, subject, html, text = send.call_args[0]
        assert subject == "Reset your password"
        assert "http://localhost:3000/reset-password?token=" in text


class TestSmtpMode:
    @pytest.mark.asyncio
    async def test_sends_with_implicit_tls(self, smtp_service, token_data):
        with patch("app.services.email.email_service.aiosmtplib.send", new_callable=AsyncMock) as send:
            result = await smtp_service.send_verification_email("learner01@flashcards.io", "Ada", token_data)

        assert result["success"] is True
        assert result["mode"] == "smtp"
        kwargs = send.call_args[1]
        assert kwargs["hostname"] == "smtp.flashcards.io"
        assert kwargs["port"] == 465
        assert kwargs["use_tls"] is True
        assert kwargs["start_tls"] is False
        message = send.call_args[0][0]
        assert message["Subject"] == "Verify your email address"
        assert "learner01@flashcards.io" in message["To"]

    @pytest.mark.asyncio
    async def test_smtp_failure_is_reported(self, smtp_service, token_data):
        with patch(
            "app.services.email.email_service.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPException("connection refused"),
        ):
            result = await smtp_service.send_verification_email("learner01@flashcards.io", "Ada", token_data)

        assert result["success"] is False
        assert "connection refused" in result["error"]

    @pytest.mark.asyncio
    async def test_missing_host_falls_back_to_console(self, serializer, token_data):
        service = EmailService(EmailOptions(mode="smtp", smtp_host=None), serializer)

        result = await service.send_verification_email("learner01@flashcards.io", "Ada", token_data)

        assert result["mode"] == "console"
