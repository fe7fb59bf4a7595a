"""Unit tests for result mappings."""

import pytest

from app.auth.mapping import (
    password_result_to_authentication_result,
    persistent_token_result_to_authentication_result,
    verification_result_to_email_verification_result,
    verification_result_to_reset_password_result,
)
from app.auth.models import (
    AuthenticationResult,
    EmailVerificationResult,
    PasswordVerificationResult,
    PersistentTokenVerificationResult,
    ResetPasswordResult,
    VerificationTokenVerificationResult,
)
from common.utils.exceptions import InvalidArgumentException, InvalidEnumValueException


class TestPasswordResultToAuthenticationResult:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (PasswordVerificationResult.NOT_VERIFIED, AuthenticationResult.NOT_AUTHENTICATED),
            (PasswordVerificationResult.VERIFIED, AuthenticationResult.AUTHENTICATED),
            (PasswordVerificationResult.VERIFIED_AND_EXPIRED, AuthenticationResult.PASSWORD_EXPIRED),
        ],
    )
    def test_maps_every_value(self, value, expected):
        assert password_result_to_authentication_result(value) is expected

    def test_rejects_other_enum(self):
        with pytest.raises(InvalidEnumValueException):
            password_result_to_authentication_result(PersistentTokenVerificationResult.VERIFIED)

    def test_rejects_raw_string(self):
        with pytest.raises(InvalidEnumValueException):
            password_result_to_authentication_result("Verified")


class TestPersistentTokenResultToAuthenticationResult:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (PersistentTokenVerificationResult.NO_TOKEN_AVAILABLE, AuthenticationResult.NOT_AUTHENTICATED),
            (PersistentTokenVerificationResult.NOT_VERIFIED, AuthenticationResult.NOT_AUTHENTICATED),
            (PersistentTokenVerificationResult.VERIFIED, AuthenticationResult.AUTHENTICATED),
        ],
    )
    def test_maps_every_value(self, value, expected):
        assert persistent_token_result_to_authentication_result(value) is expected

    def test_rejects_none(self):
        with pytest.raises(InvalidEnumValueException):
            persistent_token_result_to_authentication_result(None)


class TestVerificationResultMappings:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (VerificationTokenVerificationResult.NOT_VERIFIED, ResetPasswordResult.TOKEN_NOT_VERIFIED),
            (VerificationTokenVerificationResult.TOKEN_EXPIRED, ResetPasswordResult.TOKEN_EXPIRED),
            (VerificationTokenVerificationResult.VERIFIED, ResetPasswordResult.PASSWORD_RESET),
        ],
    )
    def test_reset_password(self, value, expected):
        assert verification_result_to_reset_password_result(value) is expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            (VerificationTokenVerificationResult.NOT_VERIFIED, EmailVerificationResult.NOT_VERIFIED),
            (VerificationTokenVerificationResult.TOKEN_EXPIRED, EmailVerificationResult.TOKEN_EXPIRED),
            (VerificationTokenVerificationResult.VERIFIED, EmailVerificationResult.VERIFIED),
        ],
    )
    def test_email_verification(self, value, expected):
        assert verification_result_to_email_verification_result(value) is expected

    def test_unmapped_value_is_an_argument_error(self):
        with pytest.raises(InvalidArgumentException):
            verification_result_to_reset_password_result(EmailVerificationResult.VERIFIED)
