"""Unit tests for session token issuing."""

from datetime import timedelta

import pytest
from jose import jwt

from app.auth.services.security_token_issuer import SecurityTokenIssuer
from app.options import SecurityTokenOptions
from common.utils.clock import utcnow
from common.utils.exceptions import InvalidArgumentException, InvalidTokenException

USER = {"userName": "learner01", "name": "Ada Learner"}


@pytest.fixture
def options():
    return SecurityTokenOptions(
        secret_key="test-secret-key",
        issuer="flashcards",
        audience="flashcards-app",
        token_expiry=timedelta(minutes=30),
    )


class TestIssue:
    def test_claims(self, options, clock):
        issuer = SecurityTokenIssuer(options, clock)

        claims = jwt.get_unverified_claims(issuer.issue("65f0c0ffee0000000000beef", USER))

        now = int(clock().timestamp())
        assert claims["sub"] == "learner01"
        assert claims["name"] == "Ada Learner"
        assert claims["uid"] == "65f0c0ffee0000000000beef"
        assert claims["iat"] == now
        assert claims["nbf"] == now
        assert claims["exp"] == now + 1800
        assert claims["iss"] == "flashcards"
        assert claims["aud"] == "flashcards-app"

    def test_explicit_valid_to(self, options, clock):
        issuer = SecurityTokenIssuer(options, clock)
        valid_to = clock() + timedelta(hours=4)

        claims = jwt.get_unverified_claims(issuer.issue("abc", USER, valid_to=valid_to))

        assert claims["exp"] == int(valid_to.timestamp())

    def test_omits_unconfigured_issuer_and_audience(self, clock):
        issuer = SecurityTokenIssuer(SecurityTokenOptions(secret_key="test-secret-key"), clock)

        claims = jwt.get_unverified_claims(issuer.issue("abc", USER))

        assert "iss" not in claims
        assert "aud" not in claims

    def test_signs_with_configured_algorithm(self, options, clock):
        token = SecurityTokenIssuer(options, clock).issue("abc", USER)

        assert jwt.get_unverified_header(token)["alg"] == "HS512"

    def test_empty_user_raises(self, options, clock):
        with pytest.raises(InvalidArgumentException):
            SecurityTokenIssuer(options, clock).issue("abc", {})


class TestDecode:
    def test_decodes_own_token(self, options):
        issuer = SecurityTokenIssuer(options, utcnow)

        claims = issuer.decode(issuer.issue("abc", USER))

        assert claims["uid"] == "abc"
        assert claims["sub"] == "learner01"

    def test_rejects_other_secret(self, options):
        token = SecurityTokenIssuer(options, utcnow).issue("abc", USER)
        other = SecurityTokenIssuer(
            SecurityTokenOptions(secret_key="other-secret", issuer="flashcards", audience="flashcards-app"),
            utcnow,
        )

        with pytest.raises(InvalidTokenException):
            other.decode(token)

    def test_rejects_expired_token(self, options):
        issuer = SecurityTokenIssuer(options, utcnow)
        token = issuer.issue("abc", USER, valid_to=utcnow() - timedelta(minutes=1))

        with pytest.raises(InvalidTokenException):
            issuer.decode(token)

    def test_rejects_other_audience(self, options):
        token = SecurityTokenIssuer(options, utcnow).issue("abc", USER)
        other = SecurityTokenIssuer(
            SecurityTokenOptions(secret_key="test-secret-key", issuer="flashcards", audience="admin-app"),
            utcnow,
        )

        with pytest.raises(InvalidTokenException):
            other.decode(token)

    def test_rejects_garbage(self, options):
        with pytest.raises(InvalidTokenException):
            SecurityTokenIssuer(options, utcnow).decode("not-a-jwt")
