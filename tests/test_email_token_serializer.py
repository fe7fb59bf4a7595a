"""Unit tests for packing verification tokens into email links."""

import base64

import pytest

from app.options import VerificationOptions
from app.services.email.email_token_serializer import EmailTokenSerializer
from common.utils.exceptions import InvalidTokenException

PEPPER = base64.b64encode(b"\xfb\xff" * 16).decode("ascii")
TOKEN = base64.b64encode(bytes(range(64))).decode("ascii")


@pytest.fixture
def serializer():
    return EmailTokenSerializer(VerificationOptions(hash_name="sha512", pepper_length=32))


class TestSerialize:
    def test_output_is_url_safe(self, serializer):
        serialized = serializer.serialize(PEPPER, TOKEN, "learner01")

        assert "+" not in serialized
        assert "/" not in serialized
        assert base64.urlsafe_b64decode(serialized)[-9:] == b"learner01"

    def test_deserialize_recovers_parts(self, serializer):
        serialized = serializer.serialize(PEPPER, TOKEN, "lärare_01")

        assert serializer.deserialize(serialized) == (PEPPER, TOKEN, "lärare_01")


class TestDeserialize:
    def test_rejects_missing_user_name(self, serializer):
        serialized = serializer.serialize(PEPPER, TOKEN, "")

        with pytest.raises(InvalidTokenException):
            serializer.deserialize(serialized)

    @pytest.mark.parametrize("serialized", ["###", "not base64 at all", "abc"])
    def test_rejects_malformed_base64(self, serializer, serialized):
        with pytest.raises(InvalidTokenException):
            serializer.deserialize(serialized)

    def test_rejects_invalid_utf8_user_name(self, serializer):
        raw = b"\x01" * 32 + b"\x02" * 64 + b"\xff\xfe"
        serialized = base64.urlsafe_b64encode(raw).decode("ascii")

        with pytest.raises(InvalidTokenException):
            serializer.deserialize(serialized)

    def test_split_follows_configured_lengths(self):
        serializer = EmailTokenSerializer(VerificationOptions(hash_name="sha256", pepper_length=16))
        raw = b"\x01" * 16 + b"\x02" * 32 + b"learner01"

        pepper, token, user_name = serializer.deserialize(base64.urlsafe_b64encode(raw).decode("ascii"))

        assert base64.b64decode(pepper) == b"\x01" * 16
        assert base64.b64decode(token) == b"\x02" * 32
        assert user_name == "learner01"
