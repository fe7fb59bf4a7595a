"""Shared test fixtures for identity tests."""

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from app.auth.models import UserStatus
from app.config import Settings
from app.dependencies import build_services


# ─────────────────────────────────────────────────────────────────
# In-memory MongoDB
# ─────────────────────────────────────────────────────────────────

_MISSING = object()

_COMPARISONS = {
    "$gt": lambda a, b: a > b,
    "$gte": lambda a, b: a >= b,
    "$lt": lambda a, b: a < b,
    "$lte": lambda a, b: a <= b,
}


def _get_path(doc, path):
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _set_path(doc, path, value):
    parts = path.split(".")
    for part in parts[:-1]:
        if not isinstance(doc.get(part), dict):
            doc[part] = {}
        doc = doc[part]
    doc[parts[-1]] = value


def _unset_path(doc, path):
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.get(part)
        if not isinstance(doc, dict):
            return
    doc.pop(parts[-1], None)


def _matches(doc, query):
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in condition):
                return False
            continue

        value = _get_path(doc, key)

        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if value is _MISSING or value is None:
                return False
            for op, operand in condition.items():
                if not _COMPARISONS[op](value, operand):
                    return False
        elif condition is None:
            if value is not _MISSING and value is not None:
                return False
        elif value is _MISSING or value != condition:
            return False

    return True


class FakeCollection:
    """Just enough of a motor collection for the identity services."""

    def __init__(self):
        self.docs = []

    async def find_one(self, query=None, projection=None, sort=None):
        matches = [doc for doc in self.docs if _matches(doc, query or {})]
        for key, direction in reversed(sort or []):
            matches.sort(key=lambda doc: _get_path(doc, key), reverse=direction < 0)
        return copy.deepcopy(matches[0]) if matches else None

    async def count_documents(self, query):
        return sum(1 for doc in self.docs if _matches(doc, query))

    async def insert_one(self, doc):
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                for path, value in update.get("$set", {}).items():
                    _set_path(doc, path, copy.deepcopy(value))
                for path in update.get("$unset", {}):
                    _unset_path(doc, path)
                return SimpleNamespace(matched_count=1, modified_count=int(doc != before))
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query, update):
        matched = modified = 0
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                for path, value in update.get("$set", {}).items():
                    _set_path(doc, path, copy.deepcopy(value))
                matched += 1
                modified += int(doc != before)
        return SimpleNamespace(matched_count=matched, modified_count=modified)


class FakeDatabase(dict):
    def __missing__(self, name):
        collection = FakeCollection()
        self[name] = collection
        return collection


# ─────────────────────────────────────────────────────────────────
# In-memory Redis
# ─────────────────────────────────────────────────────────────────


class FakeRedis:
    """Keys never expire on their own; tests delete them to end a window."""

    def __init__(self):
        self.values = {}
        self.ttls = {}

    async def set(self, key, value, px=None, nx=False):
        if nx and key in self.values:
            return None
        self.values[key] = str(value)
        if px is not None:
            self.ttls[key] = px
        else:
            self.ttls.pop(key, None)
        return True

    async def get(self, key):
        return self.values.get(key)

    async def pttl(self, key):
        if key not in self.values:
            return -2
        return self.ttls.get(key, -1)

    async def incr(self, key):
        value = int(self.values.get(key, 0)) + 1
        self.values[key] = str(value)
        return value

    async def pexpire(self, key, milliseconds):
        if key not in self.values:
            return False
        self.ttls[key] = milliseconds
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_user_id():
    return str(ObjectId())


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db


@pytest.fixture
def clock():
    # Sub-millisecond part on purpose: stored dates are truncated to milliseconds.
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc))


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def settings():
    return Settings(
        SECURITY_TOKEN_SECRET="test-secret-key",
        SECURITY_TOKEN_ISSUER="flashcards",
        SECURITY_TOKEN_AUDIENCE="flashcards-app",
        MAX_PASSWORD_ATTEMPTS=3,
    )


@pytest.fixture
def services(fake_db, fake_redis, settings, clock):
    services = build_services(fake_db, fake_redis, settings, clock=clock)
    services.email_service = MagicMock()
    services.email_service.send_verification_email = AsyncMock(return_value={"success": True})
    services.email_service.send_forgot_password_email = AsyncMock(return_value={"success": True})
    return services


@pytest.fixture
def create_user(services):
    """Factory for users with a saved password and the given status."""

    async def _create_user(
        user_name="learner01",
        email_address="learner01@flashcards.io",
        name="Ada Learner",
        password="Correct-Horse-Battery-9",
        user_status=UserStatus.OK,
    ):
        user = await services.user_service.create_user(
            user_name=user_name,
            email_address=email_address,
            name=name,
            user_status=UserStatus.OK,
        )
        user_id = str(user["_id"])

        if password:
            await services.password_store.save_password(user_id, password)
        if user_status is not UserStatus.OK:
            await services.user_service.update_field(user_id, "userStatus", user_status.value)

        return await services.user_service.get_user_by_id(user_id)

    return _create_user
