"""
Identity collection names and indexes.

Services receive an AsyncIOMotorDatabase and pick collections by these
names, so tests can hand them any mapping-like database double.
"""

from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId

from common.database.mongodb import IndexSpec


# ─────────────────────────────────────────────────────────────────
# Collection names
# ─────────────────────────────────────────────────────────────────

USERS = "users"
VERIFICATIONS = "verifications"
AUTHENTICATION_EVENTS = "authenticationEvents"


INDEXES: IndexSpec = {
    USERS: [("userName", True), ("emailAddress", True)],
    VERIFICATIONS: [("userId", False), ("expirationDate", False)],
    AUTHENTICATION_EVENTS: [("userId", False)],
}


def to_object_id(user_id: str) -> Optional[ObjectId]:
    """Parse a user id, or None when it is not a valid ObjectId."""
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None
