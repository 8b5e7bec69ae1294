"""PII hashing for outbound tracking payloads.

Ad platforms match users on SHA-256 digests of normalized identity fields.
Every destination goes through ``hash_value`` so the same person produces
the same digest everywhere, and raw identity never leaves the process.
"""

import hashlib
import re
from enum import Enum

from tracking.event.model import TrackingUser

_NON_DIGITS = re.compile(r"\D+")
_WHITESPACE = re.compile(r"\s+")


class PIIField(Enum):
    EMAIL = "email"
    PHONE = "phone"
    NAME = "name"
    CITY = "city"
    STATE = "state"
    ZIP = "zip"
    COUNTRY = "country"
    EXTERNAL_ID = "external_id"


def normalize(value: str | None, field: PIIField = PIIField.EMAIL) -> str | None:
    """Return the canonical form of ``value`` or None when nothing is left."""
    if value is None:
        return None
    value = str(value)

    if field is PIIField.PHONE:
        normalized = _NON_DIGITS.sub("", value)
    elif field is PIIField.ZIP:
        normalized = _WHITESPACE.sub("", value).lower()
    elif field is PIIField.EXTERNAL_ID:
        normalized = value.strip()
    elif field in (PIIField.NAME, PIIField.CITY, PIIField.STATE):
        normalized = _WHITESPACE.sub(" ", value).strip().lower()
    else:
        normalized = value.strip().lower()

    return normalized or None


def hash_value(value: str | None, field: PIIField = PIIField.EMAIL) -> str | None:
    """SHA-256 hex digest of the normalized value; None for empty input."""
    normalized = normalize(value, field)
    if normalized is None:
        return None
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


# Platform user_data key -> (TrackingUser attribute, normalization)
_USER_DATA_FIELDS = (
    ("em", "email", PIIField.EMAIL),
    ("ph", "phone", PIIField.PHONE),
    ("fn", "first_name", PIIField.NAME),
    ("ln", "last_name", PIIField.NAME),
    ("ct", "city", PIIField.CITY),
    ("st", "state", PIIField.STATE),
    ("zp", "zip_code", PIIField.ZIP),
    ("country", "country", PIIField.COUNTRY),
    ("external_id", "user_id", PIIField.EXTERNAL_ID),
)


def hash_user(user: TrackingUser | None) -> dict[str, str]:
    """Hashed ``user_data`` mapping; absent fields are omitted, never sent empty."""
    if user is None:
        return {}

    user_data = {}
    for key, attribute, field in _USER_DATA_FIELDS:
        digest = hash_value(getattr(user, attribute), field)
        if digest is not None:
            user_data[key] = digest
    return user_data
