"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in catalog/models.py -- dataclasses own domain shape; stores, services and
routes do the work.

Layer rule: no imports from api/, core/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """The static set of roles the service knows about."""

    administrator = "Administrator"
    customer = "Customer"


@dataclass
class Identity:
    """A stored user record.

    username is the login name exactly as registered (an email address).
    normalized_username is the trimmed, lowercased form used for lookups and
    the uniqueness constraint, so "Alice@Example.com" and "alice@example.com"
    are the same account.

    roles is loaded from the user_roles join table by the store and reflects
    the role set at the moment of the lookup.

    id is None before the record is written to the database.
    """

    username: str
    normalized_username: str = ""
    hashed_password: str | None = None
    roles: list[str] = field(default_factory=list)
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """The verified content of a bearer token.

    Built only by auth.tokens.decode_access_token() after the signature,
    issuer, audience and expiry have been checked.
    """

    subject: str
    token_id: str
    user_id: str
    roles: frozenset[str]
    issuer: str
    issued_at: datetime
    expires_at: datetime
