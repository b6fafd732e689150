"""
auth/tokens.py -- JWT issuance and verification, password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (login name), jti (random UUID4), nameid (user id), role (list of
       role names), iss, aud, iat and exp. The signature covers header and
       payload, so editing a role or the expiry invalidates the token.

       Verification raises ExpiredTokenError or InvalidTokenError. Both are
       TokenError subclasses; the authorization gate turns either into one
       generic 401 and only logs which one it was.

  Validity window: TOKEN_EXPIRE_MINUTES (default 5). There is no server-side
       revocation list, so the window is the only bound on a leaked token.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       lets the authentication service run a full bcrypt check for unknown
       login names, so response time does not reveal whether an account exists.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenClaims
from core.config import get_settings

logger = logging.getLogger("bookstore.auth.tokens")

_ALGORITHM = "HS256"

# Claim names read by the authorization gate and the companion front-end.
CLAIM_USER_ID = "nameid"
CLAIM_ROLES = "role"

# bcrypt reads at most this many bytes of a password.
BCRYPT_MAX_BYTES = 72


class TokenError(Exception):
    """Base class for bearer-token verification failures."""


class ExpiredTokenError(TokenError):
    """The token's signature is valid but its exp claim is in the past."""


class InvalidTokenError(TokenError):
    """The token is malformed, tampered with, or issued for someone else."""


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only reads the first BCRYPT_MAX_BYTES bytes, so longer passwords
    raise ValueError instead of being truncated. The registration policy
    rejects them before they get here.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password exceeds {BCRYPT_MAX_BYTES} bytes.")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A password over BCRYPT_MAX_BYTES can never have been stored, so it is a
    mismatch. A corrupt stored hash makes bcrypt raise ValueError; that is
    treated as a failed match rather than a fault.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("bookstore_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Run a bcrypt check that always fails, to equalize login timing."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(
    user_id: str,
    login_name: str,
    roles: Iterable[str],
    *,
    issued_at: datetime | None = None,
    expire_minutes: int = 0,
) -> str:
    """Encode a signed JWT for an authenticated identity.

    Args:
        user_id:        Identity id, stored in the nameid claim.
        login_name:     Login name, stored as the sub claim.
        roles:          Role names held at issuance time. May be empty.
        issued_at:      Issuance time. Defaults to now (UTC).
        expire_minutes: Validity window. If 0 (default), uses
                        Settings.token_expire_minutes.

    The only non-deterministic input is the jti claim, a fresh UUID4, so two
    tokens for the same identity issued in the same second still differ.
    """
    settings = get_settings()
    now = issued_at or datetime.now(timezone.utc)
    duration = expire_minutes if expire_minutes > 0 else settings.token_expire_minutes
    payload = {
        "sub": login_name,
        "jti": str(uuid.uuid4()),
        CLAIM_USER_ID: user_id,
        CLAIM_ROLES: sorted(set(roles)),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_issuer,
        "iat": now,
        "exp": now + timedelta(minutes=duration),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """Verify a JWT and return its claims.

    Checks the HS256 signature, exp, iss and aud. Raises ExpiredTokenError
    when only the expiry fails and InvalidTokenError for anything else,
    including tokens missing the claims this service issues.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[_ALGORITHM],
            audience=settings.jwt_issuer,
            issuer=settings.jwt_issuer,
        )
    except ExpiredSignatureError as exc:
        raise ExpiredTokenError("Token has expired.") from exc
    except JWTError as exc:
        raise InvalidTokenError("Token could not be verified.") from exc

    # jose skips the audience check when the aud claim is absent.
    missing = [c for c in ("sub", "jti", CLAIM_USER_ID, "iss", "aud", "iat", "exp") if c not in payload]
    if missing:
        raise InvalidTokenError(f"Token is missing claims: {missing!r}")

    roles = payload.get(CLAIM_ROLES, [])
    if isinstance(roles, str):
        roles = [roles]
    if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
        raise InvalidTokenError("Token role claim is malformed.")

    return TokenClaims(
        subject=payload["sub"],
        token_id=payload["jti"],
        user_id=payload[CLAIM_USER_ID],
        roles=frozenset(roles),
        issuer=payload["iss"],
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
