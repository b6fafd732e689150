"""
auth/service.py -- Login and registration orchestration.

Login state machine (one attempt, fully synchronous):

  START   -- empty login name or password is rejected before any store call.
  LOOKUP  -- UserStore resolves the identity by normalized login name.
  VERIFY  -- bcrypt check against the stored hash. Unknown login names still
             run bcrypt (against a dummy hash) so timing does not leak account
             existence.
  ISSUE   -- Token Issuer signs a token carrying the identity's current roles.

Terminal outcomes:
  SUCCESS   -- LoginResult with a token.
  REJECTED  -- LoginResult without a token. Unknown login and wrong password
               produce the same result object; callers cannot tell them apart
               and must not try to.
  ERROR     -- AuthenticationFault is raised for storage or signing faults.
               The HTTP layer maps it to a generic 500, never to 401.

Registration applies the configurable password policy, rejects duplicate
login names, creates the identity and assigns the default role.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Identity
from auth.store import UserStore
from auth.tokens import BCRYPT_MAX_BYTES, burn_password_check, create_access_token, hash_password, verify_password
from core.config import Settings

logger = logging.getLogger("bookstore.auth.service")

# Deliberately loose: one @, no whitespace, a dot in the domain part.
_LOGIN_NAME_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthenticationFault(RuntimeError):
    """An unexpected failure while authenticating (storage down, signing broken)."""


class LoginStatus(str, Enum):
    success = "success"
    rejected = "rejected"


@dataclass(frozen=True)
class LoginResult:
    status: LoginStatus
    token: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is LoginStatus.success


_REJECTED = LoginResult(status=LoginStatus.rejected)


@dataclass(frozen=True)
class RegistrationError:
    code: str
    description: str


@dataclass
class RegistrationResult:
    succeeded: bool
    errors: list[RegistrationError] = field(default_factory=list)
    user_id: str | None = None


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def authenticate(store: UserStore, login_name: str, password: str) -> LoginResult:
    """Verify credentials and issue a bearer token.

    Returns a LoginResult (SUCCESS or REJECTED). Raises AuthenticationFault
    on storage or signing faults.
    """
    if not login_name or not login_name.strip() or not password:
        return _REJECTED

    try:
        identity = store.get_by_username(login_name)
    except SQLAlchemyError as exc:
        raise AuthenticationFault("Credential store unavailable") from exc

    if identity is None or not identity.hashed_password:
        burn_password_check(password)
        return _REJECTED
    if not verify_password(password, identity.hashed_password):
        return _REJECTED

    try:
        token = create_access_token(identity.id, identity.username, identity.roles)
    except JWTError as exc:
        raise AuthenticationFault("Token signing failed") from exc
    return LoginResult(status=LoginStatus.success, token=token)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def check_password_policy(password: str, settings: Settings) -> list[RegistrationError]:
    """Return every password rule the candidate breaks (empty list if none)."""
    errors: list[RegistrationError] = []
    if len(password) < settings.password_min_length:
        errors.append(
            RegistrationError(
                "password_too_short",
                f"Passwords must be at least {settings.password_min_length} characters.",
            )
        )
    if len(password) > settings.password_max_length:
        errors.append(
            RegistrationError(
                "password_too_long",
                f"Passwords must be at most {settings.password_max_length} characters.",
            )
        )
    elif len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        errors.append(
            RegistrationError(
                "password_too_long",
                f"Passwords must be at most {BCRYPT_MAX_BYTES} bytes when UTF-8 encoded.",
            )
        )
    if settings.password_require_digit and not any(c.isdigit() for c in password):
        errors.append(RegistrationError("password_requires_digit", "Passwords must have at least one digit."))
    if settings.password_require_uppercase and not any(c.isupper() for c in password):
        errors.append(
            RegistrationError("password_requires_upper", "Passwords must have at least one uppercase letter.")
        )
    if settings.password_require_lowercase and not any(c.islower() for c in password):
        errors.append(
            RegistrationError("password_requires_lower", "Passwords must have at least one lowercase letter.")
        )
    return errors


def register(
    store: UserStore,
    login_name: str,
    password: str,
    settings: Settings,
    roles: list[str] | None = None,
) -> RegistrationResult:
    """Create a new identity if the login name and password pass policy.

    roles defaults to [settings.default_role]. Storage faults propagate as
    SQLAlchemyError; only the duplicate-login race is converted to a result.
    The identity and its roles are written in one transaction.
    """
    errors: list[RegistrationError] = []
    if not _LOGIN_NAME_RE.match(login_name.strip()):
        errors.append(RegistrationError("invalid_login_name", "Login name must be a valid email address."))
    errors.extend(check_password_policy(password, settings))
    if not errors and store.get_by_username(login_name) is not None:
        errors.append(RegistrationError("duplicate_login_name", f"Login name '{login_name.strip()}' is already taken."))
    if errors:
        return RegistrationResult(succeeded=False, errors=errors)

    assigned = roles if roles is not None else [settings.default_role]
    store.ensure_roles(assigned)
    try:
        user_id = store.create_user(
            Identity(username=login_name, hashed_password=hash_password(password)),
            roles=assigned,
        )
    except IntegrityError:
        return RegistrationResult(
            succeeded=False,
            errors=[
                RegistrationError("duplicate_login_name", f"Login name '{login_name.strip()}' is already taken.")
            ],
        )

    logger.info("Identity %s created with roles %s", user_id, assigned)
    return RegistrationResult(succeeded=True, user_id=user_id)
