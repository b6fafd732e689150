"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer-token authorization.

The gate is stateless: it trusts the signed claims and never looks the user
up again. Roles are those embedded at issuance; a role change takes effect on
the next login, not on tokens already handed out.

get_token_claims() raises HTTP 401 for a missing, malformed, tampered or
expired token. The response body is identical in every case; only the log
line says which check failed.

require_roles(*roles) wraps get_token_claims() and raises HTTP 403 when the
token's role set does not intersect the required set. With no roles given,
any valid token passes.

Layer rule: no imports from catalog/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.models import Role, TokenClaims
from auth.tokens import ExpiredTokenError, TokenError, decode_access_token

logger = logging.getLogger("bookstore.auth.gate")

_UNAUTHORIZED = {"code": "unauthorized", "message": "Authentication required."}


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_token_claims(request: Request) -> TokenClaims:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: TokenClaims = Depends(get_token_claims)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail=_UNAUTHORIZED, headers={"WWW-Authenticate": "Bearer"})
    try:
        return decode_access_token(token)
    except ExpiredTokenError:
        logger.info("Rejected expired token on %s %s", request.method, request.url.path)
    except TokenError as exc:
        logger.warning("Rejected invalid token on %s %s: %s", request.method, request.url.path, exc)
    raise HTTPException(status_code=401, detail=_UNAUTHORIZED, headers={"WWW-Authenticate": "Bearer"})


def require_roles(*roles: Role | str) -> Callable[[Request], TokenClaims]:
    """Build a dependency that permits tokens holding any of the given roles.

    Use as a FastAPI dependency:
        @router.post("/authors", dependencies=[Depends(require_roles(Role.administrator))])
    """
    required = frozenset(r.value if isinstance(r, Role) else r for r in roles)

    def dependency(request: Request) -> TokenClaims:
        claims = get_token_claims(request)
        if required and not (claims.roles & required):
            logger.warning(
                "User %s lacks roles %s for %s %s",
                claims.user_id,
                sorted(required),
                request.method,
                request.url.path,
            )
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "You do not have access to this resource."},
            )
        return claims

    return dependency


# Shared policies for the catalog routes.
require_reader = require_roles(Role.customer, Role.administrator)
require_admin = require_roles(Role.administrator)
