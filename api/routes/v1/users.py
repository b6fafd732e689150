"""
api/routes/v1/users.py -- Login and registration endpoints.

Routes:
  POST /api/v1/users/login     -- verify credentials; return {"token": ...}
  POST /api/v1/users/register  -- create an identity with the default role

Security:
  Both routes are rate-limited per client IP (LOGIN_RATE_LIMIT).
  Use auth.service.authenticate() -- never inline get_by_username() +
  verify_password(), that re-introduces the timing side channel.
  Unknown login and wrong password return the same 401 body.
  Cache-Control: no-store on every response from these routes.
  Passwords and tokens are never logged.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import Credentials, ErrorDetail, ErrorResponse, LoginResponse, RegisterResponse, RegistrationErrorRow
from auth.service import AuthenticationFault, authenticate, register
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("bookstore.api.users")

# Auth policy: both routes are public -- they are how a caller obtains a token.
router = APIRouter()

_BAD_CREDENTIALS = ErrorResponse(
    error=ErrorDetail(code="unauthorized", message="Invalid login name or password.")
).model_dump()

_INTERNAL_ERROR = ErrorResponse(
    error=ErrorDetail(code="internal_error", message="Something went wrong. Please contact the administrator.")
).model_dump()


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"
    return resp


# The route decorator must sit above the limit decorator so FastAPI
# registers the rate-limited wrapper.
@router.post("/users/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)
def login(request: Request, body: Credentials) -> JSONResponse:
    """Authenticate with login name and password; return a bearer token."""
    location = "Users - login"
    user_store: UserStore = request.app.state.user_store
    logger.info("%s: Login attempt for %s", location, body.login_name)
    try:
        result = authenticate(user_store, body.login_name, body.password)
    except AuthenticationFault:
        logger.exception("%s: Login for %s failed unexpectedly", location, body.login_name)
        return _no_store(JSONResponse(status_code=500, content=_INTERNAL_ERROR))

    if not result.succeeded:
        logger.warning("%s: %s not authenticated", location, body.login_name)
        return _no_store(JSONResponse(status_code=401, content=_BAD_CREDENTIALS))

    logger.info("%s: %s successfully authenticated", location, body.login_name)
    return _no_store(JSONResponse(status_code=200, content=LoginResponse(token=result.token).model_dump()))


@router.post("/users/register", response_model=RegisterResponse)
@limiter.limit(login_rate_limit)
def register_user(request: Request, body: Credentials) -> JSONResponse:
    """Create a new identity. Policy failures return 400 with every broken rule."""
    location = "Users - register"
    settings = get_settings()
    if not settings.registration_enabled:
        logger.warning("%s: Registration attempt while registration is disabled", location)
        return _no_store(
            JSONResponse(
                status_code=403,
                content=ErrorResponse(
                    error=ErrorDetail(code="registration_disabled", message="Self-registration is disabled.")
                ).model_dump(),
            )
        )

    user_store: UserStore = request.app.state.user_store
    logger.info("%s: Registration attempt for %s", location, body.login_name)
    result = register(user_store, body.login_name, body.password, settings)
    response = RegisterResponse(
        succeeded=result.succeeded,
        errors=[RegistrationErrorRow(code=e.code, description=e.description) for e in result.errors],
    )
    if not result.succeeded:
        for error in result.errors:
            logger.warning("%s: %s - %s", location, error.code, body.login_name)
        return _no_store(JSONResponse(status_code=400, content=response.model_dump()))

    logger.info("%s: Successful registration of %s", location, body.login_name)
    return _no_store(JSONResponse(status_code=200, content=response.model_dump()))
