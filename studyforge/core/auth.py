"""
Auth gate for StudyForge API routes.

Extracts the bearer token from the Authorization header and resolves it to
a Principal through the identity provider on ``app.state.identity``.
Rejections happen before any other work is done for the request.
"""
from typing import Optional
import logging

from fastapi import Request

from studyforge.core.errors import IdentityUnavailableError, PermissionError, UnauthenticatedError
from studyforge.core.identity import IdentityProvider
from studyforge.models.principal import DEMO_PRINCIPAL, Principal

logger = logging.getLogger("studyforge")

BEARER_PREFIX = "Bearer "
MISSING_AUTH_MESSAGE = "Missing or invalid Authorization header"


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from ``Bearer <token>`` or raise UnauthenticatedError."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthenticatedError(MISSING_AUTH_MESSAGE)
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise UnauthenticatedError(MISSING_AUTH_MESSAGE)
    return token


def authenticate(identity: IdentityProvider, authorization: Optional[str]) -> Principal:
    token = extract_bearer_token(authorization)
    return identity.validate_token(token)


def get_principal(request: Request) -> Principal:
    """
    Resolve the caller.

    Declared sync so FastAPI runs it in the threadpool; token validation may
    fetch JWKS over the network.

    Raises:
        UnauthenticatedError 401: header missing or malformed
        InvalidTokenError 401: token rejected
        IdentityUnavailableError 503: identity provider outage
    """
    return authenticate(request.app.state.identity, request.headers.get("Authorization"))


def get_principal_or_demo(request: Request) -> Principal:
    """
    Like ``get_principal`` but an identity provider outage yields the
    capability-limited demo principal instead of 503. Missing or invalid
    credentials are still rejected.
    """
    try:
        return authenticate(request.app.state.identity, request.headers.get("Authorization"))
    except IdentityUnavailableError:
        logger.warning("[auth] identity provider unavailable, continuing with demo principal")
        return DEMO_PRINCIPAL


def ensure_same_user(principal: Principal, claimed_user_id: Optional[str]) -> None:
    """Reject payloads that name a different user than the token."""
    if claimed_user_id is not None and claimed_user_id != principal.id:
        logger.warning(f"[auth] user id mismatch for principal {principal.id}")
        raise PermissionError("User ID mismatch")
