"""
Clerk bearer-token verification.

Handles:
- HS256 verification with a shared secret (development/testing)
- RS256 verification against a JWKS document (production)
- Mapping claims to a request-scoped Principal
- Test helpers for deterministic testing (no network)

An invalid token and an unreachable identity provider are different
failures: the first is the caller's problem (401), the second is ours (503,
or a demo principal where an endpoint opts in).
"""
import json
import time
import logging
from typing import Any, Callable, Dict, Optional, Protocol

import httpx
import jwt
from jwt.algorithms import RSAAlgorithm

from studyforge.core.config import Settings, settings
from studyforge.core.errors import IdentityUnavailableError, InvalidTokenError
from studyforge.models.principal import Principal

logger = logging.getLogger("studyforge")

JwksFetcher = Callable[[str, float], Dict[str, Any]]


class IdentityProvider(Protocol):
    def validate_token(self, token: str) -> Principal:
        """
        Raises:
            InvalidTokenError: token rejected
            IdentityUnavailableError: provider unreachable or misconfigured
        """
        ...


def _default_fetch_jwks(jwks_url: str, timeout: float) -> Dict[str, Any]:
    response = httpx.get(jwks_url, timeout=timeout)
    response.raise_for_status()
    return response.json()


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    user_id = claims.get("sub")
    if not user_id:
        raise InvalidTokenError("Unauthorized")
    email = claims.get("email")
    name = claims.get("name")
    for metadata_key in ("user_metadata", "public_metadata"):
        metadata = claims.get(metadata_key)
        if not name and isinstance(metadata, dict):
            name = metadata.get("name")
    return Principal(id=user_id, email=email, display_name=Principal.display_name_for(email, name))


class ClerkIdentityProvider:
    """Validates Clerk-issued JWTs locally; JWKS is fetched once per URL and cached."""

    def __init__(self, settings_obj: Optional[Settings] = None, jwks_fetcher: Optional[JwksFetcher] = None):
        self.settings = settings_obj or settings
        self._fetch_jwks = jwks_fetcher or _default_fetch_jwks
        self._jwks_cache: Dict[str, Dict[str, Any]] = {}

    def validate_token(self, token: str) -> Principal:
        try:
            claims = self._decode(token)
        except jwt.ExpiredSignatureError:
            logger.info("[auth] expired token")
            raise InvalidTokenError("Unauthorized")
        except jwt.PyJWTError as e:
            logger.info(f"[auth] invalid token: {e}")
            raise InvalidTokenError("Unauthorized")
        return principal_from_claims(claims)

    def _jwks_url(self) -> Optional[str]:
        if self.settings.CLERK_JWKS_URL:
            return self.settings.CLERK_JWKS_URL
        if self.settings.CLERK_ISSUER:
            return f"{self.settings.CLERK_ISSUER.rstrip('/')}/.well-known/jwks.json"
        return None

    def _get_jwks(self, jwks_url: str) -> Dict[str, Any]:
        if jwks_url in self._jwks_cache:
            return self._jwks_cache[jwks_url]
        try:
            jwks = self._fetch_jwks(jwks_url, self.settings.JWKS_FETCH_TIMEOUT_SECONDS)
        except (httpx.HTTPError, ValueError, OSError) as e:
            logger.warning(f"[auth] failed to fetch JWKS: {e}")
            raise IdentityUnavailableError("Authentication service unavailable")
        self._jwks_cache[jwks_url] = jwks
        return jwks

    def _decode(self, token: str) -> Dict[str, Any]:
        secret = self.settings.CLERK_SECRET_KEY
        if secret:
            # Symmetric verification (HS256); aud/iss are not checked
            return jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                options={"verify_signature": True, "verify_exp": True, "verify_aud": False},
            )

        jwks_url = self._jwks_url()
        if not jwks_url:
            logger.error("[auth] no CLERK_SECRET_KEY, CLERK_ISSUER or CLERK_JWKS_URL configured")
            raise IdentityUnavailableError("Authentication service unavailable")

        kid = jwt.get_unverified_header(token).get("kid")
        if not kid:
            raise jwt.InvalidTokenError("Token missing 'kid' in header")

        matching_key = None
        for key in self._get_jwks(jwks_url).get("keys", []):
            if key.get("kid") == kid:
                matching_key = key
                break
        if not matching_key:
            raise jwt.InvalidTokenError(f"Key ID '{kid}' not found in JWKS")

        public_key = RSAAlgorithm.from_jwk(json.dumps(matching_key))
        options = {"verify_signature": True, "verify_exp": True, "verify_aud": bool(self.settings.CLERK_AUDIENCE)}
        return jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            audience=self.settings.CLERK_AUDIENCE,
            issuer=self.settings.CLERK_ISSUER,
            options=options,
        )


# ============================================================================
# Test Helpers (deterministic, no network)
# ============================================================================

def create_test_jwt(
    sub: str = "test_user_123",
    email: Optional[str] = "test@example.com",
    name: Optional[str] = None,
    exp_minutes: int = 60,
    secret: str = "test-secret-key-for-studyforge",
    algorithm: str = "HS256",
    private_key: Optional[str] = None,
    kid: Optional[str] = None,
    issuer: Optional[str] = None,
    audience: Optional[str] = None,
) -> str:
    """
    Create a signed JWT for tests.
    Supports HS256 (default) and RS256 (for JWKS-based tests).
    """
    now = int(time.time())
    payload: Dict[str, Any] = {
        "sub": sub,
        "email": email,
        "iat": now,
        "exp": now + (exp_minutes * 60),
        "iss": issuer or "https://test.clerk.accounts.dev",
        "aud": audience or "test-audience",
        "public_metadata": {},
    }
    if name:
        payload["name"] = name

    headers = {"kid": kid} if kid else None
    key = private_key if algorithm == "RS256" and private_key else secret
    return jwt.encode(payload, key, algorithm=algorithm, headers=headers)
