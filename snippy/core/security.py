"""Access-token verification for Auth0-issued JWTs.

HS* algorithms verify against the shared signing secret. RS* algorithms
verify against the tenant's JWKS, fetched once and cached per URL.
"""

import logging
from typing import Any

import httpx
from jose import JWTError, jwt

from snippy.config import Settings, settings as default_settings
from snippy.core.exceptions import InvalidTokenError, ServiceUnavailableError

logger = logging.getLogger(__name__)

_jwks_cache: dict[str, dict[str, Any]] = {}


def clear_jwks_cache() -> None:
    _jwks_cache.clear()


def jwks_url(settings: Settings) -> str:
    issuer = settings.auth0_issuer
    if issuer is None:
        raise InvalidTokenError("Token issuer is not configured")
    return f"{issuer}.well-known/jwks.json"


async def fetch_jwks(
    settings: Settings,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Return the tenant's JSON Web Key Set, fetching it on first use."""
    url = jwks_url(settings)
    cached = _jwks_cache.get(url)
    if cached is not None:
        return cached

    own_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=10.0)
    try:
        response = await client.get(url)
        response.raise_for_status()
        jwks = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("JWKS fetch failed", extra={"url": url, "error": str(exc)})
        raise ServiceUnavailableError("Token verification unavailable") from exc
    finally:
        if own_client:
            await client.aclose()

    _jwks_cache[url] = jwks
    logger.info("JWKS loaded", extra={"url": url, "keys": len(jwks.get("keys", []))})
    return jwks


async def _signing_key(
    token: str,
    settings: Settings,
    http_client: httpx.AsyncClient | None,
) -> str | dict[str, Any]:
    if settings.auth0_algorithm.upper().startswith("HS"):
        return settings.auth0_signing_secret

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    jwks = await fetch_jwks(settings, http_client=http_client)
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    logger.warning("No JWKS key matches token", extra={"kid": kid})
    raise InvalidTokenError("Unknown signing key")


def decode_token(
    token: str,
    key: str | dict[str, Any],
    *,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Decode and validate an access token (signature, expiry, audience, issuer)."""
    cfg = settings or default_settings
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[cfg.auth0_algorithm],
            audience=cfg.auth0_audience,
            issuer=cfg.auth0_issuer,
        )
    except JWTError as e:
        logger.warning("Token decode failed", extra={"error": str(e)})
        raise InvalidTokenError(str(e)) from e

    if not payload.get("sub"):
        logger.warning("Token missing subject")
        raise InvalidTokenError("Token missing subject")

    return payload


async def verify_access_token(
    token: str,
    *,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """Verify an access token and return the Auth0 user id (``sub``)."""
    cfg = settings or default_settings
    key = await _signing_key(token, cfg, http_client)
    payload = decode_token(token, key, settings=cfg)
    return str(payload["sub"])
