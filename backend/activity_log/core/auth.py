"""Azure AD bearer token validation against the tenant's signing keys."""

from __future__ import annotations

import logging
import time
from typing import Any

import aiohttp
from fastapi import HTTPException, status
from jose import jwk, jwt
from jose.constants import Algorithms
from jose.exceptions import ExpiredSignatureError, JWSSignatureError, JWTClaimsError, JWTError

logger = logging.getLogger("azure_auth")

_JWKS_TTL_SECONDS = 24 * 60 * 60


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class JwksCache:
    """Per-tenant signing keys, refreshed once a day; stale keys beat no keys."""

    def __init__(self, ttl_seconds: int = _JWKS_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds
        self._keys: dict[str, dict[str, Any]] = {}
        self._fetched_at: dict[str, float] = {}

    def clear(self) -> None:
        self._keys.clear()
        self._fetched_at.clear()

    async def _download(self, tenant_id: str) -> dict[str, Any]:
        jwks_uri = f"https://login.microsoftonline.com/{tenant_id}/discovery/v2.0/keys"
        logger.info("Fetching JWKS from %s", jwks_uri)
        timeout = aiohttp.ClientTimeout(total=15)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(jwks_uri) as response:
                response.raise_for_status()
                return await response.json()

    async def get(self, tenant_id: str) -> dict[str, Any]:
        fetched_at = self._fetched_at.get(tenant_id)
        if fetched_at is not None and time.time() - fetched_at < self.ttl_seconds:
            return self._keys[tenant_id]

        try:
            keys = await self._download(tenant_id)
        except aiohttp.ClientError as e:
            logger.error("Failed to fetch JWKS: %s", e)
            if tenant_id in self._keys:
                logger.warning("Using expired JWKS from cache for tenant %s", tenant_id)
                return self._keys[tenant_id]
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Could not fetch JWKS: {e}",
            ) from e

        self._keys[tenant_id] = keys
        self._fetched_at[tenant_id] = time.time()
        return keys


jwks_cache = JwksCache()


async def get_signing_key(token: str, tenant_id: str) -> dict[str, Any]:
    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError as e:
        raise _unauthorized(f"Invalid token header: {e}") from e

    if not kid:
        raise _unauthorized("Token has no 'kid' in header")

    jwks = await jwks_cache.get(tenant_id)
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key

    raise _unauthorized(f"No matching signing key for kid: {kid}")


async def validate_token(token: str, tenant_id: str, client_id: str) -> dict[str, Any]:
    if not tenant_id or not client_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Missing Azure AD configuration",
        )

    signing_key = await get_signing_key(token, tenant_id)
    algorithm = signing_key.get("alg", Algorithms.RS256)
    public_key = jwk.construct(signing_key, algorithm=algorithm)

    issuers = (
        f"https://login.microsoftonline.com/{tenant_id}/v2.0",
        f"https://sts.windows.net/{tenant_id}/",
    )
    audiences = (client_id, f"api://{client_id}")
    options = {"require": ["exp", "iss", "aud"]}

    last_error: Exception | None = None
    for issuer in issuers:
        for audience in audiences:
            try:
                return jwt.decode(
                    token,
                    public_key,
                    algorithms=[algorithm],
                    audience=audience,
                    issuer=issuer,
                    options=options,
                )
            except ExpiredSignatureError as e:
                raise _unauthorized("Token is expired") from e
            except JWSSignatureError as e:
                raise _unauthorized("Invalid token signature") from e
            except (JWTClaimsError, JWTError) as e:
                last_error = e

    logger.info("Token rejected: %s", last_error)
    raise _unauthorized("Invalid authentication credentials")
