"""Microsoft Graph user directory client (client-credentials flow)."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Protocol

import aiohttp
from pydantic import BaseModel

from activity_log.core.config import Settings
from activity_log.core.exceptions import IdentityProviderError

logger = logging.getLogger(__name__)

# Directory extension properties surfaced as custom attributes.
CUSTOM_ATTRIBUTE_NAMES: tuple[str, ...] = ("funcao", "role", "matricula")

_TOKEN_REFRESH_MARGIN_SECONDS = 60
_PAGE_SIZE = 999


class IdentityUser(BaseModel):
    uid: str
    display_name: str | None = None
    email: str | None = None
    photo_url: str | None = None
    custom_attributes: dict[str, Any] = {}
    creation_time: datetime | None = None
    last_sign_in_time: datetime | None = None


class IdentityProvider(Protocol):
    async def list_users(self) -> list[IdentityUser]: ...


class GraphIdentityProvider:
    def __init__(self) -> None:
        self.initialized = False
        self.tenant_id = ""
        self.client_id = ""
        self.client_secret = ""
        self.graph_endpoint = ""
        self.extension_app_id = ""
        self.include_sign_in_activity = False
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        if not settings.AZURE_AD_TENANT_ID or not settings.AZURE_AD_CLIENT_ID or not settings.AZURE_AD_CLIENT_SECRET:
            logger.warning("Azure AD client credentials missing, GraphIdentityProvider not initialized")
            return

        self.tenant_id = settings.AZURE_AD_TENANT_ID
        self.client_id = settings.AZURE_AD_CLIENT_ID
        self.client_secret = settings.AZURE_AD_CLIENT_SECRET
        self.graph_endpoint = settings.GRAPH_ENDPOINT.rstrip("/")
        self.extension_app_id = settings.GRAPH_EXTENSION_APP_ID.replace("-", "")
        self.include_sign_in_activity = settings.GRAPH_INCLUDE_SIGN_IN_ACTIVITY
        self.initialized = True

    async def close(self) -> None:
        self.initialized = False
        self._access_token = None
        self._token_expires_at = 0.0

    def _extension_property(self, name: str) -> str:
        return f"extension_{self.extension_app_id}_{name}"

    def _select_fields(self) -> str:
        fields = ["id", "displayName", "mail", "userPrincipalName", "createdDateTime"]
        if self.include_sign_in_activity:
            fields.append("signInActivity")
        if self.extension_app_id:
            fields.extend(self._extension_property(name) for name in CUSTOM_ATTRIBUTE_NAMES)
        return ",".join(fields)

    async def _get_access_token(self, session: aiohttp.ClientSession) -> str:
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        url = f"https://login.microsoftonline.com/{self.tenant_id}/oauth2/v2.0/token"
        form = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": "https://graph.microsoft.com/.default",
        }
        async with session.post(url, data=form) as response:
            if response.status != 200:
                error_text = await response.text()
                raise IdentityProviderError(f"Token request failed: {response.status} - {error_text}")
            payload = await response.json()

        self._access_token = payload["access_token"]
        self._token_expires_at = time.time() + int(payload.get("expires_in", 3600)) - _TOKEN_REFRESH_MARGIN_SECONDS
        return self._access_token

    def _to_identity_user(self, raw: dict[str, Any]) -> IdentityUser:
        custom: dict[str, Any] = {}
        if self.extension_app_id:
            for name in CUSTOM_ATTRIBUTE_NAMES:
                value = raw.get(self._extension_property(name))
                if value is not None:
                    custom[name] = value

        sign_in = raw.get("signInActivity") or {}
        return IdentityUser(
            uid=raw["id"],
            display_name=raw.get("displayName"),
            email=raw.get("mail") or raw.get("userPrincipalName"),
            custom_attributes=custom,
            creation_time=raw.get("createdDateTime"),
            last_sign_in_time=sign_in.get("lastSignInDateTime"),
        )

    async def list_users(self) -> list[IdentityUser]:
        if not self.initialized:
            raise IdentityProviderError("GraphIdentityProvider not initialized")

        users: list[IdentityUser] = []
        url: str | None = f"{self.graph_endpoint}/users?$select={self._select_fields()}&$top={_PAGE_SIZE}"

        try:
            timeout = aiohttp.ClientTimeout(total=30)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                token = await self._get_access_token(session)
                headers = {"Authorization": f"Bearer {token}"}
                while url:
                    async with session.get(url, headers=headers) as response:
                        if response.status != 200:
                            error_text = await response.text()
                            raise IdentityProviderError(f"Listing users failed: {response.status} - {error_text}")
                        data = await response.json()

                    users.extend(self._to_identity_user(raw) for raw in data.get("value", []))
                    url = data.get("@odata.nextLink")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, KeyError) as err:
            raise IdentityProviderError(f"Graph request failed: {err}") from err

        logger.info("Listed %d users from Microsoft Graph", len(users))
        return users

    async def check_connection(self) -> bool:
        if not self.initialized:
            return False
        try:
            timeout = aiohttp.ClientTimeout(total=10)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                await self._get_access_token(session)
            return True
        except Exception:
            logger.exception("GraphIdentityProvider connection check failed")
            return False
