from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from activity_log.core.document_store import DocumentStore
from activity_log.core.extraction import first_extracted

USERS_COLLECTION = "users"

PROFILE_ROLE_RULES: tuple[str, ...] = ("role", "perfil.role", "profile.role", "roles")


def profile_role(profile: dict[str, Any] | None, rules: Iterable[str] = PROFILE_ROLE_RULES) -> str:
    if not profile:
        return ""
    return first_extracted(profile, rules)


class UserProfileRepository:
    """User profile documents, keyed by lowercased email."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get(self, email: str | None) -> dict[str, Any] | None:
        key = (email or "").strip().lower()
        if not key:
            return None
        return await self.store.get(USERS_COLLECTION, key)

    async def resolve_role(self, email: str | None, rules: Iterable[str] = PROFILE_ROLE_RULES) -> str:
        return profile_role(await self.get(email), rules)
