"""Employee records reconciled across every collection they were ever stored in."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from activity_log.core.document_store import DocumentStore, StoredDocument
from activity_log.core.exceptions import (
    MissingIndexError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from activity_log.core.extraction import extract_string, normalize_to_string
from activity_log.core.identity_provider import IdentityProvider, IdentityUser
from activity_log.core.timestamps import to_iso_timestamp, utc_now_iso
from activity_log.models.employee import Employee
from activity_log.services.employee_collections import (
    CollectionResolver,
    RecordLocator,
    WriteTargetSelector,
)
from activity_log.services.employee_mapper import DEFAULT_EMPLOYEE_NAME, map_employee_record, sort_employees
from activity_log.services.user_profiles import UserProfileRepository

logger = logging.getLogger(__name__)

SENTINEL = "--"

IDENTITY_ROLE_RULES: tuple[str, ...] = (
    "role",
    "perfil.role",
    "roles.primary",
    "roles.0",
    "cargo.nome",
    "cargo",
    "funcao",
)


def _require(value: Any, field: str) -> str:
    normalized = normalize_to_string(value)
    if not normalized:
        raise ValidationError(field, f"The '{field}' field is required.")
    return normalized


class EmployeeService:
    def __init__(
        self,
        store: DocumentStore,
        identity_provider: IdentityProvider | None = None,
        resolver: CollectionResolver | None = None,
    ) -> None:
        self.store = store
        self.identity_provider = identity_provider
        self.resolver = resolver or CollectionResolver()
        self.locator = RecordLocator(store, self.resolver)
        self.write_target = WriteTargetSelector(store, self.resolver)
        self.profiles = UserProfileRepository(store)

    async def _fetch_collection(self, collection: str) -> list[StoredDocument]:
        try:
            return await self.store.query(collection, order_by="createdAt", descending=True)
        except MissingIndexError:
            logger.info("No createdAt index on %s, listing it unordered", collection)
            return await self.store.query(collection)

    async def list_employees(self) -> list[Employee]:
        collections = self.resolver.read_candidates
        # gather keeps argument order, so later candidates still override earlier ones
        results = await asyncio.gather(*(self._fetch_collection(name) for name in collections))

        merged: dict[str, Employee] = {}
        for collection, documents in zip(collections, results):
            for doc in documents:
                merged[doc.id] = map_employee_record(doc.data, doc.id)
                self.resolver.remember(doc.id, collection)

        if merged:
            return sort_employees(list(merged.values()))

        return await self._list_identity_users()

    async def _list_identity_users(self) -> list[Employee]:
        if self.identity_provider is None:
            return []

        try:
            users = await self.identity_provider.list_users()
        except Exception:
            logger.exception("Identity provider fallback failed, returning no employees")
            return []

        employees = await asyncio.gather(*(self._employee_from_identity(user) for user in users))
        return sort_employees(list(employees))

    async def _profile_role(self, email: str | None) -> str:
        try:
            return await self.profiles.resolve_role(email, IDENTITY_ROLE_RULES)
        except StoreUnavailableError:
            logger.debug("Profile lookup for %s failed", email, exc_info=True)
            return ""

    async def _employee_from_identity(self, user: IdentityUser) -> Employee:
        custom = user.custom_attributes
        role = (
            await self._profile_role(user.email)
            or extract_string(custom.get("funcao"))
            or extract_string(custom.get("role"))
            or SENTINEL
        )
        full_name = (user.display_name or user.email or DEFAULT_EMPLOYEE_NAME).strip()

        return Employee(
            id=user.uid,
            full_name=full_name or DEFAULT_EMPLOYEE_NAME,
            registration_id=extract_string(custom.get("matricula")) or SENTINEL,
            role=role,
            photo_url=user.photo_url or None,
            created_at=to_iso_timestamp(user.creation_time),
            updated_at=to_iso_timestamp(user.last_sign_in_time),
        )

    async def create_employee(
        self,
        full_name: Any,
        registration_id: Any,
        role: Any,
        photo_url: Any = None,
    ) -> Employee:
        timestamp = utc_now_iso()
        data = {
            "nomeCompleto": _require(full_name, "fullName"),
            "matricula": _require(registration_id, "registrationId"),
            "funcao": _require(role, "role"),
            "fotoUrl": normalize_to_string(photo_url) or None,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }

        collection = await self.write_target.resolve()
        stored = await self.store.add(collection, data)
        self.resolver.remember(stored.id, collection)
        logger.info("Created employee %s in %s", stored.id, collection)
        return map_employee_record(stored.data, stored.id)

    async def update_employee(
        self,
        employee_id: str,
        full_name: Any,
        registration_id: Any,
        role: Any,
        photo_url: Any = None,
    ) -> Employee:
        located = await self.locator.locate(employee_id)
        if located is None:
            raise NotFoundError(f"Employee {employee_id} not found")

        data = {
            "nomeCompleto": _require(full_name, "fullName"),
            "matricula": _require(registration_id, "registrationId"),
            "funcao": _require(role, "role"),
            "fotoUrl": normalize_to_string(photo_url) or None,
            "updatedAt": utc_now_iso(),
        }

        stored = await self.store.update(located.collection, employee_id, data)
        self.resolver.remember(stored.id, located.collection)
        return map_employee_record(stored.data, stored.id)

    async def delete_employee(self, employee_id: str) -> None:
        located = await self.locator.locate(employee_id)
        if located is None:
            raise NotFoundError(f"Employee {employee_id} not found")

        await self.store.delete(located.collection, employee_id)
        self.resolver.forget(employee_id)
        logger.info("Deleted employee %s from %s", employee_id, located.collection)
