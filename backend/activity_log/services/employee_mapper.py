"""Maps raw employee documents of any historical shape onto ``Employee``."""

from __future__ import annotations

import unicodedata
from collections.abc import Mapping
from typing import Any

from activity_log.core.extraction import extract_string, first_extracted, normalize_to_string
from activity_log.core.timestamps import parse_iso_timestamp, to_iso_timestamp
from activity_log.models.employee import Employee

DEFAULT_EMPLOYEE_NAME = "Funcionário"

NAME_FIELDS: tuple[str, ...] = ("nomeCompleto", "nome", "name", "displayName", "fullName")

REGISTRATION_FIELDS: tuple[str, ...] = ("matricula", "matriculaId", "registration", "numeroMatricula")

# Direct fields win over nested paths.
ROLE_RULES: tuple[str, ...] = (
    "funcao",
    "cargo",
    "role",
    "function",
    "position",
    "papel",
    "perfil",
    "tipo",
    "nivel",
    "nivelAcesso",
    "role.name",
    "cargo.nome",
    "profile.role",
    "perfil.role",
    "roles.primary",
    "roles.0",
    "permissions.role",
    "permissoes.role",
    "permissoes.funcao",
    "access.role",
)

PHOTO_FIELDS: tuple[str, ...] = ("fotoUrl", "photoURL", "avatarUrl", "avatar")


def resolve_role(raw: Mapping[str, Any]) -> str:
    return first_extracted(raw, ROLE_RULES, extract_string)


def map_employee_record(raw: Mapping[str, Any] | None, doc_id: str) -> Employee:
    data = raw or {}
    full_name = first_extracted(data, NAME_FIELDS, normalize_to_string)
    photo_url = first_extracted(data, PHOTO_FIELDS, normalize_to_string)

    return Employee(
        id=doc_id,
        full_name=full_name or DEFAULT_EMPLOYEE_NAME,
        registration_id=first_extracted(data, REGISTRATION_FIELDS, normalize_to_string),
        role=resolve_role(data),
        photo_url=photo_url or None,
        created_at=to_iso_timestamp(data.get("createdAt")),
        updated_at=to_iso_timestamp(data.get("updatedAt")),
    )


def collation_key(text: str) -> tuple[str, str, str]:
    """Locale-style ordering: accents and case only break ties, lowercase first."""
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), text.casefold(), text.swapcase()


def _sort_key(employee: Employee) -> tuple[int, float, tuple[str, ...]]:
    created = parse_iso_timestamp(employee.created_at)
    if created is None:
        return 1, 0.0, collation_key(employee.full_name)
    return 0, -created, ()


def sort_employees(employees: list[Employee]) -> list[Employee]:
    """Newest first; undated records last, ordered by name."""
    return sorted(employees, key=_sort_key)
