"""Employee models: the canonical record and the create/update payload."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Employee(BaseModel):
    """Canonical employee record, whatever collection or shape it came from."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    full_name: str
    registration_id: str = ""
    role: str = ""
    photo_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class EmployeeInput(BaseModel):
    """Request body for create and update; accepts legacy Portuguese keys."""

    full_name: Any = Field(None, validation_alias=AliasChoices("fullName", "nomeCompleto", "full_name"))
    registration_id: Any = Field(None, validation_alias=AliasChoices("registrationId", "matricula", "registration_id"))
    role: Any = Field(None, validation_alias=AliasChoices("role", "funcao"))
    photo_url: Any = Field(None, validation_alias=AliasChoices("photoUrl", "fotoUrl", "photo_url"))


class EmployeeResponse(BaseModel):
    employee: Employee


class EmployeeListResponse(BaseModel):
    employees: list[Employee]
