"""Activity models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GeoLocation(BaseModel):
    latitude: float | None = None
    longitude: float | None = None


class Activity(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str = "Usuário"
    description: str = ""
    original_description: str = ""
    level: str = "Normal"
    status: str = "Pendente"
    main_location: str | None = None
    sub_locations: list[str] = []
    location: GeoLocation = GeoLocation()
    photo_url: str | None = None
    created_by: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ActivityInput(BaseModel):
    name: Any = Field(None, validation_alias=AliasChoices("name", "nome"))
    description: Any = Field(None, validation_alias=AliasChoices("description", "descricao"))
    original_description: Any = Field(
        None, validation_alias=AliasChoices("originalDescription", "descricaoOriginal")
    )
    level: Any = Field(None, validation_alias=AliasChoices("level", "nivel"))
    status: Any = None
    main_location: Any = Field(None, validation_alias=AliasChoices("mainLocation", "localPrincipal"))
    sub_locations: Any = Field(None, validation_alias=AliasChoices("subLocations", "subLocais"))
    latitude: Any = None
    longitude: Any = None
    photo_url: Any = Field(None, validation_alias=AliasChoices("photoUrl", "fotoUrl"))


class ActivityResponse(BaseModel):
    activity: Activity


class ActivityListResponse(BaseModel):
    activities: list[Activity]
