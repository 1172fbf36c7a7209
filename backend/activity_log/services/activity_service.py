"""Field activity records (inspections logged with a photo and coordinates)."""

from __future__ import annotations

import logging
from typing import Any

from activity_log.core.document_store import DocumentStore, StoredDocument
from activity_log.core.exceptions import MissingIndexError, NotFoundError, ValidationError
from activity_log.core.timestamps import parse_iso_timestamp, to_iso_timestamp, utc_now_iso
from activity_log.models.activity import Activity, ActivityInput, GeoLocation

logger = logging.getLogger(__name__)

ACTIVITIES_COLLECTION = "activities"
DEFAULT_ACTIVITY_NAME = "Usuário"

VALID_LEVELS: tuple[str, ...] = ("Baixo", "Normal", "Alto", "Máximo")
VALID_STATUSES: tuple[str, ...] = ("Pendente", "Concluído", "Não Concluído")


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _number(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _sub_locations(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def map_activity(doc_id: str, data: dict[str, Any]) -> Activity:
    location = data.get("location") if isinstance(data.get("location"), dict) else {}
    description = _text(data.get("descricao"))

    return Activity(
        id=doc_id,
        name=_text(data.get("nome")) or _text(data.get("name")) or DEFAULT_ACTIVITY_NAME,
        description=description,
        original_description=_text(data.get("descricaoOriginal")) or description,
        level=_text(data.get("nivel")) or "Normal",
        status=_text(data.get("status")) or "Pendente",
        main_location=_text(data.get("localPrincipal")) or None,
        sub_locations=_sub_locations(data.get("subLocais")) or [],
        location=GeoLocation(
            latitude=_number(location.get("latitude")),
            longitude=_number(location.get("longitude")),
        ),
        photo_url=_text(data.get("fotoUrl")) or None,
        created_by=_text(data.get("createdBy")) or None,
        created_at=to_iso_timestamp(data.get("createdAt")),
        updated_at=to_iso_timestamp(data.get("updatedAt")),
    )


def _check_choice(value: Any, choices: tuple[str, ...], field: str) -> str:
    if not isinstance(value, str) or value not in choices:
        raise ValidationError(field, f"The '{field}' field is required and must be one of: {', '.join(choices)}.")
    return value


def _check_coordinates(latitude: float | None, longitude: float | None) -> None:
    if latitude is None or longitude is None:
        raise ValidationError("location", "The 'latitude' and 'longitude' fields are required and must be numbers.")


class ActivityService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def list_activities(self) -> list[Activity]:
        try:
            documents = await self.store.query(ACTIVITIES_COLLECTION, order_by="createdAt", descending=True)
        except MissingIndexError:
            logger.info("No createdAt index on %s, sorting in memory", ACTIVITIES_COLLECTION)
            documents = await self.store.query(ACTIVITIES_COLLECTION)
            activities = [map_activity(doc.id, doc.data) for doc in documents]
            return sorted(activities, key=lambda a: parse_iso_timestamp(a.created_at) or 0.0, reverse=True)

        return [map_activity(doc.id, doc.data) for doc in documents]

    async def create_activity(self, payload: ActivityInput, user_email: str | None = None) -> Activity:
        photo_url = _text(payload.photo_url)
        if not photo_url:
            raise ValidationError("photoUrl", "The 'photoUrl' field is required.")

        description = _text(payload.description)
        original_description = _text(payload.original_description) or description
        if not original_description:
            raise ValidationError("description", "The 'description' field is required.")

        level = _check_choice(payload.level, VALID_LEVELS, "level")
        status = _check_choice(payload.status, VALID_STATUSES, "status")

        latitude = _number(payload.latitude)
        longitude = _number(payload.longitude)
        _check_coordinates(latitude, longitude)

        author = _text(user_email)
        timestamp = utc_now_iso()
        data = {
            "nome": _text(payload.name) or author or DEFAULT_ACTIVITY_NAME,
            "descricao": description or original_description,
            "descricaoOriginal": original_description,
            "nivel": level,
            "status": status,
            "localPrincipal": _text(payload.main_location) or None,
            "subLocais": _sub_locations(payload.sub_locations) or [],
            "location": {"latitude": latitude, "longitude": longitude},
            "fotoUrl": photo_url,
            "createdBy": author or None,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }

        stored = await self.store.add(ACTIVITIES_COLLECTION, data)
        logger.info("Created activity %s", stored.id)
        return map_activity(stored.id, stored.data)

    async def _get_existing(self, activity_id: str) -> dict[str, Any]:
        current = await self.store.get(ACTIVITIES_COLLECTION, activity_id)
        if current is None:
            raise NotFoundError(f"Activity {activity_id} not found")
        return current

    async def update_activity(
        self,
        activity_id: str,
        payload: ActivityInput,
        user_email: str | None = None,
    ) -> Activity:
        current = await self._get_existing(activity_id)
        current_location = current.get("location") if isinstance(current.get("location"), dict) else {}

        description = _text(payload.description)
        original_description = (
            _text(payload.original_description)
            or description
            or _text(current.get("descricaoOriginal"))
            or _text(current.get("descricao"))
        )
        if not original_description:
            raise ValidationError("description", "The 'description' field is required.")

        level = payload.level if payload.level in VALID_LEVELS else current.get("nivel")
        level = _check_choice(level, VALID_LEVELS, "level")
        status = payload.status if payload.status in VALID_STATUSES else current.get("status")
        status = _check_choice(status, VALID_STATUSES, "status")

        sub_locations = _sub_locations(payload.sub_locations)
        if sub_locations is None:
            sub_locations = _sub_locations(current.get("subLocais")) or []

        latitude = _number(payload.latitude)
        if latitude is None:
            latitude = _number(current_location.get("latitude"))
        longitude = _number(payload.longitude)
        if longitude is None:
            longitude = _number(current_location.get("longitude"))

        if "photo_url" in payload.model_fields_set and (payload.photo_url is None or isinstance(payload.photo_url, str)):
            photo_url = _text(payload.photo_url) or None
        else:
            photo_url = _text(current.get("fotoUrl")) or None

        _check_coordinates(latitude, longitude)
        if not photo_url:
            raise ValidationError("photoUrl", "The 'photoUrl' field is required.")

        data = {
            "nome": (
                _text(payload.name)
                or _text(current.get("nome"))
                or _text(current.get("name"))
                or _text(user_email)
                or DEFAULT_ACTIVITY_NAME
            ),
            "descricao": description or original_description,
            "descricaoOriginal": original_description,
            "nivel": level,
            "status": status,
            "localPrincipal": _text(payload.main_location) or _text(current.get("localPrincipal")) or None,
            "subLocais": sub_locations,
            "location": {"latitude": latitude, "longitude": longitude},
            "fotoUrl": photo_url,
            "updatedAt": utc_now_iso(),
        }

        stored: StoredDocument = await self.store.update(ACTIVITIES_COLLECTION, activity_id, data)
        return map_activity(stored.id, stored.data)

    async def delete_activity(self, activity_id: str) -> None:
        await self._get_existing(activity_id)
        await self.store.delete(ACTIVITIES_COLLECTION, activity_id)
        logger.info("Deleted activity %s", activity_id)
