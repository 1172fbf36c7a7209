from __future__ import annotations

from datetime import datetime, timezone

from activity_log.core.timestamps import to_iso_timestamp
from activity_log.models.employee import Employee
from activity_log.services.employee_mapper import (
    DEFAULT_EMPLOYEE_NAME,
    map_employee_record,
    sort_employees,
)

CURRENT_DOC = {
    "nomeCompleto": "  Ana Lima ",
    "matricula": "A-100",
    "funcao": "Fiscal",
    "fotoUrl": "https://cdn.example.com/ana.png",
    "createdAt": "2024-03-01T10:00:00.000Z",
    "updatedAt": "2024-03-02T10:00:00.000Z",
}


def test_map_current_document():
    result = map_employee_record(CURRENT_DOC, "emp-1")

    assert isinstance(result, Employee)
    assert result.id == "emp-1"
    assert result.full_name == "Ana Lima"
    assert result.registration_id == "A-100"
    assert result.role == "Fiscal"
    assert result.photo_url == "https://cdn.example.com/ana.png"
    assert result.created_at == "2024-03-01T10:00:00.000Z"
    assert result.updated_at == "2024-03-02T10:00:00.000Z"


def test_map_legacy_document_shape():
    legacy = {
        "displayName": "Bruno Costa",
        "numeroMatricula": 5531,
        "perfil": {"role": {"supervisor": True}},
        "avatar": "https://cdn.example.com/bruno.png",
    }

    result = map_employee_record(legacy, "emp-2")

    assert result.full_name == "Bruno Costa"
    assert result.registration_id == "5531"
    assert result.role == "supervisor"
    assert result.photo_url == "https://cdn.example.com/bruno.png"
    assert result.created_at is None


def test_map_empty_document_uses_placeholders():
    result = map_employee_record({}, "emp-3")

    assert result.full_name == DEFAULT_EMPLOYEE_NAME
    assert result.registration_id == ""
    assert result.role == ""
    assert result.photo_url is None
    assert result.created_at is None
    assert result.updated_at is None


def test_map_none_document():
    assert map_employee_record(None, "x").full_name == DEFAULT_EMPLOYEE_NAME


def test_direct_role_fields_win_over_nested_paths():
    doc = {"role": {"name": "Nested"}, "cargo": "Direct"}
    assert map_employee_record(doc, "e").role == "Direct"


def test_nested_role_paths():
    assert map_employee_record({"roles": ["fiscal", "admin"]}, "e").role == "fiscal"
    assert map_employee_record({"permissoes": {"funcao": "Supervisor"}}, "e").role == "Supervisor"
    assert map_employee_record({"access": {"role": ["", "viewer"]}}, "e").role == "viewer"


def test_empty_photo_becomes_none():
    assert map_employee_record({"fotoUrl": "   ", "photoURL": ""}, "e").photo_url is None


def test_mapping_is_idempotent():
    first = map_employee_record(CURRENT_DOC, "emp-1")
    second = map_employee_record(CURRENT_DOC, "emp-1")
    assert first == second


def test_native_timestamps():
    class NativeTimestamp:
        def to_datetime(self):
            return datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    doc = {
        "nome": "Carla",
        "createdAt": NativeTimestamp(),
        "updatedAt": {"_seconds": 1704164645, "_nanoseconds": 0},
    }
    result = map_employee_record(doc, "e")

    assert result.created_at == "2024-01-02T03:04:05.000Z"
    assert result.updated_at == "2024-01-02T03:04:05.000Z"


def test_malformed_timestamps_are_none():
    doc = {"createdAt": "yesterday", "updatedAt": 1704164645}
    result = map_employee_record(doc, "e")
    assert result.created_at is None
    assert result.updated_at is None


def test_to_iso_timestamp_naive_datetime_is_utc():
    assert to_iso_timestamp(datetime(2024, 5, 1, 12, 0)) == "2024-05-01T12:00:00.000Z"


def _employee(name: str, created_at: str | None) -> Employee:
    return Employee(id=name, full_name=name, created_at=created_at)


def test_sort_newest_first_and_undated_last():
    employees = [
        _employee("old", "2023-01-01T00:00:00.000Z"),
        _employee("undated", None),
        _employee("new", "2024-06-01T00:00:00.000Z"),
        _employee("broken", "not-a-date"),
        _employee("mid", "2023-06-01T00:00:00.000Z"),
    ]

    ordered = [e.id for e in sort_employees(employees)]

    assert ordered[:3] == ["new", "mid", "old"]
    assert set(ordered[3:]) == {"undated", "broken"}


def test_sort_undated_by_name_ignoring_accents_and_case():
    employees = [
        _employee("Zeca", None),
        _employee("álvaro", None),
        _employee("Bruna", None),
        _employee("Alice", None),
    ]

    ordered = [e.full_name for e in sort_employees(employees)]

    assert ordered == ["Alice", "álvaro", "Bruna", "Zeca"]
