from __future__ import annotations

from typing import Any, Dict, List, Tuple

try:
    from jsonschema import Draft7Validator
except ImportError as e:
    # Жёсткое требование jsonschema в зависимостях проекта
    raise RuntimeError(
        "Требуется пакет 'jsonschema' (pip install jsonschema)"
    ) from e

_ID = {"type": ["string", "number"]}

CHECK_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "audit", "remediation", "level"],
    "properties": {
        "id": _ID,
        "text": {"type": ["string", "null"]},
        "audit": {"type": ["string", "null"]},
        "type": {"type": ["string", "null"]},
        "remediation": {"type": ["string", "null"]},
        "scored": {"type": "boolean"},
        "level": {"type": ["string", "integer"]},
        "timeout": {"type": "integer", "minimum": 1, "maximum": 600},
        "tests": {
            "type": ["object", "null"],
            "properties": {
                "bin_op": {"type": ["string", "null"]},
                "test_items": {
                    "type": ["array", "null"],
                    "items": {
                        "type": "object",
                        "required": ["flag"],
                        "properties": {
                            "flag": {"type": ["string", "number"]},
                            "set": {"type": "boolean"},
                            "compare": {
                                "type": ["object", "null"],
                                "properties": {"op": {"type": "string"}},
                            },
                        },
                    },
                },
            },
        },
    },
}

CATALOG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "type", "groups"],
    "properties": {
        "id": _ID,
        "version": {"type": ["string", "number", "null"]},
        "text": {"type": ["string", "null"]},
        "type": {"type": "string", "minLength": 1},
        "groups": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "checks"],
                "properties": {
                    "id": _ID,
                    "text": {"type": ["string", "null"]},
                    "checks": {"type": "array", "items": CHECK_SCHEMA},
                },
            },
        },
    },
}


def normalize_catalog(catalog: Dict[str, Any]) -> Dict[str, Any]:
    """Переносит список групп из ``tests`` в ``groups``. Модифицирует объект на месте."""
    if "groups" not in catalog and isinstance(catalog.get("tests"), list):
        catalog["groups"] = catalog.pop("tests")
    return catalog


def _check_unique_ids(groups: List[Any]) -> List[str]:
    """Проверяет уникальность ID всех проверок в каталоге."""
    seen = set()
    duplicates = set()
    for group in groups:
        if not isinstance(group, dict):
            continue
        for check in group.get("checks") or []:
            if not isinstance(check, dict) or "id" not in check:
                continue
            cid = str(check["id"])
            if cid in seen:
                duplicates.add(cid)
            else:
                seen.add(cid)
    return [f"duplicate check id '{cid}'" for cid in sorted(duplicates)]


def validate_catalog(catalog: Any) -> Tuple[bool, List[str]]:
    """
    Валидирует каталог проверок по JSON-схеме.
    Возвращает (is_valid, errors[]).
    """
    if not isinstance(catalog, dict):
        return False, ["<root>: catalog must be a mapping"]
    catalog = normalize_catalog(catalog)
    validator = Draft7Validator(CATALOG_SCHEMA)
    errors: List[str] = []
    for err in sorted(validator.iter_errors(catalog), key=lambda e: [str(p) for p in e.path]):
        loc = " -> ".join([str(p) for p in err.path]) or "<root>"
        errors.append(f"{loc}: {err.message}")
    groups = catalog.get("groups")
    if isinstance(groups, list):
        errors.extend(_check_unique_ids(groups))
    return (len(errors) == 0, errors)
