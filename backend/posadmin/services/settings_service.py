from __future__ import annotations

import json
from typing import Any

from ..extensions import db
from ..models import SystemSetting


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


class SettingsNotFoundError(SettingsError):
    pass


# key -> definition. Values are stored JSON-encoded in system_settings.value.
SETTING_DEFINITIONS: dict[str, dict] = {
    "store_name": {
        "type": "string",
        "default": "POS Admin",
        "description": "Name printed on receipts and shown in the header",
        "validation": {"min_length": 1, "max_length": 120},
    },
    "currency": {
        "type": "enum",
        "default": "USD",
        "description": "Display currency for amounts",
        "validation": {"enum": ["USD", "EUR", "GBP", "CAD", "AUD"]},
    },
    "receipt_footer": {
        "type": "string",
        "default": "Thank you for your purchase!",
        "description": "Closing line of the printed receipt",
        "validation": {"max_length": 255},
    },
    "allow_oversell": {
        "type": "bool",
        "default": True,
        "description": "Complete sales even when recorded stock is short",
        "validation": {},
    },
}


def _definition(key: str) -> dict:
    definition = SETTING_DEFINITIONS.get(key)
    if definition is None:
        raise SettingsNotFoundError(f"Unknown setting: {key}")
    return definition


def _coerce_value(key: str, raw_value: Any) -> Any:
    definition = _definition(key)
    t = definition["type"]
    v = raw_value
    if t == "bool":
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            s = v.strip().lower()
            if s in {"true", "1", "yes", "on"}:
                return True
            if s in {"false", "0", "no", "off"}:
                return False
        raise SettingsValidationError(f"{key}: expected boolean")
    if t in {"string", "enum"}:
        if v is None:
            raise SettingsValidationError(f"{key}: value required")
        return str(v).strip()
    return v


def _validate_constraints(key: str, value: Any) -> None:
    validation = SETTING_DEFINITIONS[key].get("validation") or {}
    if "enum" in validation and value not in validation["enum"]:
        raise SettingsValidationError(f"{key}: expected one of {validation['enum']}")
    if isinstance(value, str):
        if "min_length" in validation and len(value) < validation["min_length"]:
            raise SettingsValidationError(f"{key}: cannot be blank")
        if "max_length" in validation and len(value) > validation["max_length"]:
            raise SettingsValidationError(f"{key}: exceeds max length {validation['max_length']}")


def _normalize_value(key: str, value: Any) -> Any:
    coerced = _coerce_value(key, value)
    _validate_constraints(key, coerced)
    return coerced


def get_setting(key: str) -> Any:
    """Stored value for key, or its default."""
    definition = _definition(key)
    row = db.session.query(SystemSetting).filter_by(key=key).first()
    if row is None or row.value is None:
        return definition["default"]
    return json.loads(row.value)


def list_settings() -> list[dict]:
    rows = {r.key: r for r in db.session.query(SystemSetting).all()}
    result = []
    for key, definition in SETTING_DEFINITIONS.items():
        row = rows.get(key)
        result.append({
            "key": key,
            "type": definition["type"],
            "description": definition["description"],
            "default": definition["default"],
            "value": json.loads(row.value) if row is not None and row.value is not None else definition["default"],
            "is_default": row is None,
        })
    return result


def update_settings(patch: dict, user_id: int | None = None) -> list[dict]:
    """
    Set several settings at once.

    All values are validated before anything is written.
    """
    if not isinstance(patch, dict) or not patch:
        raise SettingsValidationError("No settings provided")

    normalized = {key: _normalize_value(key, value) for key, value in patch.items()}

    for key, value in normalized.items():
        row = db.session.query(SystemSetting).filter_by(key=key).first()
        if row is None:
            row = SystemSetting(key=key)
            db.session.add(row)
        row.value = json.dumps(value)
        row.updated_by_user_id = user_id

    db.session.commit()
    return list_settings()
