from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import StoreSetting
from ..engine.types import SettingsMap

SETTING_LABELS = {
    "bonus_threshold_weekday": "大入り基準 (平日)",
    "bonus_threshold_weekend": "大入り基準 (週末・祝日)",
    "bonus_increment": "大入り段階幅",
    "bonus_base_per_point": "大入り基本単価 (1P)",
    "bonus_max_per_point": "大入り上限単価 (1P)",
    "welfare_fee": "厚生費",
    "tax_rate": "源泉後支給率 (x100)",
    "late_pickup_bonus": "送り遅れ時給加算",
    "referral_bonus": "紹介ボーナス",
}


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


def load_settings() -> SettingsMap:
    """
    Current settings as a SettingsMap.

    Unknown keys are ignored and missing keys take their defaults. A row
    holding a value the engine cannot use is logged and skipped rather than
    failing the caller.
    """
    values = {}
    for row in db.session.query(StoreSetting).all():
        if row.key not in SETTING_LABELS:
            continue
        try:
            values[row.key] = _validate(row.key, row.value)
        except SettingsValidationError as e:
            current_app.logger.warning("Ignoring store_settings row %s: %s", row.key, e)
    return SettingsMap.from_mapping(values)


def list_settings() -> list[dict]:
    """Every known key with its effective value and whether it is stored."""
    rows = {r.key: r for r in db.session.query(StoreSetting).all()}
    defaults = SettingsMap().to_dict()
    out = []
    for key in SettingsMap.keys():
        row = rows.get(key)
        out.append({
            "key": key,
            "label": SETTING_LABELS[key],
            "value": row.value if row else defaults[key],
            "default": defaults[key],
            "is_default": row is None,
            "updated_at": row.to_dict()["updated_at"] if row else None,
        })
    return out


def _validate(key: str, value) -> int:
    if key not in SETTING_LABELS:
        raise SettingsValidationError(f"Unknown setting: {key}")
    if isinstance(value, bool):
        raise SettingsValidationError(f"{key} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise SettingsValidationError(f"{key} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise SettingsValidationError(f"{key} must be an integer")
    if parsed < 0:
        raise SettingsValidationError(f"{key} must be zero or greater")
    if key == "tax_rate" and parsed > 100:
        raise SettingsValidationError("tax_rate must be between 0 and 100")
    if key == "bonus_increment" and parsed == 0:
        raise SettingsValidationError("bonus_increment must be positive")
    return parsed


def update_setting(*, key: str, value, staff_id: int | None = None) -> StoreSetting:
    parsed = _validate(key, value)

    row = db.session.query(StoreSetting).filter_by(key=key).first()
    if row is None:
        row = StoreSetting(key=key, label=SETTING_LABELS[key], value=parsed)
        db.session.add(row)
    else:
        row.value = parsed
    row.updated_by_staff_id = staff_id

    db.session.commit()
    return row


def ensure_defaults_seeded() -> int:
    """Insert a row for each key that has none. Safe to call repeatedly."""
    existing = {k for (k,) in db.session.query(StoreSetting.key).all()}
    defaults = SettingsMap().to_dict()
    added = 0
    for key in SettingsMap.keys():
        if key in existing:
            continue
        db.session.add(StoreSetting(key=key, label=SETTING_LABELS[key], value=defaults[key]))
        added += 1
    if added:
        db.session.commit()
    return added
