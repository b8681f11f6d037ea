"""
Attribute Normalizer
Turns the loosely-shaped attribute input sent by clients into canonical
records, one per attribute key.

Accepted shapes (one adapter each):
  * flat map          {"pool": {"active": true, "iconId": 3}}
  * category map      {"sport": {"pool": {"active": true}}}   (facilities only)
  * JSON string       either map above, serialized
  * canonical list    [{"type": "pool", "active": true, "icon_id": 3}]
Anything else is rejected with ValidationFailure.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from app.core.exceptions import ValidationFailure
from app.models.attribute import AttributeKind

logger = logging.getLogger(__name__)

# Keys that mark a mapping as a single record rather than a category group
_RECORD_KEYS = {"active", "iconId", "icon_id", "category", "distance"}


class AttributeRecord(BaseModel):
    type_key: str
    active: bool = False
    icon_id: Optional[Union[int, str]] = None
    category: Optional[str] = None
    distance: Optional[str] = None


# ── Coercion helpers ───────────────────────────────────────────────────────────

def _coerce_active(value: Any) -> bool:
    return value is True or value == "true"


def _coerce_icon_id(value: Any) -> Optional[Union[int, str]]:
    if value is None or value == "" or value is False:
        return None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _coerce_distance(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _kind_of(kind: Union[AttributeKind, str]) -> AttributeKind:
    if isinstance(kind, AttributeKind):
        return kind
    for candidate in AttributeKind:
        if kind in (candidate.value, candidate.payload_key, candidate.relation):
            return candidate
    raise ValueError(f"Unknown attribute kind: {kind}")


def _record(kind: AttributeKind, key: Any, fields: Any, category: Optional[str] = None) -> AttributeRecord:
    if not isinstance(fields, Mapping):
        raise ValidationFailure(
            f"{kind.payload_key}: value for '{key}' must be an object, got {type(fields).__name__}"
        )
    return AttributeRecord(
        type_key=str(key),
        active=_coerce_active(fields.get("active")),
        icon_id=_coerce_icon_id(fields.get("iconId", fields.get("icon_id"))),
        category=category if kind is AttributeKind.FACILITY else None,
        distance=_coerce_distance(fields.get("distance")) if kind is AttributeKind.NEARBY else None,
    )


def _is_category_map(raw: Mapping) -> bool:
    """A category map's values are groups of records, not records themselves."""
    if not raw:
        return False
    for group in raw.values():
        if not isinstance(group, Mapping) or not group:
            return False
        if _RECORD_KEYS & set(group.keys()):
            return False
        if not all(isinstance(v, Mapping) for v in group.values()):
            return False
    return True


# ── Adapters ───────────────────────────────────────────────────────────────────

def _from_json_string(kind: AttributeKind, raw: str) -> List[AttributeRecord]:
    if not raw.strip():
        return []
    try:
        decoded = json.loads(raw)
    except ValueError as e:
        raise ValidationFailure(f"{kind.payload_key}: malformed JSON ({e})")
    if isinstance(decoded, str):
        raise ValidationFailure(f"{kind.payload_key}: JSON must decode to an object or a list")
    return normalize(kind, decoded)


def _from_flat_map(kind: AttributeKind, raw: Mapping) -> List[AttributeRecord]:
    records = []
    for key, fields in raw.items():
        if kind is not AttributeKind.FACILITY and isinstance(fields, Mapping) and fields \
                and not (_RECORD_KEYS & set(fields.keys())) \
                and all(isinstance(v, Mapping) for v in fields.values()):
            raise ValidationFailure(
                f"{kind.payload_key}: nested category maps are only accepted for facilities"
            )
        records.append(_record(kind, key, fields))
    return records


def _from_category_map(kind: AttributeKind, raw: Mapping) -> List[AttributeRecord]:
    records: List[AttributeRecord] = []
    seen = set()
    for category, group in raw.items():
        for key, fields in group.items():
            if key in seen:
                logger.debug(f"[attributes] duplicate facility '{key}' in '{category}' ignored")
                continue
            seen.add(key)
            records.append(_record(kind, key, fields, category=str(category)))
    return records


def _from_canonical_list(kind: AttributeKind, raw: list) -> List[AttributeRecord]:
    records = []
    for item in raw:
        if isinstance(item, AttributeRecord):
            records.append(item.model_copy())
            continue
        if not isinstance(item, Mapping):
            raise ValidationFailure(
                f"{kind.payload_key}: list items must be records, got {type(item).__name__}"
            )
        key = item.get("type_key", item.get("type"))
        if key is None or key == "":
            raise ValidationFailure(f"{kind.payload_key}: record is missing its type")
        records.append(_record(kind, key, item, category=item.get("category", item.get("facility_category"))))
    return records


# ── Public API ─────────────────────────────────────────────────────────────────

def normalize(kind: Union[AttributeKind, str], raw: Any) -> List[AttributeRecord]:
    """Canonical records for one attribute kind. Re-normalizing the result is a no-op."""
    kind = _kind_of(kind)
    if raw is None:
        return []
    if isinstance(raw, str):
        records = _from_json_string(kind, raw)
    elif isinstance(raw, Mapping):
        if kind is AttributeKind.FACILITY and _is_category_map(raw):
            records = _from_category_map(kind, raw)
        else:
            records = _from_flat_map(kind, raw)
    elif isinstance(raw, list):
        records = _from_canonical_list(kind, raw)
    else:
        raise ValidationFailure(
            f"{kind.payload_key}: unsupported attribute shape {type(raw).__name__}"
        )
    return _dedupe(records)


def _dedupe(records: List[AttributeRecord]) -> List[AttributeRecord]:
    unique: Dict[str, AttributeRecord] = {}
    for record in records:
        unique.setdefault(record.type_key, record)
    return list(unique.values())


def normalize_all(payload: Mapping[str, Any]) -> Dict[AttributeKind, List[AttributeRecord]]:
    """Normalize every attribute kind present in `payload` (keyed by payload key)."""
    normalized = {}
    for kind in AttributeKind:
        if kind.payload_key in payload and payload[kind.payload_key] is not None:
            normalized[kind] = normalize(kind, payload[kind.payload_key])
    return normalized


def to_row_values(kind: AttributeKind, record: AttributeRecord) -> Dict[str, Any]:
    """Constructor kwargs for the attribute model of `kind`."""
    values = {
        "type_key": record.type_key,
        "active": record.active,
        "icon_id": record.icon_id if isinstance(record.icon_id, int) else None,
    }
    if kind is AttributeKind.FACILITY:
        values["facility_category"] = record.category
    if kind is AttributeKind.NEARBY:
        values["distance"] = record.distance
    return values
