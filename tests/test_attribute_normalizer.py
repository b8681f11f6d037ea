import json

import pytest

from app.core.exceptions import ValidationFailure
from app.models.attribute import AttributeKind
from app.services.attribute_normalizer import (
    AttributeRecord,
    normalize,
    normalize_all,
    to_row_values,
)


def test_flat_map_coerces_active_and_icon_id():
    records = normalize(AttributeKind.AMENITY, {
        "pool": {"active": True, "iconId": 1},
        "gym": {"active": "false", "iconId": "2"},
        "parking": {"active": "true"},
    })

    by_key = {r.type_key: r for r in records}
    assert len(records) == 3
    assert by_key["pool"].active is True
    assert by_key["pool"].icon_id == 1
    assert by_key["gym"].active is False
    assert by_key["gym"].icon_id == 2
    assert by_key["parking"].active is True
    assert by_key["parking"].icon_id is None


def test_json_string_matches_decoded_map():
    raw = {"sea": {"active": True, "iconId": 4}, "city": {"active": False}}

    assert normalize("views", json.dumps(raw)) == normalize(AttributeKind.VIEW, raw)


def test_blank_string_is_empty():
    assert normalize(AttributeKind.LABEL, "   ") == []
    assert normalize(AttributeKind.LABEL, None) == []


def test_malformed_json_is_rejected():
    with pytest.raises(ValidationFailure):
        normalize(AttributeKind.AMENITY, '{"pool": {"active": true')


@pytest.mark.parametrize("raw", [42, 3.5, True, ["pool", "gym"], '"pool"'])
def test_unsupported_shapes_are_rejected(raw):
    with pytest.raises(ValidationFailure):
        normalize(AttributeKind.AMENITY, raw)


def test_facility_category_map_keeps_first_duplicate():
    records = normalize(AttributeKind.FACILITY, {
        "sport": {"pool": {"active": True, "iconId": 1}, "gym": {"active": True}},
        "leisure": {"pool": {"active": False}, "sauna": {"active": True}},
    })

    by_key = {r.type_key: r for r in records}
    assert [r.type_key for r in records] == ["pool", "gym", "sauna"]
    assert by_key["pool"].category == "sport"
    assert by_key["pool"].active is True
    assert by_key["sauna"].category == "leisure"


def test_flat_facility_map_has_no_category():
    records = normalize(AttributeKind.FACILITY, {"pool": {"active": True}})

    assert len(records) == 1
    assert records[0].category is None


def test_category_map_only_for_facilities():
    with pytest.raises(ValidationFailure):
        normalize(AttributeKind.AMENITY, {"sport": {"pool": {"active": True}}})


def test_nearby_keeps_distance_as_text():
    records = normalize(AttributeKind.NEARBY, {"bts": {"active": True, "distance": 350}})

    assert records[0].distance == "350"


def test_canonical_list_accepts_type_or_type_key():
    records = normalize(AttributeKind.HIGHLIGHT, [
        {"type": "corner_unit", "active": True},
        {"type_key": "high_floor", "active": False, "icon_id": 9},
        {"type": "corner_unit", "active": False},
    ])

    assert [r.type_key for r in records] == ["corner_unit", "high_floor"]
    assert records[0].active is True
    assert records[1].icon_id == 9


def test_canonical_list_reads_stored_facility_category():
    records = normalize(AttributeKind.FACILITY, [
        {"id": 4, "facility_type": "tennis", "type": "tennis", "active": True, "facility_category": "sport"},
        {"type": "playground", "active": True, "category": "kids", "facility_category": "ignored"},
        {"type": "lobby", "active": False},
    ])

    assert [(r.type_key, r.category) for r in records] == [
        ("tennis", "sport"), ("playground", "kids"), ("lobby", None),
    ]


def test_canonical_list_item_without_type_is_rejected():
    with pytest.raises(ValidationFailure):
        normalize(AttributeKind.HIGHLIGHT, [{"active": True}])


@pytest.mark.parametrize("kind, raw", [
    (AttributeKind.AMENITY, {"pool": {"active": True, "iconId": "1"}, "gym": {"active": False}}),
    (AttributeKind.FACILITY, {"sport": {"pool": {"active": True}}, "kids": {"playground": {"active": "true"}}}),
    (AttributeKind.NEARBY, {"school": {"active": True, "distance": "1.2 km"}}),
    (AttributeKind.VIEW, '{"garden": {"active": true}}'),
])
def test_normalizing_twice_changes_nothing(kind, raw):
    records = normalize(kind, raw)

    assert normalize(kind, records) == records
    assert normalize(kind, [r.model_dump() for r in records]) == records


def test_normalize_all_only_returns_supplied_kinds():
    result = normalize_all({
        "amenities": {"pool": {"active": True}},
        "nearby": None,
        "labels": {},
    })

    assert set(result) == {AttributeKind.AMENITY, AttributeKind.LABEL}
    assert result[AttributeKind.LABEL] == []


def test_row_values_drop_non_numeric_icon_ids():
    facility = AttributeRecord(type_key="pool", active=True, icon_id="abc", category="sport")
    nearby = AttributeRecord(type_key="bts", active=True, icon_id=3, distance="200 m")

    assert to_row_values(AttributeKind.FACILITY, facility) == {
        "type_key": "pool", "active": True, "icon_id": None, "facility_category": "sport",
    }
    assert to_row_values(AttributeKind.NEARBY, nearby)["distance"] == "200 m"
    assert "facility_category" not in to_row_values(AttributeKind.AMENITY, nearby)
