"""
Write payload for the property aggregate.

Accepts the camelCase JSON sent by the admin UI as well as flat multipart form
fields (JSON-encoded nested values, bracketed metadata keys).
"""
from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, ValidationError,
    field_validator, model_validator,
)
from pydantic.alias_generators import to_camel

from app.core.exceptions import ValidationFailure
from app.models.attribute import AttributeKind
from app.models.media import MediaKind
from app.schemas.coercion import as_id_list, blank_to_none, parse_json_string
from app.schemas.listing import ListingIn
from app.schemas.media import MediaChangeSet, MediaItemIn, MediaMetadataIn
from app.services.media_lifecycle import parse_bracketed_keys

# Column values copied straight onto the Property row
SCALAR_FIELDS = (
    "title", "project_name", "property_code", "reference_id", "property_type_id", "zone_id",
    "address", "search_address", "district", "subdistrict", "province", "city", "country",
    "zip_code", "latitude", "longitude",
    "area", "usable_area", "land_size_rai", "land_size_ngan", "land_size_sq_wah", "land_size_sqm",
    "land_width", "land_length", "land_shape", "land_grade", "land_access",
    "ownership_type", "ownership_quota",
    "bedrooms", "bathrooms", "floors", "floor", "furnishing", "construction_year",
    "community_fee", "building_unit",
    "description", "payment_plan", "video_url",
    "co_agent_accept", "commission_type", "commission_percent", "commission_amount", "private_note",
    "status", "is_published", "is_featured",
)

# Stored serialized in Text columns
JSON_FIELDS = (
    "translated_titles",
    "translated_descriptions",
    "translated_payment_plans",
    "social_media",
    "contact_info",
)

_COERCED_FIELDS = (
    "property_code", "reference_id", "property_type_id", "zone_id", "latitude", "longitude",
    "area", "usable_area", "land_size_rai", "land_size_ngan", "land_size_sq_wah", "land_size_sqm",
    "land_width", "land_length",
    "bedrooms", "bathrooms", "floors", "floor", "construction_year", "community_fee",
    "commission_percent", "commission_amount",
    "co_agent_accept", "is_published", "is_featured", "user_id",
    "replace_images", "replace_floor_plans", "replace_unit_plans",
)

_BRACKETED_PREFIXES = (
    "imageMetadata",
    "existingImageMetadata",
    "floorPlanMetadata",
    "existingFloorPlanMetadata",
    "unitPlanMetadata",
    "existingUnitPlanMetadata",
)

# plural / singular stems of the per-kind media fields
_MEDIA_STEMS = {
    MediaKind.IMAGE: ("images", "image"),
    MediaKind.FLOOR_PLAN: ("floor_plans", "floor_plan"),
    MediaKind.UNIT_PLAN: ("unit_plans", "unit_plan"),
}


class PropertyWrite(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    # ── Identity & classification ─────────────────────────────────────────────
    title: Optional[str] = Field(None, validation_alias=AliasChoices("title", "propertyTitle"))
    project_name: Optional[str] = None
    property_code: Optional[str] = Field(
        None, validation_alias=AliasChoices("propertyCode", "propertyId", "property_code")
    )
    reference_id: Optional[str] = None
    property_type_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("propertyTypeId", "propertyType", "property_type_id")
    )
    zone_id: Optional[int] = None
    user_id: Optional[int] = None

    # ── Location ──────────────────────────────────────────────────────────────
    address: Optional[str] = None
    search_address: Optional[str] = None
    district: Optional[str] = None
    subdistrict: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = Field(
        None, validation_alias=AliasChoices("zipCode", "postalCode", "zip_code")
    )
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # ── Area & land ───────────────────────────────────────────────────────────
    area: Optional[float] = None
    usable_area: Optional[float] = None
    land_size_rai: Optional[float] = None
    land_size_ngan: Optional[float] = None
    land_size_sq_wah: Optional[float] = None
    land_size_sqm: Optional[float] = None
    land_width: Optional[float] = None
    land_length: Optional[float] = None
    land_shape: Optional[str] = None
    land_grade: Optional[str] = None
    land_access: Optional[str] = None
    ownership_type: Optional[str] = None
    ownership_quota: Optional[str] = None

    # ── Building ──────────────────────────────────────────────────────────────
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floors: Optional[int] = None
    floor: Optional[int] = None
    furnishing: Optional[str] = None
    construction_year: Optional[int] = None
    community_fee: Optional[float] = Field(
        None, validation_alias=AliasChoices("communityFee", "communityFees", "community_fee")
    )
    building_unit: Optional[str] = None

    # ── Content ───────────────────────────────────────────────────────────────
    description: Optional[str] = None
    payment_plan: Optional[str] = None
    video_url: Optional[str] = None
    translated_titles: Optional[Dict[str, Any]] = None
    translated_descriptions: Optional[Dict[str, Any]] = None
    translated_payment_plans: Optional[Dict[str, Any]] = None
    social_media: Optional[Any] = None
    contact_info: Optional[Any] = None

    # ── Co-agent & status ─────────────────────────────────────────────────────
    co_agent_accept: Optional[bool] = None
    commission_type: Optional[str] = None
    commission_percent: Optional[float] = None
    commission_amount: Optional[float] = None
    private_note: Optional[str] = None
    status: Optional[str] = None
    is_published: Optional[bool] = None
    is_featured: Optional[bool] = None

    # ── Children ──────────────────────────────────────────────────────────────
    listings: Optional[List[ListingIn]] = None

    # Raw attribute input; shapes are resolved by the attribute normalizer
    amenities: Any = None
    facilities: Any = None
    views: Any = None
    highlights: Any = None
    labels: Any = None
    nearby: Any = None

    # ── Media ─────────────────────────────────────────────────────────────────
    images: Optional[List[MediaItemIn]] = None
    floor_plans: Optional[List[MediaItemIn]] = None
    unit_plans: Optional[List[MediaItemIn]] = None

    new_images: Optional[List[MediaItemIn]] = []
    new_floor_plans: Optional[List[MediaItemIn]] = []
    new_unit_plans: Optional[List[MediaItemIn]] = []

    replace_images: Optional[bool] = False
    replace_floor_plans: Optional[bool] = False
    replace_unit_plans: Optional[bool] = False

    existing_images: Optional[List[int]] = Field(
        None, validation_alias=AliasChoices("existingImages", "existingImageIds", "existing_images")
    )
    existing_floor_plans: Optional[List[int]] = Field(
        None,
        validation_alias=AliasChoices("existingFloorPlans", "existingFloorPlanIds", "existing_floor_plans"),
    )
    existing_unit_plans: Optional[List[int]] = Field(
        None,
        validation_alias=AliasChoices("existingUnitPlans", "existingUnitPlanIds", "existing_unit_plans"),
    )

    delete_images: Optional[List[int]] = []
    delete_floor_plans: Optional[List[int]] = []
    delete_unit_plans: Optional[List[int]] = []

    image_metadata: Optional[Dict[str, MediaMetadataIn]] = {}
    floor_plan_metadata: Optional[Dict[str, MediaMetadataIn]] = {}
    unit_plan_metadata: Optional[Dict[str, MediaMetadataIn]] = {}

    existing_image_metadata: Optional[Dict[int, MediaMetadataIn]] = {}
    existing_floor_plan_metadata: Optional[Dict[int, MediaMetadataIn]] = {}
    existing_unit_plan_metadata: Optional[Dict[int, MediaMetadataIn]] = {}

    # ── Validators ────────────────────────────────────────────────────────────

    @model_validator(mode="before")
    @classmethod
    def fold_bracketed_form_keys(cls, data: Any) -> Any:
        """`imageMetadata[tmp1][title]=x` becomes `imageMetadata={"tmp1": {"title": "x"}}`."""
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        for prefix in _BRACKETED_PREFIXES:
            nested = parse_bracketed_keys(data, prefix)
            if not nested:
                continue
            for key in [k for k in data if isinstance(k, str) and k.startswith(prefix + "[")]:
                data.pop(key)
            current = parse_json_string(data.get(prefix)) or {}
            if not isinstance(current, Mapping):
                raise ValueError(f"{prefix} must be an object")
            merged = {str(k): dict(v) for k, v in current.items()}
            for asset_id, fields in nested.items():
                merged.setdefault(asset_id, {}).update(fields)
            data[prefix] = merged
        return data

    @field_validator(*_COERCED_FIELDS, mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    @field_validator(
        "replace_images", "replace_floor_plans", "replace_unit_plans", mode="after"
    )
    @classmethod
    def missing_flag_is_false(cls, v):
        return bool(v)

    @field_validator(
        "listings", "translated_titles", "translated_descriptions", "translated_payment_plans",
        "social_media", "contact_info",
        "images", "floor_plans", "unit_plans", "new_images", "new_floor_plans", "new_unit_plans",
        "image_metadata", "floor_plan_metadata", "unit_plan_metadata",
        "existing_image_metadata", "existing_floor_plan_metadata", "existing_unit_plan_metadata",
        mode="before",
    )
    @classmethod
    def decode_json(cls, v):
        return parse_json_string(v)

    @field_validator(
        "existing_images", "existing_floor_plans", "existing_unit_plans",
        "delete_images", "delete_floor_plans", "delete_unit_plans",
        mode="before",
    )
    @classmethod
    def id_lists(cls, v):
        return as_id_list(v)

    @field_validator(
        "new_images", "new_floor_plans", "new_unit_plans",
        "delete_images", "delete_floor_plans", "delete_unit_plans",
        mode="after",
    )
    @classmethod
    def none_as_empty_list(cls, v):
        return v or []

    @field_validator(
        "image_metadata", "floor_plan_metadata", "unit_plan_metadata",
        "existing_image_metadata", "existing_floor_plan_metadata", "existing_unit_plan_metadata",
        mode="after",
    )
    @classmethod
    def none_as_empty_map(cls, v):
        return v or {}

    # ── Accessors ─────────────────────────────────────────────────────────────

    @classmethod
    def from_payload(cls, payload: Any) -> "PropertyWrite":
        """Validate raw input, reporting problems as ValidationFailure."""
        if isinstance(payload, cls):
            return payload
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationFailure("Invalid property payload", errors=errors)

    def scalar_values(self, only_supplied: bool = True) -> Dict[str, Any]:
        fields = self.model_fields_set if only_supplied else set(SCALAR_FIELDS)
        return {name: getattr(self, name) for name in SCALAR_FIELDS if name in fields}

    def json_values(self, only_supplied: bool = True) -> Dict[str, Any]:
        fields = self.model_fields_set if only_supplied else set(JSON_FIELDS)
        return {name: getattr(self, name) for name in JSON_FIELDS if name in fields}

    def attribute_inputs(self) -> Dict[str, Any]:
        """Raw attribute values keyed by payload key, only for kinds that were sent."""
        inputs = {}
        for kind in AttributeKind:
            raw = getattr(self, kind.payload_key)
            if raw is not None and kind.payload_key in self.model_fields_set:
                inputs[kind.payload_key] = raw
        return inputs

    def media_items(self, kind: MediaKind) -> List[MediaItemIn]:
        """Assets submitted on create (URLs may still point at the temp folder)."""
        plural, _ = _MEDIA_STEMS[kind]
        return list(getattr(self, plural) or [])

    def media_changes(self, kind: MediaKind) -> MediaChangeSet:
        plural, singular = _MEDIA_STEMS[kind]
        return MediaChangeSet(
            replace=getattr(self, f"replace_{plural}"),
            existing_ids=getattr(self, f"existing_{plural}"),
            delete_ids=getattr(self, f"delete_{plural}"),
            new_assets=getattr(self, f"new_{plural}"),
            new_metadata=getattr(self, f"{singular}_metadata"),
            existing_metadata=getattr(self, f"existing_{singular}_metadata"),
        )
