# Import all models in correct order so string relationships resolve
from app.models.user import User, UserRole
from app.models.icon import Icon
from app.models.property import Property, PropertyStatus, JSON_TEXT_FIELDS
from app.models.listing import PropertyListing, ListingType, ListingStatus
from app.models.attribute import (
    AttributeKind, ATTRIBUTE_MODELS,
    PropertyAmenity, PropertyFacility, PropertyView,
    PropertyHighlight, PropertyLabel, PropertyNearby,
)
from app.models.media import MediaKind, MEDIA_MODELS, PropertyImage, FloorPlan, UnitPlan

__all__ = [
    "User",
    "UserRole",
    "Icon",
    "Property",
    "PropertyStatus",
    "JSON_TEXT_FIELDS",
    "PropertyListing",
    "ListingType",
    "ListingStatus",
    "AttributeKind",
    "ATTRIBUTE_MODELS",
    "PropertyAmenity",
    "PropertyFacility",
    "PropertyView",
    "PropertyHighlight",
    "PropertyLabel",
    "PropertyNearby",
    "MediaKind",
    "MEDIA_MODELS",
    "PropertyImage",
    "FloorPlan",
    "UnitPlan",
]
