"""
Attribute Models
Six categorical child collections of a property (amenities, facilities, views,
highlights, labels, nearby places). Every table shares one row shape and the
same replace-on-update lifecycle; only the type-key column name differs.
"""
from enum import Enum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import declared_attr, foreign, relationship

from app.db.base import Base, TimestampMixin
from app.models.icon import Icon


class AttributeKind(str, Enum):
    AMENITY = "amenity"
    FACILITY = "facility"
    VIEW = "view"
    HIGHLIGHT = "highlight"
    LABEL = "label"
    NEARBY = "nearby"

    @property
    def payload_key(self) -> str:
        """Key of this kind in write payloads and hydrated reads."""
        return _PAYLOAD_KEYS[self]

    @property
    def relation(self) -> str:
        """Name of the relationship on Property."""
        return _RELATIONS[self]


_PAYLOAD_KEYS = {
    AttributeKind.AMENITY: "amenities",
    AttributeKind.FACILITY: "facilities",
    AttributeKind.VIEW: "views",
    AttributeKind.HIGHLIGHT: "highlights",
    AttributeKind.LABEL: "labels",
    AttributeKind.NEARBY: "nearby",
}

_RELATIONS = {
    AttributeKind.AMENITY: "amenities",
    AttributeKind.FACILITY: "facilities",
    AttributeKind.VIEW: "views",
    AttributeKind.HIGHLIGHT: "highlights",
    AttributeKind.LABEL: "labels",
    AttributeKind.NEARBY: "nearby_places",
}


class AttributeMixin(TimestampMixin):
    """Columns shared by every attribute table."""

    type_column = None  # set by each table, e.g. "amenity_type"

    id = Column(Integer, primary_key=True, autoincrement=True)
    active = Column(Boolean, nullable=False, default=False)
    # Not a real FK: icons are referenced without validating they exist
    icon_id = Column(Integer, nullable=True, index=True)

    def __init__(self, type_key=None, **kwargs):
        if type_key is not None:
            kwargs[self.type_column] = type_key
        super().__init__(**kwargs)

    @declared_attr
    def property_id(cls):
        return Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def icon(cls):
        return relationship(
            Icon,
            primaryjoin=lambda: foreign(cls.icon_id) == Icon.id,
            viewonly=True,
            lazy="joined",
        )

    def get_type_key(self):
        return getattr(self, self.type_column)

    def to_dict(self) -> dict:
        """Row as a plain dict with localized icon names flattened in."""
        data = {
            "id": self.id,
            self.type_column: self.get_type_key(),
            "type": self.get_type_key(),
            "active": self.active,
            "icon_id": self.icon_id,
        }
        for extra in ("facility_category", "distance"):
            if hasattr(self, extra):
                data[extra] = getattr(self, extra)
        if self.icon is not None:
            data.update(self.icon.localized_names())
        else:
            data.update({
                "icon_name": None,
                "icon_name_th": None,
                "icon_name_ch": None,
                "icon_name_ru": None,
                "icon_path": None,
            })
        return data


class PropertyAmenity(AttributeMixin, Base):
    __tablename__ = "property_amenities"
    type_column = "amenity_type"

    amenity_type = Column(String(100), nullable=False)

    property = relationship("Property", back_populates="amenities")


class PropertyFacility(AttributeMixin, Base):
    __tablename__ = "property_facilities"
    type_column = "facility_type"

    facility_type = Column(String(100), nullable=False)
    facility_category = Column(String(100), nullable=True)

    property = relationship("Property", back_populates="facilities")


class PropertyView(AttributeMixin, Base):
    __tablename__ = "property_views"
    type_column = "view_type"

    view_type = Column(String(100), nullable=False)

    property = relationship("Property", back_populates="views")


class PropertyHighlight(AttributeMixin, Base):
    __tablename__ = "property_highlights"
    type_column = "highlight_type"

    highlight_type = Column(String(100), nullable=False)

    property = relationship("Property", back_populates="highlights")


class PropertyLabel(AttributeMixin, Base):
    __tablename__ = "property_labels"
    type_column = "label_type"

    label_type = Column(String(100), nullable=False)

    property = relationship("Property", back_populates="labels")


class PropertyNearby(AttributeMixin, Base):
    __tablename__ = "property_nearby"
    type_column = "nearby_type"

    nearby_type = Column(String(100), nullable=False)
    distance = Column(String(50), nullable=True)

    property = relationship("Property", back_populates="nearby_places")


ATTRIBUTE_MODELS = {
    AttributeKind.AMENITY: PropertyAmenity,
    AttributeKind.FACILITY: PropertyFacility,
    AttributeKind.VIEW: PropertyView,
    AttributeKind.HIGHLIGHT: PropertyHighlight,
    AttributeKind.LABEL: PropertyLabel,
    AttributeKind.NEARBY: PropertyNearby,
}
