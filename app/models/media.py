"""
Media Models
Images, floor plans and unit plans. Rows hold the public URL; the file itself
lives under MEDIA_ROOT (see app.services.media_lifecycle).
"""
from enum import Enum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declared_attr, relationship

from app.db.base import Base, TimestampMixin


class MediaKind(str, Enum):
    IMAGE = "image"
    FLOOR_PLAN = "floor_plan"
    UNIT_PLAN = "unit_plan"

    @property
    def subdir(self) -> str:
        """Directory under the property folder ("" for images)."""
        return {
            MediaKind.IMAGE: "",
            MediaKind.FLOOR_PLAN: "floor-plans",
            MediaKind.UNIT_PLAN: "unit-plans",
        }[self]

    @property
    def relation(self) -> str:
        return {
            MediaKind.IMAGE: "images",
            MediaKind.FLOOR_PLAN: "floor_plans",
            MediaKind.UNIT_PLAN: "unit_plans",
        }[self]


class MediaMixin(TimestampMixin):
    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(500), nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    @declared_attr
    def property_id(cls):
        return Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "sort_order": self.sort_order,
        }
        if hasattr(self, "is_featured"):
            data["is_featured"] = self.is_featured
        return data


class PropertyImage(MediaMixin, Base):
    __tablename__ = "property_images"

    is_featured = Column(Boolean, nullable=False, default=False)

    property = relationship("Property", back_populates="images")


class FloorPlan(MediaMixin, Base):
    __tablename__ = "floor_plans"

    property = relationship("Property", back_populates="floor_plans")


class UnitPlan(MediaMixin, Base):
    __tablename__ = "unit_plans"

    property = relationship("Property", back_populates="unit_plans")


MEDIA_MODELS = {
    MediaKind.IMAGE: PropertyImage,
    MediaKind.FLOOR_PLAN: FloorPlan,
    MediaKind.UNIT_PLAN: UnitPlan,
}
