from enum import Enum

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, SoftDeleteMixin, TimestampMixin


class PropertyStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


# Text columns holding serialized JSON (stored as strings for portability)
JSON_TEXT_FIELDS = (
    "translated_titles",
    "translated_descriptions",
    "translated_payment_plans",
    "social_media",
    "contact_info",
)


class Property(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Identity & classification
    property_code = Column(String(20), unique=True, nullable=True, index=True)
    reference_id = Column(String(100), nullable=True)
    property_type_id = Column(Integer, nullable=True, index=True)
    zone_id = Column(Integer, nullable=True, index=True)

    title = Column(String(255), nullable=True)
    project_name = Column(String(255), nullable=True)

    # Location
    address = Column(String(500), nullable=True)
    search_address = Column(String(500), nullable=True)
    district = Column(String(100), nullable=True)
    subdistrict = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Area & land
    area = Column(Float, nullable=True)
    usable_area = Column(Float, nullable=True)
    land_size_rai = Column(Float, nullable=True)
    land_size_ngan = Column(Float, nullable=True)
    land_size_sq_wah = Column(Float, nullable=True)
    land_size_sqm = Column(Float, nullable=True)
    land_width = Column(Float, nullable=True)
    land_length = Column(Float, nullable=True)
    land_shape = Column(String(100), nullable=True)
    land_grade = Column(String(100), nullable=True)
    land_access = Column(String(100), nullable=True)
    ownership_type = Column(String(100), nullable=True)
    ownership_quota = Column(String(100), nullable=True)

    # Building
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    floors = Column(Integer, nullable=True)
    floor = Column(Integer, nullable=True)
    furnishing = Column(String(100), nullable=True)
    construction_year = Column(Integer, nullable=True)
    community_fee = Column(Float, nullable=True)
    building_unit = Column(String(100), nullable=True)

    # Content
    description = Column(Text, nullable=True)
    payment_plan = Column(Text, nullable=True)
    video_url = Column(String(500), nullable=True)
    translated_titles = Column(Text, nullable=True)
    translated_descriptions = Column(Text, nullable=True)
    translated_payment_plans = Column(Text, nullable=True)
    social_media = Column(Text, nullable=True)
    contact_info = Column(Text, nullable=True)

    # Co-agent terms
    co_agent_accept = Column(Boolean, nullable=False, default=False)
    commission_type = Column(String(50), nullable=True)
    commission_percent = Column(Float, nullable=True)
    commission_amount = Column(Float, nullable=True)
    private_note = Column(Text, nullable=True)

    # Status & counters
    status = Column(String(20), nullable=False, default=PropertyStatus.ACTIVE.value, index=True)
    is_published = Column(Boolean, nullable=False, default=True, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    view_count = Column(Integer, nullable=False, default=0)
    interested_count = Column(Integer, nullable=False, default=0)

    # Relationships
    user = relationship("User", back_populates="properties")
    listings = relationship("PropertyListing", back_populates="property", cascade="all, delete-orphan")

    images = relationship(
        "PropertyImage", back_populates="property", cascade="all, delete-orphan",
        order_by="PropertyImage.sort_order",
    )
    floor_plans = relationship(
        "FloorPlan", back_populates="property", cascade="all, delete-orphan",
        order_by="FloorPlan.sort_order",
    )
    unit_plans = relationship(
        "UnitPlan", back_populates="property", cascade="all, delete-orphan",
        order_by="UnitPlan.sort_order",
    )

    amenities = relationship("PropertyAmenity", back_populates="property", cascade="all, delete-orphan")
    facilities = relationship("PropertyFacility", back_populates="property", cascade="all, delete-orphan")
    views = relationship("PropertyView", back_populates="property", cascade="all, delete-orphan")
    highlights = relationship("PropertyHighlight", back_populates="property", cascade="all, delete-orphan")
    labels = relationship("PropertyLabel", back_populates="property", cascade="all, delete-orphan")
    nearby_places = relationship("PropertyNearby", back_populates="property", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Property(id={self.id}, code='{self.property_code}')>"
