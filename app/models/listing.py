"""
Property Listing Model
A commercial offer (sale or rent terms) owned by exactly one property.
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String

from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


# ── Enums ──────────────────────────────────────────────────────────────────────

class ListingType(str, PyEnum):
    SALE = "SALE"
    RENT = "RENT"


class ListingStatus(str, PyEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SOLD = "SOLD"
    RENTED = "RENTED"


# ── Models ─────────────────────────────────────────────────────────────────────

class PropertyListing(Base, TimestampMixin):
    __tablename__ = "property_listings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    listing_type = Column(String(10), nullable=False, default=ListingType.SALE.value)
    status = Column(String(20), nullable=False, default=ListingStatus.ACTIVE.value)

    # Pricing
    price = Column(Float, nullable=False, default=0.0)
    promotional_price = Column(Float, nullable=True)
    price_per_sqm = Column(Float, nullable=True)
    currency = Column(String(10), nullable=False, default="THB")

    # Rent-only terms
    short_term_3_months = Column(Float, nullable=True)
    short_term_6_months = Column(Float, nullable=True)
    short_term_1_year = Column(Float, nullable=True)
    minimum_stay = Column(Integer, nullable=True)  # months

    # Commission & contact overrides
    commission_percent = Column(Float, nullable=True)
    commission_amount = Column(Float, nullable=True)
    contact_name = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    contact_email = Column(String(255), nullable=True)

    # Relationships
    property = relationship("Property", back_populates="listings")

    __table_args__ = (
        Index("ix_property_listings_property_type", "property_id", "listing_type"),
    )
