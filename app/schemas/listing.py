"""
Pydantic schemas for property listings (sale / rent offers).
"""
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.coercion import blank_to_none

_NUMERIC_FIELDS = (
    "price",
    "promotional_price",
    "price_per_sqm",
    "short_term_3_months",
    "short_term_6_months",
    "short_term_1_year",
    "minimum_stay",
    "commission_percent",
    "commission_amount",
)


class ListingIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    listing_type: str = Field(
        "SALE", validation_alias=AliasChoices("listingType", "listing_type", "type")
    )
    price: Optional[float] = None
    promotional_price: Optional[float] = None
    price_per_sqm: Optional[float] = None
    currency: Optional[str] = None
    short_term_3_months: Optional[float] = Field(
        None, validation_alias=AliasChoices("shortTerm3Months", "short_term_3_months")
    )
    short_term_6_months: Optional[float] = Field(
        None, validation_alias=AliasChoices("shortTerm6Months", "short_term_6_months")
    )
    short_term_1_year: Optional[float] = Field(
        None, validation_alias=AliasChoices("shortTerm1Year", "short_term_1_year")
    )
    minimum_stay: Optional[int] = None
    commission_percent: Optional[float] = None
    commission_amount: Optional[float] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator(*_NUMERIC_FIELDS, "user_id", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    @field_validator("listing_type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        v = blank_to_none(v) or "SALE"
        v = str(v).strip().upper()
        if v == "RENTAL":
            v = "RENT"
        if v not in ("SALE", "RENT"):
            raise ValueError(f"unknown listing type '{v}'")
        return v

    @field_validator("status", mode="before")
    @classmethod
    def upper_status(cls, v):
        v = blank_to_none(v)
        return str(v).strip().upper() if v is not None else None
