"""
Listing Synchronizer
Builds a property's sale / rent listings on create and replaces them wholesale
on update.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationFailure
from app.models.listing import ListingStatus, PropertyListing
from app.models.property import Property
from app.schemas.listing import ListingIn

logger = logging.getLogger(__name__)


class ReplaceStrategy(str, Enum):
    # Every existing listing is deleted, then the submitted ones are inserted
    REPLACE_ALL = "replace_all"


def parse_listings(listings: Optional[Iterable[Any]]) -> List[ListingIn]:
    """Validate raw listing dicts; bad numbers surface as ValidationFailure."""
    parsed = []
    for index, raw in enumerate(listings or []):
        if isinstance(raw, ListingIn):
            parsed.append(raw)
            continue
        try:
            parsed.append(ListingIn.model_validate(raw))
        except ValidationError as e:
            errors = [
                {"loc": f"listings.{index}." + ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationFailure(f"Invalid listing at position {index}", errors=errors)
    return parsed


def _row(listing: ListingIn, user_id: int, status: str) -> PropertyListing:
    return PropertyListing(
        listing_type=listing.listing_type,
        price=listing.price if listing.price is not None else 0.0,
        promotional_price=listing.promotional_price,
        price_per_sqm=listing.price_per_sqm,
        currency=listing.currency or settings.DEFAULT_CURRENCY,
        short_term_3_months=listing.short_term_3_months,
        short_term_6_months=listing.short_term_6_months,
        short_term_1_year=listing.short_term_1_year,
        minimum_stay=listing.minimum_stay,
        commission_percent=listing.commission_percent,
        commission_amount=listing.commission_amount,
        contact_name=listing.contact_name,
        contact_phone=listing.contact_phone,
        contact_email=listing.contact_email,
        status=status,
        user_id=user_id,
    )


class ListingSynchronizer:
    def __init__(self, strategy: ReplaceStrategy = ReplaceStrategy.REPLACE_ALL):
        self.strategy = strategy

    def build(self, listings: Optional[Iterable[Any]], user_id: int) -> List[PropertyListing]:
        """Rows for a new property. Status is always ACTIVE on create."""
        return [
            _row(listing, listing.user_id or user_id, ListingStatus.ACTIVE.value)
            for listing in parse_listings(listings)
        ]

    def replace_all(
        self,
        db: Session,
        property: Property,
        listings: Optional[Iterable[Any]],
        user_id: Optional[int] = None,
    ) -> List[PropertyListing]:
        """
        Delete every listing of `property` and insert the submitted ones.

        Listings missing from `listings` are gone afterwards. Callers skip this
        entirely when no listings were sent.
        """
        parsed = parse_listings(listings)
        owner_id = user_id or property.user_id

        removed = len(property.listings)
        property.listings.clear()
        db.flush()

        rows = [
            _row(listing, listing.user_id or owner_id, listing.status or ListingStatus.ACTIVE.value)
            for listing in parsed
        ]
        property.listings.extend(rows)
        logger.info(
            f"[listings] property {property.id}: replaced {removed} listing(s) with {len(rows)}"
        )
        return rows
