"""
Property Service
Transactional writes and hydrated reads of the property aggregate: the
property row plus its listings, six attribute collections and media.

Each write runs in one database transaction. Files moved while the
transaction is open are journaled and moved back if it rolls back.
"""
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.exceptions import ConflictFailure, NotFound, TransactionFailure
from app.db.base import utcnow
from app.models.attribute import ATTRIBUTE_MODELS, AttributeKind
from app.models.listing import PropertyListing
from app.models.media import MediaKind
from app.models.property import JSON_TEXT_FIELDS, Property, PropertyStatus
from app.schemas.media import MediaItemIn
from app.schemas.property import PropertyWrite
from app.services.attribute_normalizer import AttributeRecord, normalize_all, to_row_values
from app.services.listing_sync import ListingSynchronizer
from app.services.media_lifecycle import MediaLifecycleManager, MoveJournal
from app.services.property_code import generate_next_property_code

logger = logging.getLogger(__name__)

# Columns that reject NULL (or must stay unique); a null in the payload means "leave as is"
_NON_NULL_FIELDS = ("property_code", "co_agent_accept", "is_published", "is_featured", "status")

# Not carried over to a duplicate
_DUPLICATE_SKIP = (
    "id", "property_code", "user_id", "view_count", "interested_count",
    "created_at", "updated_at", "deleted_at",
)

_EAGER_RELATIONS = ("listings", "images", "floor_plans", "unit_plans", "user") + tuple(
    kind.relation for kind in AttributeKind
)


# ── Helpers ────────────────────────────────────────────────────────────────────

def _dump_json(values: Dict[str, Any]) -> Dict[str, Optional[str]]:
    return {
        name: json.dumps(value, ensure_ascii=False) if value is not None else None
        for name, value in values.items()
    }


def _load_json(property_id: int, field: str, raw: Optional[str]) -> Any:
    """Stored JSON text back to data; corrupt values read as an empty object."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"[property] {property_id}: unreadable JSON in '{field}', returning {{}}")
        return {}


def _hydrate_options() -> list:
    return [selectinload(getattr(Property, name)) for name in _EAGER_RELATIONS]


def _columns(row) -> Dict[str, Any]:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


def _clean_scalars(values: Dict[str, Any]) -> Dict[str, Any]:
    for name in _NON_NULL_FIELDS:
        if name in values and values[name] is None:
            del values[name]
    if values.get("status"):
        values["status"] = str(values["status"]).upper()
    return values


class PropertyService:
    def __init__(
        self,
        db: Session,
        media: Optional[MediaLifecycleManager] = None,
        listings: Optional[ListingSynchronizer] = None,
    ):
        self.db = db
        self.media = media or MediaLifecycleManager(db)
        self.listings = listings or ListingSynchronizer()

    # ── Transactions ──────────────────────────────────────────────────────────

    @contextmanager
    def _transaction(self, journal: Optional[MoveJournal] = None):
        """Commit on success; on any error roll back and undo journaled file moves."""
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self._abort(journal)
            logger.warning(f"[property] constraint violation: {e.orig}")
            raise ConflictFailure(
                "Property conflicts with existing data (duplicate property code?)",
                errors=[str(e.orig)],
            )
        except SQLAlchemyError as e:
            self._abort(journal)
            logger.error(f"[property] transaction failed: {e}")
            raise TransactionFailure("Database error while saving property", errors=[str(e)])
        except Exception:
            self._abort(journal)
            raise

    def _abort(self, journal: Optional[MoveJournal]) -> None:
        self.db.rollback()
        if journal:
            self.media.revert_moves(journal)

    def _get_live(self, property_id: int) -> Property:
        prop = (
            self.db.query(Property)
            .filter(Property.id == property_id, Property.deleted_at.is_(None))
            .first()
        )
        if prop is None:
            raise NotFound(f"Property {property_id} not found")
        return prop

    def _provision_dirs(self, property_id: int) -> None:
        try:
            self.media.ensure_property_dirs(property_id)
        except OSError as e:
            logger.error(f"[media] could not create folders for property {property_id}: {e}")

    def _attribute_rows(self, kind: AttributeKind, records: List[AttributeRecord]) -> list:
        model = ATTRIBUTE_MODELS[kind]
        return [model(**to_row_values(kind, record)) for record in records]

    # ── Writes ────────────────────────────────────────────────────────────────

    def create(self, data: Any, user_id: Optional[int] = None) -> Dict[str, Any]:
        payload = PropertyWrite.from_payload(data)
        attributes = normalize_all(payload.attribute_inputs())
        owner_id = user_id or payload.user_id or settings.DEFAULT_OWNER_ID
        listing_rows = self.listings.build(payload.listings, owner_id)

        values = _clean_scalars(payload.scalar_values())
        values.update(_dump_json(payload.json_values()))
        if values.get("area") is None:
            values["area"] = settings.DEFAULT_PROPERTY_AREA
        if not values.get("country"):
            values["country"] = settings.DEFAULT_COUNTRY
        values.setdefault("is_published", True)
        values.setdefault("status", PropertyStatus.ACTIVE.value)

        journal = MoveJournal()
        with self._transaction(journal):
            if not values.get("property_code"):
                values["property_code"] = generate_next_property_code(self.db, for_update=True)

            prop = Property(user_id=owner_id, **values)
            prop.listings = listing_rows
            for kind, records in attributes.items():
                getattr(prop, kind.relation).extend(self._attribute_rows(kind, records))

            self.db.add(prop)
            self.db.flush()
            property_id = prop.id

            self._provision_dirs(property_id)
            for kind in MediaKind:
                self.media.promote(property_id, kind, payload.media_items(kind), journal)
            self.db.flush()

        logger.info(f"[property] created {property_id} ({values['property_code']}) for user {owner_id}")
        return self.find_by_id_for_admin(property_id)

    def update(self, property_id: int, data: Any) -> Dict[str, Any]:
        payload = PropertyWrite.from_payload(data)
        attributes = normalize_all(payload.attribute_inputs())

        journal = MoveJournal()
        with self._transaction(journal):
            prop = self._get_live(property_id)

            values = _clean_scalars(payload.scalar_values())
            values.update(_dump_json(payload.json_values()))
            for name, value in values.items():
                setattr(prop, name, value)

            if payload.listings:
                self.listings.replace_all(self.db, prop, payload.listings)

            for kind, records in attributes.items():
                if not records:
                    continue
                collection = getattr(prop, kind.relation)
                collection.clear()
                self.db.flush()
                collection.extend(self._attribute_rows(kind, records))

            self.db.flush()
            self._provision_dirs(property_id)
            for kind in MediaKind:
                changes = payload.media_changes(kind)
                if not changes.is_empty:
                    self.media.apply_changes(property_id, kind, changes, journal)

        logger.info(f"[property] updated {property_id}")
        return self.find_by_id_for_admin(property_id)

    def soft_delete(self, property_id: int) -> Dict[str, Any]:
        """Hide the property from every read; rows, children and files stay."""
        with self._transaction():
            prop = self._get_live(property_id)
            prop.deleted_at = utcnow()
            prop.status = PropertyStatus.INACTIVE.value
            deleted_at = prop.deleted_at

        logger.info(f"[property] soft-deleted {property_id}")
        return {"id": property_id, "deleted_at": deleted_at, "status": PropertyStatus.INACTIVE.value}

    def delete(self, property_id: int) -> Dict[str, Any]:
        """Remove the property row; listings, attributes and media rows go with it."""
        with self._transaction():
            prop = self.db.get(Property, property_id)
            if prop is None:
                raise NotFound(f"Property {property_id} not found")
            code = prop.property_code
            self.db.delete(prop)

        logger.info(f"[property] deleted {property_id} ({code})")
        return {"id": property_id, "property_code": code}

    def duplicate(self, property_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        """Copy a property with its listings, attributes and media under a new code."""
        source = self._get_live(property_id)
        owner_id = user_id or source.user_id

        journal = MoveJournal()
        with self._transaction(journal):
            values = {k: v for k, v in _columns(source).items() if k not in _DUPLICATE_SKIP}
            values["status"] = PropertyStatus.ACTIVE.value
            copy = Property(
                user_id=owner_id,
                property_code=generate_next_property_code(self.db, for_update=True),
                view_count=0,
                interested_count=0,
                **values,
            )
            for listing in source.listings:
                listing_values = {
                    k: v for k, v in _columns(listing).items()
                    if k not in ("id", "property_id", "created_at", "updated_at")
                }
                copy.listings.append(PropertyListing(**listing_values))
            for kind in AttributeKind:
                model = ATTRIBUTE_MODELS[kind]
                for row in getattr(source, kind.relation):
                    row_values = {
                        k: v for k, v in _columns(row).items()
                        if k not in ("id", "property_id", "created_at", "updated_at")
                    }
                    getattr(copy, kind.relation).append(model(**row_values))

            self.db.add(copy)
            self.db.flush()
            new_id = copy.id

            self._provision_dirs(new_id)
            for kind in MediaKind:
                self.media.copy_assets(property_id, new_id, kind, getattr(source, kind.relation), journal)
            self.db.flush()

        logger.info(f"[property] duplicated {property_id} as {new_id}")
        return self.find_by_id_for_admin(new_id)

    def set_publication_status(self, property_id: int, status: str) -> Dict[str, Any]:
        """ACTIVE publishes the property; anything else unpublishes it."""
        with self._transaction():
            prop = self._get_live(property_id)
            prop.is_published = str(status).upper() == PropertyStatus.ACTIVE.value
            result = {"id": prop.id, "status": prop.status, "is_published": prop.is_published}
        return result

    def add_media(self, property_id: int, kind: MediaKind, data: Any) -> Dict[str, Any]:
        """Attach one already-uploaded file to a live property."""
        item = MediaItemIn.from_payload(data)
        journal = MoveJournal()
        with self._transaction(journal):
            self._get_live(property_id)
            self._provision_dirs(property_id)
            asset = self.media.add_asset(property_id, kind, item, journal)
            result = {**asset.to_dict(), "property_id": property_id}
        return result

    def delete_media(
        self, kind: MediaKind, asset_id: int, property_id: Optional[int] = None
    ) -> Dict[str, Any]:
        with self._transaction():
            asset = self.media.delete_asset(kind, asset_id, property_id)
            result = {"id": asset_id, "kind": kind.value, "property_id": asset.property_id}
        return result

    def generate_next_property_code(self) -> str:
        return generate_next_property_code(self.db)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def find_by_id(self, property_id: int) -> Dict[str, Any]:
        """Public read: published, not deleted, active attributes only."""
        prop = (
            self.db.query(Property)
            .options(*_hydrate_options())
            .filter(
                Property.id == property_id,
                Property.deleted_at.is_(None),
                Property.is_published.is_(True),
            )
            .first()
        )
        if prop is None:
            raise NotFound(f"Property {property_id} not found")
        return self._hydrate(prop, active_only=True)

    def find_by_id_for_admin(self, property_id: int) -> Dict[str, Any]:
        """Owner/admin read: unpublished included, every attribute row."""
        prop = (
            self.db.query(Property)
            .options(*_hydrate_options())
            .filter(Property.id == property_id, Property.deleted_at.is_(None))
            .first()
        )
        if prop is None:
            raise NotFound(f"Property {property_id} not found")
        return self._hydrate(prop, active_only=False)

    def _hydrate(self, prop: Property, active_only: bool) -> Dict[str, Any]:
        data = _columns(prop)
        for field in JSON_TEXT_FIELDS:
            data[field] = _load_json(prop.id, field, data[field])

        data["listings"] = [_columns(listing) for listing in prop.listings]

        for kind in AttributeKind:
            rows = getattr(prop, kind.relation)
            if active_only:
                rows = [row for row in rows if row.active]
            data[kind.payload_key] = [row.to_dict() for row in rows]

        for kind in MediaKind:
            assets = sorted(getattr(prop, kind.relation), key=lambda a: (a.sort_order, a.id))
            data[kind.relation] = [asset.to_dict() for asset in assets]

        images = data["images"]
        data["featured_image"] = next(
            (image for image in images if image["is_featured"]), images[0] if images else None
        )
        data["user"] = prop.user.contact_card() if prop.user is not None else None
        return data
