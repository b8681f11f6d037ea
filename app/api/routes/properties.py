"""
Property Routes
Thin HTTP layer over PropertyService / PropertyCounterService. Domain errors
raised by the services are turned into responses by the handlers in app.main.

  POST   /api/properties/                   create property aggregate
  GET    /api/properties/next-code          preview the next property code
  POST   /api/properties/uploads/{kind}     store a file under the temp folder
  GET    /api/properties/{id}               public read (published only)
  GET    /api/properties/{id}/admin         owner/admin read
  PUT    /api/properties/{id}               update (JSON or multipart form)
  PATCH  /api/properties/{id}/status        publish / unpublish
  POST   /api/properties/{id}/duplicate     copy under a new code
  POST   /api/properties/{id}/media/{kind}  attach one uploaded file
  DELETE /api/properties/media/{kind}/{asset_id}  remove one image or plan
  DELETE /api/properties/{id}               soft delete
  DELETE /api/properties/{id}/permanent     hard delete
  POST   /api/properties/{id}/view          deduplicated view count
  POST   /api/properties/{id}/interest      inquiry count
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationFailure
from app.database import get_db
from app.models.media import MediaKind
from app.services.media_lifecycle import MediaLifecycleManager
from app.services.property_service import PropertyService
from app.services.view_counter import PropertyCounterService, ViewDedupCache, get_view_cache

logger = logging.getLogger(__name__)

router = APIRouter()


class StatusUpdate(BaseModel):
    status: Literal["ACTIVE", "INACTIVE"]


class DuplicateRequest(BaseModel):
    userId: Optional[int] = None


# ── Request helpers ────────────────────────────────────────────────────────────

def _get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def read_payload(request: Request) -> Dict[str, Any]:
    """
    Request body as a dict, from JSON or from a (multipart) form.

    Repeated form keys (existingImages=2&existingImages=5) become lists.
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
        form = await request.form()
        payload: Dict[str, Any] = {}
        for key in form.keys():
            values = [v for v in form.getlist(key) if isinstance(v, str)]
            if not values:
                continue
            payload[key] = values if len(values) > 1 else values[0]
        return payload

    body = await request.body()
    if not body:
        return {}
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationFailure("Request body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationFailure("Request body must be a JSON object")
    return payload


def get_media_manager(db: Session = Depends(get_db)) -> MediaLifecycleManager:
    return MediaLifecycleManager(db)


def get_property_service(
    db: Session = Depends(get_db),
    media: MediaLifecycleManager = Depends(get_media_manager),
) -> PropertyService:
    return PropertyService(db, media=media)


def get_counter_service(
    db: Session = Depends(get_db),
    cache: ViewDedupCache = Depends(get_view_cache),
) -> PropertyCounterService:
    return PropertyCounterService(db, cache)


# ── Aggregate writes ───────────────────────────────────────────────────────────

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_property(
    payload: Dict[str, Any] = Depends(read_payload),
    service: PropertyService = Depends(get_property_service),
):
    """Create a property with its listings, attributes and media"""
    prop = service.create(payload)
    return {"success": True, "message": "Property created successfully", "data": prop}


@router.get("/next-code")
def next_property_code(service: PropertyService = Depends(get_property_service)):
    """Preview the code the next property will get"""
    return {"success": True, "data": {"property_code": service.generate_next_property_code()}}


@router.post("/uploads/{kind}", status_code=status.HTTP_201_CREATED)
async def upload_media(
    kind: MediaKind,
    file: UploadFile = File(...),
    media: MediaLifecycleManager = Depends(get_media_manager),
):
    """Store an image or plan in the temp folder; the returned URL goes into the create/update payload"""
    content = await file.read()
    url = media.store_temp_upload(kind, file.filename, content)
    return {"success": True, "data": {"url": url, "kind": kind.value}}


@router.get("/{property_id}")
def get_property(property_id: int, service: PropertyService = Depends(get_property_service)):
    """Public read: published and not deleted"""
    return {"success": True, "data": service.find_by_id(property_id)}


@router.get("/{property_id}/admin")
def get_property_for_admin(property_id: int, service: PropertyService = Depends(get_property_service)):
    """Owner/admin read, including unpublished properties and inactive attributes"""
    return {"success": True, "data": service.find_by_id_for_admin(property_id)}


@router.put("/{property_id}")
def update_property(
    property_id: int,
    payload: Dict[str, Any] = Depends(read_payload),
    service: PropertyService = Depends(get_property_service),
):
    """Update a property; listings and supplied attribute kinds are replaced wholesale"""
    prop = service.update(property_id, payload)
    return {"success": True, "message": "Property updated successfully", "data": prop}


@router.patch("/{property_id}/status")
def update_property_status(
    property_id: int,
    body: StatusUpdate,
    service: PropertyService = Depends(get_property_service),
):
    """ACTIVE publishes, INACTIVE unpublishes"""
    result = service.set_publication_status(property_id, body.status)
    return {"success": True, "message": "Property status updated successfully", "data": result}


@router.post("/{property_id}/duplicate", status_code=status.HTTP_201_CREATED)
def duplicate_property(
    property_id: int,
    body: Optional[DuplicateRequest] = None,
    service: PropertyService = Depends(get_property_service),
):
    """Copy a property, its children and its files under a fresh code"""
    prop = service.duplicate(property_id, body.userId if body else None)
    return {"success": True, "message": "Property duplicated successfully", "data": prop}


@router.delete("/{property_id}")
def soft_delete_property(property_id: int, service: PropertyService = Depends(get_property_service)):
    """Hide the property; rows and files are kept"""
    result = service.soft_delete(property_id)
    return {"success": True, "message": "Property deleted successfully", "data": result}


@router.delete("/{property_id}/permanent")
def delete_property(property_id: int, service: PropertyService = Depends(get_property_service)):
    """Remove the property and all of its child rows"""
    result = service.delete(property_id)
    return {"success": True, "message": "Property permanently deleted", "data": result}


@router.post("/{property_id}/media/{kind}", status_code=status.HTTP_201_CREATED)
def add_property_media(
    property_id: int,
    kind: MediaKind,
    payload: Dict[str, Any] = Depends(read_payload),
    service: PropertyService = Depends(get_property_service),
):
    """Attach one image or plan to an existing property"""
    asset = service.add_media(property_id, kind, payload)
    return {"success": True, "message": "Media added successfully", "data": asset}


@router.delete("/media/{kind}/{asset_id}")
def delete_property_media(
    kind: MediaKind,
    asset_id: int,
    service: PropertyService = Depends(get_property_service),
):
    result = service.delete_media(kind, asset_id)
    return {"success": True, "message": "Media deleted successfully", "data": result}

# ── Counters ───────────────────────────────────────────────────────────────────

@router.post("/{property_id}/view")
def increment_view(
    property_id: int,
    request: Request,
    counter: PropertyCounterService = Depends(get_counter_service),
):
    """Count a view once per client IP per dedup window"""
    result = counter.increment_view_count(property_id, _get_client_ip(request))
    return {"success": True, "data": result}


@router.post("/{property_id}/interest")
def increment_interest(
    property_id: int,
    counter: PropertyCounterService = Depends(get_counter_service),
):
    """Count an inquiry about the property"""
    result = counter.increment_interested_count(property_id)
    return {"success": True, "data": result}
