"""
Media Lifecycle Manager
Owns the files behind property images, floor plans and unit plans, and the
rows that point at them.

Uploads land under the temp segment (e.g. /images/properties/temp/abc.jpg)
before the property exists. Once the id is known they are moved to
/images/properties/{id}/..., the URL is rewritten and the rows are written.
Filesystem problems are logged per asset and never abort the transaction;
database errors propagate to the caller.
"""
from __future__ import annotations

import logging
import os
import re
import shutil
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import FilesystemFailure, NotFound
from app.models.media import MEDIA_MODELS, MediaKind
from app.schemas.media import MediaChangeSet, MediaItemIn, MediaMetadataIn

logger = logging.getLogger(__name__)


# ── Form key parsing ───────────────────────────────────────────────────────────

def parse_bracketed_keys(mapping: Mapping[str, Any], prefix: str) -> Dict[str, Dict[str, Any]]:
    """
    Collect `prefix[id][field]` form keys into {id: {field: value}}.

    Repeated form keys arrive as lists; the last value wins.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}\[([^\]]+)\]\[([^\]]+)\]$")
    nested: Dict[str, Dict[str, Any]] = {}
    for key, value in mapping.items():
        if not isinstance(key, str):
            continue
        match = pattern.match(key)
        if not match:
            continue
        asset_id, field_name = match.groups()
        if isinstance(value, (list, tuple)):
            value = value[-1] if value else None
        nested.setdefault(asset_id, {})[field_name] = value
    return nested


# ── Move journal ───────────────────────────────────────────────────────────────

@dataclass
class FileOperation:
    source: str
    target: str
    op: str = "move"  # move | copy


@dataclass
class MoveJournal:
    """Files touched during one aggregate write, so a rollback can undo them."""
    operations: List[FileOperation] = field(default_factory=list)

    def record(self, source: str, target: str, op: str = "move") -> None:
        self.operations.append(FileOperation(source, target, op))

    def clear(self) -> None:
        self.operations.clear()

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self):
        return iter(self.operations)


# ── Manager ────────────────────────────────────────────────────────────────────

class MediaLifecycleManager:
    def __init__(
        self,
        db: Session,
        media_root: Optional[str] = None,
        url_prefix: Optional[str] = None,
        temp_segment: Optional[str] = None,
        delete_files: Optional[bool] = None,
    ):
        self.db = db
        self.media_root = os.path.abspath(media_root or settings.MEDIA_ROOT)
        self.url_prefix = "/" + (url_prefix or settings.MEDIA_URL_PREFIX).strip("/")
        self.temp_segment = temp_segment or settings.MEDIA_TEMP_SEGMENT
        self.delete_files = settings.DELETE_FILES if delete_files is None else delete_files

    # ── Paths & URLs ──────────────────────────────────────────────────────────

    @property
    def temp_marker(self) -> str:
        return f"{self.url_prefix}/{self.temp_segment}/"

    def property_url(self, property_id: Any) -> str:
        return f"{self.url_prefix}/{property_id}/"

    def property_dir(self, property_id: Any, kind: MediaKind = MediaKind.IMAGE) -> str:
        base = os.path.join(self.media_root, self.url_prefix.lstrip("/"), str(property_id))
        return os.path.join(base, kind.subdir) if kind.subdir else base

    def ensure_property_dirs(self, property_id: int) -> None:
        """Create the image, floor-plan and unit-plan folders of a property."""
        for kind in MediaKind:
            os.makedirs(self.property_dir(property_id, kind), exist_ok=True)

    def url_to_path(self, url: str) -> str:
        relative = urlparse(url).path.lstrip("/")
        path = os.path.abspath(os.path.join(self.media_root, relative))
        if os.path.commonpath([path, self.media_root]) != self.media_root:
            raise FilesystemFailure(f"URL resolves outside the media root: {url}", path=path)
        return path

    def is_temp_url(self, url: Optional[str]) -> bool:
        return bool(url) and self.temp_marker in url

    def rewrite_temp_url(self, url: str, property_id: int) -> str:
        return url.replace(self.temp_marker, self.property_url(property_id), 1)

    # ── File operations ───────────────────────────────────────────────────────

    def store_temp_upload(self, kind: MediaKind, filename: Optional[str], content: bytes) -> str:
        """Save an upload under the temp segment and return its URL."""
        ext = os.path.splitext(filename or "")[1].lower() or ".jpg"
        name = f"{uuid.uuid4().hex}{ext}"
        url = f"{self.temp_marker}{kind.subdir}/{name}" if kind.subdir else f"{self.temp_marker}{name}"
        path = self.url_to_path(url)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
        except OSError as e:
            raise FilesystemFailure(f"Could not store upload {filename}: {e}", path=path)
        logger.info(f"[media] stored temp upload {url} ({len(content)} bytes)")
        return url

    def _move(self, source_url: str, target_url: str, journal: Optional[MoveJournal]) -> bool:
        source = self.url_to_path(source_url)
        target = self.url_to_path(target_url)
        if not os.path.exists(source):
            logger.warning(f"[media] source file missing, URL rewritten anyway: {source}")
            return False
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            shutil.move(source, target)
        except OSError as e:
            raise FilesystemFailure(f"Could not move {source} to {target}: {e}", path=source)
        if journal is not None:
            journal.record(source, target)
        return True

    def _copy(self, source_url: str, target_url: str, journal: Optional[MoveJournal]) -> bool:
        source = self.url_to_path(source_url)
        target = self.url_to_path(target_url)
        if not os.path.exists(source):
            logger.warning(f"[media] nothing to copy at {source}")
            return False
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise FilesystemFailure(f"Could not copy {source} to {target}: {e}", path=source)
        if journal is not None:
            journal.record(source, target, op="copy")
        return True

    def _remove_file(self, url: str) -> None:
        path = self.url_to_path(url)
        try:
            os.remove(path)
            logger.info(f"[media] deleted file {path}")
        except FileNotFoundError:
            logger.debug(f"[media] file already gone: {path}")
        except OSError as e:
            raise FilesystemFailure(f"Could not delete {path}: {e}", path=path)

    def revert_moves(self, journal: MoveJournal) -> int:
        """Undo journaled operations, newest first. Returns how many were undone."""
        reverted = 0
        for operation in reversed(journal.operations):
            try:
                if operation.op == "copy":
                    os.remove(operation.target)
                else:
                    os.makedirs(os.path.dirname(operation.source), exist_ok=True)
                    shutil.move(operation.target, operation.source)
                reverted += 1
            except OSError as e:
                logger.error(f"[media] could not revert {operation.op} of {operation.target}: {e}")
        if reverted:
            logger.warning(f"[media] reverted {reverted} file operation(s) after a failed write")
        journal.clear()
        return reverted

    # ── Rows ──────────────────────────────────────────────────────────────────

    def _build_row(
        self,
        kind: MediaKind,
        property_id: int,
        url: str,
        item: MediaItemIn,
        index: int,
        metadata: Optional[MediaMetadataIn] = None,
        first_is_featured: bool = True,
    ):
        values = {
            "title": item.title,
            "description": item.description,
            "sort_order": item.sort_order,
            "is_featured": item.is_featured,
        }
        if metadata is not None:
            values.update(metadata.supplied())

        row = MEDIA_MODELS[kind](
            property_id=property_id,
            url=url,
            title=values["title"],
            description=values["description"],
            sort_order=values["sort_order"] if values["sort_order"] is not None else index,
        )
        if kind is MediaKind.IMAGE:
            featured = values["is_featured"]
            row.is_featured = featured if featured is not None else (first_is_featured and index == 0)
        return row

    def _place(self, property_id: int, url: str, journal: Optional[MoveJournal]) -> str:
        """Move a temp upload under the property; returns the final URL."""
        if not self.is_temp_url(url):
            return url
        final_url = self.rewrite_temp_url(url, property_id)
        try:
            self._move(url, final_url, journal)
        except FilesystemFailure as e:
            logger.error(f"[media] {e.message}")
        return final_url

    def promote(
        self,
        property_id: int,
        kind: MediaKind,
        items: Iterable[MediaItemIn],
        journal: Optional[MoveJournal] = None,
    ) -> list:
        """Rows for the media submitted with a new property; the first image is featured by default."""
        rows = []
        for index, item in enumerate(items):
            url = self._place(property_id, item.url, journal)
            rows.append(self._build_row(kind, property_id, url, item, index))
        self.db.add_all(rows)
        if rows:
            logger.info(f"[media] property {property_id}: stored {len(rows)} {kind.relation}")
        return rows

    def add_asset(
        self,
        property_id: int,
        kind: MediaKind,
        item: MediaItemIn,
        journal: Optional[MoveJournal] = None,
    ):
        """Append one asset; it goes last and is featured only if the property had no images."""
        model = MEDIA_MODELS[kind]
        existing = self.db.query(model).filter(model.property_id == property_id).count()
        url = self._place(property_id, item.url, journal)
        row = self._build_row(kind, property_id, url, item, existing)
        self.db.add(row)
        self.db.flush()
        logger.info(f"[media] property {property_id}: added {kind.value} {row.id}")
        return row

    def _delete_assets(self, assets: list) -> int:
        for asset in assets:
            if self.delete_files:
                try:
                    self._remove_file(asset.url)
                except FilesystemFailure as e:
                    logger.warning(f"[media] keeping row delete despite file error: {e.message}")
            self.db.delete(asset)
        return len(assets)

    def delete_asset(self, kind: MediaKind, asset_id: int, property_id: Optional[int] = None):
        """Delete one asset by id, optionally only if it belongs to `property_id`."""
        asset = self.db.get(MEDIA_MODELS[kind], asset_id)
        if asset is None or (property_id is not None and asset.property_id != property_id):
            label = kind.value.replace("_", " ").capitalize()
            raise NotFound(f"{label} with ID {asset_id} not found")
        self._delete_assets([asset])
        self.db.flush()
        logger.info(f"[media] property {asset.property_id}: deleted {kind.value} {asset_id}")
        return asset

    def apply_changes(
        self,
        property_id: int,
        kind: MediaKind,
        changes: MediaChangeSet,
        journal: Optional[MoveJournal] = None,
    ) -> Dict[str, int]:
        """
        Reconcile one media kind of an existing property.

        replace + existing_ids   keep only the listed ids (empty list deletes all)
        delete_ids               legacy: drop exactly these ids (ignored when replacing)
        new_assets               append, metadata looked up by temp id
        existing_metadata        patch retained rows without touching files
        """
        model = MEDIA_MODELS[kind]
        summary = {"deleted": 0, "added": 0, "updated": 0}
        deleted_ids = set()

        if changes.replace:
            retained = changes.existing_ids
            if retained is None and changes.new_assets:
                retained = []
            if retained is None:
                logger.info(
                    f"[media] property {property_id}: replace {kind.relation} ignored, "
                    f"no retained ids and no uploads"
                )
            else:
                if not retained:
                    logger.warning(
                        f"[media] property {property_id}: replace with empty retained list "
                        f"deletes every {kind.value}"
                    )
                current = self.db.query(model).filter(model.property_id == property_id).all()
                doomed = [asset for asset in current if asset.id not in set(retained)]
                deleted_ids.update(asset.id for asset in doomed)
                summary["deleted"] = self._delete_assets(doomed)
        elif changes.delete_ids:
            doomed = (
                self.db.query(model)
                .filter(model.property_id == property_id, model.id.in_(changes.delete_ids))
                .all()
            )
            if len(doomed) != len(set(changes.delete_ids)):
                logger.warning(
                    f"[media] property {property_id}: some {kind.relation} ids to delete "
                    f"were not found: {changes.delete_ids}"
                )
            deleted_ids.update(asset.id for asset in doomed)
            summary["deleted"] = self._delete_assets(doomed)

        new_rows = []
        for index, item in enumerate(changes.new_assets):
            metadata = changes.new_metadata.get(item.temp_id) if item.temp_id else None
            url = self._place(property_id, item.url, journal)
            new_rows.append(
                self._build_row(kind, property_id, url, item, index, metadata, first_is_featured=False)
            )
        self.db.add_all(new_rows)
        summary["added"] = len(new_rows)

        for asset_id, metadata in changes.existing_metadata.items():
            if asset_id in deleted_ids:
                continue
            asset = (
                self.db.query(model)
                .filter(model.id == asset_id, model.property_id == property_id)
                .first()
            )
            if asset is None:
                logger.warning(f"[media] property {property_id}: {kind.value} {asset_id} not found")
                continue
            if self._patch(asset, metadata):
                summary["updated"] += 1

        self.db.flush()
        if any(summary.values()):
            logger.info(f"[media] property {property_id} {kind.relation}: {summary}")
        return summary

    @staticmethod
    def _patch(asset, metadata: MediaMetadataIn) -> bool:
        changed = False
        for name, value in metadata.supplied().items():
            if not hasattr(asset, name):
                continue
            if value is None and name in ("sort_order", "is_featured"):
                continue
            setattr(asset, name, value)
            changed = True
        return changed

    def copy_assets(
        self,
        source_property_id: int,
        target_property_id: int,
        kind: MediaKind,
        assets: Iterable[Any],
        journal: Optional[MoveJournal] = None,
    ) -> list:
        """Copy files and rows of another property's media into `target_property_id`."""
        source_base = self.property_url(source_property_id)
        target_base = self.property_url(target_property_id)
        rows = []
        for asset in assets:
            url = asset.url
            if source_base in url:
                url = url.replace(source_base, target_base, 1)
                try:
                    self._copy(asset.url, url, journal)
                except FilesystemFailure as e:
                    logger.error(f"[media] {e.message}")
            row = MEDIA_MODELS[kind](
                property_id=target_property_id,
                url=url,
                title=asset.title,
                description=asset.description,
                sort_order=asset.sort_order,
            )
            if kind is MediaKind.IMAGE:
                row.is_featured = asset.is_featured
            rows.append(row)
        self.db.add_all(rows)
        return rows
