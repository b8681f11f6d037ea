"""
Property Code Sequencer
Human-readable property codes: prefix + zero-padded counter (DP00001, DP00002, ...).
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.property import Property

logger = logging.getLogger(__name__)


def format_property_code(number: int, prefix: Optional[str] = None, width: Optional[int] = None) -> str:
    prefix = settings.PROPERTY_CODE_PREFIX if prefix is None else prefix
    width = settings.PROPERTY_CODE_WIDTH if width is None else width
    return f"{prefix}{str(number).zfill(width)}"


def generate_next_property_code(
    db: Session,
    prefix: Optional[str] = None,
    width: Optional[int] = None,
    for_update: bool = False,
) -> str:
    """
    Next code after the lexicographically greatest one (soft-deleted rows count too).

    With `for_update=True` the latest row is locked (SELECT ... FOR UPDATE) so the
    read and the following insert share one transaction. SQLite ignores the lock;
    the unique constraint on property_code still rejects a duplicate.
    """
    prefix = settings.PROPERTY_CODE_PREFIX if prefix is None else prefix

    query = (
        db.query(Property)
        .filter(Property.property_code.isnot(None))
        .order_by(Property.property_code.desc())
    )
    if for_update:
        query = query.with_for_update()
    latest = query.first()

    if latest is None:
        return format_property_code(1, prefix, width)

    code = latest.property_code
    digits = code[len(prefix):] if code.startswith(prefix) else ""
    if not digits.isdigit():
        logger.warning(f"[property] latest code '{code}' has no '{prefix}' counter; restarting at 1")
        return format_property_code(1, prefix, width)

    return format_property_code(int(digits) + 1, prefix, width)
