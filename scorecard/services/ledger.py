"""
Monthly progress ledger.

Each assignment keeps a {"MM": value} map; recording a month replaces that
month's entry (re-submitting corrects, never double-counts), and the
year-to-date ``current_value`` is recomputed from the whole map together
with the status, in one commit. This is the only writer of current_value.

Writers on the same assignment are serialized: the row is read FOR UPDATE
where the database supports it, and the mapper's version column turns a
lost update into a StaleDataError, which is retried from a fresh read.
"""
import logging
import re
from datetime import date

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .. import models
from ..config import settings
from ..constants import MONTH_KEY_PATTERN
from ..errors import Conflict, InvalidInput, NotFound
from .numbers import parse_amount
from .status import apply_status

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(MONTH_KEY_PATTERN)


def validate_month(month) -> str:
    if not isinstance(month, str) or not _MONTH_RE.fullmatch(month):
        raise InvalidInput('Month must be in format "01" to "12"')
    return month


def year_to_date(monthly_progress: dict | None) -> float:
    return float(sum(float(v or 0) for v in (monthly_progress or {}).values()))


def _lock_assignment(db: Session, assignment_id: str) -> models.Assignment | None:
    return (
        db.query(models.Assignment)
        .filter(models.Assignment.id == assignment_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def record_month(
    db: Session,
    assignment_id: str,
    month,
    value,
    salesperson_id: str | None = None,
    today: date | None = None,
) -> models.Assignment:
    key = validate_month(month)
    amount = parse_amount(value, "value")

    for attempt in range(settings.progress_write_retries + 1):
        a = _lock_assignment(db, assignment_id)
        if a is None or (salesperson_id is not None and a.salesperson_id != salesperson_id):
            db.rollback()
            raise NotFound("Assignment not found for this salesperson" if salesperson_id else "Assignment not found")

        progress = dict(a.monthly_progress or {})
        progress[key] = amount
        a.monthly_progress = progress
        a.current_value = year_to_date(progress)
        apply_status(a, today)
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning("[ledger] concurrent write on assignment %s, retry %d", assignment_id, attempt + 1)
            continue

        db.refresh(a)
        logger.info(
            "[ledger] assignment %s month %s=%s -> ytd=%s status=%s",
            assignment_id, key, amount, a.current_value, a.status,
        )
        return a

    raise Conflict("Assignment was modified concurrently, please retry")


# public name of the write path
record_monthly_progress = record_month
