"""
Assignment status resolution.

Status is a pure function of the assignment's year-to-date value, its
individual target, and the objective's end date / minimum threshold. It is
recomputed on every write and never latched: a correction that drops the
YTD value below target re-opens a completed assignment.
"""
import logging
from datetime import date

from sqlalchemy.orm import Session, joinedload

from .. import models
from ..constants import ObjectiveStatus

logger = logging.getLogger(__name__)


def resolve_status(
    current_value: float,
    individual_target: float,
    end_date: date | None = None,
    minimum_acceptable: float | None = None,
    today: date | None = None,
) -> ObjectiveStatus:
    today = today or date.today()
    if current_value <= 0:
        return ObjectiveStatus.pending
    if current_value >= individual_target:
        return ObjectiveStatus.completed
    if (
        end_date is not None
        and today > end_date
        and minimum_acceptable is not None
        and current_value < minimum_acceptable
    ):
        return ObjectiveStatus.not_completed
    return ObjectiveStatus.in_progress


def status_for(assignment: models.Assignment, today: date | None = None) -> ObjectiveStatus:
    """Resolve against the assignment's own objective (missing objective -> no deadline)."""
    obj = assignment.objective
    return resolve_status(
        assignment.current_value or 0.0,
        assignment.individual_target or 0.0,
        end_date=obj.end_date if obj is not None else None,
        minimum_acceptable=obj.minimum_acceptable if obj is not None else None,
        today=today,
    )


def apply_status(assignment: models.Assignment, today: date | None = None) -> bool:
    """Write the resolved status onto the row. Returns True if it changed."""
    new = status_for(assignment, today).value
    if assignment.status == new:
        return False
    assignment.status = new
    return True


def refresh_statuses(db: Session, today: date | None = None, objective_id: str | None = None) -> int:
    """
    Re-resolve stored statuses against the clock (end dates pass without any
    write happening). Caller-triggered; commits once and returns how many
    rows changed.
    """
    q = db.query(models.Assignment).options(joinedload(models.Assignment.objective))
    if objective_id:
        q = q.filter(models.Assignment.objective_id == objective_id)
    changed = sum(1 for a in q.all() if apply_status(a, today))
    db.commit()
    if changed:
        logger.info("[status] refreshed %d assignment statuses", changed)
    return changed
