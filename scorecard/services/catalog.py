"""
Objective catalog: quantitative objective definitions and qualitative
objectives with their assigned contributor sets.
"""
import logging
import math
from datetime import date

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..config import settings
from ..constants import ObjectiveKind, ObjectiveStatus
from ..errors import InvalidInput, NotFound
from .numbers import parse_amount
from .status import apply_status

logger = logging.getLogger(__name__)

OBJECTIVE_FIELDS = (
    "name", "description", "kind", "company_target", "minimum_acceptable",
    "weight", "start_date", "end_date", "is_global", "status",
)
QUALITATIVE_FIELDS = (
    "name", "description", "criteria", "comments", "evidence", "weight",
    "status", "due_date", "completion_date", "is_global",
)


def _enum_value(enum_cls, value, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise InvalidInput(f"{field} must be one of: {allowed}")


def _validate_objective(obj: models.QuantitativeObjective) -> None:
    if not (obj.name or "").strip():
        raise InvalidInput("name is required")
    obj.kind = _enum_value(ObjectiveKind, obj.kind, "kind")
    obj.status = _enum_value(ObjectiveStatus, obj.status or "pending", "status")
    obj.company_target = parse_amount(obj.company_target, "company_target")
    if obj.minimum_acceptable is not None:
        obj.minimum_acceptable = parse_amount(obj.minimum_acceptable, "minimum_acceptable")
        if obj.minimum_acceptable > obj.company_target:
            raise InvalidInput("minimum_acceptable must not exceed company_target")
    if obj.weight is not None:
        obj.weight = parse_amount(obj.weight, "weight")
        if obj.weight > 100:
            raise InvalidInput("weight must be between 0 and 100")
    if obj.start_date is None or obj.end_date is None:
        raise InvalidInput("start_date and end_date are required")
    if obj.end_date < obj.start_date:
        raise InvalidInput("end_date must not be before start_date")


def get_objective(db: Session, objective_id: str) -> models.QuantitativeObjective:
    obj = db.get(models.QuantitativeObjective, objective_id)
    if not obj:
        raise NotFound("Quantitative objective not found")
    return obj


def create_objective(db: Session, data: dict) -> models.QuantitativeObjective:
    obj = models.QuantitativeObjective(**{k: data.get(k) for k in OBJECTIVE_FIELDS if k in data})
    if obj.is_global is None:
        obj.is_global = False
    obj.status = obj.status or ObjectiveStatus.pending.value
    _validate_objective(obj)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("[catalog] created objective %s (%s, target=%s)", obj.id, obj.kind, obj.company_target)
    return obj


def update_objective(db: Session, objective_id: str, changes: dict, today: date | None = None) -> models.QuantitativeObjective:
    """
    Partial update. Threshold and end date feed status resolution, so every
    assignment of the objective is re-resolved in the same commit.
    """
    obj = get_objective(db, objective_id)
    for k in OBJECTIVE_FIELDS:
        if k in changes:
            setattr(obj, k, changes[k])
    try:
        _validate_objective(obj)
    except InvalidInput:
        db.rollback()
        raise
    for a in obj.assignments:
        apply_status(a, today)
    db.commit()
    db.refresh(obj)
    return obj


def list_objectives(
    db: Session,
    name: str | None = None,
    kind: str | None = None,
    is_global: bool | None = None,
    assignment_filter: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> dict:
    limit = limit or settings.default_page_size
    page = max(page, 1)
    q = db.query(models.QuantitativeObjective).options(
        selectinload(models.QuantitativeObjective.assignments)
    )
    if name:
        like = f"%{name}%"
        q = q.filter(or_(
            models.QuantitativeObjective.name.ilike(like),
            models.QuantitativeObjective.description.ilike(like),
        ))
    if kind:
        q = q.filter(models.QuantitativeObjective.kind == kind)
    if is_global is not None:
        q = q.filter(models.QuantitativeObjective.is_global == is_global)
    if assignment_filter == "assigned":
        q = q.filter(models.QuantitativeObjective.assignments.any())
    elif assignment_filter == "unassigned":
        q = q.filter(~models.QuantitativeObjective.assignments.any())
    elif assignment_filter:
        raise InvalidInput('assignment filter must be "assigned" or "unassigned"')

    count = q.count()
    rows = (
        q.order_by(models.QuantitativeObjective.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "count": count,
        "rows": rows,
        "total_pages": math.ceil(count / limit) if count else 0,
        "current_page": page,
    }


def delete_objective(db: Session, objective_id: str) -> int:
    """Delete the objective and, by cascade, its assignments. Returns assignments removed."""
    obj = get_objective(db, objective_id)
    removed = len(obj.assignments)
    db.delete(obj)
    db.commit()
    logger.info("[catalog] deleted objective %s with %d assignments", objective_id, removed)
    return removed


# ---------- qualitative objectives ----------

def _validate_qualitative(q: models.QualitativeObjective) -> None:
    if not (q.name or "").strip():
        raise InvalidInput("name is required")
    q.status = _enum_value(ObjectiveStatus, q.status or "pending", "status")
    if q.weight is not None:
        q.weight = parse_amount(q.weight, "weight")
        if q.weight > 100:
            raise InvalidInput("weight must be between 0 and 100")
    if q.due_date and q.completion_date and q.due_date > q.completion_date:
        raise InvalidInput("due_date must not be after completion_date")


def _salespersons_by_id(db: Session, ids: list[str]) -> list[models.Salesperson]:
    unique = list(dict.fromkeys(ids))
    if not unique:
        return []
    rows = db.query(models.Salesperson).filter(models.Salesperson.id.in_(unique)).all()
    found = {r.id for r in rows}
    missing = [i for i in unique if i not in found]
    if missing:
        raise NotFound(f"Salesperson not found: {', '.join(missing)}")
    return rows


def get_qualitative(db: Session, objective_id: str) -> models.QualitativeObjective:
    q = db.get(models.QualitativeObjective, objective_id)
    if not q:
        raise NotFound("Qualitative objective not found")
    return q


def create_qualitative(db: Session, data: dict) -> models.QualitativeObjective:
    q = models.QualitativeObjective(**{k: data.get(k) for k in QUALITATIVE_FIELDS if k in data})
    if q.is_global is None:
        q.is_global = False
    _validate_qualitative(q)
    q.salespersons = _salespersons_by_id(db, data.get("salesperson_ids") or [])
    db.add(q)
    db.commit()
    db.refresh(q)
    logger.info("[catalog] created qualitative objective %s for %d salespersons", q.id, len(q.salespersons))
    return q


def update_qualitative(db: Session, objective_id: str, changes: dict) -> models.QualitativeObjective:
    """Partial update; a given salesperson_ids list replaces the assigned set."""
    q = get_qualitative(db, objective_id)
    for k in QUALITATIVE_FIELDS:
        if k in changes:
            setattr(q, k, changes[k])
    try:
        _validate_qualitative(q)
        if changes.get("salesperson_ids") is not None:
            q.salespersons = _salespersons_by_id(db, changes["salesperson_ids"])
    except (InvalidInput, NotFound):
        db.rollback()
        raise
    db.commit()
    db.refresh(q)
    return q


def set_qualitative_status(db: Session, objective_id: str, status: str, today: date | None = None) -> models.QualitativeObjective:
    q = get_qualitative(db, objective_id)
    q.status = _enum_value(ObjectiveStatus, status, "status")
    today = today or date.today()
    # stamp completion only where it would not precede the due date
    if q.status == ObjectiveStatus.completed.value and q.completion_date is None:
        if q.due_date is None or q.due_date <= today:
            q.completion_date = today
    elif q.status != ObjectiveStatus.completed.value:
        q.completion_date = None
    db.commit()
    db.refresh(q)
    return q


def set_qualitative_evidence(db: Session, objective_id: str, evidence: str) -> models.QualitativeObjective:
    if not (evidence or "").strip():
        raise InvalidInput("Evidence URL is required")
    q = get_qualitative(db, objective_id)
    q.evidence = evidence.strip()
    db.commit()
    db.refresh(q)
    return q


def delete_qualitative(db: Session, objective_id: str) -> None:
    q = get_qualitative(db, objective_id)
    db.delete(q)
    db.commit()


def list_qualitative(
    db: Session,
    salesperson_id: str | None = None,
    status: str | None = None,
    is_global: bool | None = None,
    name: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> dict:
    limit = limit or settings.default_page_size
    page = max(page, 1)
    q = db.query(models.QualitativeObjective).options(
        selectinload(models.QualitativeObjective.salespersons)
    )
    if status:
        q = q.filter(models.QualitativeObjective.status == _enum_value(ObjectiveStatus, status, "status"))
    if is_global is not None:
        q = q.filter(models.QualitativeObjective.is_global == is_global)
    if name:
        q = q.filter(models.QualitativeObjective.name.ilike(f"%{name}%"))
    if salesperson_id:
        q = q.filter(models.QualitativeObjective.salespersons.any(models.Salesperson.id == salesperson_id))

    count = q.count()
    rows = (
        q.order_by(models.QualitativeObjective.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "count": count,
        "rows": rows,
        "total_pages": math.ceil(count / limit) if count else 0,
        "current_page": page,
    }


def qualitative_for_salesperson(db: Session, salesperson_id: str) -> list[models.QualitativeObjective]:
    """Explicitly assigned objectives plus every global one, without duplicates, ordered by id."""
    assigned = (
        db.query(models.QualitativeObjective)
        .filter(models.QualitativeObjective.salespersons.any(models.Salesperson.id == salesperson_id))
        .all()
    )
    merged = {q.id: q for q in assigned}
    for q in db.query(models.QualitativeObjective).filter(models.QualitativeObjective.is_global.is_(True)).all():
        merged.setdefault(q.id, q)
    return [merged[k] for k in sorted(merged)]
