"""
Assignment distribution: equal-split suggestions, explicit (idempotent)
assignment of individual targets, and bulk seeding of global objectives.

Distribution is a one-time seeding heuristic. Individual targets may be
edited afterwards and are allowed to drift from the company target; that
delta is a reporting concern (see aggregation.allocation_summary).
"""
import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..config import settings
from ..errors import NotFound, ScorecardError
from .catalog import get_objective
from .directory import active_salespersons, count_active, get_salesperson
from .numbers import parse_amount
from .status import apply_status, status_for

logger = logging.getLogger(__name__)


def suggest_target(company_target: float, active_count: int) -> float:
    """Equal share of the company target, rounded half-up; 0 with nobody active."""
    if active_count <= 0:
        return 0.0
    share = Decimal(str(company_target)) / Decimal(active_count)
    quantum = Decimal(1).scaleb(-settings.target_precision)
    return float(share.quantize(quantum, rounding=ROUND_HALF_UP))


def suggested_target_for(db: Session, objective_id: str, active_count: int | None = None) -> float:
    obj = get_objective(db, objective_id)
    if active_count is None:
        active_count = count_active(db)
    return suggest_target(obj.company_target, active_count)


def find_assignment(db: Session, objective_id: str, salesperson_id: str) -> models.Assignment | None:
    return (
        db.query(models.Assignment)
        .filter_by(objective_id=objective_id, salesperson_id=salesperson_id)
        .first()
    )


def get_assignment(db: Session, assignment_id: str) -> models.Assignment:
    a = db.get(models.Assignment, assignment_id)
    if not a:
        raise NotFound("Assignment not found")
    return a


def _create_pair(db: Session, objective: models.QuantitativeObjective, salesperson_id: str, target: float) -> models.Assignment:
    a = models.Assignment(
        objective=objective,
        salesperson_id=salesperson_id,
        individual_target=target,
        monthly_progress={},
        current_value=0.0,
        status="pending",
    )
    db.add(a)
    return a


def _upsert(db: Session, objective, salesperson_id: str, target: float, today: date | None) -> tuple[models.Assignment, bool]:
    a = find_assignment(db, objective.id, salesperson_id)
    created = a is None
    if created:
        a = _create_pair(db, objective, salesperson_id, target)
    else:
        a.individual_target = target
    apply_status(a, today)
    try:
        db.commit()
    except IntegrityError:
        # the pair was created concurrently: fall back to updating it
        db.rollback()
        a = find_assignment(db, objective.id, salesperson_id)
        if a is None:
            raise
        a.individual_target = target
        apply_status(a, today)
        db.commit()
        created = False
    db.refresh(a)
    return a, created


def assign(db: Session, objective_id: str, salesperson_id: str, individual_target, today: date | None = None) -> models.Assignment:
    """
    Create the unique assignment for the pair, or overwrite the individual
    target of the existing one. Progress history is kept on update.
    """
    target = parse_amount(individual_target, "individual_target")
    objective = get_objective(db, objective_id)
    get_salesperson(db, salesperson_id)
    a, created = _upsert(db, objective, salesperson_id, target, today)
    logger.info(
        "[assign] %s assignment %s (objective=%s, salesperson=%s, target=%s)",
        "created" if created else "updated", a.id, objective_id, salesperson_id, target,
    )
    return a


def assign_many(db: Session, objective_id: str, entries: list[tuple[str, float]], today: date | None = None) -> list[dict]:
    """Assign several salespersons at once; per-entry failures don't stop the batch."""
    objective = get_objective(db, objective_id)
    results = []
    for salesperson_id, individual_target in entries:
        try:
            target = parse_amount(individual_target, "individual_target")
            get_salesperson(db, salesperson_id)
            a, created = _upsert(db, objective, salesperson_id, target, today)
        except ScorecardError as e:
            results.append({"salesperson_id": salesperson_id, "success": False, "error": e.message})
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("[assign] failed %s -> %s: %s", objective_id, salesperson_id, e)
            results.append({"salesperson_id": salesperson_id, "success": False, "error": str(e)})
            continue
        results.append({
            "salesperson_id": salesperson_id,
            "success": True,
            "message": "Assignment created" if created else "Assignment updated",
            "assignment": a,
        })
    return results


def update_individual_target(db: Session, assignment_id: str, individual_target, today: date | None = None) -> models.Assignment:
    target = parse_amount(individual_target, "individual_target")
    a = get_assignment(db, assignment_id)
    a.individual_target = target
    apply_status(a, today)
    db.commit()
    db.refresh(a)
    return a


def unassign(db: Session, assignment_id: str, objective_id: str | None = None) -> None:
    """Delete the assignment; re-assigning later starts from an empty history."""
    a = get_assignment(db, assignment_id)
    if objective_id is not None and a.objective_id != objective_id:
        raise NotFound("Assignment not found")
    db.delete(a)
    db.commit()
    logger.info("[assign] removed assignment %s", assignment_id)


def bulk_assign_global(db: Session) -> schemas.BulkAssignResult:
    """
    Give every active salesperson an equal-split assignment for every global
    objective they don't have yet. Existing pairs are left alone. Each pair
    commits on its own, so one failure never rolls back the others.
    """
    result = schemas.BulkAssignResult()
    objectives = (
        db.query(models.QuantitativeObjective)
        .filter(models.QuantitativeObjective.is_global.is_(True))
        .all()
    )
    people = [sp.id for sp in active_salespersons(db)]
    if not objectives or not people:
        logger.info("[bulk] nothing to do (global objectives=%d, active salespersons=%d)", len(objectives), len(people))
        return result

    existing = {
        (o, s)
        for o, s in db.query(models.Assignment.objective_id, models.Assignment.salesperson_id)
        .filter(models.Assignment.objective_id.in_([o.id for o in objectives]))
        .all()
    }
    plan = [(o.id, suggest_target(o.company_target, len(people))) for o in objectives]

    for objective_id, target in plan:
        for salesperson_id in people:
            if (objective_id, salesperson_id) in existing:
                result.skipped += 1
                continue
            pair = schemas.AssignmentPair(objective_id=objective_id, salesperson_id=salesperson_id)
            try:
                objective = db.get(models.QuantitativeObjective, objective_id)
                if objective is None:
                    raise NotFound("Quantitative objective not found")
                _create_pair(db, objective, salesperson_id, target)
                db.commit()
            except IntegrityError:
                db.rollback()
                result.skipped += 1
                continue
            except (SQLAlchemyError, ScorecardError) as e:
                db.rollback()
                logger.warning("[bulk] failed %s -> %s: %s", objective_id, salesperson_id, e)
                result.failures.append(schemas.PairFailure(pair=pair, reason=str(e)))
                continue
            result.created += 1

    logger.info(
        "[bulk] created=%d skipped=%d failures=%d",
        result.created, result.skipped, len(result.failures),
    )
    return result


def assigned_view(a: models.Assignment, today: date | None = None) -> schemas.AssignedObjective:
    target = a.individual_target or 0.0
    return schemas.AssignedObjective(
        assignment_id=a.id,
        objective=schemas.ObjectiveOut.model_validate(a.objective),
        individual_target=target,
        current_value=a.current_value or 0.0,
        completion_percentage=(a.current_value / target * 100.0) if target > 0 else 0.0,
        monthly_progress=dict(a.monthly_progress or {}),
        status=status_for(a, today).value,
    )


def objectives_for_salesperson(db: Session, salesperson_id: str, today: date | None = None) -> list:
    """
    Everything a salesperson is measured on: persisted assignments, followed
    by global objectives they have no row for yet, carrying a suggestion.
    """
    get_salesperson(db, salesperson_id)
    rows = (
        db.query(models.Assignment)
        .options(joinedload(models.Assignment.objective))
        .filter(models.Assignment.salesperson_id == salesperson_id)
        .all()
    )
    views: list = [assigned_view(a, today) for a in rows if a.objective is not None]

    assigned_ids = {a.objective_id for a in rows}
    q = db.query(models.QuantitativeObjective).filter(models.QuantitativeObjective.is_global.is_(True))
    if assigned_ids:
        q = q.filter(models.QuantitativeObjective.id.notin_(assigned_ids))
    globals_ = q.all()
    if globals_:
        active = count_active(db)
        for o in globals_:
            views.append(schemas.SuggestedObjective(
                objective=schemas.ObjectiveOut.model_validate(o),
                suggested_target=suggest_target(o.company_target, active),
            ))
    return views
