"""
Progress aggregation for dashboards and salesperson scorecards.

Everything here is read-only. Inputs are heterogeneous: ORM assignments,
``AssignedObjective`` views, or plain mappings shaped like an assignment
with a nested ``objective`` mapping.
``SuggestedObjective`` views are never counted as progress. An item whose
objective cannot be loaded is skipped with a warning so one bad join does
not blank a whole dashboard.
"""
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..constants import ObjectiveKind, ObjectiveStatus
from .catalog import get_objective, qualitative_for_salesperson
from .directory import get_salesperson
from .distribution import objectives_for_salesperson

logger = logging.getLogger(__name__)

CURRENCY = ObjectiveKind.currency.value


def _objective_of(item):
    """Return the objective (ORM or view) behind an item, or None if it failed to load."""
    try:
        return item.objective
    except SQLAlchemyError as e:
        logger.warning("[aggregate] skipping assignment %s: objective failed to load (%s)", getattr(item, "id", "?"), e)
        return None


def _terms(item) -> tuple[float, float, float | None, str | None, float] | None:
    """(current, individual_target, company_target, kind, weight) or None to skip."""
    if isinstance(item, schemas.SuggestedObjective):
        return None
    if isinstance(item, Mapping):
        if item.get("kind") == "suggested":
            return None
        obj = item.get("objective")
        if obj is None:
            logger.warning("[aggregate] skipping item without objective: %s", item.get("id", "?"))
            return None
        company_target, weight, kind = obj.get("company_target"), obj.get("weight"), obj.get("kind")
        current, individual = item.get("current_value"), item.get("individual_target")
    else:
        obj = _objective_of(item)
        if obj is None:
            return None
        company_target, weight, kind = obj.company_target, obj.weight, obj.kind
        current, individual = item.current_value, item.individual_target
    return (
        float(current or 0.0),
        float(individual or 0.0),
        company_target,
        kind,
        float(weight or 1.0),
    )


def weighted_numeric_progress(items: Iterable) -> float:
    """
    Weighted mean of per-objective progress, each capped at 1 before
    weighting. Progress is measured against the company target when it is
    set, else the individual target. A missing or zero weight counts as 1.
    """
    total_weight = 0.0
    weighted = 0.0
    for item in items:
        t = _terms(item)
        if t is None:
            continue
        current, individual, company_target, _kind, weight = t
        target = company_target or individual
        weighted += min(current / max(target, 1), 1.0) * weight
        total_weight += weight
    return weighted / total_weight if total_weight > 0 else 0.0


def overall_quantitative_progress(items: Iterable) -> float:
    """
    Pooled YTD over pooled individual targets, capped at 1. Company targets
    are not pooled: summed per assignment they would count once per holder.
    """
    ytd = target = 0.0
    for item in items:
        t = _terms(item)
        if t is None:
            continue
        ytd += t[0]
        target += t[1]
    return min(ytd / target, 1.0) if target > 0 else 0.0


def _status_of(item) -> str | None:
    status = item.get("status") if isinstance(item, Mapping) else getattr(item, "status", None)
    return status.value if isinstance(status, ObjectiveStatus) else status


def qualitative_completion_rate(objectives: Iterable) -> float:
    # weight is intentionally not applied here
    objectives = list(objectives)
    if not objectives:
        return 0.0
    done = sum(1 for q in objectives if _status_of(q) == ObjectiveStatus.completed.value)
    return done / len(objectives)


def qualitative_status_counts(objectives: Iterable) -> dict[str, int]:
    counts = {s.value: 0 for s in ObjectiveStatus}
    for q in objectives:
        s = _status_of(q)
        if s in counts:
            counts[s] += 1
    return counts


def total_sales(items: Iterable) -> float:
    """Sum of YTD values over currency-kind assignments."""
    total = 0.0
    for item in items:
        t = _terms(item)
        if t is not None and t[3] == CURRENCY:
            total += t[0]
    return total


def allocation_summary(objective: models.QuantitativeObjective) -> dict:
    """Company target vs. the sum of individual targets handed out for it."""
    assigned = sum(a.individual_target or 0.0 for a in objective.assignments)
    return {
        "objective_id": objective.id,
        "company_target": objective.company_target,
        "sum_individual_targets": assigned,
        "difference": objective.company_target - assigned,
        "assigned_count": len(objective.assignments),
    }


# ---------- database-backed rollups ----------

def _assignments(db: Session, salesperson_id: str | None = None) -> list[models.Assignment]:
    q = db.query(models.Assignment).options(joinedload(models.Assignment.objective))
    if salesperson_id is not None:
        q = q.filter(models.Assignment.salesperson_id == salesperson_id)
    return q.all()


def weighted_progress(db: Session, salesperson_id: str) -> float:
    get_salesperson(db, salesperson_id)
    return weighted_numeric_progress(_assignments(db, salesperson_id))


def qualitative_completion_rate_for(db: Session, salesperson_id: str) -> float:
    get_salesperson(db, salesperson_id)
    return qualitative_completion_rate(qualitative_for_salesperson(db, salesperson_id))


def objective_allocation(db: Session, objective_id: str) -> dict:
    return allocation_summary(get_objective(db, objective_id))


def company_totals(db: Session) -> dict:
    objectives = (
        db.query(models.QuantitativeObjective)
        .order_by(models.QuantitativeObjective.name.asc())
        .all()
    )
    return {
        "total_sales": total_sales(_assignments(db)),
        "allocations": [allocation_summary(o) for o in objectives],
    }


def top_performers(db: Session, limit: int = 5) -> list[dict]:
    """Active salespersons ranked by currency sales, with their summed targets."""
    people = db.query(models.Salesperson).filter(models.Salesperson.active.is_(True)).all()
    by_person = defaultdict(list)
    for a in _assignments(db):
        t = _terms(a)
        if t is not None and t[3] == CURRENCY:
            by_person[a.salesperson_id].append(t)

    rows = []
    for sp in people:
        terms = by_person.get(sp.id, [])
        sales = sum(t[0] for t in terms)
        target = sum(t[1] for t in terms)
        rows.append({
            "id": sp.id,
            "name": sp.name,
            "sales": sales,
            "target": target,
            "percentage": sales / target if target > 0 else 0.0,
        })
    rows.sort(key=lambda r: r["sales"], reverse=True)
    return rows[:limit]


def monthly_sales_trend(db: Session) -> list[dict]:
    """Recorded currency progress summed per month key, in month order."""
    months = defaultdict(float)
    for a in _assignments(db):
        obj = _objective_of(a)
        if obj is None or obj.kind != CURRENCY:
            continue
        for key, value in (a.monthly_progress or {}).items():
            months[key] += float(value or 0)
    return [{"month": k, "amount": months[k]} for k in sorted(months)]


def salesperson_scorecard(db: Session, salesperson_id: str, today: date | None = None) -> dict:
    sp = get_salesperson(db, salesperson_id)
    views = objectives_for_salesperson(db, salesperson_id, today)
    qualitative = qualitative_for_salesperson(db, salesperson_id)
    return {
        "id": sp.id,
        "name": sp.name,
        "email": sp.email,
        "active": sp.active,
        "objectives": views,
        "qualitative_objectives": qualitative,
        "total_sales": total_sales(views),
        "quantitative_progress": weighted_numeric_progress(views),
        "qualitative_progress": qualitative_completion_rate(qualitative),
    }


def dashboard(db: Session, top: int = 5) -> dict:
    assignments = _assignments(db)
    qualitative = db.query(models.QualitativeObjective).all()
    active = db.query(models.Salesperson).filter(models.Salesperson.active.is_(True)).count()
    inactive = db.query(models.Salesperson).filter(models.Salesperson.active.is_(False)).count()
    return {
        "total_sales": total_sales(assignments),
        "active_salespersons": active,
        "inactive_salespersons": inactive,
        "qualitative_objective_stats": qualitative_status_counts(qualitative),
        "qualitative_progress": qualitative_completion_rate(qualitative),
        "quantitative_progress": overall_quantitative_progress(assignments),
        "top_performers": top_performers(db, top),
        "monthly_trend": monthly_sales_trend(db),
    }
