from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ..deps import get_db, require_api_key
from .. import schemas
from ..services import aggregation, catalog, distribution, status

router = APIRouter(prefix="/objectives", tags=["objectives"])

def objective_out(o, with_allocation: bool = False) -> dict:
    data = schemas.ObjectiveOut.model_validate(o).model_dump()
    if with_allocation:
        alloc = aggregation.allocation_summary(o)
        data.update({
            "sum_individual_targets": alloc["sum_individual_targets"],
            "difference": alloc["difference"],
            "assigned_count": alloc["assigned_count"],
        })
    return data

def assignment_out(a) -> dict:
    data = schemas.AssignmentOut.model_validate(a).model_dump()
    # stored status goes stale once an end date passes without a write
    data["status"] = status.status_for(a).value
    return data

# ---------- static routes first so they don't shadow /{objective_id} ----------

@router.post("/assign-global", dependencies=[Depends(require_api_key)])
def assign_global(db: Session = Depends(get_db)):
    """Seed equal-split assignments of every global objective for every active salesperson."""
    result = distribution.bulk_assign_global(db)
    return {"ok": True, "data": result.model_dump()}

@router.post("/refresh-status", dependencies=[Depends(require_api_key)])
def refresh_status(db: Session = Depends(get_db)):
    changed = status.refresh_statuses(db)
    return {"ok": True, "changed": changed}

@router.patch("/assignments/{assignment_id}", dependencies=[Depends(require_api_key)])
def update_assignment_target(assignment_id: str, payload: schemas.TargetUpdate, db: Session = Depends(get_db)):
    a = distribution.update_individual_target(db, assignment_id, payload.individual_target)
    return {"ok": True, "data": assignment_out(a)}

# ---------- catalog ----------

@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_objective(payload: schemas.ObjectiveCreate, db: Session = Depends(get_db)):
    o = catalog.create_objective(db, payload.model_dump())
    return {"ok": True, "data": objective_out(o)}

@router.get("", dependencies=[Depends(require_api_key)])
def list_objectives(
    name: str | None = Query(None, description="Matches name or description"),
    kind: str | None = Query(None, description='"currency" | "percentage" | "count"'),
    is_global: bool | None = Query(None),
    has_assignments: str | None = Query(None, description='"assigned" or "unassigned"'),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
):
    res = catalog.list_objectives(db, name, kind, is_global, has_assignments, page, limit)
    return {
        "count": res["count"],
        "rows": [objective_out(o, with_allocation=True) for o in res["rows"]],
        "total_pages": res["total_pages"],
        "current_page": res["current_page"],
    }

@router.get("/{objective_id}", dependencies=[Depends(require_api_key)])
def get_objective(objective_id: str, db: Session = Depends(get_db)):
    o = catalog.get_objective(db, objective_id)
    data = objective_out(o, with_allocation=True)
    data["assignments"] = [assignment_out(a) for a in o.assignments]
    return data

@router.put("/{objective_id}", dependencies=[Depends(require_api_key)])
def update_objective(objective_id: str, payload: schemas.ObjectiveUpdate, db: Session = Depends(get_db)):
    o = catalog.update_objective(db, objective_id, payload.model_dump(exclude_unset=True))
    return {"ok": True, "data": objective_out(o)}

@router.delete("/{objective_id}", dependencies=[Depends(require_api_key)])
def delete_objective(objective_id: str, db: Session = Depends(get_db)):
    removed = catalog.delete_objective(db, objective_id)
    return {"ok": True, "deleted": {"assignments": removed}}

# ---------- distribution ----------

@router.get("/{objective_id}/suggested-target", dependencies=[Depends(require_api_key)])
def suggested_target(
    objective_id: str,
    active_count: int | None = Query(None, ge=0, description="Defaults to the number of active salespersons"),
    db: Session = Depends(get_db),
):
    target = distribution.suggested_target_for(db, objective_id, active_count)
    return {"objective_id": objective_id, "suggested_target": target}

@router.get("/{objective_id}/allocation", dependencies=[Depends(require_api_key)])
def allocation(objective_id: str, db: Session = Depends(get_db)):
    return aggregation.objective_allocation(db, objective_id)

@router.post("/{objective_id}/assign", dependencies=[Depends(require_api_key)])
def assign(objective_id: str, payload: schemas.AssignPayload, db: Session = Depends(get_db)):
    results = distribution.assign_many(
        db, objective_id, [(e.salesperson_id, e.individual_target) for e in payload.assignments]
    )
    for r in results:
        if "assignment" in r:
            r["assignment"] = assignment_out(r["assignment"])
    return {"ok": True, "data": results}

@router.delete("/{objective_id}/assign/{assignment_id}", dependencies=[Depends(require_api_key)])
def unassign(objective_id: str, assignment_id: str, db: Session = Depends(get_db)):
    distribution.unassign(db, assignment_id, objective_id=objective_id)
    return {"ok": True}
