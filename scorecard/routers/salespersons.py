from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ..deps import get_db, require_api_key
from .. import schemas
from ..services import aggregation, directory, distribution, ledger
from .objectives import assignment_out
from .qualitative import qualitative_out

router = APIRouter(prefix="/salespersons", tags=["salespersons"])

def salesperson_out(sp) -> dict:
    return {"id": sp.id, "name": sp.name, "email": sp.email, "active": sp.active}

@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_salesperson(payload: schemas.SalespersonCreate, db: Session = Depends(get_db)):
    sp = directory.create_salesperson(db, payload.name, payload.email, payload.active)
    return {"ok": True, "data": salesperson_out(sp)}

@router.get("", dependencies=[Depends(require_api_key)])
def list_salespersons(
    active: bool | None = Query(None, description="Filter by active flag"),
    db: Session = Depends(get_db),
):
    return [salesperson_out(sp) for sp in directory.list_salespersons(db, active)]

@router.get("/{salesperson_id}", dependencies=[Depends(require_api_key)])
def get_salesperson(salesperson_id: str, db: Session = Depends(get_db)):
    """Scorecard: objectives (assigned + suggested), qualitative goals and progress rates."""
    card = aggregation.salesperson_scorecard(db, salesperson_id)
    card["objectives"] = [v.model_dump() for v in card["objectives"]]
    card["qualitative_objectives"] = [qualitative_out(q) for q in card["qualitative_objectives"]]
    return card

@router.put("/{salesperson_id}", dependencies=[Depends(require_api_key)])
def update_salesperson(salesperson_id: str, payload: schemas.SalespersonUpdate, db: Session = Depends(get_db)):
    sp = directory.update_salesperson(db, salesperson_id, payload.model_dump(exclude_unset=True))
    return {"ok": True, "data": salesperson_out(sp)}

@router.delete("/{salesperson_id}", dependencies=[Depends(require_api_key)])
def delete_salesperson(salesperson_id: str, db: Session = Depends(get_db)):
    removed = directory.delete_salesperson(db, salesperson_id)
    return {"ok": True, "data": removed}

@router.get("/{salesperson_id}/objectives", dependencies=[Depends(require_api_key)])
def list_objectives(salesperson_id: str, db: Session = Depends(get_db)):
    return [v.model_dump() for v in distribution.objectives_for_salesperson(db, salesperson_id)]

@router.post("/{salesperson_id}/objectives/monthly", dependencies=[Depends(require_api_key)])
def record_monthly_progress(salesperson_id: str, payload: schemas.MonthlyProgressPayload, db: Session = Depends(get_db)):
    a = ledger.record_month(db, payload.assignment_id, payload.month, payload.value, salesperson_id=salesperson_id)
    return {"ok": True, "data": assignment_out(a)}

@router.get("/{salesperson_id}/progress", dependencies=[Depends(require_api_key)])
def progress(salesperson_id: str, db: Session = Depends(get_db)):
    return {
        "salesperson_id": salesperson_id,
        "weighted_progress": aggregation.weighted_progress(db, salesperson_id),
        "qualitative_completion_rate": aggregation.qualitative_completion_rate_for(db, salesperson_id),
    }
