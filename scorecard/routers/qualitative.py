from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ..deps import get_db, require_api_key
from .. import schemas
from ..services import catalog

router = APIRouter(
    prefix="/qualitative-objectives",
    tags=["qualitative-objectives"],
    dependencies=[Depends(require_api_key)],
)

def qualitative_out(q) -> dict:
    return {
        "id": q.id,
        "name": q.name,
        "description": q.description,
        "criteria": q.criteria,
        "comments": q.comments,
        "evidence": q.evidence,
        "weight": q.weight,
        "status": q.status,
        "due_date": q.due_date.isoformat() if q.due_date else None,
        "completion_date": q.completion_date.isoformat() if q.completion_date else None,
        "is_global": q.is_global,
        "salesperson_ids": sorted(sp.id for sp in q.salespersons),
    }

@router.get("")
def list_qualitative(
    salesperson_id: str | None = Query(None),
    status: str | None = Query(None),
    is_global: bool | None = Query(None),
    name: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
):
    res = catalog.list_qualitative(db, salesperson_id, status, is_global, name, page, limit)
    return {
        "rows": [qualitative_out(q) for q in res["rows"]],
        "total_count": res["count"],
        "page": res["current_page"],
        "total_pages": res["total_pages"],
    }

@router.get("/{objective_id}")
def get_qualitative(objective_id: str, db: Session = Depends(get_db)):
    return qualitative_out(catalog.get_qualitative(db, objective_id))

@router.post("", status_code=201)
def create_qualitative(payload: schemas.QualitativeCreate, db: Session = Depends(get_db)):
    q = catalog.create_qualitative(db, payload.model_dump())
    return {"ok": True, "data": qualitative_out(q)}

@router.put("/{objective_id}")
def update_qualitative(objective_id: str, payload: schemas.QualitativeUpdate, db: Session = Depends(get_db)):
    q = catalog.update_qualitative(db, objective_id, payload.model_dump(exclude_unset=True))
    return {"ok": True, "data": qualitative_out(q)}

@router.put("/{objective_id}/status")
def update_status(objective_id: str, payload: schemas.QualitativeStatusUpdate, db: Session = Depends(get_db)):
    q = catalog.set_qualitative_status(db, objective_id, payload.status)
    return {"ok": True, "data": qualitative_out(q)}

@router.put("/{objective_id}/evidence")
def update_evidence(objective_id: str, payload: schemas.EvidenceUpdate, db: Session = Depends(get_db)):
    q = catalog.set_qualitative_evidence(db, objective_id, payload.evidence)
    return {"ok": True, "data": qualitative_out(q)}

@router.delete("/{objective_id}")
def delete_qualitative(objective_id: str, db: Session = Depends(get_db)):
    catalog.delete_qualitative(db, objective_id)
    return {"ok": True}
