from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..deps import get_db, require_api_key
from ..services import aggregation

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(require_api_key)],
)

@router.get("")
def company_dashboard(
    top: int = Query(5, ge=1, le=50, description="How many top performers to list"),
    db: Session = Depends(get_db),
):
    """
    Company-wide rollup:
      - total currency sales (YTD) and quantitative progress vs. individual targets
      - salesperson counts, qualitative status counts and completion rate
      - top performers and the per-month sales trend
    """
    return aggregation.dashboard(db, top=top)

@router.get("/allocations")
def allocations(db: Session = Depends(get_db)):
    """Company target vs. handed-out individual targets, per objective."""
    return aggregation.company_totals(db)["allocations"]
