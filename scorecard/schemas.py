from datetime import date
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field

from .constants import ObjectiveKind, ObjectiveStatus

# ---------- salespersons ----------

class SalespersonCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    active: bool = True

class SalespersonUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    active: bool | None = None

# ---------- quantitative objectives ----------

class ObjectiveCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    kind: ObjectiveKind
    company_target: float = Field(..., ge=0)
    minimum_acceptable: float | None = Field(None, ge=0)
    weight: float | None = Field(None, ge=0, le=100)
    start_date: date
    end_date: date
    is_global: bool = False

class ObjectiveUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    kind: ObjectiveKind | None = None
    company_target: float | None = Field(None, ge=0)
    minimum_acceptable: float | None = Field(None, ge=0)
    weight: float | None = Field(None, ge=0, le=100)
    start_date: date | None = None
    end_date: date | None = None
    is_global: bool | None = None
    status: ObjectiveStatus | None = None

class ObjectiveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    kind: str
    company_target: float
    minimum_acceptable: float | None = None
    weight: float | None = None
    start_date: date
    end_date: date
    is_global: bool
    status: str

class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    objective_id: str
    salesperson_id: str
    individual_target: float
    monthly_progress: dict[str, float]
    current_value: float
    status: str

class AssignEntry(BaseModel):
    salesperson_id: str
    individual_target: float

class AssignPayload(BaseModel):
    assignments: list[AssignEntry] = Field(..., min_length=1)

class TargetUpdate(BaseModel):
    individual_target: float

class MonthlyProgressPayload(BaseModel):
    assignment_id: str
    month: str                 # "01".."12"
    value: float | str         # parsed and range-checked by the ledger

# ---------- per-salesperson objective views ----------
# A persisted assignment and an unassigned global objective's suggestion are
# distinct types so aggregation can never count a suggestion as progress.

class AssignedObjective(BaseModel):
    kind: Literal["assigned"] = "assigned"
    assignment_id: str
    objective: ObjectiveOut
    individual_target: float
    current_value: float
    completion_percentage: float
    monthly_progress: dict[str, float]
    status: str

class SuggestedObjective(BaseModel):
    kind: Literal["suggested"] = "suggested"
    objective: ObjectiveOut
    suggested_target: float
    status: str = ObjectiveStatus.pending.value

SalespersonObjective = Annotated[
    Union[AssignedObjective, SuggestedObjective], Field(discriminator="kind")
]

# ---------- bulk assignment manifest ----------

class AssignmentPair(BaseModel):
    objective_id: str
    salesperson_id: str

class PairFailure(BaseModel):
    pair: AssignmentPair
    reason: str

class BulkAssignResult(BaseModel):
    created: int = 0
    skipped: int = 0
    failures: list[PairFailure] = []

# ---------- qualitative objectives ----------

class QualitativeCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    criteria: str | None = None
    comments: str | None = None
    evidence: str | None = None
    weight: float | None = Field(None, ge=0, le=100)
    status: ObjectiveStatus = ObjectiveStatus.pending
    due_date: date | None = None
    completion_date: date | None = None
    is_global: bool = False
    salesperson_ids: list[str] = []

class QualitativeUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    criteria: str | None = None
    comments: str | None = None
    evidence: str | None = None
    weight: float | None = Field(None, ge=0, le=100)
    status: ObjectiveStatus | None = None
    due_date: date | None = None
    completion_date: date | None = None
    is_global: bool | None = None
    salesperson_ids: list[str] | None = None

class QualitativeStatusUpdate(BaseModel):
    status: ObjectiveStatus

class EvidenceUpdate(BaseModel):
    evidence: str = Field(..., min_length=1)
