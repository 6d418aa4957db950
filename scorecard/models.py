from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy import (
    Column, String, Text, Date, DateTime, Boolean, Integer, Float, JSON,
    ForeignKey, UniqueConstraint, Index, Table,
)
from uuid import uuid4
from datetime import datetime

Base = declarative_base()

def _uuid() -> str:
    return str(uuid4())


qualitative_assignments = Table(
    "qualitative_assignments",
    Base.metadata,
    Column("salesperson_id", String, ForeignKey("salespersons.id", ondelete="CASCADE"), primary_key=True),
    Column("qualitative_objective_id", String, ForeignKey("qualitative_objectives.id", ondelete="CASCADE"), primary_key=True),
)


class Salesperson(Base):
    __tablename__ = "salespersons"
    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    assignments = relationship(
        "Assignment", back_populates="salesperson", cascade="all, delete-orphan"
    )
    qualitative_objectives = relationship(
        "QualitativeObjective", secondary=qualitative_assignments, back_populates="salespersons"
    )


class QuantitativeObjective(Base):
    __tablename__ = "quantitative_objectives"
    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    kind = Column(String, nullable=False)                      # "currency" | "percentage" | "count"
    company_target = Column(Float, nullable=False)
    minimum_acceptable = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)                      # None -> weight 1 in aggregation
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_global = Column(Boolean, default=False, nullable=False)
    status = Column(String, default="pending", nullable=False)  # informational only
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    assignments = relationship(
        "Assignment", back_populates="objective", cascade="all, delete-orphan"
    )


class Assignment(Base):
    __tablename__ = "assignments"
    id = Column(String, primary_key=True, default=_uuid)
    objective_id = Column(String, ForeignKey("quantitative_objectives.id", ondelete="CASCADE"), nullable=False)
    salesperson_id = Column(String, ForeignKey("salespersons.id", ondelete="CASCADE"), nullable=False)
    individual_target = Column(Float, nullable=False, default=0.0)
    monthly_progress = Column(JSON, nullable=False, default=dict)  # {"01": 200.0, "02": 150.0}
    current_value = Column(Float, nullable=False, default=0.0)     # sum of monthly_progress
    status = Column(String, nullable=False, default="pending")
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    objective = relationship("QuantitativeObjective", back_populates="assignments")
    salesperson = relationship("Salesperson", back_populates="assignments")

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        UniqueConstraint("salesperson_id", "objective_id", name="uq_assignment_pair"),
        Index("ix_assignments_objective", "objective_id"),
    )


class QualitativeObjective(Base):
    __tablename__ = "qualitative_objectives"
    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    criteria = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)
    evidence = Column(String, nullable=True)                   # link to evidence of completion
    weight = Column(Float, nullable=True)                      # 0-100, informational
    status = Column(String, default="pending", nullable=False)
    due_date = Column(Date, nullable=True)
    completion_date = Column(Date, nullable=True)
    is_global = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    salespersons = relationship(
        "Salesperson", secondary=qualitative_assignments, back_populates="qualitative_objectives"
    )
