"""Contributor directory (salespersons) consumed by distribution and aggregation."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..errors import Conflict, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def get_salesperson(db: Session, salesperson_id: str) -> models.Salesperson:
    sp = db.get(models.Salesperson, salesperson_id)
    if not sp:
        raise NotFound("Salesperson not found")
    return sp


def list_salespersons(db: Session, active: bool | None = None) -> list[models.Salesperson]:
    q = db.query(models.Salesperson)
    if active is not None:
        q = q.filter(models.Salesperson.active == active)
    return q.order_by(models.Salesperson.name.asc()).all()


def active_salespersons(db: Session) -> list[models.Salesperson]:
    return list_salespersons(db, active=True)


def count_active(db: Session) -> int:
    return db.query(models.Salesperson).filter(models.Salesperson.active.is_(True)).count()


def _commit_unique_email(db: Session, email: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(f"Email already registered: {email}")


def create_salesperson(db: Session, name: str, email: str, active: bool = True) -> models.Salesperson:
    if not (name or "").strip() or not (email or "").strip():
        raise InvalidInput("name and email are required")
    sp = models.Salesperson(name=name.strip(), email=email.strip().lower(), active=active)
    db.add(sp)
    _commit_unique_email(db, sp.email)
    db.refresh(sp)
    logger.info("[directory] created salesperson %s", sp.id)
    return sp


def update_salesperson(db: Session, salesperson_id: str, changes: dict) -> models.Salesperson:
    sp = get_salesperson(db, salesperson_id)
    if "name" in changes and changes["name"] is not None:
        if not changes["name"].strip():
            raise InvalidInput("name cannot be empty")
        sp.name = changes["name"].strip()
    if "email" in changes and changes["email"] is not None:
        sp.email = changes["email"].strip().lower()
    if "active" in changes and changes["active"] is not None:
        sp.active = bool(changes["active"])
    _commit_unique_email(db, sp.email)
    db.refresh(sp)
    return sp


def delete_salesperson(db: Session, salesperson_id: str) -> dict:
    """
    Remove the salesperson together with their assignments and qualitative
    links. Qualitative objectives themselves (shared with others) are kept.
    """
    sp = get_salesperson(db, salesperson_id)
    removed_quantitative = len(sp.assignments)
    removed_qualitative = len(sp.qualitative_objectives)
    sp.qualitative_objectives = []
    db.delete(sp)
    db.commit()
    logger.info(
        "[directory] deleted salesperson %s (assignments=%d, qualitative links=%d)",
        salesperson_id, removed_quantitative, removed_qualitative,
    )
    return {
        "removed_quantitative_objectives": removed_quantitative,
        "removed_qualitative_objectives": removed_qualitative,
    }
