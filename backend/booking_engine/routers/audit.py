# backend/booking_engine/routers/audit.py

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import AppointmentModifications as DBModifications
from ..schemas.audit import AuditEntryRead


router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/", response_model=list[AuditEntryRead])
def list_audit(
    action: Optional[str] = None,
    actor_id: Optional[str] = None,
    appointment_id: Optional[int] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    """
    Read-only feed of appointment modifications, newest first.

    Filters:
    - action (exact match)
    - actor_id
    - appointment_id
    - limit (default 50, max enforced here)
    """
    q = db.query(DBModifications)

    if action:
        q = q.filter(DBModifications.action == action)

    if actor_id:
        q = q.filter(DBModifications.actor_id == actor_id)

    if appointment_id:
        q = q.filter(DBModifications.appointment_id == appointment_id)

    return (
        q.order_by(DBModifications.timestamp.desc(), DBModifications.id.desc())
        .limit(min(limit, 200))
        .all()
    )


@router.get("/{id}", response_model=AuditEntryRead)
def get_audit(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBModifications, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj
