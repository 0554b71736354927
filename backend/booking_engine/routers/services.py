# backend/booking_engine/routers/services.py
# - PATCH = ALLOWED
# - DELETE = soft-delete (is_active)

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_owner
from ..models import Services as DBServices
from ..schemas.actors import ActorContext
from ..schemas.services import (
    ServiceCreate,
    ServiceUpdate,
    ServiceRead,
)

router = APIRouter(prefix="/services", tags=["services"])


@router.get("/", response_model=list[ServiceRead])
def list_services(
    category: str | None = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    q = db.query(DBServices)
    if not include_inactive:
        q = q.filter(DBServices.is_active == 1)
    if category:
        q = q.filter(DBServices.category == category)
    return q.order_by(DBServices.name).all()


@router.get("/{id}", response_model=ServiceRead)
def get_service(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBServices, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
def create_service(
    data: ServiceCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    if data.offers_consultation and not data.consultation_duration_min:
        raise HTTPException(status_code=422, detail="consultation_duration_min is required")

    obj = DBServices(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=ServiceRead)
def update_service(
    id: int,
    data: ServiceUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    obj = db.get(DBServices, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(obj, field, value)

    if obj.offers_consultation and not obj.consultation_duration_min:
        db.rollback()
        raise HTTPException(status_code=422, detail="consultation_duration_min is required")

    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    obj = db.get(DBServices, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    obj.is_active = 0
    db.commit()
