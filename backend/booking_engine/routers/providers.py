# backend/booking_engine/routers/providers.py
# - PATCH = ALLOWED
# - DELETE = soft-delete (is_active)
# - Domain relation: providers -> services

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_owner
from ..models import Providers as DBProviders, Services as DBServices, t_provider_services
from ..schemas.actors import ActorContext
from ..schemas.providers import (
    ProviderCreate,
    ProviderUpdate,
    ProviderRead,
    ProviderServiceCreate,
    ProviderServiceRead,
)

router = APIRouter(prefix="/providers", tags=["providers"])


# ---------------------------------------------------------------------
# Base CRUD
# ---------------------------------------------------------------------

@router.get("/", response_model=list[ProviderRead])
def list_providers(include_inactive: bool = False, db: Session = Depends(get_db)):
    q = db.query(DBProviders)
    if not include_inactive:
        q = q.filter(DBProviders.is_active == 1)
    return q.order_by(DBProviders.id).all()


@router.get("/{id}", response_model=ProviderRead)
def get_provider(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBProviders, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=ProviderRead, status_code=status.HTTP_201_CREATED)
def create_provider(
    data: ProviderCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    if db.query(DBProviders).filter(DBProviders.user_id == data.user_id).first():
        raise HTTPException(status_code=409, detail="Provider already exists for this user")

    obj = DBProviders(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=ProviderRead)
def update_provider(
    id: int,
    data: ProviderUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    obj = db.get(DBProviders, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(obj, field, value)

    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_provider(
    id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    obj = db.get(DBProviders, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    obj.is_active = 0
    db.commit()


# ---------------------------------------------------------------------
# Domain: Provider → Services
# ---------------------------------------------------------------------

@router.get("/{id}/services", response_model=list[ProviderServiceRead])
def list_provider_services(id: int, db: Session = Depends(get_db)):
    result = db.execute(
        select(t_provider_services).where(
            t_provider_services.c.provider_id == id,
            t_provider_services.c.is_active == 1,
        )
    )
    return [dict(row) for row in result.mappings().all()]


@router.post("/{id}/services", response_model=ProviderServiceRead, status_code=status.HTTP_201_CREATED)
def add_service_to_provider(
    id: int,
    data: ProviderServiceCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    if not db.get(DBProviders, id):
        raise HTTPException(status_code=404, detail="Provider not found")
    if not db.get(DBServices, data.service_id):
        raise HTTPException(status_code=404, detail="Service not found")

    match = (
        t_provider_services.c.provider_id == id,
        t_provider_services.c.service_id == data.service_id,
    )
    existing = db.execute(select(t_provider_services).where(*match)).first()
    if existing:
        db.execute(
            update(t_provider_services).where(*match).values(is_active=1, notes=data.notes)
        )
    else:
        db.execute(
            t_provider_services.insert().values(
                provider_id=id, service_id=data.service_id, notes=data.notes
            )
        )
    db.commit()

    return dict(db.execute(select(t_provider_services).where(*match)).mappings().one())


@router.delete("/{id}/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_provider_service(
    id: int,
    service_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_owner),
):
    db.execute(
        update(t_provider_services)
        .where(
            t_provider_services.c.provider_id == id,
            t_provider_services.c.service_id == service_id,
        )
        .values(is_active=0)
    )
    db.commit()
