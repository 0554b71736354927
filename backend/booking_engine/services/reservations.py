"""
Reservation Coordinator.

The only path that creates an appointment. Availability is never
"read, then trust": the overlap check is re-run inside the same
(provider, date) unit of work that inserts the row, so of two requests for
the same slot exactly one commits and the other gets SlotNoLongerAvailable.

Steps:
1. Validate provider, service, offering and client contact
2. Acquire the (provider, date) lock (ReservationTimeout if not in time)
3. Re-check the requested slot against live appointments / blocks / now
4. Insert the appointment; capture the deposit when a payment ref is given
5. Append the "created" record, commit, emit appointment_created
"""

import logging
from datetime import date, datetime
from typing import Optional

from redis import Redis
from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Appointments, Providers, Services, t_provider_services
from ..schemas.actors import ActorContext
from ..schemas.appointments import AppointmentCreate
from .audit import record_modification, track_creation
from .errors import SlotNoLongerAvailable, UpstreamPaymentFailure, ValidationError
from .events import appointment_event_payload, emit_event
from .locks import provider_day_lock
from .payment_gateway import PaymentGateway
from .payments import calculate_deposit_amount, set_payment_status
from .slots.availability import check_slot, slot_duration
from .slots.config import (
    SchedulingConfig,
    format_timestamp,
    get_scheduling_config,
    parse_date,
    within_horizon,
)

logger = logging.getLogger(__name__)


def reserve_slot(
    db: Session,
    data: AppointmentCreate,
    actor: ActorContext,
    now: datetime,
    gateway: PaymentGateway,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
) -> Appointments:
    """
    Atomically turn an available slot into an appointment.

    Raises:
        ValidationError: bad references / contact / time outside availability
        SlotNoLongerAvailable: slot is past, booked or blocked at commit time
        ReservationTimeout: the (provider, date) lock was not acquired in time
        UpstreamPaymentFailure: deposit capture failed (nothing is stored)
    """
    config = config or get_scheduling_config()
    target_date = parse_date(data.date)

    # Step 1: validate references and contact
    provider = _get_active_provider(db, data.provider_id)
    service = _get_active_service(db, data.service_id)
    if not _provider_offers_service(db, provider.id, service.id):
        raise ValidationError("The provider does not offer this service")

    if not data.client_email and not data.client_phone:
        raise ValidationError("Client email or phone is required")

    if not within_horizon(target_date, now, config.horizon_days):
        raise ValidationError(f"Bookings can be made at most {config.horizon_days} days ahead")

    duration = slot_duration(service, data.consultation)
    expected_deposit = 0.0
    if config.require_deposit and not data.consultation:
        expected_deposit = calculate_deposit_amount(service.price, config.deposit_percent)

    # Steps 2-5: one unit of work per (provider, date)
    captured: list = []
    with provider_day_lock(provider.id, data.date, redis, config):
        try:
            appointment = _reserve_locked(
                db, data, provider, service, target_date, duration,
                expected_deposit, actor, now, gateway, config, captured,
            )
            db.commit()
        except IntegrityError as e:
            db.rollback()
            _release_captured_deposit(captured, gateway)
            logger.warning(
                f"Reservation lost at commit: provider={provider.id}, "
                f"slot={data.date} {data.time}"
            )
            raise SlotNoLongerAvailable() from e
        except Exception:
            db.rollback()
            _release_captured_deposit(captured, gateway)
            raise

    db.refresh(appointment)

    logger.info(
        f"Appointment created: appointment_id={appointment.id}, "
        f"provider_id={provider.id}, service={service.name}, "
        f"time={appointment.date} {appointment.time}, status={appointment.status}"
    )

    emit_event("appointment_created", appointment_event_payload(appointment, actor))
    return appointment


def _reserve_locked(
    db: Session,
    data: AppointmentCreate,
    provider: Providers,
    service: Services,
    target_date: date,
    duration: int,
    expected_deposit: float,
    actor: ActorContext,
    now: datetime,
    gateway: PaymentGateway,
    config: SchedulingConfig,
    captured: list,
) -> Appointments:
    # Step 3: re-check against live data
    resolution = check_slot(
        db, provider.id, service, target_date, data.time, now,
        consultation=data.consultation, config=config,
    )
    if resolution is None:
        raise ValidationError("The requested time is outside the provider's availability")
    if not resolution.available:
        logger.warning(
            f"Slot no longer available ({resolution.status}): provider={provider.id}, "
            f"slot={data.date} {data.time}"
        )
        raise SlotNoLongerAvailable(reason=resolution.status)

    # Step 4: insert
    stamp = format_timestamp(now)
    requires_deposit = expected_deposit > 0
    appointment = Appointments(
        provider_id=provider.id,
        service_id=service.id,
        client_name=data.client_name,
        client_email=data.client_email,
        client_phone=data.client_phone,
        date=data.date,
        time=data.time,
        duration_minutes=duration,
        is_consultation=1 if data.consultation else 0,
        status="pending" if requires_deposit else "confirmed",
        notes=data.notes,
        requires_deposit=1 if requires_deposit else 0,
        deposit_amount=expected_deposit,
        deposit_paid=0,
        payment_status="pending",
        created_by_user_id=actor.id,
        created_by_name=actor.name,
        created_by_role=actor.role,
        created_at=stamp,
        updated_at=stamp,
    )
    db.add(appointment)
    db.flush()

    if requires_deposit and data.payment_ref:
        _capture_deposit(appointment, data.payment_ref, expected_deposit, gateway, captured)

    # Step 5: audit
    record_modification(db, appointment, actor, now, **track_creation(actor))
    return appointment


def _capture_deposit(
    appointment: Appointments,
    payment_ref: str,
    expected_deposit: float,
    gateway: PaymentGateway,
    captured: list,
) -> None:
    """
    Capture the deposit; any failure aborts the whole reservation.

    A successful capture is appended to `captured` so the caller can give
    the money back if the reservation does not commit.
    """
    result = gateway.capture_deposit(payment_ref, expected_deposit, appointment.id)
    if result.status != "captured":
        raise UpstreamPaymentFailure(
            "The deposit for this booking was not completed. Please try again."
        )
    captured.append((result, appointment.id))

    if result.amount + 0.005 < expected_deposit:
        raise UpstreamPaymentFailure("The deposit paid does not match the required amount.")

    appointment.payment_intent_id = result.reference
    appointment.deposit_amount = round(result.amount, 2)
    appointment.deposit_paid = 1
    set_payment_status(appointment, "paid")
    appointment.status = "confirmed"


def _release_captured_deposit(captured: list, gateway: PaymentGateway) -> None:
    """Refund deposits captured by a reservation that was rolled back."""
    for result, appointment_id in captured:
        try:
            gateway.refund(result.reference, result.amount, appointment_id)
        except UpstreamPaymentFailure as e:
            logger.error(
                f"Refund after failed reservation did not go through: "
                f"payment_ref={result.reference}, amount={result.amount:.2f}: {e.message}"
            )
            continue
        logger.warning(
            f"Deposit refunded after failed reservation: "
            f"payment_ref={result.reference}, amount={result.amount:.2f}"
        )
    captured.clear()


# ── Database helpers ─────────────────────────────────────────────────────


def _get_active_provider(db: Session, provider_id: int) -> Providers:
    provider = db.get(Providers, provider_id)
    if not provider or not provider.is_active:
        raise ValidationError("Provider not found or inactive")
    return provider


def _get_active_service(db: Session, service_id: int) -> Services:
    service = db.get(Services, service_id)
    if not service or not service.is_active:
        raise ValidationError("Service not found or inactive")
    return service


def _provider_offers_service(db: Session, provider_id: int, service_id: int) -> bool:
    stmt = select(
        exists().where(
            t_provider_services.c.provider_id == provider_id,
            t_provider_services.c.service_id == service_id,
            t_provider_services.c.is_active == 1,
        )
    )
    return bool(db.execute(stmt).scalar())
