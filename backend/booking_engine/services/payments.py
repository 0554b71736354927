"""
Payment Ledger.

Deposit and settlement bookkeeping attached to an appointment:
- deposit amount (percentage of the service price, default 50%)
- provider collection rule (salaried → house collects the full price,
  independent → house collects the deposit only)
- totals with additional line items and the outstanding balance
- settlement ("closing the sale"), optionally completing the appointment
- refund of a captured deposit on cancellation

Payment status only moves forward:
    pending → paid | failed,  failed → paid,  paid → refunded
"""

import logging
from datetime import datetime
from typing import Optional

from redis import Redis
from sqlalchemy.orm import Session

from ..schemas.actors import ActorContext
from .audit import record_modification, track_completion, track_payment_received
from .errors import IllegalTransition, UpstreamPaymentFailure, ValidationError
from .guards import (
    appointment_unit_of_work,
    ensure_actor_owns,
    ensure_not_terminal,
    ensure_started,
)
from .payment_gateway import PaymentGateway
from .slots.config import SchedulingConfig, format_timestamp

logger = logging.getLogger(__name__)

SETTLEMENT_METHODS = ("cash", "card_terminal", "online")

_PAYMENT_TRANSITIONS = {
    "pending": {"paid", "failed"},
    "failed": {"paid"},
    "paid": {"refunded"},
    "refunded": set(),
}


def calculate_deposit_amount(price: float, percent: float) -> float:
    """Deposit for a price, rounded to cents."""
    return round(price * percent / 100.0, 2)


def set_payment_status(appointment, new_status: str) -> None:
    """Move payment_status forward; anything else is an IllegalTransition."""
    old_status = appointment.payment_status
    if new_status == old_status:
        return
    if new_status not in _PAYMENT_TRANSITIONS.get(old_status, set()):
        raise IllegalTransition(
            f"Payment status cannot move from {old_status} to {new_status}",
            rule="payment_status_order",
        )
    appointment.payment_status = new_status


def collection_rule(provider) -> str:
    """full: house keeps the whole price; deposit: house keeps the deposit only."""
    if provider is not None and provider.employment_type == "independent":
        return "deposit"
    return "full"


def calculate_appointment_totals(appointment, service=None, provider=None) -> dict:
    """
    Totals of an appointment.

    outstanding = max(0, total_price - deposit_captured), forced to 0 once
    payment_status is "paid" (a manual settlement always wins, even if line
    items are added afterwards).
    """
    service = service if service is not None else appointment.service
    provider = provider if provider is not None else appointment.provider

    base_price = 0.0
    if service is not None and not appointment.is_consultation:
        base_price = float(service.price)

    extras_total = round(sum(item.price for item in appointment.line_items), 2)
    total_price = round(base_price + extras_total, 2)

    deposit_captured = float(appointment.deposit_amount or 0) if appointment.deposit_paid else 0.0

    is_fully_paid = appointment.payment_status == "paid"
    outstanding = 0.0 if is_fully_paid else round(max(0.0, total_price - deposit_captured), 2)

    rule = collection_rule(provider)
    expected_house_collection = total_price if rule == "full" else deposit_captured

    return {
        "appointment_id": appointment.id,
        "base_price": base_price,
        "extras_total": extras_total,
        "total_price": total_price,
        "deposit_captured": deposit_captured,
        "outstanding": outstanding,
        "is_fully_paid": is_fully_paid,
        "payment_status": appointment.payment_status,
        "collection_rule": rule,
        "expected_house_collection": round(expected_house_collection, 2),
    }


def refund_captured_deposit(appointment, gateway: PaymentGateway) -> Optional[str]:
    """
    Refund the deposit of an appointment being cancelled.

    Returns a short note for the audit record, or None when nothing was
    captured. A gateway failure never propagates: the status stays "paid"
    and the discrepancy is stored on the appointment.
    """
    if not (
        appointment.payment_status == "paid"
        and appointment.deposit_paid
        and appointment.payment_intent_id
        and appointment.deposit_amount
    ):
        return None

    try:
        gateway.refund(appointment.payment_intent_id, appointment.deposit_amount, appointment.id)
    except UpstreamPaymentFailure as e:
        appointment.payment_discrepancy = (
            f"Refund of €{appointment.deposit_amount:.2f} failed: {e.message}"
        )
        logger.error(
            f"Refund failed for appointment {appointment.id} "
            f"(payment_ref={appointment.payment_intent_id}): {e.message}"
        )
        return "deposit refund failed"

    set_payment_status(appointment, "refunded")
    appointment.deposit_paid = 0
    logger.info(
        f"Appointment {appointment.id} deposit refunded: "
        f"-{appointment.deposit_amount:.2f} EUR"
    )
    return "deposit refunded"


def record_settlement(
    db: Session,
    appointment_id: int,
    method: str,
    amount: float,
    actor: ActorContext,
    now: datetime,
    notes: Optional[str] = None,
    complete: bool = False,
    redis: Optional[Redis] = None,
    config: SchedulingConfig | None = None,
):
    """
    Record collection of the remaining balance ("closing the sale").

    Only legal on a non-terminal appointment. With complete=True the
    appointment is completed in the same operation (completion guard applies)
    and a single "completed" record is appended; otherwise a single
    "payment_received" record.
    """
    if method not in SETTLEMENT_METHODS:
        raise ValidationError(f"Unknown payment method: {method}")
    if amount is None or amount < 0:
        raise ValidationError("Settlement amount must be zero or positive")

    with appointment_unit_of_work(db, appointment_id, redis, config) as appointment:
        ensure_actor_owns(appointment, actor)
        ensure_not_terminal(appointment, "record a settlement")
        if complete:
            ensure_started(appointment, now, "complete")

        old_status = appointment.status
        stamp = format_timestamp(now)

        appointment.final_payment_amount = round(amount, 2)
        appointment.final_payment_method = method
        appointment.final_payment_received_at = stamp
        appointment.final_payment_received_by = actor.id
        appointment.final_payment_received_by_name = actor.name
        appointment.payment_notes = notes
        set_payment_status(appointment, "paid")

        if complete:
            appointment.status = "completed"
            appointment.completed_at = stamp
            appointment.completed_by = actor.id
            appointment.completed_by_name = actor.name
            appointment.completed_by_role = actor.role
            change = track_completion(actor, old_status, amount, method)
        else:
            change = track_payment_received(actor, amount, method)

        appointment.updated_at = stamp
        record_modification(db, appointment, actor, now, **change)

    logger.info(
        f"Appointment {appointment_id} settled: {amount:.2f} EUR ({method}) "
        f"by {actor.id}{', completed' if complete else ''}"
    )
    return appointment
