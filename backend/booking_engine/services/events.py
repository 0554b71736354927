"""
backend/booking_engine/services/events.py

Event emitter: pushes appointment events to a Redis queue for the
notification dispatcher (email / SMS delivery lives there).

Queue:
- events:p2p: appointment_created / appointment_rescheduled / appointment_cancelled

Emission is best-effort: a failure here never rolls back the mutation that
produced the event.
"""

import json
import time
import logging

from .. import redis_client as redis_module

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the dispatcher loop.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }

    client = redis_module.redis_client
    if client is None:
        logger.info(f"Event not queued (no Redis): {event_type}")
        return

    try:
        client.rpush(P2P_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def appointment_event_payload(appointment, actor) -> dict:
    return {
        "appointment_id": appointment.id,
        "provider_id": appointment.provider_id,
        "service_id": appointment.service_id,
        "date": appointment.date,
        "time": appointment.time,
        "status": appointment.status,
        "client": {
            "name": appointment.client_name,
            "email": appointment.client_email,
            "phone": appointment.client_phone,
        },
        "initiated_by": {
            "user_id": actor.id,
            "role": actor.role,
        },
    }
