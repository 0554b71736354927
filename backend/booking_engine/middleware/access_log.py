# One JSON line per request on "booking_engine.access":
# request id, method / path / status, acting user, client address, duration.
# Never touches the DB.

import json
import logging
import time
import uuid

from fastapi import Request

logger = logging.getLogger("booking_engine.access")

REQUEST_ID_HEADER = "X-Request-Id"


def _client_ip(request: Request):
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else None)


async def access_log_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    started = time.perf_counter()

    entry = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "actor_id": request.headers.get("X-Actor-Id"),
        "actor_role": request.headers.get("X-Actor-Role"),
        "ip": _client_ip(request),
    }

    try:
        response = await call_next(request)
    except Exception:
        entry["status"] = 500
        entry["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
        logger.exception(json.dumps(entry, ensure_ascii=False))
        raise

    entry["status"] = response.status_code
    entry["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)

    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(level, json.dumps(entry, ensure_ascii=False))

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
