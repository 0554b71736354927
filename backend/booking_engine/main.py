import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text

from .config import settings
from .database import SessionLocal, engine
from .middleware.access_log import access_log_middleware
from .models import Base
from .redis_client import redis_client
from .routers import (
    appointments,
    audit,
    availability_rules,
    blocked_intervals,
    providers,
    services,
    slots,
)
from .services.errors import SchedulingError

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Salon Scheduling API", lifespan=lifespan)

app.middleware("http")(access_log_middleware)

app.include_router(providers.router)
app.include_router(services.router)
app.include_router(availability_rules.router)
app.include_router(blocked_intervals.router)
app.include_router(slots.router)
app.include_router(appointments.router)
app.include_router(audit.router)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
def health():
    db_ok = True
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database unreachable")
        db_ok = False
    finally:
        db.close()

    redis_ok = None
    if redis_client is not None:
        try:
            redis_ok = bool(redis_client.ping())
        except RedisError as e:
            logger.error(f"Health check: redis unreachable: {e}")
            redis_ok = False

    return {"db": db_ok, "redis": redis_ok}
