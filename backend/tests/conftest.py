"""Shared fixtures: temp SQLite database, seeded salon, fake payments, fixed clock."""

import os
import tempfile
from datetime import datetime
from types import SimpleNamespace

# Settings are read at import time; point them at a scratch location first.
_SCRATCH = tempfile.mkdtemp(prefix="booking_engine_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{_SCRATCH}/app.db"
os.environ["REDIS_URL"] = ""
os.environ["PAYMENTS_API_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert
from sqlalchemy.orm import sessionmaker

from booking_engine.database import get_db, make_engine
from booking_engine.deps import get_config, get_now
from booking_engine.models import (
    AvailabilityRules,
    Base,
    Providers,
    Services,
    t_provider_services,
)
from booking_engine.redis_client import get_redis
from booking_engine.schemas.actors import ActorContext
from booking_engine.schemas.appointments import AppointmentCreate
from booking_engine.services.errors import UpstreamPaymentFailure
from booking_engine.services.payment_gateway import (
    PaymentGateway,
    PaymentResult,
    get_payment_gateway,
)
from booking_engine.services.reservations import reserve_slot
from booking_engine.services.slots.config import SchedulingConfig

# Sunday noon; MONDAY is the next day.
NOW = datetime(2026, 3, 1, 12, 0)
MONDAY = "2026-03-02"
TUESDAY = "2026-03-03"


class FakeGateway(PaymentGateway):
    """Records calls; capture / refund can be switched to fail."""

    def __init__(self):
        self.captures = []
        self.refunds = []
        self.fail_capture = False
        self.fail_refund = False
        self.capture_status = "captured"

    def capture_deposit(self, payment_ref, amount, appointment_id):
        self.captures.append((payment_ref, amount, appointment_id))
        if self.fail_capture:
            raise UpstreamPaymentFailure("The payment was declined")
        return PaymentResult(status=self.capture_status, reference=f"pi_{payment_ref}", amount=amount)

    def refund(self, payment_ref, amount, appointment_id):
        self.refunds.append((payment_ref, amount, appointment_id))
        if self.fail_refund:
            raise UpstreamPaymentFailure("Refund rejected")
        return PaymentResult(status="refunded", reference=payment_ref, amount=amount)


class FakeRedis:
    """In-memory stand-in for the sorted-set calls the slot cache makes."""

    def __init__(self):
        self.data = {}

    def pipeline(self):
        return _FakePipeline(self)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    def zadd(self, key, mapping):
        self.data.setdefault(key, {}).update(mapping)

    def expire(self, key, ttl):
        return True

    def exists(self, key):
        return 1 if key in self.data else 0

    def zrangebyscore(self, key, min_score, max_score):
        members = self.data.get(key, {})
        return [m for m, s in sorted(members.items(), key=lambda kv: kv[1]) if s >= min_score]

    def scan_iter(self, match):
        prefix = match.rstrip("*")
        return [k for k in list(self.data) if k.startswith(prefix)]


class _FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.ops = []

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self.ops.append((name, args, kwargs))
        return queue

    def execute(self):
        return [getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self.ops]


class Clock:
    def __init__(self, now):
        self.now = now


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def config():
    return SchedulingConfig(
        timezone="Europe/Madrid",
        deposit_percent=50.0,
        require_deposit=True,
        lock_timeout_seconds=5.0,
        lock_ttl_seconds=30.0,
        min_advance_minutes=0,
        horizon_days=60,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def owner():
    return ActorContext(id="owner-1", name="Olivia", role="owner")


@pytest.fixture
def ana():
    """Employee who is the provider of the seeded appointments."""
    return ActorContext(id="user-ana", name="Ana", role="employee")


@pytest.fixture
def ben():
    """Another employee."""
    return ActorContext(id="user-ben", name="Ben", role="employee")


@pytest.fixture
def client_actor():
    return ActorContext(id="client-7", name="Carla", role="client")


@pytest.fixture
def salon(db):
    """
    Two providers and two services.

    Ana (salaried) and Ben (independent) both work Mondays 09:00-12:00 and
    offer the 30-minute haircut (40 EUR) and the 60-minute color (80 EUR,
    with a free 15-minute consultation).
    """
    ana_provider = Providers(user_id="user-ana", display_name="Ana", employment_type="salaried")
    ben_provider = Providers(user_id="user-ben", display_name="Ben", employment_type="independent")
    haircut = Services(name="Haircut", duration_min=30, price=40.0, category="hair")
    color = Services(
        name="Color",
        duration_min=60,
        price=80.0,
        category="hair",
        offers_consultation=1,
        consultation_duration_min=15,
    )
    db.add_all([ana_provider, ben_provider, haircut, color])
    db.flush()

    for provider in (ana_provider, ben_provider):
        for service in (haircut, color):
            db.execute(
                insert(t_provider_services).values(provider_id=provider.id, service_id=service.id)
            )
        db.add(AvailabilityRules(
            provider_id=provider.id,
            day_of_week=0,
            start_time="09:00",
            end_time="12:00",
        ))
    db.commit()

    return SimpleNamespace(
        provider_id=ana_provider.id,
        other_provider_id=ben_provider.id,
        haircut_id=haircut.id,
        color_id=color.id,
    )


@pytest.fixture
def book(db, salon, owner, gateway, config):
    """Factory reserving a Monday slot with Ana (or the given provider)."""

    def _book(time="10:00", payment_ref=None, provider_id=None, service_id=None,
              date=MONDAY, consultation=False, actor=None, now=NOW):
        data = AppointmentCreate(
            provider_id=provider_id or salon.provider_id,
            service_id=service_id or salon.haircut_id,
            date=date,
            time=time,
            client_name="Maria Lopez",
            client_email="maria@example.com",
            client_phone="+34 600 123 456",
            consultation=consultation,
            payment_ref=payment_ref,
        )
        return reserve_slot(db, data, actor or owner, now, gateway, None, config)

    return _book


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def client(session_factory, salon, config, gateway, clock):
    """TestClient over the seeded database with clock, gateway and Redis overridden."""
    from booking_engine.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock.now
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_redis] = lambda: None

    yield TestClient(app)

    app.dependency_overrides.clear()


def actor_headers(actor: ActorContext) -> dict:
    return {"X-Actor-Id": actor.id, "X-Actor-Name": actor.name, "X-Actor-Role": actor.role}
