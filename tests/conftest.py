"""
Shared fixtures: an in-memory database, a frozen clock, fake gateways and
factories for users, services and booking requests.
"""

import itertools
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import GatewayError
from app.core.security import create_access_token, get_password_hash
from app.database import Base, get_db
from app.core.dependencies import get_booking_service
from app.models import Service, ServiceCategory, User, UserPushToken, UserRole
from app.schemas.booking import BookingCreate
from app.services.booking_service import BookingService
from app.services.gateways import NotificationGateway, NotificationResult, PaymentGateway, RefundResult

BRUSSELS = ZoneInfo("Europe/Brussels")

# Monday 2025-06-02, 10:00 in Brussels
NOW = datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc)
TODAY = date(2025, 6, 2)
TOMORROW = TODAY + timedelta(days=1)

PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta):
        self.now = self.now + delta


class RecordingNotificationGateway(NotificationGateway):
    def __init__(self):
        self.sent = []

    def send(self, tokens, title, body, data=None):
        self.sent.append({"tokens": list(tokens), "title": title, "body": body, "data": dict(data or {})})
        return NotificationResult(success_count=len(tokens), failure_count=0)


class FailingNotificationGateway(NotificationGateway):
    def send(self, tokens, title, body, data=None):
        raise GatewayError("push service unavailable")


class RecordingPaymentGateway(PaymentGateway):
    def __init__(self):
        self.refunds = []

    def refund(self, payment_intent_id, amount_minor_units):
        self.refunds.append((payment_intent_id, amount_minor_units))
        return RefundResult(refund_id=f"re_{len(self.refunds)}", status="succeeded", amount=amount_minor_units)


class FailingPaymentGateway(PaymentGateway):
    def __init__(self):
        self.attempts = 0

    def refund(self, payment_intent_id, amount_minor_units):
        self.attempts += 1
        raise GatewayError("card declined")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def notifications():
    return RecordingNotificationGateway()


@pytest.fixture
def payments():
    return RecordingPaymentGateway()


@pytest.fixture
def booking_service(db, notifications, payments, clock):
    return BookingService(
        db,
        notifications=notifications,
        payments=payments,
        clock=clock,
        tz=BRUSSELS,
        cancellation_cutoff=timedelta(hours=2),
        max_past=timedelta(hours=24),
    )


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role=UserRole.CUSTOMER, email=None, push_tokens=("device-token",), **fields):
        n = next(counter)
        user = User(
            email=email or f"user{n}@example.com",
            password=PASSWORD_HASH,
            first_name="Test",
            last_name=f"User{n}",
            role=role,
            **fields,
        )
        user.push_tokens = [UserPushToken(token=t) for t in push_tokens]
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def staff(make_user):
    return make_user(role=UserRole.STAFF, push_tokens=())


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, push_tokens=())


@pytest.fixture
def make_service(db):
    def _make(price=25.0, duration=30, loyalty_points=10, category=ServiceCategory.BASIC,
              seasonal_pricing=None, is_active=True, name="Basic wash", **fields):
        service = Service(
            name={"nl": name, "fr": name, "en": name},
            description={"nl": "Wassen", "fr": "Lavage", "en": "Wash"},
            category=category,
            price=price,
            duration=duration,
            loyalty_points_earned=loyalty_points,
            seasonal_pricing=seasonal_pricing or [],
            is_active=is_active,
            **fields,
        )
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    return _make


@pytest.fixture
def booking_request():
    def _make(service_id, start="10:00", end="11:00", scheduled_date=TOMORROW, quantity=1, **fields):
        payload = {
            "services": [{"service_id": service_id, "quantity": quantity}],
            "scheduled_date": scheduled_date,
            "time_slot": {"start": start, "end": end},
            "vehicle": {"type": "car", "make": "Volvo", "license_plate": "1abc123"},
        }
        payload.update(fields)
        return BookingCreate.model_validate(payload)

    return _make


@pytest.fixture
def client(db, booking_service):
    from app.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_booking_service] = lambda: booking_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(data={'user_id': user.id})}"}
