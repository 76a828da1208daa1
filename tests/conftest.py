import datetime
import os
import tempfile

# Point the app at a throwaway database before anything imports app.database.
_DB_DIR = tempfile.mkdtemp(prefix="booking-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["MAIL_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from app import models
from app.auth import create_access_token, create_session_token, hash_password
from app.booking.calendar import utc_today
from app.database.db import Base, SessionLocal, engine
from app.main import app

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def booking_day() -> datetime.date:
    return utc_today() + datetime.timedelta(days=7)


@pytest.fixture()
def make_user(db):
    def _make_user(email="ana@example.com", company_name="Acme", name="Ana"):
        user = models.User(
            name=name,
            email=email,
            hashed_password=hash_password(PASSWORD),
            company_name=company_name,
            phone_number="555-0100",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def user(make_user):
    return make_user()


@pytest.fixture()
def room(db):
    room = models.Room(name="Boardroom", description="Main room", capacity=10, floor=1)
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture()
def add_booking(db):
    """Insert a booking row directly, bypassing the writer's rules."""

    def _add_booking(
        user,
        room,
        day,
        start="10:00",
        end="12:00",
        full_day=False,
        status=models.BOOKING_ACTIVE,
        created_at=None,
    ):
        booking = models.Booking(
            user_id=user.id,
            room_id=room.id,
            booking_date=day,
            start_time=start,
            end_time=end,
            is_full_day_booking=full_day,
            status=status,
            created_at=created_at or models.utcnow(),
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _add_booking


@pytest.fixture()
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def admin_client(db, client):
    db.add(models.AdminUser(username="admin", hashed_password=hash_password(PASSWORD)))
    db.commit()
    client.cookies.set("admin_session", create_session_token("admin"))
    return client
