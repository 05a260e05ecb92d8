"""Shared test fixtures: in-memory SQLite sessions, staff profiles, API client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marina.database import get_db
from marina.main import app
from marina.models import Base  # noqa: F401 -- registers all models
from marina.models.base import RoleEnum
from marina.models.profile import Profile


@pytest.fixture
def engine():
    """Single shared in-memory connection so the API and the test see the same rows."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def profiles(db):
    """One active profile per role, keyed by role."""
    staff = {
        role: Profile(full_name=f"Test {role.value}", role=role)
        for role in RoleEnum
    }
    db.add_all(staff.values())
    db.commit()
    return staff


@pytest.fixture
def berth(db):
    from marina.modules.berths import create_berth

    b = create_berth(db, "A-01", latitude=43.5081, longitude=16.4380, daily_rate=50.0, max_vessel_length=12.0)
    db.commit()
    return b


@pytest.fixture
def make_booking(db):
    """Factory creating a booking through the service, then forcing the status."""
    from marina.modules.bookings import create_booking

    def _make(berth, check_in, check_out, status=None, **fields):
        data = {
            "check_in_date": check_in,
            "check_out_date": check_out,
            "guest_name": fields.pop("guest_name", "Ana Horvat"),
            "vessel_name": fields.pop("vessel_name", "Bura"),
            "vessel_registration": fields.pop("vessel_registration", "ST-1234"),
            **fields,
        }
        booking = create_booking(db, berth, data)
        if status is not None:
            booking.status = status
        db.commit()
        return booking

    return _make


@pytest.fixture
def api_client(db):
    """TestClient with get_db overridden to the shared in-memory session."""
    def override_get_db():
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth(profiles):
    """auth(RoleEnum.MANAGER) -> headers identifying a caller with that role."""
    def _headers(role):
        return {"X-User-Id": str(profiles[role].profile_id)}
    return _headers

