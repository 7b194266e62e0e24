"""
Pytest configuration for booking core tests
"""
import sys
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

# Ensure app is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.rate_limiter import limiter  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.database import Base, Database  # noqa: E402
from app.models import Room, RoomType, User, UserRole  # noqa: E402
from app.services.receipt_storage import ReceiptStorage  # noqa: E402

STANDARD_PRICE = Decimal("500000")
DELUXE_PRICE = Decimal("1000000")


def _seed(sync_url: str) -> dict:
    """
    Rooms 1-5 are Standard (500,000/night, 2 guests), room 6 is Deluxe.
    Users: 1 admin, 2 staff, 3 guest, 4 another guest.
    """
    engine = create_engine(sync_url)
    Base.metadata.create_all(engine)
    with Session(engine, expire_on_commit=False) as session:
        standard = RoomType(name="Standard", base_price=STANDARD_PRICE, capacity=2)
        deluxe = RoomType(name="Deluxe", base_price=DELUXE_PRICE, capacity=4)
        session.add_all([standard, deluxe])
        session.flush()

        for i in range(1, 6):
            session.add(Room(id=i, room_number=f"10{i}", floor=1, room_type_id=standard.id))
        session.add(Room(id=6, room_number="201", floor=2, room_type_id=deluxe.id))

        users = {
            "admin": User(id=1, email="admin@test.local", full_name="Admin", role=UserRole.ADMIN),
            "staff": User(id=2, email="staff@test.local", full_name="Staff", role=UserRole.STAFF),
            "guest": User(id=3, email="guest@test.local", full_name="Guest", role=UserRole.CUSTOMER),
            "other": User(id=4, email="other@test.local", full_name="Other", role=UserRole.CUSTOMER),
        }
        session.add_all(users.values())
        session.commit()
    engine.dispose()
    return users


@pytest.fixture(autouse=True)
def disable_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def db_file(tmp_path):
    return tmp_path / "test.db"


@pytest.fixture
def users(db_file):
    """Seeds the database file and returns the (detached) seeded users by role key."""
    return _seed(f"sqlite:///{db_file}")


@pytest.fixture
def database_url(db_file, users):
    return f"sqlite+aiosqlite:///{db_file}"


@pytest_asyncio.fixture
async def database(database_url):
    db = Database(database_url)
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def receipt_storage(tmp_path):
    return ReceiptStorage(base_dir=str(tmp_path / "receipts"))


@pytest.fixture
def client(database_url, receipt_storage):
    from fastapi.testclient import TestClient

    from app.main import create_app

    app = create_app(database=Database(database_url))
    app.state.payment_service.receipt_storage = receipt_storage
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(users):
    """auth_headers("guest") -> Authorization header for that seeded user."""

    def _headers(key: str) -> dict:
        user = users[key]
        token = create_access_token({"sub": str(user.id), "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def booking_payload():
    """Scenario booking: room 5, two nights in March 2025."""
    return {
        "room_id": 5,
        "check_in_date": "2025-03-01",
        "check_out_date": "2025-03-03",
        "guest_count": 2,
        "total_price": 1000000,
        "payment_method": "bank_transfer",
    }
