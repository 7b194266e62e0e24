"""
Seed a development database: room types, rooms and one user per role.

    python init_data.py

Prints a bearer token for each seeded user so the API can be exercised
with curl right away.
"""
import asyncio
from decimal import Decimal

from sqlalchemy import select

from app.core.config import settings
from app.core.security import create_access_token
from app.database import Database
from app.models import Room, RoomType, User, UserRole

ROOM_TYPES = [
    ("Standard", "Queen bed, city view", Decimal("500000"), 2),
    ("Deluxe", "King bed, balcony", Decimal("800000"), 3),
    ("Family Suite", "Two bedrooms, kitchenette", Decimal("1200000"), 5),
]

# room_number, floor, room type name
ROOMS = [
    ("101", 1, "Standard"),
    ("102", 1, "Standard"),
    ("103", 1, "Standard"),
    ("201", 2, "Deluxe"),
    ("202", 2, "Deluxe"),
    ("301", 3, "Family Suite"),
]

USERS = [
    ("admin@hotel.local", "Hotel Admin", UserRole.ADMIN),
    ("staff@hotel.local", "Front Desk", UserRole.STAFF),
    ("guest@hotel.local", "Test Guest", UserRole.CUSTOMER),
]


async def seed(database: Database) -> None:
    await database.create_all()

    async with database.session() as session:
        async with session.begin():
            types = {}
            for name, description, price, capacity in ROOM_TYPES:
                room_type = (
                    await session.execute(select(RoomType).where(RoomType.name == name))
                ).scalar_one_or_none()
                if room_type is None:
                    room_type = RoomType(
                        name=name, description=description, base_price=price, capacity=capacity
                    )
                    session.add(room_type)
                    await session.flush()
                    print(f"Inserted room type {name}")
                types[name] = room_type

            for number, floor, type_name in ROOMS:
                exists = (
                    await session.execute(select(Room.id).where(Room.room_number == number))
                ).scalar_one_or_none()
                if exists:
                    print(f"Room {number} already exists - OK")
                    continue
                session.add(
                    Room(room_number=number, floor=floor, room_type_id=types[type_name].id)
                )
                print(f"Inserted room {number}")

            users = []
            for email, full_name, role in USERS:
                user = (
                    await session.execute(select(User).where(User.email == email))
                ).scalar_one_or_none()
                if user is None:
                    user = User(email=email, full_name=full_name, role=role)
                    session.add(user)
                    await session.flush()
                    print(f"Inserted user {email}")
                users.append(user)

        print("\nBearer tokens:")
        for user in users:
            token = create_access_token({"sub": str(user.id), "role": user.role.value})
            print(f"  {user.role.value:<9} {user.email}: {token}")


async def main() -> None:
    database = Database(settings.database_url, echo=settings.database_echo)
    try:
        await seed(database)
    finally:
        await database.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
