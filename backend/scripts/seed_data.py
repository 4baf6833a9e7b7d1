"""Seed the database with a small timeshare exchange dataset.

Two resorts, one staff member each, an administrator and three owners
holding weeks of the same accommodation types, so swaps, the matcher and
night-credit redemption can be tried end to end. Bearer tokens for every
seeded user are printed at the end.

Run inside Docker:
    docker compose exec backend python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete

from timeshare.auth.jwt import create_user_token
from timeshare.database import async_session_factory, engine
from timeshare.domain.dates import add_months, utcnow
from timeshare.domain.enums import BookingOrigin, BookingStatus, UserRole, WeekStatus
from timeshare.models import (
    Booking,
    NightCredit,
    NightCreditRequest,
    Property,
    SwapRequest,
    User,
    Week,
)

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

PROPERTIES = [
    {"name": "Costa Brava Resort", "location": "Lloret de Mar, Spain"},
    {"name": "Sierra Nevada Lodge", "location": "Granada, Spain"},
]

OWNERS = [
    {"email": "ana@demo.timeshare", "name": "Ana Ruiz"},
    {"email": "ben@demo.timeshare", "name": "Ben Carter"},
    {"email": "chloe@demo.timeshare", "name": "Chloe Martin"},
]

# (owner index, property index, accommodation type, first Saturday offset in weeks)
WEEKS = [
    (0, 0, "2BR", 0),
    (0, 1, "1BR", 2),
    (1, 0, "2BR", 4),
    (1, 1, "2BR", 6),
    (2, 1, "1BR", 8),
    (2, 0, "2BR", 10),
]

# Outside the default peak periods
SEASON_START = date(2027, 3, 6)


async def seed() -> None:
    """Wipe the exchange tables and insert the demo dataset."""
    async with async_session_factory() as session:
        for model in (NightCreditRequest, SwapRequest, Booking, NightCredit, Week, User, Property):
            await session.execute(delete(model))
        await session.flush()

        properties = [Property(**data) for data in PROPERTIES]
        session.add_all(properties)
        await session.flush()
        print(f"✅ Created {len(properties)} properties")

        staff = [
            User(
                email=f"staff{i + 1}@demo.timeshare",
                name=f"{prop.name} Front Desk",
                role=UserRole.STAFF,
                property_id=prop.id,
            )
            for i, prop in enumerate(properties)
        ]
        admin = User(email="admin@demo.timeshare", name="Exchange Admin", role=UserRole.ADMIN)
        owners = [User(role=UserRole.OWNER, **data) for data in OWNERS]
        session.add_all([*staff, admin, *owners])
        await session.flush()
        print(f"✅ Created {len(staff)} staff, 1 admin, {len(owners)} owners")

        weeks = []
        for owner_idx, prop_idx, accommodation, offset in WEEKS:
            start = SEASON_START + timedelta(weeks=offset)
            weeks.append(
                Week(
                    owner_id=owners[owner_idx].id,
                    property_id=properties[prop_idx].id,
                    accommodation_type=accommodation,
                    start_date=start,
                    end_date=start + timedelta(days=7),
                    status=WeekStatus.AVAILABLE,
                    valid_until=start + timedelta(days=365),
                )
            )
        session.add_all(weeks)
        await session.flush()
        print(f"✅ Created {len(weeks)} weeks")

        # A confirmed stay that Ben can offer in a swap
        booking = Booking(
            property_id=properties[1].id,
            owner_id=owners[1].id,
            room_type="1BR",
            check_in=date(2027, 10, 2),
            check_out=date(2027, 10, 9),
            status=BookingStatus.CONFIRMED,
            origin=BookingOrigin.MARKETPLACE,
        )
        # Chloe already converted one week into credits
        credit = NightCredit(
            owner_id=owners[2].id,
            total_nights=7,
            remaining_nights=7,
            expiry_date=add_months(utcnow(), 18),
        )
        session.add_all([booking, credit])
        await session.commit()

        print()
        print("=" * 60)
        print("📊 Seed Summary")
        print("=" * 60)
        for user in [*staff, admin, *owners]:
            print(f"   {user.role.value:<6} {user.email:<26} {create_user_token(user.id)}")
        print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
