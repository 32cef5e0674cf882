"""Seed the database with a demo host, a demo guest, listings, and bookings.

Bookings go through the booking engine so their prices, statuses, and
refunds are exactly what the API would produce.

Run from the backend directory:
    python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete, select

from stayfinder.auth.passwords import hash_password
from stayfinder.database import async_session_factory
from stayfinder.models.booking import Booking
from stayfinder.models.listing import Listing
from stayfinder.models.review import Review
from stayfinder.models.user import User
from stayfinder.services import booking_engine

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_PASSWORD = "demo1234"

DEMO_HOST = {
    "email": "host@stayfinder.dev",
    "first_name": "Maya",
    "last_name": "Hostwell",
    "role": "host",
}

DEMO_GUEST = {
    "email": "guest@stayfinder.dev",
    "first_name": "Leo",
    "last_name": "Traveler",
    "role": "guest",
}

LISTINGS = [
    {
        "title": "Sunny Loft near the Old Port",
        "description": "Bright top-floor loft with a balcony, five minutes on foot from the harbour.",
        "listing_type": "apartment",
        "address": "12 Rue de la Loge",
        "city": "Marseille",
        "state": "Provence-Alpes-Cote d'Azur",
        "country": "France",
        "price": Decimal("100.00"),
        "capacity_guests": 4,
        "bedrooms": 2,
        "bathrooms": 1,
        "beds": 2,
        "amenities": ["wifi", "kitchen", "balcony", "washer"],
        "images": [{"url": "https://images.example.com/loft-1.jpg", "caption": "Living room", "is_primary": True}],
        "status": "active",
        "featured": True,
    },
    {
        "title": "Lakeside Cabin with Sauna",
        "description": "Quiet timber cabin on the lake shore with a wood-fired sauna and a rowing boat.",
        "listing_type": "cabin",
        "address": "Jarvitie 4",
        "city": "Kuopio",
        "state": "North Savo",
        "country": "Finland",
        "price": Decimal("185.00"),
        "capacity_guests": 6,
        "bedrooms": 3,
        "bathrooms": 1,
        "beds": 4,
        "amenities": ["wifi", "parking", "bbq", "heating"],
        "images": [{"url": "https://images.example.com/cabin-1.jpg", "caption": "Lake view", "is_primary": True}],
        "status": "active",
        "featured": False,
    },
    {
        "title": "Garden Villa with Pool",
        "description": "Four-bedroom villa with a private pool and garden, ten minutes from the beach.",
        "listing_type": "villa",
        "address": "Calle del Mar 8",
        "city": "Malaga",
        "state": "Andalusia",
        "country": "Spain",
        "price": Decimal("320.00"),
        "capacity_guests": 8,
        "bedrooms": 4,
        "bathrooms": 3,
        "beds": 5,
        "amenities": ["wifi", "pool", "garden", "air_conditioning", "parking"],
        "images": [{"url": "https://images.example.com/villa-1.jpg", "caption": "Pool", "is_primary": True}],
        "status": "pending",
        "featured": False,
    },
]


async def _reset(session) -> None:
    """Delete the demo accounts and everything that hangs off them."""
    emails = [DEMO_HOST["email"], DEMO_GUEST["email"]]
    result = await session.execute(select(User.id).where(User.email.in_(emails)))
    user_ids = list(result.scalars().all())
    if not user_ids:
        return

    print("⚠️  Demo accounts already exist. Deleting and re-seeding...")
    listing_ids = list((await session.execute(select(Listing.id).where(Listing.host_id.in_(user_ids)))).scalars())
    if listing_ids:
        await session.execute(delete(Review).where(Review.listing_id.in_(listing_ids)))
        await session.execute(delete(Booking).where(Booking.listing_id.in_(listing_ids)))
        await session.execute(delete(Listing).where(Listing.id.in_(listing_ids)))
    await session.execute(delete(User).where(User.id.in_(user_ids)))
    await session.commit()


# ---------------------------------------------------------------------------
# Main seed function
# ---------------------------------------------------------------------------


async def seed() -> None:
    """Populate the database with demo data. Idempotent."""
    async with async_session_factory() as session:
        await _reset(session)

        users = {}
        for data in (DEMO_HOST, DEMO_GUEST):
            user = User(hashed_password=hash_password(DEMO_PASSWORD), is_verified=True, **data)
            session.add(user)
            users[data["role"]] = user
        await session.flush()
        print(f"✅ Created users: {DEMO_HOST['email']}, {DEMO_GUEST['email']}")

        listings = []
        for data in LISTINGS:
            listing = Listing(host_id=users["host"].id, **data)
            session.add(listing)
            listings.append(listing)
            print(f"   🏠 {listing.title} — {listing.city} (${listing.price}/night, {listing.status})")
        await session.commit()

        guest, host = users["guest"], users["host"]
        loft, cabin = listings[0], listings[1]
        today = date.today()

        upcoming = await booking_engine.create_booking(
            session, guest, loft.id, today + timedelta(days=30), today + timedelta(days=35), adults=2
        )
        await booking_engine.confirm_booking(session, host, upcoming.id)

        await booking_engine.create_booking(
            session, guest, cabin.id, today + timedelta(days=14), today + timedelta(days=18), adults=2, children=2
        )

        cancelled = await booking_engine.create_booking(
            session, guest, loft.id, today + timedelta(days=5), today + timedelta(days=7), adults=1
        )
        _, refund = await booking_engine.cancel_booking(session, guest, cancelled.id, reason="Change of plans")
        await session.commit()

        print(f"✅ Created 3 bookings (one confirmed, one pending, one cancelled with refund ${refund})")
        print()
        print("=" * 60)
        print(f"   Host:  {DEMO_HOST['email']} / {DEMO_PASSWORD}")
        print(f"   Guest: {DEMO_GUEST['email']} / {DEMO_PASSWORD}")
        print("=" * 60)
        print("🎉 Done! You can now log in at /api/auth/login")


if __name__ == "__main__":
    asyncio.run(seed())
