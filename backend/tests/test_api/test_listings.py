"""Tests for listing endpoints."""

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import bearer, future_dates, make_listing, make_user
from stayfinder.models.listing import Listing
from stayfinder.models.user import User
from stayfinder.services import booking_engine

pytestmark = pytest.mark.asyncio


def _listing_body(**overrides) -> dict:
    body = {
        "title": "Harbour View Apartment",
        "description": "Two-bedroom apartment overlooking the harbour, close to the old town.",
        "type": "apartment",
        "location": {
            "address": "5 Quay Street",
            "city": "Porto",
            "state": "Porto",
            "country": "Portugal",
            "coordinates": {"latitude": 41.14, "longitude": -8.61},
        },
        "price": 120,
        "capacity": {"guests": 4, "bedrooms": 2, "bathrooms": 1},
        "amenities": ["wifi", "kitchen"],
        "images": [{"url": "https://img.test/harbour.jpg", "is_primary": True}],
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# POST /api/listings
# ---------------------------------------------------------------------------


class TestCreateListing:
    async def test_host_creates_listing(self, client: AsyncClient, host_headers: dict, host_user: User) -> None:
        response = await client.post("/api/listings", json=_listing_body(), headers=host_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Listing created successfully"

        listing = body["data"]["listing"]
        assert listing["host_id"] == str(host_user.id)
        assert listing["type"] == "apartment"
        assert listing["status"] == "pending"
        assert listing["location"]["city"] == "Porto"
        assert listing["location"]["coordinates"]["latitude"] == pytest.approx(41.14)
        assert listing["full_location"] == "Porto, Porto, Portugal"
        assert listing["capacity"] == {"guests": 4, "bedrooms": 2, "bathrooms": 1, "beds": 1}
        assert listing["availability"]["check_in"] == "15:00"
        assert listing["rules"]["pets_allowed"] is False
        assert float(listing["rating"]["average"]) == 0
        assert listing["rating"]["count"] == 0
        assert listing["host"]["id"] == str(host_user.id)

    async def test_guest_cannot_create(self, client: AsyncClient, guest_headers: dict) -> None:
        response = await client.post("/api/listings", json=_listing_body(), headers=guest_headers)
        assert response.status_code == 403

    async def test_admin_can_create(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post("/api/listings", json=_listing_body(status="active"), headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["data"]["listing"]["status"] == "active"

    async def test_unknown_amenity_rejected(self, client: AsyncClient, host_headers: dict) -> None:
        response = await client.post("/api/listings", json=_listing_body(amenities=["helipad"]), headers=host_headers)
        assert response.status_code == 400

    async def test_images_required(self, client: AsyncClient, host_headers: dict) -> None:
        response = await client.post("/api/listings", json=_listing_body(images=[]), headers=host_headers)
        assert response.status_code == 400

    async def test_requires_auth(self, client: AsyncClient) -> None:
        response = await client.post("/api/listings", json=_listing_body())
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# GET /api/listings
# ---------------------------------------------------------------------------


class TestSearchListings:
    async def test_only_active_listed(self, client: AsyncClient, db_session: AsyncSession, host_user: User) -> None:
        active = await make_listing(db_session, host_user, city="Zagreb-Unique")
        await make_listing(db_session, host_user, city="Zagreb-Unique", status="inactive")

        response = await client.get("/api/listings", params={"city": "zagreb-unique"})
        assert response.status_code == 200
        ids = [item["id"] for item in response.json()["data"]["listings"]]
        assert ids == [str(active.id)]

    async def test_filters(self, client: AsyncClient, db_session: AsyncSession, host_user: User) -> None:
        country = f"Testland-{uuid.uuid4().hex[:6]}"
        cheap = await make_listing(db_session, host_user, country=country, price=Decimal("80"), amenities=["wifi"])
        pricey = await make_listing(
            db_session,
            host_user,
            country=country,
            price=Decimal("300"),
            capacity_guests=8,
            listing_type="villa",
            amenities=["pool", "garden"],
        )

        async def ids(**params) -> set[str]:
            response = await client.get("/api/listings", params={"country": country, **params})
            assert response.status_code == 200
            return {item["id"] for item in response.json()["data"]["listings"]}

        assert await ids() == {str(cheap.id), str(pricey.id)}
        assert await ids(maxPrice=100) == {str(cheap.id)}
        assert await ids(minPrice=100) == {str(pricey.id)}
        assert await ids(guests=6) == {str(pricey.id)}
        assert await ids(type="villa") == {str(pricey.id)}
        assert await ids(amenities="pool,bbq") == {str(pricey.id)}
        assert await ids(amenities="wifi,garden") == {str(cheap.id), str(pricey.id)}

    async def test_sort_by_price(self, client: AsyncClient, db_session: AsyncSession, host_user: User) -> None:
        country = f"Sortland-{uuid.uuid4().hex[:6]}"
        mid = await make_listing(db_session, host_user, country=country, price=Decimal("150"))
        low = await make_listing(db_session, host_user, country=country, price=Decimal("50"))
        high = await make_listing(db_session, host_user, country=country, price=Decimal("500"))

        response = await client.get("/api/listings", params={"country": country, "sortBy": "price", "sortOrder": "asc"})
        ids = [item["id"] for item in response.json()["data"]["listings"]]
        assert ids == [str(low.id), str(mid.id), str(high.id)]

    async def test_pagination(self, client: AsyncClient, db_session: AsyncSession, host_user: User) -> None:
        country = f"Pageland-{uuid.uuid4().hex[:6]}"
        for _ in range(3):
            await make_listing(db_session, host_user, country=country)

        response = await client.get("/api/listings", params={"country": country, "limit": 2})
        pagination = response.json()["data"]["pagination"]
        assert pagination == {"current": 1, "pages": 2, "total": 3, "has_next": True, "has_prev": False}

    async def test_invalid_sort(self, client: AsyncClient) -> None:
        response = await client.get("/api/listings", params={"sortBy": "views"})
        assert response.status_code == 400


class TestFeaturedListings:
    async def test_featured_sorted_by_rating(self, client: AsyncClient, db_session: AsyncSession, host_user: User) -> None:
        top = await make_listing(db_session, host_user, featured=True, rating_average=Decimal("5.0"))
        second = await make_listing(db_session, host_user, featured=True, rating_average=Decimal("4.9"))
        await make_listing(db_session, host_user, featured=False, rating_average=Decimal("5.0"))
        await make_listing(db_session, host_user, featured=True, status="inactive")

        response = await client.get("/api/listings/featured")
        assert response.status_code == 200
        ids = [item["id"] for item in response.json()["data"]["listings"]]
        assert ids[:2] == [str(top.id), str(second.id)]
        assert len(ids) <= 8


# ---------------------------------------------------------------------------
# GET /api/listings/{id}
# ---------------------------------------------------------------------------


class TestGetListing:
    async def test_detail_counts_views_and_lists_unavailable_dates(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        listing: Listing,
    ) -> None:
        check_in, check_out = future_dates(20, 3)
        await booking_engine.create_booking(db_session, guest_user, listing.id, check_in, check_out, adults=1)

        first = await client.get(f"/api/listings/{listing.id}")
        second = await client.get(f"/api/listings/{listing.id}")
        assert first.status_code == 200
        assert first.json()["data"]["listing"]["views"] == 1
        assert second.json()["data"]["listing"]["views"] == 2
        assert second.json()["data"]["unavailable_dates"] == [
            {"from": check_in.isoformat(), "to": check_out.isoformat()}
        ]

    async def test_not_found(self, client: AsyncClient) -> None:
        response = await client.get(f"/api/listings/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Listing not found"}


# ---------------------------------------------------------------------------
# PUT / DELETE /api/listings/{id}
# ---------------------------------------------------------------------------


class TestManageListing:
    async def test_host_updates(self, client: AsyncClient, host_headers: dict, listing: Listing) -> None:
        response = await client.put(
            f"/api/listings/{listing.id}",
            json={"price": 130, "capacity": {"guests": 6, "bedrooms": 3, "bathrooms": 2}},
            headers=host_headers,
        )
        assert response.status_code == 200
        updated = response.json()["data"]["listing"]
        assert float(updated["price"]) == 130
        assert updated["capacity"]["guests"] == 6
        assert updated["title"] == listing.title

    async def test_other_host_cannot_update(
        self, client: AsyncClient, db_session: AsyncSession, listing: Listing
    ) -> None:
        other_host = await make_user(db_session, "host")
        response = await client.put(f"/api/listings/{listing.id}", json={"price": 1}, headers=bearer(other_host))
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to update this listing"

    async def test_admin_updates(self, client: AsyncClient, admin_headers: dict, listing: Listing) -> None:
        response = await client.put(f"/api/listings/{listing.id}", json={"featured": True}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["listing"]["featured"] is True

    async def test_delete(self, client: AsyncClient, host_headers: dict, listing: Listing) -> None:
        response = await client.delete(f"/api/listings/{listing.id}", headers=host_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Listing deleted successfully"

        response = await client.get(f"/api/listings/{listing.id}")
        assert response.status_code == 404

    async def test_delete_with_active_booking_refused(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        host_headers: dict,
        guest_user: User,
        listing: Listing,
    ) -> None:
        check_in, check_out = future_dates(10, 2)
        await booking_engine.create_booking(db_session, guest_user, listing.id, check_in, check_out, adults=1)

        response = await client.delete(f"/api/listings/{listing.id}", headers=host_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot delete listing with active bookings"


class TestMyListings:
    async def test_host_sees_own_listings(
        self, client: AsyncClient, db_session: AsyncSession, host_headers: dict, host_user: User
    ) -> None:
        own = await make_listing(db_session, host_user, status="pending")
        response = await client.get("/api/listings/host/my-listings", headers=host_headers)
        assert response.status_code == 200
        ids = [item["id"] for item in response.json()["data"]["listings"]]
        assert ids == [str(own.id)]

    async def test_guest_forbidden(self, client: AsyncClient, guest_headers: dict) -> None:
        response = await client.get("/api/listings/host/my-listings", headers=guest_headers)
        assert response.status_code == 403
