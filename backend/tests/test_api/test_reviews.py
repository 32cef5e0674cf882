"""Tests for review endpoints and listing rating updates."""

import uuid
from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import bearer, future_dates, make_user
from stayfinder.api.routes.reviews import is_duplicate_review
from stayfinder.models.booking import Booking
from stayfinder.models.listing import Listing
from stayfinder.models.review import Review
from stayfinder.models.user import User
from stayfinder.services import booking_engine


async def _completed_booking(db: AsyncSession, guest: User, host: User, listing: Listing, offset: int = 30) -> Booking:
    check_in, check_out = future_dates(offset, 2)
    booking = await booking_engine.create_booking(db, guest, listing.id, check_in, check_out, adults=1)
    await booking_engine.confirm_booking(db, host, booking.id)
    return await booking_engine.complete_booking(db, booking)


def _review_body(booking: Booking, overall: int = 5, **ratings) -> dict:
    return {
        "booking_id": str(booking.id),
        "ratings": {"overall": overall, **ratings},
        "comment": "Spotless flat and a very responsive host.",
    }


class TestCreateReview:
    async def test_guest_reviews_completed_stay(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        host_user: User,
        guest_headers: dict,
        listing: Listing,
    ) -> None:
        booking = await _completed_booking(db_session, guest_user, host_user, listing)

        response = await client.post(
            "/api/reviews", json=_review_body(booking, overall=4, cleanliness=5), headers=guest_headers
        )
        assert response.status_code == 201
        review = response.json()["data"]["review"]
        assert review["listing_id"] == str(listing.id)
        assert review["reviewer_id"] == str(guest_user.id)
        assert review["host_id"] == str(host_user.id)
        assert review["ratings"]["overall"] == 4
        assert review["ratings"]["cleanliness"] == 5
        assert review["ratings"]["value"] is None
        assert review["host_response"] is None
        assert review["reviewer"]["id"] == str(guest_user.id)

        await db_session.refresh(listing)
        assert float(listing.rating_average) == 4.0
        assert listing.rating_count == 1

    async def test_rating_is_mean_of_reviews(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        host_user: User,
        listing: Listing,
    ) -> None:
        for offset, overall in ((30, 5), (40, 4), (50, 4)):
            guest = await make_user(db_session, "guest")
            booking = await _completed_booking(db_session, guest, host_user, listing, offset=offset)
            response = await client.post("/api/reviews", json=_review_body(booking, overall), headers=bearer(guest))
            assert response.status_code == 201

        await db_session.refresh(listing)
        assert float(listing.rating_average) == 4.3
        assert listing.rating_count == 3

    async def test_only_completed_bookings(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        guest_headers: dict,
        listing: Listing,
    ) -> None:
        check_in, check_out = future_dates(30, 2)
        booking = await booking_engine.create_booking(db_session, guest_user, listing.id, check_in, check_out, adults=1)

        response = await client.post("/api/reviews", json=_review_body(booking), headers=guest_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "You can only review completed bookings"

    async def test_only_own_bookings(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        host_user: User,
        other_guest_headers: dict,
        listing: Listing,
    ) -> None:
        booking = await _completed_booking(db_session, guest_user, host_user, listing)
        response = await client.post("/api/reviews", json=_review_body(booking), headers=other_guest_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "You can only review your own bookings"

    async def test_duplicate_review(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        host_user: User,
        guest_headers: dict,
        listing: Listing,
    ) -> None:
        booking = await _completed_booking(db_session, guest_user, host_user, listing)
        first = await client.post("/api/reviews", json=_review_body(booking), headers=guest_headers)
        assert first.status_code == 201

        second = await client.post("/api/reviews", json=_review_body(booking, 1), headers=guest_headers)
        assert second.status_code == 400
        assert second.json()["message"] == "Review already exists for this booking"

    async def test_unique_violation_on_insert_reported_as_duplicate(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        host_user: User,
        guest_headers: dict,
        listing: Listing,
        monkeypatch,
    ) -> None:
        booking = await _completed_booking(db_session, guest_user, host_user, listing)

        async def rejected_flush(*args, **kwargs):
            raise IntegrityError("INSERT INTO reviews", {}, Exception("UNIQUE constraint failed: reviews.booking_id"))

        monkeypatch.setattr(db_session, "flush", rejected_flush)
        response = await client.post("/api/reviews", json=_review_body(booking), headers=guest_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Review already exists for this booking"

    async def test_other_integrity_errors_not_masked(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        host_user: User,
        guest_headers: dict,
        listing: Listing,
        monkeypatch,
    ) -> None:
        booking = await _completed_booking(db_session, guest_user, host_user, listing)

        async def rejected_flush(*args, **kwargs):
            raise IntegrityError("INSERT INTO reviews", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(db_session, "flush", rejected_flush)
        with pytest.raises(IntegrityError):
            await client.post("/api/reviews", json=_review_body(booking), headers=guest_headers)

    async def test_booking_not_found(self, client: AsyncClient, guest_headers: dict) -> None:
        body = {"booking_id": str(uuid.uuid4()), "ratings": {"overall": 5}, "comment": "Great"}
        response = await client.post("/api/reviews", json=body, headers=guest_headers)
        assert response.status_code == 404

    @pytest.mark.parametrize("overall", [0, 6])
    async def test_rating_out_of_range(self, client: AsyncClient, guest_headers: dict, overall: int) -> None:
        body = {"booking_id": str(uuid.uuid4()), "ratings": {"overall": overall}, "comment": "Great"}
        response = await client.post("/api/reviews", json=body, headers=guest_headers)
        assert response.status_code == 400


class TestListingReviews:
    async def test_public_reviews_newest_first(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        host_user: User,
        listing: Listing,
    ) -> None:
        reviews = []
        for offset, created in ((30, datetime(2024, 1, 1)), (40, datetime(2024, 2, 1)), (50, datetime(2024, 3, 1))):
            guest = await make_user(db_session, "guest")
            booking = await _completed_booking(db_session, guest, host_user, listing, offset=offset)
            review = Review(
                listing_id=listing.id,
                booking_id=booking.id,
                reviewer_id=guest.id,
                host_id=host_user.id,
                overall=5,
                comment="Would stay again",
                created_at=created,
            )
            db_session.add(review)
            reviews.append(review)
        reviews[1].is_public = False
        await db_session.flush()

        response = await client.get(f"/api/reviews/listing/{listing.id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert [r["id"] for r in data["reviews"]] == [str(reviews[2].id), str(reviews[0].id)]
        assert data["pagination"]["total"] == 2


class TestRespondToReview:
    async def _review(self, db: AsyncSession, guest: User, host: User, listing: Listing) -> Review:
        booking = await _completed_booking(db, guest, host, listing)
        review = Review(
            listing_id=listing.id,
            booking_id=booking.id,
            reviewer_id=guest.id,
            host_id=host.id,
            overall=3,
            comment="Fine, but noisy at night",
        )
        db.add(review)
        await db.flush()
        return review

    async def test_host_responds(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        host_user: User,
        host_headers: dict,
        listing: Listing,
    ) -> None:
        review = await self._review(db_session, guest_user, host_user, listing)
        response = await client.put(
            f"/api/reviews/{review.id}/respond",
            json={"comment": "Thanks, we have added double glazing."},
            headers=host_headers,
        )
        assert response.status_code == 200
        host_response = response.json()["data"]["review"]["host_response"]
        assert host_response["comment"] == "Thanks, we have added double glazing."
        assert host_response["responded_at"] is not None

        row = await db_session.execute(select(Review).where(Review.id == review.id))
        assert row.scalar_one().host_response == "Thanks, we have added double glazing."

    async def test_guest_cannot_respond(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        guest_user: User,
        host_user: User,
        guest_headers: dict,
        listing: Listing,
    ) -> None:
        review = await self._review(db_session, guest_user, host_user, listing)
        response = await client.put(
            f"/api/reviews/{review.id}/respond", json={"comment": "Me too"}, headers=guest_headers
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Only the host can respond to this review"

    async def test_review_not_found(self, client: AsyncClient, host_headers: dict) -> None:
        response = await client.put(f"/api/reviews/{uuid.uuid4()}/respond", json={"comment": "Hi"}, headers=host_headers)
        assert response.status_code == 404


class TestDuplicateReviewDetection:
    @pytest.mark.parametrize(
        "message",
        [
            'duplicate key value violates unique constraint "uq_reviews_booking"',
            "UNIQUE constraint failed: reviews.booking_id",
        ],
    )
    def test_booking_uniqueness_recognised(self, message: str) -> None:
        assert is_duplicate_review(IntegrityError("INSERT INTO reviews", {}, Exception(message)))

    def test_other_violations_ignored(self) -> None:
        exc = IntegrityError("INSERT INTO reviews", {}, Exception('violates foreign key constraint "reviews_listing_id_fkey"'))
        assert not is_duplicate_review(exc)
