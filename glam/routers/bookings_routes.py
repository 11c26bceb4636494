# glam/routers/bookings_routes.py

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from glam.db import get_session
from glam.models import Booking
from glam.schemas import (
    BookingCreate,
    BookingPublic,
    BookingStatusUpdate,
    CustomerBookings,
    PendingCount,
)
from glam.auth import get_current_user
from glam.availability import ACTIVE_BOOKING_STATUSES
from glam.cache import (
    ArtistBookingsKey,
    BookingsChanged,
    CustomerBookingsKey,
    PendingCountKey,
    QueryCache,
)
from glam.deps import get_cache, get_current_artist, get_today

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["bookings"],
)

# who may move a booking from one status to the next
ARTIST_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
}
CUSTOMER_TRANSITIONS = {
    "pending": {"cancelled"},
    "confirmed": {"cancelled"},
}


@router.post("/bookings", response_model=BookingPublic, status_code=201)
def create_booking(
    booking: BookingCreate,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    # The slot was picked from the availability reads; it is not re-checked
    # here, nor is the price compared with the service's price.
    db_booking = Booking(
        customer_id=current_user["id"],
        artist_id=booking.artist_id,
        service_id=booking.service_id,
        booking_date=booking.booking_date,
        booking_time=booking.booking_time,
        location_type=booking.location_type.value,
        location_address=booking.location_address,
        total_price=booking.total_price,
        notes=booking.notes,
        status="pending",
    )
    session.add(db_booking)
    session.commit()
    session.refresh(db_booking)

    cache.invalidate(BookingsChanged(db_booking.customer_id, db_booking.artist_id))
    logger.info("Created booking %s for artist %s", db_booking.id, db_booking.artist_id)
    return db_booking


@router.get("/bookings/me", response_model=CustomerBookings)
def list_my_bookings(
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_user),
    today: date = Depends(get_today),
):
    customer_id = current_user["id"]

    def load():
        bookings = session.exec(
            select(Booking)
            .where(Booking.customer_id == customer_id)
            .order_by(Booking.booking_date.desc(), Booking.booking_time.desc())
        ).all()

        upcoming, past = [], []
        for b in bookings:
            if b.booking_date >= today and b.status in ACTIVE_BOOKING_STATUSES:
                upcoming.append(b.model_dump())
            else:
                past.append(b.model_dump())
        return {"upcoming": upcoming, "past": past}

    return cache.get_or_load(CustomerBookingsKey(customer_id, today), load)


@router.get("/artists/me/bookings", response_model=List[BookingPublic])
def list_artist_bookings(
    status: Optional[str] = "all",
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_artist),
):
    if status not in ("pending", "confirmed", "completed", "cancelled", "all"):
        raise HTTPException(
            status_code=422,
            detail="status must be 'pending', 'confirmed', 'completed', 'cancelled', or 'all'",
        )
    artist_id = current_user["artist_id"]

    def load():
        stmt = select(Booking).where(Booking.artist_id == artist_id)
        if status != "all":
            stmt = stmt.where(Booking.status == status)
        stmt = stmt.order_by(Booking.booking_date, Booking.booking_time)
        return [b.model_dump() for b in session.exec(stmt).all()]

    return cache.get_or_load(ArtistBookingsKey(artist_id, status), load)


@router.get("/bookings/pending-count", response_model=PendingCount)
def pending_count(
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    if current_user["role"] == "artist":
        artist_id = current_user["artist_id"]
        if artist_id is None:
            return {"count": 0}
        key = PendingCountKey("artist", artist_id)
        condition = Booking.artist_id == artist_id
    else:
        key = PendingCountKey("customer", str(current_user["id"]))
        condition = Booking.customer_id == current_user["id"]

    def load():
        count = session.exec(
            select(func.count()).select_from(Booking)
            .where(condition)
            .where(Booking.status == "pending")
        ).one()
        return {"count": count}

    return cache.get_or_load(key, load)


@router.get("/bookings/{booking_id}", response_model=BookingPublic)
def get_booking(
    booking_id: str,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    target = session.get(Booking, booking_id)
    if target is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if current_user["role"] != "admin" and current_user["id"] != target.customer_id \
            and current_user["artist_id"] != target.artist_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return target


@router.patch("/bookings/{booking_id}/status", response_model=BookingPublic)
def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    # 1) Find the booking in DB
    target = session.get(Booking, booking_id)
    if target is None:
        raise HTTPException(status_code=404, detail="Booking not found")

    # 2) Authorization: the booking's artist, an admin, or the customer who booked
    if current_user["role"] == "admin" or current_user["artist_id"] == target.artist_id:
        allowed = ARTIST_TRANSITIONS
    elif current_user["id"] == target.customer_id:
        allowed = CUSTOMER_TRANSITIONS
    else:
        raise HTTPException(status_code=403, detail="Forbidden")

    # 3) Check the transition
    new_status = update.status.value
    if new_status not in allowed.get(target.status, set()):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change booking from {target.status} to {new_status}",
        )

    # 4) Persist
    target.status = new_status
    session.add(target)
    session.commit()
    session.refresh(target)

    cache.invalidate(BookingsChanged(target.customer_id, target.artist_id))
    logger.info("Booking %s is now %s", target.id, target.status)
    return target
