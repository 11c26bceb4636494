# glam/routers/artists_routes.py

import logging
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from glam.db import get_session
from glam.models import Artist, BlockedDate, Booking, Service, WorkingHour
from glam.schemas import (
    AvailabilityPublic,
    BlockedDateCreate,
    BlockedDatePublic,
    ServiceCreate,
    ServicePublic,
    SlotsResponse,
    WorkingHourPublic,
    WorkingHoursReplace,
)
from glam.availability import (
    ACTIVE_BOOKING_STATUSES,
    open_slots,
    parse_time,
    resolve_availability,
    resolve_bulk_availability,
    today_hours,
    today_weekday,
)
from glam.cache import (
    AvailabilityKey,
    BlockedDatesChanged,
    BlockedDatesKey,
    BulkAvailabilityKey,
    QueryCache,
    WorkingHoursChanged,
    WorkingHoursKey,
)
from glam.config import settings
from glam.deps import get_cache, get_current_artist, get_today

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/artists",
    tags=["artists"],
)


# ---- today-availability ----

@router.get("/availability", response_model=Dict[str, AvailabilityPublic])
def artists_availability(
    ids: List[str] = Query(default=[]),
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    today: date = Depends(get_today),
):
    if not ids:
        return {}
    weekday = today_weekday(today)

    def load():
        rows = session.exec(
            select(WorkingHour)
            .where(WorkingHour.artist_id.in_(ids))
            .where(WorkingHour.day_of_week == weekday)
        ).all()
        return resolve_bulk_availability(ids, rows)

    return cache.get_or_load(BulkAvailabilityKey(frozenset(ids), weekday), load)


@router.get("/{artist_id}/availability", response_model=AvailabilityPublic)
def artist_availability(
    artist_id: str,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    today: date = Depends(get_today),
):
    weekday = today_weekday(today)

    def load():
        row = session.exec(
            select(WorkingHour)
            .where(WorkingHour.artist_id == artist_id)
            .where(WorkingHour.day_of_week == weekday)
        ).first()
        return resolve_availability(artist_id, row)

    return cache.get_or_load(AvailabilityKey(artist_id, weekday), load)


# ---- working hours ----

@router.get("/{artist_id}/working-hours", response_model=List[WorkingHourPublic])
def get_working_hours(
    artist_id: str,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
):
    def load():
        rows = session.exec(
            select(WorkingHour)
            .where(WorkingHour.artist_id == artist_id)
            .order_by(WorkingHour.day_of_week)
        ).all()
        return [row.model_dump() for row in rows]

    return cache.get_or_load(WorkingHoursKey(artist_id), load)


@router.put("/me/working-hours", response_model=List[WorkingHourPublic])
def replace_working_hours(
    body: WorkingHoursReplace,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_artist),
):
    days = [h.day_of_week for h in body.hours]
    if len(days) != len(set(days)):
        raise HTTPException(status_code=422, detail="day_of_week cannot contain duplicates")
    for h in body.hours:
        # missing times fall back to the defaults the resolver uses
        hours = today_hours(h)
        if h.is_working and parse_time(hours.start) >= parse_time(hours.end):
            raise HTTPException(status_code=422, detail="start_time must be before end_time")

    artist_id = current_user["artist_id"]

    # delete + insert commit together, so a failed insert keeps the old week
    try:
        session.execute(delete(WorkingHour).where(WorkingHour.artist_id == artist_id))
        new_rows = [
            WorkingHour(
                artist_id=artist_id,
                day_of_week=h.day_of_week,
                is_working=h.is_working,
                start_time=h.start_time,
                end_time=h.end_time,
            )
            for h in sorted(body.hours, key=lambda h: h.day_of_week)
        ]
        session.add_all(new_rows)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to replace working hours for artist %s", artist_id)
        raise HTTPException(status_code=500, detail="Failed to save working hours")

    cache.invalidate(WorkingHoursChanged(artist_id))
    logger.info("Replaced working hours for artist %s", artist_id)

    for row in new_rows:
        session.refresh(row)
    return [row.model_dump() for row in new_rows]


# ---- blocked dates ----

@router.get("/{artist_id}/blocked-dates", response_model=List[BlockedDatePublic])
def get_blocked_dates(
    artist_id: str,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
):
    def load():
        rows = session.exec(
            select(BlockedDate)
            .where(BlockedDate.artist_id == artist_id)
            .order_by(BlockedDate.blocked_date)
        ).all()
        return [row.model_dump() for row in rows]

    return cache.get_or_load(BlockedDatesKey(artist_id), load)


@router.post("/me/blocked-dates", response_model=BlockedDatePublic, status_code=201)
def add_blocked_date(
    block: BlockedDateCreate,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_artist),
):
    artist_id = current_user["artist_id"]
    db_block = BlockedDate(
        artist_id=artist_id,
        blocked_date=block.blocked_date,
        reason=block.reason or None,
    )
    session.add(db_block)
    session.commit()
    session.refresh(db_block)

    cache.invalidate(BlockedDatesChanged(artist_id))
    return db_block


@router.delete("/me/blocked-dates/{blocked_date_id}", status_code=204)
def remove_blocked_date(
    blocked_date_id: str,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
    current_user: dict = Depends(get_current_artist),
):
    artist_id = current_user["artist_id"]
    target = session.get(BlockedDate, blocked_date_id)
    if target is None or target.artist_id != artist_id:
        raise HTTPException(status_code=404, detail="Blocked date not found")

    session.delete(target)
    session.commit()
    cache.invalidate(BlockedDatesChanged(artist_id))


# ---- open slots ----

@router.get("/{artist_id}/slots", response_model=SlotsResponse)
def artist_slots(
    artist_id: str,
    on_date: date,
    service_id: Optional[str] = None,
    session: Session = Depends(get_session),
):
    if session.get(Artist, artist_id) is None:
        raise HTTPException(status_code=404, detail="Artist not found")

    duration = None
    if service_id is not None:
        service = session.get(Service, service_id)
        if service is None or service.artist_id != artist_id:
            raise HTTPException(status_code=404, detail="Service not found")
        duration = service.duration_minutes

    row = session.exec(
        select(WorkingHour)
        .where(WorkingHour.artist_id == artist_id)
        .where(WorkingHour.day_of_week == today_weekday(on_date))
    ).first()

    blocked = session.exec(
        select(BlockedDate.blocked_date)
        .where(BlockedDate.artist_id == artist_id)
        .where(BlockedDate.blocked_date == on_date)
    ).all()

    bookings = session.exec(
        select(Booking)
        .where(Booking.artist_id == artist_id)
        .where(Booking.booking_date == on_date)
        .where(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
    ).all()

    durations = {
        s.id: s.duration_minutes
        for s in session.exec(select(Service).where(Service.artist_id == artist_id)).all()
    }

    available = open_slots(
        on_date, row, blocked, bookings,
        slot_minutes=settings.SLOT_MINUTES,
        duration_minutes=duration,
        durations=durations,
    )
    return {"artist_id": artist_id, "date": on_date, "available_starts": available}


# ---- services ----

@router.post("/me/services", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_artist),
):
    db_service = Service(artist_id=current_user["artist_id"], **service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.get("/{artist_id}/services", response_model=List[ServicePublic])
def list_services(
    artist_id: str,
    session: Session = Depends(get_session),
):
    return session.exec(
        select(Service).where(Service.artist_id == artist_id).order_by(Service.name)
    ).all()
