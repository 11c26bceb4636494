# glam/models.py

import uuid
from typing import Optional
from datetime import datetime, timezone, date as Date

from sqlalchemy import UniqueConstraint
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # customer, artist or admin
    full_name: Optional[str] = None


class Artist(SQLModel, table=True):
    __tablename__ = "artists"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: int = Field(index=True, unique=True, foreign_key="user.id")
    display_name: Optional[str] = None


class Service(SQLModel, table=True):
    __tablename__ = "services"

    id: str = Field(default_factory=new_id, primary_key=True)
    artist_id: str = Field(index=True, foreign_key="artists.id")
    name: str
    price: float
    duration_minutes: int = 60


class WorkingHour(SQLModel, table=True):
    __tablename__ = "artist_working_hours"
    __table_args__ = (
        UniqueConstraint("artist_id", "day_of_week", name="uq_artist_day"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    artist_id: str = Field(index=True, foreign_key="artists.id")
    day_of_week: int  # 0=Sunday ... 6=Saturday
    is_working: bool = True
    start_time: Optional[str] = None  # "HH:MM"
    end_time: Optional[str] = None


class BlockedDate(SQLModel, table=True):
    __tablename__ = "artist_blocked_dates"

    id: str = Field(default_factory=new_id, primary_key=True)
    artist_id: str = Field(index=True, foreign_key="artists.id")
    blocked_date: Date = Field(index=True)
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    id: str = Field(default_factory=new_id, primary_key=True)
    customer_id: int = Field(index=True, foreign_key="user.id")
    artist_id: str = Field(index=True, foreign_key="artists.id")
    service_id: Optional[str] = Field(default=None, foreign_key="services.id")
    booking_date: Date = Field(index=True)
    booking_time: str  # "HH:MM"
    status: str = "pending"  # pending, confirmed, completed or cancelled
    total_price: float
    location_type: str  # artist_studio or client_home
    location_address: Optional[str] = None
    notes: Optional[str] = None

    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    sadad_order_id: Optional[str] = Field(default=None, index=True)
    sadad_transaction_id: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)


class PaymentTransaction(SQLModel, table=True):
    __tablename__ = "payment_transactions"

    id: str = Field(default_factory=new_id, primary_key=True)
    booking_id: str = Field(index=True, foreign_key="bookings.id")
    order_id: str = Field(index=True)
    amount: float
    currency: str = "QAR"
    status: str = "pending"  # pending, success, failed or cancelled
    payment_method: str = "sadad"
    transaction_number: Optional[str] = None
    error_message: Optional[str] = None
    response_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
