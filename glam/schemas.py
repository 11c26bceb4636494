# glam/schemas.py

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime, date
from typing import List, Optional

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Optional[str] = None


class UserRole(str, Enum):
    customer = "customer"
    artist = "artist"
    admin = "admin"


# public signup; admins are created out of band
class SignupRole(str, Enum):
    customer = "customer"
    artist = "artist"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    full_name: Optional[str] = None
    artist_id: Optional[str] = None


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: SignupRole = SignupRole.customer
    full_name: Optional[str] = None


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    duration_minutes: int = Field(default=60, gt=0)


class ServicePublic(BaseModel):
    id: str
    artist_id: str
    name: str
    price: float
    duration_minutes: int


class WorkingHourUpdate(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0=Sun, 1=Mon....
    is_working: bool
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)


class WorkingHoursReplace(BaseModel):
    hours: List[WorkingHourUpdate] = Field(min_length=7, max_length=7)


class WorkingHourPublic(BaseModel):
    id: str
    artist_id: str
    day_of_week: int
    is_working: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class BlockedDateCreate(BaseModel):
    blocked_date: date
    reason: Optional[str] = None


class BlockedDatePublic(BaseModel):
    id: str
    artist_id: str
    blocked_date: date
    reason: Optional[str] = None
    created_at: datetime


class TodayHours(BaseModel):
    start: str
    end: str


class AvailabilityPublic(BaseModel):
    artist_id: str
    is_available_today: bool
    today_hours: Optional[TodayHours] = None


class SlotsResponse(BaseModel):
    artist_id: str
    date: date
    available_starts: List[str]


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class LocationType(str, Enum):
    artist_studio = "artist_studio"
    client_home = "client_home"


class BookingCreate(BaseModel):
    artist_id: str
    service_id: Optional[str] = None
    booking_date: date
    booking_time: str = Field(pattern=TIME_PATTERN)
    location_type: LocationType
    location_address: Optional[str] = None
    total_price: float = Field(ge=0)
    notes: Optional[str] = None


class BookingPublic(BaseModel):
    id: str
    customer_id: int
    artist_id: str
    service_id: Optional[str] = None
    booking_date: date
    booking_time: str
    status: BookingStatus
    total_price: float
    location_type: str
    location_address: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    created_at: datetime


class CustomerBookings(BaseModel):
    upcoming: List[BookingPublic]
    past: List[BookingPublic]


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class PendingCount(BaseModel):
    count: int


class SadadInitiateRequest(BaseModel):
    booking_id: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_name: Optional[str] = None
    return_url: Optional[str] = None


class SadadProductDetail(BaseModel):
    order_id: str
    itemname: str
    amount: str
    quantity: str
    type: str


class SadadInitiateResponse(BaseModel):
    payment_url: str
    checkout_url: str
    transaction_id: str
    merchant_id: str
    ORDER_ID: str
    WEBSITE: str
    TXN_AMOUNT: str
    CUST_ID: str
    EMAIL: str
    MOBILE_NO: str
    SADAD_WEBCHECKOUT_PAGE_LANGUAGE: str
    CALLBACK_URL: str
    txnDate: str
    VERSION: str
    productdetail: List[SadadProductDetail]
    checksumhash: str


class PaymentOutcomeKind(str, Enum):
    success = "success"
    failed = "failed"
    timeout = "timeout"


class PaymentVerifyResult(BaseModel):
    outcome: PaymentOutcomeKind
    success: bool
    order_id: str
    status: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int


class SadadCallbackResult(BaseModel):
    success: bool = True
    status: str
    order_id: str
    booking_id: Optional[str] = None
