# glam/routers/payments_routes.py

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from sqlmodel import Session, select

from glam.db import get_session
from glam.models import Booking, PaymentTransaction, utcnow
from glam.schemas import (
    PaymentVerifyResult,
    SadadCallbackResult,
    SadadInitiateRequest,
    SadadInitiateResponse,
)
from glam.auth import get_current_user
from glam.cache import BookingsChanged, QueryCache
from glam.config import settings
from glam.deps import get_cache
from glam.payments import sadad
from glam.payments.poller import poll_payment

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments/sadad",
    tags=["payments"],
)


def get_poll_sleep():
    return asyncio.sleep


def latest_transaction(session: Session, order_id: str):
    return session.exec(
        select(PaymentTransaction)
        .where(PaymentTransaction.order_id == order_id)
        .order_by(PaymentTransaction.created_at.desc())
        .limit(1)
    ).first()


@router.post("/initiate", response_model=SadadInitiateResponse)
def initiate_payment(
    body: SadadInitiateRequest,
    request: Request,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    try:
        sadad.credentials()
    except sadad.PaymentConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))

    logger.info("Initiating payment for booking: %s", body.booking_id)

    booking = session.get(Booking, body.booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.customer_id != current_user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")

    order_id = sadad.make_order_id(booking.id)

    transaction = PaymentTransaction(
        booking_id=booking.id,
        order_id=order_id,
        amount=booking.total_price,
        currency=sadad.CURRENCY,
        status="pending",
        payment_method="sadad",
    )
    session.add(transaction)

    booking.payment_method = "sadad"
    booking.payment_status = "processing"
    booking.sadad_order_id = order_id
    session.add(booking)

    session.commit()
    session.refresh(transaction)

    fields = sadad.build_checkout_fields(
        booking,
        order_id,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
    )
    logger.info("Payment initiated successfully, order: %s", order_id)

    return {
        **fields,
        "payment_url": sadad.payment_url(),
        "checkout_url": str(request.url_for("checkout_page", order_id=order_id)),
        "transaction_id": transaction.id,
    }


@router.get("/{order_id}/checkout", response_class=HTMLResponse, name="checkout_page")
def checkout_page(
    order_id: str,
    email: str = "",
    phone: str = "",
    session: Session = Depends(get_session),
):
    """Self-submitting form that hands the browser over to the gateway."""
    booking = session.exec(
        select(Booking).where(Booking.sadad_order_id == order_id)
    ).first()
    if booking is None:
        raise HTTPException(status_code=404, detail="Order not found")

    try:
        fields = sadad.build_checkout_fields(booking, order_id, customer_email=email, customer_phone=phone)
    except sadad.PaymentConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return HTMLResponse(sadad.render_checkout_form(sadad.payment_url(), fields))


def apply_callback(session: Session, cache: QueryCache, callback_data: dict) -> dict:
    """Record a gateway callback on the transaction and its booking."""
    order_id = callback_data.get("order_id")
    if not order_id:
        logger.error("Missing order_id in callback")
        raise HTTPException(status_code=400, detail="Missing order_id")

    try:
        sadad.check_callback(callback_data)
    except sadad.ChecksumError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except sadad.PaymentConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))

    payment_status = sadad.map_callback_status(callback_data.get("status"))
    transaction_number = callback_data.get("transaction_number") or None
    logger.info("Processing payment callback for order %s, status: %s", order_id, payment_status)

    transaction = latest_transaction(session, order_id)
    if transaction is None:
        logger.error("No transaction for order: %s", order_id)
    else:
        transaction.status = payment_status
        transaction.transaction_number = transaction_number
        transaction.response_data = callback_data
        transaction.error_message = callback_data.get("error_message") or None
        transaction.updated_at = utcnow()
        session.add(transaction)

    booking = session.exec(
        select(Booking).where(Booking.sadad_order_id == order_id)
    ).first()
    if booking is None:
        logger.error("No booking for order: %s", order_id)
    else:
        booking.payment_status = payment_status
        booking.sadad_transaction_id = transaction_number
        if payment_status == "success" and booking.status == "pending":
            booking.status = "confirmed"
        session.add(booking)

    session.commit()

    if booking is not None:
        cache.invalidate(BookingsChanged(booking.customer_id, booking.artist_id))
        logger.info("Booking updated successfully: %s", booking.id)

    return {
        "success": True,
        "status": payment_status,
        "order_id": order_id,
        "booking_id": booking.id if booking else None,
    }


@router.api_route("/callback", methods=["GET", "POST"], response_model=SadadCallbackResult)
async def payment_callback(
    request: Request,
    session: Session = Depends(get_session),
    cache: QueryCache = Depends(get_cache),
):
    # Callback data could be JSON, a form post or URL params
    callback_data = {}
    if request.method == "POST":
        content_type = request.headers.get("content-type", "")
        if "application/json" in content_type:
            payload = await request.json()
            callback_data = {k: str(v) for k, v in payload.items() if v is not None}
        elif "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
            form = await request.form()
            callback_data = {k: str(v) for k, v in form.items()}
    else:
        callback_data = dict(request.query_params)

    logger.info("Received SADAD callback: %s", callback_data)

    # database work stays off the event loop
    return await run_in_threadpool(apply_callback, session, cache, callback_data)


@router.post("/{order_id}/verify", response_model=PaymentVerifyResult)
async def verify_payment(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    sleep=Depends(get_poll_sleep),
):
    def load():
        # end the read transaction so each attempt sees the callback's commit
        session.rollback()
        return latest_transaction(session, order_id)

    async def fetch():
        return await run_in_threadpool(load)

    first = await fetch()
    if first is None:
        raise HTTPException(status_code=404, detail="Order not found")
    booking = await run_in_threadpool(session.get, Booking, first.booking_id)
    if booking is not None and booking.customer_id != current_user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")

    outcome = await poll_payment(
        fetch,
        max_attempts=settings.PAYMENT_POLL_ATTEMPTS,
        interval=settings.PAYMENT_POLL_INTERVAL_SECONDS,
        sleep=sleep,
    )

    return {
        "outcome": outcome.kind,
        "success": outcome.success,
        "order_id": order_id,
        "status": outcome.transaction.status if outcome.transaction else None,
        "error_message": outcome.error_message,
        "attempts": outcome.attempts,
    }
