# glam/payments/sadad.py
"""
Sadad web-checkout helpers.

The gateway is driven by a browser form POST carrying the merchant fields and
an HMAC-SHA256 checksum; completion is reported back on a callback URL.
Docs: https://developer.sadad.qa/
"""

import hashlib
import hmac
import html
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from glam.config import settings

logger = logging.getLogger(__name__)

CURRENCY = "QAR"

SADAD_ENDPOINTS = {
    "test": {
        "payment": "https://sadadqa.com/webpurchase",
        "verification": "https://api.sadadqa.com/api-v4/transactionstatus",
    },
    "production": {
        "payment": "https://sadad.com/webpurchase",
        "verification": "https://api.sadad.com/api-v4/transactionstatus",
    },
}

# gateway-side transaction statuses
SADAD_TRANSACTION_STATUSES = {
    "CANCELLED": 0,
    "PENDING": 1,
    "FAILED": 2,
    "SUCCESS": 3,
}

SADAD_RESPONSE_CODES = {
    "SUCCESS": 1,
    "PENDING": 400,
    "PENDING_CONFIRMATION": 402,
    "FAILED": 810,
}

SADAD_ERROR_MAP = {
    "1001": ("Invalid merchant credentials",
             "Payment gateway configuration error. Please contact support.", False),
    "1002": ("Invalid checksum hash",
             "Payment security verification failed. Please try again.", True),
    "1003": ("Invalid transaction amount",
             "Invalid payment amount. Please check your order.", False),
    "1004": ("Invalid order ID",
             "Order not found. Please try again.", False),
    "2001": ("Transaction failed",
             "Payment failed. Please try again or use a different payment method.", True),
    "2002": ("Insufficient funds",
             "Insufficient funds in your account. Please use a different payment method.", False),
    "2003": ("Card declined",
             "Your card was declined. Please try a different card or payment method.", True),
    "2004": ("Invalid card details",
             "Invalid card details. Please check and try again.", True),
    "2005": ("Expired card",
             "Your card has expired. Please use a different card.", False),
    "3001": ("Transaction timeout",
             "Payment timed out. Please try again.", True),
    "3002": ("Server error",
             "Payment server error. Please try again later.", True),
    "ERR": ("Domain mismatch or checksum error",
            "Payment verification failed. Please try again.", True),
    "404": ("Wrong format or wrong URL",
            "Payment configuration error. Please contact support.", False),
}


class PaymentConfigError(Exception):
    """Merchant credentials are missing."""


class ChecksumError(Exception):
    """A callback carried a checksum that does not match its fields."""


def describe_error(code: str) -> Dict[str, object]:
    message, user_message, retryable = SADAD_ERROR_MAP.get(
        code, ("Unknown error", "Payment failed. Please try again.", True)
    )
    return {"code": code, "message": message, "user_message": user_message, "retryable": retryable}


def credentials():
    if not settings.SADAD_MERCHANT_ID or not settings.SADAD_SECRET_KEY:
        logger.error("SADAD credentials not configured")
        raise PaymentConfigError("Payment gateway not configured")
    return settings.SADAD_MERCHANT_ID, settings.SADAD_SECRET_KEY


def payment_url() -> str:
    return SADAD_ENDPOINTS.get(settings.SADAD_ENVIRONMENT, SADAD_ENDPOINTS["test"])["payment"]


def generate_checksum(data: str, secret_key: str) -> str:
    return hmac.new(secret_key.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_checksum(data: str, received: str, secret_key: str) -> bool:
    return hmac.compare_digest(generate_checksum(data, secret_key), received.lower())


def make_order_id(booking_id: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"ORD-{booking_id[:8]}-{millis}"


def format_amount(amount: float) -> str:
    return f"{amount:.2f}"


def build_checkout_fields(
    booking,
    order_id: str,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    item_name: str = "Booking",
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    """Form fields for the gateway's web checkout page, checksum included."""
    merchant_id, secret_key = credentials()
    amount = format_amount(booking.total_price)
    now = now or datetime.now(timezone.utc)

    checksum_data = "|".join([
        merchant_id, order_id, amount, CURRENCY, customer_email or "", customer_phone or "",
    ])

    return {
        "merchant_id": merchant_id,
        "ORDER_ID": order_id,
        "WEBSITE": settings.SADAD_WEBSITE,
        "TXN_AMOUNT": amount,
        "CUST_ID": str(booking.customer_id),
        "EMAIL": customer_email or "",
        "MOBILE_NO": customer_phone or "",
        "SADAD_WEBCHECKOUT_PAGE_LANGUAGE": settings.SADAD_LANGUAGE,
        "CALLBACK_URL": settings.SADAD_CALLBACK_URL,
        "txnDate": now.strftime("%Y-%m-%d %H:%M:%S"),
        "VERSION": settings.SADAD_VERSION,
        "productdetail": [
            {
                "order_id": order_id,
                "itemname": item_name,
                "amount": amount,
                "quantity": "1",
                "type": "line_item",
            }
        ],
        "checksumhash": generate_checksum(checksum_data, secret_key),
    }


def flatten_fields(fields: Dict[str, object]) -> List[tuple]:
    """(name, value) pairs as posted by the checkout form; product lines become
    ``productdetail[i][key]``."""
    pairs = []
    for name, value in fields.items():
        if name == "productdetail":
            for index, item in enumerate(value):
                for key, item_value in item.items():
                    pairs.append((f"productdetail[{index}][{key}]", str(item_value)))
        else:
            pairs.append((name, str(value)))
    return pairs


def render_checkout_form(action: str, fields: Dict[str, object]) -> str:
    inputs = "\n".join(
        f'    <input type="hidden" name="{html.escape(name)}" value="{html.escape(value)}">'
        for name, value in flatten_fields(fields)
    )
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<body onload=\"document.forms[0].submit()\">\n"
        f'  <form method="POST" action="{html.escape(action)}">\n'
        f"{inputs}\n"
        "    <noscript><button type=\"submit\">Continue to payment</button></noscript>\n"
        "  </form>\n"
        "</body>\n"
        "</html>\n"
    )


def map_callback_status(status: Optional[str]) -> str:
    """Gateway status -> payment_transactions.status."""
    status = (status or "").lower()
    if status in ("success", "completed"):
        return "success"
    if status == "cancelled":
        return "cancelled"
    return "failed"


def check_callback(data: Dict[str, str]) -> None:
    """Verify a callback's checksum when it carries one."""
    checksum = data.get("checksum")
    if not checksum:
        return
    merchant_id, secret_key = credentials()
    checksum_data = "|".join([
        merchant_id, data.get("order_id", ""), data.get("amount") or "", data.get("status") or "",
    ])
    if not verify_checksum(checksum_data, checksum, secret_key):
        logger.error("Invalid checksum for order: %s", data.get("order_id"))
        raise ChecksumError("Invalid checksum")
