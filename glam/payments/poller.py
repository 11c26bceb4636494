# glam/payments/poller.py

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from glam.config import settings

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Payment verification timeout. Please check your order status."


@dataclass
class PaymentOutcome:
    kind: str  # success, failed or timeout
    attempts: int
    transaction: Optional[Any] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.kind == "success"


async def poll_payment(
    fetch: Callable[[], Any],
    max_attempts: int = settings.PAYMENT_POLL_ATTEMPTS,
    interval: float = settings.PAYMENT_POLL_INTERVAL_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PaymentOutcome:
    """Poll the latest transaction until it reaches a terminal status.

    ``fetch`` returns the newest transaction row for the order, or None;
    it may be a coroutine function.
    "success" and "failed" end the loop; any other state waits ``interval``
    seconds and tries again, up to ``max_attempts`` fetches.
    """
    attempts = 0
    while attempts < max_attempts:
        transaction = fetch()
        if inspect.isawaitable(transaction):
            transaction = await transaction
        if transaction is not None:
            logger.info("Payment status check: status=%s attempt=%d", transaction.status, attempts + 1)

            if transaction.status == "success":
                return PaymentOutcome("success", attempts + 1, transaction)

            if transaction.status == "failed":
                return PaymentOutcome(
                    "failed", attempts + 1, transaction,
                    error_message=transaction.error_message or "Payment failed",
                )

        await sleep(interval)
        attempts += 1

    logger.warning("Payment verification timed out after %d attempts", attempts)
    return PaymentOutcome("timeout", attempts, error_message=TIMEOUT_MESSAGE)
