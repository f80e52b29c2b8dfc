"""Simulated payment collaborator.

The gateway is an asyncio coroutine with an explicit cancellation event and a
typed result. Callers in synchronous views drive it through ``run_charge``.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass

from asgiref.sync import async_to_sync
from django.conf import settings

from .models import Booking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    status: str
    reference: str = ""
    message: str = ""

    @property
    def succeeded(self):
        return self.status == Booking.PaymentStatus.PAID


class SimulatedPaymentGateway:
    def __init__(self, delay=None, timeout=None):
        self.delay = settings.PAYMENT_GATEWAY_DELAY if delay is None else delay
        self.timeout = settings.PAYMENT_GATEWAY_TIMEOUT if timeout is None else timeout

    async def _process(self, amount_kobo, reference, succeed):
        await asyncio.sleep(self.delay)
        if not succeed:
            return PaymentResult(Booking.PaymentStatus.FAILED, reference, "Payment was declined")
        return PaymentResult(Booking.PaymentStatus.PAID, reference, "Payment received")

    async def charge(self, amount_kobo, reference=None, cancel_event=None, succeed=True):
        if amount_kobo <= 0:
            return PaymentResult(Booking.PaymentStatus.FAILED, "", "Amount must be positive")
        reference = reference or f"DGS-{uuid.uuid4().hex[:12].upper()}"
        cancel_event = cancel_event or asyncio.Event()
        if cancel_event.is_set():
            return PaymentResult(Booking.PaymentStatus.FAILED, reference, "Payment was cancelled")

        process = asyncio.ensure_future(self._process(amount_kobo, reference, succeed))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {process, cancelled},
                timeout=self.timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (process, cancelled):
                if not task.done():
                    task.cancel()

        if process in done:
            return process.result()
        if cancelled in done:
            return PaymentResult(Booking.PaymentStatus.FAILED, reference, "Payment was cancelled")
        return PaymentResult(Booking.PaymentStatus.FAILED, reference, "Payment timed out")


def run_charge(gateway, amount_kobo, reference=None, succeed=True):
    result = async_to_sync(gateway.charge)(amount_kobo, reference=reference, succeed=succeed)
    if result.succeeded:
        logger.info("Payment %s of %s kobo succeeded", result.reference, amount_kobo)
    else:
        logger.warning("Payment %s of %s kobo failed: %s", result.reference, amount_kobo, result.message)
    return result
