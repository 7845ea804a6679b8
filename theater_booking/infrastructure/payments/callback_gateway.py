from __future__ import annotations

import asyncio
import logging

from theater_booking.application.exceptions import PaymentGatewayError
from theater_booking.application.ports.payment_gateway import PaymentGatewayPort
from theater_booking.core.config import settings
from theater_booking.domain.entities.payment import GatewayRequest, GatewayResult


class CallbackPaymentGateway(PaymentGatewayPort):
    """
    Hosted-checkout gateway driven by client callbacks.

    `collect` parks the request until the client reports the outcome through
    `resolve` (success with transaction ids, dismissal or failure). Requests
    left unanswered for the configured timeout resolve as failed.
    """

    def __init__(self, key_id: str | None = None, timeout_seconds: float | None = None) -> None:
        self._key_id = key_id or settings.PAYMENT_GATEWAY_KEY
        self._timeout = timeout_seconds or settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS
        self._pending: dict[str, tuple[GatewayRequest, asyncio.Future[GatewayResult]]] = {}
        self._logger = logging.getLogger(__name__)

    @property
    def key_id(self) -> str | None:
        return self._key_id

    def pending(self, reference: str) -> GatewayRequest | None:
        entry = self._pending.get(reference)
        return entry[0] if entry else None

    async def collect(self, request: GatewayRequest) -> GatewayResult:
        if not self._key_id:
            raise PaymentGatewayError(
                "Payment Gateway Unavailable",
                "Payment gateway failed to initialize. Please try again later.",
            )

        future: asyncio.Future[GatewayResult] = asyncio.get_running_loop().create_future()
        self._pending[request.reference] = (request, future)
        self._logger.info("Awaiting gateway callback", extra={"reason": request.reference})
        try:
            return await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            self._logger.warning("Gateway callback timed out", extra={"reason": request.reference})
            return GatewayResult(status="failed", error="Payment window expired. Please try again.")
        finally:
            self._pending.pop(request.reference, None)

    def resolve(self, reference: str, result: GatewayResult) -> bool:
        """Deliver a client callback. Returns False for unknown or already settled references."""
        entry = self._pending.get(reference)
        if entry is None:
            return False
        _, future = entry
        if future.done():
            return False
        future.set_result(result)
        return True
