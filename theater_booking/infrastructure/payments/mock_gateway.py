from __future__ import annotations

import uuid

from theater_booking.application.ports.payment_gateway import PaymentGatewayPort
from theater_booking.domain.entities.payment import GatewayRequest, GatewayResult


class MockPaymentGateway(PaymentGatewayPort):
    """Settles every request immediately with a fixed status."""

    def __init__(self, status: str = "success", error: str | None = None) -> None:
        self._status = status
        self._error = error
        self.requests: list[GatewayRequest] = []

    async def collect(self, request: GatewayRequest) -> GatewayResult:
        self.requests.append(request)
        if self._status != "success":
            return GatewayResult(status=self._status, error=self._error)
        return GatewayResult(
            status="success",
            payment_id=f"pay_{uuid.uuid4().hex[:14]}",
            order_id=f"order_{request.reference[:14]}",
            signature=uuid.uuid4().hex,
        )
