from __future__ import annotations

from abc import ABC, abstractmethod

from theater_booking.domain.entities.payment import GatewayRequest, GatewayResult


class PaymentGatewayPort(ABC):
    @abstractmethod
    async def collect(self, request: GatewayRequest) -> GatewayResult:
        """
        Collect an advance payment.
        Resolves with a success result carrying transaction identifiers, or a
        dismissed/failed result with no side effects.
        Raises PaymentGatewayError when the gateway cannot be initialized.
        """
        raise NotImplementedError
