from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from theater_booking.application.exceptions import NetworkFetchError
from theater_booking.core.config import settings


@dataclass(frozen=True)
class BackendResponse:
    status_code: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status_code < 400 and bool(self.body.get("success", True))


class BackendClient:
    """Thin JSON client for the booking backend. Transport failures become NetworkFetchError."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.BACKEND_BASE_URL,
            timeout=timeout or settings.BACKEND_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    async def get(self, path: str, params: dict[str, str] | None = None) -> BackendResponse:
        try:
            resp = await self._client.get(path, params=params, headers={"Cache-Control": "no-store"})
        except httpx.HTTPError as e:
            self._logger.error("Backend request failed", extra={"error": str(e), "reason": path})
            raise NetworkFetchError("Connection Error", f"Could not reach {path}. Please try again.") from e
        return self._decode(path, resp)

    async def post(self, path: str, payload: dict[str, Any]) -> BackendResponse:
        try:
            resp = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            self._logger.error("Backend request failed", extra={"error": str(e), "reason": path})
            raise NetworkFetchError("Connection Error", f"Could not reach {path}. Please try again.") from e
        return self._decode(path, resp)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _decode(self, path: str, resp: httpx.Response) -> BackendResponse:
        try:
            body = resp.json()
        except ValueError as e:
            self._logger.error(
                "Backend returned non-JSON body",
                extra={"error": resp.text[:200], "reason": f"{path} {resp.status_code}"},
            )
            raise NetworkFetchError("Unexpected Response", f"{path} returned an unreadable response.") from e

        if not isinstance(body, dict):
            raise NetworkFetchError("Unexpected Response", f"{path} returned an unreadable response.")

        if resp.status_code >= 400:
            self._logger.warning(
                "Backend returned an error status",
                extra={"error": body.get("error"), "reason": f"{path} {resp.status_code}"},
            )
        return BackendResponse(status_code=resp.status_code, body=body)
