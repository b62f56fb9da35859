"""HTTP client for the Expo push gateway."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from app.core.config import settings
from app.core.errors import GatewayError

logger = logging.getLogger(__name__)


@dataclass
class SendResponse:
    status_code: int
    tickets: List[Dict[str, Any]]


class ExpoPushClient:
    """Sends message batches and fetches receipts.

    Every failure mode (transport error, HTTP status >= 400, body that is not
    the documented JSON shape) surfaces as ``GatewayError`` so callers can
    isolate it per chunk.
    """

    def __init__(
        self,
        *,
        push_url: str,
        receipts_url: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.push_url = push_url
        self.receipts_url = receipts_url
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "accept-encoding": "gzip, deflate",
            "content-type": "application/json",
        }
        if self._access_token:
            headers["authorization"] = f"Bearer {self._access_token}"
        return headers

    def _post(self, url: str, payload: Any) -> tuple[int, Any]:
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            raise GatewayError(f"Expo request failed: {exc}") from exc
        if response.status_code >= 400:
            raise GatewayError(
                f"Expo responded {response.status_code}: {response.text[:500]}",
                http_status=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise GatewayError("Expo returned a non-JSON body", http_status=response.status_code) from exc
        return response.status_code, body

    def send(self, messages: Sequence[Dict[str, Any]]) -> SendResponse:
        if not messages:
            return SendResponse(status_code=200, tickets=[])
        status_code, body = self._post(self.push_url, list(messages))
        tickets = body.get("data") if isinstance(body, dict) else None
        if not isinstance(tickets, list) or not all(isinstance(item, dict) for item in tickets):
            raise GatewayError("Expo send response missing ticket list", http_status=status_code)
        if len(tickets) != len(messages):
            raise GatewayError(
                f"Expo returned {len(tickets)} tickets for {len(messages)} messages",
                http_status=status_code,
            )
        return SendResponse(status_code=status_code, tickets=tickets)

    def get_receipts(self, ticket_ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        if not ticket_ids:
            return {}
        status_code, body = self._post(self.receipts_url, {"ids": list(ticket_ids)})
        receipts = body.get("data") if isinstance(body, dict) else None
        if not isinstance(receipts, dict):
            raise GatewayError("Expo receipts response missing data object", http_status=status_code)
        return {key: value for key, value in receipts.items() if isinstance(value, dict)}


def get_push_client() -> ExpoPushClient:
    return ExpoPushClient(
        push_url=settings.expo_push_url,
        receipts_url=settings.expo_receipts_url,
        access_token=settings.expo_access_token,
        timeout=settings.gateway_timeout_seconds,
    )
