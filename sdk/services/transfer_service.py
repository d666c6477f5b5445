"""
Transfer creation exchange.

Role in the system:
- One POST against a caller-supplied endpoint with a JSON body.
- Returns the transfer id + signature later handed to ConnectionController.

Architectural constraints:
- No retries, no timers, no state.
- Non-2xx responses surface as TransferCreationError carrying the server's
  `message` when the body has one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from constants import ERR_CREATE_TRANSFER
from observability.logger import log_event, now_ms


class TransferCreationError(Exception):
    """The create-transfer exchange failed or returned a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

@dataclass(frozen=True)
class StatementItem:
    name: str
    amount: int

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "amount": self.amount}


@dataclass(frozen=True)
class TransferRequest:
    """
    Body of the create-transfer call.

    amount is in minor units (e.g. cents); statement_items itemize it.
    """
    amount: int
    statement_items: tuple[StatementItem, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "statementItems": [item.to_payload() for item in self.statement_items],
        }


@dataclass(frozen=True)
class TransferResponse:
    transfer_request_id: str
    merchant_id: str
    expiry: int
    signature: str

    @staticmethod
    def from_payload(data: Any) -> TransferResponse:
        """
        Parse the backend's camelCase response.

        Raises:
            TransferCreationError if a required field is missing.
        """
        if not isinstance(data, Mapping):
            raise TransferCreationError("transfer response is not a JSON object")

        try:
            return TransferResponse(
                transfer_request_id=str(data["transferRequestId"]),
                merchant_id=str(data["merchantId"]),
                expiry=int(data["expiry"]),
                signature=str(data["signature"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TransferCreationError(f"invalid transfer response: {e!r}") from e


TransferMetadata = TransferRequest | Mapping[str, Any]


def _body_of(metadata: TransferMetadata) -> Mapping[str, Any]:
    if isinstance(metadata, TransferRequest):
        return metadata.to_payload()
    return metadata


def _server_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return ERR_CREATE_TRANSFER
    message = data.get("message") if isinstance(data, dict) else None
    return message if isinstance(message, str) and message else ERR_CREATE_TRANSFER


# ------------------------------------------------------------------
# Exchange
# ------------------------------------------------------------------

async def create_transfer(
    url: str,
    metadata: TransferMetadata,
    *,
    client: httpx.AsyncClient | None = None,
    log_events: bool = True,
) -> TransferResponse:
    """
    POST the transfer metadata and return the created transfer.

    A caller-supplied client is used as-is and left open; otherwise a
    short-lived client is created for this one call.

    Raises:
        TransferCreationError
    """
    body = _body_of(metadata)

    try:
        if client is not None:
            response = await client.post(url, json=body)
        else:
            async with httpx.AsyncClient() as owned:
                response = await owned.post(url, json=body)
    except httpx.HTTPError as e:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "transfer_create_failed",
            "url": url,
            "error": repr(e),
        }, enabled=log_events)
        raise TransferCreationError(ERR_CREATE_TRANSFER) from e

    if not response.is_success:
        message = _server_message(response)
        log_event({
            "ts_ms": now_ms(),
            "event_type": "transfer_create_failed",
            "url": url,
            "status_code": response.status_code,
            "error": message,
        }, enabled=log_events)
        raise TransferCreationError(message, status_code=response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise TransferCreationError("transfer response is not JSON") from e

    transfer = TransferResponse.from_payload(data)

    log_event({
        "ts_ms": now_ms(),
        "event_type": "transfer_created",
        "transfer_id": transfer.transfer_request_id,
        "merchant_id": transfer.merchant_id,
        "expiry": transfer.expiry,
    }, enabled=log_events)

    return transfer
