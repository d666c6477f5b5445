# sdk/protocol/messages.py
"""
JSON text framing for the transfer status stream.

Inbound (service → client):
    {"type": "status", "transfer": {"status": "<string>", ...}}
    {"type": "error",  "message": "<string>"}
    {"type": "ping"}

Outbound (client → service):
    {"type": "pong"}

Usage example:

    try:
        msg = parse_inbound_frame(raw)
    except ProtocolError as e:
        log_event({"event_type": "ws_protocol_error", "error": str(e)})
        return

    if isinstance(msg, PingMessage):
        await ws.send(encode_pong())
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from constants import (
    MSG_TYPE_ERROR,
    MSG_TYPE_PING,
    MSG_TYPE_PONG,
    MSG_TYPE_STATUS,
)


# -------------------------
# Exceptions
# -------------------------

class ProtocolError(Exception):
    """Base class for inbound frame errors."""


class MalformedFrame(ProtocolError):
    """
    Raised when a frame is not a UTF-8 JSON object.

    Covers invalid JSON, JSON scalars/arrays, and undecodable binary frames.
    """


class UnknownMessageType(ProtocolError):
    """Raised when the `type` discriminator is missing or not recognized."""


class MissingField(ProtocolError):
    """Raised when a recognized message lacks a required field."""


# -------------------------
# Message types
# -------------------------

@dataclass(frozen=True)
class StatusMessage:
    """Transfer status push. `transfer` is forwarded verbatim to the caller."""
    transfer: dict[str, Any]

    @property
    def status(self) -> str:
        return self.transfer["status"]


@dataclass(frozen=True)
class ErrorMessage:
    message: str


@dataclass(frozen=True)
class PingMessage:
    """Keep-alive probe; answered with a pong, never surfaced."""


InboundMessage = Union[StatusMessage, ErrorMessage, PingMessage]

_PONG_FRAME = json.dumps({"type": MSG_TYPE_PONG}, separators=(",", ":"))


# -------------------------
# Decoding
# -------------------------

def _decode_object(raw: str | bytes) -> dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFrame(f"frame is not UTF-8: {e}") from e

    # ValueError covers JSONDecodeError and the int-digit limit; deep nesting
    # exhausts the decoder recursion instead.
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise MalformedFrame(f"frame is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedFrame(f"frame is not a JSON object: {type(data).__name__}")

    return data


def parse_inbound_frame(raw: str | bytes) -> InboundMessage:
    """
    Classify an inbound frame.

    Raises:
        ProtocolError (MalformedFrame, UnknownMessageType, MissingField)
    """
    data = _decode_object(raw)
    msg_type = data.get("type")

    if msg_type == MSG_TYPE_STATUS:
        transfer = data.get("transfer")
        if not isinstance(transfer, dict):
            raise MissingField("status message without a transfer object")
        if not isinstance(transfer.get("status"), str):
            raise MissingField("transfer object without a status string")
        return StatusMessage(transfer=transfer)

    if msg_type == MSG_TYPE_ERROR:
        message = data.get("message")
        if not isinstance(message, str) or not message:
            raise MissingField("error message without a message string")
        return ErrorMessage(message=message)

    if msg_type == MSG_TYPE_PING:
        return PingMessage()

    raise UnknownMessageType(f"unrecognized message type: {msg_type!r}")


# -------------------------
# Encoding
# -------------------------

def encode_pong() -> str:
    """Outbound keep-alive reply."""
    return _PONG_FRAME
