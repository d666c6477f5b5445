"""
QR code generator for transfer payloads.

Encodes the JSON form of a payload (typically the create-transfer response)
so a payer's wallet app can scan it.
"""

from __future__ import annotations

import base64
import io
import json
from typing import Any

import qrcode
from qrcode.image.pil import PilImage

from observability.logger import log_event, now_ms


class QRCodeError(Exception):
    """QR encoding failed."""


def generate_qr_png(
    data: Any,
    box_size: int = 10,
    border: int = 4,
) -> bytes:
    """
    Generate a PNG QR code for a JSON-serializable payload.

    Args:
        data: Payload; serialized with json.dumps before encoding
        box_size: Size of each box in pixels
        border: Border size in boxes

    Returns:
        PNG image as bytes

    Raises:
        QRCodeError if the payload cannot be serialized or encoded
    """
    try:
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=box_size,
            border=border,
        )
        qr.add_data(json.dumps(data, separators=(",", ":")))
        qr.make(fit=True)

        img: PilImage = qr.make_image(
            image_factory=PilImage,
            fill_color="black",
            back_color="white",
        )

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    except Exception as e:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "qr_generation_failed",
            "error": repr(e),
        })
        raise QRCodeError(f"Failed to generate QR code: {e}") from e


def generate_qr_data_url(data: Any) -> str:
    """PNG QR code as a `data:image/png;base64,...` URL."""
    png = generate_qr_png(data)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
