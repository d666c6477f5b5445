from __future__ import annotations

import urllib.parse

from constants import WS_SCHEME_INSECURE, WS_SCHEME_SECURE


def build_stream_url(
    *,
    host: str,
    transfer_id: str,
    signature: str,
    secure: bool,
) -> str:
    """
    Status stream endpoint for one transfer.

    <wss:|ws:>//<host>/transfers/<transfer_id>/ws?token=<signature>
    """
    scheme = WS_SCHEME_SECURE if secure else WS_SCHEME_INSECURE
    path_id = urllib.parse.quote(transfer_id, safe="")
    qs = urllib.parse.urlencode({"token": signature})
    return f"{scheme}//{host}/transfers/{path_id}/ws?{qs}"
