"""
Reconnect policy helpers.

Purpose:
- Centralize the capped exponential backoff rule
- Keep ConnectionController free of arithmetic
- Allow deterministic retry decisions in tests

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from constants import WS_NORMAL_CLOSURE


def reconnect_delay_ms(attempt: int, *, base_ms: int, cap_ms: int) -> int:
    """
    Returns delay before reconnect attempt N (1-based).

    delay = min(base_ms * 2^(attempt-1), cap_ms)

    Raises:
        ValueError if attempt < 1
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")

    # Stop doubling once past the cap; avoids huge ints on long outages
    delay = base_ms
    for _ in range(attempt - 1):
        if delay >= cap_ms:
            break
        delay *= 2

    return min(delay, cap_ms)


def should_reconnect(
    *,
    close_code: int,
    attempts: int,
    max_attempts: int,
) -> bool:
    """
    Returns True if an automatic reconnect is allowed.

    attempts = reconnects already scheduled since the last successful open

    Notes:
    - A normal closure never reconnects, regardless of attempt count.
    """
    if close_code == WS_NORMAL_CLOSURE:
        return False
    return attempts < max_attempts
