"""
Client configuration.

Responsibilities:
- Select the status service deployment (test vs. production host)
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No connection logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any

from constants import (
    MAX_RECONNECT_ATTEMPTS,
    RECONNECT_BASE_DELAY_MS,
    RECONNECT_MAX_DELAY_MS,
    STATUS_HOST_PRODUCTION,
    STATUS_HOST_TEST,
)


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable client configuration.

    Constructed once by the caller.
    Passed downward to TransferSession and its ConnectionController.
    """

    # ------------------------------------------------------------------
    # Status service
    # ------------------------------------------------------------------

    status_host: str = STATUS_HOST_PRODUCTION

    # True when the hosting context is secure; selects wss over ws.
    secure: bool = True

    # ------------------------------------------------------------------
    # Reconnection policy
    # ------------------------------------------------------------------

    reconnect_base_delay_ms: int = RECONNECT_BASE_DELAY_MS
    reconnect_max_delay_ms: int = RECONNECT_MAX_DELAY_MS
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS

    # ------------------------------------------------------------------
    # Transfer creation
    # ------------------------------------------------------------------

    create_transfer_url: str | None = None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    def __post_init__(self) -> None:
        if not self.status_host:
            raise ValueError("status_host must not be empty")
        if self.reconnect_base_delay_ms < 0:
            raise ValueError("reconnect_base_delay_ms must be >= 0")
        if self.reconnect_max_delay_ms < self.reconnect_base_delay_ms:
            raise ValueError(
                "reconnect_max_delay_ms must be >= reconnect_base_delay_ms"
            )
        if self.max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0")

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @staticmethod
    def for_environment(test: bool = False, **overrides: Any) -> ClientConfig:
        """Config pointing at the test or production status host."""
        base = ClientConfig(
            status_host=STATUS_HOST_TEST if test else STATUS_HOST_PRODUCTION,
        )
        return replace(base, **overrides) if overrides else base

    @staticmethod
    def load_from_env() -> ClientConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable is malformed or out of range.
        """
        test = os.environ.get("TRANSFER_STATUS_ENV", "production").lower() == "test"
        default_host = STATUS_HOST_TEST if test else STATUS_HOST_PRODUCTION

        return ClientConfig(
            status_host=os.environ.get("TRANSFER_STATUS_HOST", default_host),
            secure=_env_flag("TRANSFER_STATUS_SECURE", "1"),

            reconnect_base_delay_ms=int(
                os.environ.get("RECONNECT_BASE_DELAY_MS", RECONNECT_BASE_DELAY_MS)
            ),
            reconnect_max_delay_ms=int(
                os.environ.get("RECONNECT_MAX_DELAY_MS", RECONNECT_MAX_DELAY_MS)
            ),
            max_reconnect_attempts=int(
                os.environ.get("MAX_RECONNECT_ATTEMPTS", MAX_RECONNECT_ATTEMPTS)
            ),

            create_transfer_url=os.environ.get("CREATE_TRANSFER_URL"),
            enable_json_logs=_env_flag("ENABLE_JSON_LOGS", "1"),
        )
