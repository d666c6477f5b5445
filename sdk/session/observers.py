"""
Observer slots for a transfer session.

Exactly three categories exist (status, error, connection), so this is a
fixed set of named slots rather than an event-name dispatch table.

- Each slot holds at most one callback; assigning replaces the previous one.
- Empty slots make notify_* a no-op.
- Callbacks run synchronously on the event loop that observed the event.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from observability.logger import log_event, now_ms

TransferStatus = dict[str, Any]

StatusCallback = Callable[[TransferStatus], None]
ErrorCallback = Callable[[str], None]
ConnectionCallback = Callable[[bool], None]


@dataclass
class TransferObservers:
    """Mutable observer registry owned by one TransferSession."""

    on_status: StatusCallback | None = None
    on_error: ErrorCallback | None = None
    on_connection: ConnectionCallback | None = None
    log_events: bool = True

    def update(
        self,
        *,
        on_status: StatusCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_connection: ConnectionCallback | None = None,
    ) -> None:
        """Replace only the slots that were supplied."""
        if on_status is not None:
            self.on_status = on_status
        if on_error is not None:
            self.on_error = on_error
        if on_connection is not None:
            self.on_connection = on_connection

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def notify_status(self, status: TransferStatus) -> None:
        if self.on_status is not None:
            self._invoke("status", self.on_status, status)

    def notify_error(self, message: str) -> None:
        if self.on_error is not None:
            self._invoke("error", self.on_error, message)

    def notify_connection(self, connected: bool) -> None:
        if self.on_connection is not None:
            self._invoke("connection", self.on_connection, connected)

    def _invoke(self, slot: str, callback: Callable[[Any], None], arg: Any) -> None:
        # A failing caller callback must not break the controller's transition.
        try:
            callback(arg)
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": now_ms(),
                "event_type": "observer_failed",
                "observer": slot,
                "error": repr(e),
            }, enabled=self.log_events)
