"""
Transfer session: the public entry point.

- One session == one transfer == one ConnectionController.
- Owns the credentials (transfer id + signature) and the observer slots.
- Lives until disconnect(); not reusable afterwards. Construct a new
  session to track another transfer or to retry tracking the same one.
"""

from __future__ import annotations

from types import TracebackType

import httpx

from config import ClientConfig
from connection.controller import (
    CallLater,
    ConnectFactory,
    ConnectionController,
    SessionClosedError,
)
from connection.status import ConnectionState
from services.transfer_service import (
    TransferMetadata,
    TransferResponse,
    create_transfer,
)
from session.observers import (
    ConnectionCallback,
    ErrorCallback,
    StatusCallback,
    TransferObservers,
)

__all__ = ["TransferSession", "SessionClosedError"]


class TransferSession:
    """
    Tracks one payment transfer over the status stream.

    Usage:

        session = TransferSession(ClientConfig.for_environment(test=True))
        session.listen(transfer_id, signature, on_status=print)
        ...
        session.disconnect()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        connect_factory: ConnectFactory | None = None,
        call_later: CallLater | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._http_client = http_client
        self.observers = TransferObservers(log_events=self._config.enable_json_logs)
        self._controller = ConnectionController(
            config=self._config,
            observers=self.observers,
            connect_factory=connect_factory,
            call_later=call_later,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def transfer_id(self) -> str | None:
        return self._controller.transfer_id

    @property
    def signature(self) -> str | None:
        return self._controller.signature

    @property
    def state(self) -> ConnectionState:
        return self._controller.state

    @property
    def controller(self) -> ConnectionController:
        return self._controller

    @property
    def closed(self) -> bool:
        return self._controller.state is ConnectionState.TERMINATED

    # ------------------------------------------------------------------
    # Observer registration (last write wins)
    # ------------------------------------------------------------------

    def set_on_status(self, callback: StatusCallback | None) -> None:
        self.observers.on_status = callback

    def set_on_error(self, callback: ErrorCallback | None) -> None:
        self.observers.on_error = callback

    def set_on_connection(self, callback: ConnectionCallback | None) -> None:
        self.observers.on_connection = callback

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def listen(
        self,
        transfer_id: str,
        signature: str,
        *,
        on_status: StatusCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_connection: ConnectionCallback | None = None,
    ) -> None:
        """
        Start (or resume) tracking a transfer.

        Observers that are not supplied keep their current registration.
        Returns immediately; progress is reported through the observers.

        Raises:
            SessionClosedError if the session was disconnected
        """
        self._controller.set_credentials(transfer_id, signature)
        self.observers.update(
            on_status=on_status,
            on_error=on_error,
            on_connection=on_connection,
        )
        self._controller.connect()

    def reconnect(self) -> None:
        """
        Explicitly reconnect with the stored credentials.

        Used after the controller settled in CLOSED (normal close, setup
        failure or retries exhausted).
        """
        self._controller.reconnect()

    def disconnect(self) -> None:
        """Stop tracking. Terminal for this session."""
        self._controller.disconnect()

    async def aclose(self) -> None:
        """disconnect() and wait for the connection to finish closing."""
        self._controller.disconnect()
        await self._controller.wait_closed()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_transfer(
        self,
        metadata: TransferMetadata,
        url: str | None = None,
    ) -> TransferResponse:
        """
        Create a transfer and remember its credentials on this session.

        Raises:
            TransferCreationError
            SessionClosedError if the session was disconnected
            ValueError if no endpoint was given and none is configured
        """
        if self.closed:
            raise SessionClosedError("session was disconnected")

        endpoint = url or self._config.create_transfer_url
        if not endpoint:
            raise ValueError("no create-transfer URL given or configured")

        transfer = await create_transfer(
            endpoint,
            metadata,
            client=self._http_client,
            log_events=self._config.enable_json_logs,
        )
        self._controller.set_credentials(transfer.transfer_request_id, transfer.signature)
        return transfer

    async def create_and_listen(
        self,
        metadata: TransferMetadata,
        url: str | None = None,
        *,
        on_status: StatusCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_connection: ConnectionCallback | None = None,
    ) -> TransferResponse:
        """Create a transfer, then start tracking it. Returns the created transfer."""
        transfer = await self.create_transfer(metadata, url)
        self.listen(
            transfer.transfer_request_id,
            transfer.signature,
            on_status=on_status,
            on_error=on_error,
            on_connection=on_connection,
        )
        return transfer

    # ------------------------------------------------------------------
    # Async context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TransferSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"TransferSession(transfer_id={self.transfer_id!r}, "
            f"state={self.state.value})"
        )
