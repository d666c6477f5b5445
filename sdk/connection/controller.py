"""
Connection controller for one transfer status stream.

Core model (IMPORTANT):
- One controller == one TransferSession == one transfer.
- At most ONE live connection, ONE reader task and ONE pending retry timer
  exist at any instant. connect() always tears down the previous attempt and
  cancels the pending timer before starting a new one.
- reconnect_attempts only grows while closed-and-retrying; it is reset to 0
  exactly on the transition into OPEN.
- disconnect() is the only cancellation primitive. It is terminal: the
  controller never reconnects afterwards, and late callbacks from the old
  connection or timer are ignored.

Event behavior:
- open             => on_connection(True)
- any closure      => on_connection(False), then retry if the close code is
                      abnormal and attempts < max_reconnect_attempts
- status frame     => on_status(transfer)
- error frame      => on_error(message)
- ping frame       => exactly one pong frame, no observer
- malformed frame  => on_error("Failed to parse message"), stays open

Design constraints:
- Everything runs on one asyncio event loop; transitions run to completion
  without interleaving.
- connect() and disconnect() are synchronous and return immediately;
  completion is observed through the observers.
- No handshake timeout. Liveness relies on the service's ping/pong and the
  abnormal-closure retry path.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedOK,
    InvalidURI,
)

from config import ClientConfig
from connection.endpoint import build_stream_url
from connection.retry import reconnect_delay_ms, should_reconnect
from connection.status import ConnectionState
from observability.logger import log_event, now_ms
from protocol.messages import (
    ErrorMessage,
    PingMessage,
    ProtocolError,
    StatusMessage,
    encode_pong,
    parse_inbound_frame,
)
from session.observers import TransferObservers

from constants import (
    ERR_MISSING_CREDENTIALS,
    ERR_PARSE,
    ERR_SETUP,
    ERR_TRANSPORT,
    LOG_PAYLOAD_PREVIEW_CHARS,
    WS_ABNORMAL_CLOSURE,
    WS_NORMAL_CLOSURE,
)


class SessionClosedError(RuntimeError):
    """Raised when a disconnected (terminated) session is used again."""


class StreamConnection(Protocol):
    """The subset of a websockets client connection the controller uses."""

    close_code: int | None

    def __aiter__(self) -> Any: ...

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = WS_NORMAL_CLOSURE, reason: str = "") -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


ConnectFactory = Callable[[str], Awaitable[StreamConnection]]
CallLater = Callable[[float, Callable[[], None]], TimerHandle]


def _open_websocket(url: str) -> Awaitable[StreamConnection]:
    # Service-driven ping/pong is the liveness mechanism; disable library keepalive.
    return ws_connect(url, ping_interval=None, max_size=2**20)


class ConnectionController:
    """
    Reconnecting WebSocket client for transfer status pushes.

    Public interface:
    - set_credentials(transfer_id, signature)
    - connect(): start (or restart) an attempt with the stored credentials
    - reconnect(): explicit caller-driven connect after the controller settled
    - disconnect(): terminal teardown
    - wait_closed(): await background close/cancel work
    """

    def __init__(
        self,
        *,
        config: ClientConfig,
        observers: TransferObservers,
        connect_factory: ConnectFactory | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        self._config = config
        self._observers = observers
        self._connect_factory = connect_factory or _open_websocket
        self._call_later = call_later

        self._transfer_id: str | None = None
        self._signature: str | None = None

        self._state = ConnectionState.IDLE
        self._ws: StreamConnection | None = None
        self._task: asyncio.Task[None] | None = None
        self._retry_handle: TimerHandle | None = None
        self._reconnect_attempts = 0

        # Superseded readers and in-flight close() calls, kept for wait_closed().
        self._retiring: set[asyncio.Task[Any]] = set()

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    @property
    def retries_exhausted(self) -> bool:
        """True once the controller stopped retrying because of the attempt cap."""
        return (
            self._state is ConnectionState.CLOSED
            and self._reconnect_attempts >= self._config.max_reconnect_attempts
        )

    @property
    def transfer_id(self) -> str | None:
        return self._transfer_id

    @property
    def signature(self) -> str | None:
        return self._signature

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def set_credentials(self, transfer_id: str | None, signature: str | None) -> None:
        self._ensure_not_terminated()
        self._transfer_id = transfer_id
        self._signature = signature

    def connect(self) -> None:
        """
        Start a connection attempt with the stored credentials.

        Must be called from within the running event loop. Returns immediately;
        open/close/failure are reported through the observers.
        """
        self._ensure_not_terminated()
        loop = asyncio.get_running_loop()

        self._cancel_retry()
        if self._teardown(WS_NORMAL_CLOSURE):
            self._observers.notify_connection(False)
            # Observer may have called connect()/disconnect() re-entrantly.
            if self._state is ConnectionState.TERMINATED or self._task is not None:
                return

        if not self._transfer_id or not self._signature:
            self._log("ws_credentials_missing")
            if self._state is not ConnectionState.IDLE:
                self._state = ConnectionState.CLOSED
            self._observers.notify_error(ERR_MISSING_CREDENTIALS)
            return

        url = build_stream_url(
            host=self._config.status_host,
            transfer_id=self._transfer_id,
            signature=self._signature,
            secure=self._config.secure,
        )

        self._state = ConnectionState.CONNECTING
        self._log(
            "ws_connecting",
            host=self._config.status_host,
            secure=self._config.secure,
            attempt=self._reconnect_attempts,
        )

        try:
            opener = self._connect_factory(url)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._setup_failed(e)
            return

        self._task = loop.create_task(self._run(opener))

    def reconnect(self) -> None:
        """Explicit caller-driven reconnect; does not reset the attempt counter."""
        self.connect()

    def attempt_reconnect(self) -> None:
        """
        Schedule the next automatic reconnect.

        The attempt counter increments first; the delay follows the capped
        exponential backoff. Any previously pending timer is cancelled.
        """
        self._reconnect_attempts += 1
        delay_ms = reconnect_delay_ms(
            self._reconnect_attempts,
            base_ms=self._config.reconnect_base_delay_ms,
            cap_ms=self._config.reconnect_max_delay_ms,
        )

        self._cancel_retry()
        self._state = ConnectionState.RETRYING
        self._retry_handle = self._schedule(delay_ms / 1000.0, self._fire_retry)

        self._log(
            "ws_reconnect_scheduled",
            attempt=self._reconnect_attempts,
            delay_ms=delay_ms,
        )

    def disconnect(self) -> None:
        """
        Terminal teardown.

        Cancels the pending retry, closes any live connection with the normal
        closure code, notifies "disconnected" if an attempt was live, and
        forgets the credentials.
        """
        if self._state is ConnectionState.TERMINATED:
            return

        self._cancel_retry()
        had_attempt = self._teardown(WS_NORMAL_CLOSURE)

        self._log("ws_disconnect", had_attempt=had_attempt)

        self._state = ConnectionState.TERMINATED
        self._transfer_id = None
        self._signature = None

        if had_attempt:
            self._observers.notify_connection(False)

    async def wait_closed(self) -> None:
        """Wait for background close() calls and cancelled readers to finish."""
        pending = [t for t in self._retiring if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Connection management
    # -------------------------------------------------------------------------

    def _ensure_not_terminated(self) -> None:
        if self._state is ConnectionState.TERMINATED:
            raise SessionClosedError(
                "session was disconnected; create a new session to track a transfer"
            )

    def _schedule(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        if self._call_later is not None:
            return self._call_later(delay_s, callback)
        return asyncio.get_running_loop().call_later(delay_s, callback)

    def _cancel_retry(self) -> None:
        handle = self._retry_handle
        self._retry_handle = None
        if handle is not None:
            handle.cancel()

    def _teardown(self, code: int) -> bool:
        """
        Detach the current attempt (reader task and/or connection).

        Returns True if there was an attempt to tear down.
        """
        task = self._task
        ws = self._ws
        self._task = None
        self._ws = None

        if task is not None and not task.done():
            task.cancel()
            self._retire(task)

        if ws is not None:
            self._retire(
                asyncio.get_running_loop().create_task(self._close_quietly(ws, code))
            )

        return task is not None or ws is not None

    def _retire(self, task: asyncio.Task[Any]) -> None:
        self._retiring.add(task)
        task.add_done_callback(self._retiring.discard)

    async def _close_quietly(self, ws: StreamConnection, code: int) -> None:
        try:
            await ws.close(code=code)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._log("ws_close_failed", error=repr(e))

    def _fire_retry(self) -> None:
        self._retry_handle = None
        # Timer may fire after disconnect() or an explicit reconnect() raced it.
        if self._state is not ConnectionState.RETRYING:
            return

        self._log("ws_reconnect_fired", attempt=self._reconnect_attempts)
        self.connect()

    def _setup_failed(self, error: BaseException) -> None:
        self._state = ConnectionState.CLOSED
        self._log("ws_setup_failed", error=repr(error))
        self._observers.notify_error(ERR_SETUP)

    def _transport_error(self, error: BaseException) -> None:
        self._log("ws_transport_error", error=repr(error))
        self._observers.notify_error(ERR_TRANSPORT)

    # -------------------------------------------------------------------------
    # Reader
    # -------------------------------------------------------------------------

    async def _run(self, opener: Awaitable[StreamConnection]) -> None:
        """Open the connection, then read frames until it closes."""
        try:
            ws = await opener
        except asyncio.CancelledError:
            raise
        except InvalidURI as e:
            self._task = None
            self._setup_failed(e)
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            # Handshake refused/failed: same path as an abnormal drop.
            self._task = None
            self._transport_error(e)
            self._on_closed(WS_ABNORMAL_CLOSURE)
            return

        self._on_open(ws)

        close_code: int | None = None
        try:
            async for raw in ws:
                await self._handle_frame(ws, raw)
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as e:
            # A close frame from the service (e.g. an application code) is a
            # closure, not a transport fault.
            if e.rcvd is None:
                self._transport_error(e)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._transport_error(e)
            close_code = WS_ABNORMAL_CLOSURE
            self._retire(
                asyncio.get_running_loop().create_task(
                    self._close_quietly(ws, WS_NORMAL_CLOSURE)
                )
            )

        if ws is not self._ws:
            return

        if close_code is None:
            close_code = ws.close_code if ws.close_code is not None else WS_ABNORMAL_CLOSURE

        self._task = None
        self._ws = None
        self._on_closed(close_code)

    def _on_open(self, ws: StreamConnection) -> None:
        self._ws = ws
        self._reconnect_attempts = 0
        self._state = ConnectionState.OPEN
        self._log("ws_open")
        self._observers.notify_connection(True)

    def _on_closed(self, code: int) -> None:
        self._state = ConnectionState.CLOSED
        self._log("ws_closed", code=code, attempts=self._reconnect_attempts)
        self._observers.notify_connection(False)

        # Observer may have called connect()/disconnect() re-entrantly.
        if self._state is not ConnectionState.CLOSED:
            return

        if should_reconnect(
            close_code=code,
            attempts=self._reconnect_attempts,
            max_attempts=self._config.max_reconnect_attempts,
        ):
            self.attempt_reconnect()
        elif code != WS_NORMAL_CLOSURE:
            self._log("ws_reconnect_exhausted", attempts=self._reconnect_attempts)

    async def _handle_frame(self, ws: StreamConnection, raw: str | bytes) -> None:
        preview = raw[:LOG_PAYLOAD_PREVIEW_CHARS]
        self._log(
            "ws_message_received",
            payload_preview=preview if isinstance(preview, str) else repr(preview),
        )

        try:
            msg = parse_inbound_frame(raw)
        except ProtocolError as e:
            self._log("ws_protocol_error", error=str(e))
            self._observers.notify_error(ERR_PARSE)
            return

        if isinstance(msg, StatusMessage):
            self._observers.notify_status(msg.transfer)
        elif isinstance(msg, ErrorMessage):
            self._observers.notify_error(msg.message)
        elif isinstance(msg, PingMessage):
            if self._state is ConnectionState.OPEN and ws is self._ws:
                await ws.send(encode_pong())

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def _log(self, event_type: str, **fields: Any) -> None:
        log_event({
            "ts_ms": now_ms(),
            "event_type": event_type,
            "transfer_id": self._transfer_id,
            "state": self._state.value,
            **fields,
        }, enabled=self._config.enable_json_logs)
