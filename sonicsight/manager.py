"""
Connection manager: owns the one live source feeding the session state.

Sources (a transport or the demo generator) call back from their own threads.
Those callbacks only queue events; ``pump()`` applies them to the session
state on the caller's thread. Each activation is bound to a fresh ``_Link``,
and the link is revoked before the source is closed, so anything a torn-down
source still emits is discarded both when queued and when drained.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Optional, Tuple

from .config import Configuration, TransportKind
from .demo import DemoGenerator
from .exceptions import ConfigurationError
from .session import ConnectionStatus, SessionState
from .transports import Transport, create_transport

logger = logging.getLogger(__name__)

VALUE, ERROR, OPEN = "value", "error", "open"


class _Link:
    __slots__ = ("label", "last_error")

    def __init__(self, label: str):
        self.label = label
        self.last_error: Optional[str] = None


# (link, kind, payload, arrival time in ms)
Event = Tuple[_Link, str, object, int]


class ConnectionManager:
    def __init__(
        self,
        state: SessionState,
        demo: Optional[DemoGenerator] = None,
        transport_factory: Callable[[TransportKind], Transport] = create_transport,
    ):
        self.state = state
        self.demo = demo or DemoGenerator()
        self._factory = transport_factory
        self._transport: Optional[Transport] = None
        self._config: Optional[Configuration] = None
        self._demo_active = False
        self._link: Optional[_Link] = None
        self._inbox: Deque[Event] = deque()

    # ----------------------------- Introspection ----------------------------- #

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def config(self) -> Optional[Configuration]:
        return self._config

    @property
    def active_kind(self) -> Optional[TransportKind]:
        if self._transport is None or self._config is None:
            return None
        return self._config.transport_kind

    @property
    def is_simulating(self) -> bool:
        return self._demo_active

    @property
    def pending(self) -> int:
        return len(self._inbox)

    # ----------------------------- Source binding ----------------------------- #

    def _bind(self, label: str) -> _Link:
        self._link = _Link(label)
        return self._link

    def _post(self, link: _Link, kind: str, payload: object = None) -> None:
        if link is not self._link:
            return
        if kind == ERROR:
            link.last_error = str(payload)
        self._inbox.append((link, kind, payload, self.state.now()))

    def _callbacks(self, link: _Link):
        return (
            lambda value: self._post(link, VALUE, value),
            lambda message: self._post(link, ERROR, message),
            lambda: self._post(link, OPEN),
        )

    def _close_transport(self) -> None:
        transport = self._transport
        if transport is None:
            return
        self._link = None
        self._transport = None
        logger.info("Closing %s transport", self._config.transport_kind.value if self._config else "?")
        transport.close()

    def _stop_generator(self) -> bool:
        if not self._demo_active:
            return False
        self._link = None
        self._demo_active = False
        self.demo.stop()
        return True

    # ----------------------------- Operations ----------------------------- #

    def connect(self, config: Configuration) -> bool:
        """Replace whatever source is active with a transport for ``config``.

        Returns whether the transport opened. Raises ``ConfigurationError``
        (after moving to ERROR) when ``config`` cannot be used.
        """
        self._close_transport()
        if self._stop_generator():
            self.state.reset()
        self._config = config

        try:
            config.validate()
        except ConfigurationError as exc:
            logger.warning("Refusing to connect: %s", exc)
            self.state.on_error(str(exc))
            raise

        self.state.begin_connecting()
        transport = self._factory(config.transport_kind)
        link = self._bind(config.transport_kind.value)
        self._transport = transport
        logger.info("Connecting to %s%s (%s)", config.endpoint_url, config.data_path,
                    config.transport_kind.label)

        on_value, on_error, on_open = self._callbacks(link)
        if transport.open(config, on_value, on_error, on_open):
            return True

        self._close_transport()
        self.state.on_error(link.last_error or "Transport failed to open")
        return False

    def disconnect(self) -> None:
        self._close_transport()
        self._stop_generator()
        self.state.reset()

    def reconnect(self, config: Configuration) -> bool:
        self.disconnect()
        return self.connect(config)

    def start_demo(self) -> None:
        self._close_transport()
        self._stop_generator()
        self.state.begin_simulating()
        link = self._bind("demo")
        on_value, _, _ = self._callbacks(link)
        self._demo_active = True
        self.demo.start(on_value)

    def stop_demo(self) -> None:
        if self._stop_generator():
            self.state.reset()

    def shutdown(self) -> None:
        self.disconnect()
        self._inbox.clear()

    def pump(self, max_events: Optional[int] = None) -> int:
        """Apply queued events to the session state; returns how many applied."""
        applied = 0
        while self._inbox and (max_events is None or applied < max_events):
            link, kind, payload, received = self._inbox.popleft()
            if link is not self._link:
                continue
            if kind == VALUE:
                self.state.on_value(payload, timestamp=received)
            elif kind == OPEN:
                if self.state.status is ConnectionStatus.CONNECTING:
                    self.state.on_open()
            elif kind == ERROR:
                # errors end the connection; the user reconnects by hand
                self._close_transport()
                self.state.on_error(str(payload))
            applied += 1
        return applied
