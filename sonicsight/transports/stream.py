"""
Server-sent event stream from the database REST API.

The reader runs on a daemon thread (one per open transport) and hands readings
to the callbacks supplied to ``open``. Nothing here retries: a dropped or
refused stream is reported once and the transport stays closed.

The server sends a keep-alive about every 30 seconds, so a read timeout of
a minute catches a half-open socket without tripping on a quiet sensor.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Iterable, Iterator, Optional, Tuple, Union

import requests

from ..config import Configuration
from ..exceptions import PayloadParseError, StreamFault
from ..normalizer import extract_event_value
from .base import ErrorCallback, OpenCallback, Transport, ValueCallback

logger = logging.getLogger(__name__)

# The event stream cannot tell a rules denial from a bad URL or a dead network.
STREAM_ERROR_MESSAGE = "Connection lost or access denied (REST). Check URL and Rules."

STREAM_HEADERS = {"Accept": "text/event-stream"}
FAULT_EVENTS = ("cancel", "auth_revoked")


def stream_url(config: Configuration) -> str:
    return f"{config.endpoint_url}{config.data_path}.json"


def iter_events(lines: Iterable[Union[str, bytes, None]]) -> Iterator[Tuple[str, str]]:
    """Group raw event-stream lines into ``(event_type, data)`` pairs."""
    event_type: Optional[str] = None
    data = []
    for raw in lines:
        if raw is None:
            continue
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        if not line:
            if event_type or data:
                yield event_type or "message", "\n".join(data)
            event_type, data = None, []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_type = value
        elif field == "data":
            data.append(value)


class ServerStreamTransport(Transport):
    def __init__(self, connect_timeout: float = 10.0, read_timeout: Optional[float] = 60.0,
                 join_timeout: float = 1.0):
        self._timeout = (connect_timeout, read_timeout)
        self._join_timeout = join_timeout
        self._stop = threading.Event()
        self._stop.set()
        self._thread: Optional[threading.Thread] = None
        self._response: Optional[requests.Response] = None
        self._url: Optional[str] = None
        self._on_value: Optional[ValueCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._on_open: Optional[OpenCallback] = None

    @property
    def is_open(self) -> bool:
        return not self._stop.is_set()

    @property
    def url(self) -> Optional[str]:
        return self._url

    def open(
        self,
        config: Configuration,
        on_value: ValueCallback,
        on_error: ErrorCallback,
        on_open: OpenCallback,
    ) -> bool:
        self.close()
        self._url = stream_url(config)
        self._on_value, self._on_error, self._on_open = on_value, on_error, on_open
        # fresh event per open: a reader left over from a previous open stays stopped
        self._stop = threading.Event()
        try:
            self._thread = threading.Thread(
                target=self._run, args=(self._url, self._stop), name="sonicsight-stream", daemon=True
            )
            self._thread.start()
        except RuntimeError as exc:
            logger.warning("Could not start stream reader: %s", exc)
            self.close()
            on_error(str(exc) or "Failed to start event stream")
            return False
        logger.info("Opening event stream %s", self._url)
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    # ----------------------------- Reader thread ----------------------------- #

    def _run(self, url: str, stop: threading.Event) -> None:
        try:
            response = requests.get(url, headers=STREAM_HEADERS, stream=True, timeout=self._timeout)
        except requests.RequestException as exc:
            if not stop.is_set():
                self.handle_fault(str(exc))
            return
        if stop is self._stop:
            self._response = response
        try:
            if stop.is_set():
                return
            if response.status_code != 200:
                self.handle_fault(f"HTTP {response.status_code}")
                return
            self._notify_open()
            for event_type, data in iter_events(response.iter_lines(decode_unicode=True)):
                if stop.is_set():
                    return
                if event_type in FAULT_EVENTS:
                    self.handle_fault(f"server sent {event_type}")
                    return
                self.handle_event(event_type, data)
            if not stop.is_set():
                self.handle_fault("stream closed by server")
        except Exception as exc:
            # close() tearing the socket down mid-read lands here too
            if not stop.is_set():
                self.handle_fault(f"{type(exc).__name__}: {exc}")
        finally:
            response.close()

    def _notify_open(self) -> None:
        callback = self._on_open
        if callback is not None and not self._stop.is_set():
            logger.info("Event stream open: %s", self._url)
            callback()

    def handle_event(self, event_type: str, data: str) -> None:
        """Feed one decoded event to the transport."""
        if self._stop.is_set() or event_type == "keep-alive":
            return
        if event_type not in ("put", "patch"):
            logger.debug("Ignoring %s event", event_type)
            return
        try:
            body = json.loads(data)
            if not isinstance(body, dict):
                raise PayloadParseError(f"expected an object, got {type(body).__name__}")
        except (ValueError, PayloadParseError) as exc:
            logger.warning("Dropping malformed %s frame: %s", event_type, exc)
            return
        value = extract_event_value(event_type, body.get("data"))
        callback = self._on_value
        if value is not None and callback is not None and not self._stop.is_set():
            callback(value)

    def handle_fault(self, reason: str) -> None:
        """Close the stream and report it failed. Ignored once closed."""
        if self._stop.is_set():
            return
        logger.warning("Event stream %s failed: %s", self._url, StreamFault(reason))
        callback = self._on_error
        self._shutdown()
        if callback is not None:
            callback(STREAM_ERROR_MESSAGE)

    # ----------------------------- Teardown ----------------------------- #

    def _shutdown(self) -> None:
        self._stop.set()
        self._on_value = self._on_error = self._on_open = None
        response, self._response = self._response, None
        if response is not None:
            response.close()

    def close(self) -> None:
        self._shutdown()
        self.join(self._join_timeout)
