"""
Push subscription through the Firebase Admin SDK.

Every connection gets its own named ``firebase_admin.App`` so that deleting it
takes the listener's HTTP session down with it and other sessions in the same
process are left alone.

The SDK delivers ``put``/``patch`` change events rather than snapshots, so the
transport keeps its own copy of the subscribed subtree, applies each change at
the event path and normalizes the whole copy.

Faults raised while opening (rules denial, bad key, unreachable endpoint) are
reported through ``on_error``. Once the listener runs, ``firebase_admin``
handles stream failures inside its own thread and does not expose them; only
``cancel``/``auth_revoked`` events that reach the callback can be reported.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import Any, List, Optional

import firebase_admin
import requests
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError

from ..config import Configuration
from ..exceptions import ConfigurationError, StreamFault, TransportOpenError
from ..normalizer import normalize
from .base import ErrorCallback, OpenCallback, Transport, ValueCallback

logger = logging.getLogger(__name__)

FAULT_EVENTS = ("cancel", "auth_revoked")


def load_credential(credential: str) -> credentials.Certificate:
    """Service account from inline JSON text or from a path to the key file."""
    text = credential.strip()
    if text.startswith("{"):
        try:
            return credentials.Certificate(json.loads(text))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Service account JSON is malformed: {exc}") from exc
    return credentials.Certificate(text)


def _segments(path: Optional[str]) -> List[str]:
    return [p for p in (path or "").split("/") if p]


def _set_at(tree: Any, keys: List[str], data: Any) -> Any:
    if not keys:
        return data
    node = dict(tree) if isinstance(tree, dict) else {}
    child = _set_at(node.get(keys[0]), keys[1:], data)
    if child is None:
        node.pop(keys[0], None)
    else:
        node[keys[0]] = child
    return node or None


def apply_change(tree: Any, event_type: str, path: str, data: Any) -> Any:
    """Return ``tree`` after a ``put`` (replace) or ``patch`` (merge) at ``path``."""
    keys = _segments(path)
    if event_type == "put":
        return _set_at(tree, keys, data)
    if event_type == "patch" and isinstance(data, dict):
        for child, value in data.items():
            tree = _set_at(tree, keys + _segments(child), value)
    return tree


class PushSubscriptionTransport(Transport):
    def __init__(self):
        self._app: Optional[firebase_admin.App] = None
        self._registration: Optional[db.ListenerRegistration] = None
        self._on_value: Optional[ValueCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._tree: Any = None

    @property
    def is_open(self) -> bool:
        return self._app is not None

    def open(
        self,
        config: Configuration,
        on_value: ValueCallback,
        on_error: ErrorCallback,
        on_open: OpenCallback,
    ) -> bool:
        self.close()
        if not config.credential or not config.endpoint_url:
            on_error(str(ConfigurationError(
                "A service account credential and Database URL are required for SDK mode."
            )))
            return False

        name = f"sonicsight-{uuid.uuid4().hex[:8]}"
        self._on_value, self._on_error = on_value, on_error
        try:
            cert = load_credential(config.credential)
            self._app = firebase_admin.initialize_app(
                cert, {"databaseURL": config.endpoint_url}, name=name
            )
            ref = db.reference(config.data_path, app=self._app)
            self._registration = ref.listen(self._handle_event)
        except (FirebaseError, GoogleAuthError, requests.RequestException,
                ConfigurationError, ValueError, OSError) as exc:
            error = TransportOpenError(str(exc) or "Unknown Firebase Error")
            logger.warning("SDK subscription on %s failed: %s", config.data_path, error)
            self.close()
            on_error(str(error))
            return False

        logger.info("Subscribed to %s%s via app %s", config.endpoint_url, config.data_path, name)
        on_open()
        return True

    def _handle_event(self, event: Any) -> None:
        sink = self._on_value
        if sink is None:
            return
        if event.event_type in FAULT_EVENTS:
            on_error = self._on_error
            # the manager closes us from its own thread; stop delivering now
            self._on_value = self._on_error = None
            logger.warning("SDK listener ended: %s", StreamFault(f"server sent {event.event_type}"))
            if on_error is not None:
                on_error(f"Subscription ended by server ({event.event_type}).")
            return
        self._tree = apply_change(self._tree, event.event_type, event.path, event.data)
        value = normalize(self._tree)
        if value is None:
            logger.debug("No reading after %s at %s", event.event_type, event.path)
            return
        sink(value)

    def close(self) -> None:
        registration, app = self._registration, self._app
        self._registration = None
        self._app = None
        self._on_value = self._on_error = None
        self._tree = None
        if registration is not None:
            try:
                registration.close()
            except Exception as exc:
                logger.warning("Closing SDK listener failed: %s", exc)
        if app is not None:
            firebase_admin.delete_app(app)
            logger.info("Released app %s", app.name)
