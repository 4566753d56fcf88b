from __future__ import annotations

from types import SimpleNamespace
from unittest import mock

import pytest
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import RefreshError

from sonicsight.exceptions import ConfigurationError
from sonicsight.transports import PushSubscriptionTransport
from sonicsight.transports.push import apply_change, load_credential


class Recorder:
    def __init__(self):
        self.values = []
        self.errors = []
        self.opened = 0

    def on_value(self, value: float) -> None:
        self.values.append(value)

    def on_error(self, message: str) -> None:
        self.errors.append(message)

    def on_open(self) -> None:
        self.opened += 1


@pytest.fixture
def sdk():
    with mock.patch("sonicsight.transports.push.firebase_admin") as firebase_admin, \
            mock.patch("sonicsight.transports.push.db") as db, \
            mock.patch("sonicsight.transports.push.credentials") as credentials:
        yield SimpleNamespace(firebase_admin=firebase_admin, db=db, credentials=credentials)


def _event(event_type: str, data, path: str = "/"):
    return SimpleNamespace(event_type=event_type, data=data, path=path)


def test_missing_credential_fails_without_sdk_calls(sdk, sdk_config) -> None:
    recorder = Recorder()
    transport = PushSubscriptionTransport()
    ok = transport.open(sdk_config.with_changes(credential=None), recorder.on_value,
                        recorder.on_error, recorder.on_open)

    assert ok is False
    assert len(recorder.errors) == 1
    assert "credential" in recorder.errors[0]
    sdk.firebase_admin.initialize_app.assert_not_called()
    sdk.db.reference.assert_not_called()


def test_open_subscribes_with_named_app(sdk, sdk_config) -> None:
    recorder = Recorder()
    transport = PushSubscriptionTransport()
    assert transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open)

    app = sdk.firebase_admin.initialize_app.return_value
    args, kwargs = sdk.firebase_admin.initialize_app.call_args
    assert args == (sdk.credentials.Certificate.return_value, {"databaseURL": "https://x.example"})
    assert kwargs["name"].startswith("sonicsight-")
    sdk.credentials.Certificate.assert_called_once_with({"type": "service_account"})
    sdk.db.reference.assert_called_once_with("/sensors/front", app=app)
    assert recorder.opened == 1
    assert transport.is_open


def test_events_are_applied_to_the_subtree(sdk, sdk_config) -> None:
    recorder = Recorder()
    transport = PushSubscriptionTransport()
    transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open)
    listener = sdk.db.reference.return_value.listen.call_args[0][0]

    listener(_event("put", {"cm": 7}))
    listener(_event("put", "12.5"))
    listener(_event("patch", {"cm": 8}))
    listener(_event("put", "abc"))
    listener(_event("put", 3, path="/cm"))

    assert recorder.values == [7.0, 12.5, 8.0, 3.0]


def test_child_changes_keep_the_first_key_reading(sdk, sdk_config) -> None:
    recorder = Recorder()
    transport = PushSubscriptionTransport()
    transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open)
    listener = sdk.db.reference.return_value.listen.call_args[0][0]

    listener(_event("put", {"cm": 12, "raw": 500}))
    listener(_event("put", 501, path="/raw"))
    listener(_event("patch", {"cm": 13}))

    assert recorder.values == [12.0, 12.0, 13.0]


def test_apply_change_puts_and_merges_at_path() -> None:
    tree = apply_change(None, "put", "/", {"cm": 1, "meta": {"unit": "cm"}})
    tree = apply_change(tree, "patch", "/meta", {"unit": "mm", "sensor/id": 4})
    assert tree == {"cm": 1, "meta": {"unit": "mm", "sensor": {"id": 4}}}
    tree = apply_change(tree, "put", "/meta", None)
    assert tree == {"cm": 1}
    assert apply_change(tree, "put", "/cm", None) is None


def test_reopen_starts_from_an_empty_subtree(sdk, sdk_config) -> None:
    recorder = Recorder()
    transport = PushSubscriptionTransport()
    transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open)
    listener = sdk.db.reference.return_value.listen.call_args[0][0]
    listener(_event("put", {"cm": 12, "raw": 500}))

    transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open)
    listener = sdk.db.reference.return_value.listen.call_args[0][0]
    listener(_event("put", 501, path="/raw"))

    assert recorder.values == [12.0, 501.0]


def test_cancel_event_is_reported_once(sdk, sdk_config) -> None:
    recorder = Recorder()
    transport = PushSubscriptionTransport()
    transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open)
    listener = sdk.db.reference.return_value.listen.call_args[0][0]

    listener(_event("put", 4))
    listener(_event("cancel", None))
    listener(_event("put", 5))
    listener(_event("auth_revoked", None))

    assert recorder.values == [4.0]
    assert recorder.errors == ["Subscription ended by server (cancel)."]


def test_close_releases_app_and_silences_listener(sdk, sdk_config) -> None:
    recorder = Recorder()
    transport = PushSubscriptionTransport()
    transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open)
    listener = sdk.db.reference.return_value.listen.call_args[0][0]
    registration = sdk.db.reference.return_value.listen.return_value
    app = sdk.firebase_admin.initialize_app.return_value

    transport.close()
    transport.close()
    listener(_event("put", 5))

    registration.close.assert_called_once_with()
    sdk.firebase_admin.delete_app.assert_called_once_with(app)
    assert recorder.values == []
    assert not transport.is_open


def test_close_before_open_is_a_noop(sdk) -> None:
    PushSubscriptionTransport().close()
    sdk.firebase_admin.delete_app.assert_not_called()


def test_sdk_failure_is_reported_and_cleaned_up(sdk, sdk_config) -> None:
    sdk.db.reference.return_value.listen.side_effect = FirebaseError("PERMISSION_DENIED", "Permission denied")
    recorder = Recorder()
    transport = PushSubscriptionTransport()

    assert transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open) is False
    assert recorder.errors == ["Permission denied"]
    assert recorder.opened == 0
    sdk.firebase_admin.delete_app.assert_called_once_with(sdk.firebase_admin.initialize_app.return_value)


def test_bad_credential_file_is_reported(sdk, sdk_config) -> None:
    sdk.credentials.Certificate.side_effect = IOError("No such file: key.json")
    recorder = Recorder()
    transport = PushSubscriptionTransport()

    ok = transport.open(sdk_config.with_changes(credential="key.json"), recorder.on_value,
                        recorder.on_error, recorder.on_open)
    assert ok is False
    assert recorder.errors == ["No such file: key.json"]
    sdk.firebase_admin.initialize_app.assert_not_called()
    sdk.firebase_admin.delete_app.assert_not_called()


def test_load_credential_accepts_json_text_or_path(sdk) -> None:
    load_credential(' {"type": "service_account", "project_id": "p"} ')
    sdk.credentials.Certificate.assert_called_with({"type": "service_account", "project_id": "p"})
    load_credential("/keys/service.json")
    sdk.credentials.Certificate.assert_called_with("/keys/service.json")


def test_load_credential_rejects_broken_json(sdk) -> None:
    with pytest.raises(ConfigurationError):
        load_credential("{not json")


def test_auth_failure_while_listening_is_reported(sdk, sdk_config) -> None:
    sdk.db.reference.return_value.listen.side_effect = RefreshError("invalid_grant: Invalid JWT Signature.")
    recorder = Recorder()
    transport = PushSubscriptionTransport()

    assert transport.open(sdk_config, recorder.on_value, recorder.on_error, recorder.on_open) is False
    assert recorder.errors == ["invalid_grant: Invalid JWT Signature."]
    assert recorder.opened == 0
    assert not transport.is_open
    sdk.firebase_admin.delete_app.assert_called_once_with(sdk.firebase_admin.initialize_app.return_value)
