from __future__ import annotations

import itertools
from typing import List, Optional

import pytest

from sonicsight.config import Configuration, TransportKind
from sonicsight.transports import Transport


class FakeTransport(Transport):
    def __init__(self, kind: TransportKind, fail_with: Optional[str] = None):
        self.kind = kind
        self.fail_with = fail_with
        self.config = None
        self.opened = False
        self.close_calls = 0
        self.on_value = self.on_error = self.on_open = None

    @property
    def is_open(self) -> bool:
        return self.opened

    def open(self, config, on_value, on_error, on_open) -> bool:
        self.config = config
        self.on_value, self.on_error, self.on_open = on_value, on_error, on_open
        if self.fail_with is not None:
            on_error(self.fail_with)
            return False
        self.opened = True
        return True

    def close(self) -> None:
        self.close_calls += 1
        self.opened = False


@pytest.fixture
def transports() -> List[FakeTransport]:
    return []


@pytest.fixture
def factory(transports):
    def make(kind: TransportKind) -> FakeTransport:
        transport = FakeTransport(kind)
        transports.append(transport)
        return transport

    return make


@pytest.fixture
def clock():
    ticks = itertools.count(1_700_000_000_000, 200)
    return lambda: next(ticks)


@pytest.fixture
def stream_config() -> Configuration:
    return Configuration(
        transport_kind=TransportKind.SERVER_STREAM,
        endpoint_url="https://x.example/",
        data_path="distance",
    )


@pytest.fixture
def sdk_config() -> Configuration:
    return Configuration(
        transport_kind=TransportKind.PUSH_SUBSCRIPTION,
        endpoint_url="https://x.example/",
        credential='{"type": "service_account"}',
        data_path="sensors/front",
    )
