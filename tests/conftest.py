from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

import smartswitch.services.dispatcher as dispatcher_mod
import smartswitch.services.synchronizer as sync_mod
from smartswitch.services.device_client import DeviceClient
from smartswitch.state import DisplayedState
from tests.utils.fake_device import FakeDevice
from tests.utils.recorder import RecorderClient

pytest_plugins = ["nicegui.testing.user_plugin"]


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from pytest import MonkeyPatch

BASE_URL = "http://smartswitch.test"


@pytest.fixture
def state() -> DisplayedState:
    return DisplayedState()


@pytest.fixture
def fake_device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
async def device_client(fake_device: FakeDevice) -> AsyncIterator[DeviceClient]:
    dc = DeviceClient(base_url=BASE_URL, timeout=1.0, transport=fake_device.transport())
    try:
        yield dc
    finally:
        await dc.close()


@pytest.fixture
def wired(monkeypatch: MonkeyPatch, device_client: DeviceClient) -> DeviceClient:
    """Route dispatcher and synchronizer through the fake device."""
    monkeypatch.setattr(dispatcher_mod, "client", device_client, raising=True)
    monkeypatch.setattr(sync_mod, "client", device_client, raising=True)
    return device_client


@pytest.fixture
def recorder(monkeypatch: MonkeyPatch) -> RecorderClient:
    rec = RecorderClient()
    monkeypatch.setattr(dispatcher_mod, "client", rec, raising=True)
    monkeypatch.setattr(sync_mod, "client", rec, raising=True)
    return rec


@pytest.fixture
def alerts(monkeypatch: MonkeyPatch) -> list[str]:
    """Capture operator alerts instead of rendering them."""
    captured: list[str] = []

    def _notify(message: object, **kwargs: object) -> None:
        captured.append(str(message))

    monkeypatch.setattr(dispatcher_mod.ui, "notify", _notify, raising=True)
    return captured
