from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

import smartswitch.services.dispatcher as dispatcher_mod
from smartswitch.services.device_client import DeviceConnectionError, DeviceStatusError
from smartswitch.services.dispatcher import CommandDispatcher, validation_message
from smartswitch.state import CommandKind, CommandPhase, DisplayedState
from tests.utils.fake_device import FakeDevice

if TYPE_CHECKING:
    from pytest import MonkeyPatch

    from tests.utils.recorder import RecorderClient


class GatedClient:
    """Light commands block until the test releases them, so arrival order is controlled."""

    def __init__(self) -> None:
        self.gates = {"on": asyncio.Event(), "off": asyncio.Event()}
        self.replies = {"on": "ON", "off": "OFF"}
        self.sent: list[str] = []

    async def turn_light_on(self, angle: int) -> str:
        self.sent.append("on")
        await self.gates["on"].wait()
        return self.replies["on"]

    async def turn_light_off(self, angle: int) -> str:
        self.sent.append("off")
        await self.gates["off"].wait()
        return self.replies["off"]


# ---- Validation ----


@pytest.mark.integration
@pytest.mark.parametrize(
    "raw", ["200", "-1", "abc", "", "4.5", "9" * 5000], ids=["200", "-1", "abc", "empty", "4.5", "long-digits"]
)
@pytest.mark.parametrize(
    "method", ["turn_light_on", "turn_light_off", "set_on_angle", "set_off_angle", "set_auto_reset_angle"]
)
async def test_invalid_angle_sends_nothing(
    wired, fake_device: FakeDevice, state: DisplayedState, alerts: list[str], method: str, raw: str
):
    dispatcher = CommandDispatcher(state)
    cmd = await getattr(dispatcher, method)(raw)

    assert cmd.phase is CommandPhase.REJECTED
    assert cmd.parameter is None
    assert fake_device.requests == []
    assert alerts == [validation_message(cmd.kind)]


@pytest.mark.integration
async def test_set_on_angle_200_from_input_field(
    wired, fake_device: FakeDevice, state: DisplayedState, alerts: list[str]
):
    state.on_angle = "200"
    cmd = await CommandDispatcher(state).set_on_angle()

    assert cmd.phase is CommandPhase.REJECTED
    assert fake_device.requests == []
    assert alerts == ["Enter a valid on angle between 0 and 180"]
    assert fake_device.on_angle == 90


# ---- Light commands ----


@pytest.mark.integration
async def test_light_on_response_on(wired, fake_device: FakeDevice, state: DisplayedState, alerts: list[str]):
    state.on_angle = "45"
    cmd = await CommandDispatcher(state).turn_light_on()

    assert cmd.phase is CommandPhase.APPLIED
    assert cmd.parameter == 45
    assert state.light_on is True
    assert fake_device.requests[-1].params == {"angle": "45"}
    assert fake_device.servo_angle == 45
    assert alerts == []


@pytest.mark.integration
async def test_light_on_answered_off_shows_off(
    wired, fake_device: FakeDevice, state: DisplayedState, alerts: list[str]
):
    fake_device.light_overrides["/turnLightOn"] = "OFF"
    state.light_on = True

    cmd = await CommandDispatcher(state).turn_light_on(45)

    # Semantic rejection is not an error
    assert cmd.phase is CommandPhase.APPLIED
    assert cmd.result == "OFF"
    assert state.light_on is False
    assert alerts == []


@pytest.mark.integration
async def test_light_off_uses_off_angle(wired, fake_device: FakeDevice, state: DisplayedState):
    state.light_on = True
    state.off_angle = "10"
    await CommandDispatcher(state).turn_light_off()

    assert state.light_on is False
    assert fake_device.requests[-1].path == "/turnLightOff"
    assert fake_device.requests[-1].params == {"angle": "10"}


@pytest.mark.integration
async def test_light_off_answered_anything_else_shows_on(
    wired, fake_device: FakeDevice, state: DisplayedState
):
    fake_device.light_overrides["/turnLightOff"] = "ON"
    await CommandDispatcher(state).turn_light_off(0)
    assert state.light_on is True


@pytest.mark.integration
async def test_light_command_connection_failure(
    wired, fake_device: FakeDevice, state: DisplayedState, alerts: list[str]
):
    fake_device.unreachable.add("/turnLightOn")
    state.light_on = False

    cmd = await CommandDispatcher(state).turn_light_on(90)

    assert cmd.phase is CommandPhase.FAILED
    assert state.light_on is False
    assert len(alerts) == 1
    assert alerts[0].startswith("Turn light on failed")


@pytest.mark.unit
async def test_out_of_order_light_responses_last_applied_wins(
    monkeypatch: MonkeyPatch, state: DisplayedState, alerts: list[str]
):
    gated = GatedClient()
    monkeypatch.setattr(dispatcher_mod, "client", gated)
    dispatcher = CommandDispatcher(state)

    on_task = asyncio.create_task(dispatcher.turn_light_on(45))
    off_task = asyncio.create_task(dispatcher.turn_light_off(135))
    await asyncio.sleep(0)
    assert gated.sent == ["on", "off"]
    assert state.in_flight == 2

    # off-response first, on-response second
    gated.gates["off"].set()
    await off_task
    assert state.light_on is False
    gated.gates["on"].set()
    await on_task

    assert state.light_on is True
    assert state.in_flight == 0
    assert dispatcher.in_flight == {}


@pytest.mark.unit
async def test_double_click_sends_two_requests(recorder: RecorderClient, state: DisplayedState):
    dispatcher = CommandDispatcher(state)
    await asyncio.gather(dispatcher.turn_light_on(30), dispatcher.turn_light_on(30))
    assert recorder.calls == [("turn_light_on", 30), ("turn_light_on", 30)]


# ---- Config commands ----


@pytest.mark.integration
@pytest.mark.parametrize(
    ("method", "field", "device_attr"),
    [
        ("set_on_angle", "on_angle", "on_angle"),
        ("set_off_angle", "off_angle", "off_angle"),
        ("set_auto_reset_angle", "auto_reset_angle", "auto_reset_angle"),
    ],
)
async def test_angle_config_success_leaves_display(
    wired,
    fake_device: FakeDevice,
    state: DisplayedState,
    alerts: list[str],
    method: str,
    field: str,
    device_attr: str,
):
    setattr(state, field, " 120 ")
    cmd = await getattr(CommandDispatcher(state), method)()

    assert cmd.phase is CommandPhase.APPLIED
    assert getattr(fake_device, device_attr) == 120
    # No display mutation on success; the field keeps the operator's text
    assert getattr(state, field) == " 120 "
    assert alerts == []


@pytest.mark.integration
async def test_set_off_angle_connection_refused(
    wired, fake_device: FakeDevice, state: DisplayedState, alerts: list[str]
):
    fake_device.unreachable.add("/setOffAngle")
    state.off_angle = "30"

    cmd = await CommandDispatcher(state).set_off_angle()

    assert cmd.phase is CommandPhase.FAILED
    assert state.off_angle == "30"
    assert len(alerts) == 1
    assert "Set off angle failed" in alerts[0]


@pytest.mark.unit
async def test_config_non_success_status_alerts_once(
    monkeypatch: MonkeyPatch, state: DisplayedState, alerts: list[str]
):
    class RejectingClient:
        async def set_auto_reset_angle(self, angle: int) -> None:
            raise DeviceStatusError("/setAutoResetAngle", 400, "Invalid angle.")

    monkeypatch.setattr(dispatcher_mod, "client", RejectingClient())
    state.auto_reset_angle = "60"

    cmd = await CommandDispatcher(state).set_auto_reset_angle()

    assert cmd.phase is CommandPhase.FAILED
    assert "HTTP 400" in (cmd.error or "")
    assert state.auto_reset_angle == "60"
    assert len(alerts) == 1


@pytest.mark.integration
@pytest.mark.parametrize("enable", [True, False])
async def test_toggle_auto_reset(wired, fake_device: FakeDevice, state: DisplayedState, enable: bool):
    fake_device.is_auto_reset_enabled = not enable
    state.auto_reset_enabled = enable

    cmd = await CommandDispatcher(state).toggle_auto_reset()

    assert cmd.phase is CommandPhase.APPLIED
    assert cmd.kind is CommandKind.TOGGLE_AUTO_RESET
    assert fake_device.requests[-1].params == {"enable": "true" if enable else "false"}
    assert fake_device.is_auto_reset_enabled is enable
    assert state.auto_reset_enabled is enable


@pytest.mark.unit
async def test_toggle_auto_reset_failure(monkeypatch: MonkeyPatch, state: DisplayedState, alerts: list[str]):
    class DownClient:
        async def toggle_auto_reset(self, enable: bool) -> None:
            raise DeviceConnectionError("/toggleAutoReset failed: refused")

    monkeypatch.setattr(dispatcher_mod, "client", DownClient())
    state.auto_reset_enabled = True

    cmd = await CommandDispatcher(state).toggle_auto_reset()

    assert cmd.phase is CommandPhase.FAILED
    # Not rolled back
    assert state.auto_reset_enabled is True
    assert alerts == ["Toggle auto reset failed: /toggleAutoReset failed: refused"]


@pytest.mark.integration
async def test_failure_does_not_poison_next_command(
    wired, fake_device: FakeDevice, state: DisplayedState, alerts: list[str]
):
    dispatcher = CommandDispatcher(state)
    fake_device.unreachable.add("/turnLightOn")
    await dispatcher.turn_light_on(45)
    fake_device.unreachable.clear()

    cmd = await dispatcher.turn_light_on(45)

    assert cmd.phase is CommandPhase.APPLIED
    assert state.light_on is True
    assert len(alerts) == 1
