from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from nicegui import ui

from smartswitch.constants import ANGLE_MAX, ANGLE_MIN
from smartswitch.services.device_client import DeviceClientError, client
from smartswitch.state import CommandKind, CommandPhase, DisplayedState, PendingCommand
from smartswitch.validation import AngleValidationError, parse_angle

# Operator-facing names
_COMMAND_LABELS = {
    CommandKind.TURN_LIGHT_ON: "Turn light on",
    CommandKind.TURN_LIGHT_OFF: "Turn light off",
    CommandKind.SET_ON_ANGLE: "Set on angle",
    CommandKind.SET_OFF_ANGLE: "Set off angle",
    CommandKind.TOGGLE_AUTO_RESET: "Toggle auto reset",
    CommandKind.SET_AUTO_RESET_ANGLE: "Set auto-reset angle",
}
_ANGLE_LABELS = {
    CommandKind.TURN_LIGHT_ON: "on angle",
    CommandKind.TURN_LIGHT_OFF: "off angle",
    CommandKind.SET_ON_ANGLE: "on angle",
    CommandKind.SET_OFF_ANGLE: "off angle",
    CommandKind.SET_AUTO_RESET_ANGLE: "auto-reset angle",
}
# Token the device returns when it did what the light command asked
_LIGHT_TOKENS = {
    CommandKind.TURN_LIGHT_ON: "ON",
    CommandKind.TURN_LIGHT_OFF: "OFF",
}


def validation_message(kind: CommandKind) -> str:
    return f"Enter a valid {_ANGLE_LABELS[kind]} between {ANGLE_MIN} and {ANGLE_MAX}"


class CommandDispatcher:
    """
    Validate operator input, send it to the device and apply the answer.

    Every call runs its own PendingCommand through
    IDLE -> VALIDATING -> IN_FLIGHT -> APPLIED | FAILED (or VALIDATING -> REJECTED).
    Calls never wait for each other; when two responses race, whichever is
    processed last is what the page shows.
    """

    def __init__(self, state: DisplayedState) -> None:
        self.state = state
        self.in_flight: dict[int, PendingCommand] = {}

    # ---- Light ----

    async def turn_light_on(self, raw: object = None) -> PendingCommand:
        return await self._light(CommandKind.TURN_LIGHT_ON, self.state.on_angle if raw is None else raw)

    async def turn_light_off(self, raw: object = None) -> PendingCommand:
        return await self._light(CommandKind.TURN_LIGHT_OFF, self.state.off_angle if raw is None else raw)

    async def _light(self, kind: CommandKind, raw: object) -> PendingCommand:
        cmd = PendingCommand(kind=kind, raw=raw)
        if not self._validate(cmd):
            return cmd
        send = client.turn_light_on if kind is CommandKind.TURN_LIGHT_ON else client.turn_light_off
        if not await self._send(cmd, lambda: send(cmd.parameter)):
            return cmd

        expected = _LIGHT_TOKENS[kind]
        matched = cmd.result == expected
        # Device report wins over the request; a mismatch is not an error
        self.state.light_on = matched if kind is CommandKind.TURN_LIGHT_ON else not matched
        cmd.advance(CommandPhase.APPLIED)
        if matched:
            logging.info("%s @ %s° -> %s", _COMMAND_LABELS[kind], cmd.parameter, cmd.result)
        else:
            logging.warning(
                "%s @ %s°: device reported %r, expected %r",
                _COMMAND_LABELS[kind],
                cmd.parameter,
                cmd.result,
                expected,
            )
        return cmd

    # ---- Config ----

    async def set_on_angle(self, raw: object = None) -> PendingCommand:
        return await self._config_angle(
            CommandKind.SET_ON_ANGLE, self.state.on_angle if raw is None else raw, client.set_on_angle
        )

    async def set_off_angle(self, raw: object = None) -> PendingCommand:
        return await self._config_angle(
            CommandKind.SET_OFF_ANGLE, self.state.off_angle if raw is None else raw, client.set_off_angle
        )

    async def set_auto_reset_angle(self, raw: object = None) -> PendingCommand:
        return await self._config_angle(
            CommandKind.SET_AUTO_RESET_ANGLE,
            self.state.auto_reset_angle if raw is None else raw,
            client.set_auto_reset_angle,
        )

    async def toggle_auto_reset(self, enable: bool | None = None) -> PendingCommand:
        value = self.state.auto_reset_enabled if enable is None else enable
        cmd = PendingCommand(kind=CommandKind.TOGGLE_AUTO_RESET, raw=value)
        cmd.advance(CommandPhase.VALIDATING)
        cmd.parameter = bool(value)
        if await self._send(cmd, lambda: client.toggle_auto_reset(cmd.parameter)):
            cmd.advance(CommandPhase.APPLIED)
            logging.info("Auto reset %s", "enabled" if cmd.parameter else "disabled")
        return cmd

    async def _config_angle(
        self, kind: CommandKind, raw: object, send: Callable[[int], Awaitable[None]]
    ) -> PendingCommand:
        cmd = PendingCommand(kind=kind, raw=raw)
        if not self._validate(cmd):
            return cmd
        # Nothing to apply on success: the input field already shows the value
        if await self._send(cmd, lambda: send(cmd.parameter)):
            cmd.advance(CommandPhase.APPLIED)
            logging.info("%s -> %s°", _COMMAND_LABELS[kind], cmd.parameter)
        return cmd

    # ---- Shared steps ----

    def _validate(self, cmd: PendingCommand) -> bool:
        cmd.advance(CommandPhase.VALIDATING)
        try:
            cmd.parameter = parse_angle(cmd.raw)
        except AngleValidationError as e:
            cmd.error = str(e)
            cmd.advance(CommandPhase.REJECTED)
            logging.warning("%s blocked: %s", _COMMAND_LABELS[cmd.kind], e)
            ui.notify(validation_message(cmd.kind), color="negative")
            return False
        return True

    async def _send(self, cmd: PendingCommand, request: Callable[[], Awaitable[str | None]]) -> bool:
        cmd.advance(CommandPhase.IN_FLIGHT)
        self.in_flight[cmd.seq] = cmd
        self.state.in_flight = len(self.in_flight)
        try:
            cmd.result = await request()
        except DeviceClientError as e:
            cmd.error = str(e)
            cmd.advance(CommandPhase.FAILED)
            logging.error("%s failed: %s", _COMMAND_LABELS[cmd.kind], e)
            ui.notify(f"{_COMMAND_LABELS[cmd.kind]} failed: {e}", color="negative")
            return False
        finally:
            self.in_flight.pop(cmd.seq, None)
            self.state.in_flight = len(self.in_flight)
        return True
