from __future__ import annotations

import enum
import itertools
import time
from dataclasses import dataclass, field

from nicegui import binding


@dataclass(frozen=True)
class DeviceState:
    """Snapshot of the state owned by the device, as reported by GET /status."""

    is_light_on: bool
    is_auto_reset_enabled: bool
    on_angle: int
    off_angle: int
    auto_reset_angle: int


@binding.bindable_dataclass
class DisplayedState:
    """What the operator sees on one page visit.

    Angle fields hold the text of their input widgets, so they carry
    whatever the operator typed until the next status refresh replaces it.
    """

    light_on: bool | None = None  # None until the first status arrives
    auto_reset_enabled: bool = False
    on_angle: str = ""
    off_angle: str = ""
    auto_reset_angle: str = ""
    address: str = ""
    in_flight: int = 0
    last_status_ts: float = 0.0
    last_address_ts: float = 0.0

    def apply(self, snapshot: DeviceState) -> DisplayedState:
        """Overwrite every device-backed field from a fresh snapshot."""
        self.light_on = snapshot.is_light_on
        self.auto_reset_enabled = snapshot.is_auto_reset_enabled
        self.on_angle = str(snapshot.on_angle)
        self.off_angle = str(snapshot.off_angle)
        self.auto_reset_angle = str(snapshot.auto_reset_angle)
        self.last_status_ts = time.time()
        return self

    def apply_address(self, address: str) -> DisplayedState:
        self.address = address
        self.last_address_ts = time.time()
        return self


class CommandKind(str, enum.Enum):
    """Operator commands; the value is the device endpoint."""

    TURN_LIGHT_ON = "/turnLightOn"
    TURN_LIGHT_OFF = "/turnLightOff"
    SET_ON_ANGLE = "/setOnAngle"
    SET_OFF_ANGLE = "/setOffAngle"
    TOGGLE_AUTO_RESET = "/toggleAutoReset"
    SET_AUTO_RESET_ANGLE = "/setAutoResetAngle"


class CommandPhase(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    IN_FLIGHT = "in_flight"
    APPLIED = "applied"
    REJECTED = "rejected"  # blocked locally, nothing sent
    FAILED = "failed"


_TRANSITIONS: dict[CommandPhase, frozenset[CommandPhase]] = {
    CommandPhase.IDLE: frozenset({CommandPhase.VALIDATING}),
    CommandPhase.VALIDATING: frozenset({CommandPhase.IN_FLIGHT, CommandPhase.REJECTED}),
    CommandPhase.IN_FLIGHT: frozenset({CommandPhase.APPLIED, CommandPhase.FAILED}),
    CommandPhase.APPLIED: frozenset(),
    CommandPhase.REJECTED: frozenset(),
    CommandPhase.FAILED: frozenset(),
}

_seq = itertools.count(1)


@dataclass
class PendingCommand:
    """One validate -> dispatch -> interpret cycle for a single operator action."""

    kind: CommandKind
    raw: object = None  # operator input as received
    parameter: int | bool | None = None  # validated value actually sent
    phase: CommandPhase = CommandPhase.IDLE
    result: str | None = None  # device token for light commands
    error: str | None = None
    seq: int = field(default_factory=lambda: next(_seq))

    @property
    def done(self) -> bool:
        return not _TRANSITIONS[self.phase]

    def advance(self, phase: CommandPhase) -> None:
        if phase not in _TRANSITIONS[self.phase]:
            raise RuntimeError(
                f"{self.kind.name}#{self.seq}: illegal transition {self.phase.value} -> {phase.value}"
            )
        self.phase = phase
