from __future__ import annotations

import re

from smartswitch.constants import ANGLE_MAX, ANGLE_MIN


_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class AngleValidationError(ValueError):
    """Operator supplied an angle that is missing, not an integer, or out of range."""


def parse_angle(raw: object) -> int:
    """
    Parse operator input as a servo angle.

    Accepts ints and integer strings (surrounding whitespace ignored).
    Rejects everything else, bools included, and anything outside
    [ANGLE_MIN, ANGLE_MAX].
    """
    if isinstance(raw, bool):
        raise AngleValidationError(f"Not an angle: {raw!r}")
    if isinstance(raw, int):
        angle = raw
    else:
        text = str(raw if raw is not None else "").strip()
        if not _INTEGER_RE.fullmatch(text):
            raise AngleValidationError(f"Not an integer: {text!r}")
        try:
            angle = int(text)
        except ValueError as e:
            # digit strings past the interpreter's int conversion limit
            raise AngleValidationError(f"Not an angle: {text[:16]}...") from e
    if not ANGLE_MIN <= angle <= ANGLE_MAX:
        shown = angle if abs(angle) < 10**6 else "value"
        raise AngleValidationError(f"Angle {shown} outside {ANGLE_MIN}..{ANGLE_MAX}")
    return angle


def is_valid_angle(raw: object) -> bool:
    try:
        parse_angle(raw)
    except AngleValidationError:
        return False
    return True


def format_bool_param(value: bool) -> str:
    # firmware compares against the literal "true"
    return "true" if value else "false"


def format_light(light_on: bool | None) -> str:
    if light_on is None:
        return "unknown"
    return "ON" if light_on else "OFF"


def format_address(address: str) -> str:
    return address or "-"
