from __future__ import annotations

import logging
import os
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent

# Servo travel accepted by the device firmware (inclusive)
ANGLE_MIN: int = 0
ANGLE_MAX: int = 180

# Device target (what the UI talks to)
DEVICE_URL: str = os.getenv("SMARTSWITCH_DEVICE_URL", "http://192.168.4.1").rstrip("/")
HTTP_TIMEOUT_S: float = float(os.getenv("SMARTSWITCH_HTTP_TIMEOUT", "3.0"))

# Address can change behind our back (DHCP), status only changes through our own commands
ADDRESS_POLL_INTERVAL_S: float = float(os.getenv("SMARTSWITCH_ADDRESS_POLL_S", "5.0"))

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("SMARTSWITCH_SERVER_IP", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SMARTSWITCH_SERVER_PORT", "8080"))


def _resolve_log_level() -> int:
    s = os.getenv("SMARTSWITCH_LOG_LEVEL")
    if not s:
        return logging.WARNING
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return mapping.get(s.strip().upper(), logging.WARNING)


LOG_LEVEL: int = _resolve_log_level()
