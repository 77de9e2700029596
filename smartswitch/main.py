import argparse
import logging
import os
import sys

from nicegui import app as ng_app
from nicegui import ui

from smartswitch.common.logging_config import TRACE, configure_logging
from smartswitch.constants import (
    ADDRESS_POLL_INTERVAL_S,
    DEVICE_URL,
    HTTP_TIMEOUT_S,
    LOG_LEVEL,
    SERVER_HOST,
    SERVER_PORT,
)
from smartswitch.pages.control import ControlPage
from smartswitch.services.device_client import client

# Runtime configuration (resolved later from CLI/env)
RUNTIME_SERVER_HOST = SERVER_HOST
RUNTIME_SERVER_PORT = SERVER_PORT
RUNTIME_ADDRESS_POLL_S = ADDRESS_POLL_INTERVAL_S

fw_version = "1.0.0"


def build_header() -> None:
    with ui.header().classes("items-center justify-between px-3 py-1"):
        ui.label("SmartSwitch").classes("text-lg font-medium")
        ui.label(f"Device: {client.base_url}").classes("text-sm")


@ui.page("/")
async def index() -> None:
    # Fresh displayed state per visit; nothing survives a reload
    page = ControlPage(address_poll_s=RUNTIME_ADDRESS_POLL_S)
    build_header()
    with ui.column().classes("w-full max-w-xl mx-auto gap-3"):
        page.build()
    with ui.footer().classes("justify-end px-3 py-1"):
        ui.label(f"v{fw_version}").classes("text-xs")

    ui.context.client.on_disconnect(page.teardown)
    # Deliver the page first; the initial fetches may take up to the HTTP timeout
    await ui.context.client.connected()
    await page.start()


async def _app_shutdown() -> None:
    await client.close()


ng_app.on_shutdown(_app_shutdown)


def resolve_log_level(log_level: str | None, verbose: int, quiet: bool) -> int:
    """Explicit --log-level > -v/-q > env default from constants."""
    if log_level:
        level = TRACE if log_level == "TRACE" else getattr(logging, log_level)
    elif verbose >= 3:
        level = TRACE
    elif verbose == 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    elif quiet:
        level = logging.WARNING
    else:
        level = LOG_LEVEL
    if level <= TRACE:
        # also lets request dumps from httpx through
        os.environ["SMARTSWITCH_TRACE"] = "1"
    return level


if __name__ in {"__main__", "__mp_main__"}:
    parser = argparse.ArgumentParser(description="SmartSwitch NiceGUI control surface")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Webserver bind port")
    parser.add_argument("--device-url", default=DEVICE_URL, help="Base URL of the device")
    parser.add_argument(
        "--timeout", type=float, default=HTTP_TIMEOUT_S, help="Per-request timeout in seconds"
    )
    parser.add_argument(
        "--address-poll",
        type=float,
        default=ADDRESS_POLL_INTERVAL_S,
        help="Seconds between device address refreshes",
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    args, _ = parser.parse_known_args()

    RUNTIME_SERVER_HOST = args.host
    RUNTIME_SERVER_PORT = int(args.port)
    RUNTIME_ADDRESS_POLL_S = float(args.address_poll)
    client.base_url = args.device_url.rstrip("/")
    client.timeout = float(args.timeout)

    RUNTIME_LOG_LEVEL = resolve_log_level(args.log_level, args.verbose, args.quiet)

    configure_logging(RUNTIME_LOG_LEVEL)
    logging.info("Webserver bind: host=%s port=%s", RUNTIME_SERVER_HOST, RUNTIME_SERVER_PORT)
    logging.info("Device target: %s (timeout %.1fs)", client.base_url, client.timeout)

    ui.run(
        title="SmartSwitch",
        host=RUNTIME_SERVER_HOST,
        port=RUNTIME_SERVER_PORT,
        reload=False,
        show=False,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
        http="httptools",
        ws="wsproto",
    )
