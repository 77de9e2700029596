from __future__ import annotations

import asyncio
import logging

from nicegui import ui

from smartswitch.constants import ADDRESS_POLL_INTERVAL_S
from smartswitch.services.device_client import DeviceClientError, client
from smartswitch.state import DisplayedState


class StateSynchronizer:
    """
    Pull authoritative state from the device into a DisplayedState.

    Status is fetched once when the page starts; afterwards command responses
    keep it current. The address is fetched at start and then on a timer,
    since it can change outside this UI (DHCP renewal).
    Poll failures are logged only and never reach the operator.
    """

    def __init__(self, state: DisplayedState, interval: float | None = None) -> None:
        self.state = state
        self.interval = ADDRESS_POLL_INTERVAL_S if interval is None else interval
        self.address_timer: ui.timer | None = None

    async def refresh_status(self) -> bool:
        try:
            snapshot = await client.get_status()
        except DeviceClientError as e:
            logging.warning("Status refresh failed: %s", e)
            return False
        self.state.apply(snapshot)
        logging.debug("Status applied: %s", snapshot)
        return True

    async def refresh_address(self) -> bool:
        try:
            address = await client.get_address()
        except DeviceClientError as e:
            logging.warning("Address refresh failed: %s", e)
            return False
        if address != self.state.address:
            logging.info("Device address: %s", address)
        self.state.apply_address(address)
        return True

    async def start(self) -> None:
        """Fetch both resources once, then keep the address polled.

        Must be called inside a page context; the timer lives and dies
        with that page's client.
        """
        if self.address_timer is None:
            self.address_timer = ui.timer(
                self.interval, self.refresh_address, immediate=False
            )
        await asyncio.gather(self.refresh_status(), self.refresh_address())

    def stop(self) -> None:
        if self.address_timer is not None:
            self.address_timer.cancel()
            self.address_timer = None
