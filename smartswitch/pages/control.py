from __future__ import annotations

import logging

from nicegui import events, ui

from smartswitch.common.logging_config import attach_ui_log, detach_ui_log
from smartswitch.services.dispatcher import CommandDispatcher
from smartswitch.services.synchronizer import StateSynchronizer
from smartswitch.state import DisplayedState
from smartswitch.validation import format_address, format_light


class ControlPage:
    """Light switch control surface, one instance per page visit."""

    def __init__(self, address_poll_s: float | None = None) -> None:
        self.state = DisplayedState()
        self.dispatcher = CommandDispatcher(self.state)
        self.synchronizer = StateSynchronizer(self.state, interval=address_poll_s)

        self.light_label: ui.label | None = None
        self.address_label: ui.label | None = None
        self.on_angle_input: ui.input | None = None
        self.off_angle_input: ui.input | None = None
        self.auto_reset_switch: ui.switch | None = None
        self.auto_reset_angle_input: ui.input | None = None
        self.event_log: ui.log | None = None

    # ---- Actions ----

    async def _turn_on(self) -> None:
        await self.dispatcher.turn_light_on()

    async def _turn_off(self) -> None:
        await self.dispatcher.turn_light_off()

    async def _set_on_angle(self) -> None:
        await self.dispatcher.set_on_angle()

    async def _set_off_angle(self) -> None:
        await self.dispatcher.set_off_angle()

    async def _set_auto_reset_angle(self) -> None:
        await self.dispatcher.set_auto_reset_angle()

    async def _on_auto_reset_click(self, _: events.GenericEventArguments) -> None:
        # Fires only for operator clicks; status refreshes update the switch silently.
        # The switch's own model listener runs first, so its value is already the new one.
        assert self.auto_reset_switch is not None
        await self.dispatcher.toggle_auto_reset(bool(self.auto_reset_switch.value))

    # ---- UI ----

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Light").classes("text-md font-medium")
            with ui.row().classes("items-center gap-4"):
                self.light_label = (
                    ui.label("Light: unknown")
                    .bind_text_from(self.state, "light_on", backward=lambda v: f"Light: {format_light(v)}")
                    .classes("text-sm")
                )
                ui.button("Turn on", on_click=self._turn_on).props("unelevated color=positive")
                ui.button("Turn off", on_click=self._turn_off).props("unelevated color=negative")

        with ui.card().classes("w-full"):
            ui.label("Angles").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                self.on_angle_input = (
                    ui.input(label="On angle").bind_value(self.state, "on_angle").classes("w-32")
                )
                ui.button("Set on angle", on_click=self._set_on_angle).props("unelevated")
            with ui.row().classes("items-center gap-2"):
                self.off_angle_input = (
                    ui.input(label="Off angle").bind_value(self.state, "off_angle").classes("w-32")
                )
                ui.button("Set off angle", on_click=self._set_off_angle).props("unelevated")

        with ui.card().classes("w-full"):
            ui.label("Auto reset").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                self.auto_reset_switch = ui.switch("Enabled").bind_value(self.state, "auto_reset_enabled")
                self.auto_reset_switch.on("update:model-value", self._on_auto_reset_click)
                self.auto_reset_angle_input = (
                    ui.input(label="Reset angle")
                    .bind_value(self.state, "auto_reset_angle")
                    .classes("w-32")
                )
                ui.button("Set reset angle", on_click=self._set_auto_reset_angle).props("unelevated")

        with ui.row().classes("items-center gap-4"):
            self.address_label = (
                ui.label("Address: -")
                .bind_text_from(self.state, "address", backward=lambda v: f"Address: {format_address(v)}")
                .classes("text-sm")
            )
            ui.label().bind_text_from(
                self.state, "in_flight", backward=lambda n: f"{n} request(s) in flight" if n else ""
            ).classes("text-xs text-gray-500")

        self.event_log = ui.log(max_lines=200).classes("w-full h-40")
        attach_ui_log(self.event_log)
        logging.debug("Control page built")

    async def start(self) -> None:
        await self.synchronizer.start()

    def teardown(self) -> None:
        if self.event_log is not None:
            detach_ui_log(self.event_log)
