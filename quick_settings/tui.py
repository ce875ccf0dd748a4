from __future__ import annotations

import asyncio
import functools
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Mapping

from InquirerPy import get_style, inquirer
from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Frame

from quick_settings.audio import list_audio_outputs, set_audio_output
from quick_settings.bluetooth import connect_bluetooth, list_bluetooth_devices
from quick_settings.core import Settings
from quick_settings.menu import (
    AIRPLANE,
    AUDIO,
    BLUETOOTH,
    CONNECT_BLUETOOTH,
    CONNECT_WIFI,
    SET_AIRPLANE_MODE,
    SET_AUDIO_OUTPUT,
    WIFI,
    ActionRequest,
    MenuItem,
    MenuState,
    Row,
    default_menu,
)
from quick_settings.system import CommandResult
from quick_settings.tui_entry import _run_with_spinner
from quick_settings.wifi import (
    WifiNetwork,
    airplane_mode_status,
    connect_wifi,
    list_wifi_networks,
    needs_password,
    set_airplane_mode,
)

logger = logging.getLogger(__name__)

Fetcher = Callable[[], "tuple[list[MenuItem], str | None]"]

ACTION_SECTIONS = {
    SET_AUDIO_OUTPUT: AUDIO,
    CONNECT_BLUETOOTH: BLUETOOTH,
    CONNECT_WIFI: WIFI,
}
ACTIVE_LABELS = {
    AUDIO: "default",
    BLUETOOTH: "paired",
    WIFI: "connected",
}
HELP_TEXT = "Press l/enter to expand, h/esc to collapse, q to quit."
FETCH_WORKERS = 4

MENU_STYLE = Style.from_dict(
    {
        "": "bg:#000000 #e5e7eb",
        "frame.border": "#39ff14",
        "frame.label": "bold #ffffff",
        "selected": "bold #ff5fd7",
        "status": "#9ca3af",
        "active": "#22c55e",
        "detail": "#6b7280",
        "loading": "italic #9ca3af",
        "warning": "#facc15",
        "help": "#6b7280",
    }
)

PROMPT_STYLE = get_style(
    {
        "question": "bold #e5e7eb",
        "answer": "#86efac",
        "input": "#86efac",
        "pointer": "bold #22c55e",
        "instruction": "#9ca3af",
    },
    style_override=False,
)


class _QuickExit(Exception):
    """Raised to terminate the TUI quickly from global Ctrl-C."""


def _clear_screen() -> None:
    try:
        sys.stdout.write("\033[2J\033[H")
        sys.stdout.flush()
    except Exception:
        return


def _print_exiting_notice() -> None:
    _clear_screen()
    try:
        sys.stdout.write("Exiting...\n")
        sys.stdout.flush()
    except Exception:
        pass


def _fetch_audio() -> tuple[list[MenuItem], str | None]:
    outputs, error = list_audio_outputs()
    items = [MenuItem(output.label, active=output.is_default, value=output.name) for output in outputs]
    return items, error


def _fetch_bluetooth() -> tuple[list[MenuItem], str | None]:
    devices, error = list_bluetooth_devices()
    items = [
        MenuItem(device.name, active=device.paired, value=device.address, detail="connected" if device.connected else "")
        for device in devices
    ]
    return items, error


def _fetch_wifi(rescan: bool = True) -> tuple[list[MenuItem], str | None]:
    networks, error = list_wifi_networks(rescan=rescan)
    items = [
        MenuItem(network.ssid, active=network.active, detail=network.security if network.secured else "")
        for network in networks
    ]
    return items, error


FETCHERS: dict[str, Fetcher] = {
    AUDIO: _fetch_audio,
    BLUETOOTH: _fetch_bluetooth,
    WIFI: _fetch_wifi,
}
# Periodic refreshes read NetworkManager's cached scan instead of forcing a new one.
PERIODIC_FETCHERS: dict[str, Fetcher] = {**FETCHERS, WIFI: functools.partial(_fetch_wifi, rescan=False)}


def load_initial(state: MenuState, keys: tuple[str, ...] = (AUDIO, BLUETOOTH)) -> list[str]:
    """Fill sections synchronously before the menu is shown; return warnings."""
    warnings: list[str] = []
    for key in keys:
        items, error = FETCHERS[key]()
        if error:
            logger.warning(error)
            warnings.append(error)
        state.set_items(key, items)
    enabled, error = airplane_mode_status()
    if error:
        logger.warning(error)
        warnings.append(error)
    state.set_toggle(AIRPLANE, enabled)
    return warnings


def render_rows(rows: list[Row]) -> list[tuple[str, str]]:
    fragments: list[tuple[str, str]] = []
    for row in rows:
        pointer = ">" if row.selected else " "
        style = "class:selected" if row.selected else ""
        if row.kind == "loading":
            fragments.append(("class:loading", "    Loading...\n"))
            continue
        if row.kind == "empty":
            fragments.append(("class:loading", "    (none)\n"))
            continue
        if row.kind == "item" and row.item is not None:
            fragments.append((style, f"  {pointer} {row.item.name}"))
            if row.item.active:
                fragments.append(("class:active", f" ({ACTIVE_LABELS.get(row.entry.key, 'active')})"))
            if row.item.detail:
                fragments.append(("class:detail", f" {row.item.detail}"))
            fragments.append(("", "\n"))
            continue
        fragments.append((style, f"{pointer} {row.entry.label}"))
        if row.kind == "toggle":
            fragments.append(("class:status", " [On]" if row.entry.enabled else " [Off]"))
        fragments.append(("", "\n"))
    return fragments


class QuickSettingsApp:
    def __init__(
        self,
        state: MenuState,
        settings: Settings,
        fetchers: Mapping[str, Fetcher] = FETCHERS,
        periodic_fetchers: Mapping[str, Fetcher] = PERIODIC_FETCHERS,
    ) -> None:
        self.state = state
        self.settings = settings
        self.status = ""
        self.status_is_warning = False
        self._fetchers = fetchers
        self._periodic_fetchers = periodic_fetchers
        self._in_flight: set[str] = set()
        self._warning_key: str | None = None
        self._airplane_pending = False
        self._executor: ThreadPoolExecutor | None = None

        body = Window(FormattedTextControl(self._render, focusable=True, show_cursor=False), wrap_lines=False)
        footer = Window(FormattedTextControl(self._render_footer), height=2)
        kb = KeyBindings()
        kb.add("c-c")(self._quick_exit)
        kb.add("q")(self._quit)
        kb.add("escape")(self._escape)
        kb.add("up")(self._up)
        kb.add("k")(self._up)
        kb.add("down")(self._down)
        kb.add("j")(self._down)
        kb.add("l")(self._expand)
        kb.add("right")(self._expand)
        kb.add("h")(self._collapse)
        kb.add("left")(self._collapse)
        kb.add("enter")(self._activate)
        kb.add(" ")(self._activate)
        self._app: Application = Application(
            layout=Layout(HSplit([Frame(body, title="Quick Settings"), footer])),
            key_bindings=kb,
            mouse_support=False,
            style=MENU_STYLE,
            full_screen=True,
        )

    def set_status(self, message: str, warning: bool = False) -> None:
        self.status = message
        self.status_is_warning = warning
        self._warning_key = None

    def _render(self) -> FormattedText:
        return FormattedText(render_rows(self.state.rows()))

    def _render_footer(self) -> FormattedText:
        fragments = [("class:help", HELP_TEXT + "\n")]
        if self.status:
            fragments.append(("class:warning" if self.status_is_warning else "class:status", self.status))
        return FormattedText(fragments)

    # -- key handlers ------------------------------------------------------

    def _quick_exit(self, event=None) -> None:
        self._app.exit(exception=_QuickExit())

    def _quit(self, event=None) -> None:
        self._app.exit(result=None)

    def _escape(self, event=None) -> None:
        if self.state.escape():
            self._app.exit(result=None)

    def _up(self, event=None) -> None:
        self.state.move_up()

    def _down(self, event=None) -> None:
        self.state.move_down()

    def _expand(self, event=None) -> None:
        self.state.expand()

    def _collapse(self, event=None) -> None:
        self.state.collapse()

    def _activate(self, event=None) -> None:
        entry, _ = self.state.current()
        if entry.key == AIRPLANE and self._airplane_pending:
            return
        request = self.state.activate()
        if request is None:
            return
        if request.kind == SET_AIRPLANE_MODE:
            self._app.create_background_task(self._apply_airplane(bool(request.target)))
            return
        self._app.exit(result=request)

    # -- background work ---------------------------------------------------

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        # Own pool: exiting must not wait for a slow scan the way the loop's default executor does.
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=FETCH_WORKERS, thread_name_prefix="quick-settings-fetch")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    def _shutdown_executor(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    async def _refresh(self, key: str, fetcher: Fetcher) -> None:
        if key in self._in_flight:
            return
        self._in_flight.add(key)
        self.state.set_loading(key)
        self._app.invalidate()
        try:
            items, error = await self._call(fetcher)
        except Exception as exc:
            logger.exception("refreshing %s failed", key)
            items, error = [], f"could not refresh {key}: {exc}"
        finally:
            self._in_flight.discard(key)
        if error:
            logger.warning(error)
            self.set_status(f"Warning: {error}", warning=True)
            self._warning_key = key
        elif self._warning_key == key:
            self.set_status("")
        self.state.set_items(key, items)
        self._app.invalidate()

    async def _refresh_airplane(self) -> None:
        if self._airplane_pending:
            return
        enabled, error = await self._call(airplane_mode_status)
        if error:
            logger.warning(error)
            return
        # A toggle started while the status was being read wins.
        if self._airplane_pending:
            return
        self.state.set_toggle(AIRPLANE, enabled)
        self._app.invalidate()

    def _schedule(self, fetchers: Mapping[str, Fetcher], keys: list[str] | None = None) -> None:
        for key, fetcher in fetchers.items():
            if keys is None or key in keys:
                self._app.create_background_task(self._refresh(key, fetcher))

    async def _refresh_loop(self) -> None:
        pending = [section.key for section in self.state.sections if section.loading]
        self._schedule(self._fetchers, pending)
        while True:
            await asyncio.sleep(self.settings.refresh_interval)
            self._schedule(self._periodic_fetchers)
            self._app.create_background_task(self._refresh_airplane())

    async def _apply_airplane(self, enabled: bool) -> None:
        self._airplane_pending = True
        self.set_status(f"Turning airplane mode {'on' if enabled else 'off'}...")
        self._app.invalidate()
        try:
            result = await self._call(set_airplane_mode, enabled)
        finally:
            self._airplane_pending = False
        if not result.ok:
            logger.warning("airplane mode change failed: %s", result.stdout.strip())
            self.state.set_toggle(AIRPLANE, not enabled)
            self.set_status(f"Warning: {result.stdout.strip()}", warning=True)
        else:
            self.set_status(result.stdout.strip())
            self._schedule(self._periodic_fetchers, [BLUETOOTH, WIFI])
        self._app.invalidate()

    def run(self) -> ActionRequest | None:
        try:
            return self._app.run(pre_run=lambda: self._app.create_background_task(self._refresh_loop()))
        finally:
            self._shutdown_executor()
            _clear_screen()


def _ask_password(ssid: str) -> str | None:
    try:
        value = inquirer.secret(message=f"Password for {ssid}", style=PROMPT_STYLE).execute()
    except KeyboardInterrupt:
        raise _QuickExit()
    except EOFError:
        return None
    if not value:
        return None
    return str(value)


def perform(request: ActionRequest, state: MenuState) -> CommandResult:
    try:
        return _perform(request, state)
    except KeyboardInterrupt:
        raise _QuickExit()


def _perform(request: ActionRequest, state: MenuState) -> CommandResult:
    target = str(request.target)
    if request.kind == SET_AUDIO_OUTPUT:
        return _run_with_spinner(f"Switching to {request.label}...", lambda: set_audio_output(target))
    if request.kind == CONNECT_BLUETOOTH:
        return _run_with_spinner(f"Connecting to {request.label}...", lambda: connect_bluetooth(target))
    if request.kind == CONNECT_WIFI:
        security = next((item.detail for item in state.section(WIFI).items if item.value == target), "")
        password = None
        if needs_password(WifiNetwork(ssid=target, security=security)):
            password = _ask_password(target)
            if password is None:
                return CommandResult(returncode=1, stdout="Cancelled.")
        return _run_with_spinner(f"Connecting to {target}...", lambda: connect_wifi(target, password))
    if request.kind == SET_AIRPLANE_MODE:
        return set_airplane_mode(bool(request.target))
    return CommandResult(returncode=1, stdout=f"Unknown action: {request.kind}")


def main(settings: Settings | None = None, state: MenuState | None = None, warnings: list[str] | None = None) -> int:
    settings = settings or Settings.from_env()
    if state is None:
        state = default_menu()
        warnings = load_initial(state)
    app = QuickSettingsApp(state, settings)
    if warnings:
        app.set_status("Warning: " + "; ".join(warnings), warning=True)
    try:
        while True:
            request = app.run()
            if request is None:
                _print_exiting_notice()
                return 0
            result = perform(request, state)
            message = result.stdout.strip()
            if not result.ok:
                logger.warning("%s failed: %s", request.kind, message)
            if settings.exit_on_select:
                print(message)
                return result.returncode
            app.set_status(message if result.ok else f"Warning: {message}", warning=not result.ok)
            section = ACTION_SECTIONS.get(request.kind)
            if section:
                state.set_loading(section)
    except _QuickExit:
        _print_exiting_notice()
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
