from __future__ import annotations

import sys
import threading
from typing import Callable, TypeVar

from quick_settings.core import Settings
from quick_settings.menu import default_menu

SPINNER_FRAMES = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")
SPINNER_INTERVAL = 0.08

T = TypeVar("T")


def _run_with_spinner(label: str, action: Callable[[], T]) -> T:
    stop = threading.Event()

    def _spin() -> None:
        index = 0
        while not stop.is_set():
            frame = SPINNER_FRAMES[index % len(SPINNER_FRAMES)]
            try:
                sys.stdout.write(f"\r{frame} {label}")
                sys.stdout.flush()
            except Exception:
                return
            index += 1
            stop.wait(SPINNER_INTERVAL)
        frame = SPINNER_FRAMES[index % len(SPINNER_FRAMES)]
        try:
            sys.stdout.write(f"\r{frame} {label}\n")
            sys.stdout.flush()
        except Exception:
            return

    spinner = threading.Thread(target=_spin, name="quick-settings-spinner", daemon=True)
    spinner.start()
    try:
        return action()
    finally:
        stop.set()
        spinner.join(timeout=0.5)


def main(settings: Settings | None = None) -> int:
    settings = settings or Settings.from_env()
    tui = __import__("quick_settings.tui", fromlist=["main"])
    state = default_menu()
    warnings = _run_with_spinner("Loading...", lambda: tui.load_initial(state))
    return tui.main(settings, state=state, warnings=warnings)


if __name__ == "__main__":
    raise SystemExit(main())
