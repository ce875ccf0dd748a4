from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping


ENV_PREFIX = "QUICK_SETTINGS_"
DEFAULT_REFRESH_INTERVAL = 10.0
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"


def _as_float(value: Any, default: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if parsed <= 0:
        return default
    return parsed


@dataclass
class Settings:
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Path | None = None
    exit_on_select: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "refresh_interval": self.refresh_interval,
            "command_timeout": self.command_timeout,
            "log_level": self.log_level,
            "exit_on_select": self.exit_on_select,
        }
        if self.log_file:
            payload["log_file"] = str(self.log_file)
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        level = str(data.get("log_level") or DEFAULT_LOG_LEVEL).upper()
        if not isinstance(logging.getLevelName(level), int):
            level = DEFAULT_LOG_LEVEL
        return cls(
            refresh_interval=_as_float(data.get("refresh_interval"), DEFAULT_REFRESH_INTERVAL),
            command_timeout=_as_float(data.get("command_timeout"), DEFAULT_COMMAND_TIMEOUT),
            log_level=level,
            log_file=Path(str(data["log_file"])) if data.get("log_file") else None,
            exit_on_select=bool(data.get("exit_on_select", False)),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        data = {
            key[len(ENV_PREFIX):].lower(): value
            for key, value in environ.items()
            if key.startswith(ENV_PREFIX)
        }
        if "exit_on_select" in data:
            data["exit_on_select"] = str(data["exit_on_select"]).lower() in {"1", "true", "yes", "on"}
        return cls.from_dict(data)


def configure_logging(settings: Settings, interactive: bool = False) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    elif interactive:
        # The full-screen menu owns the terminal; warnings go to its status line.
        handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(settings.log_level)
