from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Sequence

from quick_settings.core import DEFAULT_COMMAND_TIMEOUT


EXTRA_BIN_PATHS = ("/usr/local/sbin", "/usr/sbin", "/sbin")

logger = logging.getLogger(__name__)

_timeout = DEFAULT_COMMAND_TIMEOUT


@dataclass
class CommandResult:
    returncode: int
    stdout: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def set_command_timeout(seconds: float) -> None:
    global _timeout
    _timeout = seconds


def _find_command(name: str) -> str | None:
    path_entries = [entry for entry in os.environ.get("PATH", "").split(os.pathsep) if entry]
    for extra in EXTRA_BIN_PATHS:
        if extra not in path_entries:
            path_entries.append(extra)
    return shutil.which(name, path=os.pathsep.join(path_entries))


def _run(command: Sequence[str]) -> CommandResult:
    logger.debug("running %s", " ".join(command))
    argv = list(command)
    if argv and os.sep not in argv[0]:
        argv[0] = _find_command(argv[0]) or argv[0]
    try:
        result = subprocess.run(
            argv,
            check=False,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=_timeout,
        )
        return CommandResult(returncode=result.returncode, stdout=result.stdout)
    except FileNotFoundError:
        return CommandResult(returncode=127, stdout=f"command not found: {command[0]}")
    except PermissionError:
        return CommandResult(returncode=126, stdout=f"permission denied: {command[0]}")
    except subprocess.TimeoutExpired:
        return CommandResult(returncode=124, stdout=f"timed out after {_timeout:g}s: {command[0]}")


def _failure(result: CommandResult, fallback: str) -> str:
    return result.stdout.strip() or fallback
