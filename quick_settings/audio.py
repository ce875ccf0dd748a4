from __future__ import annotations

import logging
from dataclasses import dataclass

from quick_settings.system import CommandResult, _failure, _run


logger = logging.getLogger(__name__)


@dataclass
class AudioOutput:
    name: str
    is_default: bool = False
    description: str = ""

    @property
    def label(self) -> str:
        return self.description or self.name


def _parse_short_sinks(output: str) -> list[str]:
    names: list[str] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) > 1 and parts[1].strip():
            names.append(parts[1].strip())
    return names


def _parse_sink_descriptions(output: str) -> dict[str, str]:
    """Map sink names to descriptions from the long ``pactl list sinks`` form."""
    descriptions: dict[str, str] = {}
    current: str | None = None
    for raw in output.splitlines():
        line = raw.strip()
        if line.startswith("Sink #"):
            current = None
        elif line.startswith("Name:"):
            current = line.split(":", 1)[1].strip()
        elif line.startswith("Description:") and current:
            descriptions[current] = line.split(":", 1)[1].strip()
    return descriptions


def _parse_sink_inputs(output: str) -> list[str]:
    ids: list[str] = []
    for line in output.splitlines():
        parts = line.split("\t")
        if parts and parts[0].strip().isdigit():
            ids.append(parts[0].strip())
    return ids


def default_sink() -> str | None:
    result = _run(["pactl", "get-default-sink"])
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def list_audio_outputs() -> tuple[list[AudioOutput], str | None]:
    result = _run(["pactl", "list", "short", "sinks"])
    if result.returncode != 0:
        return [], f"could not get audio devices: {_failure(result, 'pactl failed.')}"
    names = _parse_short_sinks(result.stdout)
    current = default_sink()
    details = _run(["pactl", "list", "sinks"])
    descriptions = _parse_sink_descriptions(details.stdout) if details.returncode == 0 else {}
    outputs = [
        AudioOutput(name=name, is_default=name == current, description=descriptions.get(name, ""))
        for name in names
    ]
    return outputs, None


def set_audio_output(name: str) -> CommandResult:
    result = _run(["pactl", "set-default-sink", name])
    if result.returncode != 0:
        return CommandResult(returncode=result.returncode, stdout=_failure(result, f"Could not select {name}."))
    streams = _run(["pactl", "list", "short", "sink-inputs"])
    moved = 0
    if streams.returncode == 0:
        for stream in _parse_sink_inputs(streams.stdout):
            move = _run(["pactl", "move-sink-input", stream, name])
            if move.returncode == 0:
                moved += 1
            else:
                logger.warning("could not move stream %s to %s: %s", stream, name, move.stdout.strip())
    message = f"Audio output set to {name}."
    if moved:
        message += f" Moved {moved} stream{'s' if moved != 1 else ''}."
    return CommandResult(returncode=0, stdout=message)
