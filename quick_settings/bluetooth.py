from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from quick_settings.system import CommandResult, _failure, _run


MAC_RE = re.compile(r"^(?:[0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")

logger = logging.getLogger(__name__)


@dataclass
class BluetoothDevice:
    address: str
    name: str
    paired: bool = False
    connected: bool = False


def _parse_devices(output: str) -> list[tuple[str, str]]:
    devices: list[tuple[str, str]] = []
    for line in output.splitlines():
        parts = line.strip().split(" ", 2)
        if len(parts) < 3 or parts[0] != "Device" or not MAC_RE.match(parts[1]):
            continue
        devices.append((parts[1], parts[2].strip()))
    return devices


def parse_device_status(output: str, field: str = "Paired") -> bool:
    match = re.search(rf"(?m)^\s*{re.escape(field)}:\s+(\S+)", output)
    if not match:
        raise ValueError(f"could not find '{field}' status")
    return match.group(1) == "yes"


def _device_info(address: str) -> tuple[bool, bool]:
    info = _run(["bluetoothctl", "info", address])
    if info.returncode != 0:
        return False, False
    try:
        paired = parse_device_status(info.stdout, "Paired")
        connected = parse_device_status(info.stdout, "Connected")
    except ValueError as exc:
        logger.debug("no status for %s: %s", address, exc)
        return False, False
    return paired, connected


def list_bluetooth_devices() -> tuple[list[BluetoothDevice], str | None]:
    result = _run(["bluetoothctl", "devices"])
    if result.returncode != 0:
        reason = _failure(result, "bluetoothctl failed.")
        return [], f"could not get bluetooth devices: {reason}. Is bluetooth service running?"
    devices: list[BluetoothDevice] = []
    for address, name in _parse_devices(result.stdout):
        paired, connected = _device_info(address)
        devices.append(BluetoothDevice(address=address, name=name, paired=paired, connected=connected))
    return devices, None


def _resolve_address(device: str) -> str | None:
    if MAC_RE.match(device):
        return device
    result = _run(["bluetoothctl", "devices"])
    if result.returncode != 0:
        return None
    for address, name in _parse_devices(result.stdout):
        if name == device:
            return address
    return None


def _succeeded(result: CommandResult, failure_marker: str) -> bool:
    # bluetoothctl exits 0 on some versions even when the operation failed.
    return result.returncode == 0 and failure_marker not in result.stdout


def connect_bluetooth(device: str) -> CommandResult:
    address = _resolve_address(device)
    if not address:
        return CommandResult(returncode=1, stdout=f"Bluetooth device '{device}' not found.")
    paired, connected = _device_info(address)
    if connected:
        return CommandResult(returncode=0, stdout=f"{device} is already connected.")
    if not paired:
        pair = _run(["bluetoothctl", "pair", address])
        if not _succeeded(pair, "Failed to pair"):
            return CommandResult(returncode=pair.returncode or 1, stdout=_failure(pair, f"Failed to pair {device}."))
        trust = _run(["bluetoothctl", "trust", address])
        if trust.returncode != 0:
            logger.warning("could not trust %s: %s", address, trust.stdout.strip())
    result = _run(["bluetoothctl", "connect", address])
    if not _succeeded(result, "Failed to connect"):
        return CommandResult(returncode=result.returncode or 1, stdout=_failure(result, f"Failed to connect {device}."))
    return CommandResult(returncode=0, stdout=f"Connected to {device}.")
