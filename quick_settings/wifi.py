from __future__ import annotations

import logging
from dataclasses import dataclass

from quick_settings.system import CommandResult, _failure, _run


WIRELESS_CONNECTION_TYPES = {"802-11-wireless", "wifi"}

logger = logging.getLogger(__name__)


@dataclass
class WifiNetwork:
    ssid: str
    active: bool = False
    security: str = ""

    @property
    def secured(self) -> bool:
        return bool(self.security) and self.security != "--"


def _split_terse(line: str) -> list[str]:
    """Split one line of ``nmcli -t`` output, honouring ``\\:`` escapes."""
    fields: list[str] = []
    current: list[str] = []
    escaped = False
    for char in line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def _parse_nmcli_wifi(output: str) -> list[WifiNetwork]:
    # nmcli lists the same SSID once per BSSID/band.
    by_ssid: dict[str, WifiNetwork] = {}
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = _split_terse(line)
        if len(fields) < 2:
            continue
        in_use, ssid = fields[0].strip(), fields[1]
        security = fields[2].strip() if len(fields) > 2 else ""
        if not ssid.strip():
            continue
        existing = by_ssid.get(ssid)
        if existing is None:
            by_ssid[ssid] = WifiNetwork(ssid=ssid, active=in_use == "*", security=security)
            continue
        existing.active = existing.active or in_use == "*"
        if not existing.security:
            existing.security = security
    return list(by_ssid.values())


def list_wifi_networks(rescan: bool = True) -> tuple[list[WifiNetwork], str | None]:
    result = _run(
        [
            "nmcli",
            "-t",
            "-f",
            "IN-USE,SSID,SECURITY",
            "device",
            "wifi",
            "list",
            "--rescan",
            "yes" if rescan else "no",
        ]
    )
    if result.returncode != 0:
        reason = _failure(result, "nmcli failed.")
        return [], f"could not run nmcli: {reason}. Is NetworkManager running?"
    return _parse_nmcli_wifi(result.stdout), None


def saved_wifi_profiles() -> set[str]:
    result = _run(["nmcli", "-t", "-f", "NAME,TYPE", "connection", "show"])
    if result.returncode != 0:
        return set()
    profiles: set[str] = set()
    for line in result.stdout.splitlines():
        fields = _split_terse(line)
        if len(fields) >= 2 and fields[1].strip() in WIRELESS_CONNECTION_TYPES:
            profiles.add(fields[0])
    return profiles


def needs_password(network: WifiNetwork) -> bool:
    if not network.secured:
        return False
    return network.ssid not in saved_wifi_profiles()


def connect_wifi(ssid: str, password: str | None = None) -> CommandResult:
    if not password and ssid in saved_wifi_profiles():
        result = _run(["nmcli", "connection", "up", "id", ssid])
    else:
        command = ["nmcli", "device", "wifi", "connect", ssid]
        if password:
            command += ["password", password]
        result = _run(command)
    if result.returncode != 0:
        return CommandResult(returncode=result.returncode, stdout=_failure(result, f"Could not connect to {ssid}."))
    return CommandResult(returncode=0, stdout=f"Connected to {ssid}.")


def airplane_mode_status() -> tuple[bool, str | None]:
    result = _run(["nmcli", "radio", "wifi"])
    if result.returncode != 0:
        reason = _failure(result, "nmcli radio query failed.")
        return False, f"could not check nmcli: {reason}. Is NetworkManager installed?"
    # Radios off means airplane mode is on.
    return "disabled" in result.stdout, None


def set_airplane_mode(enabled: bool) -> CommandResult:
    result = _run(["nmcli", "radio", "all", "off" if enabled else "on"])
    if result.returncode != 0:
        return CommandResult(returncode=result.returncode, stdout=_failure(result, "Could not change radio state."))
    return CommandResult(returncode=0, stdout=f"Airplane mode {'on' if enabled else 'off'}.")
