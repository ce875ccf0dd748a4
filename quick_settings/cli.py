from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from quick_settings.audio import list_audio_outputs, set_audio_output
from quick_settings.bluetooth import connect_bluetooth, list_bluetooth_devices
from quick_settings.core import Settings, configure_logging
from quick_settings.system import CommandResult, set_command_timeout
from quick_settings.tui_entry import main as tui_main
from quick_settings.wifi import airplane_mode_status, connect_wifi, list_wifi_networks, set_airplane_mode


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="quick-settings")
    parser.add_argument("--refresh-interval", type=float, default=None, help="Seconds between menu refreshes.")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds before a system command is abandoned.")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...).")
    parser.add_argument("--log-file", type=Path, default=None, help="Write log records to this file.")
    parser.add_argument(
        "--exit-on-select",
        action="store_true",
        help="Leave the menu after the first device or network is selected.",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("menu", help="Open the interactive menu (default).")

    audio_parser = subparsers.add_parser("audio", help="Audio outputs.")
    audio_sub = audio_parser.add_subparsers(dest="audio_command", required=True)
    audio_sub.add_parser("list", help="List audio outputs.")
    audio_set = audio_sub.add_parser("set", help="Select the default audio output.")
    audio_set.add_argument("name")

    bluetooth_parser = subparsers.add_parser("bluetooth", help="Bluetooth devices.")
    bluetooth_sub = bluetooth_parser.add_subparsers(dest="bluetooth_command", required=True)
    bluetooth_sub.add_parser("list", help="List known Bluetooth devices.")
    bluetooth_connect = bluetooth_sub.add_parser("connect", help="Connect a Bluetooth device.")
    bluetooth_connect.add_argument("device", help="Device name or MAC address.")

    wifi_parser = subparsers.add_parser("wifi", help="Wi-Fi networks.")
    wifi_sub = wifi_parser.add_subparsers(dest="wifi_command", required=True)
    wifi_list = wifi_sub.add_parser("list", help="List visible Wi-Fi networks.")
    wifi_list.add_argument("--no-rescan", action="store_true", help="Use the cached scan results.")
    wifi_connect = wifi_sub.add_parser("connect", help="Connect to a Wi-Fi network.")
    wifi_connect.add_argument("ssid")
    wifi_connect.add_argument("--password", default=None)

    airplane_parser = subparsers.add_parser("airplane", help="Airplane mode.")
    airplane_sub = airplane_parser.add_subparsers(dest="airplane_command", required=True)
    airplane_sub.add_parser("status", help="Show airplane mode state.")
    airplane_sub.add_parser("on", help="Turn all radios off.")
    airplane_sub.add_parser("off", help="Turn all radios on.")

    return parser.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    data = Settings.from_env().to_dict()
    if args.refresh_interval is not None:
        data["refresh_interval"] = args.refresh_interval
    if args.timeout is not None:
        data["command_timeout"] = args.timeout
    if args.log_level:
        data["log_level"] = args.log_level
    if args.log_file:
        data["log_file"] = args.log_file
    if args.exit_on_select:
        data["exit_on_select"] = True
    return Settings.from_dict(data)


def _print_result(result: CommandResult) -> int:
    print(result.stdout.rstrip())
    return result.returncode


def _print_listing(lines: list[str], error: str | None) -> int:
    if error:
        print(error, file=sys.stderr)
        return 1
    for line in lines:
        print(line)
    return 0


def _cmd_audio_list() -> int:
    outputs, error = list_audio_outputs()
    lines = [f"{'*' if output.is_default else ' '} {output.name}" for output in outputs]
    return _print_listing(lines, error)


def _cmd_bluetooth_list() -> int:
    devices, error = list_bluetooth_devices()
    lines = []
    for device in devices:
        flags = [flag for flag, on in (("paired", device.paired), ("connected", device.connected)) if on]
        suffix = f" ({', '.join(flags)})" if flags else ""
        lines.append(f"{device.address} {device.name}{suffix}")
    return _print_listing(lines, error)


def _cmd_wifi_list(rescan: bool) -> int:
    networks, error = list_wifi_networks(rescan=rescan)
    lines = [
        f"{'*' if network.active else ' '} {network.ssid}" + (f" [{network.security}]" if network.secured else "")
        for network in networks
    ]
    return _print_listing(lines, error)


def _cmd_airplane_status() -> int:
    enabled, error = airplane_mode_status()
    return _print_listing(["on" if enabled else "off"], error)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = _settings_from_args(args)
    interactive = args.command in (None, "menu")
    configure_logging(settings, interactive=interactive)
    set_command_timeout(settings.command_timeout)

    if interactive:
        return tui_main(settings)
    if args.command == "audio":
        if args.audio_command == "list":
            return _cmd_audio_list()
        if args.audio_command == "set":
            return _print_result(set_audio_output(args.name))
    if args.command == "bluetooth":
        if args.bluetooth_command == "list":
            return _cmd_bluetooth_list()
        if args.bluetooth_command == "connect":
            return _print_result(connect_bluetooth(args.device))
    if args.command == "wifi":
        if args.wifi_command == "list":
            return _cmd_wifi_list(not args.no_rescan)
        if args.wifi_command == "connect":
            return _print_result(connect_wifi(args.ssid, args.password))
    if args.command == "airplane":
        if args.airplane_command == "status":
            return _cmd_airplane_status()
        return _print_result(set_airplane_mode(args.airplane_command == "on"))
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
