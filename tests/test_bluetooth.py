import unittest
from unittest.mock import patch

from fakes import FakeRunner, fail, ok

from quick_settings.bluetooth import connect_bluetooth, list_bluetooth_devices, parse_device_status

DEVICES = (
    "Device AA:BB:CC:DD:EE:FF WH-1000XM4 Headphones\n"
    "Device 11:22:33:44:55:66 Keyboard\n"
    "Controller 00:00:00:00:00:00 host [default]\n"
)

PAIRED_INFO = """Device AA:BB:CC:DD:EE:FF (public)
\tName: WH-1000XM4 Headphones
\tPaired: yes
\tTrusted: yes
\tConnected: yes
"""

UNPAIRED_INFO = """Device 11:22:33:44:55:66 (random)
\tName: Keyboard
\tPaired: no
\tConnected: no
"""


class TestBluetoothParsing(unittest.TestCase):
    def test_status_fields(self) -> None:
        self.assertTrue(parse_device_status(PAIRED_INFO, "Paired"))
        self.assertTrue(parse_device_status(PAIRED_INFO, "Connected"))
        self.assertFalse(parse_device_status(UNPAIRED_INFO, "Paired"))

    def test_missing_field_raises(self) -> None:
        with self.assertRaises(ValueError):
            parse_device_status("Device AA:BB:CC:DD:EE:FF\n\tName: x\n", "Paired")


class TestBluetoothCommands(unittest.TestCase):
    def test_list_devices_with_status(self) -> None:
        runner = FakeRunner(
            {
                ("bluetoothctl", "devices"): ok(DEVICES),
                ("bluetoothctl", "info", "AA:BB:CC:DD:EE:FF"): ok(PAIRED_INFO),
                ("bluetoothctl", "info", "11:22:33:44:55:66"): ok(UNPAIRED_INFO),
            }
        )
        with patch("quick_settings.bluetooth._run", runner):
            devices, error = list_bluetooth_devices()

        self.assertIsNone(error)
        self.assertEqual([device.name for device in devices], ["WH-1000XM4 Headphones", "Keyboard"])
        self.assertTrue(devices[0].paired)
        self.assertTrue(devices[0].connected)
        self.assertFalse(devices[1].paired)

    def test_list_failure(self) -> None:
        runner = FakeRunner({("bluetoothctl", "devices"): fail("No default controller available")})
        with patch("quick_settings.bluetooth._run", runner):
            devices, error = list_bluetooth_devices()

        self.assertEqual(devices, [])
        self.assertIn("Is bluetooth service running?", error)

    def test_connect_by_name_pairs_first(self) -> None:
        address = "11:22:33:44:55:66"
        runner = FakeRunner(
            {
                ("bluetoothctl", "devices"): ok(DEVICES),
                ("bluetoothctl", "info", address): ok(UNPAIRED_INFO),
                ("bluetoothctl", "pair", address): ok("Pairing successful"),
                ("bluetoothctl", "trust", address): ok(),
                ("bluetoothctl", "connect", address): ok("Connection successful"),
            }
        )
        with patch("quick_settings.bluetooth._run", runner):
            result = connect_bluetooth("Keyboard")

        self.assertEqual(result.returncode, 0)
        actions = [call[1] for call in runner.calls if call[1] in {"pair", "trust", "connect"}]
        self.assertEqual(actions, ["pair", "trust", "connect"])

    def test_connect_by_address_skips_lookup(self) -> None:
        address = "AA:BB:CC:DD:EE:FF"
        info = PAIRED_INFO.replace("Connected: yes", "Connected: no")
        runner = FakeRunner(
            {
                ("bluetoothctl", "info", address): ok(info),
                ("bluetoothctl", "connect", address): ok("Connection successful"),
            }
        )
        with patch("quick_settings.bluetooth._run", runner):
            result = connect_bluetooth(address)

        self.assertEqual(result.returncode, 0)
        self.assertNotIn(("bluetoothctl", "devices"), runner.calls)

    def test_connect_failure_marker_with_zero_exit(self) -> None:
        address = "AA:BB:CC:DD:EE:FF"
        info = PAIRED_INFO.replace("Connected: yes", "Connected: no")
        runner = FakeRunner(
            {
                ("bluetoothctl", "info", address): ok(info),
                ("bluetoothctl", "connect", address): ok("Failed to connect: org.bluez.Error.Failed"),
            }
        )
        with patch("quick_settings.bluetooth._run", runner):
            result = connect_bluetooth(address)

        self.assertEqual(result.returncode, 1)
        self.assertIn("Failed to connect", result.stdout)

    def test_connect_unknown_device(self) -> None:
        runner = FakeRunner({("bluetoothctl", "devices"): ok(DEVICES)})
        with patch("quick_settings.bluetooth._run", runner):
            result = connect_bluetooth("Toaster")

        self.assertEqual(result.returncode, 1)
        self.assertIn("not found", result.stdout)


if __name__ == "__main__":
    unittest.main()
