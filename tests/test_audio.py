import unittest
from unittest.mock import patch

from fakes import FakeRunner, fail, ok

from quick_settings.audio import _parse_short_sinks, _parse_sink_descriptions, list_audio_outputs, set_audio_output

SHORT_SINKS = (
    "0\talsa_output.pci-0000_00_1f.3.analog-stereo\tmodule-alsa-card.c\ts16le 2ch 48000Hz\tSUSPENDED\n"
    "1\tbluez_output.AA_BB_CC_DD_EE_FF.1\tmodule-bluez5-device.c\ts16le 2ch 48000Hz\tRUNNING\n"
    "\n"
)

LONG_SINKS = """Sink #0
\tState: SUSPENDED
\tName: alsa_output.pci-0000_00_1f.3.analog-stereo
\tDescription: Built-in Audio Analog Stereo
\tDriver: PipeWire
Sink #1
\tState: RUNNING
\tName: bluez_output.AA_BB_CC_DD_EE_FF.1
\tDescription: WH-1000XM4
"""


class TestAudioParsing(unittest.TestCase):
    def test_short_sinks_take_second_column(self) -> None:
        self.assertEqual(
            _parse_short_sinks(SHORT_SINKS),
            ["alsa_output.pci-0000_00_1f.3.analog-stereo", "bluez_output.AA_BB_CC_DD_EE_FF.1"],
        )

    def test_short_sinks_skip_malformed_lines(self) -> None:
        self.assertEqual(_parse_short_sinks("garbage\n\n"), [])

    def test_descriptions(self) -> None:
        descriptions = _parse_sink_descriptions(LONG_SINKS)

        self.assertEqual(descriptions["bluez_output.AA_BB_CC_DD_EE_FF.1"], "WH-1000XM4")
        self.assertEqual(len(descriptions), 2)


class TestAudioCommands(unittest.TestCase):
    def test_list_marks_default_sink(self) -> None:
        runner = FakeRunner(
            {
                ("pactl", "list", "short", "sinks"): ok(SHORT_SINKS),
                ("pactl", "get-default-sink"): ok("bluez_output.AA_BB_CC_DD_EE_FF.1\n"),
                ("pactl", "list", "sinks"): ok(LONG_SINKS),
            }
        )
        with patch("quick_settings.audio._run", runner):
            outputs, error = list_audio_outputs()

        self.assertIsNone(error)
        self.assertEqual([output.is_default for output in outputs], [False, True])
        self.assertEqual(outputs[0].label, "Built-in Audio Analog Stereo")

    def test_list_without_descriptions_falls_back_to_name(self) -> None:
        runner = FakeRunner(
            {
                ("pactl", "list", "short", "sinks"): ok(SHORT_SINKS),
                ("pactl", "get-default-sink"): fail("no default"),
            }
        )
        with patch("quick_settings.audio._run", runner):
            outputs, error = list_audio_outputs()

        self.assertIsNone(error)
        self.assertFalse(any(output.is_default for output in outputs))
        self.assertEqual(outputs[1].label, "bluez_output.AA_BB_CC_DD_EE_FF.1")

    def test_list_failure_returns_empty_list(self) -> None:
        runner = FakeRunner({("pactl", "list", "short", "sinks"): fail("command not found: pactl", 127)})
        with patch("quick_settings.audio._run", runner):
            outputs, error = list_audio_outputs()

        self.assertEqual(outputs, [])
        self.assertIn("could not get audio devices", error)
        self.assertIn("pactl", error)

    def test_set_moves_playing_streams(self) -> None:
        name = "bluez_output.AA_BB_CC_DD_EE_FF.1"
        runner = FakeRunner(
            {
                ("pactl", "set-default-sink", name): ok(),
                ("pactl", "list", "short", "sink-inputs"): ok("12\t0\t34\tPipeWire\tfloat32le 2ch 48000Hz\n"),
                ("pactl", "move-sink-input", "12", name): ok(),
            }
        )
        with patch("quick_settings.audio._run", runner):
            result = set_audio_output(name)

        self.assertEqual(result.returncode, 0)
        self.assertIn("Moved 1 stream.", result.stdout)
        self.assertIn(("pactl", "move-sink-input", "12", name), runner.calls)

    def test_set_failure_is_reported(self) -> None:
        runner = FakeRunner({("pactl", "set-default-sink", "nope"): fail("Failure: No such entity")})
        with patch("quick_settings.audio._run", runner):
            result = set_audio_output("nope")

        self.assertEqual(result.returncode, 1)
        self.assertEqual(result.stdout, "Failure: No such entity")
        self.assertEqual(len(runner.calls), 1)


if __name__ == "__main__":
    unittest.main()
