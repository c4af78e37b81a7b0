import os
import tempfile
import unittest
from unittest import mock

from chip8 import Chip8, StepResult
from chip8_frontend import KEY_MAPPINGS, DEFAULT_IPS, debug_enabled, get_args, read_rom, run_frame


def program(*opcodes):
    return b"".join(op.to_bytes(2, 'big') for op in opcodes)


class TestHelpers(unittest.TestCase):
    def test_every_key_is_mapped_once(self):
        self.assertEqual(sorted(KEY_MAPPINGS.values()), list(range(16)))

    def test_read_rom(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "test.ch8")
            with open(path, mode='wb') as f:
                f.write(program(0x00E0, 0x1200))
            self.assertEqual(read_rom(path), b"\x00\xe0\x12\x00")

    def test_default_args(self):
        args = get_args(["-f", "pong.ch8"])
        self.assertEqual(args.file, "pong.ch8")
        self.assertEqual(args.ips, DEFAULT_IPS)

    def test_too_few_instructions_per_second(self):
        with mock.patch("sys.stderr"), self.assertRaises(SystemExit):
            get_args(["-f", "pong.ch8", "--ips", "10"])

    def test_debug_env_var(self):
        with mock.patch.dict(os.environ, {"DEBUG": "1"}):
            self.assertTrue(debug_enabled())
        with mock.patch.dict(os.environ, {"DEBUG": "0"}):
            self.assertFalse(debug_enabled())
        with mock.patch.dict(os.environ, {"DEBUG": "yes"}):
            self.assertFalse(debug_enabled())


class TestRunFrame(unittest.TestCase):
    def test_frame_ticks_timers_once(self):
        chip = Chip8(program(0x6005, 0xF015, 0x1204))
        self.assertFalse(run_frame(chip, 10))
        self.assertEqual(chip.get_delay_timer(), 4)
        self.assertEqual(chip.pc, 0x204)

    def test_frame_reports_redraw(self):
        chip = Chip8(program(0x00E0, 0x1202))
        self.assertTrue(run_frame(chip, 5))
        self.assertFalse(run_frame(chip, 5))

    def test_frame_leaves_the_display_dirty(self):
        chip = Chip8(program(0x00E0, 0x1202))
        chip.display.take_dirty()
        run_frame(chip, 5)
        self.assertTrue(chip.display.take_dirty())
        run_frame(chip, 5)
        self.assertFalse(chip.display.take_dirty())

    def test_frame_stops_on_key_wait(self):
        chip = mock.Mock()
        chip.step.return_value = StepResult(redraw=False, waiting=True)
        self.assertFalse(run_frame(chip, 10))
        self.assertEqual(chip.step.call_count, 1)
        chip.tick_timers.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
