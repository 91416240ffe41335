#!/usr/bin/env python3
"""
Entry Point Tests
"""

import logging
import os
import tempfile
import unittest
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lotkeeper import main as entry
from lotkeeper.config import Settings
from lotkeeper.domain import InvariantViolation


class TestArgumentParsing(unittest.TestCase):

    def test_counts_and_log_level(self):
        args = entry.build_parser().parse_args(["--cars", "3", "--trucks", "1", "--log-level", "debug"])
        self.assertEqual(args.cars, 3)
        self.assertIsNone(args.bikes)
        self.assertEqual(args.trucks, 1)
        self.assertEqual(args.log_level, "DEBUG")

    def test_negative_count_is_rejected(self):
        with patch("sys.stderr"):
            with self.assertRaises(SystemExit):
                entry.build_parser().parse_args(["--cars", "-1"])


@patch("lotkeeper.main.setup_logging", return_value=logging.getLogger("test"))
class TestMain(unittest.TestCase):

    @patch("lotkeeper.main.ParkingConsole")
    def test_passes_counts_to_console(self, console_cls, _logging):
        self.assertEqual(entry.main(["--cars", "2", "--bikes", "0"]), 0)
        console_cls.return_value.run.assert_called_once_with({"car": 2, "bike": 0, "truck": None})

    @patch("lotkeeper.main.ParkingConsole")
    def test_invariant_violation_exits_non_zero(self, console_cls, _logging):
        console_cls.return_value.run.side_effect = InvariantViolation("broken")
        with self.assertLogs("test", level="ERROR"):
            self.assertEqual(entry.main([]), 2)


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self._saved = (root.level, list(root.handlers))

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            if handler not in self._saved[1]:
                handler.close()
        root.setLevel(self._saved[0])
        for handler in self._saved[1]:
            root.addHandler(handler)

    @unittest.skipIf("LOTKEEPER_LOG_LEVEL" in os.environ, "log level set in the environment")
    def test_console_defaults_to_warning(self):
        self.assertEqual(Settings.LOG_LEVEL, "WARNING")
        entry.setup_logging()
        root = logging.getLogger()
        self.assertEqual(root.level, logging.WARNING)
        self.assertFalse(root.isEnabledFor(logging.INFO))

    def test_explicit_level_overrides_default(self):
        with patch.object(Settings, "LOG_LEVEL", "WARNING"):
            entry.setup_logging("info")
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_file_handler_added_when_log_dir_given(self):
        with tempfile.TemporaryDirectory() as log_dir:
            entry.setup_logging("WARNING", log_dir)
            root = logging.getLogger()
            self.assertEqual(root.level, logging.WARNING)
            file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
            self.assertEqual(len(file_handlers), 1)
            self.assertTrue((Path(log_dir) / "lotkeeper.log").exists())
            for handler in file_handlers:
                root.removeHandler(handler)
                handler.close()


if __name__ == '__main__':
    unittest.main(verbosity=2)
