#!/usr/bin/env python3
"""
Command Processor Integration Tests

Commands validate raw input, run against a real ParkingService and are
recorded in the history only when they succeed.
"""

import unittest
import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lotkeeper.application.commands import (
    CommandProcessor, InitializeLotCommand, SetRateCommand, VehicleEntryCommand, VehicleExitCommand
)
from lotkeeper.application.parking_service import ParkingService
from lotkeeper.domain import InvariantViolation, VehicleClass


class TestCommandProcessor(unittest.TestCase):

    def setUp(self):
        self.service = ParkingService()
        self.processor = CommandProcessor(self.service)
        result = self.processor.process(InitializeLotCommand(car=1, bike=1))
        self.assertTrue(result["success"])

    def test_entry_and_exit_flow(self):
        entry = self.processor.process(VehicleEntryCommand("KA-01", VehicleClass.CAR))
        self.assertTrue(entry["success"])
        self.assertEqual(entry["data"]["slot_number"], 1)
        self.assertEqual(entry["message"], "Ticket T1: slot 1")

        exit_result = self.processor.process(VehicleExitCommand("KA-01", 61))
        self.assertTrue(exit_result["success"])
        self.assertEqual(exit_result["total_fee"], Decimal('100'))
        self.assertIn("command_id", exit_result)

    def test_queued_entry_counts_as_success(self):
        self.processor.process(VehicleEntryCommand("A", "car"))
        result = self.processor.process(VehicleEntryCommand("B", "car"))
        self.assertTrue(result["success"])
        self.assertEqual(result["status"], "queued")
        self.assertEqual(result["data"]["position"], 1)

    def test_already_parked_is_reported_as_failure(self):
        self.processor.process(VehicleEntryCommand("A", "car"))
        result = self.processor.process(VehicleEntryCommand("A", "car"))
        self.assertFalse(result["success"])
        self.assertIn("already parked", result["error"])

    def test_unknown_vehicle_exit_is_reported_as_failure(self):
        result = self.processor.process(VehicleExitCommand("ghost", 10))
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "Vehicle ghost not found")

    def test_validation_errors_do_not_touch_service(self):
        service = Mock(spec=ParkingService)
        processor = CommandProcessor(service)

        results = processor.process_batch([
            VehicleEntryCommand("  ", "car"),
            VehicleEntryCommand("A", "bus"),
            VehicleExitCommand("A", -5),
            SetRateCommand("car", "-1"),
            InitializeLotCommand(car=-2),
        ])

        self.assertTrue(all(not r["success"] for r in results))
        self.assertTrue(all(r["error"].startswith("Validation failed") for r in results))
        self.assertEqual(service.method_calls, [])
        self.assertEqual(processor.get_history(), [])

    def test_entry_before_initialize_is_reported(self):
        processor = CommandProcessor(ParkingService())
        result = processor.process(VehicleEntryCommand("A", "car"))
        self.assertFalse(result["success"])
        self.assertIn("not been initialized", result["error"])

    def test_set_rate(self):
        result = self.processor.process(SetRateCommand(VehicleClass.BIKE, "35"))
        self.assertTrue(result["success"])
        self.assertEqual(self.service.stats().rates["bike"], Decimal('35'))

    def test_history_records_only_successes(self):
        self.processor.process(VehicleEntryCommand("A", "car"))
        self.processor.process(VehicleEntryCommand("A", "car"))
        self.processor.process(VehicleExitCommand("ghost", 1))

        history = self.processor.get_history()
        self.assertEqual(
            [h["command_type"] for h in history],
            ["InitializeLotCommand", "VehicleEntryCommand"],
        )
        self.assertEqual(history[-1]["request"]["vehicle_id"], "A")
        self.assertEqual(history[-1]["result"]["status"], "assigned")
        self.assertIsNotNone(history[-1]["executed_at"])

    def test_history_is_bounded(self):
        processor = CommandProcessor(self.service, max_history_size=2)
        for i in range(4):
            processor.process(SetRateCommand("car", str(10 + i)))
        history = processor.get_history()
        self.assertEqual([h["description"] for h in history], ["Set Rate car=12", "Set Rate car=13"])
        self.assertEqual(len(processor.get_history(limit=1)), 1)
        processor.clear_history()
        self.assertEqual(processor.get_history(), [])

    def test_invariant_violation_is_not_swallowed(self):
        service = Mock(spec=ParkingService)
        service.vehicle_entry.side_effect = InvariantViolation("broken")
        processor = CommandProcessor(service)
        with self.assertRaises(InvariantViolation):
            processor.process(VehicleEntryCommand("A", "car"))


if __name__ == '__main__':
    unittest.main(verbosity=2)
