#!/usr/bin/env python3
"""
DTO Unit Tests

Boundary validation and the mapping from domain results to DTOs.
"""

import json
import unittest
import sys
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lotkeeper.application.dtos import (
    DTOFactory, EntryRequestDTO, EntryStatusDTO, ExitRequestDTO, ExitStatusDTO,
    InitializeLotDTO, RateUpdateDTO, to_vehicle_class
)
from lotkeeper.domain.models import (
    AlreadyParked, Assigned, NotParked, Queued, Receipt, VehicleClass
)


class TestInputValidation(unittest.TestCase):

    def test_initialize_counts(self):
        dto = InitializeLotDTO(car=2, truck=1)
        self.assertEqual(dto.counts(), {VehicleClass.CAR: 2, VehicleClass.BIKE: 0, VehicleClass.TRUCK: 1})

    def test_negative_count_rejected(self):
        with self.assertRaises(ValidationError):
            InitializeLotDTO(car=-1)

    def test_vehicle_id_is_stripped(self):
        dto = EntryRequestDTO(vehicle_id="  KA-01  ", vehicle_class="car")
        self.assertEqual(dto.vehicle_id, "KA-01")

    def test_blank_vehicle_id_rejected(self):
        for value in ("", "   "):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    EntryRequestDTO(vehicle_id=value, vehicle_class="car")

    def test_unknown_vehicle_class_rejected(self):
        with self.assertRaises(ValidationError):
            EntryRequestDTO(vehicle_id="A", vehicle_class="bus")

    def test_negative_minutes_rejected(self):
        with self.assertRaises(ValidationError):
            ExitRequestDTO(vehicle_id="A", elapsed_minutes=-1)

    def test_negative_rate_rejected(self):
        with self.assertRaises(ValidationError):
            RateUpdateDTO(vehicle_class="bike", rate=Decimal('-0.01'))

    def test_rate_accepts_numeric_strings(self):
        dto = RateUpdateDTO(vehicle_class="truck", rate="120.5")
        self.assertEqual(dto.rate, Decimal('120.5'))
        self.assertIs(to_vehicle_class(dto.vehicle_class), VehicleClass.TRUCK)

    def test_dtos_are_immutable(self):
        dto = ExitRequestDTO(vehicle_id="A", elapsed_minutes=5)
        with self.assertRaises(ValidationError):
            dto.elapsed_minutes = 10


class TestDTOFactory(unittest.TestCase):

    def test_assigned_entry(self):
        dto = DTOFactory.entry_result(
            Assigned(ticket_id="T1", vehicle_id="A", vehicle_class=VehicleClass.CAR, slot_index=0)
        )
        self.assertEqual(dto.status, EntryStatusDTO.ASSIGNED)
        self.assertEqual(dto.slot_number, 1)
        self.assertEqual(dto.ticket_id, "T1")
        self.assertEqual(dto.message, "Ticket T1: slot 1")

    def test_queued_entry(self):
        dto = DTOFactory.entry_result(Queued(vehicle_id="B", vehicle_class=VehicleClass.BIKE, position=3))
        self.assertEqual(dto.status, EntryStatusDTO.QUEUED)
        self.assertEqual(dto.position, 3)
        self.assertIsNone(dto.slot_number)
        self.assertIn("BIKE", dto.message)

    def test_already_parked_entry(self):
        dto = DTOFactory.entry_result(AlreadyParked(vehicle_id="A", slot_index=4))
        self.assertEqual(dto.status, EntryStatusDTO.ALREADY_PARKED)
        self.assertEqual(dto.slot_number, 5)

    def test_unknown_result_type(self):
        with self.assertRaises(TypeError):
            DTOFactory.entry_result(object())

    def test_exit_with_rebound(self):
        rebound = Assigned(ticket_id="T2", vehicle_id="B", vehicle_class=VehicleClass.CAR, slot_index=0)
        receipt = Receipt(
            ticket_id="T1", vehicle_id="A", vehicle_class=VehicleClass.CAR, slot_index=0,
            elapsed_minutes=90, billed_hours=2, rate=Decimal('50'), fee=Decimal('100'), rebound=rebound,
        )
        dto = DTOFactory.exit_result(receipt)

        self.assertEqual(dto.status, ExitStatusDTO.EXITED)
        self.assertEqual(dto.receipt.fee, Decimal('100'))
        self.assertEqual(dto.receipt.slot_number, 1)
        self.assertEqual(dto.rebound.vehicle_id, "B")
        self.assertEqual(dto.rebound.ticket_id, "T2")

    def test_not_parked_exit(self):
        dto = DTOFactory.exit_result(NotParked(vehicle_id="ghost"))
        self.assertEqual(dto.status, ExitStatusDTO.NOT_PARKED)
        self.assertIsNone(dto.receipt)

    def test_json_round_trip_keeps_values(self):
        dto = DTOFactory.entry_result(
            Assigned(ticket_id="T9", vehicle_id="Z", vehicle_class=VehicleClass.TRUCK, slot_index=2)
        )
        payload = json.loads(dto.to_json())
        self.assertEqual(payload["status"], "assigned")
        self.assertEqual(payload["vehicle_class"], "truck")
        self.assertEqual(type(dto).from_json(dto.to_json()), dto)


if __name__ == '__main__':
    unittest.main(verbosity=2)
