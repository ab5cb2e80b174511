#!/usr/bin/env python3
"""
Integration tests for the interactive console and the command-line entry point
The console is driven through in-memory streams.
"""

import io
import os
import shutil
import tempfile
import unittest
import sys
from pathlib import Path
from unittest.mock import patch

# Add the src directory to the Python path
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from parkline.application.parking_service import ParkingServiceFactory
from parkline.domain.models import VehicleType
from parkline.infrastructure.config import ParkingSettings
from parkline.main import build_parser, main
from parkline.presentation.console import ParkingConsole, render_layout


def make_service(cars=1, bikes=0, trucks=0):
    settings = ParkingSettings().with_overrides(
        slots={VehicleType.CAR: cars, VehicleType.BIKE: bikes, VehicleType.TRUCK: trucks}
    )
    return ParkingServiceFactory.create_from_settings(settings)


class TestParkingConsole(unittest.TestCase):
    """Menu loop driven from scripted input"""

    def run_console(self, script, service=None, ask_for_layout=False):
        stdout = io.StringIO()
        console = ParkingConsole(
            service or make_service(), stdin=io.StringIO(script), stdout=stdout
        )
        status = console.run(ask_for_layout=ask_for_layout)
        self.assertEqual(status, 0)
        return stdout.getvalue()

    def test_entry_and_availability(self):
        output = self.run_console("1\nKA-01\ncar\n1\nKA-02\nc\n3\n0\n")
        self.assertIn("Ticket: T1  | Vehicle: KA-01 | Type: CAR | Slot#: 1", output)
        self.assertIn("No free CAR slots. Added to waitlist position 1", output)
        self.assertIn("Availability: Free total = 0  (Cars: 0, Bikes: 0, Trucks: 0)", output)
        self.assertIn("  Slot 1 | CAR | Vehicle: KA-01 | Ticket: T1", output)
        self.assertIn("Waitlist size: 1", output)
        self.assertIn("  1. KA-02 (CAR)", output)
        self.assertTrue(output.rstrip().endswith("Goodbye!"))

    def test_exit_receipt_with_number_retries(self):
        script = "1\nKA-01\ncar\n1\nKA-02\ncar\n2\nKA-01\nninety\n-5\n90\n0\n"
        output = self.run_console(script)
        self.assertIn(" ! Please enter a valid number.", output)
        self.assertIn(" ! Please enter a non-negative number.", output)
        self.assertIn("  Duration: 90 minutes (2 hour(s) billed)", output)
        self.assertIn("  Amount  : INR 100.00", output)
        self.assertIn(
            'Freed slot 1 assigned to waitlisted vehicle "KA-02" | New Ticket: T2', output
        )

    def test_rejections_are_reported(self):
        output = self.run_console("1\nKA-01\ncar\n1\nKA-01\ncar\n2\nghost\n10\n1\nX\nplane\n0\n")
        self.assertIn("! Vehicle 'KA-01' already parked in slot 1", output)
        self.assertIn("! Vehicle 'ghost' not found", output)
        self.assertNotIn("Receipt", output)
        self.assertIn(" ! vehicle_type:", output)

    def test_set_rate_and_statistics(self):
        output = self.run_console("6\ncar\n80\n6\ncar\nabc\n1\nKA-01\ncar\n2\nKA-01\n30\n4\n0\n")
        self.assertIn("Rate for CAR set to INR 80.00 per hour", output)
        self.assertIn(" ! Invalid rate. Cancelled.", output)
        self.assertIn("Total earnings        : INR 80.00", output)
        self.assertIn("Occupancy percent     : 0.00%", output)
        self.assertIn("Rates per hour        : CAR=80.00, BIKE=20.00, TRUCK=100.00", output)

    def test_cancel_wait_and_layout(self):
        output = self.run_console(
            "1\nKA-01\ncar\n1\nKA-02\ncar\n7\nKA-02\n7\nKA-02\n5\n0\n",
            service=make_service(cars=1, trucks=1),
        )
        self.assertIn("Vehicle 'KA-02' removed from the CAR waitlist", output)
        self.assertIn("  1 : CAR : OCC - KA-01", output)
        self.assertIn("  2 : TRUCK : FREE", output)

    def test_layout_prompt_on_start(self):
        service = make_service(cars=0)
        output = self.run_console("x\n2\n0\n1\n5\n0\n", service=service, ask_for_layout=True)
        self.assertIn("Parking initialized: Total slots = 3 (Cars: 2, Bikes: 0, Trucks: 1)", output)
        self.assertIn("  3 : TRUCK : FREE", output)

    def test_invalid_choice_and_end_of_input(self):
        output = self.run_console("9\n")
        self.assertIn(" ! Invalid choice. Try again.", output)
        self.assertNotIn("Goodbye!", output)

    def test_render_empty_layout(self):
        self.assertIn("(no slots)", render_layout([]))


class TestEntryPoint(unittest.TestCase):
    """Command-line entry point"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_parser(self):
        args = build_parser().parse_args(["--cars", "3", "--log-level", "debug"])
        self.assertEqual(args.cars, 3)
        self.assertIsNone(args.bikes)
        self.assertEqual(args.log_level, "DEBUG")
        self.assertIsNone(args.allow_duplicate_waitlist)

    def test_main_runs_console(self):
        config = os.path.join(self.temp_dir, "parkline.yaml")
        with open(config, "w", encoding="utf-8") as handle:
            handle.write("slots:\n  car: 1\nlogging:\n  level: ERROR\n")

        stdout = io.StringIO()
        with patch("sys.stdin", io.StringIO("1\nKA-01\ncar\n0\n")), patch("sys.stdout", stdout):
            status = main(["--config", config, "--trucks", "1"])
        self.assertEqual(status, 0)
        self.assertIn("Slot#: 1", stdout.getvalue())

    def test_main_reports_bad_config(self):
        config = os.path.join(self.temp_dir, "bad.yaml")
        with open(config, "w", encoding="utf-8") as handle:
            handle.write("slots:\n  car: -4\n")

        stderr = io.StringIO()
        with patch("sys.stderr", stderr):
            status = main(["--config", config])
        self.assertEqual(status, 2)
        self.assertIn("Configuration error", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
