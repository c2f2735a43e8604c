from __future__ import annotations

import json
import unittest

from padelmotion.sensors.motion import (
    EXPORT_COLUMNS,
    IDENTITY_QUATERNION,
    MotionReading,
    parse_line,
    reading_to_json,
)


class ParseLineTests(unittest.TestCase):
    def test_nested_json(self) -> None:
        line = json.dumps(
            {
                "timestamp": 12.5,
                "user_acceleration": [0.1, 0.2, 0.3],
                "rotation_rate": {"x": 1.0, "y": 2.0, "z": 3.0},
                "attitude": {"pitch": 0.5, "roll": 0.25, "yaw": -0.5},
                "quaternion": [0.0, 0.0, 0.0, 1.0],
            }
        )
        reading = parse_line(line)
        self.assertIsNotNone(reading)
        assert reading is not None
        self.assertEqual(reading.timestamp, 12.5)
        self.assertEqual(reading.user_acceleration, (0.1, 0.2, 0.3))
        self.assertEqual(reading.rotation_rate, (1.0, 2.0, 3.0))
        self.assertEqual(reading.attitude_euler, (0.5, 0.25, -0.5))
        self.assertEqual(reading.gravity, (0.0, 0.0, 0.0))

    def test_flat_json_uses_export_names(self) -> None:
        reading = parse_line(json.dumps({"sensorTimestamp": 3.0, "userAccX": 1.5, "magFieldZ": 40.0}))
        assert reading is not None
        self.assertEqual(reading.timestamp, 3.0)
        self.assertEqual(reading.user_acceleration, (1.5, 0.0, 0.0))
        self.assertEqual(reading.attitude_quaternion, IDENTITY_QUATERNION)
        self.assertEqual(reading.magnetic_field, (0.0, 0.0, 40.0))

    def test_export_csv_row(self) -> None:
        values = ["7", "2025-01-01T00:00:00+00:00", "1.25", "0.5"] + ["0"] * 12 + ["1"] + ["0"] * 6
        self.assertEqual(len(values), len(EXPORT_COLUMNS))
        reading = parse_line(",".join(values))
        assert reading is not None
        self.assertEqual(reading.timestamp, 1.25)
        self.assertEqual(reading.attitude_quaternion, (0.0, 0.0, 0.0, 1.0))

    def test_compact_csv_row(self) -> None:
        row = ",".join(["2.0", "1", "2", "3"] + ["0"] * 9 + ["1"] + ["0"] * 6)
        reading = parse_line(row)
        assert reading is not None
        self.assertEqual(reading.timestamp, 2.0)
        self.assertEqual(reading.user_acceleration, (1.0, 2.0, 3.0))

    def test_rejects_headers_blank_and_broken_lines(self) -> None:
        self.assertIsNone(parse_line(""))
        self.assertIsNone(parse_line(",".join(EXPORT_COLUMNS)))
        self.assertIsNone(parse_line("{not json"))
        self.assertIsNone(parse_line(json.dumps({"user_acceleration": [1, 2, 3]})))
        self.assertIsNone(parse_line("1,2,3"))
        self.assertIsNone(parse_line(json.dumps({"timestamp": 1.0, "user_acceleration": [1, 2]})))

    def test_rejects_non_finite_and_zero_quaternion(self) -> None:
        self.assertIsNone(parse_line(json.dumps({"timestamp": 1.0, "user_acceleration": [float("nan"), 0, 0]})))
        self.assertIsNone(parse_line(json.dumps({"timestamp": 1.0, "quaternion": [0, 0, 0, 0]})))

    def test_json_round_trip(self) -> None:
        reading = MotionReading(
            timestamp=4.0,
            user_acceleration=(1.0, -1.0, 0.5),
            attitude_quaternion=(0.0, 1.0, 0.0, 0.0),
            gravity=(0.0, 0.0, -1.0),
        )
        self.assertEqual(parse_line(reading_to_json(reading)), reading)


if __name__ == "__main__":
    unittest.main()
