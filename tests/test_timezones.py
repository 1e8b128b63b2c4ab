#!/usr/bin/env python3
"""
Timezone detection and UTC conversion tests

- Offset parsing from selector values and "(GMT+05:30)" labels
- Page-level detection with the UTC fallback signal
- Local-to-UTC conversion including day rollover
"""

import unittest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from econcal.timezones import detect_offset, parse_local_time, parse_offset_string, to_utc


class TestOffsetParsing(unittest.TestCase):
    """Textual offsets into float hours"""

    def test_numeric_offsets(self):
        self.assertEqual(parse_offset_string("5.5"), 5.5)
        self.assertEqual(parse_offset_string("-3"), -3.0)
        self.assertEqual(parse_offset_string("0"), 0.0)

    def test_clock_offsets(self):
        self.assertEqual(parse_offset_string("+05:30"), 5.5)
        self.assertEqual(parse_offset_string("-09:30"), -9.5)
        self.assertEqual(parse_offset_string("05:45"), 5.75)

    def test_gmt_labels(self):
        self.assertEqual(parse_offset_string("(GMT+05:30) Chennai, Kolkata"), 5.5)
        self.assertEqual(parse_offset_string("(UTC-03:30) Newfoundland"), -3.5)
        self.assertEqual(parse_offset_string("GMT+9"), 9.0)
        self.assertEqual(parse_offset_string("(GMT) London"), 0.0)

    def test_rejects_non_offsets(self):
        self.assertIsNone(parse_offset_string(""))
        self.assertIsNone(parse_offset_string(None))
        self.assertIsNone(parse_offset_string("Eastern Time"))
        self.assertIsNone(parse_offset_string("20"))


class TestOffsetDetection(unittest.TestCase):
    """Page-level timezone detection"""

    def test_selected_option_value(self):
        markup = """
        <select id="timezone">
            <option value="0">(GMT) London</option>
            <option value="-5" selected>(GMT-05:00) Eastern Time</option>
        </select>
        """
        detection = detect_offset(markup)

        self.assertEqual(detection.offset_hours, -5.0)
        self.assertTrue(detection.detected)
        self.assertEqual(detection.source, "selector:timezone")

    def test_selected_option_label_when_value_is_opaque(self):
        markup = """
        <select name="user_timezone">
            <option value="Asia/Kolkata" selected="selected">(GMT+05:30) Chennai, Kolkata</option>
        </select>
        """
        detection = detect_offset(markup)

        self.assertEqual(detection.offset_hours, 5.5)
        self.assertTrue(detection.detected)

    def test_hidden_input_fallback(self):
        markup = '<form><input type="hidden" name="timezone" value="2"></form>'
        detection = detect_offset(markup)

        self.assertEqual(detection.offset_hours, 2.0)
        self.assertTrue(detection.detected)

    def test_unrelated_select_is_ignored(self):
        markup = """
        <select id="currency"><option value="5" selected>EUR</option></select>
        """
        with self.assertLogs('econcal.timezones', level='WARNING'):
            detection = detect_offset(markup)

        self.assertEqual(detection.offset_hours, 0.0)
        self.assertFalse(detection.detected)

    def test_no_selection_defaults_to_utc(self):
        markup = """
        <select id="timezone">
            <option value="1">(GMT+01:00)</option>
            <option value="2">(GMT+02:00)</option>
        </select>
        """
        with self.assertLogs('econcal.timezones', level='WARNING') as logs:
            detection = detect_offset(markup)

        self.assertEqual(detection.offset_hours, 0.0)
        self.assertFalse(detection.detected)
        self.assertIn("assuming UTC", logs.output[0])

    def test_empty_markup(self):
        with self.assertLogs('econcal.timezones', level='WARNING'):
            detection = detect_offset("")
        self.assertFalse(detection.detected)


class TestLocalTimeParsing(unittest.TestCase):
    """12-hour and 24-hour wall-clock times"""

    def test_12_hour_forms(self):
        self.assertEqual(parse_local_time("1:00 PM"), (13, 0))
        self.assertEqual(parse_local_time("1:00pm"), (13, 0))
        self.assertEqual(parse_local_time("12:00am"), (0, 0))
        self.assertEqual(parse_local_time("12:30 PM"), (12, 30))
        self.assertEqual(parse_local_time("8:30 a.m."), (8, 30))

    def test_24_hour_form(self):
        self.assertEqual(parse_local_time("13:00"), (13, 0))
        self.assertEqual(parse_local_time("0:30"), (0, 30))

    def test_seconds_are_dropped(self):
        self.assertEqual(parse_local_time("13:00:00"), (13, 0))
        self.assertEqual(parse_local_time("8:30:45"), (8, 30))
        self.assertEqual(parse_local_time("1:00:30 PM"), (13, 0))
        self.assertEqual(to_utc("13:00:00", 2), ("11:00", 0))

    def test_invalid_times(self):
        for value in ("", None, "All Day", "Tentative", "25:00", "12:75", "13:00 PM", "13:00:75"):
            with self.subTest(value=value):
                self.assertIsNone(parse_local_time(value))


class TestUTCConversion(unittest.TestCase):
    """Offset subtraction with day rollover"""

    def test_same_day(self):
        self.assertEqual(to_utc("13:00", 1), ("12:00", 0))
        self.assertEqual(to_utc("23:45", 5), ("18:45", 0))
        self.assertEqual(to_utc("1:00 PM", 0), ("13:00", 0))

    def test_negative_offset_moves_time_forward(self):
        """
        00:30 at UTC-5 is 05:30 UTC on the same date, so the day offset is 0.

        An older worked example listed ("5:30", 1) here; the day adjustment
        only applies when the subtraction crosses midnight.
        """
        self.assertEqual(to_utc("0:30", -5), ("5:30", 0))

    def test_rollover_to_next_day(self):
        self.assertEqual(to_utc("10:30 PM", -5), ("3:30", 1))
        self.assertEqual(to_utc("23:00", -1.5), ("0:30", 1))

    def test_rollover_to_previous_day(self):
        self.assertEqual(to_utc("1:00 AM", 2), ("23:00", -1))
        self.assertEqual(to_utc("5:00", 5.5), ("23:30", -1))

    def test_quarter_hour_zone(self):
        self.assertEqual(to_utc("9:00", 5.75), ("3:15", 0))

    def test_malformed_time_returns_none(self):
        self.assertIsNone(to_utc("All Day", 0))
        self.assertIsNone(to_utc("", 3))


if __name__ == '__main__':
    unittest.main(verbosity=2)
