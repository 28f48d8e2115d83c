"""Unit tests for utility functions."""
from datetime import datetime

from eventhub.utils import (
    api_output,
    format_duration,
    format_event_time,
    format_fee,
    is_digits,
    sanitize_text,
)


def test_api_output_envelope():
    assert api_output("success", "ok", id=3) == {
        "status": {"type": "success", "message": "ok"},
        "id": 3,
    }


def test_format_duration_hours():
    assert format_duration(1) == "1 hour"
    assert format_duration(3) == "3 hours"
    assert format_duration(1.5) == "1.5 hours"
    assert format_duration(36) == "36 hours"


def test_format_duration_days():
    """Whole days are used only when the hours divide evenly by 24."""
    assert format_duration(24) == "1 day"
    assert format_duration(48) == "2 days"
    assert format_duration(48.0) == "2 days"


def test_format_fee():
    assert format_fee(1000) == "HKD 1,000"
    assert format_fee(0) == "HKD 0"
    assert format_fee(1234567) == "HKD 1,234,567"


def test_format_event_time():
    value = datetime(2017, 1, 18, 15, 0, 0)
    assert format_event_time(value) == "Wednesday, January 18th 2017, 3:00:00 pm"
    assert format_event_time(datetime(2017, 1, 1, 0, 5, 9)) == "Sunday, January 1st 2017, 12:05:09 am"
    assert format_event_time(datetime(2017, 1, 12, 9, 0, 0)).startswith("Thursday, January 12th")
    assert format_event_time(None) is None


def test_sanitize_text_escapes_and_trims():
    assert sanitize_text("  <b>Tom & Jerry</b> ") == "&lt;b&gt;Tom &amp; Jerry&lt;/b&gt;"
    assert sanitize_text(None) is None


def test_is_digits():
    assert is_digits("12345678")
    assert not is_digits("1234-5678")
    assert not is_digits("")
