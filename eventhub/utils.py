import html
from datetime import datetime
from typing import Any, Optional


def api_output(type_: str, message: Any, **data: Any) -> dict:
    """Build the response envelope used by every ``/api`` endpoint."""
    return {"status": {"type": type_, "message": message}, **data}


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """HTML-escape and trim free text coming from members."""
    if value is None:
        return None
    return html.escape(value, quote=True).strip()


def format_duration(hours: float) -> str:
    """Human readable duration: whole days when divisible by 24, hours otherwise."""
    hours = float(hours)
    if hours.is_integer():
        hours = int(hours)
    days = 0
    if hours and float(hours / 24).is_integer():
        days = int(hours // 24)
    if days:
        return f"{days} {'day' if days == 1 else 'days'}"
    return f"{hours} {'hour' if hours == 1 else 'hours'}"


def format_fee(amount: int, symbol: str = "HKD ") -> str:
    return f"{symbol}{int(amount):,}"


def _ordinal(day: int) -> str:
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_event_time(value: Optional[datetime]) -> Optional[str]:
    # e.g. "Wednesday, January 18th 2017, 3:00:00 pm"
    if value is None:
        return None
    hour = value.hour % 12 or 12
    meridiem = "am" if value.hour < 12 else "pm"
    return (
        f"{value.strftime('%A, %B')} {_ordinal(value.day)} {value.year}, "
        f"{hour}:{value.minute:02d}:{value.second:02d} {meridiem}"
    )


def is_digits(value: str) -> bool:
    return value.isdigit() and value.isascii()
