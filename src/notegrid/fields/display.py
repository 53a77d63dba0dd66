"""Display formatting for date and time columns.

Formulas that reference a date or time column see the text the grid shows,
so these formatters run before a value reaches the formula evaluator.
Values that cannot be parsed are shown as typed.
"""

import re
from datetime import date, datetime, time
from typing import Any, Literal

DatePreset = Literal["iso", "short", "long"]
TimePreset = Literal["hh_mm", "hh_mm_ss", "h_mm_a", "h_mm_ss_a", "en_h_mm_a", "en_h_mm_ss_a"]

DATE_PRESETS: tuple[DatePreset, ...] = ("iso", "short", "long")
TIME_PRESETS: tuple[TimePreset, ...] = (
    "hh_mm",
    "hh_mm_ss",
    "h_mm_a",
    "h_mm_ss_a",
    "en_h_mm_a",
    "en_h_mm_ss_a",
)

_SIMPLE_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_ISO_DATETIME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})[tT]")

_TIME_INPUT_FORMATS = (
    "%H:%M:%S",  # 14:30:00
    "%H:%M",  # 14:30
    "%I:%M:%S %p",  # 02:30:00 PM
    "%I:%M %p",  # 02:30 PM
    "%I:%M:%S%p",  # 02:30:00PM
    "%I:%M%p",  # 02:30PM
)


def normalize_date_preset(value: str | None) -> DatePreset:
    """Map a configured date preset to a known one, defaulting to iso."""
    trimmed = (value or "").strip().lower()
    return trimmed if trimmed in DATE_PRESETS else "iso"  # type: ignore[return-value]


def normalize_time_preset(value: str | None) -> TimePreset:
    """Map a configured time preset to a known one, defaulting to hh_mm."""
    normalized = re.sub(r"[\s-]+", "_", (value or "").strip().lower())
    return normalized if normalized in TIME_PRESETS else "hh_mm"  # type: ignore[return-value]


def parse_date(value: str) -> date | None:
    """
    Parse user-entered date text.

    Accepts YYYY-M-D with '-', '.' or '/' separators and ISO datetimes.

    Returns:
        Parsed date, or None if the text is not a valid date
    """
    trimmed = value.strip()
    if not trimmed:
        return None

    normalized = re.sub(r"[./]", "-", trimmed)
    match = _SIMPLE_DATE_RE.match(normalized) or _ISO_DATETIME_RE.match(normalized)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(trimmed.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_time(value: str) -> time | None:
    """Parse 24h or 12h clock text; None if it matches no known format."""
    trimmed = value.strip().upper()
    if not trimmed:
        return None
    for fmt in _TIME_INPUT_FORMATS:
        try:
            return datetime.strptime(trimmed, fmt).time()
        except ValueError:
            continue
    return None


def format_date_for_display(value: Any, preset: str | None = "iso") -> str:
    """
    Format a date cell for display.

    Args:
        value: Raw cell value
        preset: One of DATE_PRESETS

    Returns:
        Display text; the trimmed input when it cannot be parsed
    """
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        return ""

    parsed = parse_date(text)
    if parsed is None:
        return text

    preset = normalize_date_preset(preset)
    if preset == "short":
        return f"{parsed.month}/{parsed.day}/{parsed.year % 100:02d}"
    if preset == "long":
        return f"{parsed:%B} {parsed.day}, {parsed.year}"
    return parsed.isoformat()


def format_time_for_display(value: Any, preset: str | None = "hh_mm") -> str:
    """
    Format a time cell for display.

    Args:
        value: Raw cell value
        preset: One of TIME_PRESETS

    Returns:
        Display text; the trimmed input when it cannot be parsed
    """
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        return ""

    parsed = parse_time(text)
    if parsed is None:
        return text

    preset = normalize_time_preset(preset)
    if preset == "hh_mm_ss":
        return parsed.strftime("%H:%M:%S")
    if preset in ("h_mm_a", "en_h_mm_a"):
        return parsed.strftime("%I:%M %p").lstrip("0")
    if preset in ("h_mm_ss_a", "en_h_mm_ss_a"):
        return parsed.strftime("%I:%M:%S %p").lstrip("0")
    return parsed.strftime("%H:%M")
