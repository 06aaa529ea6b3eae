"""Pure tally domain logic - no I/O dependencies."""

import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from tally.errors import CorruptStateError, ValidationError

Count = int | float

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DayRecord:
    """One row of the tally history."""

    date: str
    count: Count


@dataclass(frozen=True)
class TallyStats:
    """Values derived from the mapping, never stored."""

    today_count: Count
    average: float


def today_key(tz: str = "UTC", now: datetime | None = None) -> str:
    """Canonical YYYY-MM-DD key for the current day in the given timezone."""
    zone = ZoneInfo(tz)
    if now is None:
        current = datetime.now(zone)
    elif now.tzinfo is None:
        current = now
    else:
        current = now.astimezone(zone)
    return current.date().isoformat()


def compute_average(counts: Mapping[str, Count]) -> float:
    """
    Arithmetic mean of all counts, rounded to 2 decimals.

    Halves round away from zero (0.125 -> 0.13), like toFixed(2) does.
    Empty mapping averages to 0. Pure function - no I/O.
    """
    if not counts:
        return 0.0
    values = list(counts.values())
    mean = sum(values) / len(values)
    return float(Decimal(mean).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def compute_stats(counts: Mapping[str, Count], today: str) -> TallyStats:
    """Derive today's count and the average from a mapping."""
    return TallyStats(
        today_count=counts.get(today, 0),
        average=compute_average(counts),
    )


def format_average(average: float) -> str:
    """Render an average the way it is displayed: always two decimals."""
    return f"{average:.2f}"


def parse_count(raw: object) -> Count:
    """
    Coerce free-text (or numeric) input into a count.

    Blank text counts as 0, surrounding whitespace is ignored, negative and
    fractional values are allowed. Integral values come back as int.
    """
    if isinstance(raw, bool):
        raise ValidationError(f"Count must be a number, got {raw!r}")

    if isinstance(raw, (int, float)):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return 0
        # float() accepts digit separators, free-text numbers do not
        if "_" in text:
            raise ValidationError(f"Count must be a number, got {raw!r}")
        try:
            value = float(text)
        except ValueError:
            raise ValidationError(f"Count must be a number, got {raw!r}") from None
    else:
        raise ValidationError(f"Count must be a number, got {raw!r}")

    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"Count must be a finite number, got {raw!r}")
        if value.is_integer():
            return int(value)
    return value


def parse_date_key(raw: object) -> str:
    """Validate a canonical YYYY-MM-DD date key."""
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Date is required")

    text = raw.strip()
    if not DATE_KEY_RE.match(text):
        raise ValidationError(f"Date must be YYYY-MM-DD, got {raw!r}")
    try:
        date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Not a calendar date: {raw!r}") from None
    return text


def validate_entry(raw_date: object, raw_count: object) -> tuple[str, Count]:
    """Validate a manual add/edit entry. Raises ValidationError."""
    return parse_date_key(raw_date), parse_count(raw_count)


def sort_history(counts: Mapping[str, Count]) -> list[DayRecord]:
    """History rows, most recent date first."""
    return [
        DayRecord(date=day, count=count)
        for day, count in sorted(counts.items(), key=lambda item: item[0], reverse=True)
    ]


def encode_counts(counts: Mapping[str, Count]) -> str:
    """Serialize the whole mapping as JSON text."""
    return json.dumps(dict(counts), sort_keys=True, allow_nan=False)


def decode_counts(text: str) -> dict[str, Count]:
    """
    Parse a persisted snapshot back into a mapping.

    The snapshot must be a JSON object of finite numbers; anything else
    raises CorruptStateError.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise CorruptStateError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise CorruptStateError(
            f"Snapshot must be an object of date -> count, got {type(data).__name__}"
        )

    counts: dict[str, Count] = {}
    for day, count in data.items():
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            raise CorruptStateError(f"Count for {day!r} is not a number: {count!r}")
        if isinstance(count, float) and not math.isfinite(count):
            raise CorruptStateError(f"Count for {day!r} is not finite: {count!r}")
        counts[day] = count
    return counts
