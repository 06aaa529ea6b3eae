"""Functional core - pure tally logic with no I/O."""

from .counts import (
    DayRecord,
    TallyStats,
    compute_average,
    compute_stats,
    decode_counts,
    encode_counts,
    format_average,
    parse_count,
    parse_date_key,
    sort_history,
    today_key,
    validate_entry,
)

__all__ = [
    "DayRecord",
    "TallyStats",
    "compute_average",
    "compute_stats",
    "decode_counts",
    "encode_counts",
    "format_average",
    "parse_count",
    "parse_date_key",
    "sort_history",
    "today_key",
    "validate_entry",
]
