"""Timestamp parsing shared by sorting, mapping, and statistics."""

from __future__ import annotations

import re

import pandas as pd
import pytz

from .config import TIMEZONE

# Only strings shaped like an ISO-8601 date are treated as dates; pandas would
# otherwise happily parse bare numbers and words.
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$")


def normalize_timestamp(value, target_tz=None) -> pd.Timestamp | None:
    """Parse ``value`` into a timezone-aware Timestamp in ``target_tz``.

    Naive inputs are assumed to be UTC. Returns None when the value cannot be
    parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str) and not ISO_DATE_PATTERN.match(value.strip()):
        return None
    ts = pd.to_datetime(value.strip() if isinstance(value, str) else value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    try:
        if getattr(ts, "tzinfo", None) is None:
            ts = ts.tz_localize(pytz.UTC)
        return ts.tz_convert(target_tz or pytz.timezone(TIMEZONE))
    except (TypeError, ValueError):
        return None
