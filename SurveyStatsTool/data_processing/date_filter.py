"""
Date-range filtering of normalized responses.

Timestamps are parsed with pandas and compared in UTC. Unparsable bounds are
treated as "no bound"; responses with an unparsable submission time are
dropped whenever any bound is active.
"""

import logging
from typing import Any, Iterable, List, Optional, Union

import pandas as pd

from .models import DateRange, DateRangePreset, NormalizedResponse

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a timestamp into a UTC ``pd.Timestamp``.

    Accepts ISO strings, datetimes, pandas timestamps and epoch milliseconds.
    Naive values are taken as UTC. Returns None when the value is missing or
    cannot be parsed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    try:
        if isinstance(value, bool):
            return None
        elif isinstance(value, (int, float)):
            timestamp = pd.to_datetime(value, unit='ms', utc=True)
        else:
            timestamp = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return None

    if pd.isna(timestamp):
        return None
    if timestamp.tzinfo is None:
        return timestamp.tz_localize('UTC')
    return timestamp.tz_convert('UTC')


def _parse_bound(value: Any, name: str) -> Optional[pd.Timestamp]:
    if value is None:
        return None
    timestamp = parse_timestamp(value)
    if timestamp is None:
        logger.warning(f"Ignoring unparsable '{name}' bound: {value!r}")
    return timestamp


def filter_by_date_range(responses: Iterable[NormalizedResponse],
                         start: Any = None,
                         end: Any = None) -> List[NormalizedResponse]:
    """
    Keep responses submitted within ``[start, end]``.

    Parameters
    ----------
    responses : iterable of NormalizedResponse
        Responses to filter
    start, end : timestamp-like, optional
        Inclusive bounds. None, or a value that cannot be parsed, leaves
        that side of the window open.

    Returns
    -------
    list of NormalizedResponse
        The input elements, in order, that fall inside the window. When both
        bounds are open every response is returned.
    """
    lower = _parse_bound(start, 'from')
    upper = _parse_bound(end, 'to')
    responses = list(responses)

    if lower is None and upper is None:
        return responses

    filtered = []
    for response in responses:
        submitted = parse_timestamp(response.created_at)
        if submitted is None:
            continue
        if lower is not None and submitted < lower:
            continue
        if upper is not None and submitted > upper:
            continue
        filtered.append(response)

    logger.debug(f"Date filter kept {len(filtered)} of {len(responses)} responses")
    return filtered


def filter_by_range(responses: Iterable[NormalizedResponse],
                    date_range: Optional[DateRange]) -> List[NormalizedResponse]:
    """Apply a ``DateRange`` value; None means unfiltered."""
    if date_range is None:
        return list(responses)
    return filter_by_date_range(responses, date_range.start, date_range.end)


def coerce_preset(preset: Union[DateRangePreset, str, None]) -> DateRangePreset:
    """Map a preset code onto ``DateRangePreset``; unknown codes mean all-time."""
    if isinstance(preset, DateRangePreset):
        return preset
    try:
        return DateRangePreset(preset)
    except ValueError:
        logger.warning(f"Unknown date range preset {preset!r}; using all-time")
        return DateRangePreset.ALL_TIME


def resolve_date_range(preset: Union[DateRangePreset, str, None],
                       now: Any = None) -> DateRange:
    """
    Compute the window for a named preset relative to ``now``.

    The 7-day window covers today and the six days before it; the month and
    year windows use calendar offsets.
    """
    preset = coerce_preset(preset)
    if preset is DateRangePreset.ALL_TIME:
        return DateRange()

    end = parse_timestamp(now) if now is not None else None
    if end is None:
        end = pd.Timestamp.now(tz='UTC')

    if preset is DateRangePreset.LAST_7_DAYS:
        start = end - pd.Timedelta(days=6)
    elif preset is DateRangePreset.LAST_MONTH:
        start = end - pd.DateOffset(months=1)
    elif preset is DateRangePreset.LAST_6_MONTHS:
        start = end - pd.DateOffset(months=6)
    else:
        start = end - pd.DateOffset(years=1)

    return DateRange(start=start, end=end)
