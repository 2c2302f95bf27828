"""
Time sharding: ``<base>_<formatted instant>`` at year/month/day/hour/minute granularity.

Routing values arrive in many encodings (datetimes, dates, epoch seconds or
milliseconds, date and datetime strings). ``to_datetime`` normalizes them to
a timezone-aware UTC instant; naive values are taken as UTC.

With ``TimeFieldType.AUTO`` integers above ``epoch_millis_threshold``
(default 1e10) are read as epoch milliseconds, otherwise as seconds. A value
that fails every parse attempt becomes "now" and a warning is logged, unless
the strategy is ``strict`` in which case ``TimeConversionError`` is raised.
Declaring an explicit field type bypasses the heuristic.
"""

from __future__ import annotations

import enum
import math
import numbers
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from tableshard.config import get_settings
from tableshard.domain.fields import extract_value
from tableshard.errors import TimeConversionError
from tableshard.strategies.abstract import format_shard_name
from tableshard.utils.logging import get_logger

log = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TimeUnit(str, enum.Enum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    HOUR = "hour"
    MINUTE = "minute"


class TimeFieldType(str, enum.Enum):
    AUTO = "auto"
    INSTANT = "instant"
    TIMESTAMP = "timestamp"
    TIMESTAMP_MS = "timestamp_ms"
    DATE = "date"
    DATETIME = "datetime"


UNIT_FORMATS = {
    TimeUnit.YEAR: "%Y",
    TimeUnit.MONTH: "%Y%m",
    TimeUnit.DAY: "%Y%m%d",
    TimeUnit.HOUR: "%Y%m%d%H",
    TimeUnit.MINUTE: "%Y%m%d%H%M",
}

# Tried in order for AUTO strings, before the epoch and ISO-8601 fallbacks.
STRING_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S.%f%z",
)

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def from_epoch(number: float, millis: bool) -> datetime:
    if millis:
        return _EPOCH + timedelta(milliseconds=number)
    return _EPOCH + timedelta(seconds=number)


def _integer_text(text: str) -> Optional[int]:
    stripped = text.strip()
    if stripped[:1] in "+-":
        digits = stripped[1:]
    else:
        digits = stripped
    if digits.isdigit():
        return int(stripped)
    return None


def _parse_with(text: str, formats: Tuple[str, ...]) -> Optional[datetime]:
    for fmt in formats:
        try:
            return as_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def _parse_string(text: str, threshold: int) -> Optional[datetime]:
    text = text.strip()
    if not text:
        return None
    parsed = _parse_with(text, STRING_FORMATS)
    if parsed is not None:
        return parsed
    number = _integer_text(text)
    if number is not None:
        return _from_epoch_heuristic(number, threshold)
    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def _from_epoch_heuristic(number: float, threshold: int) -> Optional[datetime]:
    try:
        return from_epoch(number, millis=abs(number) > threshold)
    except OverflowError:
        return None


def _epoch_number(value: Any) -> Optional[float]:
    """Finite numeric value usable as an epoch offset, else None. Decimals (NUMERIC columns) count."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        number = float(value)
        if math.isfinite(number):
            return number
    return None


def _convert(value: Any, field_type: TimeFieldType, threshold: int) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if field_type is TimeFieldType.AUTO:
        number = _epoch_number(value)
        if number is not None:
            return _from_epoch_heuristic(number, threshold)
        if isinstance(value, str):
            return _parse_string(value, threshold)
        return None

    if field_type in (TimeFieldType.TIMESTAMP, TimeFieldType.TIMESTAMP_MS):
        millis = field_type is TimeFieldType.TIMESTAMP_MS
        if isinstance(value, str):
            number = _integer_text(value)
            if number is None:
                parsed = _parse_with(value.strip(), STRING_FORMATS)
                return parsed
            value = number
        epoch = _epoch_number(value)
        if epoch is not None:
            try:
                return from_epoch(epoch, millis=millis)
            except OverflowError:
                return None
        return None

    if field_type is TimeFieldType.DATE and isinstance(value, str):
        return _parse_with(value.strip(), (DATE_FORMAT,))
    if field_type is TimeFieldType.DATETIME and isinstance(value, str):
        return _parse_with(value.strip(), (DATETIME_FORMAT,))
    return None


def to_datetime(
    value: Any,
    field_type: TimeFieldType = TimeFieldType.AUTO,
    *,
    millis_threshold: Optional[int] = None,
    strict: bool = False,
) -> datetime:
    """
    Normalize a time value of any supported encoding to an aware UTC datetime.

    Unparsable values default to the current instant (logged at WARNING), or
    raise ``TimeConversionError`` when ``strict`` is set.
    """
    field_type = TimeFieldType(field_type)
    threshold = millis_threshold if millis_threshold is not None else get_settings().epoch_millis_threshold
    converted = None if value is None else _convert(value, field_type, threshold)
    if converted is not None:
        return converted
    if strict:
        raise TimeConversionError(f"cannot convert {value!r} to a time instant ({field_type.value})")
    log.warning(
        "Time value could not be parsed; defaulting to now",
        extra={"value": repr(value), "field_type": field_type.value},
    )
    return utc_now()


def shift_years(moment: datetime, years: int) -> datetime:
    """Calendar shift by whole years; Feb 29 maps to Feb 28 in non-leap years."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def default_window(now: Optional[datetime] = None, years: Optional[int] = None) -> Tuple[datetime, datetime]:
    """Lookback window ``[now - years, now]`` used when callers supply no range."""
    end = as_utc(now) if now is not None else utc_now()
    lookback = years if years is not None else get_settings().default_lookback_years
    return shift_years(end, -lookback), end


def truncate(moment: datetime, unit: TimeUnit) -> datetime:
    """Start of the period containing ``moment``."""
    moment = moment.replace(second=0, microsecond=0)
    if unit is TimeUnit.MINUTE:
        return moment
    moment = moment.replace(minute=0)
    if unit is TimeUnit.HOUR:
        return moment
    moment = moment.replace(hour=0)
    if unit is TimeUnit.DAY:
        return moment
    moment = moment.replace(day=1)
    if unit is TimeUnit.MONTH:
        return moment
    return moment.replace(month=1)


def advance(moment: datetime, unit: TimeUnit) -> Optional[datetime]:
    """Next period start; None once past the representable range."""
    try:
        if unit is TimeUnit.YEAR:
            return moment.replace(year=moment.year + 1)
        if unit is TimeUnit.MONTH:
            if moment.month == 12:
                return moment.replace(year=moment.year + 1, month=1)
            return moment.replace(month=moment.month + 1)
        if unit is TimeUnit.DAY:
            return moment + timedelta(days=1)
        if unit is TimeUnit.HOUR:
            return moment + timedelta(hours=1)
        return moment + timedelta(minutes=1)
    except (OverflowError, ValueError):
        return None


class TimeShardingStrategy:
    """
    Time-bucketed sharding.

    ``TimeShardingStrategy("logs", "created_at", TimeUnit.MONTH)`` routes
    2024-03-15 to ``logs_202403``. The shard set is unbounded, so enumeration
    needs a window (``get_all_table_names_in_range``); ``get_all_table_names``
    only returns the base table.
    """

    def __init__(
        self,
        base_table_name: str,
        time_field: str,
        unit: TimeUnit = TimeUnit.MONTH,
        field_type: TimeFieldType = TimeFieldType.AUTO,
        *,
        strict: bool = False,
        millis_threshold: Optional[int] = None,
    ) -> None:
        self.base_table_name = base_table_name
        self.sharding_key = time_field
        self.unit = TimeUnit(unit)
        self.field_type = TimeFieldType(field_type)
        self.strict = strict
        self.millis_threshold = (
            millis_threshold if millis_threshold is not None else get_settings().epoch_millis_threshold
        )
        self.time_format = UNIT_FORMATS[self.unit]

    @property
    def time_field(self) -> str:
        return self.sharding_key

    def to_datetime(self, value: Any) -> datetime:
        return to_datetime(
            value, self.field_type, millis_threshold=self.millis_threshold, strict=self.strict
        )

    def format_table_name(self, base_table_name: str, moment: datetime) -> str:
        return format_shard_name(base_table_name, moment.strftime(self.time_format))

    def get_table_name(self, base_table_name: str, sharding_value: Any) -> str:
        return self.format_table_name(base_table_name, self.to_datetime(sharding_value))

    def get_all_table_names(self, base_table_name: str) -> List[str]:
        return [base_table_name]

    def get_all_table_names_in_range(
        self, base_table_name: str, start: datetime, end: datetime
    ) -> List[str]:
        """
        Unique shard names covering ``[start, end]`` inclusive, in first-seen order.

        Reversed bounds are swapped.
        """
        start, end = as_utc(start), as_utc(end)
        if start > end:
            start, end = end, start
        names: List[str] = []
        current: Optional[datetime] = truncate(start, self.unit)
        while current is not None and current <= end:
            names.append(self.format_table_name(base_table_name, current))
            current = advance(current, self.unit)
        return list(dict.fromkeys(names))

    def parse_time_range(self, start_value: Any, end_value: Any) -> Tuple[datetime, datetime]:
        start, end = self.to_datetime(start_value), self.to_datetime(end_value)
        if start > end:
            return end, start
        return start, end

    def get_all_table_names_in_range_with_values(
        self, base_table_name: str, start_value: Any, end_value: Any
    ) -> List[str]:
        start, end = self.parse_time_range(start_value, end_value)
        return self.get_all_table_names_in_range(base_table_name, start, end)

    def get_sharding_value(self, record: Any) -> datetime:
        return self.to_datetime(extract_value(record, self.sharding_key))

    def get_base_table_name(self) -> str:
        return self.base_table_name

    def __repr__(self) -> str:
        return (
            f"TimeShardingStrategy(base_table_name={self.base_table_name!r}, "
            f"time_field={self.sharding_key!r}, unit={self.unit.value!r})"
        )


__all__ = [
    "DATE_FORMAT",
    "DATETIME_FORMAT",
    "STRING_FORMATS",
    "TimeFieldType",
    "TimeShardingStrategy",
    "TimeUnit",
    "UNIT_FORMATS",
    "advance",
    "as_utc",
    "default_window",
    "shift_years",
    "to_datetime",
    "truncate",
]
