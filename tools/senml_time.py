#!/usr/bin/env python3
"""
senml_time.py - SenML time base helpers

RFC 8428 times are seconds since the Unix epoch, except that values below
2**28 are offsets from "now". These helpers turn Numeric times into
timezone-aware datetimes (microsecond resolution) and back.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from senml_model import Record
from senml_numeric import Numeric


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Times at or above this are absolute, below it relative to now
RELATIVE_TIME_LIMIT = 1 << 28


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def int_to_time(t: int) -> datetime:
    return EPOCH + timedelta(seconds=t)


def float_to_time(t: float) -> datetime:
    return EPOCH + timedelta(seconds=t)


def float_to_duration(d: float) -> timedelta:
    return timedelta(seconds=d)


def numeric_to_time(v: Optional[Numeric]) -> Optional[datetime]:
    if v is None:
        return None
    if v.is_integer:
        return int_to_time(v.to_int64())
    return float_to_time(v.to_float64())


def numeric_to_duration(v: Optional[Numeric]) -> timedelta:
    if v is None:
        return timedelta(0)
    if v.is_integer:
        return timedelta(seconds=v.to_int64())
    return float_to_duration(v.to_float64())


def time_to_numeric(t: Optional[datetime]) -> Optional[Numeric]:
    """Whole seconds become a signed integer, anything finer a float."""
    if t is None:
        return None
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    delta = t - EPOCH
    if delta.microseconds == 0:
        return Numeric.signed(delta.days * 86400 + delta.seconds)
    return Numeric.floating(delta / timedelta(seconds=1))


def parse_time(base: Optional[Numeric], val: Optional[Numeric],
               now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Resolve a base time and an offset against a reference time.

    An absent or zero base means "now"; a base of 2**28 or more is an
    absolute epoch time; anything else is an offset from now. With no
    reference time (now=None) and no base, val is read as absolute.
    """
    if base is None or base.to_float64() == 0:
        t = now
    elif base.to_float64() >= RELATIVE_TIME_LIMIT:
        t = numeric_to_time(base)
    elif now is not None:
        t = now + numeric_to_duration(base)
    else:
        t = None

    if val is None:
        return t
    if t is None:
        return numeric_to_time(val)
    return t + numeric_to_duration(val)


def record_datetime(record: Record,
                    clock: Callable[[], datetime] = utc_now) -> datetime:
    """Absolute time of a record, resolving relative times against clock()."""
    total = Numeric.floating(record.base_time + record.time)
    return parse_time(total, None, clock())
