"""
Tests for SenML time base helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from senml_model import Record
from senml_numeric import Numeric, Decimal
from senml_time import (
    EPOCH, RELATIVE_TIME_LIMIT,
    int_to_time, float_to_time, float_to_duration,
    numeric_to_time, numeric_to_duration, time_to_numeric,
    parse_time, record_datetime,
)


NOW = datetime(2020, 1, 1, tzinfo=timezone.utc)


class TestConversions:
    """Epoch seconds to datetime and back."""

    def test_int_to_time(self):
        assert int_to_time(0) == EPOCH
        assert int_to_time(86400) == datetime(1970, 1, 2, tzinfo=timezone.utc)

    def test_float_to_time(self):
        assert float_to_time(1.5) == EPOCH + timedelta(seconds=1.5)

    def test_duration(self):
        assert float_to_duration(-2.5) == timedelta(seconds=-2.5)
        assert numeric_to_duration(Numeric.signed(60)) == timedelta(minutes=1)
        assert numeric_to_duration(None) == timedelta(0)

    def test_numeric_to_time(self):
        assert numeric_to_time(None) is None
        assert numeric_to_time(Numeric.signed(10)) == int_to_time(10)
        assert numeric_to_time(Numeric.fixed(Decimal(-1, 15))) == float_to_time(1.5)

    def test_whole_seconds_are_integers(self):
        assert time_to_numeric(int_to_time(1320067464)) == Numeric.signed(1320067464)

    def test_fractional_seconds_are_floats(self):
        assert time_to_numeric(EPOCH + timedelta(seconds=1.5)) == Numeric.floating(1.5)

    def test_naive_is_utc(self):
        assert time_to_numeric(datetime(1970, 1, 1, 0, 0, 10)) == Numeric.signed(10)

    def test_none(self):
        assert time_to_numeric(None) is None


class TestParseTime:
    """Relative vs absolute base times."""

    def test_no_base_is_now(self):
        assert parse_time(None, None, NOW) == NOW
        assert parse_time(Numeric.signed(0), Numeric.signed(5), NOW) == NOW + timedelta(seconds=5)

    def test_absolute_base(self):
        t = parse_time(Numeric.signed(1320067464), Numeric.signed(-5), NOW)
        assert t == int_to_time(1320067459)

    def test_relative_base(self):
        assert parse_time(Numeric.signed(60), None, NOW) == NOW + timedelta(seconds=60)
        assert parse_time(Numeric.floating(-30.0), Numeric.signed(10), NOW) == NOW - timedelta(seconds=20)

    def test_threshold(self):
        limit = Numeric.signed(RELATIVE_TIME_LIMIT)
        assert parse_time(limit, None, NOW) == int_to_time(RELATIVE_TIME_LIMIT)
        below = Numeric.signed(RELATIVE_TIME_LIMIT - 1)
        assert parse_time(below, None, NOW) == NOW + timedelta(seconds=RELATIVE_TIME_LIMIT - 1)

    def test_relative_without_reference(self):
        assert parse_time(Numeric.signed(60), None, None) is None

    def test_value_absolute_without_reference(self):
        assert parse_time(None, Numeric.signed(1320067464)) == int_to_time(1320067464)


class TestRecordDatetime:
    """Absolute time of a record."""

    def test_absolute(self):
        record = Record(name='a', base_time=1320067464, time=-5, value=1.0)
        assert record_datetime(record, clock=lambda: NOW) == float_to_time(1320067459.0)

    def test_relative_to_clock(self):
        record = Record(name='a', time=-30, value=1.0)
        assert record_datetime(record, clock=lambda: NOW) == NOW - timedelta(seconds=30)

    def test_default_clock(self):
        before = datetime.now(timezone.utc)
        t = record_datetime(Record(name='a', value=1.0))
        assert before <= t <= datetime.now(timezone.utc)

    @pytest.mark.parametrize('offset', [0, 1, 3600])
    def test_now_offsets(self, offset):
        record = Record(name='a', time=offset, value=1.0)
        assert record_datetime(record, clock=lambda: NOW) == NOW + timedelta(seconds=offset)
