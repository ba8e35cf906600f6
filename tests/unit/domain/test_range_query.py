"""Tests for RangeQuery validation."""

from datetime import datetime, timedelta, timezone

import pytest

from tscache.domain.cache_keys import KeyKind
from tscache.domain.exceptions import InvalidRange
from tscache.domain.range_query import RangeQuery


class TestRangeQueryCreate:

    def test_parses_iso_strings_with_z(self):
        query = RangeQuery.create("AAPL", "1min", "2024-03-01T14:30:00.000Z", "2024-03-01T14:35:00Z")

        assert query.start == datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)
        assert query.end == datetime(2024, 3, 1, 14, 35, tzinfo=timezone.utc)

    def test_normalizes_offsets_to_utc(self):
        query = RangeQuery.create("AAPL", "1min", "2024-03-01T09:30:00-05:00", "2024-03-01T10:00:00-05:00")

        assert query.start == datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)
        assert query.start.utcoffset() == timedelta(0)

    def test_naive_datetimes_are_utc(self):
        query = RangeQuery.create("AAPL", "1min", datetime(2024, 3, 1, 14, 30), datetime(2024, 3, 1, 15))

        assert query.start.tzinfo is not None
        assert query.start.hour == 14

    @pytest.mark.parametrize("missing", ["symbol", "period", "start", "end"])
    def test_missing_field(self, missing):
        params = {
            "symbol": "AAPL",
            "period": "1min",
            "start": "2024-03-01T14:30:00Z",
            "end": "2024-03-01T14:35:00Z",
        }
        params[missing] = None

        with pytest.raises(InvalidRange, match="required"):
            RangeQuery.create(**params)

    def test_start_equal_end_rejected(self):
        with pytest.raises(InvalidRange):
            RangeQuery.create("AAPL", "1min", "2024-03-01T14:30:00Z", "2024-03-01T14:30:00Z")

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidRange):
            RangeQuery.create("AAPL", "1min", "2024-03-01T15:00:00Z", "2024-03-01T14:30:00Z")

    def test_unparseable_timestamp(self):
        with pytest.raises(InvalidRange, match="Invalid timestamp"):
            RangeQuery.create("AAPL", "1min", "yesterday", "2024-03-01T14:30:00Z")

    def test_invalid_range_is_value_error(self):
        with pytest.raises(ValueError):
            RangeQuery.create("AAPL", "1min", "2024-03-01T15:00:00Z", "2024-03-01T14:30:00Z")

    def test_key_is_range_kind(self):
        query = RangeQuery.create("AAPL", "1min", "2024-03-01T14:30:00Z", "2024-03-01T14:35:00Z")

        assert query.key.kind is KeyKind.RANGE
        assert query.key.symbol == "AAPL"
        assert query.key.start == query.start
