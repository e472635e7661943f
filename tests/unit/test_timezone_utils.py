"""Unit tests for trmnl_agenda.core.timezone_utils."""

from __future__ import annotations

import datetime

import pytest

from trmnl_agenda.core.timezone_utils import (
    TEST_TIME_ENV,
    get_zone,
    local_day_bounds,
    now_utc,
    to_local,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestNow:
    def test_now_utc_when_no_override_then_aware_utc(self) -> None:
        now = now_utc()

        assert now.tzinfo is not None
        assert now.utcoffset() == datetime.timedelta(0)

    def test_now_utc_when_override_with_offset_then_converted(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(TEST_TIME_ENV, "2025-03-14T09:00:00+01:00")

        assert now_utc() == datetime.datetime(2025, 3, 14, 8, 0, tzinfo=datetime.timezone.utc)

    def test_now_utc_when_naive_override_then_taken_as_utc(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(TEST_TIME_ENV, "2025-03-14T08:00:00")

        assert now_utc() == datetime.datetime(2025, 3, 14, 8, 0, tzinfo=datetime.timezone.utc)

    def test_now_utc_when_override_invalid_then_real_clock(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(TEST_TIME_ENV, "yesterday-ish")

        assert now_utc().year >= 2025


class TestToLocal:
    def test_to_local_when_date_then_all_day_midnight(self) -> None:
        local, all_day = to_local(datetime.date(2025, 3, 14))

        assert all_day is True
        assert local == datetime.datetime(2025, 3, 14, tzinfo=get_zone())

    def test_to_local_when_naive_then_wall_clock_kept(self) -> None:
        local, all_day = to_local(datetime.datetime(2025, 3, 14, 7, 30))

        assert all_day is False
        assert (local.hour, local.minute) == (7, 30)
        assert local.utcoffset() == datetime.timedelta(hours=1)

    def test_to_local_when_aware_then_converted(self) -> None:
        value = datetime.datetime(2025, 3, 14, 13, 0, tzinfo=datetime.timezone.utc)

        local, _ = to_local(value)

        assert local.hour == 14


class TestLocalDayBounds:
    def test_local_day_bounds_when_regular_day_then_24_hours(self) -> None:
        start, end = local_day_bounds(datetime.date(2025, 3, 14))

        assert end - start == datetime.timedelta(days=1)
        assert start.astimezone(datetime.timezone.utc).hour == 23

    def test_local_day_bounds_when_dst_starts_then_23_hours(self) -> None:
        start, end = local_day_bounds(datetime.date(2025, 3, 30))

        elapsed = end.astimezone(datetime.timezone.utc) - start.astimezone(datetime.timezone.utc)
        assert elapsed == datetime.timedelta(hours=23)
