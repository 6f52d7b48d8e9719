# tests/test_timezone_helper.py
"""Tests for the default clock helpers (core/timezone_helper)."""

from datetime import datetime, timedelta

import pytz

from nearbuy.core import timezone_helper
from nearbuy.core.timezone_helper import TimezoneHelper


def test_clock_is_only_exposed_through_the_helper():
    assert not hasattr(timezone_helper, "now")
    assert TimezoneHelper.now().tzinfo is not None


def test_days_ago_is_timezone_aware():
    cutoff = TimezoneHelper.days_ago(7)

    elapsed = TimezoneHelper.now() - cutoff

    assert cutoff.tzinfo is not None
    assert timedelta(days=7) <= elapsed < timedelta(days=7, minutes=1)


def test_minutes_between_localizes_naive_dates():
    tz = TimezoneHelper.get_timezone()
    start = datetime(2026, 1, 15, 10, 0)
    end = tz.localize(datetime(2026, 1, 15, 11, 30))

    assert TimezoneHelper.minutes_between(start, end) == 90


def test_minutes_between_mixed_zones():
    start = pytz.utc.localize(datetime(2026, 1, 15, 4, 30))
    end = TimezoneHelper.get_timezone().localize(datetime(2026, 1, 15, 10, 30))

    assert TimezoneHelper.minutes_between(start, end) == 30
