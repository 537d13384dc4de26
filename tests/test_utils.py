"""Tests for CLI formatting helpers."""

from podcast_speakers.utils import format_clock, format_score


class TestFormatClock:

    def test_under_a_minute(self):
        assert format_clock(7.9) == "0:07"

    def test_minutes(self):
        assert format_clock(95) == "1:35"

    def test_hours(self):
        assert format_clock(3725) == "1:02:05"


class TestFormatScore:

    def test_value(self):
        assert format_score(0.9) == "0.90"

    def test_missing(self):
        assert format_score(None) == "-"
