"""Tests for display formatting helpers."""
import os
import re
from datetime import datetime

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")

from app.engines.formatting import (
    format_currency,
    format_percentage,
    format_phone_number,
    format_duration,
    truncate_text,
    generate_proposal_number,
)


class TestCurrency:
    def test_thousands_separator(self):
        assert format_currency(1234.5) == "$1,234.50"

    def test_zero(self):
        assert format_currency(0) == "$0.00"

    def test_negative(self):
        assert format_currency(-5) == "-$5.00"

    def test_other_currency(self):
        assert format_currency(10, "EUR") == "€10.00"

    def test_unknown_currency_code(self):
        assert format_currency(10, "CHF") == "CHF 10.00"


class TestPercentage:
    def test_default_decimals(self):
        assert format_percentage(8.25) == "8.25%"

    def test_custom_decimals(self):
        assert format_percentage(33.333, 1) == "33.3%"


class TestPhone:
    def test_ten_digits(self):
        assert format_phone_number("5551234567") == "(555) 123-4567"

    def test_strips_punctuation(self):
        assert format_phone_number("555.123.4567") == "(555) 123-4567"

    def test_other_lengths_unchanged(self):
        assert format_phone_number("+44 20 7946 0958") == "+44 20 7946 0958"


class TestDuration:
    def test_days(self):
        assert format_duration(1) == "1 day"
        assert format_duration(5) == "5 days"

    def test_weeks(self):
        assert format_duration(14) == "2 weeks"
        assert format_duration(10) == "1 week, 3 days"

    def test_months(self):
        assert format_duration(30) == "1 month"
        assert format_duration(65) == "2 months, 5 days"


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate_text("Lobby", 10) == "Lobby"

    def test_long_text_truncated(self):
        assert truncate_text("Curtain wall replacement", 10) == "Curtain..."


class TestProposalNumber:
    def test_format(self):
        number = generate_proposal_number(datetime(2026, 4, 9))
        assert re.fullmatch(r"PROP-20260409-\d{3}", number)
