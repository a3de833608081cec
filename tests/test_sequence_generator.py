"""
Tests for invoice number generation.

Includes a 50-thread test proving concurrent cashiers never share a number.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone as dt_timezone

from django.db import connection

import pytest

from apps.billing.models import InvoiceSequence
from apps.billing.sequence import SequenceGenerator, date_key_for, format_invoice_number
from apps.core.exceptions import SequenceExhaustionError


@pytest.fixture
def generator():
    return SequenceGenerator()


class TestFormatting:
    """Number and date key formatting."""

    def test_format_invoice_number(self):
        assert format_invoice_number("INV", "20240131", 7) == "INV-20240131-0007"

    def test_date_key_uses_display_timezone(self, settings):
        settings.BILLING_DISPLAY_TIMEZONE = "Asia/Kolkata"
        # 20:00 UTC is already the next morning in India
        moment = datetime(2024, 1, 31, 20, 0, tzinfo=dt_timezone.utc)

        assert date_key_for(moment) == "20240201"

    def test_date_key_defaults_to_today(self):
        assert re.fullmatch(r"\d{8}", date_key_for())


@pytest.mark.django_db
class TestSequenceGenerator:
    """Tests for sequential allocation."""

    def test_first_number_of_the_day(self, generator):
        assert generator.next("INV", "20240131") == "INV-20240131-0001"

    def test_numbers_increase(self, generator):
        numbers = [generator.next("INV", "20240131") for _ in range(3)]

        assert numbers == ["INV-20240131-0001", "INV-20240131-0002", "INV-20240131-0003"]

    def test_counter_restarts_each_day(self, generator):
        generator.next("INV", "20240131")
        generator.next("INV", "20240131")

        assert generator.next("INV", "20240201") == "INV-20240201-0001"

    def test_prefixes_are_independent(self, generator):
        generator.next("INV", "20240131")

        assert generator.next("CRN", "20240131") == "CRN-20240131-0001"

    def test_defaults_from_settings(self, generator, settings):
        settings.BILLING_INVOICE_PREFIX = "BK"

        number = generator.next()

        assert re.fullmatch(r"BK-\d{8}-0001", number)

    def test_exhausted_day(self, generator):
        InvoiceSequence.objects.create(prefix="INV", date_key="20240131", last_value=9999)

        with pytest.raises(SequenceExhaustionError):
            generator.next("INV", "20240131")

        assert InvoiceSequence.objects.get(prefix="INV", date_key="20240131").last_value == 9999

    def test_last_number_of_the_day(self, generator):
        InvoiceSequence.objects.create(prefix="INV", date_key="20240131", last_value=9998)

        assert generator.next("INV", "20240131") == "INV-20240131-9999"


@pytest.mark.django_db(transaction=True)
class TestConcurrentAllocation:
    """Concurrent callers each get their own connection."""

    def test_fifty_concurrent_callers_get_distinct_increasing_numbers(self):
        def allocate(_):
            try:
                return SequenceGenerator().next("INV", "20240131")
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=50) as pool:
            numbers = list(pool.map(allocate, range(50)))

        assert len(set(numbers)) == 50
        counters = sorted(int(number.rsplit("-", 1)[1]) for number in numbers)
        assert counters == list(range(1, 51))
        assert InvoiceSequence.objects.get(prefix="INV", date_key="20240131").last_value == 50
