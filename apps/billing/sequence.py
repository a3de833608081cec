"""
Invoice number generation.

Numbers look like ``INV-20240131-0001``: a prefix, the calendar day in the
shop's display timezone, and a 4-digit counter that restarts every day.
"""

import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.core.exceptions import SequenceExhaustionError

from .models import Invoice, InvoiceSequence

logger = logging.getLogger(__name__)

MAX_SEQUENCE_VALUE = 9999


def get_display_timezone():
    return ZoneInfo(getattr(settings, "BILLING_DISPLAY_TIMEZONE", "Asia/Kolkata"))


def date_key_for(moment: Optional[datetime] = None) -> str:
    """Calendar day of ``moment`` (default: now) in the display timezone, as YYYYMMDD."""
    if moment is None:
        moment = timezone.now()
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment.astimezone(get_display_timezone()).strftime("%Y%m%d")


def format_invoice_number(prefix: str, date_key: str, value: int) -> str:
    return f"{prefix}-{date_key}-{value:04d}"


class SequenceGenerator:
    """
    Hands out day-scoped invoice numbers.

    The counter row is bumped with a single ``UPDATE ... SET last_value =
    last_value + 1`` so concurrent callers serialize on the row and can never
    read the same value. Call ``next`` inside the invoice transaction: the
    number is then consumed only if the invoice commits, and released along
    with everything else if it rolls back.
    """

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    def _sequences(self):
        return InvoiceSequence.objects.using(self.using)

    def _ensure_counter(self, prefix, date_key):
        """Create the day's counter row if it does not exist yet."""
        if self._sequences().filter(prefix=prefix, date_key=date_key).exists():
            return
        try:
            # Savepoint so a lost creation race does not poison the outer transaction
            with transaction.atomic(using=self.using):
                self._sequences().create(prefix=prefix, date_key=date_key, last_value=0)
        except IntegrityError:
            logger.debug(f"Counter {prefix}-{date_key} created concurrently")

    def next(self, prefix: Optional[str] = None, date_key: Optional[str] = None) -> str:
        """
        Allocate the next invoice number for ``prefix`` on ``date_key``.

        Args:
            prefix: Number prefix (default: ``settings.BILLING_INVOICE_PREFIX``)
            date_key: Day as YYYYMMDD (default: today in the display timezone)

        Returns:
            The formatted invoice number

        Raises:
            SequenceExhaustionError: If the day's 4-digit counter is used up
        """
        if prefix is None:
            prefix = getattr(settings, "BILLING_INVOICE_PREFIX", "INV")
        if date_key is None:
            date_key = date_key_for()

        with transaction.atomic(using=self.using):
            self._ensure_counter(prefix, date_key)

            while True:
                bumped = self._sequences().filter(
                    prefix=prefix,
                    date_key=date_key,
                    last_value__lt=MAX_SEQUENCE_VALUE,
                ).update(last_value=F("last_value") + 1)

                if bumped != 1:
                    logger.error(f"Invoice numbers exhausted for {prefix}-{date_key}")
                    raise SequenceExhaustionError(prefix, date_key)

                value = (
                    self._sequences()
                    .filter(prefix=prefix, date_key=date_key)
                    .values_list("last_value", flat=True)
                    .get()
                )
                number = format_invoice_number(prefix, date_key, value)

                # Manually numbered invoices may already hold a counter value
                if not self._number_taken(number):
                    return number
                logger.warning(f"Skipping invoice number {number}: already in use")

    def _number_taken(self, number):
        return Invoice.objects.using(self.using).filter(invoice_number=number).exists()
