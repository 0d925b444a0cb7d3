from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Tuple

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..cache import cached_lookup, invalidate_rate_cache
from ..conf import engine_setting
from ..dataclasses import RateSnapshot, RateValidationResult
from ..exceptions import InvalidRateValue, NoRateAvailable
from ..models import ExchangeRate
from .utils import ONE, ZERO, d

logger = logging.getLogger(__name__)

MAX_DECIMAL_PLACES = 6


class ExchangeRateEngine:
    """
    Effective-dated currency conversion.

    A row applies on `on` when it is active, effective on or before `on`, and not
    expired before `on`; the most recently effective applicable row wins.
    """

    def __init__(self, base_currency: Optional[str] = None):
        self.base_currency = (base_currency or engine_setting("BASE_CURRENCY")).upper()

    def _fetch_row(self, from_ccy: str, to_ccy: str, on: date) -> Optional[Tuple[RateSnapshot, Optional[Decimal]]]:
        """Applicable row as (snapshot, stored inverse_rate), or None."""
        def query():
            row = (
                ExchangeRate.objects
                .filter(
                    from_currency=from_ccy,
                    to_currency=to_ccy,
                    status="active",
                    effective_date__lte=on,
                )
                .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=on))
                .order_by("-effective_date")
                .first()
            )
            if row is None:
                return None
            return RateSnapshot(
                from_currency=from_ccy,
                to_currency=to_ccy,
                rate=d(row.rate),
                effective_date=row.effective_date,
                rate_id=row.id,
            ), (d(row.inverse_rate) if row.inverse_rate is not None else None)

        return cached_lookup("fx", (from_ccy, to_ccy, on.isoformat()), query)

    def lookup_rate(self, from_ccy: str, to_ccy: str, on: date, allow_inverse: bool = False) -> RateSnapshot:
        from_ccy = from_ccy.upper()
        to_ccy = to_ccy.upper()
        if from_ccy == to_ccy:
            return RateSnapshot(from_currency=from_ccy, to_currency=to_ccy, rate=ONE, effective_date=on)

        found = self._fetch_row(from_ccy, to_ccy, on)
        if found is not None:
            return found[0]

        if allow_inverse:
            reverse = self._fetch_row(to_ccy, from_ccy, on)
            if reverse is not None and reverse[1] is not None:
                snap, inverse_rate = reverse
                logger.debug(f"Using stored inverse of {to_ccy}->{from_ccy} for {from_ccy}->{to_ccy} on {on}")
                return RateSnapshot(
                    from_currency=from_ccy,
                    to_currency=to_ccy,
                    rate=inverse_rate,
                    effective_date=snap.effective_date,
                    rate_id=snap.rate_id,
                    inverted=True,
                )
        raise NoRateAvailable(from_ccy, to_ccy, on)

    def get_rate(self, from_ccy: str, to_ccy: str, on: date, allow_inverse: bool = False) -> Decimal:
        return self.lookup_rate(from_ccy, to_ccy, on, allow_inverse=allow_inverse).rate

    def convert(self, amount, from_ccy: str, to_ccy: str, on: date, allow_inverse: bool = False) -> Decimal:
        """amount x stored rate for from->to. Never rounds; callers quantize on persist."""
        return d(amount) * self.get_rate(from_ccy, to_ccy, on, allow_inverse=allow_inverse)

    # ---- administration -------------------------------------------------------

    def validate_rates(self, rates: Mapping[str, Any], base_currency: Optional[str] = None) -> RateValidationResult:
        """
        Validate a whole batch, collecting every per-currency error instead of
        stopping at the first bad entry.
        """
        base = (base_currency or self.base_currency).upper()
        max_rate = d(engine_setting("MAX_EXCHANGE_RATE"))
        errors: List[str] = []

        if not rates:
            return RateValidationResult(valid=False, errors=["At least one exchange rate is required."])

        for raw_code, raw_value in rates.items():
            code = str(raw_code or "").strip().upper()
            if len(code) != 3 or not code.isalpha():
                errors.append(f"Currency code '{raw_code}' must be a 3-letter ISO code.")
            elif code == base:
                errors.append(f"{code}: cannot set a rate for the base currency {base}.")

            try:
                value = d(raw_value)
            except (InvalidOperation, TypeError, ValueError):
                errors.append(f"{code or raw_code}: rate must be a number.")
                continue
            if isinstance(raw_value, bool) or not value.is_finite():
                errors.append(f"{code or raw_code}: rate must be a number.")
                continue
            if value <= ZERO:
                errors.append(f"{code}: rate must be greater than 0.")
            elif value > max_rate:
                errors.append(f"{code}: rate must not exceed {max_rate}.")
            if value.normalize().as_tuple().exponent < -MAX_DECIMAL_PLACES:
                errors.append(f"{code}: rate must have at most {MAX_DECIMAL_PLACES} decimal places.")

        return RateValidationResult(valid=not errors, errors=errors)

    def bulk_update_rates(
        self,
        rates: Mapping[str, Any],
        base_currency: Optional[str] = None,
        effective_date: Optional[date] = None,
        source: str = "manual",
    ) -> List[ExchangeRate]:
        """
        Publish a batch of `<currency> -> base` rates effective from `effective_date`.

        The previous open-ended row for each pair is closed the day before, so lookups
        for earlier pricing dates still find the rate that applied then.
        """
        base = (base_currency or self.base_currency).upper()
        effective_date = effective_date or timezone.localdate()

        result = self.validate_rates(rates, base)
        errors = list(result.errors)
        if effective_date > timezone.localdate():
            errors.append(f"effective_date {effective_date} cannot be in the future.")
        if errors:
            raise InvalidRateValue(errors)

        saved: List[ExchangeRate] = []
        with transaction.atomic():
            for raw_code, raw_value in rates.items():
                code = str(raw_code).strip().upper()
                rate = d(raw_value)
                (ExchangeRate.objects
                 .filter(from_currency=code, to_currency=base, status="active",
                         effective_date__lt=effective_date)
                 .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=effective_date))
                 .update(expiry_date=effective_date - timedelta(days=1)))
                row, _ = ExchangeRate.objects.update_or_create(
                    from_currency=code,
                    to_currency=base,
                    effective_date=effective_date,
                    defaults={
                        "rate": rate,
                        "inverse_rate": (ONE / rate).quantize(Decimal("0.0000000001")),
                        "status": "active",
                        "expiry_date": None,
                        "source": source,
                    },
                )
                saved.append(row)
        invalidate_rate_cache()
        logger.info(f"Published {len(saved)} exchange rates into {base} effective {effective_date} [{source}]")
        return saved

    def rate_history(self, from_ccy: str, to_ccy: str, limit: int = 30):
        return list(
            ExchangeRate.objects
            .filter(from_currency=from_ccy.upper(), to_currency=to_ccy.upper())
            .order_by("-effective_date")[:limit]
        )

    def active_pairs(self) -> List[Tuple[str, str]]:
        return list(
            ExchangeRate.objects
            .filter(status="active")
            .values_list("from_currency", "to_currency")
            .distinct()
            .order_by("from_currency", "to_currency")
        )


def validate_exchange_rate_batch(rates: Mapping[str, Any], base_currency: Optional[str] = None) -> dict:
    """Entry point used by the rate-update endpoint and command: {'valid': bool, 'errors': [...]}."""
    return ExchangeRateEngine(base_currency).validate_rates(rates).as_dict()
