# File: src/parkline/domain/billing.py
"""
Billing Policy for the parking engine

Fees are computed at release time from the current rate table:
1. Negative durations are clamped to zero (treated as data-entry noise)
2. Billed hours = ceil(minutes / 60), with a minimum charge of one hour
3. Fee = billed hours x hourly rate of the slot's category

Rates are never locked into a ticket; set_rate affects every later quote.
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional, Union
import logging
import threading

from .exceptions import InvalidRate
from .models import Money, Quote, VehicleType


DEFAULT_RATES: Dict[VehicleType, Decimal] = {
    VehicleType.CAR: Decimal('50.00'),
    VehicleType.BIKE: Decimal('20.00'),
    VehicleType.TRUCK: Decimal('100.00'),
}

MINUTES_PER_HOUR = 60

RateValue = Union[Decimal, int, float, str]


def billed_hours_for(duration_minutes: int) -> int:
    """Round minutes up to whole hours, never less than one"""
    minutes = max(0, int(duration_minutes))
    hours = (minutes + MINUTES_PER_HOUR - 1) // MINUTES_PER_HOUR
    return max(1, hours)


class BillingPolicy:
    """
    Hourly-rate billing per vehicle category
    Owns the rate table; guarded by its own lock so set_rate and quote
    never observe a half-updated table.
    """

    def __init__(
        self,
        rates: Optional[Mapping[VehicleType, RateValue]] = None,
        currency: str = "INR"
    ):
        self.currency = currency
        self._lock = threading.Lock()
        self._rates: Dict[VehicleType, Money] = {
            vt: Money(amount, currency) for vt, amount in DEFAULT_RATES.items()
        }
        self._logger = logging.getLogger(self.__class__.__name__)

        for vehicle_type, rate in (rates or {}).items():
            self.set_rate(vehicle_type, rate)

    def _to_money(self, vehicle_type: VehicleType, rate: RateValue) -> Money:
        if isinstance(rate, bool):
            raise InvalidRate(f"Invalid rate for {vehicle_type}: {rate!r}")
        try:
            amount = rate if isinstance(rate, Decimal) else Decimal(str(rate).strip())
        except (InvalidOperation, ValueError):
            raise InvalidRate(f"Invalid rate for {vehicle_type}: {rate!r}") from None

        if not amount.is_finite():
            raise InvalidRate(f"Rate for {vehicle_type} must be a finite number: {rate!r}")
        if amount < 0:
            raise InvalidRate(f"Rate for {vehicle_type} cannot be negative: {rate}")
        return Money(amount, self.currency)

    def set_rate(self, vehicle_type: VehicleType, rate: RateValue) -> Money:
        """
        Replace the hourly rate of a category
        Raises: InvalidRate if the rate is negative or not a number
        """
        if not isinstance(vehicle_type, VehicleType):
            raise InvalidRate(f"Unknown vehicle category: {vehicle_type!r}")
        money = self._to_money(vehicle_type, rate)
        with self._lock:
            self._rates[vehicle_type] = money
        self._logger.info("Rate for %s set to %s per hour", vehicle_type, money.format())
        return money

    def rate(self, vehicle_type: VehicleType) -> Money:
        with self._lock:
            return self._rates[vehicle_type]

    def rates(self) -> Dict[VehicleType, Money]:
        with self._lock:
            return dict(self._rates)

    def quote(self, vehicle_type: VehicleType, duration_minutes: int) -> Quote:
        """Compute billed hours and fee for a stay of the given length"""
        hours = billed_hours_for(duration_minutes)
        rate = self.rate(vehicle_type)
        return Quote(billed_hours=hours, rate=rate, fee=rate * hours)
