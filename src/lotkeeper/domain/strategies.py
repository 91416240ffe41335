# File: src/lotkeeper/domain/strategies.py
"""
Pricing Strategies for the Slot Allocation Engine

Billing rule: elapsed minutes are rounded up to whole hours with a minimum
of one billed hour, then multiplied by the hourly rate of the vehicle class.

    0 minutes  -> 1 hour
    60 minutes -> 1 hour
    61 minutes -> 2 hours

The rounding is a business rule, not an approximation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Mapping, Optional
import logging

from .models import VehicleClass


MINUTES_PER_HOUR = 60
MINIMUM_BILLED_HOURS = 1

DEFAULT_HOURLY_RATES: Dict[VehicleClass, Decimal] = {
    VehicleClass.CAR: Decimal('50.00'),
    VehicleClass.BIKE: Decimal('20.00'),
    VehicleClass.TRUCK: Decimal('100.00'),
}


# ============================================================================
# STRATEGY INTERFACE
# ============================================================================

class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for fee calculation
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def billed_hours(self, elapsed_minutes: int) -> int:
        """Number of hours charged for the elapsed time"""
        pass

    @abstractmethod
    def fee(self, vehicle_class: VehicleClass, elapsed_minutes: int) -> Decimal:
        """Amount charged to a vehicle of the class for the elapsed time"""
        pass

    def get_strategy_name(self) -> str:
        """Get human-readable strategy name"""
        return self.__class__.__name__.replace("Policy", "").replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Pricing"


# ============================================================================
# HOURLY BILLING POLICY
# ============================================================================

class BillingPolicy(PricingStrategy):
    """
    Per-class hourly rate table with ceiling-hour billing

    Rates are not validated here; negative input is rejected at the
    application boundary.
    """

    def __init__(self, rates: Optional[Mapping[VehicleClass, Decimal]] = None):
        super().__init__()
        self._rates: Dict[VehicleClass, Decimal] = dict(DEFAULT_HOURLY_RATES)
        if rates:
            for vehicle_class, value in rates.items():
                self._rates[vehicle_class] = Decimal(value)

    def rate(self, vehicle_class: VehicleClass) -> Decimal:
        return self._rates[vehicle_class]

    def set_rate(self, vehicle_class: VehicleClass, value: Decimal) -> None:
        self._rates[vehicle_class] = Decimal(value)
        self.logger.info(f"Rate for {vehicle_class} set to {self._rates[vehicle_class]}/hr")

    def rates(self) -> Dict[VehicleClass, Decimal]:
        """Copy of the rate table in class order"""
        return {vc: self._rates[vc] for vc in VehicleClass.ordered()}

    def billed_hours(self, elapsed_minutes: int) -> int:
        minutes = max(0, int(elapsed_minutes))
        hours = -(-minutes // MINUTES_PER_HOUR)
        return max(MINIMUM_BILLED_HOURS, hours)

    def fee(self, vehicle_class: VehicleClass, elapsed_minutes: int) -> Decimal:
        return self.billed_hours(elapsed_minutes) * self.rate(vehicle_class)
