# File: src/lotkeeper/config.py
"""
Application configuration

Values are read from LOTKEEPER_* environment variables once at import time,
falling back to the defaults below.
"""

import os
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from . import __version__
from .domain.models import VehicleClass
from .domain.strategies import DEFAULT_HOURLY_RATES


def _env_rate(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} cannot be negative, got {raw!r}")
    return value


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings"""
    APP_NAME: str = "Parking Lot Management"
    VERSION: str = __version__

    RATE_CAR: Decimal = _env_rate("LOTKEEPER_RATE_CAR", DEFAULT_HOURLY_RATES[VehicleClass.CAR])
    RATE_BIKE: Decimal = _env_rate("LOTKEEPER_RATE_BIKE", DEFAULT_HOURLY_RATES[VehicleClass.BIKE])
    RATE_TRUCK: Decimal = _env_rate("LOTKEEPER_RATE_TRUCK", DEFAULT_HOURLY_RATES[VehicleClass.TRUCK])
    CURRENCY: str = os.getenv("LOTKEEPER_CURRENCY", "Rs")

    LOG_LEVEL: str = os.getenv("LOTKEEPER_LOG_LEVEL", "WARNING").upper()
    LOG_DIR: Optional[str] = os.getenv("LOTKEEPER_LOG_DIR") or None
    LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    VERIFY_INVARIANTS: bool = _env_flag("LOTKEEPER_VERIFY_INVARIANTS")

    @classmethod
    def default_rates(cls) -> Dict[VehicleClass, Decimal]:
        """Hourly rate table used to seed the billing policy"""
        return {
            VehicleClass.CAR: cls.RATE_CAR,
            VehicleClass.BIKE: cls.RATE_BIKE,
            VehicleClass.TRUCK: cls.RATE_TRUCK,
        }
