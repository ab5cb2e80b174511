# File: src/parkline/infrastructure/config.py
"""
Configuration for the parking application

Settings come from three layers, later ones winning:
1. Built-in defaults (empty lot, default hourly rates)
2. An optional YAML file
3. Command-line overrides applied by the entry point

Example file:

    slots:
      car: 10
      bike: 5
      truck: 2
    rates:
      car: 50
      bike: 20
      truck: 100
    currency: INR
    allow_duplicate_waitlist: false
    logging:
      level: INFO
      file: logs/parkline.log
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import logging

import yaml

from ..domain.billing import DEFAULT_RATES
from ..domain.models import VehicleType


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be read or is malformed"""
    pass


@dataclass(frozen=True)
class ParkingSettings:
    """Application settings"""
    slots: Dict[VehicleType, int] = field(default_factory=lambda: {vt: 0 for vt in VehicleType})
    rates: Dict[VehicleType, Decimal] = field(default_factory=lambda: dict(DEFAULT_RATES))
    currency: str = "INR"
    allow_duplicate_waitlist: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def with_overrides(self, **overrides: Any) -> 'ParkingSettings':
        """
        Return a copy with non-None overrides applied
        ``slots`` and ``rates`` overrides are merged per category.
        """
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "slots":
                changes["slots"] = {**self.slots, **_parse_slots(value)}
            elif key == "rates":
                changes["rates"] = {**self.rates, **_parse_rates(value)}
            elif key == "log_level":
                changes["log_level"] = _parse_log_level(value)
            else:
                changes[key] = value
        return replace(self, **changes)


def _category(key: Any) -> VehicleType:
    if isinstance(key, VehicleType):
        return key
    try:
        return VehicleType.parse(str(key))
    except ValueError as e:
        raise ConfigurationError(str(e)) from None


def _parse_slots(raw: Mapping[Any, Any]) -> Dict[VehicleType, int]:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"'slots' must be a mapping, got {type(raw).__name__}")
    slots = {}
    for key, value in raw.items():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationError(f"Slot count for '{key}' must be a non-negative integer: {value!r}")
        slots[_category(key)] = value
    return slots


def _parse_rates(raw: Mapping[Any, Any]) -> Dict[VehicleType, Decimal]:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"'rates' must be a mapping, got {type(raw).__name__}")
    rates = {}
    for key, value in raw.items():
        if value is None:
            continue
        try:
            rate = Decimal(str(value))
        except InvalidOperation:
            raise ConfigurationError(f"Rate for '{key}' is not a number: {value!r}") from None
        if not rate.is_finite() or rate < 0:
            raise ConfigurationError(f"Rate for '{key}' must be a non-negative number: {value!r}")
        rates[_category(key)] = rate
    return rates


def _parse_log_level(value: Any) -> str:
    level = str(value).upper()
    if level not in LOG_LEVELS:
        raise ConfigurationError(f"Invalid log level: {value!r} (expected one of {', '.join(LOG_LEVELS)})")
    return level


def settings_from_dict(data: Mapping[str, Any]) -> ParkingSettings:
    """Build settings from a parsed YAML document"""
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration root must be a mapping")

    known = {"slots", "rates", "currency", "allow_duplicate_waitlist", "logging"}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    settings = ParkingSettings()
    overrides: Dict[str, Any] = {
        "slots": data.get("slots"),
        "rates": data.get("rates"),
    }

    currency = data.get("currency")
    if currency is not None:
        if not isinstance(currency, str) or len(currency) != 3:
            raise ConfigurationError(f"Currency must be a 3-letter code: {currency!r}")
        overrides["currency"] = currency.upper()

    duplicates = data.get("allow_duplicate_waitlist")
    if duplicates is not None:
        if not isinstance(duplicates, bool):
            raise ConfigurationError("'allow_duplicate_waitlist' must be true or false")
        overrides["allow_duplicate_waitlist"] = duplicates

    log_section = data.get("logging") or {}
    if not isinstance(log_section, Mapping):
        raise ConfigurationError("'logging' must be a mapping")
    overrides["log_level"] = log_section.get("level")
    overrides["log_file"] = log_section.get("file")

    return settings.with_overrides(**overrides)


def load_settings(path: Optional[Union[str, Path]] = None) -> ParkingSettings:
    """
    Load settings from a YAML file, or return defaults when no path is given
    Raises: ConfigurationError for unreadable or malformed files
    """
    if path is None:
        return ParkingSettings()

    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    settings = settings_from_dict(data or {})
    logging.getLogger(__name__).debug(f"Loaded configuration from {path}")
    return settings
