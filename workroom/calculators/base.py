"""
Abstract base class for all pricing strategies.

Input: PricingConfig (method parameters) + CalculationInput + yield dict
Output: cost as a float, before any hand-finished upcharge
"""

import enum
import logging
from abc import ABC, abstractmethod

from ..errors import ConfigError

logger = logging.getLogger(__name__)


class PricingMethod(str, enum.Enum):
    FIXED = "fixed"
    PER_PANEL = "per-panel"
    PER_LENGTH = "per-length"
    PER_AREA = "per-area"
    PER_WIDTH = "per-width"
    PERCENTAGE = "percentage"
    GRID_LOOKUP = "grid-lookup"
    COMPLEXITY_TIERED = "complexity-tiered"
    HEIGHT_BREAKPOINT = "height-breakpoint"
    INHERIT = "inherit"


class BasePricingStrategy(ABC):
    """All pricing methods inherit from this."""

    method: PricingMethod = None

    # PricingConfig fields that must be set for this method
    REQUIRED_FIELDS: tuple = ()

    @abstractmethod
    def price(self, config, calc_input, yield_result: dict) -> float:
        """
        Takes the method parameters, the merged input and the fabric yield.
        Returns the cost for this method.
        """
        pass

    # --- Helper methods for all strategies ---

    def missing_fields(self, config, manufacturing_type: str = "machine") -> list:
        """Names of required PricingConfig fields that are absent."""
        missing = []
        for field in self.REQUIRED_FIELDS:
            value = getattr(config, field, None)
            if value is None or value == []:
                missing.append(field)
        return missing

    def require(self, config, field: str):
        """Return a config value or raise ConfigError naming the method and field."""
        value = getattr(config, field, None)
        if value is None or value == []:
            raise ConfigError(
                f"Pricing method '{self.method.value}' requires '{field}'"
            )
        return value

    def is_hand_finished(self, calc_input) -> bool:
        return str(calc_input.manufacturing_type or "machine").lower() == "hand"

    def quantity(self, calc_input) -> int:
        return max(1, int(calc_input.measurement.quantity or 1))


class RateBasedStrategy(BasePricingStrategy):
    """
    Strategies that multiply a quantity by a per-unit rate.
    The rate is split by manufacturing type: machine_price / hand_price.
    Hand-made items without a hand rate use the machine rate.
    """

    def missing_fields(self, config, manufacturing_type: str = "machine") -> list:
        if self.rate_for(config, manufacturing_type) is None:
            return ["machine_price"]
        return []

    def rate_for(self, config, manufacturing_type: str):
        if str(manufacturing_type or "machine").lower() == "hand" and config.hand_price is not None:
            return config.hand_price
        return config.machine_price

    def unit_rate(self, config, calc_input) -> float:
        rate = self.rate_for(config, calc_input.manufacturing_type)
        if rate is None:
            raise ConfigError(
                f"Pricing method '{self.method.value}' requires 'machine_price'"
            )
        return float(rate)

    def price(self, config, calc_input, yield_result: dict) -> float:
        units = self.units(calc_input, yield_result)
        rate = self.unit_rate(config, calc_input)
        logger.debug("%s: %.4f units x %.2f", self.method.value, units, rate)
        return units * rate

    @abstractmethod
    def units(self, calc_input, yield_result: dict) -> float:
        """How many billable units the rate applies to."""
        pass
