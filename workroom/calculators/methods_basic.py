"""
Simple pricing methods: fixed, per-panel, per-length, per-area, per-width, percentage.
"""

from ..errors import ConfigError
from .base import BasePricingStrategy, PricingMethod, RateBasedStrategy


class FixedPricing(BasePricingStrategy):
    """One price for the whole line. Quantity is ignored."""

    method = PricingMethod.FIXED
    REQUIRED_FIELDS = ("fixed_price",)

    def price(self, config, calc_input, yield_result: dict) -> float:
        return float(self.require(config, "fixed_price"))


class PerPanelPricing(RateBasedStrategy):
    """Rate per fabric width (drop) cut."""

    method = PricingMethod.PER_PANEL

    def units(self, calc_input, yield_result: dict) -> float:
        return yield_result["widths_required"]


class PerLengthPricing(RateBasedStrategy):
    """Rate per linear unit of fabric."""

    method = PricingMethod.PER_LENGTH

    def units(self, calc_input, yield_result: dict) -> float:
        return yield_result["linear_meters"]


class PerAreaPricing(RateBasedStrategy):
    """Rate per square unit of rail width x drop, using the raw dimensions."""

    method = PricingMethod.PER_AREA

    def units(self, calc_input, yield_result: dict) -> float:
        m = calc_input.measurement
        return m.rail_width * m.drop * self.quantity(calc_input)


class PerWidthPricing(RateBasedStrategy):
    """Rate per linear unit of rail width. Used for tracks and poles."""

    method = PricingMethod.PER_WIDTH

    def units(self, calc_input, yield_result: dict) -> float:
        m = calc_input.measurement
        return m.rail_width * self.quantity(calc_input)


class PercentagePricing(BasePricingStrategy):
    """A percentage of a caller-supplied base cost (defaults to fabric cost)."""

    method = PricingMethod.PERCENTAGE
    REQUIRED_FIELDS = ("percentage",)

    def price(self, config, calc_input, yield_result: dict) -> float:
        percentage = self.require(config, "percentage")
        if calc_input.base_cost is None:
            raise ConfigError("Pricing method 'percentage' requires a base cost")
        return calc_input.base_cost * percentage / 100
