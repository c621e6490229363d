"""
Band-selected pricing: complexity tiers and drop-height bands.
"""

from ..errors import ConfigError, GridLookupError
from .base import BasePricingStrategy, PricingMethod


class ComplexityTieredPricing(BasePricingStrategy):
    """Price from the tier matching (fabric_type, complexity)."""

    method = PricingMethod.COMPLEXITY_TIERED
    REQUIRED_FIELDS = ("complexity_tiers",)

    def price(self, config, calc_input, yield_result: dict) -> float:
        tiers = self.require(config, "complexity_tiers")
        fabric_type = calc_input.fabric_type
        complexity = calc_input.complexity
        if not fabric_type or not complexity:
            raise ConfigError(
                "Pricing method 'complexity-tiered' requires a fabric type and a complexity"
            )

        tier = self.find_tier(tiers, fabric_type, complexity)
        if tier is None:
            raise ConfigError(
                f"No complexity tier for fabric type '{fabric_type}' / complexity '{complexity}'"
            )

        unit_price = tier.machine_price
        if self.is_hand_finished(calc_input) and tier.hand_price is not None:
            unit_price = tier.hand_price
        return unit_price * self.quantity(calc_input)

    @staticmethod
    def find_tier(tiers, fabric_type: str, complexity: str):
        fabric_type = fabric_type.strip().lower()
        complexity = complexity.strip().lower()
        for tier in tiers:
            if tier.fabric_type.strip().lower() == fabric_type and tier.complexity.strip().lower() == complexity:
                return tier
        return None


class HeightBreakpointPricing(BasePricingStrategy):
    """
    Price from the drop-height band containing the drop.
    Above the breakpoint height the band price is multiplied.
    """

    method = PricingMethod.HEIGHT_BREAKPOINT
    REQUIRED_FIELDS = ("height_bands",)

    def missing_fields(self, config, manufacturing_type: str = "machine") -> list:
        missing = super().missing_fields(config, manufacturing_type)
        if config.height_breakpoint is not None and config.price_above_breakpoint_multiplier is None:
            missing.append("price_above_breakpoint_multiplier")
        return missing

    def price(self, config, calc_input, yield_result: dict) -> float:
        bands = self.require(config, "height_bands")
        drop = calc_input.measurement.drop

        band = self.find_band(bands, drop)
        if band is None:
            raise GridLookupError(f"No height band covers drop {drop:g}")

        unit_price = band.price
        if self.is_hand_finished(calc_input) and band.hand_price is not None:
            unit_price = band.hand_price

        if config.height_breakpoint is not None and drop > config.height_breakpoint:
            multiplier = self.require(config, "price_above_breakpoint_multiplier")
            unit_price *= multiplier

        return unit_price * self.quantity(calc_input)

    @staticmethod
    def find_band(bands, drop: float):
        # Bands are checked in order; the first one containing the drop wins
        for band in bands:
            if band.min_height <= drop <= band.max_height:
                return band
        return None
