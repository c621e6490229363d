"""
Dispatches to the pricing method named in the configuration and returns a cost.

The only multi-step path is `inherit`: the resolver re-dispatches on the
sibling pricing config passed in explicitly with the input. Inheritance is
limited to one indirection; a sibling that also inherits is a ConfigError.
"""

import logging

from ..errors import ConfigError
from ..schemas import PricingConfig
from .base import PricingMethod
from .registry import get_strategy, normalize_method

logger = logging.getLogger(__name__)

MAX_INHERIT_DEPTH = 1


class PricingStrategyResolver:

    def price(self, calc_input, yield_result: dict) -> float:
        """Manufacturing cost: the configured method, plus any hand-finished upcharge."""
        cost = self.price_config(calc_input.pricing, calc_input, yield_result)
        return self.apply_hand_upcharge(cost, calc_input)

    def price_config(self, config, calc_input, yield_result: dict, depth: int = 0) -> float:
        method = normalize_method(config.method)

        if method == PricingMethod.INHERIT:
            if depth >= MAX_INHERIT_DEPTH:
                raise ConfigError(
                    "Pricing inheritance cycle: the inherited pricing also uses 'inherit'"
                )
            if calc_input.sibling_pricing is None:
                raise ConfigError("Pricing method 'inherit' requires a sibling pricing config")
            logger.debug("Inheriting sibling pricing method '%s'", calc_input.sibling_pricing.method)
            return self.price_config(calc_input.sibling_pricing, calc_input, yield_result, depth + 1)

        strategy = get_strategy(method)
        missing = strategy.missing_fields(config, calc_input.manufacturing_type)
        if missing:
            raise ConfigError(
                f"Pricing method '{method.value}' requires: {', '.join(missing)}"
            )
        return strategy.price(config, calc_input, yield_result)

    def apply_hand_upcharge(self, cost: float, calc_input) -> float:
        """Hand-finished items: fixed upcharge first, then the percentage on top."""
        if str(calc_input.manufacturing_type or "machine").lower() != "hand":
            return cost
        cost += calc_input.hand_finished_upcharge_fixed
        cost *= 1 + calc_input.hand_finished_upcharge_percentage / 100
        return cost

    def price_option(self, option, calc_input, yield_result: dict) -> float:
        """Options and hardware are priced by the same strategies, without the hand upcharge."""
        return self.price_config(option_pricing(option), calc_input, yield_result)


def option_pricing(option) -> PricingConfig:
    """The option's own pricing config, or its single price expressed as one."""
    if option.pricing is not None:
        method = normalize_method(option.pricing.method)
        return option.pricing.model_copy(update={"method": method.value})
    method = normalize_method(option.method)
    if method == PricingMethod.FIXED:
        return PricingConfig(method=method.value, fixed_price=option.price)
    if method == PricingMethod.PERCENTAGE:
        return PricingConfig(method=method.value, percentage=option.price)
    if method == PricingMethod.INHERIT:
        return PricingConfig(method=method.value)
    return PricingConfig(method=method.value, machine_price=option.price)
