"""
Strategy registry: maps pricing method names to strategy classes.

Stored templates use several spellings for the same method
("per-metre", "per_metre", "per-drop", "flat", ...). normalize_method
folds them into one PricingMethod before dispatch.
"""

from ..errors import ConfigError
from .base import BasePricingStrategy, PricingMethod
from .methods_basic import (
    FixedPricing,
    PerAreaPricing,
    PerLengthPricing,
    PerPanelPricing,
    PercentagePricing,
    PerWidthPricing,
)
from .methods_grid import GridLookupPricing
from .methods_tiered import ComplexityTieredPricing, HeightBreakpointPricing

METHOD_ALIASES: dict[str, PricingMethod] = {
    "per-metre": PricingMethod.PER_LENGTH,
    "per-meter": PricingMethod.PER_LENGTH,
    "per-linear-meter": PricingMethod.PER_LENGTH,
    "per-linear-metre": PricingMethod.PER_LENGTH,
    "per-running-meter": PricingMethod.PER_LENGTH,
    "per-running-metre": PricingMethod.PER_LENGTH,
    "per-yard": PricingMethod.PER_LENGTH,
    "per-drop": PricingMethod.PER_PANEL,
    "per-width-drop": PricingMethod.PER_PANEL,
    "per-sqm": PricingMethod.PER_AREA,
    "per-square-meter": PricingMethod.PER_AREA,
    "per-square-metre": PricingMethod.PER_AREA,
    "per-m2": PricingMethod.PER_AREA,
    "pricing-grid": PricingMethod.GRID_LOOKUP,
    "grid": PricingMethod.GRID_LOOKUP,
    "fixed-price": PricingMethod.FIXED,
    "flat": PricingMethod.FIXED,
    "flat-rate": PricingMethod.FIXED,
    "percent": PricingMethod.PERCENTAGE,
    "percentage-of-base": PricingMethod.PERCENTAGE,
}

STRATEGY_REGISTRY: dict[PricingMethod, type] = {
    PricingMethod.FIXED: FixedPricing,
    PricingMethod.PER_PANEL: PerPanelPricing,
    PricingMethod.PER_LENGTH: PerLengthPricing,
    PricingMethod.PER_AREA: PerAreaPricing,
    PricingMethod.PER_WIDTH: PerWidthPricing,
    PricingMethod.PERCENTAGE: PercentagePricing,
    PricingMethod.GRID_LOOKUP: GridLookupPricing,
    PricingMethod.COMPLEXITY_TIERED: ComplexityTieredPricing,
    PricingMethod.HEIGHT_BREAKPOINT: HeightBreakpointPricing,
    # INHERIT has no strategy: the resolver re-dispatches on the sibling's method
}


def normalize_method(name) -> PricingMethod:
    """Canonical PricingMethod for a stored method string, or raises ConfigError."""
    if isinstance(name, PricingMethod):
        return name
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("Pricing method is missing")

    key = name.strip().lower().replace("_", "-").replace(" ", "-")
    if key in METHOD_ALIASES:
        return METHOD_ALIASES[key]
    try:
        return PricingMethod(key)
    except ValueError:
        raise ConfigError(
            f"Unknown pricing method: {name}. "
            f"Available: {[m.value for m in PricingMethod]}"
        )


def get_strategy(method) -> BasePricingStrategy:
    """Returns an instance of the strategy for a method, or raises ConfigError."""
    method = normalize_method(method)
    if method not in STRATEGY_REGISTRY:
        raise ConfigError(f"No pricing strategy registered for method: {method.value}")
    return STRATEGY_REGISTRY[method]()


def has_strategy(method) -> bool:
    """Check if a strategy exists for a method name (aliases included)."""
    try:
        return normalize_method(method) in STRATEGY_REGISTRY
    except ConfigError:
        return False


def list_methods() -> list[str]:
    """List all canonical pricing method names."""
    return [m.value for m in PricingMethod]
