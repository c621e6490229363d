"""
Grid-lookup pricing: rail width x drop resolved against a stored price grid.
"""

import logging

from .base import BasePricingStrategy, PricingMethod
from . import price_grid

logger = logging.getLogger(__name__)


class GridLookupPricing(BasePricingStrategy):
    """
    Look up the grid cell for the item's rail width and drop.

    When the item carries grid hem allowances (hard/soft shade styles), the
    lookup key is the finished size: width + 2 x side hem, drop + header + bottom.
    The cell price is per item and is multiplied by quantity.
    """

    method = PricingMethod.GRID_LOOKUP
    REQUIRED_FIELDS = ("grid",)

    def price(self, config, calc_input, yield_result: dict) -> float:
        grid = self.require(config, "grid")
        width, drop = self.lookup_key(calc_input)
        cell = price_grid.lookup(grid, width, drop)
        return cell * self.quantity(calc_input)

    def lookup_key(self, calc_input) -> tuple:
        m = calc_input.measurement
        width, drop = m.rail_width, m.drop
        hem = calc_input.grid_hem
        if hem is not None:
            width += hem.side * 2
            drop += hem.header + hem.bottom
            logger.debug("Grid hem allowance applied: lookup at %gx%g", width, drop)
        return width, drop
