"""
Cost to sell price.

Policy resolution order, first non-null wins and is recorded as the source:
    item_override -> category (flat) / category_tiered -> account_default
"""

import logging

from ..config import settings
from ..schemas import MarkupPolicy

logger = logging.getLogger(__name__)

SOURCE_ITEM = "item_override"
SOURCE_CATEGORY = "category"
SOURCE_CATEGORY_TIERED = "category_tiered"
SOURCE_ACCOUNT = "account_default"


def gross_margin(cost: float, selling: float) -> float:
    """(selling - cost) / selling as a percentage; 0 when nothing is sold."""
    if not selling:
        return 0.0
    return round((selling - cost) / selling * 100, 2)


def tier_percentage(tiers, cost: float):
    """Percentage of the first tier whose ceiling covers the cost. Open-ended tiers sort last."""
    ordered = sorted(
        tiers,
        key=lambda t: (t.up_to_cost is None, t.up_to_cost if t.up_to_cost is not None else 0),
    )
    for tier in ordered:
        if tier.up_to_cost is None or cost <= tier.up_to_cost:
            return tier.percentage
    return None


class MarkupResolver:

    def resolve(self, cost: float, policy: MarkupPolicy = None) -> tuple:
        """Returns (percentage, source)."""
        policy = policy or MarkupPolicy()
        if policy.item_markup is not None:
            return policy.item_markup, SOURCE_ITEM
        if policy.category_markup is not None:
            return policy.category_markup, SOURCE_CATEGORY
        if policy.category_tiers:
            percentage = tier_percentage(policy.category_tiers, cost)
            if percentage is not None:
                return percentage, SOURCE_CATEGORY_TIERED
        if policy.account_markup is not None:
            return policy.account_markup, SOURCE_ACCOUNT
        return settings.MARKUP_DEFAULT_PCT, SOURCE_ACCOUNT

    def classify_margin(self, margin: float, policy: MarkupPolicy = None) -> str:
        policy = policy or MarkupPolicy()
        low = policy.low_margin_threshold
        if low is None:
            low = settings.MARGIN_LOW_THRESHOLD_PCT
        high = policy.high_margin_threshold
        if high is None:
            high = settings.MARGIN_HIGH_THRESHOLD_PCT

        if margin < 0:
            return "loss"
        if margin < low:
            return "low"
        if margin > high:
            return "good"
        return "normal"

    def apply_markup(self, cost: float, policy: MarkupPolicy = None) -> dict:
        percentage, source = self.resolve(cost, policy)
        selling = round(cost * (1 + percentage / 100), 2)
        margin = gross_margin(cost, selling)
        band = self.classify_margin(margin, policy)
        logger.debug("Markup %s%% (%s): %.2f -> %.2f, margin %.2f%% %s",
                     percentage, source, cost, selling, margin, band)
        return {
            "selling": selling,
            "percentage": percentage,
            "source": source,
            "markup_amount": round(selling - cost, 2),
            "gross_margin": margin,
            "margin_band": band,
        }
