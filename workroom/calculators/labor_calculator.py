"""
Deterministic labor estimate from treatment geometry.

Input: CalculationInput (measurement + labor config)
Output: dict with hours, cost, rate, complexity and multiplier

Hours scale with face area and perimeter, are multiplied by the complexity
factor, and never drop below the minimum billable duration.
"""

import logging

from ..config import settings
from ..errors import ConfigError, ValidationError

logger = logging.getLogger(__name__)


def _value_or_default(value, default):
    return default if value is None else value


def complexity_multiplier(complexity: str) -> float:
    multipliers = settings.LABOR_COMPLEXITY_MULTIPLIERS
    key = (complexity or "simple").strip().lower()
    if key not in multipliers:
        raise ConfigError(
            f"Unknown labor complexity: {complexity}. Available: {list(multipliers.keys())}"
        )
    return float(multipliers[key])


def calculate_labor(calc_input) -> dict:
    labor = calc_input.labor
    rate = _value_or_default(labor.rate, settings.LABOR_RATE_DEFAULT)
    if rate is None or rate <= 0:
        raise ValidationError(["Labor rate must be greater than zero"])

    hours_per_area = _value_or_default(labor.hours_per_area, settings.LABOR_HOURS_PER_AREA)
    hours_per_perimeter = _value_or_default(labor.hours_per_perimeter, settings.LABOR_HOURS_PER_PERIMETER)
    minimum_hours = _value_or_default(labor.minimum_hours, settings.LABOR_MIN_HOURS)
    multiplier = complexity_multiplier(labor.complexity)

    m = calc_input.measurement
    quantity = max(1, m.quantity)
    area = m.rail_width * m.drop
    perimeter = 2 * (m.rail_width + m.drop)

    base_hours = (area * hours_per_area + perimeter * hours_per_perimeter) * quantity
    hours = base_hours * multiplier
    minimum_applied = hours < minimum_hours
    if minimum_applied:
        hours = minimum_hours

    hours = round(hours, 2)
    cost = round(hours * rate, 2)

    logger.info(
        "Labor: %.2f hrs (%s x%.2f%s) at %.2f/hr = %.2f",
        hours, labor.complexity, multiplier,
        ", minimum applied" if minimum_applied else "", rate, cost,
    )
    return {
        "hours": hours,
        "cost": cost,
        "rate": rate,
        "complexity": (labor.complexity or "simple").lower(),
        "multiplier": multiplier,
        "minimum_applied": minimum_applied,
        "billable": labor.billable,
    }
