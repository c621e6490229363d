"""
Fabric yield: how many fabric widths to cut and how much linear fabric to order.

Input: CalculationInput (merged template + overrides + measurement + fabric)
Output: dict with widths_required, linear_meters and the intermediate figures

All lengths are in the caller's unit. Percentages are whole numbers (5 = 5%).
"""

import logging
import math

from ..config import settings
from ..errors import ConfigError, ValidationError

logger = logging.getLogger(__name__)


def _ceil_div(numerator: float, denominator: float) -> int:
    # round() first so 2.4 / 1.2 does not become 3 through float noise
    return math.ceil(round(numerator / denominator, 9))


def _round_up_to(value: float, step: float) -> float:
    return _ceil_div(value, step) * step


def resolve_usable_width(calc_input) -> float:
    """Fabric's own usable width, else the configured standard width for its type."""
    fabric = calc_input.fabric
    if fabric is not None and fabric.usable_width is not None:
        usable = fabric.usable_width
    else:
        width_type = (calc_input.fabric_width_type or "narrow").lower()
        if width_type == "wide":
            usable = settings.WIDE_FABRIC_WIDTH
        elif width_type == "narrow":
            usable = settings.NARROW_FABRIC_WIDTH
        else:
            raise ConfigError(f"Unknown fabric width type: {calc_input.fabric_width_type}")

    if usable <= 0:
        raise ConfigError(f"Usable fabric width must be greater than zero (got {usable:g})")
    return usable


def validate_measurement(measurement) -> list:
    errors = []
    if measurement.rail_width is None or measurement.rail_width <= 0:
        errors.append("Rail width must be greater than zero")
    if measurement.drop is None or measurement.drop <= 0:
        errors.append("Drop must be greater than zero")
    if measurement.quantity is None or measurement.quantity < 1:
        errors.append("Quantity must be at least 1")
    if measurement.pooling is not None and measurement.pooling < 0:
        errors.append("Pooling cannot be negative")
    return errors


def compute_yield(calc_input) -> dict:
    """
    raw width   = rail x fullness + returns + overlap + side hems (both sides of every panel)
    cut drop    = drop + header + bottom hem + pooling + extra fabric
    widths      = ceil(raw width / usable width), after horizontal repeat rounding
    cut drop    x (1 + (extra % + waste %) / 100), then up to the vertical repeat
    linear      = widths x cut drop + seams x seam allowance

    Railroaded fabric runs along the rail, so the two dimensions swap roles.
    Widths and linear length are totals for the line (x quantity).
    """
    m = calc_input.measurement
    errors = validate_measurement(m)
    if errors:
        raise ValidationError(errors)

    quantity = m.quantity
    fabric = calc_input.fabric

    # Hard treatments: one piece per unit, no fabric to order
    if fabric is None:
        return {
            "widths_required": quantity,
            "widths_per_unit": 1,
            "linear_meters": 0.0,
            "cut_drop": 0.0,
            "raw_width": 0.0,
            "seams": 0,
            "usable_width": None,
            "railroaded": False,
            "quantity": quantity,
        }

    usable = resolve_usable_width(calc_input)
    panel_count = max(1, calc_input.panel_count)

    raw_width = (
        m.rail_width * calc_input.fullness_ratio
        + calc_input.returns
        + calc_input.overlap
        + calc_input.side_hem * 2 * panel_count
    )
    cut_drop = (
        m.drop
        + calc_input.header_allowance
        + calc_input.bottom_hem
        + (m.pooling or 0.0)
        + calc_input.extra_fabric_fixed
    )

    railroaded = (calc_input.fabric_direction or "standard").lower() == "railroaded"
    across, along = (cut_drop, raw_width) if railroaded else (raw_width, cut_drop)

    if fabric.horizontal_repeat > 0:
        across = _round_up_to(across, fabric.horizontal_repeat)

    widths = max(1, _ceil_div(across, usable))

    allowance_pct = calc_input.extra_fabric_percentage + calc_input.waste_percent
    along = along * (1 + allowance_pct / 100)
    if fabric.vertical_repeat > 0:
        along = _round_up_to(along, fabric.vertical_repeat)

    seams = widths - 1
    linear_per_unit = widths * along + seams * calc_input.seam_allowance

    result = {
        "widths_required": widths * quantity,
        "widths_per_unit": widths,
        "linear_meters": round(linear_per_unit * quantity, 4),
        "cut_drop": round(along, 4),
        "raw_width": round(across, 4),
        "seams": seams * quantity,
        "usable_width": usable,
        "railroaded": railroaded,
        "quantity": quantity,
    }
    logger.debug(
        "Yield: %d widths x %.4f (+%d seams) x %d = %.4f linear",
        widths, along, seams, quantity, result["linear_meters"],
    )
    return result
