"""
Treatment calculation engine.

Combines yield, pricing, labor and markup into one CalculationResult.
Pure math, no I/O. The same input always gives the same result.

Input: CalculationInput (from ConfigurationResolver)
Output: CalculationResult with cost and selling computed together
"""

import logging

from .calculators.labor_calculator import calculate_labor
from .calculators.markup import MarkupResolver
from .calculators.pricing_resolver import PricingStrategyResolver
from .calculators.yield_calculator import compute_yield, validate_measurement
from .config import settings
from .errors import ValidationError
from .models import FABRIC_CATEGORIES
from .schemas import CalculationInput, CalculationResult

logger = logging.getLogger(__name__)

NON_NEGATIVE_ALLOWANCES = (
    ("header_allowance", "Header allowance"),
    ("bottom_hem", "Bottom hem"),
    ("side_hem", "Side hem"),
    ("seam_allowance", "Seam allowance"),
    ("returns", "Returns"),
    ("overlap", "Overlap"),
    ("extra_fabric_fixed", "Extra fabric allowance"),
    ("hand_finished_upcharge_fixed", "Hand-finished upcharge"),
    ("hand_finished_upcharge_percentage", "Hand-finished upcharge percentage"),
)


class CalculationEngine:

    def __init__(self):
        self.pricing = PricingStrategyResolver()
        self.markup = MarkupResolver()

    def validate_input(self, calc_input: CalculationInput) -> list:
        """Every problem with the input, as human-readable messages. Empty = valid."""
        errors = validate_measurement(calc_input.measurement)

        if calc_input.fullness_ratio <= 0:
            errors.append("Fullness ratio must be greater than zero")
        if calc_input.waste_percent < 0:
            errors.append("Waste percentage cannot be negative")
        if calc_input.extra_fabric_percentage < 0:
            errors.append("Extra fabric percentage cannot be negative")
        if calc_input.panel_count < 1:
            errors.append("Panel count must be at least 1")
        for field, label in NON_NEGATIVE_ALLOWANCES:
            if getattr(calc_input, field) < 0:
                errors.append(f"{label} cannot be negative")

        fabric = calc_input.fabric
        if fabric is None:
            if calc_input.category in FABRIC_CATEGORIES:
                errors.append(f"A fabric is required for {calc_input.category}")
        else:
            if fabric.cost_per_unit < 0:
                errors.append("Fabric cost cannot be negative")
            if fabric.vertical_repeat < 0 or fabric.horizontal_repeat < 0:
                errors.append("Pattern repeats cannot be negative")

        if calc_input.labor.rate is not None and calc_input.labor.rate <= 0:
            errors.append("Labor rate must be greater than zero")
        if calc_input.base_cost is not None and calc_input.base_cost < 0:
            errors.append("Base cost cannot be negative")
        return errors

    def calculate(self, calc_input: CalculationInput) -> CalculationResult:
        errors = self.validate_input(calc_input)
        if errors:
            raise ValidationError(errors)

        steps = []

        # --- Fabric ---
        yield_result = compute_yield(calc_input)
        linear = yield_result["linear_meters"]
        widths = yield_result["widths_required"]
        fabric_cost = 0.0
        if calc_input.fabric is not None:
            fabric_cost = round(linear * calc_input.fabric.cost_per_unit, 2)
            steps.append(
                f"Fabric: {widths} widths, {linear:g} linear x "
                f"{calc_input.fabric.cost_per_unit:.2f} = {fabric_cost:.2f}"
            )
        else:
            steps.append(f"No fabric: {widths} piece(s)")

        # --- Lining ---
        lining_cost = 0.0
        lining = calc_input.lining
        m = calc_input.measurement
        panels = calc_input.panel_count * m.quantity
        if lining is not None:
            lining_cost = round(linear * lining.price_per_length + panels * lining.labor_per_unit, 2)
            steps.append(f"Lining ({lining.type}): {lining_cost:.2f}")

        # --- Heading ---
        heading_cost = round(
            calc_input.heading_upcharge_per_length * m.rail_width * m.quantity
            + calc_input.heading_upcharge_per_panel * panels,
            2,
        )
        if heading_cost:
            steps.append(f"Heading ({calc_input.heading_name}): {heading_cost:.2f}")

        # --- Manufacturing ---
        if calc_input.base_cost is None:
            calc_input = calc_input.model_copy(update={"base_cost": fabric_cost})
        manufacturing_cost = round(self.pricing.price(calc_input, yield_result), 2)
        steps.append(
            f"Manufacturing ({calc_input.pricing.method}, {calc_input.manufacturing_type}): "
            f"{manufacturing_cost:.2f}"
        )

        # --- Options & hardware ---
        options_cost = 0.0
        for option in calc_input.options:
            line = round(self.pricing.price_option(option, calc_input, yield_result), 2)
            options_cost += line
            steps.append(f"Option {option.name} ({option.method}): {line:.2f}")
        options_cost = round(options_cost, 2)

        # --- Labor ---
        labor = calculate_labor(calc_input)
        labor_in_total = labor["cost"] if labor["billable"] else 0.0
        steps.append(
            f"Labor: {labor['hours']:g} hrs = {labor['cost']:.2f}"
            + ("" if labor["billable"] else " (not billed)")
        )

        total_cost = round(
            fabric_cost + lining_cost + heading_cost + manufacturing_cost
            + options_cost + labor_in_total,
            2,
        )

        # --- Markup ---
        priced = self.markup.apply_markup(total_cost, calc_input.markup)
        steps.append(
            f"Total {total_cost:.2f} + {priced['percentage']:g}% ({priced['source']}) "
            f"= {priced['selling']:.2f}"
        )

        logger.info(
            "Calculated %s (%s): cost %.2f, selling %.2f, margin %.2f%% %s",
            calc_input.category, calc_input.pricing.method, total_cost,
            priced["selling"], priced["gross_margin"], priced["margin_band"],
        )

        return CalculationResult(
            linear_meters=linear,
            widths_required=widths,
            fabric_cost=fabric_cost,
            lining_cost=lining_cost,
            heading_cost=heading_cost,
            manufacturing_cost=manufacturing_cost,
            options_cost=options_cost,
            labor_hours=labor["hours"],
            labor_cost=labor["cost"],
            total_cost=total_cost,
            total_selling=priced["selling"],
            markup_percentage=priced["percentage"],
            markup_source=priced["source"],
            markup_amount=priced["markup_amount"],
            gross_margin=priced["gross_margin"],
            margin_band=priced["margin_band"],
            algorithm_version=settings.ALGORITHM_VERSION,
            formula_steps=steps,
        )


def calculate(calc_input: CalculationInput) -> CalculationResult:
    """Preview calculation. Raises ValidationError, ConfigError or GridLookupError."""
    return CalculationEngine().calculate(calc_input)
