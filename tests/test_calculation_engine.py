"""
Tests for the full calculation (calculation_engine.py).

Tests:
1.    Lined pinch-pleat curtain: every cost component and the sell price
2.    Lining making and heading upcharge are charged per panel
3.    Billable labor enters total cost
4.    Percentage pricing defaults to the fabric cost
5.    Hard treatment priced from a grid, no fabric
6.    Options can carry their own grid pricing
7-9.  Validation errors reported as a list before anything is computed
10.   Grid lookup failure aborts with one explicit error
11-12. Deterministic, and selling - cost matches the markup percentage
"""

import pytest

from workroom.calculation_engine import CalculationEngine, calculate
from workroom.calculators.config_resolver import resolve
from workroom.errors import GridLookupError, ValidationError
from workroom.schemas import (
    FabricSpec,
    HeadingOption,
    ItemOverrides,
    LaborConfig,
    LiningOption,
    MarkupPolicy,
    Measurement,
    OptionLine,
    PricingConfig,
    TemplateConfig,
)


def _curtain_template(**fields):
    """Pinch pleat, 2.5 fullness, made per width at 50."""
    base = dict(
        name="Pinch pleat curtain",
        category="curtains",
        heading_name="Pinch pleat",
        headings=[HeadingOption(name="Pinch pleat", fullness_ratio=2.5, upcharge_per_panel=12)],
        lining_options=[LiningOption(type="Blockout", price_per_length=10, labor_per_unit=5)],
        pricing=PricingConfig(method="per-panel", machine_price=50),
        options=[OptionLine(name="Weights", method="fixed", price=15)],
    )
    base.update(fields)
    return TemplateConfig(**base)


def _roller_template():
    return TemplateConfig(
        name="Roller blind",
        category="roller_blinds",
        pricing=PricingConfig(method="pricing-grid", grid=[
            {"width": 1.0, "price": 120},
            {"width": 1.5, "price": 160},
            {"width": 2.0, "price": 210},
        ]),
    )


def _fabric():
    return FabricSpec(name="Linen", usable_width=1.37, cost_per_unit=30)


def _measurement(**fields):
    base = dict(rail_width=2.0, drop=2.5)
    base.update(fields)
    return Measurement(**base)


def _curtain_input(overrides=None, **template_fields):
    return resolve(
        _curtain_template(**template_fields),
        overrides or ItemOverrides(lining="Blockout"),
        measurement=_measurement(),
        fabric=_fabric(),
    )


# ============================================================
# Full calculations
# ============================================================

def test_lined_curtain_components():
    """
    5.0 gathered / 1.37 -> 4 widths x 2.5 = 10.0 linear
    fabric 10 x 30 = 300, lining 10 x 10 + 1 panel x 5 = 105, heading 1 x 12 = 12,
    making 4 x 50 = 200, weights 15 -> 632 cost, +35% = 853.20
    """
    result = calculate(_curtain_input())
    assert result.widths_required == 4
    assert result.linear_meters == 10.0
    assert result.fabric_cost == 300.0
    assert result.lining_cost == 105.0
    assert result.heading_cost == 12.0
    assert result.manufacturing_cost == 200.0
    assert result.options_cost == 15.0
    assert result.total_cost == 632.0
    assert result.total_selling == 853.2
    assert result.markup_source == "account_default"
    assert result.margin_band == "normal"
    assert result.algorithm_version == "1.0.0"
    assert result.formula_steps


def test_pair_charges_lining_and_heading_per_panel():
    """10.0 gathered / 1.40 -> 8 widths, but a pair is only 2 panels."""
    calc_input = resolve(
        _curtain_template(panel_count=2),
        ItemOverrides(lining="Blockout"),
        measurement=_measurement(rail_width=4.0),
        fabric=FabricSpec(name="Linen", usable_width=1.40, cost_per_unit=30),
    )
    result = calculate(calc_input)
    assert result.widths_required == 8
    assert result.linear_meters == 20.0
    assert result.lining_cost == 210.0   # 20 x 10 + 2 x 5
    assert result.heading_cost == 24.0   # 2 x 12

    two_pairs = calculate(calc_input.model_copy(update={
        "measurement": _measurement(rail_width=4.0, quantity=2),
    }))
    assert two_pairs.heading_cost == 48.0


def test_labor_reported_but_only_billed_when_billable():
    unbilled = calculate(_curtain_input())
    assert unbilled.labor_hours == pytest.approx(3.4)
    assert unbilled.labor_cost == pytest.approx(153.0)

    billed = calculate(_curtain_input(labor=LaborConfig(billable=True)))
    assert billed.total_cost == pytest.approx(unbilled.total_cost + 153.0)


def test_percentage_pricing_defaults_to_fabric_cost():
    result = calculate(_curtain_input(pricing=PricingConfig(method="percentage", percentage=50)))
    assert result.manufacturing_cost == 150.0


def test_hard_treatment_from_grid():
    calc_input = resolve(
        _roller_template(),
        ItemOverrides(markup=MarkupPolicy(item_markup=50)),
        measurement=_measurement(rail_width=1.2, drop=1.8, quantity=2),
    )
    result = calculate(calc_input)
    assert result.widths_required == 2
    assert result.fabric_cost == 0.0
    assert result.manufacturing_cost == 320.0
    assert result.total_selling == 480.0
    assert result.markup_source == "item_override"


def test_option_priced_from_its_own_grid():
    motor = OptionLine(name="Motor", method="grid", pricing=PricingConfig(
        method="pricing-grid", grid=_roller_template().pricing.grid,
    ))
    plain = calculate(_curtain_input())
    result = calculate(_curtain_input(ItemOverrides(lining="Blockout", options=[motor])))
    assert result.options_cost == 225.0   # weights 15 + motor at 2.0 wide 210
    assert result.total_cost == pytest.approx(plain.total_cost + 210.0)


# ============================================================
# Errors
# ============================================================

def test_fabric_required_for_curtains():
    calc_input = _curtain_input().model_copy(update={"fabric": None})
    with pytest.raises(ValidationError) as exc:
        calculate(calc_input)
    assert exc.value.messages == ["A fabric is required for curtains"]


def test_every_validation_problem_is_reported():
    calc_input = _curtain_input().model_copy(update={
        "measurement": Measurement(rail_width=0, drop=-1, quantity=0),
        "fullness_ratio": 0,
        "waste_percent": -5,
    })
    errors = CalculationEngine().validate_input(calc_input)
    assert len(errors) == 5
    with pytest.raises(ValidationError):
        calculate(calc_input)


def test_negative_allowances_are_rejected():
    calc_input = _curtain_input().model_copy(update={
        "header_allowance": -5.0,
        "side_hem": -0.1,
        "seam_allowance": -0.02,
        "returns": -1,
        "extra_fabric_fixed": -0.5,
    })
    with pytest.raises(ValidationError) as exc:
        calculate(calc_input)
    assert exc.value.messages == [
        "Header allowance cannot be negative",
        "Side hem cannot be negative",
        "Seam allowance cannot be negative",
        "Returns cannot be negative",
        "Extra fabric allowance cannot be negative",
    ]


def test_negative_header_cannot_produce_a_negative_total():
    calc_input = resolve(
        _curtain_template(header_allowance=-5.0, lining_options=[], options=[]),
        measurement=_measurement(),
        fabric=_fabric(),
    )
    with pytest.raises(ValidationError, match="Header allowance"):
        calculate(calc_input)


def test_grid_lookup_failure_is_not_a_zero_cost():
    calc_input = resolve(_roller_template(), measurement=_measurement(rail_width=2.4, drop=1.8))
    with pytest.raises(GridLookupError):
        calculate(calc_input)


# ============================================================
# Properties
# ============================================================

def test_calculation_is_deterministic():
    calc_input = _curtain_input()
    first = calculate(calc_input)
    second = calculate(calc_input)
    assert first.model_dump() == second.model_dump()


@pytest.mark.parametrize("policy", [
    MarkupPolicy(),
    MarkupPolicy(item_markup=42.5),
    MarkupPolicy(category_markup=28),
    MarkupPolicy(account_markup=60),
])
def test_selling_minus_cost_matches_markup(policy):
    result = calculate(_curtain_input(ItemOverrides(lining="Blockout", markup=policy)))
    expected_profit = result.total_cost * result.markup_percentage / 100
    assert result.total_selling - result.total_cost == pytest.approx(expected_profit, abs=0.01)
    assert result.markup_amount == pytest.approx(result.total_selling - result.total_cost, abs=0.001)
