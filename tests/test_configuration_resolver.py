"""
Tests for merging templates with per-item overrides (config_resolver.py).
"""

import pytest

from workroom.calculators.config_resolver import ConfigurationResolver, resolve
from workroom.errors import ConfigError
from workroom.schemas import (
    FabricSpec,
    GridHemAllowance,
    HardwareSelection,
    HeadingOption,
    ItemOverrides,
    LiningOption,
    MarkupPolicy,
    Measurement,
    OptionLine,
    PricingConfig,
    TemplateConfig,
)


def _sample_template(**fields):
    base = dict(
        name="Pinch pleat curtain",
        category="curtains",
        heading_name="Pinch pleat",
        fullness_ratio=2.0,
        headings=[
            HeadingOption(name="Pinch pleat", fullness_ratio=2.5, upcharge_per_panel=12),
            HeadingOption(name="Wave", fullness_ratio=2.2, extra_fabric_fixed=8, upcharge_per_length=4),
        ],
        lining_options=[
            LiningOption(type="Blockout", price_per_length=18, labor_per_unit=10),
            LiningOption(type="Thermal", price_per_length=14),
        ],
        pricing=PricingConfig(method="per_metre", machine_price=30),
        grid_hem_allowances={
            "hard": GridHemAllowance(side=2, header=4, bottom=4),
            "soft": GridHemAllowance(side=1),
        },
        options=[OptionLine(name="Weights", method="flat", price=15)],
    )
    base.update(fields)
    return TemplateConfig(**base)


def _measurement():
    return Measurement(rail_width=200, drop=250)


def test_template_defaults_fall_through():
    calc_input = resolve(_sample_template(), measurement=_measurement(), fabric=FabricSpec(usable_width=137))
    assert calc_input.heading_name == "Pinch pleat"
    assert calc_input.fullness_ratio == 2.5  # from the template's heading
    assert calc_input.heading_upcharge_per_panel == 12
    assert calc_input.lining is None
    assert calc_input.manufacturing_type == "machine"


def test_pricing_method_name_is_normalized():
    calc_input = resolve(_sample_template(), measurement=_measurement())
    assert calc_input.pricing.method == "per-length"
    assert calc_input.options[0].method == "fixed"


def test_heading_override_brings_its_allowances():
    overrides = ItemOverrides(heading="wave")
    calc_input = resolve(_sample_template(), overrides, measurement=_measurement())
    assert calc_input.heading_name == "Wave"
    assert calc_input.fullness_ratio == 2.2
    assert calc_input.extra_fabric_fixed == 8
    assert calc_input.heading_upcharge_per_length == 4
    assert calc_input.heading_upcharge_per_panel == 0


def test_explicit_fullness_beats_heading():
    overrides = ItemOverrides(heading="Wave", fullness_ratio=3.0)
    calc_input = resolve(_sample_template(), overrides, measurement=_measurement())
    assert calc_input.fullness_ratio == 3.0


def test_lining_selection():
    calc_input = resolve(_sample_template(), ItemOverrides(lining="blockout"), measurement=_measurement())
    assert calc_input.lining.type == "Blockout"
    assert calc_input.lining.price_per_length == 18

    unlined = resolve(_sample_template(), ItemOverrides(lining="none"), measurement=_measurement())
    assert unlined.lining is None


def test_unknown_heading_or_lining_is_config_error():
    with pytest.raises(ConfigError):
        resolve(_sample_template(), ItemOverrides(heading="Tab top"), measurement=_measurement())
    with pytest.raises(ConfigError):
        resolve(_sample_template(), ItemOverrides(lining="Silk"), measurement=_measurement())


def test_hardware_becomes_an_option_line():
    overrides = ItemOverrides(
        hardware=HardwareSelection(name="Track", method="per-width", price=25),
        options=[OptionLine(name="Tiebacks", price=30)],
    )
    calc_input = resolve(_sample_template(), overrides, measurement=_measurement())
    names = [o.name for o in calc_input.options]
    assert names == ["Weights", "Tiebacks", "Track"]
    assert calc_input.options[-1].category == "hardware"


def test_scalar_overrides_replace_template():
    overrides = ItemOverrides(
        manufacturing_type="Hand",
        fabric_direction="railroaded",
        waste_percent=5,
        fabric_type="velvet",
        complexity="complex",
        markup=MarkupPolicy(item_markup=60),
    )
    calc_input = resolve(_sample_template(), overrides, measurement=_measurement(),
                         fabric=FabricSpec(fabric_type="plain"))
    assert calc_input.manufacturing_type == "hand"
    assert calc_input.fabric_direction == "railroaded"
    assert calc_input.waste_percent == 5
    assert calc_input.fabric_type == "velvet"
    assert calc_input.complexity == "complex"
    assert calc_input.markup.item_markup == 60


def test_fabric_type_defaults_to_the_fabric():
    calc_input = resolve(_sample_template(), measurement=_measurement(),
                         fabric=FabricSpec(fabric_type="plain"))
    assert calc_input.fabric_type == "plain"


def test_shade_style_selects_grid_hems():
    calc_input = resolve(_sample_template(), ItemOverrides(shade_style="Hard"), measurement=_measurement())
    assert calc_input.grid_hem.side == 2
    assert resolve(_sample_template(), measurement=_measurement()).grid_hem is None


def test_pricing_override_replaces_template_pricing():
    overrides = ItemOverrides(pricing=PricingConfig(method="fixed", fixed_price=99))
    calc_input = resolve(_sample_template(), overrides, measurement=_measurement())
    assert calc_input.pricing.method == "fixed"


# ============================================================
# Method-required fields
# ============================================================

def test_grid_lookup_without_grid_is_config_error():
    template = _sample_template(pricing=PricingConfig(method="grid-lookup"))
    with pytest.raises(ConfigError, match="price grid"):
        resolve(template, measurement=_measurement())


def test_unresolved_grid_id_is_config_error():
    template = _sample_template(pricing=PricingConfig(method="grid-lookup", grid_id=42))
    with pytest.raises(ConfigError, match="42"):
        resolve(template, measurement=_measurement())


def test_malformed_grid_is_rejected_before_calculation():
    template = _sample_template(pricing=PricingConfig(method="grid", grid={"rows": [1, 2]}))
    with pytest.raises(ConfigError):
        resolve(template, measurement=_measurement())


def test_fixed_without_price_is_config_error():
    template = _sample_template(pricing=PricingConfig(method="fixed"))
    with pytest.raises(ConfigError, match="fixed_price"):
        resolve(template, measurement=_measurement())


def test_unknown_method_is_config_error():
    template = _sample_template(pricing=PricingConfig(method="per-furlong"))
    with pytest.raises(ConfigError):
        resolve(template, measurement=_measurement())


def test_inherit_requires_non_inheriting_sibling():
    template = _sample_template(pricing=PricingConfig(method="inherit"))
    with pytest.raises(ConfigError):
        resolve(template, measurement=_measurement())
    with pytest.raises(ConfigError, match="cycle"):
        resolve(template, measurement=_measurement(), sibling_pricing=PricingConfig(method="inherit"))

    calc_input = ConfigurationResolver().resolve(
        template,
        measurement=_measurement(),
        sibling_pricing=PricingConfig(method="per-drop", machine_price=40),
    )
    assert calc_input.sibling_pricing.method == "per-panel"


def test_sibling_missing_fields_are_checked():
    template = _sample_template(pricing=PricingConfig(method="inherit"))
    with pytest.raises(ConfigError):
        resolve(template, measurement=_measurement(), sibling_pricing=PricingConfig(method="per-area"))


def test_unknown_manufacturing_type_is_config_error():
    with pytest.raises(ConfigError, match="hand-finished"):
        resolve(_sample_template(), ItemOverrides(manufacturing_type="hand-finished"),
                measurement=_measurement())
    with pytest.raises(ConfigError):
        resolve(_sample_template(manufacturing_type="robot"), measurement=_measurement())


def test_unknown_shade_style_is_config_error():
    with pytest.raises(ConfigError, match="Roller"):
        resolve(_sample_template(), ItemOverrides(shade_style="Roller"), measurement=_measurement())


# ============================================================
# Option pricing
# ============================================================

def test_grid_priced_option_without_grid_is_config_error():
    overrides = ItemOverrides(options=[OptionLine(name="Motor", method="grid", price=200)])
    with pytest.raises(ConfigError, match="Motor"):
        resolve(_sample_template(), overrides, measurement=_measurement())


def test_banded_option_needs_its_bands():
    overrides = ItemOverrides(options=[
        OptionLine(name="Valance", pricing=PricingConfig(method="height-breakpoint")),
    ])
    with pytest.raises(ConfigError, match="height_bands"):
        resolve(_sample_template(), overrides, measurement=_measurement())


def test_option_pricing_config_is_normalized():
    grid = [{"width": 300, "price": 410}]
    overrides = ItemOverrides(options=[
        OptionLine(name="Motor", method="grid", pricing=PricingConfig(method="Pricing Grid", grid=grid)),
    ])
    calc_input = resolve(_sample_template(), overrides, measurement=_measurement())
    motor = calc_input.options[-1]
    assert motor.method == "grid-lookup"
    assert motor.pricing.method == "grid-lookup"
    assert motor.pricing.grid == grid
