"""
Merge a template with per-item overrides into one concrete CalculationInput.

Shallow override: any field set on ItemOverrides replaces the template
default, anything left unset falls through. Method names are normalized and
method-required fields are checked here, so the engine never starts a
calculation on an inconsistent configuration.
"""

import logging
from typing import Optional

from ..errors import ConfigError
from ..schemas import (
    CalculationInput,
    FabricSpec,
    ItemOverrides,
    Measurement,
    OptionLine,
    PricingConfig,
    TemplateConfig,
)
from . import price_grid
from .base import PricingMethod
from .pricing_resolver import option_pricing
from .registry import get_strategy, normalize_method

logger = logging.getLogger(__name__)

NO_LINING = {"none", "no lining", "unlined", ""}
MANUFACTURING_TYPES = {"machine", "hand"}


def _find_by_name(items, name: str, attr: str = "name"):
    wanted = name.strip().lower()
    for item in items:
        if str(getattr(item, attr)).strip().lower() == wanted:
            return item
    return None


class ConfigurationResolver:

    def resolve(
        self,
        template: TemplateConfig,
        overrides: Optional[ItemOverrides] = None,
        measurement: Measurement = None,
        fabric: Optional[FabricSpec] = None,
        sibling_pricing: Optional[PricingConfig] = None,
        base_cost: Optional[float] = None,
    ) -> CalculationInput:
        overrides = overrides or ItemOverrides()
        if measurement is None:
            raise ConfigError("A measurement is required to resolve a calculation input")

        heading = self._select_heading(template, overrides)
        manufacturing_type = (overrides.manufacturing_type or template.manufacturing_type).strip().lower()
        if manufacturing_type not in MANUFACTURING_TYPES:
            raise ConfigError(
                f"Unknown manufacturing type '{manufacturing_type}'; expected one of: "
                f"{', '.join(sorted(MANUFACTURING_TYPES))}"
            )

        fullness = template.fullness_ratio
        extra_fixed = template.extra_fabric_fixed
        extra_pct = template.extra_fabric_percentage
        upcharge_per_length = template.heading_upcharge_per_length
        upcharge_per_panel = template.heading_upcharge_per_panel
        if heading is not None:
            if heading.fullness_ratio is not None:
                fullness = heading.fullness_ratio
            if heading.extra_fabric_fixed is not None:
                extra_fixed = heading.extra_fabric_fixed
            if heading.extra_fabric_percentage is not None:
                extra_pct = heading.extra_fabric_percentage
            upcharge_per_length = heading.upcharge_per_length
            upcharge_per_panel = heading.upcharge_per_panel
        if overrides.fullness_ratio is not None:
            fullness = overrides.fullness_ratio

        pricing = self._normalize_pricing(overrides.pricing or template.pricing)
        if sibling_pricing is not None:
            sibling_pricing = self._normalize_pricing(sibling_pricing)
        self._check_pricing(pricing, sibling_pricing, manufacturing_type)

        options = self._collect_options(template, overrides, sibling_pricing, manufacturing_type)
        grid_hem = self._select_grid_hem(template, overrides)

        calc_input = CalculationInput(
            category=template.category,
            heading_name=heading.name if heading is not None else (overrides.heading or template.heading_name),
            fullness_ratio=fullness,
            extra_fabric_fixed=extra_fixed,
            extra_fabric_percentage=extra_pct,
            fabric_width_type=template.fabric_width_type,
            fabric_direction=overrides.fabric_direction or template.fabric_direction,
            bottom_hem=template.bottom_hem,
            side_hem=template.side_hem,
            seam_allowance=template.seam_allowance,
            header_allowance=template.header_allowance,
            returns=template.returns,
            overlap=template.overlap,
            waste_percent=(
                overrides.waste_percent if overrides.waste_percent is not None
                else template.waste_percent
            ),
            panel_count=template.panel_count,
            lining=self._select_lining(template, overrides),
            heading_upcharge_per_length=upcharge_per_length,
            heading_upcharge_per_panel=upcharge_per_panel,
            pricing=pricing,
            sibling_pricing=sibling_pricing,
            manufacturing_type=manufacturing_type,
            hand_finished_upcharge_fixed=template.hand_finished_upcharge_fixed,
            hand_finished_upcharge_percentage=template.hand_finished_upcharge_percentage,
            grid_hem=grid_hem,
            fabric_type=overrides.fabric_type or (fabric.fabric_type if fabric else None),
            complexity=overrides.complexity,
            labor=template.labor,
            options=options,
            markup=overrides.markup,
            measurement=measurement,
            fabric=fabric,
            base_cost=base_cost,
        )
        logger.debug(
            "Resolved %s input: method=%s heading=%s lining=%s",
            calc_input.category, pricing.method, calc_input.heading_name,
            calc_input.lining.type if calc_input.lining else None,
        )
        return calc_input

    # --- Selections ---

    def _select_heading(self, template: TemplateConfig, overrides: ItemOverrides):
        if overrides.heading:
            heading = _find_by_name(template.headings, overrides.heading)
            if heading is None and overrides.heading != template.heading_name:
                raise ConfigError(f"Heading '{overrides.heading}' is not offered on this template")
            return heading
        if template.heading_name:
            return _find_by_name(template.headings, template.heading_name)
        return None

    def _select_lining(self, template: TemplateConfig, overrides: ItemOverrides):
        if overrides.lining is None or overrides.lining.strip().lower() in NO_LINING:
            return None
        lining = _find_by_name(template.lining_options, overrides.lining, attr="type")
        if lining is None:
            raise ConfigError(f"Lining '{overrides.lining}' is not offered on this template")
        return lining

    def _select_grid_hem(self, template: TemplateConfig, overrides: ItemOverrides):
        if not overrides.shade_style:
            return None
        style = overrides.shade_style.strip().lower()
        for key, allowance in template.grid_hem_allowances.items():
            if key.strip().lower() == style:
                return allowance
        raise ConfigError(f"Shade style '{overrides.shade_style}' has no hem allowances on this template")

    def _collect_options(self, template: TemplateConfig, overrides: ItemOverrides,
                         sibling_pricing=None, manufacturing_type: str = "machine") -> list:
        options = list(template.options) + list(overrides.options)
        if overrides.hardware is not None:
            options.append(OptionLine(
                name=overrides.hardware.name,
                method=overrides.hardware.method,
                price=overrides.hardware.price,
                category="hardware",
            ))
        normalized = []
        for option in options:
            pricing = option_pricing(option)
            try:
                self._check_pricing(pricing, sibling_pricing, manufacturing_type)
            except ConfigError as e:
                raise ConfigError(f"Option '{option.name}': {e}") from e
            update = {"method": pricing.method}
            if option.pricing is not None:
                update["pricing"] = pricing
            normalized.append(option.model_copy(update=update))
        return normalized

    # --- Pricing checks ---

    def _normalize_pricing(self, config: PricingConfig) -> PricingConfig:
        method = normalize_method(config.method)
        return config.model_copy(update={"method": method.value})

    def _check_pricing(self, pricing, sibling_pricing, manufacturing_type: str):
        effective = pricing
        if pricing.method == PricingMethod.INHERIT.value:
            if sibling_pricing is None:
                raise ConfigError("Pricing method 'inherit' requires a sibling pricing config")
            if sibling_pricing.method == PricingMethod.INHERIT.value:
                raise ConfigError(
                    "Pricing inheritance cycle: the inherited pricing also uses 'inherit'"
                )
            effective = sibling_pricing

        if effective.method == PricingMethod.GRID_LOOKUP.value:
            if effective.grid is None:
                if effective.grid_id is not None:
                    raise ConfigError(f"Price grid {effective.grid_id} could not be loaded")
                raise ConfigError("Pricing method 'grid-lookup' requires a price grid")
            # Malformed grids fail here, before any calculation
            price_grid.normalize(effective.grid)

        missing = get_strategy(effective.method).missing_fields(effective, manufacturing_type)
        if missing:
            raise ConfigError(
                f"Pricing method '{effective.method}' requires: {', '.join(missing)}"
            )


def resolve(template, overrides=None, **kwargs) -> CalculationInput:
    """Module-level shortcut for ConfigurationResolver().resolve()."""
    return ConfigurationResolver().resolve(template, overrides, **kwargs)
