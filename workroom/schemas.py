from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


# --- Measurement & fabric ---

class Measurement(BaseModel):
    """Caller-normalized dimensions, every length in one linear unit."""
    rail_width: float
    drop: float
    quantity: int = 1
    pooling: float = 0.0


class FabricSpec(BaseModel):
    name: Optional[str] = None
    usable_width: Optional[float] = None
    vertical_repeat: float = 0.0
    horizontal_repeat: float = 0.0
    cost_per_unit: float = 0.0       # per linear unit of fabric
    fabric_type: Optional[str] = None


# --- Template building blocks ---

class HeadingOption(BaseModel):
    name: str
    fullness_ratio: Optional[float] = None
    extra_fabric_fixed: Optional[float] = None
    extra_fabric_percentage: Optional[float] = None
    upcharge_per_length: float = 0.0   # per unit of rail width
    upcharge_per_panel: float = 0.0


class LiningOption(BaseModel):
    type: str
    price_per_length: float = 0.0      # lining fabric, per linear unit
    labor_per_unit: float = 0.0        # making charge per panel


class HeightPriceBand(BaseModel):
    min_height: float = 0.0
    max_height: float
    price: float
    hand_price: Optional[float] = None


class ComplexityTier(BaseModel):
    fabric_type: str
    complexity: str
    machine_price: float
    hand_price: Optional[float] = None


class GridHemAllowance(BaseModel):
    side: float = 0.0
    header: float = 0.0
    bottom: float = 0.0


class PricingConfig(BaseModel):
    """Pricing method identifier plus the parameters each method reads."""
    method: str
    fixed_price: Optional[float] = None
    machine_price: Optional[float] = None
    hand_price: Optional[float] = None
    percentage: Optional[float] = None
    grid: Optional[Union[list, dict]] = None
    grid_id: Optional[int] = None
    height_bands: List[HeightPriceBand] = Field(default_factory=list)
    height_breakpoint: Optional[float] = None
    price_above_breakpoint_multiplier: Optional[float] = None
    complexity_tiers: List[ComplexityTier] = Field(default_factory=list)


class OptionLine(BaseModel):
    name: str
    method: str = "fixed"
    price: float = 0.0
    category: str = "option"
    pricing: Optional[PricingConfig] = None   # full config for grid, banded and tiered options


class HardwareSelection(BaseModel):
    name: str
    method: str = "fixed"
    price: float = 0.0


class LaborConfig(BaseModel):
    rate: Optional[float] = None
    billable: bool = False
    complexity: str = "simple"
    hours_per_area: Optional[float] = None
    hours_per_perimeter: Optional[float] = None
    minimum_hours: Optional[float] = None


class MarkupTier(BaseModel):
    up_to_cost: Optional[float] = None   # None = open-ended top tier
    percentage: float


class MarkupPolicy(BaseModel):
    item_markup: Optional[float] = None
    category_markup: Optional[float] = None
    category_tiers: List[MarkupTier] = Field(default_factory=list)
    account_markup: Optional[float] = None
    low_margin_threshold: Optional[float] = None
    high_margin_threshold: Optional[float] = None


class TemplateConfig(BaseModel):
    name: Optional[str] = None
    category: str = "curtains"
    heading_name: Optional[str] = None
    fullness_ratio: float = 1.0
    extra_fabric_fixed: float = 0.0
    extra_fabric_percentage: float = 0.0
    fabric_width_type: str = "narrow"      # 'wide' | 'narrow'
    fabric_direction: str = "standard"     # 'standard' | 'railroaded'
    bottom_hem: float = 0.0
    side_hem: float = 0.0
    seam_allowance: float = 0.0            # total per seam join
    header_allowance: float = 0.0
    returns: float = 0.0
    overlap: float = 0.0
    waste_percent: float = 0.0
    panel_count: int = 1                   # 1 single, 2 pair
    headings: List[HeadingOption] = Field(default_factory=list)
    lining_options: List[LiningOption] = Field(default_factory=list)
    heading_upcharge_per_length: float = 0.0
    heading_upcharge_per_panel: float = 0.0
    pricing: PricingConfig
    manufacturing_type: str = "machine"    # 'machine' | 'hand'
    hand_finished_upcharge_fixed: float = 0.0
    hand_finished_upcharge_percentage: float = 0.0
    grid_hem_allowances: Dict[str, GridHemAllowance] = Field(default_factory=dict)
    labor: LaborConfig = Field(default_factory=LaborConfig)
    options: List[OptionLine] = Field(default_factory=list)


class ItemOverrides(BaseModel):
    """Per-item selections. Anything left unset falls through to the template."""
    heading: Optional[str] = None
    lining: Optional[str] = None
    hardware: Optional[HardwareSelection] = None
    manufacturing_type: Optional[str] = None
    fullness_ratio: Optional[float] = None
    fabric_direction: Optional[str] = None
    waste_percent: Optional[float] = None
    shade_style: Optional[str] = None      # 'hard' | 'soft', selects grid hems
    fabric_type: Optional[str] = None
    complexity: Optional[str] = None
    pricing: Optional[PricingConfig] = None
    options: List[OptionLine] = Field(default_factory=list)
    markup: MarkupPolicy = Field(default_factory=MarkupPolicy)


# --- Engine input / output ---

class CalculationInput(BaseModel):
    """Fully merged, concrete input, produced by the configuration resolver."""
    category: str
    heading_name: Optional[str] = None
    fullness_ratio: float = 1.0
    extra_fabric_fixed: float = 0.0
    extra_fabric_percentage: float = 0.0
    fabric_width_type: str = "narrow"
    fabric_direction: str = "standard"
    bottom_hem: float = 0.0
    side_hem: float = 0.0
    seam_allowance: float = 0.0
    header_allowance: float = 0.0
    returns: float = 0.0
    overlap: float = 0.0
    waste_percent: float = 0.0
    panel_count: int = 1
    lining: Optional[LiningOption] = None
    heading_upcharge_per_length: float = 0.0
    heading_upcharge_per_panel: float = 0.0
    pricing: PricingConfig
    sibling_pricing: Optional[PricingConfig] = None
    manufacturing_type: str = "machine"
    hand_finished_upcharge_fixed: float = 0.0
    hand_finished_upcharge_percentage: float = 0.0
    grid_hem: Optional[GridHemAllowance] = None
    fabric_type: Optional[str] = None
    complexity: Optional[str] = None
    labor: LaborConfig = Field(default_factory=LaborConfig)
    options: List[OptionLine] = Field(default_factory=list)
    markup: MarkupPolicy = Field(default_factory=MarkupPolicy)
    measurement: Measurement
    fabric: Optional[FabricSpec] = None
    base_cost: Optional[float] = None


class CalculationResult(BaseModel):
    linear_meters: float
    widths_required: int
    fabric_cost: float
    lining_cost: float = 0.0
    heading_cost: float = 0.0
    manufacturing_cost: float
    options_cost: float
    labor_hours: float = 0.0
    labor_cost: float = 0.0
    total_cost: float
    total_selling: float
    markup_percentage: float
    markup_source: str
    markup_amount: float
    gross_margin: float
    margin_band: str
    algorithm_version: str
    formula_steps: List[str] = Field(default_factory=list)


# --- API request / response bodies ---

class CalculationRequest(BaseModel):
    template: TemplateConfig
    measurement: Measurement
    fabric: Optional[FabricSpec] = None
    overrides: ItemOverrides = Field(default_factory=ItemOverrides)
    sibling_pricing: Optional[PricingConfig] = None
    base_cost: Optional[float] = None


class SaveRequest(CalculationRequest):
    parent_key: Optional[str] = None


class SaveResponse(BaseModel):
    item_key: str
    revision: int
    result: CalculationResult
    invalidated_keys: List[str]


class StoredCalculation(BaseModel):
    item_key: str
    parent_key: Optional[str] = None
    linear_meters: float
    widths_required: int
    fabric_cost: float
    lining_cost: float
    heading_cost: float
    manufacturing_cost: float
    options_cost: float
    labor_cost: float
    total_cost: float
    total_selling: float
    markup_percentage: float
    markup_source: str
    margin_band: Optional[str] = None
    algorithm_version: str
    revision: int
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectSummary(BaseModel):
    parent_key: str
    item_count: int
    total_cost: float
    total_selling: float
    gross_margin: float


class PriceGridCreate(BaseModel):
    name: str
    grid: Union[list, dict]


class PriceGrid(BaseModel):
    id: int
    name: str
    grid: Union[list, dict]
    updated_at: datetime


class GridLookupResponse(BaseModel):
    grid_id: int
    width: float
    drop: float
    price: float


class MarkupSettingUpdate(BaseModel):
    markup_pct: Optional[float] = None
    tiers: List[MarkupTier] = Field(default_factory=list)


class MarkupSetting(BaseModel):
    category: str
    markup_pct: Optional[float] = None
    tiers: List[MarkupTier] = Field(default_factory=list)
    updated_at: datetime
