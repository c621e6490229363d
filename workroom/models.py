from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from datetime import datetime
from .database import Base


# Categories are free-form VARCHAR. These cannot be calculated without a fabric.
FABRIC_CATEGORIES = {"curtains", "sheer_curtains", "roman_blinds"}


class CalculationRecord(Base):
    """
    Persisted calculation snapshot, one row per item.

    Cost and selling totals are always written by the same save.
    A new save for the same item_key replaces the whole snapshot.
    """
    __tablename__ = "treatment_calculations"

    id = Column(Integer, primary_key=True, index=True)
    item_key = Column(String, unique=True, nullable=False, index=True)
    parent_key = Column(String, nullable=True, index=True)  # project / quote grouping

    # Yield
    linear_meters = Column(Float, nullable=False)
    widths_required = Column(Integer, nullable=False)

    # Costs
    fabric_cost = Column(Float, nullable=False)
    lining_cost = Column(Float, default=0.0)
    heading_cost = Column(Float, default=0.0)
    manufacturing_cost = Column(Float, nullable=False)
    options_cost = Column(Float, nullable=False)
    labor_cost = Column(Float, default=0.0)
    total_cost = Column(Float, nullable=False)

    # Selling
    total_selling = Column(Float, nullable=False)
    markup_percentage = Column(Float, nullable=False)
    markup_source = Column(String, nullable=False)
    margin_band = Column(String, nullable=True)

    algorithm_version = Column(String, nullable=False)
    revision = Column(Integer, default=1)
    inputs_json = Column(JSON, nullable=True)   # CalculationInput snapshot
    outputs_json = Column(JSON, nullable=True)  # CalculationResult snapshot
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class PriceGridRecord(Base):
    """Raw stored price grid in any of the three accepted shapes."""
    __tablename__ = "price_grids"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    grid_json = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class MarkupSetting(Base):
    """Category-level markup: flat percentage or cost-band tiers."""
    __tablename__ = "markup_settings"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String, unique=True, nullable=False)
    markup_pct = Column(Float, nullable=True)
    tiers_json = Column(JSON, nullable=True)  # [{up_to_cost, percentage}, ...]
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
