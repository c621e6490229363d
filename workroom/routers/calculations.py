from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models, schemas
from ..cache import aggregate_key_for, item_key_for, result_cache
from ..calculation_engine import CalculationEngine
from ..calculators.config_resolver import ConfigurationResolver
from ..calculators.markup import gross_margin
from ..database import get_db
from ..errors import CalculationError, GridLookupError, PersistenceError, ValidationError
from ..persistence import ResultPersistenceGateway

router = APIRouter(prefix="/calculations", tags=["calculations"])


def http_error(e: CalculationError) -> HTTPException:
    """Engine errors -> HTTP. Bad input/config is 422, a failed write is 503."""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail={"kind": "validation", "errors": e.messages})
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=503, detail={
            "kind": "persistence",
            "error": str(e),
            "result": e.result.model_dump() if e.result is not None else None,
        })
    kind = "grid_lookup" if isinstance(e, GridLookupError) else "config"
    return HTTPException(status_code=422, detail={"kind": kind, "error": str(e)})


def with_stored_grid(config, db: Session):
    """Fill config.grid from the price_grids table when only a grid_id is given."""
    if config is None or config.grid is not None or config.grid_id is None:
        return config
    record = db.query(models.PriceGridRecord).filter(
        models.PriceGridRecord.id == config.grid_id
    ).first()
    if not record:
        # Left unresolved; the resolver reports it as a ConfigError
        return config
    return config.model_copy(update={"grid": record.grid_json})


def with_stored_option_grids(options, db: Session):
    """Resolve grid_id on each option that carries its own pricing config."""
    return [o.model_copy(update={"pricing": with_stored_grid(o.pricing, db)}) for o in options]


def with_category_markup(policy: schemas.MarkupPolicy, category: str, db: Session):
    """Fill the category level of the markup policy from markup_settings."""
    if policy.category_markup is not None or policy.category_tiers:
        return policy
    setting = db.query(models.MarkupSetting).filter(
        models.MarkupSetting.category == category
    ).first()
    if not setting:
        return policy
    return policy.model_copy(update={
        "category_markup": setting.markup_pct,
        "category_tiers": [schemas.MarkupTier(**t) for t in (setting.tiers_json or [])],
    })


def build_input(request: schemas.CalculationRequest, db: Session) -> schemas.CalculationInput:
    template = request.template.model_copy(update={
        "pricing": with_stored_grid(request.template.pricing, db),
        "options": with_stored_option_grids(request.template.options, db),
    })
    overrides = request.overrides.model_copy(update={
        "pricing": with_stored_grid(request.overrides.pricing, db),
        "options": with_stored_option_grids(request.overrides.options, db),
        "markup": with_category_markup(request.overrides.markup, template.category, db),
    })
    return ConfigurationResolver().resolve(
        template,
        overrides,
        measurement=request.measurement,
        fabric=request.fabric,
        sibling_pricing=with_stored_grid(request.sibling_pricing, db),
        base_cost=request.base_cost,
    )


@router.post("/preview", response_model=schemas.CalculationResult)
def preview_calculation(request: schemas.CalculationRequest, db: Session = Depends(get_db)):
    """Calculate without saving."""
    try:
        calc_input = build_input(request, db)
        return CalculationEngine().calculate(calc_input)
    except CalculationError as e:
        raise http_error(e)


@router.put("/{item_key}", response_model=schemas.SaveResponse)
def save_calculation(item_key: str, request: schemas.SaveRequest, db: Session = Depends(get_db)):
    """Calculate and replace the stored snapshot for an item."""
    try:
        calc_input = build_input(request, db)
        outcome = ResultPersistenceGateway(db).save(item_key, calc_input, parent_key=request.parent_key)
    except CalculationError as e:
        raise http_error(e)
    return schemas.SaveResponse(
        item_key=outcome.item_key,
        revision=outcome.revision,
        result=outcome.result,
        invalidated_keys=outcome.invalidated_keys,
    )


@router.get("/projects/{parent_key}/summary", response_model=schemas.ProjectSummary)
def project_summary(parent_key: str, db: Session = Depends(get_db)):
    cache_key = aggregate_key_for(parent_key)
    cached = result_cache.get(cache_key)
    if cached is not None:
        return cached

    records = db.query(models.CalculationRecord).filter(
        models.CalculationRecord.parent_key == parent_key
    ).all()
    total_cost = round(sum(r.total_cost for r in records), 2)
    total_selling = round(sum(r.total_selling for r in records), 2)
    summary = schemas.ProjectSummary(
        parent_key=parent_key,
        item_count=len(records),
        total_cost=total_cost,
        total_selling=total_selling,
        gross_margin=gross_margin(total_cost, total_selling),
    )
    result_cache.set(cache_key, summary)
    return summary


@router.get("/{item_key}", response_model=schemas.StoredCalculation)
def get_calculation(item_key: str, db: Session = Depends(get_db)):
    cache_key = item_key_for(item_key)
    cached = result_cache.get(cache_key)
    if cached is not None:
        return cached

    record = db.query(models.CalculationRecord).filter(
        models.CalculationRecord.item_key == item_key
    ).first()
    if not record:
        raise HTTPException(status_code=404, detail="Calculation not found")
    stored = schemas.StoredCalculation.model_validate(record)
    result_cache.set(cache_key, stored)
    return stored
