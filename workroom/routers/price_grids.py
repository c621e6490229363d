from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..calculators import price_grid
from ..database import get_db
from ..errors import ConfigError, GridLookupError

router = APIRouter(prefix="/price-grids", tags=["price-grids"])


def _to_schema(record: models.PriceGridRecord) -> schemas.PriceGrid:
    return schemas.PriceGrid(
        id=record.id,
        name=record.name,
        grid=record.grid_json,
        updated_at=record.updated_at,
    )


def _get_grid_or_404(grid_id: int, db: Session) -> models.PriceGridRecord:
    record = db.query(models.PriceGridRecord).filter(models.PriceGridRecord.id == grid_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="Price grid not found")
    return record


@router.post("/", response_model=schemas.PriceGrid)
def create_price_grid(grid: schemas.PriceGridCreate, db: Session = Depends(get_db)):
    """Store a grid in any accepted shape. Malformed grids are rejected up front."""
    try:
        price_grid.normalize(grid.grid)
    except ConfigError as e:
        raise HTTPException(status_code=422, detail={"kind": "config", "error": str(e)})
    record = models.PriceGridRecord(name=grid.name, grid_json=grid.grid)
    db.add(record)
    db.commit()
    db.refresh(record)
    return _to_schema(record)


@router.get("/{grid_id}", response_model=schemas.PriceGrid)
def get_price_grid(grid_id: int, db: Session = Depends(get_db)):
    return _to_schema(_get_grid_or_404(grid_id, db))


@router.get("/{grid_id}/lookup", response_model=schemas.GridLookupResponse)
def lookup_price(
    grid_id: int,
    width: float = Query(..., gt=0),
    drop: float = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    record = _get_grid_or_404(grid_id, db)
    try:
        price = price_grid.lookup(record.grid_json, width, drop)
    except GridLookupError as e:
        raise HTTPException(status_code=422, detail={"kind": "grid_lookup", "error": str(e)})
    except ConfigError as e:
        raise HTTPException(status_code=422, detail={"kind": "config", "error": str(e)})
    return schemas.GridLookupResponse(grid_id=grid_id, width=width, drop=drop, price=price)
