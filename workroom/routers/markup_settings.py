from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db

router = APIRouter(prefix="/markup-settings", tags=["markup-settings"])

# Default category markups, seeded on first run
DEFAULT_MARKUPS = {
    "curtains": {"markup_pct": 45.0},
    "sheer_curtains": {"markup_pct": 45.0},
    "roman_blinds": {"markup_pct": 40.0},
    "roller_blinds": {"markup_pct": 35.0},
    "venetian_blinds": {"markup_pct": 35.0},
    "vertical_blinds": {"markup_pct": 35.0},
    "cellular_shades": {"markup_pct": 35.0},
    "shutters": {"markup_pct": 30.0},
}


def seed_markup_settings(db: Session) -> int:
    """Insert default category markups. Safe to run multiple times, skips existing."""
    seeded = 0
    for category, data in DEFAULT_MARKUPS.items():
        existing = db.query(models.MarkupSetting).filter(
            models.MarkupSetting.category == category
        ).first()
        if not existing:
            db.add(models.MarkupSetting(category=category, **data))
            seeded += 1
    db.commit()
    return seeded


def _to_schema(setting: models.MarkupSetting) -> schemas.MarkupSetting:
    return schemas.MarkupSetting(
        category=setting.category,
        markup_pct=setting.markup_pct,
        tiers=[schemas.MarkupTier(**t) for t in (setting.tiers_json or [])],
        updated_at=setting.updated_at,
    )


@router.get("/", response_model=List[schemas.MarkupSetting])
def list_markup_settings(db: Session = Depends(get_db)):
    settings = db.query(models.MarkupSetting).order_by(models.MarkupSetting.category).all()
    return [_to_schema(s) for s in settings]


@router.put("/{category}", response_model=schemas.MarkupSetting)
def update_markup_setting(
    category: str,
    update: schemas.MarkupSettingUpdate,
    db: Session = Depends(get_db),
):
    """Set a category's flat markup or cost-band tiers. Creates the row if needed."""
    setting = db.query(models.MarkupSetting).filter(
        models.MarkupSetting.category == category
    ).first()
    if not setting:
        setting = models.MarkupSetting(category=category)
        db.add(setting)
    setting.markup_pct = update.markup_pct
    setting.tiers_json = [t.model_dump() for t in update.tiers]
    setting.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(setting)
    return _to_schema(setting)
