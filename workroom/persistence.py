"""
Write path: calculate, then upsert the whole snapshot for an item in one transaction.

Cost and selling totals are always written together. On a failed write the
session is rolled back and PersistenceError carries the unsaved result.
After a commit, the item's cache keys are published on the invalidation bus.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .cache import aggregate_key_for, invalidation_bus, item_key_for
from .calculation_engine import CalculationEngine
from .config import settings
from .errors import PersistenceError
from .models import CalculationRecord
from .schemas import CalculationInput, CalculationResult

logger = logging.getLogger(__name__)


@dataclass
class SaveOutcome:
    item_key: str
    revision: int
    result: CalculationResult
    invalidated_keys: List[str] = field(default_factory=list)


def cache_keys_for(item_key: str, parent_key: Optional[str] = None) -> List[str]:
    """The item, its parent aggregate and every dependent view of the parent."""
    keys = [item_key_for(item_key)]
    if parent_key:
        keys.append(aggregate_key_for(parent_key))
        keys.extend(f"{view}:{parent_key}" for view in settings.DEPENDENT_VIEWS)
    return keys


class ResultPersistenceGateway:

    def __init__(self, db: Session, engine: CalculationEngine = None, bus=None):
        self.db = db
        self.engine = engine or CalculationEngine()
        self.bus = bus or invalidation_bus

    def save(self, item_key: str, calc_input: CalculationInput,
             parent_key: Optional[str] = None) -> SaveOutcome:
        # Engine errors propagate untouched: nothing has been written yet
        result = self.engine.calculate(calc_input)

        previous_parent = None
        try:
            record = (
                self.db.query(CalculationRecord)
                .filter(CalculationRecord.item_key == item_key)
                .first()
            )
            if record is None:
                record = CalculationRecord(item_key=item_key, revision=1)
                self.db.add(record)
            else:
                previous_parent = record.parent_key
                record.revision = (record.revision or 0) + 1

            self._write_snapshot(record, parent_key, calc_input, result)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Save failed for %s, result not persisted: %s", item_key, e)
            raise PersistenceError(f"Could not save calculation for {item_key}", result=result) from e

        keys = cache_keys_for(item_key, parent_key)
        if previous_parent and previous_parent != parent_key:
            keys.extend(k for k in cache_keys_for(item_key, previous_parent) if k not in keys)
        self.bus.publish(keys)

        logger.info(
            "Saved %s rev %d: cost %.2f, selling %.2f (%s)",
            item_key, record.revision, result.total_cost, result.total_selling, result.markup_source,
        )
        return SaveOutcome(
            item_key=item_key,
            revision=record.revision,
            result=result,
            invalidated_keys=keys,
        )

    def _write_snapshot(self, record: CalculationRecord, parent_key, calc_input, result):
        """Replace every snapshot column. No partial updates."""
        record.parent_key = parent_key
        record.linear_meters = result.linear_meters
        record.widths_required = result.widths_required
        record.fabric_cost = result.fabric_cost
        record.lining_cost = result.lining_cost
        record.heading_cost = result.heading_cost
        record.manufacturing_cost = result.manufacturing_cost
        record.options_cost = result.options_cost
        record.labor_cost = result.labor_cost
        record.total_cost = result.total_cost
        record.total_selling = result.total_selling
        record.markup_percentage = result.markup_percentage
        record.markup_source = result.markup_source
        record.margin_band = result.margin_band
        record.algorithm_version = result.algorithm_version
        record.inputs_json = calc_input.model_dump(mode="json")
        record.outputs_json = result.model_dump(mode="json")
        record.updated_at = datetime.utcnow()


def save(db: Session, item_key: str, calc_input: CalculationInput,
         parent_key: Optional[str] = None) -> SaveOutcome:
    return ResultPersistenceGateway(db).save(item_key, calc_input, parent_key)
