"""Maintenance of the two denormalized numbers.

* Mileage high-water mark:
  ``vehicle.current_mileage := max(vehicle.current_mileage, event.mileage)``,
  applied per service event write, never lowered, never recomputed from
  history when an event is deleted.
* Event total cost:
  ``event.total_cost := sum(item.cost for item in event.items)``, always
  recomputed in full after an item write, never adjusted by a delta.

Both run as their own transaction after the primary write has committed.
A failure is retried, then logged and recorded as ``DegradedConsistency``;
the primary write stays committed and is reported as successful.
"""
import logging
import time
from typing import Callable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import DegradedConsistency
from app.models.maintenance import ServiceEvent, ServiceItem
from app.models.vehicle import Vehicle

logger = logging.getLogger(__name__)

MILEAGE_PROPAGATION = "mileage_propagation"
COST_AGGREGATION = "cost_aggregation"


def raise_mileage(vehicle_id: int, mileage: int):
    """Conditional single statement: concurrent writers can only raise the mark."""
    return (
        update(Vehicle)
        .where(Vehicle.id == vehicle_id, Vehicle.current_mileage < mileage)
        .values(current_mileage=mileage, last_mileage_update=func.now())
        .execution_options(synchronize_session=False)
    )


class DerivedStateMaintainer:
    def __init__(self, db: Session, max_attempts: Optional[int] = None, retry_delay: float = 0.05):
        self.db = db
        self.max_attempts = max(1, max_attempts or settings.DERIVED_STATE_MAX_ATTEMPTS)
        self.retry_delay = retry_delay
        self.failures: List[DegradedConsistency] = []

    @property
    def degraded(self) -> bool:
        return bool(self.failures)

    def propagate_mileage(self, vehicle_id: int, mileage: int) -> bool:
        """Raise the vehicle's mileage to ``mileage`` if it is higher."""
        return self._run(MILEAGE_PROPAGATION, vehicle_id, lambda: self._apply_mileage(vehicle_id, mileage))

    def recompute_total_cost(self, event_id: int) -> bool:
        """Rewrite the event total from its current item set."""
        return self._run(COST_AGGREGATION, event_id, lambda: self._apply_total_cost(event_id))

    def _apply_mileage(self, vehicle_id: int, mileage: int) -> None:
        self.db.execute(raise_mileage(vehicle_id, mileage))

    def _apply_total_cost(self, event_id: int) -> None:
        # Row lock first so the aggregate below reads every committed item
        self.db.execute(
            select(ServiceEvent.id).where(ServiceEvent.id == event_id).with_for_update()
        )
        total = (
            select(func.coalesce(func.sum(ServiceItem.cost), 0))
            .where(ServiceItem.service_event_id == event_id)
            .scalar_subquery()
        )
        self.db.execute(
            update(ServiceEvent)
            .where(ServiceEvent.id == event_id)
            .values(total_cost=total)
            .execution_options(synchronize_session=False)
        )

    def _run(self, rule: str, entity_id: int, step: Callable[[], None]) -> bool:
        last_error: Optional[SQLAlchemyError] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                step()
                self.db.commit()
                return True
            except SQLAlchemyError as e:
                self.db.rollback()
                last_error = e
                logger.warning(f"{rule} attempt {attempt}/{self.max_attempts} failed for id={entity_id}: {e}")
                if attempt < self.max_attempts:
                    time.sleep(self.retry_delay * attempt)

        failure = DegradedConsistency(rule, entity_id, last_error)
        self.failures.append(failure)
        logger.error(f"Degraded consistency: {failure.message}")
        return False
