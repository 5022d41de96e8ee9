"""Service-event repository, scoped through the owning vehicle.

Creating an event (or raising its mileage) propagates the odometer reading to
the vehicle as a high-water mark. Deleting an event leaves the vehicle's
mileage untouched: the stored value is the highest reading ever logged, not
a live maximum over the remaining events.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.redis_client import EntityCache
from app.models.maintenance import ServiceEvent, ServiceItem
from app.schemas.maintenance import ServiceEventCreate, ServiceEventUpdate
from app.services.derived_state import DerivedStateMaintainer
from app.services.ownership import OwnershipGuard

logger = logging.getLogger(__name__)


class ServiceEventRepository:
    def __init__(
        self,
        db: Session,
        cache: Optional[EntityCache] = None,
        derived: Optional[DerivedStateMaintainer] = None,
    ):
        self.db = db
        self.cache = cache
        self.guard = OwnershipGuard(db)
        self.derived = derived or DerivedStateMaintainer(db)

    def list(self, user_id: str, vehicle_id: int) -> List[ServiceEvent]:
        """Events of a vehicle by service date, newest first."""
        self.guard.vehicle(user_id, vehicle_id)
        return (
            self.db.query(ServiceEvent)
            .filter(ServiceEvent.vehicle_id == vehicle_id)
            .order_by(ServiceEvent.date.desc(), ServiceEvent.id.desc())
            .all()
        )

    def get(self, user_id: str, event_id: int) -> ServiceEvent:
        return self.guard.service_event(user_id, event_id)

    def create(self, user_id: str, vehicle_id: int, data: ServiceEventCreate) -> ServiceEvent:
        self.guard.vehicle(user_id, vehicle_id)

        event = ServiceEvent(
            vehicle_id=vehicle_id,
            date=data.date,
            mileage=data.mileage,
            notes=data.notes,
            total_cost=0,
        )
        event.items = [ServiceItem(**item.model_dump()) for item in data.items]
        self.db.add(event)
        self.db.commit()
        event_id = event.id
        logger.info(f"Created service event {event_id} on vehicle {vehicle_id} with {len(data.items)} items")

        if data.items:
            self.derived.recompute_total_cost(event_id)
        self.derived.propagate_mileage(vehicle_id, data.mileage)

        self._invalidate(user_id, vehicle_id, vehicle_changed=True)
        self.db.refresh(event)
        return event

    def update(self, user_id: str, event_id: int, data: ServiceEventUpdate) -> ServiceEvent:
        event = self.guard.service_event(user_id, event_id)
        vehicle_id = event.vehicle_id

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(event, key, value)
        self.db.commit()

        if "mileage" in update_data:
            self.derived.propagate_mileage(vehicle_id, update_data["mileage"])

        self._invalidate(user_id, vehicle_id, vehicle_changed="mileage" in update_data)
        self.db.refresh(event)
        return event

    def delete(self, user_id: str, event_id: int) -> None:
        """Delete the event and its items. Vehicle mileage is not rolled back."""
        event = self.guard.service_event(user_id, event_id)
        vehicle_id = event.vehicle_id

        self.db.delete(event)
        self.db.commit()

        logger.info(f"Deleted service event {event_id} on vehicle {vehicle_id}")
        self._invalidate(user_id, vehicle_id)

    def _invalidate(self, user_id: str, vehicle_id: int, vehicle_changed: bool = False) -> None:
        if not self.cache:
            return
        self.cache.invalidate_services(vehicle_id)
        if vehicle_changed:
            self.cache.invalidate_vehicle(user_id, vehicle_id)
