"""Service-item repository. Every write re-aggregates the event total."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.redis_client import EntityCache
from app.data.service_categories import SERVICE_CATEGORIES
from app.models.maintenance import ServiceItem
from app.schemas.maintenance import ServiceItemCreate, ServiceItemUpdate
from app.services.derived_state import DerivedStateMaintainer
from app.services.ownership import OwnershipGuard

logger = logging.getLogger(__name__)


class ServiceItemRepository:
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

    @staticmethod
    def categories() -> List[dict]:
        return [{"name": name, "types": list(types)} for name, types in SERVICE_CATEGORIES.items()]

    def list(self, user_id: str, event_id: int) -> List[ServiceItem]:
        self.guard.service_event(user_id, event_id)
        return (
            self.db.query(ServiceItem)
            .filter(ServiceItem.service_event_id == event_id)
            .order_by(ServiceItem.id.asc())
            .all()
        )

    def get(self, user_id: str, item_id: int) -> ServiceItem:
        return self.guard.service_item(user_id, item_id)

    def create(self, user_id: str, event_id: int, data: ServiceItemCreate) -> ServiceItem:
        event = self.guard.service_event(user_id, event_id)
        vehicle_id = event.vehicle_id

        item = ServiceItem(service_event_id=event_id, **data.model_dump())
        self.db.add(item)
        self.db.commit()

        self._after_write(event_id, vehicle_id)
        self.db.refresh(item)
        return item

    def update(self, user_id: str, item_id: int, data: ServiceItemUpdate) -> ServiceItem:
        item = self.guard.service_item(user_id, item_id)
        event_id = item.service_event_id
        vehicle_id = item.service_event.vehicle_id

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(item, key, value)
        self.db.commit()

        self._after_write(event_id, vehicle_id)
        self.db.refresh(item)
        return item

    def delete(self, user_id: str, item_id: int) -> None:
        item = self.guard.service_item(user_id, item_id)
        event_id = item.service_event_id
        vehicle_id = item.service_event.vehicle_id

        self.db.delete(item)
        self.db.commit()
        logger.info(f"Deleted service item {item_id} from service event {event_id}")

        self._after_write(event_id, vehicle_id)

    def _after_write(self, event_id: int, vehicle_id: int) -> None:
        self.derived.recompute_total_cost(event_id)
        if self.cache:
            self.cache.invalidate_services(vehicle_id)
