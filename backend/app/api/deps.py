"""Repository dependencies, one set per request session."""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.redis_client import EntityCache, get_entity_cache
from app.services.reminders import ReminderRepository
from app.services.service_events import ServiceEventRepository
from app.services.service_items import ServiceItemRepository
from app.services.vehicles import VehicleRepository

DEGRADED_HEADER = "X-Consistency"


def get_vehicle_repository(
    db: Session = Depends(get_db), cache: EntityCache = Depends(get_entity_cache)
) -> VehicleRepository:
    return VehicleRepository(db, cache)


def get_service_event_repository(
    db: Session = Depends(get_db), cache: EntityCache = Depends(get_entity_cache)
) -> ServiceEventRepository:
    return ServiceEventRepository(db, cache)


def get_service_item_repository(
    db: Session = Depends(get_db), cache: EntityCache = Depends(get_entity_cache)
) -> ServiceItemRepository:
    return ServiceItemRepository(db, cache)


def get_reminder_repository(
    db: Session = Depends(get_db), cache: EntityCache = Depends(get_entity_cache)
) -> ReminderRepository:
    return ReminderRepository(db, cache)


def mark_degraded(response, derived) -> None:
    """Flag a response whose derived-state write did not go through."""
    if derived.degraded:
        response.headers[DEGRADED_HEADER] = "degraded"
