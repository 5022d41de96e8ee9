"""Ownership checks for every record reachable from a vehicle.

A record that exists but belongs to someone else is reported exactly like a
record that does not exist, so callers cannot probe other users' ids. The
mismatch is still logged for operators.
"""
import logging

from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.models.maintenance import ServiceEvent, ServiceItem
from app.models.reminder import Reminder
from app.models.vehicle import Vehicle

logger = logging.getLogger(__name__)


class OwnershipGuard:
    def __init__(self, db: Session):
        self.db = db

    def _check(self, user_id: str, record, owner_vehicle: Vehicle, label: str, record_id: int):
        if owner_vehicle.user_id != user_id:
            logger.warning(
                f"Ownership mismatch: user {user_id} requested {label.lower()} {record_id} "
                f"owned by {owner_vehicle.user_id}"
            )
            raise NotFound(f"{label} not found")
        return record

    def vehicle(self, user_id: str, vehicle_id: int) -> Vehicle:
        vehicle = self.db.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFound("Vehicle not found")
        return self._check(user_id, vehicle, vehicle, "Vehicle", vehicle_id)

    def service_event(self, user_id: str, event_id: int) -> ServiceEvent:
        event = self.db.get(ServiceEvent, event_id)
        if event is None:
            raise NotFound("Service event not found")
        return self._check(user_id, event, event.vehicle, "Service event", event_id)

    def service_item(self, user_id: str, item_id: int) -> ServiceItem:
        item = self.db.get(ServiceItem, item_id)
        if item is None:
            raise NotFound("Service item not found")
        return self._check(user_id, item, item.service_event.vehicle, "Service item", item_id)

    def reminder(self, user_id: str, reminder_id: int) -> Reminder:
        reminder = self.db.get(Reminder, reminder_id)
        if reminder is None:
            raise NotFound("Reminder not found")
        return self._check(user_id, reminder, reminder.vehicle, "Reminder", reminder_id)
