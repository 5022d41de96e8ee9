"""Reminder repository, scoped through the owning vehicle."""
import calendar
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidInputError
from app.core.redis_client import EntityCache
from app.models.reminder import Reminder
from app.models.vehicle import Vehicle
from app.schemas.reminder import ReminderCreate, ReminderUpdate
from app.services.ownership import OwnershipGuard

logger = logging.getLogger(__name__)


def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class ReminderRepository:
    def __init__(self, db: Session, cache: Optional[EntityCache] = None):
        self.db = db
        self.cache = cache
        self.guard = OwnershipGuard(db)

    def list(self, user_id: str, vehicle_id: int) -> List[Reminder]:
        self.guard.vehicle(user_id, vehicle_id)
        return (
            self.db.query(Reminder)
            .filter(Reminder.vehicle_id == vehicle_id)
            .order_by(
                Reminder.due_date.asc().nulls_last(),
                Reminder.due_mileage.asc().nulls_last(),
                Reminder.id.asc(),
            )
            .all()
        )

    def get(self, user_id: str, reminder_id: int) -> Reminder:
        return self.guard.reminder(user_id, reminder_id)

    def create(self, user_id: str, vehicle_id: int, data: ReminderCreate) -> Reminder:
        self.guard.vehicle(user_id, vehicle_id)

        reminder = Reminder(vehicle_id=vehicle_id, **data.model_dump())
        self.db.add(reminder)
        self.db.commit()
        self.db.refresh(reminder)

        self._invalidate(vehicle_id)
        return reminder

    def update(self, user_id: str, reminder_id: int, data: ReminderUpdate) -> Reminder:
        reminder = self.guard.reminder(user_id, reminder_id)

        update_data = data.model_dump(exclude_unset=True)
        due_date = update_data.get("due_date", reminder.due_date)
        due_mileage = update_data.get("due_mileage", reminder.due_mileage)
        if due_date is None and due_mileage is None:
            raise InvalidInputError("due_date or due_mileage is required", field="due_date")

        if "is_completed" in update_data and update_data["is_completed"] != reminder.is_completed:
            update_data["completed_at"] = datetime.utcnow() if update_data["is_completed"] else None

        for key, value in update_data.items():
            setattr(reminder, key, value)

        self.db.commit()
        self.db.refresh(reminder)

        self._invalidate(reminder.vehicle_id)
        return reminder

    def complete(self, user_id: str, reminder_id: int) -> Reminder:
        """Mark a reminder done; a recurring one schedules its successor."""
        reminder = self.guard.reminder(user_id, reminder_id)
        if reminder.is_completed:
            return reminder

        reminder.is_completed = True
        reminder.completed_at = datetime.utcnow()

        if reminder.recurring:
            successor = self._next_occurrence(reminder)
            if successor is not None:
                self.db.add(successor)
            else:
                logger.warning(f"Recurring reminder {reminder.id} has no interval, nothing scheduled")

        self.db.commit()
        self.db.refresh(reminder)

        self._invalidate(reminder.vehicle_id)
        return reminder

    def delete(self, user_id: str, reminder_id: int) -> None:
        reminder = self.guard.reminder(user_id, reminder_id)
        vehicle_id = reminder.vehicle_id

        self.db.delete(reminder)
        self.db.commit()

        self._invalidate(vehicle_id)

    def due(self, user_id: str, today: Optional[date] = None) -> List[dict]:
        """Open reminders inside their notification window, across all of the user's vehicles."""
        today = today or date.today()
        rows = (
            self.db.query(Reminder, Vehicle)
            .join(Vehicle, Reminder.vehicle_id == Vehicle.id)
            .filter(Vehicle.user_id == user_id, Reminder.is_completed.is_(False))
            .order_by(Reminder.due_date.asc().nulls_last(), Reminder.id.asc())
            .all()
        )

        due = []
        for reminder, vehicle in rows:
            days_until = None
            km_until = None
            is_due = False

            if reminder.due_date is not None:
                days_until = (reminder.due_date - today).days
                if days_until <= settings.REMINDER_NOTIFY_DAYS_BEFORE:
                    is_due = True

            if reminder.due_mileage is not None:
                km_until = reminder.due_mileage - vehicle.current_mileage
                if km_until <= settings.REMINDER_NOTIFY_KM_BEFORE:
                    is_due = True

            if is_due:
                due.append({
                    **{c.name: getattr(reminder, c.name) for c in Reminder.__table__.columns},
                    "vehicle_name": vehicle.name or f"{vehicle.year} {vehicle.make} {vehicle.model}",
                    "current_mileage": vehicle.current_mileage,
                    "days_until_due": days_until,
                    "kilometers_until_due": km_until,
                })
        return due

    def _next_occurrence(self, reminder: Reminder) -> Optional[Reminder]:
        next_due_date = None
        next_due_mileage = None

        if reminder.interval_months:
            next_due_date = add_months(reminder.due_date or date.today(), reminder.interval_months)
        if reminder.interval_kilometers:
            # Counted from the odometer at completion time
            next_due_mileage = reminder.vehicle.current_mileage + reminder.interval_kilometers

        if next_due_date is None and next_due_mileage is None:
            return None

        return Reminder(
            vehicle_id=reminder.vehicle_id,
            type=reminder.type,
            due_date=next_due_date,
            due_mileage=next_due_mileage,
            recurring=True,
            interval_months=reminder.interval_months,
            interval_kilometers=reminder.interval_kilometers,
            notes=reminder.notes,
        )

    def _invalidate(self, vehicle_id: int) -> None:
        if self.cache:
            self.cache.invalidate_reminders(vehicle_id)
