from fastapi import APIRouter, Depends, Response, status
from typing import List

from app.api.deps import get_reminder_repository
from app.core.redis_client import EntityCache, get_entity_cache
from app.core.security import get_current_user_id
from app.schemas.reminder import DueReminder, ReminderCreate, ReminderResponse, ReminderUpdate
from app.services.reminders import ReminderRepository

router = APIRouter()


@router.get("/vehicles/{vehicle_id}/reminders", response_model=List[ReminderResponse])
def list_reminders(
    vehicle_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ReminderRepository = Depends(get_reminder_repository),
    cache: EntityCache = Depends(get_entity_cache),
):
    """Get all reminders of a vehicle, soonest first."""
    repo.guard.vehicle(user_id, vehicle_id)

    key = cache.reminders_key(vehicle_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    reminders = repo.list(user_id, vehicle_id)
    payload = [ReminderResponse.model_validate(r).model_dump(mode="json") for r in reminders]
    cache.set(key, payload)
    return payload


@router.post(
    "/vehicles/{vehicle_id}/reminders",
    response_model=ReminderResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_reminder(
    vehicle_id: int,
    reminder: ReminderCreate,
    user_id: str = Depends(get_current_user_id),
    repo: ReminderRepository = Depends(get_reminder_repository),
):
    """Create a new reminder."""
    return repo.create(user_id, vehicle_id, reminder)


@router.get("/reminders/due", response_model=List[DueReminder])
def get_due_reminders(
    user_id: str = Depends(get_current_user_id),
    repo: ReminderRepository = Depends(get_reminder_repository),
):
    """Open reminders that are due soon by date or mileage."""
    return repo.due(user_id)


@router.get("/reminders/{reminder_id}", response_model=ReminderResponse)
def get_reminder(
    reminder_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ReminderRepository = Depends(get_reminder_repository),
):
    return repo.get(user_id, reminder_id)


@router.patch("/reminders/{reminder_id}", response_model=ReminderResponse)
def update_reminder(
    reminder_id: int,
    reminder: ReminderUpdate,
    user_id: str = Depends(get_current_user_id),
    repo: ReminderRepository = Depends(get_reminder_repository),
):
    return repo.update(user_id, reminder_id, reminder)


@router.post("/reminders/{reminder_id}/complete", response_model=ReminderResponse)
def complete_reminder(
    reminder_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ReminderRepository = Depends(get_reminder_repository),
):
    """Mark a reminder as complete. Recurring reminders get their next occurrence."""
    return repo.complete(user_id, reminder_id)


@router.delete("/reminders/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reminder(
    reminder_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ReminderRepository = Depends(get_reminder_repository),
):
    repo.delete(user_id, reminder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
