from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from typing import Optional

from app.schemas.vehicle import blank_to_none


class ReminderCreate(BaseModel):
    type: str = Field(min_length=1, max_length=100)
    due_date: Optional[date] = None
    due_mileage: Optional[int] = Field(default=None, ge=0)
    recurring: bool = False
    interval_months: Optional[int] = Field(default=None, gt=0)
    interval_kilometers: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None

    @field_validator("type", "notes", mode="before")
    @classmethod
    def _strip(cls, value):
        return blank_to_none(value)

    @model_validator(mode="after")
    def _actionable(self):
        if self.due_date is None and self.due_mileage is None:
            raise ValueError("due_date or due_mileage is required")
        return self


class ReminderUpdate(BaseModel):
    """Partial update. The merged record must still have a due date or mileage."""

    type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    due_date: Optional[date] = None
    due_mileage: Optional[int] = Field(default=None, ge=0)
    recurring: Optional[bool] = None
    interval_months: Optional[int] = Field(default=None, gt=0)
    interval_kilometers: Optional[int] = Field(default=None, gt=0)
    is_completed: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("type", "notes", mode="before")
    @classmethod
    def _strip(cls, value):
        return blank_to_none(value)

    @model_validator(mode="after")
    def _required_not_cleared(self):
        for field in ("type", "recurring", "is_completed"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be empty")
        return self


class ReminderResponse(BaseModel):
    id: int
    vehicle_id: int
    type: str
    due_date: Optional[date] = None
    due_mileage: Optional[int] = None
    recurring: bool
    interval_months: Optional[int] = None
    interval_kilometers: Optional[int] = None
    is_completed: bool
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DueReminder(ReminderResponse):
    """A reminder inside its notification window, as read by the notifier."""

    vehicle_name: Optional[str] = None
    current_mileage: int
    days_until_due: Optional[int] = None
    kilometers_until_due: Optional[int] = None
