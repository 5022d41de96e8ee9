from pydantic import BaseModel, Field, field_validator, model_validator
import datetime as dt
from typing import List, Optional

from app.schemas.vehicle import blank_to_none


class ServiceItemCreate(BaseModel):
    type: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    cost: int = Field(default=0, ge=0)  # smallest currency unit

    @field_validator("type", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        return blank_to_none(value)

    @field_validator("cost", mode="before")
    @classmethod
    def _default_cost(cls, value):
        return 0 if value is None or value == "" else value


class ServiceItemUpdate(BaseModel):
    type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    cost: Optional[int] = Field(default=None, ge=0)

    @field_validator("type", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        return blank_to_none(value)

    @model_validator(mode="after")
    def _required_not_cleared(self):
        for field in ("type", "cost"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be empty")
        return self


class ServiceItemResponse(BaseModel):
    id: int
    service_event_id: int
    type: str
    description: Optional[str] = None
    cost: int
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class ServiceEventCreate(BaseModel):
    date: dt.date
    mileage: int = Field(ge=0)
    notes: Optional[str] = None
    items: List[ServiceItemCreate] = []

    @field_validator("notes", mode="before")
    @classmethod
    def _strip(cls, value):
        return blank_to_none(value)


class ServiceEventUpdate(BaseModel):
    date: Optional[dt.date] = None
    mileage: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def _strip(cls, value):
        return blank_to_none(value)

    @model_validator(mode="after")
    def _required_not_cleared(self):
        for field in ("date", "mileage"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be empty")
        return self


class ServiceEventResponse(BaseModel):
    id: int
    vehicle_id: int
    date: dt.date
    mileage: int
    total_cost: int
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class ServiceEventDetail(ServiceEventResponse):
    items: List[ServiceItemResponse] = []


class ServiceCategory(BaseModel):
    name: str
    types: List[str]
