from pydantic import BaseModel, field_validator, model_validator
from datetime import date, datetime
from typing import Optional

MIN_YEAR = 1900


def blank_to_none(value):
    """Trim strings; empty or whitespace-only strings become None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def check_year(value: Optional[int]) -> Optional[int]:
    if value is None:
        return value
    max_year = date.today().year + 1
    if not MIN_YEAR <= value <= max_year:
        raise ValueError(f"year must be between {MIN_YEAR} and {max_year}")
    return value


def check_non_negative(value: Optional[int]) -> Optional[int]:
    if value is not None and value < 0:
        raise ValueError("must be zero or greater")
    return value


class VehicleFields(BaseModel):
    """Normalization shared by create and update.

    VIN and license plate are trimmed and upper-cased, blanks become None so
    the per-user unique constraints never see empty strings. Service
    intervals of 0 mean "not set".
    """

    @field_validator("name", "vin", "license_plate", "notes", "make", "model", mode="before", check_fields=False)
    @classmethod
    def _strip(cls, value):
        return blank_to_none(value)

    @field_validator("vin", "license_plate", check_fields=False)
    @classmethod
    def _upper(cls, value):
        return value.upper() if value else value

    @field_validator("service_interval_months", "service_interval_kilometers", mode="before", check_fields=False)
    @classmethod
    def _zero_interval(cls, value):
        value = blank_to_none(value)
        if value in (0, "0"):
            return None
        return value

    @field_validator("service_interval_months", "service_interval_kilometers", check_fields=False)
    @classmethod
    def _positive_interval(cls, value):
        return check_non_negative(value)

    @field_validator("year", check_fields=False)
    @classmethod
    def _year(cls, value):
        return check_year(value)

    @field_validator("current_mileage", check_fields=False)
    @classmethod
    def _mileage(cls, value):
        return check_non_negative(value)


class VehicleCreate(VehicleFields):
    name: Optional[str] = None
    make: str
    model: str
    year: int
    vin: Optional[str] = None
    license_plate: Optional[str] = None
    current_mileage: int = 0
    service_interval_months: Optional[int] = None
    service_interval_kilometers: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("current_mileage", mode="before")
    @classmethod
    def _default_mileage(cls, value):
        return 0 if value is None or value == "" else value


class VehicleUpdate(VehicleFields):
    name: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    vin: Optional[str] = None
    license_plate: Optional[str] = None
    current_mileage: Optional[int] = None
    service_interval_months: Optional[int] = None
    service_interval_kilometers: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _required_not_cleared(self):
        for field in ("make", "model", "year", "current_mileage"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be empty")
        return self


class VehicleResponse(BaseModel):
    id: int
    user_id: str
    name: Optional[str] = None
    make: str
    model: str
    year: int
    vin: Optional[str] = None
    license_plate: Optional[str] = None
    current_mileage: int
    last_mileage_update: Optional[datetime] = None
    service_interval_months: Optional[int] = None
    service_interval_kilometers: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
