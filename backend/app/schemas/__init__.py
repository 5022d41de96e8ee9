from app.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleResponse
from app.schemas.maintenance import (
    ServiceEventCreate, ServiceEventUpdate, ServiceEventResponse, ServiceEventDetail,
    ServiceItemCreate, ServiceItemUpdate, ServiceItemResponse, ServiceCategory,
)
from app.schemas.reminder import ReminderCreate, ReminderUpdate, ReminderResponse, DueReminder

__all__ = [
    "VehicleCreate", "VehicleUpdate", "VehicleResponse",
    "ServiceEventCreate", "ServiceEventUpdate", "ServiceEventResponse", "ServiceEventDetail",
    "ServiceItemCreate", "ServiceItemUpdate", "ServiceItemResponse", "ServiceCategory",
    "ReminderCreate", "ReminderUpdate", "ReminderResponse", "DueReminder",
]
