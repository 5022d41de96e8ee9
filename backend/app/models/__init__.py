from app.models.user import User
from app.models.vehicle import Vehicle
from app.models.maintenance import ServiceEvent, ServiceItem
from app.models.reminder import Reminder

__all__ = ["User", "Vehicle", "ServiceEvent", "ServiceItem", "Reminder"]
