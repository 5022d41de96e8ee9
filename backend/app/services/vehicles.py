"""Vehicle repository, scoped to the owning user."""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, InvalidInputError
from app.core.redis_client import EntityCache
from app.models.maintenance import ServiceEvent
from app.models.vehicle import Vehicle
from app.schemas.vehicle import VehicleCreate, VehicleUpdate
from app.services.derived_state import raise_mileage
from app.services.ownership import OwnershipGuard

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = (("vin", "VIN"), ("license_plate", "License plate"))


class VehicleRepository:
    def __init__(self, db: Session, cache: Optional[EntityCache] = None):
        self.db = db
        self.cache = cache
        self.guard = OwnershipGuard(db)

    def list(self, user_id: str) -> List[Vehicle]:
        return (
            self.db.query(Vehicle)
            .filter(Vehicle.user_id == user_id)
            .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
            .all()
        )

    def get(self, user_id: str, vehicle_id: int) -> Vehicle:
        return self.guard.vehicle(user_id, vehicle_id)

    def create(self, user_id: str, data: VehicleCreate) -> Vehicle:
        fields = data.model_dump()
        self._check_unique(user_id, fields)

        vehicle = Vehicle(user_id=user_id, **fields)
        if vehicle.current_mileage:
            vehicle.last_mileage_update = datetime.utcnow()
        self.db.add(vehicle)
        self._commit()
        self.db.refresh(vehicle)

        logger.info(f"Created vehicle {vehicle.id} for user {user_id}")
        if self.cache:
            self.cache.invalidate_vehicle(user_id)
        return vehicle

    def update(self, user_id: str, vehicle_id: int, data: VehicleUpdate) -> Vehicle:
        vehicle = self.guard.vehicle(user_id, vehicle_id)

        update_data = data.model_dump(exclude_unset=True)
        self._check_unique(user_id, update_data, exclude_id=vehicle.id)
        if update_data.get("current_mileage") is not None:
            self._check_not_below_logged(vehicle.id, update_data["current_mileage"])

        if "current_mileage" in update_data and update_data["current_mileage"] != vehicle.current_mileage:
            update_data["last_mileage_update"] = datetime.utcnow()

        for key, value in update_data.items():
            setattr(vehicle, key, value)

        self._commit()
        self.db.refresh(vehicle)

        if self.cache:
            self.cache.invalidate_vehicle(user_id, vehicle.id)
        return vehicle

    def update_mileage(self, user_id: str, vehicle_id: int, mileage: int) -> Vehicle:
        """Record an odometer reading. Lower readings leave the mileage unchanged."""
        if mileage < 0:
            raise InvalidInputError("mileage must be zero or greater", field="mileage")
        vehicle = self.guard.vehicle(user_id, vehicle_id)

        result = self.db.execute(raise_mileage(vehicle.id, mileage))
        self.db.commit()
        self.db.refresh(vehicle)

        if result.rowcount and self.cache:
            self.cache.invalidate_vehicle(user_id, vehicle.id)
        return vehicle

    def delete(self, user_id: str, vehicle_id: int) -> None:
        """Delete the vehicle with its service events, items and reminders in one transaction."""
        vehicle = self.guard.vehicle(user_id, vehicle_id)

        self.db.delete(vehicle)
        self.db.commit()

        logger.info(f"Deleted vehicle {vehicle_id} for user {user_id}")
        if self.cache:
            self.cache.invalidate_vehicle_tree(user_id, vehicle_id)

    def _check_not_below_logged(self, vehicle_id: int, mileage: int) -> None:
        logged = (
            self.db.query(func.max(ServiceEvent.mileage))
            .filter(ServiceEvent.vehicle_id == vehicle_id)
            .scalar()
        )
        if logged is not None and mileage < logged:
            raise InvalidInputError(
                f"current_mileage cannot be below the logged service mileage {logged}",
                field="current_mileage",
            )

    def _check_unique(self, user_id: str, fields: dict, exclude_id: Optional[int] = None) -> None:
        for field, label in UNIQUE_FIELDS:
            value = fields.get(field)
            if value is None:
                continue
            column = getattr(Vehicle, field)
            query = self.db.query(Vehicle.id).filter(Vehicle.user_id == user_id, column == value)
            if exclude_id is not None:
                query = query.filter(Vehicle.id != exclude_id)
            if query.first() is not None:
                raise Conflict(f"{label} {value} is already registered on another vehicle", field=field)

    def _commit(self) -> None:
        # A concurrent insert can still hit the unique constraints
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Vehicle uniqueness violation: {e.orig}")
            raise Conflict("VIN or license plate is already registered on another vehicle")
