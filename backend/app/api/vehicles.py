from fastapi import APIRouter, Depends, Response, status
from typing import List

from app.api.deps import get_vehicle_repository
from app.core.redis_client import EntityCache, get_entity_cache
from app.core.security import get_current_user_id
from app.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleResponse
from app.services.vehicles import VehicleRepository

router = APIRouter()


def _dump(vehicle) -> dict:
    return VehicleResponse.model_validate(vehicle).model_dump(mode="json")


@router.get("", response_model=List[VehicleResponse])
def list_vehicles(
    user_id: str = Depends(get_current_user_id),
    repo: VehicleRepository = Depends(get_vehicle_repository),
    cache: EntityCache = Depends(get_entity_cache),
):
    """Get all vehicles of the current user, newest first."""
    key = cache.vehicles_key(user_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    payload = [_dump(v) for v in repo.list(user_id)]
    cache.set(key, payload)
    return payload


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
def create_vehicle(
    vehicle: VehicleCreate,
    user_id: str = Depends(get_current_user_id),
    repo: VehicleRepository = Depends(get_vehicle_repository),
):
    """Register a vehicle."""
    return repo.create(user_id, vehicle)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
def get_vehicle(
    vehicle_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: VehicleRepository = Depends(get_vehicle_repository),
    cache: EntityCache = Depends(get_entity_cache),
):
    key = cache.vehicle_key(user_id, vehicle_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    payload = _dump(repo.get(user_id, vehicle_id))
    cache.set(key, payload)
    return payload


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
def update_vehicle(
    vehicle_id: int,
    vehicle: VehicleUpdate,
    user_id: str = Depends(get_current_user_id),
    repo: VehicleRepository = Depends(get_vehicle_repository),
):
    """Update vehicle information. Only the fields sent are changed."""
    return repo.update(user_id, vehicle_id, vehicle)


@router.patch("/{vehicle_id}/mileage/{mileage}", response_model=VehicleResponse)
def update_mileage(
    vehicle_id: int,
    mileage: int,
    user_id: str = Depends(get_current_user_id),
    repo: VehicleRepository = Depends(get_vehicle_repository),
):
    """Quick endpoint to record an odometer reading."""
    return repo.update_mileage(user_id, vehicle_id, mileage)


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vehicle(
    vehicle_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: VehicleRepository = Depends(get_vehicle_repository),
):
    """Delete a vehicle with all of its service events and reminders."""
    repo.delete(user_id, vehicle_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
