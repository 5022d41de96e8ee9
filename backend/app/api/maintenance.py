from fastapi import APIRouter, Depends, Response, status
from typing import List

from app.api.deps import get_service_event_repository, get_service_item_repository, mark_degraded
from app.core.redis_client import EntityCache, get_entity_cache
from app.core.security import get_current_user_id
from app.schemas.maintenance import (
    ServiceCategory,
    ServiceEventCreate,
    ServiceEventDetail,
    ServiceEventResponse,
    ServiceEventUpdate,
    ServiceItemCreate,
    ServiceItemResponse,
    ServiceItemUpdate,
)
from app.services.service_events import ServiceEventRepository
from app.services.service_items import ServiceItemRepository

router = APIRouter()


# --- Service events ---

@router.get("/vehicles/{vehicle_id}/services", response_model=List[ServiceEventResponse])
def list_service_events(
    vehicle_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceEventRepository = Depends(get_service_event_repository),
    cache: EntityCache = Depends(get_entity_cache),
):
    """Get the service history of a vehicle, latest service date first."""
    repo.guard.vehicle(user_id, vehicle_id)

    key = cache.services_key(vehicle_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    events = repo.list(user_id, vehicle_id)
    payload = [ServiceEventResponse.model_validate(e).model_dump(mode="json") for e in events]
    cache.set(key, payload)
    return payload


@router.post(
    "/vehicles/{vehicle_id}/services",
    response_model=ServiceEventDetail,
    status_code=status.HTTP_201_CREATED,
)
def create_service_event(
    vehicle_id: int,
    event: ServiceEventCreate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceEventRepository = Depends(get_service_event_repository),
):
    """Log a service visit, optionally with its items."""
    created = repo.create(user_id, vehicle_id, event)
    mark_degraded(response, repo.derived)
    return created


@router.get("/services/{event_id}", response_model=ServiceEventDetail)
def get_service_event(
    event_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceEventRepository = Depends(get_service_event_repository),
):
    return repo.get(user_id, event_id)


@router.patch("/services/{event_id}", response_model=ServiceEventDetail)
def update_service_event(
    event_id: int,
    event: ServiceEventUpdate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceEventRepository = Depends(get_service_event_repository),
):
    updated = repo.update(user_id, event_id, event)
    mark_degraded(response, repo.derived)
    return updated


@router.delete("/services/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service_event(
    event_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceEventRepository = Depends(get_service_event_repository),
):
    """Delete a service event and its items. Vehicle mileage is kept."""
    repo.delete(user_id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Service items ---

@router.get("/service-items/categories", response_model=List[ServiceCategory])
def get_service_categories():
    """Suggested item types grouped by category."""
    return ServiceItemRepository.categories()


@router.get("/services/{event_id}/items", response_model=List[ServiceItemResponse])
def list_service_items(
    event_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceItemRepository = Depends(get_service_item_repository),
):
    return repo.list(user_id, event_id)


@router.post(
    "/services/{event_id}/items",
    response_model=ServiceItemResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_service_item(
    event_id: int,
    item: ServiceItemCreate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceItemRepository = Depends(get_service_item_repository),
):
    created = repo.create(user_id, event_id, item)
    mark_degraded(response, repo.derived)
    return created


@router.get("/service-items/{item_id}", response_model=ServiceItemResponse)
def get_service_item(
    item_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceItemRepository = Depends(get_service_item_repository),
):
    return repo.get(user_id, item_id)


@router.patch("/service-items/{item_id}", response_model=ServiceItemResponse)
def update_service_item(
    item_id: int,
    item: ServiceItemUpdate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceItemRepository = Depends(get_service_item_repository),
):
    updated = repo.update(user_id, item_id, item)
    mark_degraded(response, repo.derived)
    return updated


@router.delete("/service-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service_item(
    item_id: int,
    user_id: str = Depends(get_current_user_id),
    repo: ServiceItemRepository = Depends(get_service_item_repository),
):
    repo.delete(user_id, item_id)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    mark_degraded(response, repo.derived)
    return response
