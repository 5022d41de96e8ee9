import json
import logging
from typing import Any, Iterable, Optional

import redis
from redis.exceptions import ConnectionError, TimeoutError

from app.core.config import settings

logger = logging.getLogger(__name__)

# Redis client singleton
_redis_client: Optional[redis.Redis] = None


def get_redis() -> Optional[redis.Redis]:
    """Get Redis client singleton, or None when caching is switched off."""
    global _redis_client
    if not settings.REDIS_URL:
        return None
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )
    return _redis_client


def check_redis_health() -> dict:
    """Check Redis connectivity and return health status."""
    client = get_redis()
    if client is None:
        return {"status": "disabled", "connected": False}
    try:
        client.ping()
        info = client.info("memory")
        return {
            "status": "healthy",
            "connected": True,
            "used_memory": info.get("used_memory_human", "unknown"),
        }
    except (ConnectionError, TimeoutError) as e:
        logger.error(f"Redis health check failed: {e}")
        return {
            "status": "unhealthy",
            "connected": False,
        }


class RedisCache:
    """Redis cache helper for common operations. Every call fails open."""

    def __init__(self, prefix: str = "servicebok", client: Optional[redis.Redis] = None):
        self.prefix = prefix
        self.client = client if client is not None else get_redis()

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        if self.client is None:
            return None
        try:
            data = self.client.get(self._make_key(key))
            if data:
                return json.loads(data)
            return None
        except Exception as e:
            logger.warning(f"Redis get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with optional TTL."""
        if self.client is None:
            return False
        try:
            ttl = ttl or settings.REDIS_CACHE_TTL
            return bool(self.client.setex(self._make_key(key), ttl, json.dumps(value)))
        except Exception as e:
            logger.warning(f"Redis set error for {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        """Delete keys from cache."""
        if self.client is None or not keys:
            return False
        try:
            return bool(self.client.delete(*(self._make_key(k) for k in keys)))
        except Exception as e:
            logger.warning(f"Redis delete error for {keys}: {e}")
            return False


class EntityCache(RedisCache):
    """Read-through cache of API payloads keyed by entity type and id.

    Keys:
        vehicles:{user_id}             vehicle list of a user
        vehicle:{user_id}:{vehicle_id} single vehicle
        services:{vehicle_id}          service events of a vehicle
        reminders:{vehicle_id}         reminders of a vehicle

    Child lists are keyed by vehicle only; callers run the ownership guard
    before reading them.
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        super().__init__(prefix="servicebok:entities", client=client)

    @staticmethod
    def vehicles_key(user_id: str) -> str:
        return f"vehicles:{user_id}"

    @staticmethod
    def vehicle_key(user_id: str, vehicle_id: int) -> str:
        return f"vehicle:{user_id}:{vehicle_id}"

    @staticmethod
    def services_key(vehicle_id: int) -> str:
        return f"services:{vehicle_id}"

    @staticmethod
    def reminders_key(vehicle_id: int) -> str:
        return f"reminders:{vehicle_id}"

    def invalidate(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if keys:
            logger.debug(f"Invalidating cache keys: {keys}")
            self.delete(*keys)

    def invalidate_vehicle(self, user_id: str, vehicle_id: Optional[int] = None) -> None:
        """Vehicle fields changed (edit, mileage propagation, create)."""
        keys = [self.vehicles_key(user_id)]
        if vehicle_id is not None:
            keys.append(self.vehicle_key(user_id, vehicle_id))
        self.invalidate(keys)

    def invalidate_vehicle_tree(self, user_id: str, vehicle_id: int) -> None:
        """Vehicle deleted together with its children."""
        self.invalidate([
            self.vehicles_key(user_id),
            self.vehicle_key(user_id, vehicle_id),
            self.services_key(vehicle_id),
            self.reminders_key(vehicle_id),
        ])

    def invalidate_services(self, vehicle_id: int) -> None:
        self.invalidate([self.services_key(vehicle_id)])

    def invalidate_reminders(self, vehicle_id: int) -> None:
        self.invalidate([self.reminders_key(vehicle_id)])


_entity_cache: Optional[EntityCache] = None


def get_entity_cache() -> EntityCache:
    """FastAPI dependency returning the shared entity cache."""
    global _entity_cache
    if _entity_cache is None:
        _entity_cache = EntityCache()
    return _entity_cache
