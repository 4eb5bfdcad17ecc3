import json
import logging
import time
from typing import Any, Callable, Dict, Optional

from flask import current_app

from .services import ServiceType
from .storage import CookieSessionStorage, KeyValueStorage

logger = logging.getLogger(__name__)

SEARCH_KEY_PREFIX = "travelplace_search_"
LAST_SEARCH_KEY = "travelplace_last_search"
DEFAULT_TTL_HOURS = 24


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """
    Per-service booking data with a freshness window.

    Every record is ``{"timestamp", "serviceType", "data"}``; ``data`` is the
    step mapping. Stale records are ignored on read but left in place.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.storage = storage
        self.ttl_ms = int(ttl_hours * 60 * 60 * 1000)
        self.clock = clock

    @staticmethod
    def key_for(service: ServiceType) -> str:
        return f"{SEARCH_KEY_PREFIX}{ServiceType(service).value}"

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self.storage.get(key)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable booking record %s", key)
            return None
        if not isinstance(record, dict) or not isinstance(record.get("timestamp"), (int, float)):
            logger.warning("Discarding malformed booking record %s", key)
            return None
        return record

    def _is_fresh(self, record: Dict[str, Any]) -> bool:
        return self.clock() - record["timestamp"] < self.ttl_ms

    def save_search_data(self, service: ServiceType, data: Any) -> None:
        service = ServiceType(service)
        record = {
            "timestamp": self.clock(),
            "serviceType": service.value,
            "data": data,
        }
        payload = json.dumps(record)
        self.storage.set(self.key_for(service), payload)
        self.storage.set(LAST_SEARCH_KEY, payload)

    def get_search_data(self, service: ServiceType) -> Optional[Any]:
        record = self._read(self.key_for(service))
        if record is None or not self._is_fresh(record):
            return None
        return record.get("data")

    def get_last_search(self) -> Optional[Dict[str, Any]]:
        # no expiry on the cross-service record
        return self._read(LAST_SEARCH_KEY)

    def get_stored_data(self, service: ServiceType, key: str) -> Optional[Any]:
        data = self.get_search_data(service)
        if not isinstance(data, dict):
            return None
        return data.get(key)

    def store_data(self, service: ServiceType, key: str, value: Any) -> Dict[str, Any]:
        """Merge one step key into the service record, keeping its siblings."""
        data = self.get_search_data(service)
        merged = dict(data) if isinstance(data, dict) else {}
        merged[key] = value
        self.save_search_data(service, merged)
        return merged


def get_booking_store() -> SessionStore:
    """Store bound to the current request's cookie session."""
    return SessionStore(
        CookieSessionStorage(),
        ttl_hours=current_app.config.get("BOOKING_TTL_HOURS", DEFAULT_TTL_HOURS),
    )
