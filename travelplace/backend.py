from typing import Any, Dict

import requests

from .services import ServiceType, route_for


class BackendError(Exception):
    """The booking backend answered, but not with a usable result."""


class PaymentBackend:
    def __init__(self, base_url: str, timeout: float = 30) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def verify_payment(self, service: ServiceType, reference: str) -> Dict[str, Any]:
        endpoint = route_for(ServiceType(service)).verify_endpoint
        r = requests.post(
            f"{self.base_url}{endpoint}",
            json={"reference": reference},
            timeout=self.timeout,
        )
        r.raise_for_status()
        try:
            body = r.json()
        except ValueError as exc:
            raise BackendError("verification response is not JSON") from exc

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise BackendError(message or "Failed to verify payment")
        return body.get("data") or {}
