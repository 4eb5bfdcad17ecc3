from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

from .guard import is_valid_entity_id
from .services import ServiceType, route_for

UNIVERSAL_SUCCESS_PATH = "/success"


@dataclass(frozen=True)
class CanonicalCallback:
    service: ServiceType
    reference: Optional[str] = None
    entity_id: Optional[str] = None


def read_reference(params: Mapping[str, str]) -> Optional[str]:
    """Gateways send either ``reference`` or ``trxref``; ``reference`` wins."""
    return params.get("reference") or params.get("trxref") or None


def read_callback(
    service: ServiceType,
    params: Mapping[str, str],
    entity_id: Optional[str] = None,
) -> CanonicalCallback:
    if entity_id is None:
        entity_id = params.get("hotelId") or None
    return CanonicalCallback(ServiceType(service), read_reference(params), entity_id)


def universal_success_url(callback: CanonicalCallback) -> str:
    query = {"service": callback.service.value}
    if callback.reference:
        query["reference"] = callback.reference
    return f"{UNIVERSAL_SUCCESS_PATH}?{urlencode(query)}"


def entity_success_url(callback: CanonicalCallback) -> str:
    # bad or missing ids fall back to the universal page
    if not is_valid_entity_id(callback.entity_id):
        return universal_success_url(callback)
    path = route_for(callback.service).step_path("success", callback.entity_id)
    if callback.reference:
        return f"{path}?{urlencode({'reference': callback.reference})}"
    return path


CONFIRMATION_ROUTES: Dict[ServiceType, Callable[[CanonicalCallback], str]] = {
    ServiceType.HOTEL: entity_success_url,
}


def confirmation_url(callback: CanonicalCallback) -> str:
    builder = CONFIRMATION_ROUTES.get(callback.service, universal_success_url)
    return builder(callback)


def normalize_callback(
    service: ServiceType,
    params: Mapping[str, str],
    entity_id: Optional[str] = None,
) -> str:
    """Where a gateway return for ``service`` should land."""
    return confirmation_url(read_callback(service, params, entity_id))
