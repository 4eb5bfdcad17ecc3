from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ServiceType(str, Enum):
    FLIGHT = "flight"
    HOTEL = "hotel"
    CAR_HIRE = "car-hire"
    VISA = "visa"
    VISA_APPLICATION = "visa-application"
    TRAVEL_INSURANCE = "travel-insurance"
    PACKAGE = "package"


@dataclass(frozen=True)
class ServiceRoute:
    service: ServiceType
    segment: str
    display_name: str
    has_entity: bool
    steps: Tuple[str, ...]
    verify_endpoint: str

    @property
    def endpoint_suffix(self) -> str:
        return self.service.name.lower()

    @property
    def listing_path(self) -> str:
        return f"/{self.segment}"

    def step_path(self, step: str, entity_id: Optional[str] = None) -> str:
        if self.has_entity:
            return f"/{self.segment}/{entity_id}/{step}"
        return f"/{self.segment}/{step}"

    def next_step(self, step: str) -> Optional[str]:
        if step not in self.steps:
            return None
        idx = self.steps.index(step)
        if idx + 1 < len(self.steps):
            return self.steps[idx + 1]
        return None


SERVICE_ROUTES = {
    ServiceType.FLIGHT: ServiceRoute(
        ServiceType.FLIGHT, "flights", "Flight Booking", False,
        ("passenger-info", "payment", "success"),
        "/products/flights/verify-payment",
    ),
    ServiceType.HOTEL: ServiceRoute(
        ServiceType.HOTEL, "hotels", "Hotel Booking", True,
        ("guests", "payment", "success"),
        "/products/hotels/verify-payment",
    ),
    ServiceType.CAR_HIRE: ServiceRoute(
        ServiceType.CAR_HIRE, "car-hire", "Car Rental", True,
        ("contact", "payment", "success"),
        "/car-hire/verify-payment",
    ),
    ServiceType.VISA: ServiceRoute(
        ServiceType.VISA, "visa", "Visa Assistance", False,
        (),
        "/products/visa/verify-payment",
    ),
    ServiceType.VISA_APPLICATION: ServiceRoute(
        ServiceType.VISA_APPLICATION, "visa-application", "Visa Application", False,
        ("personal", "passport", "appointment", "review", "payment", "success"),
        "/products/visa/verify-payment",
    ),
    ServiceType.TRAVEL_INSURANCE: ServiceRoute(
        ServiceType.TRAVEL_INSURANCE, "travel-insurance", "Travel Insurance", False,
        ("details", "travelers", "review", "payment", "success"),
        "/products/travel-insurance/verify-payment",
    ),
    ServiceType.PACKAGE: ServiceRoute(
        ServiceType.PACKAGE, "packages", "Travel Package", True,
        ("purchase", "success"),
        "/products/packages/verify-payment",
    ),
}

ROUTES_BY_SEGMENT = {route.segment: route for route in SERVICE_ROUTES.values()}

# legacy names still sent by older gateway return URLs
SERVICE_ALIASES = {"insurance": ServiceType.TRAVEL_INSURANCE}


def parse_service(raw: Optional[str]) -> Optional[ServiceType]:
    """Accept the enum value, the URL segment or a legacy alias."""
    if not raw:
        return None
    name = raw.strip().lower()
    try:
        return ServiceType(name)
    except ValueError:
        pass
    route = ROUTES_BY_SEGMENT.get(name)
    if route:
        return route.service
    return SERVICE_ALIASES.get(name)


def route_for(service: ServiceType) -> ServiceRoute:
    return SERVICE_ROUTES[service]
