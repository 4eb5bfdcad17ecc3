import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from flask import redirect, request

from .services import ROUTES_BY_SEGMENT

logger = logging.getLogger(__name__)

ENTITY_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")

PATH_ALIASES = {"/insurance": "/travel-insurance"}

# pages left to check their own prerequisite data
PROTECTED_STEPS = ("payment", "success")


@dataclass(frozen=True)
class StepPath:
    service_segment: str
    entity_id: Optional[str] = None
    step_name: Optional[str] = None


@dataclass(frozen=True)
class StepAccessDecision:
    allowed: bool
    redirect_to: Optional[str] = None


def is_valid_entity_id(entity_id: Optional[str]) -> bool:
    return bool(entity_id) and ENTITY_ID_RE.match(entity_id) is not None


def parse_checkout_path(path: str) -> Optional[StepPath]:
    """Split a checkout URL into service, entity id and step; None if not a service path."""
    segments = path.strip("/").split("/")
    route = ROUTES_BY_SEGMENT.get(segments[0])
    if route is None:
        return None
    rest = segments[1:]
    if route.has_entity:
        entity_id = rest[0] if len(rest) > 0 else None
        step_name = rest[1] if len(rest) > 1 else None
        return StepPath(route.segment, entity_id, step_name)
    return StepPath(route.segment, None, rest[0] if rest else None)


def check_step_access(step_path: StepPath) -> StepAccessDecision:
    """
    Only a malformed entity id is refused; it collapses to the listing page.
    Unknown step names go through so routing can answer them, and payment or
    success steps are never blocked on missing session data here.
    """
    if step_path.entity_id is not None and not is_valid_entity_id(step_path.entity_id):
        return StepAccessDecision(False, f"/{step_path.service_segment}")
    return StepAccessDecision(True)


def raw_request_path() -> str:
    """Path as the client sent it, so an encoded ``/`` stays inside its segment."""
    raw = request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI")
    if not raw:
        return request.path
    return urlsplit(raw).path or request.path


def guard_request():
    alias = PATH_ALIASES.get(request.path.rstrip("/") or "/")
    if alias:
        return redirect(alias)

    step_path = parse_checkout_path(raw_request_path())
    if step_path is None:
        return None
    decision = check_step_access(step_path)
    if not decision.allowed:
        logger.info("Malformed checkout id in %s, redirecting to %s", request.path, decision.redirect_to)
        return redirect(decision.redirect_to)
    return None
