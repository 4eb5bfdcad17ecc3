from urllib.parse import parse_qsl, urlsplit

from flask import Blueprint, abort, redirect, render_template, request, url_for

from .callbacks import normalize_callback, read_reference
from .guard import PROTECTED_STEPS
from .params import get_url_parameters, merge_step_data
from .services import ROUTES_BY_SEGMENT, SERVICE_ROUTES
from .state import get_booking_store

checkout_bp = Blueprint("checkout", __name__)


def _is_current_url(target: str, params: dict) -> bool:
    parts = urlsplit(target)
    return parts.path == request.path and dict(parse_qsl(parts.query)) == params


def render_step(route, step, entity_id, data, has_stored_data):
    next_step = route.next_step(step)
    return render_template(
        "step.html",
        route=route,
        step=step,
        entity_id=entity_id,
        data=data,
        step_number=route.steps.index(step) + 1,
        next_url=step_url(route, next_step, entity_id) if next_step else None,
        # payment/success pages show their own notice instead of being blocked
        missing_data=step in PROTECTED_STEPS and not has_stored_data,
    )


def step_url(route, step, entity_id=None) -> str:
    values = {"step": step}
    if route.has_entity:
        values["entity_id"] = entity_id
    return url_for(f"checkout.step_{route.endpoint_suffix}", **values)


def step_page(segment, step, entity_id=None):
    route = ROUTES_BY_SEGMENT[segment]
    if step not in route.steps:
        abort(404)

    params = get_url_parameters()

    # gateway landed on a legacy success url
    if step == "success" and read_reference(params):
        target = normalize_callback(route.service, params, entity_id)
        if not _is_current_url(target, params):
            return redirect(target, code=303)

    store = get_booking_store()

    if request.method == "POST":
        store.store_data(route.service, step, request.form.to_dict())
        if entity_id:
            store.store_data(route.service, "entityId", entity_id)
        next_step = route.next_step(step) or step
        return redirect(step_url(route, next_step, entity_id), code=303)

    stored = store.get_search_data(route.service)
    data = merge_step_data(params, stored)
    return render_step(route, step, entity_id, data, bool(stored))


# gateway return without an entity id, e.g. /hotels/success?reference=...
def entity_free_success(segment):
    route = ROUTES_BY_SEGMENT[segment]
    return redirect(normalize_callback(route.service, get_url_parameters()), code=303)


for _route in SERVICE_ROUTES.values():
    if not _route.steps:
        continue
    if _route.has_entity:
        rule = f"/{_route.segment}/<entity_id>/<step>"
        checkout_bp.add_url_rule(
            f"/{_route.segment}/success",
            endpoint=f"success_{_route.endpoint_suffix}",
            view_func=entity_free_success,
            defaults={"segment": _route.segment},
        )
    else:
        rule = f"/{_route.segment}/<step>"
    checkout_bp.add_url_rule(
        rule,
        endpoint=f"step_{_route.endpoint_suffix}",
        view_func=step_page,
        defaults={"segment": _route.segment},
        methods=["GET", "POST"],
    )
