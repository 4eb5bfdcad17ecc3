from flask import Blueprint, flash, redirect, render_template, request, url_for

from .guard import is_valid_entity_id
from .params import get_url_parameters, merge_step_data
from .services import ROUTES_BY_SEGMENT, SERVICE_ROUTES
from .state import get_booking_store

search_bp = Blueprint("search", __name__)


def listing_url(route) -> str:
    return url_for(f"search.listing_{route.endpoint_suffix}")


# listing page of one service, prefilled from the url and the last saved search
def listing(segment: str):
    route = ROUTES_BY_SEGMENT[segment]
    store = get_booking_store()

    if request.method == "POST":
        criteria = {k: v.strip() for k, v in request.form.items()}
        store.save_search_data(route.service, criteria)

        if not route.steps:
            flash("Search saved.", "info")
            return redirect(listing_url(route))
        if route.has_entity:
            entity_id = criteria.get("entity_id") or ""
            if not is_valid_entity_id(entity_id):
                flash("Please pick an option to continue.", "warning")
                return redirect(listing_url(route))
            return redirect(url_for(f"checkout.step_{route.endpoint_suffix}", entity_id=entity_id, step=route.steps[0]))
        return redirect(url_for(f"checkout.step_{route.endpoint_suffix}", step=route.steps[0]))

    criteria = merge_step_data(get_url_parameters(), store.get_search_data(route.service))
    return render_template("listing.html", route=route, criteria=criteria)


for _route in SERVICE_ROUTES.values():
    search_bp.add_url_rule(
        f"/{_route.segment}",
        endpoint=f"listing_{_route.endpoint_suffix}",
        view_func=listing,
        defaults={"segment": _route.segment},
        methods=["GET", "POST"],
    )
