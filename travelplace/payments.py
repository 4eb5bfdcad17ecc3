import logging
from functools import partial

from flask import Blueprint, current_app, redirect, render_template
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .backend import PaymentBackend
from .callbacks import confirmation_url, normalize_callback, read_callback, read_reference
from .models import PaymentAttempt
from .notifications import notify_payment_failure
from .params import get_url_parameters
from .services import ROUTES_BY_SEGMENT, SERVICE_ROUTES, ServiceType, parse_service, route_for
from .state import get_booking_store
from .verifier import Failed, PaymentVerifier, Succeeded

logger = logging.getLogger(__name__)

payments = Blueprint("payments", __name__)


def _verify_function(service: ServiceType):
    custom = current_app.config.get("PAYMENT_VERIFIER")
    if custom is not None:
        return partial(custom, service)
    backend = PaymentBackend(
        current_app.config["BACKEND_API_URL"],
        timeout=current_app.config["BACKEND_TIMEOUT"],
    )
    return partial(backend.verify_payment, service)


def _record_attempt(state) -> None:
    callback = state.callback
    if not callback.reference:
        return
    attempt = PaymentAttempt(
        reference=callback.reference,
        service=callback.service.value,
        entity_id=callback.entity_id,
        outcome="succeeded" if isinstance(state, Succeeded) else "failed",
        reason=state.reason.value if isinstance(state, Failed) else None,
    )
    try:
        db.session.add(attempt)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not record payment attempt %s", callback.reference)


def _already_confirmed(callback) -> bool:
    if not callback.reference:
        return False
    try:
        return PaymentAttempt.confirmed(callback.service.value, callback.reference) is not None
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not read payment ledger for %s", callback.reference)
        return False


# gateway return that only needs the canonical confirmation url
def payment_callback(segment: str):
    route = ROUTES_BY_SEGMENT[segment]
    return redirect(normalize_callback(route.service, get_url_parameters()), code=303)


async def payment_verify(segment: str):
    route = ROUTES_BY_SEGMENT[segment]
    callback = read_callback(route.service, get_url_parameters())

    # a confirmed reference is never verified twice
    if _already_confirmed(callback):
        logger.info("Payment %s already confirmed, skipping verification", callback.reference)
        return redirect(confirmation_url(callback), code=303)

    targets = []
    verifier = PaymentVerifier(
        verify=_verify_function(route.service),
        navigate=lambda url, replace=True: targets.append(url),
        notify=notify_payment_failure,
    )
    state = await verifier.run(callback)
    # the ledger never overrides the navigation already decided
    _record_attempt(state)
    return redirect(targets[-1], code=303)


for _route in SERVICE_ROUTES.values():
    _name = _route.endpoint_suffix
    payments.add_url_rule(
        f"/{_route.segment}/payment/callback",
        endpoint=f"callback_{_name}",
        view_func=payment_callback,
        defaults={"segment": _route.segment},
    )
    payments.add_url_rule(
        f"/{_route.segment}/payment/verify",
        endpoint=f"verify_{_name}",
        view_func=payment_verify,
        defaults={"segment": _route.segment},
    )


@payments.route("/success")
def success():
    params = get_url_parameters()
    service = parse_service(params.get("service"))
    route = route_for(service) if service else None
    booking = get_booking_store().get_search_data(service) if service else None
    return render_template(
        "success.html",
        route=route,
        reference=read_reference(params),
        booking=booking if isinstance(booking, dict) else {},
    )


payments_bp = payments
