import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from .callbacks import CanonicalCallback, confirmation_url
from .services import route_for

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "success"


class FailureReason(str, Enum):
    MISSING_REFERENCE = "MissingReference"
    VERIFICATION_REJECTED = "VerificationRejected"
    VERIFICATION_ERROR = "VerificationError"


@dataclass(frozen=True)
class Verifying:
    callback: CanonicalCallback


@dataclass(frozen=True)
class Succeeded:
    callback: CanonicalCallback
    target: str


@dataclass(frozen=True)
class Failed:
    callback: CanonicalCallback
    reason: FailureReason
    detail: Optional[str] = None


VerificationState = Union[Verifying, Succeeded, Failed]


@dataclass(frozen=True)
class VerificationResolved:
    result: Any


@dataclass(frozen=True)
class VerificationRaised:
    error: BaseException


VerificationEvent = Union[VerificationResolved, VerificationRaised]


def is_terminal(state: VerificationState) -> bool:
    return isinstance(state, (Succeeded, Failed))


def is_success(result: Any) -> bool:
    return isinstance(result, Mapping) and result.get("status") == SUCCESS_STATUS


def start(callback: CanonicalCallback) -> VerificationState:
    if not callback.reference:
        return Failed(callback, FailureReason.MISSING_REFERENCE)
    return Verifying(callback)


def transition(state: VerificationState, event: VerificationEvent) -> VerificationState:
    """Single step of the machine; terminal states absorb every event."""
    if is_terminal(state):
        return state
    callback = state.callback
    if isinstance(event, VerificationRaised):
        return Failed(callback, FailureReason.VERIFICATION_ERROR, str(event.error) or None)
    if is_success(event.result):
        return Succeeded(callback, confirmation_url(callback))
    status = event.result.get("status") if isinstance(event.result, Mapping) else None
    return Failed(callback, FailureReason.VERIFICATION_REJECTED, status)


class PaymentVerifier:
    """
    Verify-then-navigate for one payment reference.

    ``verify(reference)`` may return the result or an awaitable of it.
    ``navigate(url, replace=True)`` and ``notify(reason)`` are the page effects;
    neither fires once the page has been unmounted.
    """

    def __init__(
        self,
        verify: Callable[[str], Any],
        navigate: Callable[..., None],
        notify: Callable[[FailureReason], None],
    ) -> None:
        self.verify = verify
        self.navigate = navigate
        self.notify = notify
        self.state: Optional[VerificationState] = None
        self.mounted = True

    def unmount(self) -> None:
        self.mounted = False

    async def run(self, callback: CanonicalCallback) -> VerificationState:
        if self.state is not None:
            return self.state

        self.state = start(callback)
        if isinstance(self.state, Verifying):
            logger.info("Verifying %s payment %s", callback.service.value, callback.reference)
            try:
                if inspect.iscoroutinefunction(self.verify):
                    result = await self.verify(callback.reference)
                else:
                    # sync collaborators (requests) run on a worker thread
                    result = await asyncio.to_thread(self.verify, callback.reference)
                if inspect.isawaitable(result):
                    result = await result
                event = VerificationResolved(result)
            except asyncio.CancelledError:
                self.unmount()
                raise
            except Exception as exc:
                logger.warning("Payment verification for %s failed: %s", callback.reference, exc)
                event = VerificationRaised(exc)
            self.state = transition(self.state, event)

        if not self.mounted:
            logger.info("Discarding verification result for %s after unmount", callback.reference)
            return self.state

        self._apply(self.state)
        return self.state

    def _apply(self, state: VerificationState) -> None:
        if isinstance(state, Succeeded):
            logger.info("Payment %s confirmed", state.callback.reference)
            self.navigate(state.target, replace=True)
            return
        logger.info("Payment verification ended with %s", state.reason.value)
        self.notify(state.reason)
        self.navigate(route_for(state.callback.service).listing_path, replace=True)
