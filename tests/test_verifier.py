import asyncio
import threading

import pytest

from travelplace.callbacks import CanonicalCallback
from travelplace.services import ServiceType
from travelplace.verifier import (
    Failed,
    FailureReason,
    PaymentVerifier,
    Succeeded,
    VerificationRaised,
    VerificationResolved,
    Verifying,
    start,
    transition,
)


class Page:
    """Records what the verifier asks the hosting page to do."""

    def __init__(self):
        self.navigations = []
        self.notifications = []

    def navigate(self, url, replace=False):
        self.navigations.append((url, replace))

    def notify(self, reason):
        self.notifications.append(reason)


def make_verifier(page, verify):
    return PaymentVerifier(verify=verify, navigate=page.navigate, notify=page.notify)


FLIGHT = CanonicalCallback(ServiceType.FLIGHT, "TTP-FL-1")


def test_success_navigates_once_to_confirmation():
    page = Page()
    calls = []

    def verify(reference):
        calls.append(reference)
        return {"status": "success"}

    state = asyncio.run(make_verifier(page, verify).run(FLIGHT))

    assert isinstance(state, Succeeded)
    assert calls == ["TTP-FL-1"]
    assert page.navigations == [("/success?service=flight&reference=TTP-FL-1", True)]
    assert page.notifications == []


def test_async_collaborator_is_awaited():
    page = Page()

    async def verify(reference):
        await asyncio.sleep(0)
        return {"status": "success", "reference": reference}

    state = asyncio.run(make_verifier(page, verify).run(FLIGHT))
    assert isinstance(state, Succeeded)
    assert len(page.navigations) == 1


def test_hotel_success_uses_entity_route():
    page = Page()
    callback = CanonicalCallback(ServiceType.HOTEL, "R1", "H7")
    asyncio.run(make_verifier(page, lambda ref: {"status": "success"}).run(callback))
    assert page.navigations == [("/hotels/H7/success?reference=R1", True)]


def test_collaborator_error_fails_with_one_notification():
    page = Page()

    def verify(reference):
        raise ConnectionError("backend down")

    state = asyncio.run(make_verifier(page, verify).run(FLIGHT))

    assert isinstance(state, Failed)
    assert state.reason is FailureReason.VERIFICATION_ERROR
    assert page.notifications == [FailureReason.VERIFICATION_ERROR]
    assert page.navigations == [("/flights", True)]


@pytest.mark.parametrize("result", [{"status": "failed"}, {"status": "pending"}, {"status": "SUCCESS"}, {}, None, "success"])
def test_anything_but_success_is_rejected(result):
    page = Page()
    state = asyncio.run(make_verifier(page, lambda ref: result).run(FLIGHT))
    assert isinstance(state, Failed)
    assert state.reason is FailureReason.VERIFICATION_REJECTED
    assert page.notifications == [FailureReason.VERIFICATION_REJECTED]
    assert page.navigations == [("/flights", True)]


def test_missing_reference_never_calls_collaborator():
    page = Page()
    calls = []
    callback = CanonicalCallback(ServiceType.CAR_HIRE, None)

    state = asyncio.run(make_verifier(page, calls.append).run(callback))

    assert isinstance(state, Failed)
    assert state.reason is FailureReason.MISSING_REFERENCE
    assert calls == []
    assert page.notifications == [FailureReason.MISSING_REFERENCE]
    assert page.navigations == [("/car-hire", True)]


def test_unmount_while_pending_discards_result():
    page = Page()

    async def scenario():
        pending = asyncio.get_running_loop().create_future()
        verifier = make_verifier(page, lambda ref: pending)
        task = asyncio.create_task(verifier.run(FLIGHT))
        await asyncio.sleep(0)
        assert isinstance(verifier.state, Verifying)

        verifier.unmount()
        pending.set_result({"status": "success"})
        return await task

    state = asyncio.run(scenario())

    assert isinstance(state, Succeeded)
    assert page.navigations == []
    assert page.notifications == []


def test_unmount_before_failure_suppresses_notification():
    page = Page()

    async def scenario():
        pending = asyncio.get_running_loop().create_future()
        verifier = make_verifier(page, lambda ref: pending)
        task = asyncio.create_task(verifier.run(FLIGHT))
        await asyncio.sleep(0)
        verifier.unmount()
        pending.set_exception(TimeoutError())
        return await task

    state = asyncio.run(scenario())
    assert state.reason is FailureReason.VERIFICATION_ERROR
    assert page.notifications == []
    assert page.navigations == []


def test_cancelled_task_has_no_side_effects():
    page = Page()

    async def scenario():
        pending = asyncio.get_running_loop().create_future()
        verifier = make_verifier(page, lambda ref: pending)
        task = asyncio.create_task(verifier.run(FLIGHT))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return verifier

    verifier = asyncio.run(scenario())
    assert verifier.mounted is False
    assert page.navigations == []


def test_run_does_not_verify_twice():
    page = Page()
    calls = []

    def verify(reference):
        calls.append(reference)
        return {"status": "success"}

    async def scenario():
        verifier = make_verifier(page, verify)
        first = await verifier.run(FLIGHT)
        second = await verifier.run(FLIGHT)
        return first, second

    first, second = asyncio.run(scenario())
    assert first is second
    assert calls == ["TTP-FL-1"]
    assert len(page.navigations) == 1


def test_start_state():
    assert start(FLIGHT) == Verifying(FLIGHT)
    missing = CanonicalCallback(ServiceType.FLIGHT, None)
    assert start(missing) == Failed(missing, FailureReason.MISSING_REFERENCE)


def test_terminal_states_absorb_events():
    done = Succeeded(FLIGHT, "/success?service=flight&reference=TTP-FL-1")
    failed = Failed(FLIGHT, FailureReason.VERIFICATION_REJECTED)
    assert transition(done, VerificationRaised(RuntimeError())) is done
    assert transition(failed, VerificationResolved({"status": "success"})) is failed


def test_transition_from_verifying():
    state = Verifying(FLIGHT)
    assert transition(state, VerificationResolved({"status": "success"})) == Succeeded(
        FLIGHT, "/success?service=flight&reference=TTP-FL-1"
    )
    assert transition(state, VerificationResolved({"status": "failed"})) == Failed(
        FLIGHT, FailureReason.VERIFICATION_REJECTED, "failed"
    )
    assert transition(state, VerificationRaised(RuntimeError("boom"))) == Failed(
        FLIGHT, FailureReason.VERIFICATION_ERROR, "boom"
    )


def test_sync_collaborator_runs_off_the_event_loop_thread():
    page = Page()
    threads = []

    def verify(reference):
        threads.append(threading.get_ident())
        return {"status": "success"}

    async def scenario():
        state = await make_verifier(page, verify).run(FLIGHT)
        return state, threading.get_ident()

    state, loop_thread = asyncio.run(scenario())
    assert isinstance(state, Succeeded)
    assert threads and threads[0] != loop_thread


def test_cancel_during_blocking_call_has_no_side_effects():
    page = Page()
    entered = threading.Event()
    release = threading.Event()

    def verify(reference):
        entered.set()
        release.wait(5)
        return {"status": "success"}

    async def scenario():
        verifier = make_verifier(page, verify)
        task = asyncio.create_task(verifier.run(FLIGHT))
        while not entered.is_set():
            await asyncio.sleep(0.01)
        task.cancel()
        try:
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            release.set()
        return verifier

    verifier = asyncio.run(scenario())
    assert verifier.mounted is False
    assert page.navigations == []
    assert page.notifications == []
