"""Tests for debounced, latest-request-wins email checks."""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest

from qrshare import EmailExistenceChecker, RequestSequencer
from qrshare.email_check import is_valid_email, suggest_access
from qrshare.models import EmailCheck


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeScheduler:
    """Collects scheduled callbacks so tests decide when they run."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


class TestEmailValidation:
    @pytest.mark.parametrize("value", ["a@b.co", "Jane.Doe@Example.COM", " x@y.org "])
    def test_valid(self, value: str) -> None:
        assert is_valid_email(value)

    @pytest.mark.parametrize("value", ["", "a@b", "a@b.c", "a b@c.com", "@b.com", "a@@b.com"])
    def test_invalid(self, value: str) -> None:
        assert not is_valid_email(value)

    def test_suggest_access(self) -> None:
        assert suggest_access(True, "public") == "private"
        assert suggest_access(False, "private") == "public"
        assert suggest_access(None, "public") == "public"


class TestRequestSequencer:
    def test_only_latest_ticket_is_current(self) -> None:
        seq = RequestSequencer()
        first = seq.issue()
        second = seq.issue()

        assert not seq.is_current(first)
        assert seq.is_current(second)


class TestEmailExistenceChecker:
    def test_debounced_lookup(self, scheduler: FakeScheduler) -> None:
        lookups: list[str] = []
        checker = EmailExistenceChecker(
            lambda e: lookups.append(e) or True, delay=0.5, scheduler=scheduler
        )

        ticket = checker.update("Bob@Example.com")

        assert ticket is not None
        assert checker.state == EmailCheck(email="bob@example.com", checking=True)
        assert lookups == []
        assert scheduler.timers[0].delay == 0.5

        scheduler.timers[0].fire()

        assert lookups == ["bob@example.com"]
        assert checker.state == EmailCheck(email="bob@example.com", exists=True)

    def test_new_input_cancels_pending_check(self, scheduler: FakeScheduler) -> None:
        checker = EmailExistenceChecker(lambda e: True, scheduler=scheduler)

        checker.update("bob@example.com")
        checker.update("bobby@example.com")

        assert scheduler.timers[0].cancelled
        assert not scheduler.timers[1].cancelled

    def test_out_of_order_responses_keep_latest(self, scheduler: FakeScheduler) -> None:
        """A slow answer for an older email must not overwrite a newer one."""
        known = {"old@example.com": True, "new@example.com": False}
        checker = EmailExistenceChecker(known.__getitem__, scheduler=scheduler)

        old_ticket = checker.update("old@example.com")
        new_ticket = checker.update("new@example.com")
        assert old_ticket is not None and new_ticket is not None

        checker.resolve(new_ticket, "new@example.com")
        checker.resolve(old_ticket, "old@example.com")

        assert checker.state == EmailCheck(email="new@example.com", exists=False)

    def test_update_racing_a_resolve_wins(self, scheduler: FakeScheduler) -> None:
        """An update() arriving while a stale answer is being applied is not overwritten."""
        checker = EmailExistenceChecker(lambda e: True, scheduler=scheduler)
        ticket = checker.update("old@example.com")
        assert ticket is not None
        sequencer = checker._sequencer
        original_is_current = sequencer.is_current
        racer = threading.Thread(target=checker.update, args=("new@example.com",))

        def is_current_then_race(t: int) -> bool:
            result = original_is_current(t)
            if racer.ident is None:
                racer.start()
                racer.join(timeout=0.2)
            return result

        sequencer.is_current = is_current_then_race  # type: ignore[method-assign]
        checker.resolve(ticket, "old@example.com")
        racer.join(timeout=5)

        assert not racer.is_alive()
        assert checker.state == EmailCheck(email="new@example.com", checking=True)

    def test_invalid_input_resets_state(self, scheduler: FakeScheduler) -> None:
        checker = EmailExistenceChecker(lambda e: True, scheduler=scheduler)
        ticket = checker.update("bob@example.com")
        assert ticket is not None

        assert checker.update("bob@") is None
        checker.resolve(ticket, "bob@example.com")

        assert checker.state == EmailCheck(email="bob@")
        assert len(scheduler.timers) == 1

    def test_empty_input(self, scheduler: FakeScheduler) -> None:
        checker = EmailExistenceChecker(lambda e: True, scheduler=scheduler)

        assert checker.update("   ") is None
        assert checker.state == EmailCheck()

    def test_lookup_failure_is_unknown(self, scheduler: FakeScheduler) -> None:
        def lookup(email: str) -> bool:
            raise ConnectionError("offline")

        checker = EmailExistenceChecker(lookup, scheduler=scheduler)
        checker.update("bob@example.com")
        scheduler.timers[0].fire()

        assert checker.state == EmailCheck(email="bob@example.com", exists=None)

    def test_on_change_receives_every_state(self, scheduler: FakeScheduler) -> None:
        states: list[EmailCheck] = []
        checker = EmailExistenceChecker(lambda e: False, scheduler=scheduler, on_change=states.append)

        checker.update("bob@example.com")
        scheduler.timers[0].fire()

        assert [s.checking for s in states] == [True, False]
        assert states[-1].exists is False

    def test_cancel_drops_in_flight_result(self, scheduler: FakeScheduler) -> None:
        checker = EmailExistenceChecker(lambda e: True, scheduler=scheduler)
        ticket = checker.update("bob@example.com")
        assert ticket is not None

        checker.cancel()
        checker.resolve(ticket, "bob@example.com")

        assert scheduler.timers[0].cancelled
        assert checker.state.exists is None

    def test_client_builds_checker(self, authed_client, patch_transport, scheduler) -> None:
        patch_transport.get_json.return_value = {"exists": True}
        checker = authed_client.email_checker(scheduler=scheduler)

        checker.update("bob@example.com")
        scheduler.timers[0].fire()

        assert checker.state.exists is True
        patch_transport.get_json.assert_called_with(
            "/auth/exists", params={"email": "bob@example.com"}
        )
