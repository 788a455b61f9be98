"""Debounced "is this email registered?" checks where the latest request wins."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable
from typing import Protocol

from qrshare.models import AccessMode, EmailCheck

logger = logging.getLogger(__name__)

# Loose but practical.
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$", re.IGNORECASE)

DEFAULT_DELAY = 0.35


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip()))


def suggest_access(exists: bool | None, current: AccessMode) -> AccessMode:
    """Registered recipients get a private share, unknown ones a public link."""
    if exists is True:
        return "private"
    if exists is False:
        return "public"
    return current


class RequestSequencer:
    """Hands out increasing tickets; only the newest ticket is current."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = 0

    def issue(self) -> int:
        with self._lock:
            self._current += 1
            return self._current

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._current


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def timer_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class EmailExistenceChecker:
    """Tracks whether the email being typed belongs to a registered user.

    Each update() supersedes the previous one. Lookups run after a short
    debounce and their results are dropped unless they answer the most
    recent update, so responses arriving out of order never overwrite newer
    state.
    """

    def __init__(
        self,
        lookup: Callable[[str], bool],
        *,
        delay: float = DEFAULT_DELAY,
        scheduler: Scheduler = timer_scheduler,
        on_change: Callable[[EmailCheck], None] | None = None,
    ) -> None:
        self._lookup = lookup
        self._delay = delay
        self._scheduler = scheduler
        self._on_change = on_change
        self._sequencer = RequestSequencer()
        # Guards ticket checks together with the state they gate.
        self._lock = threading.RLock()
        self._pending: Cancellable | None = None
        self._state = EmailCheck()

    @property
    def state(self) -> EmailCheck:
        return self._state

    def update(self, raw: str) -> int | None:
        """Start checking a new value; returns its ticket, or None if skipped."""
        email = (raw or "").strip()
        with self._lock:
            self._cancel_pending()
            if not email or not is_valid_email(email):
                self._sequencer.issue()
                self._apply(EmailCheck(email=email))
                return None

            email = email.lower()
            ticket = self._sequencer.issue()
            self._apply(EmailCheck(email=email, checking=True))
            self._pending = self._scheduler(self._delay, lambda: self.resolve(ticket, email))
            return ticket

    def resolve(self, ticket: int, email: str) -> None:
        """Run the lookup for ticket and apply it if still current."""
        try:
            exists: bool | None = bool(self._lookup(email))
        except Exception as e:
            logger.debug(f"Email existence lookup failed for {email}: {e}")
            exists = None
        with self._lock:
            if not self._sequencer.is_current(ticket):
                logger.debug(f"Dropping stale email check #{ticket} for {email}")
                return
            self._apply(EmailCheck(email=email, exists=exists, checking=False))

    def cancel(self) -> None:
        """Abandon any pending check, e.g. when the form closes."""
        with self._lock:
            self._cancel_pending()
            self._sequencer.issue()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _apply(self, state: EmailCheck) -> None:
        self._state = state
        if self._on_change is not None:
            self._on_change(state)
