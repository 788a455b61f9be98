"""Subscribable store for the signed-in session."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Server-issued credentials plus what we know about the user."""

    token: str | None = None
    email: str | None = None
    full_name: str | None = None
    user_id: str | None = None
    verified_email: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


Listener = Callable[[Session], None]


class SessionStore:
    """Owns the current Session and tells listeners when it changes.

    Login calls start(), logout calls end(). Both notify every subscribed
    listener with the new session. When a path is given the session is also
    written to disk so a later process can pick it up.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = Path(path) if path else None
        self._listeners: list[Listener] = []
        self._session = self._load()

    @property
    def current(self) -> Session:
        return self._session

    @property
    def token(self) -> str | None:
        return self._session.token

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self, session: Session) -> None:
        """Begin a session after a successful login."""
        self._set(session)

    def end(self) -> None:
        """End the session, forgetting the token and any verified email."""
        self._set(Session())

    def mark_verified(self, email: str) -> None:
        """Remember the email that passed a share OTP check."""
        self._set(replace(self._session, verified_email=email))

    def _set(self, session: Session) -> None:
        self._session = session
        self._save()
        for listener in list(self._listeners):
            listener(session)

    def _load(self) -> Session:
        if not self._path or not self._path.exists():
            return Session()
        try:
            data = json.loads(self._path.read_text())
            fields = {k: data.get(k) for k in Session.__dataclass_fields__}
            return Session(**fields)
        except Exception as e:
            logger.warning(f"Failed to load session from {self._path}: {e}")
            return Session()

    def _save(self) -> None:
        if not self._path:
            return
        try:
            if self._session == Session():
                self._path.unlink(missing_ok=True)
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            payload = asdict(self._session)
            payload["updated_at"] = datetime.now(timezone.utc).isoformat()
            self._path.write_text(json.dumps(payload, indent=2))
        except Exception as e:
            logger.warning(f"Failed to save session: {e}")
