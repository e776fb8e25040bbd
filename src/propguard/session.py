"""Subject session — owns the current evaluator.

The subject is loaded asynchronously (login, app start, refresh after a
grant change). Until it settles the session exposes an *unresolved*
evaluator that denies everything, so nothing permission-sensitive can
run or render against a half-loaded user.

Replacement is a single reference swap: readers see either the old
evaluator or the new one, never a mix. Loads are serialized.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import ValidationError

from .config import EngineConfig
from .exceptions import SessionError
from .logging import safe_preview
from .permissions.evaluator import PermissionEvaluator
from .subject import Subject

logger = logging.getLogger(__name__)

Listener = Callable[[PermissionEvaluator], None]


class SessionState(str, Enum):
    """Lifecycle of a subject session."""

    LOADING = "loading"
    READY = "ready"
    ANONYMOUS = "anonymous"


class SubjectSession:
    """Holds the signed-in subject and the evaluator built from it.

    Args:
        fetch_subject: Async callable returning the backend user payload,
            or None when nobody is signed in.
        config: Engine config (bypass role).

    Example::

        session = SubjectSession(api.get_me)
        await session.load()
        if session.evaluator.can("rooms", "add", building_id):
            ...
    """

    def __init__(
        self,
        fetch_subject: Callable[[], Any],
        *,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self._fetch_subject = fetch_subject
        self._config = config or EngineConfig()
        self._state = SessionState.LOADING
        self._evaluator = self._build(None)
        self._lock = asyncio.Lock()
        self._settled = asyncio.Event()
        self._listeners: list[Listener] = []

    # ── Read side ──

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def evaluator(self) -> PermissionEvaluator:
        """Current evaluator (unresolved while loading or signed out)."""
        return self._evaluator

    @property
    def subject(self) -> Subject | None:
        return self._evaluator.subject

    @property
    def resolved(self) -> bool:
        return self._evaluator.resolved

    async def wait_resolved(self) -> PermissionEvaluator:
        """Wait until the first load settles (ready or anonymous)."""
        await self._settled.wait()
        return self._evaluator

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new evaluator after every replacement.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Write side ──

    async def load(self) -> PermissionEvaluator:
        """Fetch the subject and install it.

        Raises:
            SessionError: If fetching fails. The session becomes anonymous.
        """
        async with self._lock:
            try:
                subject = await self._fetch()
            except SessionError:
                self._replace(None)
                raise
            self._replace(subject)
            return self._evaluator

    async def refresh(self) -> PermissionEvaluator:
        """Re-fetch the subject (e.g. after an admin changed grants).

        Raises:
            SessionError: If fetching fails. The previous subject is kept.
        """
        async with self._lock:
            subject = await self._fetch()
            self._replace(subject)
            return self._evaluator

    async def clear(self) -> None:
        """Sign out: drop the subject and deny everything."""
        async with self._lock:
            self._replace(None)

    # ── Internals ──

    def _build(self, subject: Subject | None) -> PermissionEvaluator:
        return PermissionEvaluator(subject, bypass_role=self._config.bypass_role)

    async def _fetch(self) -> Subject | None:
        try:
            payload = await self._fetch_subject()
        except Exception as e:
            logger.warning("Subject fetch failed: %s", e)
            raise SessionError(f"Failed to load subject: {e}") from e

        if payload is None:
            return None
        if not isinstance(payload, Mapping):
            raise SessionError(
                "Subject payload must be a mapping",
                payload=safe_preview(payload),
            )
        try:
            return Subject.from_payload(payload)
        except ValidationError as e:
            raise SessionError(f"Invalid subject payload: {e}", payload=safe_preview(payload)) from e

    def _replace(self, subject: Subject | None) -> None:
        evaluator = self._build(subject)
        self._evaluator = evaluator
        self._state = SessionState.READY if subject is not None else SessionState.ANONYMOUS
        self._settled.set()

        if subject is None:
            logger.info("Session is anonymous")
        else:
            logger.info(
                "Subject loaded: id=%s role=%s scopes=%s",
                subject.id,
                subject.role or "-",
                safe_preview(sorted(subject.permissions)),
            )

        for listener in list(self._listeners):
            try:
                listener(evaluator)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    def __repr__(self) -> str:
        return f"SubjectSession(state={self._state.value!r}, evaluator={self._evaluator!r})"


__all__ = [
    "SessionState",
    "SubjectSession",
]
