"""Debounced draft cache for in-progress sessions."""

from __future__ import annotations

import asyncio
import logging

from liftcycle.core.exceptions import PersistenceError
from liftcycle.repositories.workout_repository import WorkoutRepository
from liftcycle.schemas.workout import WorkoutSession
from liftcycle.services.session_tracker import SessionTracker


logger = logging.getLogger(__name__)


class SessionAutosave:
    """
    Coalesces rapid session mutations into one draft write per template key.

    Every schedule() restarts the quiet window for that template; the draft is
    written once the window passes without another mutation. A failed write
    keeps the session pending so the next flush() retries it.
    """

    def __init__(self, repository: WorkoutRepository, debounce_seconds: float = 1.0):
        self._repository = repository
        self._debounce = debounce_seconds
        self._pending: dict[str, WorkoutSession] = {}
        self._timers: dict[str, asyncio.Task] = {}

    def attach(self, tracker: SessionTracker) -> None:
        tracker.add_listener("change", self.schedule)

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)

    def schedule(self, session: WorkoutSession) -> None:
        key = session.template_key
        self._pending[key] = session

        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._timers[key] = asyncio.get_running_loop().create_task(self._write_later(key))

    async def _write_later(self, key: str) -> None:
        await asyncio.sleep(self._debounce)
        # Past the quiet window: no longer cancellable by schedule() or flush()
        if self._timers.get(key) is asyncio.current_task():
            del self._timers[key]
        try:
            await self._write(key)
        except PersistenceError as e:
            logger.warning(f"Draft cache write for '{key}' failed, will retry: {e.message}")

    async def _write(self, key: str) -> None:
        session = self._pending.pop(key, None)
        if session is None:
            return
        try:
            await self._repository.save_draft(session)
        except PersistenceError:
            # Keep the newest version if another mutation arrived meanwhile
            self._pending.setdefault(key, session)
            raise
        logger.debug(f"Cached draft session for '{key}'")

    async def flush(self, template_key: str | None = None) -> None:
        """Write pending drafts now instead of waiting for the quiet window."""
        keys = [template_key] if template_key is not None else list(self._pending)
        for key in keys:
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            await self._write(key)

    def cancel(self, template_key: str) -> None:
        """Forget an unwritten draft without touching the stored one."""
        timer = self._timers.pop(template_key, None)
        if timer is not None:
            timer.cancel()
        self._pending.pop(template_key, None)

    async def discard(self, template_key: str) -> None:
        """Drop the cached draft once the session has been finalized."""
        self.cancel(template_key)
        await self._repository.delete_draft(template_key)

    async def close(self) -> None:
        await self.flush()
