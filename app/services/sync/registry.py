"""Tracks the in-flight sync task of each user.

At most one sync runs per user per process; a second request is
rejected, and a running sync can be cancelled by its owner. The latest
progress report of each user's sync is kept here too, so status reads can
show how far a run has got.
"""

import asyncio
import logging
import uuid as uuid_pkg
from collections.abc import Callable, Coroutine
from typing import Any

from app.services.sync.exceptions import SyncAlreadyRunningError
from app.services.sync.types import SyncProgress

logger = logging.getLogger(__name__)


class SyncRunRegistry:
    def __init__(self) -> None:
        self._tasks: dict[uuid_pkg.UUID, asyncio.Task[Any]] = {}
        self._progress: dict[uuid_pkg.UUID, SyncProgress] = {}

    def is_running(self, user_id: uuid_pkg.UUID) -> bool:
        task = self._tasks.get(user_id)
        return task is not None and not task.done()

    def start(
        self,
        user_id: uuid_pkg.UUID,
        coro: Coroutine[Any, Any, Any],
    ) -> asyncio.Task[Any]:
        """Schedule `coro` as the user's sync task.

        Raises:
            SyncAlreadyRunningError: the user already has a running sync
        """
        if self.is_running(user_id):
            coro.close()
            raise SyncAlreadyRunningError()

        self._progress.pop(user_id, None)
        task = asyncio.create_task(coro, name=f"sync:{user_id}")
        self._tasks[user_id] = task

        def _forget(finished: asyncio.Task[Any]) -> None:
            if self._tasks.get(user_id) is finished:
                del self._tasks[user_id]

        task.add_done_callback(_forget)
        return task

    def cancel(self, user_id: uuid_pkg.UUID) -> bool:
        """Request cancellation. Returns False when nothing is running."""
        task = self._tasks.get(user_id)
        if task is None or task.done():
            return False
        logger.info(f"Cancelling sync for user {user_id}")
        task.cancel()
        return True

    # ─────────────────────────────────────────────────────────────────────
    # Progress
    # ─────────────────────────────────────────────────────────────────────

    def record_progress(self, user_id: uuid_pkg.UUID, progress: SyncProgress) -> None:
        self._progress[user_id] = progress

    def progress_callback(self, user_id: uuid_pkg.UUID) -> Callable[[SyncProgress], None]:
        """Callback for the orchestrator that files each report under `user_id`."""

        def _record(progress: SyncProgress) -> None:
            self.record_progress(user_id, progress)

        return _record

    def get_progress(self, user_id: uuid_pkg.UUID) -> SyncProgress | None:
        """Latest report of the current or last finished sync, until the next one starts."""
        return self._progress.get(user_id)


sync_registry = SyncRunRegistry()
