"""Special-role reconciliation between the main server and the users table."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum

from loguru import logger

from staffbot.storage.store import ListingStore


class SpecialRole(str, Enum):
    BUG_HUNTER = "bug_hunters"


type MemberSource = Callable[[], Awaitable[Iterable[str] | None]]


def spec_role_sync(
    store: ListingStore,
    member_ids: Iterable[str],
    *,
    role: SpecialRole = SpecialRole.BUG_HUNTER,
) -> int:
    """Reset ``role`` for every user, then set it for ``member_ids``.

    Runs in one transaction. Returns the number of users flagged.
    """
    column = role.value
    ids = sorted({str(uid).strip() for uid in member_ids if str(uid).strip()})
    with store.transaction() as tx:
        tx.execute(f"UPDATE users SET {column} = 0")
        flagged = 0
        for uid in ids:
            cur = tx.execute(f"UPDATE users SET {column} = 1 WHERE user_id = ?", (uid,))
            flagged += int(cur.rowcount or 0)
    logger.info("role sync: {} users hold {}", flagged, column)
    return flagged


class RoleSyncTask:
    """Periodic reconciliation driven by a member source (the gateway cache)."""

    def __init__(self, store: ListingStore, source: MemberSource, *, interval_s: float) -> None:
        self._store = store
        self._source = source
        self._interval_s = interval_s
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="role-sync")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run_once(self) -> int | None:
        members = await self._source()
        if members is None:
            return None
        try:
            return await asyncio.to_thread(spec_role_sync, self._store, list(members))
        except sqlite3.Error as e:
            logger.error("role sync failed: {}", e)
            return None

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval_s)
