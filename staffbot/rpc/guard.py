"""Staff permission guard shared by every RPC front-end."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from loguru import logger

from staffbot.storage.store import ListingStore


class StaffGuard:
    """Decides whether a user may run RPC actions.

    A user is allowed when the listing store marks them as staff or when their
    id appears in the configured extra staff list. Store failures deny.
    """

    def __init__(self, store: ListingStore, *, extra_staff_ids: Iterable[str] = ()) -> None:
        self._store = store
        self._extra = frozenset(str(item).strip() for item in extra_staff_ids if str(item).strip())

    def authorize(self, user_id: str) -> bool:
        uid = (user_id or "").strip()
        if not uid:
            return False
        if uid in self._extra:
            return True
        try:
            return self._store.is_staff(uid)
        except sqlite3.Error as e:
            logger.error("staff lookup failed for {}: {}", uid, e)
            return False
