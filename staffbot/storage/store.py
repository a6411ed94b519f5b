"""SQLite-backed listing store: bots, teams, users, votes and the RPC action log."""

from __future__ import annotations

import json
import secrets
import sqlite3
import string
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from staffbot.utils.helpers import ensure_dir, get_operational_data_path

BOT_TYPES = ("pending", "approved", "denied", "certified")


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ListingStore:
    """Listing database. Every mutation goes through :meth:`transaction`.

    Connections are opened per transaction so concurrent invocations never
    share a handle; SQLite provides the isolation.
    """

    def __init__(self, db_path: Path | None = None, *, busy_timeout_s: float = 30.0) -> None:
        self.db_path = db_path or (get_operational_data_path() / "listing.db")
        self.busy_timeout_s = busy_timeout_s
        ensure_dir(self.db_path.parent)
        self._create_schema()

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout_s, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside ``BEGIN IMMEDIATE``; commit on success, roll back on any error."""
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _create_schema(self) -> None:
        conn = self.connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    user_id TEXT PRIMARY KEY,
                    staff BOOLEAN NOT NULL DEFAULT 0,
                    admin BOOLEAN NOT NULL DEFAULT 0,
                    bug_hunters BOOLEAN NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS teams (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS bots (
                    bot_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    owner TEXT,
                    team_owner TEXT REFERENCES teams (id),
                    type TEXT NOT NULL DEFAULT 'pending',
                    claimed_by TEXT,
                    last_claimed TEXT,
                    votes INTEGER NOT NULL DEFAULT 0,
                    vote_banned BOOLEAN NOT NULL DEFAULT 0,
                    premium BOOLEAN NOT NULL DEFAULT 0,
                    start_premium_period TEXT,
                    premium_period_length INTEGER NOT NULL DEFAULT 0,
                    api_token TEXT,
                    webhook_url TEXT,
                    webhook_secret TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS votes (
                    bot_id TEXT NOT NULL REFERENCES bots (bot_id) ON DELETE CASCADE,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_votes_bot ON votes (bot_id);

                CREATE TABLE IF NOT EXISTS rpc_logs (
                    id TEXT PRIMARY KEY,
                    method TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_rpc_logs_created ON rpc_logs (created_at);
                """
            )
        finally:
            conn.close()

    # ── Reads ────────────────────────────────────────────────────────────

    def is_staff(self, user_id: str) -> bool:
        conn = self.connect()
        try:
            row = conn.execute("SELECT staff FROM users WHERE user_id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        return bool(row and row["staff"])

    def get_bot(self, bot_id: str) -> dict[str, Any] | None:
        return self._fetch_one("SELECT * FROM bots WHERE bot_id = ?", (bot_id,))

    def get_team(self, team_id: str) -> dict[str, Any] | None:
        return self._fetch_one("SELECT * FROM teams WHERE id = ?", (team_id,))

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        return self._fetch_one("SELECT * FROM users WHERE user_id = ?", (user_id,))

    def vote_rows(self, bot_id: str) -> int:
        row = self._fetch_one("SELECT COUNT(*) AS n FROM votes WHERE bot_id = ?", (bot_id,))
        return int(row["n"]) if row else 0

    def recent_actions(self, limit: int = 20) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        conn = self.connect()
        try:
            rows = conn.execute(
                """
                SELECT id, method, user_id, data, created_at
                FROM rpc_logs
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
        finally:
            conn.close()
        out: list[dict[str, Any]] = []
        for row in rows:
            item = dict(row)
            try:
                item["data"] = json.loads(item["data"])
            except json.JSONDecodeError:
                pass
            out.append(item)
        return out

    def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        conn = self.connect()
        try:
            row = conn.execute(sql, params).fetchone()
        finally:
            conn.close()
        return dict(row) if row is not None else None

    # ── Writes outside RPC ───────────────────────────────────────────────

    def upsert_user(self, user_id: str, *, staff: bool = False, admin: bool = False) -> None:
        with self.transaction() as tx:
            tx.execute(
                """
                INSERT INTO users (user_id, staff, admin) VALUES (?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET staff = excluded.staff, admin = excluded.admin
                """,
                (user_id, int(staff), int(admin)),
            )

    def add_team(self, team_id: str, name: str) -> None:
        with self.transaction() as tx:
            tx.execute("INSERT INTO teams (id, name) VALUES (?, ?)", (team_id, name))

    def add_bot(
        self,
        bot_id: str,
        *,
        name: str,
        owner: str | None = None,
        team_owner: str | None = None,
        bot_type: str = "pending",
        claimed_by: str | None = None,
        votes: int = 0,
    ) -> None:
        if bot_type not in BOT_TYPES:
            raise ValueError(f"bot type must be one of: {', '.join(BOT_TYPES)}")
        with self.transaction() as tx:
            tx.execute(
                """
                INSERT INTO bots (
                    bot_id, name, owner, team_owner, type, claimed_by, votes, api_token, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (bot_id, name, owner, team_owner, bot_type, claimed_by, int(votes), new_api_token(), now_iso()),
            )

    def add_vote(self, bot_id: str, user_id: str) -> None:
        with self.transaction() as tx:
            tx.execute(
                "INSERT INTO votes (bot_id, user_id, created_at) VALUES (?, ?, ?)",
                (bot_id, user_id, now_iso()),
            )
            tx.execute("UPDATE bots SET votes = votes + 1 WHERE bot_id = ?", (bot_id,))

    def repair_stale_claims(self) -> int:
        """Reset bots whose ``claimed_by`` holds the literal ``none`` left by older tooling."""
        with self.transaction() as tx:
            cur = tx.execute(
                "UPDATE bots SET claimed_by = NULL, type = 'pending' WHERE LOWER(claimed_by) = 'none'"
            )
            repaired = int(cur.rowcount or 0)
        if repaired:
            logger.info("repaired {} stale bot claims", repaired)
        return repaired

    def log_action(self, tx: sqlite3.Connection, *, method: str, user_id: str, data: dict[str, Any]) -> str:
        """Append one action log row inside the caller's transaction."""
        log_id = uuid.uuid4().hex
        tx.execute(
            "INSERT INTO rpc_logs (id, method, user_id, data, created_at) VALUES (?, ?, ?, ?, ?)",
            (log_id, method, user_id, json.dumps(data, ensure_ascii=False, sort_keys=True), now_iso()),
        )
        return log_id


def new_api_token(length: int = 64) -> str:
    """Random alphanumeric bot API token."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
