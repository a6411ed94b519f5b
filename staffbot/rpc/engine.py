"""Single execution engine for every RPC action.

Each action runs inside one store transaction on a worker thread. The
transaction also appends the ``rpc_logs`` row, so an action is either fully
persisted and logged or not at all. Platform side effects (audit notice,
kick) are scheduled only after commit.
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from loguru import logger

from staffbot.rpc.actions import (
    Action,
    BotApprove,
    BotClaim,
    BotCertifyAdd,
    BotCertifyRemove,
    BotDeny,
    BotForceRemove,
    BotPremiumAdd,
    BotPremiumRemove,
    BotTransferOwnershipTeam,
    BotTransferOwnershipUser,
    BotUnclaim,
    BotUnverify,
    BotVoteBanAdd,
    BotVoteBanRemove,
    BotVoteCountSet,
    BotVoteReset,
    BotVoteResetAll,
    RPCMethod,
    TeamNameEdit,
)
from staffbot.rpc.contracts import AuditNotice, RPCHandle, RPCOutcome
from staffbot.rpc.errors import ActionRejected, NotFound, PersistenceError, RPCError
from staffbot.rpc.reporting import AuditNotifier
from staffbot.storage.store import new_api_token, now_iso
from staffbot.telemetry.base import NullTelemetry, TelemetryPort

type Handler = Callable[[sqlite3.Connection, Any, RPCHandle], RPCOutcome]


# ── Row helpers ──────────────────────────────────────────────────────────


def _require_bot(tx: sqlite3.Connection, bot_id: str) -> sqlite3.Row:
    row = tx.execute("SELECT * FROM bots WHERE bot_id = ?", (bot_id,)).fetchone()
    if row is None:
        raise NotFound(f"Bot `{bot_id}` does not exist")
    return row


def _require_team(tx: sqlite3.Connection, team_id: str) -> sqlite3.Row:
    row = tx.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
    if row is None:
        raise NotFound(f"Team `{team_id}` does not exist")
    return row


def _require_type(bot: sqlite3.Row, *allowed: str) -> None:
    if bot["type"] not in allowed:
        raise ActionRejected(
            f"Bot `{bot['bot_id']}` is {bot['type']}, expected {' or '.join(allowed)}"
        )


def _set(tx: sqlite3.Connection, bot_id: str, **columns: Any) -> None:
    assignments = ", ".join(f"{name} = ?" for name in columns)
    tx.execute(f"UPDATE bots SET {assignments} WHERE bot_id = ?", (*columns.values(), bot_id))


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


# ── Handlers ─────────────────────────────────────────────────────────────


def _claim(tx: sqlite3.Connection, action: BotClaim, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    _require_type(bot, "pending")
    previous = bot["claimed_by"]
    if previous and not action.force:
        raise ActionRejected(
            f"Bot `{action.bot_id}` is already claimed by <@{previous}>. Use force to override"
        )
    _set(tx, action.bot_id, claimed_by=handle.user_id, last_claimed=now_iso())
    if previous and previous != handle.user_id:
        return RPCOutcome.content(f"Force claimed from <@{previous}>")
    return RPCOutcome.no_content()


def _unclaim(tx: sqlite3.Connection, action: BotUnclaim, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    _require_type(bot, "pending")
    if not bot["claimed_by"]:
        raise ActionRejected(f"Bot `{action.bot_id}` is not claimed")
    _set(tx, action.bot_id, claimed_by=None)
    return RPCOutcome.no_content()


def _require_claimed_by_caller(bot: sqlite3.Row, handle: RPCHandle) -> None:
    _require_type(bot, "pending")
    if bot["claimed_by"] != handle.user_id:
        raise ActionRejected(f"You must claim `{bot['bot_id']}` before reviewing it")


def _approve(tx: sqlite3.Connection, action: BotApprove, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    _require_claimed_by_caller(bot, handle)
    _set(tx, action.bot_id, type="approved", claimed_by=None)
    return RPCOutcome.content(f"`{bot['name']}` approved")


def _deny(tx: sqlite3.Connection, action: BotDeny, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    _require_claimed_by_caller(bot, handle)
    _set(tx, action.bot_id, type="denied", claimed_by=None)
    return RPCOutcome.content(f"`{bot['name']}` denied")


def _vote_reset(tx: sqlite3.Connection, action: BotVoteReset, handle: RPCHandle) -> RPCOutcome:
    _require_bot(tx, action.bot_id)
    _set(tx, action.bot_id, votes=0)
    tx.execute("DELETE FROM votes WHERE bot_id = ?", (action.bot_id,))
    return RPCOutcome.no_content()


def _vote_reset_all(tx: sqlite3.Connection, action: BotVoteResetAll, handle: RPCHandle) -> RPCOutcome:
    cur = tx.execute("UPDATE bots SET votes = 0")
    reset = int(cur.rowcount or 0)
    tx.execute("DELETE FROM votes")
    return RPCOutcome.content(f"Reset votes of {reset} bots")


def _unverify(tx: sqlite3.Connection, action: BotUnverify, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    _require_type(bot, "approved", "certified")
    _set(tx, action.bot_id, type="pending", claimed_by=None)
    return RPCOutcome.no_content()


def _premium_add(tx: sqlite3.Connection, action: BotPremiumAdd, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    now = datetime.now(UTC)
    start = _parse_ts(bot["start_premium_period"])
    length = int(bot["premium_period_length"] or 0)
    active = bool(bot["premium"]) and start is not None and start + timedelta(hours=length) > now
    if active:
        length += action.time_period_hours
    else:
        start = now
        length = action.time_period_hours
    try:
        expiry = start + timedelta(hours=length)
    except OverflowError:
        raise ActionRejected(
            f"Premium for bot `{action.bot_id}` would end after {datetime.max.year}"
        ) from None
    _set(
        tx,
        action.bot_id,
        premium=1,
        start_premium_period=start.isoformat(),
        premium_period_length=length,
    )
    return RPCOutcome.content(f"Premium until {expiry.strftime('%Y-%m-%d %H:%M UTC')}")


def _premium_remove(tx: sqlite3.Connection, action: BotPremiumRemove, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    if not bot["premium"]:
        raise ActionRejected(f"Bot `{action.bot_id}` is not premium")
    _set(tx, action.bot_id, premium=0, start_premium_period=None, premium_period_length=0)
    return RPCOutcome.no_content()


def _vote_ban_add(tx: sqlite3.Connection, action: BotVoteBanAdd, handle: RPCHandle) -> RPCOutcome:
    _require_bot(tx, action.bot_id)
    _set(tx, action.bot_id, vote_banned=1)
    return RPCOutcome.no_content()


def _vote_ban_remove(tx: sqlite3.Connection, action: BotVoteBanRemove, handle: RPCHandle) -> RPCOutcome:
    _require_bot(tx, action.bot_id)
    _set(tx, action.bot_id, vote_banned=0)
    return RPCOutcome.no_content()


def _force_remove(tx: sqlite3.Connection, action: BotForceRemove, handle: RPCHandle) -> RPCOutcome:
    _require_bot(tx, action.bot_id)
    tx.execute("DELETE FROM votes WHERE bot_id = ?", (action.bot_id,))
    tx.execute("DELETE FROM bots WHERE bot_id = ?", (action.bot_id,))
    return RPCOutcome.no_content()


def _certify_add(tx: sqlite3.Connection, action: BotCertifyAdd, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    _require_type(bot, "approved")
    _set(tx, action.bot_id, type="certified")
    return RPCOutcome.no_content()


def _certify_remove(tx: sqlite3.Connection, action: BotCertifyRemove, handle: RPCHandle) -> RPCOutcome:
    bot = _require_bot(tx, action.bot_id)
    _require_type(bot, "certified")
    _set(tx, action.bot_id, type="approved")
    return RPCOutcome.no_content()


def _vote_count_set(tx: sqlite3.Connection, action: BotVoteCountSet, handle: RPCHandle) -> RPCOutcome:
    _require_bot(tx, action.bot_id)
    if action.count < 0:
        raise ActionRejected("Vote count cannot be negative")
    _set(tx, action.bot_id, votes=action.count)
    return RPCOutcome.no_content()


def _transfer_user(
    tx: sqlite3.Connection, action: BotTransferOwnershipUser, handle: RPCHandle
) -> RPCOutcome:
    _require_bot(tx, action.bot_id)
    user = tx.execute("SELECT user_id FROM users WHERE user_id = ?", (action.new_owner,)).fetchone()
    if user is None:
        raise NotFound(f"User `{action.new_owner}` does not exist")
    _set(
        tx,
        action.bot_id,
        owner=action.new_owner,
        team_owner=None,
        api_token=new_api_token(),
        webhook_url=None,
        webhook_secret=None,
    )
    return RPCOutcome.no_content()


def _transfer_team(
    tx: sqlite3.Connection, action: BotTransferOwnershipTeam, handle: RPCHandle
) -> RPCOutcome:
    _require_bot(tx, action.bot_id)
    _require_team(tx, action.new_team)
    _set(
        tx,
        action.bot_id,
        owner=None,
        team_owner=action.new_team,
        api_token=new_api_token(),
        webhook_url=None,
        webhook_secret=None,
    )
    return RPCOutcome.no_content()


def _team_name_edit(tx: sqlite3.Connection, action: TeamNameEdit, handle: RPCHandle) -> RPCOutcome:
    _require_team(tx, action.team_id)
    tx.execute("UPDATE teams SET name = ? WHERE id = ?", (action.new_name, action.team_id))
    return RPCOutcome.no_content()


HANDLERS: dict[RPCMethod, Handler] = {
    RPCMethod.BOT_CLAIM: _claim,
    RPCMethod.BOT_UNCLAIM: _unclaim,
    RPCMethod.BOT_APPROVE: _approve,
    RPCMethod.BOT_DENY: _deny,
    RPCMethod.BOT_VOTE_RESET: _vote_reset,
    RPCMethod.BOT_VOTE_RESET_ALL: _vote_reset_all,
    RPCMethod.BOT_UNVERIFY: _unverify,
    RPCMethod.BOT_PREMIUM_ADD: _premium_add,
    RPCMethod.BOT_PREMIUM_REMOVE: _premium_remove,
    RPCMethod.BOT_VOTE_BAN_ADD: _vote_ban_add,
    RPCMethod.BOT_VOTE_BAN_REMOVE: _vote_ban_remove,
    RPCMethod.BOT_FORCE_REMOVE: _force_remove,
    RPCMethod.BOT_CERTIFY_ADD: _certify_add,
    RPCMethod.BOT_CERTIFY_REMOVE: _certify_remove,
    RPCMethod.BOT_VOTE_COUNT_SET: _vote_count_set,
    RPCMethod.BOT_TRANSFER_OWNERSHIP_USER: _transfer_user,
    RPCMethod.BOT_TRANSFER_OWNERSHIP_TEAM: _transfer_team,
    RPCMethod.TEAM_NAME_EDIT: _team_name_edit,
}

_unhandled = set(RPCMethod) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"RPC methods without a handler: {sorted(m.value for m in _unhandled)}")


class RPCEngine:
    """Runs fully-built actions against the listing store exactly once."""

    def __init__(
        self,
        *,
        telemetry: TelemetryPort | None = None,
        notifier: AuditNotifier | None = None,
    ) -> None:
        self._telemetry = telemetry or NullTelemetry()
        self.notifier = notifier or AuditNotifier()

    async def execute(self, action: Action, handle: RPCHandle) -> RPCOutcome:
        method = action.name
        started = time.monotonic()
        try:
            # The action runs to commit or rollback even if the caller goes away.
            outcome = await asyncio.shield(asyncio.to_thread(self._run, action, handle))
        except RPCError as e:
            self._telemetry.incr("rpc_actions_total", labels=(("method", method), ("outcome", e.code)))
            logger.warning("rpc {} by {} failed [{}]: {}", method, handle.user_id, e.code, e)
            raise
        finally:
            self._telemetry.timing(
                "rpc_action_duration_seconds",
                time.monotonic() - started,
                labels=(("method", method),),
            )

        self._telemetry.incr("rpc_actions_total", labels=(("method", method), ("outcome", "ok")))
        logger.info("rpc {} by {} on {} committed", method, handle.user_id, action.target or "*")
        self._after_commit(action, handle, outcome)
        return outcome

    def _run(self, action: Action, handle: RPCHandle) -> RPCOutcome:
        handler = HANDLERS[action.method]
        store = handle.store
        try:
            with store.transaction() as tx:
                outcome = handler(tx, action, handle)
                store.log_action(
                    tx,
                    method=action.name,
                    user_id=handle.user_id,
                    data=action.to_log_data(),
                )
        except (sqlite3.Error, OverflowError) as e:
            raise PersistenceError(f"Database error: {e}") from e
        return outcome

    def _after_commit(self, action: Action, handle: RPCHandle, outcome: RPCOutcome) -> None:
        notice = AuditNotice(
            method=action.name,
            user_id=handle.user_id,
            target=action.target,
            reason=action.audit_reason,
            summary=outcome.text or f"{action.name} performed",
        )
        self.notifier.notify(handle.platform, notice)
        if isinstance(action, BotForceRemove) and action.kick:
            self.notifier.kick(handle.platform, action.bot_id, action.reason)
