"""Uniform rendering of RPC outcomes plus best-effort audit delivery."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger

from staffbot.rpc.contracts import AuditNotice, PlatformPort, RPCOutcome, RPCReport
from staffbot.rpc.errors import RPCError

UNAUTHORIZED_PREFIX = "Whoa there, do you have permission to do this?"


def render_success(method: str, outcome: RPCOutcome) -> str:
    text = f"Successfully performed the operation required: `{method}`"
    if outcome.has_content and outcome.text:
        text += f"\n**{outcome.text}**"
    return text


def render_error(method: str, error: RPCError | str) -> str:
    return f"Error performing `{method}`: **{error}**"


def render_unauthorized(error: RPCError | str) -> str:
    return f"{UNAUTHORIZED_PREFIX}: {error}"


def render_parse_error(error: RPCError) -> str:
    return f"**{error}**"


def report_success(method: str, outcome: RPCOutcome) -> RPCReport:
    return RPCReport(
        done=True,
        method=method,
        reason=render_success(method, outcome),
        context=outcome.text if outcome.has_content else None,
    )


def report_error(method: str, error: RPCError) -> RPCReport:
    reason = render_unauthorized(error) if error.code == "unauthorized" else render_error(method, error)
    return RPCReport(
        done=False,
        method=method,
        reason=reason,
        context=error.message,
        error_code=error.code,
    )


class AuditNotifier:
    """Schedules platform side effects that must never fail an action.

    Tasks are tracked so they are not garbage collected mid-flight and so
    shutdown (and tests) can wait for them with :meth:`drain`.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def notify(self, platform: PlatformPort | None, notice: AuditNotice) -> None:
        if platform is None:
            logger.debug("no platform bound; audit notice for {} dropped", notice.method)
            return
        self._spawn(platform.send_audit(notice), f"audit notice for {notice.method}")

    def kick(self, platform: PlatformPort | None, bot_id: str, reason: str) -> None:
        if platform is None:
            logger.warning("no platform bound; cannot kick bot {}", bot_id)
            return
        self._spawn(platform.kick_bot(bot_id, reason), f"kick of bot {bot_id}")

    async def drain(self) -> None:
        """Wait for every scheduled side effect to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None], label: str) -> None:
        task = asyncio.create_task(self._guarded(coro, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _guarded(coro: Coroutine[Any, Any, None], label: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("{} failed: {}", label, e)
