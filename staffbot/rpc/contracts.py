"""Contracts shared by the RPC front-ends, engine and reporting sink."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from staffbot.storage.store import ListingStore

type RPCSource = Literal["interactive", "direct", "cli"]


@dataclass(frozen=True, slots=True)
class RPCActor:
    """Caller identity for one invocation."""

    user_id: str
    source: RPCSource


@dataclass(frozen=True, slots=True, kw_only=True)
class AuditNotice:
    """Side-channel notice emitted after an action commits."""

    method: str
    user_id: str
    target: str | None
    reason: str
    summary: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class PlatformPort(Protocol):
    """Chat-platform side effects. Never used for persistence."""

    async def send_audit(self, notice: AuditNotice) -> None:
        """Deliver one audit notice to the moderation log."""

    async def kick_bot(self, bot_id: str, reason: str) -> None:
        """Remove a bot account from the main server."""


@dataclass(frozen=True, slots=True)
class RPCHandle:
    """Execution context owned by exactly one engine invocation."""

    store: ListingStore
    user_id: str
    platform: PlatformPort | None = None


@dataclass(frozen=True, slots=True)
class RPCOutcome:
    """Successful action result: nothing to show, or a message to surface."""

    kind: Literal["no_content", "content"]
    text: str | None = None

    @classmethod
    def no_content(cls) -> RPCOutcome:
        return cls(kind="no_content")

    @classmethod
    def content(cls, text: str) -> RPCOutcome:
        return cls(kind="content", text=text)

    @property
    def has_content(self) -> bool:
        return self.kind == "content"


@dataclass(frozen=True, slots=True)
class RPCReport:
    """Rendered result handed back to the direct front-end."""

    done: bool
    method: str
    reason: str
    context: str | None = None
    error_code: str | None = None
