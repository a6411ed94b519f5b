"""Interactive confirm -> form front-end.

The flow is surface-agnostic: a chat adapter implements
:class:`InteractionSurface` for one invocation and :class:`InteractiveFlow`
drives it through the state table below. Both waits are bounded by the
interaction timeout; an abandoned flow ends ``cancelled`` without a message.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger

from staffbot.rpc.actions import ActionCatalog, ActionSpec
from staffbot.rpc.contracts import PlatformPort, RPCHandle, RPCOutcome
from staffbot.rpc.engine import RPCEngine
from staffbot.rpc.errors import (
    ConsistencyFault,
    RPCError,
    Unauthorized,
    UnknownAction,
    ValidationError,
)
from staffbot.rpc.guard import StaffGuard
from staffbot.rpc.reporting import (
    render_error,
    render_parse_error,
    render_success,
    render_unauthorized,
)
from staffbot.storage.store import ListingStore
from staffbot.telemetry.base import NullTelemetry, TelemetryPort

DEFAULT_TIMEOUT_S = 120.0


class FlowState(str, Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_FIELDS = "awaiting_fields"
    VALIDATED = "validated"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({FlowState.COMPLETED, FlowState.FAILED, FlowState.CANCELLED})

TRANSITIONS: dict[FlowState, frozenset[FlowState]] = {
    FlowState.IDLE: frozenset({FlowState.AWAITING_CONFIRMATION, FlowState.FAILED}),
    FlowState.AWAITING_CONFIRMATION: frozenset(
        {FlowState.AWAITING_FIELDS, FlowState.CANCELLED, FlowState.FAILED}
    ),
    FlowState.AWAITING_FIELDS: frozenset(
        {FlowState.VALIDATED, FlowState.CANCELLED, FlowState.FAILED}
    ),
    FlowState.VALIDATED: frozenset({FlowState.COMPLETED, FlowState.FAILED}),
    FlowState.COMPLETED: frozenset(),
    FlowState.FAILED: frozenset(),
    FlowState.CANCELLED: frozenset(),
}


class FieldSubmission(Protocol):
    """Raw values of one submitted form, keyed by field key."""

    @property
    def values(self) -> Mapping[str, str]: ...

    async def reply(self, text: str) -> None:
        """Answer on the interaction that carried the submission."""


class InteractionSurface(Protocol):
    """One invocation's view of the chat surface."""

    async def reply(self, text: str) -> None:
        """Answer the original command interaction."""

    async def ask_confirm(self, spec: ActionSpec) -> bool:
        """Show the Next/Cancel prompt and wait for a choice (True = next)."""

    async def clear_prompt(self) -> None:
        """Remove the confirm prompt's buttons."""

    async def ask_fields(self, spec: ActionSpec) -> FieldSubmission | None:
        """Present the action's form and wait for a submission (None = dismissed)."""


@dataclass(frozen=True, slots=True)
class FlowResult:
    state: FlowState
    method: str
    outcome: RPCOutcome | None = None
    error: RPCError | None = None


class InteractiveFlow:
    """Drives one interactive RPC invocation from command to rendered result."""

    def __init__(
        self,
        *,
        store: ListingStore,
        catalog: ActionCatalog,
        guard: StaffGuard,
        engine: RPCEngine,
        platform: PlatformPort | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._guard = guard
        self._engine = engine
        self._platform = platform
        self._timeout_s = timeout_s
        self._telemetry = telemetry or NullTelemetry()

    async def run(self, method: str, user_id: str, surface: InteractionSurface) -> FlowResult:
        run = _FlowRun(method=method)
        result = await self._drive(run, user_id, surface)
        self._telemetry.incr("rpc_flows_total", labels=(("state", result.state.value),))
        return result

    async def _drive(self, run: _FlowRun, user_id: str, surface: InteractionSurface) -> FlowResult:
        if not self._guard.authorize(user_id):
            error = Unauthorized(user_id)
            self._telemetry.incr("rpc_denied_total", labels=(("source", "interactive"), ("reason", error.code)))
            logger.warning("rpc {} denied for {}", run.method, user_id)
            await surface.reply(render_unauthorized(error))
            return run.fail(error)

        try:
            spec = self._catalog.get(run.method)
        except UnknownAction as e:
            await surface.reply(render_error(run.method, e))
            return run.fail(e)
        run.method = spec.name

        run.advance(FlowState.AWAITING_CONFIRMATION)
        try:
            confirmed = await asyncio.wait_for(surface.ask_confirm(spec), self._timeout_s)
        except TimeoutError:
            confirmed = False
            logger.debug("rpc {} confirm prompt timed out for {}", spec.name, user_id)
        finally:
            await surface.clear_prompt()
        if not confirmed:
            return run.cancel()

        run.advance(FlowState.AWAITING_FIELDS)
        try:
            submission = await asyncio.wait_for(surface.ask_fields(spec), self._timeout_s)
        except TimeoutError:
            submission = None
            logger.debug("rpc {} form timed out for {}", spec.name, user_id)
        if submission is None:
            return run.cancel()

        try:
            action = self._catalog.build(spec.name, submission.values)
        except ValidationError as e:
            logger.warning("rpc {} by {}: {}", spec.name, user_id, e)
            await submission.reply(render_parse_error(e))
            return run.fail(e)

        if action.name != spec.name:
            fault = ConsistencyFault(spec.name, action.name)
            logger.critical("rpc consistency fault: requested {} but built {}", spec.name, action.name)
            await submission.reply(render_error(spec.name, fault))
            return run.fail(fault)
        run.advance(FlowState.VALIDATED)

        handle = RPCHandle(store=self._store, user_id=user_id, platform=self._platform)
        try:
            outcome = await self._engine.execute(action, handle)
        except RPCError as e:
            await submission.reply(render_error(spec.name, e))
            return run.fail(e)

        await submission.reply(render_success(spec.name, outcome))
        return run.complete(outcome)


@dataclass(slots=True)
class _FlowRun:
    method: str
    state: FlowState = FlowState.IDLE

    def advance(self, new: FlowState) -> None:
        if new not in TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal rpc flow transition {self.state.value} -> {new.value}")
        self.state = new

    def fail(self, error: RPCError) -> FlowResult:
        self.advance(FlowState.FAILED)
        return FlowResult(state=self.state, method=self.method, error=error)

    def cancel(self) -> FlowResult:
        self.advance(FlowState.CANCELLED)
        return FlowResult(state=self.state, method=self.method)

    def complete(self, outcome: RPCOutcome) -> FlowResult:
        self.advance(FlowState.COMPLETED)
        return FlowResult(state=self.state, method=self.method, outcome=outcome)
