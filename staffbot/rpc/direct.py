"""Direct programmatic front-end shared by the HTTP API and the CLI."""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from staffbot.rpc.actions import ActionCatalog
from staffbot.rpc.contracts import PlatformPort, RPCActor, RPCHandle, RPCReport, RPCSource
from staffbot.rpc.engine import RPCEngine
from staffbot.rpc.errors import ConsistencyFault, RPCError, Unauthorized
from staffbot.rpc.guard import StaffGuard
from staffbot.rpc.reporting import report_error, report_success
from staffbot.storage.store import ListingStore
from staffbot.telemetry.base import NullTelemetry, TelemetryPort


class DirectInvoker:
    """Authorizes, parses and executes one request in a single call.

    The guard runs first so an unauthorized caller never gets an action built
    from their input, whatever that input looks like.
    """

    def __init__(
        self,
        *,
        store: ListingStore,
        catalog: ActionCatalog,
        guard: StaffGuard,
        engine: RPCEngine,
        platform: PlatformPort | None = None,
        source: RPCSource = "direct",
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._guard = guard
        self._engine = engine
        self._platform = platform
        self._source = source
        self._telemetry = telemetry or NullTelemetry()

    async def invoke(self, method: str, fields: Mapping[str, str], user_id: str) -> RPCReport:
        requested = (method or "").strip()
        actor = RPCActor(user_id=user_id, source=self._source)
        try:
            if not self._guard.authorize(actor.user_id):
                raise Unauthorized(actor.user_id)
            spec = self._catalog.get(requested)
            action = self._catalog.build(spec.name, fields)
            if action.name != spec.name:
                logger.critical("rpc consistency fault: requested {} but built {}", spec.name, action.name)
                raise ConsistencyFault(spec.name, action.name)
            handle = RPCHandle(store=self._store, user_id=actor.user_id, platform=self._platform)
            outcome = await self._engine.execute(action, handle)
        except RPCError as e:
            if e.code in ("unauthorized", "unknown_action", "validation_error"):
                self._telemetry.incr(
                    "rpc_denied_total", labels=(("source", actor.source), ("reason", e.code))
                )
                logger.warning("{} rpc {} by {} rejected: {}", actor.source, requested, actor.user_id, e)
            return report_error(requested, e)
        return report_success(spec.name, outcome)
