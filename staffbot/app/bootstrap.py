"""Application bootstrap and runtime wiring."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from staffbot.api.server import create_app, serve_api
from staffbot.rpc.actions import ActionCatalog
from staffbot.rpc.direct import DirectInvoker
from staffbot.rpc.engine import RPCEngine
from staffbot.rpc.guard import StaffGuard
from staffbot.rpc.interactive import InteractiveFlow
from staffbot.storage.store import ListingStore
from staffbot.tasks.role_sync import RoleSyncTask
from staffbot.telemetry.inmemory import InMemoryTelemetry
from staffbot.telemetry.prometheus import PrometheusConfig, PrometheusTelemetry

if TYPE_CHECKING:
    from fastapi import FastAPI

    from staffbot.channels.discord_bot import StaffBot
    from staffbot.config.schema import Config
    from staffbot.rpc.contracts import PlatformPort, RPCSource
    from staffbot.telemetry.base import TelemetryPort


@dataclass(slots=True)
class RPCServices:
    """Front-end independent RPC core: one per process."""

    config: Config
    store: ListingStore
    catalog: ActionCatalog
    guard: StaffGuard
    engine: RPCEngine
    telemetry: TelemetryPort

    def direct_invoker(
        self, *, platform: PlatformPort | None = None, source: RPCSource = "direct"
    ) -> DirectInvoker:
        return DirectInvoker(
            store=self.store,
            catalog=self.catalog,
            guard=self.guard,
            engine=self.engine,
            platform=platform,
            source=source,
            telemetry=self.telemetry,
        )

    def interactive_flow(self, *, platform: PlatformPort | None = None) -> InteractiveFlow:
        return InteractiveFlow(
            store=self.store,
            catalog=self.catalog,
            guard=self.guard,
            engine=self.engine,
            platform=platform,
            timeout_s=float(self.config.rpc.interaction_timeout_seconds),
            telemetry=self.telemetry,
        )


def build_telemetry(config: Config) -> TelemetryPort:
    if config.telemetry.prometheus_enabled:
        return PrometheusTelemetry(
            PrometheusConfig(
                enabled=True,
                host=config.telemetry.prometheus_host,
                port=config.telemetry.prometheus_port,
            )
        )
    return InMemoryTelemetry()


def build_rpc_services(
    config: Config,
    *,
    store: ListingStore | None = None,
    telemetry: TelemetryPort | None = None,
) -> RPCServices:
    """Compose the store, catalog, guard and engine from config."""
    store = store or ListingStore(config.database.resolved_path)
    telemetry = telemetry or build_telemetry(config)
    return RPCServices(
        config=config,
        store=store,
        catalog=ActionCatalog(),
        guard=StaffGuard(store, extra_staff_ids=config.rpc.extra_staff_ids),
        engine=RPCEngine(telemetry=telemetry),
        telemetry=telemetry,
    )


@dataclass(slots=True)
class GatewayRuntime:
    """Lifecycle holder for the Discord gateway and the RPC API."""

    services: RPCServices
    bot: StaffBot | None = None
    api: FastAPI | None = None

    async def run(self) -> None:
        config = self.services.config
        if isinstance(self.services.telemetry, PrometheusTelemetry):
            self.services.telemetry.start()
        jobs = []
        if self.bot is not None:
            jobs.append(self.bot.start(config.discord.token))
        if self.api is not None:
            jobs.append(serve_api(self.api, config.api))
        if not jobs:
            logger.warning("Nothing to run: enable discord or api in config")
            return
        try:
            await asyncio.gather(*jobs)
        finally:
            if self.bot is not None and not self.bot.is_closed():
                await self.bot.close()
            await self.services.engine.notifier.drain()


def build_gateway_runtime(config: Config, services: RPCServices | None = None) -> GatewayRuntime:
    """Compose the full runtime: bot (when enabled), API (when enabled)."""
    services = services or build_rpc_services(config)
    runtime = GatewayRuntime(services=services)
    platform: PlatformPort | None = None

    if config.discord.enabled:
        from staffbot.channels.discord_bot import StaffBot

        bot = StaffBot(config=config, store=services.store, catalog=services.catalog)
        bot.bind_flow(services.interactive_flow(platform=bot.platform))
        bot.role_sync = RoleSyncTask(
            services.store,
            bot.bug_hunter_ids,
            interval_s=float(config.tasks.role_sync_interval_seconds),
        )
        platform = bot.platform
        runtime.bot = bot

    if config.api.enabled:
        runtime.api = create_app(
            services.direct_invoker(platform=platform),
            services.catalog,
            config.api,
            services.telemetry,
        )

    return runtime
