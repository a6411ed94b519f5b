"""Prometheus metrics backend.

Metrics live in a private registry so several instances (tests, CLI runs)
never collide. The registry is exposed through the API's ``/metrics`` route
and, when configured, through a standalone scrape server.

Usage:
    telemetry = PrometheusTelemetry(PrometheusConfig(port=9108))
    telemetry.incr("rpc_actions_total", labels=(("method", "BotClaim"), ("outcome", "ok")))
    telemetry.start()
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    start_http_server,
)


@dataclass
class PrometheusConfig:
    """Configuration for the Prometheus telemetry backend."""

    enabled: bool = True
    port: int = 9108
    host: str = "127.0.0.1"  # localhost only by default


class PrometheusTelemetry:
    """Prometheus-backed telemetry.

    Registers the standard RPC metrics up front; any other counter or timing
    is created on first use with the label names it was called with.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, config: PrometheusConfig | None = None) -> None:
        self._config = config or PrometheusConfig()
        self.registry = CollectorRegistry()
        self._metrics: dict[str, Counter | Histogram] = {}
        self._started = False
        self._register_standard_metrics()

    def _register_standard_metrics(self) -> None:
        self._metrics["rpc_actions_total"] = Counter(
            "staffbot_rpc_actions_total",
            "RPC actions executed",
            labelnames=["method", "outcome"],  # outcome=ok/error code
            registry=self.registry,
        )
        self._metrics["rpc_action_duration_seconds"] = Histogram(
            "staffbot_rpc_action_duration_seconds",
            "RPC action duration in seconds",
            labelnames=["method"],
            buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
            registry=self.registry,
        )
        self._metrics["rpc_denied_total"] = Counter(
            "staffbot_rpc_denied_total",
            "RPC invocations rejected before execution",
            labelnames=["source", "reason"],
            registry=self.registry,
        )
        self._metrics["rpc_flows_total"] = Counter(
            "staffbot_rpc_flows_total",
            "Interactive flows by terminal state",
            labelnames=["state"],
            registry=self.registry,
        )

    def start(self) -> None:
        """Start the standalone scrape server."""
        if not self._config.enabled or self._started:
            return
        try:
            start_http_server(port=self._config.port, addr=self._config.host, registry=self.registry)
        except OSError as e:
            logger.error("Failed to start Prometheus server: {}", e)
            return
        self._started = True
        logger.info(
            "Prometheus metrics server started on http://{}:{}/metrics",
            self._config.host,
            self._config.port,
        )

    def render(self) -> bytes:
        """Current metrics in the text exposition format."""
        return generate_latest(self.registry)

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        metric = self._metrics.get(name)
        if metric is None:
            metric = Counter(
                f"staffbot_{name}",
                f"Counter: {name}",
                labelnames=[k for k, _ in labels],
                registry=self.registry,
            )
            self._metrics[name] = metric
        if labels:
            metric.labels(**dict(labels)).inc(value)
        else:
            metric.inc(value)

    def timing(
        self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()
    ) -> None:
        metric = self._metrics.get(name)
        if metric is None:
            metric = Histogram(
                f"staffbot_{name}",
                f"Histogram: {name}",
                labelnames=[k for k, _ in labels],
                registry=self.registry,
            )
            self._metrics[name] = metric
        if labels:
            metric.labels(**dict(labels)).observe(value)
        else:
            metric.observe(value)
