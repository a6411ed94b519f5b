"""Telemetry port implemented by the in-memory and Prometheus backends."""

from __future__ import annotations

from typing import Protocol


class TelemetryPort(Protocol):
    """Counters and timings recorded by the RPC engine and front-ends.

    - Counters: monotonically increasing values (actions, denials)
    - Timings: duration of one engine invocation
    """

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        """Increase a named counter by ``value`` with optional labels.

        Args:
            name: Metric name (e.g., "rpc_actions_total")
            value: Amount to increment (default 1)
            labels: Optional label tuples (e.g., (("method", "BotClaim"), ("outcome", "ok")))
        """

    def timing(
        self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()
    ) -> None:
        """Record timing of an operation in seconds."""


class NullTelemetry:
    """Telemetry sink that records nothing."""

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        return None

    def timing(
        self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()
    ) -> None:
        return None
