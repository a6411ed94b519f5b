"""Telemetry backends for staffbot.

Provides both in-memory (for testing) and Prometheus (for production) backends.
"""

from staffbot.telemetry.base import NullTelemetry, TelemetryPort
from staffbot.telemetry.inmemory import InMemoryTelemetry
from staffbot.telemetry.prometheus import PrometheusConfig, PrometheusTelemetry

__all__ = [
    "TelemetryPort",
    "NullTelemetry",
    "InMemoryTelemetry",
    "PrometheusConfig",
    "PrometheusTelemetry",
]
