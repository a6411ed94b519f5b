"""FastAPI surface for direct RPC invocation.

Endpoints:
- GET /health - Health check (no auth required)
- GET /rpc/methods - Action catalog with field keys (auth required)
- POST /rpc - Invoke one action (auth required)
- GET /metrics - Prometheus metrics (auth required)

Security:
- Token auth via Bearer header (except /health)
- Per-IP rate limiting on all authenticated endpoints
"""

from __future__ import annotations

import hmac
import time
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from staffbot import __version__
from staffbot.config.schema import APIConfig
from staffbot.rpc.contracts import RPCReport
from staffbot.telemetry.prometheus import PrometheusTelemetry

if TYPE_CHECKING:
    from staffbot.rpc.actions import ActionCatalog
    from staffbot.rpc.direct import DirectInvoker
    from staffbot.telemetry.base import TelemetryPort

STATUS_BY_CODE: dict[str, int] = {
    "unauthorized": 403,
    "unknown_action": 404,
    "not_found": 404,
    "validation_error": 422,
    "consistency_fault": 500,
    "persistence_error": 503,
}


class RPCRequest(BaseModel):
    """Body of ``POST /rpc``."""

    model_config = ConfigDict(populate_by_name=True)

    method: str
    user_id: str = Field(alias="userId")
    fields: dict[str, str | int | bool] = Field(default_factory=dict)


def _check_auth(auth_header: str | None, expected_token: str) -> bool:
    """Validate Bearer token auth."""
    if not auth_header:
        return False
    if not auth_header.startswith("Bearer "):
        return False
    token = auth_header[7:]
    return hmac.compare_digest(token, expected_token)


def _rate_limit_key(request: Request) -> str:
    if request.client:
        return request.client.host
    return "unknown"


class _RateLimiter:
    """Sliding one-minute window per client key."""

    def __init__(self, limit: int, window_seconds: int = 60) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._hits: dict[str, list[float]] = {}

    def check(self, key: str) -> tuple[bool, int]:
        now = time.monotonic()
        window_start = now - self.window_seconds
        self._prune(window_start)
        hits = [t for t in self._hits.get(key, []) if t > window_start]
        if len(hits) >= self.limit:
            self._hits[key] = hits
            return False, 0
        hits.append(now)
        self._hits[key] = hits
        return True, self.limit - len(hits)

    def _prune(self, window_start: float) -> None:
        # Hits are appended in order, so the last one is the newest.
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]

    def __len__(self) -> int:
        return len(self._hits)


def report_body(report: RPCReport) -> dict[str, Any]:
    return {"done": report.done, "reason": report.reason, "context": report.context}


def report_status(report: RPCReport) -> int:
    if report.done:
        return 200
    return STATUS_BY_CODE.get(report.error_code or "", 400)


def create_app(
    invoker: DirectInvoker,
    catalog: ActionCatalog,
    api_config: APIConfig | None = None,
    telemetry: TelemetryPort | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        invoker: Direct front-end every ``POST /rpc`` goes through
        catalog: Action catalog listed by ``GET /rpc/methods``
        api_config: API-specific configuration
        telemetry: Optional telemetry backend for ``/metrics``
    """
    api_config = api_config or APIConfig()
    limiter = _RateLimiter(api_config.rate_limit_per_minute)
    started = time.monotonic()

    app = FastAPI(
        title="staffbot RPC",
        description="Direct invocation of staff RPC actions",
        version=__version__,
    )

    def verify_auth(request: Request) -> None:
        if not api_config.auth_token:
            # No auth token configured - allow all (development mode)
            return
        if not _check_auth(request.headers.get("Authorization"), api_config.auth_token):
            raise HTTPException(
                status_code=401,
                detail="Invalid or missing authentication token",
                headers={"WWW-Authenticate": "Bearer"},
            )

    def check_rate_limit(request: Request) -> None:
        allowed, _ = limiter.check(_rate_limit_key(request))
        if not allowed:
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded",
                headers={"Retry-After": "60", "X-RateLimit-Remaining": "0"},
            )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint (no auth required)."""
        return {"status": "ok", "uptime_seconds": round(time.monotonic() - started, 2)}

    @app.get("/rpc/methods", tags=["rpc"])
    async def list_methods(request: Request) -> dict[str, Any]:
        verify_auth(request)
        check_rate_limit(request)
        return {
            "methods": [
                {
                    "name": spec.name,
                    "title": spec.title,
                    "fields": [
                        {"key": f.key, "label": f.label, "kind": f.kind.value} for f in spec.fields
                    ],
                }
                for spec in catalog.specs()
            ]
        }

    @app.post("/rpc", tags=["rpc"])
    async def invoke(body: RPCRequest, request: Request) -> JSONResponse:
        verify_auth(request)
        check_rate_limit(request)
        client_ip = request.client.host if request.client else "unknown"
        logger.info("rpc {} requested for {} from {}", body.method, body.user_id, client_ip)
        fields = {key: str(value) for key, value in body.fields.items()}
        report = await invoker.invoke(body.method, fields, body.user_id)
        return JSONResponse(status_code=report_status(report), content=report_body(report))

    @app.get("/metrics", tags=["metrics"])
    async def get_metrics(request: Request) -> Response:
        verify_auth(request)
        check_rate_limit(request)
        if isinstance(telemetry, PrometheusTelemetry):
            return Response(content=telemetry.render(), media_type=telemetry.content_type)
        return Response(
            content="# Prometheus telemetry not enabled\n",
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    return app


async def serve_api(app: FastAPI, api_config: APIConfig) -> None:
    """Serve ``app`` inside an already running event loop."""
    server = uvicorn.Server(
        uvicorn.Config(app, host=api_config.host, port=api_config.port, log_level="info")
    )
    logger.info("RPC API starting on http://{}:{}", api_config.host, api_config.port)
    await server.serve()

