"""HTTP surface for direct RPC invocation."""

from staffbot.api.server import create_app, serve_api

__all__ = ["create_app", "serve_api"]
