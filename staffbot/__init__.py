"""staffbot - staff RPC tooling for a public bot list."""

__version__ = "0.3.0"
__logo__ = "🛡️"
