"""Dashboard module exposing the engine over HTTP."""

from dexarb.dashboard.server import create_app, main


__all__ = [
    "create_app",
    "main",
]
