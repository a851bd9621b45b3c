"""Admin service: collects device snapshots and serves admin overrides."""

from codewith.server.app import create_app

__all__ = ["create_app"]
