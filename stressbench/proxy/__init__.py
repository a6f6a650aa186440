"""Forwarding proxy server."""

from .server import create_proxy_app, run_proxy

__all__ = ["create_proxy_app", "run_proxy"]
