"""
HTTP display surface for the alert engine.

Routers:
    alerts: Active alerts, homepage alerts, history, statistics, refresh
    health: Engine health
"""

from pureflow.api.app import create_app

__all__ = ["create_app"]
