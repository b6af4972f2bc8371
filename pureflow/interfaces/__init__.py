"""
Abstract interfaces for the alert engine's collaborators.

Modules:
    collaborators: ReadingSource and AlertSink ABCs
"""

from pureflow.interfaces.collaborators import AlertSink, ReadingSource

__all__: list[str] = [
    "AlertSink",
    "ReadingSource",
]
