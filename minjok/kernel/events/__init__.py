"""
Append-only audit logging.
"""

from minjok.kernel.events.event_store import EventStore

__all__ = ["EventStore"]
