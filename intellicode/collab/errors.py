"""Failures raised inside the realtime layer.

Each is caught by the hub and turned into an ``error`` event for the one
connection that caused it; none of them close the socket.
"""
from typing import Optional


class CollabError(Exception):
    def __init__(self, message: str, event: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.event = event


class AuthenticationError(CollabError):
    """Bad, missing or expired bearer credential."""


class AuthorizationError(CollabError):
    """The user lacks the capability the event needs."""


class PersistenceError(CollabError):
    """The store was unreachable or rejected a write."""


class MalformedEventError(CollabError):
    """The frame was not a valid event envelope or payload."""
