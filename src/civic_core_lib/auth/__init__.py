"""Actor context for engine operations."""

from .request_context import Actor, UserRole, SYSTEM_ACTOR, get_actor

__all__ = [
    "Actor",
    "UserRole",
    "SYSTEM_ACTOR",
    "get_actor",
]
