"""NexTicket - optimistic record tracking over a hosted store, for tickets and bills"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports for the core types
def __getattr__(name: str):
    """
    Lazy imports to avoid loading httpx/fastapi when only the models are needed.
    """
    if name in ("Ticket", "Bill", "Notification", "User"):
        from nexticket.records import models

        return getattr(models, name)

    if name == "EntitySynchronizer":
        from nexticket.sync.synchronizer import EntitySynchronizer

        return EntitySynchronizer

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "Bill",
    "EntitySynchronizer",
    "Notification",
    "Ticket",
    "User",
]
