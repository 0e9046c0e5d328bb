"""Propagate the acting operator's identity through the call stack using contextvars."""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

# Fixed identity for scheduler ticks and other unattended jobs
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-00000000b111")

_current_actor_id: ContextVar[UUID | None] = ContextVar("current_actor_id", default=None)


def get_current_actor_id() -> UUID:
    """
    Get the acting operator's ID from context.

    Raises RuntimeError if no actor is set. Every mutation is attributed
    in the audit trail, so a missing actor is a wiring bug.
    """
    actor_id = _current_actor_id.get()
    if actor_id is None:
        raise RuntimeError(
            "No actor context set. Wrap the call in actor_context() or run it "
            "through the request middleware."
        )
    return actor_id


def peek_current_actor_id() -> UUID | None:
    """Current actor ID, or None when nothing is set."""
    return _current_actor_id.get()


def set_current_actor_id(actor_id: UUID) -> None:
    """Set current actor ID in context."""
    _current_actor_id.set(actor_id)


def clear_current_actor_id() -> None:
    """
    Clear actor context.

    Must be called in finally block to prevent context leakage.
    """
    _current_actor_id.set(None)


@contextmanager
def actor_context(actor_id: UUID):
    """
    Context manager for temporarily setting the acting operator.

    Example:
        with actor_context(SYSTEM_ACTOR_ID):
            lifecycle.activate_due(now)
    """
    previous = _current_actor_id.get()
    set_current_actor_id(actor_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_actor_id()
        else:
            set_current_actor_id(previous)
