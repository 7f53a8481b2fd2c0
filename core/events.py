"""
Lightweight Event System for Extensibility

Provides a simple event emitter pattern for hooks and extensibility.
The engine uses it to tell downstream view caches which user-facing pages
went stale after a mutation. Handlers are fire-and-forget: a failing
handler is logged and never fails the emitting operation.
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

# Event registry: event_name -> list of handlers
_event_handlers: Dict[str, List[Callable]] = {}


def subscribe(event_name: str, handler: Callable):
    """
    Subscribe a handler function to an event.

    Args:
        event_name: Name of the event (e.g., 'views.invalidated')
        handler: Function to call when event fires

    Example:
        def on_views_invalidated(user_id: str, paths: list):
            ...
        subscribe(EVENT_VIEWS_INVALIDATED, on_views_invalidated)
    """
    if event_name not in _event_handlers:
        _event_handlers[event_name] = []

    _event_handlers[event_name].append(handler)
    logger.debug(f"Subscribed handler to event: {event_name}")


def unsubscribe(event_name: str, handler: Callable):
    """Remove a previously subscribed handler (no-op if absent)."""
    handlers = _event_handlers.get(event_name, [])
    if handler in handlers:
        handlers.remove(handler)


def emit(event_name: str, **kwargs):
    """
    Emit an event, calling all subscribed handlers.

    Args:
        event_name: Name of the event
        **kwargs: Event data passed to handlers

    Example:
        emit(EVENT_VIEWS_INVALIDATED, user_id=user_id, paths=["/progress"])
    """
    if event_name not in _event_handlers:
        return

    for handler in list(_event_handlers[event_name]):
        try:
            handler(**kwargs)
        except Exception as e:
            logger.error(f"Error in event handler for {event_name}: {e}", exc_info=True)


# Event names
EVENT_VIEWS_INVALIDATED = 'views.invalidated'
