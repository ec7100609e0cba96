"""
Event system for the editor.

Lets the renderer and other UI pieces follow state changes without the
editor depending on any UI framework.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events emitted by the editor."""

    # Image events
    IMAGE_LOADED = "image_loaded"
    IMAGE_CHANGED = "image_changed"
    IMAGE_DELETED = "image_deleted"

    # Shape events
    SHAPE_ADDED = "shape_added"
    SHAPE_REMOVED = "shape_removed"

    # Label events
    LABEL_ADDED = "label_added"
    LABEL_REMOVED = "label_removed"

    # Editor events
    MODE_CHANGED = "mode_changed"
    STATE_CHANGED = "state_changed"
    WARNING = "warning"


@dataclass
class EditorEvent:
    """Event that occurs while editing."""

    event_type: EventType
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.data is None:
            self.data = {}


class EventEmitter:
    """Simple event emitter for pub/sub pattern."""

    def __init__(self):
        self._listeners: Dict[EventType, List[Callable]] = {}

    def on(self, event_type: EventType, callback: Callable[[EditorEvent], None]):
        """Subscribe to an event type."""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)

    def off(self, event_type: EventType, callback: Callable[[EditorEvent], None]):
        """Unsubscribe from an event type."""
        if event_type in self._listeners:
            self._listeners[event_type].remove(callback)

    def emit(self, event: EditorEvent):
        """Emit an event to all subscribers."""
        for callback in self._listeners.get(event.event_type, []):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Error in listener for {event.event_type.value}")

    def clear(self):
        """Clear all event listeners."""
        self._listeners.clear()
