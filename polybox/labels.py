"""
Label set - ordered, unique label names with display colors.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Default label colors (will cycle through these)
DEFAULT_COLORS = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7",
    "#DDA0DD", "#98D8C8", "#F7DC6F", "#BB8FCE", "#85C1E9",
    "#F8B500", "#00CED1", "#FF69B4", "#32CD32", "#FFD700",
]

# Used when drawing a shape whose label has no color
FALLBACK_COLOR = "#E11D48"


@dataclass
class Label:
    """Represents a label/class for annotations."""
    name: str
    color_hex: str


class LabelSet:
    """
    Ordered collection of labels, at most one of which is active.

    The position of a label is its class index in box exports.
    """

    def __init__(self):
        self._labels: list[Label] = []
        self._assigned = 0  # Colors handed out so far, keeps cycling stable across deletes
        self.active: Optional[str] = None

    def __len__(self) -> int:
        return len(self._labels)

    def __iter__(self):
        return iter(self._labels)

    def __contains__(self, name: str) -> bool:
        return any(label.name == name for label in self._labels)

    @property
    def names(self) -> list[str]:
        return [label.name for label in self._labels]

    def add(self, name: str, color_hex: Optional[str] = None) -> Optional[Label]:
        """
        Add a label if it does not exist yet.

        Args:
            name: Label name, surrounding whitespace is stripped
            color_hex: Color in hex format (e.g., "#FF0000"), auto-assigned if omitted

        Returns:
            The new or existing Label, or None for a blank name
        """
        name = name.strip()
        if not name:
            return None

        existing = self.get(name)
        if existing:
            return existing

        if not color_hex:
            color_hex = DEFAULT_COLORS[self._assigned % len(DEFAULT_COLORS)]
        self._assigned += 1

        label = Label(name=name, color_hex=color_hex)
        self._labels.append(label)
        logger.debug(f"Added label {name!r} ({color_hex})")
        return label

    def get(self, name: str) -> Optional[Label]:
        for label in self._labels:
            if label.name == name:
                return label
        return None

    def remove(self, name: str) -> bool:
        """
        Remove a label. Clears the active label if it was this one.

        Returns:
            True if the label existed
        """
        label = self.get(name)
        if label is None:
            return False

        self._labels.remove(label)
        if self.active == name:
            self.active = None
        return True

    def index(self, name: str) -> int:
        """0-based position of a label, -1 if unknown."""
        for idx, label in enumerate(self._labels):
            if label.name == name:
                return idx
        return -1

    def color_of(self, name: str) -> str:
        label = self.get(name)
        return label.color_hex if label else FALLBACK_COLOR

    def set_active(self, name: Optional[str]) -> bool:
        """
        Make a label active, or clear the active label with None.

        Returns:
            False if the name is not a known label (nothing changes)
        """
        if name is not None and name not in self:
            return False
        self.active = name
        return True
