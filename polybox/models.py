"""
Core data models for polybox.

Dataclasses representing images, shapes and per-image annotation sets.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class Mode(str, Enum):
    """Global editing mode. Only one shape type can be authored at a time."""
    BOX = "box"
    POLYGON = "polygon"


class Handle(str, Enum):
    """Resize handles of a box, in hit-test order."""
    TOP_LEFT = "tl"
    TOP_MID = "tm"
    TOP_RIGHT = "tr"
    MID_LEFT = "ml"
    MID_RIGHT = "mr"
    BOTTOM_LEFT = "bl"
    BOTTOM_MID = "bm"
    BOTTOM_RIGHT = "br"

    @property
    def top(self) -> bool:
        return self.value[0] == "t"

    @property
    def bottom(self) -> bool:
        return self.value[0] == "b"

    @property
    def left(self) -> bool:
        return self.value[1] == "l"

    @property
    def right(self) -> bool:
        return self.value[1] == "r"


@dataclass
class ImageRecord:
    """Represents a loaded image."""
    name: str  # Unique key, usually the file name
    width: int
    height: int
    raster: Optional[Any] = field(default=None, repr=False)  # Decoded image handle


@dataclass(eq=False)
class Box:
    """Axis-aligned box, center and size normalized to the display surface."""
    xc: float
    yc: float
    w: float
    h: float
    label: str

    kind = Mode.BOX

    def to_dict(self) -> dict:
        return {
            "type": "box",
            "xc": self.xc,
            "yc": self.yc,
            "w": self.w,
            "h": self.h,
            "label": self.label,
        }


@dataclass(eq=False)
class Polygon:
    """Polygon with a flat normalized vertex list [x1, y1, x2, y2, ...]."""
    points: list[float]
    label: str

    kind = Mode.POLYGON

    @property
    def vertex_count(self) -> int:
        return len(self.points) // 2

    def vertices(self) -> list[tuple[float, float]]:
        """Return the vertex ring as (x, y) pairs."""
        return [
            (self.points[i], self.points[i + 1])
            for i in range(0, len(self.points) - 1, 2)
        ]

    def to_dict(self) -> dict:
        return {
            "type": "polygon",
            "points": list(self.points),
            "label": self.label,
        }


Shape = Union[Box, Polygon]

# A committed polygon needs at least 3 vertices (6 coordinates)
MIN_POLYGON_VERTICES = 3


@dataclass
class AnnotationSet:
    """Shapes drawn on a single image, in insertion (z) order."""
    mode: Mode  # Mode at creation time, informational only
    shapes: list = field(default_factory=list)

    def boxes(self) -> list[Box]:
        return [s for s in self.shapes if isinstance(s, Box)]

    def polygons(self) -> list[Polygon]:
        return [s for s in self.shapes if isinstance(s, Polygon)]

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "shapes": [s.to_dict() for s in self.shapes],
        }


def shape_from_dict(data: dict) -> Shape:
    """Build a shape from its dict form (see Box.to_dict / Polygon.to_dict)."""
    kind = data.get("type")
    if kind == "box":
        return Box(
            xc=float(data["xc"]),
            yc=float(data["yc"]),
            w=float(data["w"]),
            h=float(data["h"]),
            label=data["label"],
        )
    if kind in ("polygon", "poly"):
        points = [float(v) for v in data["points"]]
        if len(points) < MIN_POLYGON_VERTICES * 2 or len(points) % 2 != 0:
            raise ValueError(f"Invalid polygon point list of length {len(points)}")
        return Polygon(points=points, label=data["label"])
    raise ValueError(f"Unknown shape type: {kind!r}")
