"""
Frame description for the external renderer.

Nothing here draws pixels. describe_frame() lists what is on the surface in
surface pixel coordinates, so any UI (canvas, Qt, PIL preview) can paint it.
"""

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Optional

from polybox.geometry import denormalize, denormalize_polygon, handle_points
from polybox.models import Box, Mode, Polygon
from polybox.store import AnnotationStore

if TYPE_CHECKING:
    from polybox.editor import EditorState

PREVIEW_COLOR = "#22C55E"
SELECTED_POLYGON_COLOR = "#1D4ED8"
VERTEX_COLOR = "#F59E0B"


@dataclass
class BoxItem:
    label: str
    color: str
    rect: tuple[float, float, float, float]
    selected: bool = False
    handles: list[tuple[str, float, float]] = field(default_factory=list)


@dataclass
class PolygonItem:
    label: str
    color: str
    points: list[tuple[float, float]]
    selected: bool = False


@dataclass
class DraftPolygon:
    """In-progress polygon, closed through the pointer for preview."""
    points: list[tuple[float, float]]
    pointer: tuple[float, float]
    selected_vertex: Optional[int] = None
    color: str = PREVIEW_COLOR
    vertex_color: str = VERTEX_COLOR


@dataclass
class Frame:
    surface: tuple[int, int]
    mode: str
    image_name: Optional[str] = None
    progress: str = ""
    boxes: list[BoxItem] = field(default_factory=list)
    polygons: list[PolygonItem] = field(default_factory=list)
    box_preview: Optional[tuple[float, float, float, float]] = None
    draft: Optional[DraftPolygon] = None

    def to_dict(self) -> dict:
        return asdict(self)


def describe_frame(store: AnnotationStore, state: "EditorState") -> Frame:
    """
    Build the frame for the current image and editor state.

    Shapes are listed in z-order (first drawn first).
    """
    sw, sh = state.surface
    image = store.current_image
    frame = Frame(surface=(sw, sh), mode=state.mode.value)

    if image is None:
        return frame

    frame.image_name = image.name
    frame.progress = f"Image {store.current_index + 1} of {store.get_image_count()}"

    ann = store.get_annotations(image.name)
    for shape in (ann.shapes if ann else []):
        color = store.labels.color_of(shape.label)
        if isinstance(shape, Box):
            rect = denormalize(shape, sw, sh)
            selected = shape is state.selected_box
            frame.boxes.append(BoxItem(
                label=shape.label,
                color=color,
                rect=rect,
                selected=selected,
                handles=[(h.value, hx, hy) for h, hx, hy in handle_points(*rect)] if selected else [],
            ))
        elif isinstance(shape, Polygon):
            frame.polygons.append(PolygonItem(
                label=shape.label,
                color=SELECTED_POLYGON_COLOR if shape is state.selected_polygon else color,
                points=denormalize_polygon(shape.points, sw, sh),
                selected=shape is state.selected_polygon,
            ))

    if state.mode == Mode.BOX and state.drawing and state.selected_handle is None:
        (x0, y0), (x1, y1) = state.start, state.last
        frame.box_preview = (x0, y0, x1 - x0, y1 - y0)

    if state.mode == Mode.POLYGON and state.poly_points:
        frame.draft = DraftPolygon(
            points=denormalize_polygon(state.poly_points, sw, sh),
            pointer=state.last,
            selected_vertex=state.selected_vertex,
        )

    return frame
