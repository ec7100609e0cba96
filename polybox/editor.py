"""
Interaction state machine for drawing and editing shapes.

Transitions are plain functions of the form

    transition(store, state, event) -> EditorState

They never touch the previous EditorState (a new one is returned) and only
mutate the AnnotationStore. The Editor class at the bottom wires them to an
event emitter and logging for UI use.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from polybox.events import EditorEvent, EventEmitter, EventType
from polybox.geometry import (
    denormalize, denormalize_polygon, fit_surface, hit_handle, normalize_point,
    normalize_rect, point_in_polygon, point_in_rect, rect_from_drag,
    resize_rect, vertex_hit,
)
from polybox.models import (
    MIN_POLYGON_VERTICES, Box, Handle, ImageRecord, Mode, Polygon,
)
from polybox.render import Frame, describe_frame
from polybox.store import AnnotationStore

logger = logging.getLogger(__name__)

# New boxes must be dragged further than this on both axes
MIN_DRAG_PX = 3

DEFAULT_VIEWPORT = (1024, 768)


class AnnotationError(ValueError):
    """Base class for user-facing editing errors."""


class MissingLabelError(AnnotationError):
    """A shape was about to be created without an active label."""

    def __init__(self):
        super().__init__("Please create and select a label before annotating.")


@dataclass(frozen=True)
class PointerEvent:
    """Pointer position in display-surface pixels."""
    x: float
    y: float


@dataclass(frozen=True)
class KeyEvent:
    key: str
    ctrl: bool = False
    meta: bool = False


@dataclass
class EditorState:
    """Transient drawing state. Nothing here outlives an editing session."""
    mode: Mode = Mode.BOX
    viewport: tuple[int, int] = DEFAULT_VIEWPORT
    surface: tuple[int, int] = DEFAULT_VIEWPORT
    drawing: bool = False
    start: tuple[float, float] = (0.0, 0.0)
    last: tuple[float, float] = (0.0, 0.0)
    poly_points: list[float] = field(default_factory=list)  # In-progress polygon, flat normalized
    selected_box: Optional[Box] = None
    selected_handle: Optional[Handle] = None
    selected_polygon: Optional[Polygon] = None
    selected_vertex: Optional[int] = None  # Index into the in-progress vertices

    def cleared(self) -> "EditorState":
        """Same mode and surface, no drawing and no selection."""
        return EditorState(
            mode=self.mode,
            viewport=self.viewport,
            surface=self.surface,
            last=self.last,
        )

    def idle(self) -> "EditorState":
        """Drop any drag in progress, keep selections."""
        return replace(self, drawing=False, selected_handle=None, selected_vertex=None)

    @property
    def polygon_in_progress(self) -> bool:
        return bool(self.poly_points)

    @property
    def can_commit_polygon(self) -> bool:
        return len(self.poly_points) >= MIN_POLYGON_VERTICES * 2


def surface_for(image: Optional[ImageRecord], viewport: tuple[int, int]) -> tuple[int, int]:
    """Surface size used while an image is shown."""
    if image is None:
        return viewport
    return fit_surface(image.width, image.height, *viewport)


def _require_label(store: AnnotationStore) -> str:
    label = store.active_label
    if not label:
        raise MissingLabelError()
    return label


def _polygon_at(store: AnnotationStore, image: ImageRecord, state: EditorState, x: float, y: float) -> Optional[Polygon]:
    """Topmost committed polygon containing the point."""
    ann = store.get_annotations(image.name)
    if ann is None:
        return None

    sw, sh = state.surface
    for shape in reversed(ann.shapes):
        if not isinstance(shape, Polygon):
            continue
        if point_in_polygon(denormalize_polygon(shape.points, sw, sh), x, y):
            return shape
    return None


# ==================== Pointer ====================

def pointer_down(store: AnnotationStore, state: EditorState, event: PointerEvent) -> EditorState:
    """
    Start an interaction at the pointer.

    Raises:
        MissingLabelError: No active label. Nothing is changed.
    """
    image = store.current_image
    if image is None:
        return state

    _require_label(store)

    if state.mode == Mode.BOX:
        return _box_pointer_down(store, image, state, event)
    return _polygon_pointer_down(state, event)


def _box_pointer_down(store: AnnotationStore, image: ImageRecord, state: EditorState, event: PointerEvent) -> EditorState:
    x, y = event.x, event.y
    sw, sh = state.surface
    state = replace(state, selected_polygon=None, selected_vertex=None, last=(x, y))

    ann = store.get_annotations(image.name)
    if ann is not None:
        for shape in reversed(ann.shapes):
            if not isinstance(shape, Box):
                continue
            rect = denormalize(shape, sw, sh)
            handle = hit_handle(x, y, *rect)
            if handle is not None:
                return replace(state, selected_box=shape, selected_handle=handle, drawing=True)
            if point_in_rect(x, y, *rect):
                return replace(state, selected_box=shape, selected_handle=None, drawing=False)

    # Empty area: start a new box
    return replace(
        state,
        drawing=True,
        start=(x, y),
        selected_box=None,
        selected_handle=None,
    )


def _polygon_pointer_down(state: EditorState, event: PointerEvent) -> EditorState:
    x, y = event.x, event.y
    sw, sh = state.surface
    state = replace(
        state,
        selected_box=None,
        selected_handle=None,
        selected_polygon=None,
        last=(x, y),
    )

    vertex = vertex_hit(state.poly_points, x, y, sw, sh)
    if vertex is not None:
        return replace(state, selected_vertex=vertex, drawing=True)

    nx, ny = normalize_point(x, y, sw, sh)
    return replace(state, poly_points=state.poly_points + [nx, ny], drawing=True)


def pointer_move(store: AnnotationStore, state: EditorState, event: PointerEvent) -> EditorState:
    """Track the pointer; resize a box or move a vertex while dragging."""
    if store.current_image is None:
        return state

    x, y = event.x, event.y
    sw, sh = state.surface
    state = replace(state, last=(x, y))

    if state.mode == Mode.BOX:
        box, handle = state.selected_box, state.selected_handle
        if box is not None and handle is not None and state.drawing:
            rect = resize_rect(denormalize(box, sw, sh), handle, x, y)
            box.xc, box.yc, box.w, box.h = normalize_rect(*rect, sw, sh)
    elif state.selected_vertex is not None and state.drawing:
        i = state.selected_vertex * 2
        points = list(state.poly_points)
        points[i], points[i + 1] = normalize_point(x, y, sw, sh)
        state = replace(state, poly_points=points)

    return state


def pointer_up(store: AnnotationStore, state: EditorState, event: PointerEvent) -> EditorState:
    """
    Finish a drag.

    In box mode a new-box drag commits a Box only when it moved more than
    MIN_DRAG_PX on both axes; shorter drags are treated as clicks.
    """
    x, y = event.x, event.y

    if state.mode == Mode.POLYGON:
        return replace(state, drawing=False, selected_vertex=None, last=(x, y))

    if state.selected_handle is not None and state.drawing:
        return replace(state, drawing=False, selected_handle=None, last=(x, y))

    if not state.drawing:
        return state

    state = replace(state, drawing=False, last=(x, y))
    image = store.current_image
    if image is None:
        return state

    sx, sy = state.start
    if abs(x - sx) <= MIN_DRAG_PX or abs(y - sy) <= MIN_DRAG_PX:
        return state

    label = _require_label(store)
    sw, sh = state.surface
    xc, yc, w, h = normalize_rect(*rect_from_drag(sx, sy, x, y), sw, sh)
    box = store.add_shape(image.name, Box(xc=xc, yc=yc, w=w, h=h, label=label))

    # Auto-select so handles show immediately
    return replace(state, selected_box=box, selected_handle=None)


def click(store: AnnotationStore, state: EditorState, event: PointerEvent) -> EditorState:
    """Select the topmost committed polygon under the pointer."""
    if state.mode != Mode.POLYGON or state.polygon_in_progress:
        return state

    image = store.current_image
    if image is None:
        return state

    return replace(state, selected_polygon=_polygon_at(store, image, state, event.x, event.y))


def double_click(store: AnnotationStore, state: EditorState, event: Optional[PointerEvent] = None) -> EditorState:
    """Commit the polygon in progress."""
    if state.mode != Mode.POLYGON:
        return state
    return commit_polygon(store, state)


def commit_polygon(store: AnnotationStore, state: EditorState) -> EditorState:
    """
    Turn the in-progress vertices into a Polygon.

    Below MIN_POLYGON_VERTICES this is a silent no-op.

    Raises:
        MissingLabelError: No active label. Nothing is committed.
    """
    image = store.current_image
    if image is None or not state.can_commit_polygon:
        return state

    label = _require_label(store)
    store.add_shape(image.name, Polygon(points=list(state.poly_points), label=label))
    return replace(state, poly_points=[], drawing=False, selected_vertex=None)


# ==================== Keyboard ====================

def undo(store: AnnotationStore, state: EditorState) -> EditorState:
    """Drop the last in-progress vertex, or else the last shape of the image."""
    if state.mode == Mode.POLYGON and state.polygon_in_progress:
        points = state.poly_points[:-2]
        vertex = state.selected_vertex
        if vertex is not None and vertex * 2 >= len(points):
            vertex = None
        return replace(state, poly_points=points, selected_vertex=vertex)

    image = store.current_image
    if image is None:
        return state

    if store.pop_shape(image.name) is None:
        return state
    return replace(
        state,
        selected_box=None,
        selected_handle=None,
        selected_polygon=None,
        drawing=False,
    )


def delete_selection(store: AnnotationStore, state: EditorState) -> EditorState:
    """
    Delete the first of: the selected in-progress vertex, the selected
    polygon, the selected box.
    """
    image = store.current_image
    if image is None:
        return state

    if state.mode == Mode.POLYGON:
        if state.selected_vertex is not None and state.polygon_in_progress:
            i = state.selected_vertex * 2
            points = state.poly_points[:i] + state.poly_points[i + 2:]
            return replace(state, poly_points=points, selected_vertex=None, drawing=False)
        if state.selected_polygon is not None:
            store.remove_shape(image.name, state.selected_polygon)
            return replace(state, selected_polygon=None)

    if state.selected_box is not None:
        store.remove_shape(image.name, state.selected_box)
        return replace(state, selected_box=None, selected_handle=None, drawing=False)

    return state


def key_down(store: AnnotationStore, state: EditorState, event: KeyEvent) -> EditorState:
    """
    Keyboard shortcuts.

    Ctrl/Cmd+Z undo, Enter commits a polygon, Delete removes the selection,
    b/p switch mode, ArrowLeft/ArrowRight navigate images.
    """
    key = event.key
    modified = event.ctrl or event.meta

    if modified and key.lower() == "z":
        return undo(store, state)
    if key == "Enter":
        if state.mode == Mode.POLYGON:
            return commit_polygon(store, state)
        return state
    if key == "Delete":
        return delete_selection(store, state)
    if modified:
        return state
    if key.lower() == "b":
        return set_mode(store, state, Mode.BOX)
    if key.lower() == "p":
        return set_mode(store, state, Mode.POLYGON)
    if key == "ArrowLeft":
        return select_image(store, state, store.current_index - 1)
    if key == "ArrowRight":
        return select_image(store, state, store.current_index + 1)
    return state


# ==================== Mode / Navigation ====================

def set_mode(store: AnnotationStore, state: EditorState, mode: Mode) -> EditorState:
    """
    Switch mode. Purges the other shape type from the current image and
    clears all transient state.
    """
    mode = Mode(mode)
    if mode == state.mode:
        return state

    store.set_mode(mode)
    return replace(state.cleared(), mode=mode)


def show_current_image(store: AnnotationStore, state: EditorState) -> EditorState:
    """Fresh state sized for whatever image is current."""
    cleared = state.cleared()
    return replace(cleared, surface=surface_for(store.current_image, state.viewport))


def select_image(store: AnnotationStore, state: EditorState, index: int) -> EditorState:
    """Switch to the image at index. Out of range is a no-op."""
    if not store.select_image(index):
        return state
    return show_current_image(store, state)


def delete_current_image(store: AnnotationStore, state: EditorState) -> EditorState:
    image = store.current_image
    if image is None:
        return state
    store.delete_image(image.name)
    return show_current_image(store, state)


def resize_surface(state: EditorState, width: int, height: int) -> EditorState:
    """
    Change the surface size mid-session.

    Stored shapes are not rescaled. They are denormalized against the new
    size from now on, so their on-image position drifts.
    """
    return replace(state, surface=(max(1, int(width)), max(1, int(height))))


class Editor:
    """
    Owns one AnnotationStore and the current EditorState.

    Each handler applies a transition, reports shape changes on the current
    image as events, and turns MissingLabelError into a WARNING event.
    """

    def __init__(
        self,
        store: Optional[AnnotationStore] = None,
        viewport: tuple[int, int] = DEFAULT_VIEWPORT,
    ):
        self.store = store or AnnotationStore()
        self.state = EditorState(mode=self.store.mode, viewport=viewport, surface=viewport)
        self.state = show_current_image(self.store, self.state)
        self.events = EventEmitter()
        self.last_warning: Optional[str] = None

    # ==================== Dispatch ====================

    def _apply(self, transition, *args) -> EditorState:
        self.last_warning = None
        image = self.store.current_image
        before = self._shapes(image)

        try:
            self.state = transition(self.store, self.state, *args)
        except AnnotationError as e:
            self.state = self.state.idle()
            self.last_warning = str(e)
            logger.warning(self.last_warning)
            self.events.emit(EditorEvent(EventType.WARNING, {"message": self.last_warning}))
            return self.state

        if image is not None and image is self.store.current_image:
            self._emit_shape_diff(image, before, self._shapes(image))

        self.events.emit(EditorEvent(EventType.STATE_CHANGED))
        return self.state

    def _shapes(self, image: Optional[ImageRecord]) -> list:
        if image is None:
            return []
        ann = self.store.get_annotations(image.name)
        return list(ann.shapes) if ann else []

    def _emit_shape_diff(self, image: ImageRecord, before: list, after: list):
        before_ids = {id(s) for s in before}
        after_ids = {id(s) for s in after}
        for shape in before:
            if id(shape) not in after_ids:
                self.events.emit(EditorEvent(
                    EventType.SHAPE_REMOVED, {"image": image.name, "shape": shape.to_dict()}
                ))
        for shape in after:
            if id(shape) not in before_ids:
                self.events.emit(EditorEvent(
                    EventType.SHAPE_ADDED, {"image": image.name, "shape": shape.to_dict()}
                ))

    # ==================== Pointer / Keyboard ====================

    def pointer_down(self, event: PointerEvent) -> EditorState:
        return self._apply(pointer_down, event)

    def pointer_move(self, event: PointerEvent) -> EditorState:
        return self._apply(pointer_move, event)

    def pointer_up(self, event: PointerEvent) -> EditorState:
        return self._apply(pointer_up, event)

    def click(self, event: PointerEvent) -> EditorState:
        return self._apply(click, event)

    def double_click(self, event: Optional[PointerEvent] = None) -> EditorState:
        return self._apply(double_click, event)

    def key_down(self, event: KeyEvent) -> EditorState:
        mode, index = self.state.mode, self.store.current_index
        self._apply(key_down, event)
        self._emit_navigation(mode, index)
        return self.state

    # ==================== Mode / Images ====================

    def set_mode(self, mode: Mode) -> EditorState:
        previous = self.state.mode
        self._apply(set_mode, mode)
        self._emit_navigation(previous, self.store.current_index)
        return self.state

    def load_image(self, record: ImageRecord) -> ImageRecord:
        """Add a decoded image. Shows it if it is the first one."""
        had_current = self.store.current_image is not None
        self.store.add_image(record)
        self.events.emit(EditorEvent(
            EventType.IMAGE_LOADED,
            {"name": record.name, "width": record.width, "height": record.height},
        ))
        if not had_current:
            self.state = show_current_image(self.store, self.state)
            self.events.emit(EditorEvent(EventType.IMAGE_CHANGED, {"index": self.store.current_index}))
        return record

    def select_image(self, index: int) -> EditorState:
        previous = self.store.current_index
        self._apply(lambda store, state: select_image(store, state, index))
        self._emit_navigation(self.state.mode, previous)
        return self.state

    def next_image(self) -> EditorState:
        return self.select_image(self.store.current_index + 1)

    def prev_image(self) -> EditorState:
        return self.select_image(self.store.current_index - 1)

    def delete_current_image(self) -> EditorState:
        image = self.store.current_image
        if image is None:
            return self.state
        self.state = delete_current_image(self.store, self.state)
        self.events.emit(EditorEvent(EventType.IMAGE_DELETED, {"name": image.name}))
        self.events.emit(EditorEvent(EventType.IMAGE_CHANGED, {"index": self.store.current_index}))
        return self.state

    def resize_surface(self, width: int, height: int) -> EditorState:
        self.state = resize_surface(self.state, width, height)
        self.events.emit(EditorEvent(EventType.STATE_CHANGED))
        return self.state

    def _emit_navigation(self, previous_mode: Mode, previous_index: int):
        if self.state.mode != previous_mode:
            self.events.emit(EditorEvent(
                EventType.MODE_CHANGED,
                {"from": previous_mode.value, "to": self.state.mode.value},
            ))
        if self.store.current_index != previous_index:
            self.events.emit(EditorEvent(EventType.IMAGE_CHANGED, {"index": self.store.current_index}))

    # ==================== Labels ====================

    def add_label(self, name: str, color_hex: Optional[str] = None):
        label = self.store.add_label(name, color_hex)
        if label is not None:
            self.events.emit(EditorEvent(EventType.LABEL_ADDED, {"name": label.name}))
        return label

    def delete_label(self, name: str) -> int:
        """
        Delete a label and its shapes everywhere. Clears stale selections.

        Shapes carrying a name that is not in the label set are purged too.
        """
        removed = self.store.remove_label(name)
        state = self.state
        if state.selected_box is not None and state.selected_box.label == name:
            state = replace(state, selected_box=None, selected_handle=None, drawing=False)
        if state.selected_polygon is not None and state.selected_polygon.label == name:
            state = replace(state, selected_polygon=None)
        self.state = state

        self.events.emit(EditorEvent(EventType.LABEL_REMOVED, {"name": name, "shapes_removed": removed}))
        self.events.emit(EditorEvent(EventType.STATE_CHANGED))
        return removed

    def set_active_label(self, name: Optional[str]) -> bool:
        return self.store.set_active_label(name)

    # ==================== Rendering ====================

    def frame(self) -> Frame:
        """Describe what the renderer should draw right now."""
        return describe_frame(self.store, self.state)
