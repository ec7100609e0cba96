"""
Tests for the interaction state machine and the Editor facade.
"""

import pytest

from polybox.editor import (
    Editor,
    EditorState,
    KeyEvent,
    MissingLabelError,
    PointerEvent,
    pointer_down,
)
from polybox.events import EventType
from polybox.geometry import denormalize
from polybox.models import Box, Handle, ImageRecord, Mode, Polygon
from polybox.store import AnnotationStore


def drag(editor, x0, y0, x1, y1):
    editor.pointer_down(PointerEvent(x0, y0))
    editor.pointer_move(PointerEvent(x1, y1))
    return editor.pointer_up(PointerEvent(x1, y1))


def tap(editor, x, y):
    editor.pointer_down(PointerEvent(x, y))
    return editor.pointer_up(PointerEvent(x, y))


@pytest.fixture
def editor():
    """Editor on a 1024x768 image (surface is 1:1) with label "cat" active."""
    editor = Editor()
    editor.load_image(ImageRecord(name="a.png", width=1024, height=768))
    editor.add_label("cat")
    editor.set_active_label("cat")
    return editor


@pytest.fixture
def poly_editor(editor):
    editor.set_mode(Mode.POLYGON)
    return editor


def shapes(editor, name="a.png"):
    return editor.store.get_annotations(name).shapes


class TestBoxDrawing:
    """Tests for drawing and editing boxes."""

    def test_surface_fits_image(self, editor):
        assert editor.state.surface == (1024, 768)

    def test_drag_commits_box(self, editor):
        """Test that a 4px drag creates a normalized box."""
        state = drag(editor, 100, 100, 104, 104)

        box = shapes(editor)[0]
        assert (box.xc, box.yc) == pytest.approx((102 / 1024, 102 / 768))
        assert (box.w, box.h) == pytest.approx((4 / 1024, 4 / 768))
        assert box.label == "cat"
        assert state.selected_box is box
        assert not state.drawing

    def test_short_drag_is_click(self, editor):
        """Test that a 3px drag creates nothing."""
        drag(editor, 100, 100, 103, 103)
        drag(editor, 100, 100, 200, 102)

        assert shapes(editor) == []

    def test_drag_up_left(self, editor):
        """Test that dragging towards the origin still gives a positive box."""
        drag(editor, 300, 300, 200, 250)

        rect = denormalize(shapes(editor)[0], 1024, 768)
        assert rect == pytest.approx((200, 250, 100, 50))

    def test_missing_label_warns(self):
        """Test that drawing without a label only warns."""
        editor = Editor()
        editor.load_image(ImageRecord(name="a.png", width=1024, height=768))
        warnings = []
        editor.events.on(EventType.WARNING, warnings.append)

        state = drag(editor, 100, 100, 200, 200)

        assert editor.store.get_annotations("a.png").shapes == []
        assert not state.drawing
        assert len(warnings) == 1
        assert "label" in warnings[0].data["message"]

    def test_missing_label_raises_in_transition(self):
        """Test that the pure transition raises and leaves the store alone."""
        store = AnnotationStore()
        store.add_image(ImageRecord(name="a.png", width=10, height=10))

        with pytest.raises(MissingLabelError):
            pointer_down(store, EditorState(), PointerEvent(1, 1))

    def test_no_image_is_noop(self):
        editor = Editor()
        editor.add_label("cat")
        editor.set_active_label("cat")

        state = drag(editor, 10, 10, 100, 100)

        assert not state.drawing
        assert editor.last_warning is None

    def test_resize_bottom_right(self, editor):
        """Test dragging the bottom-right handle."""
        drag(editor, 100, 100, 200, 150)
        box = shapes(editor)[0]

        state = editor.pointer_down(PointerEvent(200, 150))
        assert state.selected_handle == Handle.BOTTOM_RIGHT

        editor.pointer_move(PointerEvent(250, 200))
        state = editor.pointer_up(PointerEvent(250, 200))

        assert denormalize(box, 1024, 768) == pytest.approx((100, 100, 150, 100))
        assert len(shapes(editor)) == 1
        assert state.selected_handle is None

    def test_topmost_box_selected(self, editor):
        """Test that the last-added box wins on overlap."""
        lower = Box(200 / 1024, 200 / 768, 200 / 1024, 200 / 768, "cat")
        upper = Box(300 / 1024, 300 / 768, 200 / 1024, 200 / 768, "cat")
        editor.store.add_shape("a.png", lower)
        editor.store.add_shape("a.png", upper)

        state = tap(editor, 250, 250)

        assert state.selected_box is upper
        assert len(shapes(editor)) == 2

    def test_delete_selected_box(self, editor):
        drag(editor, 100, 100, 200, 200)

        state = editor.key_down(KeyEvent("Delete"))

        assert shapes(editor) == []
        assert state.selected_box is None

    def test_delete_during_resize(self, editor):
        """Test that deleting a box mid-resize does not leave a new-box drag behind."""
        drag(editor, 100, 100, 200, 200)
        editor.pointer_down(PointerEvent(200, 200))

        state = editor.key_down(KeyEvent("Delete"))
        assert not state.drawing

        editor.pointer_move(PointerEvent(600, 500))
        editor.pointer_up(PointerEvent(600, 500))

        assert shapes(editor) == []

    def test_undo_during_resize(self, editor):
        drag(editor, 100, 100, 200, 200)
        editor.pointer_down(PointerEvent(200, 200))

        state = editor.key_down(KeyEvent("z", ctrl=True))
        editor.pointer_up(PointerEvent(600, 500))

        assert state.selected_handle is None
        assert shapes(editor) == []

    def test_undo_lifo(self, editor):
        """Test that undo removes boxes newest first and then does nothing."""
        drag(editor, 10, 10, 50, 50)
        drag(editor, 100, 10, 150, 50)
        drag(editor, 200, 10, 250, 50)
        first = shapes(editor)[0]

        editor.key_down(KeyEvent("z", ctrl=True))
        editor.key_down(KeyEvent("z", meta=True))
        assert shapes(editor) == [first]

        editor.key_down(KeyEvent("z", ctrl=True))
        assert shapes(editor) == []

        before = editor.state
        assert editor.key_down(KeyEvent("z", ctrl=True)) == before


class TestPolygonDrawing:
    """Tests for drawing and editing polygons."""

    def add_triangle(self, editor):
        tap(editor, 100, 100)
        tap(editor, 200, 100)
        tap(editor, 150, 200)

    def test_double_click_commits(self, poly_editor):
        """Test that three vertices and a double-click make a polygon."""
        self.add_triangle(poly_editor)

        state = poly_editor.double_click()

        polygon = shapes(poly_editor)[0]
        assert isinstance(polygon, Polygon)
        assert polygon.points == pytest.approx(
            [100 / 1024, 100 / 768, 200 / 1024, 100 / 768, 150 / 1024, 200 / 768]
        )
        assert state.poly_points == []

    def test_enter_commits(self, poly_editor):
        self.add_triangle(poly_editor)

        poly_editor.key_down(KeyEvent("Enter"))

        assert len(shapes(poly_editor)) == 1

    def test_too_few_vertices(self, poly_editor):
        """Test that committing two vertices does nothing."""
        tap(poly_editor, 100, 100)
        tap(poly_editor, 200, 100)

        state = poly_editor.key_down(KeyEvent("Enter"))

        assert shapes(poly_editor) == []
        assert len(state.poly_points) == 4

    def test_repeat_click_on_vertex_adds_nothing(self, poly_editor):
        """Test that clicking an existing vertex does not duplicate it."""
        tap(poly_editor, 100, 100)
        state = tap(poly_editor, 102, 101)

        assert len(state.poly_points) == 2

    def test_vertex_drag(self, poly_editor):
        """Test moving an in-progress vertex."""
        self.add_triangle(poly_editor)

        state = poly_editor.pointer_down(PointerEvent(102, 101))
        assert state.selected_vertex == 0

        poly_editor.pointer_move(PointerEvent(120, 130))
        state = poly_editor.pointer_up(PointerEvent(120, 130))

        assert state.poly_points[:2] == pytest.approx([120 / 1024, 130 / 768])
        assert len(state.poly_points) == 6
        assert state.selected_vertex is None

    def test_undo_vertex(self, poly_editor):
        """Test that undo drops the last vertex before any shape."""
        self.add_triangle(poly_editor)
        poly_editor.double_click()
        tap(poly_editor, 500, 500)
        tap(poly_editor, 600, 500)

        state = poly_editor.key_down(KeyEvent("z", ctrl=True))

        assert len(state.poly_points) == 2
        assert len(shapes(poly_editor)) == 1

    def test_delete_selected_vertex(self, poly_editor):
        """Test that a vertex being dragged is deleted first."""
        self.add_triangle(poly_editor)
        poly_editor.pointer_down(PointerEvent(200, 100))

        state = poly_editor.key_down(KeyEvent("Delete"))

        assert len(state.poly_points) == 4
        assert state.poly_points[2:] == pytest.approx([150 / 1024, 200 / 768])

    def test_select_and_delete_polygon(self, poly_editor):
        """Test that a click inside a committed polygon selects it."""
        self.add_triangle(poly_editor)
        poly_editor.double_click()
        polygon = shapes(poly_editor)[0]

        state = poly_editor.click(PointerEvent(150, 130))
        assert state.selected_polygon is polygon
        assert state.poly_points == []

        poly_editor.key_down(KeyEvent("Delete"))
        assert shapes(poly_editor) == []

    def test_click_outside_clears_selection(self, poly_editor):
        self.add_triangle(poly_editor)
        poly_editor.double_click()
        poly_editor.click(PointerEvent(150, 130))

        state = poly_editor.click(PointerEvent(800, 600))

        assert state.selected_polygon is None

    def test_click_ignored_while_drawing(self, poly_editor):
        """Test that selection does not happen with vertices in progress."""
        self.add_triangle(poly_editor)
        poly_editor.double_click()
        tap(poly_editor, 600, 600)

        state = poly_editor.click(PointerEvent(150, 130))

        assert state.selected_polygon is None

    def test_polygon_starts_inside_committed_one(self, poly_editor):
        """Test that a pointer-down inside a polygon appends, so polygons can nest."""
        tap(poly_editor, 100, 100)
        tap(poly_editor, 400, 100)
        tap(poly_editor, 400, 400)
        poly_editor.double_click()

        state = poly_editor.pointer_down(PointerEvent(350, 200))

        assert state.poly_points == pytest.approx([350 / 1024, 200 / 768])
        assert state.selected_polygon is None

        poly_editor.pointer_up(PointerEvent(350, 200))
        tap(poly_editor, 380, 200)
        tap(poly_editor, 380, 350)
        poly_editor.double_click()

        assert len(shapes(poly_editor)) == 2

    def test_click_outside_adds_vertex(self, poly_editor):
        self.add_triangle(poly_editor)
        poly_editor.double_click()

        state = tap(poly_editor, 800, 600)

        assert len(state.poly_points) == 2
        assert state.selected_polygon is None

    def test_label_removed_before_commit(self, poly_editor):
        """Test that committing without a label warns and keeps the vertices."""
        self.add_triangle(poly_editor)
        poly_editor.set_active_label(None)

        state = poly_editor.double_click()

        assert shapes(poly_editor) == []
        assert len(state.poly_points) == 6
        assert poly_editor.last_warning


class TestModeAndNavigation:
    """Tests for mode switching and image navigation."""

    def test_mode_switch_purges_current_image(self, editor):
        editor.load_image(ImageRecord(name="b.png", width=1024, height=768))
        editor.store.add_shape("b.png", Box(0.5, 0.5, 0.1, 0.1, "cat"))
        drag(editor, 100, 100, 200, 200)

        state = editor.key_down(KeyEvent("p"))

        assert state.mode == Mode.POLYGON
        assert shapes(editor) == []
        assert len(shapes(editor, "b.png")) == 1
        assert state.selected_box is None

    def test_mode_event(self, editor):
        events = []
        editor.events.on(EventType.MODE_CHANGED, events.append)

        editor.set_mode(Mode.POLYGON)
        editor.set_mode(Mode.POLYGON)

        assert [e.data for e in events] == [{"from": "box", "to": "polygon"}]

    def test_modified_letter_ignored(self, editor):
        assert editor.key_down(KeyEvent("p", ctrl=True)).mode == Mode.BOX

    def test_image_switch_clears_state(self, poly_editor):
        """Test that navigation drops the polygon in progress."""
        poly_editor.load_image(ImageRecord(name="b.png", width=2048, height=768))
        tap(poly_editor, 100, 100)

        state = poly_editor.key_down(KeyEvent("ArrowRight"))

        assert poly_editor.store.current_image.name == "b.png"
        assert state.poly_points == []
        assert state.mode == Mode.POLYGON
        assert state.surface == (1024, 384)

    def test_navigation_bounds(self, editor):
        editor.key_down(KeyEvent("ArrowLeft"))
        assert editor.store.current_index == 0

        editor.next_image()
        assert editor.store.current_index == 0

    def test_delete_current_image(self, editor):
        editor.load_image(ImageRecord(name="b.png", width=100, height=100))
        drag(editor, 100, 100, 200, 200)

        editor.delete_current_image()

        assert editor.store.current_image.name == "b.png"
        assert editor.store.get_annotations("a.png") is None
        assert editor.state.selected_box is None


class TestEditorFacade:
    """Tests for events, labels and frames."""

    def test_shape_events(self, editor):
        added, removed = [], []
        editor.events.on(EventType.SHAPE_ADDED, added.append)
        editor.events.on(EventType.SHAPE_REMOVED, removed.append)

        drag(editor, 100, 100, 200, 200)
        editor.key_down(KeyEvent("z", ctrl=True))

        assert len(added) == 1
        assert added[0].data["image"] == "a.png"
        assert added[0].data["shape"]["type"] == "box"
        assert len(removed) == 1

    def test_delete_label_clears_selection(self, editor):
        drag(editor, 100, 100, 200, 200)
        assert editor.state.selected_box is not None

        removed = editor.delete_label("cat")

        assert removed == 1
        assert editor.state.selected_box is None
        assert editor.store.active_label is None

    def test_delete_label_mid_resize(self, editor):
        drag(editor, 100, 100, 200, 200)
        editor.pointer_down(PointerEvent(200, 200))

        editor.delete_label("cat")

        assert not editor.state.drawing

    def test_delete_unregistered_label(self, editor):
        """Test that shapes with a name outside the label set can be purged."""
        editor.store.load_dict({
            "annotations": {
                "a.png": {"shapes": [{"type": "box", "xc": 0.5, "yc": 0.5, "w": 0.1, "h": 0.1, "label": "ghost"}]},
            },
        })
        events = []
        editor.events.on(EventType.LABEL_REMOVED, events.append)

        removed = editor.delete_label("ghost")

        assert removed == 1
        assert shapes(editor) == []
        assert events[0].data == {"name": "ghost", "shapes_removed": 1}

    def test_transitions_do_not_mutate_state(self, editor):
        """Test that a transition returns a new state."""
        before = editor.state

        after = editor.pointer_down(PointerEvent(100, 100))

        assert after is not before
        assert not before.drawing
        assert after.drawing

    def test_frame(self, editor):
        """Test frame contents while drawing."""
        drag(editor, 100, 100, 200, 200)
        editor.pointer_down(PointerEvent(400, 400))
        editor.pointer_move(PointerEvent(450, 420))

        frame = editor.frame()

        assert frame.progress == "Image 1 of 1"
        assert len(frame.boxes) == 1
        assert frame.boxes[0].rect == pytest.approx((100, 100, 100, 100))
        assert frame.box_preview == (400, 400, 50, 20)

    def test_frame_draft_polygon(self, poly_editor):
        tap(poly_editor, 100, 100)
        poly_editor.pointer_move(PointerEvent(300, 300))

        frame = poly_editor.frame()

        assert frame.draft is not None
        assert frame.draft.pointer == (300, 300)
        assert frame.to_dict()["mode"] == "polygon"

    def test_resize_surface_drifts(self, editor):
        """Test that stored boxes keep normalized values after a resize."""
        drag(editor, 100, 100, 200, 200)
        box = shapes(editor)[0]
        xc = box.xc

        editor.resize_surface(512, 384)

        assert box.xc == xc
        assert editor.frame().boxes[0].rect == pytest.approx((50, 50, 50, 50))
