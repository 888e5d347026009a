"""Tests for tool interactions driven through the canvas controller."""

import pytest
from PySide6.QtCore import QPointF, Qt

from conftest import click, drag
from tradeboard.editor.controller import (
    DARK_STROKE_COLOR,
    CanvasController,
    StyleSettings,
)
from tradeboard.editor.elements import (
    ElementStyle,
    ElementType,
    FreehandElement,
    ImageElement,
    PathElement,
    Point,
    PositionElement,
    ShapeElement,
    StrokeStyle,
    TextElement,
)
from tradeboard.editor.tools import Idle, Moving, ToolType

SHIFT = Qt.KeyboardModifier.ShiftModifier
CTRL = Qt.KeyboardModifier.ControlModifier


def _add(controller, *elements):
    for element in elements:
        controller.add_external_element(element)


class TestDrawing:
    def test_draw_rectangle(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        drag(controller, (10, 10), (110, 60))

        (element,) = controller.scene.elements
        assert element.kind == ElementType.RECTANGLE
        assert (element.x, element.y, element.width, element.height) == (10, 10, 100, 50)
        assert controller.scene.selected_ids == {element.id}
        assert controller.tool == ToolType.SELECTION

    def test_draw_backwards_is_normalized(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        drag(controller, (50, 50), (10, 10))

        (element,) = controller.scene.elements
        assert (element.x, element.y, element.width, element.height) == (10, 10, 40, 40)

    def test_drawing_uses_world_coordinates(self, controller):
        controller.view.set_scale(2.0)
        controller.view.pan_offset = QPointF(100, 0)
        controller.set_tool(ToolType.ELLIPSE)
        drag(controller, (100, 0), (300, 100))

        (element,) = controller.scene.elements
        assert (element.x, element.y, element.width, element.height) == (0, 0, 100, 50)

    def test_in_progress_element_is_not_in_scene(self, controller):
        controller.set_tool(ToolType.DIAMOND)
        controller.on_mouse_press(QPointF(0, 0))
        controller.on_mouse_move(QPointF(20, 20))
        assert len(controller.scene) == 0
        assert controller.scene.current_element.kind == ElementType.DIAMOND

    def test_arrow_keeps_signed_extent(self, controller):
        controller.set_tool(ToolType.ARROW)
        drag(controller, (100, 100), (40, 20))

        (element,) = controller.scene.elements
        assert (element.x, element.y, element.width, element.height) == (100, 100, -60, -80)

    def test_locked_tool_stays_active(self, controller):
        controller.set_tool(ToolType.RECTANGLE, locked=True)
        drag(controller, (0, 0), (20, 20))
        drag(controller, (50, 0), (70, 20))
        assert controller.tool == ToolType.RECTANGLE
        assert len(controller.scene) == 2

    def test_pencil_collects_points_and_stays_active(self, controller):
        controller.set_tool(ToolType.PENCIL)
        drag(controller, (0, 0), (40, 20), steps=4)

        (element,) = controller.scene.elements
        assert isinstance(element, FreehandElement)
        assert len(element.points) == 5
        assert (element.x, element.y, element.width, element.height) == (0, 0, 40, 20)
        assert controller.tool == ToolType.PENCIL

    def test_position_marker_default_size(self, controller):
        controller.set_tool(ToolType.LONG_POSITION)
        click(controller, (10, 10))

        (element,) = controller.scene.elements
        assert isinstance(element, PositionElement)
        assert (element.width, element.height, element.entry_ratio) == (100, 100, 0.5)

    def test_each_commit_is_one_history_entry(self, controller):
        controller.set_tool(ToolType.RECTANGLE, locked=True)
        drag(controller, (0, 0), (20, 20))
        drag(controller, (50, 0), (70, 20))
        assert len(controller.history) == 3


class TestPathTool:
    def test_multi_click_path(self, controller):
        controller.set_tool(ToolType.PATH)
        click(controller, (0, 0))
        controller.on_mouse_move(QPointF(50, 0))
        click(controller, (50, 0))
        controller.on_mouse_move(QPointF(50, 50))
        controller.on_mouse_press(QPointF(50, 50))
        assert controller.on_double_click(QPointF(50, 50))

        (element,) = controller.scene.elements
        assert isinstance(element, PathElement)
        assert element.points == (Point(0, 0), Point(50, 0), Point(50, 50))
        assert (element.x, element.y, element.width, element.height) == (0, 0, 50, 50)
        assert controller.tool == ToolType.SELECTION

    def test_rubber_band_moves_last_point(self, controller):
        controller.set_tool(ToolType.PATH)
        click(controller, (0, 0))
        controller.on_mouse_move(QPointF(30, 40))
        assert controller.scene.current_element.points == (Point(0, 0), Point(30, 40))

    def test_switching_tools_abandons_path(self, controller):
        controller.set_tool(ToolType.PATH)
        click(controller, (0, 0))
        controller.set_tool(ToolType.RECTANGLE)
        assert controller.scene.current_element is None
        assert len(controller.scene) == 0


class TestTextTool:
    def test_text_is_measured(self, controller, dialogs):
        dialogs.text_answers = ["hello"]
        controller.set_tool(ToolType.TEXT)
        click(controller, (10, 20))

        (element,) = controller.scene.elements
        assert isinstance(element, TextElement)
        assert element.text == "hello"
        assert element.width == 50
        assert element.height == pytest.approx(24 * 1.2)
        assert controller.tool == ToolType.SELECTION

    def test_cancelled_prompt_adds_nothing(self, controller, dialogs):
        controller.set_tool(ToolType.TEXT)
        click(controller, (10, 20))
        assert len(controller.scene) == 0
        assert controller.tool == ToolType.SELECTION

    def test_double_click_edits_text(self, controller, dialogs):
        text = TextElement(x=0, y=0, width=50, height=28.8, text="hello")
        _add(controller, text)
        dialogs.text_answers = ["bye"]

        assert controller.on_double_click(QPointF(10, 10))
        (edited,) = controller.scene.elements
        assert (edited.id, edited.text, edited.width) == (text.id, "bye", 30)
        assert dialogs.prompts[-1] == ("Edit text:", "hello")

    def test_emptying_text_removes_it(self, controller, dialogs):
        _add(controller, TextElement(x=0, y=0, width=50, height=28.8, text="hello"))
        dialogs.text_answers = [""]
        controller.on_double_click(QPointF(10, 10))
        assert len(controller.scene) == 0


class TestSelection:
    def test_click_selects_topmost(self, controller):
        bottom = ShapeElement(x=0, y=0, width=100, height=100)
        top = ShapeElement(x=50, y=50, width=100, height=100)
        _add(controller, bottom, top)
        click(controller, (75, 75))
        assert controller.scene.selected_ids == {top.id}

    def test_shift_click_toggles(self, controller):
        a = ShapeElement(x=0, y=0, width=20, height=20)
        b = ShapeElement(x=100, y=0, width=20, height=20)
        _add(controller, a, b)

        click(controller, (10, 10))
        click(controller, (110, 10), SHIFT)
        assert controller.scene.selected_ids == {a.id, b.id}

        controller.on_mouse_press(QPointF(10, 10), SHIFT)
        assert controller.scene.selected_ids == {b.id}
        assert not isinstance(controller.interaction, Moving)

    def test_box_select_requires_containment(self, controller):
        inside = ShapeElement(x=100, y=100, width=20, height=20)
        straddling = ShapeElement(x=180, y=100, width=50, height=20)
        _add(controller, inside, straddling)

        drag(controller, (50, 50), (200, 200))
        assert controller.scene.selected_ids == {inside.id}
        assert controller.scene.selection_box is None

    def test_shift_box_select_unions(self, controller):
        a = ShapeElement(x=100, y=100, width=20, height=20)
        b = ShapeElement(x=300, y=100, width=20, height=20)
        _add(controller, a, b)
        click(controller, (110, 110))

        drag(controller, (250, 50), (400, 200), modifiers=SHIFT)
        assert controller.scene.selected_ids == {a.id, b.id}

    def test_click_on_empty_canvas_clears_selection(self, controller):
        a = ShapeElement(x=0, y=0, width=20, height=20)
        _add(controller, a)
        click(controller, (10, 10))
        click(controller, (500, 500))
        assert controller.scene.selected_ids == set()

    def test_hover_tracks_topmost_element(self, controller):
        a = ShapeElement(x=0, y=0, width=20, height=20)
        _add(controller, a)
        controller.on_mouse_move(QPointF(10, 10))
        assert controller.scene.hovered_id == a.id
        controller.on_mouse_move(QPointF(300, 300))
        assert controller.scene.hovered_id is None


class TestMoveAndResize:
    def test_move_translates_snapshot_and_commits(self, controller):
        box = ShapeElement(x=0, y=0, width=20, height=20)
        stroke = FreehandElement(x=100, y=0, width=10, height=10, points=(Point(100, 0), Point(110, 10)))
        _add(controller, box, stroke)
        controller.scene.select([box.id, stroke.id])
        entries = len(controller.history)

        drag(controller, (10, 10), (40, 30), steps=5)

        moved_box = controller.scene.find(box.id)
        moved_stroke = controller.scene.find(stroke.id)
        assert (moved_box.x, moved_box.y) == (30, 20)
        assert moved_stroke.points == (Point(130, 20), Point(140, 30))
        assert len(controller.history) == entries + 1

    def test_click_without_drag_does_not_commit(self, controller):
        _add(controller, ShapeElement(x=0, y=0, width=20, height=20))
        entries = len(controller.history)
        click(controller, (10, 10))
        assert len(controller.history) == entries

    def test_resize_then_undo_restores_geometry(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        drag(controller, (10, 10), (110, 60))
        (before,) = controller.scene.elements

        drag(controller, (110, 60), (150, 90))
        (resized,) = controller.scene.elements
        assert (resized.width, resized.height) == (140, 80)

        controller.undo()
        assert controller.scene.elements == (before,)

    def test_resize_past_opposite_corner_normalizes(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        drag(controller, (100, 100), (200, 200))
        drag(controller, (200, 200), (50, 50))

        (element,) = controller.scene.elements
        assert (element.x, element.y, element.width, element.height) == (50, 50, 50, 50)

    def test_drag_entry_handle(self, controller):
        controller.set_tool(ToolType.SHORT_POSITION)
        click(controller, (10, 10))

        drag(controller, (110, 60), (110, 85))
        (element,) = controller.scene.elements
        assert element.entry_ratio == pytest.approx(0.75)
        assert (element.y, element.height) == (10, 100)


class TestEraser:
    def test_erases_within_radius_only(self, controller):
        near = ShapeElement(x=100, y=100, width=5, height=5)
        inside = ShapeElement(x=120, y=100, width=5, height=5)
        boundary = ShapeElement(x=130, y=100, width=5, height=5)
        far = ShapeElement(x=100, y=200, width=5, height=5)
        _add(controller, near, inside, boundary, far)
        controller.set_eraser_size(30)
        controller.set_tool(ToolType.ERASER)

        click(controller, (100, 100))

        assert {e.id for e in controller.scene.elements} == {boundary.id, far.id}
        assert controller.tool == ToolType.ERASER

    def test_erase_is_one_undoable_step(self, controller):
        a = ShapeElement(x=0, y=0, width=5, height=5)
        b = ShapeElement(x=50, y=0, width=5, height=5)
        _add(controller, a, b)
        controller.set_tool(ToolType.ERASER)

        drag(controller, (0, 0), (50, 0), steps=5)
        assert len(controller.scene) == 0
        controller.undo()
        assert len(controller.scene) == 2

    def test_radius_is_screen_space(self, controller):
        element = ShapeElement(x=20, y=0, width=5, height=5)
        _add(controller, element)
        controller.set_eraser_size(30)
        controller.view.set_scale(2.0)
        controller.set_tool(ToolType.ERASER)

        # 30px at 2x covers 15 world units; the origin is 20 away
        click(controller, (0, 0))
        assert len(controller.scene) == 1

    def test_eraser_size_is_clamped(self, controller):
        controller.set_eraser_size(500)
        assert controller.eraser_size == 100
        controller.set_eraser_size(1)
        assert controller.eraser_size == 5


class TestPanZoomLaser:
    def test_space_drag_pans_without_drawing(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        assert controller.handle_key_press(Qt.Key.Key_Space)
        assert controller.effective_tool == ToolType.HAND

        drag(controller, (0, 0), (30, 40))
        assert (controller.view.pan_offset.x(), controller.view.pan_offset.y()) == (30, 40)
        assert len(controller.scene) == 0

        controller.handle_key_release(Qt.Key.Key_Space)
        assert controller.effective_tool == ToolType.RECTANGLE

    def test_space_mid_move_still_commits(self, controller):
        box = ShapeElement(x=0, y=0, width=50, height=50)
        _add(controller, box)
        entries = len(controller.history)

        controller.on_mouse_press(QPointF(25, 25))
        controller.on_mouse_move(QPointF(125, 25))
        controller.handle_key_press(Qt.Key.Key_Space)
        controller.on_mouse_release(QPointF(125, 25))
        controller.handle_key_release(Qt.Key.Key_Space)

        assert controller.scene.find(box.id).x == 100
        assert len(controller.history) == entries + 1
        assert controller.history.current == controller.scene.snapshot()
        assert isinstance(controller.interaction, Idle)

        controller.undo()
        assert controller.scene.find(box.id).x == 0

    def test_space_mid_draw_still_commits(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        controller.on_mouse_press(QPointF(10, 10))
        controller.on_mouse_move(QPointF(110, 60))
        controller.handle_key_press(Qt.Key.Key_Space)
        controller.on_mouse_release(QPointF(110, 60))
        controller.handle_key_release(Qt.Key.Key_Space)

        (element,) = controller.scene.elements
        assert (element.x, element.y, element.width, element.height) == (10, 10, 100, 50)
        assert controller.scene.current_element is None
        assert controller.view.pan_offset == QPointF(0, 0)

    def test_space_held_before_press_pans(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        controller.handle_key_press(Qt.Key.Key_Space)
        controller.on_mouse_press(QPointF(0, 0))
        controller.handle_key_release(Qt.Key.Key_Space)
        controller.on_mouse_move(QPointF(20, 0))
        controller.on_mouse_release(QPointF(20, 0))

        assert len(controller.scene) == 0
        assert controller.scene.current_element is None
        assert isinstance(controller.interaction, Idle)

    def test_hand_tool_pans(self, controller):
        controller.set_tool(ToolType.HAND)
        drag(controller, (100, 100), (80, 90))
        assert (controller.view.pan_offset.x(), controller.view.pan_offset.y()) == (-20, -10)

    def test_wheel_pans_and_ctrl_wheel_zooms(self, controller):
        controller.on_wheel(QPointF(0, 0), 5, 10)
        assert (controller.view.pan_offset.x(), controller.view.pan_offset.y()) == (5, 10)

        controller.on_wheel(QPointF(200, 200), 0, 240, CTRL)
        assert controller.view.scale == pytest.approx(1.001 ** 240)

    def test_laser_never_touches_scene(self, controller, clock):
        controller.set_tool(ToolType.LASER)
        drag(controller, (0, 0), (100, 0), steps=3)
        assert len(controller.laser.points) == 4
        assert len(controller.scene) == 0
        assert len(controller.history) == 1

        clock.advance(1000)
        assert not controller.laser.is_active()


class TestKeyboard:
    def test_copy_paste_offsets_and_selects(self, controller):
        a = ShapeElement(x=0, y=0, width=10, height=10)
        b = ShapeElement(x=50, y=50, width=10, height=10)
        _add(controller, a, b)
        controller.scene.select([a.id, b.id])
        controller.view.set_scale(2.0)

        assert controller.handle_key_press(Qt.Key.Key_C, CTRL)
        assert controller.handle_key_press(Qt.Key.Key_V, CTRL)

        pasted = controller.scene.elements[2:]
        assert len(pasted) == 2
        assert {e.id for e in pasted}.isdisjoint({a.id, b.id})
        assert len({e.id for e in pasted}) == 2
        assert [(e.x, e.y) for e in pasted] == [(10, 10), (60, 60)]
        assert controller.scene.selected_ids == {e.id for e in pasted}

    def test_undo_redo_shortcuts(self, controller):
        _add(controller, ShapeElement(x=0, y=0, width=10, height=10))
        controller.handle_key_press(Qt.Key.Key_Z, CTRL)
        assert len(controller.scene) == 0
        controller.handle_key_press(Qt.Key.Key_Z, CTRL | SHIFT)
        assert len(controller.scene) == 1
        controller.handle_key_press(Qt.Key.Key_Z, CTRL)
        controller.handle_key_press(Qt.Key.Key_Y, CTRL)
        assert len(controller.scene) == 1

    def test_delete_selection(self, controller, dialogs):
        a = ShapeElement(x=0, y=0, width=10, height=10)
        b = ShapeElement(x=50, y=50, width=10, height=10)
        _add(controller, a, b)
        controller.scene.select([a.id])

        controller.handle_key_press(Qt.Key.Key_Delete)
        assert [e.id for e in controller.scene.elements] == [b.id]
        assert dialogs.confirmations == []

    def test_clear_board_needs_confirmation(self, controller, dialogs):
        _add(controller, ShapeElement(x=0, y=0, width=10, height=10))

        dialogs.confirm_answer = False
        controller.handle_key_press(Qt.Key.Key_Backspace)
        assert len(controller.scene) == 1

        dialogs.confirm_answer = True
        controller.handle_key_press(Qt.Key.Key_Backspace)
        assert len(controller.scene) == 0
        assert len(dialogs.confirmations) == 2

    def test_shortcuts_ignored_while_typing(self, controller):
        assert not controller.handle_key_press(Qt.Key.Key_R, text_input_focused=True)
        assert controller.tool == ToolType.SELECTION

    def test_tool_shortcuts(self, controller):
        expected = {
            Qt.Key.Key_H: ToolType.HAND,
            Qt.Key.Key_D: ToolType.DIAMOND,
            Qt.Key.Key_O: ToolType.ELLIPSE,
            Qt.Key.Key_W: ToolType.PATH,
            Qt.Key.Key_K: ToolType.LASER,
            Qt.Key.Key_V: ToolType.SELECTION,
        }
        for key, tool in expected.items():
            assert controller.handle_key_press(key)
            assert controller.tool == tool


class TestStyle:
    def test_style_change_applies_to_selection(self, controller):
        box = ShapeElement(x=0, y=0, width=10, height=10)
        _add(controller, box)
        controller.scene.select([box.id])

        controller.update_style(stroke_color="#ff5252", stroke_style=StrokeStyle.DASHED)
        (styled,) = controller.scene.elements
        assert styled.style.stroke_color == "#ff5252"
        assert styled.style.stroke_style == StrokeStyle.DASHED
        assert controller.style.stroke_color == "#ff5252"

        controller.undo()
        assert controller.scene.elements == (box,)

    def test_deferred_style_edits_commit_once(self, controller):
        box = ShapeElement(x=0, y=0, width=10, height=10)
        _add(controller, box)
        controller.scene.select([box.id])
        entries = len(controller.history)

        for opacity in (90, 70, 50, 30):
            controller.update_style(commit=False, opacity=opacity)
        assert controller.scene.find(box.id).style.opacity == 30
        assert len(controller.history) == entries

        controller.commit_style()
        assert len(controller.history) == entries + 1
        controller.commit_style()
        assert len(controller.history) == entries + 1

        controller.undo()
        assert controller.scene.find(box.id).style.opacity == 100

    def test_font_change_only_touches_text(self, controller):
        box = ShapeElement(x=0, y=0, width=10, height=10)
        text = TextElement(x=50, y=0, width=20, height=28.8, text="ab")
        _add(controller, box, text)
        controller.scene.select([box.id, text.id])

        controller.update_style(font_size=48)
        assert controller.scene.find(box.id) == box
        resized = controller.scene.find(text.id)
        assert resized.font_size == 48
        assert resized.height == pytest.approx(48 * 1.2)

    def test_unknown_setting_raises(self, controller):
        with pytest.raises(ValueError):
            controller.update_style(glow=True)

    def test_selecting_loads_element_style(self, controller):
        box = ShapeElement(
            x=0, y=0, width=20, height=20,
            style=ElementStyle(stroke_color="#448aff", opacity=40),
        )
        _add(controller, box)
        click(controller, (10, 10))
        assert controller.style.stroke_color == "#448aff"
        assert controller.style.opacity == 40

    def test_dark_mode_lightens_black_strokes(self, controller):
        controller.set_dark_mode(True)
        controller.set_tool(ToolType.RECTANGLE)
        drag(controller, (0, 0), (20, 20))
        assert controller.scene.elements[0].style.stroke_color == DARK_STROKE_COLOR

    def test_theme_toggle_signal(self, controller):
        received = []
        controller.theme_changed.connect(received.append)
        controller.toggle_theme()
        controller.toggle_theme()
        assert received == [True, False]

    def test_style_from_config(self):
        style = StyleSettings.from_config({
            "stroke_color": "#69f0ae",
            "stroke_style": "dotted",
            "text_align": "sideways",
            "unknown": 1,
        })
        assert style.stroke_color == "#69f0ae"
        assert style.stroke_style == StrokeStyle.DOTTED
        assert style.text_align.value == "left"


class TestExternalHooks:
    def test_add_external_element_is_undoable(self, controller):
        element = ShapeElement(x=0, y=0, width=10, height=10)
        controller.add_external_element(element)
        assert controller.scene.elements == (element,)
        controller.undo()
        assert controller.scene.elements == ()

    def test_insert_image_scales_and_centers(self, controller):
        controller.set_tool(ToolType.RECTANGLE)
        controller.viewport_size = (1200.0, 800.0)

        element = controller.insert_image(b"png", 1200, 600)
        assert isinstance(element, ImageElement)
        assert (element.width, element.height) == (600, 300)
        assert (element.x, element.y) == (300, 250)
        assert controller.tool == ToolType.SELECTION

    def test_small_images_keep_their_size(self, controller):
        element = controller.insert_image(b"png", 200, 100)
        assert (element.width, element.height) == (200, 100)

    def test_sessions_are_independent(self, app):
        first = CanvasController()
        second = CanvasController()
        first.set_tool(ToolType.PENCIL)
        first.update_style(stroke_color="#ff5252")
        assert second.tool == ToolType.SELECTION
        assert second.style.stroke_color == "#000000"
        assert isinstance(second.interaction, Idle)
