"""Smoke tests for the editor widgets and the application core."""

import pytest
from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF
from PySide6.QtGui import QColor, QImage, QPalette

from tradeboard.core import app_core
from tradeboard.core.app_core import AppCore
from tradeboard.editor.editor_widget import EditorWidget
from tradeboard.editor.elements import ImageElement, ShapeElement
from tradeboard.editor.tools import ToolType
from tradeboard.services.config_service import ConfigService


@pytest.fixture
def config(tmp_path):
    config = ConfigService(tmp_path / "config.json")
    config.set("snapshot_folder", str(tmp_path / "snapshots"))
    return config


@pytest.fixture
def editor(qtbot, config):
    widget = EditorWidget(config)
    qtbot.addWidget(widget)
    return widget


def _write_png(path, width, height):
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(QColor("#22c55e"))
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    path.write_bytes(bytes(data))


class TestEditorWidget:
    def test_properties_follow_tool(self, editor):
        canvas = editor.canvas
        assert editor.properties.isHidden()

        canvas.set_tool(ToolType.RECTANGLE)
        assert not editor.properties.isHidden()

        canvas.set_tool(ToolType.LASER)
        assert editor.properties.isHidden()

    def test_properties_follow_selection(self, editor):
        box = ShapeElement(x=0, y=0, width=10, height=10)
        controller = editor.canvas.controller
        controller.add_external_element(box)
        controller.on_mouse_press(QPointF(5, 5))
        assert controller.scene.selected_ids == {box.id}
        assert not editor.properties.isHidden()

    def test_opacity_drag_is_one_undo_step(self, editor):
        box = ShapeElement(x=0, y=0, width=10, height=10)
        controller = editor.canvas.controller
        controller.add_external_element(box)
        controller.on_mouse_press(QPointF(5, 5))
        controller.on_mouse_release(QPointF(5, 5))
        entries = len(controller.history)

        slider = editor.properties._opacity
        slider.setSliderDown(True)
        for value in (80, 60, 40, 20):
            slider.setValue(value)
        assert controller.scene.find(box.id).style.opacity == 20
        assert len(controller.history) == entries

        slider.setSliderDown(False)
        assert len(controller.history) == entries + 1

    def test_status_bar_tracks_board(self, editor):
        controller = editor.canvas.controller
        controller.add_external_element(ShapeElement(x=0, y=0, width=10, height=10))
        assert editor.status.count_text == "1 element"
        controller.add_external_element(ShapeElement(x=20, y=0, width=10, height=10))
        assert editor.status.count_text == "2 elements"

    def test_zoom_combo_drives_view(self, editor):
        editor.status.zoom_selected.emit(1.5)
        assert editor.canvas.controller.view.scale == pytest.approx(1.5)
        assert editor.status.zoom_text == "150%"

    def test_view_options_persist(self, editor, config):
        editor.canvas.set_show_grid(True)
        editor.canvas.set_show_minimap(False)
        editor.canvas.set_eraser_size(55)

        reloaded = ConfigService(config.config_path)
        assert reloaded.show_grid is True
        assert reloaded.show_minimap is False
        assert reloaded.eraser_size == 55

    def test_theme_persists(self, editor, config):
        editor.canvas.toggle_theme()
        assert editor.canvas.controller.dark_mode
        assert ConfigService(config.config_path).theme == "dark"

    def test_save_snapshot(self, qtbot, editor, tmp_path):
        canvas = editor.canvas
        assert canvas.save_snapshot() is None

        canvas.add_external_element(ShapeElement(x=0, y=0, width=30, height=30))
        with qtbot.waitSignal(canvas.snapshot_saved, timeout=5000) as blocker:
            path = canvas.save_snapshot()

        assert blocker.args == [str(path)]
        assert path.parent == tmp_path / "snapshots"
        assert QImage(str(path)).width() == 130

    def test_import_image_file(self, qtbot, editor, tmp_path):
        path = tmp_path / "chart.png"
        _write_png(path, 1200, 300)
        canvas = editor.canvas

        with qtbot.waitSignal(canvas.image_loader.image_imported, timeout=5000):
            canvas.import_image_file(str(path))

        (element,) = canvas.controller.scene.elements
        assert isinstance(element, ImageElement)
        assert (element.width, element.height) == (600, 150)
        assert canvas.image_loader.image_for(element) is not None
        assert canvas.controller.tool == ToolType.SELECTION


class TestAppCore:
    @pytest.fixture
    def core(self, app, config, monkeypatch):
        monkeypatch.setattr(app_core, "setup_logging", lambda *args, **kwargs: None)
        core = AppCore(app, config, show=False)
        yield core
        core.main_window.close()
        core.main_window.deleteLater()

    def test_tool_calls_reach_the_board(self, core):
        element = core.handle_tool_call("draw_zone", {"x": 1, "y": 2, "width": 3, "height": 4})
        assert core.canvas.controller.scene.elements == (element,)

        assert core.handle_tool_call("draw_level", {"y": "oops"}) is None
        assert core.handle_tool_call("erase_everything", {}) is None
        assert len(core.canvas.controller.scene) == 1

    def test_level_spans_canvas_width(self, core):
        element = core.handle_tool_call("draw_level", {"y": 100})
        assert element.width == core.canvas.width()

    def test_capture_frame(self, core):
        frame = core.capture_frame()
        assert isinstance(frame, QImage)
        assert not frame.isNull()

    def test_theme_switch_updates_palette(self, app, core):
        core.canvas.toggle_theme()
        assert app.palette().color(QPalette.ColorRole.Window) == QColor(45, 45, 45)
        core.canvas.toggle_theme()
        assert app.palette().color(QPalette.ColorRole.Window) == QColor(240, 240, 240)
