"""Tests for painting, snapshots and the minimap layout."""

from datetime import datetime

import pytest
from PySide6.QtCore import QPointF
from PySide6.QtGui import QImage, QPainter

from tradeboard.editor import clipboard
from tradeboard.editor.elements import ElementStyle, ShapeElement
from tradeboard.editor.geometry import Bounds
from tradeboard.editor.renderer import (
    MINIMAP_HEIGHT,
    MINIMAP_WIDTH,
    SceneRenderer,
    compute_minimap_layout,
    ruler_step,
    to_qcolor,
)
from tradeboard.editor.tools import ToolType


def _filled_box(x=0, y=0, w=100, h=50, color="#ff0000"):
    return ShapeElement(
        x=x, y=y, width=w, height=h,
        style=ElementStyle(stroke_color="transparent", background_color=color, stroke_width=0),
    )


class TestColors:
    def test_hex_and_names(self):
        assert to_qcolor("#ff0000").red() == 255
        assert to_qcolor("white").green() == 255

    def test_rgba(self):
        color = to_qcolor("rgba(0, 255, 0, 0.2)")
        assert (color.red(), color.green(), color.blue()) == (0, 255, 0)
        assert color.alpha() == 51

    def test_transparent_and_garbage(self):
        assert to_qcolor("transparent").alpha() == 0
        assert to_qcolor("not-a-color").alpha() == 0
        assert to_qcolor("").alpha() == 0


class TestRulerAndMinimap:
    @pytest.mark.parametrize("scale", [0.1, 0.37, 1.0, 2.5, 5.0])
    def test_ruler_ticks_stay_readable(self, scale):
        assert 60 <= ruler_step(scale) * scale <= 140

    def test_minimap_needs_elements(self):
        assert compute_minimap_layout([], Bounds(0, 0, 800, 600)) is None

    def test_minimap_fits_content_and_viewport(self):
        box = ShapeElement(x=2000, y=0, width=100, height=100)
        layout = compute_minimap_layout([box], Bounds(0, 0, 800, 600))

        assert layout.world == Bounds(-100, -100, 2200, 700)
        left, top = layout.to_minimap(-100, -100)
        right, bottom = layout.to_minimap(2200, 700)
        assert right - left <= MINIMAP_WIDTH + 1e-9
        assert bottom - top <= MINIMAP_HEIGHT + 1e-9
        # Centered on the short axis
        assert top == pytest.approx(MINIMAP_HEIGHT - bottom)


class TestSceneRenderer:
    def _paint(self, controller, width=200, height=150):
        image = QImage(width, height, QImage.Format.Format_ARGB32)
        painter = QPainter(image)
        active = SceneRenderer().paint(painter, controller, width, height)
        painter.end()
        return image, active

    def test_paints_background_and_elements(self, controller):
        controller.add_external_element(_filled_box(50, 50, 40, 40))
        image, _ = self._paint(controller)

        assert image.pixelColor(5, 5).name() == "#ffffff"
        center = image.pixelColor(70, 70)
        assert center.red() > 200 and center.green() < 60

    def test_pan_and_zoom_apply(self, controller):
        controller.add_external_element(_filled_box(0, 0, 10, 10))
        controller.view.set_scale(2.0)
        controller.view.pan_offset = QPointF(100, 100)
        image, _ = self._paint(controller)

        assert image.pixelColor(110, 110).red() > 200
        assert image.pixelColor(110, 110).green() < 60
        assert image.pixelColor(5, 5).name() == "#ffffff"

    def test_dark_background(self, controller):
        controller.set_dark_mode(True)
        image, _ = self._paint(controller)
        assert image.pixelColor(5, 5).name() == "#121212"

    def test_reports_laser_activity(self, controller, clock):
        _, active = self._paint(controller)
        assert not active

        controller.set_tool(ToolType.LASER)
        controller.on_mouse_press(QPointF(10, 10))
        controller.on_mouse_move(QPointF(50, 50))
        _, active = self._paint(controller)
        assert active

        clock.advance(1500)
        _, active = self._paint(controller)
        assert not active

    def test_laser_is_drawn_over_selection_box(self, controller):
        controller.scene.selection_box = Bounds(0, 0, 200, 150)
        controller.laser.add(10, 75)
        controller.laser.add(190, 75)
        image, _ = self._paint(controller)

        trail = image.pixelColor(100, 75)
        assert (trail.red(), trail.green(), trail.blue()) == (255, 0, 0)
        # Away from the trail the translucent box tints the background
        assert image.pixelColor(100, 20).blue() > image.pixelColor(100, 20).red()


class TestSnapshots:
    def test_empty_board_has_no_snapshot(self, app):
        assert clipboard.render_snapshot([]) is None

    def test_snapshot_covers_content_with_padding(self, app):
        image = clipboard.render_snapshot([_filled_box(10, 20, 100, 50)])

        assert (image.width(), image.height()) == (200, 150)
        assert image.pixelColor(2, 2).name() == "#ffffff"
        # Element origin lands at the padding offset
        assert image.pixelColor(100, 75).red() > 200
        assert image.pixelColor(100, 75).green() < 60

    def test_dark_snapshot_background(self, app):
        image = clipboard.render_snapshot([_filled_box()], dark_mode=True)
        assert image.pixelColor(2, 2).name() == "#121212"

    def test_save_snapshot(self, app, tmp_path):
        image = clipboard.render_snapshot([_filled_box()])
        path = clipboard.save_snapshot(image, str(tmp_path / "shots"))

        assert path is not None
        assert path.exists()
        assert path.parent == tmp_path / "shots"
        assert not QImage(str(path)).isNull()

    def test_snapshot_filename(self):
        name = clipboard.snapshot_filename(datetime(2024, 3, 5, 14, 7, 9))
        assert name == "tradeboard-20240305-140709.png"

    def test_paste_offset_scales_with_zoom(self):
        box = _filled_box(0, 0)
        (pasted,) = clipboard.paste_elements([box], scale=4.0)
        assert (pasted.x, pasted.y) == (5, 5)
        assert pasted.id != box.id
        assert pasted.style == box.style
