"""
Editor canvas widget for TradeBoard.

The EditorCanvas is the drawing surface of the board. It displays:
- The infinite, pan/zoomable board with all elements
- Selection borders, handles and the box-selection overlay
- Optional grid and rulers
- A minimap inset in the bottom-right corner

Supports:
- Zoom (Ctrl+wheel) and pan (wheel, hand tool, Space+drag)
- Tool-based interaction (delegated to the CanvasController)
- Undo/Redo via QUndoStack
- Image import by drag-and-drop, clipboard paste or file picker
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, Qt, QTimer, Signal
from PySide6.QtGui import (
    QDragEnterEvent,
    QDropEvent,
    QImage,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QWheelEvent,
)
from PySide6.QtWidgets import QApplication, QInputDialog, QLineEdit, QMessageBox, QWidget

from tradeboard.editor.clipboard import render_snapshot, save_snapshot
from tradeboard.editor.controller import CanvasController, StyleSettings
from tradeboard.editor.elements import Element
from tradeboard.editor.image_loader import ImageLoader
from tradeboard.editor.renderer import MINIMAP_HEIGHT, MINIMAP_WIDTH, SceneRenderer, paint_minimap
from tradeboard.editor.tools import ToolType
from tradeboard.services.config_service import ConfigService
from tradeboard.services.logging_service import get_logger

# Laser repaint interval while the trail is fading
LASER_FRAME_MS = 16

MINIMAP_MARGIN = 16


class MinimapWidget(QWidget):
    """Overview inset showing every element and the current viewport."""

    def __init__(self, canvas: "EditorCanvas") -> None:
        super().__init__(canvas)
        self._canvas = canvas
        self.setFixedSize(MINIMAP_WIDTH, MINIMAP_HEIGHT)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)

    def paintEvent(self, event) -> None:
        controller = self._canvas.controller
        painter = QPainter(self)
        paint_minimap(
            painter,
            controller.scene.elements,
            controller.view.visible_world_bounds(self._canvas.width(), self._canvas.height()),
            controller.dark_mode,
        )
        painter.end()


class EditorCanvas(QWidget):
    """
    Main canvas widget for drawing and editing the board.

    Signals:
        zoom_changed: Emitted with the scale when zoom changes.
        cursor_moved: Emitted with the pointer's world position.
        snapshot_saved: Emitted with the path of a saved snapshot.
    """

    # Signals
    zoom_changed = Signal(float)
    cursor_moved = Signal(float, float)
    snapshot_saved = Signal(str)

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service

        self._image_loader = ImageLoader(self)
        self._controller = CanvasController(
            self,
            confirm=self._confirm,
            prompt_text=self._prompt_text,
        )
        if config_service is not None:
            self._apply_config(config_service)

        self._renderer = SceneRenderer(self._image_loader.image_for)
        self._laser_frame_pending = False

        self._minimap = MinimapWidget(self)

        self._setup_widget()
        self._connect_signals()
        self._update_minimap()

    def _apply_config(self, config: ConfigService) -> None:
        controller = self._controller
        controller.style = StyleSettings.from_config(config.default_style)
        controller.set_eraser_size(config.eraser_size)
        controller.set_dark_mode(config.dark_mode)
        controller.show_grid = config.show_grid
        controller.show_ruler = config.show_ruler
        controller.show_minimap = config.show_minimap

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAcceptDrops(True)
        self.setMinimumSize(200, 200)

    def _connect_signals(self) -> None:
        controller = self._controller
        controller.changed.connect(self._on_changed)
        controller.view_changed.connect(self.zoom_changed)
        controller.theme_changed.connect(self._on_theme_changed)
        self._image_loader.image_ready.connect(self.update)
        self._image_loader.image_imported.connect(self._on_image_imported)

    # ─── Session ──────────────────────────────────────────────────────────

    @property
    def controller(self) -> CanvasController:
        return self._controller

    @property
    def image_loader(self) -> ImageLoader:
        return self._image_loader

    def set_tool(self, tool_type: ToolType, locked: bool = False) -> None:
        self._controller.set_tool(tool_type, locked)
        self.setCursor(self._controller.cursor)

    def undo(self) -> None:
        self._controller.undo()

    def redo(self) -> None:
        self._controller.redo()

    def zoom_in(self) -> None:
        self._controller.zoom_in()

    def zoom_out(self) -> None:
        self._controller.zoom_out()

    def reset_view(self) -> None:
        self._controller.reset_view()

    # ─── View Options ─────────────────────────────────────────────────────

    def set_show_grid(self, show: bool) -> None:
        self._controller.show_grid = show
        self._persist("show_grid", show)
        self.update()

    def set_show_ruler(self, show: bool) -> None:
        self._controller.show_ruler = show
        self._persist("show_ruler", show)
        self.update()

    def set_show_minimap(self, show: bool) -> None:
        self._controller.show_minimap = show
        self._persist("show_minimap", show)
        self._update_minimap()

    def set_eraser_size(self, size: int) -> None:
        self._controller.set_eraser_size(size)
        self._persist("eraser_size", self._controller.eraser_size)

    def toggle_theme(self) -> None:
        self._controller.toggle_theme()

    def _on_theme_changed(self, dark: bool) -> None:
        self._persist("theme", "dark" if dark else "light")
        self.update()

    def _persist(self, key: str, value) -> None:
        if self._config is not None:
            self._config.set(key, value)
            self._config.save()

    # ─── External Hooks ───────────────────────────────────────────────────

    def add_external_element(self, element: Element) -> None:
        """Insert an element requested from outside the canvas."""
        self._controller.add_external_element(element)

    def get_canvas_surface(self) -> QImage:
        """Grab the currently displayed frame."""
        return self.grab().toImage()

    # ─── Import / Export ──────────────────────────────────────────────────

    def import_image_file(self, path: str) -> None:
        self._image_loader.import_file(path)

    def _on_image_imported(self, data: bytes, image: QImage) -> None:
        element = self._controller.insert_image(data, image.width(), image.height())
        self._image_loader.store(element.id, image)
        self.setCursor(self._controller.cursor)

    def render_snapshot(self) -> Optional[QImage]:
        """Render every element at 1:1 with the theme background."""
        return render_snapshot(
            self._controller.scene.elements,
            self._controller.dark_mode,
            self._image_loader.decoded_image,
        )

    def save_snapshot(self) -> Optional[Path]:
        """Render the board and write it to the snapshot folder."""
        image = self.render_snapshot()
        if image is None:
            self._logger.info("Snapshot skipped: board is empty")
            return None

        folder = self._config.snapshot_folder if self._config else str(Path.home() / "Pictures" / "TradeBoard")
        path = save_snapshot(image, folder)
        if path is not None:
            self.snapshot_saved.emit(str(path))
        return path

    # ─── Dialog Callbacks ─────────────────────────────────────────────────

    def _confirm(self, message: str) -> bool:
        answer = QMessageBox.question(
            self,
            "TradeBoard",
            message,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes

    def _prompt_text(self, label: str, initial: str = "") -> Optional[str]:
        text, ok = QInputDialog.getText(self, "Text", label, QLineEdit.EchoMode.Normal, initial)
        return text if ok else None

    # ─── Rendering ────────────────────────────────────────────────────────

    def _on_changed(self) -> None:
        self.update()
        self._update_minimap()

    def _update_minimap(self) -> None:
        controller = self._controller
        visible = controller.show_minimap and len(controller.scene) > 0
        self._minimap.setVisible(visible)
        if visible:
            self._minimap.update()

    def _position_minimap(self) -> None:
        self._minimap.move(
            self.width() - MINIMAP_WIDTH - MINIMAP_MARGIN,
            self.height() - MINIMAP_HEIGHT - MINIMAP_MARGIN,
        )

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        laser_active = self._renderer.paint(painter, self._controller, self.width(), self.height())
        painter.end()

        # Keep repainting until the laser trail has faded out
        if laser_active and not self._laser_frame_pending:
            self._laser_frame_pending = True
            QTimer.singleShot(LASER_FRAME_MS, self._on_laser_frame)

    def _on_laser_frame(self) -> None:
        self._laser_frame_pending = False
        self.update()

    # ─── Event Handlers ───────────────────────────────────────────────────

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press."""
        if event.button() == Qt.MouseButton.LeftButton:
            self.setFocus()
            self._controller.on_mouse_press(event.position(), event.modifiers())
            self.setCursor(self._controller.cursor)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move."""
        self._controller.on_mouse_move(event.position(), event.modifiers())
        self.setCursor(self._controller.cursor)
        world = self._controller.world_pos
        self.cursor_moved.emit(world.x(), world.y())

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release."""
        if event.button() == Qt.MouseButton.LeftButton:
            self._controller.on_mouse_release(event.position(), event.modifiers())
            self.setCursor(self._controller.cursor)

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        """Finish paths and edit text; otherwise treat as a press."""
        if event.button() != Qt.MouseButton.LeftButton:
            return
        if not self._controller.on_double_click(event.position(), event.modifiers()):
            self._controller.on_mouse_press(event.position(), event.modifiers())
        self.setCursor(self._controller.cursor)

    def wheelEvent(self, event: QWheelEvent) -> None:
        """Ctrl+wheel zooms about the cursor; plain wheel pans."""
        delta = event.angleDelta()
        self._controller.on_wheel(event.position(), delta.x(), delta.y(), event.modifiers())
        event.accept()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press."""
        key = event.key()
        modifiers = event.modifiers()
        ctrl = modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier)

        # An image on the system clipboard is imported when nothing was copied on the board
        if ctrl and key == Qt.Key.Key_V and not self._controller.clipboard:
            mime = QApplication.clipboard().mimeData()
            if mime is not None and mime.hasImage():
                self._import_clipboard_image()
                return

        if self._controller.handle_key_press(key, modifiers, event.isAutoRepeat()):
            self.setCursor(self._controller.cursor)
            return
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event: QKeyEvent) -> None:
        """Handle key release."""
        if self._controller.handle_key_release(event.key(), event.isAutoRepeat()):
            self.setCursor(self._controller.cursor)
            return
        super().keyReleaseEvent(event)

    def _import_clipboard_image(self) -> None:
        image = QApplication.clipboard().image()
        if image.isNull():
            return
        buffer_data = QByteArray()
        buffer = QBuffer(buffer_data)
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        image.save(buffer, "PNG")
        buffer.close()
        self._image_loader.import_bytes(bytes(buffer_data.data()))

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        mime = event.mimeData()
        if mime.hasUrls() or mime.hasImage():
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent) -> None:
        """Import the first dropped image file."""
        mime = event.mimeData()
        for url in mime.urls():
            if url.isLocalFile():
                self.import_image_file(url.toLocalFile())
                event.acceptProposedAction()
                return
        self._logger.debug("Drop ignored: no local file")

    def resizeEvent(self, event) -> None:
        """Track the viewport size and keep the minimap in its corner."""
        super().resizeEvent(event)
        self._controller.viewport_size = (float(self.width()), float(self.height()))
        self._position_minimap()
        self._update_minimap()
