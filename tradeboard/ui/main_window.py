"""
Main window for TradeBoard application.

This module contains the main application window with the board editor
widget and the menu bar.
"""

from typing import Optional

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QMainWindow,
    QMessageBox,
    QWidget,
)

from tradeboard import __version__
from tradeboard.editor.editor_canvas import EditorCanvas
from tradeboard.editor.editor_widget import EditorWidget
from tradeboard.services.config_service import ConfigService
from tradeboard.services.logging_service import get_logger


class MainWindow(QMainWindow):
    """
    Main application window for TradeBoard.

    Features:
    - Menu bar with File, Edit, View and Help menus
    - Full featured board editor

    The editor includes:
    - Infinite canvas with zoom/pan, grid, rulers and minimap
    - Toolbar with drawing and trading tools
    - Properties panel
    - Status bar with zoom, cursor position and element count
    """

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            config_service: Optional config service for board preferences.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._editor: Optional[EditorWidget] = None

        self._setup_window()
        self._setup_central_widget()
        self._setup_menu_bar()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setWindowTitle("TradeBoard")
        self.setMinimumSize(800, 600)
        self.resize(1200, 800)

    def _setup_central_widget(self) -> None:
        """Set up the central widget (editor)."""
        self._editor = EditorWidget(self._config, self)
        self.setCentralWidget(self._editor)

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    @property
    def canvas(self) -> EditorCanvas:
        return self._editor.canvas

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menu_bar = self.menuBar()
        canvas = self.canvas

        # ─── File Menu ────────────────────────────────────────────────
        file_menu = menu_bar.addMenu("&File")

        insert_action = QAction("&Insert Image...", self)
        insert_action.setStatusTip("Place an image file on the board")
        insert_action.triggered.connect(self._editor.import_image)
        file_menu.addAction(insert_action)

        save_action = QAction("&Save Snapshot", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.setStatusTip("Save the board as a PNG image")
        save_action.triggered.connect(canvas.save_snapshot)
        file_menu.addAction(save_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.setStatusTip("Exit the application")
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # ─── Edit Menu ────────────────────────────────────────────────
        # Undo/redo/delete keys are handled by the canvas itself
        edit_menu = menu_bar.addMenu("&Edit")

        undo_action = QAction("&Undo\tCtrl+Z", self)
        undo_action.triggered.connect(canvas.undo)
        edit_menu.addAction(undo_action)

        redo_action = QAction("&Redo\tCtrl+Shift+Z", self)
        redo_action.triggered.connect(canvas.redo)
        edit_menu.addAction(redo_action)

        edit_menu.addSeparator()

        delete_action = QAction("&Delete\tDel", self)
        delete_action.triggered.connect(canvas.controller.delete_selection)
        edit_menu.addAction(delete_action)

        # ─── View Menu ────────────────────────────────────────────────
        view_menu = menu_bar.addMenu("&View")

        zoom_in_action = QAction("Zoom &In", self)
        zoom_in_action.setShortcut("Ctrl++")
        zoom_in_action.triggered.connect(canvas.zoom_in)
        view_menu.addAction(zoom_in_action)

        zoom_out_action = QAction("Zoom &Out", self)
        zoom_out_action.setShortcut("Ctrl+-")
        zoom_out_action.triggered.connect(canvas.zoom_out)
        view_menu.addAction(zoom_out_action)

        reset_action = QAction("&Reset View", self)
        reset_action.setShortcut("Ctrl+0")
        reset_action.triggered.connect(canvas.reset_view)
        view_menu.addAction(reset_action)

        view_menu.addSeparator()

        theme_action = QAction("Toggle &Theme", self)
        theme_action.triggered.connect(canvas.toggle_theme)
        view_menu.addAction(theme_action)

        # ─── Help Menu ────────────────────────────────────────────────
        help_menu = menu_bar.addMenu("&Help")

        about_action = QAction("&About", self)
        about_action.setStatusTip("About TradeBoard")
        about_action.triggered.connect(self._show_about_dialog)
        help_menu.addAction(about_action)

    def _show_about_dialog(self) -> None:
        """Display the About dialog."""
        about_text = (
            "<h2>TradeBoard</h2>"
            "<p>An infinite whiteboard for marking up trading charts</p>"
            f"<p><b>Version:</b> {__version__}</p>"
            "<hr>"
            "<p><b>Keyboard Shortcuts:</b></p>"
            "<ul>"
            "<li>V - Selection, H - Hand</li>"
            "<li>R - Rectangle, D - Diamond, O - Ellipse</li>"
            "<li>A - Arrow, L - Line, W - Path, P - Pencil</li>"
            "<li>T - Text, E - Eraser, K - Laser</li>"
            "<li>Space + drag - Pan</li>"
            "<li>Ctrl+wheel - Zoom</li>"
            "<li>Ctrl+C / Ctrl+V - Copy / Paste</li>"
            "<li>Ctrl+Z / Ctrl+Shift+Z - Undo / Redo</li>"
            "<li>Ctrl+S - Save snapshot</li>"
            "</ul>"
            "<p>Double-click a toolbar tool to keep it active.</p>"
        )

        QMessageBox.about(self, "About TradeBoard", about_text)

    def closeEvent(self, event) -> None:
        """Persist board preferences on close."""
        self._logger.info("MainWindow closing")
        if self._config is not None:
            self._config.save()
        super().closeEvent(event)
