"""
Application core for TradeBoard.

This module contains the AppCore class which is responsible for:
- Initializing services (config, logging)
- Creating and managing the main window
- Applying global styling (dark or light palette)
- Exposing the hooks an external collaborator uses to drive the board

This is the central orchestration point for the application.
"""

from typing import Any, Mapping, Optional

from PySide6.QtCore import QObject, Slot
from PySide6.QtGui import QColor, QImage, QPalette
from PySide6.QtWidgets import QApplication

from tradeboard.editor.elements import Element
from tradeboard.editor.external import element_from_tool_call
from tradeboard.services.config_service import ConfigService
from tradeboard.services.logging_service import get_logger, setup_logging
from tradeboard.ui.main_window import MainWindow

DARK_PALETTE = {
    QPalette.ColorRole.Window: QColor(45, 45, 45),
    QPalette.ColorRole.WindowText: QColor(220, 220, 220),
    QPalette.ColorRole.Base: QColor(35, 35, 35),
    QPalette.ColorRole.AlternateBase: QColor(50, 50, 50),
    QPalette.ColorRole.Text: QColor(220, 220, 220),
    QPalette.ColorRole.BrightText: QColor(255, 255, 255),
    QPalette.ColorRole.Button: QColor(55, 55, 55),
    QPalette.ColorRole.ButtonText: QColor(220, 220, 220),
    QPalette.ColorRole.Highlight: QColor(80, 120, 180),
    QPalette.ColorRole.HighlightedText: QColor(255, 255, 255),
    QPalette.ColorRole.ToolTipBase: QColor(60, 60, 60),
    QPalette.ColorRole.ToolTipText: QColor(220, 220, 220),
    QPalette.ColorRole.Link: QColor(100, 150, 220),
}

LIGHT_PALETTE = {
    QPalette.ColorRole.Window: QColor(240, 240, 240),
    QPalette.ColorRole.WindowText: QColor(30, 30, 30),
    QPalette.ColorRole.Base: QColor(255, 255, 255),
    QPalette.ColorRole.AlternateBase: QColor(245, 245, 245),
    QPalette.ColorRole.Text: QColor(30, 30, 30),
    QPalette.ColorRole.BrightText: QColor(0, 0, 0),
    QPalette.ColorRole.Button: QColor(230, 230, 230),
    QPalette.ColorRole.ButtonText: QColor(30, 30, 30),
    QPalette.ColorRole.Highlight: QColor(139, 92, 246),
    QPalette.ColorRole.HighlightedText: QColor(255, 255, 255),
    QPalette.ColorRole.ToolTipBase: QColor(255, 255, 225),
    QPalette.ColorRole.ToolTipText: QColor(30, 30, 30),
    QPalette.ColorRole.Link: QColor(37, 99, 235),
}


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize services
    - Apply the global palette matching the board theme
    - Create and show the MainWindow
    - Turn collaborator tool calls into board elements
    """

    def __init__(
        self,
        app: QApplication,
        config_service: Optional[ConfigService] = None,
        show: bool = True,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            config_service: Config to use instead of the user's config file.
            show: Show the main window once built.
        """
        super().__init__()
        self._app = app

        self._config_service: Optional[ConfigService] = config_service
        self._main_window: Optional[MainWindow] = None

        # Initialize in order
        self._init_services()
        self._apply_theme(self._config_service.dark_mode)
        self._init_ui()
        self._connect_signals()

        if show:
            self._main_window.show()

    def _init_services(self) -> None:
        """Initialize all application services."""
        # Setup logging first
        setup_logging()
        self._logger = get_logger(__name__)
        self._logger.info("Initializing TradeBoard application core...")

        if self._config_service is None:
            self._config_service = ConfigService()
        self._logger.info(f"Theme from config: {self._config_service.theme}")

    def _apply_theme(self, dark: bool) -> None:
        """
        Apply a dark or light color palette to the application.

        Uses Qt's QPalette for a native-looking theme.
        """
        palette = QPalette()
        for role, color in (DARK_PALETTE if dark else LIGHT_PALETTE).items():
            palette.setColor(role, color)

        # Disabled state colors
        for role in (
            QPalette.ColorRole.WindowText,
            QPalette.ColorRole.Text,
            QPalette.ColorRole.ButtonText,
        ):
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor(127, 127, 127))

        self._app.setPalette(palette)
        self._logger.info(f"{'Dark' if dark else 'Light'} palette applied")

    def _init_ui(self) -> None:
        """Initialize the main window."""
        self._logger.debug("Initializing main window...")
        self._main_window = MainWindow(self._config_service)
        self._logger.info("Main window initialized")

    def _connect_signals(self) -> None:
        """Connect all service signals to their handlers."""
        self.canvas.controller.theme_changed.connect(self._on_theme_changed)
        self._logger.debug("All signals connected")

    @Slot(bool)
    def _on_theme_changed(self, dark: bool) -> None:
        self._apply_theme(dark)

    # ─── Collaborator Hooks ───────────────────────────────────────────────

    def handle_tool_call(self, name: str, args: Mapping[str, Any]) -> Optional[Element]:
        """
        Draw on the board on behalf of an external collaborator.

        Args:
            name: Tool call name, e.g. "draw_level" or "draw_zone".
            args: JSON-like arguments of the call.

        Returns:
            The inserted element, or None if the call was ignored.
        """
        element = element_from_tool_call(name, args, self.canvas.width())
        if element is None:
            return None
        self.canvas.add_external_element(element)
        self._logger.info(f"Collaborator call {name} added {element.kind.value} {element.id}")
        return element

    def capture_frame(self) -> QImage:
        """Grab the board as currently displayed, for a collaborator to inspect."""
        return self.canvas.get_canvas_surface()

    # ─── Application Lifecycle ────────────────────────────────────────────

    def shutdown(self) -> None:
        """Save preferences and quit."""
        self._logger.info("Shutting down TradeBoard...")
        if self._config_service:
            self._config_service.save()
        QApplication.quit()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        """Get the configuration service."""
        if self._config_service is None:
            raise RuntimeError("ConfigService not initialized")
        return self._config_service

    @property
    def main_window(self) -> MainWindow:
        """Get the main window."""
        if self._main_window is None:
            raise RuntimeError("MainWindow not initialized")
        return self._main_window

    @property
    def canvas(self):
        return self.main_window.canvas
