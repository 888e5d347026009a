"""
Editor widget for TradeBoard - the main board UI component.

This widget composes the complete board interface:
- Top toolbar with tool buttons and view controls
- Center canvas for drawing
- Right properties panel for styling
- Bottom status bar with zoom, cursor position and element count
"""

from typing import Dict, Iterable, List, Optional

from PySide6.QtCore import QPoint, Qt, Signal, Slot
from PySide6.QtGui import QColor, QIcon, QPainter, QPainterPath, QPen, QPixmap, QPolygon
from PySide6.QtWidgets import (
    QAbstractSpinBox,
    QButtonGroup,
    QColorDialog,
    QComboBox,
    QFileDialog,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QSlider,
    QSpinBox,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from tradeboard.editor.controller import PALETTE, STROKE_WIDTHS, CanvasController
from tradeboard.editor.editor_canvas import EditorCanvas
from tradeboard.editor.elements import Arrowhead, Element, StrokeStyle, TextAlign
from tradeboard.editor.tools import ToolType
from tradeboard.services.config_service import MAX_ERASER_SIZE, MIN_ERASER_SIZE, ConfigService
from tradeboard.services.logging_service import get_logger

FONT_FAMILIES = ["Kalam", "Arial", "Courier New", "Georgia"]

IMAGE_FILE_FILTER = "Images (*.png *.jpg *.jpeg *.gif *.bmp *.webp)"


class ColorButton(QPushButton):
    """Button that shows a color and opens color picker on click."""

    color_changed = Signal(str)

    def __init__(self, color: str = "#000000", parent=None):
        super().__init__(parent)
        self._color = color
        self.setFixedSize(32, 32)
        self.clicked.connect(self._on_click)
        self._update_style()

    @property
    def color(self) -> str:
        return self._color

    @color.setter
    def color(self, value: str) -> None:
        self._color = value
        self._update_style()

    def _update_style(self) -> None:
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color};
                border: 2px solid #555;
                border-radius: 4px;
            }}
            QPushButton:hover {{
                border-color: #888;
            }}
        """)

    def _on_click(self) -> None:
        color = QColorDialog.getColor(QColor(self._color), self, "Select Color")
        if color.isValid():
            self._color = color.name()
            self._update_style()
            self.color_changed.emit(self._color)


class ToolButton(QToolButton):
    """Checkable tool button; double-click pins the tool."""

    double_clicked = Signal()

    def mouseDoubleClickEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self.double_clicked.emit()
            return
        super().mouseDoubleClickEvent(event)


class PropertiesPanel(QFrame):
    """
    Right panel for element properties - shows tool-specific options.

    Edits go straight to the controller, which applies them to new
    elements and to the current selection. The panel re-reads the live
    style whenever the controller reports a style change.
    """

    eraser_size_changed = Signal(int)

    STROKE_CONTROLS = ['stroke_color', 'stroke_width', 'stroke_style', 'opacity']
    SHAPE_CONTROLS = STROKE_CONTROLS + ['background']
    LINEAR_CONTROLS = STROKE_CONTROLS + ['arrowheads']
    TEXT_CONTROLS = ['stroke_color', 'opacity', 'font']

    # Define which controls each tool needs (empty = hide panel)
    TOOL_CONFIG = {
        ToolType.HAND: [],
        ToolType.SELECTION: [],
        ToolType.RECTANGLE: SHAPE_CONTROLS,
        ToolType.DIAMOND: SHAPE_CONTROLS,
        ToolType.ELLIPSE: SHAPE_CONTROLS,
        ToolType.ARROW: LINEAR_CONTROLS,
        ToolType.LINE: LINEAR_CONTROLS,
        ToolType.PATH: LINEAR_CONTROLS,
        ToolType.PENCIL: STROKE_CONTROLS,
        ToolType.TEXT: TEXT_CONTROLS,
        ToolType.IMAGE: ['opacity'],
        ToolType.LONG_POSITION: ['opacity'],
        ToolType.SHORT_POSITION: ['opacity'],
        ToolType.ERASER: ['eraser_size'],
        ToolType.LASER: [],
    }

    def __init__(self, controller: CanvasController, parent=None):
        super().__init__(parent)
        self._controller = controller
        self._updating = False
        self._current_tool = ToolType.SELECTION
        self._selection: List[Element] = []

        self._setup_ui()
        self.sync_from_style()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedWidth(200)
        self.setStyleSheet("""
            PropertiesPanel {
                background-color: palette(window);
                border-left: 1px solid palette(mid);
            }
            QLabel {
                color: palette(window-text);
                font-size: 11px;
            }
            QSpinBox, QComboBox {
                background-color: palette(base);
                color: palette(text);
                border: 1px solid palette(mid);
                border-radius: 4px;
                padding: 3px;
            }
            QPushButton:checked {
                background-color: rgba(139, 92, 246, 0.45);
            }
        """)

        self._layout = QVBoxLayout(self)
        self._layout.setContentsMargins(12, 12, 12, 12)
        self._layout.setSpacing(10)

        # Title
        self._title = QLabel("Properties")
        self._title.setStyleSheet("font-weight: bold; font-size: 13px;")
        self._layout.addWidget(self._title)

        # Create all controls (will show/hide based on tool)
        self._controls: Dict[str, tuple] = {}

        # Stroke color: palette swatches plus a custom picker
        stroke_label = QLabel("Stroke")
        swatches = QWidget()
        grid = QGridLayout(swatches)
        grid.setContentsMargins(0, 0, 0, 0)
        grid.setSpacing(4)
        for i, color in enumerate(PALETTE):
            swatch = QPushButton()
            swatch.setFixedSize(22, 22)
            swatch.setToolTip(color)
            swatch.setStyleSheet(f"background-color: {color}; border: 1px solid #555; border-radius: 3px;")
            swatch.clicked.connect(lambda checked=False, c=color: self._on_stroke_color_changed(c))
            grid.addWidget(swatch, i // 5, i % 5)
        self._stroke_color = ColorButton()
        self._stroke_color.color_changed.connect(self._on_stroke_color_changed)
        self._add_control('stroke_color', stroke_label, swatches, self._stroke_color)

        # Stroke width
        width_label = QLabel("Stroke Width")
        width_row = QWidget()
        width_layout = QHBoxLayout(width_row)
        width_layout.setContentsMargins(0, 0, 0, 0)
        self._width_group = QButtonGroup(self)
        self._width_group.setExclusive(True)
        for width in STROKE_WIDTHS:
            btn = QPushButton(str(width))
            btn.setCheckable(True)
            btn.setFixedWidth(40)
            btn.clicked.connect(lambda checked=False, w=width: self._apply(stroke_width=w))
            self._width_group.addButton(btn, width)
            width_layout.addWidget(btn)
        self._add_control('stroke_width', width_label, width_row)

        # Stroke style
        style_label = QLabel("Stroke Style")
        self._stroke_style = QComboBox()
        for style in StrokeStyle:
            self._stroke_style.addItem(style.value.capitalize(), style)
        self._stroke_style.currentIndexChanged.connect(
            lambda i: self._apply(stroke_style=self._stroke_style.itemData(i))
        )
        self._add_control('stroke_style', style_label, self._stroke_style)

        # Background
        background_label = QLabel("Background")
        self._background_container = QWidget()
        background_row = QHBoxLayout(self._background_container)
        background_row.setContentsMargins(0, 0, 0, 0)
        self._background_enabled = QPushButton("None")
        self._background_enabled.setCheckable(True)
        self._background_enabled.setFixedWidth(50)
        self._background_enabled.clicked.connect(self._on_background_toggle)
        self._background_color = ColorButton("#a5d8ff")
        self._background_color.setEnabled(False)
        self._background_color.color_changed.connect(lambda c: self._apply(background_color=c))
        background_row.addWidget(self._background_enabled)
        background_row.addWidget(self._background_color)
        self._add_control('background', background_label, self._background_container)

        # Opacity
        opacity_label = QLabel("Opacity")
        self._opacity = QSlider(Qt.Orientation.Horizontal)
        self._opacity.setRange(0, 100)
        self._opacity.valueChanged.connect(self._on_opacity_changed)
        self._opacity.sliderReleased.connect(self._on_opacity_released)
        self._add_control('opacity', opacity_label, self._opacity)

        # Arrowheads
        arrow_label = QLabel("Arrowheads")
        arrow_row = QWidget()
        arrow_layout = QHBoxLayout(arrow_row)
        arrow_layout.setContentsMargins(0, 0, 0, 0)
        self._start_arrowhead = QComboBox()
        self._end_arrowhead = QComboBox()
        for combo in (self._start_arrowhead, self._end_arrowhead):
            for head in Arrowhead:
                combo.addItem(head.value.capitalize(), head)
            arrow_layout.addWidget(combo)
        self._start_arrowhead.currentIndexChanged.connect(
            lambda i: self._apply(start_arrowhead=self._start_arrowhead.itemData(i))
        )
        self._end_arrowhead.currentIndexChanged.connect(
            lambda i: self._apply(end_arrowhead=self._end_arrowhead.itemData(i))
        )
        self._add_control('arrowheads', arrow_label, arrow_row)

        # Font
        font_label = QLabel("Font")
        self._font_size = QSpinBox()
        self._font_size.setRange(8, 120)
        self._font_size.valueChanged.connect(lambda v: self._apply(font_size=v))
        self._font_family = QComboBox()
        self._font_family.addItems(FONT_FAMILIES)
        self._font_family.currentTextChanged.connect(lambda f: self._apply(font_family=f))
        font_row = QWidget()
        font_layout = QHBoxLayout(font_row)
        font_layout.setContentsMargins(0, 0, 0, 0)
        self._bold = QPushButton("B")
        self._bold.setCheckable(True)
        self._bold.clicked.connect(lambda checked: self._apply(font_weight="bold" if checked else "normal"))
        self._italic = QPushButton("I")
        self._italic.setCheckable(True)
        self._italic.clicked.connect(lambda checked: self._apply(font_style="italic" if checked else "normal"))
        self._text_align = QComboBox()
        for align in TextAlign:
            self._text_align.addItem(align.value.capitalize(), align)
        self._text_align.currentIndexChanged.connect(
            lambda i: self._apply(text_align=self._text_align.itemData(i))
        )
        font_layout.addWidget(self._bold)
        font_layout.addWidget(self._italic)
        font_layout.addWidget(self._text_align)
        self._add_control('font', font_label, self._font_size, self._font_family, font_row)

        # Eraser size
        eraser_label = QLabel("Eraser Size")
        self._eraser_size = QSlider(Qt.Orientation.Horizontal)
        self._eraser_size.setRange(MIN_ERASER_SIZE, MAX_ERASER_SIZE)
        self._eraser_size.setValue(self._controller.eraser_size)
        self._eraser_size.valueChanged.connect(self._on_eraser_size_changed)
        self._add_control('eraser_size', eraser_label, self._eraser_size)

        # Spacer
        self._layout.addStretch()

        self._update_visible_controls()

    def _add_control(self, name: str, *widgets: QWidget) -> None:
        for widget in widgets:
            self._layout.addWidget(widget)
        self._controls[name] = widgets

    def set_tool(self, tool_type: ToolType) -> None:
        """Update panel to show controls for the given tool."""
        self._current_tool = tool_type
        self._update_visible_controls()

    def set_selection(self, elements: Iterable[Element]) -> None:
        """With the selection tool, show the controls of the selected kinds."""
        self._selection = list(elements)
        self._update_visible_controls()

    def _needed_controls(self) -> List[str]:
        if self._current_tool != ToolType.SELECTION:
            return self.TOOL_CONFIG.get(self._current_tool, [])
        needed: List[str] = []
        for element in self._selection:
            for name in self.TOOL_CONFIG.get(ToolType(element.kind.value), []):
                if name not in needed:
                    needed.append(name)
        return needed

    def _update_visible_controls(self) -> None:
        """Show/hide controls based on current tool."""
        needed = self._needed_controls()

        # Show/hide the entire panel if no controls needed
        if not needed:
            self.hide()
            return
        else:
            self.show()

        # Show/hide individual controls
        for name, widgets in self._controls.items():
            visible = name in needed
            for widget in widgets:
                widget.setVisible(visible)

    def sync_from_style(self) -> None:
        """Update panel controls to show the controller's live style."""
        style = self._controller.style
        self._updating = True

        self._stroke_color.color = style.stroke_color
        button = self._width_group.button(int(style.stroke_width))
        if button is not None:
            button.setChecked(True)
        else:
            # Widths outside the presets leave no preset checked
            self._width_group.setExclusive(False)
            for preset in self._width_group.buttons():
                preset.setChecked(False)
            self._width_group.setExclusive(True)
        self._stroke_style.setCurrentIndex(self._stroke_style.findData(style.stroke_style))
        self._opacity.setValue(style.opacity)
        self._start_arrowhead.setCurrentIndex(self._start_arrowhead.findData(style.start_arrowhead))
        self._end_arrowhead.setCurrentIndex(self._end_arrowhead.findData(style.end_arrowhead))
        self._font_size.setValue(style.font_size)
        self._font_family.setCurrentText(style.font_family)
        self._bold.setChecked(style.font_weight == "bold")
        self._italic.setChecked(style.font_style == "italic")
        self._text_align.setCurrentIndex(self._text_align.findData(style.text_align))

        has_background = style.background_color != "transparent"
        self._background_enabled.setChecked(has_background)
        self._background_enabled.setText("On" if has_background else "None")
        self._background_color.setEnabled(has_background)
        if has_background:
            self._background_color.color = style.background_color

        self._eraser_size.setValue(self._controller.eraser_size)
        self._updating = False

    def _apply(self, **changes) -> None:
        if not self._updating:
            self._controller.update_style(**changes)

    def _on_opacity_changed(self, value: int) -> None:
        if self._updating:
            return
        # A drag previews live and is committed once on release
        self._controller.update_style(commit=not self._opacity.isSliderDown(), opacity=value)

    def _on_opacity_released(self) -> None:
        if not self._updating:
            self._controller.commit_style()

    def _on_stroke_color_changed(self, color: str) -> None:
        self._stroke_color.color = color
        self._apply(stroke_color=color)

    def _on_background_toggle(self, checked: bool) -> None:
        self._background_enabled.setText("On" if checked else "None")
        self._background_color.setEnabled(checked)
        self._apply(background_color=self._background_color.color if checked else "transparent")

    def _on_eraser_size_changed(self, value: int) -> None:
        if not self._updating:
            self.eraser_size_changed.emit(value)


class StatusBar(QFrame):
    """
    Bottom status bar showing zoom, cursor world position and element count.
    """

    zoom_selected = Signal(float)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedHeight(32)
        self.setStyleSheet("""
            StatusBar {
                background-color: palette(window);
                border-top: 1px solid palette(mid);
            }
            QLabel {
                color: palette(window-text);
                font-size: 11px;
            }
            QComboBox {
                background-color: palette(base);
                color: palette(text);
                border: 1px solid palette(mid);
                padding: 1px 6px;
                min-width: 64px;
            }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 0, 12, 0)
        layout.setSpacing(20)

        # Zoom control
        zoom_layout = QHBoxLayout()
        zoom_layout.setSpacing(6)
        zoom_layout.addWidget(QLabel("Zoom:"))

        self._zoom_combo = QComboBox()
        self._zoom_combo.setEditable(True)
        self._zoom_combo.addItems(["25%", "50%", "75%", "100%", "150%", "200%", "400%"])
        self._zoom_combo.setCurrentText("100%")
        self._zoom_combo.textActivated.connect(self._on_zoom_selected)
        zoom_layout.addWidget(self._zoom_combo)

        layout.addLayout(zoom_layout)

        # Cursor position
        self._cursor_pos = QLabel("")
        layout.addWidget(self._cursor_pos)

        # Element count
        self._count = QLabel("0 elements")
        layout.addWidget(self._count)

        layout.addStretch()

    @property
    def zoom_text(self) -> str:
        return self._zoom_combo.currentText()

    @property
    def cursor_text(self) -> str:
        return self._cursor_pos.text()

    @property
    def count_text(self) -> str:
        return self._count.text()

    def set_zoom(self, zoom: float) -> None:
        """Update zoom display."""
        self._zoom_combo.blockSignals(True)
        self._zoom_combo.setCurrentText(f"{round(zoom * 100)}%")
        self._zoom_combo.blockSignals(False)

    def set_cursor_position(self, x: float, y: float) -> None:
        """Update cursor position display."""
        self._cursor_pos.setText(f"({round(x)}, {round(y)})")

    def set_element_count(self, count: int) -> None:
        self._count.setText(f"{count} element{'' if count == 1 else 's'}")

    def _on_zoom_selected(self, text: str) -> None:
        try:
            percent = float(text.replace("%", "").strip())
        except ValueError:
            return
        self.zoom_selected.emit(percent / 100.0)


def _create_tool_icon(shape: str, color: QColor = QColor(107, 114, 128)) -> QIcon:
    """Draw a toolbar icon."""
    size = 24
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(QPen(color, 1.5))
    painter.setBrush(Qt.BrushStyle.NoBrush)

    margin = 4

    if shape == "selection":
        # Arrow cursor shape
        painter.setBrush(color)
        points = [
            QPoint(6, 4),
            QPoint(6, 18),
            QPoint(10, 14),
            QPoint(14, 20),
            QPoint(16, 18),
            QPoint(12, 12),
            QPoint(18, 12),
        ]
        painter.drawPolygon(QPolygon(points))

    elif shape == "hand":
        painter.drawRoundedRect(7, 10, 11, 10, 3, 3)
        for x in (8, 11, 14, 17):
            painter.drawLine(x, 10, x, 5)

    elif shape == "rectangle":
        painter.drawRect(margin, margin + 2, size - margin * 2, size - margin * 2 - 4)

    elif shape == "diamond":
        painter.drawPolygon(QPolygon([QPoint(12, 3), QPoint(21, 12), QPoint(12, 21), QPoint(3, 12)]))

    elif shape == "ellipse":
        painter.drawEllipse(margin, margin, size - margin * 2, size - margin * 2)

    elif shape == "arrow":
        # Line with arrowhead
        painter.drawLine(6, 18, 18, 6)
        painter.setBrush(color)
        painter.drawPolygon(QPolygon([QPoint(18, 6), QPoint(13, 6), QPoint(18, 11)]))

    elif shape == "line":
        painter.drawLine(5, 19, 19, 5)

    elif shape == "pencil":
        # Squiggly line
        path = QPainterPath()
        path.moveTo(4, 12)
        path.cubicTo(8, 4, 12, 20, 16, 10)
        path.lineTo(20, 8)
        painter.drawPath(path)

    elif shape == "path":
        points = [QPoint(4, 18), QPoint(10, 8), QPoint(15, 14), QPoint(20, 5)]
        for a, b in zip(points, points[1:]):
            painter.drawLine(a, b)
        painter.setBrush(color)
        for p in points:
            painter.drawEllipse(p, 2, 2)

    elif shape == "text":
        font = painter.font()
        font.setPixelSize(16)
        font.setBold(True)
        painter.setFont(font)
        painter.drawText(pixmap.rect(), Qt.AlignmentFlag.AlignCenter, "T")

    elif shape == "image":
        painter.drawRect(4, 5, 16, 14)
        painter.drawLine(6, 17, 10, 11)
        painter.drawLine(10, 11, 13, 15)
        painter.drawLine(13, 15, 15, 13)
        painter.drawLine(15, 13, 18, 17)
        painter.drawEllipse(QPoint(15, 9), 1, 1)

    elif shape == "eraser":
        # Eraser shape
        painter.setBrush(color)
        points = [QPoint(4, 18), QPoint(10, 6), QPoint(20, 10), QPoint(14, 22)]
        painter.drawPolygon(QPolygon(points))

    elif shape in ("long_position", "short_position"):
        profit, loss = QColor(34, 197, 94), QColor(239, 68, 68)
        top, bottom = (profit, loss) if shape == "long_position" else (loss, profit)
        painter.fillRect(4, 4, 16, 8, top)
        painter.fillRect(4, 12, 16, 8, bottom)
        painter.drawLine(4, 12, 20, 12)

    elif shape == "laser":
        painter.setBrush(QColor(255, 60, 60))
        painter.setPen(Qt.PenStyle.NoPen)
        painter.drawEllipse(QPoint(16, 8), 3, 3)
        painter.setPen(QPen(QColor(255, 60, 60, 140), 2))
        painter.drawLine(4, 20, 14, 10)

    elif shape == "undo":
        path = QPainterPath()
        path.moveTo(18, 18)
        path.cubicTo(18, 8, 12, 7, 6, 10)
        painter.drawPath(path)
        painter.drawLine(6, 10, 10, 5)
        painter.drawLine(6, 10, 11, 13)

    elif shape == "redo":
        path = QPainterPath()
        path.moveTo(6, 18)
        path.cubicTo(6, 8, 12, 7, 18, 10)
        painter.drawPath(path)
        painter.drawLine(18, 10, 14, 5)
        painter.drawLine(18, 10, 13, 13)

    elif shape == "save":
        # Floppy disk / save icon
        painter.drawRect(4, 4, 16, 16)
        painter.drawRect(7, 4, 10, 6)
        painter.drawRect(7, 12, 10, 6)

    elif shape == "delete":
        painter.drawRect(7, 8, 10, 12)
        painter.drawLine(5, 7, 19, 7)
        painter.drawLine(10, 4, 14, 4)

    painter.end()
    return QIcon(pixmap)


class EditorWidget(QWidget):
    """
    Main board widget composing toolbar, canvas, properties, and status bar.
    """

    # Tools offered on the toolbar: (type, tooltip, shortcut)
    TOOL_BUTTONS = [
        (ToolType.SELECTION, "Selection", "V"),
        (ToolType.HAND, "Hand", "H"),
        (ToolType.RECTANGLE, "Rectangle", "R"),
        (ToolType.DIAMOND, "Diamond", "D"),
        (ToolType.ELLIPSE, "Ellipse", "O"),
        (ToolType.ARROW, "Arrow", "A"),
        (ToolType.LINE, "Line", "L"),
        (ToolType.PENCIL, "Pencil", "P"),
        (ToolType.PATH, "Path", "W"),
        (ToolType.TEXT, "Text", "T"),
        (ToolType.ERASER, "Eraser", "E"),
        (ToolType.LONG_POSITION, "Long Position", None),
        (ToolType.SHORT_POSITION, "Short Position", None),
        (ToolType.LASER, "Laser", "K"),
    ]

    def __init__(self, config_service: Optional[ConfigService] = None, parent=None):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._tool_buttons: Dict[ToolType, QToolButton] = {}

        self._setup_ui()
        self._connect_signals()

    @property
    def canvas(self) -> EditorCanvas:
        return self._canvas

    @property
    def properties(self) -> PropertiesPanel:
        return self._properties

    @property
    def status(self) -> StatusBar:
        return self._status

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        self._canvas = EditorCanvas(self._config)
        controller = self._canvas.controller

        # ─── Top Toolbar ──────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: palette(window);
                border-bottom: 1px solid palette(mid);
                padding: 4px 6px;
                spacing: 2px;
            }
            QToolBar::separator {
                background-color: palette(mid);
                width: 1px;
                margin: 6px 4px;
            }
            QToolButton {
                background-color: transparent;
                color: palette(button-text);
                border: 1px solid transparent;
                border-radius: 6px;
                padding: 4px 6px;
                min-width: 30px;
                min-height: 30px;
            }
            QToolButton:hover {
                background-color: rgba(139, 92, 246, 0.12);
            }
            QToolButton:checked {
                background-color: rgba(139, 92, 246, 0.3);
            }
        """)

        # Tool buttons
        self._tool_group = QButtonGroup(self)
        self._tool_group.setExclusive(True)

        for tool_type, tooltip, shortcut in self.TOOL_BUTTONS:
            btn = ToolButton()
            btn.setIcon(_create_tool_icon(tool_type.value))
            hint = f" ({shortcut})" if shortcut else ""
            btn.setToolTip(f"{tooltip}{hint} - double-click to lock")
            btn.setCheckable(True)
            btn.clicked.connect(lambda checked=False, t=tool_type: self._canvas.set_tool(t))
            btn.double_clicked.connect(lambda t=tool_type: self._canvas.set_tool(t, locked=True))
            self._tool_group.addButton(btn)
            self._toolbar.addWidget(btn)
            self._tool_buttons[tool_type] = btn

        self._tool_buttons[controller.tool].setChecked(True)

        # Image import opens a file picker rather than arming a tool
        image_btn = QToolButton()
        image_btn.setIcon(_create_tool_icon("image"))
        image_btn.setToolTip("Insert Image")
        image_btn.clicked.connect(self.import_image)
        self._toolbar.addWidget(image_btn)

        self._toolbar.addSeparator()

        # Undo/Redo
        self._undo_btn = QToolButton()
        self._undo_btn.setIcon(_create_tool_icon("undo"))
        self._undo_btn.setToolTip("Undo (Ctrl+Z)")
        self._undo_btn.clicked.connect(lambda: self._canvas.undo())
        self._toolbar.addWidget(self._undo_btn)

        self._redo_btn = QToolButton()
        self._redo_btn.setIcon(_create_tool_icon("redo"))
        self._redo_btn.setToolTip("Redo (Ctrl+Shift+Z)")
        self._redo_btn.clicked.connect(lambda: self._canvas.redo())
        self._toolbar.addWidget(self._redo_btn)

        delete_btn = QToolButton()
        delete_btn.setIcon(_create_tool_icon("delete"))
        delete_btn.setToolTip("Delete selection / clear board (Del)")
        delete_btn.clicked.connect(lambda: controller.delete_selection())
        self._toolbar.addWidget(delete_btn)

        self._toolbar.addSeparator()

        # Zoom
        for text, tooltip, slot in (
            ("−", "Zoom Out", self._canvas.zoom_out),
            ("+", "Zoom In", self._canvas.zoom_in),
            ("1:1", "Reset View", self._canvas.reset_view),
        ):
            btn = QToolButton()
            btn.setText(text)
            btn.setToolTip(tooltip)
            btn.clicked.connect(slot)
            self._toolbar.addWidget(btn)

        self._toolbar.addSeparator()

        # View toggles
        self._grid_btn = self._add_toggle("Grid", controller.show_grid, self._canvas.set_show_grid)
        self._ruler_btn = self._add_toggle("Ruler", controller.show_ruler, self._canvas.set_show_ruler)
        self._minimap_btn = self._add_toggle("Map", controller.show_minimap, self._canvas.set_show_minimap)

        self._theme_btn = QToolButton()
        self._theme_btn.setToolTip("Toggle dark/light board")
        self._theme_btn.clicked.connect(self._canvas.toggle_theme)
        self._toolbar.addWidget(self._theme_btn)
        self._update_theme_button(controller.dark_mode)

        # Spacer
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self._toolbar.addWidget(spacer)

        # Snapshot button
        save_btn = QToolButton()
        save_btn.setIcon(_create_tool_icon("save"))
        save_btn.setToolTip("Save Snapshot (Ctrl+S)")
        save_btn.clicked.connect(self._save_snapshot)
        self._toolbar.addWidget(save_btn)

        main_layout.addWidget(self._toolbar)

        # ─── Center Content ───────────────────────────────────────────
        content = QHBoxLayout()
        content.setContentsMargins(0, 0, 0, 0)
        content.setSpacing(0)

        # Canvas
        content.addWidget(self._canvas, 1)

        # Properties panel
        self._properties = PropertiesPanel(controller)
        content.addWidget(self._properties)

        main_layout.addLayout(content, 1)

        # ─── Bottom Status Bar ────────────────────────────────────────
        self._status = StatusBar()
        main_layout.addWidget(self._status)

    def _add_toggle(self, text: str, checked: bool, slot) -> QToolButton:
        btn = QToolButton()
        btn.setText(text)
        btn.setToolTip(f"Show {text.lower()}")
        btn.setCheckable(True)
        btn.setChecked(checked)
        btn.toggled.connect(slot)
        self._toolbar.addWidget(btn)
        return btn

    def _connect_signals(self) -> None:
        """Connect widget signals."""
        controller = self._canvas.controller
        controller.tool_changed.connect(self._on_tool_changed)
        controller.selection_changed.connect(self._properties.set_selection)
        controller.style_changed.connect(self._properties.sync_from_style)
        controller.theme_changed.connect(self._update_theme_button)
        controller.changed.connect(self._on_board_changed)
        self._canvas.zoom_changed.connect(self._status.set_zoom)
        self._canvas.cursor_moved.connect(self._status.set_cursor_position)
        self._canvas.snapshot_saved.connect(self._on_snapshot_saved)
        self._canvas.image_loader.import_failed.connect(self._on_import_failed)
        self._properties.eraser_size_changed.connect(self._canvas.set_eraser_size)
        self._status.zoom_selected.connect(controller.set_zoom)

    # ─── Tool Management ──────────────────────────────────────────────────

    @Slot(object, bool)
    def _on_tool_changed(self, tool_type: ToolType, locked: bool) -> None:
        """Reflect the active tool on the toolbar and properties panel."""
        for other_type, other in self._tool_buttons.items():
            pinned = locked and other_type == tool_type
            other.setStyleSheet("QToolButton { border: 1px solid #fbbf24; }" if pinned else "")
        btn = self._tool_buttons.get(tool_type)
        if btn is not None:
            btn.setChecked(True)
        self._properties.set_tool(tool_type)

    def _update_theme_button(self, dark: bool) -> None:
        self._theme_btn.setText("Light" if dark else "Dark")

    def _on_board_changed(self) -> None:
        self._status.set_element_count(len(self._canvas.controller.scene))

    # ─── Import / Export ──────────────────────────────────────────────────

    def import_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Insert Image", "", IMAGE_FILE_FILTER)
        if path:
            self._canvas.import_image_file(path)

    def _on_import_failed(self, source: str, message: str) -> None:
        QMessageBox.warning(self, "Insert Image", f"Could not import {source}:\n{message}")

    def _save_snapshot(self) -> None:
        self._canvas.save_snapshot()

    def _on_snapshot_saved(self, path: str) -> None:
        self._logger.info(f"Snapshot saved to {path}")

    # ─── Key Events ───────────────────────────────────────────────────────

    def keyPressEvent(self, event) -> None:
        """Handle window-level shortcuts the canvas does not consume."""
        if event.key() == Qt.Key.Key_S and event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            self._save_snapshot()
            return

        focused = self.focusWidget()
        text_input_focused = isinstance(focused, (QLineEdit, QAbstractSpinBox))
        if self._canvas.controller.handle_key_press(
            event.key(), event.modifiers(), event.isAutoRepeat(), text_input_focused
        ):
            return
        super().keyPressEvent(event)
