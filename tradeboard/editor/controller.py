"""
Canvas controller: the interaction session behind one board.

The controller owns everything a canvas session needs (scene, view
transform, history, laser trail, active tool, tool lock, live style
settings, clipboard, eraser size, theme) so several canvases can coexist.
The Qt widget only forwards events here and repaints when told to.

Pointer handlers take widget (screen) coordinates; the controller converts
them to world coordinates and dispatches to the active tool.
"""

from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from PySide6.QtCore import QObject, QPointF, Qt, Signal

from tradeboard.editor import clipboard, renderer
from tradeboard.editor.elements import (
    POINT_KINDS,
    Arrowhead,
    Element,
    ElementStyle,
    ImageElement,
    StrokeStyle,
    TextAlign,
    TextElement,
)
from tradeboard.editor.geometry import ResizeHandle, fit_to_points, normalize, resize_handle_at
from tradeboard.editor.history import HistoryManager
from tradeboard.editor.laser import LaserTrail
from tradeboard.editor.scene import Scene
from tradeboard.editor.tools import (
    Idle,
    InteractionState,
    Panning,
    ToolBase,
    ToolType,
    create_tool,
)
from tradeboard.editor.view import ViewTransform
from tradeboard.services.config_service import MAX_ERASER_SIZE, MIN_ERASER_SIZE
from tradeboard.services.logging_service import get_logger


# Swatches offered by the properties panel
PALETTE: Tuple[str, ...] = (
    "#000000", "#ffc107", "#ff8a65", "#ff5252", "#e040fb",
    "#448aff", "#18ffff", "#69f0ae", "#b0bec5", "#8E24AA",
    "#FF6F00", "#546E7A", "#00897B", "#C0CA33", "#6D4C41",
)

STROKE_WIDTHS: Tuple[int, ...] = (1, 3, 5)

DEFAULT_ERASER_SIZE = 30

# Pure black strokes are unreadable on the dark background
DARK_STROKE_COLOR = "#e0e0e0"

# Longest side of an imported image, in world units
MAX_IMAGE_DIMENSION = 600

# Fallback viewport until the widget reports its size
DEFAULT_VIEWPORT_SIZE = (1200.0, 800.0)

TOOL_SHORTCUTS: Dict[Qt.Key, ToolType] = {
    Qt.Key.Key_V: ToolType.SELECTION,
    Qt.Key.Key_H: ToolType.HAND,
    Qt.Key.Key_R: ToolType.RECTANGLE,
    Qt.Key.Key_D: ToolType.DIAMOND,
    Qt.Key.Key_O: ToolType.ELLIPSE,
    Qt.Key.Key_A: ToolType.ARROW,
    Qt.Key.Key_L: ToolType.LINE,
    Qt.Key.Key_P: ToolType.PENCIL,
    Qt.Key.Key_W: ToolType.PATH,
    Qt.Key.Key_T: ToolType.TEXT,
    Qt.Key.Key_E: ToolType.ERASER,
    Qt.Key.Key_K: ToolType.LASER,
}

_HANDLE_CURSORS = {
    ResizeHandle.NORTH_WEST: Qt.CursorShape.SizeFDiagCursor,
    ResizeHandle.SOUTH_EAST: Qt.CursorShape.SizeFDiagCursor,
    ResizeHandle.NORTH_EAST: Qt.CursorShape.SizeBDiagCursor,
    ResizeHandle.SOUTH_WEST: Qt.CursorShape.SizeBDiagCursor,
    ResizeHandle.NORTH: Qt.CursorShape.SizeVerCursor,
    ResizeHandle.SOUTH: Qt.CursorShape.SizeVerCursor,
    ResizeHandle.ENTRY: Qt.CursorShape.SizeVerCursor,
}


@dataclass
class StyleSettings:
    """Live style applied to new elements and edited from the properties panel."""
    stroke_color: str = "#000000"
    background_color: str = "transparent"
    stroke_width: float = 2
    stroke_style: StrokeStyle = StrokeStyle.SOLID
    opacity: int = 100
    start_arrowhead: Arrowhead = Arrowhead.NONE
    end_arrowhead: Arrowhead = Arrowhead.NONE
    font_size: int = 24
    font_family: str = "Kalam"
    font_weight: str = "normal"
    font_style: str = "normal"
    text_align: TextAlign = TextAlign.LEFT

    @classmethod
    def from_config(cls, values: Dict[str, Any]) -> "StyleSettings":
        """Build settings from the config's default_style, ignoring unknown keys."""
        enum_fields = {
            "stroke_style": StrokeStyle,
            "start_arrowhead": Arrowhead,
            "end_arrowhead": Arrowhead,
            "text_align": TextAlign,
        }
        known = {f.name for f in fields(cls)}
        settings = {}
        for key, value in values.items():
            if key not in known:
                continue
            if key in enum_fields:
                try:
                    value = enum_fields[key](value)
                except ValueError:
                    continue
            settings[key] = value
        return cls(**settings)

    def element_style(self, dark_mode: bool = False) -> ElementStyle:
        stroke = self.stroke_color
        if dark_mode and stroke.lower() == "#000000":
            stroke = DARK_STROKE_COLOR
        return ElementStyle(
            stroke_color=stroke,
            background_color=self.background_color,
            stroke_width=self.stroke_width,
            stroke_style=self.stroke_style,
            opacity=self.opacity,
            start_arrowhead=self.start_arrowhead,
            end_arrowhead=self.end_arrowhead,
        )

    def load_from(self, element: Element) -> None:
        """Copy an element's style (and font, for text) into the settings."""
        for name in STYLE_FIELDS:
            setattr(self, name, getattr(element.style, name))
        if isinstance(element, TextElement):
            for name in FONT_FIELDS:
                setattr(self, name, getattr(element, name))


STYLE_FIELDS = tuple(f.name for f in fields(ElementStyle))
FONT_FIELDS = ("font_size", "font_family", "font_weight", "font_style", "text_align")


class CanvasController(QObject):
    """
    Interaction session for one canvas.

    Signals:
        changed: Emitted after any event that may need a repaint.
        selection_changed: Emitted with the selected elements when the
            selection set changes.
        tool_changed: Emitted with (ToolType, locked) when the tool changes.
        view_changed: Emitted with the scale when pan or zoom changes.
        style_changed: Emitted when the live style settings change.
        theme_changed: Emitted with True for dark, False for light.
    """

    changed = Signal()
    selection_changed = Signal(list)
    tool_changed = Signal(object, bool)
    view_changed = Signal(float)
    style_changed = Signal()
    theme_changed = Signal(bool)

    def __init__(
        self,
        parent: Optional[QObject] = None,
        *,
        confirm: Optional[Callable[[str], bool]] = None,
        prompt_text: Optional[Callable[[str, str], Optional[str]]] = None,
        measure_text: Optional[Callable[[TextElement], Tuple[float, float]]] = None,
        style: Optional[StyleSettings] = None,
        eraser_size: int = DEFAULT_ERASER_SIZE,
        dark_mode: bool = False,
        laser: Optional[LaserTrail] = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            parent: Optional QObject parent.
            confirm: Asks the user a yes/no question. Without one,
                     destructive confirmations are declined.
            prompt_text: Asks the user for a string (label, initial text);
                         returns None when cancelled.
            measure_text: Returns (width, height) of a text element.
            style: Initial style settings.
            eraser_size: Eraser radius in screen pixels.
            dark_mode: Start in the dark theme.
            laser: Laser trail buffer, injectable for tests.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._confirm = confirm
        self._prompt_text = prompt_text
        self._measure_text = measure_text or renderer.measure_text

        self.scene = Scene()
        self.view = ViewTransform()
        self.history = HistoryManager(self.scene, on_restore=self._on_history_restore)
        self.laser = laser or LaserTrail()
        self.style = style or StyleSettings()
        self.interaction: InteractionState = Idle()

        self._tools: Dict[ToolType, ToolBase] = {t: create_tool(t) for t in ToolType}
        self._tool = ToolType.SELECTION
        self._tool_locked = False
        self._space_pressed = False
        # Tool that took the last press; it keeps the pointer until release
        self._gesture_tool: Optional[ToolType] = None

        self._clipboard: List[Element] = []
        self._eraser_size = self._clamp_eraser(eraser_size)
        self._dark_mode = dark_mode

        self.show_grid = False
        self.show_ruler = False
        self.show_minimap = True
        self.viewport_size: Tuple[float, float] = DEFAULT_VIEWPORT_SIZE

        self._screen_pos = QPointF(0, 0)
        self._world_pos = QPointF(0, 0)
        self._cursor = Qt.CursorShape.ArrowCursor

    # ─── Session State ────────────────────────────────────────────────────

    @property
    def tool(self) -> ToolType:
        return self._tool

    @property
    def tool_locked(self) -> bool:
        return self._tool_locked

    @property
    def effective_tool(self) -> ToolType:
        """The tool pointer events go to; a held spacebar forces the hand."""
        return ToolType.HAND if self._space_pressed else self._tool

    @property
    def active_tool(self) -> ToolBase:
        return self._tools[self.effective_tool]

    @property
    def pointer_tool(self) -> ToolBase:
        """The tool holding the current drag, or the active tool between drags."""
        if self._gesture_tool is not None:
            return self._tools[self._gesture_tool]
        return self.active_tool

    @property
    def space_pressed(self) -> bool:
        return self._space_pressed

    @property
    def screen_pos(self) -> QPointF:
        """Last pointer position in widget coordinates."""
        return QPointF(self._screen_pos)

    @property
    def world_pos(self) -> QPointF:
        """Last pointer position in world coordinates."""
        return QPointF(self._world_pos)

    @property
    def cursor(self) -> Qt.CursorShape:
        return self._cursor

    @property
    def clipboard(self) -> List[Element]:
        return list(self._clipboard)

    @property
    def eraser_size(self) -> int:
        return self._eraser_size

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode

    @staticmethod
    def _clamp_eraser(size: int) -> int:
        return max(MIN_ERASER_SIZE, min(MAX_ERASER_SIZE, int(size)))

    def set_eraser_size(self, size: int) -> None:
        self._eraser_size = self._clamp_eraser(size)
        self.style_changed.emit()

    def set_dark_mode(self, dark: bool) -> None:
        if dark == self._dark_mode:
            return
        self._dark_mode = dark
        self.theme_changed.emit(dark)
        self.changed.emit()

    def toggle_theme(self) -> None:
        self.set_dark_mode(not self._dark_mode)

    # ─── Tools ────────────────────────────────────────────────────────────

    def set_tool(self, tool_type: ToolType, locked: bool = False) -> None:
        """
        Switch tools from the toolbar or a shortcut.

        Clears the selection and abandons any element being drawn.
        """
        with self._tracking():
            self.scene.clear_selection()
            self.scene.current_element = None
            self._activate(tool_type, locked)

    def lock_tool(self, tool_type: ToolType) -> None:
        """Pin a tool so it stays active after each commit."""
        self.set_tool(tool_type, locked=True)

    def _activate(self, tool_type: ToolType, locked: bool = False) -> None:
        previous = self._tools[self._tool]
        if tool_type != self._tool:
            previous.on_deactivate(self)
        self._tool = tool_type
        self._tool_locked = locked
        self.interaction = Idle()
        self._gesture_tool = None
        self._cursor = self._tools[tool_type].cursor
        self._logger.debug(f"Tool: {tool_type.value}{' (locked)' if locked else ''}")
        self.tool_changed.emit(tool_type, locked)

    def finish_tool_use(self) -> None:
        """Revert to the selection tool unless the tool is pinned or sticky."""
        if self._tool_locked or not self._tools[self._tool].reverts_after_commit:
            return
        self._activate(ToolType.SELECTION)

    # ─── Element Helpers Used By Tools ────────────────────────────────────

    def new_element_style(self) -> ElementStyle:
        return self.style.element_style(self._dark_mode)

    def normalize(self, element: Element) -> Element:
        """Canonical committed geometry: fitted point bounds or normalized box."""
        if element.kind in POINT_KINDS:
            return fit_to_points(element)
        return normalize(element)

    def measured(self, element: TextElement) -> TextElement:
        width, height = self._measure_text(element)
        return replace(element, width=width, height=height)

    def prompt_text(self, label: str, initial: str = "") -> Optional[str]:
        if self._prompt_text is None:
            return None
        return self._prompt_text(label, initial)

    def commit_drawn_element(self, element: Element) -> None:
        """Add a finished element, select it and record it in history."""
        element = self.normalize(element)
        self.scene.current_element = None
        self.scene.add(element)
        self.scene.select([element.id])
        self.history.commit(text=f"Draw {element.kind.value}")
        self._logger.info(f"Committed {element.kind.value} {element.id}")
        self.finish_tool_use()

    def update_hover(self, world_pos: QPointF) -> None:
        hit = self.scene.hit_test(world_pos.x(), world_pos.y(), self.view.scale)
        self.scene.hovered_id = hit.id if hit else None

    # ─── Pointer Events ───────────────────────────────────────────────────

    def _begin_pointer(self, screen_pos: QPointF) -> QPointF:
        self._screen_pos = QPointF(screen_pos)
        self._world_pos = self.view.screen_to_world(screen_pos)
        return self._world_pos

    def on_mouse_press(
        self,
        screen_pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        with self._tracking():
            world = self._begin_pointer(screen_pos)
            tool = self.active_tool
            self._gesture_tool = tool.tool_type
            tool.on_mouse_press(world, self, modifiers)
            self._update_cursor(world)

    def on_mouse_move(
        self,
        screen_pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        with self._tracking():
            world = self._begin_pointer(screen_pos)
            self.pointer_tool.on_mouse_move(world, self, modifiers)
            self._update_cursor(world)

    def on_mouse_release(
        self,
        screen_pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        with self._tracking():
            world = self._begin_pointer(screen_pos)
            tool = self.pointer_tool
            self._gesture_tool = None
            tool.on_mouse_release(world, self, modifiers)
            self._update_cursor(world)

    def on_double_click(
        self,
        screen_pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> bool:
        """
        Handle a double-click.

        Returns True if consumed; otherwise the widget treats the second
        click as an ordinary press.
        """
        with self._tracking():
            world = self._begin_pointer(screen_pos)
            if self.active_tool.on_double_click(world, self, modifiers):
                return True
            if self.effective_tool == ToolType.SELECTION:
                return self._edit_text_at(world)
        return False

    def _edit_text_at(self, world: QPointF) -> bool:
        hit = self.scene.hit_test(world.x(), world.y(), self.view.scale)
        if not isinstance(hit, TextElement):
            return False

        text = self.prompt_text("Edit text:", hit.text)
        self.interaction = Idle()
        if text is None or text == hit.text:
            return True
        if not text:
            # Emptying a text element removes it
            self.scene.remove_ids([hit.id])
        else:
            self.scene.replace(self.measured(replace(hit, text=text)))
        self.history.commit(text="Edit Text")
        return True

    def on_wheel(
        self,
        screen_pos: QPointF,
        delta_x: float,
        delta_y: float,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        """Ctrl+wheel zooms about the pointer; a plain wheel pans."""
        if modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier):
            self.view.zoom_at(delta_y, QPointF(screen_pos))
        else:
            self.view.pan_by(delta_x, delta_y)
        self.view_changed.emit(self.view.scale)
        self.changed.emit()

    def _update_cursor(self, world: QPointF) -> None:
        tool = self.pointer_tool
        if tool.tool_type == ToolType.HAND:
            panning = isinstance(self.interaction, Panning)
            self._cursor = Qt.CursorShape.ClosedHandCursor if panning else Qt.CursorShape.OpenHandCursor
            return

        if tool.tool_type != ToolType.SELECTION:
            self._cursor = tool.cursor
            return

        selected = self.scene.single_selection
        if selected is not None:
            handle = resize_handle_at(world.x(), world.y(), selected, self.view.scale)
            if handle is not None:
                self._cursor = _HANDLE_CURSORS[handle]
                return

        if self.scene.hit_test(world.x(), world.y(), self.view.scale) is not None:
            self._cursor = Qt.CursorShape.SizeAllCursor
        else:
            self._cursor = Qt.CursorShape.ArrowCursor

    # ─── Keyboard ─────────────────────────────────────────────────────────

    def handle_key_press(
        self,
        key: Qt.Key,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
        auto_repeat: bool = False,
        text_input_focused: bool = False,
    ) -> bool:
        """
        Handle a key press. Returns True if the key was consumed.

        Nothing is handled while a text input has focus.
        """
        if text_input_focused:
            return False

        ctrl = bool(modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier))
        shift = bool(modifiers & Qt.KeyboardModifier.ShiftModifier)

        if ctrl:
            if key == Qt.Key.Key_C:
                self.copy()
            elif key == Qt.Key.Key_V:
                self.paste()
            elif key == Qt.Key.Key_Z:
                if shift:
                    self.redo()
                else:
                    self.undo()
            elif key == Qt.Key.Key_Y:
                self.redo()
            else:
                return False
            return True

        if key == Qt.Key.Key_Space:
            if not auto_repeat and not self._space_pressed:
                self._space_pressed = True
                self._cursor = Qt.CursorShape.OpenHandCursor
                self.changed.emit()
            return True

        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.delete_selection()
            return True

        if key in TOOL_SHORTCUTS and not shift:
            self.set_tool(TOOL_SHORTCUTS[key])
            return True

        return False

    def handle_key_release(self, key: Qt.Key, auto_repeat: bool = False) -> bool:
        if key != Qt.Key.Key_Space or auto_repeat:
            return False
        self._space_pressed = False
        if isinstance(self.interaction, Panning):
            self.interaction = Idle()
        self._cursor = self.active_tool.cursor
        self.changed.emit()
        return True

    # ─── Edit Operations ──────────────────────────────────────────────────

    def copy(self) -> None:
        self._clipboard = clipboard.copy_elements(self.scene.selected_elements())
        self._logger.debug(f"Copied {len(self._clipboard)} elements")

    def paste(self) -> None:
        """Paste clipboard copies, offset and with fresh ids; select them."""
        if not self._clipboard:
            return
        with self._tracking():
            pasted = clipboard.paste_elements(self._clipboard, self.view.scale)
            self.scene.extend(pasted)
            self.scene.select(e.id for e in pasted)
            self.history.commit(text="Paste")
            self._logger.info(f"Pasted {len(pasted)} elements")

    def undo(self) -> None:
        with self._tracking():
            self.interaction = Idle()
            self.history.undo()

    def redo(self) -> None:
        with self._tracking():
            self.interaction = Idle()
            self.history.redo()

    def delete_selection(self) -> None:
        """
        Delete the selected elements.

        With nothing selected, offers to clear the whole board.
        """
        with self._tracking():
            ids = self.scene.selected_ids
            if ids:
                self.scene.remove_ids(ids)
                self.scene.clear_selection()
                self.history.commit(text="Delete")
                return

            if len(self.scene) and self._confirm is not None:
                if self._confirm("Clear the entire board?"):
                    self.scene.clear()
                    self.history.commit(text="Clear Board")
                    self._logger.info("Board cleared")

    def add_external_element(self, element: Element) -> None:
        """Insert an element supplied from outside the canvas and commit it."""
        with self._tracking():
            self.scene.add(element)
            self.history.commit(text="Insert")
            self._logger.info(f"External element added: {element.kind.value} {element.id}")

    def insert_image(self, data: bytes, width: float, height: float) -> ImageElement:
        """
        Place an imported image at the viewport center.

        The image is scaled so its longest side is at most
        MAX_IMAGE_DIMENSION world units; the tool reverts to selection.
        """
        if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
            ratio = width / height
            if width > height:
                width, height = MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION / ratio
            else:
                width, height = MAX_IMAGE_DIMENSION * ratio, MAX_IMAGE_DIMENSION

        center = self.view.viewport_center(*self.viewport_size)
        element = ImageElement(
            x=center.x() - width / 2,
            y=center.y() - height / 2,
            width=width,
            height=height,
            image_data=data,
            style=ElementStyle(stroke_color="transparent", stroke_width=0),
        )
        with self._tracking():
            self.scene.add(element)
            self.history.commit(text="Import Image")
            self._activate(ToolType.SELECTION)
        self._logger.info(f"Image imported: {width:.0f}x{height:.0f}")
        return element

    def update_style(self, commit: bool = True, **changes: Any) -> None:
        """
        Change live style settings.

        The change applies to new elements and to every selected element;
        font changes only affect text. Edits to the selection are committed
        unless commit is False, in which case commit_style() records them.
        """
        known = {f.name for f in fields(StyleSettings)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown style settings: {', '.join(sorted(unknown))}")

        for name, value in changes.items():
            setattr(self.style, name, value)

        style_changes = {k: v for k, v in changes.items() if k in STYLE_FIELDS}
        font_changes = {k: v for k, v in changes.items() if k in FONT_FIELDS}

        with self._tracking():
            for element in self.scene.selected_elements():
                updated = element
                if style_changes:
                    updated = replace(updated, style=replace(updated.style, **style_changes))
                if font_changes and isinstance(updated, TextElement):
                    updated = self.measured(replace(updated, **font_changes))
                if updated != element:
                    self.scene.replace(updated)

            if commit:
                self._commit_style_edit()

        self.style_changed.emit()

    def commit_style(self) -> None:
        """Record style edits made with update_style(commit=False)."""
        with self._tracking():
            self._commit_style_edit()

    def _commit_style_edit(self) -> None:
        if self.history.differs_from_current(self.scene.snapshot()):
            self.history.commit(text="Change Style")

    # ─── View ─────────────────────────────────────────────────────────────

    def zoom_in(self) -> None:
        self.view.zoom_in()
        self.view_changed.emit(self.view.scale)
        self.changed.emit()

    def zoom_out(self) -> None:
        self.view.zoom_out()
        self.view_changed.emit(self.view.scale)
        self.changed.emit()

    def set_zoom(self, scale: float) -> None:
        """Zoom to an absolute scale about the middle of the viewport."""
        width, height = self.viewport_size
        self.view.set_scale(scale, QPointF(width / 2, height / 2))
        self.view_changed.emit(self.view.scale)
        self.changed.emit()

    def reset_view(self) -> None:
        self.view.reset()
        self.view_changed.emit(self.view.scale)
        self.changed.emit()

    # ─── Change Tracking ──────────────────────────────────────────────────

    def _on_history_restore(self) -> None:
        self._logger.debug(f"History restored to index {self.history.index}")

    @contextmanager
    def _tracking(self):
        """Emit selection_changed (with style sync) and changed around a mutation."""
        before = self.scene.selected_ids
        yield
        after = self.scene.selected_ids
        if after != before:
            last_id = self.scene.last_selected_id
            last = self.scene.find(last_id) if last_id else None
            if last is not None:
                self.style.load_from(last)
                self.style_changed.emit()
            self.selection_changed.emit(self.scene.selected_elements())
        self.changed.emit()
