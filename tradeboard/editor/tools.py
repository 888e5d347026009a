"""
Tool framework and implementations for the TradeBoard canvas.

Each tool interprets pointer events for the canvas controller and turns
them into scene mutations. Tools are stateless apart from configuration:
the gesture in progress is stored on the controller as an
InteractionState value, created on press, replaced on move and reset to
Idle on release.

Tools:
- HandTool: Pan the view
- SelectionTool: Select, move, resize, box-select
- ShapeTool: Rectangle, diamond, ellipse, arrow, line, image placeholder,
  long/short position markers
- PencilTool: Freehand strokes
- PathTool: Multi-click polylines, finished by double-click
- TextTool: Prompted single-line text
- EraserTool: Remove elements near the pointer
- LaserTool: Fading pointer trail, not recorded in history
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Dict, Optional, Union

from PySide6.QtCore import QPointF, Qt

from tradeboard.editor.elements import (
    POSITION_KINDS,
    Element,
    ElementType,
    FreehandElement,
    PathElement,
    Point,
    TextElement,
    create_element,
)
from tradeboard.editor.geometry import (
    Bounds,
    ResizeHandle,
    apply_resize,
    distance,
    resize_handle_at,
    translate,
)
from tradeboard.services.logging_service import get_logger

if TYPE_CHECKING:
    from tradeboard.editor.controller import CanvasController


# Size of a position marker placed by a click without dragging
DEFAULT_POSITION_SIZE = 100.0


class ToolType(Enum):
    """Enum for tool types."""
    HAND = "hand"
    SELECTION = "selection"
    RECTANGLE = "rectangle"
    DIAMOND = "diamond"
    ELLIPSE = "ellipse"
    ARROW = "arrow"
    LINE = "line"
    PENCIL = "pencil"
    TEXT = "text"
    IMAGE = "image"
    ERASER = "eraser"
    LONG_POSITION = "long_position"
    SHORT_POSITION = "short_position"
    PATH = "path"
    LASER = "laser"


# ─── Interaction State ────────────────────────────────────────────────────────

class InteractionMode(Enum):
    NONE = "none"
    DRAWING = "drawing"
    MOVING = "moving"
    RESIZING = "resizing"
    PANNING = "panning"
    SELECTION_BOX = "selection_box"


@dataclass(frozen=True)
class Idle:
    """No gesture in progress."""
    mode: ClassVar[InteractionMode] = InteractionMode.NONE


@dataclass(frozen=True)
class Drawing:
    """A drawing-type tool is creating or erasing."""
    mode: ClassVar[InteractionMode] = InteractionMode.DRAWING
    start: Point


@dataclass(frozen=True)
class Moving:
    """
    Dragging the selection.

    snapshots holds every selected element as it was at drag start; moves
    are always applied to these copies so the drag never drifts.
    """
    mode: ClassVar[InteractionMode] = InteractionMode.MOVING
    start: Point
    snapshots: Dict[str, Element] = field(default_factory=dict)


@dataclass(frozen=True)
class Resizing:
    """Dragging a resize handle of the single selected element."""
    mode: ClassVar[InteractionMode] = InteractionMode.RESIZING
    start: Point
    handle: ResizeHandle
    snapshot: Element


@dataclass(frozen=True)
class Panning:
    """Panning the view; last_screen is the previous pointer position."""
    mode: ClassVar[InteractionMode] = InteractionMode.PANNING
    last_screen: Point


@dataclass(frozen=True)
class SelectionBoxing:
    """Rubber-band selection between two world points."""
    mode: ClassVar[InteractionMode] = InteractionMode.SELECTION_BOX
    start: Point
    current: Point

    @property
    def bounds(self) -> Bounds:
        return Bounds.from_corners(self.start.x, self.start.y, self.current.x, self.current.y)


InteractionState = Union[Idle, Drawing, Moving, Resizing, Panning, SelectionBoxing]


def _point(pos: QPointF) -> Point:
    return Point(pos.x(), pos.y())


def _shift_held(modifiers: Qt.KeyboardModifier) -> bool:
    return bool(modifiers & Qt.KeyboardModifier.ShiftModifier)


# ─── Tool Base ────────────────────────────────────────────────────────────────

class ToolBase(ABC):
    """
    Base class for all tools.

    Positions handed to the tool are world coordinates. Tools that need the
    raw pointer position (hand, laser) read canvas.screen_pos.
    """

    # Whether the controller switches back to selection after a commit
    reverts_after_commit: ClassVar[bool] = True

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def tool_type(self) -> ToolType:
        """Return the type of this tool."""
        pass

    @property
    def cursor(self) -> Qt.CursorShape:
        """Return the cursor to use when this tool is active."""
        return Qt.CursorShape.CrossCursor

    @abstractmethod
    def on_mouse_press(
        self,
        pos: QPointF,
        canvas: "CanvasController",
        modifiers: Qt.KeyboardModifier
    ) -> None:
        """Handle mouse press event."""
        pass

    @abstractmethod
    def on_mouse_move(
        self,
        pos: QPointF,
        canvas: "CanvasController",
        modifiers: Qt.KeyboardModifier
    ) -> None:
        """Handle mouse move event."""
        pass

    def on_mouse_release(
        self,
        pos: QPointF,
        canvas: "CanvasController",
        modifiers: Qt.KeyboardModifier
    ) -> None:
        """Handle mouse release event."""
        canvas.interaction = Idle()

    def on_double_click(
        self,
        pos: QPointF,
        canvas: "CanvasController",
        modifiers: Qt.KeyboardModifier
    ) -> bool:
        """
        Handle double click.

        Returns True if the event was handled.
        """
        return False

    def on_deactivate(self, canvas: "CanvasController") -> None:
        """Called when tool is deactivated (another tool selected)."""
        pass


# ─── Hand ─────────────────────────────────────────────────────────────────────

class HandTool(ToolBase):
    """Pans the view by the raw screen-space pointer delta."""

    reverts_after_commit = False

    @property
    def tool_type(self) -> ToolType:
        return ToolType.HAND

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.OpenHandCursor

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        canvas.interaction = Panning(_point(canvas.screen_pos))

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        state = canvas.interaction
        if not isinstance(state, Panning):
            return
        screen = canvas.screen_pos
        canvas.view.pan_by(screen.x() - state.last_screen.x, screen.y() - state.last_screen.y)
        canvas.interaction = Panning(_point(screen))
        canvas.view_changed.emit(canvas.view.scale)


# ─── Selection ────────────────────────────────────────────────────────────────

class SelectionTool(ToolBase):
    """
    Select, move and resize elements.

    - Press on a handle of the sole selected element: resize it
    - Press on an element: select it (Shift toggles) and drag the selection
    - Press on empty canvas: rubber-band selection (Shift keeps selection)
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.SELECTION

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.ArrowCursor

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        scene = canvas.scene
        scale = canvas.view.scale
        start = _point(pos)

        # Handles take priority over body hits
        selected = scene.single_selection
        if selected is not None:
            handle = resize_handle_at(pos.x(), pos.y(), selected, scale)
            if handle is not None:
                canvas.interaction = Resizing(start, handle, selected)
                return

        hit = scene.hit_test(pos.x(), pos.y(), scale)
        shift = _shift_held(modifiers)

        if hit is not None:
            already_selected = scene.is_selected(hit.id)
            if shift:
                if already_selected:
                    # Shift-click on a selected element only deselects it
                    scene.deselect(hit.id)
                    return
                scene.add_to_selection([hit.id])
            elif not already_selected:
                scene.select([hit.id])

            snapshots = {e.id: e for e in scene.selected_elements()}
            canvas.interaction = Moving(start, snapshots)
            return

        if not shift:
            scene.clear_selection()
        state = SelectionBoxing(start, start)
        scene.selection_box = state.bounds
        canvas.interaction = state

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        state = canvas.interaction
        scene = canvas.scene

        if isinstance(state, Moving):
            dx = pos.x() - state.start.x
            dy = pos.y() - state.start.y
            for snapshot in state.snapshots.values():
                scene.replace(translate(snapshot, dx, dy))
            return

        if isinstance(state, Resizing):
            dx = pos.x() - state.start.x
            dy = pos.y() - state.start.y
            scene.replace(apply_resize(state.snapshot, state.handle, dx, dy, pos.y()))
            return

        if isinstance(state, SelectionBoxing):
            state = replace(state, current=_point(pos))
            scene.selection_box = state.bounds
            canvas.interaction = state
            return

        if isinstance(state, Idle):
            canvas.update_hover(pos)

    def on_mouse_release(self, pos, canvas, modifiers) -> None:
        state = canvas.interaction
        scene = canvas.scene

        if isinstance(state, SelectionBoxing):
            ids = [e.id for e in scene.elements_in_box(state.bounds)]
            if _shift_held(modifiers):
                scene.add_to_selection(ids)
            else:
                scene.select(ids)
            scene.selection_box = None

        elif isinstance(state, Moving):
            if canvas.history.differs_from_current(scene.snapshot()):
                canvas.history.commit(text="Move")

        elif isinstance(state, Resizing):
            resized = scene.find(state.snapshot.id)
            if resized is not None:
                scene.replace(canvas.normalize(resized))
            if canvas.history.differs_from_current(scene.snapshot()):
                canvas.history.commit(text="Resize")

        canvas.interaction = Idle()


# ─── Drawing Tools ────────────────────────────────────────────────────────────

class ShapeTool(ToolBase):
    """
    Draws box-like and two-point elements by dragging.

    The element is pinned at the press point; dragging sets its signed
    width/height. Normalization happens on commit.
    """

    def __init__(self, tool_type: ToolType) -> None:
        super().__init__()
        self._tool_type = tool_type
        self._kind = ElementType(tool_type.value)

    @property
    def tool_type(self) -> ToolType:
        return self._tool_type

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        fields = dict(x=pos.x(), y=pos.y(), style=canvas.new_element_style())
        if self._kind in POSITION_KINDS:
            fields.update(width=DEFAULT_POSITION_SIZE, height=DEFAULT_POSITION_SIZE, entry_ratio=0.5)

        canvas.scene.current_element = create_element(self._kind, **fields)
        canvas.interaction = Drawing(_point(pos))

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        current = canvas.scene.current_element
        if not isinstance(canvas.interaction, Drawing) or current is None:
            return
        canvas.scene.current_element = replace(
            current,
            width=pos.x() - current.x,
            height=pos.y() - current.y,
        )

    def on_mouse_release(self, pos, canvas, modifiers) -> None:
        current = canvas.scene.current_element
        if isinstance(canvas.interaction, Drawing) and current is not None:
            canvas.commit_drawn_element(current)
        canvas.interaction = Idle()


class PencilTool(ToolBase):
    """
    Freehand strokes.

    While drawing, width/height only track the running maximum extent;
    the real bounds are recomputed from the points on commit.
    """

    reverts_after_commit = False

    @property
    def tool_type(self) -> ToolType:
        return ToolType.PENCIL

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        canvas.scene.current_element = FreehandElement(
            x=pos.x(),
            y=pos.y(),
            points=(_point(pos),),
            style=canvas.new_element_style(),
        )
        canvas.interaction = Drawing(_point(pos))

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        current = canvas.scene.current_element
        if not isinstance(canvas.interaction, Drawing) or not isinstance(current, FreehandElement):
            return
        canvas.scene.current_element = replace(
            current,
            points=current.points + (_point(pos),),
            width=max(current.width, pos.x() - current.x),
            height=max(current.height, pos.y() - current.y),
        )

    def on_mouse_release(self, pos, canvas, modifiers) -> None:
        current = canvas.scene.current_element
        if isinstance(canvas.interaction, Drawing) and current is not None:
            canvas.commit_drawn_element(current)
        canvas.interaction = Idle()


class PathTool(ToolBase):
    """
    Multi-click polyline.

    The first click starts a path with two coincident points. Each further
    click fixes the rubber-band point and appends a new one; moving the
    pointer drags the last point. Double-click finishes the path.
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.PATH

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        point = _point(pos)
        current = canvas.scene.current_element

        if isinstance(current, PathElement):
            points = current.points[:-1] + (point, point)
            canvas.scene.current_element = replace(current, points=points)
            return

        canvas.scene.current_element = PathElement(
            x=point.x,
            y=point.y,
            points=(point, point),
            style=canvas.new_element_style(),
        )
        canvas.interaction = Drawing(point)

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        current = canvas.scene.current_element
        if not isinstance(current, PathElement) or not current.points:
            return
        canvas.scene.current_element = replace(
            current, points=current.points[:-1] + (_point(pos),)
        )

    def on_mouse_release(self, pos, canvas, modifiers) -> None:
        # The path stays open between clicks
        pass

    def on_double_click(self, pos, canvas, modifiers) -> bool:
        current = canvas.scene.current_element
        if not isinstance(current, PathElement):
            return False

        points = current.points
        # The click that preceded the double-click left a duplicate tail
        if len(points) > 2 and points[-1] == points[-2]:
            points = points[:-1]

        canvas.commit_drawn_element(replace(current, points=points))
        canvas.interaction = Idle()
        return True

    def on_deactivate(self, canvas) -> None:
        if isinstance(canvas.scene.current_element, PathElement):
            canvas.scene.current_element = None
            canvas.interaction = Idle()


class TextTool(ToolBase):
    """Prompts for a string and places it at the click point."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.TEXT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.IBeamCursor

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        text = canvas.prompt_text("Enter text:", "")
        if text:
            style = canvas.style
            element = TextElement(
                x=pos.x(),
                y=pos.y(),
                text=text,
                font_size=style.font_size,
                font_family=style.font_family,
                font_weight=style.font_weight,
                font_style=style.font_style,
                text_align=style.text_align,
                style=canvas.new_element_style(),
            )
            canvas.commit_drawn_element(canvas.measured(element))
        else:
            canvas.finish_tool_use()

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        pass


class EraserTool(ToolBase):
    """
    Removes every element whose origin lies closer to the pointer than the
    eraser radius. Only the origin is tested, not the full shape.
    """

    reverts_after_commit = False

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ERASER

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        canvas.interaction = Drawing(_point(pos))
        self.erase_at(pos, canvas)

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        if isinstance(canvas.interaction, Drawing):
            self.erase_at(pos, canvas)

    def on_mouse_release(self, pos, canvas, modifiers) -> None:
        if isinstance(canvas.interaction, Drawing):
            if canvas.history.differs_from_current(canvas.scene.snapshot()):
                canvas.history.commit(text="Erase")
        canvas.interaction = Idle()

    @staticmethod
    def erase_at(pos: QPointF, canvas: "CanvasController") -> None:
        radius = canvas.eraser_size / canvas.view.scale
        doomed = [
            e.id for e in canvas.scene
            if distance(e.x, e.y, pos.x(), pos.y()) < radius
        ]
        if doomed:
            canvas.scene.remove_ids(doomed)


class LaserTool(ToolBase):
    """Leaves a fading trail in screen space; never edits the scene."""

    reverts_after_commit = False

    @property
    def tool_type(self) -> ToolType:
        return ToolType.LASER

    def on_mouse_press(self, pos, canvas, modifiers) -> None:
        canvas.interaction = Drawing(_point(pos))
        screen = canvas.screen_pos
        canvas.laser.add(screen.x(), screen.y())

    def on_mouse_move(self, pos, canvas, modifiers) -> None:
        if isinstance(canvas.interaction, Drawing):
            screen = canvas.screen_pos
            canvas.laser.add(screen.x(), screen.y())


def create_tool(tool_type: ToolType) -> ToolBase:
    """
    Factory function to create a tool by type.

    Args:
        tool_type: The type of tool to create.

    Returns:
        A new tool instance.
    """
    simple_tools = {
        ToolType.HAND: HandTool,
        ToolType.SELECTION: SelectionTool,
        ToolType.PENCIL: PencilTool,
        ToolType.PATH: PathTool,
        ToolType.TEXT: TextTool,
        ToolType.ERASER: EraserTool,
        ToolType.LASER: LaserTool,
    }
    if tool_type in simple_tools:
        return simple_tools[tool_type]()
    return ShapeTool(tool_type)
