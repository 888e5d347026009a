"""
QPainter rendering for the TradeBoard canvas.

Draws one frame of a canvas session in this order:
- Theme background
- World grid (optional)
- Elements in z-order, with a glow for selected/hovered ones
- The element being drawn
- Laser trail (screen space)
- Selection borders and handles
- Box-selection overlay
- Rulers (screen space, optional)

Also provides the per-element drawing used by snapshot export, the
minimap layout/painting, and text measurement.
"""

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import (
    QBrush,
    QColor,
    QFont,
    QFontMetricsF,
    QImage,
    QPainter,
    QPainterPath,
    QPen,
    QPolygonF,
)

from tradeboard.editor.elements import (
    Arrowhead,
    Element,
    ElementType,
    FreehandElement,
    ImageElement,
    LinearElement,
    PathElement,
    PositionElement,
    ShapeElement,
    StrokeStyle,
    TextAlign,
    TextElement,
)
from tradeboard.editor.geometry import (
    HANDLE_SIZE,
    Bounds,
    ResizeHandle,
    compute_bounds,
    handle_positions,
    union_bounds,
)

if TYPE_CHECKING:
    from tradeboard.editor.controller import CanvasController


ImageProvider = Callable[[ImageElement], Optional[QImage]]

# ─── Constants ────────────────────────────────────────────────────────────────

BACKGROUND_LIGHT = "#ffffff"
BACKGROUND_DARK = "#121212"

GRID_SIZE = 20
GRID_COLOR_LIGHT = "#e5e7eb"
GRID_COLOR_DARK = "#333333"

RULER_SIZE = 24
RULER_BASE_STEP = 100
RULER_MIN_STEP_PX = 60
RULER_MAX_STEP_PX = 140

SELECTION_COLOR = "#8b5cf6"
SELECTION_GLOW = "rgba(139, 92, 246, 0.6)"
SELECTION_GLOW_BLUR = 12
HOVER_GLOW = "rgba(0, 0, 0, 0.25)"
HOVER_GLOW_BLUR = 8
ENTRY_HANDLE_COLOR = "#fbbf24"

SELECTION_BOX_STROKE = "#3b82f6"
SELECTION_BOX_FILL = "rgba(59, 130, 246, 0.1)"

PROFIT_FILL = "rgba(34, 197, 94, 0.2)"
PROFIT_BORDER = "#15803d"
LOSS_FILL = "rgba(239, 68, 68, 0.2)"
LOSS_BORDER = "#b91c1c"
ENTRY_LINE_COLOR = "#6b7280"

ARROWHEAD_LENGTH = 15
ARROWHEAD_DOT_RADIUS = 4
PATH_VERTEX_RADIUS = 3

# Dash patterns in world units
DASH_PATTERNS = {
    StrokeStyle.DASHED: (10, 10),
    StrokeStyle.DOTTED: (5, 10),
}

TEXT_LINE_HEIGHT = 1.2
LABEL_FONT_SIZE = 14

MINIMAP_WIDTH = 200
MINIMAP_HEIGHT = 150
MINIMAP_PADDING = 100
MINIMAP_MIN_BOX = 2
MINIMAP_VIEWPORT_COLOR = "#ef4444"

_RGBA_RE = re.compile(
    r"rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)"
)


def to_qcolor(value: str) -> QColor:
    """
    Parse a CSS-style color string.

    Accepts hex colors, Qt/SVG color names, "transparent" and
    rgb()/rgba() with alpha in [0, 1]. Unparseable input is transparent.
    """
    value = (value or "").strip()
    if not value or value.lower() == "transparent":
        return QColor(0, 0, 0, 0)

    match = _RGBA_RE.fullmatch(value)
    if match:
        r, g, b, a = match.groups()
        alpha = float(a) if a is not None else 1.0
        return QColor(
            int(float(r)), int(float(g)), int(float(b)),
            int(round(max(0.0, min(1.0, alpha)) * 255)),
        )

    color = QColor(value)
    if not color.isValid():
        return QColor(0, 0, 0, 0)
    return color


def ruler_step(scale: float) -> float:
    """World distance between ruler ticks, keeping them 60-140 px apart."""
    step = float(RULER_BASE_STEP)
    while step * scale < RULER_MIN_STEP_PX:
        step *= 2
    while step * scale > RULER_MAX_STEP_PX:
        step /= 2
    return step


# ─── Text ─────────────────────────────────────────────────────────────────────

def text_font(element: TextElement) -> QFont:
    font = QFont(element.font_family)
    font.setPixelSize(max(1, int(element.font_size)))
    font.setBold(element.font_weight == "bold")
    font.setItalic(element.font_style == "italic")
    return font


def measure_text(element: TextElement) -> Tuple[float, float]:
    """Return (width, height) of a text element in world units."""
    metrics = QFontMetricsF(text_font(element))
    return metrics.horizontalAdvance(element.text), element.font_size * TEXT_LINE_HEIGHT


# ─── Element Drawing ──────────────────────────────────────────────────────────

def _stroke_pen(element: Element) -> QPen:
    style = element.style
    color = to_qcolor(style.stroke_color)
    if style.stroke_width <= 0 or color.alpha() == 0:
        return QPen(Qt.PenStyle.NoPen)

    pen = QPen(color)
    pen.setWidthF(style.stroke_width)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)

    pattern = DASH_PATTERNS.get(style.stroke_style)
    if pattern:
        # Qt dash patterns are in units of the pen width
        pen.setDashPattern([length / style.stroke_width for length in pattern])
    return pen


def _fill_brush(element: Element) -> QBrush:
    color = to_qcolor(element.style.background_color)
    if color.alpha() == 0:
        return QBrush(Qt.BrushStyle.NoBrush)
    return QBrush(color)


def _draw_arrowhead(
    painter: QPainter,
    x: float,
    y: float,
    angle: float,
    kind: Arrowhead,
) -> None:
    if kind == Arrowhead.ARROW:
        for side in (1, -1):
            painter.drawLine(
                QPointF(x, y),
                QPointF(
                    x - ARROWHEAD_LENGTH * math.cos(angle + side * math.pi / 6),
                    y - ARROWHEAD_LENGTH * math.sin(angle + side * math.pi / 6),
                ),
            )
    elif kind == Arrowhead.DOT:
        pen = painter.pen()
        if pen.style() == Qt.PenStyle.NoPen:
            return
        painter.save()
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(pen.color())
        painter.drawEllipse(QPointF(x, y), ARROWHEAD_DOT_RADIUS, ARROWHEAD_DOT_RADIUS)
        painter.restore()


def _draw_polyline_arrowheads(painter: QPainter, points, start: Arrowhead, end: Arrowhead) -> None:
    if len(points) < 2:
        return
    if start != Arrowhead.NONE:
        p0, p1 = points[0], points[1]
        angle = math.atan2(p1.y - p0.y, p1.x - p0.x)
        _draw_arrowhead(painter, p0.x, p0.y, angle + math.pi, start)
    if end != Arrowhead.NONE:
        prev, last = points[-2], points[-1]
        angle = math.atan2(last.y - prev.y, last.x - prev.x)
        _draw_arrowhead(painter, last.x, last.y, angle, end)


def _polyline_path(points) -> QPainterPath:
    path = QPainterPath(QPointF(points[0].x, points[0].y))
    for point in points[1:]:
        path.lineTo(point.x, point.y)
    return path


def _draw_position(painter: QPainter, element: PositionElement) -> None:
    bounds = compute_bounds(element)
    left, top = bounds.min_x, bounds.min_y
    width, height = bounds.width, bounds.height
    entry_y = top + height * element.entry_ratio

    upper = (PROFIT_FILL, PROFIT_BORDER) if element.is_long else (LOSS_FILL, LOSS_BORDER)
    lower = (LOSS_FILL, LOSS_BORDER) if element.is_long else (PROFIT_FILL, PROFIT_BORDER)

    for (fill, border), rect in (
        (upper, QRectF(left, top, width, entry_y - top)),
        (lower, QRectF(left, entry_y, width, top + height - entry_y)),
    ):
        painter.setBrush(to_qcolor(fill))
        painter.setPen(QPen(to_qcolor(border), 1))
        painter.drawRect(rect)

    painter.setPen(QPen(to_qcolor(ENTRY_LINE_COLOR), 2))
    painter.drawLine(QPointF(left, entry_y), QPointF(left + width, entry_y))


def _draw_text(painter: QPainter, element: TextElement) -> None:
    if not element.text:
        return
    font = text_font(element)
    metrics = QFontMetricsF(font)
    advance = metrics.horizontalAdvance(element.text)

    # x is the alignment anchor, y the top of the line
    x = element.x
    if element.text_align == TextAlign.CENTER:
        x -= advance / 2
    elif element.text_align == TextAlign.RIGHT:
        x -= advance

    painter.setFont(font)
    painter.setPen(to_qcolor(element.style.stroke_color))
    painter.drawText(QPointF(x, element.y + metrics.ascent()), element.text)


def _draw_image(
    painter: QPainter,
    element: ImageElement,
    scale: float,
    image_provider: Optional[ImageProvider],
) -> None:
    rect = QRectF(element.x, element.y, element.width, element.height).normalized()
    if not element.image_data:
        # Placeholder drawn with the image tool
        pen = QPen(to_qcolor(element.style.stroke_color), 1 / scale)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(rect)
        return

    image = image_provider(element) if image_provider else None
    if image is not None and not image.isNull():
        painter.drawImage(rect, image)


def draw_element(
    painter: QPainter,
    element: Element,
    scale: float = 1.0,
    image_provider: Optional[ImageProvider] = None,
) -> None:
    """
    Draw one element in world coordinates.

    Args:
        painter: Painter already transformed to world space.
        element: Element to draw.
        scale: Current view scale, used for screen-constant decorations.
        image_provider: Returns the decoded image for an image element,
                        or None while it is not available.
    """
    painter.save()
    painter.setOpacity(element.style.opacity / 100)
    painter.setPen(_stroke_pen(element))
    painter.setBrush(Qt.BrushStyle.NoBrush)

    x, y, w, h = element.x, element.y, element.width, element.height

    if isinstance(element, ShapeElement):
        painter.setBrush(_fill_brush(element))
        if element.kind == ElementType.RECTANGLE:
            painter.drawRect(QRectF(x, y, w, h).normalized())
        elif element.kind == ElementType.DIAMOND:
            painter.drawPolygon(QPolygonF([
                QPointF(x + w / 2, y),
                QPointF(x + w, y + h / 2),
                QPointF(x + w / 2, y + h),
                QPointF(x, y + h / 2),
            ]))
        else:
            painter.drawEllipse(QPointF(x + w / 2, y + h / 2), abs(w / 2), abs(h / 2))

    elif isinstance(element, LinearElement):
        painter.drawLine(QPointF(x, y), QPointF(x + w, y + h))
        angle = math.atan2(h, w)
        # Arrowheads are always drawn solid
        head_pen = QPen(painter.pen())
        head_pen.setStyle(Qt.PenStyle.SolidLine)
        painter.setPen(head_pen)
        if element.style.start_arrowhead != Arrowhead.NONE:
            _draw_arrowhead(painter, x, y, angle + math.pi, element.style.start_arrowhead)
        if element.effective_end_arrowhead != Arrowhead.NONE:
            _draw_arrowhead(painter, x + w, y + h, angle, element.effective_end_arrowhead)
        if element.label:
            painter.setFont(_label_font())
            painter.setPen(to_qcolor(element.style.stroke_color))
            painter.drawText(QPointF(x + 4, y - 4), element.label)

    elif isinstance(element, FreehandElement):
        if element.points:
            painter.drawPath(_polyline_path(element.points))

    elif isinstance(element, PathElement):
        points = element.points
        if points:
            painter.drawPath(_polyline_path(points))
            _draw_polyline_arrowheads(
                painter, points, element.style.start_arrowhead, element.style.end_arrowhead
            )
            vertex_pen = QPen(painter.pen())
            vertex_pen.setStyle(Qt.PenStyle.SolidLine)
            painter.setPen(vertex_pen)
            painter.setBrush(QColor("#ffffff"))
            radius = PATH_VERTEX_RADIUS / scale
            for point in points:
                painter.drawEllipse(QPointF(point.x, point.y), radius, radius)

    elif isinstance(element, TextElement):
        _draw_text(painter, element)

    elif isinstance(element, ImageElement):
        _draw_image(painter, element, scale, image_provider)

    elif isinstance(element, PositionElement):
        _draw_position(painter, element)

    painter.restore()


def _label_font() -> QFont:
    font = QFont()
    font.setPixelSize(LABEL_FONT_SIZE)
    return font


def _draw_glow(painter: QPainter, element: Element, color: str, blur: float, scale: float) -> None:
    """Soft halo behind an element's bounds, approximating a shadow blur."""
    bounds = compute_bounds(element)
    base = to_qcolor(color)
    steps = 3
    painter.save()
    painter.setPen(Qt.PenStyle.NoPen)
    for i in range(steps, 0, -1):
        spread = blur * i / steps / scale
        halo = QColor(base)
        halo.setAlpha(max(1, base.alpha() // (i + 1)))
        painter.setBrush(halo)
        rect = QRectF(
            bounds.min_x - spread,
            bounds.min_y - spread,
            bounds.width + 2 * spread,
            bounds.height + 2 * spread,
        )
        painter.drawRoundedRect(rect, spread, spread)
    painter.restore()


# ─── Minimap ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MinimapLayout:
    """Mapping from world coordinates into the minimap inset."""
    world: Bounds
    scale: float
    offset_x: float
    offset_y: float

    def to_minimap(self, x: float, y: float) -> Tuple[float, float]:
        return (
            (x - self.world.min_x) * self.scale + self.offset_x,
            (y - self.world.min_y) * self.scale + self.offset_y,
        )

    def rect_for(self, bounds: Bounds, min_size: float = 0.0) -> QRectF:
        left, top = self.to_minimap(bounds.min_x, bounds.min_y)
        return QRectF(
            left,
            top,
            max(min_size, bounds.width * self.scale),
            max(min_size, bounds.height * self.scale),
        )


def compute_minimap_layout(
    elements: Iterable[Element],
    viewport: Bounds,
    width: float = MINIMAP_WIDTH,
    height: float = MINIMAP_HEIGHT,
    padding: float = MINIMAP_PADDING,
) -> Optional[MinimapLayout]:
    """
    Fit the union of the element bounds and the viewport into the inset.

    The union is padded, scaled uniformly and centered. Returns None when
    there are no elements.
    """
    content = union_bounds(elements)
    if content is None:
        return None

    world = content.united(viewport).expanded(padding)
    world_w = world.width or 1
    world_h = world.height or 1
    scale = min(width / world_w, height / world_h)
    return MinimapLayout(
        world=world,
        scale=scale,
        offset_x=(width - world_w * scale) / 2,
        offset_y=(height - world_h * scale) / 2,
    )


def paint_minimap(
    painter: QPainter,
    elements: Iterable[Element],
    viewport: Bounds,
    dark_mode: bool = False,
    width: float = MINIMAP_WIDTH,
    height: float = MINIMAP_HEIGHT,
) -> None:
    elements = list(elements)
    layout = compute_minimap_layout(elements, viewport, width, height)
    if layout is None:
        return

    painter.save()
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    background = "rgba(0, 0, 0, 0.5)" if dark_mode else "rgba(255, 255, 255, 0.8)"
    painter.fillRect(QRectF(0, 0, width, height), to_qcolor(background))

    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor("#888888" if dark_mode else "#cccccc"))
    for element in elements:
        painter.drawRect(layout.rect_for(compute_bounds(element), MINIMAP_MIN_BOX))

    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.setPen(QPen(to_qcolor(MINIMAP_VIEWPORT_COLOR), 2))
    painter.drawRect(layout.rect_for(viewport))
    painter.restore()


# ─── Scene Renderer ───────────────────────────────────────────────────────────

class SceneRenderer:
    """Paints full frames of a canvas session."""

    def __init__(self, image_provider: Optional[ImageProvider] = None) -> None:
        self._image_provider = image_provider

    def paint(
        self,
        painter: QPainter,
        controller: "CanvasController",
        width: float,
        height: float,
    ) -> bool:
        """
        Paint one frame.

        Returns True while the laser trail is still fading and another
        frame should be scheduled.
        """
        scene = controller.scene
        view = controller.view
        scale = view.scale
        dark = controller.dark_mode

        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(
            QRectF(0, 0, width, height),
            to_qcolor(BACKGROUND_DARK if dark else BACKGROUND_LIGHT),
        )

        pan = view.pan_offset
        painter.translate(pan)
        painter.scale(scale, scale)

        if controller.show_grid:
            self._draw_grid(painter, view.visible_world_bounds(width, height), scale, dark)

        selected = scene.selected_ids
        for element in scene.elements:
            if element.id in selected:
                _draw_glow(painter, element, SELECTION_GLOW, SELECTION_GLOW_BLUR, scale)
            elif element.id == scene.hovered_id:
                _draw_glow(painter, element, HOVER_GLOW, HOVER_GLOW_BLUR, scale)
            draw_element(painter, element, scale, self._image_provider)

        if scene.current_element is not None:
            draw_element(painter, scene.current_element, scale, self._image_provider)

        selected_elements = scene.selected_elements()
        show_handles = len(selected_elements) == 1
        for element in selected_elements:
            self._draw_selection_border(painter, element, scale, show_handles)

        if scene.selection_box is not None:
            self._draw_selection_box(painter, scene.selection_box, scale)

        laser_active = self._draw_laser(painter, controller)

        if controller.show_ruler:
            self._draw_rulers(painter, width, height, controller, dark)

        painter.restore()
        return laser_active

    # ─── Layers ───────────────────────────────────────────────────────────

    def _draw_grid(self, painter: QPainter, visible: Bounds, scale: float, dark: bool) -> None:
        painter.save()
        painter.setPen(QPen(to_qcolor(GRID_COLOR_DARK if dark else GRID_COLOR_LIGHT), 1 / scale))

        x = math.floor(visible.min_x / GRID_SIZE) * GRID_SIZE
        while x < visible.max_x:
            painter.drawLine(QPointF(x, visible.min_y), QPointF(x, visible.max_y))
            x += GRID_SIZE

        y = math.floor(visible.min_y / GRID_SIZE) * GRID_SIZE
        while y < visible.max_y:
            painter.drawLine(QPointF(visible.min_x, y), QPointF(visible.max_x, y))
            y += GRID_SIZE
        painter.restore()

    def _draw_laser(self, painter: QPainter, controller: "CanvasController") -> bool:
        segments = controller.laser.segments()
        if segments:
            painter.save()
            painter.resetTransform()
            for segment in segments:
                pen = QPen(QColor(255, 0, 0, int(255 * segment.opacity)))
                pen.setWidthF(4 * segment.opacity)
                pen.setCapStyle(Qt.PenCapStyle.RoundCap)
                painter.setPen(pen)
                painter.drawLine(
                    QPointF(segment.start.x, segment.start.y),
                    QPointF(segment.end.x, segment.end.y),
                )
            painter.restore()
        return controller.laser.is_active()

    def _draw_selection_border(
        self,
        painter: QPainter,
        element: Element,
        scale: float,
        show_handles: bool,
    ) -> None:
        bounds = compute_bounds(element)
        margin = 5 / scale

        painter.save()
        pen = QPen(to_qcolor(SELECTION_COLOR))
        pen.setWidthF(2 / scale)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(QRectF(
            bounds.min_x - margin,
            bounds.min_y - margin,
            bounds.width + 2 * margin,
            bounds.height + 2 * margin,
        ))

        if show_handles:
            handle_pen = QPen(to_qcolor(SELECTION_COLOR))
            handle_pen.setWidthF(2 / scale)
            painter.setPen(handle_pen)
            size = HANDLE_SIZE / scale
            for handle, (hx, hy) in handle_positions(element).items():
                color = ENTRY_HANDLE_COLOR if handle == ResizeHandle.ENTRY else "#ffffff"
                painter.setBrush(to_qcolor(color))
                painter.drawRect(QRectF(hx - size / 2, hy - size / 2, size, size))
        painter.restore()

    def _draw_selection_box(self, painter: QPainter, box: Bounds, scale: float) -> None:
        painter.save()
        pen = QPen(to_qcolor(SELECTION_BOX_STROKE))
        pen.setWidthF(1 / scale)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(to_qcolor(SELECTION_BOX_FILL))
        painter.drawRect(QRectF(box.min_x, box.min_y, box.width, box.height))
        painter.restore()

    def _draw_rulers(
        self,
        painter: QPainter,
        width: float,
        height: float,
        controller: "CanvasController",
        dark: bool,
    ) -> None:
        view = controller.view
        scale = view.scale
        pan = view.pan_offset
        fg = to_qcolor("#9ca3af" if dark else "#6b7280")

        painter.save()
        painter.resetTransform()
        background = to_qcolor("#1f2937" if dark else "#f3f4f6")
        painter.fillRect(QRectF(0, 0, width, RULER_SIZE), background)
        painter.fillRect(QRectF(0, RULER_SIZE, RULER_SIZE, height - RULER_SIZE), background)
        painter.fillRect(
            QRectF(0, 0, RULER_SIZE, RULER_SIZE),
            to_qcolor("#374151" if dark else "#e5e7eb"),
        )

        painter.setPen(QPen(fg, 1))
        font = QFont()
        font.setPixelSize(10)
        painter.setFont(font)
        ascent = QFontMetricsF(font).ascent()

        step = ruler_step(scale)
        visible = view.visible_world_bounds(width, height)

        value = math.floor(visible.min_x / step) * step
        while value < visible.max_x:
            screen_x = value * scale + pan.x()
            if screen_x >= RULER_SIZE:
                painter.drawLine(QPointF(screen_x, 15), QPointF(screen_x, RULER_SIZE))
                painter.drawText(QPointF(screen_x + 2, 2 + ascent), str(round(value)))
            value += step

        value = math.floor(visible.min_y / step) * step
        while value < visible.max_y:
            screen_y = value * scale + pan.y()
            if screen_y >= RULER_SIZE:
                painter.drawLine(QPointF(15, screen_y), QPointF(RULER_SIZE, screen_y))
                painter.save()
                painter.translate(2, screen_y + 2)
                painter.rotate(90)
                painter.drawText(QPointF(0, ascent), str(round(value)))
                painter.restore()
            value += step
        painter.restore()
