"""
Elements requested by an external collaborator.

A collaborator (for example a live analysis session) asks the board to
draw through named tool calls with JSON-like arguments. Each known call
maps to one element; the caller inserts it with add_external_element().

Supported calls:
- draw_level(y, color, label): dashed horizontal line across the viewport
- draw_zone(x, y, width, height, color): filled, stroke-less rectangle
"""

from typing import Any, Callable, Dict, Mapping, Optional

from tradeboard.editor.elements import (
    Element,
    ElementStyle,
    ElementType,
    LinearElement,
    ShapeElement,
    StrokeStyle,
)
from tradeboard.services.logging_service import get_logger

logger = get_logger(__name__)

LEVEL_DEFAULT_COLOR = "#ff0000"
LEVEL_STROKE_WIDTH = 2
ZONE_DEFAULT_COLOR = "rgba(0, 255, 0, 0.2)"
ZONE_OPACITY = 50


def draw_level(args: Mapping[str, Any], viewport_width: float) -> Element:
    return LinearElement(
        kind=ElementType.LINE,
        x=0.0,
        y=float(args["y"]),
        width=float(viewport_width),
        height=0.0,
        label=str(args.get("label") or ""),
        style=ElementStyle(
            stroke_color=args.get("color") or LEVEL_DEFAULT_COLOR,
            stroke_width=LEVEL_STROKE_WIDTH,
            stroke_style=StrokeStyle.DASHED,
        ),
    )


def draw_zone(args: Mapping[str, Any], viewport_width: float) -> Element:
    return ShapeElement(
        kind=ElementType.RECTANGLE,
        x=float(args["x"]),
        y=float(args["y"]),
        width=float(args["width"]),
        height=float(args["height"]),
        style=ElementStyle(
            stroke_color="transparent",
            background_color=args.get("color") or ZONE_DEFAULT_COLOR,
            stroke_width=0,
            opacity=ZONE_OPACITY,
        ),
    )


TOOL_CALLS: Dict[str, Callable[[Mapping[str, Any], float], Element]] = {
    "draw_level": draw_level,
    "draw_zone": draw_zone,
}


def element_from_tool_call(
    name: str,
    args: Mapping[str, Any],
    viewport_width: float,
) -> Optional[Element]:
    """
    Build the element for a collaborator tool call.

    Returns None (after logging a warning) for unknown calls or arguments
    that are missing or not numeric.
    """
    builder = TOOL_CALLS.get(name)
    if builder is None:
        logger.warning(f"Ignoring unknown tool call: {name}")
        return None

    try:
        return builder(args or {}, viewport_width)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Ignoring malformed {name} call {dict(args or {})}: {e}")
        return None
