"""
Element models for the TradeBoard canvas.

Every drawable unit on the board is an immutable dataclass. Elements are
grouped into families that share a field layout:

- ShapeElement: rectangle, diamond, ellipse
- LinearElement: arrow, line
- FreehandElement: pencil strokes
- PathElement: multi-click polylines
- TextElement: single-line text
- ImageElement: embedded raster images
- PositionElement: long/short trade entry markers

Edits never mutate an element in place; they build a new value with
dataclasses.replace(). A scene snapshot is therefore just a tuple of
elements and can be shared freely between the live scene, the undo
history and in-flight drag gestures.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from itertools import count
from typing import ClassVar, FrozenSet, Tuple

_id_counter = count()


def new_element_id() -> str:
    """Return a fresh element identifier, unique within the process."""
    return f"{int(time.time() * 1000):x}-{next(_id_counter):04x}"


class ElementType(Enum):
    """Enum for element kinds."""
    RECTANGLE = "rectangle"
    DIAMOND = "diamond"
    ELLIPSE = "ellipse"
    ARROW = "arrow"
    LINE = "line"
    PENCIL = "pencil"
    PATH = "path"
    TEXT = "text"
    IMAGE = "image"
    LONG_POSITION = "long_position"
    SHORT_POSITION = "short_position"


class StrokeStyle(Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class Arrowhead(Enum):
    NONE = "none"
    ARROW = "arrow"
    DOT = "dot"


class TextAlign(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


# Kinds whose geometry is an origin plus a (signed) width/height box
BOX_KINDS: FrozenSet[ElementType] = frozenset({
    ElementType.RECTANGLE,
    ElementType.DIAMOND,
    ElementType.ELLIPSE,
    ElementType.IMAGE,
    ElementType.LONG_POSITION,
    ElementType.SHORT_POSITION,
})

# Kinds whose geometry is an ordered point sequence
POINT_KINDS: FrozenSet[ElementType] = frozenset({
    ElementType.PENCIL,
    ElementType.PATH,
})

POSITION_KINDS: FrozenSet[ElementType] = frozenset({
    ElementType.LONG_POSITION,
    ElementType.SHORT_POSITION,
})


@dataclass(frozen=True)
class Point:
    """A point in world coordinates."""
    x: float
    y: float

    def translated(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class ElementStyle:
    """
    Stroke and fill properties shared by every element kind.

    Colors are stored as strings understood by QColor ("#rrggbb",
    "#aarrggbb", named colors, "transparent") or CSS "rgba(r, g, b, a)".
    """
    stroke_color: str = "#000000"
    background_color: str = "transparent"
    stroke_width: float = 2
    stroke_style: StrokeStyle = StrokeStyle.SOLID
    opacity: int = 100  # 0 to 100
    start_arrowhead: Arrowhead = Arrowhead.NONE
    end_arrowhead: Arrowhead = Arrowhead.NONE

    def __post_init__(self) -> None:
        # Opacity is a percentage; keep it inside the range
        if not 0 <= self.opacity <= 100:
            object.__setattr__(self, "opacity", max(0, min(100, self.opacity)))


@dataclass(frozen=True)
class Element:
    """
    Base class for all elements.

    Width and height are signed while an element is being drawn: a negative
    value means the element extends left/up from its origin. Box-like kinds
    are normalized to non-negative extents when committed.
    """
    KINDS: ClassVar[FrozenSet[ElementType]] = frozenset()

    kind: ElementType = ElementType.RECTANGLE
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    style: ElementStyle = field(default_factory=ElementStyle)
    id: str = field(default_factory=new_element_id)

    def __post_init__(self) -> None:
        if self.KINDS and self.kind not in self.KINDS:
            raise ValueError(
                f"{type(self).__name__} cannot hold kind {self.kind.value!r}"
            )

    @property
    def is_box(self) -> bool:
        return self.kind in BOX_KINDS

    def with_id(self, element_id: str) -> "Element":
        return replace(self, id=element_id)


@dataclass(frozen=True)
class ShapeElement(Element):
    """Rectangle, diamond or ellipse outline."""
    KINDS: ClassVar[FrozenSet[ElementType]] = frozenset({
        ElementType.RECTANGLE,
        ElementType.DIAMOND,
        ElementType.ELLIPSE,
    })


@dataclass(frozen=True)
class LinearElement(Element):
    """
    Straight segment from (x, y) to (x + width, y + height).

    Arrows draw an end arrowhead even when the style asks for none.
    """
    KINDS: ClassVar[FrozenSet[ElementType]] = frozenset({
        ElementType.ARROW,
        ElementType.LINE,
    })

    kind: ElementType = ElementType.LINE
    label: str = ""

    @property
    def effective_end_arrowhead(self) -> Arrowhead:
        if self.kind == ElementType.ARROW and self.style.end_arrowhead == Arrowhead.NONE:
            return Arrowhead.ARROW
        return self.style.end_arrowhead


@dataclass(frozen=True)
class FreehandElement(Element):
    """Pencil stroke through an ordered sequence of points."""
    KINDS: ClassVar[FrozenSet[ElementType]] = frozenset({ElementType.PENCIL})

    kind: ElementType = ElementType.PENCIL
    points: Tuple[Point, ...] = ()


@dataclass(frozen=True)
class PathElement(Element):
    """Polyline built from successive clicks, with optional arrowheads."""
    KINDS: ClassVar[FrozenSet[ElementType]] = frozenset({ElementType.PATH})

    kind: ElementType = ElementType.PATH
    points: Tuple[Point, ...] = ()


@dataclass(frozen=True)
class TextElement(Element):
    """Single-line text anchored at its top-left (or aligned) origin."""
    KINDS: ClassVar[FrozenSet[ElementType]] = frozenset({ElementType.TEXT})

    kind: ElementType = ElementType.TEXT
    text: str = ""
    font_size: int = 24
    font_family: str = "Kalam"
    font_weight: str = "normal"  # "normal" or "bold"
    font_style: str = "normal"  # "normal" or "italic"
    text_align: TextAlign = TextAlign.LEFT


@dataclass(frozen=True)
class ImageElement(Element):
    """
    Embedded raster image.

    image_data holds the encoded bytes (PNG, JPEG, ...). The decoded
    QImage lives in the image loader cache and is never stored here.
    """
    KINDS: ClassVar[FrozenSet[ElementType]] = frozenset({ElementType.IMAGE})

    kind: ElementType = ElementType.IMAGE
    image_data: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class PositionElement(Element):
    """
    Long/short trade marker.

    The box is split horizontally at entry_ratio (0 = top, 1 = bottom).
    For a long position the profit zone sits above the entry line; for a
    short position it sits below.
    """
    KINDS: ClassVar[FrozenSet[ElementType]] = POSITION_KINDS

    kind: ElementType = ElementType.LONG_POSITION
    entry_ratio: float = 0.5

    def __post_init__(self) -> None:
        super().__post_init__()
        if not 0.0 <= self.entry_ratio <= 1.0:
            object.__setattr__(self, "entry_ratio", max(0.0, min(1.0, self.entry_ratio)))

    @property
    def is_long(self) -> bool:
        return self.kind == ElementType.LONG_POSITION


_FAMILIES = {
    ElementType.RECTANGLE: ShapeElement,
    ElementType.DIAMOND: ShapeElement,
    ElementType.ELLIPSE: ShapeElement,
    ElementType.ARROW: LinearElement,
    ElementType.LINE: LinearElement,
    ElementType.PENCIL: FreehandElement,
    ElementType.PATH: PathElement,
    ElementType.TEXT: TextElement,
    ElementType.IMAGE: ImageElement,
    ElementType.LONG_POSITION: PositionElement,
    ElementType.SHORT_POSITION: PositionElement,
}


def element_class_for(kind: ElementType) -> type:
    """Return the dataclass that holds elements of the given kind."""
    return _FAMILIES[kind]


def create_element(kind: ElementType, **fields) -> Element:
    """Build an element of any kind through its family class."""
    return element_class_for(kind)(kind=kind, **fields)
