"""
Clipboard and raster snapshot utilities.

Copy/paste works on element values: the internal clipboard holds the
copied elements unchanged and every paste produces offset copies with
fresh ids. Snapshots render the whole board to a PNG.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from PySide6.QtGui import QImage, QPainter

from tradeboard.editor.elements import Element, ImageElement, new_element_id
from tradeboard.editor.geometry import translate, union_bounds
from tradeboard.editor.renderer import draw_element, to_qcolor
from tradeboard.services.logging_service import get_logger

logger = get_logger(__name__)

# Paste offset in screen pixels
PASTE_OFFSET = 20

# Margin around the exported content, in world units
SNAPSHOT_PADDING = 50

SNAPSHOT_BACKGROUND_LIGHT = "#ffffff"
SNAPSHOT_BACKGROUND_DARK = "#121212"


def copy_elements(elements: Iterable[Element]) -> List[Element]:
    return list(elements)


def paste_elements(elements: Iterable[Element], scale: float = 1.0) -> List[Element]:
    """
    Return pasted copies of the given elements.

    Each copy gets a fresh id and is moved by PASTE_OFFSET screen pixels
    (converted to world units) along both axes.
    """
    offset = PASTE_OFFSET / scale
    return [translate(e, offset, offset).with_id(new_element_id()) for e in elements]


def render_snapshot(
    elements: Iterable[Element],
    dark_mode: bool = False,
    image_provider: Optional[Callable[[ImageElement], Optional[QImage]]] = None,
) -> Optional[QImage]:
    """
    Render elements at 1:1 scale onto a theme-colored image.

    The image covers the union of element bounds plus SNAPSHOT_PADDING on
    every side. Returns None for an empty board.
    """
    elements = list(elements)
    bounds = union_bounds(elements)
    if bounds is None:
        return None

    padded = bounds.expanded(SNAPSHOT_PADDING)
    width = max(1, int(round(padded.width)))
    height = max(1, int(round(padded.height)))

    image = QImage(width, height, QImage.Format.Format_ARGB32)
    background = SNAPSHOT_BACKGROUND_DARK if dark_mode else SNAPSHOT_BACKGROUND_LIGHT
    image.fill(to_qcolor(background))

    painter = QPainter(image)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
    painter.translate(-padded.min_x, -padded.min_y)
    for element in elements:
        draw_element(painter, element, 1.0, image_provider)
    painter.end()

    return image


def snapshot_filename(when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    return f"tradeboard-{when.strftime('%Y%m%d-%H%M%S')}.png"


def save_snapshot(image: QImage, folder: str) -> Optional[Path]:
    """
    Write a snapshot PNG into a folder, creating it if needed.

    Returns the written path, or None if the file could not be saved.
    """
    target_dir = Path(folder).expanduser()
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create snapshot folder {target_dir}: {e}")
        return None

    path = target_dir / snapshot_filename()
    if not image.save(str(path), "PNG"):
        logger.error(f"Failed to save snapshot to {path}")
        return None

    logger.info(f"Snapshot saved: {path} ({image.width()}x{image.height()})")
    return path
