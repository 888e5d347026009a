"""
Scene model for the TradeBoard canvas.

The Scene owns the ordered element list (array order is z-order: later
elements draw on top), the element currently being drawn, the selection
set, the hovered element and the live box-selection rectangle.
"""

from typing import Iterable, List, Optional, Set, Tuple

from tradeboard.editor.elements import Element
from tradeboard.editor.geometry import Bounds, compute_bounds, is_point_inside

Snapshot = Tuple[Element, ...]


class Scene:
    """
    Ordered element collection plus selection and hover state.

    Only the canvas controller writes to a Scene; the renderer and the
    geometry helpers read it.
    """

    def __init__(self, elements: Iterable[Element] = ()) -> None:
        self._elements: List[Element] = list(elements)
        self.current_element: Optional[Element] = None
        self._selected_ids: Set[str] = set()
        # Order in which ids were selected; the last one drives style sync
        self._selection_order: List[str] = []
        self.hovered_id: Optional[str] = None
        self.selection_box: Optional[Bounds] = None

    # ─── Elements ─────────────────────────────────────────────────────────

    @property
    def elements(self) -> Snapshot:
        return tuple(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self):
        return iter(tuple(self._elements))

    def snapshot(self) -> Snapshot:
        """Return an immutable copy of the element list."""
        return tuple(self._elements)

    def set_elements(self, elements: Iterable[Element]) -> None:
        """Replace the whole element list, dropping stale selection ids."""
        self._elements = list(elements)
        ids = {e.id for e in self._elements}
        self._selected_ids &= ids
        self._selection_order = [i for i in self._selection_order if i in ids]
        if self.hovered_id not in ids:
            self.hovered_id = None

    def add(self, element: Element) -> None:
        self._elements.append(element)

    def extend(self, elements: Iterable[Element]) -> None:
        self._elements.extend(elements)

    def find(self, element_id: str) -> Optional[Element]:
        for element in self._elements:
            if element.id == element_id:
                return element
        return None

    def replace(self, element: Element) -> bool:
        """Swap in a new value for the element with the same id."""
        for index, existing in enumerate(self._elements):
            if existing.id == element.id:
                self._elements[index] = element
                return True
        return False

    def remove_ids(self, ids: Iterable[str]) -> List[Element]:
        """Remove the given ids and return the removed elements."""
        ids = set(ids)
        removed = [e for e in self._elements if e.id in ids]
        if removed:
            self.set_elements(e for e in self._elements if e.id not in ids)
        return removed

    def clear(self) -> None:
        self.set_elements(())

    # ─── Hit Testing ──────────────────────────────────────────────────────

    def hit_test(self, x: float, y: float, scale: float = 1.0) -> Optional[Element]:
        """Return the topmost element under a world point."""
        for element in reversed(self._elements):
            if is_point_inside(x, y, element, scale):
                return element
        return None

    def elements_in_box(self, box: Bounds) -> List[Element]:
        """Return elements whose full bounds lie inside the box."""
        return [e for e in self._elements if box.contains(compute_bounds(e))]

    # ─── Selection ────────────────────────────────────────────────────────

    @property
    def selected_ids(self) -> Set[str]:
        return set(self._selected_ids)

    @property
    def last_selected_id(self) -> Optional[str]:
        return self._selection_order[-1] if self._selection_order else None

    def is_selected(self, element_id: str) -> bool:
        return element_id in self._selected_ids

    def select(self, ids: Iterable[str]) -> None:
        """Replace the selection."""
        self._selected_ids = set()
        self._selection_order = []
        self.add_to_selection(ids)

    def add_to_selection(self, ids: Iterable[str]) -> None:
        for element_id in ids:
            if element_id not in self._selected_ids:
                self._selected_ids.add(element_id)
                self._selection_order.append(element_id)

    def deselect(self, element_id: str) -> None:
        self._selected_ids.discard(element_id)
        if element_id in self._selection_order:
            self._selection_order.remove(element_id)

    def clear_selection(self) -> None:
        self._selected_ids = set()
        self._selection_order = []

    def selected_elements(self) -> List[Element]:
        """Selected elements in z-order."""
        return [e for e in self._elements if e.id in self._selected_ids]

    @property
    def single_selection(self) -> Optional[Element]:
        """The selected element when exactly one is selected."""
        if len(self._selected_ids) != 1:
            return None
        (element_id,) = self._selected_ids
        return self.find(element_id)
