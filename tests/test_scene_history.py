"""Tests for the scene element list, selection and snapshot history."""

from tradeboard.editor.elements import ShapeElement
from tradeboard.editor.geometry import Bounds
from tradeboard.editor.history import HistoryManager
from tradeboard.editor.scene import Scene


def _box(x, y, w=10, h=10):
    return ShapeElement(x=x, y=y, width=w, height=h)


class TestScene:
    def test_hit_test_returns_topmost(self):
        bottom = _box(0, 0, 100, 100)
        top = _box(50, 50, 100, 100)
        scene = Scene([bottom, top])
        assert scene.hit_test(75, 75) is top
        assert scene.hit_test(5, 5) is bottom
        assert scene.hit_test(500, 500) is None

    def test_elements_in_box_requires_full_containment(self):
        inside = _box(10, 10)
        straddling = _box(95, 10)
        scene = Scene([inside, straddling])
        assert scene.elements_in_box(Bounds(0, 0, 100, 100)) == [inside]

    def test_replace_and_remove(self):
        element = _box(0, 0)
        scene = Scene([element])
        moved = ShapeElement(x=5, y=5, width=10, height=10, id=element.id)
        assert scene.replace(moved)
        assert scene.find(element.id) == moved
        assert scene.remove_ids([element.id]) == [moved]
        assert len(scene) == 0

    def test_selection_order_tracks_last_selected(self):
        a, b = _box(0, 0), _box(20, 0)
        scene = Scene([a, b])
        scene.select([a.id])
        scene.add_to_selection([b.id])
        assert scene.last_selected_id == b.id
        scene.deselect(b.id)
        assert scene.last_selected_id == a.id
        assert scene.single_selection == a

    def test_set_elements_drops_stale_selection(self):
        a, b = _box(0, 0), _box(20, 0)
        scene = Scene([a, b])
        scene.select([a.id, b.id])
        scene.hovered_id = b.id
        scene.set_elements([a])
        assert scene.selected_ids == {a.id}
        assert scene.hovered_id is None

    def test_snapshot_is_immutable_copy(self):
        scene = Scene([_box(0, 0)])
        snapshot = scene.snapshot()
        scene.add(_box(20, 0))
        assert len(snapshot) == 1


class TestHistory:
    def test_commit_undo_redo(self, app):
        scene = Scene()
        history = HistoryManager(scene)
        first = _box(0, 0)
        scene.add(first)
        history.commit()
        scene.add(_box(20, 0))
        history.commit()
        assert len(history) == 3

        history.undo()
        assert scene.elements == (first,)
        history.undo()
        assert scene.elements == ()
        history.undo()  # no-op at the start
        assert scene.elements == ()

        history.redo()
        assert scene.elements == (first,)

    def test_commit_after_undo_discards_redo(self, app):
        scene = Scene()
        history = HistoryManager(scene)
        scene.add(_box(0, 0))
        history.commit()
        history.undo()
        replacement = _box(50, 50)
        scene.add(replacement)
        history.commit()
        assert not history.can_redo()
        assert scene.elements == (replacement,)

    def test_restore_clears_selection_and_draft(self, app):
        element = _box(0, 0)
        scene = Scene()
        restored = []
        history = HistoryManager(scene, on_restore=lambda: restored.append(True))
        scene.add(element)
        history.commit()
        scene.select([element.id])
        scene.current_element = _box(5, 5)

        history.undo()
        assert scene.selected_ids == set()
        assert scene.current_element is None
        assert restored

    def test_commit_explicit_snapshot(self, app):
        scene = Scene()
        history = HistoryManager(scene)
        element = _box(0, 0)
        history.commit((element,), text="Insert")
        assert scene.elements == (element,)
        assert history.current == (element,)
        assert not history.differs_from_current((element,))
