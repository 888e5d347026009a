"""
Undo/redo history for the TradeBoard canvas.

History is a linear stack of full scene snapshots built on QUndoStack.
Every commit pushes a command holding the snapshot before and after the
change; QUndoStack drops any redo tail on push. Undo and redo swap the
live scene for the stored snapshot and clear the selection.
"""

from typing import Callable, Optional

from PySide6.QtGui import QUndoCommand, QUndoStack

from tradeboard.editor.scene import Scene, Snapshot
from tradeboard.services.logging_service import get_logger


class SceneSnapshotCommand(QUndoCommand):
    """Command that swaps the scene between two snapshots."""

    def __init__(
        self,
        history: "HistoryManager",
        before: Snapshot,
        after: Snapshot,
        text: str = "Edit Board",
    ) -> None:
        super().__init__(text)
        self._history = history
        self._before = before
        self._after = after
        # The scene already holds `after` when the command is pushed
        self._first_redo = True

    @property
    def before(self) -> Snapshot:
        return self._before

    @property
    def after(self) -> Snapshot:
        return self._after

    def redo(self) -> None:
        if self._first_redo:
            self._first_redo = False
            return
        self._history._restore(self._after)

    def undo(self) -> None:
        self._history._restore(self._before)


class HistoryManager:
    """
    Snapshot history for one scene.

    The stack starts from an initial snapshot (normally the empty board);
    undoing every command brings the scene back to it.
    """

    def __init__(
        self,
        scene: Scene,
        on_restore: Optional[Callable[[], None]] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._scene = scene
        self._on_restore = on_restore
        self._stack = QUndoStack()
        self._current: Snapshot = scene.snapshot()

    @property
    def undo_stack(self) -> QUndoStack:
        return self._stack

    @property
    def current(self) -> Snapshot:
        """The snapshot at the current history index."""
        return self._current

    @property
    def index(self) -> int:
        return self._stack.index()

    def __len__(self) -> int:
        # Number of stored snapshots, counting the initial one
        return self._stack.count() + 1

    def can_undo(self) -> bool:
        return self._stack.canUndo()

    def can_redo(self) -> bool:
        return self._stack.canRedo()

    def differs_from_current(self, snapshot: Snapshot) -> bool:
        return snapshot != self._current

    def commit(self, snapshot: Optional[Snapshot] = None, text: str = "Edit Board") -> None:
        """
        Record a new snapshot at the head of the history.

        Any redo entries after the current index are discarded.

        Args:
            snapshot: Snapshot to record. Defaults to the live scene.
            text: Command label shown in undo views.
        """
        if snapshot is None:
            snapshot = self._scene.snapshot()
        else:
            snapshot = tuple(snapshot)
            if snapshot != self._scene.snapshot():
                self._scene.set_elements(snapshot)

        command = SceneSnapshotCommand(self, self._current, snapshot, text)
        self._current = snapshot
        self._stack.push(command)
        self._logger.debug(
            f"History commit '{text}': {len(snapshot)} elements, index {self._stack.index()}"
        )

    def undo(self) -> None:
        """Step back one snapshot. No-op at the start of history."""
        if self._stack.canUndo():
            self._stack.undo()

    def redo(self) -> None:
        """Step forward one snapshot. No-op at the end of history."""
        if self._stack.canRedo():
            self._stack.redo()

    def reset(self) -> None:
        """Forget every entry and restart history from the live scene."""
        self._stack.clear()
        self._current = self._scene.snapshot()

    def _restore(self, snapshot: Snapshot) -> None:
        self._current = snapshot
        self._scene.set_elements(snapshot)
        self._scene.clear_selection()
        self._scene.current_element = None
        if self._on_restore:
            self._on_restore()
