"""Shared pytest fixtures for Qt application lifecycle."""

import os
import sys

# Widgets and painters must run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QCoreApplication, QPointF
from PySide6.QtWidgets import QApplication

from tradeboard.editor.controller import CanvasController
from tradeboard.editor.laser import LaserTrail


@pytest.fixture(scope="session")
def app():
    """Provide a single QApplication for all tests."""
    instance = QApplication.instance()
    if instance is None:
        instance = QApplication(sys.argv)

    yield instance

    # Avoid PySide shutdown crashes when clipboard owns QMimeData.
    clipboard = QApplication.clipboard()
    if clipboard is not None:
        clipboard.clear()

    QCoreApplication.processEvents()


class FakeClock:
    """Manually advanced millisecond clock for the laser trail."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


class Dialogs:
    """Scripted answers for the controller's confirm/prompt callbacks."""

    def __init__(self) -> None:
        self.confirm_answer = True
        self.text_answers = []
        self.confirmations = []
        self.prompts = []

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        return self.confirm_answer

    def prompt_text(self, label: str, initial: str = ""):
        self.prompts.append((label, initial))
        return self.text_answers.pop(0) if self.text_answers else None


@pytest.fixture
def dialogs():
    return Dialogs()


@pytest.fixture
def controller(app, dialogs, clock):
    """A canvas session with scripted dialogs and a fixed-width text measure."""
    return CanvasController(
        confirm=dialogs.confirm,
        prompt_text=dialogs.prompt_text,
        measure_text=lambda element: (10.0 * len(element.text), element.font_size * 1.2),
        laser=LaserTrail(clock=clock),
    )


def drag(controller, start, end, steps=4, modifiers=None):
    """Press at start, move to end in a few steps and release (screen coords)."""
    kwargs = {} if modifiers is None else {"modifiers": modifiers}
    controller.on_mouse_press(QPointF(*start), **kwargs)
    for i in range(1, steps + 1):
        t = i / steps
        point = QPointF(start[0] + (end[0] - start[0]) * t, start[1] + (end[1] - start[1]) * t)
        controller.on_mouse_move(point, **kwargs)
    controller.on_mouse_release(QPointF(*end), **kwargs)


def click(controller, pos, modifiers=None):
    kwargs = {} if modifiers is None else {"modifiers": modifiers}
    controller.on_mouse_press(QPointF(*pos), **kwargs)
    controller.on_mouse_release(QPointF(*pos), **kwargs)
