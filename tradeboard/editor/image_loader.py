"""
Asynchronous image decoding and import for the TradeBoard canvas.

Decoding runs in QRunnable workers on a QThreadPool. Results come back to
the GUI thread through queued signals, where they populate the decoded
image cache (element id -> QImage). The cache is derived state: it is
never saved and can always be rebuilt from an element's image_data.

Failed decodes are remembered so a broken image is not retried on every
repaint.
"""

from pathlib import Path
from typing import Dict, Optional, Set, Union

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal
from PySide6.QtGui import QImage

from tradeboard.editor.elements import ImageElement
from tradeboard.services.logging_service import get_logger


def decode_image(data: bytes) -> Optional[QImage]:
    """Decode encoded image bytes, or return None if they are not an image."""
    if not data:
        return None
    image = QImage.fromData(data)
    if image.isNull():
        return None
    return image


class ImageDecodeSignals(QObject):
    """Signals for ImageDecodeTask"""

    decoded = Signal(str, QImage)  # element id, image
    failed = Signal(str, str)  # element id, error message


class ImageDecodeTask(QRunnable):
    """Background task that decodes the image_data of one element."""

    def __init__(self, element_id: str, data: bytes) -> None:
        super().__init__()
        self.element_id = element_id
        self.data = data
        self.signals = ImageDecodeSignals()

    def run(self) -> None:
        image = decode_image(self.data)
        if image is None:
            self.signals.failed.emit(self.element_id, "Unsupported or corrupt image data")
            return
        self.signals.decoded.emit(self.element_id, image)


class ImageImportSignals(QObject):
    """Signals for ImageImportTask"""

    imported = Signal(object, QImage)  # encoded bytes, decoded image
    failed = Signal(str, str)  # source description, error message


class ImageImportTask(QRunnable):
    """Background task that reads (if needed) and decodes an imported image."""

    def __init__(self, source: Union[Path, bytes], description: str = "") -> None:
        super().__init__()
        self.source = source
        self.description = description or (str(source) if isinstance(source, Path) else "clipboard")
        self.signals = ImageImportSignals()

    def run(self) -> None:
        if isinstance(self.source, Path):
            try:
                data = self.source.read_bytes()
            except OSError as e:
                self.signals.failed.emit(self.description, f"Failed to read file: {e}")
                return
        else:
            data = bytes(self.source)

        image = decode_image(data)
        if image is None:
            self.signals.failed.emit(self.description, "Not a supported image")
            return
        self.signals.imported.emit(data, image)


class ImageLoader(QObject):
    """
    Decoded image cache with background decoding.

    Usage:
        loader = ImageLoader()
        loader.image_ready.connect(canvas.update)
        image = loader.image_for(element)  # None until decoded

    Signals:
        image_ready: Emitted with the element id when a decode finishes.
        image_failed: Emitted with the element id when a decode fails.
        image_imported: Emitted with (bytes, QImage) when an import decodes.
        import_failed: Emitted with (source, message) when an import fails.
    """

    image_ready = Signal(str)
    image_failed = Signal(str)
    image_imported = Signal(object, QImage)
    import_failed = Signal(str, str)

    def __init__(
        self,
        parent: Optional[QObject] = None,
        thread_pool: Optional[QThreadPool] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._thread_pool = thread_pool or QThreadPool.globalInstance()
        self._cache: Dict[str, QImage] = {}
        self._pending: Set[str] = set()
        self._failed: Set[str] = set()

    @property
    def thread_pool(self) -> QThreadPool:
        return self._thread_pool

    def has_failed(self, element_id: str) -> bool:
        return element_id in self._failed

    def is_pending(self, element_id: str) -> bool:
        return element_id in self._pending

    # ─── Cache ────────────────────────────────────────────────────────────

    def image_for(self, element: ImageElement) -> Optional[QImage]:
        """
        Return the decoded image for an element.

        Returns None and schedules a background decode when the image is
        not cached yet. Elements that failed before are not retried.
        """
        image = self._cache.get(element.id)
        if image is not None:
            return image
        if not element.image_data or element.id in self._failed or element.id in self._pending:
            return None

        self._pending.add(element.id)
        task = ImageDecodeTask(element.id, element.image_data)
        task.signals.decoded.connect(self._on_decoded)
        task.signals.failed.connect(self._on_decode_failed)
        self._thread_pool.start(task)
        return None

    def decoded_image(self, element: ImageElement) -> Optional[QImage]:
        """Return the decoded image, decoding synchronously on a cache miss."""
        image = self._cache.get(element.id)
        if image is not None or element.id in self._failed:
            return image

        image = decode_image(element.image_data)
        if image is None:
            self._mark_failed(element.id, "Unsupported or corrupt image data")
            return None
        self._cache[element.id] = image
        return image

    def store(self, element_id: str, image: QImage) -> None:
        """Seed the cache with an image that is already decoded."""
        self._cache[element_id] = image
        self._failed.discard(element_id)

    def discard(self, element_id: str) -> None:
        self._cache.pop(element_id, None)
        self._failed.discard(element_id)

    def clear(self) -> None:
        self._cache.clear()
        self._failed.clear()

    def wait_for_done(self, msecs: int = -1) -> bool:
        return self._thread_pool.waitForDone(msecs)

    def _on_decoded(self, element_id: str, image: QImage) -> None:
        self._pending.discard(element_id)
        self._cache[element_id] = image
        self._logger.debug(f"Decoded image {element_id}: {image.width()}x{image.height()}")
        self.image_ready.emit(element_id)

    def _on_decode_failed(self, element_id: str, message: str) -> None:
        self._pending.discard(element_id)
        self._mark_failed(element_id, message)

    def _mark_failed(self, element_id: str, message: str) -> None:
        self._failed.add(element_id)
        self._logger.warning(f"Image {element_id} could not be decoded: {message}")
        self.image_failed.emit(element_id)

    # ─── Import ───────────────────────────────────────────────────────────

    def import_file(self, path: Union[str, Path]) -> None:
        """Read and decode an image file in the background."""
        self._start_import(ImageImportTask(Path(path)))

    def import_bytes(self, data: bytes, description: str = "clipboard") -> None:
        """Decode encoded image bytes in the background."""
        self._start_import(ImageImportTask(bytes(data), description))

    def _start_import(self, task: ImageImportTask) -> None:
        task.signals.imported.connect(self._on_imported)
        task.signals.failed.connect(self._on_import_failed)
        self._logger.info(f"Importing image from {task.description}")
        self._thread_pool.start(task)

    def _on_imported(self, data: bytes, image: QImage) -> None:
        self.image_imported.emit(data, image)

    def _on_import_failed(self, source: str, message: str) -> None:
        self._logger.warning(f"Image import from {source} failed: {message}")
        self.import_failed.emit(source, message)
