"""
TradeBoard - An infinite whiteboard for marking up trading charts.

This is the main entry point for the application.
Run with: python -m tradeboard.app
"""

import signal
import sys
from typing import Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from tradeboard import __version__
from tradeboard.core.app_core import AppCore
from tradeboard.services.logging_service import get_logger, setup_logging


# Global app reference for signal handlers
_app: Optional[QApplication] = None
_app_core: Optional[AppCore] = None
_should_quit = False


def request_quit(signum, frame):
    """Handle termination signals by flagging a quit for the event loop."""
    global _should_quit
    _should_quit = True


def check_for_quit():
    """Timer callback to check if we should quit."""
    if not _should_quit:
        return

    logger = get_logger(__name__)
    logger.info("Signal received, quitting...")

    if _app_core:
        _app_core.shutdown()
    elif _app:
        _app.quit()


def main() -> int:
    """
    Main entry point for TradeBoard application.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app, _app_core

    # Initialize basic logging first to catch early errors
    setup_logging()
    logger = get_logger(__name__)

    try:
        logger.info("Starting TradeBoard application...")

        # Create the Qt application
        _app = QApplication(sys.argv)
        _app.setApplicationName("TradeBoard")
        _app.setOrganizationName("TradeBoard")
        _app.setApplicationVersion(__version__)

        # Set up signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, request_quit)
        signal.signal(signal.SIGTERM, request_quit)

        # Timer to poll for quit signal (Qt event loop blocks Python signals)
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)

        # Initialize the application core (this sets up everything)
        _app_core = AppCore(_app)

        logger.info("TradeBoard initialization complete. Entering event loop...")

        exit_code = _app.exec()

        logger.info(f"TradeBoard exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        # Log any unhandled exceptions
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
