"""Headless entry point: load a recording and play it through once."""

import logging
import sys
from typing import Callable, List, Optional

from PyQt5 import QtCore

from .core.playback_controller import PlaybackController
from .core.settings_manager import SettingsManager
from .models.status import Status

USAGE = "Usage: frame-playback RECORDING [MASK_FILE [MASK_OFFSET]]"


def setup_logging():
    """Configure logging for the application."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def _exec_app(app: QtCore.QCoreApplication) -> int:
    """Call the correct exec variant for the current Qt version."""
    exec_fn: Callable[[], int] = getattr(app, "exec", app.exec_)
    return exec_fn()


def _connect_playthrough(app: QtCore.QCoreApplication, controller: PlaybackController,
                         settings_manager: SettingsManager, recording: str,
                         mask_file: Optional[str], mask_offset: int):
    """Wire controller signals so the app exits once the last frame is shown."""

    def on_loaded(status: Status):
        if not status.is_success:
            app.exit(1)
            return

        settings_manager.add_recent_file(recording)
        if mask_file:
            geometry = controller.info.geometry
            controller.load_mask(mask_file, geometry.pixel_count, mask_offset)
        controller.play()

    def on_mask(status: Status):
        if status.is_success and not controller.use_mask:
            logging.info("Dark mask loaded but not applied, use_dark_mask is off")

    def finish_if_done():
        if controller.is_playing or controller.pending_index is not None:
            return
        logging.info(f"Playback finished at frame {controller.current_index + 1} / {controller.frame_count}")
        app.exit(0 if controller.last_status.is_success else 1)

    def on_state(playing: bool):
        if not playing:
            finish_if_done()

    controller.status_changed.connect(lambda text: logging.info(text))
    controller.load_finished.connect(on_loaded)
    controller.mask_loaded.connect(on_mask)
    controller.frame_ready.connect(lambda index: finish_if_done())
    controller.playback_state_changed.connect(on_state)


def run_app(argv: Optional[List[str]] = None) -> int:
    """Play a recording from start to end using the saved geometry settings."""
    setup_logging()
    argv = list(sys.argv if argv is None else argv)

    if len(argv) < 2:
        logging.error(USAGE)
        return 2

    recording = argv[1]
    mask_file = argv[2] if len(argv) > 2 else None
    settings_manager = SettingsManager()
    try:
        mask_offset = int(argv[3]) if len(argv) > 3 else settings_manager.settings.mask_byte_offset
    except ValueError:
        logging.error(f"Invalid mask offset: {argv[3]}")
        return 2

    issues = settings_manager.validate_settings()
    if issues:
        for issue in issues:
            logging.error(f"Invalid setting: {issue}")
        return 1

    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication(argv)
    controller = PlaybackController(settings_manager.settings)
    _connect_playthrough(app, controller, settings_manager, recording, mask_file, mask_offset)

    controller.load_file(recording)
    try:
        return _exec_app(app)
    finally:
        controller.close()


def main():
    sys.exit(run_app())


if __name__ == "__main__":
    main()
