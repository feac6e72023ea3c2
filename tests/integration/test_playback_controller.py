"""PlaybackController driving a real StreamingBuffer over files on disk."""

import numpy as np
import pytest

from frame_playback.core.playback_controller import PlaybackController
from frame_playback.core.result import success
from frame_playback.core.streaming_buffer import StreamingBuffer
from frame_playback.models.status import Status
from frame_playback.models.transport import Direction


def settle(controller, drive):
    """Pump events until no fetch is outstanding."""
    return drive(controller, lambda: controller.pending_index is None)


@pytest.mark.integration
class TestLoad:

    def test_first_frame_shown_after_load(self, loaded_controller, expected_frame):
        assert loaded_controller.is_loaded
        assert loaded_controller.frame_count == 10
        assert loaded_controller.current_index == 0
        assert loaded_controller.last_status is Status.SUCCESS
        np.testing.assert_array_equal(loaded_controller.current_frame, expected_frame(0))

    def test_missing_file_is_no_file(self, controller, tmp_path, drive):
        statuses = []
        controller.load_finished.connect(statuses.append)

        controller.load_file(str(tmp_path / "nothing.raw"))

        assert drive(controller, lambda: statuses)
        assert statuses == [Status.NO_FILE]
        assert not controller.is_loaded
        assert controller.buffer is None

    def test_partial_frame_file_is_no_data(self, controller, make_recording, drive):
        path = make_recording(9, extra_bytes=31, name="short.raw")
        statuses = []
        controller.load_finished.connect(statuses.append)

        controller.load_file(path)

        assert drive(controller, lambda: statuses)
        assert statuses == [Status.NO_DATA]
        assert controller.status_text == Status.NO_DATA.message

    def test_reload_replaces_recording(self, loaded_controller, make_recording, drive):
        other = make_recording(3, name="other.raw")

        loaded_controller.load_file(other)

        assert drive(loaded_controller, lambda: loaded_controller.current_frame is not None)
        assert loaded_controller.frame_count == 3


@pytest.mark.integration
class TestPlayback:

    def test_interval_playback_shows_expected_frame(self, loaded_controller, drive, expected_frame):
        loaded_controller.seek(3)
        assert settle(loaded_controller, drive)
        loaded_controller.set_interval(2)
        loaded_controller.play()

        loaded_controller.tick()
        assert settle(loaded_controller, drive)

        assert loaded_controller.current_index == 5
        assert loaded_controller.last_status is Status.SUCCESS
        np.testing.assert_array_equal(loaded_controller.current_frame, expected_frame(5))

    def test_seek_clamps(self, controller, make_recording, drive):
        controller.load_file(make_recording(100, name="long.raw"))
        assert drive(controller, lambda: controller.current_frame is not None)

        assert controller.seek(-5) == 0
        assert controller.seek(105) == 99
        assert settle(controller, drive)
        assert controller.current_index == 99

    def test_plays_to_end_and_pauses(self, loaded_controller, drive):
        shown = []
        loaded_controller.frame_ready.connect(shown.append)
        loaded_controller.play()

        def finished():
            loaded_controller.tick()
            return not loaded_controller.is_playing and loaded_controller.pending_index is None

        assert drive(loaded_controller, finished)
        assert loaded_controller.current_index == 9
        assert shown == list(range(1, 10))

    def test_plays_backward_to_start(self, loaded_controller, drive):
        loaded_controller.seek(9)
        assert settle(loaded_controller, drive)
        loaded_controller.set_direction(Direction.BACKWARD)
        loaded_controller.set_interval(4)
        loaded_controller.play()

        def finished():
            loaded_controller.tick()
            return not loaded_controller.is_playing and loaded_controller.pending_index is None

        assert drive(loaded_controller, finished)
        assert loaded_controller.current_index == 0

    def test_close_releases_buffer(self, loaded_controller):
        buffer = loaded_controller.buffer

        loaded_controller.close()

        assert buffer.is_stopped
        assert not buffer.is_running


@pytest.mark.integration
class TestReadErrors:

    def test_read_failure_pauses_at_last_good_frame(self, qt_application, playback_settings,
                                                    make_gated_recording, drive):
        recording = make_gated_recording(fail_on=(3,))
        controller = PlaybackController(
            playback_settings, buffer_factory=lambda path, geometry, on_event=None: StreamingBuffer(
                path, geometry, opener=lambda p, g: success(recording), on_event=on_event))
        try:
            controller.load_file("gated.raw")
            assert drive(controller, lambda: controller.current_frame is not None)
            controller.seek(2)
            assert settle(controller, drive)
            controller.play()

            controller.tick()
            assert drive(controller, lambda: not controller.is_playing)

            assert controller.current_index == 2
            assert controller.last_status is Status.READ_FAIL
            assert controller.status_text == Status.READ_FAIL.message
        finally:
            controller.close()

    def test_gated_seek_supersedes_in_flight_frame(self, gated_controller, gated_recording, drive):
        gated_controller.load_file("gated.raw")
        assert drive(gated_controller, lambda: gated_controller.current_frame is not None)
        gated_recording.gate.clear()
        gated_recording.entered.clear()

        gated_controller.seek(4)
        assert gated_recording.entered.wait(5.0)
        gated_controller.seek(8)
        gated_recording.gate.set()

        assert settle(gated_controller, drive)
        assert gated_controller.current_index == 8
        assert 4 not in [gated_controller.last_rendered_index, gated_controller.current_index]


@pytest.mark.integration
class TestDarkMask:

    def test_mask_applied_to_current_frame(self, loaded_controller, make_mask_file, drive):
        masks = []
        loaded_controller.mask_loaded.connect(masks.append)

        assert loaded_controller.load_mask(make_mask_file(np.full(16, 10.0), offset=12), 16, 12)
        assert drive(loaded_controller, lambda: masks)
        assert masks == [Status.SUCCESS]

        assert loaded_controller.set_use_mask(True)
        assert settle(loaded_controller, drive)

        expected = np.maximum(np.arange(16) - 10, 0).reshape(4, 4)
        np.testing.assert_array_equal(loaded_controller.current_frame, expected)

    def test_mask_past_end_of_file(self, loaded_controller, make_mask_file, drive):
        masks = []
        loaded_controller.mask_loaded.connect(masks.append)

        loaded_controller.load_mask(make_mask_file(np.zeros(16)), 16, 1024)
        assert drive(loaded_controller, lambda: masks)

        assert masks == [Status.NO_MASK]
        assert not loaded_controller.set_use_mask(True)
        assert not loaded_controller.use_mask
        assert loaded_controller.last_status is Status.NO_MASK

    def test_disabling_mask_restores_raw_frame(self, loaded_controller, make_mask_file, drive, expected_frame):
        masks = []
        loaded_controller.mask_loaded.connect(masks.append)
        loaded_controller.load_mask(make_mask_file(np.full(16, 3.0)), 16)
        assert drive(loaded_controller, lambda: masks)
        loaded_controller.set_use_mask(True)
        assert settle(loaded_controller, drive)

        loaded_controller.set_use_mask(False)
        assert settle(loaded_controller, drive)

        np.testing.assert_array_equal(loaded_controller.current_frame, expected_frame(0))


@pytest.fixture
def masked_gated_controller(gated_controller, gated_recording, make_mask_file, drive):
    """Gated controller showing frame 0 with a 10-count mask loaded but off, reads held."""
    masks = []
    gated_controller.mask_loaded.connect(masks.append)
    gated_controller.load_file("gated.raw")
    assert drive(gated_controller, lambda: gated_controller.current_frame is not None)
    gated_controller.load_mask(make_mask_file(np.full(16, 10.0)), 16)
    assert drive(gated_controller, lambda: masks == [Status.SUCCESS])

    gated_recording.gate.clear()
    gated_recording.entered.clear()
    return gated_controller


@pytest.mark.integration
class TestMaskDuringFetch:

    def test_enabling_mask_keeps_in_flight_seek(self, masked_gated_controller, gated_recording,
                                                drive, expected_frame):
        controller = masked_gated_controller
        controller.seek(3)
        assert gated_recording.entered.wait(5.0)

        assert controller.set_use_mask(True)
        gated_recording.gate.set()

        assert settle(controller, drive)
        assert controller.current_index == 3
        np.testing.assert_array_equal(controller.current_frame, expected_frame(3) - 10)
        assert gated_recording.reads[-2:] == [3, 3]

    def test_enabling_mask_redecodes_same_index_in_flight(self, masked_gated_controller, gated_recording, drive):
        controller = masked_gated_controller
        controller.seek(0)
        assert gated_recording.entered.wait(5.0)

        assert controller.set_use_mask(True)
        gated_recording.gate.set()

        assert settle(controller, drive)
        assert controller.use_mask
        expected = np.maximum(np.arange(16) - 10, 0).reshape(4, 4)
        np.testing.assert_array_equal(controller.current_frame, expected)
