"""
Unit tests for video_processor module.
"""

import pytest
import numpy as np
from unittest.mock import Mock, patch
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from circle_detector import CircleCandidate, InvalidMask
from color_filter import InvalidFrame
from config import PipelineConfig
from frame_rate import FrameRateEstimator
from trail_tracker import TrailTracker
from video_processor import AnnotatedVideoWriter, VideoProcessor, main
from video_source import SourceExhausted


class FakeSource:
    """Yields the given frames, then signals end of stream."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.reads = 0

    def read(self):
        self.reads += 1
        if not self.frames:
            raise SourceExhausted("done")
        return self.frames.pop(0)


def counting_clock(step=0.01):
    t = [0.0]

    def clock():
        t[0] += step
        return t[0]
    return clock


def frames(n, height=60, width=80):
    return [np.zeros((height, width, 3), dtype=np.uint8) for _ in range(n)]


class TestVideoProcessor:
    """Test cases for VideoProcessor class."""

    def test_zero_frames(self):
        """Test an empty source never reaches filter, detect or track."""
        color_filter, detector, tracker = Mock(), Mock(), Mock()
        estimator = FrameRateEstimator(start_time=0.0)
        processor = VideoProcessor(
            FakeSource([]),
            color_filter=color_filter,
            detector=detector,
            tracker=tracker,
            estimator=estimator
        )

        summary = processor.run()

        color_filter.filter.assert_not_called()
        detector.detect.assert_not_called()
        tracker.update.assert_not_called()
        assert estimator.total_frames == 0
        assert estimator.last_average is None
        assert summary["frames_processed"] == 0
        assert summary["last_average_ms"] is None

    def test_stages_in_order(self):
        """Test each frame flows filter -> detect -> track."""
        frame = frames(1)[0]
        mask = np.zeros(frame.shape[:2], dtype=np.uint8)
        found = [CircleCandidate(10.0, 10.0, 6.0)]
        color_filter = Mock()
        color_filter.filter.return_value = mask
        detector = Mock()
        detector.detect.return_value = found
        tracker = Mock()

        processor = VideoProcessor(FakeSource([frame]), color_filter=color_filter,
                                   detector=detector, tracker=tracker)
        summary = processor.run()

        color_filter.filter.assert_called_once_with(frame)
        detector.detect.assert_called_once_with(mask)
        tracker.update.assert_called_once_with(frame, found, source_shape=mask.shape)
        assert summary["frames_processed"] == 1
        assert summary["detections"] == 1

    def test_twelve_frame_trail(self):
        """Test a trail built over 12 single-detection frames."""
        detector = Mock()
        detector.detect.side_effect = [[CircleCandidate(float(x), 10.0, 6.0)] for x in range(10, 22)]
        tracker = TrailTracker()

        processor = VideoProcessor(FakeSource(frames(12)), detector=detector, tracker=tracker)
        summary = processor.run()

        assert tracker.history.to_list() == [(x, 10) for x in range(21, 11, -1)]
        assert summary["detections"] == 12

    def test_frame_rate_reports(self):
        """Test the average is reported once per 100 frames."""
        detector = Mock()
        detector.detect.return_value = []
        processor = VideoProcessor(
            FakeSource(frames(250, 8, 8)),
            detector=detector,
            clock=counting_clock(0.01)
        )

        with patch("video_processor.logger") as log:
            summary = processor.run()

        reports = [c.args[0] for c in log.info.call_args_list if "ms @" in c.args[0]]
        assert reports == ["10.00ms @ 100", "10.00ms @ 200"]
        assert summary["last_average_ms"] == pytest.approx(10.0)
        assert processor.estimator.total_frames == 250

    def test_skip_bad_frame(self):
        """Test the default policy drops a bad frame and carries on."""
        good = frames(2)
        bad = np.zeros((0, 0, 3), dtype=np.uint8)
        detector = Mock()
        detector.detect.return_value = []

        processor = VideoProcessor(FakeSource([good[0], bad, good[1]]), detector=detector)
        summary = processor.run()

        assert summary["frames_processed"] == 2
        assert summary["frames_skipped"] == 1

    def test_skip_wrong_depth_mask(self):
        """Test a mask of the wrong depth is skipped, not fatal, under the default policy."""
        color_filter = Mock()
        color_filter.filter.return_value = np.zeros((60, 80), dtype=np.float32)

        processor = VideoProcessor(FakeSource(frames(2)), color_filter=color_filter)
        summary = processor.run()

        assert summary["frames_processed"] == 0
        assert summary["frames_skipped"] == 2

    def test_abort_on_bad_frame(self):
        """Test the abort policy ends the run on a bad mask."""
        detector = Mock()
        detector.detect.side_effect = InvalidMask("bad")
        sink = Mock()

        processor = VideoProcessor(FakeSource(frames(3)), detector=detector, sinks=[sink],
                                   config=PipelineConfig(on_fault="abort"))

        with pytest.raises(InvalidMask):
            processor.run()
        sink.write.assert_not_called()
        sink.close.assert_called_once()

    def test_sinks_receive_annotated_frames(self):
        detector = Mock()
        detector.detect.return_value = [CircleCandidate(20.0, 20.0, 8.0)]
        sink = Mock()
        source_frames = frames(2)

        VideoProcessor(FakeSource(source_frames), detector=detector, sinks=[sink]).run()

        assert sink.write.call_count == 2
        sink.close.assert_called_once()
        written = sink.write.call_args_list[0].args[0]
        assert written.any()

    def test_invalid_fault_policy(self):
        with pytest.raises(ValueError):
            PipelineConfig(on_fault="retry")


class TestAnnotatedVideoWriter:
    def test_lazy_open_and_close(self):
        writer_obj = Mock()

        with patch("video_processor.cv2.VideoWriter", return_value=writer_obj) as ctor:
            writer = AnnotatedVideoWriter("out.mp4", fps=25.0)
            writer.write(np.zeros((60, 80, 3), dtype=np.uint8))
            writer.write(np.zeros((60, 80, 3), dtype=np.uint8))
            writer.close()

        ctor.assert_called_once()
        assert ctor.call_args.args[3] == (80, 60)
        assert writer_obj.write.call_count == 2
        writer_obj.release.assert_called_once()

    def test_invalid_path(self):
        with pytest.raises(ValueError):
            AnnotatedVideoWriter("  ")


class TestMain:
    """Test cases for the command-line entry point."""

    def test_bad_device_exits_before_capture(self):
        """Test a non-numeric index fails with a non-zero status."""
        with patch("video_source.cv2.VideoCapture") as ctor:
            status = main(["-d", "abc"])

        assert status != 0
        ctor.assert_not_called()

    def test_unopenable_source(self):
        cap = Mock()
        cap.isOpened.return_value = False

        with patch("video_source.cv2.VideoCapture", return_value=cap):
            assert main(["-d", "missing.mp4", "--no-index"]) == 1

    def test_end_of_stream_exits_zero(self):
        """Test a source that ends immediately exits cleanly."""
        cap = Mock()
        cap.isOpened.return_value = True
        cap.read.return_value = (False, None)
        cap.get.return_value = 0.0

        with patch("video_source.cv2.VideoCapture", return_value=cap):
            status = main(["-d", "0", "--no-trail", "--on-fault", "abort"])

        assert status == 0
        cap.release.assert_called_once()

    def test_out_of_range_bounds_rejected(self):
        """Test Lab bounds outside 0..255 are a usage error, reported before capture."""
        with patch("video_source.cv2.VideoCapture") as ctor:
            with pytest.raises(SystemExit) as exc:
                main(["-d", "0", "--lower", "0", "0", "0", "--upper", "300", "300", "300"])

        assert exc.value.code == 2
        ctor.assert_not_called()

    def test_invalid_choice(self):
        with pytest.raises(SystemExit):
            main(["--on-fault", "retry"])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
