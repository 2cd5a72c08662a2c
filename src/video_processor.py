"""
Main video processing module: pulls frames from a capture source, runs the
color filter, circle detector and trail tracker on each one, and reports the
average frame time.
"""

import argparse
import logging
import sys
import time
from typing import Callable, Dict, List, Optional

import cv2
import numpy as np

from circle_detector import CircleCandidate, CircleDetector, InvalidMask
from color_filter import COLOR_RANGES, ColorSpaceFilter, InvalidFrame
from config import (
    FAULT_POLICIES,
    CaptureConfig,
    FilterConfig,
    PipelineConfig,
    TrailConfig,
)
from frame_rate import FrameRateEstimator, format_report
from trail_tracker import FrameSizeMismatch, TrailTracker
from video_source import DeviceParseError, SourceExhausted, VideoSource, parse_device

logger = logging.getLogger(__name__)

FRAME_FAULTS = (InvalidFrame, InvalidMask, FrameSizeMismatch)


class AnnotatedVideoWriter:
    """Writes annotated frames to a video file, sized from the first frame."""

    def __init__(self, output_path: str, fps: float = 30.0, fourcc_str: str = "mp4v"):
        if not isinstance(output_path, str) or not output_path.strip():
            raise ValueError(f"Invalid output path: {output_path}")
        if fps <= 0:
            raise ValueError(f"Invalid fps: {fps}")
        self.output_path = output_path
        self.fps = fps
        self.fourcc = cv2.VideoWriter_fourcc(*fourcc_str)
        self.out: Optional[cv2.VideoWriter] = None
        self.frames_written = 0

    def write(self, frame: np.ndarray):
        if self.out is None:
            height, width = frame.shape[:2]
            self.out = cv2.VideoWriter(self.output_path, self.fourcc, self.fps, (width, height))
        self.out.write(frame)
        self.frames_written += 1

    def close(self):
        if self.out is not None:
            self.out.release()
            self.out = None
            logger.info("Annotated video saved to: %s (%d frames)", self.output_path, self.frames_written)


class WindowDisplay:
    """Shows annotated frames in a HighGUI window."""

    def __init__(self, window_name: str = "frame"):
        self.window_name = window_name

    def write(self, frame: np.ndarray):
        cv2.imshow(self.window_name, frame)
        cv2.waitKey(1)

    def close(self):
        cv2.destroyWindow(self.window_name)


class VideoProcessor:
    """Per-frame pipeline: filter, detect, track, and time."""

    def __init__(self,
                 source: VideoSource,
                 color_filter: Optional[ColorSpaceFilter] = None,
                 detector: Optional[CircleDetector] = None,
                 tracker: Optional[TrailTracker] = None,
                 estimator: Optional[FrameRateEstimator] = None,
                 sinks: Optional[List] = None,
                 config: Optional[PipelineConfig] = None,
                 clock: Callable[[], float] = time.perf_counter):
        """
        Initialize video processor with dependency injection.

        Args:
            source: Opened frame source
            color_filter: ColorSpaceFilter instance (creates default if None)
            detector: CircleDetector instance (creates default if None)
            tracker: TrailTracker instance (creates default if None)
            estimator: FrameRateEstimator instance (creates default if None)
            sinks: Objects with write(frame)/close() receiving annotated frames
            config: Pipeline settings (fault policy, reporting interval)
            clock: Monotonic time source in seconds
        """
        self.config = config if config is not None else PipelineConfig()
        self.source = source
        self.color_filter = color_filter if color_filter is not None else ColorSpaceFilter()
        self.detector = detector if detector is not None else CircleDetector()
        self.tracker = tracker if tracker is not None else TrailTracker()
        self.clock = clock
        self.estimator = estimator if estimator is not None else FrameRateEstimator(
            interval=self.config.average_interval, start_time=clock()
        )
        self.sinks = list(sinks) if sinks else []

    def process_frame(self, frame: np.ndarray) -> List[CircleCandidate]:
        """
        Run filter, detection and tracking on one frame.

        The frame is annotated in place.

        Returns:
            Circles detected on this frame
        """
        mask = self.color_filter.filter(frame)
        candidates = self.detector.detect(mask)
        self.tracker.update(frame, candidates, source_shape=mask.shape)
        return candidates

    def run(self) -> Dict:
        """
        Process frames until the source runs out.

        Returns:
            Dictionary with run statistics

        Raises:
            InvalidFrame, InvalidMask, FrameSizeMismatch: On a bad frame when
                the fault policy is "abort"
        """
        processed = 0
        skipped = 0
        detections = 0

        try:
            while True:
                try:
                    frame = self.source.read()
                except SourceExhausted:
                    break

                average = self.estimator.on_frame(self.clock())
                if average is not None:
                    logger.info(format_report(average, self.estimator.total_frames))

                try:
                    candidates = self.process_frame(frame)
                except FRAME_FAULTS as e:
                    if self.config.on_fault == "abort":
                        logger.error("Frame %d rejected, aborting: %s", self.estimator.total_frames, e)
                        raise
                    logger.warning("Frame %d skipped: %s", self.estimator.total_frames, e)
                    skipped += 1
                    continue

                processed += 1
                detections += len(candidates)

                for sink in self.sinks:
                    sink.write(frame)
        finally:
            for sink in self.sinks:
                sink.close()

        last = self.estimator.last_average
        return {
            "frames_processed": processed,
            "frames_skipped": skipped,
            "detections": detections,
            "last_average_ms": round(last * 1000.0, 2) if last is not None else None,
        }


def _setup_logging(level: int = logging.INFO):
    """Configure the root logger once for CLI use."""
    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(level)
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    root.addHandler(ch)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect circles in a video stream and draw a decaying trail"
    )
    parser.add_argument(
        "--device", "-d",
        default="0",
        help="Capture device. Could be index or filename"
    )
    parser.add_argument(
        "--no-index",
        action="store_true",
        help="Use --device as a filename instead of a device index"
    )
    parser.add_argument("--width", type=int, default=640, help="Capture width")
    parser.add_argument("--height", type=int, default=480, help="Capture height")
    parser.add_argument("--fps", type=float, default=30.0, help="Capture fps")
    parser.add_argument(
        "--color", "-c",
        default="red",
        choices=sorted(COLOR_RANGES),
        help="Target color preset"
    )
    parser.add_argument(
        "--lower",
        type=int, nargs=3, metavar=("L", "A", "B"),
        help="Lower L*a*b* bound (overrides --color)"
    )
    parser.add_argument(
        "--upper",
        type=int, nargs=3, metavar=("L", "A", "B"),
        help="Upper L*a*b* bound (overrides --color)"
    )
    parser.add_argument(
        "--no-trail",
        action="store_true",
        help="Only outline detected circles, do not keep a trail"
    )
    parser.add_argument(
        "--on-fault",
        default="skip",
        choices=FAULT_POLICIES,
        help="What to do with a frame the pipeline rejects"
    )
    parser.add_argument(
        "--output", "-o",
        help="Save annotated video to this path"
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display annotated frames in a window"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line interface. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    _setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    logger.info("OpenCV version: %s", cv2.__version__)

    # Fail before touching any capture backend
    try:
        parse_device(args.device, args.no_index)
    except DeviceParseError as e:
        logger.error("%s", e)
        return 1

    lower, upper = COLOR_RANGES[args.color]
    if args.lower:
        lower = tuple(args.lower)
    if args.upper:
        upper = tuple(args.upper)

    try:
        capture_cfg = CaptureConfig(
            device=args.device,
            use_filename=args.no_index,
            width=args.width,
            height=args.height,
            fps=args.fps
        )
        filter_cfg = FilterConfig(lower=lower, upper=upper)
        trail_cfg = TrailConfig(enabled=not args.no_trail)
        pipeline_cfg = PipelineConfig(on_fault=args.on_fault)
    except ValueError as e:
        parser.error(str(e))

    source = VideoSource(capture_cfg)
    if not source.open():
        return 1

    sinks = []
    if args.output:
        sinks.append(AnnotatedVideoWriter(args.output, fps=source.actual_fps or args.fps))
    if args.show:
        sinks.append(WindowDisplay())

    processor = VideoProcessor(
        source,
        color_filter=ColorSpaceFilter(filter_cfg),
        tracker=TrailTracker(trail_cfg),
        sinks=sinks,
        config=pipeline_cfg
    )

    try:
        summary = processor.run()
    except FRAME_FAULTS as e:
        logger.error("Processing aborted: %s", e)
        return 1
    finally:
        source.release()

    logger.info(
        "Processed %d frames (%d skipped), %d detections",
        summary["frames_processed"], summary["frames_skipped"], summary["detections"]
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
