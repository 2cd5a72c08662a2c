"""
Trail tracking: keeps the most recent detection centers and draws them as a
line that tapers from the newest point to the oldest.
"""

import logging
import math
from typing import Iterator, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from circle_detector import CircleCandidate
from config import TrailConfig

logger = logging.getLogger(__name__)

MAX_TAIL_SIZE = 10
MAX_TAIL_THICKNESS = 4

Point = Tuple[int, int]


class FrameSizeMismatch(ValueError):
    """Raised when the draw target is not the size of the detection source."""


def trail_thickness(index: int, max_thickness: int = MAX_TAIL_THICKNESS) -> int:
    """
    Line thickness for the index-th segment counted from the newest point.

    Decays as 1/sqrt(index + 1).
    """
    if index < 0:
        raise ValueError(f"Invalid segment index: {index}")
    return int(round(math.sqrt(max_thickness / (index + 1)) * 2.5))


class TrailHistory:
    """Newest-first list of points with a fixed capacity."""

    def __init__(self, max_size: int = MAX_TAIL_SIZE):
        if max_size < 1:
            raise ValueError(f"Invalid max_size: {max_size}. Must be at least 1.")
        self.max_size = max_size
        self._points: List[Point] = []

    def push(self, point: Point):
        """Insert at the front, evicting the oldest point once over capacity."""
        self._points.insert(0, point)
        if len(self._points) > self.max_size:
            self._points.pop()

    def pairs(self) -> Iterator[Tuple[Point, Point]]:
        """Consecutive (newer, older) pairs, newest pair first."""
        for i in range(len(self._points) - 1):
            yield self._points[i], self._points[i + 1]

    def clear(self):
        self._points = []

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index):
        return self._points[index]

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def to_list(self) -> List[Point]:
        return list(self._points)


class TrailTracker:
    """Draws current detections and the decaying trail of past centers."""

    def __init__(self, config: Optional[TrailConfig] = None):
        """
        Initialize trail tracker.

        Args:
            config: Trail settings; tracking is disabled when config.enabled
                is False, in which case only circle outlines are drawn
        """
        self.config = config if config is not None else TrailConfig()
        self.history: Optional[TrailHistory] = (
            TrailHistory(self.config.max_size) if self.config.enabled else None
        )
        self._color = self.config.color.to_bgr()

    def update(self, frame: np.ndarray,
               candidates: Sequence[CircleCandidate],
               source_shape: Optional[Tuple[int, ...]] = None) -> List[int]:
        """
        Fold this frame's detections into the trail and draw onto frame.

        Args:
            frame: BGR frame to draw on (modified in place)
            candidates: Circles detected on this frame
            source_shape: Shape of the image the candidates came from

        Returns:
            Thickness of each trail segment drawn, newest first

        Raises:
            FrameSizeMismatch: If frame and source_shape differ in size
        """
        if frame is None or frame.size == 0:
            raise FrameSizeMismatch("Cannot draw on an empty frame")
        if source_shape is not None and tuple(frame.shape[:2]) != tuple(source_shape[:2]):
            raise FrameSizeMismatch(
                f"Frame size {frame.shape[:2]} does not match detection size {tuple(source_shape[:2])}"
            )

        for c in candidates:
            cv2.circle(frame, c.center, int(c.radius), self._color, self.config.circle_thickness)
            if self.history is not None:
                self.history.push(c.center)

        if self.history is None:
            return []

        drawn = []
        for i, (p0, p1) in enumerate(self.history.pairs()):
            thickness = trail_thickness(i, self.config.max_thickness)
            cv2.line(frame, p0, p1, self._color, thickness)
            drawn.append(thickness)
        return drawn

    def reset(self):
        """Forget the trail."""
        if self.history is not None:
            self.history.clear()
            logger.debug("Trail history cleared")
