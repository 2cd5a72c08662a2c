"""
Circle detection on a single-channel mask using the Hough gradient method.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from config import DetectorConfig


class InvalidMask(ValueError):
    """Raised when detection is given an image that is not single channel."""


@dataclass(frozen=True)
class CircleCandidate:
    """A circle found in one frame. No identity across frames."""
    x: float
    y: float
    radius: float

    @property
    def center(self) -> Tuple[int, int]:
        """Integer pixel center, truncated, for drawing."""
        return (int(self.x), int(self.y))


class CircleDetector:
    """Runs cv2.HoughCircles with a fixed, narrow tuning."""

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config if config is not None else DetectorConfig()

    def detect(self, mask: np.ndarray) -> List[CircleCandidate]:
        """
        Detect circles in a mask.

        Args:
            mask: Single-channel 8-bit image

        Returns:
            List of candidates, possibly empty, in no particular order

        Raises:
            InvalidMask: If mask is empty, has more than one channel or is not 8-bit
        """
        if mask is None or mask.size == 0:
            raise InvalidMask("Empty mask")
        if mask.ndim == 3 and mask.shape[2] == 1:
            mask = mask[:, :, 0]
        if mask.ndim != 2:
            raise InvalidMask(f"Expected a single-channel image, got shape={mask.shape}")
        if mask.dtype != np.uint8:
            raise InvalidMask(f"Expected 8-bit mask, got dtype={mask.dtype}")

        # minDist of twice the height leaves one dominant circle per frame
        height = mask.shape[0]
        cfg = self.config
        circles = cv2.HoughCircles(
            mask,
            cv2.HOUGH_GRADIENT,
            dp=cfg.dp,
            minDist=height * cfg.min_dist_factor,
            param1=cfg.param1,
            param2=cfg.param2,
            minRadius=cfg.min_radius,
            maxRadius=cfg.max_radius
        )

        if circles is None:
            return []

        return [
            CircleCandidate(x=float(c[0]), y=float(c[1]), radius=float(c[2]))
            for c in circles[0]
        ]
