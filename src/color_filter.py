"""
Color-space pre-filter: turns a BGR frame into a soft single-channel mask of
the pixels whose L*a*b* color falls inside a configured range.
"""

from typing import Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from config import FilterConfig, check_color_bounds

# Named bounds in OpenCV 8-bit L*a*b* (a: green<128<red, b: blue<128<yellow)
COLOR_RANGES: Dict[str, Tuple[Tuple[int, int, int], Tuple[int, int, int]]] = {
    "red": ((20, 150, 140), (255, 255, 255)),
    "green": ((20, 0, 0), (255, 110, 255)),
    "blue": ((20, 0, 0), (255, 255, 110)),
    "yellow": ((20, 100, 160), (255, 150, 255)),
}


class InvalidFrame(ValueError):
    """Raised when a frame cannot be filtered (empty or not BGR)."""


def apply_range(lab: np.ndarray, lower: Sequence[int], upper: Sequence[int]) -> np.ndarray:
    """
    Per-pixel range test.

    Args:
        lab: 3-channel image
        lower: Inclusive lower bound per channel
        upper: Inclusive upper bound per channel

    Returns:
        uint8 mask, 255 where every channel is within bounds, 0 elsewhere

    Raises:
        ValueError: If the bounds are not valid 8-bit ranges
    """
    check_color_bounds(lower, upper)
    return cv2.inRange(lab, np.array(lower, dtype=np.uint8), np.array(upper, dtype=np.uint8))


class ColorSpaceFilter:
    """Blur, convert to L*a*b*, threshold, blur again."""

    def __init__(self, config: Optional[FilterConfig] = None):
        self.config = config if config is not None else FilterConfig()

    def _blur(self, img: np.ndarray) -> np.ndarray:
        k = self.config.kernel_size
        return cv2.GaussianBlur(img, (k, k), self.config.sigma, sigmaY=self.config.sigma)

    def filter(self, frame: np.ndarray,
               lower: Optional[Sequence[int]] = None,
               upper: Optional[Sequence[int]] = None) -> np.ndarray:
        """
        Build a mask of the in-range pixels of a frame.

        Args:
            frame: Input frame (BGR), left untouched
            lower: Lower L*a*b* bound (defaults to config)
            upper: Upper L*a*b* bound (defaults to config)

        Returns:
            Single-channel mask with the same height and width as frame

        Raises:
            InvalidFrame: If frame is empty or not a 3-channel 8-bit image
        """
        if frame is None or frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0:
            raise InvalidFrame(f"Empty frame: shape={None if frame is None else frame.shape}")
        if frame.ndim != 3 or frame.shape[2] != 3:
            raise InvalidFrame(f"Expected a 3-channel BGR frame, got shape={frame.shape}")
        if frame.dtype != np.uint8:
            raise InvalidFrame(f"Expected an 8-bit BGR frame, got dtype={frame.dtype}")

        lower = self.config.lower if lower is None else lower
        upper = self.config.upper if upper is None else upper

        # GaussianBlur writes to a new array, so the caller's frame is never touched
        out = self._blur(frame)
        out = cv2.cvtColor(out, cv2.COLOR_BGR2Lab)
        out = apply_range(out, lower, upper)
        return self._blur(out)

