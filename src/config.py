"""Typed configuration blobs for the capture and tracking pipeline."""
from dataclasses import dataclass, field
from typing import Tuple

from colors import Color, Colors


# ---------------------- Capture ---------------------
@dataclass
class CaptureConfig:
    device: str = "0"
    use_filename: bool = False  # treat `device` as a path instead of an index
    width: int = 640
    height: int = 480
    fps: float = 30.0
    fourcc_str: str = field(default="YUYV", init=False)  # not user-configurable

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid capture size: {self.width}x{self.height}. Must be positive.")
        if self.fps <= 0:
            raise ValueError(f"Invalid fps: {self.fps}. Must be positive.")


# ---------------------- Filter ----------------------
def check_color_bounds(lower, upper):
    """
    Validate a pair of 3-channel 8-bit color bounds.

    Raises:
        ValueError: If a bound does not have 3 channels, a channel is
            outside 0..255, or lower exceeds upper on any channel
    """
    if len(lower) != 3 or len(upper) != 3:
        raise ValueError(f"Color bounds must have 3 channels: lower={lower}, upper={upper}")
    for i, (lo, hi) in enumerate(zip(lower, upper)):
        if not (0 <= lo <= 255 and 0 <= hi <= 255):
            raise ValueError(f"Color bound channel {i} out of range 0..255: lower={lower}, upper={upper}")
        if lo > hi:
            raise ValueError(f"Color bound channel {i} has lower > upper: lower={lower}, upper={upper}")


@dataclass
class FilterConfig:
    # Bounds in OpenCV 8-bit L*a*b*
    lower: Tuple[int, int, int] = (20, 150, 140)
    upper: Tuple[int, int, int] = (255, 255, 255)
    kernel_size: int = 5
    sigma: float = 2.0

    def __post_init__(self):
        check_color_bounds(self.lower, self.upper)
        if self.kernel_size <= 0 or self.kernel_size % 2 == 0:
            raise ValueError(f"Invalid kernel_size: {self.kernel_size}. Must be a positive odd number.")


# --------------------- Detector ---------------------
@dataclass
class DetectorConfig:
    dp: float = 2.0               # inverse accumulator resolution
    min_dist_factor: float = 2.0  # min center distance, in image heights
    param1: float = 300.0
    param2: float = 0.9
    min_radius: int = 5
    max_radius: int = 10

    def __post_init__(self):
        if self.min_radius < 0 or self.max_radius < self.min_radius:
            raise ValueError(
                f"Invalid radius range: {self.min_radius}..{self.max_radius}"
            )


# ---------------------- Trail -----------------------
@dataclass
class TrailConfig:
    enabled: bool = True
    max_size: int = 10
    max_thickness: int = 4
    color: Color = Colors.RED
    circle_thickness: int = 2

    def __post_init__(self):
        if self.max_size < 1:
            raise ValueError(f"Invalid max_size: {self.max_size}. Must be at least 1.")


# --------------------- Pipeline ---------------------
FAULT_POLICIES = ("skip", "abort")


@dataclass
class PipelineConfig:
    on_fault: str = "skip"
    average_interval: int = 100

    def __post_init__(self):
        if self.on_fault not in FAULT_POLICIES:
            raise ValueError(f"Invalid on_fault: {self.on_fault}. Must be one of: {', '.join(FAULT_POLICIES)}")
        if self.average_interval < 1:
            raise ValueError(f"Invalid average_interval: {self.average_interval}")
