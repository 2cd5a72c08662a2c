"""
Windowed frame-time estimator.

Averages over a fixed number of frames instead of reporting instantaneous
frame times, so single slow frames do not dominate the figure.
"""

import time
from typing import Optional

AVERAGE_INTERVAL = 100


class FrameRateEstimator:
    """Reports the average frame time once every `interval` frames."""

    def __init__(self, interval: int = AVERAGE_INTERVAL,
                 start_time: Optional[float] = None):
        """
        Args:
            interval: Frames per reporting window
            start_time: Start of the first window in seconds
                (defaults to time.perf_counter())
        """
        if interval < 1:
            raise ValueError(f"Invalid interval: {interval}. Must be at least 1.")
        self.interval = interval
        self.window_frame_count = 0
        self.window_start_time = time.perf_counter() if start_time is None else start_time
        self.total_frames = 0
        self.last_average: Optional[float] = None

    def on_frame(self, timestamp: float) -> Optional[float]:
        """
        Register one frame.

        Args:
            timestamp: Arrival time of the frame in seconds

        Returns:
            Average frame time in seconds when a window completes, else None
        """
        self.window_frame_count += 1
        self.total_frames += 1
        if self.window_frame_count < self.interval:
            return None

        average = (timestamp - self.window_start_time) / self.window_frame_count
        self.window_start_time = timestamp
        self.window_frame_count = 0
        self.last_average = average
        return average

    def reset(self, start_time: Optional[float] = None):
        self.window_frame_count = 0
        self.window_start_time = time.perf_counter() if start_time is None else start_time
        self.total_frames = 0
        self.last_average = None


def format_report(average_s: float, total_frames: int) -> str:
    """e.g. '33.34ms @ 200'"""
    return f"{average_s * 1000.0:.2f}ms @ {total_frames}"
