"""A thin wrapper around cv2.VideoCapture for devices and video files."""

import logging
from typing import Optional, Union

import cv2
import numpy as np

from config import CaptureConfig

logger = logging.getLogger(__name__)


class DeviceParseError(ValueError):
    """Raised when a device index is not a non-negative integer."""


class SourceExhausted(Exception):
    """End of the stream. Not an error: the capture loop stops on it."""


def parse_device(device: str, use_filename: bool = False) -> Union[int, str]:
    """
    Interpret the device option.

    Args:
        device: Device index ("0", "1", ...) or path to a video file
        use_filename: Treat device as a path instead of an index

    Returns:
        int index, or the path unchanged

    Raises:
        DeviceParseError: If an index is requested and device is not a
            non-negative integer
    """
    if use_filename:
        return device
    text = device.strip() if isinstance(device, str) else ""
    if not text.isascii() or not text.isdigit():
        raise DeviceParseError(f"Cannot parse device as index: {device}")
    return int(text)


def fourcc_to_str(code: int) -> str:
    if code == 0:
        return ""
    return "".join(chr((code >> (8 * i)) & 0xFF) for i in range(4))


class VideoSource:
    def __init__(self, config: Optional[CaptureConfig] = None):
        self.config = config if config is not None else CaptureConfig()
        self.cap: Optional[cv2.VideoCapture] = None

        # Values negotiated with the backend
        self.actual_width = 0
        self.actual_height = 0
        self.actual_fps = 0.0
        self.actual_fourcc = 0

    def open(self) -> bool:
        """
        Open the device or file and request the configured capture settings.

        Returns:
            True if the source is open

        Raises:
            DeviceParseError: If the device index cannot be parsed
        """
        target = parse_device(self.config.device, self.config.use_filename)
        self.cap = cv2.VideoCapture(target)
        if isinstance(target, int):
            logger.info("VideoCapture use %d as index", target)
        else:
            logger.info("VideoCapture use %s as filename", target)

        if not self.cap or not self.cap.isOpened():
            logger.error("Could not open capture source %s", self.config.device)
            self.cap = None
            return False

        fourcc = cv2.VideoWriter_fourcc(*self.config.fourcc_str)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        self.cap.set(cv2.CAP_PROP_FOURCC, fourcc)
        logger.info(
            "Set capture width: %d, height: %d, fps: %s, fourcc: %#x(%s)",
            self.config.width, self.config.height, self.config.fps,
            fourcc, fourcc_to_str(fourcc)
        )

        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = self.cap.get(cv2.CAP_PROP_FPS)
        self.actual_fourcc = int(self.cap.get(cv2.CAP_PROP_FOURCC)) & 0xFFFFFFFF
        logger.info(
            "Get capture width: %d, height: %d, fps: %s, fourcc: %#x(%s)",
            self.actual_width, self.actual_height, self.actual_fps,
            self.actual_fourcc, fourcc_to_str(self.actual_fourcc)
        )
        return True

    def read(self) -> np.ndarray:
        """
        Block until the next frame arrives.

        Raises:
            SourceExhausted: If the source is closed or returns an empty frame
        """
        if not self.is_opened():
            raise SourceExhausted("Capture is not open")
        ret, frame = self.cap.read()
        if not ret or frame is None or frame.size == 0:
            logger.info("Frame is empty")
            raise SourceExhausted("Frame is empty")
        return frame

    def is_opened(self) -> bool:
        return bool(self.cap is not None and self.cap.isOpened())

    def release(self):
        if self.cap is not None:
            logger.debug("Releasing capture source")
            self.cap.release()
            self.cap = None

    def __enter__(self) -> "VideoSource":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
