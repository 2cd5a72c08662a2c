"""
Color helpers shared by the drawing code.

A color is kept as an (r, g, b) triple of 8-bit values. It converts to and
from a packed 0xRRGGBB integer and to the BGR vector OpenCV drawing expects.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Color:
    """8-bit RGB color."""
    r: int
    g: int
    b: int

    def __post_init__(self):
        for name, value in (("r", self.r), ("g", self.g), ("b", self.b)):
            if not isinstance(value, int) or not 0 <= value <= 0xFF:
                raise ValueError(f"Invalid {name} channel: {value}. Must be an int in 0..255.")

    @classmethod
    def from_packed(cls, rgb: int) -> "Color":
        """
        Build a color from a packed 24-bit integer.

        Args:
            rgb: Value in 0x000000..0xFFFFFF

        Returns:
            Color with the unpacked channels

        Raises:
            ValueError: If rgb is outside the 24-bit range
        """
        if not isinstance(rgb, int) or not 0 <= rgb <= 0xFFFFFF:
            raise ValueError(f"Invalid packed color: {rgb!r}. Must be in 0x000000..0xFFFFFF.")
        return cls((rgb >> 16) & 0xFF, (rgb >> 8) & 0xFF, rgb & 0xFF)

    def to_packed(self) -> int:
        return (self.r << 16) | (self.g << 8) | self.b

    def to_bgr(self) -> Tuple[float, float, float]:
        """Channel vector in blue-green-red order for cv2 drawing calls."""
        return (float(self.b), float(self.g), float(self.r))


class Colors:
    """Named palette."""
    RED = Color.from_packed(0xFF0000)
    GREEN = Color.from_packed(0x00FF00)
    BLUE = Color.from_packed(0x0000FF)
    WHITE = Color.from_packed(0xFFFFFF)
    CYAN = Color.from_packed(0x00FFFF)
    MAGENTA = Color.from_packed(0xFF00FF)
    YELLOW = Color.from_packed(0xFFFF00)
    AMBER = Color.from_packed(0xFFBF00)
    ORANGE = Color.from_packed(0xFF8000)
    PURPLE = Color.from_packed(0x8000FF)
    PINK = Color.from_packed(0xFF0080)
    AZURE = Color.from_packed(0x0080FF)
