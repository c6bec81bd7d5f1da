"""Hex color arithmetic and block/label color resolution.

The engine never picks a palette on its own: fallback block fills come from an
injected :class:`Palette`, either a fixed list of colors or a function of the
block index.
"""

import math
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Sequence, Tuple

from funnel_model.errors import InvalidColorError

HEX_EXPRESSION = re.compile(r'^#([0-9a-f]{3}|[0-9a-f]{6})$', re.IGNORECASE)

# d3.scale.category10
CATEGORY10: List[str] = [
    '#1f77b4', '#ff7f0e', '#2ca02c', '#d62728', '#9467bd',
    '#8c564b', '#e377c2', '#7f7f7f', '#bcbd22', '#17becf',
]


def is_hex_color(value: Any) -> bool:
    """Return True if value is a '#' followed by 3 or 6 hex digits."""
    return isinstance(value, str) and HEX_EXPRESSION.match(value) is not None


def expand_hex(hex_digits: str) -> str:
    """Expand a three character hex code to six characters.

    Args:
        hex_digits: Three hex digits without the leading '#', e.g. 'abc'.

    Returns:
        The six digit form, e.g. 'aabbcc'.

    Raises:
        InvalidColorError: If hex_digits is not exactly three hex digits.
    """
    if not is_hex_color(f"#{hex_digits}") or len(hex_digits) != 3:
        raise InvalidColorError(f"Cannot expand '{hex_digits}': expected 3 hex digits")
    return ''.join(digit * 2 for digit in hex_digits)


def normalize_hex(color: str) -> str:
    """Validate a hex color and return its lowercase six digit form."""
    if not is_hex_color(color):
        raise InvalidColorError(f"Invalid color format: {color!r}")
    hex_digits = color[1:]
    if len(hex_digits) == 3:
        hex_digits = expand_hex(hex_digits)
    return f"#{hex_digits.lower()}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def shade(color: str, amount: float) -> str:
    """Shade a color toward black or white.

    Args:
        color: A 3- or 6-digit hex color.
        amount: Shade adjustment in [-1, 1]. Negative darkens, positive lightens.

    Returns:
        The shaded color as a lowercase '#rrggbb' string.

    Raises:
        InvalidColorError: If color is not a valid hex color.
        ValueError: If amount is outside [-1, 1].
    """
    if not -1 <= amount <= 1:
        raise ValueError(f"Shade amount must be within [-1, 1], got {amount}")

    value = int(normalize_hex(color)[1:], 16)
    target = 0 if amount < 0 else 255
    portion = abs(amount)

    channels = [(value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF]
    shaded = [channel + _round_half_up((target - channel) * portion) for channel in channels]

    return '#' + ''.join(f"{channel:02x}" for channel in shaded)


def validate_colors(colors: Sequence[str]) -> None:
    """Check an explicit list of colors.

    Raises:
        InvalidColorError: If the list is empty or contains a non-hex entry.
    """
    if isinstance(colors, str) or not isinstance(colors, (list, tuple)) or len(colors) == 0:
        raise InvalidColorError("At least one color must be specified")

    for color in colors:
        if not is_hex_color(color):
            raise InvalidColorError(f"Invalid color format: {color!r}")


def linear_gradient_stops(
    colors: Sequence[str],
    ratios: Sequence[float],
    alphas: Sequence[float]
) -> List[Tuple[float, str, float]]:
    """Pair each color with its offset and opacity for a top-to-bottom gradient.

    Args:
        colors: Hex colors, one per stop.
        ratios: Stop offsets in percent, matched to colors by position.
        alphas: Stop opacities in percent, matched to colors by position.

    Returns:
        List of (offset percent, color, opacity in [0, 1]) tuples.

    Raises:
        InvalidColorError: If colors is empty or contains a non-hex entry.
        ValueError: If there are fewer ratios or alphas than colors.
    """
    validate_colors(colors)
    if len(ratios) < len(colors) or len(alphas) < len(colors):
        raise ValueError(
            f"Expected a ratio and an alpha for each of {len(colors)} colors, "
            f"got {len(ratios)} ratios and {len(alphas)} alphas"
        )
    return [(ratios[i], color, alphas[i] / 100) for i, color in enumerate(colors)]


class Palette(ABC):
    """Categorical fill scale consulted by block index."""

    @abstractmethod
    def color_at(self, index: int) -> str:
        """Return the color for the block at index."""


class ListPalette(Palette):
    """Fixed list of colors, reused from the start once exhausted."""

    def __init__(self, colors: Sequence[str]) -> None:
        validate_colors(colors)
        self.colors: List[str] = list(colors)

    def color_at(self, index: int) -> str:
        return self.colors[index % len(self.colors)]

    def __repr__(self) -> str:
        return f"ListPalette({self.colors!r})"


class FunctionPalette(Palette):
    """Palette backed by a function of the block index."""

    def __init__(self, func: Callable[[int], str]) -> None:
        if not callable(func):
            raise TypeError("FunctionPalette requires a callable")
        self.func: Callable[[int], str] = func

    def color_at(self, index: int) -> str:
        color = self.func(index)
        if not is_hex_color(color):
            raise InvalidColorError(f"Palette function returned {color!r} for block {index}; expected a hex color")
        return color

    def __repr__(self) -> str:
        return f"FunctionPalette({self.func!r})"


def default_palette() -> Palette:
    return ListPalette(CATEGORY10)


class Colorizer:
    """Resolves block and label colors for raw data rows."""

    def __init__(self, palette: Palette, label_fill: str) -> None:
        """Initialize the colorizer.

        Args:
            palette: Fallback scale for rows without their own color.
            label_fill: Label color for rows without their own label color.
        """
        self.palette: Palette = palette
        self.default_label_fill: str = label_fill

    def block_fill(self, row: Sequence[Any], index: int) -> str:
        """Use the row's color if set and valid, otherwise the palette's."""
        if len(row) > 2 and is_hex_color(row[2]):
            return row[2]
        return self.palette.color_at(index)

    def label_fill(self, row: Sequence[Any]) -> str:
        """Use the row's label color if set and valid, otherwise the default."""
        if len(row) > 3 and is_hex_color(row[3]):
            return row[3]
        return self.default_label_fill
