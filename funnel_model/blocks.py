"""Standardization of raw funnel rows into blocks.

Each raw row is ``(label, count, color?, label_color?)`` where count is a
number or a ``[value, formatted]`` pair.
"""

import logging
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, List, Sequence

import numpy as np

from funnel_model.colorizer import Colorizer
from funnel_model.errors import DegenerateLayoutError, InvalidDataError
from funnel_model.label_formatter import LabelFormatter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockLabel:
    raw: Any
    formatted: str
    color: str


@dataclass(frozen=True)
class Block:
    """A normalized funnel block.

    Attributes:
        index: Position of the row in the input.
        value: Raw numeric count.
        ratio: value / total.
        height: Uniform height estimate (chart height x ratio), used only to
            correct the slope for pinched blocks.
        fill: Resolved hex fill color.
        label: Raw label, display text and color.
    """
    index: int
    value: float
    ratio: float
    height: float
    fill: str
    label: BlockLabel

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'value': self.value,
            'ratio': self.ratio,
            'height': self.height,
            'fill': self.fill,
            'label': {
                'raw': self.label.raw,
                'formatted': self.label.formatted,
                'color': self.label.color,
            },
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _as_python_number(value: Any) -> Any:
    if hasattr(value, 'item') and callable(getattr(value, 'item')):
        return value.item()
    return value


def validate_data(rows: Any) -> None:
    """Check that rows is a non-empty sequence of well formed rows.

    Raises:
        InvalidDataError: If the data cannot be laid out.
    """
    if not isinstance(rows, (list, tuple)) or len(rows) == 0:
        raise InvalidDataError("Funnel data is not valid: expected a non-empty list of rows")

    for index, row in enumerate(rows):
        if not isinstance(row, (list, tuple)) or len(row) < 2:
            raise InvalidDataError(f"Funnel data is not valid: row {index} needs a label and a count")

        count = row[1]
        if isinstance(count, (list, tuple)):
            if len(count) < 2 or not _is_number(count[0]):
                raise InvalidDataError(
                    f"Funnel data is not valid: row {index} count pair must be [number, formatted]"
                )
        elif not _is_number(count):
            raise InvalidDataError(f"Funnel data is not valid: row {index} count is not a number")


def get_raw_count(row: Sequence[Any]) -> Any:
    """Given a raw data row, return its count."""
    count = row[1]
    if isinstance(count, (list, tuple)):
        return _as_python_number(count[0])
    return _as_python_number(count)


def standardize(
    rows: Sequence[Sequence[Any]],
    height: float,
    colorizer: Colorizer,
    formatter: LabelFormatter
) -> List[Block]:
    """Convert the raw rows into standardized blocks.

    Args:
        rows: Raw data rows, validated with validate_data.
        height: Drawable chart height in pixels.
        colorizer: Resolves block and label colors.
        formatter: Produces the label text.

    Returns:
        One Block per row, in input order.

    Raises:
        InvalidDataError: If the rows are malformed.
        DegenerateLayoutError: If the counts add up to zero.
    """
    validate_data(rows)

    counts = [get_raw_count(row) for row in rows]
    values = np.asarray(counts, dtype=float)
    total = values.sum()

    if total == 0 or not np.isfinite(total):
        raise DegenerateLayoutError(f"Funnel total must be a non-zero finite number, got {total}")

    ratios = values / total

    blocks: List[Block] = []
    for index, row in enumerate(rows):
        label = row[0]
        ratio = float(ratios[index])
        blocks.append(Block(
            index=index,
            value=counts[index],
            ratio=ratio,
            height=height * ratio,
            fill=colorizer.block_fill(row, index),
            label=BlockLabel(
                raw=label,
                formatted=formatter.format(label, row[1]),
                color=colorizer.label_fill(row),
            ),
        ))

    logger.debug(f"Standardized {len(blocks)} blocks with total count {total}")
    return blocks
