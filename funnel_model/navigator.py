"""Path commands and their serialization into path descriptors."""

from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Union


class Point(NamedTuple):
    """A 2D point in pixels, origin top-left, y growing downward."""
    x: float
    y: float


@dataclass(frozen=True)
class Move:
    to: Point


@dataclass(frozen=True)
class Line:
    to: Point


@dataclass(frozen=True)
class QuadraticTo:
    control: Point
    to: Point


PathCommand = Union[Move, Line, QuadraticTo]


def format_coordinate(value: float) -> str:
    """Render a coordinate the way JavaScript prints numbers."""
    value = float(value)
    if value == 0:
        return '0'
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _pair(point: Point) -> str:
    return f"{format_coordinate(point.x)},{format_coordinate(point.y)}"


def plot(commands: Sequence[PathCommand]) -> str:
    """Given a list of path commands, return the compiled description.

    Args:
        commands: Ordered path commands.

    Returns:
        A compact path string such as 'M0,0 L350,0 L300,100 L50,100 L0,0'.
    """
    parts: List[str] = []
    for command in commands:
        if isinstance(command, Move):
            parts.append(f"M{_pair(command.to)}")
        elif isinstance(command, Line):
            parts.append(f"L{_pair(command.to)}")
        elif isinstance(command, QuadraticTo):
            parts.append(f"Q{_pair(command.control)} {_pair(command.to)}")
        else:
            raise TypeError(f"Unknown path command: {command!r}")
    return ' '.join(parts)


def to_commands(commands: Sequence[PathCommand]) -> List[list]:
    """Return the structured form, e.g. [['M', 0.0, 0.0], ['Q', cx, cy, x, y]]."""
    structured: List[list] = []
    for command in commands:
        if isinstance(command, Move):
            structured.append(['M', command.to.x, command.to.y])
        elif isinstance(command, Line):
            structured.append(['L', command.to.x, command.to.y])
        elif isinstance(command, QuadraticTo):
            structured.append(['Q', command.control.x, command.control.y, command.to.x, command.to.y])
        else:
            raise TypeError(f"Unknown path command: {command!r}")
    return structured
