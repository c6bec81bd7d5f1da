"""Label text formatting for funnel blocks.

A format is either a template string or a callable:

    {l}: label
    {v}: raw value
    {f}: formatted value

Callables receive ``(label, raw_value, formatted_value)`` where the formatted
value is None unless the row supplied one.
"""

import inspect
import re
from numbers import Real
from typing import Any, Callable, Optional, Union

TOKEN_EXPRESSION = re.compile(r'\{[lvf]\}')

LabelFormat = Union[str, Callable[..., str]]


def format_number(value: Any) -> str:
    """Render a raw value the way it would print in a browser."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def default_formatted_value(value: Any) -> str:
    """Group a number with thousands separators (en-US, up to 3 decimals)."""
    if not isinstance(value, Real) or isinstance(value, bool):
        return str(value)
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{float(value):,.3f}".rstrip('0').rstrip('.')


def _accepts_three_args(func: Callable[..., str]) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True

    positional = 0
    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            return True
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 3


class LabelFormatter:
    """Formats block labels from a template string or a function."""

    def __init__(self, label_format: LabelFormat = '{l}: {f}') -> None:
        self.expression: Optional[str] = None
        self.formatter: Callable[[Any, Any, Optional[str]], str]
        self.set_format(label_format)

    def set_format(self, label_format: LabelFormat) -> None:
        """Register the template string or format function."""
        if callable(label_format):
            if _accepts_three_args(label_format):
                self.formatter = label_format
            else:
                self.formatter = lambda label, value, formatted: label_format(label, value)
            self.expression = None
        elif isinstance(label_format, str):
            self.expression = label_format
            self.formatter = self.string_formatter
        else:
            raise TypeError(f"Label format must be a string or callable, got {type(label_format).__name__}")

    def format(self, label: Any, count: Any) -> str:
        """Format a label using the row's count, a number or a [value, formatted] pair."""
        if isinstance(count, (list, tuple)):
            return self.formatter(label, count[0], count[1])
        return self.formatter(label, count, None)

    def string_formatter(self, label: Any, value: Any, formatted: Optional[str] = None) -> str:
        """Substitute the template tokens in a single literal pass."""
        if formatted is None:
            formatted = default_formatted_value(value)

        replacements = {
            '{l}': str(label),
            '{v}': format_number(value),
            '{f}': str(formatted),
        }
        return TOKEN_EXPRESSION.sub(lambda match: replacements[match.group(0)], self.expression)
