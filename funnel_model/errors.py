"""Exceptions raised by the funnel layout engine."""


class FunnelError(Exception):
    """Base class for all funnel layout errors."""


class InvalidDataError(FunnelError, ValueError):
    """Raised when the raw rows are not a usable funnel data set."""


class InvalidColorError(FunnelError, ValueError):
    """Raised when a color is not a 3- or 6-digit hex string."""


class DegenerateLayoutError(FunnelError, ArithmeticError):
    """Raised when the configuration produces non-finite geometry."""
