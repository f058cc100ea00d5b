"""
SimSearch Exceptions
====================

Error types raised by the query engines, the index, OPTICS and the
distance-file parser.
"""

from typing import Optional


class InvalidArgumentError(ValueError):
    """A parameter is outside its valid range (k, min_pts, epsilon, ...)."""


class DimensionMismatchError(InvalidArgumentError):
    """Two vectors (or a vector and a region) have different dimensionality."""

    def __init__(self, first: int, second: int):
        self.first = first
        self.second = second
        super().__init__(
            f"Dimensionality mismatch: {first} != {second}"
        )


class DataFormatError(ValueError):
    """Malformed precomputed-distance input."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"Error in line {line_number}: {message}"
        super().__init__(message)


class UnsupportedDistanceError(TypeError):
    """A distance function lacks a capability required by its consumer."""
