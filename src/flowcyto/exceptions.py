"""
Exception types raised by flowcyto.

``TypeError`` is used as-is for wrongly typed inputs (e.g. a non-boolean
channel mask); everything else derives from ``ValueError`` so callers that
already catch ``ValueError`` keep working.
"""


class ConfigurationError(ValueError):
    """Invalid or mutually exclusive options were passed to an operation."""


class ShapeError(ValueError):
    """An array argument does not have the shape the operation requires."""
