"""
Error types.

Every failure is fatal for a run; the CLI reports it and exits non-zero.
"""


class LithophotoError(Exception):
    """Base class for all lithophoto failures."""


class InputError(LithophotoError):
    """Image cannot be decoded, or is smaller than 2 pixels in either axis."""


class ArgumentError(LithophotoError):
    """A generation parameter is out of its valid range."""


class OutputError(LithophotoError, OSError):
    """Output file cannot be created or a write failed mid-stream."""
