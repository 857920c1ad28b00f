"""
Error taxonomy for eigenpca.

Every error derives from PCAError and from the builtin exception that
matches its meaning, so callers can catch either.
"""

from typing import Optional


class PCAError(Exception):
    """Base class for all eigenpca errors."""


class InvalidConfiguration(PCAError, ValueError):
    """Raised when a configuration value is out of range."""


class DimensionMismatch(PCAError, ValueError):
    """Raised when a record or vector length does not match the expected dimensionality."""

    def __init__(self, expected: Optional[int], got: int, what: str = "record"):
        self.expected = expected
        self.got = got
        if expected is None:
            message = f"{what} has length {got}, but the expected length is not set"
        else:
            message = f"{what} has length {got}, expected {expected}"
        super().__init__(message)


class IndexOutOfRange(PCAError, IndexError):
    """Raised when an eigenvector, record or column index is invalid."""

    def __init__(self, index: int, size: int, what: str = "index"):
        self.index = index
        self.size = size
        super().__init__(f"{what} {index} out of range [0, {size})")


class UnsupportedOption(PCAError, ValueError):
    """Raised when an option value is not one of the accepted choices."""


class InsufficientData(PCAError, RuntimeError):
    """Raised when there are too few records to solve."""


class DegenerateColumn(PCAError, RuntimeError):
    """Raised when normalization meets a zero-variance column."""

    def __init__(self, columns, repetition=None):
        self.columns = list(columns)
        self.repetition = repetition
        message = f"column RMS is zero for column(s) {self.columns}"
        if repetition is not None:
            message += f" in bootstrap repetition {repetition}"
        super().__init__(message)



class NotSolved(PCAError, RuntimeError):
    """Raised when results are queried before solve() or load()."""

    def __init__(self, message: str = "PCA has not been solved; call solve() or load() first"):
        super().__init__(message)


class FileAccessError(PCAError, OSError):
    """Raised when a persistence artifact cannot be read or written."""


class MissingFile(FileAccessError, FileNotFoundError):
    """Raised when a required persistence artifact does not exist."""
