"""
Matrix utilities for the PCA pipeline.

Stateless helpers on 2-D float arrays laid out as (n_records, n_variables):
covariance, column centering and scaling, sign canonicalization, row and
column extraction, per-column bootstrap resampling, approximate equality
and plain-text persistence of a single matrix.

In-place helpers (remove_column_means, normalize_by_column,
enforce_positive_sign_by_column) mutate their argument and also return it.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from eigenpca.config import CONFIG
from eigenpca.errors import (
    DegenerateColumn,
    DimensionMismatch,
    FileAccessError,
    IndexOutOfRange,
    InsufficientData,
    MissingFile,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Covariance and column statistics
# ---------------------------------------------------------------------------

def make_covariance_matrix(data: np.ndarray) -> np.ndarray:
    """
    Covariance of column-centered data: Xᵗ·X / (n_records − 1).

    No centering happens here; callers remove the means first.
    """
    data = np.asarray(data, dtype=np.float64)
    n = data.shape[0]
    if n < 2:
        raise InsufficientData(f"need at least two rows for a covariance matrix, got {n}")
    return (data.T @ data) / (n - 1)


def compute_column_means(data: np.ndarray) -> np.ndarray:
    return np.mean(np.asarray(data, dtype=np.float64), axis=0)


def remove_column_means(data: np.ndarray, means: Sequence[float]) -> np.ndarray:
    means = np.asarray(means, dtype=np.float64)
    if means.shape != (data.shape[1],):
        raise DimensionMismatch(data.shape[1], means.size, what="means vector")
    data -= means
    return data


def compute_column_rms(data: np.ndarray) -> np.ndarray:
    """Root mean square per column with divisor n − 1 (sample std once centered)."""
    data = np.asarray(data, dtype=np.float64)
    n = data.shape[0]
    return np.sqrt(np.sum(data ** 2, axis=0) / (n - 1))


def normalize_by_column(
    data: np.ndarray,
    sigmas: Sequence[float],
    tol: Optional[float] = None,
) -> np.ndarray:
    """Divide each column by its sigma. Zero sigmas are rejected, not patched."""
    sigmas = np.asarray(sigmas, dtype=np.float64)
    if sigmas.shape != (data.shape[1],):
        raise DimensionMismatch(data.shape[1], sigmas.size, what="sigma vector")
    if tol is None:
        tol = CONFIG['normalize']['degenerate_rms']
    degenerate = np.flatnonzero(np.abs(sigmas) <= tol)
    if degenerate.size:
        raise DegenerateColumn(degenerate.tolist())
    data /= sigmas
    return data


def enforce_positive_sign_by_column(data: np.ndarray) -> np.ndarray:
    """
    Flip columns so that each column's dominant-magnitude entry is positive.

    Ties go to the first entry (in index order) reaching the maximum
    absolute value, so the result is deterministic.
    """
    if data.size == 0:
        return data
    dominant = np.argmax(np.abs(data), axis=0)
    signs = np.sign(data[dominant, np.arange(data.shape[1])])
    signs[signs == 0] = 1.0
    data *= signs
    return data


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def extract_column_vector(data: np.ndarray, index: int) -> np.ndarray:
    n_cols = data.shape[1]
    if not 0 <= index < n_cols:
        raise IndexOutOfRange(index, n_cols, what="column")
    return np.array(data[:, index], dtype=np.float64)


def extract_row_vector(data: np.ndarray, index: int) -> np.ndarray:
    n_rows = data.shape[0]
    if not 0 <= index < n_rows:
        raise IndexOutOfRange(index, n_rows, what="row")
    return np.array(data[index, :], dtype=np.float64)


# ---------------------------------------------------------------------------
# Resampling
# ---------------------------------------------------------------------------

def make_shuffled_matrix(
    data: np.ndarray,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Bootstrap resample, one column at a time.

    Every column is drawn n_records times with replacement from its own
    observed values, independently of the other columns. Inter-column
    correlation is therefore not preserved.
    """
    data = np.asarray(data, dtype=np.float64)
    if rng is None:
        rng = np.random.default_rng()
    n_rows, n_cols = data.shape
    picks = rng.integers(0, n_rows, size=(n_rows, n_cols))
    return data[picks, np.arange(n_cols)]


# ---------------------------------------------------------------------------
# Scalar statistics
# ---------------------------------------------------------------------------

def get_mean(values: Sequence[float]) -> float:
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def get_sigma(values: Sequence[float]) -> float:
    """Sample standard deviation (divisor n − 1)."""
    values = np.asarray(values, dtype=np.float64)
    if values.size < 2:
        return float('nan')
    return float(np.std(values, ddof=1))


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

def is_approx_equal(value1: float, value2: float, eps: float) -> bool:
    return abs(value1 - value2) < eps


def is_approx_equal_container(a, b, eps: float) -> bool:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return False
    return bool(np.all(np.abs(a - b) < eps))


def is_equal_container(a, b) -> bool:
    a = np.asarray(a)
    b = np.asarray(b)
    return a.shape == b.shape and bool(np.all(a == b))


# ---------------------------------------------------------------------------
# Single-matrix persistence
# ---------------------------------------------------------------------------

def write_matrix_object(filename: Union[str, Path], data) -> None:
    """Write a scalar, vector or matrix as plain text."""
    data = np.atleast_1d(np.asarray(data, dtype=np.float64))
    try:
        np.savetxt(filename, data, fmt=CONFIG['persistence']['float_format'])
    except OSError as e:
        raise FileAccessError(f"cannot write {filename}: {e}") from e
    logger.debug(f"Wrote {filename} {data.shape}")


def read_matrix_object(filename: Union[str, Path], ndmin: int = 2) -> np.ndarray:
    """Read back what write_matrix_object wrote. ndmin=1 for vectors."""
    path = Path(filename)
    if not path.exists():
        raise MissingFile(f"file does not exist: {path}")
    try:
        data = np.loadtxt(path, dtype=np.float64, ndmin=ndmin)
    except (OSError, ValueError) as e:
        raise FileAccessError(f"cannot read {path}: {e}") from e
    logger.debug(f"Read {path} {data.shape}")
    return data
