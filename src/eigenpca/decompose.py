"""
Core eigendecomposition computation.

Takes the record matrix (n_records × n_variables), produces eigenvalues,
eigenvectors, principal components and energy.

All heavy math delegates to numpy / scipy. This module is orchestration:
center → normalize → covariance → eigendecompose → derive.
"""

import logging
from typing import Any, Dict

import numpy as np
from scipy import linalg

from eigenpca.config import CONFIG, SOLVERS, MIN_RECORDS, DEFAULT_SOLVER, validate_solver
from eigenpca.errors import DegenerateColumn, InsufficientData
from eigenpca.utils import (
    compute_column_means,
    compute_column_rms,
    enforce_positive_sign_by_column,
    make_covariance_matrix,
    normalize_by_column,
    remove_column_means,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Backend call
# ---------------------------------------------------------------------------

def eigendecompose_symmetric(cov: np.ndarray, solver: str = DEFAULT_SOLVER):
    """
    Symmetric eigendecomposition via LAPACK.

    Returns (eigenvalues, eigenvectors) in ascending eigenvalue order,
    eigenvectors as columns.
    """
    driver = SOLVERS[validate_solver(solver)]
    return linalg.eigh(cov, driver=driver)


# ---------------------------------------------------------------------------
# Preparation
# ---------------------------------------------------------------------------

def prepare_matrix(data: np.ndarray, normalize: bool = False) -> Dict[str, Any]:
    """
    Copy, center and optionally scale the record matrix.

    Returns dict with:
        matrix : np.ndarray — centered (and scaled) copy
        means : np.ndarray — column means of the raw data
        sigmas : np.ndarray or None — column RMS of the centered data
        constant : np.ndarray — indices of exactly constant columns
    """
    matrix = np.array(data, dtype=np.float64, copy=True)
    constant = np.flatnonzero(np.all(matrix == matrix[0], axis=0))
    means = compute_column_means(matrix)
    remove_column_means(matrix, means)

    # Exactly constant columns can leave rounding residue after centering
    matrix[:, constant] = 0.0

    sigmas = None
    if normalize:
        if constant.size:
            raise DegenerateColumn(constant.tolist())
        sigmas = compute_column_rms(matrix)
        normalize_by_column(matrix, sigmas)

    return {'matrix': matrix, 'means': means, 'sigmas': sigmas, 'constant': constant}


def ordered_eigenpairs(
    cov: np.ndarray,
    constant: np.ndarray,
    solver: str = DEFAULT_SOLVER,
):
    """
    Eigenpairs of a covariance matrix in descending eigenvalue order.

    Constant columns have zero rows and columns in `cov`; each contributes
    its basis vector with eigenvalue 0 and is left out of the LAPACK call.
    Eigenvalues at or below the null threshold (relative to the largest)
    become exactly 0. Ties keep a fixed order: constant-column basis
    vectors by column index, then the remaining null directions.
    """
    D = cov.shape[0]
    active = np.setdiff1d(np.arange(D), constant)

    values = np.zeros(D)
    vectors = np.zeros((D, D))
    vectors[constant, np.arange(constant.size)] = 1.0

    if active.size:
        sub_values, sub_vectors = eigendecompose_symmetric(
            cov[np.ix_(active, active)], solver=solver,
        )
        sub_values = np.maximum(sub_values[::-1], 0.0)
        threshold = CONFIG['decompose']['null_eigenvalue'] * sub_values[0]
        sub_values[sub_values <= threshold] = 0.0
        values[constant.size:] = sub_values
        vectors[np.ix_(active, np.arange(constant.size, D))] = sub_vectors[:, ::-1]

    order = np.argsort(-values, kind='stable')
    return values[order], vectors[:, order]


# ---------------------------------------------------------------------------
# Core computation
# ---------------------------------------------------------------------------

def compute_eigendecomp(
    data: np.ndarray,
    normalize: bool = False,
    solver: str = DEFAULT_SOLVER,
) -> Dict[str, Any]:
    """
    Full PCA of one record matrix.

    Parameters
    ----------
    data : np.ndarray
        (n_records, n_variables) raw records.
    normalize : bool
        Divide each centered column by its RMS before the covariance.
    solver : str
        "standard" (classical QR) or "dc" (divide-and-conquer).

    Returns
    -------
    dict with:
        eigenvalues : np.ndarray — descending, scaled to sum to 1
        eigenvectors : np.ndarray — (n_variables, n_variables), columns
        principal_components : np.ndarray — (n_records, n_variables)
        energy : float — trace of the covariance matrix
        means : np.ndarray
        sigmas : np.ndarray or None
        n_records : int
        n_variables : int
    """
    data = np.asarray(data, dtype=np.float64)
    if data.ndim != 2:
        raise ValueError(f"expected a 2-D record matrix, got shape {data.shape}")

    N, D = data.shape
    if N < MIN_RECORDS:
        raise InsufficientData(
            f"need at least {MIN_RECORDS} records to solve, got {N}"
        )

    prepared = prepare_matrix(data, normalize=normalize)
    matrix = prepared['matrix']

    # Covariance matrix
    cov = make_covariance_matrix(matrix)

    # Eigendecomposition, descending with clamped null eigenvalues
    eigenvalues, eigenvectors = ordered_eigenpairs(cov, prepared['constant'], solver=solver)

    enforce_positive_sign_by_column(eigenvectors)

    # Principal components
    principal_components = matrix @ eigenvectors

    # Energy and explained fraction
    energy = float(np.trace(cov))
    if energy > 0:
        eigenvalues = eigenvalues / energy

    return {
        'eigenvalues': eigenvalues,
        'eigenvectors': eigenvectors,
        'principal_components': principal_components,
        'energy': energy,
        'means': prepared['means'],
        'sigmas': prepared['sigmas'],
        'n_records': N,
        'n_variables': D,
    }
