"""
Bootstrap uncertainty for the eigen-spectrum.

Each repetition resamples every column independently with replacement,
then reruns the full decomposition. Only eigenvalues and energy are kept;
eigenvectors of resampled data are discarded.

The spread of the repetitions estimates how stable the spectrum is
against sampling noise in the records.
"""

import logging
from typing import Dict

import numpy as np

from eigenpca.config import DEFAULT_BOOTSTRAPS, DEFAULT_BOOTSTRAP_SEED, DEFAULT_SOLVER
from eigenpca.errors import DegenerateColumn
from eigenpca.utils import make_shuffled_matrix

logger = logging.getLogger(__name__)


def repetition_generators(count: int, seed: int):
    """One independent generator per repetition, derived from a single seed."""
    children = np.random.SeedSequence(seed).spawn(count)
    return [np.random.default_rng(child) for child in children]


def bootstrap_eigenvalues(
    data: np.ndarray,
    count: int = DEFAULT_BOOTSTRAPS,
    seed: int = DEFAULT_BOOTSTRAP_SEED,
    normalize: bool = False,
    solver: str = DEFAULT_SOLVER,
) -> Dict[str, np.ndarray]:
    """
    Bootstrap the eigenvalues and energy of a record matrix.

    Parameters
    ----------
    data : np.ndarray
        (n_records, n_variables) raw records.
    count : int
        Number of repetitions.
    seed : int
        Root seed; repetition k always uses the k-th child seed, so the
        result is reproducible and independent of evaluation order.
    normalize, solver :
        Same meaning as in compute_eigendecomp.

    Returns
    -------
    dict with:
        eigenvalues : np.ndarray — (count, n_variables), one row per repetition
        energy : np.ndarray — (count,)

    Raises DegenerateColumn with `repetition` set (0-based) when a
    normalized repetition resamples a column into a constant.
    """
    from eigenpca.decompose import compute_eigendecomp

    data = np.asarray(data, dtype=np.float64)
    D = data.shape[1]

    eigenvalues = np.empty((count, D))
    energy = np.empty(count)

    for k, rng in enumerate(repetition_generators(count, seed)):
        shuffled = make_shuffled_matrix(data, rng)
        try:
            result = compute_eigendecomp(shuffled, normalize=normalize, solver=solver)
        except DegenerateColumn as exc:
            raise DegenerateColumn(exc.columns, repetition=k) from exc
        eigenvalues[k] = result['eigenvalues']
        energy[k] = result['energy']
        logger.debug(f"Bootstrap repetition {k + 1}/{count}: energy={energy[k]:.6g}")

    return {
        'eigenvalues': eigenvalues,
        'energy': energy,
    }
