"""
eigenpca — Principal Component Analysis with bootstrap uncertainty.

Accumulates fixed-length numeric records, eigendecomposes their covariance,
and estimates the spread of the eigen-spectrum by bootstrap resampling.
Output: eigenvalues (fraction of energy), eigenvectors, principal
components, energy, projections in both directions.

    eigenpca.PCA
        → the engine: add_record, solve, queries, projections, save/load.

    eigenpca.decompose.compute_eigendecomp(data, normalize, solver)
        → one-shot decomposition of a record matrix, as a dict.

    eigenpca.bootstrap.bootstrap_eigenvalues(data, count, seed, ...)
        → per-repetition eigenvalues and energy.

    eigenpca.flatten.flatten_result(pca)
        → flat dict of scalars for tables.
"""

__version__ = '0.1.0'

from eigenpca.engine import PCA
from eigenpca.config import CONFIG, PCAConfig, SOLVERS
from eigenpca.decompose import compute_eigendecomp
from eigenpca.bootstrap import bootstrap_eigenvalues
from eigenpca.flatten import flatten_result, flatten_batch
from eigenpca.persistence import load
from eigenpca.errors import (
    PCAError,
    InvalidConfiguration,
    DimensionMismatch,
    IndexOutOfRange,
    UnsupportedOption,
    InsufficientData,
    DegenerateColumn,
    NotSolved,
    FileAccessError,
    MissingFile,
)

__all__ = [
    'PCA',
    'CONFIG',
    'PCAConfig',
    'SOLVERS',
    'compute_eigendecomp',
    'bootstrap_eigenvalues',
    'flatten_result',
    'flatten_batch',
    'load',
    'PCAError',
    'InvalidConfiguration',
    'DimensionMismatch',
    'IndexOutOfRange',
    'UnsupportedOption',
    'InsufficientData',
    'DegenerateColumn',
    'NotSolved',
    'FileAccessError',
    'MissingFile',
]
