"""Solved analysis state: everything solve() or load() produces."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np


@dataclass
class AnalysisState:
    """
    Result of one solve.

    eigenvalues are scaled by energy (fractions of total variance).
    eigenvectors are columns matching eigenvalues.
    sigmas is set only when the solve normalized the columns.
    Bootstrap arrays are None when bootstrap was off.
    """
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray
    principal_components: np.ndarray
    energy: float
    means: np.ndarray
    sigmas: Optional[np.ndarray]
    num_records: int
    eigenvalues_boot: Optional[np.ndarray] = None
    energy_boot: Optional[np.ndarray] = None

    @property
    def normalized(self) -> bool:
        return self.sigmas is not None

    @property
    def bootstrapped(self) -> bool:
        return self.eigenvalues_boot is not None

    @classmethod
    def from_result(cls, result: Dict[str, Any], boot: Optional[Dict[str, np.ndarray]] = None) -> 'AnalysisState':
        """Build from compute_eigendecomp (and bootstrap_eigenvalues) output."""
        return cls(
            eigenvalues=result['eigenvalues'],
            eigenvectors=result['eigenvectors'],
            principal_components=result['principal_components'],
            energy=float(result['energy']),
            means=result['means'],
            sigmas=result['sigmas'],
            num_records=int(result['n_records']),
            eigenvalues_boot=None if boot is None else boot['eigenvalues'],
            energy_boot=None if boot is None else boot['energy'],
        )

    def is_close(self, other: 'AnalysisState', tol: float) -> bool:
        """
        Field-by-field comparison.

        Arrays use a tolerance relative to their magnitude (absolute below 1).
        num_records and the normalized/bootstrapped flags must match exactly.
        """
        if self.num_records != other.num_records:
            return False
        if self.normalized != other.normalized or self.bootstrapped != other.bootstrapped:
            return False

        pairs = [
            (self.eigenvalues, other.eigenvalues),
            (self.eigenvectors, other.eigenvectors),
            (self.principal_components, other.principal_components),
            (np.atleast_1d(self.energy), np.atleast_1d(other.energy)),
            (self.means, other.means),
        ]
        if self.normalized:
            pairs.append((self.sigmas, other.sigmas))
        if self.bootstrapped:
            pairs.append((self.eigenvalues_boot, other.eigenvalues_boot))
            pairs.append((self.energy_boot, other.energy_boot))

        return all(_arrays_close(a, b, tol) for a, b in pairs)


def _arrays_close(a: np.ndarray, b: np.ndarray, tol: float) -> bool:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return False
    return bool(np.allclose(a, b, rtol=tol, atol=tol))
