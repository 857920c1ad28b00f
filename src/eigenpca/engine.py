"""
PCA engine.

Accumulates records, solves the decomposition (with optional bootstrap),
answers queries and projects records into and out of principal-component
space.

Usage:
    from eigenpca import PCA

    pca = PCA(4)
    for record in records:
        pca.add_record(record)
    pca.set_do_bootstrap(True, 100)
    pca.solve()

    pca.get_eigenvalues()           # descending, sums to 1
    pca.get_energy()                # total variance
    pca.to_principal_space(record)  # → principal coordinates
    pca.save('results/run')         # → results/run.pca, .eigval, ...

An engine carries no global state. It is not safe for concurrent mutation;
use one instance per thread.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from eigenpca.bootstrap import bootstrap_eigenvalues
from eigenpca.config import (
    CONFIG,
    DEFAULT_BOOTSTRAP_SEED,
    DEFAULT_BOOTSTRAPS,
    DEFAULT_SOLVER,
    MIN_RECORDS,
    PCAConfig,
    validate_bootstrap_seed,
    validate_num_bootstraps,
    validate_num_retained,
    validate_num_variables,
    validate_solver,
)
from eigenpca.decompose import compute_eigendecomp
from eigenpca.errors import (
    DimensionMismatch,
    IndexOutOfRange,
    InsufficientData,
    InvalidConfiguration,
    NotSolved,
)
from eigenpca.state import AnalysisState

logger = logging.getLogger(__name__)


class PCA:
    """
    Principal Component Analysis over fixed-length numeric records.

    Configuration is injected at construction and can be changed with the
    setters; every setter validates eagerly and leaves the engine unchanged
    on failure. Results exist only after solve() or load().
    """

    def __init__(
        self,
        num_variables: Optional[int] = None,
        *,
        do_normalize: bool = False,
        solver: str = DEFAULT_SOLVER,
        do_bootstrap: bool = False,
        num_bootstraps: int = DEFAULT_BOOTSTRAPS,
        bootstrap_seed: int = DEFAULT_BOOTSTRAP_SEED,
        num_retained: Optional[int] = None,
    ):
        config = PCAConfig(
            num_variables=num_variables,
            do_normalize=do_normalize,
            solver=solver,
            do_bootstrap=do_bootstrap,
            num_bootstraps=num_bootstraps,
            bootstrap_seed=bootstrap_seed,
            num_retained=num_retained,
        ).validate()
        self._apply_config(config)
        self._records: List[np.ndarray] = []
        self._state: Optional[AnalysisState] = None

    @classmethod
    def from_config(cls, config: PCAConfig) -> 'PCA':
        config.validate()
        return cls(**config.to_dict())

    def _apply_config(self, config: PCAConfig) -> None:
        self._num_variables = None if config.num_variables is None else int(config.num_variables)
        self._do_normalize = bool(config.do_normalize)
        self._solver = config.solver
        self._do_bootstrap = bool(config.do_bootstrap)
        self._num_bootstraps = int(config.num_bootstraps)
        self._bootstrap_seed = int(config.bootstrap_seed)
        self._num_retained = None if config.num_retained is None else int(config.num_retained)

    @property
    def config(self) -> PCAConfig:
        """Snapshot of the current configuration."""
        return PCAConfig(
            num_variables=self._num_variables,
            do_normalize=self._do_normalize,
            solver=self._solver,
            do_bootstrap=self._do_bootstrap,
            num_bootstraps=self._num_bootstraps,
            bootstrap_seed=self._bootstrap_seed,
            num_retained=self._num_retained,
        )

    def __repr__(self) -> str:
        status = 'solved' if self.is_solved else 'unsolved'
        return (
            f"PCA(num_variables={self._num_variables}, "
            f"num_records={self.get_num_records()}, {status})"
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_num_variables(self, num_variables: int) -> None:
        num_variables = validate_num_variables(num_variables)
        if self._records:
            raise InvalidConfiguration(
                "num_variables cannot change after records have been added"
            )
        if self._state is not None and num_variables != self._state.means.size:
            raise InvalidConfiguration(
                f"num_variables={num_variables} does not match the solved "
                f"dimension {self._state.means.size}"
            )

        if self._num_retained is not None and self._num_retained > num_variables:
            raise InvalidConfiguration(
                f"num_retained={self._num_retained} exceeds num_variables={num_variables}"
            )
        self._num_variables = num_variables

    def get_num_variables(self) -> Optional[int]:
        return self._num_variables

    def set_do_normalize(self, do_normalize: bool) -> None:
        self._do_normalize = bool(do_normalize)

    def get_do_normalize(self) -> bool:
        return self._do_normalize

    def set_do_bootstrap(
        self,
        do_bootstrap: bool,
        num_bootstraps: int = DEFAULT_BOOTSTRAPS,
        seed: int = DEFAULT_BOOTSTRAP_SEED,
    ) -> None:
        num_bootstraps = validate_num_bootstraps(num_bootstraps)
        seed = validate_bootstrap_seed(seed)
        self._do_bootstrap = bool(do_bootstrap)
        self._num_bootstraps = num_bootstraps
        self._bootstrap_seed = seed

    def get_do_bootstrap(self) -> bool:
        return self._do_bootstrap

    def get_num_bootstraps(self) -> int:
        return self._num_bootstraps

    def get_bootstrap_seed(self) -> int:
        return self._bootstrap_seed

    def set_solver(self, solver: str) -> None:
        self._solver = validate_solver(solver)

    def get_solver(self) -> str:
        return self._solver

    def set_num_retained(self, num_retained: Optional[int]) -> None:
        """Limit projections to the leading components. None keeps all."""
        if num_retained is not None:
            if self._num_variables is None:
                raise InvalidConfiguration("set num_variables before num_retained")
            num_retained = validate_num_retained(num_retained, self._num_variables)
        self._num_retained = num_retained

    def get_num_retained(self) -> Optional[int]:
        """Retained components; equals num_variables when no reduction is set."""
        if self._num_retained is None:
            return self._num_variables
        return self._num_retained

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def add_record(self, record: Sequence[float]) -> None:
        if self._num_variables is None:
            raise DimensionMismatch(None, np.size(record))
        row = self._as_vector(record, self._num_variables)
        self._records.append(row)

    def get_num_records(self) -> int:
        return len(self._records)

    def get_record(self, index: int) -> np.ndarray:
        self._check_index(index, len(self._records), 'record')
        return self._records[index].copy()

    def _data_matrix(self) -> np.ndarray:
        return np.vstack(self._records)

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def solve(self) -> None:
        """
        Compute the decomposition of the accumulated records.

        Replaces any previous result. On failure the previous result
        (if any) is left untouched.
        """
        if self._num_variables is None:
            raise InvalidConfiguration("set num_variables before solving")

        N = len(self._records)
        if N < MIN_RECORDS:
            raise InsufficientData(
                f"need at least {MIN_RECORDS} records to solve, got {N}"
            )
        if N <= self._num_variables:
            logger.warning(
                f"Solving with {N} records for {self._num_variables} variables: "
                f"covariance matrix is rank-deficient"
            )

        data = self._data_matrix()
        result = compute_eigendecomp(
            data, normalize=self._do_normalize, solver=self._solver,
        )

        boot = None
        if self._do_bootstrap:
            boot = bootstrap_eigenvalues(
                data,
                count=self._num_bootstraps,
                seed=self._bootstrap_seed,
                normalize=self._do_normalize,
                solver=self._solver,
            )

        self._state = AnalysisState.from_result(result, boot)
        logger.info(
            f"Solved PCA: {N} records × {self._num_variables} variables, "
            f"solver={self._solver}, normalize={self._do_normalize}, "
            f"bootstraps={self._num_bootstraps if boot is not None else 0}, "
            f"energy={self._state.energy:.6g}"
        )

    @property
    def is_solved(self) -> bool:
        return self._state is not None

    def _solved_state(self) -> AnalysisState:
        if self._state is None:
            raise NotSolved()
        return self._state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_energy(self) -> float:
        return self._solved_state().energy

    def get_energy_boot(self) -> np.ndarray:
        """Energy of every bootstrap repetition; empty when bootstrap was off."""
        state = self._solved_state()
        if state.energy_boot is None:
            return np.empty(0)
        return state.energy_boot.copy()

    def get_eigenvalues(self) -> np.ndarray:
        return self._solved_state().eigenvalues.copy()

    def get_eigenvalue(self, index: int) -> float:
        state = self._solved_state()
        self._check_index(index, state.eigenvalues.size, 'eigenvalue')
        return float(state.eigenvalues[index])

    def get_eigenvalue_boot(self, index: int) -> np.ndarray:
        """Eigenvalue `index` across bootstrap repetitions; empty when bootstrap was off."""
        state = self._solved_state()
        self._check_index(index, state.eigenvalues.size, 'eigenvalue')
        if state.eigenvalues_boot is None:
            return np.empty(0)
        return state.eigenvalues_boot[:, index].copy()

    def get_eigenvector(self, index: int) -> np.ndarray:
        state = self._solved_state()
        self._check_index(index, state.eigenvectors.shape[1], 'eigenvector')
        return state.eigenvectors[:, index].copy()

    def get_principal(self, index: int) -> np.ndarray:
        state = self._solved_state()
        self._check_index(index, state.principal_components.shape[1], 'principal')
        return state.principal_components[:, index].copy()

    def get_mean_values(self) -> np.ndarray:
        return self._solved_state().means.copy()

    def get_sigma_values(self) -> Optional[np.ndarray]:
        """Column scales used by the solve, or None when it did not normalize."""
        sigmas = self._solved_state().sigmas
        return None if sigmas is None else sigmas.copy()

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def to_principal_space(self, record: Sequence[float]) -> np.ndarray:
        """Coordinates of `record` along the retained eigenvectors."""
        return self._project(record, self.get_num_retained())

    def to_variable_space(self, principal_record: Sequence[float]) -> np.ndarray:
        """
        Map principal coordinates back to a record.

        Accepts either num_variables or num_retained coordinates; only the
        leading num_retained take part, so the result is lossy when
        components are dropped.
        """
        state = self._solved_state()
        k = self.get_num_retained()
        coords = np.asarray(principal_record, dtype=np.float64).ravel()
        if coords.size not in (self._num_variables, k):
            raise DimensionMismatch(k, coords.size, what="principal record")
        return self._reconstruct(state, coords[:k], k)

    def _project(self, record: Sequence[float], k: int) -> np.ndarray:
        state = self._solved_state()
        column = self._as_vector(record, self._num_variables) - state.means
        if state.sigmas is not None:
            column = column / state.sigmas
        return column @ state.eigenvectors[:, :k]

    @staticmethod
    def _reconstruct(state: AnalysisState, coords: np.ndarray, k: int) -> np.ndarray:
        column = coords @ state.eigenvectors[:, :k].T
        if state.sigmas is not None:
            column = column * state.sigmas
        return column + state.means

    # ------------------------------------------------------------------
    # Accuracy checks
    # ------------------------------------------------------------------

    def check_eigenvectors_orthogonal(self) -> float:
        """
        Fraction of orthonormality checks that pass.

        Checks every distinct pair for a zero dot product and every vector
        for unit norm. 1.0 means fully orthonormal.
        """
        vectors = self._solved_state().eigenvectors
        tol = CONFIG['tolerance']['orthogonality']
        gram = vectors.T @ vectors
        n = gram.shape[0]

        upper = np.triu_indices(n, k=1)
        pairs_ok = np.abs(gram[upper]) <= tol
        norms_ok = np.abs(np.sqrt(np.diag(gram)) - 1.0) <= tol

        total = pairs_ok.size + norms_ok.size
        return float((pairs_ok.sum() + norms_ok.sum()) / total)

    def check_projection_accurate(self) -> float:
        """
        Fraction of stored records that survive a full round trip.

        Uses every component regardless of num_retained: this checks the
        decomposition, not the reduction.
        """
        state = self._solved_state()
        if not self._records:
            raise InsufficientData("no stored records to check; projections need records")
        tol = CONFIG['tolerance']['projection']
        k = self._num_variables

        passed = 0
        for record in self._records:
            restored = self._reconstruct(state, self._project(record, k), k)
            scale = max(1.0, float(np.max(np.abs(record))))
            if np.max(np.abs(restored - record)) <= tol * scale:
                passed += 1
        return passed / len(self._records)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, prefix: Union[str, Path]) -> List[Path]:
        """Write results under `prefix`. Returns the paths written."""
        from eigenpca.persistence import write_artifacts
        return write_artifacts(prefix, self.config, self._solved_state())

    def load(self, prefix: Union[str, Path]) -> None:
        """
        Replace configuration and results with those saved under `prefix`.

        Stored records are discarded; they are not part of the saved state.
        """
        from eigenpca.persistence import read_artifacts
        config, state = read_artifacts(prefix)
        self._apply_config(config)
        self._records = []
        self._state = state

    # ------------------------------------------------------------------
    # Equality
    # ------------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, PCA):
            return NotImplemented
        if self.config != other.config:
            return False
        if self._state is None or other._state is None:
            return self._state is None and other._state is None
        return self._state.is_close(other._state, CONFIG['tolerance']['equality'])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _as_vector(values: Sequence[float], expected: int) -> np.ndarray:
        vector = np.array(values, dtype=np.float64).ravel()
        if vector.size != expected:
            raise DimensionMismatch(expected, vector.size)
        return vector

    @staticmethod
    def _check_index(index: int, size: int, what: str) -> None:
        if not 0 <= index < size:
            raise IndexOutOfRange(index, size, what=what)
