"""
PCA Configuration
=================
Tolerances, solver table and the engine configuration record.
Single source of truth for every threshold the engine uses.

Usage:
    from eigenpca.config import CONFIG, PCAConfig
    tol = CONFIG['tolerance']['orthogonality']

    config = PCAConfig.from_yaml('pca.yaml')
    pca = PCA.from_config(config)
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from eigenpca.errors import InvalidConfiguration, UnsupportedOption


# Solver name → scipy.linalg.eigh driver.
# 'ev'  = classical symmetric QR iteration
# 'evd' = divide-and-conquer
SOLVERS: Dict[str, str] = {
    'standard': 'ev',
    'dc': 'evd',
}

DEFAULT_SOLVER = 'dc'
MIN_VARIABLES = 2
MIN_RECORDS = 2
MIN_BOOTSTRAPS = 10
DEFAULT_BOOTSTRAPS = 30
DEFAULT_BOOTSTRAP_SEED = 1


CONFIG = {

    # =================================================================
    # Accuracy checks
    # =================================================================
    'tolerance': {
        'orthogonality': 1e-10,   # |v_i·v_j| and |‖v_i‖ − 1|
        'projection': 1e-8,       # relative, per reconstructed record
        'equality': 1e-10,        # state comparison between engines
    },

    # =================================================================
    # Decomposition
    # =================================================================
    'decompose': {
        'null_eigenvalue': 1e-12,  # relative to the largest; at or below → exactly 0
    },

    # =================================================================
    # Normalization
    # =================================================================
    'normalize': {
        'degenerate_rms': 1e-15,  # column RMS at or below → DegenerateColumn
    },

    # =================================================================
    # Persistence
    # =================================================================
    'persistence': {
        'float_format': '%.18e',  # lossless for float64
    },
}


@dataclass
class PCAConfig:
    """
    Engine configuration. Everything the engine needs besides the records.

    num_retained=None means every component takes part in projections.
    """
    num_variables: Optional[int] = None
    do_normalize: bool = False
    solver: str = DEFAULT_SOLVER
    do_bootstrap: bool = False
    num_bootstraps: int = DEFAULT_BOOTSTRAPS
    bootstrap_seed: int = DEFAULT_BOOTSTRAP_SEED
    num_retained: Optional[int] = None

    def validate(self) -> 'PCAConfig':
        """Raise on the first invalid field. Returns self for chaining."""
        if self.num_variables is not None:
            validate_num_variables(self.num_variables)
        validate_solver(self.solver)
        validate_num_bootstraps(self.num_bootstraps)
        validate_bootstrap_seed(self.bootstrap_seed)
        if self.num_retained is not None:
            if self.num_variables is None:
                raise InvalidConfiguration(
                    "num_retained requires num_variables to be set"
                )
            validate_num_retained(self.num_retained, self.num_variables)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PCAConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data).validate()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'PCAConfig':
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise InvalidConfiguration(f"{path}: expected a mapping, got {type(data).__name__}")
        return cls.from_dict(data)

    def to_yaml(self, path: Union[str, Path]) -> None:
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


# ---------------------------------------------------------------------------
# Field validators, shared by PCAConfig and the engine setters
# ---------------------------------------------------------------------------

def validate_num_variables(n: int) -> int:
    if n < MIN_VARIABLES:
        raise InvalidConfiguration(
            f"num_variables must be at least {MIN_VARIABLES}, got {n}"
        )
    return int(n)


def validate_solver(name: str) -> str:
    if name not in SOLVERS:
        raise UnsupportedOption(
            f"Unknown solver: {name!r}. Available: {sorted(SOLVERS)}"
        )
    return name


def validate_num_bootstraps(count: int) -> int:
    if count < MIN_BOOTSTRAPS:
        raise InvalidConfiguration(
            f"num_bootstraps must be at least {MIN_BOOTSTRAPS}, got {count}"
        )
    return int(count)


def validate_num_retained(k: int, num_variables: int) -> int:
    if not 1 <= k <= num_variables:
        raise InvalidConfiguration(
            f"num_retained must be in [1, {num_variables}], got {k}"
        )
    return int(k)


def validate_bootstrap_seed(seed: int) -> int:
    if seed < 0:
        raise InvalidConfiguration(f"bootstrap_seed must be non-negative, got {seed}")
    return int(seed)
