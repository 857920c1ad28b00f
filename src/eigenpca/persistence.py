"""
Save and load a solved PCA as a set of files sharing one prefix.

    <prefix>.pca         YAML manifest: configuration + num_records
    <prefix>.mean        column means
    <prefix>.sigma       column scales (normalized solves only)
    <prefix>.eigval      eigenvalues
    <prefix>.eigvec      eigenvectors, one per column
    <prefix>.princomp    principal components, one record per row
    <prefix>.energy      total energy
    <prefix>.eigvalboot  bootstrap eigenvalues, one repetition per row
    <prefix>.energyboot  bootstrap energies

Numeric files are plain text written with numpy.savetxt.
The manifest decides which numeric files load() requires.
"""

import logging
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np
import yaml

from eigenpca.config import PCAConfig
from eigenpca.errors import FileAccessError, MissingFile, PCAError
from eigenpca.state import AnalysisState
from eigenpca.utils import read_matrix_object, write_matrix_object

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = '.pca'


def artifact_path(prefix: Union[str, Path], suffix: str) -> Path:
    return Path(f"{prefix}{suffix}")


def required_suffixes(do_normalize: bool, do_bootstrap: bool) -> List[str]:
    """Numeric artifacts a save with these flags produces, manifest excluded."""
    suffixes = ['.mean', '.eigval', '.eigvec', '.princomp', '.energy']
    if do_normalize:
        suffixes.append('.sigma')
    if do_bootstrap:
        suffixes.extend(['.eigvalboot', '.energyboot'])
    return suffixes


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------

def write_artifacts(
    prefix: Union[str, Path],
    config: PCAConfig,
    state: AnalysisState,
) -> List[Path]:
    """
    Write config + state under `prefix`. Returns the paths written.

    The manifest records what the state actually holds, so a result solved
    with normalization stays normalized on reload even if the setter was
    flipped afterwards.
    """
    manifest = config.to_dict()
    manifest['do_normalize'] = state.normalized
    manifest['do_bootstrap'] = state.bootstrapped
    if state.bootstrapped:
        manifest['num_bootstraps'] = int(state.eigenvalues_boot.shape[0])
    manifest['num_records'] = state.num_records

    arrays = {
        '.mean': state.means,
        '.eigval': state.eigenvalues,
        '.eigvec': state.eigenvectors,
        '.princomp': state.principal_components,
        '.energy': state.energy,
    }
    if state.normalized:
        arrays['.sigma'] = state.sigmas
    if state.bootstrapped:
        arrays['.eigvalboot'] = state.eigenvalues_boot
        arrays['.energyboot'] = state.energy_boot

    written = []
    for suffix, data in arrays.items():
        path = artifact_path(prefix, suffix)
        write_matrix_object(path, data)
        written.append(path)

    manifest_path = artifact_path(prefix, MANIFEST_SUFFIX)
    try:
        with open(manifest_path, 'w') as f:
            yaml.dump(manifest, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise FileAccessError(f"cannot write {manifest_path}: {e}") from e
    written.append(manifest_path)

    logger.info(f"Saved PCA results to {prefix}.* ({len(written)} files)")
    return written


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------

def read_manifest(prefix: Union[str, Path]) -> Tuple[PCAConfig, int]:
    path = artifact_path(prefix, MANIFEST_SUFFIX)
    if not path.exists():
        raise MissingFile(f"file does not exist: {path}")
    try:
        with open(path) as f:
            manifest = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise FileAccessError(f"cannot read {path}: {e}") from e

    if not isinstance(manifest, dict) or 'num_records' not in manifest:
        raise FileAccessError(f"malformed manifest: {path}")

    manifest = dict(manifest)
    num_records = int(manifest.pop('num_records'))
    try:
        config = PCAConfig.from_dict(manifest)
    except (PCAError, TypeError) as e:
        raise FileAccessError(f"invalid manifest {path}: {e}") from e
    if config.num_variables is None:
        raise FileAccessError(f"manifest {path} has no num_variables")
    return config, num_records


def read_artifacts(prefix: Union[str, Path]) -> Tuple[PCAConfig, AnalysisState]:
    """Read back what write_artifacts wrote. Nothing is returned on partial failure."""
    config, num_records = read_manifest(prefix)
    D = config.num_variables

    for suffix in required_suffixes(config.do_normalize, config.do_bootstrap):
        path = artifact_path(prefix, suffix)
        if not path.exists():
            raise MissingFile(f"file does not exist: {path}")

    def vector(suffix):
        return read_matrix_object(artifact_path(prefix, suffix), ndmin=1)

    def matrix(suffix):
        return read_matrix_object(artifact_path(prefix, suffix), ndmin=2)

    state = AnalysisState(
        eigenvalues=vector('.eigval'),
        eigenvectors=matrix('.eigvec'),
        principal_components=matrix('.princomp'),
        energy=float(vector('.energy')[0]),
        means=vector('.mean'),
        sigmas=vector('.sigma') if config.do_normalize else None,
        num_records=num_records,
        eigenvalues_boot=matrix('.eigvalboot') if config.do_bootstrap else None,
        energy_boot=vector('.energyboot') if config.do_bootstrap else None,
    )

    _check_shapes(prefix, state, D, config.num_bootstraps)
    logger.info(f"Loaded PCA results from {prefix}.*")
    return config, state


def _check_shapes(prefix, state: AnalysisState, D: int, count: int) -> None:
    expected = {
        '.eigval': (state.eigenvalues, (D,)),
        '.eigvec': (state.eigenvectors, (D, D)),
        '.princomp': (state.principal_components, (state.num_records, D)),
        '.mean': (state.means, (D,)),
    }
    if state.normalized:
        expected['.sigma'] = (state.sigmas, (D,))
    if state.bootstrapped:
        expected['.eigvalboot'] = (state.eigenvalues_boot, (count, D))
        expected['.energyboot'] = (state.energy_boot, (count,))

    for suffix, (data, shape) in expected.items():
        if np.shape(data) != shape:
            raise FileAccessError(
                f"{artifact_path(prefix, suffix)} has shape {np.shape(data)}, expected {shape}"
            )


def load(prefix: Union[str, Path]):
    """Build a fresh PCA from results saved under `prefix`."""
    from eigenpca.engine import PCA

    pca = PCA()
    pca.load(prefix)
    return pca
