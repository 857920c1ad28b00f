"""
Flatten PCA results to table-ready rows.

A solved PCA holds arrays (eigenvalues, bootstrap repetitions). This
module flattens them into a single dict of scalars, one row per engine,
suitable for a DataFrame or CSV.
"""

from typing import Dict, List, Union

import numpy as np

from eigenpca.utils import get_sigma


def flatten_result(pca, max_eigenvalues: int = 5) -> Dict[str, Union[int, float]]:
    """
    Flatten a solved PCA to scalar key-value pairs.

    Parameters
    ----------
    pca : PCA
        A solved (or loaded) engine.
    max_eigenvalues : int
        Number of leading eigenvalues to include.

    Returns
    -------
    dict with num_variables, num_records, energy, eigenvalue_{i},
    cumulative_energy_{i}, and when bootstrap results exist
    eigenvalue_{i}_sigma and energy_sigma.
    """
    eigenvalues = pca.get_eigenvalues()
    energy_boot = pca.get_energy_boot()
    n_out = min(max_eigenvalues, len(eigenvalues))

    row = {
        'num_variables': int(pca.get_num_variables()),
        'num_records': int(pca.get_principal(0).size),
        'energy': float(pca.get_energy()),
    }

    # Eigenvalues
    for i in range(n_out):
        row[f'eigenvalue_{i}'] = float(eigenvalues[i])

    # Cumulative explained energy
    cumulative = np.cumsum(eigenvalues)
    for i in range(n_out):
        row[f'cumulative_energy_{i}'] = float(cumulative[i])

    # Bootstrap spread
    if energy_boot.size:
        for i in range(n_out):
            row[f'eigenvalue_{i}_sigma'] = get_sigma(pca.get_eigenvalue_boot(i))
        row['energy_sigma'] = get_sigma(energy_boot)

    return row


def flatten_batch(pcas: list, max_eigenvalues: int = 5) -> List[Dict[str, Union[int, float]]]:
    """Flatten a list of solved engines."""
    return [flatten_result(p, max_eigenvalues) for p in pcas]
