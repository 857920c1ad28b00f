"""Tests for flattening PCA results to rows."""
import numpy as np
import pytest


@pytest.fixture
def solved():
    from eigenpca import PCA
    np.random.seed(42)
    pca = PCA(4, do_bootstrap=True, num_bootstraps=10)
    for record in np.random.randn(30, 4) * np.array([4.0, 2.0, 1.0, 0.5]):
        pca.add_record(record)
    pca.solve()
    return pca


class TestFlattenResult:

    def test_keys(self, solved):
        from eigenpca.flatten import flatten_result
        row = flatten_result(solved, max_eigenvalues=3)
        assert row['num_variables'] == 4
        assert row['num_records'] == 30
        for i in range(3):
            assert f'eigenvalue_{i}' in row
            assert f'cumulative_energy_{i}' in row
            assert f'eigenvalue_{i}_sigma' in row
        assert 'eigenvalue_3' not in row
        assert 'energy_sigma' in row

    def test_all_scalars(self, solved):
        from eigenpca.flatten import flatten_result
        for value in flatten_result(solved).values():
            assert isinstance(value, (int, float))

    def test_cumulative_energy(self, solved):
        from eigenpca.flatten import flatten_result
        row = flatten_result(solved, max_eigenvalues=4)
        assert row['cumulative_energy_0'] == pytest.approx(row['eigenvalue_0'])
        assert row['cumulative_energy_3'] == pytest.approx(1.0)

    def test_energy_sigma(self, solved):
        from eigenpca.flatten import flatten_result
        row = flatten_result(solved)
        assert row['energy_sigma'] == pytest.approx(np.std(solved.get_energy_boot(), ddof=1))

    def test_no_bootstrap_no_sigma(self):
        from eigenpca import PCA
        from eigenpca.flatten import flatten_result
        np.random.seed(0)
        pca = PCA(3)
        for record in np.random.randn(10, 3):
            pca.add_record(record)
        pca.solve()
        row = flatten_result(pca)
        assert 'energy_sigma' not in row
        assert 'eigenvalue_0_sigma' not in row
        assert 'eigenvalue_2' in row

    def test_unsolved(self):
        from eigenpca import PCA
        from eigenpca.errors import NotSolved
        from eigenpca.flatten import flatten_result
        with pytest.raises(NotSolved):
            flatten_result(PCA(3))

    def test_batch(self, solved):
        from eigenpca.flatten import flatten_batch
        rows = flatten_batch([solved, solved], max_eigenvalues=2)
        assert len(rows) == 2
        assert rows[0] == rows[1]
