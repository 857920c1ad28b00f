"""Tests for the PCA engine."""
import logging

import numpy as np
import pytest

FEPS = float(np.finfo(np.float32).eps)

RECORDS = [
    [1, 2.5, 42, 7],
    [3, 4.2, 90, 7],
    [456, 444, 0, 7],
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def add_records(pca, records=RECORDS):
    for record in records:
        pca.add_record(record)


@pytest.fixture
def solved():
    """The three-record scenario, solved with defaults."""
    from eigenpca import PCA
    pca = PCA(4)
    add_records(pca)
    pca.solve()
    return pca


@pytest.fixture
def correlated_records():
    """200 records, 5 variables, two strong latent directions plus noise."""
    np.random.seed(42)
    n = 200
    latent = np.random.randn(n, 2) * np.array([5.0, 2.0])
    mixing = np.random.randn(2, 5)
    return latent @ mixing + np.random.randn(n, 5) * 0.5 + np.array([10, -3, 0, 4, 100])


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfiguration:

    @pytest.mark.parametrize("n", [2, 3, 5, 100])
    def test_num_variables_valid(self, n):
        from eigenpca import PCA
        pca = PCA()
        pca.set_num_variables(n)
        assert pca.get_num_variables() == n
        assert PCA(n).get_num_variables() == n

    @pytest.mark.parametrize("n", [-1, 0, 1])
    def test_num_variables_invalid(self, n):
        from eigenpca import PCA
        from eigenpca.errors import InvalidConfiguration
        with pytest.raises(InvalidConfiguration):
            PCA().set_num_variables(n)
        with pytest.raises(InvalidConfiguration):
            PCA(n)

    def test_num_variables_fixed_after_records(self):
        from eigenpca import PCA
        from eigenpca.errors import InvalidConfiguration
        pca = PCA(4)
        pca.add_record(RECORDS[0])
        with pytest.raises(InvalidConfiguration):
            pca.set_num_variables(5)
        assert pca.get_num_variables() == 4

    def test_normalize_default_off(self):
        from eigenpca import PCA
        pca = PCA()
        assert pca.get_do_normalize() is False
        pca.set_do_normalize(True)
        assert pca.get_do_normalize() is True

    def test_bootstrap_defaults(self):
        from eigenpca import PCA
        pca = PCA()
        assert pca.get_do_bootstrap() is False
        pca.set_do_bootstrap(True)
        assert pca.get_do_bootstrap() is True
        assert pca.get_num_bootstraps() == 30
        assert pca.get_bootstrap_seed() == 1

    def test_bootstrap_too_few(self):
        from eigenpca import PCA
        from eigenpca.errors import InvalidConfiguration
        pca = PCA()
        with pytest.raises(InvalidConfiguration):
            pca.set_do_bootstrap(True, 9, 1)
        assert pca.get_do_bootstrap() is False
        assert pca.get_num_bootstraps() == 30

    def test_solver(self):
        from eigenpca import PCA
        pca = PCA()
        assert pca.get_solver() == 'dc'
        pca.set_solver('standard')
        assert pca.get_solver() == 'standard'
        pca.set_solver('dc')
        assert pca.get_solver() == 'dc'

    def test_solver_unknown(self):
        from eigenpca import PCA
        from eigenpca.errors import UnsupportedOption
        pca = PCA()
        with pytest.raises(UnsupportedOption):
            pca.set_solver('java_sucks')
        assert pca.get_solver() == 'dc'

    def test_num_retained(self):
        from eigenpca import PCA
        from eigenpca.errors import InvalidConfiguration
        pca = PCA(4)
        assert pca.get_num_retained() == 4
        pca.set_num_retained(2)
        assert pca.get_num_retained() == 2
        with pytest.raises(InvalidConfiguration):
            pca.set_num_retained(5)
        with pytest.raises(InvalidConfiguration):
            pca.set_num_retained(0)
        pca.set_num_retained(None)
        assert pca.get_num_retained() == 4

    def test_from_config(self):
        from eigenpca import PCA, PCAConfig
        config = PCAConfig(num_variables=3, do_normalize=True, solver='standard')
        pca = PCA.from_config(config)
        assert pca.get_num_variables() == 3
        assert pca.get_do_normalize() is True
        assert pca.get_solver() == 'standard'
        assert pca.config == config


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class TestRecords:

    def test_add_record(self):
        from eigenpca import PCA
        pca = PCA(4)
        add_records(pca)
        assert pca.get_num_records() == 3
        for i, record in enumerate(RECORDS):
            np.testing.assert_array_equal(pca.get_record(i), record)

    def test_wrong_length_rejected(self):
        from eigenpca import PCA
        from eigenpca.errors import DimensionMismatch
        pca = PCA(4)
        add_records(pca)
        with pytest.raises(DimensionMismatch):
            pca.add_record([4, 8, 7])
        with pytest.raises(DimensionMismatch):
            pca.add_record([1, 2, 3, 4, 5])
        assert pca.get_num_records() == 3

    def test_record_is_copied(self):
        from eigenpca import PCA
        pca = PCA(2)
        record = np.array([1.0, 2.0])
        pca.add_record(record)
        record[0] = 99.0
        assert pca.get_record(0)[0] == 1.0

    def test_get_record_bad_index(self):
        from eigenpca import PCA
        from eigenpca.errors import IndexOutOfRange
        pca = PCA(4)
        add_records(pca)
        with pytest.raises(IndexOutOfRange):
            pca.get_record(3)

    def test_add_record_without_num_variables(self):
        from eigenpca import PCA
        from eigenpca.errors import DimensionMismatch
        pca = PCA()
        with pytest.raises(DimensionMismatch) as exc:
            pca.add_record([1, 2])
        assert exc.value.expected is None
        assert pca.get_num_records() == 0


# ---------------------------------------------------------------------------
# Solve
# ---------------------------------------------------------------------------

class TestSolve:

    def test_too_few_records(self):
        from eigenpca import PCA
        from eigenpca.errors import InsufficientData
        pca = PCA(4)
        pca.add_record(RECORDS[0])
        with pytest.raises(InsufficientData):
            pca.solve()
        assert not pca.is_solved

    def test_no_records(self):
        from eigenpca import PCA
        from eigenpca.errors import InsufficientData
        with pytest.raises(InsufficientData):
            PCA(4).solve()

    def test_rank_deficient_warns(self, caplog):
        from eigenpca import PCA
        pca = PCA(4)
        add_records(pca)
        with caplog.at_level(logging.WARNING, logger='eigenpca.engine'):
            pca.solve()
        assert 'rank-deficient' in caplog.text

    def test_queries_before_solve(self):
        from eigenpca import PCA
        from eigenpca.errors import NotSolved
        pca = PCA(4)
        add_records(pca)
        for query in (pca.get_energy, pca.get_eigenvalues, pca.check_eigenvectors_orthogonal):
            with pytest.raises(NotSolved):
                query()
        with pytest.raises(NotSolved):
            pca.get_eigenvector(0)
        with pytest.raises(NotSolved):
            pca.to_principal_space(RECORDS[0])

    def test_eigenvalues(self, solved):
        expected = [9.95745538e-01, 4.25446249e-03, 0, 0]
        np.testing.assert_allclose(solved.get_eigenvalues(), expected, atol=FEPS)

    def test_eigenvalues_descending_non_negative(self, solved):
        eigs = solved.get_eigenvalues()
        assert np.all(np.diff(eigs) <= 0)
        assert np.all(eigs >= 0)

    def test_energy(self, solved):
        assert solved.get_energy() == pytest.approx(135459.19666667, abs=FEPS)

    def test_eigenvectors(self, solved):
        np.testing.assert_allclose(
            solved.get_eigenvector(0), [0.7136892, 0.69270403, -0.10396568, 0], atol=1e-6,
        )
        np.testing.assert_allclose(
            solved.get_eigenvector(1), [0.07711363, 0.06982266, 0.99457442, 0], atol=1e-6,
        )

    def test_constant_column_gives_basis_vector(self, solved):
        # Fourth variable is constant: zero eigenvalue, eigenvector e4 ahead
        # of the null direction left by having only three records
        np.testing.assert_array_equal(solved.get_eigenvector(2), [0, 0, 0, 1])
        assert solved.get_eigenvalue(2) == 0.0
        np.testing.assert_array_equal(solved.get_principal(2), [0, 0, 0])
        np.testing.assert_allclose(
            solved.get_eigenvector(3), [-0.69620487, 0.71783419, 0.00358524, 0], atol=1e-6,
        )
        assert solved.get_eigenvalue(3) == 0.0


    def test_principals(self, solved):
        np.testing.assert_allclose(
            solved.get_principal(0), [-2.10846198e+02, -2.13231575e+02, 4.24077773e+02], rtol=1e-6,
        )
        np.testing.assert_allclose(
            solved.get_principal(1), [-2.40512596e+01, 2.39612385e+01, 9.00211615e-02], atol=1e-5,
        )

    def test_index_out_of_range(self, solved):
        from eigenpca.errors import IndexOutOfRange
        for getter in (solved.get_eigenvalue, solved.get_eigenvector, solved.get_principal):
            with pytest.raises(IndexOutOfRange):
                getter(4)
            with pytest.raises(IndexOutOfRange):
                getter(-1)

    def test_getters_return_copies(self, solved):
        vector = solved.get_eigenvector(0)
        vector[:] = 0
        assert np.linalg.norm(solved.get_eigenvector(0)) == pytest.approx(1.0)

    @pytest.mark.parametrize("solver", ['dc', 'standard'])
    def test_solve_idempotent(self, correlated_records, solver):
        from eigenpca import PCA
        pca = PCA(5, solver=solver)
        add_records(pca, correlated_records)
        pca.solve()
        first_values = pca.get_eigenvalues()
        first_vectors = [pca.get_eigenvector(i) for i in range(5)]
        pca.solve()
        np.testing.assert_allclose(pca.get_eigenvalues(), first_values, atol=1e-14)
        for i in range(5):
            np.testing.assert_allclose(pca.get_eigenvector(i), first_vectors[i], atol=1e-12)

    def test_resolve_with_more_data(self, correlated_records):
        from eigenpca import PCA
        pca = PCA(5)
        add_records(pca, correlated_records[:100])
        pca.solve()
        assert pca.get_principal(0).size == 100
        add_records(pca, correlated_records[100:])
        assert pca.get_principal(0).size == 100
        pca.solve()
        assert pca.get_principal(0).size == 200

    def test_failed_solve_keeps_previous_state(self, solved):
        from eigenpca.errors import DegenerateColumn
        energy = solved.get_energy()
        solved.set_do_normalize(True)
        with pytest.raises(DegenerateColumn):
            solved.solve()
        assert solved.get_energy() == energy
        assert solved.get_sigma_values() is None


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

class TestBootstrap:

    def test_bootstrap_counts(self):
        from eigenpca import PCA
        pca = PCA(4)
        add_records(pca)
        pca.set_do_bootstrap(True, 10, 1)
        pca.solve()
        for i in range(4):
            assert pca.get_eigenvalue_boot(i).size == 10
        assert pca.get_energy_boot().size == 10

    def test_bootstrap_off_is_empty(self, solved):
        assert solved.get_energy_boot().size == 0
        assert solved.get_eigenvalue_boot(0).size == 0

    def test_bootstrap_reproducible(self, correlated_records):
        from eigenpca import PCA
        runs = []
        for _ in range(2):
            pca = PCA(5, do_bootstrap=True, num_bootstraps=12, bootstrap_seed=3)
            add_records(pca, correlated_records)
            pca.solve()
            runs.append(pca.get_energy_boot())
        np.testing.assert_array_equal(runs[0], runs[1])

    def test_bootstrap_does_not_change_main_result(self, correlated_records):
        from eigenpca import PCA
        plain = PCA(5)
        boot = PCA(5, do_bootstrap=True, num_bootstraps=10)
        add_records(plain, correlated_records)
        add_records(boot, correlated_records)
        plain.solve()
        boot.solve()
        np.testing.assert_array_equal(plain.get_eigenvalues(), boot.get_eigenvalues())
        assert plain.get_energy() == boot.get_energy()

    def test_resampling_decorrelates(self):
        from eigenpca import PCA
        np.random.seed(42)
        latent = np.random.randn(200, 1)
        records = latent + np.random.randn(200, 5) * 0.1
        pca = PCA(5, do_bootstrap=True, num_bootstraps=20)
        add_records(pca, records)
        pca.solve()
        # Independent column resampling destroys the shared latent direction
        assert pca.get_eigenvalue(0) > 0.95
        assert np.mean(pca.get_eigenvalue_boot(0)) < 0.5


# ---------------------------------------------------------------------------
# Projections and checks
# ---------------------------------------------------------------------------

class TestProjections:

    @pytest.mark.parametrize("solver", ['dc', 'standard'])
    def test_check_projection_accurate(self, solver):
        from eigenpca import PCA
        pca = PCA(4, solver=solver)
        add_records(pca)
        pca.solve()
        assert pca.check_projection_accurate() == pytest.approx(1.0, abs=FEPS)

    def test_check_eigenvectors_orthogonal(self, solved):
        assert solved.check_eigenvectors_orthogonal() == pytest.approx(1.0, abs=FEPS)

    def test_round_trip(self, solved):
        for i in range(3):
            record = solved.get_record(i)
            principal = solved.to_principal_space(record)
            np.testing.assert_allclose(solved.to_variable_space(principal), record, atol=1e-9)

    def test_principal_space_matches_principals(self, solved):
        principal = solved.to_principal_space(RECORDS[0])
        expected = [solved.get_principal(i)[0] for i in range(4)]
        np.testing.assert_allclose(principal, expected, atol=1e-9)

    def test_round_trip_normalized(self, correlated_records):
        from eigenpca import PCA
        pca = PCA(5, do_normalize=True)
        add_records(pca, correlated_records)
        pca.solve()
        assert pca.get_sigma_values() is not None
        assert pca.check_projection_accurate() == 1.0
        record = correlated_records[7]
        np.testing.assert_allclose(
            pca.to_variable_space(pca.to_principal_space(record)), record, rtol=1e-10, atol=1e-9,
        )

    def test_wrong_length(self, solved):
        from eigenpca.errors import DimensionMismatch
        with pytest.raises(DimensionMismatch):
            solved.to_principal_space([1, 2, 3])
        with pytest.raises(DimensionMismatch):
            solved.to_variable_space([1, 2, 3, 4, 5])

    def test_truncated_projection_is_lossy(self, correlated_records):
        from eigenpca import PCA
        pca = PCA(5, num_retained=2)
        add_records(pca, correlated_records)
        pca.solve()
        record = correlated_records[0]
        principal = pca.to_principal_space(record)
        assert principal.shape == (2,)
        restored = pca.to_variable_space(principal)
        assert restored.shape == (5,)
        assert not np.allclose(restored, record, atol=1e-6)

        # Two latent directions carry most of the variance
        restored_all = np.array([
            pca.to_variable_space(pca.to_principal_space(r)) for r in correlated_records
        ])
        residual = np.sum((restored_all - correlated_records) ** 2)
        total = np.sum((correlated_records - pca.get_mean_values()) ** 2)
        assert residual / total < 0.05

    def test_truncated_accepts_full_coordinates(self, correlated_records):
        from eigenpca import PCA
        pca = PCA(5)
        add_records(pca, correlated_records)
        pca.solve()
        full = pca.to_principal_space(correlated_records[0])
        pca.set_num_retained(2)
        np.testing.assert_allclose(
            pca.to_variable_space(full), pca.to_variable_space(full[:2]), atol=1e-12,
        )

    def test_checks_ignore_truncation(self, correlated_records):
        from eigenpca import PCA
        pca = PCA(5, num_retained=1)
        add_records(pca, correlated_records)
        pca.solve()
        assert pca.check_projection_accurate() == 1.0

    def test_orthogonality_score_partial(self, solved):
        # Stretch one vector: only its norm check fails (9 of 10 pass)
        solved._state.eigenvectors[:, 0] *= 2.0
        assert solved.check_eigenvectors_orthogonal() == pytest.approx(0.9)


# ---------------------------------------------------------------------------
# Equality
# ---------------------------------------------------------------------------

class TestEquality:

    def test_unsolved_engines_equal(self):
        from eigenpca import PCA
        assert PCA(4) == PCA(4)
        assert PCA(4) != PCA(5)

    def test_same_data_equal(self):
        from eigenpca import PCA
        a, b = PCA(4), PCA(4)
        add_records(a)
        add_records(b)
        a.solve()
        b.solve()
        assert a == b

    def test_config_difference(self, solved):
        from eigenpca import PCA
        other = PCA(4, solver='standard')
        add_records(other)
        other.solve()
        assert solved != other

    def test_solved_vs_unsolved(self, solved):
        from eigenpca import PCA
        assert solved != PCA(4)
