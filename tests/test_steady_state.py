import numpy as np
import pytest

from mriquant.steady_state import geometric_avg, solve_steady_state


def _augmented(a, b):
    a = np.asarray(a, dtype=float)
    n = a.shape[0]
    x = np.zeros((n + 1, n + 1))
    x[:n, :n] = a
    x[:n, n] = b
    x[n, n] = 1.0
    return x


@pytest.fixture
def system():
    a = np.array([[0.5, 0.1, 0.0], [0.0, 0.7, 0.2], [0.1, 0.0, 0.3]])
    b = np.array([0.2, -0.1, 0.6])
    return _augmented(a, b)


def test_steady_state_is_fixed_point(system):
    m = solve_steady_state(system)
    np.testing.assert_allclose(system @ m, m, atol=1e-12)


def test_steady_state_last_entry_is_one(system):
    m = solve_steady_state(system)
    assert m.shape == (4,)
    assert m[-1] == 1.0


def test_steady_state_scalar_relaxation():
    # Mz -> E*Mz + (1 - E) has fixed point 1
    e = 0.3
    m = solve_steady_state([[e, 1 - e], [0.0, 1.0]])
    np.testing.assert_allclose(m, [1.0, 1.0])


def test_steady_state_rejects_non_square():
    with pytest.raises(ValueError):
        solve_steady_state(np.zeros((3, 4)))


def test_geometric_avg_one_step_returns_start(system):
    a = np.array([0.3, 0.4, 0.5, 1.0])
    result = geometric_avg(system, system, a, 1)
    np.testing.assert_allclose(result, a[:3], atol=1e-12)


@pytest.mark.parametrize("n", [2, 5, 17])
def test_geometric_avg_matches_mean_of_trajectory(system, n):
    a = np.array([0.1, -0.2, 0.9, 1.0])
    xn = np.linalg.matrix_power(system, n)
    trajectory = [np.linalg.matrix_power(system, k) @ a for k in range(n)]
    expected = np.mean(trajectory, axis=0)[:3]
    np.testing.assert_allclose(geometric_avg(system, xn, a, n), expected, atol=1e-12)


def test_geometric_avg_at_steady_state_is_steady_state(system):
    m = solve_steady_state(system)
    xn = np.linalg.matrix_power(system, 8)
    np.testing.assert_allclose(geometric_avg(system, xn, m, 8), m[:3], atol=1e-12)


def test_geometric_avg_rejects_wrong_vector_length(system):
    with pytest.raises(ValueError):
        geometric_avg(system, system, [1.0, 1.0], 1)


def test_geometric_avg_rejects_non_positive_n(system):
    with pytest.raises(ValueError):
        geometric_avg(system, system, [0.0, 0.0, 0.0, 1.0], 0)