"""Tests for Baum-Welch EM algorithm."""

import warnings

import jax.numpy as jnp
import numpy as np
import pytest

from gausshmm.errors import (
    DegenerateNormalization,
    DegenerateState,
    InvalidDimension,
    InvalidParameter,
)
from gausshmm.config import EMConfig
from gausshmm.hmm.baum_welch import (
    baum_welch, estimate, init_params, run_em, update_theta, validate_inputs,
)
from gausshmm.simulate import simulate
from gausshmm.types import Theta


def _perturbed_guess(mean=(1.0, 9.0), stddev=(1.0, 1.0)):
    return Theta.from_probs(
        [0.5, 0.5],
        [[0.9, 0.1], [0.1, 0.9]],
        list(mean),
        list(stddev),
    )


class TestBaumWelch:
    def test_recovers_short_scenario(self, short_obs):
        """Two well separated regimes are recovered in the right state order."""
        theta = estimate(short_obs, _perturbed_guess(), max_iter=50)

        mean = np.asarray(theta.mean)
        assert mean == pytest.approx([0.0, 10.0], abs=0.5)
        # Six points: each state's spread is the spread of its own cluster
        stddev = np.asarray(theta.stddev)
        assert np.all(np.isfinite(stddev))
        assert np.all(stddev > 0.0)
        assert np.all(stddev < 0.5)

    def test_parameter_recovery(self, two_state_theta):
        """EM should approximately recover generating parameters."""
        obs, _ = simulate(two_state_theta, n_obs=500, seed=7)

        theta = estimate(obs, _perturbed_guess(stddev=(2.0, 2.0)), max_iter=50)

        assert np.asarray(theta.mean) == pytest.approx([0.0, 10.0], abs=0.5)
        assert np.asarray(theta.stddev) == pytest.approx([1.0, 1.0], abs=0.5)
        trans = np.exp(np.asarray(theta.log_trans))
        assert np.diag(trans) == pytest.approx([0.9, 0.9], abs=0.1)

    def test_returns_valid_params(self, two_state_theta):
        """Returned parameters should be valid."""
        obs, _ = simulate(two_state_theta, n_obs=80, seed=1)
        theta = estimate(obs, _perturbed_guess(), max_iter=10)

        assert float(jnp.exp(theta.log_init).sum()) == pytest.approx(1.0, abs=1e-6)
        assert np.allclose(jnp.exp(theta.log_trans).sum(axis=1), 1.0, atol=1e-6)
        assert jnp.all(theta.stddev >= 0.0)
        assert not jnp.any(jnp.isnan(theta.stddev))

    def test_same_shapes_as_initial(self):
        rng = np.random.default_rng(2)
        obs = rng.normal(scale=4.0, size=60)
        initial = Theta.from_probs(
            np.full(3, 1.0 / 3.0),
            np.full((3, 3), 1.0 / 3.0) * 0.5 + np.eye(3) * 0.5,
            [-4.0, 0.0, 4.0],
            [1.5, 1.5, 1.5],
        )
        theta = estimate(obs, initial, max_iter=5)
        for field, start in zip(theta, initial):
            assert field.shape == start.shape

    def test_deterministic(self, two_state_theta):
        obs, _ = simulate(two_state_theta, n_obs=60, seed=3)
        a = estimate(obs, _perturbed_guess(), max_iter=15)
        b = estimate(obs, _perturbed_guess(), max_iter=15)
        for x, y in zip(a, b):
            assert np.array_equal(np.asarray(x), np.asarray(y))

    def test_fixed_iteration_count(self, short_obs):
        result = baum_welch(short_obs, _perturbed_guess(), max_iter=7)
        assert result.n_iter == 7
        assert result.log_likelihoods.shape == (7,)
        assert result.converged is False

    def test_matches_repeated_single_steps(self, short_obs):
        theta = _perturbed_guess()
        for _ in range(3):
            theta = update_theta(short_obs, theta)
        result = estimate(short_obs, _perturbed_guess(), max_iter=3)
        for x, y in zip(theta, result):
            assert np.allclose(x, y, atol=1e-12)

    def test_optional_convergence(self, two_state_theta):
        obs, _ = simulate(two_state_theta, n_obs=300, seed=4)
        result = baum_welch(obs, _perturbed_guess(), max_iter=500, tol=1e-6)
        assert result.converged is True
        assert result.n_iter < 500
        assert result.log_likelihoods.shape == (result.n_iter,)

    def test_monotonic_log_likelihood_updated_mean(self, two_state_theta):
        """Textbook EM never decreases the log-likelihood."""
        obs, _ = simulate(two_state_theta, n_obs=200, seed=0)
        result = baum_welch(
            obs, _perturbed_guess(mean=(3.0, 6.0), stddev=(3.0, 3.0)),
            max_iter=20, variance_mode="updated_mean",
        )
        lls = np.asarray(result.log_likelihoods)
        assert np.all(np.diff(lls) >= -1e-6)

    def test_variance_modes_differ(self, short_obs):
        stale = update_theta(short_obs, _perturbed_guess())
        fresh = update_theta(short_obs, _perturbed_guess(), variance_mode="updated_mean")

        assert np.allclose(stale.mean, fresh.mean)
        # Centring on the new mean minimises the weighted spread
        assert np.all(np.asarray(fresh.stddev) < np.asarray(stale.stddev))

    def test_initial_guess_not_modified(self, short_obs):
        log_init = np.log(np.array([0.5, 0.5]))
        log_trans = np.log(np.array([[0.9, 0.1], [0.1, 0.9]]))
        mean = np.array([1.0, 9.0])
        stddev = np.array([1.0, 1.0])
        initial = Theta(log_init, log_trans, mean, stddev)

        estimate(short_obs, initial, max_iter=5)

        assert np.array_equal(mean, [1.0, 9.0])
        assert np.array_equal(stddev, [1.0, 1.0])
        assert np.array_equal(log_init, np.log([0.5, 0.5]))

    def test_default_initial_params(self, short_obs):
        result = baum_welch(short_obs, max_iter=2)
        assert result.theta.n_states == init_params().n_states == 2

    def test_single_observation(self):
        """One observation: no transitions or spread to estimate, both are carried over."""
        initial = _perturbed_guess(stddev=(1.0, 2.0))
        theta = estimate(np.array([0.5]), initial)

        assert np.array_equal(theta.log_trans, initial.log_trans)
        assert np.array_equal(theta.stddev, initial.stddev)
        assert float(jnp.exp(theta.log_init).sum()) == pytest.approx(1.0, abs=1e-12)
        assert np.allclose(theta.mean, [0.5, 0.5])


    def test_single_observation_two_iterations_match_one(self):
        initial = _perturbed_guess()
        once = estimate(np.array([0.5]), initial, max_iter=1)
        twice = estimate(np.array([0.5]), initial, max_iter=2)
        assert np.allclose(once.mean, twice.mean)
        assert np.array_equal(once.stddev, twice.stddev)

    def test_run_em_uses_config(self, short_obs):
        config = EMConfig(max_iter=4, variance_mode="updated_mean")
        result = run_em(short_obs, _perturbed_guess(), config)
        expected = baum_welch(
            short_obs, _perturbed_guess(), max_iter=4, variance_mode="updated_mean",
        )
        assert result.n_iter == 4
        for x, y in zip(result.theta, expected.theta):
            assert np.allclose(x, y, atol=1e-12)

    def test_validate_list_params_without_warnings(self, short_obs):
        theta = Theta(
            [-0.7, -0.7], [[-0.1, -2.3], [-2.3, -0.1]], [1.0, 9.0], [1.0, 1.0],
        )
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert validate_inputs(short_obs, theta) == 2


class TestBaumWelchErrors:
    def test_empty_observations(self):
        with pytest.raises(InvalidDimension):
            estimate(np.array([]), _perturbed_guess())

    def test_two_dimensional_observations(self):
        with pytest.raises(InvalidDimension):
            estimate(np.zeros((3, 2)), _perturbed_guess())

    def test_mismatched_mean(self, short_obs):
        theta = _perturbed_guess()._replace(mean=jnp.zeros(3))
        with pytest.raises(InvalidDimension):
            estimate(short_obs, theta)

    def test_non_square_transitions(self, short_obs):
        theta = _perturbed_guess()._replace(log_trans=jnp.zeros((2, 3)))
        with pytest.raises(InvalidDimension):
            estimate(short_obs, theta)

    @pytest.mark.parametrize("max_iter", [0, -1, 2.5, True])
    def test_bad_max_iter(self, short_obs, max_iter):
        with pytest.raises(ValueError):
            estimate(short_obs, _perturbed_guess(), max_iter=max_iter)

    def test_nonpositive_stddev(self, short_obs):
        with pytest.raises(InvalidParameter):
            estimate(short_obs, _perturbed_guess(stddev=(1.0, 0.0)))

    def test_zero_probability_model(self, short_obs):
        theta = _perturbed_guess()._replace(log_init=jnp.full(2, -jnp.inf))
        with pytest.raises(DegenerateNormalization):
            estimate(short_obs, theta)

    def test_unreachable_state(self, short_obs):
        """A state the chain can never enter gets no responsibility."""
        theta = Theta.from_probs(
            [1.0, 0.0],
            [[1.0, 0.0], [1.0, 0.0]],
            [1.0, 9.0],
            [5.0, 5.0],
        )
        with pytest.raises(DegenerateState):
            estimate(short_obs, theta, max_iter=3)
