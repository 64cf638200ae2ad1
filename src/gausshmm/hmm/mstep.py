"""Closed-form M-step for initial, transition and Gaussian emission parameters.

    I[i]     = r[0, i]
    A[i, j]  = sum_t xi[t, i, j] / sum_{t<N-1} r[t, i]
    mu[i]    = sum_t r[t, i] y_t / sum_t r[t, i]
    sigma[i] = sqrt(sum_t r[t, i] (y_t - m[i])^2 / sum_t r[t, i])

Sums over probabilities are taken with lse; only the Gaussian moments leave
log space. ``m`` is the mean the posteriors were computed with unless
``variance_mode="updated_mean"`` asks for the freshly updated one.
"""

import logging

import jax.numpy as jnp

from gausshmm.errors import DegenerateState
from gausshmm.logspace import lse
from gausshmm.types import Array

log = logging.getLogger(__name__)

VARIANCE_MODES = ("previous_mean", "updated_mean")


def _check_mass(log_mass: Array, what: str) -> None:
    dead = jnp.isneginf(log_mass) | jnp.isnan(log_mass)
    if bool(jnp.any(dead)):
        states = [int(k) for k in jnp.nonzero(dead)[0]]
        raise DegenerateState(
            f"state(s) {states} have zero total responsibility ({what})"
        )


def mstep_initial(log_r: Array) -> Array:
    """New log initial distribution: the posterior at the first time step."""
    return log_r[0]


def mstep_transitions(
    log_xi: Array,
    log_r: Array,
    prev_log_trans: Array,
) -> Array:
    """Closed-form M-step for the transition matrix.

    Args:
        log_xi: (N-1, S, S) log pairwise marginals.
        log_r: (N, S) log posterior responsibilities.
        prev_log_trans: (S, S) transition matrix of the previous iteration.

    Returns:
        log_trans: (S, S) updated log transition matrix. With a single
        observation there are no transitions to count and ``prev_log_trans``
        is returned unchanged.

    Raises:
        DegenerateState: if a state has no responsibility before the last step.
    """
    if log_xi.shape[0] == 0:
        log.debug("No transitions observed, keeping previous transition matrix")
        return prev_log_trans

    xi_sum = lse(log_xi, axis=0)  # (S, S)
    # r for t=0..N-2 (not the last timestep)
    r_sum = lse(log_r[:-1], axis=0)  # (S,)
    _check_mass(r_sum, "transition update")

    return xi_sum - r_sum[:, None]


def mstep_gaussian(
    obs: Array,
    log_r: Array,
    prev_mean: Array,
    prev_stddev: Array | None = None,
    variance_mode: str = "previous_mean",
) -> tuple[Array, Array]:
    """Responsibility-weighted mean and standard deviation per state.

    Args:
        obs: (N,) observations.
        log_r: (N, S) log posterior responsibilities.
        prev_mean: (S,) means the posteriors were computed with.
        prev_stddev: (S,) standard deviations the posteriors were computed
            with. A single observation has no spread to estimate, so these
            are returned unchanged when N == 1.
        variance_mode: "previous_mean" centres the variance on ``prev_mean``,
            "updated_mean" on the new mean.

    Returns:
        Tuple of (mean (S,), stddev (S,)).

    Raises:
        DegenerateState: if a state has zero total responsibility.
    """
    if variance_mode not in VARIANCE_MODES:
        raise ValueError(
            f"variance_mode must be one of {VARIANCE_MODES}, got {variance_mode!r}"
        )

    y = jnp.asarray(obs, dtype=jnp.float64)[:, None]  # (N, 1)
    weights = jnp.exp(log_r)  # (N, S)
    mass = jnp.exp(lse(log_r, axis=0))  # (S,)
    # log(mass) also catches masses that underflow on exponentiation
    _check_mass(jnp.log(mass), "emission update")

    new_mean = jnp.sum(weights * y, axis=0) / mass

    if prev_stddev is not None and y.shape[0] == 1:
        return new_mean, jnp.asarray(prev_stddev, dtype=jnp.float64)

    centre = prev_mean if variance_mode == "previous_mean" else new_mean
    centre = jnp.asarray(centre, dtype=jnp.float64)[None, :]
    new_var = jnp.sum(weights * (y - centre) ** 2, axis=0) / mass

    return new_mean, jnp.sqrt(new_var)
