"""Baum-Welch EM algorithm for Gaussian-emission HMM parameter estimation.

Each iteration runs forward-backward under the current parameters, turns the
tables into posteriors, and re-estimates every parameter in closed form. The
caller's parameters are never modified; each iteration builds a new Theta.
"""

import logging

import jax.numpy as jnp
import numpy as np

from gausshmm.errors import InvalidDimension
from gausshmm.hmm.forward_backward import forward_backward
from gausshmm.hmm.mstep import (
    VARIANCE_MODES, mstep_gaussian, mstep_initial, mstep_transitions,
)
from gausshmm.hmm.posteriors import compute_posteriors
from gausshmm.config import EMConfig
from gausshmm.types import Array, EMResult, Theta

log = logging.getLogger(__name__)


def init_params() -> Theta:
    """Default 2-state parameters from the configured priors."""
    from gausshmm.config import default_theta

    return default_theta()


def validate_inputs(obs, theta: Theta) -> int:
    """Check observation and parameter shapes before any pass runs.

    Returns:
        Number of states S.

    Raises:
        InvalidDimension: on an empty or non-1-D observation sequence, or on
            parameter fields that disagree about S.
    """
    obs_shape = np.shape(obs)
    if len(obs_shape) != 1:
        raise InvalidDimension(f"observations must be 1-D, got shape {obs_shape}")
    if obs_shape[0] == 0:
        raise InvalidDimension("observation sequence is empty")

    init_shape = np.shape(theta.log_init)
    if len(init_shape) != 1 or init_shape[0] < 1:
        raise InvalidDimension(
            f"log_init must be a non-empty vector, got shape {init_shape}"
        )
    S = init_shape[0]

    expected = {
        "log_trans": (S, S),
        "mean": (S,),
        "stddev": (S,),
    }
    for name, shape in expected.items():
        actual = np.shape(getattr(theta, name))
        if actual != shape:
            raise InvalidDimension(
                f"{name} has shape {actual}, expected {shape} for {S} states"
            )

    return S


def _em_step(
    obs: Array,
    theta: Theta,
    variance_mode: str,
) -> tuple[Theta, Array]:
    # --- E-step ---
    fb = forward_backward(obs, theta)
    post = compute_posteriors(fb, theta.log_trans)
    if log.isEnabledFor(logging.DEBUG):
        log.debug(
            "log-evidence spread across time slices: "
            f"{float(jnp.ptp(post.log_evidence)):.3e}"
        )

    # --- M-step ---
    new_log_init = mstep_initial(post.log_r)
    new_log_trans = mstep_transitions(post.log_xi, post.log_r, theta.log_trans)
    new_mean, new_stddev = mstep_gaussian(
        obs, post.log_r, theta.mean, theta.stddev,
        variance_mode=variance_mode,
    )

    new_theta = Theta(
        log_init=new_log_init,
        log_trans=new_log_trans,
        mean=new_mean,
        stddev=new_stddev,
    )
    return new_theta, fb.log_likelihood


def update_theta(
    obs: Array,
    theta: Theta,
    variance_mode: str = "previous_mean",
) -> Theta:
    """Apply one Baum-Welch iteration and return the new parameters."""
    obs = jnp.asarray(obs, dtype=jnp.float64)
    validate_inputs(obs, theta)
    new_theta, _ = _em_step(obs, theta.asarray(), variance_mode)
    return new_theta


def baum_welch(
    obs: Array,
    theta: Theta | None = None,
    max_iter: int = 100,
    tol: float | None = None,
    variance_mode: str = "previous_mean",
) -> EMResult:
    """Run Baum-Welch EM to estimate Gaussian HMM parameters.

    Args:
        obs: (N,) observed emissions.
        theta: Initial parameters (otherwise use the configured defaults).
        max_iter: Number of EM iterations.
        tol: Optional relative log-likelihood tolerance. When None (default)
            exactly ``max_iter`` iterations run.
        variance_mode: "previous_mean" or "updated_mean", see
            :func:`gausshmm.hmm.mstep.mstep_gaussian`.

    Returns:
        EMResult with the final parameters and per-iteration log-likelihoods.

    Raises:
        InvalidDimension, InvalidParameter, DegenerateNormalization,
        DegenerateState: propagated from the first failing iteration.
    """
    if isinstance(max_iter, bool) or not isinstance(max_iter, int) or max_iter < 1:
        raise ValueError(f"max_iter must be a positive integer, got {max_iter!r}")
    if variance_mode not in VARIANCE_MODES:
        raise ValueError(
            f"variance_mode must be one of {VARIANCE_MODES}, got {variance_mode!r}"
        )
    if theta is None:
        theta = init_params()

    obs = jnp.asarray(obs, dtype=jnp.float64)
    S = validate_inputs(obs, theta)
    theta = theta.asarray()
    log.info(
        f"Baum-Welch: {obs.shape[0]} observations, {S} states, "
        f"max_iter={max_iter}"
    )
    if obs.shape[0] == 1:
        log.warning(
            "Single observation: transition matrix and standard deviations "
            "are carried over unchanged"
        )

    log_likelihoods = []

    for iteration in range(max_iter):
        theta, log_lik = _em_step(obs, theta, variance_mode)

        total_ll = float(log_lik)
        log_likelihoods.append(total_ll)
        log.info(f"EM iter {iteration}: log-likelihood = {total_ll:.4f}")

        # Check convergence
        if tol is not None and iteration > 0:
            prev_ll = log_likelihoods[-2]
            rel_change = abs(total_ll - prev_ll) / max(abs(prev_ll), 1.0)
            if rel_change < tol:
                log.info(
                    f"Converged at iteration {iteration} "
                    f"(rel_change={rel_change:.2e} < tol={tol:.2e})"
                )
                return EMResult(
                    theta=theta,
                    log_likelihoods=jnp.array(log_likelihoods),
                    converged=True,
                    n_iter=iteration + 1,
                )

    if tol is not None:
        log.warning(f"EM did not converge after {max_iter} iterations")
    return EMResult(
        theta=theta,
        log_likelihoods=jnp.array(log_likelihoods),
        converged=False,
        n_iter=max_iter,
    )


def estimate(obs: Array, initial: Theta, max_iter: int = 100) -> Theta:
    """Run exactly ``max_iter`` Baum-Welch iterations from ``initial``.

    Args:
        obs: (N,) observed emissions, N >= 1.
        initial: Initial parameter guess.
        max_iter: Positive number of iterations.

    Returns:
        Final parameter estimate, same shapes as ``initial``.
    """
    return baum_welch(obs, initial, max_iter=max_iter).theta


def run_em(obs: Array, theta: Theta | None, config: EMConfig) -> EMResult:
    """Run :func:`baum_welch` with the settings of an ``EMConfig``."""
    return baum_welch(
        obs, theta,
        max_iter=config.max_iter,
        tol=config.tol,
        variance_mode=config.variance_mode,
    )
