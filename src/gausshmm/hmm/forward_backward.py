"""Log-space forward-backward algorithm using jax.lax.scan.

All computation in log-space for numerical stability. Time steps are
processed strictly in order by the scan; the S states of one time step are
computed together as array operations.
"""

import jax
import jax.numpy as jnp
from jax import lax

from gausshmm.emissions.gaussian import gaussian_log_prob
from gausshmm.logspace import lse
from gausshmm.types import Array, ForwardBackwardResult, Theta


@jax.jit
def _forward_scan(
    log_emission: Array,
    log_init: Array,
    log_trans: Array,
) -> Array:
    """Forward pass over precomputed emissions.

    Args:
        log_emission: (N, S) log emission probabilities.
        log_init: (S,) log initial state probabilities.
        log_trans: (S, S) log transition matrix.

    Returns:
        log_alpha: (N, S) forward log-probabilities.
    """
    # Initialize: alpha_0 = init * emission_0
    log_alpha_0 = log_init + log_emission[0]

    def scan_fn(log_alpha_prev, emit):
        # sum_i alpha_prev[i] * A[i, j] for each j
        log_alpha_t = emit + lse(log_alpha_prev[:, None] + log_trans, axis=0)
        return log_alpha_t, log_alpha_t

    # Scan over t = 1, ..., N-1
    _, log_alphas_rest = lax.scan(scan_fn, log_alpha_0, log_emission[1:])

    return jnp.concatenate([log_alpha_0[None, :], log_alphas_rest], axis=0)


@jax.jit
def _backward_scan(
    log_emission: Array,
    log_trans: Array,
) -> Array:
    """Backward pass over precomputed emissions.

    Args:
        log_emission: (N, S) log emission probabilities.
        log_trans: (S, S) log transition matrix.

    Returns:
        log_beta: (N, S) backward log-probabilities.
    """
    S = log_emission.shape[1]

    # Initialize: beta_N = 0 (log(1) = 0)
    log_beta_N = jnp.zeros(S, dtype=log_emission.dtype)

    def scan_fn(log_beta_next, emit_next):
        # sum_j A[i, j] * emission[t+1, j] * beta[t+1, j] for each i
        log_beta_t = lse(
            log_beta_next[None, :] + log_trans + emit_next[None, :],
            axis=1,
        )
        return log_beta_t, log_beta_t

    # Scan over t = N-2, ..., 0 (reversed)
    _, log_betas_rest = lax.scan(scan_fn, log_beta_N, log_emission[1:][::-1])

    # Reverse to get chronological order, then append terminal
    return jnp.concatenate([log_betas_rest[::-1], log_beta_N[None, :]], axis=0)


def forward(obs: Array, theta: Theta) -> Array:
    """Forward log-probabilities log P(y_1..y_t, X_t = i), shape (N, S)."""
    theta = theta.asarray()
    log_emission = gaussian_log_prob(obs, theta.mean, theta.stddev)
    return _forward_scan(log_emission, theta.log_init, theta.log_trans)


def backward(obs: Array, theta: Theta) -> Array:
    """Backward log-probabilities log P(y_{t+1}..y_N | X_t = i), shape (N, S)."""
    theta = theta.asarray()
    log_emission = gaussian_log_prob(obs, theta.mean, theta.stddev)
    return _backward_scan(log_emission, theta.log_trans)


def forward_backward(obs: Array, theta: Theta) -> ForwardBackwardResult:
    """Run both passes with a single emission table.

    Args:
        obs: (N,) observations.
        theta: Current parameters.

    Returns:
        ForwardBackwardResult with log_alpha, log_beta, log_emission and the
        sequence log-likelihood.
    """
    theta = theta.asarray()
    log_emission = gaussian_log_prob(obs, theta.mean, theta.stddev)
    log_alpha = _forward_scan(log_emission, theta.log_init, theta.log_trans)
    log_beta = _backward_scan(log_emission, theta.log_trans)

    return ForwardBackwardResult(
        log_alpha=log_alpha,
        log_beta=log_beta,
        log_emission=log_emission,
        log_likelihood=lse(log_alpha[-1]),
    )
