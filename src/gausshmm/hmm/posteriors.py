"""Single-step and pairwise state posteriors from forward-backward tables.

    r[t, i]     = P(X_t = i | y)
    xi[t, i, j] = P(X_t = i, X_{t+1} = j | y)

Each time slice is normalised on its own rather than by the forward
likelihood, so the per-slice normalisers double as a consistency check: they
all estimate the same sequence log-likelihood.
"""

import jax
import jax.numpy as jnp

from gausshmm.errors import DegenerateNormalization
from gausshmm.logspace import lse
from gausshmm.types import Array, ForwardBackwardResult, PosteriorResult


@jax.jit
def _posterior_tables(
    log_alpha: Array,
    log_beta: Array,
    log_emission: Array,
    log_trans: Array,
) -> tuple[Array, Array, Array, Array]:
    N, S = log_alpha.shape

    log_ab = log_alpha + log_beta  # (N, S)
    log_evidence = lse(log_ab, axis=1)  # (N,)
    log_r = log_ab - log_evidence[:, None]

    # raw[t, i, j] = alpha[t, i] * A[i, j] * beta[t+1, j] * emission[t+1, j]
    raw = (
        log_alpha[:-1, :, None]                          # (N-1, S, 1)
        + log_trans[None, :, :]                          # (1, S, S)
        + (log_beta[1:] + log_emission[1:])[:, None, :]  # (N-1, 1, S)
    )
    if N > 1:
        xi_norm = lse(raw.reshape(N - 1, S * S), axis=1)  # (N-1,)
    else:
        xi_norm = jnp.zeros((0,), dtype=raw.dtype)
    log_xi = raw - xi_norm[:, None, None]

    return log_r, log_xi, log_evidence, xi_norm


def _check_normalizer(normalizer: Array, what: str) -> None:
    bad = ~jnp.isfinite(normalizer)
    if bool(jnp.any(bad)):
        t = int(jnp.argmax(bad))
        raise DegenerateNormalization(
            f"{what} normalizer at t={t} is {float(normalizer[t])}; "
            "the current parameters give the observations zero probability"
        )


def compute_posteriors(
    fb: ForwardBackwardResult,
    log_trans: Array,
) -> PosteriorResult:
    """Compute log r and log xi from forward-backward output.

    Args:
        fb: Forward-backward tables for the current parameters.
        log_trans: (S, S) log transition matrix used to build ``fb``.

    Returns:
        PosteriorResult with log_r (N, S), log_xi (N-1, S, S) and the
        per-slice log-likelihood log_evidence (N,).

    Raises:
        DegenerateNormalization: if any normalizer is not finite.
    """
    log_r, log_xi, log_evidence, xi_norm = _posterior_tables(
        fb.log_alpha, fb.log_beta, fb.log_emission,
        jnp.asarray(log_trans, dtype=jnp.float64),
    )
    _check_normalizer(log_evidence, "state posterior")
    _check_normalizer(xi_norm, "pairwise posterior")

    return PosteriorResult(log_r=log_r, log_xi=log_xi, log_evidence=log_evidence)
