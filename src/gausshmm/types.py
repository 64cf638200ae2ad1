"""Type aliases and named tuples for gausshmm."""

from typing import NamedTuple

import jax
import jax.numpy as jnp

# Posterior normalisation is checked to 1e-6; float32 is not enough for that.
jax.config.update("jax_enable_x64", True)

# Array type alias (JAX arrays)
Array = jnp.ndarray


class Theta(NamedTuple):
    """Full HMM parameter set with univariate Gaussian emissions.

    log_init: (S,) log initial state probabilities
    log_trans: (S, S) log transition probabilities, rows sum to 1 in prob space
    mean: (S,) per-state emission mean
    stddev: (S,) per-state emission standard deviation (> 0)
    """
    log_init: Array
    log_trans: Array
    mean: Array
    stddev: Array

    @classmethod
    def from_probs(cls, init, trans, mean, stddev) -> "Theta":
        """Build a Theta from probability-space initial and transition values."""
        return cls(
            log_init=jnp.log(jnp.asarray(init, dtype=jnp.float64)),
            log_trans=jnp.log(jnp.asarray(trans, dtype=jnp.float64)),
            mean=jnp.asarray(mean, dtype=jnp.float64),
            stddev=jnp.asarray(stddev, dtype=jnp.float64),
        )

    def asarray(self) -> "Theta":
        """Return a copy with every field as a float64 JAX array."""
        return Theta(*(jnp.asarray(field, dtype=jnp.float64) for field in self))

    @property
    def n_states(self) -> int:
        return int(jnp.shape(self.log_init)[0])


class ForwardBackwardResult(NamedTuple):
    """Results from the forward and backward passes.

    log_alpha: (N, S) forward log-probabilities
    log_beta: (N, S) backward log-probabilities
    log_emission: (N, S) log emission densities used by both passes
    log_likelihood: scalar log-likelihood of the sequence
    """
    log_alpha: Array
    log_beta: Array
    log_emission: Array
    log_likelihood: Array


class PosteriorResult(NamedTuple):
    """State and pairwise posteriors.

    log_r: (N, S) log posterior state probabilities
    log_xi: (N-1, S, S) log pairwise marginals
    log_evidence: (N,) sequence log-likelihood recomputed from each time slice
    """
    log_r: Array
    log_xi: Array
    log_evidence: Array


class EMResult(NamedTuple):
    """Results from Baum-Welch EM.

    theta: final parameters
    log_likelihoods: per-iteration log-likelihood of the parameters being updated
    converged: bool
    n_iter: int
    """
    theta: Theta
    log_likelihoods: Array
    converged: bool
    n_iter: int
