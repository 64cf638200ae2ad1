"""Univariate Gaussian emission model.

Every state emits a single real value drawn from N(mean[k], stddev[k]^2).
"""

import math

import jax
import jax.numpy as jnp

from gausshmm.errors import InvalidParameter
from gausshmm.types import Array

_HALF_LOG_2PI = 0.5 * math.log(2.0 * math.pi)


def _check_stddev(stddev: Array) -> None:
    # NaN fails the comparison as well
    if not bool(jnp.all(jnp.asarray(stddev) > 0.0)):
        raise InvalidParameter(
            f"standard deviations must be positive, got {jnp.asarray(stddev)}"
        )


@jax.jit
def _log_density(y: Array, mu: Array, sigma: Array) -> Array:
    z = (y - mu) / sigma
    return -jnp.log(sigma) - _HALF_LOG_2PI - 0.5 * z ** 2


def log_density(y, mu, sigma) -> Array:
    """Log of the normal density N(y; mu, sigma), elementwise.

    Raises:
        InvalidParameter: if any sigma is not strictly positive.
    """
    _check_stddev(sigma)
    return _log_density(
        jnp.asarray(y, dtype=jnp.float64),
        jnp.asarray(mu, dtype=jnp.float64),
        jnp.asarray(sigma, dtype=jnp.float64),
    )


def gaussian_log_prob(
    obs: Array,
    mean: Array,
    stddev: Array,
) -> Array:
    """Compute log emission probabilities under the Gaussian model.

    Args:
        obs: (N,) observations.
        mean: (S,) state means.
        stddev: (S,) state standard deviations.

    Returns:
        (N, S) log emission probabilities.

    Raises:
        InvalidParameter: if any standard deviation is not strictly positive.
    """
    _check_stddev(stddev)
    obs_2d = jnp.asarray(obs, dtype=jnp.float64)[:, None]  # (N, 1)
    mu = jnp.asarray(mean, dtype=jnp.float64)[None, :]  # (1, S)
    sigma = jnp.asarray(stddev, dtype=jnp.float64)[None, :]  # (1, S)

    return _log_density(obs_2d, mu, sigma)
