"""Log-space addition of probabilities.

The pairwise rule skips the log1p term once the smaller operand can no longer
change the larger one in double precision, and the reduction folds that rule
left to right so every sum in the package goes through the same threshold.
"""

import jax
import jax.numpy as jnp
import numpy as np
from jax import lax

from gausshmm.errors import InvalidDimension
from gausshmm.types import Array

# Below this gap exp(d) vanishes next to 1.0 in float64.
LOG_EPS = float(np.log(np.finfo(np.float64).eps / 2.0))


@jax.jit
def lse2(x: Array, y: Array) -> Array:
    """log(exp(x) + exp(y)), elementwise.

    Args:
        x: Log-values, any shape broadcastable against y.
        y: Log-values.

    Returns:
        Broadcast log-sum. Two -inf operands give -inf.
    """
    m = jnp.maximum(x, y)
    d = -jnp.abs(x - y)
    out = jnp.where(d < LOG_EPS, m, m + jnp.log1p(jnp.exp(d)))
    # -inf - -inf is NaN; the sum of two zero probabilities is zero.
    return jnp.where(jnp.isneginf(m), m, out)


def lse(x: Array, axis: int = -1) -> Array:
    """Reduce log-values along ``axis`` by folding :func:`lse2` left to right.

    Args:
        x: Array of log-values with at least one dimension.
        axis: Axis to reduce.

    Returns:
        Array with ``axis`` removed.

    Raises:
        InvalidDimension: if the reduced axis is empty.
    """
    x = jnp.moveaxis(jnp.asarray(x), axis, 0)
    if x.shape[0] == 0:
        raise InvalidDimension("log-sum-exp over an empty sequence")

    def fold(acc, value):
        return lse2(acc, value), None

    total, _ = lax.scan(fold, x[0], x[1:])
    return total
