"""Synthetic observation sequences drawn from a known Gaussian HMM."""

import numpy as np

from gausshmm.types import Theta


def simulate(
    theta: Theta,
    n_obs: int,
    seed: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Sample a hidden state path and its emissions.

    Args:
        theta: Generating parameters.
        n_obs: Sequence length.
        seed: Seed for numpy's default generator.

    Returns:
        obs: (n_obs,) float64 emissions
        states: (n_obs,) int32 hidden state sequence
    """
    if n_obs < 1:
        raise ValueError(f"n_obs must be positive, got {n_obs}")

    rng = np.random.default_rng(seed)

    init_probs = np.exp(np.asarray(theta.log_init, dtype=np.float64))
    trans = np.exp(np.asarray(theta.log_trans, dtype=np.float64))
    # Renormalise away rounding from the log round-trip
    init_probs = init_probs / init_probs.sum()
    trans = trans / trans.sum(axis=1, keepdims=True)
    mean = np.asarray(theta.mean, dtype=np.float64)
    stddev = np.asarray(theta.stddev, dtype=np.float64)
    K = init_probs.shape[0]

    states = np.zeros(n_obs, dtype=np.int32)
    states[0] = rng.choice(K, p=init_probs)
    for t in range(1, n_obs):
        states[t] = rng.choice(K, p=trans[states[t-1]])

    obs = rng.normal(mean[states], stddev[states])

    return obs, states
