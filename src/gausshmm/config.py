"""Configuration dataclasses for gausshmm."""

from dataclasses import dataclass


@dataclass(frozen=True)
class EMConfig:
    """Baum-Welch EM configuration."""
    max_iter: int = 100
    tol: float | None = None  # Relative log-likelihood change; None runs all max_iter
    variance_mode: str = "previous_mean"  # or "updated_mean"


@dataclass(frozen=True)
class SimulationConfig:
    """Synthetic sequence configuration."""
    n_obs: int = 200
    seed: int = 0


# Default 2-state parameters: a low regime around 0 and a high regime around 10,
# both sticky.
DEFAULT_INIT_PROBS = [0.5, 0.5]

DEFAULT_TRANS = [
    [0.9, 0.1],
    [0.1, 0.9],
]

DEFAULT_MEAN = [0.0, 10.0]
DEFAULT_STDDEV = [1.0, 1.0]


def default_theta():
    """Theta built from the default 2-state priors."""
    from gausshmm.types import Theta

    return Theta.from_probs(
        DEFAULT_INIT_PROBS, DEFAULT_TRANS, DEFAULT_MEAN, DEFAULT_STDDEV
    )
