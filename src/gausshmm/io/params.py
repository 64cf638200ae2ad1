"""Save and load HMM parameters as .npz archives."""

from pathlib import Path

import jax.numpy as jnp
import numpy as np

from gausshmm.types import Theta

_KEYS = ("log_init", "log_trans", "mean", "stddev")


def save_theta(theta: Theta, path: Path) -> None:
    """Save HMM parameters to npz file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    save_dict = {key: np.asarray(getattr(theta, key)) for key in _KEYS}
    np.savez(path, **save_dict)


def load_theta(path: Path) -> Theta:
    """Load HMM parameters from npz file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Parameter file not found: {path}")

    with np.load(path) as data:
        missing = [key for key in _KEYS if key not in data]
        if missing:
            raise KeyError(f"{path} is missing parameter arrays: {missing}")
        return Theta(**{
            key: jnp.array(data[key], dtype=jnp.float64) for key in _KEYS
        })
