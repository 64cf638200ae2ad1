"""Read and write observation sequences.

``.npy`` files are read with numpy directly; anything else is treated as
whitespace-separated text with one or more values per line.
"""

from pathlib import Path

import numpy as np


def load_observations(path: Path) -> np.ndarray:
    """Load a 1-D float64 observation sequence."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Observation file not found: {path}")

    if path.suffix == ".npy":
        obs = np.load(path)
    else:
        # Lines may hold different numbers of values
        obs = np.array(path.read_text().split(), dtype=np.float64)

    return np.asarray(obs, dtype=np.float64).reshape(-1)


def save_observations(obs: np.ndarray, path: Path) -> None:
    """Write observations as .npy or one value per text line."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    obs = np.asarray(obs, dtype=np.float64).reshape(-1)

    if path.suffix == ".npy":
        np.save(path, obs)
    else:
        np.savetxt(path, obs)
