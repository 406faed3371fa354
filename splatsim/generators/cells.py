"""Cell parameter generation for the Splat simulation."""

from typing import Sequence

import numpy as np
import pandas as pd
from numpy.random import Generator


def simulate_groups(
    rng: Generator,
    ncells: int,
    group_prob: Sequence[float],
) -> np.ndarray:
    """Sample cell group identities from a categorical distribution.

    Groups are numbered from 1. A single group skips sampling.
    """
    if len(group_prob) == 1:
        return np.ones(ncells, dtype=int)
    return rng.choice(np.arange(1, len(group_prob) + 1), size=ncells, p=group_prob)


def simulate_cell_params(
    rng: Generator,
    ncells: int,
    group_prob: Sequence[float],
    lib_loc: float,
    lib_scale: float,
) -> tuple[pd.DataFrame, list[str]]:
    """Sample cell groups and library sizes.

    Library sizes come from a log-normal distribution. Each cell's library
    factor is its library size divided by the mean library size, so factors
    average to one and scaling by them keeps gene means unchanged on
    average.

    Args:
        rng: NumPy random generator.
        ncells: Number of cells to simulate.
        group_prob: Probability of a cell belonging to each group.
        lib_loc: Mean of the log-normal distribution of library sizes.
        lib_scale: Standard deviation of the log-normal distribution of
            library sizes.

    Returns:
        Tuple of (cell parameters DataFrame, cell names list).
    """
    groupid = simulate_groups(rng, ncells, group_prob)
    lib_size = rng.lognormal(mean=lib_loc, sigma=lib_scale, size=ncells)

    cellnames = [f"Cell{i}" for i in range(1, ncells + 1)]
    cellparams = pd.DataFrame(
        {
            "group": groupid.astype(int),
            "lib_size": lib_size,
            "lib_factor": lib_size / lib_size.mean(),
        },
        index=cellnames,
    )

    return cellparams, cellnames
