"""Differential expression simulation for the Splat simulation."""

import numpy as np
import pandas as pd
from numpy.random import Generator


def simulate_group_de(
    rng: Generator,
    geneparams: pd.DataFrame,
    ngroups: int,
    de_prob: float,
    de_down_prob: float,
    de_fac_loc: float,
    de_fac_scale: float,
) -> pd.DataFrame:
    """Simulate differential expression between cell groups.

    For each group, randomly selects DE genes and assigns fold changes from
    a log-normal distribution. With a single group no genes are DE and the
    group mean equals the gene mean.

    Args:
        rng: NumPy random generator.
        geneparams: Gene parameters DataFrame (modified in place).
        ngroups: Number of cell groups.
        de_prob: Probability of a gene being differentially expressed.
        de_down_prob: Probability that a DE gene is downregulated.
        de_fac_loc: Mean of the log-normal distribution of DE factors.
        de_fac_scale: Standard deviation of the log-normal distribution of
            DE factors.

    Returns:
        Updated gene parameters DataFrame with ``group{g}_de_factor`` and
        ``group{g}_gene_mean`` columns.
    """
    ngenes = geneparams.shape[0]

    for group in range(1, ngroups + 1):
        all_de_factor = np.ones(ngenes)
        if ngroups > 1:
            is_de = rng.choice([True, False], size=ngenes, p=[de_prob, 1 - de_prob])

            de_factor = rng.lognormal(mean=de_fac_loc, sigma=de_fac_scale, size=is_de.sum())
            de_factor[de_factor < 1] = 1 / de_factor[de_factor < 1]

            is_downregulated = rng.choice(
                [True, False],
                size=len(de_factor),
                p=[de_down_prob, 1 - de_down_prob],
            )
            de_factor[is_downregulated] = 1.0 / de_factor[is_downregulated]
            all_de_factor[is_de] = de_factor

        geneparams[f"group{group}_de_factor"] = all_de_factor
        geneparams[f"group{group}_gene_mean"] = geneparams["gene_mean"] * all_de_factor

    return geneparams
