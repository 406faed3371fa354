"""Gene parameter generation for the Splat simulation."""

from typing import Optional

import numpy as np
import pandas as pd
from numpy.random import Generator


def simulate_gene_params(
    rng: Generator,
    ngenes: int,
    mean_shape: float,
    mean_rate: float,
    out_prob: float,
    out_fac_loc: Optional[float],
    out_fac_scale: Optional[float],
) -> tuple[pd.DataFrame, list[str]]:
    """Sample gene expression means.

    Base means come from a gamma distribution. Outlier genes are selected
    with probability ``out_prob`` and their base mean is multiplied by a
    log-normal factor. Outliers are only simulated when both outlier factor
    parameters are set.

    Args:
        rng: NumPy random generator.
        ngenes: Number of genes to simulate.
        mean_shape: Shape parameter of the gamma distribution of gene means.
        mean_rate: Rate parameter of the gamma distribution of gene means.
        out_prob: Probability of a gene being an expression outlier.
        out_fac_loc: Mean of the log-normal distribution of outlier factors.
        out_fac_scale: Standard deviation of the log-normal distribution of
            outlier factors.

    Returns:
        Tuple of (gene parameters DataFrame, gene names list).
    """
    base_gene_mean = rng.gamma(shape=mean_shape, scale=1.0 / mean_rate, size=ngenes)

    outlier_factor = np.ones(ngenes)
    if out_fac_loc is not None and out_fac_scale is not None:
        is_outlier = rng.choice([True, False], size=ngenes, p=[out_prob, 1 - out_prob])
        outlier_factor[is_outlier] = rng.lognormal(
            mean=out_fac_loc, sigma=out_fac_scale, size=is_outlier.sum()
        )
    else:
        is_outlier = np.zeros(ngenes, dtype=bool)

    genenames = [f"Gene{i}" for i in range(1, ngenes + 1)]
    geneparams = pd.DataFrame(
        {
            "base_gene_mean": base_gene_mean,
            "is_outlier": is_outlier,
            "outlier_factor": outlier_factor,
            "gene_mean": base_gene_mean * outlier_factor,
        },
        index=genenames,
    )

    return geneparams, genenames
