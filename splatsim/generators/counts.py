"""Count generation and BCV adjustment for the Splat simulation."""

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from numpy.random import Generator

logger = logging.getLogger(__name__)


def get_cell_gene_means(
    geneparams: pd.DataFrame,
    cellparams: pd.DataFrame,
) -> pd.DataFrame:
    """Calculate each gene's expected expression in each cell.

    The mean of a gene in its cell's group is scaled by the cell's library
    factor.

    Args:
        geneparams: Gene parameters DataFrame with ``group{g}_gene_mean``
            columns.
        cellparams: Cell parameters DataFrame with ``group`` and
            ``lib_factor`` columns.

    Returns:
        DataFrame with genes as rows and cells as columns.
    """
    groups = cellparams["group"].to_numpy()
    group_cols = [f"group{g}_gene_mean" for g in range(1, groups.max() + 1)]
    group_gene_mean = geneparams[group_cols].to_numpy(dtype=float)

    logger.debug("Scaling group means by cell library factors")
    cellgenemean = group_gene_mean[:, groups - 1] * cellparams["lib_factor"].to_numpy()
    return pd.DataFrame(cellgenemean, index=geneparams.index, columns=cellparams.index)


def adjust_means_bcv(
    rng: Generator,
    cellgenemean: pd.DataFrame,
    bcv_common: float,
    bcv_df: Optional[float],
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Adjust gene-cell means to follow a mean-variance trend.

    The BCV of each entry is ``bcv_common + 1 / sqrt(mean)``. When ``bcv_df``
    is finite each gene's BCV is further scaled by
    ``sqrt(bcv_df / X)`` with ``X ~ chisq(bcv_df)``. Means are then
    multiplied by Gamma noise with shape ``1 / bcv**2`` and rate
    ``1 / (mean * bcv**2)``, which keeps their expectation.

    Args:
        rng: NumPy random generator.
        cellgenemean: Gene-cell mean expression DataFrame.
        bcv_common: Common biological coefficient of variation.
        bcv_df: Degrees of freedom of the BCV inverse chi-squared
            distribution, or ``None``/``inf`` for no per-gene variability.

    Returns:
        Tuple of (BCV DataFrame, updated mean DataFrame).
    """
    mean = cellgenemean.to_numpy(dtype=float)
    expressed = mean > 0

    with np.errstate(divide="ignore"):
        bcv = bcv_common + (1 / np.sqrt(mean))
    if bcv_df is not None and math.isfinite(bcv_df):
        chisamp = rng.chisquare(bcv_df, size=mean.shape[0])
        bcv = bcv * np.sqrt(bcv_df / chisamp)[:, np.newaxis]
    else:
        logger.debug("BCV df is unbounded, using common BCV only")

    shape = 1 / (bcv[expressed] ** 2)
    rate = 1 / (mean[expressed] * bcv[expressed] ** 2)
    updatedmean = np.zeros_like(mean)
    updatedmean[expressed] = rng.gamma(shape=shape, scale=1 / rate)

    bcv = pd.DataFrame(bcv, index=cellgenemean.index, columns=cellgenemean.columns)
    updatedmean = pd.DataFrame(
        updatedmean, index=cellgenemean.index, columns=cellgenemean.columns
    )

    return bcv, updatedmean


def simulate_counts(
    rng: Generator,
    updatedmean: pd.DataFrame,
) -> pd.DataFrame:
    """Sample read counts from a Poisson distribution.

    Uses the BCV-adjusted means, so the Poisson-Gamma mixture gives
    negative binomial counts.

    Args:
        rng: NumPy random generator.
        updatedmean: BCV-adjusted mean expression DataFrame.

    Returns:
        DataFrame with integer count values.
    """
    return pd.DataFrame(
        rng.poisson(lam=updatedmean.to_numpy()),
        index=updatedmean.index,
        columns=updatedmean.columns,
    )
