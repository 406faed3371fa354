"""Dropout simulation for the Splat simulation."""

import numpy as np
import pandas as pd
from numpy.random import Generator

from ..fitting import logistic


def simulate_dropout(
    rng: Generator,
    updatedmean: pd.DataFrame,
    true_counts: pd.DataFrame,
    dropout_mid: float,
    dropout_shape: float,
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Zero out counts with a probability that depends on expression.

    The dropout probability of each entry is a logistic function of its log
    mean. Each count is then independently set to zero with that
    probability.

    Args:
        rng: NumPy random generator.
        updatedmean: BCV-adjusted mean expression DataFrame.
        true_counts: Counts before dropout.
        dropout_mid: Midpoint of the dropout logistic function.
        dropout_shape: Shape of the dropout logistic function.

    Returns:
        Tuple of (dropout probability, dropout mask, counts after dropout)
        DataFrames.
    """
    with np.errstate(divide="ignore"):
        log_mean = np.log(updatedmean.to_numpy())
    drop_prob = logistic(log_mean, x0=dropout_mid, k=dropout_shape)
    dropout = rng.random(size=drop_prob.shape) < drop_prob

    counts = np.where(dropout, 0, true_counts.to_numpy())

    index, columns = true_counts.index, true_counts.columns
    return (
        pd.DataFrame(drop_prob, index=index, columns=columns),
        pd.DataFrame(dropout, index=index, columns=columns),
        pd.DataFrame(counts, index=index, columns=columns),
    )
