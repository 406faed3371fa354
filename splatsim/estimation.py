"""Estimation of Splat simulation parameters from a real count matrix."""

import logging
import warnings
from typing import TYPE_CHECKING, Any, Optional, Union

import numpy as np
import pandas as pd
from edgepython import estimate_disp
from scipy import sparse, stats

from .errors import (
    EstimationFailedError,
    FitConvergenceError,
    FitDegradedWarning,
    InvalidInputError,
)
from .fitting import (
    fit_gamma_mge,
    fit_gamma_mme,
    fit_lnorm,
    fit_logistic,
    logistic,
    mad,
    winsorize,
)
from .params import SplatParams, new_params

if TYPE_CHECKING:
    import anndata

    CountsLike = Union[np.ndarray, pd.DataFrame, sparse.spmatrix, anndata.AnnData]

logger = logging.getLogger(__name__)

# Fixed NB dispersion used when deciding whether dropout is present
DROPOUT_TEST_DISPERSION = 0.1
# Excess zeros, as a fraction of cells, above which dropout is present
DROPOUT_TEST_FRACTION = 0.1


def _anndata_type() -> Optional[type]:
    try:
        import anndata
    except ImportError:
        return None
    return anndata.AnnData


def as_count_matrix(counts: "CountsLike") -> np.ndarray:
    """Convert a supported counts container to a genes x cells array.

    Supported inputs are NumPy arrays, pandas DataFrames and SciPy sparse
    matrices (all genes x cells) and AnnData objects (cells x genes). For
    AnnData the ``counts`` layer is used when present, otherwise ``X``. Values
    must be non-negative whole numbers, in any numeric dtype.

    Raises:
        InvalidInputError: If the input is not a supported container or
            does not hold a valid count matrix.
    """
    adata_cls = _anndata_type()
    if adata_cls is not None and isinstance(counts, adata_cls):
        layer = counts.layers["counts"] if "counts" in counts.layers else counts.X
        if sparse.issparse(layer):
            layer = layer.toarray()
        matrix = np.asarray(layer).T
    elif isinstance(counts, pd.DataFrame):
        matrix = counts.to_numpy()
    elif sparse.issparse(counts):
        matrix = counts.toarray()
    elif isinstance(counts, np.ndarray):
        matrix = counts
    else:
        raise InvalidInputError(
            "counts must be a numpy array, pandas DataFrame, scipy sparse "
            f"matrix or AnnData object, got {type(counts).__name__}"
        )

    if matrix.ndim != 2:
        raise InvalidInputError(f"counts must be 2-dimensional, got {matrix.ndim} dimensions")
    try:
        matrix = matrix.astype(np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError("counts must be numeric") from e

    if matrix.shape[0] == 0:
        raise InvalidInputError("counts must contain at least one gene")
    if matrix.shape[1] < 2:
        raise InvalidInputError(
            f"counts must contain at least 2 cells, got {matrix.shape[1]}"
        )
    if not np.all(np.isfinite(matrix)):
        raise InvalidInputError("counts must be finite")
    if np.any(matrix < 0):
        raise InvalidInputError("counts must be non-negative")
    if np.any(matrix != np.round(matrix)):
        raise InvalidInputError("counts must be integers")
    return matrix


def normalise_counts(counts: np.ndarray) -> np.ndarray:
    """Normalise to the median library size and drop near-empty genes.

    Each cell is scaled so its total equals the median library size. Genes
    with a non-zero count in at most one cell are removed.
    """
    lib_sizes = counts.sum(axis=0)
    if np.any(lib_sizes <= 0):
        raise InvalidInputError("all cells must have a positive library size")
    lib_med = np.median(lib_sizes)
    norm_counts = counts / lib_sizes * lib_med
    return norm_counts[(norm_counts > 0).sum(axis=1) > 1, :]


def estimate_mean(norm_counts: np.ndarray, params: SplatParams) -> SplatParams:
    """Estimate the gamma distribution of gene means.

    Non-zero gene means are winsorized at the 10th and 90th percentiles and
    a gamma distribution is fitted by minimising the Cramér-von Mises
    distance. If that fails the method of moments is used instead.
    """
    means = norm_counts.mean(axis=1)
    means = winsorize(means[means != 0], q=0.1)

    try:
        fit = fit_gamma_mge(means)
    except FitConvergenceError as e:
        logger.warning("Goodness of fit failed, using Method of Moments: %s", e)
        warnings.warn(
            "Goodness of fit failed, using Method of Moments",
            FitDegradedWarning,
            stacklevel=2,
        )
        fit = fit_gamma_mme(means)

    return params.update(mean_shape=fit["shape"], mean_rate=fit["rate"])


def estimate_lib(counts: np.ndarray, params: SplatParams) -> SplatParams:
    """Fit a log-normal distribution to the raw library sizes."""
    fit = fit_lnorm(counts.sum(axis=0))
    return params.update(lib_loc=fit["meanlog"], lib_scale=fit["sdlog"])


def estimate_outlier(norm_counts: np.ndarray, params: SplatParams) -> SplatParams:
    """Estimate expression outlier parameters.

    A gene is an outlier when its log mean is more than two MADs above the
    median log mean. Outlier factors are gene means divided by the median
    gene mean, and a log-normal distribution is fitted to them. With fewer
    than two outliers the factor parameters are cleared.
    """
    means = norm_counts.mean(axis=1)
    lmeans = np.log(means)

    bound = np.median(lmeans) + 2 * mad(lmeans)
    outs = np.flatnonzero(lmeans > bound)
    prob = len(outs) / norm_counts.shape[0]
    logger.debug("Found %d outlier genes", len(outs))

    if len(outs) > 1:
        facs = means[outs] / np.median(means)
        fit = fit_lnorm(facs)
        return params.update(
            out_prob=prob, out_fac_loc=fit["meanlog"], out_fac_scale=fit["sdlog"]
        )
    return params.update(out_prob=prob, out_fac_loc=None, out_fac_scale=None)


def estimate_bcv(counts: np.ndarray, params: SplatParams) -> SplatParams:
    """Estimate the biological coefficient of variation.

    The common dispersion and prior df are estimated by edgepython with an
    intercept-only design. Estimates on simulated data are broadly linear in
    the true dispersion, so the correction ``0.1 + 0.25 * dispersion`` is
    applied. The prior df may be ``inf``.

    Raises:
        FitConvergenceError: If the dispersion fit fails or returns NaN.
    """
    design = np.ones((counts.shape[1], 1))
    try:
        disp = estimate_disp(counts, design=design)
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        raise FitConvergenceError(f"Dispersion estimation failed: {e}") from e

    common = float(disp["common.dispersion"])
    prior_df = float(np.squeeze(disp["prior.df"]))
    if np.isnan(common) or np.isnan(prior_df):
        raise FitConvergenceError("Dispersion estimation returned NaN")
    logger.debug("Common dispersion %.4g, prior df %.4g", common, prior_df)

    return params.update(bcv_common=0.1 + 0.25 * common, bcv_df=prior_df)


def estimate_dropout(norm_counts: np.ndarray, params: SplatParams) -> SplatParams:
    """Estimate dropout logistic parameters and whether dropout is present.

    A logistic curve is fitted to the proportion of zeros against log mean
    expression. Dropout is considered present when, for some gene, the
    observed number of zeros exceeds the number expected under a negative
    binomial with the gene mean and a dispersion of 0.1 by more than 10% of
    the number of cells. This is a rule of thumb rather than a test; a plot
    of log mean against the excess zeros gives a better picture.
    """
    ncells = norm_counts.shape[1]
    means = norm_counts.mean(axis=1)
    x = np.log(means)
    obs_zeros = (norm_counts == 0).sum(axis=1)
    y = obs_zeros / ncells

    fit = fit_logistic(x, y, x0=0.0, k=-1.0)

    size = 1.0 / DROPOUT_TEST_DISPERSION
    exp_zeros = stats.nbinom.pmf(0, size, size / (size + means)) * ncells
    present = bool(np.max(obs_zeros - exp_zeros) > DROPOUT_TEST_FRACTION * ncells)
    logger.debug("Dropout present: %s", present)

    return params.update(
        dropout_present=present, dropout_mid=fit["x0"], dropout_shape=fit["k"]
    )


def _run_stage(stage: str, func: Any, counts: np.ndarray, params: SplatParams) -> SplatParams:
    try:
        return func(counts, params)
    except FitConvergenceError as e:
        raise EstimationFailedError(stage, str(e)) from e


def splat_estimate(
    counts: "CountsLike", params: Optional[SplatParams] = None
) -> SplatParams:
    """Estimate Splat simulation parameters from a real dataset.

    Args:
        counts: Count matrix (genes x cells) or AnnData object.
        params: Parameters to store estimates in. Defaults to
            :func:`new_params`. Fields that are not estimated are kept.

    Returns:
        SplatParams with estimated values.

    Raises:
        InvalidInputError: If ``params`` is not a SplatParams object or
            ``counts`` is not a valid count matrix.
        EstimationFailedError: If a fit failed in any stage.

    Example:
        >>> params = splat_estimate(counts)
        >>> counts, diagnostics = splat_simulate(params, seed=1)
    """
    if params is None:
        params = new_params()
    if not isinstance(params, SplatParams):
        raise InvalidInputError(
            f"params must be a SplatParams object, got {type(params).__name__}"
        )
    counts = as_count_matrix(counts)

    logger.info("Normalising counts")
    norm_counts = normalise_counts(counts)
    if norm_counts.shape[0] < 2:
        raise InvalidInputError(
            "counts must contain at least 2 genes expressed in more than one cell"
        )

    logger.info("Estimating mean parameters")
    params = _run_stage("mean", estimate_mean, norm_counts, params)
    logger.info("Estimating library size parameters")
    params = _run_stage("library size", estimate_lib, counts, params)
    logger.info("Estimating outlier parameters")
    params = _run_stage("outlier", estimate_outlier, norm_counts, params)
    logger.info("Estimating BCV parameters")
    params = _run_stage("bcv", estimate_bcv, counts, params)
    logger.info("Estimating dropout parameters")
    params = _run_stage("dropout", estimate_dropout, norm_counts, params)

    return params.update(ngenes=int(counts.shape[0]), ncells=int(counts.shape[1]))
