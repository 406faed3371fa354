"""Distribution fitting primitives used during parameter estimation.

Each ``fit_*`` function returns point estimates as a dictionary keyed by
parameter name, or raises :class:`FitConvergenceError`.
"""

import logging
import warnings

import numpy as np
from scipy import optimize, stats

from .errors import FitConvergenceError

logger = logging.getLogger(__name__)


def logistic(x: np.ndarray, x0: float, k: float) -> np.ndarray:
    """Logistic function ``1 / (1 + exp(-k * (x - x0)))``."""
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-k * (x - x0)))


def winsorize(x: np.ndarray, q: float) -> np.ndarray:
    """Clamp values below the ``q`` and above the ``1 - q`` quantiles.

    Args:
        x: Values to winsorize.
        q: Tail proportion, between 0 and 0.5.

    Returns:
        Copy of ``x`` with the tails set to the quantile values.
    """
    x = np.asarray(x, dtype=np.float64)
    lo, hi = np.quantile(x, [q, 1 - q])
    if hi < lo:
        lo, hi = hi, lo
    return np.clip(x, lo, hi)


def mad(x: np.ndarray) -> float:
    """Median absolute deviation scaled to estimate the standard deviation."""
    return float(stats.median_abs_deviation(x, scale="normal"))


def _check_sample(x: np.ndarray, name: str) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64).ravel()
    if x.size < 2:
        raise FitConvergenceError(f"{name} fit needs at least 2 values, got {x.size}")
    if not np.all(np.isfinite(x)):
        raise FitConvergenceError(f"{name} fit got non-finite values")
    if np.any(x <= 0):
        raise FitConvergenceError(f"{name} fit needs positive values")
    return x


def fit_gamma_mme(x: np.ndarray) -> dict[str, float]:
    """Fit a gamma distribution by the method of moments.

    Uses the population variance, so ``shape = mean**2 / var`` and
    ``rate = mean / var``.
    """
    x = _check_sample(x, "gamma")
    m = x.mean()
    v = x.var()
    if v <= 0:
        raise FitConvergenceError("gamma moment fit needs non-constant values")
    return {"shape": float(m**2 / v), "rate": float(m / v)}


def _cvm_statistic(cdf: np.ndarray) -> float:
    n = len(cdf)
    i = np.arange(1, n + 1)
    return 1.0 / (12 * n) + float(np.sum((cdf - (2 * i - 1) / (2.0 * n)) ** 2))


def fit_gamma_mge(x: np.ndarray, maxiter: int = 1000) -> dict[str, float]:
    """Fit a gamma distribution by maximum goodness-of-fit estimation.

    The Cramér-von Mises distance between the empirical and fitted CDF is
    minimised with Nelder-Mead, starting from the moment estimates. The
    search runs on log-parameters so shape and rate stay positive.

    Args:
        x: Positive sample.
        maxiter: Maximum number of optimiser iterations.

    Returns:
        Dictionary with ``shape`` and ``rate``.

    Raises:
        FitConvergenceError: If the optimiser does not converge.
    """
    x = np.sort(_check_sample(x, "gamma"))
    start = fit_gamma_mme(x)

    def distance(par: np.ndarray) -> float:
        shape, rate = np.exp(par)
        cdf = stats.gamma.cdf(x, a=shape, scale=1.0 / rate)
        value = _cvm_statistic(cdf)
        return value if np.isfinite(value) else np.inf

    x0 = np.log([start["shape"], start["rate"]])
    result = optimize.minimize(
        distance, x0, method="Nelder-Mead", options={"maxiter": maxiter}
    )
    if not result.success or not np.all(np.isfinite(result.x)):
        raise FitConvergenceError(f"gamma goodness-of-fit did not converge: {result.message}")

    shape, rate = np.exp(result.x)
    if not (np.isfinite(shape) and np.isfinite(rate) and shape > 0 and rate > 0):
        raise FitConvergenceError("gamma goodness-of-fit gave invalid estimates")
    logger.debug("Gamma CvM fit: shape=%.4g rate=%.4g", shape, rate)
    return {"shape": float(shape), "rate": float(rate)}


def fit_lnorm(x: np.ndarray) -> dict[str, float]:
    """Fit a log-normal distribution by maximum likelihood.

    Returns:
        Dictionary with ``meanlog`` and ``sdlog``.
    """
    lx = np.log(_check_sample(x, "log-normal"))
    meanlog = lx.mean()
    sdlog = np.sqrt(np.mean((lx - meanlog) ** 2))
    return {"meanlog": float(meanlog), "sdlog": float(sdlog)}


def fit_logistic(
    x: np.ndarray,
    y: np.ndarray,
    x0: float = 0.0,
    k: float = -1.0,
    maxfev: int = 2000,
) -> dict[str, float]:
    """Fit a logistic curve to (x, y) pairs by nonlinear least squares.

    Args:
        x: Predictor values.
        y: Responses, usually proportions.
        x0: Starting midpoint.
        k: Starting shape.
        maxfev: Maximum number of function evaluations.

    Returns:
        Dictionary with ``x0`` and ``k``.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    mask = np.isfinite(x) & np.isfinite(y)
    if mask.sum() < 2:
        raise FitConvergenceError("logistic fit needs at least 2 finite points")

    try:
        with warnings.catch_warnings():
            # Only the point estimates are used
            warnings.simplefilter("ignore", optimize.OptimizeWarning)
            popt, _ = optimize.curve_fit(
                logistic, x[mask], y[mask], p0=[x0, k], maxfev=maxfev
            )
    except RuntimeError as e:
        raise FitConvergenceError(f"logistic fit did not converge: {e}") from e

    if not np.all(np.isfinite(popt)):
        raise FitConvergenceError("logistic fit gave non-finite estimates")
    return {"x0": float(popt[0]), "k": float(popt[1])}
