"""Single-cell RNA-seq count simulation using the Splat model."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Self

import numpy as np
import pandas as pd
from numpy.random import Generator

from .errors import InvalidInputError
from .exporters import to_anndata
from .generators import (
    adjust_means_bcv,
    get_cell_gene_means,
    simulate_cell_params,
    simulate_counts,
    simulate_dropout,
    simulate_gene_params,
    simulate_group_de,
)
from .params import SplatParams

if TYPE_CHECKING:
    import anndata

# Configure module logger
logger = logging.getLogger(__name__)

# Parameters that must be set before simulating
REQUIRED_PARAMS = (
    "ngenes",
    "ncells",
    "mean_shape",
    "mean_rate",
    "lib_loc",
    "lib_scale",
    "out_prob",
    "bcv_common",
)
DROPOUT_PARAMS = ("dropout_mid", "dropout_shape")


@dataclass(frozen=True)
class SimulationDiagnostics:
    """Intermediate values of a Splat simulation.

    Matrices are genes x cells and share the index and columns of the
    simulated counts.

    Attributes:
        geneparams: Per-gene parameters (base mean, outlier flag and factor,
            final mean, group DE factors and means).
        cellparams: Per-cell parameters (group, library size and factor).
        cell_means: Expected expression before BCV noise.
        bcv: Biological coefficient of variation of each entry.
        updated_means: Expression means after BCV noise.
        true_counts: Counts before dropout.
        dropout_prob: Dropout probability of each entry (zero when dropout
            is not simulated).
        dropout: Whether each entry was dropped.
    """

    geneparams: pd.DataFrame
    cellparams: pd.DataFrame
    cell_means: pd.DataFrame
    bcv: pd.DataFrame
    updated_means: pd.DataFrame
    true_counts: pd.DataFrame
    dropout_prob: pd.DataFrame
    dropout: pd.DataFrame

    @property
    def gene_means(self) -> pd.Series:
        """Final per-gene means, including outlier factors."""
        return self.geneparams["gene_mean"]

    @property
    def is_outlier(self) -> pd.Series:
        """Whether each gene is an expression outlier."""
        return self.geneparams["is_outlier"]

    @property
    def lib_factors(self) -> pd.Series:
        """Library size factor of each cell."""
        return self.cellparams["lib_factor"]


def check_params(params: SplatParams) -> None:
    """Check that ``params`` can be used for simulation.

    Raises:
        InvalidInputError: If ``params`` is not a SplatParams object or a
            required parameter is unset.
    """
    if not isinstance(params, SplatParams):
        raise InvalidInputError(
            f"params must be a SplatParams object, got {type(params).__name__}"
        )
    required = REQUIRED_PARAMS + (DROPOUT_PARAMS if params.dropout_present else ())
    for name in required:
        if getattr(params, name) is None:
            raise InvalidInputError(f"Parameter {name} must be set to simulate")


class SplatSim:
    """Single-cell RNA-seq simulator using the Splat model.

    The simulation follows these steps:
    - Gene means from a gamma distribution, with expression outliers
    - Cell library sizes from a log-normal distribution
    - Differential expression between cell groups
    - Biological coefficient of variation and Poisson sampling
    - Dropout

    Example:
        >>> params = new_params(ngenes=1000, ncells=100)
        >>> sim = SplatSim(params, seed=1).simulate()
        >>> counts = sim.counts  # genes x cells DataFrame
    """

    def __init__(
        self,
        params: SplatParams,
        seed: Optional[int] = None,
        rng: Optional[Generator] = None,
    ) -> None:
        """Initialize the simulator.

        Args:
            params: SplatParams object with all required parameters set.
            seed: Random seed. Defaults to ``params.seed``.
            rng: NumPy random generator. Takes precedence over ``seed``.

        Raises:
            InvalidInputError: If a required parameter is unset.
        """
        check_params(params)
        self.params = params

        if rng is None:
            rng = np.random.default_rng(params.seed if seed is None else seed)
        self._rng: Generator = rng

        # Will be populated during simulation
        self.geneparams: pd.DataFrame
        self.cellparams: pd.DataFrame
        self.cellgenemean: pd.DataFrame
        self.bcv: pd.DataFrame
        self.updatedmean: pd.DataFrame
        self.true_counts: pd.DataFrame
        self.dropout_prob: pd.DataFrame
        self.dropout: pd.DataFrame
        self.counts: pd.DataFrame
        self._genenames: list[str]
        self._cellnames: list[str]

    def simulate(self) -> Self:
        """Run the full simulation pipeline.

        Returns:
            Self for method chaining.
        """
        p = self.params

        logger.info("Simulating gene means")
        self.geneparams, self._genenames = simulate_gene_params(
            rng=self._rng,
            ngenes=p.ngenes,
            mean_shape=p.mean_shape,
            mean_rate=p.mean_rate,
            out_prob=p.out_prob,
            out_fac_loc=p.out_fac_loc,
            out_fac_scale=p.out_fac_scale,
        )

        logger.info("Simulating library sizes")
        self.cellparams, self._cellnames = simulate_cell_params(
            rng=self._rng,
            ncells=p.ncells,
            group_prob=p.group_prob,
            lib_loc=p.lib_loc,
            lib_scale=p.lib_scale,
        )

        logger.info("Simulating group DE")
        self.geneparams = simulate_group_de(
            rng=self._rng,
            geneparams=self.geneparams,
            ngroups=p.ngroups,
            de_prob=p.de_prob,
            de_down_prob=p.de_down_prob,
            de_fac_loc=p.de_fac_loc,
            de_fac_scale=p.de_fac_scale,
        )

        logger.info("Simulating cell means")
        self.cellgenemean = get_cell_gene_means(
            geneparams=self.geneparams,
            cellparams=self.cellparams,
        )

        logger.info("Simulating BCV")
        self.bcv, self.updatedmean = adjust_means_bcv(
            rng=self._rng,
            cellgenemean=self.cellgenemean,
            bcv_common=p.bcv_common,
            bcv_df=p.bcv_df,
        )

        logger.info("Simulating counts")
        self.true_counts = simulate_counts(rng=self._rng, updatedmean=self.updatedmean)

        if p.dropout_present:
            logger.info("Simulating dropout")
            self.dropout_prob, self.dropout, self.counts = simulate_dropout(
                rng=self._rng,
                updatedmean=self.updatedmean,
                true_counts=self.true_counts,
                dropout_mid=p.dropout_mid,
                dropout_shape=p.dropout_shape,
            )
        else:
            shape = self.true_counts.shape
            self.dropout_prob = pd.DataFrame(
                np.zeros(shape), index=self._genenames, columns=self._cellnames
            )
            self.dropout = pd.DataFrame(
                np.zeros(shape, dtype=bool), index=self._genenames, columns=self._cellnames
            )
            self.counts = self.true_counts.copy()

        return self

    @property
    def diagnostics(self) -> SimulationDiagnostics:
        """Intermediate values of the last simulation."""
        if not hasattr(self, "counts"):
            raise ValueError("Must call simulate() first before reading diagnostics")
        return SimulationDiagnostics(
            geneparams=self.geneparams,
            cellparams=self.cellparams,
            cell_means=self.cellgenemean,
            bcv=self.bcv,
            updated_means=self.updatedmean,
            true_counts=self.true_counts,
            dropout_prob=self.dropout_prob,
            dropout=self.dropout,
        )

    def to_anndata(self) -> "anndata.AnnData":
        """Export simulation results to an AnnData object.

        Requires the `anndata` package to be installed.
        Install with: `pip install splatsim[anndata]`
        """
        return to_anndata(counts=self.counts, diagnostics=self.diagnostics, params=self.params)


def splat_simulate(
    params: SplatParams,
    seed: Optional[int] = None,
    rng: Optional[Generator] = None,
) -> tuple[pd.DataFrame, SimulationDiagnostics]:
    """Simulate a count matrix from Splat parameters.

    Args:
        params: SplatParams object, for example from ``splat_estimate``.
        seed: Random seed. Defaults to ``params.seed``.
        rng: NumPy random generator. Takes precedence over ``seed``.

    Returns:
        Tuple of (counts, diagnostics). Counts are genes x cells.
    """
    sim = SplatSim(params, seed=seed, rng=rng).simulate()
    return sim.counts, sim.diagnostics
