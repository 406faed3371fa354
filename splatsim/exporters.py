"""Export functionality for Splat simulation results."""

from typing import TYPE_CHECKING

import pandas as pd

from .params import SplatParams

if TYPE_CHECKING:
    import anndata

    from .simulator import SimulationDiagnostics


def to_anndata(
    counts: pd.DataFrame,
    diagnostics: "SimulationDiagnostics",
    params: SplatParams,
) -> "anndata.AnnData":
    """Export simulation results to an AnnData object.

    Simulation matrices are genes x cells; AnnData stores cells x genes, so
    every matrix is transposed.

    Requires the `anndata` package to be installed.
    Install with: `pip install splatsim[anndata]`

    Args:
        counts: Simulated count matrix (genes x cells).
        diagnostics: Intermediate simulation values.
        params: Parameters used for the simulation.

    Returns:
        AnnData object with:
        - X: count matrix (cells x genes)
        - obs: cell parameters (group, library size and factor)
        - var: gene parameters (means, outliers, DE factors)
        - layers: ``true_counts``, ``cell_means``, ``bcv``,
          ``updated_means``, ``dropout_prob`` and ``dropout``
        - uns["splat_params"]: simulation parameters as dict

    Raises:
        ImportError: If anndata is not installed.
    """
    try:
        import anndata
    except ImportError as e:
        raise ImportError(
            "anndata is required for to_anndata(). "
            "Install with: pip install splatsim[anndata]"
        ) from e

    adata = anndata.AnnData(
        X=counts.T.to_numpy(),
        obs=diagnostics.cellparams.copy(),
        var=diagnostics.geneparams.copy(),
    )
    adata.layers["true_counts"] = diagnostics.true_counts.T.to_numpy()
    adata.layers["cell_means"] = diagnostics.cell_means.T.to_numpy()
    adata.layers["bcv"] = diagnostics.bcv.T.to_numpy()
    adata.layers["updated_means"] = diagnostics.updated_means.T.to_numpy()
    adata.layers["dropout_prob"] = diagnostics.dropout_prob.T.to_numpy()
    adata.layers["dropout"] = diagnostics.dropout.T.to_numpy()
    adata.uns["splat_params"] = params.to_dict()

    return adata
