"""Tests for AnnData export."""

import numpy as np
import pytest

from splatsim import SplatSim

anndata = pytest.importorskip("anndata")


def test_to_anndata(small_params):
    params = small_params.update(dropout_present=True)
    sim = SplatSim(params).simulate()
    adata = sim.to_anndata()

    assert adata.shape == (50, 200)
    np.testing.assert_array_equal(adata.X, sim.counts.T.to_numpy())
    np.testing.assert_array_equal(adata.layers["true_counts"], sim.true_counts.T.to_numpy())
    for layer in ("cell_means", "bcv", "updated_means", "dropout_prob", "dropout"):
        assert adata.layers[layer].shape == (50, 200)
    assert list(adata.obs_names[:2]) == ["Cell1", "Cell2"]
    assert list(adata.var_names[:2]) == ["Gene1", "Gene2"]
    assert "lib_factor" in adata.obs
    assert "gene_mean" in adata.var
    assert adata.uns["splat_params"] == params.to_dict()
