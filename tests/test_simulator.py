"""Tests for the Splat simulator."""

import math

import numpy as np
import pandas as pd
import pytest

from splatsim import (
    InvalidInputError,
    SimulationDiagnostics,
    SplatSim,
    new_params,
    splat_simulate,
)


class TestOutput:
    def test_dimensions_and_names(self, small_params):
        counts, diagnostics = splat_simulate(small_params)
        assert counts.shape == (200, 50)
        assert list(counts.index[:2]) == ["Gene1", "Gene2"]
        assert list(counts.columns[:2]) == ["Cell1", "Cell2"]
        assert isinstance(diagnostics, SimulationDiagnostics)

    def test_counts_are_non_negative_integers(self, small_params):
        counts, _ = splat_simulate(small_params)
        assert np.issubdtype(counts.to_numpy().dtype, np.integer)
        assert (counts.to_numpy() >= 0).all()

    def test_diagnostics_are_aligned(self, small_params):
        counts, diagnostics = splat_simulate(small_params.update(dropout_present=True))
        for layer in (
            diagnostics.cell_means,
            diagnostics.bcv,
            diagnostics.updated_means,
            diagnostics.true_counts,
            diagnostics.dropout_prob,
            diagnostics.dropout,
        ):
            assert layer.index.equals(counts.index)
            assert layer.columns.equals(counts.columns)
        assert diagnostics.gene_means.index.equals(counts.index)
        assert diagnostics.is_outlier.index.equals(counts.index)
        assert diagnostics.lib_factors.index.equals(counts.columns)

    def test_diagnostics_before_simulate(self, small_params):
        with pytest.raises(ValueError):
            SplatSim(small_params).diagnostics


class TestReproducibility:
    def test_same_seed(self, small_params):
        first, _ = splat_simulate(small_params, seed=11)
        second, _ = splat_simulate(small_params, seed=11)
        pd.testing.assert_frame_equal(first, second)

    def test_params_seed_is_default(self, small_params):
        first, _ = splat_simulate(small_params)
        second, _ = splat_simulate(small_params, seed=small_params.seed)
        pd.testing.assert_frame_equal(first, second)

    def test_different_seeds(self, small_params):
        first, _ = splat_simulate(small_params, seed=1)
        second, _ = splat_simulate(small_params, seed=2)
        assert not first.equals(second)

    def test_rng_takes_precedence(self, small_params):
        first, _ = splat_simulate(small_params, seed=1, rng=np.random.default_rng(7))
        second, _ = splat_simulate(small_params, seed=2, rng=np.random.default_rng(7))
        pd.testing.assert_frame_equal(first, second)


class TestValidation:
    def test_wrong_params_type(self):
        with pytest.raises(InvalidInputError):
            splat_simulate({"ngenes": 10})

    def test_missing_parameter(self, small_params):
        with pytest.raises(InvalidInputError, match="mean_shape"):
            splat_simulate(small_params.update(mean_shape=None))

    def test_missing_dropout_parameter(self, small_params):
        params = small_params.update(dropout_present=True, dropout_mid=None)
        with pytest.raises(InvalidInputError, match="dropout_mid"):
            splat_simulate(params)


class TestOutliers:
    def test_no_factors_no_outliers(self):
        params = new_params(ngenes=1000, ncells=5, out_prob=0.5, out_fac_loc=None)
        _, diagnostics = splat_simulate(params, seed=3)
        assert not diagnostics.is_outlier.any()
        np.testing.assert_allclose(
            diagnostics.gene_means, diagnostics.geneparams["base_gene_mean"]
        )

    def test_outlier_means(self):
        params = new_params(ngenes=1000, ncells=5, out_prob=0.2)
        _, diagnostics = splat_simulate(params, seed=3)
        genes = diagnostics.geneparams
        outliers = genes[genes["is_outlier"]]
        np.testing.assert_allclose(
            outliers["gene_mean"], outliers["base_gene_mean"] * outliers["outlier_factor"]
        )
        assert (genes.loc[~genes["is_outlier"], "outlier_factor"] == 1).all()

    def test_outlier_fraction_increases(self):
        fractions = []
        for out_prob in (0.05, 0.2, 0.5):
            params = new_params(ngenes=20000, ncells=2, out_prob=out_prob)
            _, diagnostics = splat_simulate(params, seed=4)
            fraction = diagnostics.is_outlier.mean()
            assert fraction == pytest.approx(out_prob, abs=0.02)
            fractions.append(fraction)
        assert fractions == sorted(fractions)


class TestMeans:
    def test_library_factors_average_to_one(self, small_params):
        _, diagnostics = splat_simulate(small_params)
        assert diagnostics.lib_factors.mean() == pytest.approx(1.0)

    def test_cell_means(self, small_params):
        _, diagnostics = splat_simulate(small_params)
        expected = np.outer(diagnostics.gene_means, diagnostics.lib_factors)
        np.testing.assert_allclose(diagnostics.cell_means.to_numpy(), expected)

    def test_gene_means_are_preserved(self):
        params = new_params(ngenes=500, ncells=2000, out_prob=0.0, bcv_df=math.inf)
        counts, diagnostics = splat_simulate(params, seed=5)

        # Remove library size effects, then compare gene by gene
        normalised = counts.div(diagnostics.lib_factors, axis=1).mean(axis=1)
        expected = diagnostics.gene_means
        expressed = expected > 1.0
        rel_error = (normalised[expressed] - expected[expressed]).abs() / expected[expressed]
        assert rel_error.median() < 0.05

        measurable = expected > 0.5
        log_corr = np.corrcoef(
            np.log(normalised[measurable] + 1e-3), np.log(expected[measurable])
        )[0, 1]
        assert log_corr > 0.99

    def test_gamma_mean(self):
        params = new_params(ngenes=20000, ncells=2, mean_shape=2.0, mean_rate=4.0, out_prob=0.0)
        _, diagnostics = splat_simulate(params, seed=6)
        assert diagnostics.gene_means.mean() == pytest.approx(0.5, rel=0.05)

    def test_unbounded_bcv_df(self, small_params):
        params = small_params.update(bcv_df=math.inf)
        first, _ = splat_simulate(params, seed=8)
        second, _ = splat_simulate(params.update(bcv_df=None), seed=8)
        pd.testing.assert_frame_equal(first, second)


class TestDropout:
    def test_no_dropout(self, small_params):
        counts, diagnostics = splat_simulate(small_params.update(dropout_present=False))
        pd.testing.assert_frame_equal(counts, diagnostics.true_counts)
        assert (diagnostics.dropout_prob.to_numpy() == 0).all()
        assert not diagnostics.dropout.to_numpy().any()

    def test_dropout(self, small_params):
        params = small_params.update(dropout_present=True, dropout_mid=1.0, dropout_shape=-1.0)
        counts, diagnostics = splat_simulate(params)
        dropped = diagnostics.dropout.to_numpy()
        assert dropped.any()
        assert (counts.to_numpy()[dropped] == 0).all()
        np.testing.assert_array_equal(
            counts.to_numpy()[~dropped], diagnostics.true_counts.to_numpy()[~dropped]
        )
        prob = diagnostics.dropout_prob.to_numpy()
        assert ((prob >= 0) & (prob <= 1)).all()

    def test_dropout_adds_zeros(self, small_params):
        base = small_params.update(dropout_present=False)
        counts, _ = splat_simulate(base, seed=9)
        dropped, _ = splat_simulate(
            base.update(dropout_present=True, dropout_mid=2.0, dropout_shape=-1.0), seed=9
        )
        assert (dropped.to_numpy() == 0).mean() > (counts.to_numpy() == 0).mean()


class TestGroups:
    def test_group_de(self):
        params = new_params(ngenes=500, ncells=100, group_prob=(0.5, 0.5), de_prob=0.5)
        _, diagnostics = splat_simulate(params, seed=10)
        genes = diagnostics.geneparams
        cells = diagnostics.cellparams
        assert set(cells["group"]) <= {1, 2}
        assert (genes["group1_de_factor"] != 1).any()
        np.testing.assert_allclose(
            genes["group2_gene_mean"], genes["gene_mean"] * genes["group2_de_factor"]
        )
        cell = cells.index[cells["group"] == 2][0]
        np.testing.assert_allclose(
            diagnostics.cell_means[cell],
            genes["group2_gene_mean"] * cells.loc[cell, "lib_factor"],
        )

    def test_single_group_has_no_de(self, small_params):
        _, diagnostics = splat_simulate(small_params.update(de_prob=0.9))
        assert (diagnostics.geneparams["group1_de_factor"] == 1).all()
