"""Shared fixtures for splatsim tests."""

import numpy as np
import pytest

from splatsim import new_params


@pytest.fixture
def rng():
    """Seeded random number generator for reproducibility."""
    return np.random.default_rng(42)


def _gamma_poisson_counts(rng, ngenes, ncells, shape=2.0, rate=1.0):
    means = rng.gamma(shape=shape, scale=1.0 / rate, size=ngenes)
    return rng.poisson(means[:, np.newaxis], size=(ngenes, ncells))


@pytest.fixture
def toy_counts(rng):
    """100 genes x 50 cells, Poisson counts with Gamma(2, 1) gene means."""
    return _gamma_poisson_counts(rng, 100, 50)


@pytest.fixture
def gamma_counts(rng):
    """1000 genes x 50 cells, Poisson counts with Gamma(2, 1) gene means."""
    return _gamma_poisson_counts(rng, 1000, 50)


@pytest.fixture
def nb_counts(rng):
    """500 genes x 40 cells, NB counts with dispersion 0.2."""
    disp = 0.2
    means = rng.gamma(shape=2.0, scale=20.0, size=500)
    size = 1.0 / disp
    prob = size / (size + means)
    return rng.negative_binomial(size, prob[:, np.newaxis], size=(500, 40))


@pytest.fixture
def small_params():
    """Parameters for a quick simulation."""
    return new_params(ngenes=200, ncells=50, seed=1)
