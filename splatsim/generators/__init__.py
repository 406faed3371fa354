"""Generator modules for the Splat simulation."""

from .cells import simulate_cell_params, simulate_groups
from .counts import adjust_means_bcv, get_cell_gene_means, simulate_counts
from .de import simulate_group_de
from .dropout import simulate_dropout
from .genes import simulate_gene_params

__all__ = [
    "adjust_means_bcv",
    "get_cell_gene_means",
    "simulate_cell_params",
    "simulate_counts",
    "simulate_dropout",
    "simulate_gene_params",
    "simulate_group_de",
    "simulate_groups",
]
