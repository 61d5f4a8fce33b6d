"""Setup kernels for smoothed aggregation algebraic multigrid."""
from . import amg_core, aggregation
from .aggregation import smoothed_aggregation_setup

__version__ = '0.1.0'

__all__ = [
    'amg_core',
    'aggregation',
    'smoothed_aggregation_setup',
]
