"""Smoothed aggregation setup."""
from . import smoothed_aggregation
from .smoothed_aggregation import smoothed_aggregation_setup
from .sa.smooth import energy_prolongation_smoother
from .sa.tentative import fit_candidates

__all__ = [
    'smoothed_aggregation',
    'smoothed_aggregation_setup',
    'energy_prolongation_smoother',
    'fit_candidates',
]
