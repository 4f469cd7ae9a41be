"""
Interpolation of sparse snapshots onto annual timeseries

Two interpolators are provided:

1. [interpolate_spline][(m).spline.interpolate_spline],
   a cubic spline through the observed snapshots,
   used for independent series (e.g. GDP)
2. [interpolate_beers][(m).beers.interpolate_beers],
   Beers ordinary six-term interpolation,
   used for demographic series (population by cohort)

Both reproduce the observed values exactly,
fill every year between each group's first and last observed year
and never extrapolate.
"""

from __future__ import annotations

from gtapssp.interpolation.beers import get_beers_coefficients, interpolate_beers
from gtapssp.interpolation.spline import (
    DEFAULT_SPLINE_METHOD,
    SUPPORTED_SPLINE_METHODS,
    interpolate_spline,
)

__all__ = [
    "DEFAULT_SPLINE_METHOD",
    "SUPPORTED_SPLINE_METHODS",
    "get_beers_coefficients",
    "interpolate_beers",
    "interpolate_spline",
]
