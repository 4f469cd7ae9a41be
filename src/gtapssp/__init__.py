"""
Preparation of Shared Socioeconomic Pathway (SSP) projections for GTAP-style models.

Sparse GDP and population snapshots are aggregated to model regions,
interpolated to annual panels and reconciled into complete grids.
"""

import importlib.metadata

__version__ = importlib.metadata.version("gtapssp")
