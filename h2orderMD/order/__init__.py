"""
Water order analysis for h2orderMD.

This package provides the classes for slice-resolved water orientation
profiles:
- WaterGroup: O,H,H triples, rigid-group wrapping and dipoles
- Cylinder: optional region-of-interest filter
- PlanarSlicing / SphericalSlicing: slice geometries
- SliceAccumulator: per-slice running sums and normalisation
- OrderProfile: frame loop driver
- compute_order: convenience function for computing a profile in one call
"""

from h2orderMD.order.accumulator import SliceAccumulator
from h2orderMD.order.constants import DEBYE_CONVERSION, EmptySliceWarning, SliceRangeWarning
from h2orderMD.order.cylinder import Cylinder
from h2orderMD.order.order_profile import OrderProfile, compute_order
from h2orderMD.order.slicing import PlanarSlicing, SphericalSlicing
from h2orderMD.order.water import WaterGroup

__all__ = [
    "Cylinder",
    "DEBYE_CONVERSION",
    "EmptySliceWarning",
    "OrderProfile",
    "PlanarSlicing",
    "SliceAccumulator",
    "SliceRangeWarning",
    "SphericalSlicing",
    "WaterGroup",
    "compute_order",
]
