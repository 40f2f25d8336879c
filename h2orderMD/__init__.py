"""Water orientation order profiles from molecular dynamics trajectories"""
from .version import __version__
from .trajectories import *
from .order import *
