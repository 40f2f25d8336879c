"""
Trajectory handling package for h2orderMD.

This package provides the frame container and classes for reading molecular
dynamics trajectories together with the topology data (charges, masses,
bonds) the water order analysis needs.

Classes
-------
Frame
    One frame: cell matrix, positions (nm) and time (ps).
MDATrajectory
    MDAnalysis-based trajectory reader.
NumpyTrajectory
    In-memory NumPy array trajectory.

Exceptions
----------
DataUnavailableError
    Raised when requested data is not available for a trajectory type.
EmptyTrajectoryError
    Raised when no frame can be read from a trajectory.
"""

from ._base import DataUnavailableError, EmptyTrajectoryError, Frame, Trajectory
from .mda import MDATrajectory
from .numpy import NumpyTrajectory


__all__ = [
    # Frame container and base class
    "Frame",
    "Trajectory",
    # Trajectory classes
    "MDATrajectory",
    "NumpyTrajectory",
    # Exceptions
    "DataUnavailableError",
    "EmptyTrajectoryError",
]
