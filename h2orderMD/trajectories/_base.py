"""
Base classes for trajectory handling in h2orderMD.

This module defines the frame container, the abstract base class and the
common exceptions used by all trajectory backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from h2orderMD.cell import BondGraph, box_lengths


class DataUnavailableError(Exception):
    """Raised when requested data (charges, masses) is not available for a trajectory type."""
    pass


class EmptyTrajectoryError(RuntimeError):
    """Raised when not a single frame can be read from a trajectory."""
    pass


@dataclass
class Frame:
    """
    One trajectory frame.

    Attributes
    ----------
    box : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors, in nm.
    positions : np.ndarray, shape (n_atoms, 3)
        Atomic positions in nm. Analysis code may modify this array in place.
    time : float
        Simulation time in ps.

    Notes
    -----
    A frame is only valid until the next one is read: backends are free to
    reuse the underlying buffers.
    """

    box: np.ndarray
    positions: np.ndarray
    time: float = 0.0

    @property
    def box_lengths(self) -> np.ndarray:
        """Diagonal box edge lengths ``[Lx, Ly, Lz]``."""
        return box_lengths(self.box)


class Trajectory(ABC):
    """
    Abstract base class defining the interface for trajectory objects.

    A trajectory couples the frame source with the topology data the order
    analysis needs: per-atom partial charges, masses and the bond list used to
    reconstruct whole molecules.

    Required Attributes
    -------------------
    frames : int
        Number of frames in the trajectory.
    n_atoms : int
        Number of atoms per frame.
    cell_matrix : np.ndarray
        Cell matrix of the first frame, rows = lattice vectors, in nm.
    """

    # Required attributes - subclasses must set these
    frames: int
    n_atoms: int
    cell_matrix: np.ndarray

    _bond_graph: BondGraph | None = None

    def _normalize_bounds(
        self, start: int, stop: int | None, stride: int
    ) -> tuple[int, int, int]:
        """
        Normalize start/stop bounds to handle negative indices Pythonically.

        Parameters
        ----------
        start : int
            Start index (can be negative).
        stop : int or None
            Stop index (can be negative or None for end of trajectory).
        stride : int
            Step between frames.

        Returns
        -------
        tuple of (int, int, int)
            Normalized (start, stop, stride) suitable for use with range().

        Raises
        ------
        ValueError
            If ``stride`` is not a positive integer.
        """
        if stride <= 0:
            raise ValueError(f"Frame stride must be a positive integer, got {stride}.")
        n = self.frames

        if stop is None:
            stop = n
        if start < 0:
            start = max(0, n + start)
        if stop < 0:
            stop = max(0, n + stop)

        # Clamp to valid range
        start = min(start, n)
        stop = min(stop, n)

        return start, stop, stride

    @property
    def box_x(self) -> float:
        return float(self.cell_matrix[0, 0])

    @property
    def box_y(self) -> float:
        return float(self.cell_matrix[1, 1])

    @property
    def box_z(self) -> float:
        return float(self.cell_matrix[2, 2])

    @property
    def bonds(self) -> np.ndarray:
        """
        Zero-based bonded atom pairs, shape ``(n_bonds, 2)``.

        The default implementation reports no bonds, in which case molecules
        are assumed to be whole in every frame.
        """
        return np.empty((0, 2), dtype=np.int64)

    @property
    def bond_graph(self) -> BondGraph:
        """Whole-molecule traversal plan, built lazily from :attr:`bonds`."""
        if self._bond_graph is None:
            self._bond_graph = BondGraph(self.bonds, self.n_atoms)
        return self._bond_graph

    def make_whole(self, frame: Frame) -> Frame:
        """
        Reassemble molecules broken across periodic boundaries, in place.

        Walks :attr:`bond_graph`. Backends whose reader already returns whole
        molecules override this.

        Parameters
        ----------
        frame : Frame
            Frame whose positions are modified.

        Returns
        -------
        Frame
            The same frame.
        """
        self.bond_graph.make_whole(frame.positions, frame.box)
        return frame

    @abstractmethod
    def get_indices(self, selection: str) -> np.ndarray:
        """Return zero-based atom indices for a selection."""
        ...

    def get_charges(self, indices: np.ndarray) -> np.ndarray:
        """Return partial charges (e) for the given atom indices.

        Subclasses should override this method if charge data is available.
        The default implementation raises DataUnavailableError.
        """
        raise DataUnavailableError("Charge data not available for this trajectory type.")

    def get_masses(self, indices: np.ndarray) -> np.ndarray:
        """Return atomic masses (u) for the given atom indices.

        Subclasses should override this method if mass data is available.
        The default implementation raises DataUnavailableError.
        """
        raise DataUnavailableError("Mass data not available for this trajectory type.")

    def iter_frames(
        self,
        start: int = 0,
        stop: int | None = None,
        stride: int = 1
    ) -> Iterator[Frame]:
        """
        Iterate over trajectory frames.

        Parameters
        ----------
        start : int, optional
            First frame index (default: 0). Negative indices count from end.
        stop : int, optional
            Stop iteration before this frame (default: None, meaning all frames).
            Negative indices count from end.
        stride : int, optional
            Step between frames (default: 1).

        Yields
        ------
        Frame
            Box, positions (nm) and time (ps) of the current frame.
        """
        start, stop, stride = self._normalize_bounds(start, stop, stride)
        return self._iter_frames_impl(start, stop, stride)

    @abstractmethod
    def _iter_frames_impl(
        self,
        start: int,
        stop: int,
        stride: int
    ) -> Iterator[Frame]:
        """
        Internal implementation of frame iteration.

        Subclasses implement this with normalized (non-negative) bounds.
        """
        ...

    @abstractmethod
    def get_frame(self, index: int) -> Frame:
        """Return the frame at ``index``."""
        ...
