"""
MDAnalysis trajectory backend for h2orderMD.

This module provides the MDATrajectory class for reading trajectories
via MDAnalysis. MDAnalysis works in Angstrom; frames handed to the order
analysis are converted to nm, the length unit the slice defaults and the
Debye conversion are expressed in.
"""

from typing import Iterator

import MDAnalysis as MD  # type: ignore[import-untyped]
from MDAnalysis import units as mda_units  # type: ignore[import-untyped]
from MDAnalysis.exceptions import NoDataError  # type: ignore[import-untyped]
from MDAnalysis.lib.mdamath import triclinic_vectors  # type: ignore[import-untyped]
import numpy as np

from h2orderMD.cell import validate_cell_matrix
from ._base import Trajectory, DataUnavailableError, Frame

#: Multiplicative factor from MDAnalysis lengths (Angstrom) to nm.
ANGSTROM_TO_NM: float = mda_units.convert(1.0, "A", "nm")


class MDATrajectory(Trajectory):
    """
    Represents a molecular dynamics trajectory handled by **MDAnalysis**.

    Parameters
    ----------
    trajectory_file : str
        Path to the trajectory file (e.g., `.xtc`, `.trr`, `.gro`).
    topology_file : str
        Path to the topology file. A GROMACS run input (`.tpr`) provides the
        partial charges, masses and bonds the analysis needs.

    Attributes
    ----------
    frames : int
        Number of trajectory frames.
    n_atoms : int
        Number of atoms in the topology.
    cell_matrix : np.ndarray
        Cell matrix of the first frame with rows = lattice vectors, in nm.

    Raises
    ------
    ValueError
        If no topology file is provided or the cell is invalid.
    RuntimeError
        If MDAnalysis fails to load the trajectory or topology file.
    """

    def __init__(self, trajectory_file: str, topology_file: str):
        if not topology_file:
            raise ValueError("A topology file is required for MDAnalysis trajectories.")

        self.trajectory_file = trajectory_file
        self.topology_file = topology_file

        try:
            mdanalysis_universe = MD.Universe(topology_file, trajectory_file)
        except Exception as e:
            raise RuntimeError(f"Failed to load MDAnalysis Universe: {e}")

        self.mdanalysis_universe = mdanalysis_universe
        self.frames = len(mdanalysis_universe.trajectory)
        self.n_atoms = len(mdanalysis_universe.atoms)
        self.cell_matrix = self._cell_matrix_from_dimensions(mdanalysis_universe.dimensions)
        self._unwrap = len(self.bonds) > 0

    @staticmethod
    def _cell_matrix_from_dimensions(dims) -> np.ndarray:
        """Convert MDAnalysis ``[a, b, c, alpha, beta, gamma]`` (Angstrom) to a cell matrix in nm."""
        if dims is None or len(dims) < 3:
            raise ValueError(f"Invalid simulation box dimensions: {dims}")
        dims = np.asarray(dims, dtype=np.float64)
        if len(dims) < 6:
            # Older trajectories lacking angular information are orthorhombic
            dims = np.concatenate([dims[:3], [90.0, 90.0, 90.0]])
        cell = np.array(triclinic_vectors(dims), dtype=np.float64) * ANGSTROM_TO_NM
        return validate_cell_matrix(cell)

    def get_indices(self, selection: str) -> np.ndarray:
        """
        Return zero-based indices of atoms matching an MDAnalysis selection.

        Parameters
        ----------
        selection : str
            MDAnalysis selection string (e.g., ``'resname SOL'``).

        Returns
        -------
        np.ndarray
            Atom indices in topology order.

        Raises
        ------
        ValueError
            If the selection matches no atoms.
        """
        indices = np.array(self.mdanalysis_universe.select_atoms(selection).indices)
        if len(indices) == 0:
            raise ValueError(f"Selection '{selection}' matched no atoms.")
        return indices

    def get_charges(self, indices: np.ndarray) -> np.ndarray:
        """Return partial charges for the given atom indices."""
        try:
            charges = self.mdanalysis_universe.atoms.charges
        except (NoDataError, AttributeError):
            raise DataUnavailableError(
                f"Topology '{self.topology_file}' does not provide partial charges."
            )
        return np.asarray(charges, dtype=np.float64)[np.asarray(indices, dtype=np.int64)]

    def get_masses(self, indices: np.ndarray) -> np.ndarray:
        """Return atomic masses for the given atom indices."""
        try:
            masses = self.mdanalysis_universe.atoms.masses
        except (NoDataError, AttributeError):
            raise DataUnavailableError(
                f"Topology '{self.topology_file}' does not provide masses."
            )
        return np.asarray(masses, dtype=np.float64)[np.asarray(indices, dtype=np.int64)]

    @property
    def bonds(self) -> np.ndarray:
        """Bonded atom pairs from the topology, empty if it carries none."""
        try:
            indices = self.mdanalysis_universe.atoms.bonds.indices
        except (NoDataError, AttributeError):
            return np.empty((0, 2), dtype=np.int64)
        return np.asarray(indices, dtype=np.int64).reshape(-1, 2)

    def make_whole(self, frame: Frame) -> Frame:
        """Return ``frame`` unchanged; MDAnalysis already unwrapped it when it was read."""
        return frame

    def _frame(self, ts) -> Frame:
        """
        Convert an MDAnalysis timestep into a Frame in nm.

        When the topology carries bonds, every fragment is first made whole
        in place with ``AtomGroup.unwrap``. ``reference=None`` keeps each
        fragment's first atom where the trajectory stored it.
        """
        if self._unwrap:
            self.mdanalysis_universe.atoms.unwrap(compound='fragments', reference=None, inplace=True)
        return Frame(
            box=self._cell_matrix_from_dimensions(ts.dimensions),
            positions=np.asarray(ts.positions, dtype=np.float64) * ANGSTROM_TO_NM,
            time=float(ts.time),
        )

    def _iter_frames_impl(
        self,
        start: int,
        stop: int,
        stride: int
    ) -> Iterator[Frame]:
        """Iterate using MDAnalysis trajectory slicing."""
        for ts in self.mdanalysis_universe.trajectory[start:stop:stride]:
            yield self._frame(ts)

    def get_frame(self, index: int) -> Frame:
        """Return the frame at ``index``."""
        return self._frame(self.mdanalysis_universe.trajectory[index])
