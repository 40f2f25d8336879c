"""
NumPy array trajectory backend for h2orderMD.

This module provides the NumpyTrajectory class for trajectories stored
directly as NumPy arrays in memory.
"""

from typing import Iterator

import numpy as np

from h2orderMD.cell import cell_matrix_from_lengths, validate_cell_matrix
from ._base import Trajectory, DataUnavailableError, Frame


class NumpyTrajectory(Trajectory):
    """
    Represents a trajectory stored directly as NumPy arrays.

    Designed for simulation data already resident in memory, or for synthetic
    trajectories generated numerically.

    Parameters
    ----------
    positions : np.ndarray
        Atomic positions of shape ``(frames, atoms, 3)``, in nm.
    box_x, box_y, box_z : float, optional
        Simulation box lengths in each Cartesian direction.
        All three must be provided together.
        Mutually exclusive with ``cell_matrix``.
    species_list : list of str, optional
        Atom names corresponding to each atom index.  If ``None``,
        ``get_indices`` will not be available.
    cell_matrix : np.ndarray, optional
        Either one 3x3 cell matrix shared by all frames, or an array of shape
        ``(frames, 3, 3)`` for variable-volume trajectories.
        Mutually exclusive with ``box_x``, ``box_y``, ``box_z``.
    charge_list : np.ndarray, optional
        Per-atom partial charges.
    mass_list : np.ndarray, optional
        Per-atom masses.
    bonds : np.ndarray, optional
        Zero-based bonded atom pairs of shape ``(n_bonds, 2)``.
    times : np.ndarray, optional
        Time of each frame in ps (default: frame index).

    Raises
    ------
    ValueError
        If array shapes are inconsistent, if box dimensions are invalid, or
        if both/neither of ``cell_matrix`` and ``box_x/y/z`` are provided.

    Notes
    -----
    Frames are handed out as copies, so analysis code can wrap them in place
    without altering the stored trajectory.
    """

    def __init__(
        self,
        positions: np.ndarray,
        box_x: float | None = None,
        box_y: float | None = None,
        box_z: float | None = None,
        species_list: list[str] | None = None,
        *,
        cell_matrix: np.ndarray | None = None,
        charge_list: np.ndarray | None = None,
        mass_list: np.ndarray | None = None,
        bonds: np.ndarray | None = None,
        times: np.ndarray | None = None,
    ):
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim != 3 or positions.shape[2] != 3:
            raise ValueError(
                f"Positions must have shape (frames, atoms, 3), got {positions.shape}."
            )
        n_frames, n_atoms = positions.shape[0], positions.shape[1]

        if species_list is not None and n_atoms != len(species_list):
            raise ValueError("Species list and trajectory arrays are incommensurate.")

        # Determine cell geometry from either cell_matrix or box_x/y/z
        box_args = (box_x, box_y, box_z)
        has_box = any(v is not None for v in box_args)
        has_cell = cell_matrix is not None

        if has_box and has_cell:
            raise ValueError(
                "Cannot specify both cell_matrix and box_x/box_y/box_z."
            )
        if not has_box and not has_cell:
            raise ValueError(
                "Must specify either cell_matrix or box_x/box_y/box_z."
            )

        if has_cell:
            cells = np.array(cell_matrix, dtype=np.float64, copy=True)
            if cells.ndim == 2:
                reference_cell = validate_cell_matrix(cells)
                cells = np.broadcast_to(reference_cell, (n_frames, 3, 3))
            elif cells.shape == (n_frames, 3, 3) and n_frames > 0:
                for cell in cells:
                    validate_cell_matrix(cell)
                reference_cell = cells[0]
            else:
                raise ValueError(
                    f"cell_matrix must have shape (3, 3) or ({n_frames}, 3, 3), "
                    f"got {cells.shape}."
                )
        else:
            if not all(v is not None for v in box_args):
                raise ValueError(
                    "All three of box_x, box_y, box_z must be provided together."
                )
            assert box_x is not None and box_y is not None and box_z is not None
            if box_x <= 0 or box_y <= 0 or box_z <= 0:
                raise ValueError("Box dimensions must all be positive values.")
            reference_cell = cell_matrix_from_lengths(box_x, box_y, box_z)
            cells = np.broadcast_to(reference_cell, (n_frames, 3, 3))

        for name, values in (("charge_list", charge_list), ("mass_list", mass_list)):
            if values is not None and len(values) != n_atoms:
                raise ValueError(f"{name} and trajectory arrays are incommensurate.")

        if times is None:
            times = np.arange(n_frames, dtype=np.float64)
        elif len(times) != n_frames:
            raise ValueError("times and trajectory arrays are incommensurate.")

        self.positions = positions
        self.cells = cells
        self.times = np.asarray(times, dtype=np.float64)
        self.species_string = species_list
        self.frames = n_frames
        self.n_atoms = n_atoms
        self.cell_matrix = np.array(reference_cell)
        self._bonds = (
            np.empty((0, 2), dtype=np.int64) if bonds is None
            else np.asarray(bonds, dtype=np.int64).reshape(-1, 2)
        )

        if charge_list is not None:
            self.charge_list = np.asarray(charge_list, dtype=np.float64)
        if mass_list is not None:
            self.mass_list = np.asarray(mass_list, dtype=np.float64)

    @property
    def bonds(self) -> np.ndarray:
        return self._bonds

    def get_indices(self, selection: str) -> np.ndarray:
        """
        Return atom indices for a given species.

        Parameters
        ----------
        selection : str
            Atom species name to select (e.g., `'OW'`, `'HW1'`).

        Returns
        -------
        np.ndarray
            Indices of selected atoms.

        Raises
        ------
        ValueError
            If the species name is not present in the provided species list.
        """
        if self.species_string is None:
            raise ValueError("Species list was not provided for this trajectory.")
        inds = np.where(np.array(self.species_string) == selection)[0]
        if len(inds) == 0:
            raise ValueError(f"Species '{selection}' not found in species list.")
        return inds

    def get_charges(self, indices: np.ndarray) -> np.ndarray:
        """Return partial charges for the given atom indices."""
        if not hasattr(self, 'charge_list'):
            raise DataUnavailableError("Charge data not available for this trajectory.")
        return self.charge_list[np.asarray(indices, dtype=np.int64)]

    def get_masses(self, indices: np.ndarray) -> np.ndarray:
        """Return atomic masses for the given atom indices."""
        if not hasattr(self, 'mass_list'):
            raise DataUnavailableError("Mass data not available for this trajectory.")
        return self.mass_list[np.asarray(indices, dtype=np.int64)]

    def _iter_frames_impl(
        self,
        start: int,
        stop: int,
        stride: int
    ) -> Iterator[Frame]:
        """Iterate over in-memory arrays."""
        for i in range(start, stop, stride):
            yield self.get_frame(i)

    def get_frame(self, index: int) -> Frame:
        """Return a copy of the frame at ``index``."""
        return Frame(
            box=np.array(self.cells[index]),
            positions=self.positions[index].copy(),
            time=float(self.times[index]),
        )
