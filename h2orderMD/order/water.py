"""WaterGroup class: O,H,H triples, rigid-group wrapping and dipoles."""

from __future__ import annotations

import numpy as np


class WaterGroup:
    """
    Water molecules defined by an index group ordered O, H, H per molecule.

    The first atom of every triple is taken as the oxygen. The ordering is
    assumed, not checked: a group ordered differently still runs but assigns
    molecules to slices by the wrong atom.

    Parameters
    ----------
    indices : array-like of int
        Zero-based atom indices, length a multiple of 3.
    charges : array-like of float
        Partial charges of the atoms in ``indices``, same order.

    Attributes
    ----------
    triples : np.ndarray, shape (n_molecules, 3)
        Atom indices per molecule, oxygen first.
    charges : np.ndarray, shape (n_molecules, 3)
        Partial charges per molecule.

    Raises
    ------
    ValueError
        If the group is empty, its length is not a multiple of 3, or the
        charges do not match the indices.
    """

    def __init__(self, indices, charges):
        indices = np.asarray(indices, dtype=np.int64).ravel()
        charges = np.asarray(charges, dtype=np.float64).ravel()
        if len(indices) == 0:
            raise ValueError("The water group is empty.")
        if len(indices) % 3 != 0:
            raise ValueError(
                f"The water group must hold O,H,H triples, but its size "
                f"({len(indices)}) is not a multiple of 3."
            )
        if charges.shape != indices.shape:
            raise ValueError("Water charges and indices are incommensurate.")

        self.triples = indices.reshape(-1, 3)
        self.charges = charges.reshape(-1, 3)

    @classmethod
    def from_trajectory(cls, trajectory, indices) -> WaterGroup:
        """Build the group with charges taken from the trajectory topology."""
        indices = np.asarray(indices, dtype=np.int64)
        return cls(indices, trajectory.get_charges(indices))

    @property
    def n_molecules(self) -> int:
        return len(self.triples)

    @property
    def oxygens(self) -> np.ndarray:
        """Oxygen atom index of each molecule."""
        return self.triples[:, 0]

    def wrap(self, positions: np.ndarray, box_lengths: np.ndarray) -> None:
        """
        Put every molecule into the primary box image as a rigid unit.

        Per axis, a molecule whose oxygen lies below zero is shifted up by one
        box length, and one whose oxygen then lies at or beyond the box length
        is shifted down by one. The shift is decided by the oxygen alone and
        applied to all three atoms, so no molecule is ever torn apart.

        Each direction shifts by at most one box length. An oxygen starting in
        ``[-L, 2L)`` therefore ends in ``[0, L)`` and a second call leaves it
        alone; one further out is moved by a single box length and stays
        outside the box.

        Parameters
        ----------
        positions : (N, 3) np.ndarray
            Full frame positions, modified in place.
        box_lengths : (3,) np.ndarray
            Box edge lengths ``[Lx, Ly, Lz]``.
        """
        # Two passes so the upper test sees the already shifted coordinate
        up = np.where(positions[self.oxygens] < 0, box_lengths, 0.0)
        positions[self.triples] += up[:, np.newaxis, :]
        down = np.where(positions[self.oxygens] >= box_lengths, box_lengths, 0.0)
        positions[self.triples] -= down[:, np.newaxis, :]

    def oxygen_positions(self, positions: np.ndarray) -> np.ndarray:
        """Return the ``(n_molecules, 3)`` oxygen positions of a frame."""
        return positions[self.oxygens]

    def dipoles(self, positions: np.ndarray) -> np.ndarray:
        """
        Return the dipole vector of every molecule, in e*nm.

        The dipole is the charge-weighted sum of the absolute atom positions,
        ``sum_i q_i r_i``. No molecular centre is subtracted; this equals the
        true dipole only because a water molecule carries no net charge.

        Parameters
        ----------
        positions : (N, 3) np.ndarray
            Full frame positions with whole molecules.

        Returns
        -------
        (n_molecules, 3) np.ndarray
        """
        return np.einsum('mk,mkd->md', self.charges, positions[self.triples])
