"""
Slice geometries for the water order profile.

Two mutually exclusive geometries are chosen once per analysis:

- :class:`PlanarSlicing` bins oxygens by their coordinate along a box axis and
  measures dipole orientation against that axis.
- :class:`SphericalSlicing` bins oxygens by their distance from the centre of
  mass of a micelle and measures orientation against the radial vector.

Each geometry classifies molecules into slices and deposits them into a
:class:`~h2orderMD.order.accumulator.SliceAccumulator` its own way.
"""

from __future__ import annotations

import warnings
from abc import ABC, abstractmethod

import numpy as np

from h2orderMD.order.accumulator import SliceAccumulator
from h2orderMD.order.constants import SliceRangeWarning


def _cosines(numerators: np.ndarray, norms: np.ndarray) -> np.ndarray:
    """Divide ``numerators`` by ``norms``, giving 0 where the norm vanishes."""
    out = np.zeros(len(numerators), dtype=np.float64)
    np.divide(numerators, norms, out=out, where=norms > 0)
    return out


class SliceGeometry(ABC):
    """
    Interface shared by the planar and spherical slice geometries.

    Attributes
    ----------
    mode : str
        ``'planar'`` or ``'spherical'``.
    """

    mode: str

    def prepare(self, positions: np.ndarray) -> None:
        """Update per-frame reference data before molecules are classified."""
        pass

    @abstractmethod
    def classify(
        self,
        oxygens: np.ndarray,
        dipoles: np.ndarray,
        slice_width: float,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Assign molecules to slices and compute their orientation cosines.

        Parameters
        ----------
        oxygens : (M, 3) np.ndarray
            Oxygen positions of the included molecules.
        dipoles : (M, 3) np.ndarray
            Dipole vectors of the same molecules.
        slice_width : float
            Width of one slice in the current frame.

        Returns
        -------
        slices : (M,) np.ndarray of int
            Slice index per molecule; may fall outside the slice range.
        cosines : (M,) np.ndarray
            Orientation cosine per molecule.
        """
        ...

    @abstractmethod
    def deposit(
        self,
        accumulator: SliceAccumulator,
        slices: np.ndarray,
        cosines: np.ndarray,
        dipoles: np.ndarray,
    ) -> None:
        """Add in-range molecules to the accumulator."""
        ...

    @staticmethod
    def in_range(slices: np.ndarray, nslices: int) -> np.ndarray:
        """
        Return a mask of molecules whose slice index lies in ``[0, nslices)``.

        Molecules outside the range are skipped for the current frame only and
        reported through a :class:`SliceRangeWarning`.
        """
        valid = (slices >= 0) & (slices < nslices)
        if not np.all(valid):
            bad = np.flatnonzero(~valid)
            shown = ", ".join(str(s) for s in slices[bad[:5]])
            more = f" and {len(bad) - 5} more" if len(bad) > 5 else ""
            warnings.warn(
                f"{len(bad)} molecule(s) outside slices [0, {nslices}) skipped "
                f"(slice indices {shown}{more})",
                SliceRangeWarning,
                stacklevel=3,
            )
        return valid


class PlanarSlicing(SliceGeometry):
    """
    Slices perpendicular to a box axis.

    Slice index is ``floor(o[axis] / slice_width)`` and the orientation is
    ``dot(mu, n) / |mu|`` with ``n`` the unit normal along ``axis``. Both the
    cosine and the raw dipole vector are accumulated.

    Parameters
    ----------
    axis : int
        Slicing axis (0=x, 1=y, 2=z).
    """

    mode = 'planar'

    def __init__(self, axis: int):
        self.axis = axis
        self.normal = np.eye(3)[axis]

    def classify(self, oxygens, dipoles, slice_width):
        coordinates = oxygens[:, self.axis]
        slices = np.floor(coordinates / slice_width).astype(np.int64)
        cosines = _cosines(dipoles @ self.normal, np.linalg.norm(dipoles, axis=1))
        return slices, cosines

    def deposit(self, accumulator, slices, cosines, dipoles):
        valid = self.in_range(slices, accumulator.nslices)
        accumulator.add(slices[valid], cosines[valid], dipoles[valid])


class SphericalSlicing(SliceGeometry):
    """
    Spherical shells around the centre of mass of a micelle.

    Per frame the micelle centre of mass is recomputed; for each molecule the
    radial vector ``r = o - com`` gives the slice ``floor(|r| / slice_width)``
    and the orientation ``dot(mu, r) / (|mu| |r|)``.

    Only the cosine is accumulated: the mean dipole columns of a spherical
    profile stay zero.

    Parameters
    ----------
    indices : array-like of int
        Zero-based indices of the micelle atoms.
    masses : array-like of float
        Masses of the micelle atoms, same order.

    Raises
    ------
    ValueError
        If the group is empty or its masses do not sum to a positive value.
    """

    mode = 'spherical'

    def __init__(self, indices, masses):
        self.indices = np.asarray(indices, dtype=np.int64).ravel()
        self.masses = np.asarray(masses, dtype=np.float64).ravel()
        if len(self.indices) == 0:
            raise ValueError("The micelle group is empty.")
        if self.masses.shape != self.indices.shape:
            raise ValueError("Micelle masses and indices are incommensurate.")
        self.total_mass = float(self.masses.sum())
        if self.total_mass <= 0:
            raise ValueError("The micelle group must have a positive total mass.")
        self.center: np.ndarray | None = None

    def prepare(self, positions: np.ndarray) -> None:
        """Recompute the micelle centre of mass for the current frame."""
        self.center = self.masses @ positions[self.indices] / self.total_mass

    def classify(self, oxygens, dipoles, slice_width):
        if self.center is None:
            raise RuntimeError("Call prepare() before classify() for spherical slicing.")
        radial = oxygens - self.center
        distances = np.linalg.norm(radial, axis=1)
        slices = np.floor(distances / slice_width).astype(np.int64)
        cosines = _cosines(
            np.einsum('md,md->m', dipoles, radial),
            np.linalg.norm(dipoles, axis=1) * distances,
        )
        return slices, cosines

    def deposit(self, accumulator, slices, cosines, dipoles):
        valid = self.in_range(slices, accumulator.nslices)
        accumulator.add(slices[valid], cosines[valid])
