"""SliceAccumulator: running per-slice sums and their final normalisation."""

from __future__ import annotations

import warnings

import numpy as np

from h2orderMD.order.constants import EmptySliceWarning


class SliceAccumulator:
    """
    Running per-slice sums of orientation cosines and dipole vectors.

    Sums are plain float64 additions across frames. After the last frame,
    :meth:`finalize` divides every populated slice by its molecule count,
    once; from then on the arrays hold averages and no longer accept
    deposits.

    Parameters
    ----------
    nslices : int
        Number of slices.

    Attributes
    ----------
    count : (nslices,) np.ndarray of int
        Molecules deposited per slice over all frames.
    cos_sum : (nslices,) np.ndarray
        Sum of orientation cosines; the mean cosine after finalisation.
    dipole_sum : (nslices, 3) np.ndarray
        Sum of dipole vectors (e*nm); the mean dipole after finalisation.
    finalized : bool
        Whether :meth:`finalize` has run.
    """

    def __init__(self, nslices: int):
        if nslices <= 0:
            raise ValueError(f"nslices must be a positive integer, got {nslices}")
        self.nslices = int(nslices)
        self.count = np.zeros(self.nslices, dtype=np.int64)
        self.cos_sum = np.zeros(self.nslices, dtype=np.float64)
        self.dipole_sum = np.zeros((self.nslices, 3), dtype=np.float64)
        self.finalized = False

    def add(
        self,
        slices: np.ndarray,
        cosines: np.ndarray,
        dipoles: np.ndarray | None = None,
    ) -> None:
        """
        Deposit molecules into their slices.

        Parameters
        ----------
        slices : (M,) np.ndarray of int
            Slice index per molecule, all within ``[0, nslices)``.
        cosines : (M,) np.ndarray
            Orientation cosine per molecule.
        dipoles : (M, 3) np.ndarray, optional
            Dipole vector per molecule. When omitted only counts and cosines
            are accumulated.

        Raises
        ------
        RuntimeError
            If the accumulator has already been finalised.
        """
        if self.finalized:
            raise RuntimeError("Cannot deposit into a finalized SliceAccumulator.")
        n = self.nslices
        self.count += np.bincount(slices, minlength=n)
        self.cos_sum += np.bincount(slices, weights=cosines, minlength=n)
        if dipoles is not None:
            for d in range(3):
                self.dipole_sum[:, d] += np.bincount(slices, weights=dipoles[:, d], minlength=n)

    @property
    def empty_slices(self) -> np.ndarray:
        """Indices of slices that received no molecules."""
        return np.flatnonzero(self.count == 0)

    def finalize(self) -> None:
        """
        Turn sums into averages by dividing populated slices by their count.

        Slices without molecules keep their zero values and are reported in a
        single :class:`EmptySliceWarning`.

        Raises
        ------
        RuntimeError
            If called more than once.
        """
        if self.finalized:
            raise RuntimeError("SliceAccumulator has already been finalized.")
        filled = self.count > 0
        self.cos_sum[filled] /= self.count[filled]
        self.dipole_sum[filled] /= self.count[filled, np.newaxis]
        self.finalized = True

        empty = self.empty_slices
        if len(empty):
            warnings.warn(
                f"No water in {len(empty)} of {self.nslices} slice(s): "
                f"{empty.tolist()}",
                EmptySliceWarning,
                stacklevel=2,
            )

    @property
    def mean_cosine(self) -> np.ndarray:
        """Average orientation cosine per slice (after finalisation)."""
        if not self.finalized:
            raise RuntimeError("Call finalize() before reading averages.")
        return self.cos_sum

    @property
    def mean_dipole(self) -> np.ndarray:
        """Average dipole vector per slice in e*nm (after finalisation)."""
        if not self.finalized:
            raise RuntimeError("Call finalize() before reading averages.")
        return self.dipole_sum
