"""Cylinder class: optional region-of-interest filter on oxygen positions."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field

import numpy as np

#: Axes spanning the radial test. Fixed to x and y whatever the slicing axis.
RADIAL_AXES = (0, 1)


@dataclass(frozen=True)
class Cylinder:
    """
    Cylinder limiting the analysis to molecules whose oxygen lies inside it.

    Parameters
    ----------
    center : sequence of 3 float, optional
        Point on the cylinder axis. Only its x and y coordinates enter the
        radial test.
    rmax : float, optional
        Cylinder radius. Without it the filter includes every molecule.
    axis_min, axis_max : float, optional
        Bounds on the slicing-axis coordinate of the oxygen, both inclusive.
        They only apply while ``rmax`` is set.

    Notes
    -----
    The radial distance is always measured in the x-y plane, so the filter
    describes a cylinder only when slicing along z. :meth:`check_axis` warns
    when it is combined with another slicing axis.
    """

    center: tuple[float, float, float] | None = None
    rmax: float | None = None
    axis_min: float | None = None
    axis_max: float | None = None
    _center: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.rmax is not None and self.center is None:
            raise ValueError("A cylinder radius needs a center point.")
        if self.center is not None:
            center = np.asarray(self.center, dtype=np.float64)
            if center.shape != (3,):
                raise ValueError(f"Cylinder center must be a 3D point, got {self.center!r}.")
            if self.rmax is None:
                raise ValueError("A cylinder center needs a radius (rmax).")
            if self.rmax < 0:
                raise ValueError(f"Cylinder radius must not be negative, got {self.rmax}.")
        else:
            center = np.zeros(3)
        if (
            self.axis_min is not None
            and self.axis_max is not None
            and self.axis_min > self.axis_max
        ):
            raise ValueError(
                f"axis_min ({self.axis_min}) must not exceed axis_max ({self.axis_max})."
            )
        object.__setattr__(self, '_center', center)

    @property
    def active(self) -> bool:
        """True when the radial bound is set and the filter excludes anything."""
        return self.rmax is not None

    def check_axis(self, axis: int) -> None:
        """Warn when the radial test does not lie perpendicular to ``axis``."""
        if self.active and axis in RADIAL_AXES:
            warnings.warn(
                "Cylinder radial distances are measured in the x-y plane; with "
                f"slicing axis {'xyz'[axis]} the region is not a cylinder around "
                "the slicing axis.",
                UserWarning,
                stacklevel=3,
            )

    def mask(self, oxygens: np.ndarray, axis: int) -> np.ndarray:
        """
        Return a boolean inclusion mask over molecules.

        Parameters
        ----------
        oxygens : (M, 3) np.ndarray
            Oxygen positions.
        axis : int
            Slicing axis; the min/max bounds apply to this coordinate.

        Returns
        -------
        (M,) np.ndarray of bool
            ``True`` for molecules that take part in the analysis.
        """
        if not self.active:
            return np.ones(len(oxygens), dtype=bool)

        radial_axes = list(RADIAL_AXES)
        planar = oxygens[:, radial_axes] - self._center[radial_axes]
        include = np.einsum('md,md->m', planar, planar) <= self.rmax ** 2
        if self.axis_min is not None:
            include &= oxygens[:, axis] >= self.axis_min
        if self.axis_max is not None:
            include &= oxygens[:, axis] <= self.axis_max
        return include
