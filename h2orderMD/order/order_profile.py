"""OrderProfile class: water orientation and dipole profiles across the box."""

from __future__ import annotations

import warnings

import numpy as np
from tqdm import tqdm

from h2orderMD.trajectories._base import EmptyTrajectoryError, Frame, Trajectory
from h2orderMD.order.accumulator import SliceAccumulator
from h2orderMD.order.constants import (
    DEBYE_CONVERSION,
    default_nslices,
    validate_axis,
    validate_nslices,
)
from h2orderMD.order.cylinder import Cylinder
from h2orderMD.order.slicing import PlanarSlicing, SliceGeometry, SphericalSlicing
from h2orderMD.order.water import WaterGroup
from h2orderMD.order_tools.xvg_writer import write_xvg

#: Exceptions from a trajectory reader that end the frame stream after the first frame.
READ_ERRORS = (OSError, EOFError, ValueError)


class OrderProfile:
    """
    Water orientation order parameter and mean dipole per slice.

    Usage pattern:
    - Constructor resolves the water group, slice geometry and filter
    - deposit() adds a single frame (low-level, user-controlled iteration)
    - accumulate() streams a trajectory through deposit() and finalises
    - get_profile() returns the averaged table

    Each water molecule is assigned, per frame, to the slice containing its
    oxygen. With a micelle group the slices are spherical shells around the
    micelle centre of mass and the reference direction is radial; otherwise
    slices are planar along ``axis`` and the reference is the box axis.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory providing charges (and masses, for a micelle) and the bond
        list used to make molecules whole.
    water_indices : array-like of int
        Zero-based atom indices ordered O, H, H per water molecule.
    axis : int or str, optional
        Slicing axis, ``'x'``, ``'y'``, ``'z'`` or 0, 1, 2 (default: ``'z'``).
    nslices : int, optional
        Number of slices. If ``None`` (or 0) it is derived from the first
        frame as ``floor(box_length_along_axis * 10)``.
    cylinder : Cylinder, optional
        Region of interest; molecules outside it are ignored.
    micelle_indices : array-like of int, optional
        Zero-based indices of micelle atoms; switches to spherical slicing.

    Attributes
    ----------
    accumulator : SliceAccumulator or None
        Per-slice sums, allocated when the first frame is deposited.
    slice_width : float or None
        Slice width of the most recent frame.
    frames_processed : int
        Number of frames deposited.
    progress : {'initialized', 'accumulated', 'finalized'}
        Analysis state.
    """

    def __init__(
        self,
        trajectory: Trajectory,
        water_indices,
        axis: int | str = 'z',
        nslices: int | None = None,
        cylinder: Cylinder | None = None,
        micelle_indices=None,
    ):
        self.axis = validate_axis(axis)
        self._requested_nslices = validate_nslices(nslices)
        self._trajectory = trajectory

        self.waters = WaterGroup.from_trajectory(trajectory, water_indices)

        self.cylinder = cylinder if cylinder is not None else Cylinder()
        self.cylinder.check_axis(self.axis)

        self.geometry: SliceGeometry
        if micelle_indices is None:
            self.geometry = PlanarSlicing(self.axis)
        else:
            micelle_indices = np.asarray(micelle_indices, dtype=np.int64)
            self.geometry = SphericalSlicing(
                micelle_indices, trajectory.get_masses(micelle_indices)
            )

        self.accumulator: SliceAccumulator | None = None
        self.slice_width: float | None = None
        self.frames_processed = 0
        self.progress = 'initialized'

    @property
    def nslices(self) -> int | None:
        """Number of slices, known once requested or after the first frame."""
        if self.accumulator is not None:
            return self.accumulator.nslices
        return self._requested_nslices

    @property
    def micelle(self) -> bool:
        """True when slicing spherically around a micelle."""
        return self.geometry.mode == 'spherical'

    def _allocate(self, frame: Frame) -> None:
        """Allocate slice sums from the first frame."""
        nslices = self._requested_nslices
        if nslices is None:
            nslices = default_nslices(frame.box_lengths[self.axis])
        self.accumulator = SliceAccumulator(nslices)

    def deposit(self, frame: Frame) -> int:
        """
        Deposit a single frame's molecules into the slice sums.

        Low-level method for user-controlled iteration. The frame's positions
        are modified in place (molecules made whole and wrapped into the box).

        Parameters
        ----------
        frame : Frame
            Current frame.

        Returns
        -------
        int
            Number of molecules that passed the region filter in this frame.

        Raises
        ------
        RuntimeError
            If the profile has already been finalised.
        """
        if self.progress == 'finalized':
            raise RuntimeError("Cannot deposit frames into a finalized OrderProfile.")
        if self.accumulator is None:
            self._allocate(frame)
        assert self.accumulator is not None

        positions = frame.positions
        box_lengths = frame.box_lengths
        self.slice_width = float(box_lengths[self.axis]) / self.accumulator.nslices

        self._trajectory.make_whole(frame)
        self.waters.wrap(positions, box_lengths)
        self.geometry.prepare(positions)

        oxygens = self.waters.oxygen_positions(positions)
        include = self.cylinder.mask(oxygens, self.axis)
        dipoles = self.waters.dipoles(positions)[include]

        slices, cosines = self.geometry.classify(oxygens[include], dipoles, self.slice_width)
        self.geometry.deposit(self.accumulator, slices, cosines, dipoles)

        self.frames_processed += 1
        self.progress = 'accumulated'
        return int(np.count_nonzero(include))

    def accumulate(
        self,
        trajectory: Trajectory | None = None,
        start: int = 0,
        stop: int | None = None,
        period: int = 1,
    ) -> None:
        """
        Stream trajectory frames through :meth:`deposit`, then finalise.

        Parameters
        ----------
        trajectory : Trajectory, optional
            Frame source (default: the trajectory given at construction).
        start : int
            First frame index (default: 0).
        stop : int or None
            Stop frame index (default: None for all frames).
        period : int
            Frame stride (default: 1).

        Raises
        ------
        EmptyTrajectoryError
            If no frame can be read.
        RuntimeError
            If the profile has already been finalised.

        Notes
        -----
        A read error after the first frame ends the stream early with a
        warning; the frames read so far are kept.
        """
        if self.progress == 'finalized':
            raise RuntimeError("OrderProfile has already been finalized.")
        if trajectory is None:
            trajectory = self._trajectory

        to_run = range(*trajectory._normalize_bounds(start, stop, period))
        frames = iter(tqdm(trajectory.iter_frames(start, stop, period), total=len(to_run)))

        try:
            frame = next(frames)
        except StopIteration:
            raise EmptyTrajectoryError("Could not read coordinates from the trajectory.") from None

        while frame is not None:
            self.deposit(frame)
            try:
                frame = next(frames)
            except StopIteration:
                frame = None
            except READ_ERRORS as e:
                warnings.warn(
                    f"Reading frame {self.frames_processed} failed ({e}); "
                    f"using the {self.frames_processed} frame(s) read so far.",
                    UserWarning,
                    stacklevel=2,
                )
                frame = None

        self.finalize()

    def finalize(self) -> None:
        """
        Divide the slice sums by their molecule counts, exactly once.

        Raises
        ------
        RuntimeError
            If no frame has been deposited or the profile is already finalised.
        """
        if self.accumulator is None:
            raise RuntimeError("Call accumulate() or deposit() before finalize().")
        if self.progress == 'finalized':
            raise RuntimeError("OrderProfile has already been finalized.")
        self.accumulator.finalize()
        self.progress = 'finalized'

    @property
    def positions(self) -> np.ndarray:
        """Slice positions ``slice_index * slice_width`` (nm)."""
        if self.accumulator is None:
            raise RuntimeError("Call accumulate() or deposit() before reading positions.")
        return np.arange(self.accumulator.nslices) * self.slice_width

    @property
    def order(self) -> np.ndarray:
        """Mean orientation cosine per slice."""
        return self._finalized_accumulator().mean_cosine

    @property
    def dipole(self) -> np.ndarray:
        """Mean dipole vector per slice in Debye; zero in spherical mode."""
        return self._finalized_accumulator().mean_dipole * DEBYE_CONVERSION

    def _finalized_accumulator(self) -> SliceAccumulator:
        if self.progress != 'finalized' or self.accumulator is None:
            raise RuntimeError("Call accumulate() or finalize() before reading the profile.")
        return self.accumulator

    def get_profile(self) -> np.ndarray:
        """
        Return the profile table.

        Returns
        -------
        (nslices, 5) np.ndarray
            Columns: position (nm), mu_x, mu_y, mu_z (Debye), mean cosine.
        """
        return np.column_stack([self.positions, self.dipole, self.order])

    def write_xvg(self, xvg_file: str) -> None:
        """Write :meth:`get_profile` as a GROMACS xvg file."""
        write_xvg(
            xvg_file,
            self.get_profile(),
            title="Water orientation with respect to normal",
            xlabel="box (nm)",
            ylabel="mu_x, mu_y, mu_z (D), cosine with normal",
        )


def compute_order(
    trajectory: Trajectory,
    water_indices,
    *,
    axis: int | str = 'z',
    nslices: int | None = None,
    cylinder: Cylinder | None = None,
    micelle_indices=None,
    start: int = 0,
    stop: int | None = None,
    period: int = 1,
) -> OrderProfile:
    """
    Compute a water order profile with a single function call.

    Convenience wrapper that creates an OrderProfile, streams the trajectory
    through it and finalises the averages.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory with charges, and masses if ``micelle_indices`` is given.
    water_indices : array-like of int
        Zero-based atom indices ordered O, H, H per water molecule.
    axis : int or str, optional
        Slicing axis (default: ``'z'``).
    nslices : int, optional
        Number of slices (default: derived from the first frame).
    cylinder : Cylinder, optional
        Region of interest.
    micelle_indices : array-like of int, optional
        Micelle atoms; switches to spherical slicing.
    start, stop, period : int, optional
        Frame range and stride.

    Returns
    -------
    OrderProfile
        Finalised profile; see :meth:`OrderProfile.get_profile`.
    """
    profile = OrderProfile(
        trajectory,
        water_indices,
        axis=axis,
        nslices=nslices,
        cylinder=cylinder,
        micelle_indices=micelle_indices,
    )
    profile.accumulate(trajectory, start=start, stop=stop, period=period)
    return profile
