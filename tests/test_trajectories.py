import pytest
import numpy as np
from abc import ABC
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from MDAnalysis.exceptions import NoDataError

from h2orderMD.trajectories import (
    MDATrajectory,
    NumpyTrajectory,
    DataUnavailableError,
    Frame,
)
from h2orderMD.trajectories._base import Trajectory
from h2orderMD.trajectories.mda import ANGSTROM_TO_NM


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------
class FakeAtoms:
    """Stand-in for an MDAnalysis AtomGroup with optional topology attributes."""

    def __init__(self, n_atoms, charges=None, masses=None, bonds=None):
        self._n = n_atoms
        self._charges = charges
        self._masses = masses
        self._bonds = bonds
        self.unwrap_calls = []

    def __len__(self):
        return self._n

    @property
    def charges(self):
        if self._charges is None:
            raise NoDataError("This Universe does not contain charge information")
        return self._charges

    @property
    def masses(self):
        if self._masses is None:
            raise NoDataError("This Universe does not contain mass information")
        return self._masses

    @property
    def bonds(self):
        if self._bonds is None:
            raise NoDataError("This Universe does not contain bonds information")
        return SimpleNamespace(indices=self._bonds)

    def unwrap(self, **kwargs):
        self.unwrap_calls.append(kwargs)


def _timestep(positions, time, box=30.0):
    return SimpleNamespace(
        dimensions=np.array([box, box, box, 90.0, 90.0, 90.0]),
        positions=np.asarray(positions, dtype=np.float32),
        time=time,
    )


@pytest.fixture
def mock_mdanalysis_universe():
    """Mock MDAnalysis Universe: 3 atoms, 3 frames, 30 Angstrom cubic box."""
    mock = MagicMock()
    mock.dimensions = np.array([30.0, 30.0, 30.0, 90.0, 90.0, 90.0])
    mock.trajectory = [
        _timestep(np.full((3, 3), 10.0 * (i + 1)), time=2.0 * i) for i in range(3)
    ]
    mock.atoms = FakeAtoms(
        3,
        charges=np.array([-0.834, 0.417, 0.417]),
        masses=np.array([15.999, 1.008, 1.008]),
        bonds=np.array([[0, 1], [0, 2]]),
    )
    mock.select_atoms.return_value.indices = np.array([0, 1, 2])
    return mock


# -----------------------------------------------------------------------------
# MDATrajectory
# -----------------------------------------------------------------------------
def test_angstrom_to_nm_factor():
    assert ANGSTROM_TO_NM == pytest.approx(0.1)


@patch("h2orderMD.trajectories.mda.MD.Universe")
def test_mda_initialization_and_accessors(mock_universe, mock_mdanalysis_universe):
    mock_universe.return_value = mock_mdanalysis_universe
    traj = MDATrajectory("traj.xtc", "topol.tpr")

    assert traj.frames == 3
    assert traj.n_atoms == 3
    assert np.isclose(traj.box_x, 3.0)
    assert np.isclose(traj.box_y, 3.0)
    assert np.isclose(traj.box_z, 3.0)

    np.testing.assert_array_equal(traj.get_indices("resname SOL"), [0, 1, 2])
    np.testing.assert_allclose(traj.get_charges([0, 2]), [-0.834, 0.417])
    np.testing.assert_allclose(traj.get_masses([1]), [1.008])
    np.testing.assert_array_equal(traj.bonds, [[0, 1], [0, 2]])


@patch("h2orderMD.trajectories.mda.MD.Universe")
def test_mda_frames_are_converted_to_nm(mock_universe, mock_mdanalysis_universe):
    mock_universe.return_value = mock_mdanalysis_universe
    traj = MDATrajectory("traj.xtc", "topol.tpr")

    frames = list(traj.iter_frames(start=1))
    assert len(frames) == 2
    np.testing.assert_allclose(frames[0].positions, np.full((3, 3), 2.0), rtol=1e-6)
    np.testing.assert_allclose(frames[0].box, np.diag([3.0, 3.0, 3.0]), atol=1e-12)
    assert frames[1].time == pytest.approx(4.0)

    frame = traj.get_frame(0)
    np.testing.assert_allclose(frame.positions, np.full((3, 3), 1.0), rtol=1e-6)


@patch("h2orderMD.trajectories.mda.MD.Universe")
def test_mda_frames_are_unwrapped_by_fragment(mock_universe, mock_mdanalysis_universe):
    mock_universe.return_value = mock_mdanalysis_universe
    traj = MDATrajectory("traj.xtc", "topol.tpr")

    list(traj.iter_frames())
    traj.get_frame(1)

    calls = mock_mdanalysis_universe.atoms.unwrap_calls
    assert len(calls) == 4
    assert all(c == dict(compound='fragments', reference=None, inplace=True) for c in calls)


@patch("h2orderMD.trajectories.mda.MD.Universe")
def test_mda_make_whole_leaves_frame_untouched(mock_universe, mock_mdanalysis_universe):
    mock_universe.return_value = mock_mdanalysis_universe
    traj = MDATrajectory("traj.xtc", "topol.tpr")

    # Bonded atoms 2.8 nm apart in a 3 nm box: the bond-graph walk would move atom 1
    frame = Frame(
        box=np.diag([3.0, 3.0, 3.0]),
        positions=np.array([[0.1, 0.0, 0.0], [2.9, 0.0, 0.0], [0.2, 0.0, 0.0]]),
    )
    assert traj.make_whole(frame) is frame
    np.testing.assert_array_equal(frame.positions[1], [2.9, 0.0, 0.0])


@patch("h2orderMD.trajectories.mda.MD.Universe")
def test_mda_missing_topology_data(mock_universe, mock_mdanalysis_universe):
    mock_mdanalysis_universe.atoms = FakeAtoms(3)
    mock_universe.return_value = mock_mdanalysis_universe
    traj = MDATrajectory("traj.xtc", "topol.gro")

    with pytest.raises(DataUnavailableError, match="partial charges"):
        traj.get_charges([0])
    with pytest.raises(DataUnavailableError, match="masses"):
        traj.get_masses([0])
    assert traj.bonds.shape == (0, 2)
    list(traj.iter_frames())
    assert traj.mdanalysis_universe.atoms.unwrap_calls == []


@patch("h2orderMD.trajectories.mda.MD.Universe")
def test_mda_empty_selection_raises(mock_universe, mock_mdanalysis_universe):
    mock_mdanalysis_universe.select_atoms.return_value.indices = np.array([], dtype=int)
    mock_universe.return_value = mock_mdanalysis_universe
    traj = MDATrajectory("traj.xtc", "topol.tpr")
    with pytest.raises(ValueError, match="matched no atoms"):
        traj.get_indices("resname XYZ")


@patch("h2orderMD.trajectories.mda.MD.Universe", side_effect=Exception("fail"))
def test_mda_raises_on_universe_failure(mock_universe):
    with pytest.raises(RuntimeError, match="Failed to load MDAnalysis Universe"):
        MDATrajectory("traj.xtc", "topol.tpr")


def test_mda_raises_no_topology():
    with pytest.raises(ValueError, match="topology file is required"):
        MDATrajectory("traj.xtc", "")


def test_mda_cell_from_dimensions_without_angles():
    cell = MDATrajectory._cell_matrix_from_dimensions(np.array([20.0, 30.0, 40.0]))
    np.testing.assert_allclose(cell, np.diag([2.0, 3.0, 4.0]), atol=1e-12)


def test_mda_cell_from_invalid_dimensions():
    with pytest.raises(ValueError, match="Invalid simulation box dimensions"):
        MDATrajectory._cell_matrix_from_dimensions(None)


# -----------------------------------------------------------------------------
# NumpyTrajectory
# -----------------------------------------------------------------------------
def test_numpy_trajectory_valid_and_accessors():
    positions = np.zeros((5, 3, 3))
    species = ["OW", "HW1", "HW2"]
    traj = NumpyTrajectory(
        positions, 3.0, 4.0, 5.0, species,
        charge_list=[-0.8, 0.4, 0.4],
        mass_list=[16.0, 1.0, 1.0],
    )

    assert traj.frames == 5
    assert traj.n_atoms == 3
    assert (traj.box_x, traj.box_y, traj.box_z) == (3.0, 4.0, 5.0)
    np.testing.assert_array_equal(traj.get_indices("HW1"), [1])
    np.testing.assert_allclose(traj.get_charges([0, 1]), [-0.8, 0.4])
    np.testing.assert_allclose(traj.get_masses([2]), [1.0])
    assert traj.bonds.shape == (0, 2)


def test_numpy_trajectory_species_not_found():
    traj = NumpyTrajectory(np.zeros((1, 2, 3)), 1.0, 1.0, 1.0, ["A", "B"])
    with pytest.raises(ValueError, match="not found"):
        traj.get_indices("C")


def test_numpy_trajectory_without_species():
    traj = NumpyTrajectory(np.zeros((1, 2, 3)), 1.0, 1.0, 1.0)
    with pytest.raises(ValueError, match="Species list was not provided"):
        traj.get_indices("A")


def test_numpy_trajectory_without_charges_or_masses():
    traj = NumpyTrajectory(np.zeros((1, 2, 3)), 1.0, 1.0, 1.0)
    with pytest.raises(DataUnavailableError):
        traj.get_charges([0])
    with pytest.raises(DataUnavailableError):
        traj.get_masses([0])


@pytest.mark.parametrize("kwargs, match", [
    (dict(positions=np.zeros((2, 3))), "shape"),
    (dict(positions=np.zeros((1, 2, 3)), species_list=["A"]), "incommensurate"),
    (dict(positions=np.zeros((1, 2, 3)), box_z=None), "together"),
    (dict(positions=np.zeros((1, 2, 3)), box_x=-1.0), "positive"),
    (dict(positions=np.zeros((1, 2, 3)), charge_list=[1.0]), "charge_list"),
    (dict(positions=np.zeros((1, 2, 3)), mass_list=[1.0, 2.0, 3.0]), "mass_list"),
    (dict(positions=np.zeros((2, 2, 3)), times=[0.0]), "times"),
])
def test_numpy_trajectory_invalid_arguments(kwargs, match):
    args = dict(box_x=1.0, box_y=1.0, box_z=1.0)
    args.update(kwargs)
    with pytest.raises(ValueError, match=match):
        NumpyTrajectory(**args)


def test_numpy_trajectory_box_and_cell_are_exclusive():
    with pytest.raises(ValueError, match="Cannot specify both"):
        NumpyTrajectory(np.zeros((1, 1, 3)), 1.0, 1.0, 1.0, cell_matrix=np.eye(3))
    with pytest.raises(ValueError, match="Must specify either"):
        NumpyTrajectory(np.zeros((1, 1, 3)))


def test_numpy_trajectory_variable_cell():
    cells = np.array([np.diag([3.0, 3.0, 3.0]), np.diag([3.0, 3.0, 3.3])])
    traj = NumpyTrajectory(np.zeros((2, 1, 3)), cell_matrix=cells)

    assert traj.box_z == pytest.approx(3.0)
    frames = list(traj.iter_frames())
    np.testing.assert_allclose(frames[1].box_lengths, [3.0, 3.0, 3.3])


def test_numpy_trajectory_rejects_mismatched_cell_stack():
    with pytest.raises(ValueError, match="cell_matrix must have shape"):
        NumpyTrajectory(np.zeros((2, 1, 3)), cell_matrix=np.tile(np.eye(3), (3, 1, 1)))


def test_numpy_trajectory_zero_frames_is_valid():
    traj = NumpyTrajectory(np.zeros((0, 3, 3)), 3.0, 3.0, 3.0)
    assert traj.frames == 0
    assert list(traj.iter_frames()) == []


def test_numpy_frames_are_copies():
    positions = np.ones((1, 2, 3))
    traj = NumpyTrajectory(positions, 2.0, 2.0, 2.0)
    frame = traj.get_frame(0)
    frame.positions += 1.0
    frame.box[0, 0] = 9.0
    np.testing.assert_array_equal(traj.positions[0], np.ones((2, 3)))
    assert traj.box_x == 2.0


def test_numpy_frame_times():
    traj = NumpyTrajectory(np.zeros((3, 1, 3)), 1.0, 1.0, 1.0, times=[0.0, 0.5, 1.0])
    assert [f.time for f in traj.iter_frames()] == [0.0, 0.5, 1.0]


def test_numpy_iter_frames_with_start_stop_stride():
    n_frames, n_atoms = 10, 2
    positions = np.arange(n_frames * n_atoms * 3).reshape(n_frames, n_atoms, 3).astype(float)
    traj = NumpyTrajectory(positions, 10, 10, 10)

    frames = list(traj.iter_frames(start=2, stop=8, stride=2))
    assert len(frames) == 3
    for idx, frame in zip([2, 4, 6], frames):
        np.testing.assert_array_equal(frame.positions, positions[idx])


def test_numpy_iter_frames_negative_bounds():
    positions = np.arange(5 * 3).reshape(5, 1, 3).astype(float)
    traj = NumpyTrajectory(positions, 10, 10, 10)
    frames = list(traj.iter_frames(start=-2))
    np.testing.assert_array_equal([f.positions[0, 0] for f in frames], [9.0, 12.0])


@pytest.mark.parametrize("stride", [0, -1])
def test_iter_frames_rejects_non_positive_stride(stride):
    traj = NumpyTrajectory(np.zeros((3, 1, 3)), 1.0, 1.0, 1.0)
    with pytest.raises(ValueError, match="stride"):
        traj.iter_frames(stride=stride)


def test_numpy_make_whole_uses_bonds():
    positions = np.array([[[0.1, 0.0, 0.0], [2.9, 0.0, 0.0]]])
    traj = NumpyTrajectory(positions, 3.0, 3.0, 3.0, bonds=[[0, 1]])
    frame = traj.make_whole(traj.get_frame(0))
    np.testing.assert_allclose(frame.positions[1], [-0.1, 0.0, 0.0])
    assert traj.bond_graph is traj.bond_graph


# -----------------------------------------------------------------------------
# Base class
# -----------------------------------------------------------------------------
def test_trajectory_is_abstract():
    assert issubclass(Trajectory, ABC)
    with pytest.raises(TypeError):
        Trajectory()


def test_concrete_classes_are_subclasses():
    assert issubclass(MDATrajectory, Trajectory)
    assert issubclass(NumpyTrajectory, Trajectory)


def test_frame_box_lengths():
    frame = Frame(box=np.diag([1.0, 2.0, 3.0]), positions=np.zeros((1, 3)))
    np.testing.assert_allclose(frame.box_lengths, [1.0, 2.0, 3.0])
    assert frame.time == 0.0
