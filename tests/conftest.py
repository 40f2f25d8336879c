"""Shared fixtures for unit tests."""

import numpy as np
import pytest

from h2orderMD.trajectories import NumpyTrajectory

# Toy water charges: neutral, and a molecule built by ``water_positions``
# has dipole (0, 0, 1) e*nm.
Q_O, Q_H = -2.0, 1.0


def water_positions(oxygen, flip=False):
    """
    Return O, H, H positions with dipole (0, 0, +1), or (0, 0, -1) if flipped.

    Hydrogens sit 0.25 nm either side of the oxygen in x and 0.5 nm above
    (below) it in z, so all coordinates stay exactly representable.
    """
    o = np.asarray(oxygen, dtype=np.float64)
    dz = -0.5 if flip else 0.5
    return np.array([
        o,
        o + [0.25, 0.0, dz],
        o + [-0.25, 0.0, dz],
    ])


def water_bonds(n_molecules, offset=0):
    """O-H bonds for consecutive O,H,H triples."""
    bonds = []
    for m in range(n_molecules):
        o = offset + 3 * m
        bonds.extend([[o, o + 1], [o, o + 2]])
    return np.array(bonds, dtype=np.int64).reshape(-1, 2)


@pytest.fixture
def make_water_trajectory():
    """
    Factory building a NumpyTrajectory of water molecules.

    ``frames`` is a list of frames, each a list of oxygen positions (or
    ``(oxygen, flip)`` tuples). Extra non-water atoms can be appended with
    ``extra_positions`` (one row per frame and atom) and ``extra_masses``.
    """
    def _make(frames, box=3.0, cell_matrix=None, extra_positions=None,
              extra_masses=None, bonds=True):
        all_positions = []
        for f, oxygens in enumerate(frames):
            rows = []
            for entry in oxygens:
                if isinstance(entry, tuple):
                    rows.append(water_positions(*entry))
                else:
                    rows.append(water_positions(entry))
            frame = np.concatenate(rows) if rows else np.empty((0, 3))
            if extra_positions is not None:
                frame = np.concatenate([frame, np.asarray(extra_positions[f], dtype=float)])
            all_positions.append(frame)
        positions = np.array(all_positions)

        n_waters = len(frames[0])
        n_extra = 0 if extra_positions is None else len(extra_positions[0])
        charges = np.concatenate([np.tile([Q_O, Q_H, Q_H], n_waters), np.zeros(n_extra)])
        masses = np.concatenate([
            np.tile([16.0, 1.0, 1.0], n_waters),
            np.ones(n_extra) if extra_masses is None else np.asarray(extra_masses, dtype=float),
        ])

        kwargs = {}
        if cell_matrix is not None:
            kwargs["cell_matrix"] = cell_matrix
        else:
            kwargs.update(box_x=box, box_y=box, box_z=box)
        return NumpyTrajectory(
            positions,
            charge_list=charges,
            mass_list=masses,
            bonds=water_bonds(n_waters) if bonds else None,
            **kwargs,
        )

    return _make


@pytest.fixture
def single_water(make_water_trajectory):
    """One frame, cubic 3 nm box, one water with its oxygen at z = 0.5."""
    return make_water_trajectory([[[1.0, 1.0, 0.5]]])


@pytest.fixture(name="water_positions")
def water_positions_fixture():
    """The :func:`water_positions` helper, for tests that build frames by hand."""
    return water_positions


@pytest.fixture(name="water_bonds")
def water_bonds_fixture():
    """The :func:`water_bonds` helper."""
    return water_bonds
