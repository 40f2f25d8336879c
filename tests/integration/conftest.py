"""Shared fixtures and configuration for integration tests."""

import pytest
import numpy as np


# SPC/E partial charges (e) and geometry (nm)
SPCE_CHARGES = np.array([-0.8476, 0.4238, 0.4238])
SPCE_MASSES = np.array([15.9994, 1.008, 1.008])
OH_BOND = 0.1
HOH_ANGLE = np.deg2rad(109.47)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------

def random_rotations(rng, n):
    """Uniformly distributed rotation matrices from random unit quaternions."""
    q = rng.normal(size=(n, 4))
    q /= np.linalg.norm(q, axis=1, keepdims=True)
    w, x, y, z = q.T
    return np.stack([
        np.stack([1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)], axis=-1),
        np.stack([2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)], axis=-1),
        np.stack([2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)], axis=-1),
    ], axis=1)


def water_slab(rng, n_frames, n_waters, box, z_range, bias=0.0):
    """
    Random SPC/E-shaped waters with oxygens inside ``z_range``.

    Every atom is wrapped into the box on its own, the way trajectory writers
    store coordinates, so molecules near the faces come out broken. ``bias``
    tilts the dipoles towards +z.

    Returns
    -------
    (n_frames, 3 * n_waters, 3) np.ndarray
        Positions in nm, ordered O, H, H per molecule.
    """
    half = HOH_ANGLE / 2
    local = np.array([
        [0.0, 0.0, 0.0],
        [OH_BOND * np.sin(half), 0.0, OH_BOND * np.cos(half)],
        [-OH_BOND * np.sin(half), 0.0, OH_BOND * np.cos(half)],
    ])
    frames = []
    for _ in range(n_frames):
        oxygens = rng.uniform([0.0, 0.0, z_range[0]], [box[0], box[1], z_range[1]], size=(n_waters, 3))
        rotations = random_rotations(rng, n_waters)
        if bias:
            flip = rng.random(n_waters) < bias
            # Local +z (the dipole direction) mapped onto lab +z or -z
            rotations[flip, :, 2] = np.sign(rotations[flip, 2:3, 2] + 1e-12) * rotations[flip, :, 2]
        atoms = oxygens[:, np.newaxis, :] + np.einsum('mij,kj->mki', rotations, local)
        frames.append(np.mod(atoms.reshape(-1, 3), box))
    return np.array(frames)


@pytest.fixture
def slab_system():
    """Three frames of 200 waters in a 3 x 3 x 4 nm box, slab between z = 1 and 3 nm, half tilted up."""
    rng = np.random.default_rng(20240611)
    box = np.array([3.0, 3.0, 4.0])
    positions = water_slab(rng, n_frames=3, n_waters=200, box=box, z_range=(1.0, 3.0), bias=0.5)
    n_waters = positions.shape[1] // 3
    bonds = np.array([[3 * m, 3 * m + k] for m in range(n_waters) for k in (1, 2)])
    return {
        "positions": positions,
        "box": box,
        "charges": np.tile(SPCE_CHARGES, n_waters),
        "masses": np.tile(SPCE_MASSES, n_waters),
        "bonds": bonds,
    }
