"""
Cell geometry and periodic-image helpers for trajectory frames.

All functions use the convention that rows of the cell matrix are lattice
vectors: ``M[0] = a``, ``M[1] = b``, ``M[2] = c`` (matching MDAnalysis'
``triclinic_vectors`` and GROMACS' ``box``).

Key operations:

- Box edge lengths used for slicing and wrapping: ``diag(M)``
- Minimum image convention: ``ds = r @ inv(M)``, ``ds -= round(ds)``,
  ``dr = ds @ M``
- Whole-molecule reconstruction: walk every bonded fragment breadth-first and
  place each atom at the minimum image of the atom it was reached from.
"""

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import breadth_first_order, connected_components

#: Absolute tolerance for deciding whether off-diagonal cell matrix elements
#: are zero, i.e. whether the cell is orthorhombic.
ORTHORHOMBIC_TOLERANCE: float = 1e-6


def is_orthorhombic(
    cell_matrix: np.ndarray, atol: float = ORTHORHOMBIC_TOLERANCE
) -> bool:
    """
    Return ``True`` if all off-diagonal elements of *cell_matrix* are below
    *atol*, i.e. the cell is orthorhombic (or cubic).

    Parameters
    ----------
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.
    atol : float, optional
        Absolute tolerance for off-diagonal elements (default:
        ``ORTHORHOMBIC_TOLERANCE``).
    """
    off_diagonal = cell_matrix[~np.eye(3, dtype=bool)]
    return bool(np.all(np.abs(off_diagonal) < atol))


def box_lengths(cell_matrix: np.ndarray) -> np.ndarray:
    """
    Return the diagonal box edge lengths ``[M[0, 0], M[1, 1], M[2, 2]]``.

    Slicing and rigid-group wrapping work on these per-axis lengths, which
    for a triclinic cell are the extents of the box along x, y and z of the
    lower-triangular cell matrix.
    """
    return np.array(np.diag(cell_matrix), dtype=np.float64)


def cell_matrix_from_lengths(lx: float, ly: float, lz: float) -> np.ndarray:
    """Build a diagonal (orthorhombic) cell matrix from three edge lengths."""
    return np.diag([float(lx), float(ly), float(lz)])


def validate_cell_matrix(cell_matrix: np.ndarray) -> np.ndarray:
    """
    Check that *cell_matrix* is a finite 3x3 matrix with positive diagonal.

    Parameters
    ----------
    cell_matrix : np.ndarray
        Candidate cell matrix with rows = lattice vectors.

    Returns
    -------
    np.ndarray
        The cell matrix as a float64 array.

    Raises
    ------
    ValueError
        If the shape is wrong, entries are not finite, or a diagonal
        element is not positive.
    """
    cell_matrix = np.asarray(cell_matrix, dtype=np.float64)
    if cell_matrix.shape != (3, 3):
        raise ValueError(f"Cell matrix must have shape (3, 3), got {cell_matrix.shape}.")
    if not np.all(np.isfinite(cell_matrix)):
        raise ValueError(f"Cell matrix must be finite. Got:\n{cell_matrix}")
    if not np.all(np.diag(cell_matrix) > 0):
        raise ValueError(
            f"Box dimensions must be positive. Got: {tuple(np.diag(cell_matrix))}"
        )
    return cell_matrix


def apply_minimum_image(
    displacement: np.ndarray,
    cell_matrix: np.ndarray,
    cell_inverse: np.ndarray,
) -> np.ndarray:
    """
    Apply the minimum image convention to displacement vectors.

    Works for arbitrary triclinic cells.  The displacement is converted to
    fractional coordinates, each component is rounded to the nearest integer
    and subtracted, then the result is converted back to Cartesian.

    Parameters
    ----------
    displacement : np.ndarray, shape (..., 3)
        Displacement vectors in Cartesian coordinates.
    cell_matrix : np.ndarray, shape (3, 3)
        Cell matrix with rows = lattice vectors.
    cell_inverse : np.ndarray, shape (3, 3)
        Inverse of the cell matrix.

    Returns
    -------
    np.ndarray, shape (..., 3)
        Minimum-image displacement vectors in Cartesian coordinates.
    """
    fractional = displacement @ cell_inverse
    fractional -= np.round(fractional)
    return fractional @ cell_matrix


class BondGraph:
    """
    Traversal plan for reconstructing whole molecules from a bond list.

    The plan is built once from the (static) topology: each bonded fragment
    is walked breadth-first from its lowest-index atom, and the resulting
    (child, parent) pairs are grouped by depth so that a frame can be made
    whole with one vectorised step per level.

    Parameters
    ----------
    bonds : np.ndarray, shape (n_bonds, 2)
        Zero-based atom index pairs.
    n_atoms : int
        Number of atoms in the system.

    Attributes
    ----------
    levels : list of tuple of np.ndarray
        ``(children, parents)`` index arrays, ordered by increasing depth.
    n_fragments : int
        Number of fragments with more than one atom.
    """

    def __init__(self, bonds: np.ndarray, n_atoms: int):
        bonds = np.asarray(bonds, dtype=np.int64).reshape(-1, 2)
        if bonds.size and (bonds.min() < 0 or bonds.max() >= n_atoms):
            raise ValueError(
                f"Bond indices must lie in [0, {n_atoms}), "
                f"got range [{bonds.min()}, {bonds.max()}]."
            )
        self.n_atoms = n_atoms
        self.levels: list[tuple[np.ndarray, np.ndarray]] = []
        self.n_fragments = 0
        if bonds.size == 0:
            return

        graph = coo_matrix(
            (np.ones(len(bonds)), (bonds[:, 0], bonds[:, 1])),
            shape=(n_atoms, n_atoms),
        ).tocsr()
        _, labels = connected_components(graph, directed=False)
        _, roots = np.unique(labels, return_index=True)
        self.n_fragments = int(np.count_nonzero(np.bincount(labels) > 1))

        # A virtual node bonded to every fragment root lets one BFS cover all fragments
        virtual = n_atoms
        rows = np.concatenate([bonds[:, 0], np.full(len(roots), virtual)])
        cols = np.concatenate([bonds[:, 1], roots])
        forest = coo_matrix(
            (np.ones(len(rows)), (rows, cols)), shape=(n_atoms + 1, n_atoms + 1)
        ).tocsr()
        order, predecessors = breadth_first_order(
            forest, virtual, directed=False, return_predecessors=True
        )

        depth = np.zeros(n_atoms + 1, dtype=np.int64)
        parent = predecessors[:n_atoms].astype(np.int64)
        for node in order[1:]:
            if predecessors[node] != virtual:
                depth[node] = depth[predecessors[node]] + 1
        depth = depth[:n_atoms]

        for level in range(1, int(depth.max()) + 1):
            children = np.flatnonzero(depth == level)
            self.levels.append((children, parent[children]))

    def make_whole(self, positions: np.ndarray, cell_matrix: np.ndarray) -> np.ndarray:
        """
        Move bonded atoms so that no fragment is split across the box.

        Parameters
        ----------
        positions : np.ndarray, shape (n_atoms, 3)
            Frame positions; modified in place.
        cell_matrix : np.ndarray, shape (3, 3)
            Cell matrix of the frame.

        Returns
        -------
        np.ndarray
            The same ``positions`` array.
        """
        if not self.levels:
            return positions
        cell_inverse = np.linalg.inv(cell_matrix)
        for children, parents in self.levels:
            displacement = positions[children] - positions[parents]
            positions[children] = positions[parents] + apply_minimum_image(
                displacement, cell_matrix, cell_inverse
            )
        return positions
