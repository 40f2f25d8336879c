"""
GROMACS index (``.ndx``) file parser for h2orderMD.

An index file lists named atom groups::

    [ SOL ]
       1    2    3    4    5    6
    [ Micelle ]
     301  302  303

Atom numbers in the file are 1-based; the parser returns 0-based indices so
they can be used directly on position arrays.
"""

from __future__ import annotations

import numpy as np


def read_ndx(ndx_file: str) -> dict[str, np.ndarray]:
    """
    Read every group of a GROMACS index file.

    Parameters
    ----------
    ndx_file : str
        Path to the ``.ndx`` file.

    Returns
    -------
    dict of str to np.ndarray
        Group name to 0-based atom indices, in file order. A repeated group
        name keeps its last definition, as GROMACS does when selecting by name.

    Raises
    ------
    ValueError
        If atom numbers appear before the first group header, a number is not
        a positive integer, or the file contains no groups.
    """
    groups: dict[str, list[int]] = {}
    current: list[int] | None = None

    with open(ndx_file, 'r') as f:
        for lineno, line in enumerate(f, start=1):
            stripped = line.split(';', 1)[0].strip()
            if not stripped:
                continue
            if stripped.startswith('['):
                if not stripped.endswith(']'):
                    raise ValueError(f"{ndx_file}:{lineno}: malformed group header {line.strip()!r}")
                name = stripped[1:-1].strip()
                current = []
                groups[name] = current
                continue
            if current is None:
                raise ValueError(f"{ndx_file}:{lineno}: atom numbers before the first group header")
            for token in stripped.split():
                try:
                    number = int(token)
                except ValueError:
                    raise ValueError(f"{ndx_file}:{lineno}: invalid atom number {token!r}")
                if number <= 0:
                    raise ValueError(f"{ndx_file}:{lineno}: atom numbers must be positive, got {number}")
                current.append(number - 1)

    if not groups:
        raise ValueError(f"No index groups found in {ndx_file}")
    return {name: np.array(atoms, dtype=np.int64) for name, atoms in groups.items()}


def select_group(groups: dict[str, np.ndarray], group: str | int | None = None) -> tuple[str, np.ndarray]:
    """
    Pick one group from the result of :func:`read_ndx`.

    Parameters
    ----------
    groups : dict of str to np.ndarray
        Groups as returned by :func:`read_ndx`.
    group : str or int, optional
        Group name, or its position in the file (0-based). ``None`` selects
        the first group.

    Returns
    -------
    tuple of (str, np.ndarray)
        Name and 0-based atom indices of the selected group.

    Raises
    ------
    ValueError
        If the name or position does not exist.
    """
    names = list(groups)
    if group is None:
        group = 0
    if isinstance(group, str) and group not in groups and group.isdigit():
        group = int(group)
    if isinstance(group, int):
        if not 0 <= group < len(names):
            raise ValueError(f"Group number {group} out of range; file has {len(names)} groups.")
        name = names[group]
    else:
        if group not in groups:
            raise ValueError(f"Group '{group}' not found; available groups: {names}")
        name = group
    return name, groups[name]
