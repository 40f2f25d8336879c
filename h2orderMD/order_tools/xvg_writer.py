"""
GROMACS/Grace ``.xvg`` writer for h2orderMD profiles.

The file starts with ``#`` comment lines and ``@`` Grace directives, followed
by one whitespace-separated row per data point.
"""

from __future__ import annotations

from datetime import datetime

import numpy as np

import h2orderMD

#: Row format of an order profile: position, mu_x, mu_y, mu_z, <cos>.
PROFILE_ROW_FORMAT = "%8.3f %8.3f %8.3f %8.3f %e"


def write_xvg(
    xvg_file: str,
    table: np.ndarray,
    title: str,
    xlabel: str,
    ylabel: str,
    legends: list[str] | None = None,
    fmt: str = PROFILE_ROW_FORMAT,
) -> None:
    """
    Write a table as an xvg file.

    Parameters
    ----------
    xvg_file : str
        Output path.
    table : (N, K) np.ndarray
        Data rows; the first column is the x value.
    title, xlabel, ylabel : str
        Plot title and axis labels.
    legends : list of str, optional
        One legend entry per y column.
    fmt : str, optional
        ``numpy.savetxt`` row format (default: profile format).

    Raises
    ------
    ValueError
        If the table is not two-dimensional or legends do not match the
        number of y columns.
    """
    table = np.asarray(table, dtype=np.float64)
    if table.ndim != 2:
        raise ValueError(f"xvg table must be two-dimensional, got shape {table.shape}")
    if legends is not None and len(legends) != table.shape[1] - 1:
        raise ValueError(
            f"Got {len(legends)} legends for {table.shape[1] - 1} data columns."
        )

    lines = [
        f"# This file was created {datetime.now():%a %b %d %H:%M:%S %Y}",
        f"# by h2orderMD {h2orderMD.__version__}",
        f'@    title "{title}"',
        f'@    xaxis  label "{xlabel}"',
        f'@    yaxis  label "{ylabel}"',
        "@TYPE xy",
    ]
    if legends:
        lines.append("@ legend on")
        lines.extend(f'@ s{i} legend "{legend}"' for i, legend in enumerate(legends))

    np.savetxt(xvg_file, table, fmt=fmt, header="\n".join(lines), comments="")
