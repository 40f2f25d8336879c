"""Readers and writers for GROMACS index and xvg files."""

from .ndx_parser import read_ndx, select_group
from .xvg_writer import write_xvg

__all__ = ["read_ndx", "select_group", "write_xvg"]
