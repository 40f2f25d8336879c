"""
Command-line entry point: ``h2order``.

Computes the orientation of water molecules with respect to the normal of the
box. The box is divided into slices and the average cosine of the angle
between the water dipole and the chosen axis is written per slice, together
with the average dipole moment in three directions. With ``-nm`` the angle is
taken with the vector from the micelle centre of mass to the oxygen instead,
and slices become spherical shells.

Molecules are assigned to slices by the first atom of each O,H,H triple in the
water group; the order matters, names do not.

Example
-------
    h2order -f traj.xtc -s topol.tpr -n index.ndx -g SOL -d z -sl 50 -o order.xvg
"""

from __future__ import annotations

import argparse
import sys

from h2orderMD.order import Cylinder, OrderProfile
from h2orderMD.order_tools.ndx_parser import read_ndx, select_group
from h2orderMD.trajectories import MDATrajectory


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="h2order",
        description="Water orientation order parameter and dipole profile across the box.",
    )
    parser.add_argument("-f", dest="trajectory", required=True, help="Trajectory file")
    parser.add_argument("-s", dest="topology", required=True, help="Topology with charges and bonds (e.g. .tpr)")
    parser.add_argument("-n", dest="index", required=True, help="Index file with the water group (O,H,H order)")
    parser.add_argument("-g", "--group", default=None, help="Water group name or number (default: first group)")
    parser.add_argument("-nm", dest="micelle_index", default=None, help="Index file with micelle atoms")
    parser.add_argument("--micelle-group", default=None, help="Micelle group name or number (default: first group)")
    parser.add_argument("-o", dest="output", default="order.xvg", help="Output xvg file (default: order.xvg)")
    parser.add_argument("-d", dest="axis", default="Z", help="Normal on the membrane: X, Y or Z (default: Z)")
    parser.add_argument("-sl", dest="nslices", type=int, default=0,
                        help="Number of slices (default: 10 per nm of box length)")
    parser.add_argument("-center", nargs=3, type=float, default=None, metavar=("X", "Y", "Z"),
                        help="Center point of cylinder to include around")
    parser.add_argument("-rmax", type=float, default=None, help="Maximum distance from center point to include")
    parser.add_argument("-xmin", type=float, default=None, help="Minimum coordinate along the normal axis to include")
    parser.add_argument("-xmax", type=float, default=None, help="Maximum coordinate along the normal axis to include")
    parser.add_argument("--start", type=int, default=0, help="First frame index")
    parser.add_argument("--stop", type=int, default=None, help="Stop before this frame index")
    parser.add_argument("--period", type=int, default=1, help="Frame stride")
    return parser


def cylinder_from_args(args: argparse.Namespace) -> Cylinder | None:
    """Build the region filter; bounds along the axis only count with a center."""
    if args.center is None:
        return None
    return Cylinder(
        center=tuple(args.center),
        rmax=args.rmax,
        axis_min=args.xmin,
        axis_max=args.xmax,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    trajectory = MDATrajectory(args.trajectory, args.topology)
    water_name, water_indices = select_group(read_ndx(args.index), args.group)

    micelle_indices = None
    if args.micelle_index is not None:
        micelle_name, micelle_indices = select_group(read_ndx(args.micelle_index), args.micelle_group)
        print(f"Micelle group '{micelle_name}': {len(micelle_indices)} atoms", file=sys.stderr)

    profile = OrderProfile(
        trajectory,
        water_indices,
        axis=args.axis,
        nslices=args.nslices,
        cylinder=cylinder_from_args(args),
        micelle_indices=micelle_indices,
    )
    print(
        f"Water group '{water_name}': {profile.waters.n_molecules} molecules",
        file=sys.stderr,
    )
    profile.accumulate(start=args.start, stop=args.stop, period=args.period)
    print(
        f"Box divided in {profile.nslices} slices. Final width of slice: {profile.slice_width:f}",
        file=sys.stderr,
    )

    profile.write_xvg(args.output)
    print(f"Profile written to {args.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
