"""Constants, validators and diagnostic categories for the order package."""

from numbers import Integral

#: Conversion from e*nm to Debye, ``1e-9 * 1.60217733e-19 / 3.336e-30``.
DEBYE_CONVERSION: float = 1.60217733 / 0.03336

#: Default number of slices per nm of box edge when no slice count is given.
DEFAULT_SLICES_PER_NM: int = 10

AXIS_NAMES = ('x', 'y', 'z')


class SliceRangeWarning(UserWarning):
    """Molecules fell outside the slice range and were skipped for a frame."""
    pass


class EmptySliceWarning(UserWarning):
    """Slices received no molecules over the whole trajectory."""
    pass


def validate_axis(axis: int | str) -> int:
    """Validate and normalise the slicing axis.

    Parameters
    ----------
    axis : int or str
        ``0``, ``1``, ``2`` or ``'x'``, ``'y'``, ``'z'`` (case-insensitive).

    Returns
    -------
    int
        Axis index.

    Raises
    ------
    ValueError
        If axis does not name one of the three box axes.
    """
    if isinstance(axis, str):
        normalised = axis.lower().strip()
        if normalised in AXIS_NAMES:
            return AXIS_NAMES.index(normalised)
    elif isinstance(axis, Integral) and not isinstance(axis, bool) and axis in (0, 1, 2):
        return int(axis)
    raise ValueError(
        f"axis must be one of {AXIS_NAMES} or 0, 1, 2, got {axis!r}"
    )


def validate_nslices(nslices: int | None) -> int | None:
    """Validate a caller-supplied slice count; ``None`` or ``0`` means derive it from the box."""
    if nslices is None or nslices == 0:
        return None
    if isinstance(nslices, bool) or int(nslices) != nslices or nslices < 0:
        raise ValueError(f"nslices must be a positive integer, got {nslices!r}")
    return int(nslices)


def default_nslices(box_length: float) -> int:
    """Slice count derived from a box edge: ``floor(box_length * 10)``.

    Raises
    ------
    ValueError
        If the box is too short to hold a single default-width slice.
    """
    nslices = int(box_length * DEFAULT_SLICES_PER_NM)
    if nslices <= 0:
        raise ValueError(
            f"Box edge of {box_length} nm is too short to derive a slice count; "
            "pass nslices explicitly."
        )
    return nslices
