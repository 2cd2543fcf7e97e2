"""
Holdridge Life Zones — Classification Codes
============================================
Packs the four classification fields into one integer per cell and turns
codes back into plain-English life zone names.

Code layout (base 10)::

    code = 1000 * veg_class + 100 * altitudinal_band + 10 * latitudinal_band + ecotone

    e.g. 39761 → veg class 39, basal (7), subtropical (6), core life zone (1)

Two values are reserved: ``0`` (no data) and ``1`` (outside the modelled
climate envelope).  Codes are stored as ``uint32`` so veg classes well past
two digits never collide with the band digits.

Usage::

    from holdridge_life_zones.codes import decode, decode_table

    decode(39761, table.names)
    # 'subtropical moist forest - core life zone'
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

import numpy as np
import numpy.typing as npt
import pandas as pd

from shared.python.exceptions import DecodeIndexOutOfRangeError

CODE_DTYPE = np.uint32

NO_DATA_CODE = 0
OUT_OF_BOUNDS_CODE = 1

NO_DATA_NAME = "No data"
OUT_OF_BOUNDS_NAME = "No vegetation, outside of HLZ parameters"

LATITUDINAL_BAND_NAMES: tuple[str, ...] = (
    "polar",
    "subpolar",
    "boreal",
    "cool temperate",
    "warm temperate",
    "subtropical",
    "tropical",
)

# Band 7 is basal and has no name of its own.
ALTITUDINAL_BAND_NAMES: tuple[str, ...] = (
    "nival",
    "alpine",
    "subalpine",
    "montane",
    "premontane",
    "lower montane",
    "",
)

# Indexed by the ecotone digit; 0 is the undifferentiated hexagon.
ECOTONE_SUFFIXES: tuple[str, ...] = (
    "",
    " - core life zone",
    " - hyperthermal transitional life zone",
    " - hyperhumid transitional life zone",
    " - hyperpluvial transitional life zone",
    " - hypothermal transitional life zone",
    " - hypohumid transitional life zone",
    " - hypopluvial transitional life zone",
)


class CodeComponents(NamedTuple):
    """The four fields packed into a classification code."""

    veg_class: int
    altitudinal_band: int
    latitudinal_band: int
    ecotone: int


def assemble_codes(
    veg_class: npt.ArrayLike,
    altitudinal_band: npt.ArrayLike,
    latitudinal_band: npt.ArrayLike,
    ecotone: npt.ArrayLike,
) -> npt.NDArray[np.uint32]:
    """Pack per-cell fields into ``uint32`` classification codes."""
    codes = np.asarray(veg_class, dtype=CODE_DTYPE) * CODE_DTYPE(1000)
    codes += np.asarray(altitudinal_band, dtype=CODE_DTYPE) * CODE_DTYPE(100)
    codes += np.asarray(latitudinal_band, dtype=CODE_DTYPE) * CODE_DTYPE(10)
    codes += np.asarray(ecotone, dtype=CODE_DTYPE)
    return codes


def decompose(code: int) -> CodeComponents:
    """Split a code into its four fields (no range checking)."""
    code = int(code)
    return CodeComponents(
        veg_class=code // 1000,
        altitudinal_band=(code % 1000) // 100,
        latitudinal_band=(code % 100) // 10,
        ecotone=code % 10,
    )


def _checked(code: int, component: str, value: int, low: int, high: int) -> int:
    if not low <= value <= high:
        raise DecodeIndexOutOfRangeError(code, component, value, high)
    return value


def decode(code: int, names: Sequence[str]) -> str:
    """Return the life zone name of a single classification code.

    Args:
        code: A classification code from the output raster.
        names: Veg-class names, ``names[0]`` being veg class 1 (e.g.
               ``ZoneTable.names``).

    Returns:
        ``"No data"`` for ``0``, the out-of-bounds text for ``1``, and
        otherwise ``"<latitudinal band> <altitudinal band ><veg class><ecotone suffix>"``.

    Raises:
        DecodeIndexOutOfRangeError: If the veg class is not in *names* or
            a band/ecotone digit has no name.
    """
    code = int(code)
    if code == NO_DATA_CODE:
        return NO_DATA_NAME
    if code == OUT_OF_BOUNDS_CODE:
        return OUT_OF_BOUNDS_NAME

    parts = decompose(code)
    veg_class = _checked(code, "veg_class", parts.veg_class, 1, len(names))
    alt_band = _checked(
        code, "altitudinal_band", parts.altitudinal_band, 1, len(ALTITUDINAL_BAND_NAMES)
    )
    lat_band = _checked(
        code, "latitudinal_band", parts.latitudinal_band, 1, len(LATITUDINAL_BAND_NAMES)
    )
    ecotone = _checked(code, "ecotone", parts.ecotone, 0, len(ECOTONE_SUFFIXES) - 1)

    altitude = ALTITUDINAL_BAND_NAMES[alt_band - 1]
    altitude = f"{altitude} " if altitude else ""
    return (
        f"{LATITUDINAL_BAND_NAMES[lat_band - 1]} {altitude}"
        f"{names[veg_class - 1]}{ECOTONE_SUFFIXES[ecotone]}"
    )


def decode_table(codes: npt.ArrayLike, names: Sequence[str]) -> dict[int, str]:
    """Decode every distinct code in *codes*, in ascending code order."""
    return {int(code): decode(int(code), names) for code in np.unique(np.asarray(codes))}


def build_code_table(codes: npt.ArrayLike, names: Sequence[str]) -> pd.DataFrame:
    """Return a ``Code``/``Name`` DataFrame of the distinct codes in *codes*.

    Example::

        build_code_table(code_raster, table.names).to_csv("HLZ_Codes.csv", index=False)
    """
    decoded = decode_table(codes, names)
    return pd.DataFrame({"Code": list(decoded.keys()), "Name": list(decoded.values())})
