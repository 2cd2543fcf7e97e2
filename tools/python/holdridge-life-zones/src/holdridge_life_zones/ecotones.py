"""
Holdridge Life Zones — Ecotone Detection
=========================================
Tags cells lying in the transitional belt of their hexagon.

A cell is in the *core* of its life zone when each of its three climate
values lies within ``[edge, 2 * edge]`` of the winning zone.  Otherwise
the axis that is out of range decides which of the six transitional
triangles of the hexagon it falls into.

The three axes are tested in a fixed order (precipitation, PET ratio,
biotemperature) and every triggered test overwrites the previous result,
so biotemperature wins when several axes are out of range at once.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

ECOTONE_DTYPE = np.uint8

UNDIFFERENTIATED = 0
CORE = 1
BIOTEMPERATURE_LOW = 2
PET_RATIO_LOW = 3
PRECIPITATION_HIGH = 4
BIOTEMPERATURE_HIGH = 5
PET_RATIO_HIGH = 6
PRECIPITATION_LOW = 7

# Column of each axis in ZoneTable.edge_lookup().
BIOTEMPERATURE_AXIS = 0
PRECIPITATION_AXIS = 1
PET_RATIO_AXIS = 2


@dataclass(frozen=True)
class EcotoneTest:
    """Out-of-range test on one climate axis.

    Attributes:
        axis: Column of the edge lookup this test reads.
        below: Ecotone assigned when the value is under the zone edge.
        above: Ecotone assigned when the value exceeds twice the edge.
    """

    axis: int
    below: int
    above: int


# Evaluation order; later tests overwrite earlier ones.
ECOTONE_TESTS: tuple[EcotoneTest, ...] = (
    EcotoneTest(PRECIPITATION_AXIS, below=PRECIPITATION_LOW, above=PRECIPITATION_HIGH),
    EcotoneTest(PET_RATIO_AXIS, below=PET_RATIO_LOW, above=PET_RATIO_HIGH),
    EcotoneTest(BIOTEMPERATURE_AXIS, below=BIOTEMPERATURE_LOW, above=BIOTEMPERATURE_HIGH),
)


def detect_ecotones(
    veg_class: npt.NDArray[np.uint16],
    biotemperature: npt.ArrayLike,
    precipitation: npt.ArrayLike,
    pet_ratio: npt.ArrayLike,
    edge_lookup: npt.NDArray[np.float64],
    *,
    compute_ecotones: bool = True,
) -> npt.NDArray[np.uint8]:
    """Return the ecotone digit of every cell.

    Args:
        veg_class: Veg-class index per cell (after subtropical offsetting).
        biotemperature: Local annual biotemperature (°C).
        precipitation: Annual precipitation (mm/yr).
        pet_ratio: PET / precipitation ratio.
        edge_lookup: ``ZoneTable.edge_lookup()``; row ``k`` holds the edges
            of veg class ``k``.
        compute_ecotones: When ``False`` every cell gets
            :data:`UNDIFFERENTIATED` (the whole hexagon, no core/transition
            split).

    Returns:
        uint8 array of ecotone digits in ``0..7``.
    """
    if not compute_ecotones:
        return np.full(np.shape(veg_class), UNDIFFERENTIATED, dtype=ECOTONE_DTYPE)

    values = (
        np.asarray(biotemperature, dtype=np.float64),
        np.asarray(precipitation, dtype=np.float64),
        np.asarray(pet_ratio, dtype=np.float64),
    )
    edges = edge_lookup[veg_class]
    ecotone = np.full(np.shape(veg_class), CORE, dtype=ECOTONE_DTYPE)

    with np.errstate(invalid="ignore"):
        for test in ECOTONE_TESTS:
            value = values[test.axis]
            edge = edges[..., test.axis]
            ecotone[value < edge] = test.below
            ecotone[value > 2.0 * edge] = test.above

    return ecotone
