"""
Holdridge Life Zones — Override Masks
======================================
Three override layers decide which cells keep their classified code:

1. **Polar desert** — biotemperature at or below 1.5 °C, or a cell whose
   nearest hexagon is one of the polar rows.  Veg class is forced to the
   polar-desert row and the ecotone to 0.
2. **Out of bounds** — precipitation outside ``[62.5, 16000)`` mm or PET
   ratio outside ``[0.125, 32)``, for cells that are neither polar nor
   no-data.  Output code ``1``.
3. **No data** — supplied by the caller.  Output code ``0``, always.

Eligibility is computed in that order (out-of-bounds excludes polar
cells), while the final code follows :data:`CODE_OVERRIDES`, which lists
the sentinel rules from highest to lowest precedence and is evaluated once
per cell.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from holdridge_life_zones.bands import UNDEFINED_BAND
from holdridge_life_zones.classifier import UNCLASSIFIED
from holdridge_life_zones.codes import NO_DATA_CODE, OUT_OF_BOUNDS_CODE
from holdridge_life_zones.ecotones import UNDIFFERENTIATED
from holdridge_life_zones.zone_table import ZoneTable

POLAR_BIOTEMPERATURE = 1.5
PRECIPITATION_RANGE = (62.5, 16000.0)
PET_RATIO_RANGE = (0.125, 32.0)


@dataclass(frozen=True)
class MaskLayers:
    """Boolean override layers for one grid (or tile).

    Attributes:
        nodata: Cells without input data (caller supplied).
        polar: Polar-desert cells, never no-data.
        out_of_bounds: Cells outside the modelled climate envelope, never
            polar or no-data.
    """

    nodata: npt.NDArray[np.bool_]
    polar: npt.NDArray[np.bool_]
    out_of_bounds: npt.NDArray[np.bool_]


@dataclass(frozen=True)
class OverrideRule:
    """A sentinel code written wherever the named mask layer is set."""

    layer: str
    code: int


# Highest precedence first.
CODE_OVERRIDES: tuple[OverrideRule, ...] = (
    OverrideRule("nodata", NO_DATA_CODE),
    OverrideRule("out_of_bounds", OUT_OF_BOUNDS_CODE),
)


def compute_masks(
    zone_index: npt.NDArray[np.uint16],
    biotemperature: npt.ArrayLike,
    precipitation: npt.ArrayLike,
    pet_ratio: npt.ArrayLike,
    nodata: npt.ArrayLike,
    table: ZoneTable,
) -> MaskLayers:
    """Evaluate the polar, out-of-bounds and no-data layers in order.

    Args:
        zone_index: Nearest-centroid index per cell.
        biotemperature: Local annual biotemperature (°C).
        precipitation: Annual precipitation (mm/yr).
        pet_ratio: PET / precipitation ratio.
        nodata: Boolean no-data mask, ``True`` where input is missing.
        table: Zone table providing the polar rows.

    Returns:
        A :class:`MaskLayers` instance.
    """
    nodata = np.asarray(nodata, dtype=bool)
    biotemperature = np.asarray(biotemperature)
    precipitation = np.asarray(precipitation)
    pet_ratio = np.asarray(pet_ratio)

    with np.errstate(invalid="ignore"):
        polar = (
            (biotemperature <= POLAR_BIOTEMPERATURE)
            | np.isin(zone_index, table.polar_indices)
        ) & ~nodata

        outside = (
            (precipitation < PRECIPITATION_RANGE[0])
            | (precipitation >= PRECIPITATION_RANGE[1])
            | (pet_ratio < PET_RATIO_RANGE[0])
            | (pet_ratio >= PET_RATIO_RANGE[1])
        )
    out_of_bounds = outside & ~polar & ~nodata

    return MaskLayers(nodata=nodata, polar=polar, out_of_bounds=out_of_bounds)


def apply_polar_desert(
    veg_class: npt.NDArray[np.uint16],
    ecotone: npt.NDArray[np.uint8],
    masks: MaskLayers,
    table: ZoneTable,
) -> tuple[npt.NDArray[np.uint16], npt.NDArray[np.uint8]]:
    """Force polar cells to the polar-desert class with no ecotone."""
    veg_class = np.where(masks.polar, table.polar_desert, veg_class).astype(veg_class.dtype)
    ecotone = np.where(masks.polar, UNDIFFERENTIATED, ecotone).astype(ecotone.dtype)
    return veg_class, ecotone


def apply_code_overrides(
    codes: npt.NDArray[np.uint32],
    masks: MaskLayers,
    rules: tuple[OverrideRule, ...] = CODE_OVERRIDES,
) -> npt.NDArray[np.uint32]:
    """Write sentinel codes following *rules* (first matching rule wins)."""
    conditions = [getattr(masks, rule.layer) for rule in rules]
    choices = [np.asarray(rule.code, dtype=codes.dtype) for rule in rules]
    return np.select(conditions, choices, default=codes).astype(codes.dtype, copy=False)


def unresolved_cells(
    zone_index: npt.NDArray[np.uint16],
    altitudinal_band: npt.NDArray[np.uint8],
    latitudinal_band: npt.NDArray[np.uint8],
    masks: MaskLayers,
) -> npt.NDArray[np.bool_]:
    """Cells whose code would be undefined and that no sentinel covers.

    These come from NaN/Inf climate values the no-data mask missed: an
    unclassified zone index outside the polar layer, or an undefined band.
    """
    undefined = (
        ((zone_index == UNCLASSIFIED) & ~masks.polar)
        | (altitudinal_band == UNDEFINED_BAND)
        | (latitudinal_band == UNDEFINED_BAND)
    )
    return undefined & ~masks.nodata & ~masks.out_of_bounds
