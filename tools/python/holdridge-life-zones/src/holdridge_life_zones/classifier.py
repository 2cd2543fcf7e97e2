"""
Holdridge Life Zones — Log-Space Nearest-Centroid Classifier
=============================================================
Assigns every cell to the Holdridge hexagon whose center is closest in a
three-axis log2 space.

Consecutive Holdridge zone boundaries differ by a factor of two along each
axis, so after normalising each axis by its lattice scale and taking
``log2`` the hexagon centers sit on a regular lattice and "nearest hexagon
center" on the chart becomes plain Euclidean nearest-neighbour::

    x = log2(biotemperature / 0.75)
    y = log2(precipitation  / 62.5)
    z = log2(pet_ratio      / 0.125)

Functions / classes:
    compute_pet_ratio             PET / precipitation, elementwise.
    log_coordinates               Normalised log2 coordinates of each cell.
    LogSpaceNearestClassifier     Online nearest-centroid search.
    disambiguate_subtropical      Split warm temperate from subtropical.
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from holdridge_life_zones.zone_table import FROST_LINE, LOG_SCALES, ZoneTable

logger = logging.getLogger("holdridge.classifier")

# Index left on cells whose coordinates never beat +inf (NaN / Inf inputs).
UNCLASSIFIED = 0

INDEX_DTYPE = np.uint16


def compute_pet_ratio(
    pet: npt.ArrayLike,
    precipitation: npt.ArrayLike,
) -> npt.NDArray[np.float32]:
    """Return the PET / precipitation ratio of every cell.

    Division by zero is not masked here: the resulting ``inf``/``nan``
    values are expected to coincide with no-data cells and are dealt with
    by the masks downstream.

    Args:
        pet: Annual potential evapotranspiration (mm/yr).
        precipitation: Annual precipitation (mm/yr), same shape as *pet*.

    Returns:
        float32 ratio array.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.true_divide(
            np.asarray(pet, dtype=np.float32),
            np.asarray(precipitation, dtype=np.float32),
        )
    return ratio.astype(np.float32, copy=False)


def log_coordinates(
    biotemperature: npt.ArrayLike,
    precipitation: npt.ArrayLike,
    pet_ratio: npt.ArrayLike,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Map climate values onto the normalised log2 lattice.

    Non-positive values give ``-inf`` or ``nan``; no warning is emitted.
    """
    coords = []
    with np.errstate(divide="ignore", invalid="ignore"):
        for values, scale in zip((biotemperature, precipitation, pet_ratio), LOG_SCALES):
            coords.append(np.log2(np.asarray(values, dtype=np.float64) / scale))
    return coords[0], coords[1], coords[2]


class LogSpaceNearestClassifier:
    """Nearest-zone-center search over the searched rows of a zone table.

    The search is *online*: centers are visited in index order and each
    one updates a running minimum distance and winning index, so memory
    stays at a few arrays the size of the input no matter how many zones
    there are.

    A center only replaces the current winner when it is *strictly*
    closer, which means the lowest index wins an exact tie.  Cells with
    NaN or infinite coordinates never beat the initial ``+inf`` and keep
    index :data:`UNCLASSIFIED`.

    Each cell's result depends only on that cell, so any rectangular
    tiling of the grid produces identical output.

    Args:
        table: Zone table whose first ``table.search_count`` rows are searched.

    Example::

        classifier = LogSpaceNearestClassifier(ZoneTable.default())
        index = classifier.classify(abt, prec, petrat)
    """

    def __init__(self, table: ZoneTable) -> None:
        self._centers: npt.NDArray[np.float64] = table.log_centers()
        self._centers.setflags(write=False)

    @property
    def centers(self) -> npt.NDArray[np.float64]:
        """Read-only ``(n_zones, 3)`` array of log-space centers."""
        return self._centers

    @property
    def n_zones(self) -> int:
        return int(self._centers.shape[0])

    def nearest(
        self,
        biotemperature: npt.ArrayLike,
        precipitation: npt.ArrayLike,
        pet_ratio: npt.ArrayLike,
    ) -> tuple[npt.NDArray[np.uint16], npt.NDArray[np.float64]]:
        """Return the winning zone index and its squared distance per cell.

        Args:
            biotemperature: Annual biotemperature (°C).
            precipitation: Annual precipitation (mm/yr).
            pet_ratio: PET / precipitation ratio.

        Returns:
            ``(index, distance2)``: uint16 indices in ``1..n_zones`` (or
            ``0`` where unclassifiable) and the float64 squared distance
            to the winning center (``inf`` where unclassifiable).
        """
        x, y, z = log_coordinates(biotemperature, precipitation, pet_ratio)

        best = np.full(x.shape, UNCLASSIFIED, dtype=INDEX_DTYPE)
        min_dist2 = np.full(x.shape, np.inf, dtype=np.float64)
        dist2 = np.empty_like(min_dist2)
        scratch = np.empty_like(min_dist2)
        closer = np.empty(x.shape, dtype=bool)

        with np.errstate(invalid="ignore", over="ignore"):
            for index, (cx, cy, cz) in enumerate(self._centers, start=1):
                np.subtract(x, cx, out=dist2)
                np.square(dist2, out=dist2)
                np.subtract(y, cy, out=scratch)
                np.square(scratch, out=scratch)
                dist2 += scratch
                np.subtract(z, cz, out=scratch)
                np.square(scratch, out=scratch)
                dist2 += scratch

                np.less(dist2, min_dist2, out=closer)
                np.copyto(min_dist2, dist2, where=closer)
                best[closer] = index

        return best, min_dist2

    def classify(
        self,
        biotemperature: npt.ArrayLike,
        precipitation: npt.ArrayLike,
        pet_ratio: npt.ArrayLike,
    ) -> npt.NDArray[np.uint16]:
        """Return only the winning zone index per cell (see :meth:`nearest`)."""
        index, _ = self.nearest(biotemperature, precipitation, pet_ratio)
        return index


def disambiguate_subtropical(
    index: npt.NDArray[np.uint16],
    biotemperature: npt.ArrayLike,
    table: ZoneTable,
) -> npt.NDArray[np.uint16]:
    """Move warm-temperate cells above the frost line to their subtropical rows.

    The chart has a single hexagon per (precipitation, PET ratio) pair in
    the 12–24 °C range, shared by the warm-temperate and subtropical
    latitudinal bands.  Cells in the warm-temperate index range whose
    local biotemperature exceeds :data:`FROST_LINE` are shifted by
    ``table.subtropical_offset``.

    Args:
        index: Output of :meth:`LogSpaceNearestClassifier.classify`.
        biotemperature: Local annual biotemperature (°C).
        table: The zone table the index was produced from.

    Returns:
        A new uint16 veg-class array.
    """
    biotemperature = np.asarray(biotemperature)
    in_range = (index >= table.warm_temperate_desert) & (
        index <= table.warm_temperate_rain_forest
    )
    with np.errstate(invalid="ignore"):
        shifted = in_range & (biotemperature > FROST_LINE)
    veg_class = index.astype(INDEX_DTYPE, copy=True)
    veg_class[shifted] += INDEX_DTYPE(table.subtropical_offset)
    return veg_class
