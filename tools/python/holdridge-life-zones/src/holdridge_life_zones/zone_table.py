"""
Holdridge Life Zones — Zone Definition Table
=============================================
Immutable reference data for the classifier: one row per Holdridge
hexagon with its lower edges on the three climate axes and the name of its
vegetation class.

Each row's edges sit on the Holdridge log lattice: consecutive zones
differ by a factor of two along every axis, and a zone's *center* is the
geometric midpoint between its edge and the next octave::

    center = 2 ** (log2(edge) + 0.5)

Rows are addressed by their 1-based position (the veg-class index).  The
few rows the classifier needs to know about by meaning are tagged in the
``role`` column and resolved once at load time:

    ==========================  ==========================================
    role                        meaning
    ==========================  ==========================================
    warm_temperate_desert       first row of the warm-temperate hexagons
    warm_temperate_rain_forest  last row of the warm-temperate hexagons
    tropical_rain_forest        last row used by the nearest-centroid search
    polar_desert                veg class forced onto polar-desert cells
    polar                       other polar hexagons folded into polar desert
    ==========================  ==========================================

Rows after ``tropical_rain_forest`` hold the subtropical copies of the
warm-temperate hexagons; they are reached only through the subtropical
offset, never by the search.

Usage::

    from holdridge_life_zones.zone_table import ZoneTable

    table = ZoneTable.default()
    table.subtropical_offset      # 15
    table.zone(24).name           # "moist forest"
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt
import pandas as pd

from shared.python.exceptions import ColumnNotFoundError, InvalidZoneTableError
from shared.python.validators import Validators

logger = logging.getLogger("holdridge.zone_table")

DEFAULT_TABLE_PATH = Path(__file__).parent / "data" / "hlz_defs.csv"

REQUIRED_COLUMNS = ("abt", "tap", "per", "veg_class")

# Normalisation anchoring the log lattice to Holdridge's hexagon scale:
# biotemperature (°C), precipitation (mm/yr), PET ratio.
BIOTEMPERATURE_SCALE = 0.75
PRECIPITATION_SCALE = 62.5
PET_RATIO_SCALE = 0.125
LOG_SCALES = (BIOTEMPERATURE_SCALE, PRECIPITATION_SCALE, PET_RATIO_SCALE)

# Geometric midpoint of 12 and 24 °C; splits warm temperate from subtropical.
FROST_LINE = 2 ** (math.log2(12) + 0.5)

# Zones through tropical rain forest on the Holdridge chart.
MIN_SEARCH_ZONES = 34

ROLE_WARM_TEMPERATE_DESERT = "warm_temperate_desert"
ROLE_WARM_TEMPERATE_RAIN_FOREST = "warm_temperate_rain_forest"
ROLE_TROPICAL_RAIN_FOREST = "tropical_rain_forest"
ROLE_POLAR_DESERT = "polar_desert"
ROLE_POLAR = "polar"

_SINGLE_ROLES = (
    ROLE_WARM_TEMPERATE_DESERT,
    ROLE_WARM_TEMPERATE_RAIN_FOREST,
    ROLE_TROPICAL_RAIN_FOREST,
    ROLE_POLAR_DESERT,
)


def zone_center(edge: float) -> float:
    """Return the log-space midpoint between *edge* and ``2 * edge``."""
    return 2 ** (math.log2(edge) + 0.5)


@dataclass(frozen=True)
class ZoneDefinition:
    """One hexagon of the Holdridge chart.

    Attributes:
        index: 1-based veg-class index (row position in the table).
        biotemperature_edge: Lower biotemperature edge in °C.
        precipitation_edge: Lower annual precipitation edge in mm.
        pet_ratio_edge: Lower PET / precipitation ratio edge.
        name: Band-free vegetation class name, e.g. ``"wet forest"``.
        role: Semantic tag from the ``role`` column, or ``""``.
    """

    index: int
    biotemperature_edge: float
    precipitation_edge: float
    pet_ratio_edge: float
    name: str
    role: str = ""

    @property
    def edges(self) -> tuple[float, float, float]:
        return (self.biotemperature_edge, self.precipitation_edge, self.pet_ratio_edge)

    @property
    def center(self) -> tuple[float, float, float]:
        """Zone center on the three axes, in the axes' own units."""
        return tuple(zone_center(e) for e in self.edges)  # type: ignore[return-value]


@dataclass(frozen=True)
class ZoneTable:
    """Ordered, validated collection of :class:`ZoneDefinition` rows.

    Build one with :meth:`from_csv`, :meth:`from_frame` or :meth:`default`
    rather than calling the constructor directly; the factories resolve the
    named rows from the ``role`` column.

    Attributes:
        zones: Rows in veg-class order (``zones[0]`` is veg class 1).
        warm_temperate_desert: Index of the first warm-temperate row.
        warm_temperate_rain_forest: Index of the last warm-temperate row.
        tropical_rain_forest: Last index considered by the search.
        polar_desert: Veg class forced onto polar-desert cells.
        polar_indices: Search indices folded into polar desert
                       (always includes ``polar_desert``).

    Raises:
        InvalidZoneTableError: If a row or a boundary role fails validation.
    """

    zones: tuple[ZoneDefinition, ...]
    warm_temperate_desert: int
    warm_temperate_rain_forest: int
    tropical_rain_forest: int
    polar_desert: int
    polar_indices: tuple[int, ...]

    def __post_init__(self) -> None:
        n = len(self.zones)
        for zone in self.zones:
            if not all(math.isfinite(e) and e > 0 for e in zone.edges):
                raise InvalidZoneTableError(
                    f"Zone {zone.index} ({zone.name!r}) has non-positive or "
                    f"non-finite edges {zone.edges}; log-space centers need "
                    "strictly positive values."
                )
        if self.search_count < MIN_SEARCH_ZONES:
            raise InvalidZoneTableError(
                f"Only {self.search_count} zone(s) take part in the nearest-"
                f"centroid search; at least {MIN_SEARCH_ZONES} are required."
            )
        if not (
            self.warm_temperate_desert
            <= self.warm_temperate_rain_forest
            < self.tropical_rain_forest
        ):
            raise InvalidZoneTableError(
                "Warm-temperate rows must precede the tropical rain forest row "
                f"(got desert={self.warm_temperate_desert}, "
                f"rain forest={self.warm_temperate_rain_forest}, "
                f"tropical={self.tropical_rain_forest})."
            )
        if n < self.max_veg_class:
            raise InvalidZoneTableError(
                f"Table has {n} row(s) but the subtropical range needs rows up "
                f"to {self.max_veg_class}."
            )
        outside = [i for i in self.polar_indices if not 1 <= i <= self.search_count]
        if outside:
            raise InvalidZoneTableError(
                f"Polar rows {outside} lie outside the search range "
                f"1..{self.search_count}."
            )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> ZoneTable:
        """Build a table from a DataFrame with the ``hlz_defs.csv`` columns.

        Args:
            frame: One row per zone with columns ``abt``, ``tap``, ``per``,
                   ``veg_class`` and an optional ``role``.

        Returns:
            A validated :class:`ZoneTable`.

        Raises:
            InvalidZoneTableError: On missing columns, unparsable edges,
                missing or duplicated roles, or a failed invariant.
        """
        try:
            Validators.assert_columns_exist(frame, REQUIRED_COLUMNS)
        except ColumnNotFoundError as exc:
            raise InvalidZoneTableError(f"Zone table is unusable: {exc}") from exc

        try:
            edges = frame[list(REQUIRED_COLUMNS[:3])].astype(float).to_numpy()
        except (TypeError, ValueError) as exc:
            raise InvalidZoneTableError(f"Zone table edges are not numeric: {exc}") from exc

        roles = (
            frame["role"].fillna("").astype(str).str.strip()
            if "role" in frame.columns
            else pd.Series([""] * len(frame), index=frame.index)
        )
        names = frame["veg_class"].fillna("").astype(str).str.strip()

        zones = tuple(
            ZoneDefinition(
                index=i + 1,
                biotemperature_edge=float(abt),
                precipitation_edge=float(tap),
                pet_ratio_edge=float(per),
                name=name,
                role=role,
            )
            for i, ((abt, tap, per), name, role) in enumerate(zip(edges, names, roles))
        )

        resolved: dict[str, int] = {}
        for role in _SINGLE_ROLES:
            hits = [z.index for z in zones if z.role == role]
            if len(hits) != 1:
                raise InvalidZoneTableError(
                    f"Zone table must tag exactly one row with role '{role}', "
                    f"found {len(hits)}."
                )
            resolved[role] = hits[0]

        unknown = sorted({z.role for z in zones} - set(_SINGLE_ROLES) - {ROLE_POLAR, ""})
        if unknown:
            raise InvalidZoneTableError(f"Unknown zone role(s): {', '.join(unknown)}")

        polar_indices = tuple(
            sorted(
                {z.index for z in zones if z.role == ROLE_POLAR}
                | {resolved[ROLE_POLAR_DESERT]}
            )
        )

        table = cls(
            zones=zones,
            warm_temperate_desert=resolved[ROLE_WARM_TEMPERATE_DESERT],
            warm_temperate_rain_forest=resolved[ROLE_WARM_TEMPERATE_RAIN_FOREST],
            tropical_rain_forest=resolved[ROLE_TROPICAL_RAIN_FOREST],
            polar_desert=resolved[ROLE_POLAR_DESERT],
            polar_indices=polar_indices,
        )
        logger.debug(
            "Zone table: %d rows, %d searched, subtropical offset %d",
            len(table),
            table.search_count,
            table.subtropical_offset,
        )
        return table

    @classmethod
    def from_csv(cls, path: Path) -> ZoneTable:
        """Load and validate a zone table CSV.

        Raises:
            InvalidZoneTableError: If the file cannot be parsed or fails
                validation.
        """
        path = Path(path)
        try:
            frame = pd.read_csv(path)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise InvalidZoneTableError(f"Cannot read zone table '{path}': {exc}") from exc
        logger.info("Loaded zone table from %s", path)
        return cls.from_frame(frame)

    @classmethod
    def default(cls) -> ZoneTable:
        """Return the bundled Holdridge table (``data/hlz_defs.csv``)."""
        return cls.from_csv(DEFAULT_TABLE_PATH)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.zones)

    @property
    def search_count(self) -> int:
        """Number of leading rows taking part in the nearest-centroid search."""
        return self.tropical_rain_forest

    @property
    def subtropical_offset(self) -> int:
        """Shift from a warm-temperate row to its subtropical copy."""
        return self.tropical_rain_forest + 1 - self.warm_temperate_desert

    @property
    def max_veg_class(self) -> int:
        """Largest veg class the classifier can emit."""
        return self.warm_temperate_rain_forest + self.subtropical_offset

    @property
    def names(self) -> tuple[str, ...]:
        """Veg-class names in index order (``names[0]`` is veg class 1)."""
        return tuple(z.name for z in self.zones)

    def zone(self, index: int) -> ZoneDefinition:
        """Return the row for a 1-based veg-class *index*."""
        if not 1 <= index <= len(self.zones):
            raise IndexError(f"Veg class {index} outside 1..{len(self.zones)}")
        return self.zones[index - 1]

    def edge_lookup(self) -> npt.NDArray[np.float64]:
        """Edges as a ``(len + 1, 3)`` array addressable by veg class.

        Row 0 is NaN so that unclassified cells (index 0) compare false
        against every threshold.
        """
        lookup = np.full((len(self.zones) + 1, 3), np.nan, dtype=np.float64)
        lookup[1:] = [z.edges for z in self.zones]
        lookup.setflags(write=False)
        return lookup

    def log_centers(self) -> npt.NDArray[np.float64]:
        """Normalised log2 centers of the searched zones, shape ``(search_count, 3)``."""
        centers = np.array(
            [z.center for z in self.zones[: self.search_count]], dtype=np.float64
        )
        return np.log2(centers / np.asarray(LOG_SCALES, dtype=np.float64))
