"""
Holdridge Life Zones — Classification Engine
=============================================
Runs the full per-cell pipeline over a set of climate surfaces::

    PET ratio → nearest hexagon → subtropical split → bands → ecotones
              → polar / out-of-bounds / no-data masks → integer code

:meth:`LifeZoneClassifier.classify_fields` evaluates one block in memory
and keeps every intermediate layer (handy for inspection and tests).
:meth:`LifeZoneClassifier.classify` evaluates the grid tile by tile with
the same pure per-tile function, so the result does not depend on tile
size or worker count.  :meth:`LifeZoneClassifier.classify_windows` does
the same for data read one window at a time (see the raster tool).

Usage::

    from holdridge_life_zones.engine import ClimateSurfaces, LifeZoneClassifier

    surfaces = ClimateSurfaces(abt, abt_sealevel, prec, pet, nodata_mask)
    codes = LifeZoneClassifier().classify(surfaces)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import numpy.typing as npt

from holdridge_life_zones.bands import derive_final_bands
from holdridge_life_zones.classifier import (
    LogSpaceNearestClassifier,
    compute_pet_ratio,
    disambiguate_subtropical,
)
from holdridge_life_zones.codes import CODE_DTYPE, NO_DATA_CODE, assemble_codes
from holdridge_life_zones.config import ClassificationConfig
from holdridge_life_zones.ecotones import detect_ecotones
from holdridge_life_zones.masks import (
    MaskLayers,
    apply_code_overrides,
    apply_polar_desert,
    compute_masks,
    unresolved_cells,
)
from holdridge_life_zones.tiling import Tile, run_tiled
from holdridge_life_zones.zone_table import ZoneTable
from shared.python.exceptions import NumericDegeneracyError
from shared.python.validators import Validators

logger = logging.getLogger("holdridge.engine")


@dataclass(frozen=True)
class ClimateSurfaces:
    """The co-registered input grids of one run.

    Attributes:
        biotemperature: Local annual biotemperature (°C).
        sealevel_biotemperature: Biotemperature with the lapse-rate
            cooling removed (°C).
        precipitation: Annual precipitation (mm/yr).
        pet: Annual potential evapotranspiration (mm/yr).
        nodata_mask: ``True`` where any input is missing.  ``None`` means
            every cell has data.

    Raises:
        InputValidationError: If the grids are not 2-D.
        ShapeMismatchError: If the grids differ in shape.
    """

    biotemperature: np.ndarray
    sealevel_biotemperature: np.ndarray
    precipitation: np.ndarray
    pet: np.ndarray
    nodata_mask: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        for name in ("biotemperature", "sealevel_biotemperature", "precipitation", "pet"):
            object.__setattr__(self, name, np.asarray(getattr(self, name)))
        if self.nodata_mask is None:
            mask = np.zeros(self.biotemperature.shape, dtype=bool)
        else:
            mask = np.asarray(self.nodata_mask, dtype=bool)
        object.__setattr__(self, "nodata_mask", mask)

        reference = self.biotemperature.shape
        Validators.assert_raster_is_2d(reference, "biotemperature")
        for name in ("sealevel_biotemperature", "precipitation", "pet", "nodata_mask"):
            Validators.assert_raster_shapes_match(reference, getattr(self, name).shape, name)

    @property
    def shape(self) -> tuple[int, int]:
        rows, cols = self.biotemperature.shape
        return rows, cols

    def window(self, tile: Tile) -> ClimateSurfaces:
        """Return views of every grid restricted to *tile*."""
        rows, cols = tile.slices
        return ClimateSurfaces(
            biotemperature=self.biotemperature[rows, cols],
            sealevel_biotemperature=self.sealevel_biotemperature[rows, cols],
            precipitation=self.precipitation[rows, cols],
            pet=self.pet[rows, cols],
            nodata_mask=self.nodata_mask[rows, cols],
        )


@dataclass
class LifeZoneFields:
    """Every intermediate layer of one classified block."""

    pet_ratio: npt.NDArray[np.float32]
    zone_index: npt.NDArray[np.uint16]
    veg_class: npt.NDArray[np.uint16]
    altitudinal_band: npt.NDArray[np.uint8]
    latitudinal_band: npt.NDArray[np.uint8]
    ecotone: npt.NDArray[np.uint8]
    masks: MaskLayers
    unresolved: npt.NDArray[np.bool_]
    codes: npt.NDArray[np.uint32]


class LifeZoneClassifier:
    """Classify climate surfaces into Holdridge life zone codes.

    Args:
        table: Zone definition table; defaults to the bundled table.
        config: Run options; defaults to :class:`ClassificationConfig()`.

    Example::

        engine = LifeZoneClassifier(config=ClassificationConfig(max_workers=4))
        codes = engine.classify(surfaces)
    """

    def __init__(
        self,
        table: Optional[ZoneTable] = None,
        config: Optional[ClassificationConfig] = None,
    ) -> None:
        self.table: ZoneTable = table if table is not None else ZoneTable.default()
        self.config: ClassificationConfig = (
            config if config is not None else ClassificationConfig()
        )
        self._nearest = LogSpaceNearestClassifier(self.table)
        self._edges = self.table.edge_lookup()

    # ------------------------------------------------------------------
    # Single block
    # ------------------------------------------------------------------

    def classify_fields(self, surfaces: ClimateSurfaces) -> LifeZoneFields:
        """Run the whole pipeline on one in-memory block.

        Unresolved cells (see :func:`~holdridge_life_zones.masks.unresolved_cells`)
        are written as no-data in ``codes`` and flagged in ``unresolved``;
        deciding whether that is an error is left to :meth:`classify`.
        """
        abt = surfaces.biotemperature
        prec = surfaces.precipitation

        pet_ratio = compute_pet_ratio(surfaces.pet, prec)
        zone_index = self._nearest.classify(abt, prec, pet_ratio)
        veg_class = disambiguate_subtropical(zone_index, abt, self.table)
        altitudinal, latitudinal = derive_final_bands(abt, surfaces.sealevel_biotemperature)
        ecotone = detect_ecotones(
            veg_class, abt, prec, pet_ratio, self._edges,
            compute_ecotones=self.config.ecotones_enabled,
        )

        masks = compute_masks(zone_index, abt, prec, pet_ratio, surfaces.nodata_mask, self.table)
        veg_class, ecotone = apply_polar_desert(veg_class, ecotone, masks, self.table)

        codes = assemble_codes(veg_class, altitudinal, latitudinal, ecotone)
        codes = apply_code_overrides(codes, masks)
        unresolved = unresolved_cells(zone_index, altitudinal, latitudinal, masks)
        codes[unresolved] = NO_DATA_CODE

        return LifeZoneFields(
            pet_ratio=pet_ratio,
            zone_index=zone_index,
            veg_class=veg_class,
            altitudinal_band=altitudinal,
            latitudinal_band=latitudinal,
            ecotone=ecotone,
            masks=masks,
            unresolved=unresolved,
            codes=codes,
        )

    def classify_tile(self, surfaces: ClimateSurfaces, tile: Tile) -> npt.NDArray[np.uint32]:
        """Return the codes of one tile of *surfaces*."""
        return self.classify_fields(surfaces.window(tile)).codes

    # ------------------------------------------------------------------
    # Whole grid
    # ------------------------------------------------------------------

    def classify(self, surfaces: ClimateSurfaces) -> npt.NDArray[np.uint32]:
        """Classify in-memory surfaces tile by tile.

        Returns:
            ``uint32`` code raster of ``surfaces.shape``.

        Raises:
            NumericDegeneracyError: If cells are unresolved and
                ``config.fail_on_unclassified`` is set.  The error carries
                the total count and the first cell in row-major order.
            TileProcessingError: If any tile fails.
        """
        return self.classify_windows(surfaces.shape, surfaces.window)

    def classify_windows(
        self,
        shape: tuple[int, int],
        read_tile: Callable[[Tile], ClimateSurfaces],
    ) -> npt.NDArray[np.uint32]:
        """Classify a grid of *shape* whose data is fetched one tile at a time.

        *read_tile* returns the surfaces of one window, so only the output
        raster and the tiles in flight are held in memory.  It is called
        from worker threads when ``config.max_workers > 1``.

        Raises:
            NumericDegeneracyError: See :meth:`classify`.
            TileProcessingError: If any tile fails.  Project errors raised by
                *read_tile* propagate unchanged.
        """
        # (row, col, count) per tile with unresolved cells; list.append is atomic
        flagged: list[tuple[int, int, int]] = []

        def _tile_codes(tile: Tile) -> npt.NDArray[np.uint32]:
            fields = self.classify_fields(read_tile(tile))
            count = int(np.count_nonzero(fields.unresolved))
            if count:
                row, col = np.argwhere(fields.unresolved)[0]
                flagged.append((tile.row_start + int(row), tile.col_start + int(col), count))
            return fields.codes

        rows, cols = shape
        logger.info(
            "Classifying %dx%d grid in %dx%d tiles (ecotones=%s).",
            rows, cols, self.config.tile_rows, self.config.tile_cols,
            self.config.ecotones_enabled,
        )
        codes = run_tiled(
            _tile_codes,
            shape,
            self.config.tile_rows,
            self.config.tile_cols,
            dtype=CODE_DTYPE,
            max_workers=self.config.max_workers,
        )

        if flagged:
            total = sum(count for _, _, count in flagged)
            first_row, first_col, _ = min(flagged)
            if self.config.fail_on_unclassified:
                raise NumericDegeneracyError(total, first_row, first_col)
            logger.warning(
                "%d cell(s) with NaN/Inf climate values written as no-data "
                "(first at row %d, col %d).",
                total, first_row, first_col,
            )
        return codes
