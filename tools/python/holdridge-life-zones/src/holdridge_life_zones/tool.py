"""
Holdridge Life Zones — Raster Tool
===================================
Classifies co-registered climate GeoTIFFs into a Holdridge life zone code
raster.

Inputs are single-band rasters on one grid (same size, transform and CRS);
nothing is resampled or reprojected.  When no PET raster is given the
classical Holdridge estimate ``PET = 58.93 × biotemperature`` is used and
ecotones are computed; with a supplied PET raster (e.g. Penman–Monteith)
ecotones are off unless requested.

Classes:
    ClimateRasterPaths       Input raster locations.
    LifeZoneRunResult        Summary of one run.
    LifeZoneClassifierTool   Primary tool class (inherits GeoTool).

Usage::

    from pathlib import Path
    from holdridge_life_zones.tool import ClimateRasterPaths, LifeZoneClassifierTool

    tool = LifeZoneClassifierTool(
        inputs=ClimateRasterPaths(
            biotemperature=Path("biotemp_annual.tif"),
            sealevel_biotemperature=Path("biotemp_sealevel_annual.tif"),
            precipitation=Path("prec_annual.tif"),
            nodata_mask=Path("nodata_mask.tif"),
        ),
        output_path=Path("output/HLZ_Classical.tif"),
        code_table_path=Path("output/HLZ_Codes_Classical.csv"),
    )
    tool.run()
    print(tool.result)
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio import profiles
from rasterio.windows import Window

from holdridge_life_zones.codes import (
    NO_DATA_CODE,
    OUT_OF_BOUNDS_CODE,
    build_code_table,
)
from holdridge_life_zones.config import ClassificationConfig
from holdridge_life_zones.engine import ClimateSurfaces, LifeZoneClassifier
from holdridge_life_zones.tiling import Tile
from holdridge_life_zones.zone_table import ZoneTable
from shared.python.base_tool import GeoTool
from shared.python.exceptions import InputValidationError, OutputWriteError, RasterError
from shared.python.validators import Validators

logger = logging.getLogger("holdridge.tool")

SUPPORTED_EXTENSIONS = [".tif", ".tiff", ".vrt", ".img"]

# Holdridge's PET estimate, mm of PET per °C of annual biotemperature.
CLASSICAL_PET_FACTOR = 58.93


@dataclass(frozen=True)
class ClimateRasterPaths:
    """Locations of the input rasters.

    Attributes:
        biotemperature: Annual biotemperature (°C).
        sealevel_biotemperature: Sea-level biotemperature (°C).
        precipitation: Annual precipitation (mm/yr).
        pet: Annual PET (mm/yr).  ``None`` selects the classical estimate.
        nodata_mask: Raster whose non-zero cells are no-data.  Optional;
            each raster's own nodata value and NaNs are always masked.
    """

    biotemperature: Path
    sealevel_biotemperature: Path
    precipitation: Path
    pet: Optional[Path] = None
    nodata_mask: Optional[Path] = None

    def items(self) -> Iterator[tuple[str, Path]]:
        """Yield ``(label, path)`` for every raster that was provided."""
        for f in dataclasses.fields(self):
            path = getattr(self, f.name)
            if path is not None:
                yield f.name, Path(path)


@dataclass(frozen=True)
class LifeZoneRunResult:
    """Summary of one classification run.

    Attributes:
        output_path: The code GeoTIFF written.
        code_table_path: The code/name CSV written, or ``None``.
        classified_cells: Cells carrying a life zone code.
        out_of_bounds_cells: Cells with code ``1``.
        nodata_cells: Cells with code ``0``.
        distinct_codes: Number of distinct codes in the raster.
    """

    output_path: Path
    code_table_path: Optional[Path]
    classified_cells: int
    out_of_bounds_cells: int
    nodata_cells: int
    distinct_codes: int

    def __str__(self) -> str:
        return (
            f"{self.classified_cells} classified, "
            f"{self.out_of_bounds_cells} out of bounds, "
            f"{self.nodata_cells} no-data cells; "
            f"{self.distinct_codes} distinct codes → {self.output_path.name}"
        )


class LifeZoneClassifierTool(GeoTool):
    """Classify climate rasters into a Holdridge life zone code GeoTIFF.

    Inherits the Template Method pipeline from :class:`~shared.python.GeoTool`.

    Args:
        inputs: Input raster locations.
        output_path: Destination of the ``uint32`` code GeoTIFF (LZW,
                     nodata ``0``).
        table_path: Zone definition CSV; the bundled table when ``None``.
        config: Run options; defaults to :class:`ClassificationConfig()`.
        compute_ecotones: Overrides ``config.compute_ecotones``.  When
                          neither sets it, ecotones are on for the
                          classical PET estimate and off for a supplied
                          PET raster.
        code_table_path: Where to write the ``Code,Name`` CSV of the codes
                         present in the output.  Skipped when ``None``.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        inputs: ClimateRasterPaths,
        output_path: Path,
        *,
        table_path: Optional[Path] = None,
        config: Optional[ClassificationConfig] = None,
        compute_ecotones: Optional[bool] = None,
        code_table_path: Optional[Path] = None,
        verbose: bool = False,
    ) -> None:
        super().__init__(Path(inputs.biotemperature), Path(output_path), verbose=verbose)

        self.inputs: ClimateRasterPaths = inputs
        self.table_path: Optional[Path] = Path(table_path) if table_path else None
        self.code_table_path: Optional[Path] = (
            Path(code_table_path) if code_table_path else None
        )

        config = config if config is not None else ClassificationConfig()
        if compute_ecotones is not None:
            config = dataclasses.replace(config, compute_ecotones=compute_ecotones)
        config = config.with_ecotone_default(inputs.pet is None)
        self.config: ClassificationConfig = config

        self.table: Optional[ZoneTable] = None
        self._result: Optional[LifeZoneRunResult] = None

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Check the input files, their grids, the zone table and output paths.

        Raises:
            InputValidationError: If a file is missing, has an unsupported
                extension, or the rasters disagree on transform or CRS.
            ShapeMismatchError: If the rasters differ in size.
            InvalidZoneTableError: If the zone table is unusable.
            OutputWriteError: If an output directory cannot be created.
        """
        for _, path in self.inputs.items():
            Validators.assert_file_exists(path)
            Validators.assert_supported_extension(path, SUPPORTED_EXTENSIONS)

        Validators.assert_output_dir_writable(self.output_path)
        if self.code_table_path is not None:
            Validators.assert_output_dir_writable(self.code_table_path)

        self._check_same_grid()

        self.table = (
            ZoneTable.from_csv(self.table_path)
            if self.table_path is not None
            else ZoneTable.default()
        )
        logger.debug(
            "Inputs validated: %d raster(s), %d zones, ecotones=%s.",
            len(list(self.inputs.items())), len(self.table), self.config.compute_ecotones,
        )

    def process(self) -> None:
        """Classify the rasters window by window and write the code raster (and CSV).

        Each tile reads only its own window of every input, so input data
        in memory is bounded by the tile size and worker count; only the
        ``uint32`` output spans the whole grid.

        Raises:
            RasterError: If a raster cannot be read.
            NumericDegeneracyError: If unmasked NaN/Inf cells remain and
                ``config.fail_on_unclassified`` is set.
            TileProcessingError: If a tile fails.
            OutputWriteError: If an output file cannot be written.
        """
        assert self.table is not None, "validate_inputs() must run first"

        profile = self._reference_profile()
        if self.inputs.pet is None:
            logger.info("No PET raster given; using PET = %.2f × biotemperature.",
                        CLASSICAL_PET_FACTOR)

        with self._stage("classify"):
            engine = LifeZoneClassifier(self.table, self.config)
            codes = engine.classify_windows(
                (profile["height"], profile["width"]), self._read_tile
            )

        with self._stage("write"):
            self._write_code_raster(codes, self.output_path, profile)

        distinct = np.unique(codes)
        if self.code_table_path is not None:
            with self._stage("code table"):
                self._write_code_table(distinct)

        classified = int(np.count_nonzero(codes > OUT_OF_BOUNDS_CODE))
        self._result = LifeZoneRunResult(
            output_path=self.output_path,
            code_table_path=self.code_table_path,
            classified_cells=classified,
            out_of_bounds_cells=int(np.count_nonzero(codes == OUT_OF_BOUNDS_CODE)),
            nodata_cells=int(np.count_nonzero(codes == NO_DATA_CODE)),
            distinct_codes=int(distinct.size),
        )

    def summary(self) -> list[str]:
        return [str(self._result)] if self._result is not None else []

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_same_grid(self) -> None:
        reference = None
        for label, path in self.inputs.items():
            try:
                with rasterio.open(path) as src:
                    grid = ((src.height, src.width), src.transform, src.crs)
            except rasterio.errors.RasterioIOError as exc:
                raise RasterError(f"Cannot open raster '{path}': {exc}") from exc

            if reference is None:
                reference = grid
                continue
            Validators.assert_raster_shapes_match(reference[0], grid[0], label)
            if grid[1] != reference[1] or grid[2] != reference[2]:
                raise InputValidationError(
                    f"Raster '{label}' ({path.name}) is not aligned with the "
                    "biotemperature grid (transform or CRS differ). Inputs are "
                    "never resampled; align them beforehand."
                )

    def _reference_profile(self) -> profiles.Profile:
        try:
            with rasterio.open(self.inputs.biotemperature) as src:
                return src.profile.copy()
        except rasterio.errors.RasterioIOError as exc:
            raise RasterError(
                f"Cannot open raster '{self.inputs.biotemperature}': {exc}"
            ) from exc

    @staticmethod
    def _read_band(
        path: Path, window: Window
    ) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.bool_]]:
        """Return one window of band 1 as float32 (NaN where missing) and its missing mask."""
        try:
            with rasterio.open(path) as src:
                band = src.read(1, window=window, masked=True)
        except rasterio.errors.RasterioIOError as exc:
            raise RasterError(f"Cannot read raster '{path}': {exc}") from exc

        values = band.astype(np.float32).filled(np.nan)
        missing = np.ma.getmaskarray(band) | np.isnan(values)
        return values, missing

    @staticmethod
    def _read_mask(path: Path, window: Window) -> npt.NDArray[np.bool_]:
        """Return ``True`` where the mask raster is non-zero within *window*."""
        # Raw values: a mask raster often declares 0 as its own nodata.
        try:
            with rasterio.open(path) as src:
                return src.read(1, window=window) != 0
        except rasterio.errors.RasterioIOError as exc:
            raise RasterError(f"Cannot read raster '{path}': {exc}") from exc

    def _read_tile(self, tile: Tile) -> ClimateSurfaces:
        """Read the *tile* window of every input raster."""
        window = Window.from_slices(*tile.slices)
        nodata = np.zeros(tile.shape, dtype=bool)
        layers: dict[str, npt.NDArray[np.float32]] = {}
        for label in ("biotemperature", "sealevel_biotemperature", "precipitation", "pet"):
            path = getattr(self.inputs, label)
            if path is None:
                continue
            layers[label], missing = self._read_band(Path(path), window)
            nodata |= missing

        if self.inputs.nodata_mask is not None:
            nodata |= self._read_mask(Path(self.inputs.nodata_mask), window)

        if "pet" not in layers:
            layers["pet"] = (layers["biotemperature"] * np.float32(CLASSICAL_PET_FACTOR)).astype(
                np.float32
            )

        return ClimateSurfaces(
            biotemperature=layers["biotemperature"],
            sealevel_biotemperature=layers["sealevel_biotemperature"],
            precipitation=layers["precipitation"],
            pet=layers["pet"],
            nodata_mask=nodata,
        )

    @staticmethod
    def _write_code_raster(
        codes: npt.NDArray[np.uint32],
        output_path: Path,
        reference_profile: profiles.Profile,
    ) -> None:
        """Write a single-band uint32 GeoTIFF with nodata 0.

        Raises:
            OutputWriteError: If the file cannot be written.
        """
        profile = reference_profile.copy()
        profile.update(
            driver="GTiff",
            dtype="uint32",
            count=1,
            nodata=NO_DATA_CODE,
            compress="lzw",
        )
        try:
            with rasterio.open(output_path, "w", **profile) as dst:
                dst.write(codes, 1)
        except (OSError, rasterio.errors.RasterioIOError) as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc
        logger.info("Code raster written to '%s'.", output_path)

    def _write_code_table(self, codes: npt.NDArray[np.uint32]) -> None:
        assert self.table is not None and self.code_table_path is not None
        frame = build_code_table(codes, self.table.names)
        try:
            frame.to_csv(self.code_table_path, index=False)
        except OSError as exc:
            raise OutputWriteError(str(self.code_table_path), str(exc)) from exc
        logger.info("%d code(s) written to '%s'.", len(frame), self.code_table_path)

    @property
    def result(self) -> Optional[LifeZoneRunResult]:
        """Summary of the last run, or ``None`` before :meth:`run`."""
        return self._result
