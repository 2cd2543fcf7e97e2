"""
Tests for Tiling and the Classification Engine
===============================================

Test classes:
    TestTiling          Tile coverage, parallel assembly and failure handling.
    TestClimateSurfaces Grid validation.
    TestEngineScenarios End-to-end codes for hand-checked climates.
    TestTileInvariance  Same codes for any tile size or worker count.
    TestDegeneracy      Unmasked NaN/Inf cells: raise or write no-data.
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from holdridge_life_zones.config import ClassificationConfig
from holdridge_life_zones.engine import ClimateSurfaces, LifeZoneClassifier
from holdridge_life_zones.tiling import Tile, iter_tiles, run_tiled
from shared.python.exceptions import (
    InputValidationError,
    NumericDegeneracyError,
    ShapeMismatchError,
    TileProcessingError,
)

CLASSICAL_PET = 58.93


def _surfaces(abt, sealevel, prec, pet=None, nodata=None) -> ClimateSurfaces:
    abt = np.atleast_2d(np.asarray(abt, dtype=np.float64))
    pet = abt * CLASSICAL_PET if pet is None else np.atleast_2d(np.asarray(pet, dtype=np.float64))
    return ClimateSurfaces(
        biotemperature=abt,
        sealevel_biotemperature=np.atleast_2d(np.asarray(sealevel, dtype=np.float64)),
        precipitation=np.atleast_2d(np.asarray(prec, dtype=np.float64)),
        pet=pet,
        nodata_mask=None if nodata is None else np.atleast_2d(nodata),
    )


def _random_surfaces(shape: tuple[int, int], seed: int = 7) -> ClimateSurfaces:
    rng = np.random.default_rng(seed)
    abt = rng.uniform(0.5, 35.0, size=shape)
    return ClimateSurfaces(
        biotemperature=abt,
        sealevel_biotemperature=abt + rng.uniform(0.0, 8.0, size=shape),
        precipitation=np.exp(rng.uniform(np.log(30.0), np.log(20000.0), size=shape)),
        pet=abt * CLASSICAL_PET,
        nodata_mask=rng.random(shape) < 0.05,
    )


# ---------------------------------------------------------------------------
# Tiling
# ---------------------------------------------------------------------------


class TestTiling:
    def test_tiles_cover_grid_once(self) -> None:
        tiles = list(iter_tiles((5, 7), 2, 3))
        assert len(tiles) == 9
        coverage = np.zeros((5, 7), dtype=int)
        for tile in tiles:
            coverage[tile.slices] += 1
        assert (coverage == 1).all()
        assert tiles[-1] == Tile(4, 5, 6, 7)
        assert tiles[-1].shape == (1, 1)

    def test_tile_str_names_window(self) -> None:
        assert str(Tile(0, 512, 512, 1024)) == "rows 0:512, cols 512:1024"

    @pytest.mark.parametrize("rows, cols", [(0, 4), (4, 0), (-1, 4)])
    def test_non_positive_tile_size(self, rows: int, cols: int) -> None:
        with pytest.raises(InputValidationError):
            list(iter_tiles((5, 5), rows, cols))

    @pytest.mark.parametrize("workers", [1, 4])
    def test_run_tiled_assembles_output(self, workers: int) -> None:
        def _fill(tile: Tile) -> np.ndarray:
            rows, cols = np.mgrid[tile.slices]
            return rows * 100 + cols

        out = run_tiled(_fill, (9, 11), 4, 3, dtype=np.int64, max_workers=workers)
        rows, cols = np.mgrid[0:9, 0:11]
        np.testing.assert_array_equal(out, rows * 100 + cols)

    @pytest.mark.parametrize("workers", [1, 3])
    def test_failure_names_tile(self, workers: int) -> None:
        def _fail(tile: Tile) -> np.ndarray:
            if tile.row_start == 4 and tile.col_start == 0:
                raise ValueError("boom")
            return np.zeros(tile.shape)

        with pytest.raises(TileProcessingError) as info:
            run_tiled(_fail, (8, 8), 4, 4, dtype=np.float64, max_workers=workers)
        assert info.value.window == "rows 4:8, cols 0:4"
        assert "boom" in info.value.reason

    def test_wrong_tile_shape_is_a_failure(self) -> None:
        with pytest.raises(TileProcessingError, match="shape"):
            run_tiled(lambda tile: np.zeros((1, 1)), (4, 4), 2, 2, dtype=np.float64)

    def test_project_errors_propagate_unchanged(self) -> None:
        def _raise(tile: Tile) -> np.ndarray:
            raise NumericDegeneracyError(1, tile.row_start, tile.col_start)

        with pytest.raises(NumericDegeneracyError):
            run_tiled(_raise, (4, 4), 2, 2, dtype=np.float64, max_workers=2)


# ---------------------------------------------------------------------------
# Surfaces
# ---------------------------------------------------------------------------


class TestClimateSurfaces:
    def test_mismatched_shape(self) -> None:
        with pytest.raises(ShapeMismatchError) as info:
            ClimateSurfaces(
                biotemperature=np.ones((3, 4)),
                sealevel_biotemperature=np.ones((3, 4)),
                precipitation=np.ones((3, 5)),
                pet=np.ones((3, 4)),
            )
        assert info.value.label == "precipitation"
        assert info.value.actual == (3, 5)

    def test_mask_shape_checked(self) -> None:
        with pytest.raises(ShapeMismatchError):
            ClimateSurfaces(
                np.ones((3, 4)), np.ones((3, 4)), np.ones((3, 4)), np.ones((3, 4)),
                nodata_mask=np.zeros((4, 3), dtype=bool),
            )

    def test_one_dimensional_rejected(self) -> None:
        with pytest.raises(InputValidationError, match="2-D"):
            ClimateSurfaces(np.ones(4), np.ones(4), np.ones(4), np.ones(4))

    def test_default_mask_is_all_valid(self) -> None:
        surfaces = ClimateSurfaces(np.ones((2, 2)), np.ones((2, 2)), np.ones((2, 2)), np.ones((2, 2)))
        assert surfaces.nodata_mask.dtype == bool
        assert not surfaces.nodata_mask.any()

    def test_window_is_a_view(self) -> None:
        surfaces = _random_surfaces((6, 6))
        window = surfaces.window(Tile(2, 4, 1, 3))
        assert window.shape == (2, 2)
        assert np.shares_memory(window.precipitation, surfaces.precipitation)


# ---------------------------------------------------------------------------
# Hand-checked scenarios
# ---------------------------------------------------------------------------


class TestEngineScenarios:
    @pytest.fixture(scope="class")
    def engine(self) -> LifeZoneClassifier:
        return LifeZoneClassifier()

    def test_subtropical_basal_core(self, engine: LifeZoneClassifier) -> None:
        fields = engine.classify_fields(_surfaces([[20.0]], [[20.0]], [[1000.0]]))
        assert fields.zone_index[0, 0] == 23
        assert fields.veg_class[0, 0] == 38
        assert (fields.altitudinal_band[0, 0], fields.latitudinal_band[0, 0]) == (7, 6)
        assert fields.ecotone[0, 0] == 1
        assert fields.codes[0, 0] == 38761

    def test_core_cell_with_unit_pet_ratio(self, engine: LifeZoneClassifier) -> None:
        # 20 °C, 1500 mm, PET ratio 1.0: moist forest, every axis inside its edges.
        fields = engine.classify_fields(
            _surfaces([[20.0]], [[20.0]], [[1500.0]], pet=[[1500.0]])
        )
        assert fields.zone_index[0, 0] == 24
        assert fields.ecotone[0, 0] == 1
        assert fields.codes[0, 0] == 39761

    def test_very_cold_cell_is_polar_desert(self, engine: LifeZoneClassifier) -> None:
        fields = engine.classify_fields(_surfaces([[0.5]], [[0.5]], [[300.0]]))
        assert fields.veg_class[0, 0] == 3
        assert fields.ecotone[0, 0] == 0
        assert fields.latitudinal_band[0, 0] == 1

    def test_dry_cell_is_out_of_bounds(self, engine: LifeZoneClassifier) -> None:
        fields = engine.classify_fields(_surfaces([[15.0]], [[15.0]], [[50.0]]))
        assert fields.masks.out_of_bounds[0, 0]
        assert fields.codes[0, 0] == 1

    def test_montane_cell(self, engine: LifeZoneClassifier) -> None:
        codes = engine.classify(_surfaces([[8.0]], [[20.0]], [[500.0]]))
        assert codes[0, 0] == 17461

    def test_polar_desert(self, engine: LifeZoneClassifier) -> None:
        fields = engine.classify_fields(_surfaces([[1.0]], [[1.0]], [[100.0]]))
        assert fields.masks.polar[0, 0]
        assert fields.codes[0, 0] == 3710

    def test_polar_beats_out_of_bounds(self, engine: LifeZoneClassifier) -> None:
        codes = engine.classify(_surfaces([[1.0]], [[1.0]], [[20.0]]))
        assert codes[0, 0] == 3710

    @pytest.mark.parametrize("prec", [20.0, 16000.0, 30000.0])
    def test_out_of_bounds(self, engine: LifeZoneClassifier, prec: float) -> None:
        assert engine.classify(_surfaces([[20.0]], [[20.0]], [[prec]]))[0, 0] == 1

    def test_zero_precipitation_is_out_of_bounds(self, engine: LifeZoneClassifier) -> None:
        assert engine.classify(_surfaces([[20.0]], [[20.0]], [[0.0]]))[0, 0] == 1

    def test_nodata_beats_everything(self, engine: LifeZoneClassifier) -> None:
        codes = engine.classify(
            _surfaces(
                [[1.0, 20.0, np.nan]], [[1.0, 20.0, np.nan]], [[100.0, 30000.0, np.nan]],
                nodata=[[True, True, True]],
            )
        )
        np.testing.assert_array_equal(codes, [[0, 0, 0]])

    def test_ecotones_disabled(self) -> None:
        engine = LifeZoneClassifier(config=ClassificationConfig(compute_ecotones=False))
        assert engine.classify(_surfaces([[20.0]], [[20.0]], [[1000.0]]))[0, 0] == 38760

    def test_output_dtype(self, engine: LifeZoneClassifier) -> None:
        assert engine.classify(_surfaces([[20.0]], [[20.0]], [[1000.0]])).dtype == np.uint32


# ---------------------------------------------------------------------------
# Tile invariance
# ---------------------------------------------------------------------------


class TestTileInvariance:
    @pytest.mark.parametrize(
        "tile_rows, tile_cols, workers",
        [(24, 31, 1), (7, 5, 1), (4, 9, 3), (1, 31, 2), (50, 50, 4)],
    )
    def test_codes_independent_of_tiling(
        self, tile_rows: int, tile_cols: int, workers: int
    ) -> None:
        surfaces = _random_surfaces((24, 31))
        reference = LifeZoneClassifier().classify_fields(surfaces).codes

        config = ClassificationConfig(
            tile_rows=tile_rows, tile_cols=tile_cols, max_workers=workers
        )
        codes = LifeZoneClassifier(config=config).classify(surfaces)
        np.testing.assert_array_equal(codes, reference)

    def test_windowed_reads_match_in_memory(self) -> None:
        surfaces = _random_surfaces((24, 31))
        requested: list[Tile] = []

        def _read(tile: Tile) -> ClimateSurfaces:
            requested.append(tile)
            return surfaces.window(tile)

        config = ClassificationConfig(tile_rows=10, tile_cols=8, max_workers=2)
        codes = LifeZoneClassifier(config=config).classify_windows(surfaces.shape, _read)

        np.testing.assert_array_equal(codes, LifeZoneClassifier().classify(surfaces))
        assert len(requested) == 3 * 4
        assert max(tile.shape[0] for tile in requested) <= 10
        assert max(tile.shape[1] for tile in requested) <= 8

    def test_random_grid_produces_all_code_kinds(self) -> None:
        codes = LifeZoneClassifier().classify(_random_surfaces((24, 31)))
        assert (codes == 0).any()
        assert (codes == 1).any()
        assert (codes > 1).any()


# ---------------------------------------------------------------------------
# Degeneracy
# ---------------------------------------------------------------------------


class TestDegeneracy:
    def _grid(self) -> ClimateSurfaces:
        abt = np.full((6, 6), 20.0)
        abt[3, 4] = np.nan
        abt[5, 1] = np.nan
        return _surfaces(abt, np.full((6, 6), 20.0), np.full((6, 6), 1000.0),
                         pet=np.full((6, 6), 1178.6))

    @pytest.mark.parametrize("tile, workers", [(6, 1), (2, 1), (2, 3)])
    def test_raises_with_first_global_cell(self, tile: int, workers: int) -> None:
        config = ClassificationConfig(tile_rows=tile, tile_cols=tile, max_workers=workers)
        with pytest.raises(NumericDegeneracyError) as info:
            LifeZoneClassifier(config=config).classify(self._grid())
        assert info.value.count == 2
        assert (info.value.row, info.value.col) == (3, 4)

    def test_masked_nan_is_fine(self) -> None:
        surfaces = self._grid()
        surfaces = ClimateSurfaces(
            surfaces.biotemperature, surfaces.sealevel_biotemperature,
            surfaces.precipitation, surfaces.pet,
            nodata_mask=np.isnan(surfaces.biotemperature),
        )
        codes = LifeZoneClassifier().classify(surfaces)
        assert codes[3, 4] == 0 and codes[5, 1] == 0
        assert codes[0, 0] == 38761

    def test_lenient_mode_writes_nodata(self, caplog: pytest.LogCaptureFixture) -> None:
        config = ClassificationConfig(fail_on_unclassified=False, tile_rows=4, tile_cols=4)
        with caplog.at_level(logging.WARNING, logger="holdridge.engine"):
            codes = LifeZoneClassifier(config=config).classify(self._grid())
        assert codes[3, 4] == 0 and codes[5, 1] == 0
        assert int((codes == 38761).sum()) == 34
        assert "2 cell(s)" in caplog.text
