"""
Holdridge Life Zones — Tiled Execution
=======================================
Splits a grid into non-overlapping rectangular tiles and runs a pure
per-tile function over them, optionally on a thread pool.

Each tile writes into its own disjoint region of one preallocated output
array, so no locking is needed.  The first failing tile aborts the run:
tiles that have not started are cancelled and a
:class:`~shared.python.exceptions.TileProcessingError` naming the failed
window is raised.

Usage::

    from holdridge_life_zones.tiling import run_tiled

    codes = run_tiled(engine.classify_tile, (rows, cols), 512, 512,
                      dtype=np.uint32, max_workers=4)
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Iterator

import numpy as np
import numpy.typing as npt

from shared.python.exceptions import LifeZoneError, TileProcessingError
from shared.python.validators import Validators

logger = logging.getLogger("holdridge.tiling")


@dataclass(frozen=True)
class Tile:
    """Half-open window ``[row_start, row_stop) × [col_start, col_stop)``."""

    row_start: int
    row_stop: int
    col_start: int
    col_stop: int

    @property
    def slices(self) -> tuple[slice, slice]:
        return slice(self.row_start, self.row_stop), slice(self.col_start, self.col_stop)

    @property
    def shape(self) -> tuple[int, int]:
        return self.row_stop - self.row_start, self.col_stop - self.col_start

    def __str__(self) -> str:
        return (
            f"rows {self.row_start}:{self.row_stop}, "
            f"cols {self.col_start}:{self.col_stop}"
        )


def iter_tiles(shape: tuple[int, int], tile_rows: int, tile_cols: int) -> Iterator[Tile]:
    """Yield tiles covering *shape* row-major; edge tiles may be smaller."""
    Validators.assert_positive(tile_rows, "tile_rows")
    Validators.assert_positive(tile_cols, "tile_cols")
    rows, cols = shape
    for row_start in range(0, rows, tile_rows):
        for col_start in range(0, cols, tile_cols):
            yield Tile(
                row_start=row_start,
                row_stop=min(row_start + tile_rows, rows),
                col_start=col_start,
                col_stop=min(col_start + tile_cols, cols),
            )


def _fill(func: Callable[[Tile], np.ndarray], tile: Tile, out: np.ndarray) -> None:
    try:
        result = func(tile)
    except LifeZoneError:
        raise
    except Exception as exc:
        raise TileProcessingError(str(tile), f"{type(exc).__name__}: {exc}") from exc
    if np.shape(result) != tile.shape:
        raise TileProcessingError(
            str(tile), f"tile function returned shape {np.shape(result)}, expected {tile.shape}"
        )
    out[tile.slices] = result


def run_tiled(
    func: Callable[[Tile], np.ndarray],
    shape: tuple[int, int],
    tile_rows: int,
    tile_cols: int,
    *,
    dtype: npt.DTypeLike,
    max_workers: int = 1,
) -> np.ndarray:
    """Evaluate *func* on every tile and assemble the full-size result.

    Args:
        func: Pure function mapping a :class:`Tile` to an array of
              ``tile.shape``.
        shape: ``(rows, cols)`` of the full grid.
        tile_rows: Tile height in cells.
        tile_cols: Tile width in cells.
        dtype: dtype of the preallocated output.
        max_workers: ``1`` runs tiles sequentially in the calling thread;
                     larger values use a :class:`ThreadPoolExecutor`.

    Returns:
        The assembled output array.

    Raises:
        TileProcessingError: If *func* fails on any tile (unexpected
            exceptions are wrapped with the tile window).
        LifeZoneError: Project errors raised by *func* propagate unchanged.
    """
    Validators.assert_positive(max_workers, "max_workers")
    out = np.empty(shape, dtype=dtype)
    tiles = list(iter_tiles(shape, tile_rows, tile_cols))
    logger.debug(
        "Processing %d tile(s) of up to %dx%d cells with %d worker(s).",
        len(tiles), tile_rows, tile_cols, max_workers,
    )

    if max_workers == 1 or len(tiles) <= 1:
        for tile in tiles:
            _fill(func, tile, out)
        return out

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(_fill, func, tile, out): tile for tile in tiles}
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in done:
            exc = future.exception()
            if exc is not None:
                logger.error("Tile %s failed; cancelled %d pending tile(s).",
                             futures[future], len(pending))
                raise exc

    return out
