"""
Holdridge Life Zones — Custom Exception Hierarchy
==================================================
Every module in the project raises exceptions from this module so callers
can catch them at the right level of granularity.

Hierarchy::

    LifeZoneError                        ← catch-all base
    ├── InputValidationError             ← bad files, config values, etc.
    │   ├── ColumnNotFoundError          ← zone table column missing
    │   └── ShapeMismatchError           ← rasters on different grids
    ├── InvalidZoneTableError            ← unusable zone definition table
    ├── NumericDegeneracyError           ← NaN/Inf cells nobody masked
    ├── DecodeIndexOutOfRangeError       ← code digit with no name
    ├── TileProcessingError              ← a tile failed, run aborted
    ├── RasterError                      ← rasterio / numpy raster issues
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import ShapeMismatchError

    raise ShapeMismatchError("precipitation", (10, 10), (10, 12))
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class LifeZoneError(Exception):
    """Base exception for the life zone classifier and its tools.

    Catch this to handle any project-specific error without caring about
    the exact subtype.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(LifeZoneError):
    """Raised when inputs fail pre-processing validation.

    This is the parent class for more specific input problems.
    """


class ColumnNotFoundError(InputValidationError):
    """Raised when an expected column is absent from a tabular dataset.

    Args:
        column: The name of the missing column.
        available: List of column names that ARE present, used to
                   generate a helpful error message.

    Example::

        raise ColumnNotFoundError("abt", df.columns.tolist())
    """

    def __init__(self, column: str, available: list[str]) -> None:
        available_str = ", ".join(f"'{c}'" for c in available)
        super().__init__(
            f"Column '{column}' not found. Available columns: {available_str}"
        )
        self.column: str = column
        self.available: list[str] = available


class ShapeMismatchError(InputValidationError):
    """Raised when two rasters of one run do not share a grid.

    Rasters are never broadcast against each other, so any difference in
    ``(rows, cols)`` is fatal before processing starts.

    Args:
        label: Name of the offending raster (e.g. ``"precipitation"``).
        expected: ``(rows, cols)`` of the reference raster.
        actual: ``(rows, cols)`` of the offending raster.

    Example::

        raise ShapeMismatchError("pet", (2160, 4320), (2160, 4319))
    """

    def __init__(
        self,
        label: str,
        expected: tuple[int, ...],
        actual: tuple[int, ...],
    ) -> None:
        super().__init__(
            f"Raster shape mismatch: '{label}' is {actual} but the reference "
            f"grid is {expected}. All inputs must share identical dimensions."
        )
        self.label: str = label
        self.expected: tuple[int, ...] = expected
        self.actual: tuple[int, ...] = actual


# ---------------------------------------------------------------------------
# Zone table
# ---------------------------------------------------------------------------


class InvalidZoneTableError(LifeZoneError):
    """Raised when a zone definition table cannot drive a classification.

    Common causes: fewer rows than the nearest-centroid search needs, a
    missing boundary role, non-positive edges, or a name list shorter than
    the largest veg class the run can emit.
    """


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class NumericDegeneracyError(LifeZoneError):
    """Raised when cells end up unclassified and no mask covers them.

    Unclassified cells come from NaN/Inf log-space coordinates (non-positive
    inputs, or a zero precipitation division) that were not flagged by the
    no-data mask.

    Args:
        count: Number of affected cells.
        row: Global row of the first affected cell.
        col: Global column of the first affected cell.
    """

    def __init__(self, count: int, row: int, col: int) -> None:
        super().__init__(
            f"{count} cell(s) could not be classified (NaN/Inf climate "
            f"coordinates outside the no-data mask); first at row {row}, "
            f"col {col}."
        )
        self.count: int = count
        self.row: int = row
        self.col: int = col


class DecodeIndexOutOfRangeError(LifeZoneError):
    """Raised when a code component has no entry in its name table.

    Args:
        code: The full classification code being decoded.
        component: Which component failed (``"veg_class"``,
                   ``"altitudinal_band"``, ``"latitudinal_band"`` or ``"ecotone"``).
        value: The decoded component value.
        limit: Largest valid value for that component.

    Example::

        raise DecodeIndexOutOfRangeError(52771, "veg_class", 52, 41)
    """

    def __init__(self, code: int, component: str, value: int, limit: int) -> None:
        super().__init__(
            f"Cannot decode {code}: {component}={value} is outside the "
            f"name table (valid range ends at {limit})."
        )
        self.code: int = code
        self.component: str = component
        self.value: int = value
        self.limit: int = limit


class TileProcessingError(LifeZoneError):
    """Raised when one tile of a tiled run fails; the whole run aborts.

    Args:
        window: Human-readable tile window, e.g. ``"rows 0:512, cols 512:1024"``.
        reason: Underlying error message.
    """

    def __init__(self, window: str, reason: str) -> None:
        super().__init__(f"Tile {window} failed: {reason}")
        self.window: str = window
        self.reason: str = reason


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(LifeZoneError):
    """Raised for general raster reading failures (rasterio / numpy)."""


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(LifeZoneError):
    """Raised when the tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.

    Example::

        raise OutputWriteError("/read-only/dir/hlz.tif", "Permission denied")
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
