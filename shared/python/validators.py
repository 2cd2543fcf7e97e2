"""
Holdridge Life Zones — Shared Input Validators
===============================================
Static precondition checks used by the classifier core and the raster
tool before any processing begins.

All methods raise an appropriate exception from
:mod:`shared.python.exceptions` rather than returning booleans, which
keeps ``validate_inputs`` implementations short::

    class MyTool(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)
            Validators.assert_supported_extension(self.input_path, [".tif"])
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from shared.python.exceptions import (
    ColumnNotFoundError,
    InputValidationError,
    OutputWriteError,
    ShapeMismatchError,
)


class Validators:
    """Collection of static precondition checks.

    All methods are ``@staticmethod``; this class is never instantiated.
    It exists purely as a logical namespace.
    """

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Assert that *path* points to an existing regular file.

        Args:
            path: Path object to check.

        Raises:
            InputValidationError: If *path* does not exist or is a
                directory rather than a file.

        Example::

            Validators.assert_file_exists(Path("data/biotemp_annual.tif"))
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input file not found: '{path}'. "
                "Check that the path is correct and the file exists."
            )
        if path.is_dir():
            raise InputValidationError(
                f"Expected a file but got a directory: '{path}'."
            )

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Assert that the parent directory of *output_path* is writable.

        Creates the parent directory (and any missing parents) if it does
        not yet exist.

        Args:
            output_path: Intended output file path.

        Raises:
            OutputWriteError: If the parent directory cannot be created.
        """
        parent = Path(output_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* has one of the allowed file extensions.

        Args:
            path: File path to check.
            extensions: Sequence of allowed extensions, each starting with
                        a dot (e.g. ``[".tif", ".tiff"]``).

        Raises:
            InputValidationError: If the file extension is not in
                *extensions*.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{path.name}'. "
                f"Accepted extensions: {', '.join(allowed)}"
            )

    # ------------------------------------------------------------------
    # Tabular data checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_columns_exist(
        df: object,  # pandas DataFrame, typed loosely to avoid hard dep
        required_columns: Sequence[str],
    ) -> None:
        """Assert that all *required_columns* are present in *df*.

        Args:
            df: A ``pandas.DataFrame``.
            required_columns: Column names that must be present.

        Raises:
            ColumnNotFoundError: On the first missing column found.

        Example::

            Validators.assert_columns_exist(df, ["abt", "tap", "per"])
        """
        available = list(df.columns)  # type: ignore[attr-defined]
        for col in required_columns:
            if col not in available:
                raise ColumnNotFoundError(col, available)

    # ------------------------------------------------------------------
    # Raster checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_raster_shapes_match(
        reference: tuple[int, ...],
        other: tuple[int, ...],
        label: str = "raster",
    ) -> None:
        """Assert that a raster has the same ``(rows, cols)`` as the reference.

        Required before any cell-wise arithmetic; shapes are never broadcast.

        Args:
            reference: Shape of the reference raster.
            other: Shape of the raster being checked.
            label: Human-readable name of the raster being checked (used
                   in the error message).

        Raises:
            ShapeMismatchError: If the shapes differ or are not 2-D.

        Example::

            Validators.assert_raster_shapes_match(
                biotemp.shape, precip.shape, "precipitation"
            )
        """
        if len(other) != 2 or tuple(reference) != tuple(other):
            raise ShapeMismatchError(label, tuple(reference), tuple(other))

    @staticmethod
    def assert_raster_is_2d(shape: tuple[int, ...], label: str = "raster") -> None:
        """Assert that *shape* describes a single-band ``(rows, cols)`` grid.

        Raises:
            InputValidationError: If *shape* does not have exactly two axes.
        """
        if len(shape) != 2:
            raise InputValidationError(
                f"Raster '{label}' must be a 2-D (rows, cols) grid, got shape {tuple(shape)}."
            )

    @staticmethod
    def assert_positive(value: float, name: str) -> None:
        """Assert that a numeric setting is strictly positive.

        Args:
            value: The value to check.
            name: Setting name used in the error message.

        Raises:
            InputValidationError: If *value* is not greater than zero.
        """
        if not value > 0:
            raise InputValidationError(f"'{name}' must be > 0, got {value!r}.")
