"""
Holdridge Life Zones — Shared Python Package
=============================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so the classifier and its tools can import from a single
location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import ShapeMismatchError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    ColumnNotFoundError,
    DecodeIndexOutOfRangeError,
    InputValidationError,
    InvalidZoneTableError,
    LifeZoneError,
    NumericDegeneracyError,
    OutputWriteError,
    RasterError,
    ShapeMismatchError,
    TileProcessingError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "LifeZoneError",
    "InputValidationError",
    "ColumnNotFoundError",
    "ShapeMismatchError",
    "InvalidZoneTableError",
    "NumericDegeneracyError",
    "DecodeIndexOutOfRangeError",
    "TileProcessingError",
    "RasterError",
    "OutputWriteError",
]
