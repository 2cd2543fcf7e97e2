"""
Holdridge Life Zones — Run Configuration
=========================================
Options controlling a classification run, plus a JSON loader.

Example config file::

    {
        "compute_ecotones": true,
        "tile_rows": 1024,
        "tile_cols": 1024,
        "max_workers": 4,
        "fail_on_unclassified": true
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from shared.python.exceptions import InputValidationError
from shared.python.validators import Validators

logger = logging.getLogger("holdridge.config")


@dataclass(frozen=True)
class ClassificationConfig:
    """Options for one classification run.

    Attributes:
        compute_ecotones: Split each hexagon into its core and six
            transitional triangles.  When ``False`` every classified cell
            gets ecotone digit 0.  ``None`` leaves the choice to the caller
            (the raster tool decides from the PET source); the engine
            treats it as ``True``.
        tile_rows: Tile height in cells.
        tile_cols: Tile width in cells.
        max_workers: Worker threads for tiled processing (``1`` = serial).
        fail_on_unclassified: Raise
            :class:`~shared.python.exceptions.NumericDegeneracyError` for
            cells with NaN/Inf climate values that the no-data mask missed.
            When ``False`` those cells are written as no-data and a warning
            is logged.
    """

    compute_ecotones: Optional[bool] = None
    tile_rows: int = 2048
    tile_cols: int = 2048
    max_workers: int = 1
    fail_on_unclassified: bool = True

    def __post_init__(self) -> None:
        for name in ("tile_rows", "tile_cols", "max_workers"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InputValidationError(
                    f"'{name}' must be an integer, got {value!r}."
                )
            Validators.assert_positive(value, name)
        if self.compute_ecotones is not None and not isinstance(self.compute_ecotones, bool):
            raise InputValidationError(
                f"'compute_ecotones' must be true, false or null, got {self.compute_ecotones!r}."
            )
        if not isinstance(self.fail_on_unclassified, bool):
            raise InputValidationError(
                "'fail_on_unclassified' must be true or false, "
                f"got {self.fail_on_unclassified!r}."
            )

    @property
    def ecotones_enabled(self) -> bool:
        """``compute_ecotones`` with an unset value read as ``True``."""
        return self.compute_ecotones is not False

    def with_ecotone_default(self, enabled: bool) -> ClassificationConfig:
        """Return a copy with ``compute_ecotones`` set to *enabled* if it is unset."""
        if self.compute_ecotones is not None:
            return self
        return replace(self, compute_ecotones=enabled)


def load_config(config_path: Path) -> ClassificationConfig:
    """Parse a JSON configuration file into a :class:`ClassificationConfig`.

    Keys that are absent keep their defaults.

    Args:
        config_path: Path to the JSON config file.

    Returns:
        A validated ``ClassificationConfig`` instance.

    Raises:
        InputValidationError: If the file cannot be read or parsed, holds
            unknown keys, or holds invalid values.
    """
    config_path = Path(config_path)
    try:
        raw: Any = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise InputValidationError(
            f"Failed to read config file '{config_path}': {exc}"
        ) from exc

    if not isinstance(raw, dict):
        raise InputValidationError(
            f"Config file '{config_path}' must contain a JSON object."
        )

    known = {f.name for f in fields(ClassificationConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise InputValidationError(
            f"Unknown config key(s) in '{config_path}': {', '.join(unknown)}. "
            f"Accepted keys: {', '.join(sorted(known))}"
        )

    config = ClassificationConfig(**raw)
    logger.debug("Loaded %s from '%s'.", config, config_path)
    return config
