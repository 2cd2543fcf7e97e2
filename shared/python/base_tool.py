"""
Holdridge Life Zones — Shared Base Tool
========================================
Abstract base class for the project's raster tools.

Design Pattern:
    Template Method: the public ``run()`` method fixes the pipeline
    (validate → process → report) and subclasses fill in
    ``validate_inputs`` and ``process``.  Long steps inside ``process``
    are wrapped in :meth:`GeoTool._stage` so each one is timed and the
    timings are reported together at the end of the run.

Usage::

    from shared.python.base_tool import GeoTool

    class MyTool(GeoTool):
        def validate_inputs(self) -> None:
            ...

        def process(self) -> None:
            with self._stage("read"):
                ...
            with self._stage("classify"):
                ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

# Root logger of the project; modules log to "holdridge.<module>".
logger = logging.getLogger("holdridge")


class GeoTool(ABC):
    """Abstract base class for raster tools.

    Attributes:
        input_path: Path to the primary input raster.
        output_path: Path where the output raster will be written.
        verbose: Log DEBUG messages in addition to INFO/WARNING/ERROR.
        stage_timings: Seconds spent in each :meth:`_stage` of the last
            run, in execution order.

    Example::

        tool = LifeZoneClassifierTool(
            inputs=ClimateRasterPaths(
                biotemperature=Path("biotemp_annual.tif"),
                sealevel_biotemperature=Path("biotemp_sealevel_annual.tif"),
                precipitation=Path("prec_annual.tif"),
            ),
            output_path=Path("HLZ_Classical.tif"),
        )
        tool.run()
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        *,
        verbose: bool = False,
    ) -> None:
        self.input_path: Path = Path(input_path)
        self.output_path: Path = Path(output_path)
        self.verbose: bool = verbose
        self.stage_timings: dict[str, float] = {}

        self._configure_logging()

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_inputs(self) -> None:
        """Check every precondition before any raster is read.

        Raise :class:`~shared.python.exceptions.InputValidationError` (or a
        subclass) on failure.
        """

    @abstractmethod
    def process(self) -> None:
        """Do the raster work.  Exceptions propagate through :meth:`run`."""

    # ------------------------------------------------------------------
    # Template method
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Validate, process, then log a summary of the run.

        Raises:
            Any exception from ``validate_inputs`` or ``process``,
            unchanged.
        """
        logger.info("Starting %s", self.__class__.__name__)
        self.stage_timings = {}
        start = time.perf_counter()

        self.validate_inputs()
        self.process()

        self._report_success(time.perf_counter() - start)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    @contextmanager
    def _stage(self, name: str) -> Iterator[None]:
        """Time the enclosed block and record it under *name*."""
        logger.debug("%s: %s...", self.__class__.__name__, name)
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.stage_timings[name] = self.stage_timings.get(name, 0.0) + elapsed
            logger.debug("%s: %s took %.2fs", self.__class__.__name__, name, elapsed)

    def summary(self) -> list[str]:
        """Extra lines for the end-of-run report; override to add results."""
        return []

    def _report_success(self, elapsed: float) -> None:
        logger.info(
            "%s completed in %.2fs → %s",
            self.__class__.__name__,
            elapsed,
            self.output_path,
        )
        for name, seconds in self.stage_timings.items():
            logger.info("  %-12s %.2fs", name, seconds)
        for line in self.summary():
            logger.info("  %s", line)

    def _configure_logging(self) -> None:
        """Attach a console handler to the ``holdridge`` logger once.

        Uses DEBUG level when ``self.verbose`` is ``True``, otherwise INFO.
        """
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter(
                    fmt="[%(asctime)s] %(levelname)-8s %(name)s — %(message)s",
                    datefmt="%H:%M:%S",
                )
            )
            logger.addHandler(handler)

        logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"input_path={self.input_path!r}, "
            f"output_path={self.output_path!r})"
        )
