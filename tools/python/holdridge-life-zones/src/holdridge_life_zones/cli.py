"""
Holdridge Life Zones — CLI Entry Point
=======================================
Exposes :class:`~holdridge_life_zones.tool.LifeZoneClassifierTool` and the
code decoder as the ``geo-hlz`` command.

Usage::

    # Classical Holdridge life zones (PET = 58.93 × biotemperature)
    geo-hlz classify \\
        --biotemp biotemp_annual.tif \\
        --sealevel-biotemp biotemp_sealevel_annual.tif \\
        --precip prec_annual.tif \\
        --nodata-mask nodata_mask.tif \\
        --output output/HLZ_Classical.tif \\
        --code-table output/HLZ_Codes_Classical.csv

    # Decode codes
    geo-hlz decode 39761 27741
    geo-hlz decode --raster output/HLZ_Classical.tif --output codes.csv

Run ``geo-hlz --help`` for the full option list.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import numpy as np
import rasterio

from holdridge_life_zones.codes import build_code_table, decode
from holdridge_life_zones.config import ClassificationConfig, load_config
from holdridge_life_zones.tool import ClimateRasterPaths, LifeZoneClassifierTool
from holdridge_life_zones.zone_table import ZoneTable
from shared.python.exceptions import LifeZoneError

logger = logging.getLogger("holdridge.cli")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@click.group("geo-hlz")
def cli() -> None:
    """Classify climate rasters into Holdridge life zones and decode the codes."""


@cli.command("classify")
@click.option("--biotemp", "biotemp", required=True,
              type=click.Path(exists=True, dir_okay=False),
              help="Annual biotemperature raster (°C).")
@click.option("--sealevel-biotemp", "sealevel_biotemp", required=True,
              type=click.Path(exists=True, dir_okay=False),
              help="Sea-level biotemperature raster (°C).")
@click.option("--precip", "precip", required=True,
              type=click.Path(exists=True, dir_okay=False),
              help="Annual precipitation raster (mm/yr).")
@click.option("--pet", "pet", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Annual PET raster (mm/yr). Omit for PET = 58.93 × biotemperature.")
@click.option("--nodata-mask", "nodata_mask", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Raster whose non-zero cells are no-data.")
@click.option("--output", "output", required=True,
              help="Output code GeoTIFF (uint32, nodata 0).")
@click.option("--code-table", "code_table", default=None,
              help="Also write a Code,Name CSV of the codes in the output.")
@click.option("--table", "table", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Zone definition CSV (defaults to the bundled table).")
@click.option("--config", "config_path", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="JSON run configuration (tiling, workers, ecotones).")
@click.option("--ecotones/--no-ecotones", "ecotones", default=None,
              help="Force ecotones on or off. Default: on for classical PET, "
                   "off for a supplied PET raster.")
@click.option("--tile-size", "tile_size", default=None, type=int,
              help="Square tile size in cells (overrides the config file).")
@click.option("--workers", "workers", default=None, type=int,
              help="Worker threads (overrides the config file).")
@click.option("--lenient", is_flag=True, default=False,
              help="Write unresolvable NaN/Inf cells as no-data instead of failing.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable DEBUG-level logging.")
def classify(
    biotemp: str,
    sealevel_biotemp: str,
    precip: str,
    pet: Optional[str],
    nodata_mask: Optional[str],
    output: str,
    code_table: Optional[str],
    table: Optional[str],
    config_path: Optional[str],
    ecotones: Optional[bool],
    tile_size: Optional[int],
    workers: Optional[int],
    lenient: bool,
    verbose: bool,
) -> None:
    """Classify climate GeoTIFFs into a Holdridge life zone code raster.

    \b
    Examples:
        # Classical life zones with ecotones
        geo-hlz classify --biotemp abt.tif --sealevel-biotemp abt_sl.tif \\
                         --precip prec.tif --output HLZ_Classical.tif

        # Penman-Monteith PET, 4 workers, code table
        geo-hlz classify --biotemp abt.tif --sealevel-biotemp abt_sl.tif \\
                         --precip prec.tif --pet et0_yr.tif --workers 4 \\
                         --output HLZ_PM.tif --code-table HLZ_Codes_PM.csv
    """
    _configure_logging(verbose)

    try:
        config = load_config(Path(config_path)) if config_path else None
        overrides: dict[str, object] = {}
        if tile_size is not None:
            overrides.update(tile_rows=tile_size, tile_cols=tile_size)
        if workers is not None:
            overrides["max_workers"] = workers
        if lenient:
            overrides["fail_on_unclassified"] = False
        if overrides:
            base = config if config is not None else ClassificationConfig()
            config = dataclasses.replace(base, **overrides)

        tool = LifeZoneClassifierTool(
            inputs=ClimateRasterPaths(
                biotemperature=Path(biotemp),
                sealevel_biotemperature=Path(sealevel_biotemp),
                precipitation=Path(precip),
                pet=Path(pet) if pet else None,
                nodata_mask=Path(nodata_mask) if nodata_mask else None,
            ),
            output_path=Path(output),
            table_path=Path(table) if table else None,
            config=config,
            compute_ecotones=ecotones,
            code_table_path=Path(code_table) if code_table else None,
            verbose=verbose,
        )
        tool.run()
    except LifeZoneError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"\nLife zone raster written to: {output}")
    if tool.result is not None:
        click.echo(f"  {tool.result}")
    if code_table:
        click.echo(f"  Code table: {code_table}")


@cli.command("decode")
@click.argument("codes", nargs=-1, type=int)
@click.option("--raster", "raster", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Decode every distinct code in this code raster.")
@click.option("--table", "table", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Zone definition CSV (defaults to the bundled table).")
@click.option("--output", "output", default=None,
              help="Write a Code,Name CSV instead of printing.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable DEBUG-level logging.")
def decode_cmd(
    codes: tuple[int, ...],
    raster: Optional[str],
    table: Optional[str],
    output: Optional[str],
    verbose: bool,
) -> None:
    """Turn life zone codes into names.

    \b
    Examples:
        geo-hlz decode 39761
        geo-hlz decode --raster HLZ_Classical.tif --output HLZ_Codes.csv
    """
    _configure_logging(verbose)

    if not codes and raster is None:
        click.echo("Error: Give one or more CODES or --raster. See --help.", err=True)
        sys.exit(1)

    try:
        zone_table = ZoneTable.from_csv(Path(table)) if table else ZoneTable.default()
        values = np.asarray(codes, dtype=np.int64)
        if raster is not None:
            with rasterio.open(raster) as src:
                values = np.concatenate([values, np.unique(src.read(1)).astype(np.int64)])

        if output:
            build_code_table(values, zone_table.names).to_csv(output, index=False)
            click.echo(f"{np.unique(values).size} code(s) written to: {output}")
            return

        for code in np.unique(values) if raster is not None else values:
            click.echo(f"{int(code)}\t{decode(int(code), zone_table.names)}")
    except LifeZoneError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except (OSError, rasterio.errors.RasterioIOError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
