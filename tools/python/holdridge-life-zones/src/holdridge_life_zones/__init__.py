"""
Holdridge Life Zones
=====================
Classify climate rasters into Holdridge life zones and decode the codes.
"""

from holdridge_life_zones.codes import build_code_table, decode, decode_table
from holdridge_life_zones.config import ClassificationConfig, load_config
from holdridge_life_zones.engine import ClimateSurfaces, LifeZoneClassifier, LifeZoneFields
from holdridge_life_zones.tool import (
    ClimateRasterPaths,
    LifeZoneClassifierTool,
    LifeZoneRunResult,
)
from holdridge_life_zones.zone_table import ZoneDefinition, ZoneTable

__all__ = [
    "LifeZoneClassifierTool",
    "ClimateRasterPaths",
    "LifeZoneRunResult",
    "LifeZoneClassifier",
    "ClimateSurfaces",
    "LifeZoneFields",
    "ClassificationConfig",
    "load_config",
    "ZoneTable",
    "ZoneDefinition",
    "decode",
    "decode_table",
    "build_code_table",
]
