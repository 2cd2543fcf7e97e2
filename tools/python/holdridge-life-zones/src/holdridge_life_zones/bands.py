"""
Holdridge Life Zones — Latitudinal and Altitudinal Bands
=========================================================
Threshold mapping from biotemperature to Holdridge's seven ordered bands.

=====  ======================  ==================  ==============
band   biotemperature (°C)     latitudinal name    altitudinal name
=====  ======================  ==================  ==============
1      below 1.5               polar               nival
2      [1.5, 3)                subpolar            alpine
3      [3, 6)                  boreal              subalpine
4      [6, 12)                 cool temperate      montane
5      [12, frost line)        warm temperate      premontane
6      [frost line, 24)        subtropical         lower montane
7      24 and above            tropical            basal
=====  ======================  ==================  ==============

The same mapping is applied to the local and the sea-level biotemperature.
Sea level carries the latitude signal, so its band is the final
latitudinal band; where the local band differs, elevation has moved the
cell and the local band becomes its altitudinal band, otherwise the cell
is basal.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from holdridge_life_zones.zone_table import FROST_LINE

BAND_DTYPE = np.uint8

UNDEFINED_BAND = 0
POLAR_BAND = 1
BASAL_BAND = 7

# Lower edge of bands 2..7.
BAND_THRESHOLDS = np.array([1.5, 3.0, 6.0, 12.0, FROST_LINE, 24.0], dtype=np.float64)


def derive_band(biotemperature: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Map biotemperature onto bands 1..7; NaN maps to :data:`UNDEFINED_BAND`.

    A value equal to a threshold belongs to the warmer band.  The mapping
    is monotone non-decreasing.
    """
    values = np.asarray(biotemperature, dtype=np.float64)
    band = (np.digitize(values, BAND_THRESHOLDS, right=False) + 1).astype(BAND_DTYPE)
    band[np.isnan(values)] = UNDEFINED_BAND
    return band


def derive_final_bands(
    biotemperature: npt.ArrayLike,
    sealevel_biotemperature: npt.ArrayLike,
) -> tuple[npt.NDArray[np.uint8], npt.NDArray[np.uint8]]:
    """Return ``(altitudinal_band, latitudinal_band)`` for every cell.

    Args:
        biotemperature: Local (elevation-affected) annual biotemperature.
        sealevel_biotemperature: Biotemperature with the lapse-rate
            cooling removed.

    Returns:
        Two uint8 arrays.  An undefined input band on either side leaves
        the corresponding output undefined rather than defaulting it.
    """
    local_band = derive_band(biotemperature)
    sealevel_band = derive_band(sealevel_biotemperature)

    latitudinal = sealevel_band
    altitudinal = np.where(local_band != sealevel_band, local_band, BASAL_BAND).astype(
        BAND_DTYPE
    )
    altitudinal[(local_band == UNDEFINED_BAND) | (sealevel_band == UNDEFINED_BAND)] = (
        UNDEFINED_BAND
    )
    return altitudinal, latitudinal
