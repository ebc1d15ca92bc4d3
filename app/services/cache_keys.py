"""
Cache key derivation for weather lookups.

Key formats:
    coords:{lat}:{lon}:{units}
    weather:{city}:{country}:{units}
    latest:{city}

City and country are lower-cased; coordinates are used at face value
(no rounding). A missing country is an empty segment, e.g.
`weather:paris::metric`. Inputs containing the separator are not escaped
and may collide with other keys.
"""

from __future__ import annotations

from typing import Optional, Union

from app.models.weather import Units

KEY_SEPARATOR = ":"

COORDINATE_NAMESPACE = "coords"
CITY_NAMESPACE = "weather"
LATEST_NAMESPACE = "latest"

UnitsLike = Union[Units, str]


def _units_segment(units: Optional[UnitsLike]) -> str:
    if units is None:
        return Units.METRIC.value
    return units.value if isinstance(units, Units) else str(units)


def _join(*segments: object) -> str:
    return KEY_SEPARATOR.join(str(s) for s in segments)


def coordinate_key(lat: float, lon: float, units: Optional[UnitsLike] = Units.METRIC) -> str:
    """Key for a lookup by coordinates: `coords:51.51:-0.13:metric`."""
    return _join(COORDINATE_NAMESPACE, lat, lon, _units_segment(units))


def city_key(
    city_name: str,
    country: Optional[str] = "",
    units: Optional[UnitsLike] = Units.METRIC,
) -> str:
    """Key for a lookup by city: `weather:london:gb:metric`."""
    return _join(
        CITY_NAMESPACE,
        city_name.lower(),
        (country or "").lower(),
        _units_segment(units),
    )


def latest_key(city_name: str) -> str:
    """Key for the latest stored record of a city, regardless of units."""
    return _join(LATEST_NAMESPACE, city_name.lower())
