from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


LON_RANGE: Tuple[float, float] = (-180.0, 180.0)
LAT_RANGE: Tuple[float, float] = (-90.0, 90.0)


@dataclass(frozen=True)
class BoundingBox:
    """[lon_min, lat_min, lon_max, lat_max] in WGS84 degrees."""
    lon_min: float
    lat_min: float
    lon_max: float
    lat_max: float

    def contains(self, lat: float, lon: float) -> bool:
        return (self.lon_min <= lon <= self.lon_max) and (self.lat_min <= lat <= self.lat_max)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.lon_min, self.lat_min, self.lon_max, self.lat_max)

    def to_param(self) -> str:
        # photos.search expects "minLon,minLat,maxLon,maxLat"
        return ",".join(str(float(v)) for v in self.as_tuple())


def search_bbox(
    lat: float,
    lon: float,
    half_width: float = 1.0,
    half_height: float = 1.0,
    lon_range: Tuple[float, float] = LON_RANGE,
    lat_range: Tuple[float, float] = LAT_RANGE,
) -> BoundingBox:
    """
    Rectangle of +/- half extents around (lat, lon), clamped to the global
    coordinate ranges so the box never leaves valid lon/lat.
    """
    if not (lat_range[0] <= lat <= lat_range[1]) or not (lon_range[0] <= lon <= lon_range[1]):
        raise ValueError("lat/lon out of range")
    return BoundingBox(
        lon_min=max(lon - half_width, lon_range[0]),
        lat_min=max(lat - half_height, lat_range[0]),
        lon_max=min(lon + half_width, lon_range[1]),
        lat_max=min(lat + half_height, lat_range[1]),
    )
