"""Geodesic helpers shared by the fix filter, accumulator and route recorder."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Geod, Transformer
from shapely.geometry import LineString

from .models import LatLon

MetricArray = NDArray[np.float64]

_GEOD = Geod(ellps="WGS84")


def geodesic_distance(a: LatLon, b: LatLon) -> float:
    """Return the WGS84 geodesic distance between two (lat, lon) points in metres."""

    _az12, _az21, dist = _GEOD.inv(a[1], a[0], b[1], b[0])
    return float(dist)


def destination_point(origin: LatLon, bearing_deg: float, distance_m: float) -> LatLon:
    """Point reached by travelling ``distance_m`` from ``origin`` along ``bearing_deg``."""

    lon, lat, _back = _GEOD.fwd(origin[1], origin[0], bearing_deg, distance_m)
    return (float(lat), float(lon))


def simplify_route(points: Sequence[LatLon], tolerance_m: float) -> List[LatLon]:
    """Douglas-Peucker simplification in a local metric projection.

    Returned vertices are a subset of the input, endpoints preserved.
    """

    latlon = list(points)
    if len(latlon) < 3 or tolerance_m <= 0:
        return latlon
    transformer = _build_local_transformer(latlon)
    metric = _project_points(latlon, transformer)
    simplified = LineString(metric).simplify(tolerance_m, preserve_topology=False)
    lookup = {tuple(pt): idx for idx, pt in enumerate(metric.tolist())}
    kept: List[LatLon] = []
    for coord in simplified.coords:
        idx = lookup.get((float(coord[0]), float(coord[1])))
        if idx is None:
            lon, lat = transformer.transform(coord[0], coord[1], direction="INVERSE")
            kept.append((float(lat), float(lon)))
        else:
            kept.append(latlon[idx])
    return kept


def _build_local_transformer(points: Sequence[LatLon]) -> Transformer:
    """Build a local UTM transformer centred on the provided coordinates."""

    mean_lat = float(np.mean([pt[0] for pt in points]))
    mean_lon = float(np.mean([pt[1] for pt in points]))
    zone = int((mean_lon + 180.0) // 6.0) + 1
    zone = max(1, min(zone, 60))
    epsg = 32600 + zone if mean_lat >= 0 else 32700 + zone
    try:
        target_crs = CRS.from_epsg(epsg)
    except Exception:
        target_crs = CRS.from_epsg(3857)
    return Transformer.from_crs(CRS.from_epsg(4326), target_crs, always_xy=True)


def _project_points(points: Iterable[LatLon], transformer: Transformer) -> MetricArray:
    pts: List[Tuple[float, float]] = list(points)
    if not pts:
        return np.empty((0, 2), dtype=float)
    lats = np.asarray([pt[0] for pt in pts], dtype=float)
    lons = np.asarray([pt[1] for pt in pts], dtype=float)
    xs, ys = transformer.transform(lons, lats)
    return np.column_stack((xs, ys)).astype(float, copy=False)


__all__ = ["geodesic_distance", "destination_point", "simplify_route"]
