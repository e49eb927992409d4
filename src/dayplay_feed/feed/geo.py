"""
Distance annotation and radius filtering.

Listings without coordinates are never dropped by distance: they keep
`distance_km=None` and sort after every listing with a known distance.
"""

import math
from typing import List, Optional, Sequence

from dayplay_feed.config.constants import EARTH_RADIUS_KM
from dayplay_feed.feed.models import Listing


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in kilometers, rounded to one decimal.

    >>> distance_km(37.7749, -122.4194, 37.8044, -122.2712)
    13.4
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


class GeoFilter:
    """Stateless distance stage of the feed pipeline."""

    @staticmethod
    def annotate(
        candidates: Sequence[Listing],
        user_lat: Optional[float],
        user_lon: Optional[float],
    ) -> List[Listing]:
        """
        Return copies of the candidates with `distance_km` set.

        Unknown user position leaves every distance as None.
        """
        has_user = user_lat is not None and user_lon is not None
        annotated = []
        for listing in candidates:
            if has_user and listing.has_coordinates:
                dist = distance_km(user_lat, user_lon, listing.latitude, listing.longitude)
            else:
                dist = None
            annotated.append(listing.model_copy(update={"distance_km": dist}))
        return annotated

    @staticmethod
    def filter_by_radius(candidates: Sequence[Listing], radius_km: float) -> List[Listing]:
        """Drop only listings whose known distance exceeds the radius."""
        return [
            listing for listing in candidates
            if listing.distance_km is None or listing.distance_km <= radius_km
        ]
