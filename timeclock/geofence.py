"""
Geofence validation for clock-in.
"""
from dataclasses import dataclass
from math import radians, sin, cos, sqrt, atan2
from typing import Optional

from django.conf import settings

EARTH_RADIUS_METRES = 6371000


@dataclass(frozen=True)
class GeofenceResult:
    allowed: bool
    distance_metres: Optional[float]
    reason: str


@dataclass(frozen=True)
class GeofenceTarget:
    latitude: Optional[float]
    longitude: Optional[float]
    radius_metres: float
    label: str = ''


def calculate_distance(lat1, lon1, lat2, lon2):
    """
    Calculate the great-circle distance between two points
    on the Earth (specified in decimal degrees)
    Returns distance in metres
    """
    lon1, lat1, lon2, lat2 = map(radians, [float(lon1), float(lat1), float(lon2), float(lat2)])

    # Haversine formula
    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return c * EARTH_RADIUS_METRES


def _has_coordinates(lat, lon):
    return lat is not None and lon is not None and lat != '' and lon != ''


def check_geofence(staff_lat, staff_lon, target: Optional[GeofenceTarget]) -> GeofenceResult:
    """
    Evaluate a position against a target. Missing coordinates on either
    side allow the clock-in.
    """
    if target is None or not _has_coordinates(target.latitude, target.longitude):
        return GeofenceResult(True, None, 'Location not configured')
    if not _has_coordinates(staff_lat, staff_lon):
        return GeofenceResult(True, None, 'No staff location provided')

    distance = calculate_distance(target.latitude, target.longitude, staff_lat, staff_lon)
    if distance <= float(target.radius_metres):
        return GeofenceResult(True, distance, 'Location verified')
    label = target.label or 'location'
    return GeofenceResult(False, distance, f'Outside geofence. {distance:.0f}m from {label}')


def resolve_target(shift=None, staff=None) -> Optional[GeofenceTarget]:
    """
    Geofence target for a clock-in: the shift's location, else the staff
    member's primary location, else the organization's coordinates.
    """
    organization = getattr(staff, 'organization', None)
    location = None
    if shift is not None and shift.location_id:
        location = shift.location
    elif staff is not None and staff.primary_location_id:
        location = staff.primary_location

    default_radius = settings.DEFAULT_GEOFENCE_RADIUS_METRES
    if organization is not None and organization.radius:
        default_radius = organization.radius

    if location is not None and _has_coordinates(location.latitude, location.longitude):
        return GeofenceTarget(
            latitude=float(location.latitude),
            longitude=float(location.longitude),
            radius_metres=float(location.radius or default_radius),
            label=location.name,
        )
    if organization is not None and _has_coordinates(organization.latitude, organization.longitude):
        return GeofenceTarget(
            latitude=float(organization.latitude),
            longitude=float(organization.longitude),
            radius_metres=float(default_radius),
            label=organization.name,
        )
    return None
