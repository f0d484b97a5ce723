from math import radians, sin, cos, asin, sqrt

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance (km)."""
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))
    return EARTH_RADIUS_KM * c


def farm_distance_km(farmer, lat: float, lng: float):
    if farmer.latitude is None or farmer.longitude is None:
        return None
    return haversine_km(lat, lng, float(farmer.latitude), float(farmer.longitude))


def delivers_to(farmer, lat: float, lng: float) -> bool:
    """True when the farm offers delivery and (lat, lng) lies inside its radius."""
    if not farmer.delivery_available or not farmer.delivery_radius_km:
        return False
    distance = farm_distance_km(farmer, lat, lng)
    if distance is None:
        return False
    return distance <= farmer.delivery_radius_km
