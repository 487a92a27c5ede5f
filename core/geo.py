import math

EARTH_RADIUS_MILES = 3959
MILES_PER_DEGREE_LAT = 69.0


def distance_miles(lat1, lng1, lat2, lng2):
    """Great-circle distance between two points (haversine), in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(lat, lng, radius_miles):
    """
    Approximate min/max lat/lng for a radius search.

    Only a pre-filter for database queries; callers sort or trim by
    distance_miles afterwards.
    """
    lat_delta = radius_miles / MILES_PER_DEGREE_LAT
    lng_delta = radius_miles / (MILES_PER_DEGREE_LAT * math.cos(math.radians(lat)))
    return {
        'min_lat': lat - lat_delta,
        'max_lat': lat + lat_delta,
        'min_lng': lng - lng_delta,
        'max_lng': lng + lng_delta,
    }


# ZIP centroids for the Northeast Ohio service area: zip -> (city, lat, lng)
ZIP_CENTROIDS = {
    '44101': ('Cleveland', 41.4993, -81.6944),
    '44102': ('Cleveland', 41.4748, -81.7379),
    '44103': ('Cleveland', 41.5202, -81.6417),
    '44104': ('Cleveland', 41.4823, -81.6208),
    '44105': ('Cleveland', 41.4505, -81.6312),
    '44106': ('Cleveland', 41.5087, -81.6069),
    '44107': ('Lakewood', 41.4842, -81.7982),
    '44109': ('Cleveland', 41.4458, -81.6964),
    '44111': ('Cleveland', 41.4593, -81.7874),
    '44113': ('Cleveland', 41.4838, -81.7001),
    '44114': ('Cleveland', 41.5148, -81.6713),
    '44116': ('Rocky River', 41.4687, -81.8528),
    '44117': ('Euclid', 41.5734, -81.5192),
    '44118': ('Cleveland Heights', 41.5202, -81.5567),
    '44120': ('Shaker Heights', 41.4688, -81.5756),
    '44121': ('South Euclid', 41.5231, -81.5186),
    '44122': ('Beachwood', 41.4646, -81.5087),
    '44124': ('Lyndhurst', 41.5187, -81.4887),
    '44125': ('Garfield Heights', 41.4165, -81.6062),
    '44126': ('Fairview Park', 41.4417, -81.8642),
    '44129': ('Parma', 41.3913, -81.7371),
    '44130': ('Parma Heights', 41.3923, -81.7745),
    '44131': ('Independence', 41.3873, -81.6356),
    '44133': ('North Royalton', 41.3149, -81.7245),
    '44136': ('Strongsville', 41.3145, -81.8362),
    '44137': ('Maple Heights', 41.4095, -81.5582),
    '44139': ('Solon', 41.3896, -81.4411),
    '44140': ('Bay Village', 41.4859, -81.9223),
    '44141': ('Brecksville', 41.3187, -81.6267),
    '44142': ('Brookpark', 41.3981, -81.8145),
    '44145': ('Westlake', 41.4528, -81.9178),
    '44146': ('Bedford', 41.3923, -81.5365),
    '44147': ('Broadview Heights', 41.3234, -81.6817),
    '44022': ('Chagrin Falls', 41.4312, -81.3912),
    '44024': ('Chardon', 41.5842, -81.2078),
    '44035': ('Elyria', 41.3684, -82.1076),
    '44039': ('North Ridgeville', 41.3892, -82.0192),
    '44011': ('Avon', 41.4512, -82.0265),
    '44012': ('Avon Lake', 41.5053, -82.0284),
    '44052': ('Lorain', 41.4528, -82.1823),
    '44060': ('Mentor', 41.6892, -81.3395),
    '44077': ('Painesville', 41.7245, -81.2456),
    '44094': ('Willoughby', 41.6398, -81.4062),
    '44240': ('Kent', 41.1537, -81.3579),
    '44256': ('Medina', 41.1384, -81.8637),
    '44281': ('Wadsworth', 41.0256, -81.7298),
    '44302': ('Akron', 41.0887, -81.5234),
    '44303': ('Akron', 41.1034, -81.5467),
    '44308': ('Akron', 41.0823, -81.5134),
    '44313': ('Akron', 41.1234, -81.5567),
    '44333': ('Akron', 41.1634, -81.6267),
    '44481': ('Warren', 41.2378, -80.8184),
    '44502': ('Youngstown', 41.0734, -80.6623),
    '44512': ('Youngstown', 41.0234, -80.6823),
    '44691': ('Wooster', 40.8051, -81.9351),
    '44702': ('Canton', 40.8234, -81.3534),
    '44718': ('Canton', 40.8623, -81.4234),
    '44720': ('North Canton', 40.8762, -81.4023),
}


def zip_coordinates(zip_code):
    """(lat, lng) of a ZIP centroid, or None outside the service area."""
    entry = ZIP_CENTROIDS.get((zip_code or '').strip()[:5])
    if entry is None:
        return None
    return entry[1], entry[2]


def zip_city(zip_code):
    entry = ZIP_CENTROIDS.get((zip_code or '').strip()[:5])
    return entry[0] if entry else None
