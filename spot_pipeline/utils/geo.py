"""Geographic utility functions."""


def is_valid_coordinates(lat: float | None, lon: float | None) -> bool:
    """Check if latitude and longitude are present and in range.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees

    Returns:
        True if coordinates are valid, False otherwise
    """
    if lat is None or lon is None:
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180
