"""
Location providers used to enrich an escalated alert
"""

import logging

from .models import Position, now_ms
from .config import LOCATION_MAX_AGE_SECONDS, MAPS_URL_TEMPLATE

logger = logging.getLogger(__name__)


class LocationUnavailable(RuntimeError):
    pass


class LocationProvider:
    def get_current_position(self):
        raise NotImplementedError


class StaticLocationProvider(LocationProvider):
    """Fixed position, e.g. configured on the command line"""

    def __init__(self, latitude, longitude, accuracy=0.0):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy

    def get_current_position(self):
        return Position(self.latitude, self.longitude, self.accuracy, timestamp=now_ms())


class CachedLocationProvider(LocationProvider):
    """
    Wraps another provider: returns the cached fix while it is younger than
    max_age seconds, and the last known fix when the source fails.
    """

    def __init__(self, source, max_age=LOCATION_MAX_AGE_SECONDS, clock=now_ms):
        self.source = source
        self.max_age_ms = max_age * 1000.0
        self.clock = clock
        self.current_position = None

    def get_current_position(self):
        if self.current_position is not None:
            age = self.clock() - self.current_position.timestamp
            if age < self.max_age_ms:
                logger.info("Using cached GPS position")
                return self.current_position

        try:
            position = self.source.get_current_position()
        except Exception as e:
            logger.warning(f"GPS error: {e}")
            if self.current_position is not None:
                logger.warning("Using last known GPS position")
                return self.current_position
            raise LocationUnavailable(str(e)) from e

        self.current_position = position
        logger.info(f"GPS position obtained - Accuracy: {position.accuracy:.0f}m")
        return position


def maps_url(position):
    return MAPS_URL_TEMPLATE.format(latitude=position.latitude, longitude=position.longitude)


def location_string(position):
    if position is None or position.unavailable:
        return "Location unavailable"
    return f"{position.latitude:.6f}, {position.longitude:.6f}"
