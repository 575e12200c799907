"""GPS position samples."""

from enum import Enum
from dataclasses import dataclass
from typing import Any, Mapping, Optional


class AccuracyQuality(str, Enum):
    """Quality bucket for a reported accuracy radius."""
    EXCELLENT = "excellent"
    GOOD = "good"
    MEDIUM = "medium"
    BAD = "bad"
    VERY_BAD = "very_bad"

    @classmethod
    def from_accuracy(cls, accuracy: float) -> "AccuracyQuality":
        """Classify an accuracy radius in meters."""
        if accuracy <= 10:
            return cls.EXCELLENT
        elif accuracy <= 30:
            return cls.GOOD
        elif accuracy <= 100:
            return cls.MEDIUM
        elif accuracy <= 200:
            return cls.BAD
        return cls.VERY_BAD


@dataclass(frozen=True)
class PositionSample:
    """
    Immutable GPS position sample.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        accuracy: Accuracy radius in meters
        accuracy_quality: Bucket derived from accuracy
        timestamp: Epoch milliseconds when the sample was taken
        altitude: Meters above sea level, if known
        heading: Degrees clockwise from north, if known
        speed: Meters per second, if known
    """
    latitude: float
    longitude: float
    accuracy: float
    accuracy_quality: AccuracyQuality
    timestamp: float
    altitude: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None

    @classmethod
    def create(
        cls,
        latitude: float,
        longitude: float,
        accuracy: float,
        timestamp: float,
        altitude: Optional[float] = None,
        heading: Optional[float] = None,
        speed: Optional[float] = None,
    ) -> "PositionSample":
        """Build a sample, deriving accuracy quality from accuracy."""
        return cls(
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            accuracy_quality=AccuracyQuality.from_accuracy(accuracy),
            timestamp=timestamp,
            altitude=altitude,
            heading=heading,
            speed=speed,
        )

    @classmethod
    def from_geolocation(cls, raw: Mapping[str, Any]) -> "PositionSample":
        """
        Build a sample from a geolocation-shaped mapping.

        Expects ``{"coords": {"latitude", "longitude", "accuracy", ...},
        "timestamp": ms}``.

        Raises:
            ValueError: If coordinates, accuracy or timestamp are missing
        """
        if not isinstance(raw, Mapping):
            raise ValueError(f"Position must be a mapping, got {type(raw).__name__}")
        coords = raw.get("coords")
        timestamp = raw.get("timestamp")
        if not isinstance(coords, Mapping) or timestamp is None:
            raise ValueError("Position requires 'coords' and 'timestamp'")

        try:
            latitude = float(coords["latitude"])
            longitude = float(coords["longitude"])
            accuracy = float(coords["accuracy"])
            timestamp = float(timestamp)
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid position coordinates: {e}") from e

        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ValueError(f"Coordinates out of range: ({latitude}, {longitude})")

        return cls.create(
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            timestamp=timestamp,
            altitude=coords.get("altitude"),
            heading=coords.get("heading"),
            speed=coords.get("speed"),
        )
