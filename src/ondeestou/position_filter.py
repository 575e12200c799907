"""Position admission filter."""

import logging
from enum import Enum
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from .config import (
    MINIMUM_DISTANCE_CHANGE,
    TRACKING_INTERVAL,
    IMMEDIATE_UPDATE_THRESHOLD,
    NOT_ACCEPTED_ACCURACY,
)
from .distance import haversine_distance
from .observer import ObserverSubject
from .position import AccuracyQuality, PositionSample

logger = logging.getLogger(__name__)


class Classification(str, Enum):
    """Outcome of submitting a sample to the filter."""
    UPDATED = "Updated"
    NOT_UPDATED = "NotUpdated"
    IMMEDIATE = "Immediate"


# Rejection reasons
INVALID_POSITION = "InvalidPosition"
ACCURACY_ERROR = "AccuracyError"
DISTANCE_ERROR = "DistanceError"


@dataclass(frozen=True)
class AdmissionResult:
    """Result of ``PositionAdmissionFilter.update``."""
    accepted: bool
    classification: Classification
    reason: Optional[str] = None
    distance: Optional[float] = None
    elapsed_ms: Optional[float] = None


def _to_quality(value: Union[str, AccuracyQuality]) -> AccuracyQuality:
    if isinstance(value, AccuracyQuality):
        return value
    return AccuracyQuality(value.strip().lower().replace(" ", "_"))


class PositionAdmissionFilter:
    """
    Decides whether a new position sample replaces the tracked position.

    A sample is accepted when its accuracy quality is not rejected AND the
    user either moved at least ``min_distance_m`` or at least ``min_time_ms``
    elapsed since the tracked sample. Accepted samples arriving before
    ``immediate_threshold_ms`` are classified IMMEDIATE, the rest UPDATED.
    Rejected samples leave the tracked position untouched.

    Attributes:
        tracked: Last accepted PositionSample, or None before the first one
        subject: Observers notified with ``(filter, classification, result)``
            after every update
    """

    def __init__(
        self,
        min_distance_m: float = MINIMUM_DISTANCE_CHANGE,
        min_time_ms: float = TRACKING_INTERVAL,
        immediate_threshold_ms: float = IMMEDIATE_UPDATE_THRESHOLD,
        rejected_accuracy: Optional[Iterable[Union[str, AccuracyQuality]]] = None,
        distance: Callable[[float, float, float, float], float] = haversine_distance,
        subject: Optional[ObserverSubject] = None,
    ):
        if rejected_accuracy is None:
            rejected_accuracy = NOT_ACCEPTED_ACCURACY
        self.min_distance_m = min_distance_m
        self.min_time_ms = min_time_ms
        self.immediate_threshold_ms = immediate_threshold_ms
        self.rejected_accuracy = frozenset(_to_quality(q) for q in rejected_accuracy)
        self._distance = distance
        self.subject = subject or ObserverSubject()
        self.tracked: Optional[PositionSample] = None

    def update(self, raw_position: Any) -> AdmissionResult:
        """Submit a sample (PositionSample or geolocation mapping)."""
        if isinstance(raw_position, PositionSample):
            sample = raw_position
        else:
            try:
                sample = PositionSample.from_geolocation(raw_position)
            except ValueError as e:
                logger.warning(f"Invalid position data: {e}")
                return self._publish(
                    AdmissionResult(False, Classification.NOT_UPDATED, INVALID_POSITION)
                )

        if sample.accuracy_quality in self.rejected_accuracy:
            logger.warning(
                f"Accuracy not good enough: {sample.accuracy}m ({sample.accuracy_quality.value})"
            )
            return self._publish(
                AdmissionResult(False, Classification.NOT_UPDATED, ACCURACY_ERROR)
            )

        if self.tracked is None:
            self.tracked = sample
            logger.debug(f"First position tracked: ({sample.latitude}, {sample.longitude})")
            return self._publish(AdmissionResult(True, Classification.UPDATED))

        distance = self._distance(
            self.tracked.latitude, self.tracked.longitude,
            sample.latitude, sample.longitude,
        )
        elapsed = sample.timestamp - self.tracked.timestamp
        if elapsed < 0:
            logger.warning(
                f"Out-of-order sample: {-elapsed / 1000:.1f}s older than tracked position"
            )

        if distance < self.min_distance_m and elapsed < self.min_time_ms:
            logger.warning(
                f"Movement not significant enough: {distance:.1f}m in {elapsed / 1000:.1f}s"
            )
            return self._publish(
                AdmissionResult(
                    False, Classification.NOT_UPDATED, DISTANCE_ERROR,
                    distance=distance, elapsed_ms=elapsed,
                )
            )

        if elapsed < self.immediate_threshold_ms:
            classification = Classification.IMMEDIATE
            logger.debug(
                f"Less than {self.immediate_threshold_ms / 1000:.0f} seconds since last update: "
                f"{elapsed / 1000:.1f} seconds"
            )
        else:
            classification = Classification.UPDATED

        self.tracked = sample
        return self._publish(
            AdmissionResult(True, classification, distance=distance, elapsed_ms=elapsed)
        )

    def _publish(self, result: AdmissionResult) -> AdmissionResult:
        self.subject.notify(self, result.classification, result)
        return result

    def reset(self):
        """Forget the tracked position."""
        self.tracked = None

    def __repr__(self) -> str:
        pos = self.tracked
        if pos is None:
            return f"{self.__class__.__name__}: No position data"
        return (
            f"{self.__class__.__name__}: {pos.latitude}, {pos.longitude}, "
            f"{pos.accuracy_quality.value}, {pos.altitude}, {pos.speed}, "
            f"{pos.heading}, {pos.timestamp}"
        )
