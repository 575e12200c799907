"""Main tracker application."""

import sys
import json
import logging
from typing import Any, Optional, TextIO

from .config import LOG_LEVEL, CACHE_CLEANUP_INTERVAL_MS, PROJECT_NAME
from .address_cache import AddressCache
from .change_detection import ChangeDetectionCoordinator
from .geocoding import ReverseGeocoder
from .observer import ObserverSubject
from .position_filter import AdmissionResult, PositionAdmissionFilter

logger = logging.getLogger(__name__)


class LocationTracker:
    """
    Main pipeline orchestrating all components.

    For each raw position sample: admission filter -> reverse geocoder ->
    address cache -> change detection coordinator. A sample is fully
    processed, observer callbacks included, before ``process`` returns.

    Components:
        - PositionAdmissionFilter: drops noisy or insignificant samples
        - ReverseGeocoder (or any object with ``reverse_geocode(lat, lon)``)
        - AddressCache: standardized addresses and field change detection
        - ChangeDetectionCoordinator: typed change events
        - ObserverSubject: consumers of change events
    """

    def __init__(
        self,
        geocoder: Any,
        address_cache: Optional[AddressCache] = None,
        position_filter: Optional[PositionAdmissionFilter] = None,
        subject: Optional[ObserverSubject] = None,
        cleanup_interval_ms: float = CACHE_CLEANUP_INTERVAL_MS,
    ):
        self.geocoder = geocoder
        self.address_cache = address_cache or AddressCache()
        self.position_filter = position_filter or PositionAdmissionFilter()
        self.subject = subject or ObserverSubject()
        self.coordinator = ChangeDetectionCoordinator()
        self.cleanup_interval_ms = cleanup_interval_ms
        self._last_cleanup: Optional[float] = None

    def start(self):
        """Wire change detection."""
        self.coordinator.wire(self.address_cache, self.subject)
        logger.info(f"{PROJECT_NAME} started")

    def stop(self):
        """Unwire change detection."""
        self.coordinator.teardown()
        logger.info(f"{PROJECT_NAME} stopped")

    def process(self, raw_position: Any) -> AdmissionResult:
        """Run one position sample through the pipeline."""
        result = self.position_filter.update(raw_position)
        if not result.accepted:
            return result

        position = self.position_filter.tracked
        self.coordinator.set_current_position(position)
        self._clean_expired_if_due(position.timestamp)

        raw_address = self.geocoder.reverse_geocode(position.latitude, position.longitude)
        if raw_address is None:
            logger.warning(f"No address for ({position.latitude}, {position.longitude})")
            return result

        address = self.address_cache.resolve(raw_address)
        logger.info(f"Current address: {address.endereco_completo() or '(unknown)'}")
        return result

    def _clean_expired_if_due(self, timestamp: float):
        if self._last_cleanup is None:
            self._last_cleanup = timestamp
            return
        if timestamp - self._last_cleanup >= self.cleanup_interval_ms:
            self.address_cache.clean_expired()
            self._last_cleanup = timestamp

    def run(self, stream: TextIO) -> int:
        """Process JSON-lines position samples from stream. Returns lines processed."""
        count = 0
        for line in stream:
            line = line.strip()
            if not line:
                continue
            try:
                raw_position = json.loads(line)
            except json.JSONDecodeError as e:
                logger.error(f"Skipping invalid JSON line: {e}")
                continue
            self.process(raw_position)
            count += 1
        return count


def _log_change(position, raw_address, address, change_details):
    """Function observer that logs every change event."""
    logger.info(
        f"Address change at {position.latitude if position else '?'},"
        f"{position.longitude if position else '?'}: "
        f"{change_details.previous} -> {change_details.current}"
    )


def main():
    """Main entry point."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # urllib3 logs every request at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    tracker = LocationTracker(geocoder=ReverseGeocoder())
    tracker.subject.subscribe_function(_log_change)
    tracker.start()
    try:
        processed = tracker.run(sys.stdin)
        logger.info(f"Processed {processed} position samples")
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        tracker.stop()


if __name__ == "__main__":
    main()
