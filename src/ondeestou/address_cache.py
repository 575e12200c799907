"""Address cache with change detection for street, neighborhood and municipality."""

import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .config import ADDRESS_CACHE_MAX_SIZE, ADDRESS_CACHE_EXPIRATION_MS
from .address import AddressSnapshot, bairro_completo, extract_address, generate_cache_key
from .bounded_cache import BoundedCache

logger = logging.getLogger(__name__)

LOGRADOURO = "logradouro"
BAIRRO = "bairro"
MUNICIPIO = "municipio"
TRACKED_FIELDS = (LOGRADOURO, BAIRRO, MUNICIPIO)


@dataclass(frozen=True)
class ChangeDetails:
    """Comparison of one tracked field between the previous and current address."""
    previous: Dict[str, Any]
    current: Dict[str, Any]
    has_changed: bool
    timestamp: float


@dataclass(frozen=True)
class CachedAddress:
    """Value stored in the cache: the standardized address and its source record."""
    address: AddressSnapshot
    raw_data: Any


FieldChangeCallback = Callable[[ChangeDetails], Any]


class AddressCache:
    """
    Resolves raw geocoding records to standardized addresses, with caching.

    Every resolution with a usable cache key becomes the new "current"
    address and the old one becomes "previous". After each such resolution
    the three tracked fields are compared independently. A field callback
    fires only when the value changed AND the transition signature
    ("previous=>current") differs from the last one notified for that field,
    so a retried identical transition is reported once.

    Records with no cache key are still extracted and returned, but they do
    not take part in the current/previous history.

    Attributes:
        cache: Underlying BoundedCache keyed by generate_cache_key()
        current: Most recently resolved address, or None
        previous: Address resolved before current, or None
        current_raw: Raw record behind current
        previous_raw: Raw record behind previous
    """

    def __init__(
        self,
        max_size: int = ADDRESS_CACHE_MAX_SIZE,
        expiration_ms: float = ADDRESS_CACHE_EXPIRATION_MS,
        extractor: Callable[[Any], AddressSnapshot] = extract_address,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._clock = clock or (lambda: time.time() * 1000)
        self.cache = BoundedCache(max_size=max_size, expiration_ms=expiration_ms, clock=self._clock)
        self._extractor = extractor
        self._callbacks: Dict[str, Optional[FieldChangeCallback]] = {f: None for f in TRACKED_FIELDS}
        self._last_notified: Dict[str, Optional[str]] = {f: None for f in TRACKED_FIELDS}

        self.current: Optional[AddressSnapshot] = None
        self.previous: Optional[AddressSnapshot] = None
        self.current_raw: Any = None
        self.previous_raw: Any = None

    # Callback registration

    def set_field_change_callback(self, field: str, callback: Optional[FieldChangeCallback]):
        """
        Register (or clear with None) the change callback for a tracked field.

        Raises:
            ValueError: If field is not one of logradouro, bairro, municipio
            TypeError: If callback is neither None nor callable
        """
        self._check_field(field)
        if callback is not None and not callable(callback):
            raise TypeError(
                f"Callback for '{field}' must be callable or None, got {type(callback).__name__}"
            )
        self._callbacks[field] = callback

    def get_field_change_callback(self, field: str) -> Optional[FieldChangeCallback]:
        self._check_field(field)
        return self._callbacks[field]

    @staticmethod
    def _check_field(field: str):
        if field not in TRACKED_FIELDS:
            raise ValueError(f"Unknown address field '{field}', expected one of {TRACKED_FIELDS}")

    # Resolution

    def resolve(self, raw_data: Any) -> AddressSnapshot:
        """Return the standardized address for a raw record, running change detection."""
        cache_key = generate_cache_key(raw_data)
        if cache_key is None:
            logger.debug("No cache key for address data, extracting without caching")
            return self._extractor(raw_data)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Address cache hit: {cache_key}")
            address = cached.address
        else:
            address = self._extractor(raw_data)
            self.cache.set(cache_key, CachedAddress(address=address, raw_data=raw_data))
            logger.debug(f"Cached address {cache_key} ({self.cache.size}/{self.cache.max_size})")

        self.previous, self.previous_raw = self.current, self.current_raw
        self.current, self.current_raw = address, raw_data

        for field in TRACKED_FIELDS:
            self._detect_field_change(field)

        return address

    def _detect_field_change(self, field: str):
        details = self.get_change_details(field)
        if not details.has_changed:
            return

        callback = self._callbacks[field]
        if callback is None:
            return

        signature = f"{details.previous[field]}=>{details.current[field]}"
        if signature == self._last_notified[field]:
            logger.debug(f"Change {signature} for {field} already notified")
            return

        logger.info(f"Detected {field} change: {signature}")
        try:
            callback(details)
        except Exception:
            logger.exception(f"Error calling {field} change callback")
        self._last_notified[field] = signature

    # Change details

    def get_change_details(self, field: str) -> ChangeDetails:
        """Compare field between the previous and current address."""
        self._check_field(field)
        previous_value = getattr(self.previous, field, None)
        current_value = getattr(self.current, field, None)
        previous = {field: previous_value}
        current = {field: current_value}

        if field == BAIRRO:
            previous["bairro_completo"] = bairro_completo(self.previous_raw)
            current["bairro_completo"] = bairro_completo(self.current_raw)
        elif field == MUNICIPIO:
            previous["uf"] = getattr(self.previous, "uf", None)
            current["uf"] = getattr(self.current, "uf", None)

        return ChangeDetails(
            previous=previous,
            current=current,
            has_changed=previous_value != current_value,
            timestamp=self._clock(),
        )

    def last_notified_signature(self, field: str) -> Optional[str]:
        self._check_field(field)
        return self._last_notified[field]

    # Maintenance

    def clean_expired(self) -> int:
        """Purge expired cache entries."""
        removed = self.cache.clean_expired()
        if removed > 0:
            logger.info(f"Cleaned {removed} expired cache entries")
        return removed

    def clear(self):
        """Empty the cache and forget address history and notified signatures."""
        self.cache.clear()
        self.current = self.previous = None
        self.current_raw = self.previous_raw = None
        self._last_notified = {f: None for f in TRACKED_FIELDS}

    @property
    def size(self) -> int:
        return self.cache.size

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(cache={self.cache.size}, "
            f"current={self.current}, previous={self.previous})"
        )
