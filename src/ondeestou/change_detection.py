"""Forward address field changes to observers as typed events."""

import logging
from typing import Any, Optional

from .address_cache import AddressCache, ChangeDetails, LOGRADOURO, BAIRRO, MUNICIPIO
from .observer import ObserverSubject
from .position import PositionSample

logger = logging.getLogger(__name__)

LOGRADOURO_CHANGED = "LogradouroChanged"
BAIRRO_CHANGED = "BairroChanged"
MUNICIPIO_CHANGED = "MunicipioChanged"

CHANGE_TYPES = {
    LOGRADOURO: LOGRADOURO_CHANGED,
    BAIRRO: BAIRRO_CHANGED,
    MUNICIPIO: MUNICIPIO_CHANGED,
}


class CoordinatorStateError(RuntimeError):
    """Raised when wiring a coordinator that is already wired."""


class ChangeDetectionCoordinator:
    """
    Registers field change callbacks on an AddressCache and fans them out.

    Object observers receive
    ``update(coordinator, change_data, change_type, None, change_details)``.
    Function observers receive
    ``(current_position, current_raw_address, standardized_address, change_details)``.

    Lifecycle is Unwired -> Wired (``wire``) -> Unwired (``teardown``).
    """

    def __init__(self):
        self.address_cache: Optional[AddressCache] = None
        self.observer_subject: Optional[ObserverSubject] = None
        self.current_position: Optional[PositionSample] = None

    @property
    def is_wired(self) -> bool:
        return self.address_cache is not None

    def wire(self, address_cache: AddressCache, observer_subject: ObserverSubject):
        """
        Register logradouro, bairro and municipio callbacks.

        Raises:
            CoordinatorStateError: If already wired; call teardown() first
        """
        if self.is_wired:
            raise CoordinatorStateError("Coordinator is already wired, call teardown() first")

        self.address_cache = address_cache
        self.observer_subject = observer_subject
        address_cache.set_field_change_callback(LOGRADOURO, self.handle_logradouro_change)
        address_cache.set_field_change_callback(BAIRRO, self.handle_bairro_change)
        address_cache.set_field_change_callback(MUNICIPIO, self.handle_municipio_change)
        logger.debug("Change detection wired")

    def teardown(self):
        """Unregister all callbacks. Safe to call more than once."""
        if not self.is_wired:
            return
        for field in CHANGE_TYPES:
            self.address_cache.set_field_change_callback(field, None)
        self.address_cache = None
        self.observer_subject = None
        logger.debug("Change detection torn down")

    def set_current_position(self, position: Optional[PositionSample]):
        """Position passed to function observers along with the change."""
        self.current_position = position

    def handle_logradouro_change(self, change_details: ChangeDetails):
        self._handle(LOGRADOURO, change_details.current.get(LOGRADOURO), change_details)

    def handle_bairro_change(self, change_details: ChangeDetails):
        self._handle(BAIRRO, change_details.current.get(BAIRRO), change_details)

    def handle_municipio_change(self, change_details: ChangeDetails):
        # Municipality observers get the whole standardized address
        current = self.address_cache.current if self.address_cache else None
        self._handle(MUNICIPIO, current, change_details)

    def _handle(self, field: str, change_data: Any, change_details: ChangeDetails):
        change_type = CHANGE_TYPES[field]
        try:
            self._notify(change_type, change_data, change_details)
        except Exception:
            logger.exception(f"Error handling {field} change")

    def _notify(self, change_type: str, change_data: Any, change_details: ChangeDetails):
        subject = self.observer_subject
        if subject is None:
            logger.warning(f"{change_type} received while not wired, ignoring")
            return

        logger.info(
            f"Notifying observers of {change_type}: "
            f"{change_details.previous} -> {change_details.current}"
        )
        subject.notify(self, change_data, change_type, None, change_details)
        subject.notify_function(
            self.current_position,
            self.address_cache.current_raw,
            self.address_cache.current,
            change_details,
        )
