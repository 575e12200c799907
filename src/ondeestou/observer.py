"""Publish/subscribe primitive with fail-soft delivery."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapabilityObserver:
    """Observer object exposing an ``update(*args)`` method."""
    target: Any

    def deliver(self, *args):
        self.target.update(*args)


@dataclass(frozen=True)
class CallbackObserver:
    """Plain callable observer."""
    target: Callable[..., Any]

    def deliver(self, *args):
        self.target(*args)


ObserverVariant = Union[CapabilityObserver, CallbackObserver]


class ObserverSubject:
    """
    Keeps two observer lists (objects and plain functions) and notifies them.

    Subscriber lists are immutable tuples. Subscribing or unsubscribing
    replaces the tuple, so a notification round that is already iterating is
    not affected when an observer (un)subscribes from inside its handler.

    Every delivery runs inside its own failure boundary: an exception raised
    by one observer is logged and the round continues with the next one.
    """

    def __init__(self):
        self._observers: Tuple[CapabilityObserver, ...] = ()
        self._function_observers: Tuple[CallbackObserver, ...] = ()

    @property
    def observers(self) -> Tuple[Any, ...]:
        return tuple(variant.target for variant in self._observers)

    @property
    def function_observers(self) -> Tuple[Callable[..., Any], ...]:
        return tuple(variant.target for variant in self._function_observers)

    def subscribe(self, observer: Any):
        """Add an object observer. It must have a callable ``update``."""
        if not callable(getattr(observer, "update", None)):
            raise TypeError(
                f"Observer must expose a callable 'update', got {type(observer).__name__}"
            )
        self._observers = self._observers + (CapabilityObserver(observer),)

    def unsubscribe(self, observer: Any):
        self._observers = tuple(v for v in self._observers if v.target != observer)

    def subscribe_function(self, fn: Callable[..., Any]):
        """Add a plain function observer."""
        if not callable(fn):
            raise TypeError(f"Function observer must be callable, got {type(fn).__name__}")
        self._function_observers = self._function_observers + (CallbackObserver(fn),)

    def unsubscribe_function(self, fn: Callable[..., Any]):
        self._function_observers = tuple(
            v for v in self._function_observers if v.target != fn
        )

    def notify(self, *args) -> int:
        """Call ``update(*args)`` on every object observer. Returns successful deliveries."""
        return self._deliver(self._observers, args)

    def notify_function(self, *args) -> int:
        """Call every function observer with ``*args``. Returns successful deliveries."""
        return self._deliver(self._function_observers, args)

    def _deliver(self, snapshot: Tuple[ObserverVariant, ...], args: tuple) -> int:
        delivered = 0
        for variant in snapshot:
            try:
                variant.deliver(*args)
                delivered += 1
            except Exception:
                logger.exception(f"Observer {variant.target!r} failed during notification")
        return delivered

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def function_observer_count(self) -> int:
        return len(self._function_observers)

    def clear(self):
        """Drop all observers of both kinds."""
        self._observers = ()
        self._function_observers = ()
