"""Cached HomeKit characteristic values and the services holding them."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class TriState(Enum):
    """Explicit on/off state that may not have been observed yet."""

    UNKNOWN = "unknown"
    OFF = "off"
    ON = "on"

    @classmethod
    def from_value(cls, value: Any) -> TriState:
        """Build a tri-state from a bool, a vendor string or None."""

        if value is None:
            return cls.UNKNOWN
        if isinstance(value, TriState):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in ("on", "true", "1"):
                return cls.ON
            if lowered in ("off", "false", "0"):
                return cls.OFF
            return cls.UNKNOWN
        return cls.ON if value else cls.OFF

    def as_bool(self, default: bool = False) -> bool:
        """Return the state as a bool, ``default`` when unknown."""

        if self is TriState.UNKNOWN:
            return default
        return self is TriState.ON


Listener = Callable[["CachedCharacteristic[Any]"], None]


class CachedCharacteristic(Generic[T]):
    """In-memory mirror of one HomeKit characteristic value.

    The cached value answers HomeKit reads synchronously. ``update`` records
    a new value and notifies listeners (the HomeKit binding and the accessory
    context). ``mark_error`` keeps the stale value but flags it so reads
    report a communication failure until the next successful update.
    """

    def __init__(
        self,
        *,
        service: str,
        name: str,
        initial_value: T,
        writable: bool = False,
        props: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialise the characteristic with its default value."""

        self.service = service
        self.name = name
        self.writable = writable
        self.props = dict(props or {})
        self._value = initial_value
        self._error: Exception | None = None
        self._listeners: list[Listener] = []
        self.set_handler: Callable[[T], None] | None = None

    @property
    def key(self) -> str:
        """Return the ``Service.Characteristic`` identifier."""

        return f"{self.service}.{self.name}"

    @property
    def value(self) -> T:
        """Return the latest cached value."""

        return self._value

    @property
    def error(self) -> Exception | None:
        """Return the error marker, if any."""

        return self._error

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable removing it."""

        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def update(self, value: T, *, force: bool = False) -> bool:
        """Store ``value``; notify listeners when it changed or ``force`` is set."""

        changed = value != self._value or self._error is not None
        self._value = value
        self._error = None
        if changed or force:
            self._notify()
        return changed

    def mark_error(self, error: Exception) -> None:
        """Flag the cached value as unavailable."""

        self._error = error
        self._notify()

    def handle_set(self, value: T) -> None:
        """Apply a HomeKit write through the registered set handler."""

        if self.set_handler is None:
            raise PermissionError(f"{self.key} is read-only")
        self.set_handler(value)


class Service:
    """A named HomeKit service with its cached characteristics."""

    def __init__(self, name: str) -> None:
        """Create an empty service."""

        self.name = name
        self.characteristics: dict[str, CachedCharacteristic[Any]] = {}

    def add_characteristic(
        self,
        name: str,
        initial_value: Any,
        *,
        writable: bool = False,
        props: Mapping[str, Any] | None = None,
    ) -> CachedCharacteristic[Any]:
        """Return the characteristic ``name``, creating it when missing."""

        existing = self.characteristics.get(name)
        if existing is not None:
            return existing
        characteristic: CachedCharacteristic[Any] = CachedCharacteristic(
            service=self.name,
            name=name,
            initial_value=initial_value,
            writable=writable,
            props=props,
        )
        self.characteristics[name] = characteristic
        return characteristic

    def get(self, name: str) -> CachedCharacteristic[Any] | None:
        """Return the characteristic ``name`` if present."""

        return self.characteristics.get(name)


class ServiceSet:
    """The services currently attached to one accessory."""

    def __init__(self, display_name: str, services: Iterable[str] = ()) -> None:
        """Create the set, pre-populated with previously persisted services."""

        self.display_name = display_name
        self._services: dict[str, Service] = {name: Service(name) for name in services}

    @property
    def names(self) -> tuple[str, ...]:
        """Return the attached service names in insertion order."""

        return tuple(self._services)

    def get(self, name: str) -> Service | None:
        """Return the service ``name`` if attached."""

        return self._services.get(name)

    def add(self, name: str) -> Service:
        """Return the service ``name``, attaching it when missing."""

        service = self._services.get(name)
        if service is None:
            service = Service(name)
            self._services[name] = service
        return service

    def remove(self, name: str) -> bool:
        """Detach the service ``name``; return True when it was present."""

        return self._services.pop(name, None) is not None

    def characteristics(self) -> list[CachedCharacteristic[Any]]:
        """Return every characteristic of every attached service."""

        return [
            characteristic
            for service in self._services.values()
            for characteristic in service.characteristics.values()
        ]

    def characteristic(self, key: str) -> CachedCharacteristic[Any] | None:
        """Look up a characteristic by its ``Service.Characteristic`` key."""

        service_name, _, name = key.partition(".")
        service = self._services.get(service_name)
        if service is None:
            return None
        return service.get(name)
