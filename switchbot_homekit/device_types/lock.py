"""Smart Lock with its door contact sensor."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..advertisement import LockStatus, ServiceData
from ..config import DeviceConfig
from ..const import (
    CONTACT_DETECTED,
    CONTACT_NOT_DETECTED,
    LOCK_JAMMED,
    LOCK_SECURED,
    LOCK_UNKNOWN,
    LOCK_UNSECURED,
)
from ..device_logger import DeviceLogger
from .base import (
    CharacteristicSpec,
    Command,
    DeviceProfile,
    PushOutcome,
    ServiceSpec,
    Updates,
    battery_service,
    battery_updates,
    key,
)

LOCK_CURRENT = key("LockMechanism", "LockCurrentState")
LOCK_TARGET = key("LockMechanism", "LockTargetState")
DOOR = key("ContactSensor", "ContactSensorState")

_CLOUD_LOCK_STATES = {
    "locked": LOCK_SECURED,
    "unlocked": LOCK_UNSECURED,
    "jammed": LOCK_JAMMED,
}

_BLE_LOCK_STATES = {
    LockStatus.LOCKED: LOCK_SECURED,
    LockStatus.LOCKING: LOCK_SECURED,
    LockStatus.LOCKING_STOP: LOCK_JAMMED,
    LockStatus.UNLOCKED: LOCK_UNSECURED,
    LockStatus.UNLOCKING: LOCK_UNSECURED,
    LockStatus.UNLOCKING_STOP: LOCK_JAMMED,
    LockStatus.NOT_FULLY_LOCKED: LOCK_UNSECURED,
}


class LockProfile(DeviceProfile):
    """Smart Lock and Smart Lock Pro.

    Locking over BLE needs the per-device encryption key, so commands are
    sent through the cloud API; BLE is used for status only.
    """

    device_types = ("Smart Lock", "Smart Lock Pro")
    supports_ble = True

    def __init__(self, config: DeviceConfig, log: DeviceLogger) -> None:
        """Read the ``lock`` option block."""

        super().__init__(config, log)
        self.hide_contact = bool(
            config.section("lock").get("hide_contactsensor", False)
        )

    def services(self) -> tuple[ServiceSpec, ...]:
        """Return the lock, optional door contact and battery services."""

        specs = [
            ServiceSpec(
                "LockMechanism",
                (
                    CharacteristicSpec("LockCurrentState", LOCK_UNKNOWN),
                    CharacteristicSpec("LockTargetState", LOCK_SECURED, writable=True),
                ),
            )
        ]
        if not self.hide_contact:
            specs.append(
                ServiceSpec(
                    "ContactSensor",
                    (CharacteristicSpec("ContactSensorState", CONTACT_DETECTED),),
                )
            )
        specs.append(battery_service())
        return tuple(specs)

    @staticmethod
    def _lock(state: int | None) -> Updates:
        if state is None:
            return {}
        updates: Updates = {LOCK_CURRENT: state}
        if state in (LOCK_SECURED, LOCK_UNSECURED):
            updates[LOCK_TARGET] = state
        return updates

    def parse_cloud(
        self, body: Mapping[str, Any], values: Mapping[str, Any]
    ) -> Updates:
        """Read ``lockState``, ``doorState`` and ``battery``."""

        lock_state = body.get("lockState")
        updates = self._lock(
            _CLOUD_LOCK_STATES.get(str(lock_state).lower()) if lock_state else None
        )
        door = body.get("doorState")
        if door is not None:
            is_open = str(door).lower() in ("open", "opened")
            updates[DOOR] = CONTACT_NOT_DETECTED if is_open else CONTACT_DETECTED
        if "battery" in body:
            updates.update(battery_updates(body["battery"]))
        return updates

    def parse_ble(self, data: ServiceData, values: Mapping[str, Any]) -> Updates:
        """Read lock motor state, door and battery from an advertisement."""

        updates = self._lock(
            None if data.lock_status is None else _BLE_LOCK_STATES.get(data.lock_status)
        )
        if data.door_open is not None:
            updates[DOOR] = CONTACT_NOT_DETECTED if data.door_open else CONTACT_DETECTED
        updates.update(battery_updates(data.battery))
        return updates

    def commands(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> list[Command]:
        """Return ``lock`` or ``unlock``."""

        if LOCK_TARGET not in changes:
            return []
        return [Command("lock" if changes[LOCK_TARGET] == LOCK_SECURED else "unlock")]

    def after_push(
        self, changes: Mapping[str, Any], values: Mapping[str, Any]
    ) -> PushOutcome:
        """Report the requested state as current."""

        return PushOutcome(updates=self._lock(changes[LOCK_TARGET]))
