"""Constants for the SwitchBot bridge."""

from __future__ import annotations

from enum import Enum

HOST_DOMAIN = "https://api.switch-bot.com"
API_VERSION_PATH = "/v1.1"
DEVICE_PATH = f"{API_VERSION_PATH}/devices"
WEBHOOK_PATH = f"{API_VERSION_PATH}/webhook"

BUG_REPORT_URL = "https://tinyurl.com/SwitchBotBug"
FEATURE_REQUEST_URL = "https://tinyurl.com/SwitchBotFeatureRequest"

MANUFACTURER = "SwitchBot"

DEFAULT_PLATFORM_REFRESH_RATE = 120
DEFAULT_REFRESH_RATE = 5
MIN_REFRESH_RATE = 5
DEFAULT_UPDATE_RATE = 5
DEFAULT_PUSH_RATE = 1.0
DEFAULT_SCAN_DURATION = 1
DEFAULT_MAX_RETRY = 5
DEFAULT_MAX_RETRIES = 5
DEFAULT_DELAY_BETWEEN_RETRIES = 3
BLE_RETRY_DELAY = 1.0
RECONCILE_REFRESH_DELAY = 15.0
DEFAULT_PUSH_RATE_PRESS = 15
PRESS_REVERT_DELAY = 0.5

LOW_BATTERY_THRESHOLD = 10
DEFAULT_FIRMWARE = "0.0.0"
NO_HUB_ID = "000000000000"

CURTAIN_MIN_LUX = 1
CURTAIN_MAX_LUX = 6001
CURTAIN_LIGHT_LEVELS = 9

BLE_SERVICE_DATA_UUIDS = (
    "0000fd3d-0000-1000-8000-00805f9b34fb",
    "00000d00-0000-1000-8000-00805f9b34fb",
)
BLE_REQUEST_CHAR_UUID = "cba20002-224d-11e6-9fb8-0002a5d5c51b"
BLE_RESPONSE_CHAR_UUID = "cba20003-224d-11e6-9fb8-0002a5d5c51b"
BLE_RESPONSE_TIMEOUT = 5.0


class ConnectionType(str, Enum):
    """Configured connection type of a device."""

    BLE = "BLE"
    OPENAPI = "OpenAPI"
    BLE_OPENAPI = "BLE/OpenAPI"
    DISABLED = "Disabled"

    @property
    def uses_ble(self) -> bool:
        """Return True when BLE is part of the connection type."""

        return self in (ConnectionType.BLE, ConnectionType.BLE_OPENAPI)

    @property
    def uses_cloud(self) -> bool:
        """Return True when the cloud API is part of the connection type."""

        return self in (ConnectionType.OPENAPI, ConnectionType.BLE_OPENAPI)


class LoggingLevel(str, Enum):
    """Logging verbosity accepted in the configuration."""

    STANDARD = "standard"
    DEBUG = "debug"
    DEBUG_MODE = "debugMode"
    NONE = "none"


class BotMode(str, Enum):
    """How a Bot actuates."""

    SWITCH = "switch"
    PRESS = "press"
    MULTIPRESS = "multipress"


class BotDeviceType(str, Enum):
    """HomeKit presentation for a Bot."""

    SWITCH = "switch"
    OUTLET = "outlet"
    GARAGE_DOOR = "garagedoor"
    DOOR = "door"
    WINDOW = "window"
    WINDOW_COVERING = "windowcovering"
    LOCK = "lock"
    FAUCET = "faucet"
    FAN = "fan"
    STATEFUL = "stateful"


# HomeKit characteristic enumerations used by the device profiles.
BATTERY_LEVEL_NORMAL = 0
BATTERY_LEVEL_LOW = 1
CHARGING_NOT_CHARGING = 0
CHARGING_CHARGING = 1
CHARGING_NOT_CHARGEABLE = 2

POSITION_DECREASING = 0
POSITION_INCREASING = 1
POSITION_STOPPED = 2

DOOR_OPEN = 0
DOOR_CLOSED = 1

LOCK_UNSECURED = 0
LOCK_SECURED = 1
LOCK_JAMMED = 2
LOCK_UNKNOWN = 3

CONTACT_DETECTED = 0
CONTACT_NOT_DETECTED = 1

LEAK_NOT_DETECTED = 0
LEAK_DETECTED = 1

ACTIVE_INACTIVE = 0
ACTIVE_ACTIVE = 1


class BlindTiltMapping(str, Enum):
    """How Blind Tilt slat positions map onto a HomeKit window covering."""

    ONLY_UP = "only_up"
    ONLY_DOWN = "only_down"
    DOWN_AND_UP = "down_and_up"
    UP_AND_DOWN = "up_and_down"
    USE_TILT_FOR_DIRECTION = "use_tilt_for_direction"


HUMIDIFIER_STATE_INACTIVE = 0
HUMIDIFIER_STATE_IDLE = 1
HUMIDIFIER_STATE_HUMIDIFYING = 2
TARGET_HUMIDIFIER_AUTO = 0
TARGET_HUMIDIFIER = 1
