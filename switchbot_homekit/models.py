"""Pydantic models for cloud API and webhook payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CloudResponse(BaseModel):
    """Envelope returned by every cloud API call."""

    model_config = ConfigDict(extra="allow")

    status_code: int = Field(alias="statusCode")
    message: str | None = None
    body: dict[str, Any] = Field(default_factory=dict)


class DeviceListEntry(BaseModel):
    """One physical device reported by ``GET /devices``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    device_name: str = Field(default="", alias="deviceName")
    device_type: str | None = Field(default=None, alias="deviceType")
    hub_device_id: str | None = Field(default=None, alias="hubDeviceId")
    enable_cloud_service: bool = Field(default=True, alias="enableCloudService")
    master: bool | None = None
    group: bool | None = None
    curtain_devices_ids: list[str] | None = Field(
        default=None, alias="curtainDevicesIds"
    )


class IRDeviceListEntry(BaseModel):
    """One infrared remote reported by ``GET /devices``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    device_name: str = Field(default="", alias="deviceName")
    remote_type: str = Field(alias="remoteType")
    hub_device_id: str | None = Field(default=None, alias="hubDeviceId")


class DeviceList(BaseModel):
    """Body of ``GET /devices``."""

    model_config = ConfigDict(extra="allow")

    device_list: list[DeviceListEntry] = Field(default_factory=list, alias="deviceList")
    infrared_remote_list: list[IRDeviceListEntry] = Field(
        default_factory=list, alias="infraredRemoteList"
    )


class WebhookContext(BaseModel):
    """Status fields pushed by the cloud for one device."""

    model_config = ConfigDict(extra="allow")

    device_mac: str = Field(alias="deviceMac")
    device_type: str | None = Field(default=None, alias="deviceType")
    time_of_sample: int | None = Field(default=None, alias="timeOfSample")

    def status_fields(self) -> dict[str, Any]:
        """Return the device specific fields of the push."""

        return dict(self.model_extra or {})


class WebhookEvent(BaseModel):
    """Inbound webhook payload."""

    model_config = ConfigDict(extra="allow")

    event_type: str | None = Field(default=None, alias="eventType")
    event_version: str | None = Field(default=None, alias="eventVersion")
    context: WebhookContext
