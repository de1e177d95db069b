"""Data models for the redirect gateway."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class ResolverRequest(BaseModel):
    """Request forwarded to the resolver."""

    method: Annotated[str, Field(description="HTTP method")] = "GET"
    url: Annotated[str, Field(description="Absolute resolver URL")]
    headers: Annotated[dict[str, str], Field(description="HTTP headers")] = {}
    body: Annotated[bytes, Field(description="Raw request body")] = b""


class ResolverResponse(BaseModel):
    """Response received from the resolver, body left untouched."""

    status_code: Annotated[int, Field(ge=100, le=599, description="HTTP status code")]
    headers: Annotated[list[tuple[str, str]], Field(description="Response headers, repeated names kept")] = []
    body: Annotated[bytes, Field(description="Raw response body")] = b""

    def header(self, name: str) -> str | None:
        """Return every value sent for ``name`` joined with commas, or None."""
        name = name.lower()
        values = [value for key, value in self.headers if key.lower() == name]
        if not values:
            return None
        return ",".join(values)


class ResourceUpdateRecord(BaseModel):
    """Device metadata PUT to the resource store.

    Optional fields left at their defaults are omitted from the payload.
    """

    model_config = ConfigDict(populate_by_name=True)

    ip_address: Annotated[str, Field(alias="ipAddress")]
    certificate_provider_type: Annotated[str, Field(alias="certificateProviderType")]
    certificate_expiry_date: Annotated[str, Field(alias="certificateExpiryDate")]
    last_reboot_reason: Annotated[str, Field(alias="lastRebootReason")] = ""
    wan_interface_used: Annotated[str, Field(alias="wanInterfaceUsed")] = ""
    last_reconnect_reason: Annotated[str, Field(alias="lastReconnectReason")] = ""
    management_protocol: Annotated[str, Field(alias="managementProtocol")] = ""
    last_boot_time: Annotated[int, Field(alias="lastBootTime")] = 0
    firmware_version: Annotated[str, Field(alias="firmwareVersion")] = ""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_defaults=True)


class ConveyHeaderData(BaseModel):
    """Device telemetry carried in the X-WebPA-Convey header."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    protocol: Annotated[str, Field(alias="webpa-protocol")] = ""
    interface_used: Annotated[str, Field(alias="webpa-interface-used")] = ""
    last_reboot_reason: Annotated[str, Field(alias="hw-last-reboot-reason")] = ""
    last_reconnect_reason: Annotated[str, Field(alias="webpa-last-reconnect-reason")] = ""
    boot_time: Annotated[int, Field(alias="boot-time")] = 0
    firmware_name: Annotated[str, Field(alias="fw-name")] = ""

    def apply_to(self, record: ResourceUpdateRecord) -> None:
        """Copy the telemetry fields onto ``record``."""
        record.last_reboot_reason = self.last_reboot_reason
        record.wan_interface_used = self.interface_used
        record.last_reconnect_reason = self.last_reconnect_reason
        record.management_protocol = self.protocol
        record.last_boot_time = self.boot_time
        record.firmware_version = self.firmware_name
