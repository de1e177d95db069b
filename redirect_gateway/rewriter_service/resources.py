"""Publishing of device address and certificate metadata to the resource store."""

import httpx
from starlette.datastructures import Headers

from redirect_gateway.rewriter_service.convey import CONVEY_HEADER, decode_convey_header
from redirect_gateway.rewriter_service.errors import ConveyHeaderError, ResourceUpdateError, report_exception
from redirect_gateway.shared.logging import get_logger
from redirect_gateway.shared.models import ResourceUpdateRecord

logger = get_logger(__name__)

CERTIFICATE_PROVIDER_HEADER = "X-Issuer-CN"
EXPIRY_DATE_HEADER = "X-Cert-Expiry-Date"
REAL_IP_HEADER = "X-REAL-IP"
DEVICE_CN_HEADER = "X-DEVICE-CN"
PROPAGATED_HEADERS = ("ENVIRONMENT", "X-TENANT-ID")

IRDETO_PROVIDER = "IRDETO"
DTSECURITY_PROVIDER = "DTSECURITY"


def classify_certificate_provider(issuer_cn: str) -> str:
    """Issuers whose common name mentions C2 are Irdeto, everything else DT Security."""
    if "C2" in issuer_cn:
        return IRDETO_PROVIDER
    return DTSECURITY_PROVIDER


def build_resource_record(headers: Headers) -> ResourceUpdateRecord:
    """
    Build the metadata record for a device from its request headers.

    A malformed convey header is reported and the record keeps only the
    fields taken from the other headers.
    """
    record = ResourceUpdateRecord(
        ip_address=headers.get(REAL_IP_HEADER, ""),
        certificate_provider_type=classify_certificate_provider(headers.get(CERTIFICATE_PROVIDER_HEADER, "")),
        certificate_expiry_date=headers.get(EXPIRY_DATE_HEADER, ""),
    )

    try:
        convey = decode_convey_header(headers.get(CONVEY_HEADER, ""))
    except ConveyHeaderError as exc:
        report_exception(exc)
        return record

    if convey is not None:
        convey.apply_to(record)

    return record


class ResourceUpdatePublisher:
    """PUTs device metadata to ``{resource_url}/{device id}``."""

    def __init__(self, client: httpx.AsyncClient, resource_url: str):
        """
        Initialize the publisher.

        Args:
            client: Shared HTTP client
            resource_url: Base URL of the resource store
        """
        self._client = client
        self._resource_url = resource_url.rstrip("/")

    async def publish(self, headers: Headers) -> None:
        """
        Publish the metadata carried by an inbound request.

        Raises:
            ResourceUpdateError: On an unusable device id, a transport failure
                or a non-2xx answer from the resource store
        """
        record = build_resource_record(headers)

        logger.info(
            f"Certificate Provider type: [{record.certificate_provider_type}], "
            f"Certificate expiry date: [{record.certificate_expiry_date}], "
            f"HW Last Reboot Reason: [{record.last_reboot_reason}], "
            f"Webpa Interface Used: [{record.wan_interface_used}], "
            f"Webpa Last Reconnect Reason: [{record.last_reconnect_reason}], "
            f"Webpa Protocol: [{record.management_protocol}], "
            f"Last Boot Time: [{record.last_boot_time}], "
            f"Firmware Version: [{record.firmware_version}]"
        )

        device_id = headers.get(DEVICE_CN_HEADER, "").lower()
        url = f"{self._resource_url}/{device_id}"

        outbound_headers = {"Content-Type": "application/json"}
        for name in PROPAGATED_HEADERS:
            outbound_headers[name] = headers.get(name, "")

        try:
            response = await self._client.put(url, content=record.to_json(), headers=outbound_headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ResourceUpdateError(f"resource update request to {url} failed: {exc}") from exc

        if not response.is_success:
            raise ResourceUpdateError(
                f"status code received while updating resource's IP address: {response.status_code}"
            )
