"""
Status reports from scales and printers.

Readings are informational: they are logged and counted, and nothing here
gates a check-in, print or catch.
"""

from fastapi import APIRouter

from pondside.core.logging import bind_scan_context, get_logger
from pondside.core.metrics import record_device_report
from pondside.schemas.common import Envelope
from pondside.schemas.device import DeviceAck, DeviceReport

logger = get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/devices", response_model=Envelope[DeviceAck])
async def device_report(report: DeviceReport):
    bind_scan_context(device_id=report.device_id)
    weight_kg = report.weight_kg()
    record_device_report(report.device_type, report.status)

    if report.error_message:
        logger.warning(
            "device_error_reported",
            device_type=report.device_type,
            device_id=report.device_id,
            status=report.status,
            job_id=report.job_id,
            error=report.error_message,
        )
    else:
        logger.info(
            "device_report_received",
            device_type=report.device_type,
            device_id=report.device_id,
            status=report.status,
            weight_kg=str(weight_kg) if weight_kg is not None else None,
            job_id=report.job_id,
        )

    return Envelope(
        data=DeviceAck(
            device_type=report.device_type,
            device_id=report.device_id,
            status=report.status,
            weight_kg=weight_kg,
        ),
        message="Device report received",
    )
