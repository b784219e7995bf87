"""
Pydantic schemas for scale and printer status reports.
"""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field

from pondside.schemas.common import CamelModel, Measure


class DeviceReport(CamelModel):
    device_type: Literal["scale", "printer"]
    device_id: str = Field(..., min_length=1, max_length=50)
    status: str = "online"
    weight: Optional[Decimal] = None
    unit: Literal["kg", "g"] = "kg"
    job_id: Optional[str] = None
    error_message: Optional[str] = None

    def weight_kg(self) -> Optional[Decimal]:
        if self.weight is None:
            return None
        return self.weight / 1000 if self.unit == "g" else self.weight


class DeviceAck(CamelModel):
    device_type: str
    device_id: str
    status: str
    weight_kg: Optional[Measure] = None
    received: bool = True
