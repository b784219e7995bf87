from pondside.schemas.common import CamelModel, Envelope, ErrorBody, ErrorEnvelope, Measure
from pondside.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingSeatsResponse,
    NoShowRequest,
    SeatResponse,
    SeatShare,
)
from pondside.schemas.rod import RodHistoryResponse, RodPrintRequest, RodPrintResponse, RodResponse
from pondside.schemas.checkin import (
    AlreadyCheckedInResponse,
    CheckInRecordResponse,
    CheckInResponse,
    CheckInStatusResponse,
    CheckOutRequest,
    FreshCheckInResponse,
    QrValidateRequest,
    QrValidateResponse,
    ScanRequest,
)
from pondside.schemas.weighing import CatchCreate, CatchRecordedResponse, CatchResponse, UserStatsResponse
from pondside.schemas.leaderboard import EventLeaderboardResponse, LeaderboardEntryResponse, UserStandingResponse
from pondside.schemas.device import DeviceAck, DeviceReport

__all__ = [
    "CamelModel", "Envelope", "ErrorBody", "ErrorEnvelope", "Measure",
    "BookingCreate", "BookingResponse", "BookingSeatsResponse", "NoShowRequest", "SeatResponse", "SeatShare",
    "RodHistoryResponse", "RodPrintRequest", "RodPrintResponse", "RodResponse",
    "AlreadyCheckedInResponse", "CheckInRecordResponse", "CheckInResponse", "CheckInStatusResponse",
    "CheckOutRequest", "FreshCheckInResponse", "QrValidateRequest", "QrValidateResponse", "ScanRequest",
    "CatchCreate", "CatchRecordedResponse", "CatchResponse", "UserStatsResponse",
    "EventLeaderboardResponse", "LeaderboardEntryResponse", "UserStandingResponse",
    "DeviceAck", "DeviceReport",
]
