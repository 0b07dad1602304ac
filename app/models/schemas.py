from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.timeutils import to_utc


class MessageType(str, Enum):
    START = "start"
    END_FREE = "end-free"
    END_OCCUPIED = "end-occupied"


class Booking(BaseModel):
    """A court reservation as seen by the message engine. Times are aware UTC datetimes."""

    booking_id: str
    court_id: str
    court_name: str = ""
    start_time: datetime
    end_time: datetime
    customer_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    user_id: str = ""
    issuer_id: str = ""
    players: str | None = None
    split_payment: bool = False
    cancelled: bool = False
    has_shown_start_message: bool = False
    has_shown_end_message: bool = False
    is_test: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    @model_validator(mode="after")
    def _check_interval(self) -> "Booking":
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Booking {self.booking_id} must start before it ends "
                f"({self.start_time.isoformat()} >= {self.end_time.isoformat()})"
            )
        return self


class UserMessage(BaseModel):
    type: MessageType
    first_name: str
    last_name: str
    booking: Booking


class WebhookEventType(str, Enum):
    BOOKING_CREATED = "BookingCreated"
    BOOKING_CREATED_V1 = "BookingCreatedV1"
    BOOKING_MOVED = "BookingMoved"
    BOOKING_MOVED_V1 = "BookingMovedV1"
    BOOKING_CANCELLED = "BookingCancelled"
    BOOKING_CANCELLED_V1 = "BookingCancelledV1"


class MatchiWebhook(BaseModel):
    """Envelope of a MATCHi webhook. ``detail`` is validated per event type by its handler."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    timestamp: str
    detail_type: str = Field(..., alias="detail-type")
    detail: dict[str, Any]


class MatchiOwner(BaseModel):
    customerId: str
    userId: str = ""
    firstName: str = ""
    lastName: str = ""
    email: str = ""


class MatchiPlayer(BaseModel):
    userId: str = ""
    email: str = ""
    isCustomer: bool = False


class MatchiFacility(BaseModel):
    facilityId: str = ""
    facilityName: str = ""


class MatchiCancelledBooking(BaseModel):
    bookingId: str
    courtId: str = ""
    courtName: str = ""


class MatchiBooking(MatchiCancelledBooking):
    startTime: str
    endTime: str
    accessCode: str = ""
    splitPayment: bool = False


class CreatedBookingDetail(BaseModel):
    issuerId: str = ""
    players: list[MatchiPlayer] = Field(default_factory=list)
    owner: MatchiOwner
    booking: MatchiBooking
    facility: MatchiFacility | None = None


class MovedBookingDetail(BaseModel):
    booking: MatchiBooking
    facility: MatchiFacility | None = None


class CancelledBookingDetail(BaseModel):
    owner: MatchiOwner | None = None
    booking: MatchiCancelledBooking
    facility: MatchiFacility | None = None
