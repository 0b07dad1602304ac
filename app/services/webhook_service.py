"""
MATCHi webhook handling.

Each known event type maps to one handler that applies the booking change and
then appends the raw event to the booking event log. A failed event log write
is logged and ignored; a failed booking write is logged and re-raised.
"""

import logging
from collections.abc import Awaitable, Callable

from app.courts import VALID_MATCHI_COURT_IDS
from app.models.schemas import (
    Booking,
    CancelledBookingDetail,
    CreatedBookingDetail,
    MatchiWebhook,
    MovedBookingDetail,
    WebhookEventType,
)
from app.services.database_service import database_service
from app.timeutils import parse_timestamp

logger = logging.getLogger(__name__)


class UnknownWebhookEventError(Exception):
    """Raised for a webhook whose detail-type has no handler."""

    def __init__(self, detail_type: str) -> None:
        self.detail_type = detail_type
        super().__init__(f"No handler for {detail_type}")


class WebhookService:
    """Applies MATCHi booking lifecycle events to the booking store."""

    def __init__(self) -> None:
        self._handlers: dict[WebhookEventType, Callable[[MatchiWebhook], Awaitable[str]]] = {
            WebhookEventType.BOOKING_CREATED: self._created_booking,
            WebhookEventType.BOOKING_CREATED_V1: self._created_booking,
            WebhookEventType.BOOKING_MOVED: self._moved_booking,
            WebhookEventType.BOOKING_MOVED_V1: self._moved_booking,
            WebhookEventType.BOOKING_CANCELLED: self._cancelled_booking,
            WebhookEventType.BOOKING_CANCELLED_V1: self._cancelled_booking,
        }

    async def handle_webhook(self, webhook: MatchiWebhook) -> str:
        """
        Dispatch a webhook to the handler for its event type.

        Returns:
            The id of the booking the event applied to.

        Raises:
            UnknownWebhookEventError: If the event type is not handled.
        """
        logger.info(
            f"MATCHi webhook {webhook.detail_type} id={webhook.id} timestamp={webhook.timestamp}"
        )
        try:
            event_type = WebhookEventType(webhook.detail_type)
        except ValueError:
            logger.warning(f"No handler for {webhook.detail_type}")
            raise UnknownWebhookEventError(webhook.detail_type) from None

        return await self._handlers[event_type](webhook)

    async def _created_booking(self, webhook: MatchiWebhook) -> str:
        detail = CreatedBookingDetail.model_validate(webhook.detail)
        booking = Booking(
            booking_id=detail.booking.bookingId,
            court_id=detail.booking.courtId,
            court_name=detail.booking.courtName,
            start_time=parse_timestamp(detail.booking.startTime),
            end_time=parse_timestamp(detail.booking.endTime),
            split_payment=detail.booking.splitPayment,
            customer_id=detail.owner.customerId,
            email=detail.owner.email,
            user_id=detail.owner.userId,
            first_name=detail.owner.firstName,
            last_name=detail.owner.lastName,
            issuer_id=detail.issuerId,
            players=", ".join(p.email for p in detail.players),
        )
        if booking.court_id not in VALID_MATCHI_COURT_IDS:
            logger.warning(f"Booking {booking.booking_id} is on unknown court {booking.court_id}")

        try:
            await database_service.save_booking(booking)
        except Exception as e:
            logger.error(f"Failed to store created booking {booking.booking_id}: {e}")
            raise
        finally:
            await self._log_event(webhook, booking.booking_id)

        return booking.booking_id

    async def _moved_booking(self, webhook: MatchiWebhook) -> str:
        detail = MovedBookingDetail.model_validate(webhook.detail)
        moved = detail.booking

        try:
            found = await database_service.move_booking(
                moved.bookingId,
                court_id=moved.courtId,
                court_name=moved.courtName,
                start_time=parse_timestamp(moved.startTime),
                end_time=parse_timestamp(moved.endTime),
            )
            if not found:
                logger.warning(f"Moved booking {moved.bookingId} is not stored")
        except Exception as e:
            logger.error(f"Failed to move booking {moved.bookingId}: {e}")
            raise
        finally:
            await self._log_event(webhook, moved.bookingId)

        return moved.bookingId

    async def _cancelled_booking(self, webhook: MatchiWebhook) -> str:
        detail = CancelledBookingDetail.model_validate(webhook.detail)
        booking_id = detail.booking.bookingId
        logger.info(f"Cancelling booking {booking_id}")

        try:
            found = await database_service.cancel_booking(booking_id)
            if found:
                logger.info(f"Cancelled booking {booking_id}")
            else:
                logger.warning(f"Cancelled booking {booking_id} is not stored")
        except Exception as e:
            logger.error(f"Failed to cancel booking {booking_id}: {e}")
            raise
        finally:
            await self._log_event(webhook, booking_id)

        return booking_id

    async def _log_event(self, webhook: MatchiWebhook, booking_id: str) -> None:
        try:
            await database_service.record_event(
                matchi_id=webhook.id,
                matchi_timestamp=webhook.timestamp,
                booking_id=booking_id,
                event_data=webhook.model_dump(by_alias=True),
            )
        except Exception as e:
            logger.error(f"Failed to store {webhook.detail_type} event {webhook.id}: {e}")


webhook_service = WebhookService()
