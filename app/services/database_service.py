"""
Database service for bookings and webhook events.

This module provides the async store operations the rest of the application
uses: persisting bookings from MATCHi webhooks, the time-window queries that
feed the bay display message engine, and the one-way message flag updates.

All window queries compare ``YYYY-MM-DDTHH:MM:SSZ`` strings, which sort
chronologically, and ignore cancelled bookings.
"""

from datetime import datetime, timedelta

from sqlalchemy import Select, select, update

from app.config import settings
from app.models.database import AsyncSessionLocal, BookingEventRecord, BookingRecord
from app.models.schemas import Booking
from app.timeutils import parse_timestamp, to_date_string_utc, utc_now

LOOKAHEAD = timedelta(minutes=settings.lookahead_minutes)
LOOKBACK = timedelta(minutes=settings.lookback_minutes)


def _ceil_to_second(value: datetime) -> datetime:
    # Stored strings have whole seconds, so s < value iff s < ceil(value).
    if value.microsecond:
        return value.replace(microsecond=0) + timedelta(seconds=1)
    return value


class DatabaseService:
    """
    Provides database operations for bookings and booking events.

    Handles the conversion between the Booking Pydantic model used by the
    message engine and the BookingRecord SQLAlchemy model used for persistence.
    """

    def _booking_to_record(self, booking: Booking) -> BookingRecord:
        """Convert a Booking Pydantic model to a BookingRecord SQLAlchemy model."""
        return BookingRecord(
            booking_id=booking.booking_id,
            court_id=booking.court_id,
            court_name=booking.court_name,
            start_time=to_date_string_utc(booking.start_time),
            end_time=to_date_string_utc(booking.end_time),
            split_payment=booking.split_payment,
            customer_id=booking.customer_id,
            email=booking.email,
            user_id=booking.user_id,
            first_name=booking.first_name,
            last_name=booking.last_name,
            issuer_id=booking.issuer_id,
            players=booking.players,
            cancelled=booking.cancelled,
            has_shown_start_message=booking.has_shown_start_message,
            has_shown_end_message=booking.has_shown_end_message,
            is_test=booking.is_test,
        )

    def _record_to_booking(self, record: BookingRecord) -> Booking:
        """Convert a BookingRecord SQLAlchemy model to a Booking Pydantic model."""
        return Booking(
            booking_id=record.booking_id,  # type: ignore[arg-type]
            court_id=record.court_id,  # type: ignore[arg-type]
            court_name=record.court_name,  # type: ignore[arg-type]
            start_time=parse_timestamp(record.start_time),  # type: ignore[arg-type]
            end_time=parse_timestamp(record.end_time),  # type: ignore[arg-type]
            split_payment=record.split_payment,  # type: ignore[arg-type]
            customer_id=record.customer_id,  # type: ignore[arg-type]
            email=record.email,  # type: ignore[arg-type]
            user_id=record.user_id,  # type: ignore[arg-type]
            first_name=record.first_name,  # type: ignore[arg-type]
            last_name=record.last_name,  # type: ignore[arg-type]
            issuer_id=record.issuer_id,  # type: ignore[arg-type]
            players=record.players,  # type: ignore[arg-type]
            cancelled=record.cancelled,  # type: ignore[arg-type]
            has_shown_start_message=record.has_shown_start_message,  # type: ignore[arg-type]
            has_shown_end_message=record.has_shown_end_message,  # type: ignore[arg-type]
            is_test=record.is_test,  # type: ignore[arg-type]
        )

    async def save_booking(self, booking: Booking) -> Booking:
        """Insert a booking, or replace every column of an existing one with the same id."""
        async with AsyncSessionLocal() as db:
            record = await db.merge(self._booking_to_record(booking))
            await db.commit()
            return self._record_to_booking(record)

    async def get_booking(self, booking_id: str) -> Booking | None:
        """Get a booking by its ID."""
        async with AsyncSessionLocal() as db:
            result = await db.execute(
                select(BookingRecord).where(BookingRecord.booking_id == booking_id)
            )
            record = result.scalar_one_or_none()
            if record:
                return self._record_to_booking(record)
            return None

    async def move_booking(
        self,
        booking_id: str,
        court_id: str,
        court_name: str,
        start_time: datetime,
        end_time: datetime,
    ) -> bool:
        """
        Move a booking to a new court and/or time range.

        Returns:
            True if a booking with the given id existed and was updated.
        """
        async with AsyncSessionLocal() as db:
            result = await db.execute(
                update(BookingRecord)
                .where(BookingRecord.booking_id == booking_id)
                .values(
                    court_id=court_id,
                    court_name=court_name,
                    start_time=to_date_string_utc(start_time),
                    end_time=to_date_string_utc(end_time),
                )
            )
            await db.commit()
            return result.rowcount > 0

    async def cancel_booking(self, booking_id: str) -> bool:
        """Mark a booking as cancelled. Returns True if the booking existed."""
        async with AsyncSessionLocal() as db:
            result = await db.execute(
                update(BookingRecord)
                .where(BookingRecord.booking_id == booking_id)
                .values(cancelled=True)
            )
            await db.commit()
            return result.rowcount > 0

    async def record_event(
        self,
        matchi_id: str,
        matchi_timestamp: str,
        booking_id: str,
        event_data: dict,
        received_at: datetime | None = None,
    ) -> None:
        """Append a received webhook to the booking event log."""
        async with AsyncSessionLocal() as db:
            db.add(
                BookingEventRecord(
                    matchi_id=matchi_id,
                    matchi_timestamp=matchi_timestamp,
                    timestamp=to_date_string_utc(received_at or utc_now()),
                    booking_id=booking_id,
                    event_data=event_data,
                )
            )
            await db.commit()

    async def get_booking_events(self, booking_id: str) -> list[BookingEventRecord]:
        """Get the logged webhook events for a booking, oldest first."""
        async with AsyncSessionLocal() as db:
            result = await db.execute(
                select(BookingEventRecord)
                .where(BookingEventRecord.booking_id == booking_id)
                .order_by(BookingEventRecord.id)
            )
            return list(result.scalars().all())

    def _active_bookings(self, court_id: str) -> Select:
        return select(BookingRecord).where(
            BookingRecord.court_id == court_id,
            BookingRecord.cancelled.is_(False),
        )

    async def _first(self, query: Select) -> Booking | None:
        async with AsyncSessionLocal() as db:
            result = await db.execute(query.limit(1))
            record = result.scalars().first()
            if record:
                return self._record_to_booking(record)
            return None

    async def get_current_booking(
        self, court_id: str, now: datetime | None = None
    ) -> Booking | None:
        """
        Get the booking in progress on a court: ``start <= now < end``.

        A booking ending exactly at ``now`` is not current. If several bookings
        overlap ``now`` the earliest starting one is returned.
        """
        now_str = to_date_string_utc(now or utc_now())
        return await self._first(
            self._active_bookings(court_id)
            .where(
                BookingRecord.start_time <= now_str,
                BookingRecord.end_time > now_str,
            )
            .order_by(BookingRecord.start_time)
        )

    async def get_next_booking(
        self, court_id: str, now: datetime | None = None
    ) -> Booking | None:
        """Get the earliest booking with ``now < start < now + LOOKAHEAD``."""
        now = now or utc_now()
        now_str = to_date_string_utc(now)
        limit_str = to_date_string_utc(_ceil_to_second(now + LOOKAHEAD))
        return await self._first(
            self._active_bookings(court_id)
            .where(
                BookingRecord.start_time > now_str,
                BookingRecord.start_time < limit_str,
            )
            .order_by(BookingRecord.start_time)
        )

    async def get_previous_booking(
        self, court_id: str, now: datetime | None = None
    ) -> Booking | None:
        """Get the most recently ended booking with ``now - LOOKBACK < end <= now``."""
        now = now or utc_now()
        now_str = to_date_string_utc(now)
        limit_str = to_date_string_utc(now - LOOKBACK)
        return await self._first(
            self._active_bookings(court_id)
            .where(
                BookingRecord.end_time <= now_str,
                BookingRecord.end_time > limit_str,
            )
            .order_by(BookingRecord.end_time.desc())
        )

    async def _set_flag(self, booking_id: str, flag: str, only_if_unset: bool) -> bool:
        column = getattr(BookingRecord, flag)
        query = update(BookingRecord).where(BookingRecord.booking_id == booking_id)
        if only_if_unset:
            query = query.where(column.is_(False))
        async with AsyncSessionLocal() as db:
            result = await db.execute(query.values({flag: True}))
            await db.commit()
            return result.rowcount > 0

    async def set_has_shown_start_message(
        self, booking_id: str, only_if_unset: bool = False
    ) -> bool:
        """
        Mark the start message of a booking as shown.

        Args:
            booking_id: The booking to update.
            only_if_unset: Only update the row if the flag is still false.

        Returns:
            True if a row was updated. With ``only_if_unset`` False means
            another caller already set the flag.
        """
        return await self._set_flag(booking_id, "has_shown_start_message", only_if_unset)

    async def set_has_shown_end_message(
        self, booking_id: str, only_if_unset: bool = False
    ) -> bool:
        """Mark the end message of a booking as shown. See set_has_shown_start_message."""
        return await self._set_flag(booking_id, "has_shown_end_message", only_if_unset)


database_service = DatabaseService()
