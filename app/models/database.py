"""
SQLAlchemy database models for persistent storage.

This module defines the schema for bookings received from MATCHi webhooks and
the append-only log of the webhook events themselves.

Timestamps are stored as UTC strings in the fixed ``YYYY-MM-DDTHH:MM:SSZ``
format (see app.timeutils), so range filters and ordering can be done with
plain string comparison.
"""

from pathlib import Path

from sqlalchemy import JSON, Boolean, Column, Index, Integer, String, Text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class BookingRecord(Base):
    """
    Database model for a court booking.

    Columns:
        booking_id: MATCHi booking identifier (primary key).
        court_id: MATCHi court identifier the booking is on.
        court_name: Human-readable court name from MATCHi.
        start_time: UTC start instant, ``YYYY-MM-DDTHH:MM:SSZ``.
        end_time: UTC end instant (exclusive), same format.
        customer_id: Booking owner's MATCHi customer id. Used to detect
            back-to-back bookings by the same customer.
        first_name / last_name: Display name of the booking owner.
        players: Comma-separated player emails.
        cancelled: Set when a BookingCancelled event arrives.
        has_shown_start_message: Set once a welcome has been handled for
            this booking. Never reset by the message engine.
        has_shown_end_message: Set once an ending notice has been handled.
        is_test: Marks rows inserted by tests or tooling.
    """

    __tablename__ = "bookings"

    booking_id = Column(String(64), primary_key=True)
    court_id = Column(String(32), nullable=False)
    court_name = Column(String(100), nullable=False, default="")
    start_time = Column(String(20), nullable=False)
    end_time = Column(String(20), nullable=False)
    split_payment = Column(Boolean, nullable=False, default=False)
    customer_id = Column(String(64), nullable=False)
    email = Column(String(255), nullable=False, default="")
    user_id = Column(String(64), nullable=False, default="")
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    issuer_id = Column(String(64), nullable=False, default="")
    players = Column(Text, nullable=True)
    cancelled = Column(Boolean, nullable=False, default=False)
    has_shown_start_message = Column(Boolean, nullable=False, default=False)
    has_shown_end_message = Column(Boolean, nullable=False, default=False)
    is_test = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("booking_query_idx", "court_id", "start_time", "end_time", "cancelled"),
    )


class BookingEventRecord(Base):
    """
    Append-only log of received MATCHi webhooks.

    Columns:
        id: Auto-incrementing primary key.
        matchi_id: Event id assigned by MATCHi.
        matchi_timestamp: Event timestamp as sent by MATCHi.
        timestamp: When the event was received, UTC string.
        booking_id: Booking the event refers to.
        event_data: Raw webhook payload.
    """

    __tablename__ = "booking_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    matchi_id = Column(String(64), nullable=False)
    matchi_timestamp = Column(String(40), nullable=False)
    timestamp = Column(String(20), nullable=False)
    booking_id = Column(String(64), nullable=False, index=True)
    event_data = Column(JSON, nullable=True)


def _async_database_url(url: str) -> str:
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://")
    return url


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


engine = create_async_engine(_async_database_url(settings.database_url), echo=False)

AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    _ensure_sqlite_directory(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
