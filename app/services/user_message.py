"""
Bay display message engine.

Decides whether a court's display should show a welcome or an ending notice
right now. The decision is made in three steps:

1. Fetch the current, next and previous booking for the court
   (see DatabaseService.get_current_booking and friends).
2. Derive a MessageContext of timing/adjacency facts from those bookings.
3. Walk RULES in order; the first rule whose predicate holds decides the
   message type and which booking's flag gets marked as shown.

Rules that produce no message type still mark their flag, so back-to-back
bookings by the same customer do not get a second welcome or a premature
"time is up" notice.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.config import settings
from app.models.schemas import Booking, MessageType, UserMessage
from app.services.database_service import DatabaseService, database_service
from app.timeutils import to_utc, utc_now

logger = logging.getLogger(__name__)

NEAR_END = timedelta(minutes=settings.near_end_minutes)
NEAR_START = timedelta(minutes=settings.near_start_minutes)

START_MESSAGE_RULES = frozenset({"welcome", "welcome-continuation", "early-welcome"})


@dataclass(frozen=True)
class MessageContext:
    current: Booking | None
    next: Booking | None
    previous: Booking | None
    is_near_end: bool = False
    is_about_to_start: bool = False
    next_is_consecutive: bool = False
    same_customer_as_previous: bool = False
    same_customer_as_next: bool = False


@dataclass(frozen=True)
class RuleResult:
    rule_name: str
    type: MessageType | None
    booking: Booking


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[MessageContext], bool]
    outcome: Callable[[MessageContext], RuleResult]


def build_context(
    current: Booking | None,
    next: Booking | None,
    previous: Booking | None,
    now: datetime,
) -> MessageContext:
    """
    Derive the facts the rules are evaluated against.

    Both the near-end and about-to-start windows include their end points, so a
    booking counts as near its end at the exact end instant too.
    """
    is_near_end = False
    if current:
        is_near_end = timedelta(0) <= current.end_time - now <= NEAR_END

    is_about_to_start = False
    if next:
        is_about_to_start = timedelta(0) <= next.start_time - now <= NEAR_START

    return MessageContext(
        current=current,
        next=next,
        previous=previous,
        is_near_end=is_near_end,
        is_about_to_start=is_about_to_start,
        next_is_consecutive=bool(current and next and current.end_time == next.start_time),
        same_customer_as_previous=bool(
            current and previous and current.customer_id == previous.customer_id
        ),
        same_customer_as_next=bool(
            current and next and current.customer_id == next.customer_id
        ),
    )


def _awaiting_welcome(ctx: MessageContext) -> bool:
    return ctx.current is not None and not ctx.current.has_shown_start_message


def _awaiting_ending(ctx: MessageContext) -> bool:
    return (
        ctx.current is not None
        and ctx.current.has_shown_start_message
        and not ctx.current.has_shown_end_message
        and ctx.is_near_end
    )


def _for_current(rule_name: str, message_type: MessageType | None):
    def outcome(ctx: MessageContext) -> RuleResult:
        return RuleResult(rule_name=rule_name, type=message_type, booking=ctx.current)

    return outcome


# Order is priority: later rules assume every earlier one failed to match.
RULES: tuple[Rule, ...] = (
    Rule(
        name="welcome",
        predicate=lambda ctx: _awaiting_welcome(ctx) and not ctx.same_customer_as_previous,
        outcome=_for_current("welcome", MessageType.START),
    ),
    Rule(
        name="welcome-continuation",
        predicate=lambda ctx: _awaiting_welcome(ctx) and ctx.same_customer_as_previous,
        outcome=_for_current("welcome-continuation", None),
    ),
    Rule(
        name="early-welcome",
        predicate=lambda ctx: (
            ctx.current is None
            and ctx.next is not None
            and not ctx.next.has_shown_start_message
            and ctx.is_about_to_start
        ),
        outcome=lambda ctx: RuleResult(
            rule_name="early-welcome", type=MessageType.START, booking=ctx.next
        ),
    ),
    Rule(
        name="ending-free",
        predicate=lambda ctx: _awaiting_ending(ctx) and not ctx.next_is_consecutive,
        outcome=_for_current("ending-free", MessageType.END_FREE),
    ),
    Rule(
        name="ending-occupied",
        predicate=lambda ctx: (
            _awaiting_ending(ctx) and ctx.next_is_consecutive and not ctx.same_customer_as_next
        ),
        outcome=_for_current("ending-occupied", MessageType.END_OCCUPIED),
    ),
    Rule(
        name="ending-continuation",
        predicate=lambda ctx: (
            _awaiting_ending(ctx) and ctx.next_is_consecutive and ctx.same_customer_as_next
        ),
        outcome=_for_current("ending-continuation", None),
    ),
)


def evaluate_rules(ctx: MessageContext) -> RuleResult | None:
    """Return the outcome of the first matching rule, or None if no rule matches."""
    for rule in RULES:
        if rule.predicate(ctx):
            return rule.outcome(ctx)
    return None


class UserMessageService:
    """
    Decides and records the message to show on a court's display.

    Called once per display poll. Flags are set with a plain update, so two
    overlapping polls for the same court can both return the same welcome;
    enable ``exactly_once`` to claim flags with a conditional update instead.

    Attributes:
        _db: Store used for booking queries and flag updates.
        _logger: Logger for decisions and contained errors.
        _exactly_once: Suppress a message when its flag was already claimed.
    """

    def __init__(
        self,
        db: DatabaseService | None = None,
        logger: logging.Logger = logger,
        exactly_once: bool | None = None,
    ) -> None:
        self._db = db or database_service
        self._logger = logger
        self._exactly_once = (
            settings.exactly_once_messages if exactly_once is None else exactly_once
        )

    async def show_user_message_for_court(
        self, court_id: str, now: datetime | None = None
    ) -> UserMessage | None:
        """
        Decide which message, if any, the display for a court should show.

        Errors while querying are logged and reported as no message. Errors
        while marking a flag are logged and the message is still returned,
        which may show it again on the next poll.

        Args:
            court_id: MATCHi court id.
            now: Reference instant (defaults to the current UTC time). Naive
                values are read in the facility timezone.

        Returns:
            The message to show, or None.
        """
        now = to_utc(now) if now else utc_now()

        try:
            current = await self._db.get_current_booking(court_id, now)
            next_booking = await self._db.get_next_booking(court_id, now)

            if not current and not next_booking:
                return None

            # Previous only decides between welcome and welcome-continuation.
            previous = None
            if current and not current.has_shown_start_message:
                previous = await self._db.get_previous_booking(court_id, now)

            result = evaluate_rules(build_context(current, next_booking, previous, now))
        except Exception as e:
            self._logger.exception(f"Failed to decide message for court {court_id}: {e}")
            return None

        if result is None:
            return None

        self._logger.info(
            f"Court {court_id}: rule {result.rule_name} matched booking "
            f"{result.booking.booking_id} (type={result.type.value if result.type else None})"
        )

        claimed = await self._mark_shown(result)
        if not claimed:
            self._logger.info(
                f"Court {court_id}: {result.rule_name} for booking "
                f"{result.booking.booking_id} already claimed, suppressing message"
            )
            return None

        if result.type is None:
            return None

        return UserMessage(
            type=result.type,
            first_name=result.booking.first_name,
            last_name=result.booking.last_name,
            booking=result.booking,
        )

    async def _mark_shown(self, result: RuleResult) -> bool:
        """
        Persist the flag for a matched rule.

        Returns False only when the conditional update found the flag already
        set. Store errors are logged and treated as claimed.
        """
        booking_id = result.booking.booking_id
        try:
            if result.rule_name in START_MESSAGE_RULES:
                updated = await self._db.set_has_shown_start_message(
                    booking_id, only_if_unset=self._exactly_once
                )
            elif result.rule_name.startswith("ending"):
                updated = await self._db.set_has_shown_end_message(
                    booking_id, only_if_unset=self._exactly_once
                )
            else:
                return True
        except Exception as e:
            self._logger.exception(
                f"Failed to mark {result.rule_name} as shown for booking {booking_id}: {e}"
            )
            return True

        return updated or not self._exactly_once


user_message_service = UserMessageService()
