"""
Scenario tests walking through a session minute by minute.

build_context + evaluate_rules are pure, so each step hands in the bookings
with the flags the orchestrator would have set by then.
"""

from datetime import datetime

from app.models.schemas import Booking, MessageType
from app.services.user_message import RuleResult, build_context, evaluate_rules
from tests.fixtures.bookings import d, make_booking


def with_flags(booking: Booking, start: bool = False, end: bool = False) -> Booking:
    return booking.model_copy(
        update={"has_shown_start_message": start, "has_shown_end_message": end}
    )


def evaluate(
    current: Booking | None,
    next_booking: Booking | None,
    previous: Booking | None,
    now: datetime,
) -> RuleResult | None:
    return evaluate_rules(build_context(current, next_booking, previous, now))


def assert_rule(result: RuleResult | None, name: str, message_type: MessageType | None) -> None:
    assert result is not None
    assert result.rule_name == name
    assert result.type == message_type


class TestSingleThirtyMinuteBooking:
    alice = make_booking("10:00", "10:30", customer_id="A", first_name="Alice")

    def test_0957_early_welcome(self) -> None:
        assert_rule(evaluate(None, self.alice, None, d("09:57")), "early-welcome", MessageType.START)

    def test_1000_start_already_shown(self) -> None:
        assert evaluate(with_flags(self.alice, start=True), None, None, d("10:00")) is None

    def test_1015_mid_session(self) -> None:
        assert evaluate(with_flags(self.alice, start=True), None, None, d("10:15")) is None

    def test_1025_ending_free(self) -> None:
        result = evaluate(with_flags(self.alice, start=True), None, None, d("10:25"))
        assert_rule(result, "ending-free", MessageType.END_FREE)


class TestSingleSixtyMinuteBooking:
    alice = make_booking("14:00", "15:00", customer_id="A", first_name="Alice")

    def test_1357_early_welcome(self) -> None:
        assert_rule(evaluate(None, self.alice, None, d("13:57")), "early-welcome", MessageType.START)

    def test_1430_mid_session(self) -> None:
        assert evaluate(with_flags(self.alice, start=True), None, None, d("14:30")) is None

    def test_1455_ending_free(self) -> None:
        result = evaluate(with_flags(self.alice, start=True), None, None, d("14:55"))
        assert_rule(result, "ending-free", MessageType.END_FREE)


class TestBackToBackSameCustomer:
    a1 = make_booking("10:00", "10:30", customer_id="A", first_name="Alice")
    a2 = make_booking("10:30", "11:00", customer_id="A", first_name="Alice")
    a3 = make_booking("11:00", "11:30", customer_id="A", first_name="Alice")

    def test_0957_early_welcome_for_first_slot(self) -> None:
        assert_rule(evaluate(None, self.a1, None, d("09:57")), "early-welcome", MessageType.START)

    def test_1000_start_already_shown(self) -> None:
        assert evaluate(with_flags(self.a1, start=True), self.a2, None, d("10:00")) is None

    def test_1025_ending_continuation(self) -> None:
        result = evaluate(with_flags(self.a1, start=True), self.a2, None, d("10:25"))
        assert_rule(result, "ending-continuation", None)

    def test_1030_welcome_continuation_for_second_slot(self) -> None:
        previous = with_flags(self.a1, start=True, end=True)
        result = evaluate(self.a2, self.a3, previous, d("10:30"))
        assert_rule(result, "welcome-continuation", None)

    def test_1055_ending_continuation_for_second_slot(self) -> None:
        result = evaluate(with_flags(self.a2, start=True), self.a3, None, d("10:55"))
        assert_rule(result, "ending-continuation", None)

    def test_1100_welcome_continuation_for_third_slot(self) -> None:
        previous = with_flags(self.a2, start=True, end=True)
        result = evaluate(self.a3, None, previous, d("11:00"))
        assert_rule(result, "welcome-continuation", None)

    def test_1125_ending_free_for_last_slot(self) -> None:
        result = evaluate(with_flags(self.a3, start=True), None, None, d("11:25"))
        assert_rule(result, "ending-free", MessageType.END_FREE)


class TestHandoffBetweenCustomers:
    alice = make_booking("10:00", "10:30", customer_id="A", first_name="Alice")
    bob = make_booking("10:30", "11:00", customer_id="B", first_name="Bob")

    def test_1015_mid_session(self) -> None:
        assert evaluate(with_flags(self.alice, start=True), self.bob, None, d("10:15")) is None

    def test_1025_ending_occupied(self) -> None:
        result = evaluate(with_flags(self.alice, start=True), self.bob, None, d("10:25"))
        assert_rule(result, "ending-occupied", MessageType.END_OCCUPIED)

    def test_1030_welcome_for_bob(self) -> None:
        previous = with_flags(self.alice, start=True, end=True)
        result = evaluate(self.bob, None, previous, d("10:30"))
        assert_rule(result, "welcome", MessageType.START)
        assert result.booking.first_name == "Bob"

    def test_1055_ending_free_for_bob(self) -> None:
        result = evaluate(with_flags(self.bob, start=True), None, None, d("10:55"))
        assert_rule(result, "ending-free", MessageType.END_FREE)


class TestGapBetweenBookings:
    alice = make_booking("10:00", "10:30", customer_id="A", first_name="Alice")
    bob = make_booking("11:00", "11:30", customer_id="B", first_name="Bob")

    def test_1025_ending_free_despite_later_booking(self) -> None:
        result = evaluate(with_flags(self.alice, start=True), self.bob, None, d("10:25"))
        assert_rule(result, "ending-free", MessageType.END_FREE)

    def test_1030_nothing_while_next_is_thirty_minutes_away(self) -> None:
        assert evaluate(None, self.bob, None, d("10:30")) is None

    def test_1057_early_welcome_for_bob(self) -> None:
        assert_rule(evaluate(None, self.bob, None, d("10:57")), "early-welcome", MessageType.START)


class TestMixedDurationsBackToBack:
    a1 = make_booking("10:00", "11:00", customer_id="A", first_name="Alice")
    a2 = make_booking("11:00", "11:30", customer_id="A", first_name="Alice")

    def test_1030_mid_session(self) -> None:
        assert evaluate(with_flags(self.a1, start=True), self.a2, None, d("10:30")) is None

    def test_1055_ending_continuation(self) -> None:
        result = evaluate(with_flags(self.a1, start=True), self.a2, None, d("10:55"))
        assert_rule(result, "ending-continuation", None)

    def test_1100_welcome_continuation(self) -> None:
        previous = with_flags(self.a1, start=True, end=True)
        result = evaluate(self.a2, None, previous, d("11:00"))
        assert_rule(result, "welcome-continuation", None)


def test_no_bookings() -> None:
    assert evaluate(None, None, None, d("10:00")) is None
