import pytest

from pilates_booker.booking import BookingAttempt
from pilates_booker.clock import ExecutionMode
from pilates_booker.errors import (
    AttemptFailedError,
    AuthenticationError,
    ConflictDetectedError,
    SlotNotFoundError,
    SubmitNotFoundError,
    TimeoutDetectedError,
)
from pilates_booker.outcome import OutcomeKind
from pilates_booker.page import BOOKING_LIST_PATH

from helpers import FakePageDriver, kst, make_context


MONDAY_MIDNIGHT = kst(2025, 3, 3, 0, 0, 1)


def _attempt(driver, config, logger, mode=ExecutionMode.NORMAL):
    context = make_context(MONDAY_MIDNIGHT, mode)
    return BookingAttempt(driver, config, context, logger, sleep=lambda seconds: None)


def test_already_booked_slot_is_never_clicked(config, logger):
    driver = FakePageDriver(slot_text="예약완료")
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.ALREADY_BOOKED
    assert not result.outcome.was_waiting
    assert result.state.booking_success
    assert "invoke_action" not in driver.calls
    assert "invoke_submit" not in driver.calls


def test_already_waiting_slot(config, logger):
    driver = FakePageDriver(slot_text="대기완료")
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.ALREADY_BOOKED
    assert result.outcome.was_waiting
    assert result.state.is_waiting_reservation
    assert "invoke_action" not in driver.calls


def test_later_booked_row_blocks_booking(config, logger):
    driver = FakePageDriver(slot_texts=["예약하기", "예약완료"])
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.ALREADY_BOOKED
    assert result.state.booking_success
    assert driver.clicked == []
    assert "invoke_action" not in driver.calls


def test_later_waiting_row_blocks_booking(config, logger):
    driver = FakePageDriver(slot_texts=["대기예약", "대기완료"])
    result = _attempt(driver, config, logger).run()

    assert result.outcome.was_waiting
    assert driver.clicked == []


def test_unknown_first_row_does_not_hide_an_open_one(config, logger):
    driver = FakePageDriver(
        slot_texts=["???", "예약하기"],
        submit_dialogs=["예약이 완료되었습니다."],
    )
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.BOOKED
    assert driver.clicked == ["row2:예약하기"]


def test_closed_row_then_waitlist_row(config, logger):
    driver = FakePageDriver(
        slot_texts=["마감", "대기예약"],
        action_dialogs=["정원이 초과되었습니다. 대기예약 하시겠습니까?"],
    )
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.WAITLISTED
    assert driver.clicked == ["row2:대기예약"]


def test_unavailable_slot_settles_without_click(config, logger):
    driver = FakePageDriver(slot_text="마감")
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.UNAVAILABLE
    assert "invoke_action" not in driver.calls


def test_book_now_clicks_then_submits(config, logger):
    driver = FakePageDriver(
        slot_text="예약하기",
        submit_dialogs=["예약이 완료되었습니다."],
        body_text="예약완료",
    )
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.BOOKED
    assert result.state.booking_success
    assert result.verified is True
    assert result.message == "09:30 수업 예약 완료"
    assert driver.calls.index("invoke_action") < driver.calls.index("invoke_submit")
    assert "select_day:10" in driver.calls


def test_book_now_without_dialog_is_booked_but_unverified(config, logger):
    driver = FakePageDriver(slot_text="예약하기")
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.BOOKED
    assert result.verified is False
    assert f"navigate:{BOOKING_LIST_PATH}" in driver.calls


def test_verification_through_reservation_list(config, logger):
    driver = FakePageDriver(slot_text="예약하기", body_text="3월 10일 09:30 필라테스")
    result = _attempt(driver, config, logger).run()
    assert result.verified is True


def test_join_waitlist_has_no_submit_step(config, logger):
    driver = FakePageDriver(
        slot_text="대기예약",
        action_dialogs=["정원이 초과되었습니다. 대기예약 하시겠습니까?"],
    )
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.WAITLISTED
    assert result.state.is_waiting_reservation
    assert result.message == "09:30 수업 대기예약"
    assert "invoke_submit" not in driver.calls
    assert all(d.accepted for d in driver.action_dialogs)


def test_join_waitlist_success_dialog_counts_as_waitlisted(config, logger):
    driver = FakePageDriver(slot_text="대기예약", action_dialogs=["예약이 완료되었습니다."])
    result = _attempt(driver, config, logger).run()

    assert result.outcome.kind == OutcomeKind.WAITLISTED
    assert result.state.booking_success
    assert result.state.is_waiting_reservation


def test_missing_submit_control_is_retryable(config, logger):
    driver = FakePageDriver(slot_text="예약하기", has_submit=False)
    with pytest.raises(SubmitNotFoundError):
        _attempt(driver, config, logger).run()
    assert "error-booking" in driver.snapshots


def test_conflict_dialog_raises(config, logger):
    driver = FakePageDriver(
        slot_text="예약하기",
        submit_dialogs=["동시신청으로 처리되지 않았습니다. 잠시 후 다시 시도하세요."],
    )
    attempt = _attempt(driver, config, logger)
    with pytest.raises(ConflictDetectedError):
        attempt.run()
    assert attempt.state.has_conflict_error
    assert not attempt.state.booking_success


def test_timeout_dialog_raises(config, logger):
    driver = FakePageDriver(slot_text="예약하기", submit_dialogs=["시간초과 되었습니다"])
    with pytest.raises(TimeoutDetectedError):
        _attempt(driver, config, logger).run()


def test_failure_dialog_raises(config, logger):
    driver = FakePageDriver(slot_text="예약하기", submit_dialogs=["날짜를 선택해 주세요"])
    with pytest.raises(AttemptFailedError):
        _attempt(driver, config, logger).run()


def test_missing_slot_raises(config, logger):
    driver = FakePageDriver(slot_text=None)
    with pytest.raises(SlotNotFoundError):
        _attempt(driver, config, logger).run()


def test_unknown_action_cell_raises(config, logger):
    driver = FakePageDriver(slot_text="???")
    with pytest.raises(AttemptFailedError):
        _attempt(driver, config, logger).run()
    assert "invoke_action" not in driver.calls


def test_only_unknown_rows_raise(config, logger):
    driver = FakePageDriver(slot_texts=["???", "!!!"])
    with pytest.raises(AttemptFailedError, match="알 수 없음"):
        _attempt(driver, config, logger).run()
    assert driver.clicked == []


def test_login_failure_stops_the_attempt(config, logger):
    driver = FakePageDriver(login_ok=False)
    with pytest.raises(AuthenticationError):
        _attempt(driver, config, logger).run()
    assert "find_slot" not in driver.calls


def test_test_mode_does_not_click(config, logger):
    driver = FakePageDriver(slot_text="예약하기")
    result = _attempt(driver, config, logger, mode=ExecutionMode.TEST).run()

    assert result.outcome.kind == OutcomeKind.BOOKED
    assert result.message.endswith("(테스트 모드)")
    assert "invoke_action" not in driver.calls


def test_snapshot_errors_do_not_break_the_attempt(config, logger):
    class BrokenCamera(FakePageDriver):
        def snapshot(self, label):
            raise OSError("disk full")

    driver = BrokenCamera(slot_text="예약하기", submit_dialogs=["예약이 완료되었습니다."])
    result = _attempt(driver, config, logger).run()
    assert result.outcome.kind == OutcomeKind.BOOKED


def test_each_run_starts_from_fresh_state(config, logger):
    driver = FakePageDriver(slot_text="대기완료")
    attempt = _attempt(driver, config, logger)
    attempt.run()
    assert attempt.state.is_waiting_reservation

    attempt.driver = FakePageDriver(slot_text="마감")
    result = attempt.run()
    assert not result.state.is_waiting_reservation
    assert not result.state.booking_success
