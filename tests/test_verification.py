from pilates_booker.clock import TargetDate
from pilates_booker.verification import (
    calendar_marks_day,
    date_variants,
    list_shows_booking,
    page_shows_success,
    time_variants,
)


TARGET = TargetDate(2025, 3, 10)


def test_time_variants():
    assert time_variants("09:30") == ["09:30", "9:30", "09시30분", "9시30분"]
    assert time_variants("10:00") == ["10:00", "10시00분"]


def test_date_variants_cover_common_formats():
    variants = date_variants(TARGET)
    assert "3월 10일" in variants
    assert "2025-03-10" in variants
    assert "3/10" in variants


def test_page_shows_success():
    assert page_shows_success("예약이 완료되었습니다")
    assert page_shows_success("Reservation Complete")
    assert not page_shows_success("로그인 해주세요")
    assert not page_shows_success("")


def test_list_needs_the_class_time():
    assert list_shows_booking("3월 10일 10:30 요가", TARGET, "09:30") is None


def test_list_match_prefers_the_date():
    assert list_shows_booking("3월 10일 09:30 필라테스", TARGET, "09:30") == "3월 10일"
    assert list_shows_booking("2025-03-10 09:30 필라테스", TARGET, "09:30") is not None
    assert list_shows_booking("9시30분 필라테스 *", TARGET, "09:30") == "대기예약 표시(*)"


def test_calendar_marks_day():
    assert calendar_marks_day("8 9 10* 11", 10)
    assert calendar_marks_day("10 *", 10)
    assert not calendar_marks_day("110* 10", 10)
    assert not calendar_marks_day("", 10)
