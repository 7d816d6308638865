"""
Text checks used to confirm a booking after the fact.
"""
import re
from typing import Iterable, Optional

from .clock import TargetDate


SUCCESS_PATTERNS = [
    '예약완료',
    '예약 완료',
    '예약이 완료',
    '예약되었습니다',
    '예약 되었습니다',
    '정상적으로 예약',
    '대기예약 완료',
    '대기 예약',
    '예약신청이 완료',
    '요일별 예약횟수가 완료',
    'reservation complete',
    'booking complete',
    'weekly booking count already completed',
]


def time_variants(class_time: str) -> list[str]:
    """``09:30`` -> ``['09:30', '9:30', '09시30분', '9시30분']``."""
    hour, _, minute = class_time.partition(":")
    short_hour = str(int(hour)) if hour.isdigit() else hour
    variants = [
        class_time,
        f"{short_hour}:{minute}",
        f"{hour}시{minute}분",
        f"{short_hour}시{minute}분",
    ]
    # 순서 유지하며 중복 제거
    return list(dict.fromkeys(variants))


def date_variants(target: TargetDate) -> list[str]:
    y, m, d = target.year, target.month, target.day
    return [
        f"{m}월 {d}일",
        f"{m}/{d}",
        f"{m}-{d}",
        f"{m}.{d}",
        f"{y}-{m}-{d}",
        f"{y}.{m}.{d}",
        f"{y}/{m}/{d}",
        f"{y}-{m:02d}-{d:02d}",
    ]


def _first_match(text: str, candidates: Iterable[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate in text:
            return candidate
    return None


def page_shows_success(text: str) -> bool:
    """True when the current page carries an explicit success message."""
    lowered = (text or "").lower()
    return any(p.lower() in lowered for p in SUCCESS_PATTERNS)


def list_shows_booking(text: str, target: TargetDate, class_time: str) -> Optional[str]:
    """
    Check the reservation list page for the booked class.

    Returns a short description of what matched, or None.
    """
    text = text or ""
    if not _first_match(text, time_variants(class_time)):
        return None
    date_match = _first_match(text, date_variants(target))
    if date_match:
        return date_match
    if "*" in text:
        return "대기예약 표시(*)"
    return f"{class_time} 확인"


def calendar_marks_day(text: str, day: int) -> bool:
    """The booking calendar marks reserved days with an asterisk after the day number."""
    pattern = re.compile(rf"(?<!\d){day}[\s]*\*")
    return bool(pattern.search(text or ""))
