"""
Run result record and its JSON file.
"""
import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .clock import ExecutionContext, day_name, now_kst
from .notifier import Logger
from .outcome import BookingOutcome, OutcomeKind


LIVE_RESULT_FILE = "booking-result.json"
TEST_RESULT_FILE = "test-result.json"


class RunStatus(str, Enum):
    SUCCESS = "SUCCESS"
    WAITING = "WAITING"
    ALREADY_BOOKED = "ALREADY_BOOKED"
    ALREADY_WAITING = "ALREADY_WAITING"
    UNAVAILABLE = "UNAVAILABLE"
    WEEKEND_SKIP = "WEEKEND_SKIP"
    FAILED = "FAILED"
    TEST = "TEST"


def status_for(outcome: BookingOutcome, test_mode: bool = False) -> RunStatus:
    """Persisted status for a settled outcome."""
    if test_mode:
        return RunStatus.TEST
    if outcome.kind == OutcomeKind.BOOKED:
        return RunStatus.SUCCESS
    if outcome.kind == OutcomeKind.WAITLISTED:
        return RunStatus.WAITING
    if outcome.kind == OutcomeKind.ALREADY_BOOKED:
        return RunStatus.ALREADY_WAITING if outcome.was_waiting else RunStatus.ALREADY_BOOKED
    if outcome.kind == OutcomeKind.UNAVAILABLE:
        return RunStatus.UNAVAILABLE
    return RunStatus.FAILED


# JSON 키 ↔ 필드
_KEYS = {
    "timestamp": "timestamp",
    "date": "date",
    "class": "class_time",
    "status": "status",
    "message": "message",
    "retryCount": "retry_count",
    "bookingSuccess": "booking_success",
    "isWaitingReservation": "is_waiting_reservation",
    "mode": "mode",
    "dayOfWeek": "day_of_week",
    "verified": "verified",
    "note": "note",
    "kstTime": "kst_time",
    "waitedSeconds": "waited_seconds",
}


@dataclass(frozen=True)
class RunResult:
    """Final record of one run. Written once, never changed."""
    timestamp: str
    date: str
    status: RunStatus
    message: str
    retry_count: int = 0
    booking_success: bool = False
    is_waiting_reservation: bool = False
    class_time: str = "09:30"
    mode: str = "normal"
    day_of_week: str = ""
    verified: Optional[bool] = None
    note: str = ""
    kst_time: str = ""
    waited_seconds: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status != RunStatus.FAILED

    @property
    def exit_code(self) -> int:
        return 0 if self.is_success else 1

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for key, attr in _KEYS.items():
            value = getattr(self, attr)
            data[key] = value.value if isinstance(value, RunStatus) else value
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunResult":
        kwargs = {}
        extra = {}
        for key, value in data.items():
            attr = _KEYS.get(key)
            if attr is None:
                extra[key] = value
            else:
                kwargs[attr] = value
        kwargs["status"] = RunStatus(kwargs["status"])
        return cls(extra=extra, **kwargs)

    def format_message(self) -> str:
        """Slack 메시지 포맷팅"""
        lines = [
            f"📅 *날짜:* {self.date} ({self.day_of_week})" if self.day_of_week else f"📅 *날짜:* {self.date}",
            f"⏰ *수업:* {self.class_time}",
            f"📌 *상태:* {self.status.value}",
            f"📝 *내용:* {self.message}",
        ]
        if self.retry_count:
            lines.append(f"🔄 *재시도:* {self.retry_count}회")
        if self.verified is not None:
            lines.append(f"🔍 *확인:* {'완료' if self.verified else '미확인'}")
        return "\n".join(lines)


def _base_fields(context: ExecutionContext, now: Optional[datetime]) -> Dict[str, Any]:
    now = now or now_kst()
    return {
        "timestamp": now.isoformat(),
        "date": context.target.label(),
        "class_time": context.class_time,
        "mode": context.mode.value,
        "day_of_week": context.target.day_name,
        "kst_time": now.strftime("%Y-%m-%d %H:%M:%S"),
    }


def weekend_skip_result(context: ExecutionContext, now: Optional[datetime] = None) -> RunResult:
    today = day_name(context.current_weekday)
    return RunResult(
        status=RunStatus.WEEKEND_SKIP,
        message=f"{today} 실행 - 주말({context.target.day_name}) 예약 건너뛰기",
        note="KST 기준 실행 요일 판정 (금/토 실행 시 건너뜀)",
        **_base_fields(context, now),
    )


def outcome_result(
    context: ExecutionContext,
    outcome: BookingOutcome,
    message: str,
    retry_count: int,
    booking_success: bool,
    is_waiting_reservation: bool,
    verified: Optional[bool] = None,
    waited_seconds: float = 0.0,
    now: Optional[datetime] = None,
) -> RunResult:
    if outcome.kind == OutcomeKind.ALREADY_BOOKED:
        note = "이미 예약/대기예약 완료 - 중복 방지"
    elif outcome.kind == OutcomeKind.UNAVAILABLE:
        note = "정원 마감 - 대기예약 불가"
    elif verified:
        note = "예약 확인 완료"
    else:
        note = "예약 프로세스 완료"
    return RunResult(
        status=status_for(outcome, context.is_test),
        message=message,
        retry_count=retry_count,
        booking_success=booking_success,
        is_waiting_reservation=is_waiting_reservation,
        verified=verified,
        note=note,
        waited_seconds=waited_seconds,
        **_base_fields(context, now),
    )


def failed_result(
    context: ExecutionContext,
    retry_count: int,
    message: str,
    waited_seconds: float = 0.0,
    now: Optional[datetime] = None,
) -> RunResult:
    return RunResult(
        status=RunStatus.FAILED,
        message=message,
        retry_count=retry_count,
        booking_success=False,
        note="재시도 횟수 초과",
        waited_seconds=waited_seconds,
        **_base_fields(context, now),
    )


class ResultRecorder:
    """Writes the run result to ``booking-result.json`` (or ``test-result.json``)."""

    def __init__(self, path: str, logger: Optional[Logger] = None):
        self.path = path
        self.logger = logger

    @classmethod
    def for_mode(cls, test_mode: bool, directory: str = ".", logger: Optional[Logger] = None) -> "ResultRecorder":
        filename = TEST_RESULT_FILE if test_mode else LIVE_RESULT_FILE
        return cls(os.path.join(directory, filename), logger)

    def write(self, result: RunResult) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)
        if self.logger:
            self.logger.info(f"💾 결과 저장: {self.path} ({result.status.value})")

    def read(self) -> RunResult:
        with open(self.path, encoding="utf-8") as f:
            return RunResult.from_dict(json.load(f))
