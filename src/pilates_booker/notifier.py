"""
Slack notification and logging module for Pilates Booker.
"""
import os
import sys
from datetime import datetime
from typing import Optional, TYPE_CHECKING

import requests

from .clock import KST
from .config import Config

if TYPE_CHECKING:
    from .results import RunResult


class Logger:
    """Logger with buffer for Slack notifications and an optional log file."""

    def __init__(self, log_file: Optional[str] = None, debug: bool = False):
        self.buffer: list[str] = []
        self.log_file = log_file
        self.debug_enabled = debug

    def _write(self, level: str, msg: str) -> None:
        timestamp = datetime.now(KST).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        log_str = f"\t[{level}]>> [{timestamp}] : {msg}\n"
        sys.stdout.write(log_str)
        sys.stdout.flush()
        self.buffer.append(log_str)
        self._append_file(log_str)

    def _append_file(self, line: str) -> None:
        if not self.log_file:
            return
        # 로그 파일 쓰기 실패는 무시
        try:
            directory = os.path.dirname(self.log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError:
            pass

    def info(self, msg: str) -> None:
        """Log info message with timestamp."""
        self._write("INFO", msg)

    def debug(self, msg: str) -> None:
        """Log debug message, only when DEBUG is on."""
        if self.debug_enabled:
            self._write("DEBUG", msg)

    def get_buffer(self) -> str:
        """Get all buffered logs as string."""
        return ''.join(self.buffer)

    def clear_buffer(self) -> None:
        """Clear the log buffer."""
        self.buffer = []


def log_file_for(test_mode: bool) -> str:
    return os.path.join("logs", "test.log" if test_mode else "booking.log")



# 상태별 Slack 제목/색상
_STATUS_STYLE = {
    "SUCCESS": ("🎉 필라테스 예약 완료!", "#2EB67D"),
    "WAITING": ("⏳ 필라테스 대기예약 등록", "#ECB22E"),
    "ALREADY_BOOKED": ("✅ 이미 예약된 수업", "#36C5F0"),
    "ALREADY_WAITING": ("✅ 이미 대기예약된 수업", "#36C5F0"),
    "UNAVAILABLE": ("🚫 정원 마감 (대기예약 불가)", "#999999"),
    "WEEKEND_SKIP": ("📆 주말 예약 건너뜀", "#999999"),
    "TEST": ("🧪 테스트 실행 완료", "#6C5CE7"),
    "FAILED": ("❌ 필라테스 예약 실패", "#E01E5A"),
}

# Slack 첨부 로그 최대 길이
LOG_TAIL_CHARS = 2500


class SlackNotifier:
    """Posts the run result to a Slack incoming webhook, with the log tail attached."""

    def __init__(self, config: Config, logger: Logger):
        self.webhook_url = config.slack_url
        self.site_url = config.base_url
        self.enabled = bool(self.webhook_url)
        self.logger = logger

    def _post(self, payload: dict) -> bool:
        """
        Send a payload to the webhook.

        Returns:
            True if Slack accepted it. Delivery problems are logged, never raised.
        """
        if not self.enabled:
            self.logger.debug("SLACK_URL 미설정 - 알림 생략")
            return False

        try:
            response = requests.post(self.webhook_url, json=payload, timeout=10)
        except requests.RequestException as e:
            self.logger.info(f"Slack 알림 전송 실패: {e}")
            return False

        if response.status_code != 200:
            self.logger.info(f"Slack 알림 전송 실패: {response.status_code}, {response.text}")
            return False
        self.logger.info("Slack 알림 전송 완료")
        return True

    def _log_attachment(self, color: str) -> Optional[dict]:
        tail = self.logger.get_buffer()[-LOG_TAIL_CHARS:]
        if not tail:
            return None
        return {"title": "📋 실행 로그 (최근)", "text": f"```{tail}```", "color": color}

    def _payload(self, title: str, color: str, body: str) -> dict:
        attachments = [{
            "title": title,
            "title_link": self.site_url,
            "text": f"{body}\n\n<{self.site_url}|🔗 예약 현황 보기>",
            "color": color,
            "footer": "Pilates Booker",
            "ts": int(datetime.now(KST).timestamp()),
        }]
        log = self._log_attachment(color)
        if log:
            attachments.append(log)
        return {"attachments": attachments}

    def send_result(self, result: "RunResult") -> bool:
        title, color = _STATUS_STYLE.get(result.status.value, _STATUS_STYLE["FAILED"])
        return self._post(self._payload(title, color, result.format_message()))

    def send_failure(self, message: str) -> bool:
        """Failure outside the normal result flow (config or unexpected errors)."""
        title, color = _STATUS_STYLE["FAILED"]
        return self._post(self._payload(title, color, f"❌ *실패 원인:* {message}"))
