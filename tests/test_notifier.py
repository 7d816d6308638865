import requests

from pilates_booker import notifier as notifier_module
from pilates_booker.notifier import Logger, SlackNotifier, log_file_for
from pilates_booker.outcome import BookingOutcome
from pilates_booker.results import failed_result, outcome_result

from helpers import kst, make_context


class FakeResponse:
    def __init__(self, status_code=200, text="ok"):
        self.status_code = status_code
        self.text = text


def test_logger_buffers_and_appends_to_file(tmp_path):
    log_file = tmp_path / "logs" / "booking.log"
    logger = Logger(log_file=str(log_file))
    logger.info("첫 줄")
    logger.debug("숨김")

    assert "[INFO]>>" in logger.get_buffer()
    assert "숨김" not in logger.get_buffer()
    assert "첫 줄" in log_file.read_text(encoding="utf-8")

    logger.clear_buffer()
    assert logger.get_buffer() == ""


def test_log_file_write_errors_are_ignored(tmp_path):
    # 디렉터리를 파일 경로로 지정해 쓰기 실패 유도
    logger = Logger(log_file=str(tmp_path))
    logger.info("계속 진행")
    assert "계속 진행" in logger.get_buffer()


def test_log_file_for():
    assert log_file_for(True).endswith("test.log")
    assert log_file_for(False).endswith("booking.log")


def test_slack_disabled_without_url(config, logger, monkeypatch):
    calls = []
    monkeypatch.setattr(notifier_module.requests, "post", lambda *a, **kw: calls.append(a))
    assert not SlackNotifier(config, logger).send_failure("실패")
    assert calls == []


def test_slack_failure_payload(config, logger, monkeypatch):
    config.slack_url = "https://hooks.slack.test/abc"
    posted = []

    def fake_post(url, json=None, timeout=None):
        posted.append((url, json))
        return FakeResponse()

    monkeypatch.setattr(notifier_module.requests, "post", fake_post)
    result = failed_result(make_context(kst(2025, 3, 3, 0, 0, 1)), retry_count=3, message="예약 실패")

    assert SlackNotifier(config, logger).send_result(result)
    url, payload = posted[0]
    assert url == "https://hooks.slack.test/abc"
    assert payload["attachments"][0]["title"] == "❌ 필라테스 예약 실패"
    assert "FAILED" in payload["attachments"][0]["text"]


def test_slack_request_errors_only_log(config, logger, monkeypatch):
    config.slack_url = "https://hooks.slack.test/abc"

    def boom(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(notifier_module.requests, "post", boom)
    assert not SlackNotifier(config, logger).send_failure("실패")
    assert "offline" in logger.get_buffer()


def test_waitlisted_result_uses_its_own_title(config, logger, monkeypatch):
    config.slack_url = "https://hooks.slack.test/abc"
    posted = []
    monkeypatch.setattr(
        notifier_module.requests, "post",
        lambda url, json=None, timeout=None: posted.append(json) or FakeResponse(),
    )
    result = outcome_result(
        make_context(kst(2025, 3, 3, 0, 0, 1)),
        BookingOutcome.waitlisted(),
        "09:30 수업 대기예약",
        retry_count=0,
        booking_success=True,
        is_waiting_reservation=True,
    )

    assert SlackNotifier(config, logger).send_result(result)
    assert posted[0]["attachments"][0]["title"] == "⏳ 필라테스 대기예약 등록"
