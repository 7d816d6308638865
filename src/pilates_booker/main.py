#!/usr/bin/env python3
"""
Main entry point for the Pilates class booking bot.

Usage:
    python -m pilates_booker.main [--test] [--force] [--immediate]

Environment Variables:
    PILATES_USERNAME: member name (required)
    PILATES_PASSWORD: member number (required)
    EXECUTION_MODE: normal / forced / test / immediate
    TARGET_TIME: booking open time in KST, HH:MM[:SS] (default 00:00:00)
    MAX_WAIT_MINUTES: longest precise wait before giving up on it (default 10)
    MAX_RETRIES: number of attempts (default 3)
    SLACK_URL: (Optional) Slack webhook URL for notifications
"""
import argparse
import random
import sys
import time
from datetime import datetime
from typing import Callable, ContextManager, Optional, Sequence

from .browser import open_session
from .clock import ExecutionContext, day_name, now_kst
from .config import Config, MODE_FORCED, MODE_IMMEDIATE, MODE_TEST, get_config
from .notifier import Logger, SlackNotifier, log_file_for
from .page import PageDriver
from .results import ResultRecorder, weekend_skip_result
from .retry import RetryController
from .scheduler import PreciseWaiter


# 자정 직후 동시 접속 분산 (0~3초)
MIDNIGHT_SPREAD_MINUTES = 5
MIDNIGHT_SPREAD_MAX_SECONDS = 3.0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='필라테스 09:30 수업 자동 예약 봇')
    parser.add_argument('--test', action='store_true', help='테스트 모드 (즉시 실행, 실제 예약하지 않음)')
    parser.add_argument('--force', action='store_true', help='요일과 관계없이 실행')
    parser.add_argument('--immediate', action='store_true', help='목표 시각 대기 없이 즉시 실행')
    return parser.parse_args(argv)


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> None:
    if args.test:
        config.mode = MODE_TEST
    elif args.force:
        config.mode = MODE_FORCED
    elif args.immediate:
        config.mode = MODE_IMMEDIATE


def spread_after_midnight(
    start: datetime,
    logger: Logger,
    sleep: Callable[[float], None],
    rng: random.Random,
) -> float:
    """Random 0-3s pause when starting right after midnight, to spread logins."""
    if start.hour != 0 or start.minute >= MIDNIGHT_SPREAD_MINUTES:
        return 0.0
    delay = rng.uniform(0, MIDNIGHT_SPREAD_MAX_SECONDS)
    logger.info(f"⏱️ 동시접속 분산을 위한 랜덤 대기: {delay * 1000:.0f}ms")
    sleep(delay)
    return delay


def main(
    argv: Optional[Sequence[str]] = None,
    session_factory: Optional[Callable[[], ContextManager[PageDriver]]] = None,
    clock: Callable[[], datetime] = now_kst,
    sleep: Callable[[float], None] = time.sleep,
    rng: Optional[random.Random] = None,
    result_dir: str = ".",
) -> int:
    """
    Main function to run the booking bot.

    Returns:
        Exit code (0 for success or weekend skip, 1 for failure)
    """
    args = parse_args(argv)
    rng = rng or random.Random()

    # 1. Load configuration (자격 증명 없으면 아무것도 하지 않고 종료)
    try:
        config = get_config()
        apply_cli_overrides(config, args)
    except ValueError as e:
        Logger().info(f"❌ 설정 오류: {e}")
        return 1

    logger = Logger(log_file=log_file_for(config.is_test_mode), debug=config.debug)
    notifier = SlackNotifier(config, logger)

    try:
        context = ExecutionContext.from_config(config, clock())
        recorder = ResultRecorder.for_mode(context.is_test, directory=result_dir, logger=logger)
        target = context.target

        logger.info(f"=== 예약 시작: {context.now.strftime('%Y-%m-%d %H:%M:%S')} (KST) ===")
        logger.info(f"📅 예약 대상 날짜: {target.year}년 {target.month}월 {target.day}일 ({target.day_name})")
        logger.info(f"📆 오늘 요일: {day_name(context.current_weekday)} / 실행 모드: {context.mode.value}")

        # 2. 요일 확인 (오늘 기준: 금/토 실행은 7일 뒤가 주말)
        if not context.should_run():
            logger.info(f"🚫 {day_name(context.current_weekday)} 실행 - 7일 뒤 주말({target.day_name})은 예약하지 않습니다.")
            recorder.write(weekend_skip_result(context, clock()))
            logger.info("✅ 주말 스킵 완료")
            return 0

        logger.info(f"✅ 평일({target.day_name}) 확인 - 예약 진행")
        if context.is_test:
            logger.info("⚠️ 테스트 모드로 실행 중 (실제 예약하지 않음)")

        # 3. 목표 시각까지 대기
        waiter = PreciseWaiter(logger, clock=clock, sleep=sleep)
        report = waiter.wait_until(context.target_time, context.max_wait_minutes, immediate=context.immediate)
        if report.waited > 0:
            context = context.rebased(report.actual_start)
            if context.target != target:
                target = context.target
                logger.info(f"📅 자정 경과 - 예약 대상 날짜 갱신: {target.year}년 {target.month}월 {target.day}일")

        spread_after_midnight(report.actual_start, logger, sleep, rng)

        # 4. 예약 시도 (시도마다 새 브라우저)
        if session_factory is None:
            session_factory = lambda: open_session(config, logger)  # noqa: E731
        controller = RetryController(config, context, logger, session_factory, sleep=sleep, rng=rng)
        result = controller.run(waited_seconds=report.waited)

        # 5. 결과 저장 및 알림
        recorder.write(result)
        notifier.send_result(result)

        if result.is_success:
            logger.info(f"✅ 예약 종료: {result.status.value}")
        else:
            logger.info("❌ 예약 실패")
        return result.exit_code

    except Exception as e:
        logger.info(f"💥 예외 발생: {e}")
        notifier.send_failure(f"예약 봇 실행 중 예외 발생: {e}")
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
