"""greytHR 打刻エージェント - エントリーポイント"""
import argparse
import asyncio
import json
import logging
import logging.config
import os
import signal
import sys
import time

from dotenv import load_dotenv

from services.attendance_engine import AttendanceEngine, RunResult
from services.config_loader import load_config
from services.errors import ConfigurationError, StoreError
from services.login_strategies import Credentials
from services.slack_client import SlackNotifier, ConsoleNotifier
from services.status_reconciler import RunOutcome
from services.status_store import (
    YamlStatusStore,
    load_schedule_cron,
    seed_defaults,
    status_for_today,
)
from services.swipe_executor import SIGN_IN, SIGN_OUT
from schedulers.scheduler import AttendanceScheduler

logger = logging.getLogger("swipe_agent")

NOTIFY_TITLE = "GreytHR Automation"

# RunOutcome → 日次ステータス
_STATUS_BY_OUTCOME = {
    RunOutcome.COMPLETED: "DONE",
    RunOutcome.ALREADY_DONE: "DONE",
    RunOutcome.SKIPPED: "SKIP",
    RunOutcome.PENDING: "PENDING",
    RunOutcome.FAILED: "ERROR",
}


def configure_logging(config: dict) -> None:
    """logging セクションを dictConfig で適用する"""
    log_config = config.get("logging", {})
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    }
    if log_config.get("file"):
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": log_config["file"],
            "encoding": "utf-8",
        }
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"}
            },
            "handlers": handlers,
            "root": {"level": log_config.get("level", "INFO"), "handlers": list(handlers)},
        }
    )


def create_store(config: dict):
    """設定に基づいてステータスストアを生成"""
    store_config = config["store"]
    if store_config.get("backend") == "firestore":
        from services.firestore_store import FirestoreStatusStore
        return FirestoreStatusStore(
            service_account_path=os.getenv(
                "FIREBASE_SERVICE_ACCOUNT", store_config["service_account_path"]
            )
        )
    return YamlStatusStore(store_config["local_path"])


def create_services(config: dict):
    """設定に基づいてサービスインスタンスを生成"""
    load_dotenv()

    store = create_store(config)

    # Slack通知
    slack_config = config["slack"]
    slack_token = os.getenv("SLACK_BOT_TOKEN", "")
    slack_channel = os.getenv("SLACK_NOTIFY_CHANNEL", slack_config.get("notify_channel", ""))
    if slack_config["enabled"] and slack_token:
        notifier = SlackNotifier(token=slack_token, channel=slack_channel)
    else:
        notifier = ConsoleNotifier()

    credentials = Credentials(
        emp_id=os.getenv("EMP_ID", ""),
        password=os.getenv("PASSWORD", ""),
        base_url=os.getenv("GREYTHR_URL", ""),
    )
    engine = AttendanceEngine(credentials, store, config)

    return store, notifier, engine


def run_check(engine, notifier, force: bool = False, action: str = SIGN_IN) -> dict:
    """1回分の打刻を実行し、構造化した結果を返す（例外は送出しない）"""
    try:
        result = asyncio.run(engine.run(force=force, action=action))
    except Exception as e:
        logger.error("打刻タスクが失敗しました: %s", e)
        result = RunResult(RunOutcome.FAILED, reason=str(e), action=action, forced=force)

    if result.outcome == RunOutcome.FAILED:
        message = f"Automation failed: {result.reason}"
    elif result.outcome == RunOutcome.ALREADY_DONE:
        message = "Swipe was already completed today. No action needed."
    elif result.outcome == RunOutcome.SKIPPED:
        message = "Today is skipped as per config."
    elif result.outcome == RunOutcome.PENDING:
        message = result.reason
    elif force:
        message = "Automation forced to run (bypassed DONE status)."
    else:
        verb = "Sign-out" if action == SIGN_OUT else "Swipe-in"
        message = f"{verb} completed successfully ({result.swipe_time})."

    if result.outcome != RunOutcome.FAILED:
        logger.info(message)
    notifier.notify(NOTIFY_TITLE, message)
    return {
        "success": result.outcome != RunOutcome.FAILED,
        "message": message,
        "already_done": result.outcome == RunOutcome.ALREADY_DONE,
        "status": _STATUS_BY_OUTCOME.get(result.outcome, "DONE"),
        "forced": force,
    }


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="greytHR attendance swipe agent")
    parser.add_argument("--config", default="config.yaml", help="設定ファイル")
    parser.add_argument("--force", action="store_true", help="打刻済みでも再実行する")
    parser.add_argument("--sign-out", action="store_true", help="サインアウトを実行する")
    parser.add_argument("--daemon", action="store_true", help="cron設定に従って常駐実行する")
    parser.add_argument("--status", action="store_true", help="本日のステータスを表示する")
    parser.add_argument("--seed", action="store_true", help="既定の設定ドキュメントを作成する")
    return parser.parse_args(argv)


def run_daemon(store, notifier, engine, config: dict, action: str) -> int:
    """スケジューラで常駐実行する"""
    cron = load_schedule_cron(store, config["scheduler"]["cron"])

    def swipe_job():
        run_check(engine, notifier, force=False, action=action)

    scheduler = AttendanceScheduler(
        cron=cron, job_func=swipe_job, timezone=config["scheduler"].get("timezone")
    )
    scheduler.start()
    logger.info("スケジュール %s で打刻を開始します", cron)

    # シグナルハンドリング
    def shutdown(signum, frame):
        logger.info("停止中...")
        scheduler.stop()
        logger.info("停止しました")
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    logger.info("Ctrl+Cで停止します")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        shutdown(None, None)
    return 0


def main(argv=None) -> int:
    """メイン起動処理（0: 成功・打刻済み, 1: 失敗）"""
    args = parse_args(argv)
    config = load_config(args.config)
    configure_logging(config)

    try:
        store, notifier, engine = create_services(config)
    except ConfigurationError as e:
        logger.error("設定エラー: %s", e)
        return 1

    action = SIGN_OUT if args.sign_out else config["attendance"].get("action", SIGN_IN)
    force = args.force or os.getenv("FORCE", "").lower() in ("1", "true")
    if force:
        logger.info("強制モードが有効です")

    try:
        if args.seed:
            seed_defaults(store)
            return 0
        if args.status:
            print(json.dumps(status_for_today(store, engine.reconciler.today()), ensure_ascii=False))
            return 0
    except StoreError as e:
        logger.error("ストアエラー: %s", e)
        return 1
    if args.daemon:
        return run_daemon(store, notifier, engine, config, action)

    result = run_check(engine, notifier, force=force, action=action)
    return 0 if result["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
