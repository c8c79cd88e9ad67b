# services/status_reconciler.py
"""打刻結果を日次ステータス(DailyLog)へ反映する"""
import logging
from datetime import date, datetime
from enum import Enum
from typing import Optional

from services.errors import StoreError
from services.status_store import DONE, FAILED, PENDING, StatusStoreInterface

logger = logging.getLogger(__name__)

DEFAULT_CUTOVER_DATE = "2025-11-20"


class RunOutcome(str, Enum):
    ALREADY_DONE = "AlreadyDone"
    COMPLETED = "Completed"
    FAILED = "Failed"
    SKIPPED = "Skipped"
    PENDING = "Pending"


def _now() -> datetime:
    """テスト時にモック可能な現在時刻取得"""
    return datetime.now()


def cutover_message(cutover_date: str) -> str:
    readable = date.fromisoformat(cutover_date).strftime("%B %d, %Y")
    return f"Data not available - date is before initial day ({readable})"


class StatusReconciler:
    """日付単位のステータス書き込み（常にマージ）

    ストアへの書き込み失敗はログに残して握りつぶし、実行結果を上書きしない。
    """

    def __init__(
        self,
        store: StatusStoreInterface,
        emp_id: str = "",
        cutover_date: str = DEFAULT_CUTOVER_DATE,
    ):
        self._store = store
        self._emp_id = emp_id
        self._cutover_date = cutover_date

    @property
    def cutover_message(self) -> str:
        return cutover_message(self._cutover_date)

    def today(self) -> str:
        return _now().date().isoformat()

    def wall_clock_time(self) -> str:
        return _now().strftime("%H:%M:%S")

    def is_before_cutover(self, day: str) -> bool:
        return day < self._cutover_date

    def record(self, day: str, status: str, **fields) -> bool:
        """ステータスをマージで書き込む。成功したらTrue"""
        if self.is_before_cutover(day):
            status = PENDING
            fields = {"message": self.cutover_message}

        update = {
            "status": status,
            "timestamp": _now().isoformat(),
            "empId": self._emp_id,
        }
        update.update({k: v for k, v in fields.items() if v is not None})

        try:
            self._store.upsert(day, update)
        except StoreError as e:
            self._log_store_error(e)
            return False
        logger.info("%s のステータスを %s に更新しました", day, status)
        return True

    def record_pending_cutover(self, day: str) -> bool:
        logger.info("%s は初日(%s)より前のため PENDING とします", day, self._cutover_date)
        return self.record(day, PENDING, message=self.cutover_message)

    def record_done(self, day: str, swipe_time: Optional[str], action: str = "sign_in") -> bool:
        field = "signOutTime" if action == "sign_out" else "swipeTime"
        if swipe_time:
            logger.info("打刻時刻を記録します: %s", swipe_time)
        return self.record(day, DONE, **{field: swipe_time})

    def record_failure(self, day: str, reason: str) -> bool:
        logger.error("失敗理由を記録します: %s", reason)
        return self.record(day, FAILED, failureReason=reason)

    @staticmethod
    def _log_store_error(e: StoreError) -> None:
        logger.error("ステータスの書き込みに失敗しました (code=%s): %s", e.code or "UNKNOWN", e)
        code = (e.code or "").upper()
        if "NOT_FOUND" in code or "NOTFOUND" in code:
            logger.error(
                "Firestore データベースが未作成か、データベースIDが誤っている可能性があります"
            )
        elif "PERMISSION" in code or "FORBIDDEN" in code:
            logger.error("サービスアカウントの権限を確認してください")
