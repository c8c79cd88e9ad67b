# services/attendance_engine.py
"""1回分の打刻実行

初日前チェック → 打刻済み/SKIP確認 → 認証情報検証 → ブラウザ起動 →
グラフ実行（ログイン→確認→打刻→検証→反映）→ ブラウザ終了。
例外は FAILED を記録してから呼び出し元へ送出する。
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from graph.graph import build_graph
from graph.state import initial_state
from services.browser_session import BrowserSession
from services.errors import ConfigurationError, StoreError
from services.login_strategies import Credentials, SessionEstablisher, default_strategies
from services.status_reconciler import DEFAULT_CUTOVER_DATE, RunOutcome, StatusReconciler
from services.status_store import (
    DONE,
    DailyLog,
    SKIP,
    StatusStoreInterface,
    load_geo,
    load_work_location,
)
from services.swipe_executor import SIGN_IN, SIGN_OUT, SwipeExecutor
from services.swipe_probe import AttendanceProbe
from services.swipe_verifier import SwipeVerifier

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    outcome: RunOutcome
    swipe_time: Optional[str] = None
    reason: Optional[str] = None
    action: str = SIGN_IN
    forced: bool = False


class AttendanceEngine:
    """greytHRの打刻を1回実行する"""

    def __init__(
        self,
        credentials: Credentials,
        store: StatusStoreInterface,
        config: dict,
        session_factory: Callable = BrowserSession,
        graph_builder: Callable = build_graph,
    ):
        self._credentials = credentials
        self._store = store
        self._config = config
        self._session_factory = session_factory
        self._graph_builder = graph_builder
        self._reconciler = StatusReconciler(
            store,
            emp_id=credentials.emp_id,
            cutover_date=config.get("attendance", {}).get("cutover_date", DEFAULT_CUTOVER_DATE),
        )

    @property
    def reconciler(self) -> StatusReconciler:
        return self._reconciler

    def validate_credentials(self) -> None:
        missing = self._credentials.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing credentials: {', '.join(missing)} must be set in .env file"
            )
        logger.info("認証情報を読み込みました（社員ID: %s）", self._credentials.emp_id)

    def _existing_result(self, day: str, action: str) -> Optional[RunResult]:
        """当日の記録から早期終了できるか判定する"""
        try:
            record = self._store.get(day)
        except StoreError as e:
            logger.warning("当日の記録を確認できません: %s", e)
            return None
        if not record:
            return None

        log = DailyLog.from_dict(record)
        if log.status == SKIP:
            logger.info("本日は SKIP のため打刻しません")
            return RunResult(RunOutcome.SKIPPED, action=action)
        if action == SIGN_OUT and log.signOutTime:
            logger.info("本日のサインアウトは記録済みです")
            return RunResult(RunOutcome.ALREADY_DONE, log.signOutTime, action=action)
        if action == SIGN_IN and log.status == DONE:
            logger.info("本日は DONE 記録済みです")
            return RunResult(RunOutcome.ALREADY_DONE, log.swipeTime, action=action)
        return None

    async def run(self, force: bool = False, action: str = SIGN_IN) -> RunResult:
        day = self._reconciler.today()

        if self._reconciler.is_before_cutover(day):
            self._reconciler.record_pending_cutover(day)
            return RunResult(
                RunOutcome.PENDING, reason=self._reconciler.cutover_message, action=action
            )

        if force:
            logger.info("強制モード: 打刻済みチェックをスキップします")
        else:
            existing = self._existing_result(day, action)
            if existing is not None:
                return existing

        try:
            self.validate_credentials()
            return await self._run_session(day, action, force)
        except Exception as e:
            logger.error("打刻処理に失敗しました: %s", e)
            self._reconciler.record_failure(day, str(e))
            raise

    async def _run_session(self, day: str, action: str, force: bool) -> RunResult:
        work_location = load_work_location(self._store) if action == SIGN_IN else None
        geo = load_geo(self._store)

        async with self._session_factory(self._config.get("browser", {}), geo) as session:
            login_config = self._config.get("login", {})
            graph = self._graph_builder(
                session=session,
                establisher=SessionEstablisher(
                    self._credentials,
                    default_strategies(login_config),
                    navigation_timeout_ms=self._config.get("browser", {}).get("timeout_ms", 60000),
                ),
                probe=AttendanceProbe(),
                executor=SwipeExecutor(),
                verifier=SwipeVerifier(),
                reconciler=self._reconciler,
                work_location=work_location,
            )
            final = await graph.ainvoke(initial_state(day, action=action, force=force))

        outcome = RunOutcome(final["outcome"])
        logger.info("打刻処理が完了しました: %s (%s)", outcome.value, final.get("swipe_time"))
        return RunResult(outcome, swipe_time=final.get("swipe_time"), action=action, forced=force)
