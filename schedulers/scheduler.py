# schedulers/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from typing import Callable, Optional


class AttendanceScheduler:
    """APSchedulerによる定時実行管理（cron形式）"""

    def __init__(self, cron: str, job_func: Callable, timezone: Optional[str] = None):
        self._cron = cron
        self._job_func = job_func
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._job_func,
            trigger=CronTrigger.from_crontab(self._cron, timezone=timezone),
            id="attendance_swipe",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def start(self):
        """スケジューラ開始"""
        self._scheduler.start()

    def stop(self):
        """スケジューラ停止"""
        self._scheduler.shutdown(wait=False)
