# services/status_store.py
"""日次ステータスと設定ドキュメントの保存先

日付(YYYY-MM-DD)ごとに1件の DailyLog を持つ。書き込みは常にマージ
（未指定のフィールドは保持）で、全置換はしない。
"""
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from services.errors import StoreError

logger = logging.getLogger(__name__)

PENDING = "PENDING"
DONE = "DONE"
SKIP = "SKIP"
FAILED = "FAILED"

WORK_LOCATION = "work_location"
LOCATION = "location"
SCHEDULE = "schedule"

DEFAULT_CRON = "0 9 * * *"
DEFAULT_GEO = {"latitude": 28.5355, "longitude": 77.391, "accuracy": 100}


@dataclass
class DailyLog:
    status: str
    timestamp: Optional[str] = None
    empId: Optional[str] = None
    swipeTime: Optional[str] = None
    signOutTime: Optional[str] = None
    failureReason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "DailyLog":
        known = {k: data.get(k) for k in cls.__dataclass_fields__ if k != "status"}
        return cls(status=data.get("status", PENDING), **known)


@dataclass
class WorkLocationConfig:
    work_location: str = "Office"
    remarks: str = ""


@dataclass
class GeoConfig:
    latitude: float = DEFAULT_GEO["latitude"]
    longitude: float = DEFAULT_GEO["longitude"]
    accuracy: float = DEFAULT_GEO["accuracy"]
    enabled: bool = True


class StatusStoreInterface(ABC):
    """ステータスストアの抽象インターフェース"""

    @abstractmethod
    def get(self, day: str) -> Optional[dict]:
        """指定日の DailyLog（なければNone）"""
        ...

    @abstractmethod
    def upsert(self, day: str, fields: dict) -> None:
        """指定日の DailyLog にフィールドをマージする（失敗時 StoreError）"""
        ...

    @abstractmethod
    def get_config(self, name: str) -> Optional[dict]:
        """設定ドキュメント（なければNone）"""
        ...

    @abstractmethod
    def set_config(self, name: str, document: dict) -> None:
        ...


class YamlStatusStore(StatusStoreInterface):
    """ローカルYAMLファイルによるストア（Firestore未設定時のフォールバック）"""

    def __init__(self, path: str = ".state/daily_logs.yaml"):
        self._path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict:
        if not self._path.exists():
            return {"daily_logs": {}, "config": {}}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Could not read {self._path}: {e}") from e
        data.setdefault("daily_logs", {})
        data.setdefault("config", {})
        return data

    def _save(self, data: dict) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, allow_unicode=True, sort_keys=True)
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Could not write {self._path}: {e}") from e

    def get(self, day: str) -> Optional[dict]:
        with self._lock:
            record = self._load()["daily_logs"].get(day)
        return dict(record) if record is not None else None

    def upsert(self, day: str, fields: dict) -> None:
        with self._lock:
            data = self._load()
            record = data["daily_logs"].setdefault(day, {})
            record.update(fields)
            self._save(data)

    def get_config(self, name: str) -> Optional[dict]:
        with self._lock:
            document = self._load()["config"].get(name)
        return dict(document) if document is not None else None

    def set_config(self, name: str, document: dict) -> None:
        with self._lock:
            data = self._load()
            data["config"][name] = document
            self._save(data)


def _safe_config(store: StatusStoreInterface, name: str) -> Optional[dict]:
    try:
        return store.get_config(name)
    except StoreError as e:
        logger.warning("設定 %s を取得できません: %s", name, e)
        return None


def load_work_location(store: StatusStoreInterface) -> WorkLocationConfig:
    """勤務場所設定（なければ Office / 備考なし）"""
    data = _safe_config(store, WORK_LOCATION)
    if not data:
        return WorkLocationConfig()
    return WorkLocationConfig(
        work_location=data.get("workLocation") or "Office",
        remarks=data.get("remarks") or "",
    )


def load_geo(store: StatusStoreInterface) -> GeoConfig:
    """GPS設定（なし・無効の場合は既定座標）"""
    data = _safe_config(store, LOCATION)
    if data and data.get("enabled") is not False:
        return GeoConfig(
            latitude=data.get("latitude") or DEFAULT_GEO["latitude"],
            longitude=data.get("longitude") or DEFAULT_GEO["longitude"],
            accuracy=data.get("accuracy") or DEFAULT_GEO["accuracy"],
        )
    return GeoConfig()


def load_schedule_cron(store: StatusStoreInterface, fallback: str = DEFAULT_CRON) -> str:
    data = _safe_config(store, SCHEDULE)
    if data and data.get("cron"):
        return data["cron"]
    return fallback


def status_for_today(store: StatusStoreInterface, day: str) -> dict:
    """当日の記録（なければ PENDING）"""
    try:
        record = store.get(day)
    except StoreError as e:
        logger.warning("当日の記録を取得できません: %s", e)
        record = None
    if not record:
        return {"date": day, "status": PENDING}
    return {"date": day, **record}


def seed_defaults(store: StatusStoreInterface) -> list[str]:
    """既定の設定ドキュメントを作成する（既存のものは上書きしない）"""
    now = datetime.now().isoformat()
    defaults = {
        SCHEDULE: {
            "cron": DEFAULT_CRON,
            "description": "Daily automation at 9:00 AM",
            "enabled": True,
        },
        LOCATION: {**DEFAULT_GEO, "enabled": True},
        WORK_LOCATION: {"workLocation": "Office", "remarks": ""},
    }
    created = []
    for name, document in defaults.items():
        if store.get_config(name) is None:
            store.set_config(name, {**document, "createdAt": now, "updatedAt": now})
            created.append(name)
            logger.info("既定の設定 %s を作成しました", name)
    return created
