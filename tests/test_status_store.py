import pytest
import yaml
from unittest.mock import MagicMock

from services.errors import StoreError
from services.status_store import (
    DEFAULT_CRON,
    DONE,
    FAILED,
    LOCATION,
    PENDING,
    SCHEDULE,
    WORK_LOCATION,
    DailyLog,
    YamlStatusStore,
    load_geo,
    load_schedule_cron,
    load_work_location,
    seed_defaults,
    status_for_today,
)


@pytest.fixture
def store(tmp_path):
    return YamlStatusStore(str(tmp_path / "state" / "daily_logs.yaml"))


class TestYamlStatusStore:
    def test_missing_file_reads_as_empty(self, store):
        assert store.get("2025-12-01") is None
        assert store.get_config(WORK_LOCATION) is None

    def test_upsert_merges_fields(self, store):
        """後の書き込みが既存フィールドを消さないこと"""
        store.upsert("2025-12-01", {"status": FAILED, "failureReason": "timeout"})
        store.upsert("2025-12-01", {"status": DONE, "swipeTime": "09:01 AM"})

        record = store.get("2025-12-01")
        assert record == {"status": DONE, "failureReason": "timeout", "swipeTime": "09:01 AM"}

    def test_days_are_independent(self, store):
        store.upsert("2025-12-01", {"status": DONE})
        store.upsert("2025-12-02", {"status": FAILED})
        assert store.get("2025-12-01")["status"] == DONE
        assert store.get("2025-12-02")["status"] == FAILED

    def test_file_layout(self, store, tmp_path):
        store.upsert("2025-12-01", {"status": DONE})
        store.set_config(SCHEDULE, {"cron": "30 8 * * 1-5"})

        with open(tmp_path / "state" / "daily_logs.yaml", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        assert data == {
            "daily_logs": {"2025-12-01": {"status": DONE}},
            "config": {SCHEDULE: {"cron": "30 8 * * 1-5"}},
        }

    def test_set_config_replaces_document(self, store):
        store.set_config(WORK_LOCATION, {"workLocation": "Office", "remarks": "x"})
        store.set_config(WORK_LOCATION, {"workLocation": "Work from Home"})
        assert store.get_config(WORK_LOCATION) == {"workLocation": "Work from Home"}

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("daily_logs: [unclosed", encoding="utf-8")
        with pytest.raises(StoreError):
            YamlStatusStore(str(path)).get("2025-12-01")


def test_daily_log_from_dict():
    log = DailyLog.from_dict({"status": DONE, "swipeTime": "09:01 AM", "extra": 1})
    assert log.status == DONE
    assert log.swipeTime == "09:01 AM"
    assert log.failureReason is None
    assert DailyLog.from_dict({}).status == PENDING


class TestConfigLoaders:
    def test_work_location_defaults(self, store):
        config = load_work_location(store)
        assert config.work_location == "Office"
        assert config.remarks == ""

    def test_work_location_from_document(self, store):
        store.set_config(WORK_LOCATION, {"workLocation": "Work from Home", "remarks": "WFH"})
        config = load_work_location(store)
        assert config.work_location == "Work from Home"
        assert config.remarks == "WFH"

    def test_geo_defaults(self, store):
        geo = load_geo(store)
        assert (geo.latitude, geo.longitude, geo.accuracy) == (28.5355, 77.391, 100)

    def test_geo_from_document(self, store):
        store.set_config(LOCATION, {"latitude": 12.97, "longitude": 77.59, "accuracy": 50})
        geo = load_geo(store)
        assert (geo.latitude, geo.longitude, geo.accuracy) == (12.97, 77.59, 50)

    def test_disabled_geo_falls_back_to_default(self, store):
        store.set_config(LOCATION, {"latitude": 12.97, "longitude": 77.59, "enabled": False})
        assert load_geo(store).latitude == 28.5355

    def test_schedule_cron(self, store):
        assert load_schedule_cron(store) == DEFAULT_CRON
        assert load_schedule_cron(store, "15 9 * * *") == "15 9 * * *"
        store.set_config(SCHEDULE, {"cron": "30 8 * * 1-5"})
        assert load_schedule_cron(store) == "30 8 * * 1-5"

    def test_loader_survives_store_error(self):
        broken = MagicMock()
        broken.get_config.side_effect = StoreError("unavailable")
        assert load_work_location(broken).work_location == "Office"


def test_status_for_today(store):
    assert status_for_today(store, "2025-12-01") == {"date": "2025-12-01", "status": PENDING}
    store.upsert("2025-12-01", {"status": DONE, "swipeTime": "09:01 AM"})
    assert status_for_today(store, "2025-12-01") == {
        "date": "2025-12-01",
        "status": DONE,
        "swipeTime": "09:01 AM",
    }


def test_seed_defaults_keeps_existing_documents(store):
    store.set_config(WORK_LOCATION, {"workLocation": "Work from Home"})

    created = seed_defaults(store)

    assert created == [SCHEDULE, LOCATION]
    assert store.get_config(WORK_LOCATION) == {"workLocation": "Work from Home"}
    assert store.get_config(SCHEDULE)["cron"] == DEFAULT_CRON
    assert store.get_config(LOCATION)["enabled"] is True
    assert seed_defaults(store) == []
