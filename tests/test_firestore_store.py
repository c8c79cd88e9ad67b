import pytest
from unittest.mock import MagicMock, patch
from google.api_core import exceptions as gcp_exceptions

from services.errors import ConfigurationError, StoreError
from services.firestore_store import FirestoreStatusStore


def _client(snapshot_data=None):
    client = MagicMock()
    document = client.collection.return_value.document.return_value
    snapshot = document.get.return_value
    snapshot.exists = snapshot_data is not None
    snapshot.to_dict.return_value = snapshot_data
    return client, document


def test_get_reads_daily_log():
    client, _ = _client({"status": "DONE", "swipeTime": "09:01 AM"})
    store = FirestoreStatusStore(client=client)

    assert store.get("2025-12-01") == {"status": "DONE", "swipeTime": "09:01 AM"}
    client.collection.assert_called_with("daily_logs")
    client.collection.return_value.document.assert_called_with("2025-12-01")


def test_get_missing_document():
    client, _ = _client(None)
    assert FirestoreStatusStore(client=client).get("2025-12-01") is None


def test_upsert_merges():
    client, document = _client()
    FirestoreStatusStore(client=client).upsert("2025-12-01", {"status": "FAILED"})
    document.set.assert_called_once_with({"status": "FAILED"}, merge=True)


def test_config_documents():
    client, document = _client({"workLocation": "Office"})
    store = FirestoreStatusStore(client=client)

    assert store.get_config("work_location") == {"workLocation": "Office"}
    client.collection.assert_called_with("config")

    store.set_config("schedule", {"cron": "0 9 * * *"})
    document.set.assert_called_once_with({"cron": "0 9 * * *"}, merge=False)


def test_api_error_becomes_store_error():
    client, document = _client()
    document.set.side_effect = gcp_exceptions.NotFound("database (default) does not exist")

    with pytest.raises(StoreError) as exc_info:
        FirestoreStatusStore(client=client).upsert("2025-12-01", {"status": "DONE"})

    assert "NOT" in exc_info.value.code.upper()
    assert "does not exist" in str(exc_info.value)


def test_missing_key_file_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        FirestoreStatusStore(service_account_path=str(tmp_path / "missing.json"))


def test_initializes_app_once(tmp_path):
    key_file = tmp_path / "serviceAccountKey.json"
    key_file.write_text("{}", encoding="utf-8")

    with patch("services.firestore_store.firebase_admin") as admin, \
            patch("services.firestore_store.credentials") as creds, \
            patch("services.firestore_store.firestore") as fs:
        admin.get_app.side_effect = ValueError("no app")
        FirestoreStatusStore(service_account_path=str(key_file))

        creds.Certificate.assert_called_once_with(str(key_file))
        admin.initialize_app.assert_called_once_with(creds.Certificate.return_value)
        fs.client.assert_called_once_with(admin.initialize_app.return_value)
