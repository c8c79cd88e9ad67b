# services/firestore_store.py
from pathlib import Path
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gcp_exceptions

from services.errors import ConfigurationError, StoreError
from services.status_store import StatusStoreInterface

DAILY_LOGS = "daily_logs"
CONFIG = "config"


def _store_error(action: str, e: Exception) -> StoreError:
    code = getattr(e, "grpc_status_code", None) or getattr(e, "code", None)
    name = getattr(code, "name", None) or type(e).__name__
    return StoreError(f"Firestore {action} failed: {e}", code=name)


class FirestoreStatusStore(StatusStoreInterface):
    """Firestoreによるストア（daily_logs / config コレクション）"""

    def __init__(self, service_account_path: str = "serviceAccountKey.json", client=None):
        self._db = client if client is not None else self._init_client(service_account_path)

    @staticmethod
    def _init_client(service_account_path: str):
        if not Path(service_account_path).exists():
            raise ConfigurationError(
                f"{service_account_path} not found. Place the Firebase service account key there."
            )
        try:
            app = firebase_admin.get_app()
        except ValueError:
            app = firebase_admin.initialize_app(credentials.Certificate(service_account_path))
        return firestore.client(app)

    def _document(self, collection: str, name: str):
        return self._db.collection(collection).document(name)

    def _read(self, collection: str, name: str) -> Optional[dict]:
        try:
            snapshot = self._document(collection, name).get()
        except gcp_exceptions.GoogleAPIError as e:
            raise _store_error("read", e) from e
        return snapshot.to_dict() if snapshot.exists else None

    def _merge(self, collection: str, name: str, fields: dict, merge: bool = True) -> None:
        try:
            self._document(collection, name).set(fields, merge=merge)
        except gcp_exceptions.GoogleAPIError as e:
            raise _store_error("write", e) from e

    def get(self, day: str) -> Optional[dict]:
        return self._read(DAILY_LOGS, day)

    def upsert(self, day: str, fields: dict) -> None:
        self._merge(DAILY_LOGS, day, fields)

    def get_config(self, name: str) -> Optional[dict]:
        return self._read(CONFIG, name)

    def set_config(self, name: str, document: dict) -> None:
        self._merge(CONFIG, name, document, merge=False)
