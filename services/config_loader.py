import os
import copy
import yaml
from pathlib import Path

DEFAULT_CONFIG = {
    "browser": {
        "headless": True,
        "timeout_ms": 60000,
        "user_agent": "",
        "viewport": {"width": 1920, "height": 1080},
    },
    "login": {
        "authenticated_url_markers": ["/dashboard", "/home"],
        "navigation_ceiling_ms": 20000,
        "input_wait_ms": 15000,
        "type_delay_ms": 50,
    },
    "attendance": {
        "cutover_date": "2025-11-20",
        "action": "sign_in",
    },
    "store": {
        "backend": "local",
        "local_path": ".state/daily_logs.yaml",
        "service_account_path": "serviceAccountKey.json",
    },
    "slack": {
        "enabled": True,
        "notify_channel": "",
    },
    "scheduler": {
        "cron": "0 9 * * *",
        "timezone": None,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """ベース設定にオーバーライドをマージする"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _env_flag(name: str):
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true", "yes")


def load_config(path: str = "config.yaml") -> dict:
    """YAML設定ファイルをロードし、デフォルト設定とマージして返す

    環境変数 HEADLESS が指定されていれば browser.headless を上書きする。
    """
    config_path = Path(path)
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        config = _deep_merge(config, user_config)

    headless = _env_flag("HEADLESS")
    if headless is not None:
        config["browser"]["headless"] = headless
    return config
