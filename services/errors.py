from typing import Optional

# Playwrightが文書破棄時に返すエラーメッセージの断片
_TEARDOWN_MARKERS = (
    "Execution context was destroyed",
    "Target closed",
    "Target page, context or browser has been closed",
    "not attached to the DOM",
    "Frame was detached",
    "Cannot find context with specified id",
)


class SwipeAgentError(Exception):
    """打刻エージェントの基底例外"""


class ConfigurationError(SwipeAgentError):
    """認証情報・設定の不足（リトライ不可）"""


class AuthenticationError(SwipeAgentError):
    """全ログイン戦略が失敗した"""


class LoginStrategyError(SwipeAgentError):
    """単一のログイン戦略の失敗（次の戦略へ移行する）"""


class ElementNotFoundError(SwipeAgentError):
    """必須の要素が待機上限内に現れなかった"""


class LocationSelectionError(ElementNotFoundError):
    """勤務場所の選択肢が一致しなかった"""

    def __init__(self, target: str, observed_options: list[str]):
        self.target = target
        self.observed_options = list(observed_options)
        available = ", ".join(self.observed_options) or "(none)"
        super().__init__(
            f'Failed to select location: "{target}". Available: {available}'
        )


class VerificationError(SwipeAgentError):
    """打刻後に反対側のボタンが確認できなかった"""


class StoreError(SwipeAgentError):
    """ステータスストアへの書き込み失敗"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


def is_navigation_teardown(exc: BaseException) -> bool:
    """ナビゲーションによる文書破棄が原因の例外かどうか"""
    message = str(exc)
    return any(marker in message for marker in _TEARDOWN_MARKERS)
