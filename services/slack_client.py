import logging

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """ログ出力による通知（フォールバック用）"""

    def send(self, message: str) -> bool:
        logger.info("[打刻通知] %s", message)
        return True

    def notify(self, title: str, body: str) -> bool:
        return self.send(f"{title}: {body}")


class SlackNotifier:
    """Slack APIによる通知サービス"""

    def __init__(self, token: str, channel: str):
        self._channel = channel
        self._client = None
        self._fallback = ConsoleNotifier()

        if token:
            try:
                from slack_sdk import WebClient
                self._client = WebClient(token=token)
            except Exception as e:
                logger.warning("Slackクライアントを初期化できません: %s", e)

    def send(self, message: str) -> bool:
        """メッセージ送信（失敗時はログのみ）"""
        if self._client is None:
            return self._fallback.send(message)

        try:
            self._client.chat_postMessage(channel=self._channel, text=message)
            return True
        except Exception as e:
            logger.warning("Slack通知に失敗しました: %s", e)
            return False

    def notify(self, title: str, body: str) -> bool:
        """タイトル付き通知（呼び出し元へ例外は送出しない）"""
        return self.send(f"*{title}*\n{body}")
