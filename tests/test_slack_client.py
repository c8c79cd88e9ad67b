import logging
from unittest.mock import MagicMock
from services.slack_client import SlackNotifier, ConsoleNotifier


def test_console_notifier_send(caplog):
    """ConsoleNotifierがメッセージをログ出力すること"""
    notifier = ConsoleNotifier()
    with caplog.at_level(logging.INFO):
        result = notifier.send("テストメッセージ")
    assert result is True
    assert "テストメッセージ" in caplog.text


def test_console_notifier_notify(caplog):
    """タイトル付きでログ出力すること"""
    notifier = ConsoleNotifier()
    with caplog.at_level(logging.INFO):
        result = notifier.notify("GreytHR Automation", "Swipe-in completed")
    assert result is True
    assert "GreytHR Automation: Swipe-in completed" in caplog.text


def test_slack_notifier_send_success():
    """SlackNotifierがメッセージ送信に成功すること"""
    mock_client = MagicMock()
    mock_client.chat_postMessage.return_value = {"ok": True}

    notifier = SlackNotifier(token="xoxb-test", channel="C12345")
    notifier._client = mock_client

    result = notifier.notify("GreytHR Automation", "テスト通知")
    assert result is True
    mock_client.chat_postMessage.assert_called_once_with(
        channel="C12345", text="*GreytHR Automation*\nテスト通知"
    )


def test_slack_notifier_send_failure(caplog):
    """Slack API失敗時にFalseを返し、例外を送出しないこと"""
    mock_client = MagicMock()
    mock_client.chat_postMessage.side_effect = Exception("API Error")

    notifier = SlackNotifier(token="xoxb-test", channel="C12345")
    notifier._client = mock_client

    result = notifier.send("テスト通知")
    assert result is False
    assert "API Error" in caplog.text


def test_slack_notifier_fallback(caplog):
    """トークン未設定時はログ出力にフォールバックすること"""
    notifier = SlackNotifier(token="", channel="")
    with caplog.at_level(logging.INFO):
        result = notifier.send("フォールバックテスト")
    assert result is True
    assert "フォールバックテスト" in caplog.text
