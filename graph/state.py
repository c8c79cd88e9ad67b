from typing import TypedDict, Optional


class SwipeState(TypedDict):
    today: str                          # YYYY-MM-DD
    action: str                         # "sign_in" / "sign_out"
    force: bool                         # 打刻済みチェックを無視する
    login_strategy: Optional[str]       # 成功したログイン戦略
    has_in_event: bool                  # 打刻履歴に当日の打刻あり
    event_time: Optional[str]           # 履歴から取得した打刻時刻
    action_report: Optional[dict]       # 打刻操作の結果
    verified: bool                      # 反対側のボタンを確認済み
    swipe_time: Optional[str]           # 記録する打刻時刻
    outcome: Optional[str]              # RunOutcome の値
    error_message: Optional[str]        # エラー詳細
    extra: dict                         # 任意の追加データ


def initial_state(today: str, action: str = "sign_in", force: bool = False) -> SwipeState:
    return {
        "today": today,
        "action": action,
        "force": force,
        "login_strategy": None,
        "has_in_event": False,
        "event_time": None,
        "action_report": None,
        "verified": False,
        "swipe_time": None,
        "outcome": None,
        "error_message": None,
        "extra": {},
    }
