# graph/nodes/reconcile_node.py
from graph.state import SwipeState
from services.status_reconciler import RunOutcome


async def reconcile_node(state: SwipeState, reconciler=None) -> dict:
    """結果を日次ステータスへ書き込むノード"""
    if state["has_in_event"] and state["action_report"] is None:
        # 打刻済み: 操作はせず履歴の時刻で DONE にする
        reconciler.record_done(state["today"], state["event_time"], action=state["action"])
        return {"outcome": RunOutcome.ALREADY_DONE.value, "swipe_time": state["event_time"]}

    reconciler.record_done(state["today"], state["swipe_time"], action=state["action"])
    return {"outcome": RunOutcome.COMPLETED.value}
