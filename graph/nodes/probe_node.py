# graph/nodes/probe_node.py
from graph.state import SwipeState


async def probe_node(state: SwipeState, session=None, probe=None) -> dict:
    """打刻履歴から当日の出勤打刻を確認するノード"""
    result = await probe.check(session.page, direction="IN")
    return {
        "has_in_event": result.has_in_event,
        "event_time": result.event_time,
    }
