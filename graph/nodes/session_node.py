# graph/nodes/session_node.py
from services import waits
from services.page_selectors import WAIT_TIMES
from services.swipe_probe import wait_for_attendance_widget
from graph.state import SwipeState


async def session_node(state: SwipeState, session=None, establisher=None) -> dict:
    """ログインしてダッシュボードの勤怠ウィジェットが出るまで待つノード"""
    strategy = await establisher.establish(session.page)
    await waits.pause(WAIT_TIMES["dashboard_settle"])
    await wait_for_attendance_widget(session.page)
    return {"login_strategy": strategy}
