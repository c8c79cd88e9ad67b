# graph/nodes/action_node.py
from dataclasses import asdict

from graph.state import SwipeState


async def action_node(state: SwipeState, session=None, executor=None, work_location=None) -> dict:
    """Sign In / Sign Out を実行するノード"""
    report = await executor.execute(session.page, state["action"], work_location)
    return {"action_report": asdict(report)}
