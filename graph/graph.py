# graph/graph.py
from langgraph.graph import StateGraph, END
from graph.state import SwipeState


def route_after_session(state: SwipeState) -> str:
    if state["force"] or state["action"] == "sign_out":
        return "execute"
    return "probe"


def route_after_probe(state: SwipeState) -> str:
    if state["has_in_event"]:
        return "reconcile"
    return "execute"


def build_graph(
    session=None,
    establisher=None,
    probe=None,
    executor=None,
    verifier=None,
    reconciler=None,
    work_location=None,
):
    """LangGraphのグラフを構築して返す

    各ノード関数はサービス依存を持つため、functools.partialでラップして
    LangGraphが期待する (state) -> dict シグネチャに合わせる。
    流れ: ログイン → 打刻済み確認 → 打刻 → 検証 → 時刻取得 → ステータス反映
    """
    from functools import partial
    from graph.nodes.session_node import session_node
    from graph.nodes.probe_node import probe_node
    from graph.nodes.action_node import action_node
    from graph.nodes.verify_node import verify_node, capture_time_node
    from graph.nodes.reconcile_node import reconcile_node

    workflow = StateGraph(SwipeState)

    workflow.add_node(
        "establish_session",
        partial(session_node, session=session, establisher=establisher),
    )
    workflow.add_node("probe", partial(probe_node, session=session, probe=probe))
    workflow.add_node(
        "execute",
        partial(action_node, session=session, executor=executor, work_location=work_location),
    )
    workflow.add_node("verify", partial(verify_node, session=session, verifier=verifier))
    workflow.add_node(
        "capture_time",
        partial(capture_time_node, session=session, probe=probe, reconciler=reconciler),
    )
    workflow.add_node("reconcile", partial(reconcile_node, reconciler=reconciler))

    workflow.set_entry_point("establish_session")

    workflow.add_conditional_edges(
        "establish_session",
        route_after_session,
        {"probe": "probe", "execute": "execute"},
    )
    workflow.add_conditional_edges(
        "probe",
        route_after_probe,
        {"reconcile": "reconcile", "execute": "execute"},
    )

    workflow.add_edge("execute", "verify")
    workflow.add_edge("verify", "capture_time")
    workflow.add_edge("capture_time", "reconcile")
    workflow.add_edge("reconcile", END)

    return workflow.compile()
