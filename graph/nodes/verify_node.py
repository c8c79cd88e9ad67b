# graph/nodes/verify_node.py
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from graph.state import SwipeState
from services.page_selectors import LABELS, SELECTORS, WAIT_TIMES

logger = logging.getLogger(__name__)


async def verify_node(state: SwipeState, session=None, verifier=None) -> dict:
    """反対側のボタンで打刻成立を確認するノード（未確認なら VerificationError）"""
    await verifier.verify(session.page, state["action"])
    return {"verified": True}


async def capture_time_node(state: SwipeState, session=None, probe=None, reconciler=None) -> dict:
    """打刻履歴を再確認して記録する時刻を決めるノード（取れなければ現在時刻）"""
    page = session.page
    direction = "OUT" if state["action"] == "sign_out" else "IN"
    swipe_time = None
    try:
        await page.wait_for_selector(
            f'{SELECTORS["button_host"]}[name="{LABELS["view_swipes"]}"]',
            timeout=WAIT_TIMES["view_swipes_wait"],
        )
        result = await probe.check(page, direction=direction)
        swipe_time = result.event_time
    except PlaywrightTimeoutError:
        logger.warning("View Swipes ボタンが現れず、打刻時刻を取得できません")
    except PlaywrightError as e:
        # 検証済みの打刻は時刻が取れなくても成功のまま
        logger.warning("打刻時刻の取得中にエラー: %s", e)

    if not swipe_time:
        swipe_time = reconciler.wall_clock_time()
        logger.info("打刻時刻の代わりに現在時刻を使います: %s", swipe_time)
    return {"swipe_time": swipe_time}
