# services/swipe_probe.py
"""打刻済みかどうかを「View Swipes」モーダルの表から判定する"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from services import waits
from services.errors import ElementNotFoundError
from services.page_selectors import LABELS, SELECTORS, SWIPE_TABLE_COLUMNS, WAIT_TIMES
from services.shadow_locator import (
    any_of,
    attendance_widget,
    attribute_is,
    find_control,
    press,
    query_first,
    read_text,
    text_contains,
)

logger = logging.getLogger(__name__)

DEBUG_SCREENSHOT = "screenshots/no-widget-debug.png"


@dataclass
class ProbeResult:
    has_in_event: bool
    event_time: Optional[str]


@dataclass
class SwipeRow:
    time: str
    direction: str


def pick_event(rows: list[SwipeRow], direction: str = "IN") -> Optional[SwipeRow]:
    """指定方向の打刻行を選ぶ（完全一致を優先し、なければ部分一致）

    INは最初の行、OUTは最後の行を採用する。
    """
    direction = direction.upper()
    exact = [r for r in rows if r.direction.strip().upper() == direction]
    partial = [r for r in rows if direction in r.direction.upper()]
    candidates = exact or partial
    if not candidates:
        return None
    return candidates[0] if direction == "IN" else candidates[-1]


async def read_swipe_rows(modal) -> list[SwipeRow]:
    """モーダル内の表を行ごとに読み取る"""
    rows = []
    for row in await modal.query_selector_all(SELECTORS["table_row"]):
        cells = await row.query_selector_all(SELECTORS["table_cell"])
        if len(cells) < 2:
            continue
        rows.append(
            SwipeRow(
                time=await read_text(cells[SWIPE_TABLE_COLUMNS["time"]]),
                direction=await read_text(cells[SWIPE_TABLE_COLUMNS["in_out"]]),
            )
        )
    return rows


view_swipes_control = any_of(
    attribute_is("name", LABELS["view_swipes"]),
    text_contains(LABELS["view_swipes"]),
)


async def wait_for_attendance_widget(page, timeout_ms: int = WAIT_TIMES["widget_wait"]) -> None:
    """勤怠ウィジェットの描画を待つ（現れなければ ElementNotFoundError）"""
    try:
        await page.wait_for_selector(SELECTORS["attendance_widget"], timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        logger.error("勤怠ウィジェットが%dms以内に見つかりません (URL: %s)", timeout_ms, page.url)
        await _save_debug_screenshot(page)
        raise ElementNotFoundError(
            f"Attendance widget ({SELECTORS['attendance_widget']}) not found on page"
        ) from e
    logger.info("勤怠ウィジェットを検出しました")
    await waits.pause(WAIT_TIMES["shadow_dom_init"])


async def _save_debug_screenshot(page) -> None:
    try:
        Path(DEBUG_SCREENSHOT).parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=DEBUG_SCREENSHOT)
        logger.info("デバッグ用スクリーンショットを保存しました: %s", DEBUG_SCREENSHOT)
    except (PlaywrightError, OSError) as e:
        logger.warning("スクリーンショットを保存できません: %s", e)


class AttendanceProbe:
    """打刻履歴モーダルを開いて当日の打刻を確認する（読み取り専用）"""

    async def check(self, page, direction: str = "IN") -> ProbeResult:
        logger.info("View Swipes で打刻状況を確認します")
        widget = await attendance_widget(page)
        trigger = await find_control(widget, view_swipes_control)
        if trigger is None:
            logger.info("View Swipes ボタンがありません（未打刻として扱います）")
            return ProbeResult(has_in_event=False, event_time=None)

        rows: list[SwipeRow] = []
        try:
            await press(trigger)
            await waits.pause(WAIT_TIMES["modal_appear"])
            modal = await page.wait_for_selector(
                SELECTORS["swipes_modal"], timeout=WAIT_TIMES["swipes_modal_wait"]
            )
            await waits.pause(WAIT_TIMES["table_render"])
            if modal is not None:
                rows = await read_swipe_rows(modal)
        except PlaywrightError as e:
            logger.warning("View Swipes の確認中にエラー: %s", e)
        finally:
            await self.dismiss(page)

        event = pick_event(rows, direction)
        if event is None:
            logger.info("%s の打刻は見つかりませんでした", direction)
            return ProbeResult(has_in_event=False, event_time=None)

        logger.info("%s の打刻を確認しました（%s）", direction, event.time or "時刻不明")
        return ProbeResult(has_in_event=True, event_time=event.time or None)

    async def dismiss(self, page) -> None:
        """モーダルを閉じる（閉じるボタン、なければEscキー）"""
        try:
            close_button = await query_first(page, SELECTORS["swipes_modal_close"])
            if close_button is not None:
                await close_button.click()
                await waits.pause(WAIT_TIMES["modal_close"])
                return
        except PlaywrightError as e:
            logger.warning("閉じるボタンを押せません: %s", e)

        try:
            await page.keyboard.press("Escape")
            await waits.pause(WAIT_TIMES["modal_close"])
        except PlaywrightError as e:
            logger.warning("モーダルを閉じられませんでした: %s", e)
