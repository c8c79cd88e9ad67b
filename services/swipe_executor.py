# services/swipe_executor.py
"""Sign In / Sign Out ボタンの操作と、サインイン時の確認モーダル処理"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from services import waits
from services.errors import ElementNotFoundError, LocationSelectionError
from services.page_selectors import (
    DROPDOWN_POLL_ATTEMPTS,
    LABELS,
    LOCATION_OPTIONS,
    SELECTORS,
    WAIT_TIMES,
)
from services.shadow_locator import (
    ControlInfo,
    all_of,
    attendance_widget,
    attribute_is,
    find_control,
    find_controls,
    press,
    query_first,
    read_text,
    set_value,
    shadow_query,
    summarize,
    text_contains,
)
from services.status_store import WorkLocationConfig

logger = logging.getLogger(__name__)

SIGN_IN = "sign_in"
SIGN_OUT = "sign_out"


class ControlDisabledError(ElementNotFoundError):
    """操作対象のボタンが無効化されている"""


@dataclass
class ActionReport:
    action: str
    confirmation_shown: bool = False
    selected_location: Optional[str] = None
    remarks_filled: bool = False


def _normalize(text: str) -> str:
    return re.sub(r"[\s\-_]+", " ", text or "").strip().lower()


def canonical_location(value: str) -> str:
    """設定値（Office / WorkFromHome など）を画面上のラベルに揃える"""
    if value in LOCATION_OPTIONS:
        return LOCATION_OPTIONS[value]
    compact = _normalize(value).replace(" ", "")
    for label in LOCATION_OPTIONS.values():
        if _normalize(label).replace(" ", "") == compact:
            return label
    return value


def match_location_strict(target: str, option: str) -> bool:
    """語彙の各項目が設定値と選択肢の両方に含まれるか"""
    t, o = _normalize(target), _normalize(option)
    if not o:
        return False
    for label in LOCATION_OPTIONS.values():
        term = _normalize(label)
        if term in t and term in o:
            return True
    return "home" in t and "home" in o and "office" not in o


def match_location_loose(target: str, option: str) -> bool:
    """大文字小文字を無視した緩い一致"""
    t, o = _normalize(target), _normalize(option)
    if not o or not t:
        return False
    if t in o or o in t:
        return True
    if "office" in t and "office" in o:
        return True
    return "work" in t and "home" in t and "work" in o and "home" in o


class ConfirmationSurface:
    """サインイン確認モーダル（勤務場所ドロップダウン＋備考）"""

    def __init__(self, page):
        self._page = page

    async def find_dropdown(self):
        """「Enter Sign-In Location」ラベルを持つ表示中のドロップダウン"""
        for host in await self._page.query_selector_all(SELECTORS["dropdown"]):
            label = await shadow_query(host, SELECTORS["dropdown_label"])
            if label is None:
                continue
            if LABELS["location_dropdown"] not in await read_text(label):
                continue
            if await host.is_visible():
                return host
        return None

    async def wait_for_dropdown(
        self,
        attempts: int = DROPDOWN_POLL_ATTEMPTS,
        interval_ms: int = WAIT_TIMES["poll_interval"],
    ):
        for attempt in range(attempts):
            host = await self.find_dropdown()
            if host is not None:
                logger.info("勤務場所ドロップダウンを検出しました（%dms）", attempt * interval_ms)
                return host
            await waits.pause(interval_ms)
        logger.info("勤務場所ドロップダウンは%dms以内に現れませんでした", attempts * interval_ms)
        return None

    async def open(self, host) -> None:
        button = await shadow_query(host, SELECTORS["dropdown_button"])
        if button is None:
            raise ElementNotFoundError(
                "Failed to open work location dropdown: Dropdown button not found"
            )
        await button.click()
        await waits.pause(WAIT_TIMES["dropdown_open"])

    async def options(self, host) -> list[tuple[str, object]]:
        """(ラベル, 要素) の一覧"""
        container = await shadow_query(host, SELECTORS["dropdown_container"])
        if container is None:
            return []
        options = []
        for item in await container.query_selector_all(SELECTORS["dropdown_item"]):
            label = await item.query_selector(SELECTORS["dropdown_item_label"])
            if label is None:
                continue
            options.append((await read_text(label), item))
        return options

    async def select_location(self, host, work_location: str) -> str:
        """設定値に一致する選択肢をクリックし、そのラベルを返す"""
        target = canonical_location(work_location)
        options = await self.options(host)
        labels = [text for text, _ in options]

        for matcher in (match_location_strict, match_location_loose):
            for text, item in options:
                if matcher(target, text):
                    await item.click()
                    logger.info("勤務場所を選択しました: %s", text)
                    return text
            if matcher is match_location_strict:
                logger.warning(
                    "「%s」に一致する選択肢がありません（候補: %s）。緩い一致で再試行します",
                    target,
                    ", ".join(labels),
                )

        raise LocationSelectionError(work_location, labels)

    async def fill_remarks(self, remarks: str) -> bool:
        for host in await self._page.query_selector_all(SELECTORS["text_area"]):
            textarea = await shadow_query(host, SELECTORS["text_area_input"])
            if textarea is not None:
                await set_value(textarea, remarks)
                logger.info("備考を入力しました")
                return True
        logger.warning("備考欄が見つかりません")
        return False

    async def submit(self) -> ControlInfo:
        """モーダル内の Sign In ボタンを押す（shade=primary を優先）"""
        modal_body = await query_first(self._page, SELECTORS["modal_body"])
        if modal_body is None:
            raise ElementNotFoundError("Failed to click Sign In button: Modal body not found")

        controls = await find_controls(modal_body)
        if not controls:
            raise ElementNotFoundError(
                "Failed to click Sign In button: No buttons found in modal body"
            )

        is_sign_in = text_contains(LABELS["sign_in"])
        primary = all_of(attribute_is("shade", LABELS["primary"]), is_sign_in)
        control = next((c for c in controls if primary(c)), None)
        if control is None:
            control = next((c for c in controls if is_sign_in(c)), None)
        if control is None:
            raise ElementNotFoundError(
                "Failed to click Sign In button: No Sign In button found in modal body"
            )
        if control.disabled:
            raise ControlDisabledError(
                "Failed to click Sign In button: Sign In button found but is disabled"
            )

        await press(control)
        logger.info("モーダルの Sign In を押しました: %s", control.text)
        return control


def sign_in_control(info: ControlInfo) -> bool:
    return LABELS["sign_in"] in info.text


sign_out_control = all_of(
    text_contains(LABELS["sign_out"]),
    attribute_is("shade", LABELS["primary"]),
)


class SwipeExecutor:
    """勤怠ウィジェットのボタンを押して打刻する"""

    def __init__(
        self,
        dropdown_attempts: int = DROPDOWN_POLL_ATTEMPTS,
        poll_interval_ms: int = WAIT_TIMES["poll_interval"],
    ):
        self._dropdown_attempts = dropdown_attempts
        self._poll_interval_ms = poll_interval_ms

    async def _press_widget_control(self, page, predicate, label: str) -> None:
        await waits.pause(WAIT_TIMES["shadow_dom_init"])
        widget = await attendance_widget(page)
        if widget is None:
            raise ElementNotFoundError("Attendance widget not found")
        control = await find_control(widget, predicate)
        if control is None:
            available = summarize(await find_controls(widget))
            logger.error("ウィジェットに %s がありません: %s", label, available)
            raise ElementNotFoundError(f"'{label}' button not found in widget")
        logger.info("%s を押します", label)
        await press(control)

    async def sign_in(self, page, work_location: WorkLocationConfig) -> ActionReport:
        report = ActionReport(action=SIGN_IN)
        await self._press_widget_control(page, sign_in_control, LABELS["sign_in"])
        await waits.pause(WAIT_TIMES["modal_appear"])

        surface = ConfirmationSurface(page)
        host = await surface.wait_for_dropdown(self._dropdown_attempts, self._poll_interval_ms)
        if host is not None:
            report.confirmation_shown = True
            await waits.pause(WAIT_TIMES["field_settle"])
            logger.info(
                "勤務場所: %s / 備考: %s",
                work_location.work_location,
                work_location.remarks or "(なし)",
            )
            await surface.open(host)
            report.selected_location = await surface.select_location(
                host, work_location.work_location
            )
            await waits.pause(WAIT_TIMES["field_settle"])

            if work_location.remarks:
                report.remarks_filled = await surface.fill_remarks(work_location.remarks)
            await waits.pause(WAIT_TIMES["field_settle"])

            await surface.submit()

        logger.info("打刻の処理を待っています")
        await waits.pause(WAIT_TIMES["swipe_process"])
        return report

    async def sign_out(self, page) -> ActionReport:
        await self._press_widget_control(page, sign_out_control, LABELS["sign_out"])
        logger.info("サインアウトの処理を待っています")
        await waits.pause(WAIT_TIMES["swipe_process"])
        return ActionReport(action=SIGN_OUT)

    async def execute(
        self, page, action: str, work_location: Optional[WorkLocationConfig] = None
    ) -> ActionReport:
        if action == SIGN_OUT:
            return await self.sign_out(page)
        return await self.sign_in(page, work_location or WorkLocationConfig())
