# services/swipe_verifier.py
import logging

from services import waits
from services.errors import VerificationError
from services.page_selectors import (
    LABELS,
    SELECTORS,
    VERIFY_POLL_ATTEMPTS,
    VERIFY_POLL_INTERVAL_MS,
)
from services.shadow_locator import (
    all_of,
    attribute_is,
    find_control,
    find_controls,
    name_is_primary_or_blank,
    query_first,
    summarize,
    text_contains,
)
from services.swipe_executor import SIGN_OUT

logger = logging.getLogger(__name__)

# 打刻後に現れるべき反対側のボタン
_EXPECTED = {
    "sign_in": (
        LABELS["sign_out"],
        all_of(
            text_contains(LABELS["sign_out"]),
            attribute_is("shade", LABELS["primary"]),
            name_is_primary_or_blank,
        ),
    ),
    "sign_out": (LABELS["sign_in"], text_contains(LABELS["sign_in"])),
}


class SwipeVerifier:
    """打刻後のウィジェットに反対側のボタンが出ているかを確認する

    クリックできたことと打刻が成立したことは別物として扱い、
    反対側のボタンが見つからなければ失敗とする。
    """

    def __init__(
        self,
        attempts: int = VERIFY_POLL_ATTEMPTS,
        interval_ms: int = VERIFY_POLL_INTERVAL_MS,
    ):
        self._attempts = attempts
        self._interval_ms = interval_ms

    async def _widget(self, page):
        return await query_first(
            page, [SELECTORS["widget_div"], SELECTORS["attendance_widget"]]
        )

    async def is_verified(self, page, action: str) -> bool:
        label, predicate = _EXPECTED[action]
        for attempt in range(self._attempts):
            widget = await self._widget(page)
            if await find_control(widget, predicate) is not None:
                logger.info("検証成功: ウィジェットに %s が表示されています", label)
                return True
            if attempt < self._attempts - 1:
                await waits.pause(self._interval_ms)

        widget = await self._widget(page)
        available = summarize(await find_controls(widget))
        logger.error("検証失敗: %s が見つかりません（ウィジェットのボタン: %s）", label, available)
        return False

    async def verify(self, page, action: str) -> None:
        if not await self.is_verified(page, action):
            verb = "Sign-out" if action == SIGN_OUT else "Sign-in"
            expected = _EXPECTED[action][0]
            raise VerificationError(
                f"{verb} verification failed: {expected} button not found in main widget. "
                f"{verb} may not have completed successfully."
            )
