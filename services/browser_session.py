# services/browser_session.py
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from services.status_store import GeoConfig

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

HEADLESS_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
]
HEADED_ARGS = ["--start-maximized", "--no-sandbox", "--disable-setuid-sandbox"]


class BrowserSession:
    """1回の実行で専有するブラウザとページ

    ``async with`` を抜けると成功・失敗にかかわらず必ず閉じる。
    """

    def __init__(self, browser_config: dict, geo: Optional[GeoConfig] = None):
        self._config = browser_config
        self._geo = geo or GeoConfig()
        self._playwright = None
        self._browser = None
        self._context = None
        self.page = None

    async def __aenter__(self) -> "BrowserSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        from playwright.async_api import async_playwright

        headless = self._config.get("headless", True)
        logger.info("ブラウザを起動します（headless=%s）", headless)
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=headless,
                args=HEADLESS_ARGS if headless else HEADED_ARGS,
            )
            logger.info(
                "GPS位置を設定します: %s, %s", self._geo.latitude, self._geo.longitude
            )
            self._context = await self._browser.new_context(
                user_agent=self._config.get("user_agent") or DEFAULT_USER_AGENT,
                viewport=self._config.get("viewport"),
                geolocation={
                    "latitude": self._geo.latitude,
                    "longitude": self._geo.longitude,
                    "accuracy": self._geo.accuracy,
                },
                permissions=["geolocation"],
            )
            self.page = await self._context.new_page()
            self.page.set_default_timeout(self._config.get("timeout_ms", 60000))
            self.page.on("console", self._forward_console)
        except Exception:
            await self.close()
            raise

    @staticmethod
    def _forward_console(message) -> None:
        if message.type == "error":
            logger.warning("[PAGE ERROR] %s", message.text)

    async def close(self) -> None:
        """ブラウザを閉じる"""
        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.warning("ブラウザを閉じる際にエラー: %s", e)
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self.page = None
        self._context = None
