# services/login_strategies.py
"""ログイン状態機械

3つの戦略を決まった順に試し、最初に成功したものでセッションを確立する。
戦略ごとの違いは入力欄の特定方法だけで、送信後の判定（ナビゲーション待ち→
URL判定→1回だけ再判定）は共通のヘルパーで行う。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from services import waits
from services.errors import (
    AuthenticationError,
    LoginStrategyError,
    is_navigation_teardown,
)
from services.page_selectors import WAIT_TIMES

logger = logging.getLogger(__name__)

# ホスト名はログイン画面と共通なのでパスで判定する
DEFAULT_AUTHENTICATED_MARKERS = ("/dashboard", "/home")

Submit = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class Credentials:
    emp_id: str
    password: str
    base_url: str

    def missing_fields(self) -> list[str]:
        names = {"emp_id": "EMP_ID", "password": "PASSWORD", "base_url": "GREYTHR_URL"}
        return [env for attr, env in names.items() if not getattr(self, attr)]


class LoginState(str, Enum):
    NOT_STARTED = "NotStarted"
    STRATEGY_1 = "Strategy1"
    STRATEGY_2 = "Strategy2"
    STRATEGY_3 = "Strategy3"
    AUTHENTICATED = "Authenticated"
    FAILED = "Failed"


_STRATEGY_STATES = (LoginState.STRATEGY_1, LoginState.STRATEGY_2, LoginState.STRATEGY_3)


def is_authenticated_url(url: str, markers=DEFAULT_AUTHENTICATED_MARKERS) -> bool:
    return any(marker in (url or "") for marker in markers)


class LoginStrategy(ABC):
    """ログイン戦略の基底クラス"""

    name = "base"

    def __init__(
        self,
        markers=DEFAULT_AUTHENTICATED_MARKERS,
        navigation_ceiling_ms: int = 20000,
        input_wait_ms: int = 15000,
        type_delay_ms: int = 50,
    ):
        self._markers = tuple(markers)
        self._navigation_ceiling_ms = navigation_ceiling_ms
        self._input_wait_ms = input_wait_ms
        self._type_delay_ms = type_delay_ms

    async def attempt(self, page, credentials: Credentials) -> None:
        """ログインを試みる。失敗時は LoginStrategyError"""
        try:
            await self._wait_for_inputs(page)
            submit = await self._fill(page, credentials)
            await self._submit_and_verify(page, submit)
        except LoginStrategyError:
            raise
        except PlaywrightError as e:
            if is_navigation_teardown(e):
                # 送信で遷移が起きて文書が破棄された → 新しいURLで判定する
                await waits.pause(WAIT_TIMES["login_recheck"])
                if self._authenticated(page):
                    logger.info("ログイン成功（遷移を検出）: %s", page.url)
                    return
            raise LoginStrategyError(f"{self.name}: {e}") from e

    @abstractmethod
    async def _fill(self, page, credentials: Credentials) -> Submit:
        """入力欄を埋め、送信処理を返す"""
        ...

    async def _wait_for_inputs(self, page) -> None:
        try:
            await page.wait_for_selector("input", timeout=self._input_wait_ms)
        except PlaywrightTimeoutError as e:
            raise LoginStrategyError("Page inputs not found or page not stable") from e
        await waits.pause(1000)

    async def _type_into(self, element, value: str) -> None:
        await element.click()
        await waits.pause(WAIT_TIMES["field_settle"])
        await element.type(value, delay=self._type_delay_ms)

    def _authenticated(self, page) -> bool:
        return is_authenticated_url(page.url, self._markers)

    async def _submit_and_verify(self, page, submit: Submit) -> None:
        """送信後、遷移か上限時間の早い方まで待ち、URLで成否を判定する"""
        try:
            async with page.expect_navigation(
                wait_until="domcontentloaded", timeout=self._navigation_ceiling_ms
            ):
                try:
                    await submit()
                except PlaywrightTimeoutError as e:
                    raise LoginStrategyError(f"Submit timed out: {e}") from e
        except PlaywrightTimeoutError:
            logger.info(
                "%dms以内に遷移なし。URLで判定します", self._navigation_ceiling_ms
            )

        await waits.pause(WAIT_TIMES["post_login"])
        if self._authenticated(page):
            logger.info("ログイン成功: %s", page.url)
            return

        # まだ読み込み中の可能性があるので1回だけ再判定
        logger.warning("URL判定に失敗: %s（再確認します）", page.url)
        await waits.pause(WAIT_TIMES["login_recheck"])
        if not self._authenticated(page):
            raise LoginStrategyError(
                "Login might have failed - URL doesn't match expected pattern"
            )
        logger.info("ログイン成功（追加待機後）: %s", page.url)


class SelectorListStrategy(LoginStrategy):
    """戦略1: 属性セレクタの候補リストで入力欄を探す"""

    name = "selector-list"

    EMP_ID_SELECTORS = [
        'input[name="username"]',
        'input[name="employeeId"]',
        'input[id="username"]',
        'input[type="text"]',
    ]
    PASSWORD_SELECTORS = [
        'input[name="password"]',
        'input[type="password"]',
        'input[id="password"]',
    ]
    SUBMIT_SELECTORS = [
        'button[type="submit"]',
        'button:has-text("Login")',
        'button:has-text("Sign In")',
    ]

    async def _fill_first(self, page, selectors: list[str], value: str) -> bool:
        for selector in selectors:
            try:
                element = await page.query_selector(selector)
                if element:
                    await self._type_into(element, value)
                    return True
            except PlaywrightError as e:
                if is_navigation_teardown(e):
                    raise
                continue
        return False

    async def _fill(self, page, credentials: Credentials) -> Submit:
        if not await self._fill_first(page, self.EMP_ID_SELECTORS, credentials.emp_id):
            raise LoginStrategyError("Could not find employee ID field")
        await waits.pause(WAIT_TIMES["field_settle"])

        if not await self._fill_first(page, self.PASSWORD_SELECTORS, credentials.password):
            raise LoginStrategyError("Could not find password field")
        await waits.pause(1000)

        async def submit():
            for selector in self.SUBMIT_SELECTORS:
                element = await page.query_selector(selector)
                if element:
                    await element.click()
                    return
            await page.keyboard.press("Enter")

        return submit


class XPathStrategy(LoginStrategy):
    """戦略2: 構造パス（XPath）で入力欄を探す"""

    name = "xpath"

    EMP_ID_XPATH = 'xpath=//input[@type="text" or @name="username"]'
    PASSWORD_XPATH = 'xpath=//input[@type="password"]'
    SUBMIT_XPATH = 'xpath=//button[@type="submit"]'

    async def _fill(self, page, credentials: Credentials) -> Submit:
        emp_input = await page.query_selector(self.EMP_ID_XPATH)
        if not emp_input:
            raise LoginStrategyError("Employee ID input not found")
        await self._type_into(emp_input, credentials.emp_id)
        await waits.pause(WAIT_TIMES["field_settle"])

        pass_input = await page.query_selector(self.PASSWORD_XPATH)
        if not pass_input:
            raise LoginStrategyError("Password input not found")
        await self._type_into(pass_input, credentials.password)
        await waits.pause(1000)

        async def submit():
            button = await page.query_selector(self.SUBMIT_XPATH)
            if button:
                await button.click()
            else:
                await page.keyboard.press("Enter")

        return submit


class ScriptedInputStrategy(LoginStrategy):
    """戦略3: 値を直接代入し input/change イベントを送出する"""

    name = "scripted-input"

    FILL_JS = """({ empId, password }) => {
        const inputs = Array.from(document.querySelectorAll("input"));
        if (inputs.length < 2) return false;
        const textInput = inputs.find(
            (inp) => inp.type === "text" || inp.type === "email" || !inp.type
        ) || inputs[0];
        const passInput = inputs.find((inp) => inp.type === "password") || inputs[1];
        for (const [el, value] of [[textInput, empId], [passInput, password]]) {
            el.focus();
            el.value = value;
            el.dispatchEvent(new Event("input", { bubbles: true }));
            el.dispatchEvent(new Event("change", { bubbles: true }));
        }
        return true;
    }"""

    async def _wait_for_inputs(self, page) -> None:
        await super()._wait_for_inputs(page)
        await waits.pause(1000)

    async def _fill(self, page, credentials: Credentials) -> Submit:
        inputs = await page.query_selector_all("input")
        if len(inputs) < 2:
            raise LoginStrategyError("Not enough input fields found")

        filled = await page.evaluate(
            self.FILL_JS,
            {"empId": credentials.emp_id, "password": credentials.password},
        )
        if not filled:
            raise LoginStrategyError("Not enough input fields found")
        await waits.pause(1000)

        async def submit():
            await page.keyboard.press("Enter")

        return submit


def default_strategies(login_config: Optional[dict] = None) -> list[LoginStrategy]:
    """設定から3戦略を生成する"""
    login_config = login_config or {}
    kwargs = {
        "markers": login_config.get("authenticated_url_markers", DEFAULT_AUTHENTICATED_MARKERS),
        "navigation_ceiling_ms": login_config.get("navigation_ceiling_ms", 20000),
        "input_wait_ms": login_config.get("input_wait_ms", 15000),
        "type_delay_ms": login_config.get("type_delay_ms", 50),
    }
    return [
        SelectorListStrategy(**kwargs),
        XPathStrategy(**kwargs),
        ScriptedInputStrategy(**kwargs),
    ]


class SessionEstablisher:
    """対象アプリへ遷移し、ログイン戦略を順に試す"""

    def __init__(
        self,
        credentials: Credentials,
        strategies: Optional[list[LoginStrategy]] = None,
        navigation_timeout_ms: int = 60000,
    ):
        self._credentials = credentials
        self._strategies = strategies if strategies is not None else default_strategies()
        self._navigation_timeout_ms = navigation_timeout_ms
        self.state = LoginState.NOT_STARTED
        self.history: list[LoginState] = [LoginState.NOT_STARTED]

    def _transition(self, state: LoginState) -> None:
        self.state = state
        self.history.append(state)

    async def navigate(self, page) -> None:
        """ベースURLへ遷移（失敗しても待機して続行）"""
        logger.info("%s へ遷移します", self._credentials.base_url)
        try:
            await page.goto(
                self._credentials.base_url,
                wait_until="domcontentloaded",
                timeout=self._navigation_timeout_ms,
            )
            logger.info("ページを読み込みました")
        except PlaywrightError as e:
            logger.warning("遷移時の警告: %s", e)
        await waits.pause(WAIT_TIMES["page_load"])

    async def login(self, page) -> str:
        """戦略を順に試し、成功した戦略名を返す"""
        errors = []
        for state, strategy in zip(_STRATEGY_STATES, self._strategies):
            self._transition(state)
            logger.info("ログイン試行 %s: %s", state.value, strategy.name)
            try:
                await strategy.attempt(page, self._credentials)
            except LoginStrategyError as e:
                logger.warning("%s が失敗しました: %s", strategy.name, e)
                errors.append(f"{strategy.name}: {e}")
                continue
            self._transition(LoginState.AUTHENTICATED)
            return strategy.name

        self._transition(LoginState.FAILED)
        raise AuthenticationError("All login strategies failed (" + "; ".join(errors) + ")")

    async def establish(self, page) -> str:
        await self.navigate(page)
        return await self.login(page)
