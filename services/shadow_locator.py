# services/shadow_locator.py
"""シャドウルートを1階層だけ透過して要素を探すロケータ

greytHRのボタンやドロップダウンは ``gt-button`` などのカスタム要素で、
実際に操作できる ``<button>`` はその要素のシャドウルートの中にある。
ここでは「外側の要素の属性・テキスト」と「シャドウルート直下の操作要素」の
二段階で判定し、他のコンポーネントが生のDOMクエリを持たないようにする。

シャドウルートがまだ付与されていない要素は外側のテキスト・属性で判定する。
ナビゲーションで文書が破棄された場合は例外を投げずに「見つからない」を返す。
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from services.errors import is_navigation_teardown
from services.page_selectors import SELECTORS

logger = logging.getLogger(__name__)

SHADOW_CHILD_JS = (
    "(el, selector) => (el.shadowRoot ? el.shadowRoot.querySelector(selector) : null)"
)
SHADOW_CHILDREN_JS = (
    "(el, selector) => (el.shadowRoot"
    " ? Array.from(el.shadowRoot.querySelectorAll(selector)) : [])"
)
SET_VALUE_JS = """(el, value) => {
    el.focus();
    el.value = value;
    el.dispatchEvent(new Event("input", { bubbles: true }));
    el.dispatchEvent(new Event("change", { bubbles: true }));
}"""
DISPATCH_CLICK_JS = """el => {
    el.dispatchEvent(new MouseEvent("mousedown", { bubbles: true }));
    el.dispatchEvent(new MouseEvent("mouseup", { bubbles: true }));
    el.click();
}"""

# 判定に使う属性
ATTRIBUTE_NAMES = ("name", "shade", "type", "aria-label", "aria-disabled")

CLICK_TIMEOUT_MS = 5000


@dataclass
class ControlInfo:
    """カスタム要素とその操作対象の要約"""

    host: Any
    control: Any
    text: str
    attributes: dict = field(default_factory=dict)
    disabled: bool = False
    in_shadow: bool = False


Predicate = Callable[[ControlInfo], bool]


def text_contains(label: str) -> Predicate:
    return lambda info: label in info.text


def attribute_is(name: str, value: str) -> Predicate:
    return lambda info: info.attributes.get(name) == value


def name_is_primary_or_blank(info: ControlInfo) -> bool:
    return info.attributes.get("name", "") in ("primary", "")


def all_of(*predicates: Predicate) -> Predicate:
    return lambda info: all(p(info) for p in predicates)


def _as_element(handle) -> Optional[Any]:
    if handle is None:
        return None
    return handle.as_element()


async def shadow_query(host, selector: str):
    """シャドウルート直下から1要素を取得（なければNone）"""
    try:
        handle = await host.evaluate_handle(SHADOW_CHILD_JS, selector)
        return _as_element(handle)
    except PlaywrightError as e:
        if is_navigation_teardown(e):
            logger.debug("文書破棄のためシャドウ要素を取得できません: %s", e)
            return None
        raise


async def shadow_query_all(host, selector: str) -> list:
    """シャドウルート直下から全要素を取得"""
    try:
        handle = await host.evaluate_handle(SHADOW_CHILDREN_JS, selector)
        properties = await handle.get_properties()
    except PlaywrightError as e:
        if is_navigation_teardown(e):
            logger.debug("文書破棄のためシャドウ要素一覧を取得できません: %s", e)
            return []
        raise

    elements = []
    for prop in properties.values():
        element = prop.as_element()
        if element is not None:
            elements.append(element)
    return elements


async def query_first(root, selectors) -> Optional[Any]:
    """セレクタ候補を順に試し、最初に見つかった要素を返す"""
    if isinstance(selectors, str):
        selectors = [selectors]
    for selector in selectors:
        try:
            element = await root.query_selector(selector)
        except PlaywrightError as e:
            if is_navigation_teardown(e):
                return None
            logger.debug("セレクタ %s の検索に失敗: %s", selector, e)
            continue
        if element is not None:
            return element
    return None


async def read_text(element) -> str:
    try:
        text = await element.inner_text()
    except PlaywrightError:
        text = await element.text_content()
    return (text or "").strip()


async def _read_attributes(element) -> dict:
    attributes = {}
    for name in ATTRIBUTE_NAMES:
        value = await element.get_attribute(name)
        if value is not None:
            attributes[name] = value
    return attributes


async def describe(host, inner_selector: str = SELECTORS["inner_button"]) -> ControlInfo:
    """外側の要素を要約する（シャドウ内の操作要素があればそちらを優先）"""
    attributes = await _read_attributes(host)
    inner = await shadow_query(host, inner_selector)
    if inner is None:
        return ControlInfo(
            host=host,
            control=host,
            text=await read_text(host),
            attributes=attributes,
            disabled=attributes.get("aria-disabled") == "true",
            in_shadow=False,
        )

    # 内側のname属性を優先し、なければ外側の値を残す
    for name, value in (await _read_attributes(inner)).items():
        if value:
            attributes[name] = value
    return ControlInfo(
        host=host,
        control=inner,
        text=await read_text(inner),
        attributes=attributes,
        disabled=await inner.is_disabled(),
        in_shadow=True,
    )


async def find_controls(
    root,
    host_selector: str = SELECTORS["button_host"],
    inner_selector: str = SELECTORS["inner_button"],
) -> list[ControlInfo]:
    """root配下のカスタム要素をすべて要約する"""
    if root is None:
        return []
    try:
        hosts = await root.query_selector_all(host_selector)
        return [await describe(host, inner_selector) for host in hosts]
    except PlaywrightError as e:
        if is_navigation_teardown(e):
            logger.debug("文書破棄のため %s を走査できません: %s", host_selector, e)
            return []
        raise


async def find_control(
    root,
    predicate: Predicate,
    host_selector: str = SELECTORS["button_host"],
    inner_selector: str = SELECTORS["inner_button"],
) -> Optional[ControlInfo]:
    """述語に一致する最初のカスタム要素を返す（なければNone）"""
    for info in await find_controls(root, host_selector, inner_selector):
        if predicate(info):
            return info
    return None


async def press(info: ControlInfo) -> None:
    """操作要素をクリックする（通常クリックが効かない場合のみイベント送出）"""
    try:
        await info.control.click(timeout=CLICK_TIMEOUT_MS)
    except PlaywrightTimeoutError:
        logger.warning("通常クリックがタイムアウトしたためイベントを直接送出します: %s", info.text)
        await info.control.evaluate(DISPATCH_CLICK_JS)


async def set_value(element, value: str) -> None:
    """値を代入し、ページが監視する input/change イベントを送出する"""
    await element.evaluate(SET_VALUE_JS, value)


def summarize(controls: list[ControlInfo]) -> list[dict]:
    """診断ログ用の要約"""
    return [
        {
            "text": c.text,
            "shade": c.attributes.get("shade"),
            "name": c.attributes.get("name", ""),
        }
        for c in controls
    ]


def any_of(*predicates: Predicate) -> Predicate:
    return lambda info: any(p(info) for p in predicates)


async def attendance_widget(page):
    """勤怠ウィジェットのルート要素（なければNone）"""
    return await query_first(
        page, [SELECTORS["attendance_widget"], SELECTORS["widget_div"]]
    )
