import pytest

from fake_dom import (
    FakeElement,
    FakePage,
    attendance_widget,
    dropdown_items,
    gt_button,
    inner_button,
    location_dropdown,
    modal_body,
    text_area,
)
from services.errors import ElementNotFoundError, LocationSelectionError
from services.status_store import WorkLocationConfig
from services.swipe_executor import (
    SIGN_IN,
    SIGN_OUT,
    ControlDisabledError,
    SwipeExecutor,
    canonical_location,
    match_location_loose,
    match_location_strict,
)


class SignInScreen:
    """ウィジェットの Sign In を押すと確認モーダルが開く画面"""

    def __init__(self, options=("Office", "Work from Home"), submit_disabled=False, modal=True):
        self.body = FakeElement("body")
        self.page = FakePage(self.body)
        self.widget_button = gt_button("Sign In", on_click=self.open_modal)
        self.body.append(attendance_widget(gt_button("View Swipes"), self.widget_button))
        self.dropdown = location_dropdown(list(options))
        self.remarks = text_area()
        self.submit_button = gt_button("Sign In", shade="primary", disabled=submit_disabled)
        self.cancel_button = gt_button("Cancel", shade="secondary")
        self.with_modal = modal

    def open_modal(self):
        if not self.with_modal:
            return
        self.body.append(self.dropdown)
        self.body.append(self.remarks)
        self.body.append(modal_body(self.cancel_button, self.submit_button))

    @property
    def textarea(self):
        return self.remarks.shadow[0]


def _executor():
    return SwipeExecutor(dropdown_attempts=3, poll_interval_ms=10)


class TestLocationMatching:
    def test_canonical_location(self):
        assert canonical_location("WorkFromHome") == "Work from Home"
        assert canonical_location("Work From Home") == "Work from Home"
        assert canonical_location("Office") == "Office"
        assert canonical_location("Branch 7") == "Branch 7"

    def test_strict_requires_shared_vocabulary_term(self):
        assert match_location_strict("Work from Home", "Work From Home") is True
        assert match_location_strict("Office", "Office") is True
        assert match_location_strict("Work from Home", "Office") is False
        assert match_location_strict("Work from Home", "Home (remote)") is True
        assert match_location_strict("Work from Home", "Home Office") is False

    def test_loose_matching(self):
        assert match_location_loose("Office", "Head Office - Noida") is True
        assert match_location_loose("Work from Home", "WFH: work at home") is True
        assert match_location_loose("Office", "") is False
        assert match_location_loose("Client Location", "Office") is False


@pytest.mark.asyncio
async def test_sign_in_selects_location_fills_remarks_and_submits():
    screen = SignInScreen()
    work_location = WorkLocationConfig(work_location="WorkFromHome", remarks="remote today")

    report = await _executor().sign_in(screen.page, work_location)

    assert report.action == SIGN_IN
    assert report.confirmation_shown is True
    assert report.selected_location == "Work from Home"
    assert report.remarks_filled is True
    assert dropdown_items(screen.dropdown)["Work from Home"].clicks == 1
    assert dropdown_items(screen.dropdown)["Office"].clicks == 0
    assert screen.textarea.value == "remote today"
    assert screen.textarea.events == ["input", "change"]
    assert inner_button(screen.submit_button).clicks == 1
    assert inner_button(screen.cancel_button).clicks == 0


@pytest.mark.asyncio
async def test_sign_in_without_remarks_leaves_text_area_untouched():
    screen = SignInScreen()

    report = await _executor().sign_in(screen.page, WorkLocationConfig(work_location="Office"))

    assert report.selected_location == "Office"
    assert report.remarks_filled is False
    assert screen.textarea.value == ""


@pytest.mark.asyncio
async def test_unmatched_location_lists_observed_options():
    """選択肢に一致しない勤務場所は、画面上の選択肢を列挙して失敗すること"""
    screen = SignInScreen(options=("Office", "Client Location"))

    with pytest.raises(LocationSelectionError) as exc_info:
        await _executor().sign_in(screen.page, WorkLocationConfig(work_location="Work From Home"))

    assert exc_info.value.observed_options == ["Office", "Client Location"]
    assert "Office, Client Location" in str(exc_info.value)
    assert inner_button(screen.submit_button).clicks == 0


@pytest.mark.asyncio
async def test_disabled_submit_button_is_an_error():
    screen = SignInScreen(submit_disabled=True)

    with pytest.raises(ControlDisabledError, match="disabled"):
        await _executor().sign_in(screen.page, WorkLocationConfig())

    assert inner_button(screen.submit_button).clicks == 0


@pytest.mark.asyncio
async def test_absent_confirmation_surface_is_not_an_error(no_waits):
    """確認モーダルが出なければそのまま処理待ちへ進むこと"""
    screen = SignInScreen(modal=False)

    report = await _executor().sign_in(screen.page, WorkLocationConfig())

    assert report.confirmation_shown is False
    assert report.selected_location is None
    assert inner_button(screen.widget_button).clicks == 1
    assert [c.args[0] for c in no_waits.await_args_list].count(10) == 3


@pytest.mark.asyncio
async def test_hidden_or_unlabelled_dropdown_is_ignored():
    screen = SignInScreen(modal=False)
    screen.body.append(location_dropdown(["Office"], visible=False))
    screen.body.append(location_dropdown(["Office"], label="Department"))

    report = await _executor().sign_in(screen.page, WorkLocationConfig())

    assert report.confirmation_shown is False


@pytest.mark.asyncio
async def test_sign_in_without_widget_button():
    body = FakeElement("body", children=[attendance_widget(gt_button("Sign Out", shade="primary"))])

    with pytest.raises(ElementNotFoundError, match="'Sign In' button not found"):
        await _executor().sign_in(FakePage(body), WorkLocationConfig())


@pytest.mark.asyncio
async def test_sign_out_presses_primary_sign_out():
    secondary = gt_button("Sign Out", shade="secondary")
    primary = gt_button("Sign Out", shade="primary")
    body = FakeElement("body", children=[attendance_widget(secondary, primary)])

    report = await _executor().execute(FakePage(body), SIGN_OUT)

    assert report.action == SIGN_OUT
    assert inner_button(primary).clicks == 1
    assert inner_button(secondary).clicks == 0


@pytest.mark.asyncio
async def test_sign_out_without_button():
    body = FakeElement("body", children=[attendance_widget(gt_button("Sign In"))])
    with pytest.raises(ElementNotFoundError):
        await _executor().sign_out(FakePage(body))


@pytest.mark.asyncio
async def test_execute_defaults_work_location_to_office():
    screen = SignInScreen()
    report = await _executor().execute(screen.page, SIGN_IN)
    assert report.selected_location == "Office"
