# services/page_selectors.py
"""greytHR画面のセレクタ・待機時間・語彙の定義"""

SELECTORS = {
    # 勤怠ウィジェット
    "attendance_widget": "gt-attendance-info",
    "widget_div": ".widget-border.bg-primary-50",
    "button_host": "gt-button",
    "inner_button": "button",
    # モーダル
    "modal_body": '[slot="modal-body"]',
    "swipes_modal": "attendance-swipes-modal",
    "swipes_modal_close": "attendance-swipes-modal .close",
    # ドロップダウン（シャドウルート内）
    "dropdown": "gt-dropdown",
    "dropdown_label": ".dropdown-label label",
    "dropdown_button": "button.dropdown-button",
    "dropdown_container": ".dropdown-container",
    "dropdown_item": ".dropdown-item",
    "dropdown_item_label": ".item-label",
    # 備考欄
    "text_area": "gt-text-area",
    "text_area_input": "textarea",
    # 打刻履歴テーブル
    "table_row": "table tbody tr",
    "table_cell": "td",
}

LABELS = {
    "sign_in": "Sign In",
    "sign_out": "Sign Out",
    "view_swipes": "View Swipes",
    "location_dropdown": "Enter Sign-In Location",
    "primary": "primary",
}

# ミリ秒
WAIT_TIMES = {
    "shadow_dom_init": 2000,
    "modal_appear": 1000,
    "modal_close": 500,
    "table_render": 1500,
    "swipe_process": 3000,
    "page_load": 3000,
    "dropdown_open": 1000,
    "button_click": 500,
    "field_settle": 500,
    "post_login": 2000,
    "login_recheck": 3000,
    "poll_interval": 500,
    "view_swipes_wait": 3000,
    "swipes_modal_wait": 5000,
    "widget_wait": 20000,
    "dashboard_settle": 5000,
}

# 確認モーダルのポーリング: 20回 x 500ms
DROPDOWN_POLL_ATTEMPTS = 20

# 打刻後の検証ポーリング
VERIFY_POLL_ATTEMPTS = 5
VERIFY_POLL_INTERVAL_MS = 1000

# 打刻履歴テーブルの列
SWIPE_TABLE_COLUMNS = {"time": 0, "in_out": 1}

LOCATION_OPTIONS = {
    "Office": "Office",
    "WorkFromHome": "Work from Home",
    "ClientLocation": "Client Location",
    "OnDuty": "On-Duty",
}
