from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def no_waits():
    """固定待機をすべて即時化する"""
    with patch("services.waits.pause", new=AsyncMock()) as mock_pause:
        yield mock_pause
