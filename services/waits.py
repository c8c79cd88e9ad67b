import asyncio


async def pause(ms: int) -> None:
    """固定時間の待機（テスト時にモック可能）"""
    await asyncio.sleep(ms / 1000)
