from __future__ import annotations

import asyncio


class ConcurrencyLimiter:
    """実行全体で共有する同時実行数の上限ゲート。

    画像検査はページをまたいでこの1つのインスタンスを通るため、
    ページ境界付近でも同時に飛んでいるリクエストは capacity を超えない。
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity は 1 以上を指定してください。")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._in_flight = 0
        self._peak = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak(self) -> int:
        return self._peak

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._in_flight -= 1
        self._semaphore.release()
