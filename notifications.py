from __future__ import annotations
import asyncio
import logging
from typing import Callable, Optional

from config import settings
from schemas import Product

logger = logging.getLogger(__name__)

class CartNotification:
    """Transient "added to cart" toast with a draining progress bar.

    ``show`` restarts the countdown; when progress reaches zero the toast
    closes itself through ``on_close``.
    """

    def __init__(
        self,
        on_close: Callable[[], None],
        duration: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> None:
        self._on_close = on_close
        self.duration = settings.NOTIFICATION_DURATION_SECONDS if duration is None else duration
        self.interval = settings.NOTIFICATION_INTERVAL_SECONDS if interval is None else interval
        self.item: Optional[Product] = None
        self.progress = 0.0
        self._task: Optional[asyncio.Task] = None

    @property
    def visible(self) -> bool:
        return self.item is not None

    def show(self, item: Product) -> None:
        self.cancel()
        self.item = item
        self.progress = 100.0
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        decrement = self.interval / self.duration * 100 if self.duration > 0 else 100.0
        while self.progress > 0:
            await asyncio.sleep(self.interval)
            self.progress = max(0.0, self.progress - decrement)
        self._task = None
        self._dismiss()

    def close(self) -> None:
        self.cancel()
        self._dismiss()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _dismiss(self) -> None:
        if self.item is not None:
            logger.debug("Dismissing cart notification for %s", self.item.id)
        self.item = None
        self.progress = 0.0
        self._on_close()

    def to_dict(self) -> dict:
        return {
            "visible": self.visible,
            "item": self.item.model_dump() if self.item else None,
            "progress": round(self.progress, 2),
        }
