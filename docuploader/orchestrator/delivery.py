"""Delivery strategies: ordering of units inside a portion."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, Sequence

from ..models import UploadOrder, UploadSettings
from .models import UnitResult
from .portions import Unit
from .timing import Jitter

logger = logging.getLogger(__name__)

UploadFn = Callable[[Unit], Awaitable[UnitResult]]
CancelCheck = Callable[[], bool]
SleepFn = Callable[[float], Awaitable[None]]


class DeliveryStrategy(ABC):
    """Uploads the units of one portion."""

    def __init__(self, jitter: Jitter, sleep: SleepFn = asyncio.sleep):
        self._jitter = jitter
        self._sleep = sleep

    @abstractmethod
    async def deliver(
        self,
        units: Sequence[Unit],
        upload: UploadFn,
        settings: UploadSettings,
        is_cancelled: Optional[CancelCheck] = None,
    ) -> List[UnitResult]:
        """Upload units and return the result of every unit launched."""

    @staticmethod
    def for_order(order: UploadOrder, jitter: Jitter, sleep: SleepFn = asyncio.sleep) -> "DeliveryStrategy":
        if order == UploadOrder.PARALLEL:
            return ParallelDelivery(jitter, sleep)
        return SequentialDelivery(jitter, sleep)


class ParallelDelivery(DeliveryStrategy):
    """All units of the portion at once, no delay beyond the portion offset."""

    async def deliver(self, units, upload, settings, is_cancelled=None):
        if is_cancelled and is_cancelled():
            return []
        return list(await asyncio.gather(*(upload(unit) for unit in units)))


class SequentialDelivery(DeliveryStrategy):
    """
    One unit at a time, in discovery order.

    The next unit starts only after the previous upload returned, after a
    delay of roughly ``upload_interval`` (the first unit only waits the
    jitter).
    """

    async def deliver(self, units, upload, settings, is_cancelled=None):
        results = []
        is_first = True
        for unit in units:
            await self._sleep(self._jitter.unit_delay(settings.upload_interval, is_first))
            if is_cancelled and is_cancelled():
                logger.info(f"Cancelled, skipping {len(units) - len(results)} remaining unit(s)")
                break
            results.append(await upload(unit))
            is_first = False
        return results
