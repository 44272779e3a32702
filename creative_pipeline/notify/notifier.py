import asyncio
import logging
from typing import Any, Dict, Set

from creative_pipeline.notify.base import ApprovalChannel

logger = logging.getLogger("CreativePipeline")


class Notifier:
    """
    Fire-and-forget delivery to an approval channel. Each submission becomes
    an asyncio task that waits out its delay, sends once, and logs failures.
    Delivery is at-most-once and does not survive a process restart.
    """

    def __init__(self, channel: ApprovalChannel):
        self.channel = channel
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, ref: str, metadata: Dict[str, Any], delay_seconds: float = 0) -> asyncio.Task:
        """Must be called from a running event loop."""
        task = asyncio.get_running_loop().create_task(self._deliver(ref, dict(metadata), delay_seconds))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, ref: str, metadata: Dict[str, Any], delay_seconds: float):
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        try:
            await self.channel.submit_async(ref, metadata)
        except Exception as e:
            logger.error(f"❌ Approval delivery failed for {ref}: {e}")

    async def drain(self):
        """Waits for every scheduled delivery (tests, graceful shutdown)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
