import asyncio
from typing import Any, Dict


class ApprovalChannel:
    """
    Abstract interface for sending a finished asset to a human approval queue.
    """

    name: str = "abstract"

    def submit(self, ref: str, metadata: Dict[str, Any]) -> None:
        """
        Posts one asset for approval.

        Raises:
            NotifyFailed: The channel rejected or could not receive the message.
        """
        raise NotImplementedError("Subclasses must implement submit()")

    async def submit_async(self, ref: str, metadata: Dict[str, Any]) -> None:
        await asyncio.to_thread(self.submit, ref, metadata)
