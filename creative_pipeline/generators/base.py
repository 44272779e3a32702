import asyncio
from typing import Any, Optional


class TextModel:
    """
    Abstract interface for generative text backends.
    Every call returns the parsed JSON object the model produced.
    """

    name: str = "abstract"

    def complete_json(self, prompt: str, system_prompt: Optional[str] = None, temperature: Optional[float] = None) -> Any:
        """
        Sends one prompt and returns the parsed JSON reply.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system instructions.
            temperature: Sampling temperature; backend default when None.

        Raises:
            ConnectionError: For retryable network issues.
            ValueError: When the reply is not valid JSON.
        """
        raise NotImplementedError("Subclasses must implement complete_json()")

    async def complete_json_async(self, prompt: str, system_prompt: Optional[str] = None, temperature: Optional[float] = None) -> Any:
        """
        Asynchronously completes a prompt.
        Default implementation wraps the synchronous method in a worker thread.
        """
        return await asyncio.to_thread(
            self.complete_json,
            prompt,
            system_prompt=system_prompt,
            temperature=temperature,
        )
