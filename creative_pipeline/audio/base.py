import asyncio
from typing import Any, Dict, List


class SpeechClient:
    """
    Abstract interface for text-to-speech backends.
    """

    name: str = "abstract"

    def synthesize(self, text: str, voice_id: str, model_id: str) -> bytes:
        """
        Renders ``text`` with ``voice_id`` and returns MP3 bytes.

        Raises:
            ConnectionError: For retryable network issues.
            SynthesisFailed: When the provider rejects the request.
        """
        raise NotImplementedError("Subclasses must implement synthesize()")

    def list_voices(self) -> List[Dict[str, Any]]:
        return []

    async def synthesize_async(self, text: str, voice_id: str, model_id: str) -> bytes:
        return await asyncio.to_thread(self.synthesize, text, voice_id, model_id)
