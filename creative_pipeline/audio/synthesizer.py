import asyncio
import logging
import os
from typing import Dict, Iterable, List, Optional, Tuple

from creative_pipeline.config.settings import settings
from creative_pipeline.core.languages import tts_model_for
from creative_pipeline.core.media import MediaStore
from creative_pipeline.core.models import ScriptSuggestion, Stage
from creative_pipeline.audio.base import SpeechClient
from creative_pipeline.utils.decorators import with_timeout

logger = logging.getLogger("CreativePipeline")


class AudioSynthesizer:
    """
    Narrates suggestions one by one. A failure marks only that suggestion.
    Identical (text, voice, model) requests reuse the earlier file.
    """

    def __init__(
        self,
        client: SpeechClient,
        media: Optional[MediaStore] = None,
        concurrency: Optional[int] = None,
        call_timeout: Optional[float] = None,
    ):
        self.client = client
        self.media = media or MediaStore()
        self.concurrency = max(1, concurrency or settings.concurrency)
        self.call_timeout = settings.call_timeout_seconds if call_timeout is None else call_timeout
        self._cache: Dict[Tuple[str, str, str], str] = {}

    def _cached(self, key) -> Optional[str]:
        ref = self._cache.get(key)
        if ref and os.path.exists(self.media.to_path(ref)):
            return ref
        return None

    def _render_to_file(self, text: str, voice_id: str, model_id: str, stem: str) -> str:
        audio = self.client.synthesize(text, voice_id, model_id)
        path = self.media.new_path("audio", stem, ".mp3")
        with open(path, "wb") as f:
            f.write(audio)
        return self.media.to_ref(path)

    async def synthesize(self, suggestion: ScriptSuggestion, voice_id: str) -> Optional[str]:
        """Sets ``audio_ref`` on success or an Audio stage error on failure."""
        if suggestion.failed:
            return None

        text = suggestion.text_for_speech.strip()
        if not text:
            suggestion.fail(Stage.AUDIO, "No script text to narrate")
            return None

        model_id = tts_model_for(suggestion.language)
        key = (text, voice_id, model_id)
        cached = self._cached(key)
        if cached:
            suggestion.audio_ref = cached
            return cached

        stem = f"script_{suggestion.index + 1}_{suggestion.title}"
        try:
            ref = await with_timeout(
                asyncio.to_thread(self._render_to_file, text, voice_id, model_id, stem),
                self.call_timeout,
                f"voiceover for script {suggestion.index + 1}",
            )
        except Exception as e:
            logger.error(f"❌ Voice generation failed for script {suggestion.index + 1}: {e}")
            suggestion.fail(Stage.AUDIO, f"Voice generation failed: {e}")
            return None

        self._cache[key] = ref
        suggestion.audio_ref = ref
        logger.info(f"🎙️ Voiceover for script {suggestion.index + 1} [{model_id}]: {ref}")
        return ref

    async def synthesize_many(
        self,
        suggestions: List[ScriptSuggestion],
        voice_id: str,
        indices: Optional[Iterable[int]] = None,
    ) -> List[ScriptSuggestion]:
        """Narrates every suggestion, or only those whose ``index`` is in ``indices``."""
        wanted = None if indices is None else set(indices)
        targets = [s for s in suggestions if wanted is None or s.index in wanted]
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_one(s: ScriptSuggestion):
            async with semaphore:
                await self.synthesize(s, voice_id)

        await asyncio.gather(*(run_one(s) for s in targets))
        logger.info(f"🎧 Audio stage: {sum(1 for s in targets if s.audio_ref)}/{len(targets)} narrated")
        return suggestions
