import asyncio
import logging
from typing import Iterable, List, Optional

from creative_pipeline.config.settings import settings
from creative_pipeline.core.media import MediaStore
from creative_pipeline.core.models import ScriptSuggestion, Stage
from creative_pipeline.utils.decorators import with_timeout
from creative_pipeline.video.base import Compositor

logger = logging.getLogger("CreativePipeline")


class VideoComposer:
    """
    Composites narrated suggestions over a background video. A failure keeps
    the suggestion's audio so it degrades to audio-only.
    """

    def __init__(
        self,
        compositor: Compositor,
        media: Optional[MediaStore] = None,
        concurrency: Optional[int] = None,
        call_timeout: Optional[float] = None,
    ):
        self.compositor = compositor
        self.media = media or MediaStore()
        self.concurrency = max(1, concurrency or settings.concurrency)
        self.call_timeout = settings.call_timeout_seconds if call_timeout is None else call_timeout

    async def compose(self, suggestion: ScriptSuggestion, background_video_ref: str) -> Optional[str]:
        if suggestion.failed or not suggestion.audio_ref:
            return None

        output = self.media.new_path("videos", f"script_{suggestion.index + 1}_{suggestion.title}", ".mp4")
        try:
            await with_timeout(
                self.compositor.compose(
                    self.media.to_path(suggestion.audio_ref),
                    self.media.resolve_background(background_video_ref),
                    output,
                    subtitle_text=suggestion.text_for_speech,
                ),
                self.call_timeout,
                f"video for script {suggestion.index + 1}",
            )
        except Exception as e:
            logger.error(f"❌ Video creation failed for script {suggestion.index + 1}: {e}")
            suggestion.fail(Stage.VIDEO, f"Video creation failed: {e}")
            return None

        suggestion.video_ref = self.media.to_ref(output)
        logger.info(f"🎬 Video for script {suggestion.index + 1}: {suggestion.video_ref}")
        return suggestion.video_ref

    async def compose_many(
        self,
        suggestions: List[ScriptSuggestion],
        background_video_ref: str,
        indices: Optional[Iterable[int]] = None,
    ) -> List[ScriptSuggestion]:
        wanted = None if indices is None else set(indices)
        targets = [s for s in suggestions if wanted is None or s.index in wanted]
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_one(s: ScriptSuggestion):
            async with semaphore:
                await self.compose(s, background_video_ref)

        await asyncio.gather(*(run_one(s) for s in targets))
        logger.info(f"📼 Video stage: {sum(1 for s in targets if s.video_ref)}/{len(targets)} composited")
        return suggestions

    def list_background_videos(self) -> List[str]:
        return self.media.list_background_videos()

    async def is_available(self) -> bool:
        return await self.compositor.is_available()
