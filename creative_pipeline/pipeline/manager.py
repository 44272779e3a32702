import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import SourceUnavailable
from creative_pipeline.core.languages import DEFAULT_LANGUAGE, language_name
from creative_pipeline.core.media import MediaStore
from creative_pipeline.core.models import (
    ExistingScriptRow,
    GenerationRequest,
    PipelineResult,
    ReprocessResult,
    ScoredExample,
    ScriptSuggestion,
    Stage,
)
from creative_pipeline.pipeline.scripts import ScriptGenerator
from creative_pipeline.pipeline.sink import ResultSink
from creative_pipeline.pipeline.source import PerformanceSource
from creative_pipeline.audio.synthesizer import AudioSynthesizer
from creative_pipeline.video.composer import VideoComposer
from creative_pipeline.utils.logger import get_logger

logger = get_logger()


class PipelineOrchestrator:
    """
    Drives one request through
    Sourcing -> Generating -> (Synthesizing) -> (Composing) -> Persisting -> Done.

    Sourcing and Batch generation failures abort the request. Everything
    downstream is per item: the orchestrator always returns what it produced.
    """

    def __init__(
        self,
        source: PerformanceSource,
        generator: ScriptGenerator,
        synthesizer: AudioSynthesizer,
        composer: VideoComposer,
        sink: ResultSink,
    ):
        self.source = source
        self.generator = generator
        self.synthesizer = synthesizer
        self.composer = composer
        self.sink = sink

    def run(self, request: GenerationRequest) -> PipelineResult:
        """
        Synchronous entry point for the pipeline.
        """
        async def run_and_deliver():
            result = await self.run_generate(request)
            # Pending approvals die with the loop.
            await self.sink.notifier.drain()
            return result

        return asyncio.run(run_and_deliver())

    async def run_generate(self, request: GenerationRequest) -> PipelineResult:
        if not request.source_ref:
            raise SourceUnavailable("A source spreadsheet is required")

        logger.info(f"🚀 [Sourcing] {request.source_ref} tab='{request.source_tab}'")
        examples: List[ScoredExample] = await self.source.fetch_scored_examples(
            request.source_ref, request.source_tab
        )
        if not examples:
            logger.warning("⚠️ No scored examples found, generating from guidance and primer only")

        logger.info(f"🧠 [Generating] {request.count} scripts from {len(examples)} examples")
        suggestions = await self.generator.generate(examples, request)

        if request.with_audio:
            await self._produce_media(suggestions, request.voice_id, request.background_video_ref)

        logger.info(f"💾 [Persisting] tab='{request.destination_tab}'")
        saved = await self.sink.append_suggestions(
            request.source_ref,
            suggestions,
            tab=request.destination_tab,
            prompt_summary=self._prompt_summary(request),
            model_name=getattr(self.generator.model, "name", ""),
        )

        notified = 0
        if request.notify:
            notified = self._notify(suggestions, request, video_only=bool(request.background_video_ref))

        message = self._summary(suggestions, request, saved, notified)
        logger.info(f"🏁 [Done] {message}")
        return PipelineResult(suggestions=suggestions, saved_to_sheet=saved, message=message)

    async def run_reprocess(
        self,
        rows: List[ExistingScriptRow],
        request: GenerationRequest,
        destination_ref: Optional[str] = None,
    ) -> ReprocessResult:
        """Enters at Synthesizing with suggestions rebuilt from sheet rows."""
        suggestions = [row.to_suggestion(i, request.language) for i, row in enumerate(r for r in rows if r.has_content)]
        if request.language != DEFAULT_LANGUAGE:
            for s in suggestions:
                s.language = request.language

        logger.info(f"🔁 [Synthesizing] Reprocessing {len(suggestions)} existing scripts")
        await self._produce_media(suggestions, request.voice_id, request.background_video_ref)

        if destination_ref:
            logger.info(f"💾 [Persisting] tab='{request.destination_tab}'")
            await self.sink.append_suggestions(destination_ref, suggestions, tab=request.destination_tab)

        notified = 0
        if request.notify:
            notified = self._notify(suggestions, request, video_only=True)

        audio = sum(1 for s in suggestions if s.audio_ref)
        videos = sum(1 for s in suggestions if s.video_ref)
        message = (
            f"Processed {len(suggestions)} scripts: {audio} audio, "
            f"{videos} videos, {notified} sent for approval"
        )
        logger.info(f"🏁 [Done] {message}")
        return ReprocessResult(suggestions=suggestions, message=message, notified=notified)

    async def load_existing_scripts(self, destination_ref: str, tab: Optional[str] = None) -> List[ExistingScriptRow]:
        return await self.sink.read_existing_scripts(destination_ref, tab)

    async def generate_audio_only(
        self,
        suggestions: List[ScriptSuggestion],
        indices: Iterable[int],
        voice_id: Optional[str] = None,
        language: Optional[str] = None,
        background_video_ref: Optional[str] = None,
    ) -> List[ScriptSuggestion]:
        """
        Narrates (and optionally composites) only the suggestions whose
        ``index`` is listed. Others are returned untouched.
        """
        wanted = set(indices)
        voice_id = voice_id or settings.default_voice_id
        for s in suggestions:
            if s.index not in wanted:
                continue
            if language:
                s.language = language
            # Earlier media failures are retried; script failures are not.
            if s.stage_error and s.stage_error.stage in (Stage.AUDIO, Stage.VIDEO):
                s.stage_error = None

        await self._produce_media(suggestions, voice_id, background_video_ref, indices=wanted)
        return suggestions

    async def _produce_media(
        self,
        suggestions: List[ScriptSuggestion],
        voice_id: str,
        background_video_ref: Optional[str],
        indices: Optional[Iterable[int]] = None,
    ):
        logger.info(f"🎙️ [Synthesizing] voice={voice_id}")
        await self.synthesizer.synthesize_many(suggestions, voice_id, indices=indices)
        if background_video_ref:
            logger.info(f"🎬 [Composing] background={background_video_ref}")
            await self.composer.compose_many(suggestions, background_video_ref, indices=indices)

    def _notify(self, suggestions: List[ScriptSuggestion], request: GenerationRequest, video_only: bool) -> int:
        sent = 0
        for s in suggestions:
            ref = s.video_ref if video_only else s.preview_ref
            if not ref:
                continue
            self.sink.submit_for_approval(ref, self._metadata(s), request.notify_delay_seconds)
            sent += 1
        if sent:
            logger.info(f"📣 Scheduled {sent} approval requests (delay {request.notify_delay_seconds}s)")
        return sent

    @staticmethod
    def _metadata(suggestion: ScriptSuggestion) -> Dict[str, Any]:
        return {
            "title": suggestion.title or f"Script {suggestion.index + 1}",
            "script": suggestion.text_for_speech,
            "content": suggestion.content,
            "nativeContent": suggestion.native_content,
            "language": language_name(suggestion.language),
        }

    @staticmethod
    def _prompt_summary(request: GenerationRequest) -> str:
        parts = [
            f"count={request.count}",
            f"experimental={int(round(request.experimental_ratio * 100))}%",
            f"strategy={request.strategy.value}",
            f"language={request.language}",
        ]
        if request.guidance:
            parts.append(f"guidance={request.guidance[:120]}")
        return "; ".join(parts)

    @staticmethod
    def _summary(suggestions: List[ScriptSuggestion], request: GenerationRequest, saved: bool, notified: int) -> str:
        ok = sum(1 for s in suggestions if not s.failed or s.stage_error.stage is not Stage.SCRIPT)
        message = f"Generated {ok}/{len(suggestions)} scripts"
        if request.with_audio:
            message += f", {sum(1 for s in suggestions if s.audio_ref)} with audio"
        if request.background_video_ref:
            message += f", {sum(1 for s in suggestions if s.video_ref)} with video"
        if notified:
            message += f", {notified} sent for approval"
        message += "; saved to sheet" if saved else "; not saved to sheet"
        return message


def build_pipeline(media: Optional[MediaStore] = None) -> PipelineOrchestrator:
    """
    Wires real clients where credentials are configured and falls back to
    the mocks otherwise.
    """
    from creative_pipeline.audio.elevenlabs import ElevenLabsSpeechClient
    from creative_pipeline.audio.mock import MockSpeechClient
    from creative_pipeline.generators.mock import MockTextModel
    from creative_pipeline.generators.openai_model import OpenAITextModel
    from creative_pipeline.notify.channels import LogApprovalChannel, SlackApprovalChannel
    from creative_pipeline.notify.notifier import Notifier
    from creative_pipeline.sheets.google import GoogleSheetsStore
    from creative_pipeline.sheets.memory import InMemorySheetsStore
    from creative_pipeline.video.ffmpeg import FfmpegCompositor

    media = media or MediaStore()

    if settings.google_service_account_json:
        store = GoogleSheetsStore()
    else:
        logger.warning("⚠️ No Google service account configured, using in-memory sheets")
        store = InMemorySheetsStore()

    if settings.openai_api_key:
        model = OpenAITextModel()
    else:
        logger.warning("⚠️ No OpenAI key configured, using mock text model")
        model = MockTextModel()

    if settings.elevenlabs_api_key:
        speech = ElevenLabsSpeechClient()
    else:
        logger.warning("⚠️ No ElevenLabs key configured, using mock speech client")
        speech = MockSpeechClient()

    if settings.slack_bot_token and settings.slack_channel_id:
        channel = SlackApprovalChannel()
    else:
        logger.warning("⚠️ Slack not configured, approval requests will only be logged")
        channel = LogApprovalChannel()

    return PipelineOrchestrator(
        source=PerformanceSource(store),
        generator=ScriptGenerator(model),
        synthesizer=AudioSynthesizer(speech, media=media),
        composer=VideoComposer(FfmpegCompositor(), media=media),
        sink=ResultSink(store, Notifier(channel)),
    )
