import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import GenerationFailed
from creative_pipeline.core.models import (
    CreativeMode,
    GenerationRequest,
    ScoredExample,
    ScriptSuggestion,
    Stage,
    Strategy,
)
from creative_pipeline.core.primer import resolve_primer
from creative_pipeline.engine.parsing import as_metrics, extract_suggestions
from creative_pipeline.engine.prompts import (
    SYSTEM_PROMPT,
    build_batch_prompt,
    build_context,
    build_single_prompt,
    build_translation_prompt,
)
from creative_pipeline.generators.base import TextModel
from creative_pipeline.pipeline.source import rank_examples
from creative_pipeline.utils.decorators import with_timeout

logger = logging.getLogger("CreativePipeline")


def close_count(count: int, experimental_ratio: float) -> int:
    """Scripts that follow the primer closely: count*(1-ratio), rounded half up."""
    raw = count * (1.0 - experimental_ratio)
    return max(0, min(count, int(math.floor(raw + 0.5))))


def plan_modes(count: int, experimental_ratio: float) -> List[CreativeMode]:
    close = close_count(count, experimental_ratio)
    return [CreativeMode.CLOSE] * close + [CreativeMode.EXPERIMENTAL] * (count - close)


def _script_text(item: Dict[str, Any]) -> str:
    return str(item.get("content") or item.get("nativeContent") or "").strip()


class ScriptGenerator:
    """
    Turns scored examples + guidance into new script suggestions, either with
    one aggregated call (Batch) or one isolated call per script (PerItem).
    """

    def __init__(
        self,
        model: TextModel,
        concurrency: Optional[int] = None,
        call_timeout: Optional[float] = None,
        primer_path: Optional[str] = None,
    ):
        self.model = model
        self.concurrency = max(1, concurrency or settings.concurrency)
        self.call_timeout = settings.call_timeout_seconds if call_timeout is None else call_timeout
        self.primer_path = primer_path or settings.primer_path

    async def generate(self, examples: List[ScoredExample], request: GenerationRequest) -> List[ScriptSuggestion]:
        primer = resolve_primer(request.primer_override, self.primer_path)
        top, bottom = rank_examples(examples)
        context = build_context(top, bottom, request.guidance, primer)
        modes = plan_modes(request.count, request.experimental_ratio)

        logger.info(
            f"✍️ Generating {request.count} scripts [{request.strategy.value}] "
            f"close={modes.count(CreativeMode.CLOSE)} experimental={modes.count(CreativeMode.EXPERIMENTAL)} "
            f"language={request.language}"
        )

        if request.strategy is Strategy.BATCH:
            suggestions = await self._generate_batch(context, modes, request)
        else:
            suggestions = await self._generate_per_item(context, modes, request)

        if request.is_native_language:
            await self._translate_all(suggestions, request)

        return suggestions

    def _to_suggestion(self, index: int, item: Dict[str, Any], request: GenerationRequest) -> ScriptSuggestion:
        text = _script_text(item)
        suggestion = ScriptSuggestion(
            index=index,
            title=str(item.get("title") or f"Script {index + 1}").strip(),
            reasoning=str(item.get("reasoning") or "").strip(),
            target_metrics=as_metrics(item.get("targetMetrics")),
            language=request.language,
        )
        if request.is_native_language:
            suggestion.native_content = text
        else:
            suggestion.content = text
        return suggestion

    async def _generate_batch(self, context: str, modes: List[CreativeMode], request: GenerationRequest) -> List[ScriptSuggestion]:
        count = len(modes)
        prompt = build_batch_prompt(context, count, modes.count(CreativeMode.CLOSE), request.language)
        try:
            payload = await with_timeout(
                self.model.complete_json_async(prompt, system_prompt=SYSTEM_PROMPT),
                self.call_timeout,
                "batch script generation",
            )
            items = [item for item in extract_suggestions(payload) if _script_text(item)]
        except Exception as e:
            logger.error(f"❌ Batch generation failed: {e}")
            raise GenerationFailed(f"Script generation failed: {e}") from e

        if len(items) < count:
            raise GenerationFailed(f"Model returned {len(items)} usable scripts, expected {count}")
        if len(items) > count:
            logger.warning(f"⚠️ Model returned {len(items)} scripts, keeping the first {count}")

        return [self._to_suggestion(i, item, request) for i, item in enumerate(items[:count])]

    async def _generate_per_item(self, context: str, modes: List[CreativeMode], request: GenerationRequest) -> List[ScriptSuggestion]:
        slots: List[Optional[ScriptSuggestion]] = [None] * len(modes)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_one(index: int, mode: CreativeMode):
            prompt = build_single_prompt(context, mode, request.language, index)
            async with semaphore:
                try:
                    payload = await with_timeout(
                        self.model.complete_json_async(prompt, system_prompt=SYSTEM_PROMPT),
                        self.call_timeout,
                        f"script {index + 1}",
                    )
                    items = [item for item in extract_suggestions(payload) if _script_text(item)]
                    if not items:
                        raise ValueError("model returned no script")
                    slots[index] = self._to_suggestion(index, items[0], request)
                except Exception as e:
                    logger.error(f"❌ Script {index + 1} failed: {e}")
                    failed = ScriptSuggestion(index=index, title=f"Script {index + 1}", language=request.language)
                    failed.fail(Stage.SCRIPT, str(e))
                    slots[index] = failed

        await asyncio.gather(*(run_one(i, mode) for i, mode in enumerate(modes)))

        ok = sum(1 for s in slots if not s.failed)
        logger.info(f"✅ Per-item generation finished: {ok}/{len(slots)} succeeded")
        return slots

    async def _translate_all(self, suggestions: List[ScriptSuggestion], request: GenerationRequest):
        semaphore = asyncio.Semaphore(self.concurrency)

        async def translate(s: ScriptSuggestion):
            async with semaphore:
                try:
                    payload = await with_timeout(
                        self.model.complete_json_async(
                            build_translation_prompt(s.native_content, request.language),
                            system_prompt=SYSTEM_PROMPT,
                            temperature=0.2,
                        ),
                        self.call_timeout,
                        f"translation of script {s.index + 1}",
                    )
                    english = str((payload or {}).get("content") or "").strip()
                    if not english:
                        raise ValueError("empty translation")
                    s.content = english
                except Exception as e:
                    s.content = s.native_content
                    if request.strict_translation:
                        logger.error(f"❌ Translation of script {s.index + 1} failed: {e}")
                        s.fail(Stage.SCRIPT, f"Translation failed: {e}")
                    else:
                        logger.warning(f"⚠️ Translation of script {s.index + 1} failed, keeping native text: {e}")

        await asyncio.gather(*(translate(s) for s in suggestions if s.native_content and not s.failed))
