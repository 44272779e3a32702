import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from creative_pipeline.core.languages import DEFAULT_LANGUAGE, normalize_language

logger = logging.getLogger("CreativePipeline")


class Stage(Enum):
    SCRIPT = "Script"
    AUDIO = "Audio"
    VIDEO = "Video"


class Strategy(Enum):
    BATCH = "Batch"
    PER_ITEM = "PerItem"


class CreativeMode(Enum):
    CLOSE = "close"
    EXPERIMENTAL = "experimental"


@dataclass(frozen=True)
class ScoredExample:
    content: str
    score: float


@dataclass(frozen=True)
class StageError:
    stage: Stage
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"stage": self.stage.value, "message": self.message}


@dataclass(frozen=True)
class GenerationRequest:
    """
    Immutable configuration for one pipeline run.
    Build it with ``GenerationRequest.build`` so defaults are resolved once.
    """
    count: int
    voice_id: str
    language: str = DEFAULT_LANGUAGE
    experimental_ratio: float = 0.0
    strategy: Strategy = Strategy.BATCH
    with_audio: bool = False
    background_video_ref: Optional[str] = None
    guidance: Optional[str] = None
    primer_override: Optional[bytes] = None
    notify: bool = False
    notify_delay_seconds: int = 0
    strict_translation: bool = False
    source_ref: Optional[str] = None
    source_tab: Optional[str] = None
    destination_tab: Optional[str] = None

    def __post_init__(self):
        if self.count < 1:
            raise ValueError("count must be at least 1")
        if not 0.0 <= self.experimental_ratio <= 1.0:
            raise ValueError("experimental ratio must be within [0, 1]")
        if self.notify_delay_seconds < 0:
            raise ValueError("notify delay cannot be negative")
        if self.notify and not self.with_audio:
            raise ValueError("notify requires audio generation")
        object.__setattr__(self, "language", normalize_language(self.language))
        if not self.with_audio:
            # Audio-less runs never touch voice or background.
            object.__setattr__(self, "background_video_ref", None)

    @classmethod
    def build(cls, **kwargs) -> "GenerationRequest":
        from creative_pipeline.config.settings import settings

        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        kwargs.setdefault("count", settings.default_script_count)
        kwargs.setdefault("voice_id", settings.default_voice_id)
        kwargs.setdefault("language", settings.default_language)
        kwargs.setdefault("strict_translation", settings.strict_translation)
        kwargs.setdefault("notify_delay_seconds", settings.default_notify_delay_seconds)
        kwargs.setdefault("source_tab", settings.source_tab)
        kwargs.setdefault("destination_tab", settings.destination_tab)
        return cls(**kwargs)

    def with_changes(self, **changes) -> "GenerationRequest":
        return replace(self, **changes)

    @property
    def is_native_language(self) -> bool:
        return self.language != DEFAULT_LANGUAGE


@dataclass
class ScriptSuggestion:
    """One candidate script plus whatever downstream artifacts it earned."""
    index: int
    title: str = ""
    content: str = ""
    native_content: Optional[str] = None
    reasoning: str = ""
    target_metrics: List[str] = field(default_factory=list)
    language: str = DEFAULT_LANGUAGE
    audio_ref: Optional[str] = None
    video_ref: Optional[str] = None
    stage_error: Optional[StageError] = None

    def fail(self, stage: Stage, message: str) -> None:
        self.stage_error = StageError(stage=stage, message=message)

    @property
    def failed(self) -> bool:
        return self.stage_error is not None

    @property
    def text_for_speech(self) -> str:
        return self.native_content or self.content

    @property
    def preview_ref(self) -> Optional[str]:
        return self.video_ref or self.audio_ref

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "title": self.title,
            "content": self.content,
            "nativeContent": self.native_content,
            "language": self.language,
            "reasoning": self.reasoning,
            "targetMetrics": list(self.target_metrics),
            "audioRef": self.audio_ref,
            "videoRef": self.video_ref,
            "stageError": self.stage_error.to_dict() if self.stage_error else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScriptSuggestion":
        error = data.get("stageError")
        return cls(
            index=int(data["index"]),
            title=data.get("title") or "",
            content=data.get("content") or "",
            native_content=data.get("nativeContent"),
            language=normalize_language(data.get("language")),
            reasoning=data.get("reasoning") or "",
            target_metrics=list(data.get("targetMetrics") or []),
            audio_ref=data.get("audioRef"),
            video_ref=data.get("videoRef"),
            stage_error=StageError(Stage(error["stage"]), error["message"]) if error else None,
        )


@dataclass(frozen=True)
class ExistingScriptRow:
    content: Optional[str]
    native_content: Optional[str]
    recording_language: str = "English"
    generated_date: str = ""
    title: str = ""
    reasoning: str = ""
    row_index: Optional[int] = None

    @property
    def has_content(self) -> bool:
        return bool((self.content or "").strip() or (self.native_content or "").strip())

    def resolve_language(self, fallback: str = DEFAULT_LANGUAGE) -> str:
        """Hand-typed sheet values may be unsupported; those fall back instead of raising."""
        try:
            return normalize_language(self.recording_language)
        except ValueError:
            logger.warning(
                f"⚠️ Row {self.row_index or '?'}: unsupported language '{self.recording_language}', using '{fallback}'"
            )
            return fallback

    def to_suggestion(self, index: int, fallback_language: str = DEFAULT_LANGUAGE) -> ScriptSuggestion:
        return ScriptSuggestion(
            index=index,
            title=self.title or f"Script {index + 1}",
            content=self.content or self.native_content or "",
            native_content=self.native_content or None,
            language=self.resolve_language(fallback_language),
            reasoning=self.reasoning,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowIndex": self.row_index,
            "generatedDate": self.generated_date,
            "scriptTitle": self.title,
            "recordingLanguage": self.recording_language,
            "nativeContent": self.native_content,
            "content": self.content,
            "reasoning": self.reasoning,
        }


@dataclass
class PipelineResult:
    suggestions: List[ScriptSuggestion]
    saved_to_sheet: bool
    message: str


@dataclass
class ReprocessResult:
    suggestions: List[ScriptSuggestion]
    message: str
    notified: int = 0
