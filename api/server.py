import asyncio
import os
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.schemas import (
    AudioOnlyRequest,
    GenerateScriptsRequest,
    GenerateScriptsResponse,
    MessageResponse,
    ReprocessRequest,
    SuggestionsResponse,
)
from api.security import verify_api_key
from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import GenerationFailed, PipelineError, SourceUnavailable
from creative_pipeline.core.languages import normalize_language
from creative_pipeline.core.models import ExistingScriptRow, GenerationRequest, ScriptSuggestion, Strategy
from creative_pipeline.pipeline.manager import PipelineOrchestrator, build_pipeline
from creative_pipeline.pipeline.source import rank_examples
from creative_pipeline.sheets.base import extract_spreadsheet_id
from creative_pipeline.utils.logger import setup_logging

logger = setup_logging(settings.log_level)


@lru_cache(maxsize=1)
def get_orchestrator() -> PipelineOrchestrator:
    """Single pipeline instance, built on first use."""
    return build_pipeline()


app = FastAPI(
    title="Creative Pipeline API",
    description="Performance-conditioned ad script, voiceover and video generation",
    version="1.0.0",
)


def _error_body(message: str, error: str, details=None) -> dict:
    return {"message": message, "error": error, "details": details}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return JSONResponse(status_code=400, content=_error_body("Invalid request", "ValidationError", details))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content=_error_body(str(exc), "ValueError"))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail), "HTTPException"))


@app.exception_handler(PipelineError)
async def pipeline_exception_handler(request: Request, exc: PipelineError):
    status_code = 502 if isinstance(exc, (SourceUnavailable, GenerationFailed)) else 500
    logger.error(f"❌ {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=status_code, content=_error_body(str(exc), type(exc).__name__))


# Global Error Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal Server Error", type(exc).__name__, str(exc)),
    )


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Generated audio and video are served from the output root.
os.makedirs(settings.output_root, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.output_root), name="uploads")


@app.post(
    "/api/ai/generate-scripts",
    response_model=GenerateScriptsResponse,
    dependencies=[Depends(verify_api_key)],
)
async def generate_scripts(body: GenerateScriptsRequest, engine: PipelineOrchestrator = Depends(get_orchestrator)):
    """
    Generates scripts from the performance tab, optionally narrates and
    composites them, and appends the results to the destination tab.
    """
    request = GenerationRequest.build(
        count=body.script_count,
        voice_id=body.voice_id,
        language=body.language,
        experimental_ratio=body.experimental_percentage / 100.0,
        strategy=Strategy.PER_ITEM if body.individual_generation else Strategy.BATCH,
        with_audio=body.generate_audio,
        background_video_ref=body.background_video_path,
        guidance=(body.guidance_prompt or "").strip() or None,
        primer_override=body.primer_content.encode("utf-8") if body.primer_content else None,
        notify=body.slack_enabled and body.generate_audio,
        notify_delay_seconds=body.slack_notification_delay,
        strict_translation=body.strict_translation,
        source_ref=extract_spreadsheet_id(body.spreadsheet_id),
        source_tab=body.tab_name,
        destination_tab=body.destination_tab,
    )
    result = await engine.run_generate(request)
    return GenerateScriptsResponse(
        suggestions=[s.to_dict() for s in result.suggestions],
        message=result.message,
        saved_to_sheet=result.saved_to_sheet,
    )


@app.post(
    "/api/ai/process-existing-scripts",
    response_model=MessageResponse,
    dependencies=[Depends(verify_api_key)],
)
async def process_existing_scripts(body: ReprocessRequest, engine: PipelineOrchestrator = Depends(get_orchestrator)):
    """Narrates (and composites) scripts the caller picked from an existing tab."""
    rows = [
        ExistingScriptRow(
            content=s.content,
            native_content=s.native_content,
            recording_language=s.recording_language,
            generated_date=s.generated_date,
            title=s.script_title,
            reasoning=s.reasoning,
            row_index=s.row_index,
        )
        for s in body.scripts
    ]
    if not any(r.has_content for r in rows):
        raise ValueError("No scripts with content to process")

    request = GenerationRequest.build(
        count=len(rows),
        voice_id=body.voice_id,
        language=body.language,
        with_audio=True,
        background_video_ref=body.background_video,
        notify=body.send_to_slack,
        notify_delay_seconds=body.slack_notification_delay,
        destination_tab=body.destination_tab,
    )
    destination = extract_spreadsheet_id(body.spreadsheet_id) if body.spreadsheet_id else None
    result = await engine.run_reprocess(rows, request, destination_ref=destination)
    return MessageResponse(message=result.message)


@app.post(
    "/api/ai/generate-audio-only",
    response_model=SuggestionsResponse,
    dependencies=[Depends(verify_api_key)],
)
async def generate_audio_only(body: AudioOnlyRequest, engine: PipelineOrchestrator = Depends(get_orchestrator)):
    try:
        suggestions = [ScriptSuggestion.from_dict(s) for s in body.suggestions]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed suggestion: {e}") from e

    language = normalize_language(body.language) if body.language else None

    await engine.generate_audio_only(
        suggestions,
        body.indices,
        voice_id=body.voice_id,
        language=language,
        background_video_ref=body.background_video_path,
    )
    wanted = set(body.indices)
    narrated = sum(1 for s in suggestions if s.index in wanted and s.audio_ref)
    return SuggestionsResponse(
        suggestions=[s.to_dict() for s in suggestions],
        message=f"Generated audio for {narrated}/{len(wanted)} selected scripts",
    )


@app.get("/api/ai/performance-data/{spreadsheet_id}")
async def performance_data(
    spreadsheet_id: str,
    tab_name: Optional[str] = Query(default=None, alias="tabName"),
    engine: PipelineOrchestrator = Depends(get_orchestrator),
):
    examples = await engine.source.fetch_scored_examples(extract_spreadsheet_id(spreadsheet_id), tab_name)
    top, bottom = rank_examples(examples)

    def as_dict(e):
        return {"content": e.content, "score": e.score}

    return {
        "count": len(examples),
        "data": [as_dict(e) for e in examples],
        "topPerformers": [as_dict(e) for e in top],
        "bottomPerformers": [as_dict(e) for e in bottom],
    }


@app.get("/api/ai/existing-scripts/{spreadsheet_id}")
async def existing_scripts(
    spreadsheet_id: str,
    tab_name: Optional[str] = Query(default=None, alias="tabName"),
    engine: PipelineOrchestrator = Depends(get_orchestrator),
):
    rows: List[ExistingScriptRow] = await engine.load_existing_scripts(extract_spreadsheet_id(spreadsheet_id), tab_name)
    return {"count": len(rows), "scripts": [r.to_dict() for r in rows]}


@app.get("/api/sheets/{spreadsheet_id}/tabs")
async def sheet_tabs(spreadsheet_id: str, engine: PipelineOrchestrator = Depends(get_orchestrator)):
    sid = extract_spreadsheet_id(spreadsheet_id)
    try:
        tabs = await engine.sink.store.list_tabs_async(sid)
    except Exception as e:
        raise SourceUnavailable(f"Cannot list tabs: {e}") from e
    return {"spreadsheetId": sid, "tabs": tabs}


@app.get("/api/elevenlabs/voices")
async def voices(engine: PipelineOrchestrator = Depends(get_orchestrator)):
    client = engine.synthesizer.client
    try:
        found = await asyncio.to_thread(client.list_voices)
    except Exception as e:
        logger.error(f"❌ Voice listing failed: {e}")
        raise PipelineError(f"Voice listing failed: {e}") from e
    return {"voices": found, "defaultVoiceId": settings.default_voice_id}


@app.get("/api/video/status")
async def video_status(engine: PipelineOrchestrator = Depends(get_orchestrator)):
    return {
        "ffmpegAvailable": await engine.composer.is_available(),
        "backgroundVideos": engine.composer.list_background_videos(),
    }


@app.get("/api/health")
def health_check(engine: PipelineOrchestrator = Depends(get_orchestrator)):
    return {
        "status": "Creative Pipeline API is running",
        "notificationsPending": engine.sink.notifier.pending,
    }
