import pytest
from fastapi.testclient import TestClient

from api.server import app, get_orchestrator
from creative_pipeline.audio.mock import MockSpeechClient
from creative_pipeline.audio.synthesizer import AudioSynthesizer
from creative_pipeline.config.settings import settings
from creative_pipeline.core.media import MediaStore
from creative_pipeline.generators.base import TextModel
from creative_pipeline.generators.mock import MockTextModel
from creative_pipeline.notify.channels import LogApprovalChannel
from creative_pipeline.notify.notifier import Notifier
from creative_pipeline.pipeline.manager import PipelineOrchestrator
from creative_pipeline.pipeline.scripts import ScriptGenerator
from creative_pipeline.pipeline.sink import ResultSink
from creative_pipeline.pipeline.source import PerformanceSource
from creative_pipeline.sheets.base import column_index
from creative_pipeline.sheets.memory import InMemorySheetsStore
from creative_pipeline.video.composer import VideoComposer
from creative_pipeline.video.mock import MockCompositor

# Setup client with API Key for all requests if possible, or per request
client = TestClient(app)
AUTH_HEADERS = {"x-api-key": "dev-secret-key"}
SHEET = "sheet-1"


class OfflineModel(TextModel):
    def complete_json(self, prompt, system_prompt=None, temperature=None):
        raise ConnectionError("model offline")


def _performance_rows():
    rows = []
    for i in range(5):
        row = [""] * 23
        row[column_index("U")] = "Score" if i == 0 else str(i)
        row[column_index("W")] = "Script" if i == 0 else f"Historic script {i}."
        rows.append(row)
    return rows


@pytest.fixture
def engine(tmp_path):
    media = MediaStore(root=str(tmp_path / "out"), background_dir=str(tmp_path))
    (tmp_path / "bg.mp4").write_bytes(b"BACKGROUND")
    store = InMemorySheetsStore({SHEET: {
        "Perf": _performance_rows(),
        "Manual": [["Script Name", "Script Copy"], ["Promo", "Three words for every place."]],
    }})
    pipeline = PipelineOrchestrator(
        source=PerformanceSource(store),
        generator=ScriptGenerator(MockTextModel(), call_timeout=5),
        synthesizer=AudioSynthesizer(MockSpeechClient(), media=media),
        composer=VideoComposer(MockCompositor(), media=media),
        sink=ResultSink(store, Notifier(LogApprovalChannel()), ledger_enabled=False),
    )
    app.dependency_overrides[get_orchestrator] = lambda: pipeline
    yield pipeline
    app.dependency_overrides.clear()


def _assert_error_shape(response, status_code, error):
    assert response.status_code == status_code
    body = response.json()
    assert set(body) == {"message", "error", "details"}
    assert body["error"] == error
    assert body["message"]


def test_health_check(engine):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "Creative Pipeline API is running"


def test_generate_requires_api_key(engine):
    response = client.post("/api/ai/generate-scripts", json={"spreadsheetId": SHEET})
    _assert_error_shape(response, 401, "HTTPException")

    response = client.post("/api/ai/generate-scripts", json={"spreadsheetId": SHEET}, headers={"x-api-key": "nope"})
    _assert_error_shape(response, 403, "HTTPException")


def test_generate_scripts(engine):
    payload = {
        "spreadsheetId": f"https://docs.google.com/spreadsheets/d/{SHEET}/edit",
        "tabName": "Perf",
        "scriptCount": 3,
        "experimentalPercentage": 40,
        "generateAudio": True,
        "backgroundVideoPath": "bg.mp4",
    }
    response = client.post("/api/ai/generate-scripts", json=payload, headers=AUTH_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["savedToSheet"] is True
    assert len(body["suggestions"]) == 3
    first = body["suggestions"][0]
    assert first["index"] == 0
    assert first["audioRef"].startswith("/uploads/audio/")
    assert first["videoRef"].startswith("/uploads/videos/")
    assert first["stageError"] is None
    assert body["message"].startswith("Generated 3/3 scripts")


def test_generate_individual_native_language(engine):
    payload = {
        "spreadsheetId": SHEET,
        "tabName": "Perf",
        "scriptCount": 2,
        "individualGeneration": True,
        "language": "Spanish",
    }
    response = client.post("/api/ai/generate-scripts", json=payload, headers=AUTH_HEADERS)

    assert response.status_code == 200
    for s in response.json()["suggestions"]:
        assert s["language"] == "es"
        assert s["nativeContent"]
        assert s["content"].startswith("[EN] ")


def test_generate_validation_error(engine):
    payload = {"spreadsheetId": SHEET, "experimentalPercentage": 150}
    response = client.post("/api/ai/generate-scripts", json=payload, headers=AUTH_HEADERS)

    _assert_error_shape(response, 400, "ValidationError")
    assert response.json()["details"][0]["loc"][-1] == "experimentalPercentage"


def test_generate_unsupported_language(engine):
    payload = {"spreadsheetId": SHEET, "tabName": "Perf", "language": "Klingon"}
    response = client.post("/api/ai/generate-scripts", json=payload, headers=AUTH_HEADERS)

    _assert_error_shape(response, 400, "ValueError")
    assert "Klingon" in response.json()["message"]


def test_generate_missing_tab_is_bad_gateway(engine):
    payload = {"spreadsheetId": SHEET, "tabName": "Does Not Exist"}
    response = client.post("/api/ai/generate-scripts", json=payload, headers=AUTH_HEADERS)

    _assert_error_shape(response, 502, "SourceUnavailable")


def test_generate_batch_failure_is_bad_gateway(engine):
    engine.generator = ScriptGenerator(OfflineModel(), call_timeout=5)
    payload = {"spreadsheetId": SHEET, "tabName": "Perf", "scriptCount": 2}
    response = client.post("/api/ai/generate-scripts", json=payload, headers=AUTH_HEADERS)

    _assert_error_shape(response, 502, "GenerationFailed")


def test_process_existing_scripts(engine):
    payload = {
        "scripts": [
            {"content": "First script.", "recordingLanguage": "English"},
            {"content": "Second script.", "recordingLanguage": "English"},
        ],
        "voiceId": "voice-1",
        "backgroundVideo": "bg.mp4",
    }
    response = client.post("/api/ai/process-existing-scripts", json=payload, headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"message": "Processed 2 scripts: 2 audio, 2 videos, 0 sent for approval"}


def test_process_existing_scripts_without_content(engine):
    payload = {"scripts": [{"content": "", "nativeContent": None}]}
    response = client.post("/api/ai/process-existing-scripts", json=payload, headers=AUTH_HEADERS)

    _assert_error_shape(response, 400, "ValueError")


def test_generate_audio_only(engine):
    suggestions = [{"index": i, "title": f"T{i}", "content": f"script {i}"} for i in range(3)]
    payload = {"suggestions": suggestions, "indices": [1]}
    response = client.post("/api/ai/generate-audio-only", json=payload, headers=AUTH_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert [bool(s["audioRef"]) for s in body["suggestions"]] == [False, True, False]
    assert body["message"] == "Generated audio for 1/1 selected scripts"


def test_generate_audio_only_malformed(engine):
    payload = {"suggestions": [{"title": "no index"}], "indices": [0]}
    response = client.post("/api/ai/generate-audio-only", json=payload, headers=AUTH_HEADERS)

    _assert_error_shape(response, 400, "ValueError")


def test_performance_data(engine):
    response = client.get(f"/api/ai/performance-data/{SHEET}", params={"tabName": "Perf"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 4
    assert body["topPerformers"][0] == {"content": "Historic script 4.", "score": 4.0}


def test_existing_scripts(engine):
    response = client.get(f"/api/ai/existing-scripts/{SHEET}", params={"tabName": "Manual"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["scripts"][0]["content"] == "Three words for every place."


def test_existing_scripts_missing_tab(engine):
    response = client.get(f"/api/ai/existing-scripts/{SHEET}", params={"tabName": "Nope"})
    _assert_error_shape(response, 502, "SourceUnavailable")


def test_sheet_tabs(engine):
    response = client.get(f"/api/sheets/{SHEET}/tabs")
    assert response.status_code == 200
    assert response.json()["tabs"] == ["Perf", "Manual"]


def test_voices(engine):
    response = client.get("/api/elevenlabs/voices")
    assert response.status_code == 200
    assert response.json()["voices"][0]["voice_id"] == "mock-voice"


def test_video_status(engine):
    response = client.get("/api/video/status")
    assert response.status_code == 200
    body = response.json()
    assert body["ffmpegAvailable"] is True
    assert [p.endswith("bg.mp4") for p in body["backgroundVideos"]] == [True]


def test_process_existing_scripts_writes_to_destination_tab(engine):
    store = engine.sink.store
    payload = {
        "scripts": [{"content": "Three words for every place.", "scriptTitle": "Promo"}],
        "spreadsheetId": SHEET,
        "tabName": "Manual",
        "destinationTab": "Processed",
    }
    response = client.post("/api/ai/process-existing-scripts", json=payload, headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert len(store.rows(SHEET, "Manual")) == 2
    assert store.rows(SHEET, "Processed")[1][5] == "Three words for every place."


def test_process_existing_scripts_defaults_to_configured_destination(engine):
    store = engine.sink.store
    payload = {"scripts": [{"content": "Hello."}], "spreadsheetId": SHEET, "tabName": "Manual"}
    response = client.post("/api/ai/process-existing-scripts", json=payload, headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert len(store.rows(SHEET, "Manual")) == 2
    assert store.rows(SHEET, settings.destination_tab)[1][5] == "Hello."
