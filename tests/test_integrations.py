from unittest import mock

import httplib2
import pytest
import requests
from googleapiclient.errors import HttpError

from creative_pipeline.audio.elevenlabs import VOICE_SETTINGS, ElevenLabsSpeechClient
from creative_pipeline.core.errors import ConfigurationError, SynthesisFailed
from creative_pipeline.generators.openai_model import OpenAITextModel
from creative_pipeline.sheets.google import GoogleSheetsStore


def _response(status_code, content=b"", payload=None):
    resp = mock.Mock(status_code=status_code, content=content, text=content.decode("utf-8", "replace"))
    resp.json.return_value = payload or {}
    return resp


def test_elevenlabs_posts_text_with_voice_settings():
    session = mock.Mock(spec=requests.Session)
    session.post.return_value = _response(200, b"ID3audio")
    client = ElevenLabsSpeechClient(api_key="xi-key", base_url="https://tts.example.com/v1/", session=session)

    audio = client.synthesize("Hola", "voice-1", "eleven_multilingual_v2")

    assert audio == b"ID3audio"
    args, kwargs = session.post.call_args
    assert args[0] == "https://tts.example.com/v1/text-to-speech/voice-1"
    assert kwargs["headers"]["xi-api-key"] == "xi-key"
    assert kwargs["json"] == {"text": "Hola", "model_id": "eleven_multilingual_v2", "voice_settings": VOICE_SETTINGS}


def test_elevenlabs_rejection_is_not_retried():
    session = mock.Mock(spec=requests.Session)
    session.post.return_value = _response(401, b'{"detail": "invalid_api_key"}')
    client = ElevenLabsSpeechClient(api_key="xi-key", session=session)

    with pytest.raises(SynthesisFailed, match="401"):
        client.synthesize("text", "voice-1", "eleven_monolingual_v1")
    assert session.post.call_count == 1


def test_elevenlabs_lists_voices():
    session = mock.Mock(spec=requests.Session)
    session.get.return_value = _response(200, payload={"voices": [
        {"voice_id": "v1", "name": "Aria", "category": "premade", "labels": {}},
    ]})
    client = ElevenLabsSpeechClient(api_key="xi-key", session=session)

    assert client.list_voices() == [{"voice_id": "v1", "name": "Aria", "category": "premade", "description": None}]


def test_elevenlabs_requires_key():
    with mock.patch("creative_pipeline.audio.elevenlabs.settings") as fake_settings:
        fake_settings.elevenlabs_api_key = None
        with pytest.raises(ConfigurationError):
            ElevenLabsSpeechClient()


def test_openai_model_uses_json_mode():
    client = mock.Mock()
    client.chat.completions.create.return_value.choices = [
        mock.Mock(message=mock.Mock(content='{"suggestions": [{"content": "x"}]}'))
    ]
    model = OpenAITextModel(model="gpt-4o", client=client)

    payload = model.complete_json("prompt", system_prompt="system", temperature=0.2)

    assert payload == {"suggestions": [{"content": "x"}]}
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["temperature"] == 0.2
    assert model.name == "gpt-4o"


def test_google_store_reads_and_appends():
    service = mock.Mock()
    values = service.spreadsheets.return_value.values.return_value
    values.get.return_value.execute.return_value = {"values": [["Score"], ["0.5"]]}
    values.append.return_value.execute.return_value = {"updates": {"updatedRows": 2}}
    store = GoogleSheetsStore(service=service)

    assert store.read_range("sheet-1", "It's Perf", "A:W") == [["Score"], ["0.5"]]
    assert values.get.call_args.kwargs["range"] == "'It''s Perf'!A:W"

    assert store.append_rows("sheet-1", "Out", [["a", "b", "c"], ["d"]]) == 2
    kwargs = values.append.call_args.kwargs
    assert kwargs["range"] == "'Out'!A:C"
    assert kwargs["valueInputOption"] == "RAW"
    assert kwargs["insertDataOption"] == "INSERT_ROWS"


def test_google_store_missing_range_is_lookup_error():
    service = mock.Mock()
    error = HttpError(httplib2.Response({"status": "400"}), b'{"error": {"message": "Unable to parse range"}}')
    service.spreadsheets.return_value.values.return_value.get.return_value.execute.side_effect = error
    store = GoogleSheetsStore(service=service)

    with pytest.raises(LookupError):
        store.read_range("sheet-1", "Nope")


def test_google_store_creates_missing_tab_with_headers():
    service = mock.Mock()
    sheets = service.spreadsheets.return_value
    sheets.get.return_value.execute.return_value = {"sheets": [{"properties": {"title": "Perf"}}]}
    store = GoogleSheetsStore(service=service)

    assert store.ensure_tab("sheet-1", "New Scripts", ["A", "B"]) is True
    assert sheets.batchUpdate.call_args.kwargs["body"]["requests"][0]["addSheet"]["properties"]["title"] == "New Scripts"
    assert sheets.values.return_value.update.call_args.kwargs["range"] == "'New Scripts'!A1:B1"
    assert store.list_tabs("sheet-1") == ["Perf"]


def test_google_store_append_is_not_retried():
    service = mock.Mock()
    append = service.spreadsheets.return_value.values.return_value.append
    append.return_value.execute.side_effect = ConnectionError("read timed out")
    store = GoogleSheetsStore(service=service)

    with pytest.raises(ConnectionError):
        store.append_rows("sheet-1", "Out", [["a"]])
    assert append.return_value.execute.call_count == 1
