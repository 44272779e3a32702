import hashlib

from creative_pipeline.audio.base import SpeechClient

# Single silent MPEG-1 Layer III frame header, enough for players to accept the file.
SILENT_FRAME = bytes.fromhex("fffb9064") + b"\x00" * 413


class MockSpeechClient(SpeechClient):
    """Writes a silent frame tagged with the text hash. Used for tests and local runs."""

    name = "mock-speech"

    def __init__(self):
        self.calls = []

    def synthesize(self, text, voice_id, model_id):
        self.calls.append((text, voice_id, model_id))
        tag = hashlib.md5(f"{voice_id}:{text}".encode("utf-8")).digest()
        return SILENT_FRAME + tag

    def list_voices(self):
        return [{"voice_id": "mock-voice", "name": "Mock Voice", "category": "generated", "description": None}]
