import logging
from typing import Optional

import requests

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import ConfigurationError, SynthesisFailed
from creative_pipeline.audio.base import SpeechClient
from creative_pipeline.utils.decorators import smart_retry

logger = logging.getLogger("CreativePipeline")

RETRYABLE = (ConnectionError, TimeoutError, requests.ConnectionError, requests.Timeout)

# Tuned for a steady accent across long batches.
VOICE_SETTINGS = {
    "stability": 0.75,
    "similarity_boost": 0.85,
    "style": 0.0,
    "use_speaker_boost": True,
}


class ElevenLabsSpeechClient(SpeechClient):
    name = "elevenlabs"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key or settings.elevenlabs_api_key
        if not self.api_key:
            raise ConfigurationError("ELEVENLABS_API_KEY is not set")
        self.base_url = (base_url or settings.elevenlabs_base_url).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = settings.call_timeout_seconds

    @smart_retry(retries=3, delay=1, backoff=2, retry_on=RETRYABLE)
    def synthesize(self, text, voice_id, model_id) -> bytes:
        resp = self.session.post(
            f"{self.base_url}/text-to-speech/{voice_id}",
            headers={
                "Accept": "audio/mpeg",
                "Content-Type": "application/json",
                "xi-api-key": self.api_key,
            },
            json={"text": text, "model_id": model_id, "voice_settings": VOICE_SETTINGS},
            timeout=self.timeout,
        )
        if resp.status_code == 429:
            raise ConnectionError("ElevenLabs rate limit hit")
        if resp.status_code != 200:
            raise SynthesisFailed(f"ElevenLabs error {resp.status_code}: {resp.text[:300]}")
        return resp.content

    def list_voices(self):
        resp = self.session.get(
            f"{self.base_url}/voices",
            headers={"xi-api-key": self.api_key},
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise SynthesisFailed(f"Failed to fetch voices: {resp.status_code}")
        return [
            {
                "voice_id": v.get("voice_id"),
                "name": v.get("name"),
                "category": v.get("category"),
                "description": v.get("description"),
            }
            for v in resp.json().get("voices", [])
        ]
