from typing import Dict, Optional

DEFAULT_LANGUAGE = "en"

# code -> English name
LANGUAGES: Dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "pl": "Polish",
    "sv": "Swedish",
    "tr": "Turkish",
    "ru": "Russian",
    "ar": "Arabic",
    "hi": "Hindi",
    "kn": "Kannada",
    "ta": "Tamil",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "id": "Indonesian",
    "vi": "Vietnamese",
}

_BY_NAME = {name.lower(): code for code, name in LANGUAGES.items()}

ENGLISH_TTS_MODEL = "eleven_monolingual_v1"
MULTILINGUAL_TTS_MODEL = "eleven_multilingual_v2"

# Languages the multilingual model handles badly.
TTS_MODEL_OVERRIDES: Dict[str, str] = {
    "kn": "eleven_turbo_v2_5",
}


def normalize_language(value: Optional[str]) -> str:
    """Accepts a code ("es") or a name ("Spanish") and returns the code."""
    if not value:
        return DEFAULT_LANGUAGE
    cleaned = value.strip()
    lowered = cleaned.lower()
    if lowered in LANGUAGES:
        return lowered
    if lowered in _BY_NAME:
        return _BY_NAME[lowered]
    # Region-tagged codes such as "pt-BR"
    base = lowered.split("-")[0].split("_")[0]
    if base in LANGUAGES:
        return base
    raise ValueError(f"Unsupported language: {value}")


def language_name(code: str) -> str:
    return LANGUAGES.get(code, code)


def tts_model_for(code: str) -> str:
    if code == DEFAULT_LANGUAGE:
        return ENGLISH_TTS_MODEL
    return TTS_MODEL_OVERRIDES.get(code, MULTILINGUAL_TTS_MODEL)
