import os
from typing import Optional
from pydantic import BaseModel, Field


def _as_bool(val: str) -> bool:
    lowered = val.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"Not a boolean: {val}")


class Settings(BaseModel):
    # Pipeline Limits
    concurrency: int = Field(default=4, description="Max concurrent per-item external calls")
    call_timeout_seconds: float = Field(default=120.0, description="Upper bound for one external call")
    default_script_count: int = Field(default=5, description="Scripts generated when the caller gives no count")

    # Paths
    output_root: str = Field(default="uploads", description="Root directory for generated audio/video")
    background_videos_dir: str = Field(default="uploads/backgrounds", description="Where background videos live")
    primer_path: str = Field(default="config/default_primer.csv", description="Default creative primer CSV")

    # Spreadsheet layout
    source_tab: str = Field(default="Cleansed with BEAP", description="Tab holding scored performance rows")
    destination_tab: str = Field(default="New Scripts", description="Tab receiving generated scripts")
    score_column: str = Field(default="U", description="Column with the performance score")
    content_column: str = Field(default="W", description="Column with the script text")
    script_database_enabled: bool = Field(default=False, description="Also append to the ScriptDatabase ledger tab")

    # Generation
    openai_model: str = Field(default="gpt-4o", description="Chat model used for script generation")
    openai_temperature: float = Field(default=0.7)
    strict_translation: bool = Field(default=False, description="Mark items as failed when translation fails")
    default_language: str = Field(default="en")

    # Voice
    default_voice_id: str = Field(default="huvDR9lwwSKC0zEjZUox", description="ElevenLabs voice used when none is given")
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1")

    # Video
    ffmpeg_binary: str = Field(default="ffmpeg")
    ffprobe_binary: str = Field(default="ffprobe")
    burn_subtitles: bool = Field(default=False, description="Burn generated SRT subtitles into videos")

    # Notifications
    default_notify_delay_seconds: int = Field(default=0)
    public_base_url: Optional[str] = Field(default=None, description="Prefix turning artifact refs into absolute links")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # API
    api_host: str = Field(default="0.0.0.0", description="API Host")
    api_port: int = Field(default=8000, description="API Port")
    api_key: str = Field(default="dev-secret-key", description="API Key for mutating routes")

    # Credentials
    openai_api_key: Optional[str] = Field(default=None)
    elevenlabs_api_key: Optional[str] = Field(default=None)
    google_service_account_json: Optional[str] = Field(default=None)
    slack_bot_token: Optional[str] = Field(default=None)
    slack_channel_id: Optional[str] = Field(default=None)

    @staticmethod
    def load() -> "Settings":
        """
        Load settings from environment variables or defaults.
        Unparseable values keep their default.
        """
        overrides = {}

        env_map = {
            "CREATIVE_CONCURRENCY": ("concurrency", int),
            "CREATIVE_CALL_TIMEOUT_SECONDS": ("call_timeout_seconds", float),
            "CREATIVE_DEFAULT_SCRIPT_COUNT": ("default_script_count", int),
            "CREATIVE_OUTPUT_ROOT": ("output_root", str),
            "CREATIVE_BACKGROUND_VIDEOS_DIR": ("background_videos_dir", str),
            "CREATIVE_PRIMER_PATH": ("primer_path", str),
            "CREATIVE_SOURCE_TAB": ("source_tab", str),
            "CREATIVE_DESTINATION_TAB": ("destination_tab", str),
            "CREATIVE_SCORE_COLUMN": ("score_column", str),
            "CREATIVE_CONTENT_COLUMN": ("content_column", str),
            "CREATIVE_SCRIPT_DATABASE_ENABLED": ("script_database_enabled", _as_bool),
            "CREATIVE_OPENAI_MODEL": ("openai_model", str),
            "CREATIVE_OPENAI_TEMPERATURE": ("openai_temperature", float),
            "CREATIVE_STRICT_TRANSLATION": ("strict_translation", _as_bool),
            "CREATIVE_DEFAULT_LANGUAGE": ("default_language", str),
            "CREATIVE_DEFAULT_VOICE_ID": ("default_voice_id", str),
            "CREATIVE_ELEVENLABS_BASE_URL": ("elevenlabs_base_url", str),
            "CREATIVE_FFMPEG_BINARY": ("ffmpeg_binary", str),
            "CREATIVE_FFPROBE_BINARY": ("ffprobe_binary", str),
            "CREATIVE_BURN_SUBTITLES": ("burn_subtitles", _as_bool),
            "CREATIVE_DEFAULT_NOTIFY_DELAY_SECONDS": ("default_notify_delay_seconds", int),
            "CREATIVE_PUBLIC_BASE_URL": ("public_base_url", str),
            "CREATIVE_LOG_LEVEL": ("log_level", str),
            "CREATIVE_API_HOST": ("api_host", str),
            "CREATIVE_API_PORT": ("api_port", int),
            "CREATIVE_API_KEY": ("api_key", str),
            "OPENAI_API_KEY": ("openai_api_key", str),
            "ELEVENLABS_API_KEY": ("elevenlabs_api_key", str),
            "GOOGLE_SERVICE_ACCOUNT_JSON": ("google_service_account_json", str),
            "SLACK_BOT_TOKEN": ("slack_bot_token", str),
            "SLACK_CHANNEL_ID": ("slack_channel_id", str),
        }

        for env_var, (field, type_) in env_map.items():
            val = os.getenv(env_var)
            if val is not None:
                try:
                    overrides[field] = type_(val)
                except ValueError:
                    pass  # Keep default if parse fails

        return Settings(**overrides)


# Global settings instance
settings = Settings.load()
