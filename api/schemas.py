from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GenerateScriptsRequest(CamelModel):
    spreadsheet_id: str = Field(alias="spreadsheetId", min_length=1)
    tab_name: Optional[str] = Field(default=None, alias="tabName")
    destination_tab: Optional[str] = Field(default=None, alias="destinationTab")
    generate_audio: bool = Field(default=False, alias="generateAudio")
    script_count: int = Field(default=5, alias="scriptCount", ge=1, le=50)
    background_video_path: Optional[str] = Field(default=None, alias="backgroundVideoPath")
    voice_id: Optional[str] = Field(default=None, alias="voiceId")
    language: Optional[str] = None
    experimental_percentage: int = Field(default=0, alias="experimentalPercentage", ge=0, le=100)
    individual_generation: bool = Field(default=False, alias="individualGeneration")
    slack_enabled: bool = Field(default=False, alias="slackEnabled")
    slack_notification_delay: Optional[int] = Field(default=None, alias="slackNotificationDelay", ge=0)
    guidance_prompt: Optional[str] = Field(default=None, alias="guidancePrompt")
    primer_content: Optional[str] = Field(default=None, alias="primerContent")
    strict_translation: Optional[bool] = Field(default=None, alias="strictTranslation")


class ExistingScriptModel(CamelModel):
    content: Optional[str] = None
    native_content: Optional[str] = Field(default=None, alias="nativeContent")
    recording_language: str = Field(default="English", alias="recordingLanguage")
    generated_date: str = Field(default="", alias="generatedDate")
    script_title: str = Field(default="", alias="scriptTitle")
    reasoning: str = ""
    row_index: Optional[int] = Field(default=None, alias="rowIndex")


class ReprocessRequest(CamelModel):
    scripts: List[ExistingScriptModel]
    voice_id: Optional[str] = Field(default=None, alias="voiceId")
    language: Optional[str] = None
    background_video: Optional[str] = Field(default=None, alias="backgroundVideo")
    send_to_slack: bool = Field(default=False, alias="sendToSlack")
    slack_notification_delay: Optional[int] = Field(default=None, alias="slackNotificationDelay", ge=0)
    spreadsheet_id: Optional[str] = Field(default=None, alias="spreadsheetId")
    destination_tab: Optional[str] = Field(default=None, alias="destinationTab")


class AudioOnlyRequest(CamelModel):
    suggestions: List[Dict[str, Any]]
    indices: List[int]
    voice_id: Optional[str] = Field(default=None, alias="voiceId")
    language: Optional[str] = None
    background_video_path: Optional[str] = Field(default=None, alias="backgroundVideoPath")


class GenerateScriptsResponse(CamelModel):
    suggestions: List[Dict[str, Any]]
    message: str
    saved_to_sheet: bool = Field(alias="savedToSheet")


class SuggestionsResponse(CamelModel):
    suggestions: List[Dict[str, Any]]
    message: str


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(CamelModel):
    message: str
    error: str
    details: Optional[Any] = None
