import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import SourceUnavailable
from creative_pipeline.core.languages import language_name
from creative_pipeline.core.models import ExistingScriptRow, ScriptSuggestion
from creative_pipeline.notify.notifier import Notifier
from creative_pipeline.sheets.base import TabularStore, cell

logger = logging.getLogger("CreativePipeline")

SUGGESTION_HEADERS = [
    "Generated Date",
    "File Title",
    "Script Title",
    "Recording Language",
    "Native Content",
    "English Content",
    "Translation Notes",
    "Reasoning",
    "Target Metrics",
    "Audio",
    "Video",
]

LEDGER_TAB = "ScriptDatabase"
LEDGER_HEADERS = [
    "ScriptBatchID",
    "ScriptID",
    "MKJobID",
    "DateTimestampCreated",
    "ScriptLanguage",
    "ScriptCopy",
    "ScriptAIPrompt",
    "AIModel",
]
LEDGER_BASE_ID = 10000


def _file_title(date: str, index: int, title: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", title).strip("_")[:40] or "script"
    return f"{date}_{index + 1:02d}_{slug}"


def _is_simple_format(headers: List[str]) -> bool:
    """Two-column 'Script Name | Script Copy' sheets maintained by hand."""
    named = [h for h in headers if h and h.strip()]
    if len(named) == 2:
        return True
    return any("script name" in h.lower() or "script copy" in h.lower() for h in named)


class ResultSink:
    """
    Durable side of the pipeline: appends results to the spreadsheet, reads
    them back for reprocessing, and hands finished assets to the approval channel.
    """

    def __init__(self, store: TabularStore, notifier: Notifier, ledger_enabled: Optional[bool] = None):
        self.store = store
        self.notifier = notifier
        self.ledger_enabled = settings.script_database_enabled if ledger_enabled is None else ledger_enabled

    def _rows_for(self, suggestions: List[ScriptSuggestion]) -> List[List[str]]:
        date = time.strftime("%Y-%m-%d")
        rows = []
        for s in suggestions:
            if not (s.content or s.native_content):
                continue
            notes = f"Translated from {language_name(s.language)}" if s.native_content else ""
            rows.append([
                date,
                _file_title(date, s.index, s.title),
                s.title,
                language_name(s.language),
                s.native_content or "",
                s.content,
                notes,
                s.reasoning,
                ", ".join(s.target_metrics),
                s.audio_ref or "",
                s.video_ref or "",
            ])
        return rows

    async def append_suggestions(
        self,
        destination_ref: str,
        suggestions: List[ScriptSuggestion],
        tab: Optional[str] = None,
        prompt_summary: str = "",
        model_name: str = "",
    ) -> bool:
        """Append-only write. Returns False (and logs) instead of raising."""
        tab = tab or settings.destination_tab
        rows = self._rows_for(suggestions)
        if not rows:
            logger.warning("⚠️ No scripts with content to save")
            return False

        try:
            await self.store.ensure_tab_async(destination_ref, tab, SUGGESTION_HEADERS)
            await self.store.append_rows_async(destination_ref, tab, rows)
        except Exception as e:
            logger.error(f"❌ Failed to save {len(rows)} scripts to '{tab}': {e}")
            return False
        logger.info(f"💾 Saved {len(rows)} scripts to tab '{tab}'")

        if self.ledger_enabled:
            await self._append_ledger(destination_ref, suggestions, prompt_summary, model_name)
        return True

    async def _latest_ledger_ids(self, destination_ref: str) -> Tuple[int, int]:
        rows = await self.store.read_range_async(destination_ref, LEDGER_TAB, "A:B")
        last_batch, last_script = LEDGER_BASE_ID, LEDGER_BASE_ID
        for row in rows[1:]:
            try:
                last_batch = max(last_batch, int(cell(row, 0)))
                last_script = max(last_script, int(cell(row, 1)))
            except ValueError:
                continue
        return last_batch, last_script

    async def _append_ledger(self, destination_ref, suggestions, prompt_summary, model_name):
        try:
            await self.store.ensure_tab_async(destination_ref, LEDGER_TAB, LEDGER_HEADERS)
            last_batch, last_script = await self._latest_ledger_ids(destination_ref)
            batch_id = last_batch + 1
            timestamp = time.strftime("%Y-%m-%dT%H:%M:%S")
            rows = []
            for s in suggestions:
                copy = s.native_content or s.content
                if not copy:
                    continue
                last_script += 1
                rows.append([
                    str(batch_id), str(last_script), "0", timestamp,
                    language_name(s.language), copy, prompt_summary, model_name,
                ])
            if rows:
                await self.store.append_rows_async(destination_ref, LEDGER_TAB, rows)
                logger.info(f"🗂️ ScriptDatabase batch {batch_id}: {len(rows)} scripts")
        except Exception as e:
            logger.error(f"❌ ScriptDatabase append failed: {e}")

    async def read_existing_scripts(self, destination_ref: str, tab: Optional[str] = None) -> List[ExistingScriptRow]:
        tab = tab or settings.destination_tab
        try:
            rows = await self.store.read_range_async(destination_ref, tab, "A:H")
        except Exception as e:
            raise SourceUnavailable(f"Cannot read scripts from tab '{tab}': {e}") from e

        if len(rows) < 2:
            return []

        headers = [cell(rows[0], i) for i in range(len(rows[0]))]
        simple = _is_simple_format(headers)
        today = time.strftime("%Y-%m-%d")
        scripts = []
        for offset, row in enumerate(rows[1:]):
            if simple:
                text = cell(row, 1).strip()
                script = ExistingScriptRow(
                    content=text or None,
                    native_content=None,
                    recording_language="English",
                    generated_date=today,
                    title=cell(row, 0).strip(),
                    row_index=offset + 2,
                )
            else:
                script = ExistingScriptRow(
                    content=cell(row, 5).strip() or None,
                    native_content=cell(row, 4).strip() or None,
                    recording_language=cell(row, 3).strip() or "English",
                    generated_date=cell(row, 0).strip(),
                    title=cell(row, 2).strip(),
                    reasoning=cell(row, 7).strip(),
                    row_index=offset + 2,
                )
            if script.has_content:
                scripts.append(script)

        logger.info(f"📖 Loaded {len(scripts)} scripts from '{tab}' ({'simple' if simple else 'full'} format)")
        return scripts

    def submit_for_approval(self, ref: str, metadata: Dict[str, Any], delay_seconds: float = 0):
        """Schedules delivery and returns immediately."""
        return self.notifier.schedule(ref, metadata, delay_seconds)
