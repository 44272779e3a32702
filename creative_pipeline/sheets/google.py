import json
import logging
from typing import List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import ConfigurationError
from creative_pipeline.sheets.base import Row, TabularStore, column_letter, extract_spreadsheet_id
from creative_pipeline.utils.decorators import smart_retry

logger = logging.getLogger("CreativePipeline")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class GoogleSheetsStore(TabularStore):
    """
    Google Sheets v4 backend authenticated with a service account.
    """

    def __init__(self, service_account_json: Optional[str] = None, service=None):
        if service is not None:
            self.sheets = service
            return

        raw = service_account_json or settings.google_service_account_json
        if not raw:
            raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON is not set")
        try:
            info = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: {e}")

        credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        self.sheets = build("sheets", "v4", credentials=credentials, cache_discovery=False)

    @staticmethod
    def _a1(tab: str, columns: str) -> str:
        quoted = tab.replace("'", "''")
        return f"'{quoted}'!{columns}"

    @smart_retry(retries=3, delay=1, backoff=2)
    def read_range(self, spreadsheet_id, tab, columns="A:Z"):
        try:
            response = self.sheets.spreadsheets().values().get(
                spreadsheetId=extract_spreadsheet_id(spreadsheet_id),
                range=self._a1(tab, columns),
            ).execute()
        except HttpError as e:
            if e.resp.status in (400, 404):
                raise LookupError(f"Unable to read '{tab}': {e}")
            raise
        return response.get("values", [])

    def append_rows(self, spreadsheet_id, tab, rows):
        """Not retried: a timed-out append may already have landed."""
        if not rows:
            return 0
        width = max(len(r) for r in rows)
        response = self.sheets.spreadsheets().values().append(
            spreadsheetId=extract_spreadsheet_id(spreadsheet_id),
            range=self._a1(tab, f"A:{column_letter(width - 1)}"),
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": rows},
        ).execute()
        updated = response.get("updates", {}).get("updatedRows", len(rows))
        logger.info(f"📝 Added {updated} rows to tab '{tab}'")
        return updated

    def ensure_tab(self, spreadsheet_id, tab, headers=None):
        sheet_id = extract_spreadsheet_id(spreadsheet_id)
        created = False
        if tab not in self.list_tabs(sheet_id):
            self.sheets.spreadsheets().batchUpdate(
                spreadsheetId=sheet_id,
                body={"requests": [{"addSheet": {"properties": {"title": tab}}}]},
            ).execute()
            logger.info(f"🆕 Created tab '{tab}'")
            created = True

        if headers and (created or not self.read_range(sheet_id, tab, "A1:A1")):
            self.sheets.spreadsheets().values().update(
                spreadsheetId=sheet_id,
                range=self._a1(tab, f"A1:{column_letter(len(headers) - 1)}1"),
                valueInputOption="RAW",
                body={"values": [headers]},
            ).execute()
        return created

    def list_tabs(self, spreadsheet_id) -> List[str]:
        response = self.sheets.spreadsheets().get(
            spreadsheetId=extract_spreadsheet_id(spreadsheet_id)
        ).execute()
        return [
            s.get("properties", {}).get("title", "")
            for s in response.get("sheets", [])
            if s.get("properties", {}).get("title")
        ]
