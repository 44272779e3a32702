import threading
from typing import Dict, List, Optional

from creative_pipeline.sheets.base import Row, TabularStore, column_index, extract_spreadsheet_id


class InMemorySheetsStore(TabularStore):
    """Dictionary-backed store used for tests and local runs without Google credentials."""

    def __init__(self, data: Optional[Dict[str, Dict[str, List[Row]]]] = None):
        self._data: Dict[str, Dict[str, List[Row]]] = {}
        self._lock = threading.Lock()
        for sheet_id, tabs in (data or {}).items():
            for tab, rows in tabs.items():
                self._data.setdefault(extract_spreadsheet_id(sheet_id), {})[tab] = [list(r) for r in rows]

    def _tab(self, spreadsheet_id: str, tab: str) -> List[Row]:
        tabs = self._data.get(extract_spreadsheet_id(spreadsheet_id), {})
        if tab not in tabs:
            raise LookupError(f"Unable to parse range: {tab}")
        return tabs[tab]

    def read_range(self, spreadsheet_id, tab, columns="A:Z"):
        first, _, last = columns.partition(":")
        start = column_index(first)
        stop = column_index(last or first) + 1
        with self._lock:
            rows = self._tab(spreadsheet_id, tab)
            result = []
            for row in rows:
                sliced = [str(v) for v in row[start:stop]]
                while sliced and sliced[-1] == "":
                    sliced.pop()
                result.append(sliced)
            return result

    def append_rows(self, spreadsheet_id, tab, rows):
        with self._lock:
            self._tab(spreadsheet_id, tab).extend([list(r) for r in rows])
        return len(rows)

    def ensure_tab(self, spreadsheet_id, tab, headers=None):
        with self._lock:
            tabs = self._data.setdefault(extract_spreadsheet_id(spreadsheet_id), {})
            if tab in tabs:
                if headers and not tabs[tab]:
                    tabs[tab].append(list(headers))
                return False
            tabs[tab] = [list(headers)] if headers else []
            return True

    def list_tabs(self, spreadsheet_id):
        with self._lock:
            return list(self._data.get(extract_spreadsheet_id(spreadsheet_id), {}).keys())

    def rows(self, spreadsheet_id: str, tab: str) -> List[Row]:
        """Raw copy of a tab, for inspection."""
        with self._lock:
            return [list(r) for r in self._tab(spreadsheet_id, tab)]
