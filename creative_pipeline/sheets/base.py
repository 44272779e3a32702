import asyncio
import re
from typing import Any, List, Optional, Sequence

Row = List[str]


def extract_spreadsheet_id(value: str) -> str:
    """Accepts a bare spreadsheet id or a full Google Sheets URL."""
    value = value.strip()
    match = re.search(r"/spreadsheets/d/([a-zA-Z0-9-_]+)", value)
    if match:
        return match.group(1)
    return value


def column_index(letter: str) -> int:
    """'A' -> 0, 'U' -> 20, 'AA' -> 26."""
    index = 0
    for ch in letter.strip().upper():
        if not "A" <= ch <= "Z":
            raise ValueError(f"Invalid column letter: {letter}")
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def column_letter(index: int) -> str:
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def cell(row: Sequence[Any], index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index])
    return ""


class TabularStore:
    """
    Row-oriented read/write interface over a spreadsheet.
    Spreadsheet refs may be ids or URLs; implementations normalize them.
    """

    def read_range(self, spreadsheet_id: str, tab: str, columns: str = "A:Z") -> List[Row]:
        """
        Returns every row of ``tab`` restricted to ``columns`` ("A:W").
        Trailing empty cells may be omitted, as the Sheets API does.

        Raises:
            LookupError: The tab does not exist.
        """
        raise NotImplementedError("Subclasses must implement read_range()")

    def append_rows(self, spreadsheet_id: str, tab: str, rows: List[Row]) -> int:
        """Appends after the last non-empty row. Returns the number of rows written."""
        raise NotImplementedError("Subclasses must implement append_rows()")

    def ensure_tab(self, spreadsheet_id: str, tab: str, headers: Optional[Row] = None) -> bool:
        """Creates ``tab`` (with a header row) when missing. Returns True if created."""
        raise NotImplementedError("Subclasses must implement ensure_tab()")

    def list_tabs(self, spreadsheet_id: str) -> List[str]:
        raise NotImplementedError("Subclasses must implement list_tabs()")

    # The Sheets client is blocking; stages await these instead.
    async def read_range_async(self, spreadsheet_id: str, tab: str, columns: str = "A:Z") -> List[Row]:
        return await asyncio.to_thread(self.read_range, spreadsheet_id, tab, columns)

    async def append_rows_async(self, spreadsheet_id: str, tab: str, rows: List[Row]) -> int:
        return await asyncio.to_thread(self.append_rows, spreadsheet_id, tab, rows)

    async def ensure_tab_async(self, spreadsheet_id: str, tab: str, headers: Optional[Row] = None) -> bool:
        return await asyncio.to_thread(self.ensure_tab, spreadsheet_id, tab, headers)

    async def list_tabs_async(self, spreadsheet_id: str) -> List[str]:
        return await asyncio.to_thread(self.list_tabs, spreadsheet_id)
