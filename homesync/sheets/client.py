# homesync/sheets/client.py

import logging
import os
import pickle
from typing import Optional

import gspread
from gspread.utils import a1_to_rowcol
from google.auth.transport.requests import Request
from google_auth_oauthlib.flow import InstalledAppFlow

from homesync.config import Settings
from homesync.sheets.table import SheetTable

log = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/contacts",
]


def load_credentials(credentials_path: str):
    """Use OAuth Desktop App flow, caching the token next to the client secrets."""
    creds = None
    token_path = os.path.join(os.path.dirname(credentials_path), "token.pickle")

    if os.path.exists(token_path):
        with open(token_path, "rb") as token:
            creds = pickle.load(token)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
            creds = flow.run_local_server(port=0)

        with open(token_path, "wb") as token:
            pickle.dump(creds, token)

    return creds


class Workbook:
    """The spreadsheet holding the main table and its log tables."""

    def __init__(self, client: gspread.Client, spreadsheet: gspread.Spreadsheet):
        self.client = client
        self.spreadsheet = spreadsheet
        self._tables: dict[str, SheetTable] = {}

    @property
    def file_id(self) -> str:
        return self.spreadsheet.id

    def table(self, name: str) -> SheetTable:
        if name not in self._tables:
            try:
                ws = self.spreadsheet.worksheet(name)
            except gspread.exceptions.WorksheetNotFound:
                raise RuntimeError(f"Worksheet not found: {name}") from None
            self._tables[name] = SheetTable(ws)
        return self._tables[name]

    def has_table(self, name: str) -> bool:
        return any(ws.title == name for ws in self.spreadsheet.worksheets())

    def table_names(self) -> list[str]:
        return [ws.title for ws in self.spreadsheet.worksheets()]

    def ensure_table(self, name: str, headers: Optional[list[str]] = None) -> SheetTable:
        """Returns the named table, creating it and its header row if missing."""
        if not self.has_table(name):
            log.info("creating worksheet %s", name)
            self.spreadsheet.add_worksheet(title=name, rows=1000, cols=max(26, len(headers or [])))

        table = self.table(name)
        if headers:
            first = table.row_values(1, max_cols=len(headers))
            if table.last_row() == 0 or not any(first):
                table.write_rows(1, [list(headers)])
                table.bold_row(1, len(headers))
                table.freeze(1)
        return table

    def read_cell(self, name: str, a1: str) -> str:
        """Display value of one A1 cell on a worksheet of this workbook."""
        return self.table(name).display(*a1_to_rowcol(a1))

    def stamp(self, file_id: str, a1: str, value: str) -> None:
        """Writes one cell on the first sheet of another spreadsheet file."""
        ws = self.client.open_by_key(file_id).sheet1
        ws.update_acell(a1, value)


def open_workbook(settings: Settings, creds=None) -> Workbook:
    creds = creds or load_credentials(settings.credentials_path)
    gc = gspread.authorize(creds)
    sh = gc.open_by_key(settings.spreadsheet_id)
    return Workbook(gc, sh)
