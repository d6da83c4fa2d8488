"""
Sheet clients for the attendance lookups.

SheetsClient reads the live Google Sheet (gspread for values, Sheets API v4
for formatting). MockSheetsClient serves an in-memory grid for dry runs and
tests. Both take 1-indexed rows and columns and return padded rectangles.
"""

import logging

from attendance_core import SCOPE, SHEET_NAME, SPREADSHEET_ID, WHITE_COLOR

logger = logging.getLogger(__name__)


def pad_rows(rows, num_rows, num_cols):
    """
    The Sheets API trims trailing empty cells and rows.
    Pad back out to num_rows x num_cols with "".
    """
    padded = []
    for i in range(num_rows):
        row = list(rows[i]) if i < len(rows) else []
        while len(row) < num_cols:
            row.append("")
        padded.append(row[:num_cols])
    return padded


def color_to_hex(color):
    """
    Convert a Sheets API Color ({'red': 1, 'green': 0.5}) to '#ff8000'.
    Missing channels are 0; a missing color means the default white.
    """
    if color is None:
        return WHITE_COLOR
    channels = [round(color.get(name, 0) * 255) for name in ("red", "green", "blue")]
    return "#{:02x}{:02x}{:02x}".format(*channels)


class SheetsClient:
    """Handles all Google Sheets reads for one worksheet."""

    def __init__(self, credentials_path, spreadsheet_id=SPREADSHEET_ID, sheet_name=SHEET_NAME):
        self.credentials_path = credentials_path
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.gc = None
        self.service = None
        self.worksheet = None
        self._initialized = False

    def init(self):
        """Initialize Google Sheets connection."""
        import gspread
        from google.oauth2.service_account import Credentials
        from googleapiclient.discovery import build

        creds = Credentials.from_service_account_file(
            self.credentials_path, scopes=SCOPE
        )
        self.gc = gspread.authorize(creds)
        self.service = build("sheets", "v4", credentials=creds)
        self.worksheet = self.gc.open_by_key(self.spreadsheet_id).worksheet(self.sheet_name)
        self._initialized = True
        logger.info(f"Connected to sheet '{self.sheet_name}' of {self.spreadsheet_id}")

    def _ensure_init(self):
        if not self._initialized:
            self.init()

    def _a1_range(self, row, col, num_rows, num_cols):
        from gspread.utils import rowcol_to_a1

        start = rowcol_to_a1(row, col)
        end = rowcol_to_a1(row + num_rows - 1, col + num_cols - 1)
        return f"{start}:{end}"

    def get_values(self, row, col, num_rows=1, num_cols=1):
        """Raw (unformatted) cell values for the rectangle."""
        from gspread.utils import ValueRenderOption

        if num_rows < 1 or num_cols < 1:
            return []
        self._ensure_init()
        values = self.worksheet.get(
            self._a1_range(row, col, num_rows, num_cols),
            value_render_option=ValueRenderOption.unformatted,
        )
        return pad_rows(values, num_rows, num_cols)

    def get_display_values(self, row, col, num_rows=1, num_cols=1):
        """Cell values as the sheet displays them (always strings)."""
        from gspread.utils import ValueRenderOption

        if num_rows < 1 or num_cols < 1:
            return []
        self._ensure_init()
        values = self.worksheet.get(
            self._a1_range(row, col, num_rows, num_cols),
            value_render_option=ValueRenderOption.formatted,
        )
        return pad_rows(values, num_rows, num_cols)

    def get_background(self, row, col, num_rows=1, num_cols=1):
        """
        Background colour of the top-left cell of the range as lowercase hex.
        Uses Sheets API v4 with includeGridData for format data.
        """
        self._ensure_init()
        cell_range = f"'{self.sheet_name}'!{self._a1_range(row, col, num_rows, num_cols)}"

        result = self.service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            ranges=[cell_range],
            includeGridData=True,
            fields="sheets.data.rowData.values.effectiveFormat.backgroundColor",
        ).execute()

        try:
            cell_data = result["sheets"][0]["data"][0]["rowData"][0]["values"][0]
        except (KeyError, IndexError):
            # no format data at all: default background
            return WHITE_COLOR
        color = cell_data.get("effectiveFormat", {}).get("backgroundColor")
        return color_to_hex(color)

    def _all_values(self):
        self._ensure_init()
        return self.worksheet.get_values()

    def get_last_row(self):
        """Last row with any content (1-indexed)."""
        return len(self._all_values())

    def get_last_column(self):
        """Last column with any content (1-indexed)."""
        values = self._all_values()
        return max((len(row) for row in values), default=0)


class MockSheetsClient:
    """In-memory sheet for dry runs and tests. Counts every read, sizing included."""

    def __init__(self, rows=None):
        self.cells = {}        # {(row, col): value}
        self.backgrounds = {}  # {(row, col): '#rrggbb'}
        self.reads = 0
        for r, row in enumerate(rows or [], start=1):
            self.set_row(r, row)

    def set_row(self, row_num, values):
        """Set a row's values starting at column 1."""
        for c, value in enumerate(values, start=1):
            self.cells[(row_num, c)] = value

    def set_cell(self, row_num, col_num, value):
        self.cells[(row_num, col_num)] = value

    def set_background(self, row_num, col_num, color):
        self.backgrounds[(row_num, col_num)] = color.lower()

    def _read(self):
        self.reads += 1

    def get_values(self, row, col, num_rows=1, num_cols=1):
        self._read()
        if num_rows < 1 or num_cols < 1:
            return []
        return [
            [self.cells.get((r, c), "") for c in range(col, col + num_cols)]
            for r in range(row, row + num_rows)
        ]

    def get_display_values(self, row, col, num_rows=1, num_cols=1):
        return [
            ["" if value is None else str(value) for value in values]
            for values in self.get_values(row, col, num_rows, num_cols)
        ]

    def get_background(self, row, col, num_rows=1, num_cols=1):
        self._read()
        return self.backgrounds.get((row, col), WHITE_COLOR)

    def _populated(self):
        return [key for key, value in self.cells.items() if value not in ("", None)]

    def get_last_row(self):
        self._read()
        return max((r for r, _ in self._populated()), default=0)

    def get_last_column(self):
        self._read()
        return max((c for _, c in self._populated()), default=0)
