#!/usr/bin/env python3
"""
Unit tests for sheet_clients.py

The gspread worksheet and the Sheets API service are MagicMocks, so nothing
here talks to Google.
"""

import unittest
from unittest.mock import MagicMock

from attendance_core import NotFoundError, get_date_row_values, get_user_row
from cache_clients import MemoryCache
from sheet_clients import MockSheetsClient, SheetsClient, color_to_hex, pad_rows


def make_client(values=None, api_response=None):
    """SheetsClient with its Google handles replaced by mocks."""
    client = SheetsClient("creds.json", spreadsheet_id="sheet-id", sheet_name="Attendance")
    client.worksheet = MagicMock()
    client.worksheet.get.return_value = values if values is not None else []
    client.worksheet.get_values.return_value = values if values is not None else []
    client.service = MagicMock()
    client.service.spreadsheets.return_value.get.return_value.execute.return_value = (
        api_response if api_response is not None else {}
    )
    client._initialized = True
    return client


def grid_response(cell):
    return {"sheets": [{"data": [{"rowData": [{"values": [cell]}]}]}]}


# =============================================================================
# Helper Tests
# =============================================================================

class TestPadRows(unittest.TestCase):

    def test_pads_short_rows_and_missing_rows(self):
        self.assertEqual(pad_rows([["a"], ["b", "c"]], 3, 2),
                         [["a", ""], ["b", "c"], ["", ""]])

    def test_empty(self):
        self.assertEqual(pad_rows([], 1, 3), [["", "", ""]])

    def test_trims_extra(self):
        self.assertEqual(pad_rows([["a", "b", "c"]], 1, 2), [["a", "b"]])


class TestColorToHex(unittest.TestCase):

    def test_white(self):
        self.assertEqual(color_to_hex({"red": 1, "green": 1, "blue": 1}), "#ffffff")

    def test_missing_channels_are_zero(self):
        self.assertEqual(color_to_hex({"red": 1, "green": 1}), "#ffff00")
        self.assertEqual(color_to_hex({}), "#000000")

    def test_no_color_is_white(self):
        self.assertEqual(color_to_hex(None), "#ffffff")


# =============================================================================
# SheetsClient Tests
# =============================================================================

class TestSheetsClient(unittest.TestCase):

    def test_get_values_range_and_padding(self):
        client = make_client(values=[["alice"], ["bob"]])
        result = client.get_values(1, 1, 3, 1)
        self.assertEqual(result, [["alice"], ["bob"], [""]])
        args, kwargs = client.worksheet.get.call_args
        self.assertEqual(args[0], "A1:A3")
        self.assertEqual(kwargs["value_render_option"], "UNFORMATTED_VALUE")

    def test_get_display_values(self):
        client = make_client(values=[["", "", "3/1/2024"]])
        result = client.get_display_values(2, 1, 1, 4)
        self.assertEqual(result, [["", "", "3/1/2024", ""]])
        args, kwargs = client.worksheet.get.call_args
        self.assertEqual(args[0], "A2:D2")
        self.assertEqual(kwargs["value_render_option"], "FORMATTED_VALUE")

    def test_get_background(self):
        client = make_client(api_response=grid_response(
            {"effectiveFormat": {"backgroundColor": {"red": 1, "green": 1}}}
        ))
        self.assertEqual(client.get_background(1, 3, 5, 1), "#ffff00")
        kwargs = client.service.spreadsheets.return_value.get.call_args.kwargs
        self.assertEqual(kwargs["spreadsheetId"], "sheet-id")
        self.assertEqual(kwargs["ranges"], ["'Attendance'!C1:C5"])
        self.assertTrue(kwargs["includeGridData"])

    def test_get_background_unformatted(self):
        client = make_client(api_response=grid_response({}))
        self.assertEqual(client.get_background(1, 3), "#ffffff")

    def test_get_background_no_grid_data(self):
        client = make_client(api_response={"sheets": [{"data": [{}]}]})
        self.assertEqual(client.get_background(1, 3), "#ffffff")

    def test_last_row_and_column(self):
        client = make_client(values=[["a", "b"], ["c", "d", "e"], ["f"]])
        self.assertEqual(client.get_last_row(), 3)
        self.assertEqual(client.get_last_column(), 3)

    def test_empty_sheet(self):
        client = make_client(values=[])
        self.assertEqual(client.get_last_row(), 0)
        self.assertEqual(client.get_last_column(), 0)

    def test_empty_rectangle_not_requested(self):
        client = make_client(values=[])
        self.assertEqual(client.get_values(1, 1, 0, 1), [])
        self.assertEqual(client.get_display_values(2, 1, 1, 0), [])
        client.worksheet.get.assert_not_called()

    def test_lookups_on_empty_sheet(self):
        client = make_client(values=[])
        with self.assertRaises(NotFoundError):
            get_user_row("alice", client, MemoryCache())
        self.assertEqual(get_date_row_values(client, MemoryCache()), [])
        client.worksheet.get.assert_not_called()


# =============================================================================
# Mock Client Tests
# =============================================================================

class TestMockSheetsClient(unittest.TestCase):

    def setUp(self):
        self.sheet = MockSheetsClient([["a", "b"], ["", "", 3]])

    def test_values(self):
        self.assertEqual(self.sheet.get_values(1, 1, 2, 3), [["a", "b", ""], ["", "", 3]])

    def test_display_values_are_strings(self):
        self.assertEqual(self.sheet.get_display_values(2, 3), [["3"]])

    def test_last_row_and_column_ignore_blanks(self):
        self.sheet.set_cell(9, 9, "")
        self.assertEqual(self.sheet.get_last_row(), 2)
        self.assertEqual(self.sheet.get_last_column(), 3)

    def test_background(self):
        self.assertEqual(self.sheet.get_background(1, 1), "#ffffff")
        self.sheet.set_background(1, 1, "#FF0000")
        self.assertEqual(self.sheet.get_background(1, 1, 5, 1), "#ff0000")

    def test_counts_reads(self):
        self.sheet.get_values(1, 1)
        self.sheet.get_display_values(1, 1)
        self.sheet.get_background(1, 1)
        self.assertEqual(self.sheet.reads, 3)

    def test_sizing_counts_as_read(self):
        self.sheet.get_last_row()
        self.sheet.get_last_column()
        self.assertEqual(self.sheet.reads, 2)

    def test_empty_rectangle(self):
        self.assertEqual(self.sheet.get_values(1, 1, 0, 1), [])
        self.assertEqual(self.sheet.get_display_values(1, 1, 1, 0), [])


if __name__ == "__main__":
    unittest.main()
