#!/usr/bin/env python3
"""
Attendance Sheet Lookup - Terminal Interface
Imports core logic from attendance_core.py

Usage:
  python3 check_event.py jsmith              # next practice
  python3 check_event.py jsmith 3/8          # event on 3/8 this year
  python3 check_event.py jsmith 3/8/2024 +1  # event column after 3/8/2024
  python3 check_event.py jsmith --brief      # leave out time and location
"""

import argparse
import logging
import sys

from colorama import Fore, Style, init

from attendance_core import (
    DEFAULT_CREDENTIALS_PATH,
    DEFAULT_REDIS_URL,
    SHEET_NAME,
    SPREADSHEET_ID,
    DateLocator,
    SheetLookupError,
    lookup_event,
)
from cache_clients import MemoryCache, RedisCache
from sheet_clients import SheetsClient


def format_lookup(username, result):
    """Lines to print for a successful lookup."""
    if result.info.count is None:
        count_text = f"{Fore.YELLOW}unknown{Style.RESET_ALL}"
    else:
        count_text = f"{Fore.GREEN}{result.info.count}{Style.RESET_ALL}"
    return [
        f"{Style.BRIGHT}{result.description}{Style.RESET_ALL}",
        f"  {username}: row {result.row}, column {result.col}",
        f"  Attending: {count_text}",
    ]


def build_parser():
    parser = argparse.ArgumentParser(
        description="Look up a team event on the attendance sheet"
    )
    parser.add_argument("username", help="Username as it appears in the username column")
    parser.add_argument(
        "date", nargs="*",
        help="Event date (m/d/yyyy, m/d or yyyy-mm-dd, optional +N). Default: next practice",
    )
    parser.add_argument(
        "--brief", action="store_true",
        help="Leave time and location out of the description",
    )
    parser.add_argument(
        "--credentials", default=DEFAULT_CREDENTIALS_PATH,
        help="Path to Google service account credentials JSON",
    )
    parser.add_argument("--spreadsheet-id", default=SPREADSHEET_ID)
    parser.add_argument("--sheet", default=SHEET_NAME, help="Worksheet name")
    parser.add_argument("--redis-url", default=DEFAULT_REDIS_URL)
    parser.add_argument(
        "--no-redis", action="store_true",
        help="Use an in-process cache instead of redis",
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main(argv=None, sheet=None, cache=None):
    args = build_parser().parse_args(argv)
    init(autoreset=True)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    if sheet is None:
        sheet = SheetsClient(args.credentials, args.spreadsheet_id, args.sheet)
    if cache is None:
        cache = MemoryCache() if args.no_redis else RedisCache(args.redis_url)

    locator = DateLocator.parse(" ".join(args.date))

    try:
        result = lookup_event(
            args.username, locator, sheet, cache,
            include_time_loc=not args.brief,
        )
    except SheetLookupError as e:
        print(f"{Fore.RED}{e}{Style.RESET_ALL}")
        return 1

    for line in format_lookup(args.username, result):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
