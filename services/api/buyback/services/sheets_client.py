"""Google Sheets CSV export client.

The Atlas wholesale pricing sheet is shared publicly, so its CSV export
needs no credentials:

    https://docs.google.com/spreadsheets/d/<id>/gviz/tq?tqx=out:csv&sheet=<name>

A sheet that is not shared redirects to the Google sign-in page, which comes
back as 200 text/html; only a text/csv body served from docs.google.com is
accepted.
"""

import logging
from urllib.parse import quote

import httpx

logger = logging.getLogger("uvicorn.error")

SHEETS_HOST = "docs.google.com"
SHEETS_BASE_URL = f"https://{SHEETS_HOST}/spreadsheets/d"


class SheetFetchError(RuntimeError):
    """The sheet export could not be fetched."""


def build_sheet_csv_url(sheet_id: str, sheet_name: str) -> str:
    """CSV export URL for a named tab of a public Google Sheet."""
    return f"{SHEETS_BASE_URL}/{sheet_id}/gviz/tq?tqx=out:csv&sheet={quote(sheet_name, safe='')}"


async def fetch_sheet_csv(sheet_id: str, sheet_name: str, *, timeout: float = 30.0) -> str:
    """Fetch a sheet tab as raw CSV text.

    Raises:
        SheetFetchError: Network error, non-2xx response, or a response that
            is not the CSV export (e.g. a sign-in page for a private sheet).
    """
    url = build_sheet_csv_url(sheet_id, sheet_name)
    logger.info(f"Fetching sheet CSV (sheet={sheet_name!r}, id={sheet_id[:8]}...)")

    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            resp = await client.get(url)
    except httpx.HTTPError as e:
        raise SheetFetchError(f"Failed to fetch sheet data: {e}") from e

    if resp.status_code < 200 or resp.status_code >= 300:
        logger.error(f"Sheet export error: {resp.status_code} - {resp.text[:200]}")
        raise SheetFetchError(f"Failed to fetch sheet data: HTTP {resp.status_code}")

    if resp.url.host != SHEETS_HOST:
        logger.error(f"Sheet export redirected to {resp.url.host}, is the sheet shared publicly?")
        raise SheetFetchError(f"Sheet is not shared publicly (redirected to {resp.url.host})")

    content_type = resp.headers.get("content-type", "")
    if "text/csv" not in content_type.lower():
        logger.error(f"Sheet export returned {content_type!r} instead of CSV")
        raise SheetFetchError(f"Unexpected sheet export content-type: {content_type or 'none'}")

    return resp.text
