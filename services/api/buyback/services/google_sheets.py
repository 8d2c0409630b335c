"""Google Sheets API client for private sheets (service-account auth).

The retail inventory sheet holds supplier, cost and IMEI columns and is not
shared publicly, so it is read through the Sheets v4 API with a service
account instead of the public CSV export used for the Atlas sheet.

The Google client library is synchronous; calls run in a worker thread.
"""

import asyncio
import logging

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger("uvicorn.error")

SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsApiError(RuntimeError):
    """The Sheets API request failed (credentials, permissions or transport)."""


def service_account_info(client_email: str, private_key: str) -> dict[str, str]:
    """Minimal service-account info from env-style credentials.

    Private keys stored in env vars usually carry literal "\\n" sequences.
    """
    return {
        "type": "service_account",
        "client_email": client_email,
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": GOOGLE_TOKEN_URI,
    }


def read_sheet_values(
    spreadsheet_id: str,
    range_: str,
    *,
    client_email: str,
    private_key: str,
) -> list[list[str]]:
    """Blocking read of a range as rows of formatted cell strings.

    Trailing empty cells are omitted by the API, so rows can be ragged.

    Raises:
        SheetsApiError: Bad credentials, no access, or request failure.
    """
    try:
        credentials = service_account.Credentials.from_service_account_info(
            service_account_info(client_email, private_key),
            scopes=[SHEETS_READONLY_SCOPE],
        )
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        response = service.spreadsheets().values().get(spreadsheetId=spreadsheet_id, range=range_).execute()
    except HttpError as e:
        status = getattr(e.resp, "status", "?")
        raise SheetsApiError(f"Sheets API error {status} reading {range_!r}") from e
    except (GoogleAuthError, ValueError) as e:
        raise SheetsApiError(f"Invalid Google service account credentials: {e}") from e

    values = response.get("values", [])
    return [[str(cell) for cell in row] for row in values]


async def fetch_sheet_values(
    spreadsheet_id: str,
    range_: str,
    *,
    client_email: str,
    private_key: str,
) -> list[list[str]]:
    """Async wrapper around read_sheet_values()."""
    logger.info(f"Reading sheet range {range_!r} (id={spreadsheet_id[:8]}...)")
    return await asyncio.to_thread(
        read_sheet_values,
        spreadsheet_id,
        range_,
        client_email=client_email,
        private_key=private_key,
    )
