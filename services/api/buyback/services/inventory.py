"""Retail inventory cache refresh.

Reads the "Retail Stock" tab of the inventory sheet (columns A..N), turns each
stock row into a storefront item and writes the result to the cached
inventory JSON the storefront reads from. Per-item website metadata (status,
description, photos...) lives in a separate JSON file keyed by IMEI and is
merged into every item.
"""

import asyncio
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from buyback.services.google_sheets import fetch_sheet_values
from buyback.settings import Settings, get_settings

logger = logging.getLogger("uvicorn.error")

CARRIER_KEYWORDS = (
    "Unlocked",
    "Verizon",
    "AT&T",
    "T-Mobile",
    "Sprint",
    "WiFi",
    "GPS Only",
    "GPS + Cellular",
)

_STORAGE_RE = re.compile(r"\d+(?:GB|TB)", re.IGNORECASE)
_PARENS_RE = re.compile(r"\([^)]*\)")
_SPACES_RE = re.compile(r"\s+")

# Sheet columns (Retail Stock!A:N)
COL_DATE = 0
COL_SUPPLIER = 1
COL_INVENTORY = 2
COL_IMEI = 3
COL_BATTERY = 4
COL_GRADE = 5
COL_NOTES = 6
COL_COST = 7
COL_PRICE = 8
COL_B2B_PRICE = 9
COL_FACEBOOK_PRICE = 10
COL_SWAPPA_PRICE = 11
COL_EBAY_PRICE = 12
COL_NEXUS_SITE = 13


class InventoryRefreshError(RuntimeError):
    """Inventory cache could not be rebuilt (config, fetch or empty sheet)."""


@dataclass(frozen=True)
class InventoryAttributes:
    model: str = ""
    storage: str = ""
    color: str = ""
    carrier: str = ""
    category: str = "smartphone"
    brand: str = ""


def detect_category_and_brand(text: str) -> tuple[str, str]:
    """Guess (category, brand) from a free-text inventory description."""
    s = text.lower()

    # Smartphones
    if "iphone" in s:
        return "smartphone", "Apple"
    if "samsung" in s or ("galaxy" in s and "watch" not in s):
        return "smartphone", "Samsung"
    if "pixel" in s:
        return "smartphone", "Google"
    if "oneplus" in s:
        return "smartphone", "OnePlus"
    if "moto" in s:
        return "smartphone", "Motorola"

    # Tablets
    if "ipad" in s:
        return "tablet", "Apple"
    if "tab" in s:
        return "tablet", "Samsung" if "galaxy" in s else ""

    # Computers
    if "macbook" in s or "imac" in s or "mac mini" in s:
        return "computer", "Apple"

    # Watches
    if "apple watch" in s or ("watch" in s and "apple" in s):
        return "smartwatch", "Apple"
    if "galaxy watch" in s:
        return "smartwatch", "Samsung"

    if "airpods" in s:
        return "headphones", "Apple"

    # Consoles
    if "xbox" in s or "series x" in s or "series s" in s:
        return "console", "Microsoft"
    if "ps5" in s or "ps4" in s or "playstation" in s:
        return "console", "Sony"
    if "switch" in s or "nintendo" in s:
        return "console", "Nintendo"
    if "steam deck" in s:
        return "console", "Valve"

    return "smartphone", ""


def _find_carrier(text: str) -> str:
    lowered = text.lower()
    for keyword in CARRIER_KEYWORDS:
        if keyword.lower() in lowered:
            return keyword
    return ""


def parse_inventory_string(text: str) -> InventoryAttributes:
    """Split "iPhone 15 Pro 256GB Natural Titanium Unlocked" into attributes.

    Model is everything before the storage token; color is what sits between
    storage and carrier (parenthesized notes dropped).
    """
    if not text:
        return InventoryAttributes()

    category, brand = detect_category_and_brand(text)
    carrier = _find_carrier(text)

    match = _STORAGE_RE.search(text)
    if not match:
        return InventoryAttributes(model=text, carrier=carrier, category=category, brand=brand)

    storage = match.group(0)
    model = text[: match.start()].strip()
    after = text[match.end() :]
    if carrier:
        cut = after.lower().find(carrier.lower())
        color = after[:cut] if cut >= 0 else after
    else:
        color = after
    color = _SPACES_RE.sub(" ", _PARENS_RE.sub("", color)).strip()

    return InventoryAttributes(
        model=model,
        storage=storage,
        color=color,
        carrier=carrier,
        category=category,
        brand=brand,
    )


def map_grade_to_condition(grade: str | None) -> str:
    """Sheet grade -> storefront condition label ("Good" when unknown)."""
    grade = (grade or "").strip()
    if grade in ("N", "New Sealed", "NIB"):
        return "New"
    if grade in ("A+", "A", "A-"):
        return "Like New"
    if grade == "B+":
        return "Excellent"
    if grade == "B-":
        return "Fair"
    if grade == "C":
        return "Damaged"
    return "Good"


def _cell(row: list[str], index: int) -> str:
    return str(row[index]) if index < len(row) else ""


def build_inventory_items(rows: list[list[str]], metadata: dict[str, Any] | None = None) -> list[dict[str, Any]]:
    """Turn sheet rows (header first) into cached inventory items."""
    metadata = metadata or {}
    items: list[dict[str, Any]] = []

    for row in rows[1:]:
        inventory = _cell(row, COL_INVENTORY)
        imei = _cell(row, COL_IMEI)
        if not (inventory or imei or _cell(row, COL_SWAPPA_PRICE)):
            continue

        attrs = parse_inventory_string(inventory)
        meta = metadata.get(imei) or {}
        grade = _cell(row, COL_GRADE)

        items.append(
            {
                "Date": _cell(row, COL_DATE),
                "Supplier": _cell(row, COL_SUPPLIER),
                "Inventory": inventory,
                "IMEI": imei,
                "Battery Health": _cell(row, COL_BATTERY),
                "Condition": map_grade_to_condition(grade),
                "OriginalGrade": grade,
                "Notes": _cell(row, COL_NOTES),
                "Cost": _cell(row, COL_COST),
                "Price": _cell(row, COL_PRICE),
                "B2B Price": _cell(row, COL_B2B_PRICE),
                "Facebook Price": _cell(row, COL_FACEBOOK_PRICE),
                "Swappa Price": _cell(row, COL_SWAPPA_PRICE),
                "eBay Price": _cell(row, COL_EBAY_PRICE),
                "Nexus Site": _cell(row, COL_NEXUS_SITE),
                "SKU": imei,
                "Status": "",
                "Model": attrs.model,
                "Storage": attrs.storage,
                "Color": attrs.color,
                "Carrier": attrs.carrier,
                "Category": attrs.category,
                "Brand": attrs.brand,
                "websiteStatus": meta.get("status") or "draft",
                "description": meta.get("description") or "",
                "photos": meta.get("photos") or [],
                "listingId": meta.get("listingId"),
                "RAM": meta.get("ram") or "",
                "CPU": meta.get("cpu") or "",
                "GPU": meta.get("gpu") or "",
                "Controllers": meta.get("controllers") or "",
                "Accessories": meta.get("accessories") or "",
            }
        )

    return items


def load_metadata(path: Path) -> dict[str, Any]:
    """Per-IMEI product metadata, empty if the file is missing or unreadable."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info(f"No product metadata at {path}, continuing without it")
        return {}
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to read product metadata {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON via a temp file + rename so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def refresh_inventory_cache(settings: Settings | None = None, fetch_rows=None) -> int:
    """Rebuild the cached inventory file from the inventory sheet.

    fetch_rows(spreadsheet_id, range) returns the sheet rows; defaults to the
    Sheets API read with the configured service account.

    Returns:
        Number of items written.

    Raises:
        InventoryRefreshError: Missing config, fetch failure or empty sheet.
            The existing cache file is left untouched.
    """
    settings = settings or get_settings()
    if not settings.inventory_sheet_id:
        raise InventoryRefreshError("Inventory sheet is not configured (INVENTORY_SHEET_ID)")
    if fetch_rows is None and not settings.google_sheets_configured:
        raise InventoryRefreshError(
            "Google Sheets credentials not configured (GOOGLE_SHEETS_CLIENT_EMAIL, GOOGLE_SHEETS_PRIVATE_KEY)"
        )

    try:
        if fetch_rows is not None:
            rows = await fetch_rows(settings.inventory_sheet_id, settings.inventory_sheet_range)
        else:
            rows = await fetch_sheet_values(
                settings.inventory_sheet_id,
                settings.inventory_sheet_range,
                client_email=settings.google_sheets_client_email,
                private_key=settings.google_sheets_private_key,
            )
    except Exception as e:
        raise InventoryRefreshError(f"Failed to fetch inventory sheet: {e}") from e

    if not rows:
        raise InventoryRefreshError("No data found in spreadsheet")

    metadata = await asyncio.to_thread(load_metadata, Path(settings.inventory_metadata_path))
    items = build_inventory_items(rows, metadata)
    await asyncio.to_thread(write_json_atomic, Path(settings.inventory_cache_path), items)

    logger.info(f"Inventory cache refreshed with {len(items)} items -> {settings.inventory_cache_path}")
    return len(items)
