"""Tests for the retail inventory cache refresh."""

import asyncio
import json

import pytest

from buyback.services import inventory
from buyback.services.inventory import (
    InventoryRefreshError,
    build_inventory_items,
    detect_category_and_brand,
    map_grade_to_condition,
    parse_inventory_string,
    refresh_inventory_cache,
)
from buyback.settings import Settings

HEADER = [
    "Date", "Supplier", "Inventory", "IMEI", "Battery", "Grade", "Notes",
    "Cost", "Price", "B2B", "Facebook", "Swappa", "eBay", "Nexus",
]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("iPhone 15 Pro 256GB", ("smartphone", "Apple")),
        ("Samsung Galaxy S23", ("smartphone", "Samsung")),
        ("Galaxy Watch 6", ("smartwatch", "Samsung")),
        ("Pixel 8 Pro", ("smartphone", "Google")),
        ("OnePlus 12", ("smartphone", "OnePlus")),
        ("Moto G Power", ("smartphone", "Motorola")),
        ("iPad Air 5th Gen", ("tablet", "Apple")),
        ("Lenovo Tab M10", ("tablet", "")),
        ("MacBook Air M2", ("computer", "Apple")),
        ("Apple Watch Series 9", ("smartwatch", "Apple")),
        ("AirPods Pro 2", ("headphones", "Apple")),
        ("Xbox Series X", ("console", "Microsoft")),
        ("PS5 Digital", ("console", "Sony")),
        ("Nintendo Switch OLED", ("console", "Nintendo")),
        ("Steam Deck 512GB", ("console", "Valve")),
        ("Mystery Gadget", ("smartphone", "")),
    ],
)
def test_detect_category_and_brand(text, expected):
    assert detect_category_and_brand(text) == expected


def test_parse_inventory_string_full():
    attrs = parse_inventory_string("iPhone 15 Pro 256GB Natural Titanium (Box) Unlocked")

    assert attrs.model == "iPhone 15 Pro"
    assert attrs.storage == "256GB"
    assert attrs.color == "Natural Titanium"
    assert attrs.carrier == "Unlocked"
    assert attrs.category == "smartphone"
    assert attrs.brand == "Apple"


def test_parse_inventory_string_without_carrier():
    attrs = parse_inventory_string("iPad Air 64GB Space Gray")
    assert attrs.model == "iPad Air"
    assert attrs.color == "Space Gray"
    assert attrs.carrier == ""


def test_parse_inventory_string_without_storage():
    attrs = parse_inventory_string("AirPods Pro 2")
    assert attrs.model == "AirPods Pro 2"
    assert attrs.storage == ""
    assert attrs.color == ""


def test_parse_inventory_string_empty():
    attrs = parse_inventory_string("")
    assert attrs.model == ""
    assert attrs.category == "smartphone"


@pytest.mark.parametrize(
    "grade, condition",
    [
        ("N", "New"),
        ("New Sealed", "New"),
        ("NIB", "New"),
        ("A+", "Like New"),
        ("A", "Like New"),
        ("A-", "Like New"),
        ("B+", "Excellent"),
        ("B", "Good"),
        ("B-", "Fair"),
        ("C", "Damaged"),
        (" C ", "Damaged"),
        ("", "Good"),
        (None, "Good"),
        ("Z", "Good"),
    ],
)
def test_map_grade_to_condition(grade, condition):
    assert map_grade_to_condition(grade) == condition


def test_build_inventory_items_skips_header_and_blank_rows():
    rows = [
        HEADER,
        ["1/2", "Acme", "iPhone 14 128GB Blue Unlocked", "3500001", "90%", "A", "", "400", "550"],
        ["", "", "", "", "", "", "", "", "", "", "", ""],
        [""],
        ["", "", "", "", "", "", "", "", "", "", "", "499"],
    ]
    metadata = {"3500001": {"status": "published", "photos": ["a.jpg"], "ram": "6GB"}}

    items = build_inventory_items(rows, metadata)

    assert len(items) == 2
    first = items[0]
    assert first["IMEI"] == "3500001"
    assert first["SKU"] == "3500001"
    assert first["Condition"] == "Like New"
    assert first["OriginalGrade"] == "A"
    assert first["Model"] == "iPhone 14"
    assert first["Color"] == "Blue"
    assert first["Carrier"] == "Unlocked"
    assert first["websiteStatus"] == "published"
    assert first["photos"] == ["a.jpg"]
    assert first["RAM"] == "6GB"
    assert first["Swappa Price"] == ""

    second = items[1]
    assert second["Swappa Price"] == "499"
    assert second["websiteStatus"] == "draft"
    assert second["listingId"] is None


@pytest.mark.asyncio
async def test_refresh_inventory_cache_writes_file(settings: Settings, tmp_path):
    with open(settings.inventory_metadata_path, "w", encoding="utf-8") as f:
        json.dump({"3500001": {"description": "Mint"}}, f)

    async def fake_fetch(spreadsheet_id: str, range_: str) -> list[list[str]]:
        assert (spreadsheet_id, range_) == ("inventory-sheet", "Retail Stock!A:N")
        # Sheets API rows are ragged: trailing empty cells are dropped
        return [HEADER, ["1/2", "Acme", "iPhone 14 128GB Blue Unlocked", "3500001", "90%", "B+", "", "400", "550"]]

    count = await refresh_inventory_cache(settings, fetch_rows=fake_fetch)

    assert count == 1
    with open(settings.inventory_cache_path, encoding="utf-8") as f:
        items = json.load(f)
    assert items[0]["Condition"] == "Excellent"
    assert items[0]["description"] == "Mint"
    assert items[0]["Nexus Site"] == ""
    assert not [p for p in tmp_path.iterdir() if p.name.endswith(".tmp")]


@pytest.mark.asyncio
async def test_refresh_inventory_cache_requires_sheet_id(tmp_path):
    settings = Settings(inventory_sheet_id="", inventory_cache_path=str(tmp_path / "c.json"))
    with pytest.raises(InventoryRefreshError):
        await refresh_inventory_cache(settings)


@pytest.mark.asyncio
async def test_refresh_inventory_cache_requires_credentials(settings: Settings):
    unconfigured = settings.model_copy(update={"google_sheets_client_email": "", "google_sheets_private_key": ""})

    with pytest.raises(InventoryRefreshError, match="credentials not configured"):
        await refresh_inventory_cache(unconfigured)


@pytest.mark.asyncio
async def test_refresh_inventory_cache_uses_service_account(settings: Settings, monkeypatch):
    calls = []

    async def fake_fetch_sheet_values(spreadsheet_id, range_, *, client_email, private_key):
        calls.append((spreadsheet_id, range_, client_email, private_key))
        return [HEADER, ["1/2", "Acme", "Pixel 8 128GB Obsidian Unlocked", "990001"]]

    monkeypatch.setattr(inventory, "fetch_sheet_values", fake_fetch_sheet_values)

    assert await refresh_inventory_cache(settings) == 1
    assert calls == [
        (
            "inventory-sheet",
            "Retail Stock!A:N",
            settings.google_sheets_client_email,
            settings.google_sheets_private_key,
        )
    ]


@pytest.mark.asyncio
async def test_refresh_inventory_cache_empty_sheet(settings: Settings):
    async def fake_fetch(spreadsheet_id: str, range_: str) -> list[list[str]]:
        return []

    with pytest.raises(InventoryRefreshError, match="No data found"):
        await refresh_inventory_cache(settings, fetch_rows=fake_fetch)


@pytest.mark.asyncio
async def test_refresh_inventory_cache_fetch_error_keeps_existing_cache(settings: Settings):
    with open(settings.inventory_cache_path, "w", encoding="utf-8") as f:
        json.dump([{"IMEI": "good"}], f)

    async def fake_fetch(spreadsheet_id: str, range_: str) -> list[list[str]]:
        raise RuntimeError("HTTP 403")

    with pytest.raises(InventoryRefreshError, match="HTTP 403"):
        await refresh_inventory_cache(settings, fetch_rows=fake_fetch)

    with open(settings.inventory_cache_path, encoding="utf-8") as f:
        assert json.load(f) == [{"IMEI": "good"}]


@pytest.mark.asyncio
async def test_refresh_inventory_cache_file_io_off_event_loop(settings: Settings, monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(inventory.asyncio, "to_thread", recording_to_thread)

    async def fake_fetch(spreadsheet_id: str, range_: str) -> list[list[str]]:
        return [HEADER, ["1/2", "Acme", "iPhone 14 128GB Blue Unlocked", "3500001"]]

    await refresh_inventory_cache(settings, fetch_rows=fake_fetch)

    assert offloaded == ["load_metadata", "write_json_atomic"]
