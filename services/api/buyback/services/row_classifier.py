"""Row classification and field extraction for the Atlas pricing sheet.

The sheet is maintained by hand: section headers, footnotes and blank spacer
rows sit between real device rows. Every matching rule lives in RowRules so the
rules can be swapped when the sheet layout drifts.

Extraction order for an accepted row (example "iPhone 13 Pro 256GB Unlocked"):
1. storage    = first "<digits>GB|TB" match            -> "256GB"
2. network    = "Unlocked" if "unlocked" appears        -> "Unlocked"
3. model_name = text before storage, first family token
                removed, trimmed                        -> "13 Pro"
4. series     = leading generation token of model_name  -> "13"
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from buyback.models import NETWORK_CARRIER_LOCKED, NETWORK_UNLOCKED
from buyback.services.offer_calculator import GradePrices
from buyback.services.prices import parse_price


class SkipReason(Enum):
    """Why a sheet row was not turned into a pricing record."""

    MISSING_DESCRIPTION = "missing_description"
    TOO_SHORT = "too_short"
    NOISE_MARKER = "noise_marker"
    MISSING_FAMILY_TOKEN = "missing_family_token"
    INVALID_FORMAT = "invalid_format"
    MISSING_STORAGE = "missing_storage"
    MISSING_MODEL_NAME = "missing_model_name"


@dataclass(frozen=True)
class RowRules:
    """Matching rules and column layout for one sheet format."""

    family_token: str = "iPhone"
    device_type: str = "iPhone"
    noise_markers: tuple[str, ...] = (
        "Model",
        "Cracked",
        "Degraded",
        "Contact",
        "Used",
        "Prices for",
    )
    min_description_length: int = 5
    valid_pattern: re.Pattern[str] = re.compile(r"iPhone\s+\S+.*\d+(?:GB|TB)", re.IGNORECASE)
    storage_pattern: re.Pattern[str] = re.compile(r"\d+(?:GB|TB)", re.IGNORECASE)
    series_pattern: re.Pattern[str] = re.compile(r"^(\d+|SE|XS|XR|X)(?:\s|[A-Z]|$)", re.IGNORECASE)
    unlocked_keyword: str = "unlocked"

    # Column layout: B = description, C..H = SWAP/HSO, A, B, C, D, DOA
    description_index: int = 1
    price_indices: tuple[int, ...] = field(default=(2, 3, 4, 5, 6, 7))


DEFAULT_ROW_RULES = RowRules()


@dataclass(frozen=True)
class ParsedPricingRow:
    """A sheet row that represents a real, priceable device configuration."""

    model: str
    network: str
    device_type: str
    model_name: str
    storage: str
    series: str | None
    prices: GradePrices

    @property
    def key(self) -> tuple[str, str]:
        """Natural key (model, network)."""
        return (self.model, self.network)


@dataclass(frozen=True)
class RowClassification:
    """Either a parsed row or the reason it was skipped."""

    row: ParsedPricingRow | None = None
    skip_reason: SkipReason | None = None

    @property
    def accepted(self) -> bool:
        return self.row is not None


def _skip(reason: SkipReason) -> RowClassification:
    return RowClassification(skip_reason=reason)


# ============================================================
# Field extraction
# ============================================================


def extract_storage(description: str, rules: RowRules = DEFAULT_ROW_RULES) -> str | None:
    """First storage token as written (e.g. "256GB"), or None."""
    match = rules.storage_pattern.search(description)
    return match.group(0) if match else None


def extract_network(description: str, rules: RowRules = DEFAULT_ROW_RULES) -> str:
    """Binary lock status: "Unlocked" or "Carrier Locked".

    Specific carriers (Verizon, AT&T, ...) are not distinguished.
    """
    if rules.unlocked_keyword in description.lower():
        return NETWORK_UNLOCKED
    return NETWORK_CARRIER_LOCKED


def extract_model_name(description: str, storage: str, rules: RowRules = DEFAULT_ROW_RULES) -> str:
    """Text before the storage token with the first family token removed.

    "iPhone SE (3rd Gen) 64GB Unlocked" -> "SE (3rd Gen)"
    """
    before_storage = description.split(storage, 1)[0]
    return before_storage.replace(rules.family_token, "", 1).strip()


def extract_series(model_name: str, rules: RowRules = DEFAULT_ROW_RULES) -> str | None:
    """Leading generation token, uppercased ("16e" -> "16", "xr" -> "XR")."""
    match = rules.series_pattern.match(model_name)
    if not match:
        return None
    return match.group(1).upper()


def extract_grade_prices(row: list[str], rules: RowRules = DEFAULT_ROW_RULES) -> GradePrices:
    """Normalize the grade price cells; missing cells are None."""
    values = [parse_price(row[i]) if i < len(row) else None for i in rules.price_indices]
    return GradePrices(*values)


# ============================================================
# Classification
# ============================================================


def classify_row(row: list[str], rules: RowRules = DEFAULT_ROW_RULES) -> RowClassification:
    """Decide whether a sheet row is a device row and extract its fields.

    Never raises: anything unrecognized resolves to a skip reason.
    """
    description = row[rules.description_index] if len(row) > rules.description_index else ""

    if not description:
        return _skip(SkipReason.MISSING_DESCRIPTION)
    if any(marker in description for marker in rules.noise_markers):
        return _skip(SkipReason.NOISE_MARKER)
    if len(description) < rules.min_description_length:
        return _skip(SkipReason.TOO_SHORT)

    model = description.strip()
    if rules.family_token not in model:
        return _skip(SkipReason.MISSING_FAMILY_TOKEN)
    if not rules.valid_pattern.search(model):
        return _skip(SkipReason.INVALID_FORMAT)

    storage = extract_storage(model, rules)
    if not storage:
        return _skip(SkipReason.MISSING_STORAGE)

    model_name = extract_model_name(model, storage, rules)
    if not model_name:
        return _skip(SkipReason.MISSING_MODEL_NAME)

    return RowClassification(
        row=ParsedPricingRow(
            model=model,
            network=extract_network(model, rules),
            device_type=rules.device_type,
            model_name=model_name,
            storage=storage,
            series=extract_series(model_name, rules),
            prices=extract_grade_prices(row, rules),
        )
    )
