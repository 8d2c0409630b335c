"""Buyback offer calculation.

Offer = wholesale grade price minus a margin. The margin policy is data
(MarginSettings, stored under the "margin_settings_simple" setting) and is
passed in explicitly, so everything here is pure and deterministic.

Modes:
- percentage: margin = price * pct[grade] / 100. An enabled series override
  (e.g. series "17") replaces the percentage table for that series.
- tiered: margin = fixed dollar delta[grade] of the highest tier whose `min`
  is <= price. Series overrides do not apply.

Offers are clamped at 0 and rounded half-up to whole dollars. A missing
(None) grade price always yields a missing offer.
"""

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class Grade(Enum):
    """Condition tiers of the wholesale sheet (value = GradePrices attribute)."""

    SWAP = "swap"
    GRADE_A = "grade_a"
    GRADE_B = "grade_b"
    GRADE_C = "grade_c"
    GRADE_D = "grade_d"
    DOA = "doa"


@dataclass(frozen=True)
class GradePrices:
    """Wholesale price per grade (None = no price for that grade)."""

    swap: float | None = None
    grade_a: float | None = None
    grade_b: float | None = None
    grade_c: float | None = None
    grade_d: float | None = None
    doa: float | None = None

    def get(self, grade: Grade) -> float | None:
        return getattr(self, grade.value)


@dataclass(frozen=True)
class OfferPrices:
    """Customer-facing offer per grade (None = no offer for that grade)."""

    swap: float | None = None
    grade_a: float | None = None
    grade_b: float | None = None
    grade_c: float | None = None
    grade_d: float | None = None
    doa: float | None = None

    def get(self, grade: Grade) -> float | None:
        return getattr(self, grade.value)

    def as_columns(self) -> dict[str, float | None]:
        """Map to pricing_data offer_* column names."""
        return {f"offer_{name}": value for name, value in asdict(self).items()}


# ============================================================
# Margin settings (JSON shape shared with the admin margins screen)
# ============================================================


class GradeMargins(BaseModel):
    """Margin per grade: percent in percentage mode, dollars in tiered mode.

    `swap` is optional; when unset SWAP/HSO devices use the grade A margin.
    """

    swap: float | None = Field(default=None, ge=0)
    grade_a: float = Field(alias="gradeA", ge=0)
    grade_b: float = Field(alias="gradeB", ge=0)
    grade_c: float = Field(alias="gradeC", ge=0)
    grade_d: float = Field(alias="gradeD", ge=0)
    doa: float = Field(alias="gradeDOA", ge=0)

    model_config = {"populate_by_name": True}

    def for_grade(self, grade: Grade) -> float:
        if grade is Grade.SWAP and self.swap is None:
            return self.grade_a
        return getattr(self, grade.value)


class MarginTier(GradeMargins):
    """Dollar margins applied to prices in [min, max)."""

    min: float = Field(ge=0)
    max: float = Field(ge=0)


class SeriesOverride(BaseModel):
    """Percentage table replacing the default one for a single series."""

    enabled: bool = False
    margins: GradeMargins


class MarginSettings(BaseModel):
    """Margin policy for buyback offers."""

    mode: Literal["percentage", "tiered"] = "percentage"
    percentage_margins: GradeMargins = Field(alias="percentageMargins")
    tiered_margins: dict[str, MarginTier] = Field(alias="tieredMargins", default_factory=dict)
    series_overrides: dict[str, SeriesOverride] = Field(alias="seriesOverrides", default_factory=dict)

    model_config = {"populate_by_name": True}

    def margins_for_series(self, series: str | None) -> GradeMargins:
        """Percentage table for a series (override if enabled, else default)."""
        if series:
            wanted = series.upper()
            for key, override in self.series_overrides.items():
                if key.upper() == wanted and override.enabled:
                    return override.margins
        return self.percentage_margins

    def tier_for_price(self, price: float) -> MarginTier | None:
        """Highest tier whose lower bound is <= price; lowest tier otherwise."""
        tiers = sorted(self.tiered_margins.values(), key=lambda t: t.min)
        if not tiers:
            return None
        selected = tiers[0]
        for tier in tiers:
            if price >= tier.min:
                selected = tier
        return selected


DEFAULT_MARGIN_SETTINGS = MarginSettings.model_validate(
    {
        "mode": "percentage",
        "percentageMargins": {"gradeA": 25, "gradeB": 20, "gradeC": 12, "gradeD": 22, "gradeDOA": 30},
        "tieredMargins": {
            "tier1": {"min": 0, "max": 100, "gradeA": 30, "gradeB": 25, "gradeC": 15, "gradeD": 35, "gradeDOA": 40},
            "tier2": {"min": 100, "max": 300, "gradeA": 60, "gradeB": 50, "gradeC": 30, "gradeD": 55, "gradeDOA": 70},
            "tier3": {"min": 300, "max": 500, "gradeA": 100, "gradeB": 80, "gradeC": 50, "gradeD": 85, "gradeDOA": 110},
            "tier4": {"min": 500, "max": 750, "gradeA": 140, "gradeB": 110, "gradeC": 70, "gradeD": 120, "gradeDOA": 150},
            "tier5": {"min": 750, "max": 999999, "gradeA": 180, "gradeB": 150, "gradeC": 90, "gradeD": 150, "gradeDOA": 180},
        },
        "seriesOverrides": {},
    }
)


# ============================================================
# Calculation
# ============================================================


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def calculate_offer_price(
    price: float | None,
    grade: Grade,
    series: str | None,
    settings: MarginSettings,
) -> float | None:
    """Offer for one grade, unrounded.

    Args:
        price: Wholesale price for the grade.
        grade: Grade tier.
        series: Series token ("17", "SE", ...) or None for the default policy.
        settings: Margin policy.

    Returns:
        Offer clamped at 0, or None if the price is missing or invalid.
    """
    if price is None or not math.isfinite(price) or price < 0:
        return None

    if settings.mode == "tiered":
        tier = settings.tier_for_price(price) or DEFAULT_MARGIN_SETTINGS.tier_for_price(price)
        margin = tier.for_grade(grade)
    else:
        pct = settings.margins_for_series(series).for_grade(grade)
        margin = price * (pct / 100)

    return max(0.0, price - margin)


def calculate_all_offer_prices(
    prices: GradePrices,
    series: str | None,
    settings: MarginSettings = DEFAULT_MARGIN_SETTINGS,
) -> OfferPrices:
    """Offers for every grade of a device configuration, rounded to dollars."""
    offers: dict[str, float | None] = {}
    for grade in Grade:
        offer = calculate_offer_price(prices.get(grade), grade, series, settings)
        offers[grade.value] = _round_half_up(offer) if offer is not None else None
    return OfferPrices(**offers)
