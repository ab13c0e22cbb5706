"""
Normalizer — Reshapes raw Amazon Ads v3 report rows into the column names the
dashboard's report parser expects (the Seller Central download headers, e.g.
"Campaign Name", "Spend", "7 Day Total Sales").

Each report type has its own explicit mapping table: upstream names are not
systematically related to the destination names.
"""

import logging
from typing import Any, Callable, Iterable, Optional

from ads_sync.utils import parse_float, parse_int

logger = logging.getLogger(__name__)


# ── Attribution-window-aware accessors ────────────────────────────────
# Windowed names first, then the unwindowed legacy name.

def _first_present(row: dict, names: Iterable[str]) -> Any:
    for name in names:
        value = row.get(name)
        if value not in (None, ""):
            return value
    return None


def get_sales(row: dict, window: int) -> float:
    return parse_float(_first_present(row, (f"sales{window}d", f"salesClicks{window}d", "sales")))


def get_purchases(row: dict, window: int) -> int:
    return parse_int(_first_present(row, (f"purchases{window}d", f"purchasesClicks{window}d", "purchases")))


def get_units(row: dict, window: int) -> int:
    return parse_int(_first_present(
        row, (f"unitsSoldClicks{window}d", f"unitsSold{window}d", "unitsSoldClicks", "unitsSold")
    ))


def get_dpv(row: dict, window: int) -> int:
    return parse_int(_first_present(row, (f"dpv{window}d", "detailPageViews", "dpv")))


# ── Destination column names ──────────────────────────────────────────

DATE = "Date"
CAMPAIGN_NAME = "Campaign Name"
CAMPAIGN_ID = "Campaign Id"
CAMPAIGN_STATUS = "Campaign Status"
BUDGET_AMOUNT = "Budget Amount"
AD_GROUP_NAME = "Ad Group Name"
IMPRESSIONS = "Impressions"
CLICKS = "Clicks"
SPEND = "Spend"
ADVERTISED_SKU = "Advertised SKU"
ADVERTISED_ASIN = "Advertised ASIN"


def sales_column(window: int) -> str:
    return f"{window} Day Total Sales"


def orders_column(window: int) -> str:
    return f"{window} Day Total Orders (#)"


def units_column(window: int) -> str:
    return f"{window} Day Total Units (#)"


def dpv_column(window: int) -> str:
    return f"{window} Day Detail Page Views (DPV)"


# ── Field transforms ──────────────────────────────────────────────────
# A transform receives the whole raw row so windowed metrics can fall back.

Transform = Callable[[dict], Any]


def _text(source: str) -> Transform:
    return lambda row: "" if row.get(source) is None else str(row.get(source))


def _money(source: str) -> Transform:
    return lambda row: round(parse_float(row.get(source)), 2)


def _count(source: str) -> Transform:
    return lambda row: parse_int(row.get(source))


def _rate(source: str) -> Transform:
    return lambda row: parse_float(row.get(source))


def _sales(window: int) -> Transform:
    return lambda row: round(get_sales(row, window), 2)


def _purchases(window: int) -> Transform:
    return lambda row: get_purchases(row, window)


def _units(window: int) -> Transform:
    return lambda row: get_units(row, window)


def _dpv(window: int) -> Transform:
    return lambda row: get_dpv(row, window)


def _windowed_metrics(window: int) -> list[tuple[str, str, Transform]]:
    return [
        (f"sales{window}d", sales_column(window), _sales(window)),
        (f"purchases{window}d", orders_column(window), _purchases(window)),
        (f"unitsSold{window}d", units_column(window), _units(window)),
    ]


def _traffic() -> list[tuple[str, str, Transform]]:
    return [
        ("impressions", IMPRESSIONS, _count("impressions")),
        ("clicks", CLICKS, _count("clicks")),
        ("cost", SPEND, _money("cost")),
    ]


# (source field, destination column, transform) per report key
FIELD_MAPS: dict[str, list[tuple[str, str, Transform]]] = {
    "sp_campaigns": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("campaignId", CAMPAIGN_ID, _text("campaignId")),
        ("campaignStatus", CAMPAIGN_STATUS, _text("campaignStatus")),
        ("campaignBudgetAmount", BUDGET_AMOUNT, _money("campaignBudgetAmount")),
        ("campaignBudgetType", "Budget Type", _text("campaignBudgetType")),
        *_traffic(),
        ("costPerClick", "Cost Per Click (CPC)", _rate("costPerClick")),
        ("clickThroughRate", "Click-Thru Rate (CTR)", _rate("clickThroughRate")),
        *_windowed_metrics(7),
    ],
    "sp_advertised_product": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("campaignId", CAMPAIGN_ID, _text("campaignId")),
        ("adGroupName", AD_GROUP_NAME, _text("adGroupName")),
        ("advertisedAsin", ADVERTISED_ASIN, _text("advertisedAsin")),
        ("advertisedSku", ADVERTISED_SKU, _text("advertisedSku")),
        *_traffic(),
        ("costPerClick", "Cost Per Click (CPC)", _rate("costPerClick")),
        ("clickThroughRate", "Click-Thru Rate (CTR)", _rate("clickThroughRate")),
        *_windowed_metrics(7),
    ],
    "sp_search_terms": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("adGroupName", AD_GROUP_NAME, _text("adGroupName")),
        ("targeting", "Targeting", _text("targeting")),
        ("matchType", "Match Type", _text("matchType")),
        ("searchTerm", "Customer Search Term", _text("searchTerm")),
        *_traffic(),
        *_windowed_metrics(7),
    ],
    "sp_targeting": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("adGroupName", AD_GROUP_NAME, _text("adGroupName")),
        ("targeting", "Targeting", _text("targeting")),
        ("matchType", "Match Type", _text("matchType")),
        ("keywordType", "Keyword Type", _text("keywordType")),
        ("topOfSearchImpressionShare", "Top-of-search Impression Share", _rate("topOfSearchImpressionShare")),
        *_traffic(),
        *_windowed_metrics(7),
    ],
    "sp_placement": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("placementClassification", "Placement", _text("placementClassification")),
        ("campaignBiddingStrategy", "Bidding strategy", _text("campaignBiddingStrategy")),
        *_traffic(),
        *_windowed_metrics(7),
    ],
    "sb_campaign_placement": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("campaignId", CAMPAIGN_ID, _text("campaignId")),
        ("campaignStatus", CAMPAIGN_STATUS, _text("campaignStatus")),
        ("campaignBudgetAmount", BUDGET_AMOUNT, _money("campaignBudgetAmount")),
        ("placementClassification", "Placement", _text("placementClassification")),
        ("costType", "Cost type", _text("costType")),
        *_traffic(),
        ("viewableImpressions", "Viewable Impressions", _count("viewableImpressions")),
        *_windowed_metrics(14),
    ],
    "sb_search_terms": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("adGroupName", AD_GROUP_NAME, _text("adGroupName")),
        ("searchTerm", "Customer Search Term", _text("searchTerm")),
        ("keywordText", "Targeting", _text("keywordText")),
        ("matchType", "Match Type", _text("matchType")),
        ("costType", "Cost type", _text("costType")),
        *_traffic(),
        *_windowed_metrics(14),
    ],
    "sd_campaign": [
        ("date", DATE, _text("date")),
        ("campaignName", CAMPAIGN_NAME, _text("campaignName")),
        ("campaignId", CAMPAIGN_ID, _text("campaignId")),
        ("campaignStatus", CAMPAIGN_STATUS, _text("campaignStatus")),
        ("campaignBudgetAmount", BUDGET_AMOUNT, _money("campaignBudgetAmount")),
        ("costType", "Cost type", _text("costType")),
        *_traffic(),
        *_windowed_metrics(14),
        ("dpv14d", dpv_column(14), _dpv(14)),
    ],
}


def normalize_row(key: str, row: dict) -> dict:
    return {dest: transform(row) for _, dest, transform in FIELD_MAPS[key]}


def normalize_rows(key: str, rows: Optional[list]) -> list[dict]:
    """Apply the mapping table for ``key`` to every dict row; other values are dropped."""
    field_map = FIELD_MAPS.get(key)
    if field_map is None:
        raise KeyError(f"No field mapping for report type {key!r}")

    normalized = []
    skipped = 0
    for row in rows or []:
        if not isinstance(row, dict):
            skipped += 1
            continue
        normalized.append(normalize_row(key, row))
    if skipped:
        logger.warning(f"[AdsSync] {key}: skipped {skipped} non-object rows")
    return normalized
