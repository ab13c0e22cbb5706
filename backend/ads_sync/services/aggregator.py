"""
Aggregator — Folds normalized report rows into daily totals, per-SKU rollups
and per-campaign rollups.

Money is accumulated in integer cents and every other field is a sum, a set
union or a max, so the result does not depend on the order rows arrive in.
Derived ratios are computed from the accumulated totals only.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ads_sync.services.normalizer import (
    ADVERTISED_ASIN, ADVERTISED_SKU, AD_GROUP_NAME, BUDGET_AMOUNT, CAMPAIGN_ID,
    CAMPAIGN_NAME, CAMPAIGN_STATUS, CLICKS, DATE, IMPRESSIONS, SPEND,
    dpv_column, orders_column, sales_column, units_column,
)
from ads_sync.services.report_catalog import ReportSpec
from ads_sync.utils import parse_float, parse_int, ratio

logger = logging.getLogger(__name__)

# The only report type with SKU/ASIN granularity
SKU_REPORT_KEY = "sp_advertised_product"

AD_TYPES = ("sp", "sb", "sd")


def _cents(value) -> int:
    return int(round(parse_float(value) * 100))


def _dollars(cents: int) -> float:
    return round(cents / 100, 2)


def derived_metrics(spend: float, sales: float, orders: int, clicks: int, impressions: int) -> dict:
    """ACOS/ROAS/CTR/CPC/conversion rate; 0 whenever the denominator is 0."""
    return {
        "acos": round(ratio(spend, sales, 100), 2),
        "roas": round(ratio(sales, spend), 2),
        "ctr": round(ratio(clicks, impressions, 100), 2),
        "cpc": round(ratio(spend, clicks), 2),
        "convRate": round(ratio(orders, clicks, 100), 2),
    }


@dataclass
class Metrics:
    spend_cents: int = 0
    sales_cents: int = 0
    orders: int = 0
    units: int = 0
    impressions: int = 0
    clicks: int = 0

    def add(self, spend_cents: int, sales_cents: int, orders: int, units: int, impressions: int, clicks: int):
        self.spend_cents += spend_cents
        self.sales_cents += sales_cents
        self.orders += orders
        self.units += units
        self.impressions += impressions
        self.clicks += clicks

    @property
    def spend(self) -> float:
        return _dollars(self.spend_cents)

    @property
    def sales(self) -> float:
        return _dollars(self.sales_cents)

    def ratios(self) -> dict:
        return derived_metrics(
            self.spend_cents / 100, self.sales_cents / 100,
            self.orders, self.clicks, self.impressions,
        )


@dataclass
class DailyTotal(Metrics):
    dpv: int = 0
    # ad type -> [spend cents, revenue cents]
    by_ad_type: dict = field(default_factory=lambda: {t: [0, 0] for t in AD_TYPES})

    def to_dict(self) -> dict:
        out = {
            "spend": self.spend,
            "revenue": self.sales,
            "orders": self.orders,
            "units": self.units,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "dpv": self.dpv,
        }
        for ad_type, (spend_c, revenue_c) in self.by_ad_type.items():
            out[f"{ad_type}Spend"] = _dollars(spend_c)
            out[f"{ad_type}Revenue"] = _dollars(revenue_c)
        out.update(self.ratios())
        return out


@dataclass
class SkuRollup(Metrics):
    asin: str = ""
    campaigns: set = field(default_factory=set)
    ad_groups: set = field(default_factory=set)
    dates: set = field(default_factory=set)

    def to_dict(self) -> dict:
        out = {
            "asin": self.asin,
            "spend": self.spend,
            "sales": self.sales,
            "orders": self.orders,
            "units": self.units,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "campaigns": sorted(self.campaigns),
            "adGroups": sorted(self.ad_groups),
        }
        out.update(self.ratios())
        return out


@dataclass
class CampaignRollup(Metrics):
    name: str = ""
    ad_type: str = ""
    dpv: int = 0
    dates: set = field(default_factory=set)
    # (date, status, budget, campaign id) of the most recent row
    latest: Optional[tuple] = None

    def observe(self, date: str, status: str, budget: float, campaign_id: str):
        if not (status or budget or campaign_id):
            return
        candidate = (date, status, budget, campaign_id)
        if self.latest is None or candidate > self.latest:
            self.latest = candidate

    def to_dict(self) -> dict:
        _, status, budget, campaign_id = self.latest or ("", "", 0.0, "")
        out = {
            "name": self.name,
            "id": campaign_id,
            "type": self.ad_type,
            "status": status,
            "budget": budget,
            "spend": self.spend,
            "revenue": self.sales,
            "orders": self.orders,
            "units": self.units,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "dpv": self.dpv,
            "days": len(self.dates),
        }
        out.update(self.ratios())
        return out


class Aggregator:
    """Owns the accumulators for one sync invocation."""

    def __init__(self):
        self._daily: dict[str, DailyTotal] = {}
        self._sku_daily: dict[str, dict[str, SkuRollup]] = {}
        self._skus: dict[str, SkuRollup] = {}
        self._campaigns: dict[str, CampaignRollup] = {}
        self.row_counts: dict[str, int] = {}

    def add_report(self, spec: ReportSpec, rows: Iterable[dict]) -> None:
        count = 0
        for row in rows:
            count += 1
            if spec.campaign_level:
                self._fold_campaign_row(spec, row)
            if spec.key == SKU_REPORT_KEY:
                self._fold_sku_row(spec, row)
        self.row_counts[spec.key] = self.row_counts.get(spec.key, 0) + count

    # ── Folds ─────────────────────────────────────────────────────────

    @staticmethod
    def _metrics(spec: ReportSpec, row: dict) -> tuple[int, int, int, int, int, int]:
        w = spec.attribution_window
        return (
            _cents(row.get(SPEND)),
            _cents(row.get(sales_column(w))),
            parse_int(row.get(orders_column(w))),
            parse_int(row.get(units_column(w))),
            parse_int(row.get(IMPRESSIONS)),
            parse_int(row.get(CLICKS)),
        )

    def _fold_campaign_row(self, spec: ReportSpec, row: dict) -> None:
        date = row.get(DATE)
        if not date:
            return
        metrics = self._metrics(spec, row)
        dpv = parse_int(row.get(dpv_column(spec.attribution_window)))

        day = self._daily.setdefault(date, DailyTotal())
        day.add(*metrics)
        day.dpv += dpv
        split = day.by_ad_type.setdefault(spec.ad_type, [0, 0])
        split[0] += metrics[0]
        split[1] += metrics[1]

        name = row.get(CAMPAIGN_NAME) or ""
        if not name:
            return
        # Identically named campaigns can exist in SP, SB and SD
        camp = self._campaigns.setdefault(
            f"{spec.ad_type}::{name}", CampaignRollup(name=name, ad_type=spec.ad_type)
        )
        camp.add(*metrics)
        camp.dpv += dpv
        camp.dates.add(date)
        camp.observe(
            date,
            row.get(CAMPAIGN_STATUS) or "",
            parse_float(row.get(BUDGET_AMOUNT)),
            str(row.get(CAMPAIGN_ID) or ""),
        )

    def _fold_sku_row(self, spec: ReportSpec, row: dict) -> None:
        date = row.get(DATE)
        asin = row.get(ADVERTISED_ASIN) or ""
        sku = row.get(ADVERTISED_SKU) or asin
        if not date or not sku:
            return
        metrics = self._metrics(spec, row)
        campaign = row.get(CAMPAIGN_NAME) or ""
        ad_group = row.get(AD_GROUP_NAME) or ""

        for rollup in (
            self._sku_daily.setdefault(date, {}).setdefault(sku, SkuRollup()),
            self._skus.setdefault(sku, SkuRollup()),
        ):
            rollup.add(*metrics)
            rollup.asin = max(rollup.asin, asin)
            rollup.dates.add(date)
            if campaign:
                rollup.campaigns.add(campaign)
            if ad_group:
                rollup.ad_groups.add(ad_group)

    # ── Results ───────────────────────────────────────────────────────

    def daily(self) -> dict[str, dict]:
        return {date: self._daily[date].to_dict() for date in sorted(self._daily)}

    def sku_daily(self) -> dict[str, dict[str, dict]]:
        return {
            date: {sku: self._sku_daily[date][sku].to_dict() for sku in sorted(self._sku_daily[date])}
            for date in sorted(self._sku_daily)
        }

    def sku_summary(self) -> list[dict]:
        out = []
        for sku, rollup in self._skus.items():
            days_active = len(rollup.dates)
            entry = {"sku": sku, **rollup.to_dict(), "daysActive": days_active}
            entry["avgDailySpend"] = round(ratio(rollup.spend_cents / 100, days_active), 2)
            out.append(entry)
        return sorted(out, key=lambda s: (-s["spend"], s["sku"]))

    def campaigns(self) -> list[dict]:
        out = [c.to_dict() for c in self._campaigns.values()]
        return sorted(out, key=lambda c: (-c["spend"], c["type"], c["name"]))

    def summary(self, reports_completed: int, reports_failed: int) -> dict:
        totals = Metrics()
        for day in self._daily.values():
            totals.add(day.spend_cents, day.sales_cents, day.orders, day.units, day.impressions, day.clicks)
        dates = sorted(self._daily)
        ratios = totals.ratios()

        return {
            "dateRange": {"start": dates[0] if dates else None, "end": dates[-1] if dates else None},
            "daysWithData": len(dates),
            "totalRows": sum(self.row_counts.values()),
            "rowCounts": dict(sorted(self.row_counts.items())),
            "totalSpend": totals.spend,
            "totalRevenue": totals.sales,
            "totalOrders": totals.orders,
            "totalUnits": totals.units,
            "totalImpressions": totals.impressions,
            "totalClicks": totals.clicks,
            "acos": ratios["acos"],
            "roas": ratios["roas"],
            "campaignCount": len(self._campaigns),
            "skuCount": len(self._skus),
            "reportsCompleted": reports_completed,
            "reportsFailed": reports_failed,
        }
