"""
Tests for the daily / SKU / campaign rollups.
"""

import itertools

import pytest

from ads_sync.services.aggregator import Aggregator, derived_metrics
from ads_sync.services.normalizer import normalize_row, normalize_rows
from ads_sync.services.report_catalog import get_spec

SP = get_spec("sp_campaigns")
SB = get_spec("sb_campaign_placement")
SD = get_spec("sd_campaign")
SKU = get_spec("sp_advertised_product")


def _sp(date, name, cost, sales, status="ENABLED", budget=50, **extra):
    return normalize_row("sp_campaigns", {
        "date": date, "campaignName": name, "campaignId": f"id-{name}", "campaignStatus": status,
        "campaignBudgetAmount": budget, "cost": cost, "sales7d": sales,
        "clicks": 10, "impressions": 1000, "purchases7d": 1, "unitsSoldClicks7d": 1, **extra,
    })


def _sb(date, name, cost, sales):
    return normalize_row("sb_campaign_placement", {
        "date": date, "campaignName": name, "cost": cost, "sales14d": sales,
        "clicks": 3, "impressions": 300, "purchases14d": 1, "unitsSold14d": 2,
    })


def _build(parts):
    agg = Aggregator()
    for spec, rows in parts:
        agg.add_report(spec, rows)
    return agg


def _snapshot(agg):
    return (agg.daily(), agg.campaigns(), agg.sku_summary(), agg.summary(3, 0))


def test_single_sku_row_metrics():
    raw = {
        "date": "2024-01-05", "advertisedSku": "SKU1", "cost": "10", "salesClicks7d": "50",
        "clicks": "4", "impressions": "100", "unitsSoldClicks7d": "2",
    }
    agg = _build([(SKU, normalize_rows("sp_advertised_product", [raw]))])

    [sku] = agg.sku_summary()
    assert sku["sku"] == "SKU1"
    assert sku["spend"] == 10
    assert sku["sales"] == 50
    assert sku["units"] == 2
    assert sku["acos"] == 20
    assert sku["roas"] == 5
    assert sku["ctr"] == 4
    assert sku["cpc"] == 2.5
    assert sku["daysActive"] == 1
    assert sku["avgDailySpend"] == 10

    assert agg.sku_daily()["2024-01-05"]["SKU1"]["spend"] == 10
    # SKU rows do not feed campaign-level daily totals
    assert agg.daily() == {}


def test_order_independence():
    sp_rows = [
        _sp("2024-01-01", "Brand", 0.1, 1.1),
        _sp("2024-01-01", "Generic", 0.2, 0.7),
        _sp("2024-01-02", "Brand", 0.3, 0.0),
        _sp("2024-01-02", "Generic", 1.15, 2.35),
    ]
    sb_rows = [_sb("2024-01-01", "Brand", 0.7, 3.3), _sb("2024-01-02", "Video", 0.05, 0)]

    reference = _snapshot(_build([(SP, sp_rows), (SB, sb_rows)]))
    for perm in itertools.permutations(sp_rows):
        assert _snapshot(_build([(SB, list(reversed(sb_rows))), (SP, list(perm))])) == reference


def test_daily_totals_split_by_ad_type():
    agg = _build([
        (SP, [_sp("2024-01-01", "Brand", 10, 40)]),
        (SB, [_sb("2024-01-01", "Brand", 5, 20)]),
        (SD, [normalize_row("sd_campaign", {"date": "2024-01-01", "campaignName": "Retarget", "cost": 2, "dpv14d": 9})]),
    ])
    day = agg.daily()["2024-01-01"]
    assert day["spend"] == 17
    assert day["revenue"] == 60
    assert day["spSpend"] == 10
    assert day["sbSpend"] == 5
    assert day["sdSpend"] == 2
    assert day["sbRevenue"] == 20
    assert day["dpv"] == 9
    assert day["impressions"] == 1300


def test_zero_denominators_yield_zero():
    agg = _build([(SP, [_sp("2024-01-01", "Brand", 5, 0, clicks=0, impressions=0)])])
    day = agg.daily()["2024-01-01"]
    assert day["acos"] == 0
    assert day["roas"] == 0
    assert day["ctr"] == 0
    assert day["cpc"] == 0
    assert day["convRate"] == 0


def test_derived_metrics_rounding():
    assert derived_metrics(spend=1, sales=3, orders=1, clicks=3, impressions=7) == {
        "acos": 33.33, "roas": 3.0, "ctr": 42.86, "cpc": 0.33, "convRate": 33.33,
    }


@pytest.mark.parametrize("order", [0, 1])
def test_campaign_status_comes_from_latest_date(order):
    rows = [
        _sp("2024-01-01", "Brand", 1, 0, status="PAUSED", budget=20),
        _sp("2024-01-03", "Brand", 1, 0, status="ENABLED", budget=35),
    ]
    if order:
        rows.reverse()
    [campaign] = _build([(SP, rows)]).campaigns()
    assert campaign["status"] == "ENABLED"
    assert campaign["budget"] == 35
    assert campaign["days"] == 2
    assert campaign["id"] == "id-Brand"


def test_same_name_campaigns_stay_separate_per_ad_type():
    agg = _build([(SP, [_sp("2024-01-01", "Brand", 1, 2)]), (SB, [_sb("2024-01-01", "Brand", 3, 4)])])
    campaigns = agg.campaigns()
    assert [(c["type"], c["spend"]) for c in campaigns] == [("sb", 3), ("sp", 1)]


def test_sku_falls_back_to_asin_and_skips_unkeyed_rows():
    rows = normalize_rows("sp_advertised_product", [
        {"date": "2024-01-01", "advertisedAsin": "B000TEST", "cost": 2},
        {"date": "2024-01-01", "cost": 99},
        {"advertisedSku": "NO-DATE", "cost": 99},
    ])
    agg = _build([(SKU, rows)])
    assert [s["sku"] for s in agg.sku_summary()] == ["B000TEST"]
    assert agg.summary(1, 0)["rowCounts"] == {"sp_advertised_product": 3}


def test_summary_totals():
    agg = _build([
        (SP, [_sp("2024-01-01", "Brand", 10, 40), _sp("2024-01-02", "Brand", 30, 60)]),
        (SKU, normalize_rows("sp_advertised_product", [{"date": "2024-01-01", "advertisedSku": "A"}])),
    ])
    summary = agg.summary(reports_completed=2, reports_failed=1)
    assert summary["dateRange"] == {"start": "2024-01-01", "end": "2024-01-02"}
    assert summary["daysWithData"] == 2
    assert summary["totalSpend"] == 40
    assert summary["totalRevenue"] == 100
    assert summary["acos"] == 40
    assert summary["roas"] == 2.5
    assert summary["campaignCount"] == 1
    assert summary["skuCount"] == 1
    assert summary["totalRows"] == 3
    assert summary["reportsCompleted"] == 2
    assert summary["reportsFailed"] == 1


def test_empty_summary():
    summary = Aggregator().summary(0, 0)
    assert summary["dateRange"] == {"start": None, "end": None}
    assert summary["totalSpend"] == 0
    assert summary["acos"] == 0
