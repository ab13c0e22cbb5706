"""
Report Catalog — The eight Amazon Ads v3 report types synced for a profile.
Order matters: reports are submitted in catalog order.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReportSpec:
    key: str
    label: str
    ad_type: str            # sp | sb | sd
    ad_product: str
    report_type_id: str
    group_by: tuple
    columns: tuple
    attribution_window: int
    # Campaign-level rows feed the daily totals and campaign rollups
    campaign_level: bool = False
    time_unit: str = "DAILY"

    def configuration(self, columns=None) -> dict:
        return {
            "adProduct": self.ad_product,
            "reportTypeId": self.report_type_id,
            "timeUnit": self.time_unit,
            "format": "GZIP_JSON",
            "groupBy": list(self.group_by),
            "columns": list(columns if columns is not None else self.columns),
        }


SPONSORED_PRODUCTS = "SPONSORED_PRODUCTS"
SPONSORED_BRANDS = "SPONSORED_BRANDS"
SPONSORED_DISPLAY = "SPONSORED_DISPLAY"

AD_TYPE_LABELS = {
    "sp": "Sponsored Products",
    "sb": "Sponsored Brands",
    "sd": "Sponsored Display",
}

REPORT_SPECS: tuple[ReportSpec, ...] = (
    ReportSpec(
        key="sp_campaigns",
        label="SP Campaigns",
        ad_type="sp",
        ad_product=SPONSORED_PRODUCTS,
        report_type_id="spCampaigns",
        group_by=("campaign",),
        columns=(
            "date", "campaignName", "campaignId", "campaignStatus",
            "campaignBudgetAmount", "campaignBudgetType",
            "impressions", "clicks", "cost", "purchases7d", "sales7d",
            "unitsSoldClicks7d", "costPerClick", "clickThroughRate",
        ),
        attribution_window=7,
        campaign_level=True,
    ),
    ReportSpec(
        key="sp_advertised_product",
        label="SP Advertised Product",
        ad_type="sp",
        ad_product=SPONSORED_PRODUCTS,
        report_type_id="spAdvertisedProduct",
        group_by=("advertiser",),
        columns=(
            "date", "campaignName", "campaignId", "adGroupName", "adGroupId",
            "advertisedAsin", "advertisedSku", "impressions", "clicks", "cost",
            "purchases7d", "sales7d", "unitsSoldClicks7d",
            "costPerClick", "clickThroughRate",
        ),
        attribution_window=7,
    ),
    ReportSpec(
        key="sp_search_terms",
        label="SP Search Terms",
        ad_type="sp",
        ad_product=SPONSORED_PRODUCTS,
        report_type_id="spSearchTerm",
        group_by=("searchTerm",),
        columns=(
            "date", "campaignName", "campaignId", "adGroupName", "adGroupId",
            "searchTerm", "targeting", "matchType", "impressions", "clicks",
            "cost", "purchases7d", "sales7d", "unitsSoldClicks7d",
        ),
        attribution_window=7,
    ),
    ReportSpec(
        key="sp_targeting",
        label="SP Targeting",
        ad_type="sp",
        ad_product=SPONSORED_PRODUCTS,
        report_type_id="spTargeting",
        group_by=("targeting",),
        columns=(
            "date", "campaignName", "campaignId", "adGroupName", "adGroupId",
            "targeting", "keywordType", "matchType", "topOfSearchImpressionShare",
            "impressions", "clicks", "cost", "purchases7d", "sales7d",
            "unitsSoldClicks7d",
        ),
        attribution_window=7,
    ),
    ReportSpec(
        key="sp_placement",
        label="SP Placement",
        ad_type="sp",
        ad_product=SPONSORED_PRODUCTS,
        report_type_id="spCampaigns",
        group_by=("campaign", "campaignPlacement"),
        columns=(
            "date", "campaignName", "campaignId", "placementClassification",
            "campaignBiddingStrategy", "impressions", "clicks", "cost",
            "purchases7d", "sales7d", "unitsSoldClicks7d",
        ),
        attribution_window=7,
    ),
    ReportSpec(
        key="sb_campaign_placement",
        label="SB Campaign Placement",
        ad_type="sb",
        ad_product=SPONSORED_BRANDS,
        report_type_id="sbCampaignPlacement",
        group_by=("campaignPlacement",),
        columns=(
            "date", "campaignName", "campaignId", "campaignStatus",
            "campaignBudgetAmount", "placementClassification", "costType",
            "impressions", "viewableImpressions", "clicks", "cost",
            "purchases14d", "sales14d", "unitsSold14d",
        ),
        attribution_window=14,
        campaign_level=True,
    ),
    ReportSpec(
        key="sb_search_terms",
        label="SB Search Terms",
        ad_type="sb",
        ad_product=SPONSORED_BRANDS,
        report_type_id="sbSearchTerm",
        group_by=("searchTerm",),
        columns=(
            "date", "campaignName", "campaignId", "adGroupName", "adGroupId",
            "searchTerm", "keywordText", "matchType", "costType",
            "impressions", "clicks", "cost", "purchases14d", "sales14d", "unitsSold14d",
        ),
        attribution_window=14,
    ),
    ReportSpec(
        key="sd_campaign",
        label="SD Campaign",
        ad_type="sd",
        ad_product=SPONSORED_DISPLAY,
        report_type_id="sdCampaigns",
        group_by=("campaign",),
        columns=(
            "date", "campaignName", "campaignId", "campaignStatus",
            "campaignBudgetAmount", "costType", "impressions", "clicks", "cost",
            "purchases14d", "sales14d", "unitsSold14d", "dpv14d",
        ),
        attribution_window=14,
        campaign_level=True,
    ),
)

_SPECS_BY_KEY = {spec.key: spec for spec in REPORT_SPECS}


def get_spec(key: str) -> ReportSpec:
    """Look up a report spec by key. Raises KeyError for unknown keys."""
    return _SPECS_BY_KEY[key]
