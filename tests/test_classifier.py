"""Unit tests for the recommendation engine."""

import pytest

from utils.classifier import (
    CSV_COLUMNS,
    KeywordMetricRecord,
    Recommendation,
    Thresholds,
    classify,
    estimate_budget,
    estimate_budget_range,
    summarize,
    to_csv,
    to_three_label,
)

BRAND_DOMINANT = KeywordMetricRecord(
    keyword="brandx shoes",
    is_brand_keyword=True,
    organic_positions=(1, 2, 3),
    advertiser_count=5,
    cpc=1.0,
    search_volume=1000,
    competition=0.5,
)
SATURATED = KeywordMetricRecord(
    keyword="running shoes",
    competition=0.8,
    cpc=2.0,
    advertiser_count=10,
    search_volume=3000,
)
NICHE = KeywordMetricRecord(
    keyword="rare niche term",
    competition=0.1,
    cpc=0.2,
    advertiser_count=1,
    search_volume=50,
)
ORGANIC_GAP = KeywordMetricRecord(
    keyword="generic term",
    competition=0.4,
    cpc=0.8,
    advertiser_count=4,
    search_volume=800,
    organic_positions=(2, 3),
)


class TestBrandPath:
    """Brand keywords never reach the generic rules."""

    def test_dominant_organic_is_no_paid(self):
        assert classify(BRAND_DOMINANT) is Recommendation.NO_PAID
        assert estimate_budget(BRAND_DOMINANT, Recommendation.NO_PAID) == 0

    def test_competitors_bidding_is_yes_paid(self):
        record = KeywordMetricRecord("brandx", is_brand_keyword=True, organic_positions=(1, 2), advertiser_count=3)
        assert classify(record) is Recommendation.YES_PAID

    def test_two_advertisers_is_test(self):
        record = KeywordMetricRecord("brandx", is_brand_keyword=True, advertiser_count=2)
        assert classify(record) is Recommendation.TEST

    def test_positions_below_top_three_do_not_count(self):
        record = KeywordMetricRecord("brandx", is_brand_keyword=True, organic_positions=(1, 2, 4, 5))
        assert classify(record) is Recommendation.TEST

    def test_brand_skips_generic_saturated_rule(self):
        record = KeywordMetricRecord(
            "brandx", is_brand_keyword=True, competition=0.9, cpc=5.0, advertiser_count=1
        )
        assert classify(record) is Recommendation.TEST


class TestGenericPath:
    def test_saturated_market(self):
        assert classify(SATURATED) is Recommendation.YES_PAID

    def test_cheap_quiet_market(self):
        assert classify(NICHE) is Recommendation.NO_PAID

    def test_high_volume_busy_market(self):
        record = KeywordMetricRecord("shoes", search_volume=6000, competition=0.6, cpc=1.0, advertiser_count=6)
        assert classify(record) is Recommendation.YES_PAID

    def test_low_volume_expensive_click(self):
        record = KeywordMetricRecord("lawyer x", search_volume=100, competition=0.5, cpc=3.0, advertiser_count=4)
        assert classify(record) is Recommendation.NO_PAID

    def test_organic_opportunity(self):
        assert classify(ORGANIC_GAP) is Recommendation.OPPORTUNITY

    def test_default_is_test(self):
        record = KeywordMetricRecord("something", search_volume=1000, competition=0.5, cpc=1.0, advertiser_count=4)
        assert classify(record) is Recommendation.TEST

    def test_all_zero_metrics(self):
        assert classify(KeywordMetricRecord("empty")) is Recommendation.NO_PAID

    def test_earlier_rule_wins(self):
        # matches both the saturated rule and the organic opportunity rule
        record = KeywordMetricRecord(
            "x", competition=0.8, cpc=2.0, advertiser_count=10, organic_positions=(1, 2)
        )
        assert classify(record) is Recommendation.YES_PAID


class TestBoundaries:
    """Comparisons are strict: exact threshold values fall through."""

    def test_competition_exactly_high_threshold(self):
        record = KeywordMetricRecord("x", competition=0.7, cpc=2.0, advertiser_count=10, search_volume=1000)
        assert classify(record) is Recommendation.TEST

    def test_cpc_exactly_high_threshold(self):
        record = KeywordMetricRecord("x", competition=0.8, cpc=1.5, advertiser_count=10, search_volume=1000)
        assert classify(record) is Recommendation.TEST

    def test_advertisers_exactly_saturated_threshold(self):
        record = KeywordMetricRecord("x", competition=0.8, cpc=2.0, advertiser_count=8, search_volume=1000)
        assert classify(record) is Recommendation.TEST

    def test_competition_exactly_low_threshold(self):
        record = KeywordMetricRecord("x", competition=0.3, cpc=0.1, advertiser_count=1, search_volume=1000)
        assert classify(record) is Recommendation.TEST

    def test_volume_exactly_low_threshold(self):
        record = KeywordMetricRecord("x", search_volume=500, competition=0.5, cpc=3.0, advertiser_count=4)
        assert classify(record) is Recommendation.TEST

    def test_brand_exactly_two_top_positions(self):
        record = KeywordMetricRecord("brandx", is_brand_keyword=True, organic_positions=(3, 3))
        assert classify(record) is Recommendation.TEST

    def test_position_three_counts_as_top(self):
        record = KeywordMetricRecord("x", search_volume=1000, competition=0.5, cpc=1.0, advertiser_count=4,
                                     organic_positions=(3, 3))
        assert classify(record) is Recommendation.OPPORTUNITY


class TestThresholdOverride:
    def test_looser_saturation_threshold(self):
        record = KeywordMetricRecord("x", competition=0.65, cpc=1.2, advertiser_count=6, search_volume=1000)
        loose = Thresholds(high_competition=0.6, high_cpc=1.0, min_advertisers_saturated=5)
        assert classify(record) is Recommendation.TEST
        assert classify(record, loose) is Recommendation.YES_PAID


class TestThreeLabel:
    def test_opportunity_collapses_to_test(self):
        assert to_three_label(Recommendation.OPPORTUNITY) is Recommendation.TEST

    @pytest.mark.parametrize("rec", [Recommendation.YES_PAID, Recommendation.NO_PAID, Recommendation.TEST])
    def test_other_labels_unchanged(self, rec):
        assert to_three_label(rec) is rec


class TestEstimateBudget:
    def test_saturated_budget(self):
        assert estimate_budget(SATURATED, Recommendation.YES_PAID) == 120

    def test_rounds_to_nearest_unit(self):
        assert estimate_budget(ORGANIC_GAP, Recommendation.OPPORTUNITY) == 13

    def test_half_rounds_up(self):
        record = KeywordMetricRecord("x", search_volume=125, cpc=1.0)
        assert estimate_budget(record, Recommendation.TEST) == 3

    @pytest.mark.parametrize("record", [BRAND_DOMINANT, SATURATED, NICHE, ORGANIC_GAP])
    def test_no_paid_is_always_zero(self, record):
        assert estimate_budget(record, Recommendation.NO_PAID) == 0

    def test_custom_ctr(self):
        assert estimate_budget(SATURATED, Recommendation.YES_PAID, ctr=0.05) == 300

    def test_zero_metrics(self):
        assert estimate_budget(KeywordMetricRecord("x"), Recommendation.TEST) == 0

    def test_range(self):
        assert estimate_budget_range(SATURATED, Recommendation.YES_PAID) == (84, 156)

    def test_range_no_paid(self):
        assert estimate_budget_range(SATURATED, Recommendation.NO_PAID) == (0, 0)


class TestSummarize:
    def test_scenario_batch(self):
        records = [BRAND_DOMINANT, SATURATED, NICHE, ORGANIC_GAP]
        result = summarize(records)

        assert [c.recommendation for c in result.classified] == [
            Recommendation.NO_PAID,
            Recommendation.YES_PAID,
            Recommendation.NO_PAID,
            Recommendation.OPPORTUNITY,
        ]
        assert [c.estimated_monthly_budget for c in result.classified] == [0, 120, 0, 13]
        assert result.summary.count(Recommendation.YES_PAID) == 1
        assert result.summary.count(Recommendation.NO_PAID) == 2
        assert result.summary.count(Recommendation.TEST) == 0
        assert result.summary.count(Recommendation.OPPORTUNITY) == 1
        assert result.summary.total_budget == 133

    def test_counts_sum_to_batch_size(self):
        records = [BRAND_DOMINANT, SATURATED, NICHE, ORGANIC_GAP, KeywordMetricRecord("x")]
        result = summarize(records)
        assert result.summary.total == len(records)

    def test_order_preserved(self):
        records = [ORGANIC_GAP, NICHE, SATURATED, BRAND_DOMINANT]
        result = summarize(records)
        assert [c.keyword for c in result.classified] == [r.keyword for r in records]

    def test_idempotent(self):
        records = [BRAND_DOMINANT, SATURATED, NICHE, ORGANIC_GAP]
        assert summarize(records) == summarize(records)

    def test_empty_batch(self):
        result = summarize([])
        assert result.classified == []
        assert result.summary.total == 0
        assert result.summary.total_budget == 0

    def test_accepts_generator(self):
        result = summarize(r for r in [SATURATED, NICHE])
        assert result.summary.total == 2

    def test_to_dict(self):
        d = summarize([SATURATED, NICHE]).summary.to_dict()
        assert d == {
            "total": 2,
            "yes_paid": 1,
            "no_paid": 1,
            "test": 0,
            "opportunity": 0,
            "total_budget": 120,
        }


class TestToCsv:
    def test_header_and_rows(self):
        csv_text = to_csv(summarize([SATURATED, ORGANIC_GAP]).classified)
        lines = csv_text.strip().split("\n")

        assert lines[0] == ",".join(CSV_COLUMNS)
        assert lines[0] == "Keyword,Advertisers,CPC,Competition,Volume,Recommendation,Budget"
        assert lines[1] == "running shoes,10,2.00,80%,3000,YES_PAID,120.00"
        assert lines[2] == "generic term,4,0.80,40%,800,OPPORTUNITY,13.00"

    def test_competition_rounded_percentage(self):
        record = KeywordMetricRecord("x", competition=0.706)
        line = to_csv(summarize([record]).classified).strip().split("\n")[1]
        assert ",71%," in line

    def test_keyword_with_comma_is_quoted(self):
        record = KeywordMetricRecord("shoes, red")
        line = to_csv(summarize([record]).classified).strip().split("\n")[1]
        assert line.startswith('"shoes, red",')

    def test_empty_list_has_header_only(self):
        assert to_csv([]).strip() == ",".join(CSV_COLUMNS)
