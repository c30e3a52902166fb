"""Tests for platform analytics assembly and serialisation."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from platform_analytics.analyses.platform import assemble_platform_analytics
from platform_analytics.foundation.counters import GroupedCount, RawCounters
from platform_analytics.foundation.periods import resolve_period_pair

NOW = datetime(2024, 6, 15, tzinfo=timezone.utc)

EXPECTED_FIELDS = {
    "period",
    "periodStart",
    "periodEnd",
    "totalOrgs",
    "activeOrgs",
    "newOrgsThisPeriod",
    "churnedOrgs",
    "totalUsers",
    "activeUsers",
    "newUsersThisPeriod",
    "dauMau",
    "totalAgentRuns",
    "totalTokens",
    "totalApiCalls",
    "avgSessionDuration",
    "mrr",
    "arr",
    "arpu",
    "ltv",
    "churnRate",
    "netRevenueRetention",
    "orgGrowthRate",
    "userGrowthRate",
    "revenueGrowthRate",
    "orgsByPlan",
    "orgsByIndustry",
    "topFeatures",
}


@pytest.fixture
def analytics():
    """Analytics for a 30-day period with realistic counters."""
    return assemble_platform_analytics(
        resolve_period_pair("30d", now=NOW),
        RawCounters(
            total_orgs=150,
            active_orgs=80,
            new_orgs=30,
            churn_rate=Decimal("0.02"),
            total_users=900,
            active_users=120,
            new_users=60,
            total_agent_runs=5000,
            total_tokens=None,
            total_api_calls=4200,
            avg_session_duration=Decimal("17.25"),
            mrr=Decimal("150000"),
        ),
        RawCounters(new_orgs=20, new_users=60, mrr=Decimal("120000")),
        plan_rows=[GroupedCount("STARTER", 100), GroupedCount("ENTERPRISE", 50)],
        industry_rows=[GroupedCount(None, 5), GroupedCount("Tech", 40)],
    )


class TestAssemblePlatformAnalytics:
    """Test the assembled result."""

    def test_breakdowns(self, analytics):
        assert analytics.orgs_by_plan == {"STARTER": 100, "ENTERPRISE": 50}
        assert analytics.orgs_by_industry == {"Tech": 40}

    def test_blank_labels(self):
        """A blank industry is unrecorded; a blank plan tier is still reported."""
        result = assemble_platform_analytics(
            resolve_period_pair("30d", now=NOW),
            RawCounters(),
            RawCounters(),
            plan_rows=[GroupedCount("", 2), GroupedCount("STARTER", 1)],
            industry_rows=[GroupedCount("", 2), GroupedCount("Tech", 1)],
        )
        assert result.orgs_by_plan == {"": 2, "STARTER": 1}
        assert result.orgs_by_industry == {"Tech": 1}

    def test_growth_rate_uses_double_precision(self):
        result = assemble_platform_analytics(
            resolve_period_pair("30d", now=NOW),
            RawCounters(new_orgs=4),
            RawCounters(new_orgs=3),
        )
        assert result.as_dict()["orgGrowthRate"] == 33.33333333333333

    def test_top_features(self, analytics):
        usage = {f.name: f.usage for f in analytics.top_features}
        assert usage == {
            "AI Agent Runs": 5000,
            "Dashboard Views": 2250,
            "Report Generation": 1200,
            "Data Source Connections": 450,
            "API Calls": 15000,
        }

    def test_empty_breakdowns(self):
        result = assemble_platform_analytics(
            resolve_period_pair("7d", now=NOW), RawCounters(), RawCounters()
        )
        assert result.orgs_by_plan == {}
        assert result.orgs_by_industry == {}
        assert len(result.top_features) == 5


class TestAsDict:
    """Test the response record."""

    def test_every_field_present(self, analytics):
        """All fields are present, even when zero."""
        assert set(analytics.as_dict()) == EXPECTED_FIELDS

    def test_zero_result_has_every_field(self):
        result = assemble_platform_analytics(
            resolve_period_pair(None, now=NOW), RawCounters(), RawCounters()
        )
        payload = result.as_dict()
        assert set(payload) == EXPECTED_FIELDS
        assert payload["totalTokens"] == 0
        assert payload["orgGrowthRate"] == 0

    def test_values(self, analytics):
        payload = analytics.as_dict()

        assert payload["period"] == "30d"
        assert payload["periodEnd"] == NOW.isoformat()
        assert payload["arpu"] == 1000
        assert payload["ltv"] == 24000
        assert payload["arr"] == 1800000
        assert payload["mrr"] == 150000
        assert payload["dauMau"] == 40
        assert payload["churnedOrgs"] == 3
        assert payload["churnRate"] == 2
        assert payload["totalTokens"] == 0
        assert payload["avgSessionDuration"] == 17.25
        assert payload["orgGrowthRate"] == 50
        assert payload["userGrowthRate"] == 0
        assert payload["revenueGrowthRate"] == 25
        assert payload["netRevenueRetention"] == 125
        assert payload["orgsByIndustry"] == {"Tech": 40}

    def test_json_serialisable(self, analytics):
        """The record can be dumped without a custom encoder."""
        decoded = json.loads(json.dumps(analytics.as_dict()))
        assert decoded["topFeatures"][0] == {"name": "AI Agent Runs", "usage": 5000}
