"""Tests for the platform analytics command line tools."""

import json

import pytest

from platform_analytics.cli import platform_analytics_cli, run_report_cli

TABLES = {
    "organizations": [
        {"id": "o1", "plan_tier": "ENTERPRISE", "industry": "Tech", "created_at": "2024-01-10T00:00:00Z"},
        {"id": "o2", "plan_tier": "PROFESSIONAL", "industry": "Retail", "created_at": "2024-06-01T00:00:00Z"},
    ],
    "users": [{"id": "u1", "created_at": "2024-01-10T00:00:00Z"}],
    "agent_runs": [{"organization_id": "o2", "started_at": "2024-06-02T00:00:00Z"}],
    "subscriptions": [
        {"organization_id": "o1", "amount": 49900, "status": "active", "started_at": "2024-01-10T00:00:00Z", "cancelled_at": None}
    ],
    "audit_logs": [{"action": "login", "timestamp": "2024-06-03T00:00:00Z"}],
}


@pytest.fixture
def tables_file(tmp_path, monkeypatch):
    """Write the tables to a file and run from its directory."""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "tables.json"
    path.write_text(json.dumps(TABLES))
    return path


class TestPlatformAnalyticsCLI:
    """Test the platform-analytics command."""

    def test_prints_json_to_stdout(self, tables_file, capsys):
        exit_code = platform_analytics_cli(
            [str(tables_file), "--period", "30d", "--now", "2024-06-15T00:00:00Z"]
        )

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["data"]["totalOrgs"] == 2
        assert payload["data"]["newOrgsThisPeriod"] == 1
        assert payload["data"]["mrr"] == 49900
        assert payload["data"]["orgsByPlan"] == {"ENTERPRISE": 1, "PROFESSIONAL": 1}

    def test_writes_markdown(self, tables_file):
        exit_code = platform_analytics_cli(
            [
                str(tables_file),
                "--now",
                "2024-06-15T00:00:00Z",
                "--output",
                "report.md",
                "--format",
                "markdown",
            ]
        )

        assert exit_code == 0
        assert (tables_file.parent / "report.md").read_text().startswith(
            "# Platform Analytics Report"
        )

    def test_writes_json(self, tables_file):
        exit_code = platform_analytics_cli(
            [str(tables_file), "--now", "2024-06-15T00:00:00Z", "--output", "out/analytics.json"]
        )

        assert exit_code == 0
        data = json.loads((tables_file.parent / "out" / "analytics.json").read_text())
        assert data["data"]["period"] == "30d"

    def test_rejects_output_outside_cwd(self, tables_file, tmp_path):
        outside = tmp_path.parent / "elsewhere.json"
        with pytest.raises(ValueError, match="must reside within"):
            platform_analytics_cli([str(tables_file), "--output", str(outside)])

    def test_rejects_oversized_input(self, tables_file, monkeypatch):
        monkeypatch.setattr("platform_analytics.cli.MAX_INPUT_BYTES", 10)
        with pytest.raises(ValueError, match="exceeds limit"):
            platform_analytics_cli([str(tables_file)])


class TestRunReportCLI:
    """Test the platform-analytics-report command."""

    def test_revenue_report(self, tables_file, capsys):
        exit_code = run_report_cli([str(tables_file), "--type", "REVENUE"])

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["result"]["metrics"]["revenueByPlan"] == {
            "ENTERPRISE": 49900,
            "PROFESSIONAL": 9900,
        }
        assert payload["result"]["recordCount"] == 2

    def test_writes_report_file(self, tables_file):
        exit_code = run_report_cli(
            [str(tables_file), "--type", "USER_ACTIVITY", "--days", "7", "--output", "report.json"]
        )

        assert exit_code == 0
        payload = json.loads((tables_file.parent / "report.json").read_text())
        assert payload["result"]["period"] == "7 days"

    def test_unknown_type_rejected(self, tables_file):
        with pytest.raises(SystemExit):
            run_report_cli([str(tables_file), "--type", "SECURITY"])
