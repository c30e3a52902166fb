"""
Integration tests for the platform analytics MCP tools.

Tests data loading, the analytics tool, snapshots, custom reports and the
health check through their implementation functions.
"""

import json

import pytest
from fastmcp.exceptions import ToolError
from pybreaker import CircuitBreaker, CircuitBreakerError

# Import the MCP tool implementations (not the wrapped versions)
from analytics.services.mcp_server.config import ServerConfig
from analytics.services.mcp_server.resilience import (
    BreakerGuardedStore,
    data_store_breaker,
    reset_all_circuit_breakers,
)
from analytics.services.mcp_server.state import (
    DATA_STORE_KEY,
    LATEST_ANALYTICS_KEY,
    get_shared_state,
)
from analytics.services.mcp_server.tools.data_loader import (
    LoadPlatformDataRequest,
    _load_platform_data_impl,
    install_data_store,
)
from analytics.services.mcp_server.tools.health_check import _health_check_impl
from analytics.services.mcp_server.tools.platform_analytics import (
    PlatformAnalyticsRequest,
    _get_platform_analytics_impl,
)
from analytics.services.mcp_server.tools.reports import (
    RunReportRequest,
    _run_custom_report_impl,
)
from analytics.services.mcp_server.tools.snapshots import (
    CompareSnapshotsRequest,
    CreateSnapshotRequest,
    ListSnapshotsRequest,
    _compare_snapshots_impl,
    _create_snapshot_impl,
    _list_snapshots_impl,
)
from platform_analytics.pandas.store import DataFrameDataStore

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


class MockContext:
    """Mock FastMCP Context for testing."""

    def __init__(self):
        self.messages = []
        self.progress_reports = []

    async def info(self, message: str):
        """Log info message."""
        self.messages.append(message)

    async def report_progress(self, progress: float, message: str = ""):
        """Report progress."""
        self.progress_reports.append((progress, message))


class FlakyDataStore:
    """Delegates to a real store after failing the first plan read."""

    def __init__(self, store, error):
        self.store = store
        self.error = error
        self.plan_calls = 0

    async def fetch_counters(self, window):
        return await self.store.fetch_counters(window)

    async def fetch_orgs_by_plan(self):
        self.plan_calls += 1
        if self.plan_calls == 1:
            raise self.error
        return await self.store.fetch_orgs_by_plan()

    async def fetch_orgs_by_industry(self):
        return await self.store.fetch_orgs_by_industry()

    async def fetch_active_sessions(self, at):
        return await self.store.fetch_active_sessions(at)

    async def fetch_top_actions(self, window, limit=10):
        return await self.store.fetch_top_actions(window, limit)


class BrokenPlanStore(DataFrameDataStore):
    def compute_orgs_by_plan(self):
        raise OSError("disk unavailable")


@pytest.fixture
def mock_context():
    return MockContext()


@pytest.fixture(autouse=True)
def clean_state():
    """Reset shared state and circuit breakers around each test."""
    get_shared_state().clear()
    reset_all_circuit_breakers()
    yield
    get_shared_state().clear()
    reset_all_circuit_breakers()


@pytest.fixture
def data_store():
    store = DataFrameDataStore.from_records(TABLES)
    install_data_store(store, "memory")
    return store


class TestLoadPlatformData:
    """Test the data loading tool."""

    @pytest.mark.asyncio
    async def test_loads_file(self, tmp_path, monkeypatch, mock_context):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "platform_data.json").write_text(json.dumps(TABLES))

        response = await _load_platform_data_impl(LoadPlatformDataRequest(), mock_context)

        assert response.row_counts["organizations"] == 2
        assert response.row_counts["audit_logs"] == 1
        assert isinstance(get_shared_state().get(DATA_STORE_KEY), BreakerGuardedStore)
        assert "Loading platform data" in mock_context.messages[0]

    @pytest.mark.asyncio
    async def test_rejects_path_outside_cwd(self, tmp_path, monkeypatch, mock_context):
        workdir = tmp_path / "work"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        (tmp_path / "secret.json").write_text("{}")

        with pytest.raises(ValueError, match="outside allowed directory"):
            await _load_platform_data_impl(
                LoadPlatformDataRequest(file_path="../secret.json"), mock_context
            )

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path, monkeypatch, mock_context):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(FileNotFoundError):
            await _load_platform_data_impl(
                LoadPlatformDataRequest(file_path="missing.json"), mock_context
            )


class TestGetPlatformAnalytics:
    """Test the platform analytics tool."""

    @pytest.mark.asyncio
    async def test_requires_data(self, mock_context):
        with pytest.raises(ValueError, match="No platform data loaded"):
            await _get_platform_analytics_impl(PlatformAnalyticsRequest(), mock_context)

    @pytest.mark.asyncio
    async def test_computes_analytics(self, data_store, mock_context):
        request = PlatformAnalyticsRequest(period="30d", now="2024-06-15T00:00:00Z")

        response = await _get_platform_analytics_impl(request, mock_context)

        assert response.data["totalOrgs"] == 2
        assert response.data["newOrgsThisPeriod"] == 1
        assert response.data["mrr"] == 49900
        assert response.data["orgsByPlan"] == {"ENTERPRISE": 1, "PROFESSIONAL": 1}
        assert response.summary["period"] == "30d"
        assert get_shared_state().has(LATEST_ANALYTICS_KEY)
        assert mock_context.progress_reports

    @pytest.mark.asyncio
    async def test_default_period_from_environment(
        self, data_store, mock_context, monkeypatch
    ):
        monkeypatch.setenv("ANALYTICS_DEFAULT_PERIOD", "7d")

        response = await _get_platform_analytics_impl(
            PlatformAnalyticsRequest(now="2024-06-15T00:00:00Z"), mock_context
        )

        assert response.data["period"] == "7d"

    @pytest.mark.asyncio
    async def test_invalid_now(self, data_store, mock_context):
        with pytest.raises(ValueError, match="Invalid 'now' timestamp"):
            await _get_platform_analytics_impl(
                PlatformAnalyticsRequest(now="yesterday"), mock_context
            )

    @pytest.mark.asyncio
    async def test_failure_surfaces_generic_tool_error(self, mock_context):
        store = FlakyDataStore(DataFrameDataStore.from_records(TABLES), ValueError("bad row"))
        get_shared_state().set(DATA_STORE_KEY, store)

        with pytest.raises(ToolError, match="Failed to fetch analytics"):
            await _get_platform_analytics_impl(PlatformAnalyticsRequest(), mock_context)

        # Non-transient errors are not retried
        assert store.plan_calls == 1
        assert not get_shared_state().has(LATEST_ANALYTICS_KEY)

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, mock_context):
        store = FlakyDataStore(
            DataFrameDataStore.from_records(TABLES), ConnectionError("replica down")
        )
        get_shared_state().set(DATA_STORE_KEY, store)

        response = await _get_platform_analytics_impl(
            PlatformAnalyticsRequest(now="2024-06-15T00:00:00Z"), mock_context
        )

        assert store.plan_calls == 2
        assert response.data["totalOrgs"] == 2


class TestSnapshots:
    """Test snapshot creation, listing and comparison."""

    @pytest.mark.asyncio
    async def test_create_snapshot(self, data_store, mock_context):
        response = await _create_snapshot_impl(
            CreateSnapshotRequest(date="2024-06-15T00:00:00Z"), mock_context
        )

        assert response.snapshot["type"] == "DAILY"
        assert response.snapshot["metrics"]["totalOrgs"] == 2
        assert "orgsByPlan" in response.snapshot["breakdown"]
        assert "orgsByPlan" not in response.snapshot["metrics"]

    @pytest.mark.asyncio
    async def test_duplicate_snapshot_rejected(self, data_store, mock_context):
        request = CreateSnapshotRequest(date="2024-06-15T00:00:00Z")
        await _create_snapshot_impl(request, mock_context)

        with pytest.raises(ValueError, match="already exists"):
            await _create_snapshot_impl(
                CreateSnapshotRequest(date="2024-06-15T18:00:00Z"), mock_context
            )

    @pytest.mark.asyncio
    async def test_same_date_different_type_allowed(self, data_store, mock_context):
        await _create_snapshot_impl(
            CreateSnapshotRequest(date="2024-06-15T00:00:00Z"), mock_context
        )
        response = await _create_snapshot_impl(
            CreateSnapshotRequest(snapshot_type="WEEKLY", date="2024-06-15T00:00:00Z"),
            mock_context,
        )

        assert response.snapshot["type"] == "WEEKLY"

    @pytest.mark.asyncio
    async def test_list_snapshots(self, data_store, mock_context):
        for day in ("2024-06-10", "2024-06-12", "2024-06-14"):
            await _create_snapshot_impl(
                CreateSnapshotRequest(date=f"{day}T00:00:00Z"), mock_context
            )

        response = await _list_snapshots_impl(
            ListSnapshotsRequest(
                start="2024-06-01T00:00:00Z", end="2024-06-30T00:00:00Z", limit=2
            ),
            mock_context,
        )

        assert [s["date"][:10] for s in response.snapshots] == ["2024-06-14", "2024-06-12"]
        assert response.pagination == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}

    @pytest.mark.asyncio
    async def test_compare_snapshots(self, data_store, mock_context):
        previous = await _create_snapshot_impl(
            CreateSnapshotRequest(date="2024-05-15T00:00:00Z"), mock_context
        )
        current = await _create_snapshot_impl(
            CreateSnapshotRequest(date="2024-06-15T00:00:00Z"), mock_context
        )

        response = await _compare_snapshots_impl(
            CompareSnapshotsRequest(
                current_id=current.snapshot["id"], previous_id=previous.snapshot["id"]
            ),
            mock_context,
        )

        # o2 is created between the two snapshot dates
        assert response.changes["totalOrgs"] == 100.0
        assert response.changes["mrr"] == 0.0
        assert response.uptrend["totalOrgs"] is True

    @pytest.mark.asyncio
    async def test_compare_unknown_snapshot(self, mock_context):
        with pytest.raises(ValueError, match="Snapshots not found"):
            await _compare_snapshots_impl(
                CompareSnapshotsRequest(current_id="a", previous_id="b"), mock_context
            )


class TestRunCustomReport:
    """Test the custom report tool."""

    @pytest.mark.asyncio
    async def test_revenue_report(self, data_store, mock_context):
        response = await _run_custom_report_impl(
            RunReportRequest(report_type="REVENUE"), mock_context
        )

        assert response.success is True
        assert response.result["metrics"]["revenueByPlan"] == {
            "ENTERPRISE": 49900,
            "PROFESSIONAL": 9900,
        }
        assert response.next_run_at is None

    @pytest.mark.asyncio
    async def test_scheduled_report_has_next_run(self, data_store, mock_context):
        response = await _run_custom_report_impl(
            RunReportRequest(report_type="USER_ACTIVITY", days=7, schedule="daily"),
            mock_context,
        )

        assert response.result["period"] == "7 days"
        assert response.next_run_at is not None
        assert response.next_run_at.endswith("T00:00:00+00:00")

    @pytest.mark.asyncio
    async def test_custom_sql_not_executed(self, data_store, mock_context):
        response = await _run_custom_report_impl(
            RunReportRequest(report_type="CUSTOM_SQL"), mock_context
        )

        assert response.result["message"] == "Custom SQL reports require manual execution"


class TestHealthCheck:
    """Test the health check tool."""

    @pytest.mark.asyncio
    async def test_healthy_without_data(self, mock_context):
        response = await _health_check_impl(mock_context)

        assert response.status == "healthy"
        assert response.data_status["data_store"] is False
        assert "no data loaded" in response.checks["platform_data"]
        assert response.circuit_breakers["data_store"]["state"] == "closed"

    @pytest.mark.asyncio
    async def test_reports_loaded_data(self, data_store, mock_context):
        response = await _health_check_impl(mock_context)

        assert response.data_status["data_store"] is True
        assert response.checks["platform_data"] == "loaded from memory"

    @pytest.mark.asyncio
    async def test_degraded_when_breaker_open(self, mock_context):
        data_store_breaker.open()

        response = await _health_check_impl(mock_context)

        assert response.status == "degraded"
        assert "data_store" in response.checks["circuit_breakers"]


class TestBreakerGuardedStore:
    """Test circuit breaker protection of data store reads."""

    @pytest.mark.asyncio
    async def test_delegates_reads(self):
        store = DataFrameDataStore.from_records(TABLES)
        guarded = BreakerGuardedStore(store, CircuitBreaker(fail_max=3, reset_timeout=60))

        assert await guarded.fetch_orgs_by_plan() == store.compute_orgs_by_plan()

    @pytest.mark.asyncio
    async def test_breaker_opens_on_failure(self):
        breaker = CircuitBreaker(fail_max=1, reset_timeout=60)
        guarded = BreakerGuardedStore(BrokenPlanStore.from_records(TABLES), breaker)

        with pytest.raises(CircuitBreakerError):
            await guarded.fetch_orgs_by_plan()

        assert breaker.current_state == "open"

        # Open breaker rejects without calling the store
        with pytest.raises(CircuitBreakerError):
            await guarded.fetch_orgs_by_plan()


class TestServerConfig:
    """Test environment configuration."""

    def test_defaults(self):
        config = ServerConfig.from_env({})

        assert config.otlp_endpoint is None
        assert config.environment == "development"
        assert config.metrics_port == 8000
        assert config.default_period == "30d"

    def test_from_environment(self):
        config = ServerConfig.from_env(
            {
                "OTLP_ENDPOINT": "localhost:4317",
                "ENVIRONMENT": "production",
                "SAMPLING_RATE": "0.25",
                "PROMETHEUS_METRICS_PORT": "9100",
                "PLATFORM_DATA_PATH": "tables.json",
                "ANALYTICS_DEFAULT_PERIOD": "90d",
            }
        )

        assert config.otlp_endpoint == "localhost:4317"
        assert config.sampling_rate == 0.25
        assert config.metrics_port == 9100
        assert config.data_path == "tables.json"
        assert config.default_period == "90d"

    def test_invalid_sampling_rate(self):
        with pytest.raises(ValueError, match="sampling_rate"):
            ServerConfig.from_env({"SAMPLING_RATE": "1.5"})
