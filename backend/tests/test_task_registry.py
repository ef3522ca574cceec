"""
Tests for the task registry
"""

from unittest.mock import Mock

import pytest

from portfolio_engine.exceptions import StoreError, TaskAlreadyRunningError
from portfolio_engine.models.update_log import UpdateStatus
from portfolio_engine.schemas.indicators import IndicatorUpdateResult
from portfolio_engine.services.task_registry import TaskRegistry, build_task_registry, to_primitive


@pytest.fixture
def log_store():
    return Mock()


@pytest.fixture
def registry(log_store):
    return TaskRegistry(log_store, history_size=3)


def logged_statuses(log_store):
    return [call.args[1] for call in log_store.add_log.call_args_list]


class TestTaskRegistry:
    """Test run bookkeeping"""

    def test_run_returns_result_and_logs(self, registry, log_store):
        registry.register("double", lambda value: value * 2)

        assert registry.run("double", value=21) == 42

        assert logged_statuses(log_store) == [UpdateStatus.IN_PROGRESS, UpdateStatus.SUCCESS]
        record = registry.last_run("double")
        assert record.status == UpdateStatus.SUCCESS
        assert record.result == 42
        assert record.duration_seconds is not None

    def test_failure_is_recorded_and_raised(self, registry, log_store):
        registry.register("broken", Mock(side_effect=ValueError("bad input")))

        with pytest.raises(ValueError):
            registry.run("broken", region="USD")

        assert logged_statuses(log_store) == [UpdateStatus.IN_PROGRESS, UpdateStatus.ERROR]
        details = log_store.add_log.call_args_list[-1].args[2]
        assert details["error"] == "bad input"
        assert details["region"] == "USD"
        record = registry.last_run("broken")
        assert record.status == UpdateStatus.ERROR
        assert record.error == "bad input"
        assert not registry.is_running("broken", region="USD")

    def test_unknown_task(self, registry):
        with pytest.raises(KeyError):
            registry.run("missing")

    def test_guard_rejects_same_key(self, registry):
        def reenter(symbol, region):
            return registry.run("update", symbol=symbol, region=region)

        registry.register("update", reenter)

        with pytest.raises(TaskAlreadyRunningError):
            registry.run("update", symbol="AAPL", region="USD")
        assert not registry.is_running("update", symbol="AAPL", region="USD")

    def test_guard_allows_other_keys(self, registry):
        seen = []

        def outer(symbol, region):
            seen.append(registry.is_running("inner", symbol="MSFT", region=region))
            return registry.run("inner", symbol="MSFT", region=region)

        registry.register("outer", outer)
        registry.register("inner", lambda symbol, region: symbol)

        assert registry.run("outer", symbol="AAPL", region="USD") == "MSFT"
        assert seen == [False]

    def test_run_key(self, registry):
        registry.register("update_indicators", lambda symbol, region: None, family="indicators")

        assert registry.run_key("update_indicators", {"symbol": "RY", "region": "CAD"}) == "indicators:CAD:RY"
        assert registry.run_key("aggregate_all_holdings", {}) == "aggregate_all_holdings"

    def test_region_run_blocks_symbol_run_in_same_family(self, registry):
        outcomes = []

        def region_run(region):
            for symbol in ("AAPL", "MSFT"):
                try:
                    outcomes.append(registry.run("symbol_run", symbol=symbol, region=region))
                except TaskAlreadyRunningError as e:
                    outcomes.append(str(e))
            outcomes.append(registry.run("symbol_run", symbol="RY", region="CAD"))

        registry.register("region_run", region_run, family="indicators")
        registry.register("symbol_run", lambda symbol, region: symbol, family="indicators")

        registry.run("region_run", region="USD")

        assert outcomes[:2] == [
            "Task indicators:USD:AAPL refused, indicators:USD is already running",
            "Task indicators:USD:MSFT refused, indicators:USD is already running",
        ]
        assert outcomes[2] == "RY"

    def test_family_wide_run_blocks_every_region(self, registry):
        seen = {}

        def all_regions():
            seen["USD"] = registry.is_running("one_region", region="USD")
            seen["other_family"] = registry.is_running("other", region="USD")

        registry.register("all_regions", all_regions, family="holdings")
        registry.register("one_region", lambda region: region, family="holdings")
        registry.register("other", lambda region: region)

        registry.run("all_regions")

        assert seen == {"USD": True, "other_family": False}
        assert registry.run("one_region", region="USD") == "USD"

    def test_history_is_bounded(self, registry):
        registry.register("noop", lambda index: index)
        for index in range(5):
            registry.run("noop", index=index)

        history = registry.history()
        assert len(history) == 3
        assert [record.result for record in history] == [2, 3, 4]

    def test_log_store_failure_does_not_fail_run(self, registry, log_store):
        log_store.add_log.side_effect = StoreError("database is locked")
        registry.register("noop", lambda: "done")

        assert registry.run("noop") == "done"
        assert registry.last_run("noop").status == UpdateStatus.SUCCESS

    def test_without_log_store(self):
        registry = TaskRegistry()
        registry.register("noop", lambda: None)

        assert registry.run("noop") is None

    def test_to_primitive(self):
        result = IndicatorUpdateResult(symbol="AAPL", region="USD", records_processed=3)

        assert to_primitive({"AAPL": result}) == {
            "AAPL": {"symbol": "AAPL", "region": "USD", "records_processed": 3}
        }
        assert to_primitive([result])[0]["records_processed"] == 3


class TestBuiltRegistry:
    """Test the registry wired to SQLAlchemy stores"""

    @pytest.fixture
    def built(self, session_factory, test_settings):
        return build_task_registry(session_factory, settings=test_settings, sleep=Mock())

    def test_built_in_tasks(self, built):
        assert built.task_names == [
            "aggregate_all_holdings",
            "aggregate_holdings",
            "update_all_indicators",
            "update_indicators",
            "update_indicators_for_region",
        ]

    def test_update_indicators_end_to_end(self, built, add_prices):
        add_prices("AAPL", [100.0 + i + (i % 3) for i in range(30)])

        result = built.run("update_indicators", symbol="AAPL", region="USD")

        assert result.records_processed == 21
        logs = built.stores.update_logs.get_recent_logs()
        assert [log["status"] for log in logs] == ["Success", "In Progress"]
        assert logs[0]["type"] == "update_indicators"
        assert logs[0]["details"]["result"]["records_processed"] == 21

    def test_aggregate_holdings_end_to_end(self, built, add_position, set_cash):
        add_position("AAPL", 10, price=150.0)
        set_cash("USD", 500.0)

        rows = built.run("aggregate_holdings", region="USD")

        assert [row.symbol for row in rows] == ["CASH", "AAPL"]
        assert len(built.stores.holdings.get_holdings("USD")) == 2

    def test_failed_run_is_logged(self, built):
        with pytest.raises(Exception):
            built.run("aggregate_holdings", region="EUR")

        logs = built.stores.update_logs.get_recent_logs()
        assert logs[0]["status"] == "Error"
        assert "EUR" in logs[0]["details"]["error"]
