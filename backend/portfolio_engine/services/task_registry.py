"""
Task Registry

Explicit owner of the engine's background work: named tasks, the
"already running" guard, run history and the persistent update log.
Built once per process from a session factory.
"""

from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple
from collections import deque
from datetime import datetime
from functools import lru_cache
import logging
import threading
import time

from pydantic import BaseModel
from sqlalchemy.orm import sessionmaker

from portfolio_engine.config import Settings, get_settings
from portfolio_engine.database.connection import get_session_factory
from portfolio_engine.exceptions import TaskAlreadyRunningError
from portfolio_engine.models.update_log import UpdateStatus
from portfolio_engine.schemas.tasks import TaskRunRecord
from portfolio_engine.services.benchmark_service import BenchmarkWeightResolver
from portfolio_engine.services.holdings_service import HoldingsService
from portfolio_engine.services.indicator_service import IndicatorService
from portfolio_engine.stores.interfaces import UpdateLogStore
from portfolio_engine.stores.sqlalchemy_stores import SQLStores


logger = logging.getLogger(__name__)

KEY_ARGUMENTS = ("region", "symbol")


def to_primitive(value: Any) -> Any:
    """Convert task results into JSON-friendly structures."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {key: to_primitive(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_primitive(item) for item in value]
    return value


class TaskRegistry:
    """
    Named tasks with an in-flight guard and run history

    Tasks registered under the same family share one guard. A run is scoped
    by (family, region, symbol) and is refused while an overlapping scope is
    in flight: a region-wide indicator run blocks single-symbol runs in that
    region, and a run with no region blocks the whole family.
    """

    def __init__(self, update_log_store: Optional[UpdateLogStore] = None, history_size: int = 200):
        self.update_log_store = update_log_store
        self._tasks: Dict[str, Callable[..., Any]] = {}
        self._families: Dict[str, str] = {}
        self._running: Set[Tuple[str, ...]] = set()
        self._history: Deque[TaskRunRecord] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def register(self, name: str, func: Callable[..., Any], family: Optional[str] = None) -> Callable[..., Any]:
        if name in self._tasks:
            logger.warning(f"Task {name} re-registered")
        self._tasks[name] = func
        self._families[name] = family or name
        return func

    @property
    def task_names(self) -> List[str]:
        return sorted(self._tasks)

    def run_scope(self, name: str, arguments: Dict[str, Any]) -> Tuple[str, ...]:
        family = self._families.get(name, name)
        return (family,) + tuple(str(arguments[arg]) for arg in KEY_ARGUMENTS if arguments.get(arg))

    def run_key(self, name: str, arguments: Dict[str, Any]) -> str:
        return ":".join(self.run_scope(name, arguments))

    def is_running(self, name: str, **kwargs) -> bool:
        """True when a run overlapping this one is in flight"""
        scope = self.run_scope(name, kwargs)
        with self._lock:
            return self._overlapping(scope) is not None

    def _overlapping(self, scope: Tuple[str, ...]) -> Optional[Tuple[str, ...]]:
        for running in self._running:
            shared = min(len(running), len(scope))
            if running[:shared] == scope[:shared]:
                return running
        return None

    def run(self, name: str, **kwargs) -> Any:
        """
        Run a registered task

        Args:
            name: Registered task name
            **kwargs: Passed through to the task

        Returns:
            Whatever the task returns

        Raises:
            KeyError: Unknown task name
            TaskAlreadyRunningError: An overlapping run of the same family is in flight
        """
        func = self._tasks.get(name)
        if func is None:
            raise KeyError(f"Unknown task: {name}")

        scope = self.run_scope(name, kwargs)
        key = ":".join(scope)
        with self._lock:
            running = self._overlapping(scope)
            if running is not None:
                raise TaskAlreadyRunningError(f"Task {key} refused, {':'.join(running)} is already running")
            self._running.add(scope)

        record = TaskRunRecord(task_name=name, key=key, arguments=dict(kwargs))
        self._history.append(record)
        self._write_log(name, UpdateStatus.IN_PROGRESS, {"key": key, **kwargs})
        logger.info(f"Task {key} started")

        started = time.monotonic()
        try:
            result = func(**kwargs)
        except Exception as e:
            record.status = UpdateStatus.ERROR
            record.error = str(e)
            record.finished_at = datetime.utcnow()
            logger.error(f"Task {key} failed after {time.monotonic() - started:.2f}s: {str(e)}")
            self._write_log(name, UpdateStatus.ERROR, {"key": key, **kwargs, "error": str(e)})
            raise
        finally:
            with self._lock:
                self._running.discard(scope)

        record.status = UpdateStatus.SUCCESS
        record.result = to_primitive(result)
        record.finished_at = datetime.utcnow()
        logger.info(f"Task {key} finished in {time.monotonic() - started:.2f}s")
        self._write_log(name, UpdateStatus.SUCCESS, {"key": key, **kwargs, "result": record.result})
        return result

    def history(self, name: Optional[str] = None) -> List[TaskRunRecord]:
        """Run records, newest last"""
        return [record for record in self._history if name is None or record.task_name == name]

    def last_run(self, name: str) -> Optional[TaskRunRecord]:
        runs = self.history(name)
        return runs[-1] if runs else None

    def _write_log(self, name: str, status: UpdateStatus, details: Dict[str, Any]):
        if self.update_log_store is None:
            return
        try:
            self.update_log_store.add_log(name, status, details)
        except Exception as e:
            # the run outcome stands even if the log row cannot be written
            logger.error(f"Failed to write {status.value} log for {name}: {str(e)}")


def build_task_registry(
    session_factory: Optional[sessionmaker] = None,
    settings: Optional[Settings] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> TaskRegistry:
    """
    Wire stores, services and tasks into a registry

    Args:
        session_factory: Session factory for the SQLAlchemy stores (defaults to the process-wide one)
        settings: Settings override
        sleep: Pause function used between symbols

    Returns:
        TaskRegistry with the built-in tasks registered
    """
    settings = settings or get_settings()
    stores = SQLStores(session_factory or get_session_factory())

    indicator_service = IndicatorService(stores.prices, stores.indicators, settings=settings, sleep=sleep)
    holdings_service = HoldingsService(
        stores.prices,
        stores.portfolio,
        stores.holdings,
        BenchmarkWeightResolver(stores.benchmarks),
        settings=settings,
    )

    registry = TaskRegistry(stores.update_logs, history_size=settings.TASK_HISTORY_SIZE)
    registry.register("update_indicators", indicator_service.update_indicators, family="indicators")
    registry.register("update_indicators_for_region", indicator_service.update_indicators_for_region, family="indicators")
    registry.register("update_all_indicators", indicator_service.update_all_regions, family="indicators")
    registry.register("aggregate_holdings", holdings_service.aggregate_holdings, family="holdings")
    registry.register("aggregate_all_holdings", holdings_service.aggregate_all_holdings, family="holdings")

    registry.stores = stores
    registry.indicator_service = indicator_service
    registry.holdings_service = holdings_service
    return registry


@lru_cache()
def get_task_registry() -> TaskRegistry:
    """Process-wide registry"""
    return build_task_registry()
