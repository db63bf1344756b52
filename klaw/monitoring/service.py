"""Monitoring service: the three periodic loops and the alert lifecycle.

Loops (each its own asyncio task, each driven by its own timer):
    collect-metrics  -- every 30s sample each cluster and append to history;
                        a failed sample raises a connection/critical alert.
    send-charts      -- every 5min render each cluster's latest sample and
                        send it to every notifier.
    evaluate-alerts  -- every 10s apply the threshold rules to each
                        cluster's latest sample.

The service exclusively owns the history ring and the alert store; other
components read through its public methods. Errors never escape a loop:
they are logged and the loop carries on with the next cluster or tick.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from klaw.chart.renderer import ChartRenderer, chart_title, render_cluster_chart
from klaw.clock import Clock, utc_now
from klaw.cluster.registry import ClusterRegistry
from klaw.errors import ClusterNotFoundError, NoHistoryError
from klaw.metrics.sampler import Sampler
from klaw.models.alerts import Alert, AlertLevel, AlertType
from klaw.models.metrics import ClusterSample
from klaw.monitoring.alerts import AlertStore, format_alert_message
from klaw.monitoring.history import DEFAULT_HISTORY_SIZE, HistoryStore
from klaw.monitoring.rules import DEFAULT_RULES, ThresholdRule, evaluate
from klaw.notifications.base import NotificationDispatcher
from klaw.observability.logging import get_logger

_log = get_logger("monitoring.service")

COLLECT_INTERVAL = 30.0
CHART_INTERVAL = 300.0
ALERT_INTERVAL = 10.0


class MonitoringService:
    """Runs metrics collection, chart dispatch and alert evaluation.

    Args:
        registry:          Registered clusters.
        sampler:           Produces one ClusterSample per call.
        dispatcher:        Notifier fan-out for alert messages and charts.
        history_size:      Ring length per cluster.
        collect_interval:  Seconds between metrics collection ticks.
        chart_interval:    Seconds between chart dispatch ticks.
        alert_interval:    Seconds between alert evaluation ticks.
        renderer:          ``(sample, title, now) -> bytes``.
        clock:             Wall clock for alert ids and chart labels.
        stop_grace:        Seconds an in-flight tick may run after stop()
                           before it is cancelled. Defaults to the
                           Kubernetes request deadline.
        rules:             Threshold rules applied by evaluate_alerts().
    """

    def __init__(
        self,
        registry: ClusterRegistry,
        sampler: Sampler,
        dispatcher: NotificationDispatcher,
        *,
        history_size: int = DEFAULT_HISTORY_SIZE,
        collect_interval: float = COLLECT_INTERVAL,
        chart_interval: float = CHART_INTERVAL,
        alert_interval: float = ALERT_INTERVAL,
        renderer: ChartRenderer = render_cluster_chart,
        clock: Clock = utc_now,
        stop_grace: float = 10.0,
        rules: tuple[ThresholdRule, ...] = DEFAULT_RULES,
    ) -> None:
        self._registry = registry
        self._sampler = sampler
        self._dispatcher = dispatcher
        self._history = HistoryStore(history_size)
        self._alerts = AlertStore(clock)
        self._renderer = renderer
        self._clock = clock
        self._stop_grace = stop_grace
        self._rules = rules
        self._intervals = {
            "collect-metrics": collect_interval,
            "send-charts": chart_interval,
            "evaluate-alerts": alert_interval,
        }
        self._stopping = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Launch the three loops. Calling start() twice is a no-op."""
        if self._tasks:
            return
        self._stopping.clear()
        ticks: dict[str, Callable[[], Awaitable[object]]] = {
            "collect-metrics": self.collect_metrics,
            "send-charts": self.send_charts,
            "evaluate-alerts": self.evaluate_alerts,
        }
        for name, tick in ticks.items():
            task = asyncio.create_task(
                self._run_periodic(name, self._intervals[name], tick),
                name=f"monitoring-{name}",
            )
            self._tasks.append(task)
        _log.info("monitoring_started", clusters=self._registry.names(), **self._interval_fields())

    async def stop(self) -> None:
        """Signal the loops to stop and wait for them.

        Loops blocked on their timer return immediately. A tick that is
        mid-flight gets ``stop_grace`` seconds to finish, then is cancelled.
        """
        if not self._tasks:
            return
        self._stopping.set()
        tasks, self._tasks = self._tasks, []
        _, pending = await asyncio.wait(tasks, timeout=self._stop_grace)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            _log.warning("monitoring_ticks_cancelled", tasks=[t.get_name() for t in pending])
        _log.info("monitoring_stopped")

    async def _run_periodic(self, name: str, interval: float, tick: Callable[[], Awaitable[object]]) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                pass
            else:
                break
            try:
                await tick()
            except Exception as exc:
                _log.error("monitoring_tick_failed", task=name, error=str(exc))
        _log.debug("monitoring_loop_exited", task=name)

    def _interval_fields(self) -> dict[str, float]:
        return {name.replace("-", "_") + "_interval": value for name, value in self._intervals.items()}

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def collect_metrics(self) -> None:
        """Sample every cluster once; failures raise a connection alert."""
        for cluster in self._registry.names():
            try:
                sample = await self.record_sample(cluster)
            except Exception as exc:
                _log.warning("metrics_collection_failed", cluster=cluster, error=str(exc))
                await self.create_alert(
                    cluster,
                    AlertType.CONNECTION,
                    AlertLevel.CRITICAL,
                    f"Failed to connect to cluster: {exc}",
                )
                continue
            _log.info(
                "metrics_collected",
                cluster=cluster,
                nodes=sample.nodes.total,
                pods=sample.pods.total,
                data_points=self._history.size(cluster),
            )

    async def record_sample(self, cluster: str) -> ClusterSample:
        """Sample *cluster* once and append it to its history.

        Raises ClusterNotFoundError or SampleError; no alert is created.
        """
        self._registry.get_cluster(cluster)
        sample = await self._sampler.sample(cluster)
        self._history.append(cluster, sample)
        return sample

    async def send_charts(self) -> None:
        """Send a chart of the latest sample of every cluster with history."""
        if not len(self._dispatcher):
            _log.debug("chart_dispatch_skipped", reason="no notifiers configured")
            return
        for cluster in self._registry.names():
            sample = self._history.latest(cluster)
            if sample is None:
                continue
            await self._dispatch_chart(cluster, sample)

    async def evaluate_alerts(self) -> list[Alert]:
        """Apply the rules to every cluster's latest sample; return new alerts."""
        created: list[Alert] = []
        for cluster in self._registry.names():
            sample = self._history.latest(cluster)
            if sample is None:
                continue
            for candidate in evaluate(sample, self._rules):
                alert = await self.create_alert(cluster, candidate.type, candidate.level, candidate.message)
                if alert is not None:
                    created.append(alert)
        return created

    async def send_chart(self, cluster: str) -> int:
        """Render and send the latest chart for *cluster* now.

        Returns the number of notifiers that accepted it. Raises
        ClusterNotFoundError or NoHistoryError.
        """
        self._registry.get_cluster(cluster)
        sample = self._history.latest(cluster)
        if sample is None:
            raise NoHistoryError(cluster)
        return await self._dispatch_chart(cluster, sample)

    async def _dispatch_chart(self, cluster: str, sample: ClusterSample) -> int:
        title = chart_title(cluster)
        try:
            chart = self._renderer(sample, title, self._clock())
        except Exception as exc:
            _log.error("chart_render_failed", cluster=cluster, error=str(exc))
            return 0
        delivered = await self._dispatcher.send_chart(chart, title)
        _log.info("chart_dispatched", cluster=cluster, delivered=delivered, notifiers=len(self._dispatcher))
        return delivered

    # ------------------------------------------------------------------
    # Alert lifecycle
    # ------------------------------------------------------------------

    async def create_alert(self, cluster: str, alert_type: AlertType, level: AlertLevel, message: str) -> Alert | None:
        """Store a new alert and notify every notifier.

        Returns None when an alert with the same id (same cluster and type
        within the same wall-clock second) already exists. The store write
        happens before, and independently of, the notifier fan-out.
        """
        if not self._registry.has(cluster):
            raise ClusterNotFoundError(cluster)
        alert = self._alerts.create(cluster, alert_type, level, message)
        if alert is None:
            _log.debug("alert_deduplicated", cluster=cluster, type=alert_type.value)
            return None
        _log.warning(
            "alert_created",
            alert_id=alert.id,
            cluster=cluster,
            type=alert_type.value,
            level=level.value,
            message=message,
        )
        await self._dispatcher.send_text(format_alert_message(alert))
        return alert

    async def resolve_alert(self, alert_id: str) -> Alert:
        """Mark an alert resolved and send the resolution message.

        Resolving an already-resolved alert returns it without notifying
        again. Unknown ids raise AlertNotFoundError and notify nobody.
        """
        changed = self._alerts.resolve(alert_id)
        alert = self._alerts.get(alert_id)
        if changed:
            _log.info("alert_resolved", alert_id=alert_id, cluster=alert.cluster)
            await self._dispatcher.send_text(format_alert_message(alert, resolved=True, at=self._clock()))
        return alert

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    def history(self, cluster: str) -> list[ClusterSample]:
        return self._history.snapshot(cluster)

    def latest(self, cluster: str) -> ClusterSample | None:
        return self._history.latest(cluster)

    def data_points(self, cluster: str) -> int:
        return self._history.size(cluster)

    def is_active(self, cluster: str) -> bool:
        return self._history.size(cluster) > 0

    def alerts(self, cluster: str | None = None) -> list[Alert]:
        return self._alerts.list(cluster)
