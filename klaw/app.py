"""Application bootstrap for klaw.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config -> logging -> cluster registry -> notifiers -> sampler
              -> monitoring service -> REST

Shutdown runs in reverse startup order. Each component's stop error is
caught and logged independently so that a single failure does not prevent
the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from klaw.cluster.registry import ClusterRegistry
from klaw.config import load_config
from klaw.metrics.sampler import Sampler
from klaw.models.config import KlawConfig
from klaw.monitoring.service import MonitoringService
from klaw.notifications import build_notification_dispatcher
from klaw.notifications.base import NotificationDispatcher
from klaw.observability.logging import get_logger, setup_logging
from klaw.ops.handler import CommandHandler

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15

# Commands that read sample history. A one-shot process has none, so one
# sample of the named cluster is taken first.
_HISTORY_COMMANDS = {("cluster", "chart"), ("monitor", "status"), ("monitor", "chart")}


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KlawApp:
    """Application root. Owns every component and coordinates their lifecycle.

    ``stop()`` on an app that was never started (or already stopped) is safe.
    """

    def __init__(self, config_path: str | os.PathLike[str] | None = None) -> None:
        self._config_path = config_path
        self.config: KlawConfig | None = None

        self.registry: ClusterRegistry | None = None
        self.dispatcher: NotificationDispatcher | None = None
        self.sampler: Sampler | None = None
        self.monitoring: MonitoringService | None = None
        self._rest_server: Any = None
        self._rest_task: asyncio.Task[None] | None = None

        self._running = False
        self._stopped = asyncio.Event()
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self, serve: bool = True) -> None:
        """Start all components in dependency order.

        With ``serve=False`` the periodic loops and the REST server are not
        started; the registry, notifiers, sampler and monitoring service are
        still built so one-shot commands can use them.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        try:
            self.config = load_config(self._config_path)
        except Exception as exc:
            raise _ComponentError("config", exc) from exc

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("klaw starting", version=_klaw_version(), clusters=len(self.config.kubernetes.clusters))

        # --- 3. Cluster registry ----------------------------------------
        await self._start_registry()

        # --- 4. Notifiers -----------------------------------------------
        self.dispatcher = build_notification_dispatcher(self.config.messaging)
        self._log.info("notifiers configured", notifiers=[n.name for n in self.dispatcher.notifiers])

        # --- 5. Sampler -------------------------------------------------
        assert self.registry is not None
        self.sampler = Sampler(self.registry)

        # --- 6. Monitoring service --------------------------------------
        monitoring_cfg = self.config.monitoring
        self.monitoring = MonitoringService(
            self.registry,
            self.sampler,
            self.dispatcher,
            history_size=monitoring_cfg.history_size,
            collect_interval=monitoring_cfg.collect_interval,
            chart_interval=monitoring_cfg.chart_interval,
            alert_interval=monitoring_cfg.alert_interval,
            stop_grace=self.config.kubernetes.request_timeout,
        )
        self._running = True
        if not serve:
            return
        await self.monitoring.start()

        # --- 7. REST API ------------------------------------------------
        await self._start_rest()
        self._log.info("klaw started")

    async def _start_registry(self) -> None:
        assert self.config is not None
        assert self._log is not None
        self.registry = ClusterRegistry(
            self.config.kubernetes.clusters,
            request_timeout=self.config.kubernetes.request_timeout,
        )
        try:
            await self.registry.connect()
        except Exception as exc:
            raise _ComponentError("registry", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        assert self.registry is not None
        assert self.sampler is not None
        assert self.monitoring is not None
        try:
            import uvicorn

            from klaw.api import create_app

            fastapi_app = create_app(registry=self.registry, sampler=self.sampler, monitoring=self.monitoring)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host=self.config.server.host,
                port=self.config.server.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            self._rest_task = asyncio.create_task(server.serve(), name="rest-server")
            self._rest_server = server
            self._log.info("rest api started", host=self.config.server.host, port=self.config.server.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    def command_handler(self) -> CommandHandler:
        assert self.registry is not None
        assert self.sampler is not None
        assert self.monitoring is not None
        return CommandHandler(self.registry, self.sampler, self.monitoring)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("klaw shutting down")
        self._running = False

        await self._stop_component("rest", self._stop_rest)
        if self.monitoring is not None:
            await self._stop_component("monitoring", self.monitoring.stop)
        if self.registry is not None:
            await self._stop_component("registry", self.registry.close)

        self._stopped.set()
        log.info("klaw stopped")

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    async def _stop_rest(self) -> None:
        if self._rest_server is None or self._rest_task is None:
            return
        self._rest_server.should_exit = True
        await self._rest_task

    async def _stop_component(self, name: str, stop_fn: Callable[[], Awaitable[None]]) -> None:
        """Await *stop_fn* under the shutdown grace, catching all errors."""
        log = self._log or get_logger("app")
        try:
            await asyncio.wait_for(stop_fn(), timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _klaw_version() -> str:
    from klaw import __version__

    return __version__


async def main(config_path: str | os.PathLike[str] | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KlawApp(config_path)
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await app.wait_stopped()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()


async def run_command(command: str, config_path: str | os.PathLike[str] | None = None) -> str:
    """Build the components without the loops or REST server and run one command.

    The process keeps no history between runs: monitoring commands see the
    single sample taken for them and alerts raised by a running server are
    not visible here.
    """
    app = KlawApp(config_path)
    try:
        await app.start(serve=False)
        words = command.split()
        if len(words) >= 3 and (words[0], words[1]) in _HISTORY_COMMANDS:
            assert app.monitoring is not None
            await app.monitoring.record_sample(words[2])
        return await app.command_handler().handle(command)
    except _ComponentError as exc:
        raise exc.cause from None
    finally:
        await app.stop()
