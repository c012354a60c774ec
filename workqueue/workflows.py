"""
Workflow orchestrator: composes the queue engine and the task scheduler,
binds the business services as queue workers and defines the recurring
maintenance tasks of the system.
"""

import asyncio
import signal
import time
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

import psutil

from .core.broadcaster import JOB_FAILED, JobEvent
from .core.listener import Listener
from .core.runner import run_task
from .helper.config import EngineConfiguration
from .helper.logging import get_logger, setup_logging
from .model.options import JobOptions
from .queue_engine import QueueEngine, new_queue_engine
from .scheduler import TaskScheduler

logger = get_logger(__name__)

Service = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]

REPORT_TYPES = {
    "sales": "sales-report",
    "users": "user-activity-report",
    "dashboard": "dashboard-report",
}


@dataclass
class WorkflowServices:
    """
    Business collaborators of the workflows. Every service takes the job
    payload dict and may be sync or async. Services left as None are not wired.
    """

    send_email: Optional[Service] = None
    process_pdf: Optional[Service] = None
    send_notification: Optional[Service] = None
    generate_report: Optional[Service] = None
    run_cleanup: Optional[Service] = None
    create_backup: Optional[Service] = None
    cleanup_backups: Optional[Service] = None
    generate_seo: Optional[Service] = None
    run_seo_monitoring: Optional[Service] = None
    optimize_database: Optional[Service] = None
    send_alert: Optional[Service] = None

    def availability(self) -> Dict[str, str]:
        return {
            f.name: "available" if getattr(self, f.name) is not None else "unavailable"
            for f in fields(self)
        }


def route_by_operation(
    queue_name: str, operations: Mapping[str, Service], default: str
) -> Callable[[Dict[str, Any]], Awaitable[Any]]:
    """
    Build a worker that dispatches on the "operation" key of the payload.

    :raises ValueError: From the worker, for an operation without a service.
    """

    async def route(payload: Dict[str, Any]) -> Any:
        operation = payload.get("operation", default)
        service = operations.get(operation)
        if service is None:
            raise ValueError(
                f"Unknown operation '{operation}' for queue '{queue_name}'"
            )
        return await run_task(service, payload, name=f"{queue_name}-{operation}")

    route.__name__ = f"route_{queue_name.replace('-', '_')}"
    return route


class AutomatedWorkflows:
    """
    Composition root of the job system. Construct it once at the process
    entry point and pass it to whoever needs to enqueue work.
    """

    def __init__(
        self,
        config: Optional[EngineConfiguration] = None,
        services: Optional[WorkflowServices] = None,
        engine: Optional[QueueEngine] = None,
        scheduler: Optional[TaskScheduler] = None,
    ):
        """
        :param config: Configuration, read from the environment when None.
        :param services: Business services bound as workers and task actions.
        :param engine: Queue engine, built from config on initialize when None.
        :param scheduler: Task scheduler, built on initialize when None.
        """
        self.config = config or EngineConfiguration.from_env()
        self.services = services or WorkflowServices()
        self.engine = engine
        self.scheduler = scheduler
        self.is_initialized = False
        self._components_built = False
        self._stopped: Optional[asyncio.Event] = None
        self._signal_task: Optional["asyncio.Task[None]"] = None
        self._listener: Optional[Listener[JobEvent]] = None

    async def initialize(self) -> None:
        """
        Build the components once, then start the scheduler and the engine.
        A second call while initialized only logs a warning.
        """
        if self.is_initialized:
            logger.warning("Automated workflows already initialized")
            return

        logger.info("Initializing automated workflows")
        try:
            if self.engine is None:
                self.engine = new_queue_engine(self.config)
            if self.scheduler is None:
                self.scheduler = TaskScheduler(timezone=self.config.timezone)
            if not self._components_built:
                self._register_workers(self.engine)
                self._define_tasks(self.scheduler)
                self._components_built = True

            if self._listener is None:
                self._listener = self.engine.add_listener(self._on_job_event)
            self.scheduler.start()
            self.engine.start_processing()
        except Exception as e:
            logger.error("Failed to initialize automated workflows", e)
            raise

        self.is_initialized = True
        logger.info(
            "Automated workflows initialized",
            tasks=len(self.scheduler.tasks),
            workers=len(self.engine.workers),
        )

    def _register_workers(self, engine: QueueEngine) -> None:
        services = self.services
        direct = {
            "email": services.send_email,
            "pdf-processing": services.process_pdf,
            "notifications": services.send_notification,
            "reports": services.generate_report,
            "cleanup": services.run_cleanup,
        }
        for queue_name, service in direct.items():
            if service is not None:
                engine.register_worker(queue_name, service)

        routed = {
            "backup": (
                {"create": services.create_backup, "cleanup": services.cleanup_backups},
                "create",
            ),
            "seo": (
                {"generate": services.generate_seo, "monitor": services.run_seo_monitoring},
                "generate",
            ),
        }
        for queue_name, (operations, default) in routed.items():
            provided = {op: fn for op, fn in operations.items() if fn is not None}
            if provided:
                engine.register_worker(
                    queue_name, route_by_operation(queue_name, provided, default)
                )

    def _define_tasks(self, scheduler: TaskScheduler) -> None:
        tz = self.config.timezone

        def enqueue(queue_name: str, job_type: str, data=None, options=None):
            def action() -> None:
                self.add_job(queue_name, {"type": job_type, "data": data or {}}, options)

            return action

        def reports(period: str, *report_types: str):
            def action() -> None:
                for report_type in report_types:
                    self._enqueue_report(report_type, period, "pdf")

            return action

        scheduler.define_task(
            "seo-generation", "0 2 * * *",
            enqueue("seo", "seo-generation", {"operation": "generate"}), tz,
        )
        if self.services.optimize_database is not None:
            scheduler.define_task(
                "database-optimization", "0 3 * * 0", self._optimize_database, tz
            )
        scheduler.define_task(
            "file-cleanup", "0 1 * * *", enqueue("cleanup", "file-cleanup"), tz
        )
        scheduler.define_task(
            "weekly-reports", "0 6 * * 1", reports("weekly", "dashboard", "sales"), tz
        )
        scheduler.define_task(
            "database-backup", "0 4 * * *",
            enqueue("backup", "database-backup", {"operation": "create"}), tz,
        )
        scheduler.define_task(
            "seo-monitoring", "0 */4 * * *",
            enqueue("seo", "seo-monitoring", {"operation": "monitor"}), tz,
        )
        scheduler.define_task(
            "email-campaigns", "0 * * * *",
            enqueue("email", "process-scheduled-campaigns", options={"priority": 3}), tz,
        )
        scheduler.define_task("queue-health", "*/10 * * * *", self._queue_health, tz)
        scheduler.define_task("health-check", "*/30 * * * *", self.check_system_health, tz)
        scheduler.define_task(
            "monthly-reports", "0 7 1 * *",
            reports("monthly", "dashboard", "sales", "users"), tz,
        )
        scheduler.define_task(
            "backup-cleanup", "0 5 * * 6",
            enqueue("backup", "backup-cleanup", {"operation": "cleanup"}), tz,
        )

    async def _optimize_database(self) -> None:
        logger.info("Running database optimization")
        await run_task(self.services.optimize_database, {}, name="optimize_database")

    def _queue_health(self) -> None:
        if self.engine is not None:
            self.engine.ensure_processing()

    async def _on_job_event(self, event: JobEvent) -> None:
        if event.name != JOB_FAILED or self.services.send_alert is None:
            return
        await run_task(
            self.services.send_alert,
            {
                "subject": f"Job failed in queue '{event.queue_name}'",
                "queue": event.queue_name,
                "job_id": event.job.id,
                "type": event.job.type,
                "attempts": event.job.attempts,
                "error": event.job.last_error,
            },
            name="send_alert",
        )

    def check_system_health(self) -> Dict[str, Any]:
        """
        Log memory and uptime of the process. Above the configured memory
        threshold an alert email is enqueued for the admin.
        """
        process = psutil.Process()
        memory_mb = process.memory_info().rss / 1024 / 1024
        uptime_hours = (time.time() - process.create_time()) / 3600
        alert = memory_mb > self.config.memory_alert_mb

        logger.info(
            "System health",
            memory_mb=round(memory_mb),
            uptime_hours=round(uptime_hours, 1),
        )
        if alert:
            logger.warning(
                "High memory usage detected",
                memory_mb=round(memory_mb),
                threshold_mb=self.config.memory_alert_mb,
            )
            self._send_memory_alert(memory_mb)

        return {
            "memory_mb": round(memory_mb, 1),
            "uptime_hours": round(uptime_hours, 2),
            "alert": alert,
        }

    def _send_memory_alert(self, memory_mb: float) -> None:
        if not self.config.admin_email:
            logger.warning("No admin email configured, memory alert not sent")
            return
        try:
            self.add_job(
                "email",
                {
                    "type": "system-alert",
                    "data": {
                        "template": "system-alert",
                        "to": self.config.admin_email,
                        "data": {
                            "subject": "High Memory Usage Alert",
                            "message": f"Memory usage: {round(memory_mb)}MB",
                            "timestamp": datetime.now(timezone.utc).isoformat(),
                        },
                    },
                },
                {"priority": 10},
            )
        except Exception as e:
            logger.error("Failed to send memory alert", e)

    async def get_system_status(self) -> Dict[str, Any]:
        """Scheduler tasks, queue stats and service availability in one snapshot."""
        if not self.is_initialized:
            return {"status": "not_initialized"}

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "scheduler": {
                "running": self.scheduler.is_running if self.scheduler else False,
                "tasks": self.scheduler.get_status() if self.scheduler else {},
            },
            "queue": {
                "processing": self.engine.is_processing if self.engine else False,
                "stats": self.engine.get_queue_stats() if self.engine else {},
            },
            "store": self.engine.store.health() if self.engine else {},
            "services": self.services.availability(),
        }

    async def shutdown(self) -> None:
        """
        Stop the scheduler and the engine. The engine waits up to
        shutdown_timeout seconds for in-flight jobs.
        """
        logger.info("Shutting down automated workflows")
        try:
            if self.scheduler is not None:
                self.scheduler.stop()
                logger.info("Task scheduler stopped")

            if self.engine is not None:
                finished = await self.engine.stop(self.config.shutdown_timeout)
                if finished:
                    logger.info("Queue engine stopped")

            if self._listener is not None:
                await self._listener.wait_for_notifications_processed()
                await self._listener.stop()
                self.engine.listeners.remove(self._listener)
                self._listener = None
        except Exception as e:
            logger.error("Error during shutdown", e)
            raise
        finally:
            self.is_initialized = False

    async def restart(self) -> None:
        logger.info("Restarting automated workflows")
        await self.shutdown()
        await self.initialize()

    def add_job(
        self,
        queue_name: str,
        job_data: Mapping[str, Any],
        options: Union[JobOptions, Mapping[str, Any], None] = None,
    ) -> str:
        """
        Enqueue a job on the engine.

        :raises RuntimeError: If the engine was not created yet.
        """
        if self.engine is None:
            raise RuntimeError("Queue engine not initialized")
        return self.engine.enqueue(queue_name, job_data, options)

    def _require_service(self, name: str) -> None:
        if getattr(self.services, name) is None:
            raise RuntimeError(f"Service '{name}' is not available")

    def create_backup(self) -> str:
        """Enqueue a database backup now."""
        self._require_service("create_backup")
        return self.add_job(
            "backup", {"type": "database-backup", "data": {"operation": "create"}}
        )

    def run_file_cleanup(self) -> str:
        """Enqueue a file cleanup now."""
        self._require_service("run_cleanup")
        return self.add_job("cleanup", {"type": "file-cleanup", "data": {}})

    def generate_report(
        self, report_type: str, period: str = "monthly", fmt: str = "pdf"
    ) -> str:
        """
        Enqueue a report.

        :param report_type: sales, users or dashboard.
        :raises ValueError: For an unknown report type.
        """
        if report_type not in REPORT_TYPES:
            raise ValueError(f"Unknown report type: {report_type}")
        self._require_service("generate_report")
        return self._enqueue_report(report_type, period, fmt)

    def _enqueue_report(self, report_type: str, period: str, fmt: str) -> str:
        return self.add_job(
            "reports",
            {
                "type": REPORT_TYPES[report_type],
                "data": {"report_type": report_type, "period": period, "format": fmt},
            },
        )

    def send_email_campaign(self, campaign: Mapping[str, Any]) -> str:
        """Enqueue an email campaign."""
        self._require_service("send_email")
        return self.add_job(
            "email", {"type": "campaign", "data": dict(campaign)}, {"priority": 5}
        )

    async def run_seo_monitoring(self) -> Any:
        """Run the SEO monitoring service now and return its result."""
        self._require_service("run_seo_monitoring")
        return await run_task(
            self.services.run_seo_monitoring, {}, name="run_seo_monitoring"
        )

    def install_signal_handlers(
        self, loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        """
        Shut down on SIGTERM and SIGINT.
        Not supported by every event loop, unsupported signals are skipped.
        """
        loop = loop or asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError) as e:
                logger.warning(f"Cannot handle {sig.name}", error=e)

    def remove_signal_handlers(
        self, loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        loop = loop or asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down workflows")
        if self._signal_task is None or self._signal_task.done():
            self._signal_task = asyncio.get_running_loop().create_task(
                self._shutdown_and_release()
            )

    async def _shutdown_and_release(self) -> None:
        try:
            await self.shutdown()
        finally:
            if self._stopped is not None:
                self._stopped.set()

    async def serve(self) -> None:
        """Initialize, then run until SIGTERM or SIGINT shut the workflows down."""
        setup_logging(level=self.config.level)
        self._stopped = asyncio.Event()
        await self.initialize()
        self.install_signal_handlers()
        try:
            await self._stopped.wait()
        finally:
            self.remove_signal_handlers()
            self._stopped = None
