"""Litestar plugin for workflow run monitoring.

This module provides the WorkflowMonitorPlugin, which wires the
reconciliation service, the run repositories and the admin REST API into a
Litestar application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - needed for DI

from workflow_monitor.core.clock import SystemClock
from workflow_monitor.core.protocols import RunDispatcher  # noqa: TC001 - needed for DI
from workflow_monitor.db.repositories import WorkflowRunRepository, WorkflowStepRepository
from workflow_monitor.engine.config import MonitorConfig
from workflow_monitor.engine.locks import RunLockRegistry
from workflow_monitor.engine.monitor import WorkflowMonitorService

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from workflow_monitor.core.protocols import Clock, ExecutionsClient

__all__ = ["WorkflowMonitorPlugin", "WorkflowMonitorPluginConfig"]


@dataclass
class WorkflowMonitorPluginConfig:
    """Configuration for the WorkflowMonitorPlugin.

    The plugin expects the host application to provide an ``AsyncSession``
    under the ``db_session`` dependency key, as Litestar's ``SQLAlchemyPlugin``
    does.

    Attributes:
        executions_client: Client for the remote workflow engine. Required.
        dispatcher: Optional dispatcher used by the retry endpoint.
        monitor: Staleness and timeout settings.
        clock: Optional clock, defaults to the UTC wall clock.
        dependency_key_monitor: DI key of the WorkflowMonitorService.
        dependency_key_run_repo: DI key of the WorkflowRunRepository.
        dependency_key_step_repo: DI key of the WorkflowStepRepository.
        dependency_key_dispatcher: DI key of the RunDispatcher.
        enable_api: Whether to register the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all API endpoints.
        api_guards: Litestar guards applied to every endpoint (e.g. an admin allowlist).
        api_tags: OpenAPI tags applied to every endpoint.
        include_api_in_schema: Whether to include the endpoints in the OpenAPI schema.
    """

    executions_client: ExecutionsClient | None = None
    dispatcher: RunDispatcher | None = None
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    clock: Clock | None = None
    dependency_key_monitor: str = "workflow_monitor"
    dependency_key_run_repo: str = "workflow_run_repo"
    dependency_key_step_repo: str = "workflow_step_repo"
    dependency_key_dispatcher: str = "run_dispatcher"
    enable_api: bool = True
    api_path_prefix: str = "/admin/workflows"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Workflows"])
    include_api_in_schema: bool = True


class WorkflowMonitorPlugin(InitPluginProtocol):
    """Litestar plugin for workflow run monitoring.

    Example:
        Basic usage with the SQLAlchemy plugin::

            from litestar import Litestar
            from litestar.plugins.sqlalchemy import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
            from workflow_monitor import (
                GoogleWorkflowsExecutionsClient,
                WorkflowMonitorPlugin,
                WorkflowMonitorPluginConfig,
            )

            app = Litestar(
                plugins=[
                    SQLAlchemyPlugin(config=SQLAlchemyAsyncConfig(connection_string=DATABASE_URL)),
                    WorkflowMonitorPlugin(
                        config=WorkflowMonitorPluginConfig(
                            executions_client=GoogleWorkflowsExecutionsClient(token_provider=get_token),
                        )
                    ),
                ]
            )

        Using the service in a scheduled job::

            async with session_maker() as session:
                service = plugin.create_service(session)
                await service.reconcile_all()
    """

    __slots__ = ("_clock", "_config", "_locks")

    def __init__(self, config: WorkflowMonitorPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or WorkflowMonitorPluginConfig()
        self._clock = self._config.clock or SystemClock()
        self._locks = RunLockRegistry()

    @property
    def config(self) -> WorkflowMonitorPluginConfig:
        """The plugin configuration."""
        return self._config

    @property
    def locks(self) -> RunLockRegistry:
        """The lock registry shared by every service the plugin creates."""
        return self._locks

    def create_service(self, session: AsyncSession) -> WorkflowMonitorService:
        """Build a monitor service bound to ``session``.

        Args:
            session: SQLAlchemy async session.

        Returns:
            A service sharing this plugin's client, clock and lock registry.

        Raises:
            RuntimeError: If no executions client is configured.
        """
        if self._config.executions_client is None:
            msg = "WorkflowMonitorPlugin requires an executions_client"
            raise RuntimeError(msg)
        return WorkflowMonitorService(
            session,
            self._config.executions_client,
            config=self._config.monitor,
            clock=self._clock,
            locks=self._locks,
        )

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Register dependencies, controllers and exception handlers.

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        if self._config.executions_client is None:
            msg = "WorkflowMonitorPluginConfig.executions_client is required"
            raise RuntimeError(msg)

        async def provide_monitor(db_session: AsyncSession) -> WorkflowMonitorService:
            return self.create_service(db_session)

        async def provide_run_repo(db_session: AsyncSession) -> WorkflowRunRepository:
            return WorkflowRunRepository(session=db_session)

        async def provide_step_repo(db_session: AsyncSession) -> WorkflowStepRepository:
            return WorkflowStepRepository(session=db_session)

        def provide_dispatcher() -> RunDispatcher | None:
            return self._config.dispatcher

        app_config.dependencies[self._config.dependency_key_monitor] = Provide(provide_monitor)
        app_config.dependencies[self._config.dependency_key_run_repo] = Provide(provide_run_repo)
        app_config.dependencies[self._config.dependency_key_step_repo] = Provide(provide_step_repo)
        app_config.dependencies[self._config.dependency_key_dispatcher] = Provide(
            provide_dispatcher,
            sync_to_thread=False,
        )

        if self._config.enable_api:
            from litestar import Router

            from workflow_monitor.web.controllers import WorkflowMonitorController, WorkflowRunController
            from workflow_monitor.web.exceptions import exception_handlers

            monitor_router = Router(
                path=self._config.api_path_prefix,
                route_handlers=[WorkflowMonitorController, WorkflowRunController],
                guards=self._config.api_guards,
                tags=self._config.api_tags,
                include_in_schema=self._config.include_api_in_schema,
            )
            app_config.route_handlers.append(monitor_router)

            for exc_type, handler in exception_handlers.items():
                app_config.exception_handlers.setdefault(exc_type, handler)

        return app_config
