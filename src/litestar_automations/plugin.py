"""Litestar plugin for automation integration.

This module provides the AutomationPlugin for seamless integration of
litestar-automations with Litestar applications.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from litestar_automations.core.compiler import GraphCompiler
from litestar_automations.core.protocols import AutomationNotifier, AutomationStore
from litestar_automations.core.templates import TemplateCatalog, builtin_templates
from litestar_automations.engine.memory import InMemoryAutomationStore
from litestar_automations.engine.service import AutomationService

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

__all__ = ["AutomationPlugin", "AutomationPluginConfig"]


@dataclass
class AutomationPluginConfig:
    """Configuration for the AutomationPlugin.

    Attributes:
        store: Optional pre-configured store shared by all requests. If
            neither this nor ``store_provider`` is given, an
            InMemoryAutomationStore is created.
        store_provider: Optional dependency provider returning a store per
            request, e.g. :func:`~litestar_automations.db.provide_sqlalchemy_store`.
            Takes precedence over ``store``. It is registered as the
            ``automation_store`` dependency.
        notifier: Optional receiver for domain events.
        compiler: Optional pre-configured GraphCompiler.
        seed_builtin_templates: Whether the default in-memory store starts
            with the built-in template catalog. Defaults to True.
        dependency_key_service: The key used for dependency injection of the
            AutomationService. Defaults to "automation_service".
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all automation API endpoints.
            Defaults to "/automations".
        api_guards: List of Litestar guards to apply to all automation API endpoints.
        api_tags: OpenAPI tags to apply to automation API endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
    """

    store: AutomationStore | None = None
    store_provider: Callable[..., Any] | None = None
    notifier: AutomationNotifier | None = None
    compiler: GraphCompiler | None = None
    seed_builtin_templates: bool = True
    dependency_key_service: str = "automation_service"
    enable_api: bool = True
    api_path_prefix: str = "/automations"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Automations"])
    include_api_in_schema: bool = True


class AutomationPlugin(InitPluginProtocol):
    """Litestar plugin for automation management.

    This plugin integrates litestar-automations with a Litestar application,
    providing dependency injection for the AutomationService, the REST API
    and its exception handlers.

    Example:
        In-memory store with the built-in template catalog::

            from litestar import Litestar
            from litestar_automations import AutomationPlugin

            app = Litestar(plugins=[AutomationPlugin()])

        Database-backed store with advanced-alchemy::

            from advanced_alchemy.extensions.litestar import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
            from litestar_automations import AutomationPlugin, AutomationPluginConfig
            from litestar_automations.db import provide_sqlalchemy_store

            app = Litestar(
                plugins=[
                    SQLAlchemyPlugin(config=SQLAlchemyAsyncConfig(connection_string="sqlite+aiosqlite:///app.db")),
                    AutomationPlugin(config=AutomationPluginConfig(store_provider=provide_sqlalchemy_store)),
                ]
            )

        Using in a route handler::

            from litestar import post
            from litestar_automations import AutomationService


            @post("/hooks/lead-created/{automation_id:uuid}")
            async def on_lead_created(automation_id: UUID, automation_service: AutomationService) -> dict:
                run = await automation_service.start_run(automation_id, context={"source": "webhook"})
                return {"run_id": str(run.id)}
    """

    __slots__ = ("_config", "_store")

    def __init__(self, config: AutomationPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or AutomationPluginConfig()
        self._store: AutomationStore | None = None

    @property
    def store(self) -> AutomationStore:
        """Get the shared store.

        Returns:
            The store instance.

        Raises:
            RuntimeError: If accessed before plugin initialization, or when
                stores are provided per request.
        """
        if self._store is None:
            msg = "AutomationPlugin has no shared store. Access it after app startup without a store_provider."
            raise RuntimeError(msg)
        return self._store

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Registers the store provider, or creates the shared store
        2. Registers the AutomationService provider
        3. Optionally registers REST API controllers and exception handlers

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        config = self._config

        if config.store_provider is not None:
            app_config.dependencies["automation_store"] = Provide(config.store_provider)
        else:
            if config.store is not None:
                self._store = config.store
            else:
                catalog = TemplateCatalog(builtin_templates() if config.seed_builtin_templates else None)
                self._store = InMemoryAutomationStore(catalog=catalog)

            def provide_store() -> AutomationStore:
                return self._store  # type: ignore[return-value]

            app_config.dependencies["automation_store"] = Provide(provide_store, sync_to_thread=False)

        compiler = config.compiler or GraphCompiler()

        def provide_service(automation_store: AutomationStore) -> AutomationService:
            return AutomationService(automation_store, notifier=config.notifier, compiler=compiler)

        app_config.dependencies[config.dependency_key_service] = Provide(provide_service, sync_to_thread=False)

        if config.enable_api:
            from litestar import Router

            from litestar_automations.web.controllers import (
                AutomationDefinitionController,
                AutomationRunController,
                AutomationTemplateController,
            )
            from litestar_automations.web.exceptions import exception_handlers

            automation_router = Router(
                path=config.api_path_prefix,
                route_handlers=[
                    AutomationDefinitionController,
                    AutomationRunController,
                    AutomationTemplateController,
                ],
                guards=config.api_guards,
                tags=config.api_tags,
                include_in_schema=config.include_api_in_schema,
            )
            app_config.route_handlers.append(automation_router)

            for exc_type, handler in exception_handlers.items():
                app_config.exception_handlers.setdefault(exc_type, handler)

        return app_config
