"""Web plugin for litestar-automations.

This module provides REST API controllers for managing automations through
HTTP endpoints. The REST API is automatically enabled when using
AutomationPlugin with enable_api=True (the default).

The API includes controllers for automation definitions and their governance,
run records, and the template catalog.

Example:
    Basic usage with AutomationPlugin (API enabled by default)::

        from litestar import Litestar
        from litestar_automations import AutomationPlugin, AutomationPluginConfig

        app = Litestar(
            plugins=[
                AutomationPlugin(
                    config=AutomationPluginConfig(
                        enable_api=True,  # Default
                        api_path_prefix="/automations",
                    )
                ),
            ],
        )

    With authentication guards::

        config = AutomationPluginConfig(
            api_path_prefix="/api/v1/automations",
            api_guards=[require_auth_guard],
        )
"""

from __future__ import annotations

from litestar_automations.web.controllers import (
    AutomationDefinitionController,
    AutomationRunController,
    AutomationTemplateController,
)
from litestar_automations.web.dto import (
    ApprovalActionDTO,
    ApprovalEventDTO,
    CompleteRunDTO,
    CreateDefinitionDTO,
    DefinitionDTO,
    EditableGraphDTO,
    GraphDTO,
    InstallTemplateDTO,
    RunDTO,
    SaveEditableGraphDTO,
    StartRunDTO,
    TemplateDTO,
    UpdateDefinitionDTO,
)
from litestar_automations.web.exceptions import exception_handlers

__all__ = [
    "ApprovalActionDTO",
    "ApprovalEventDTO",
    "AutomationDefinitionController",
    "AutomationRunController",
    "AutomationTemplateController",
    "CompleteRunDTO",
    "CreateDefinitionDTO",
    "DefinitionDTO",
    "EditableGraphDTO",
    "GraphDTO",
    "InstallTemplateDTO",
    "RunDTO",
    "SaveEditableGraphDTO",
    "StartRunDTO",
    "TemplateDTO",
    "UpdateDefinitionDTO",
    "exception_handlers",
]
