"""Exception hierarchy for litestar-automations."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

__all__ = (
    "AutomationsError",
    "CompileError",
    "GovernanceError",
    "InvalidTransitionError",
    "RunNotFoundError",
    "StaleDefinitionError",
    "TemplateNotFoundError",
    "ValidationError",
    "WorkflowNotFoundError",
)


class AutomationsError(Exception):
    """Base exception for all litestar-automations errors.

    All exceptions raised by litestar-automations inherit from this class so callers
    can catch every automation-related failure with a single except clause.
    """


class ValidationError(AutomationsError):
    """Raised when a graph, trigger or definition is structurally invalid.

    The full list of violations is kept so it can be surfaced to the editor
    as-is. This error is always recoverable by fixing the reported input.

    Attributes:
        violations: List of human-readable violation messages.
    """

    def __init__(self, violations: Sequence[str]) -> None:
        """Initialize the exception with the violations found.

        Args:
            violations: List of validation violation messages.
        """
        self.violations = list(violations)
        super().__init__(f"Validation failed: {'; '.join(self.violations)}")


class CompileError(AutomationsError):
    """Raised when editable/normalized conversion receives malformed data.

    Attributes:
        element_id: The id of the offending node or edge, if known.
    """

    def __init__(self, message: str, element_id: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Description of the malformed input.
            element_id: Id of the node or edge that could not be compiled.
        """
        self.element_id = element_id
        if element_id is not None:
            message = f"'{element_id}': {message}"
        super().__init__(message)


class GovernanceError(AutomationsError):
    """Raised when an automation is used without the required approval.

    Attributes:
        workflow_id: The automation the operation was attempted on.
        reason: User-actionable explanation.
    """

    def __init__(self, workflow_id: str | UUID | None, reason: str) -> None:
        """Initialize the exception with governance details.

        Args:
            workflow_id: The automation the operation was attempted on.
            reason: User-actionable explanation, e.g. "request approval first".
        """
        self.workflow_id = workflow_id
        self.reason = reason
        super().__init__(f"Automation '{workflow_id}': {reason}")


class InvalidTransitionError(AutomationsError):
    """Raised when a state transition is attempted from a state that forbids it.

    This covers both approval transitions and run record transitions. It
    signals an integration error at the call site; the target is never
    mutated.

    Attributes:
        entity: What was being transitioned (e.g. "run 'abc'").
        from_state: The state the entity was in.
        action: The transition that was attempted.
    """

    def __init__(self, entity: str, from_state: str, action: str, reason: str | None = None) -> None:
        """Initialize the exception with transition details.

        Args:
            entity: What was being transitioned.
            from_state: The state the entity was in.
            action: The transition that was attempted.
            reason: Additional context about why the transition is invalid.
        """
        self.entity = entity
        self.from_state = from_state
        self.action = action
        msg = f"Cannot {action} {entity} from state '{from_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class WorkflowNotFoundError(AutomationsError):
    """Raised when an automation definition is not found in the store.

    Attributes:
        workflow_id: The id that was looked up.
    """

    def __init__(self, workflow_id: str | UUID) -> None:
        """Initialize the exception.

        Args:
            workflow_id: The id that was looked up.
        """
        self.workflow_id = workflow_id
        super().__init__(f"Automation '{workflow_id}' not found")


class RunNotFoundError(AutomationsError):
    """Raised when a run record is not found.

    Attributes:
        run_id: The id that was looked up.
    """

    def __init__(self, run_id: str | UUID) -> None:
        """Initialize the exception.

        Args:
            run_id: The id that was looked up.
        """
        self.run_id = run_id
        super().__init__(f"Run '{run_id}' not found")


class TemplateNotFoundError(AutomationsError):
    """Raised when a catalog template is not found.

    Attributes:
        template_id: The id or slug that was looked up.
    """

    def __init__(self, template_id: str | UUID) -> None:
        """Initialize the exception.

        Args:
            template_id: The id or slug that was looked up.
        """
        self.template_id = template_id
        super().__init__(f"Template '{template_id}' not found")


class StaleDefinitionError(AutomationsError):
    """Raised when saving a definition whose stored version moved on.

    Attributes:
        workflow_id: The automation being saved.
        expected_version: The version the writer loaded.
        actual_version: The version currently stored.
    """

    def __init__(self, workflow_id: str | UUID, expected_version: int, actual_version: int) -> None:
        """Initialize the exception with version details.

        Args:
            workflow_id: The automation being saved.
            expected_version: The version the writer loaded.
            actual_version: The version currently stored.
        """
        self.workflow_id = workflow_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Automation '{workflow_id}' was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
