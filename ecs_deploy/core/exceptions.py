"""Core exceptions for ECS deploy operations."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.migration import MigrationOutcome


class DeployError(Exception):
    """Base exception for ECS deploy operations."""

    problem_type = "deploy-error"


class ConfigurationError(DeployError):
    """Configuration validation or loading failed."""

    problem_type = "configuration-error"


class NotFoundError(DeployError):
    """A network, subnet, security group or log stream lookup matched nothing."""

    problem_type = "not-found"


class AmbiguousResourceError(DeployError):
    """A lookup that must resolve one resource matched several."""

    problem_type = "ambiguous-resource"

    def __init__(self, kind: str, tag: str, matches: list[str]):
        self.kind = kind
        self.tag = tag
        self.matches = matches
        super().__init__(f"{len(matches)} {kind}s match '{tag}': {', '.join(matches)}")


class DependencyError(DeployError):
    """An AWS API call failed."""

    problem_type = "dependency-error"

    def __init__(self, message: str, operation: str | None = None, error_code: str | None = None):
        self.operation = operation
        self.error_code = error_code
        super().__init__(message)


class MigrationFailedError(DeployError):
    """The migration task log contains the failure marker."""

    problem_type = "migration-failed"

    def __init__(self, outcome: "MigrationOutcome"):
        self.outcome = outcome
        super().__init__(f"Migration failed: \n{outcome.log_text}")

    @property
    def log_text(self) -> str:
        return self.outcome.log_text


class TaskWaitTimeoutError(DeployError):
    """The migration task did not stop within the configured wait."""

    problem_type = "timeout-error"


class PipelineCancelledError(DeployError):
    """The run was cancelled before a stage or while waiting on the migration task."""

    problem_type = "cancelled"
