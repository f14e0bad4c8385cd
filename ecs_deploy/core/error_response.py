"""RFC 7807 compliant error response helpers.

Pipeline failures are reported as problem-detail dictionaries so that the
CLI, logs and any caller of the pipeline see the same shape.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import DependencyError, DeployError, MigrationFailedError


class ErrorDetail(BaseModel):
    """RFC 7807 compliant error detail structure.

    Required fields:
    - success: Always False for error responses
    - error: Human-readable error message

    Optional RFC 7807 fields:
    - type: URI reference that identifies the problem type
    - title: Short, human-readable summary of the problem type
    - detail: Human-readable explanation specific to this occurrence
    - instance: URI reference that identifies the specific occurrence
    """

    success: bool = Field(default=False, description="Always False for errors")
    error: str = Field(description="Human-readable error message")
    type: str | None = Field(default=None, description="Problem type URI")
    title: str | None = Field(default=None, description="Problem type summary")
    detail: str | None = Field(default=None, description="Specific problem details")
    instance: str | None = Field(default=None, description="Problem occurrence URI")
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class DeployErrorResponse:
    """Factory for creating standardized pipeline error responses."""

    PROBLEM_TYPES: dict[str, dict[str, str]] = {
        "deploy-error": {
            "type": "/problems/deploy-error",
            "title": "Deployment Error",
        },
        "not-found": {
            "type": "/problems/not-found",
            "title": "Resource Not Found",
        },
        "ambiguous-resource": {
            "type": "/problems/ambiguous-resource",
            "title": "Ambiguous Resource Lookup",
        },
        "dependency-error": {
            "type": "/problems/dependency-error",
            "title": "AWS Call Failed",
        },
        "migration-failed": {
            "type": "/problems/migration-failed",
            "title": "Database Migration Failed",
        },
        "timeout-error": {
            "type": "/problems/timeout-error",
            "title": "Operation Timed Out",
        },
        "cancelled": {
            "type": "/problems/cancelled",
            "title": "Run Cancelled",
        },
        "configuration-error": {
            "type": "/problems/configuration-error",
            "title": "Configuration Error",
        },
    }

    RESERVED_FIELDS = {"success", "error", "type", "title", "detail", "instance", "timestamp"}

    @classmethod
    def create_error(
        cls,
        error_message: str,
        problem_type: str | None = None,
        detail: str | None = None,
        instance: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a standardized error response.

        Args:
            error_message: Primary error message
            problem_type: Standard problem type key or custom type URI
            detail: Additional problem-specific details
            instance: Identifier for this specific occurrence
            context: Additional context fields (stage, operation, log_text, ...)

        Returns:
            RFC 7807 compliant error response dictionary
        """
        error_detail = ErrorDetail(error=error_message, detail=detail, instance=instance)

        if problem_type and problem_type in cls.PROBLEM_TYPES:
            problem_info = cls.PROBLEM_TYPES[problem_type]
            error_detail.type = problem_info["type"]
            error_detail.title = problem_info["title"]
        elif problem_type:
            error_detail.type = problem_type

        response = error_detail.model_dump(exclude_none=True)

        if context:
            response.update(
                {k: v for k, v in context.items() if k not in cls.RESERVED_FIELDS}
            )

        return response

    @classmethod
    def from_exception(cls, error: Exception, stage: str, prefix: str) -> dict[str, Any]:
        """Build the response for an error raised during ``stage``."""
        context: dict[str, Any] = {"stage": stage, "error_class": type(error).__name__}
        if error.__cause__ is not None:
            context["cause"] = repr(error.__cause__)

        if isinstance(error, MigrationFailedError):
            context["log_text"] = error.log_text
            context["task_id"] = error.outcome.task_id
            return cls.create_error(
                error_message=str(error),
                problem_type=error.problem_type,
                detail="The migration log contains the failure marker; services were not redeployed.",
                instance=f"/deployments/{prefix}/{stage}",
                context=context,
            )

        if isinstance(error, DependencyError):
            context["operation"] = error.operation
            context["error_code"] = error.error_code

        if isinstance(error, DeployError):
            return cls.create_error(
                error_message=str(error),
                problem_type=error.problem_type,
                instance=f"/deployments/{prefix}/{stage}",
                context=context,
            )

        return cls.create_error(
            error_message=f"Unexpected error: {error}",
            instance=f"/deployments/{prefix}/{stage}",
            context=context,
        )
