"""Migration task models."""

from pydantic import BaseModel, ConfigDict, computed_field, field_validator


class TaskHandle(BaseModel):
    """Identifiers of the launched migration task(s)."""

    model_config = ConfigDict(frozen=True)

    cluster: str
    task_arns: tuple[str, ...]

    @field_validator("task_arns")
    @classmethod
    def _require_task(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one task ARN is required")
        return value

    @property
    def task_ids(self) -> list[str]:
        """Task ids, the last path segment of each ARN."""
        return [arn.rsplit("/", 1)[-1] for arn in self.task_arns]

    @property
    def primary_task_id(self) -> str:
        return self.task_ids[0]


class MigrationOutcome(BaseModel):
    """Classified result of one migration run."""

    model_config = ConfigDict(frozen=True)

    succeeded: bool
    log_lines: tuple[str, ...] = ()
    task_id: str | None = None
    exit_code: int | None = None  # diagnostic only, not used for classification

    @computed_field
    @property
    def log_text(self) -> str:
        return "\n".join(self.log_lines)
