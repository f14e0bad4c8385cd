"""Enum definitions for the ECS deploy pipeline."""

from enum import Enum


class TaskState(Enum):
    """Lifecycle of the migration task as observed by the runner."""

    LAUNCHED = "launched"
    POLLING = "polling"
    STOPPED = "stopped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ResolutionPolicy(Enum):
    """How a tag lookup that matches several resources is resolved."""

    FIRST = "first"  # provider order, warn
    UNIQUE = "unique"  # fail on ambiguity


class PipelineStage(Enum):
    """Stages of a deployment run, in execution order."""

    NETWORK = "network"
    MIGRATION = "migration"
    DEPLOY = "deploy"
    COMPLETE = "complete"
