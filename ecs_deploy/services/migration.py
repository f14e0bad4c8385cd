"""Database migration task execution."""

import asyncio
from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from ..constants import (
    ERROR_RESOURCE_NOT_FOUND,
    LAUNCH_TYPE_FARGATE,
    MIGRATION_STARTED_BY,
    TASK_STATUS_STOPPED,
)
from ..core.aws_clients import call_aws
from ..core.exceptions import (
    DependencyError,
    MigrationFailedError,
    NotFoundError,
    PipelineCancelledError,
    TaskWaitTimeoutError,
)
from ..core.failure_markers import FailureDetector, MarkerDetector
from ..core.settings import DeploymentParameters, PipelineSettings
from ..models.enums import TaskState
from ..models.migration import MigrationOutcome, TaskHandle
from ..models.network import NetworkContext


class MigrationRunner:
    """Runs the one-shot migration task and classifies its log output.

    The task moves through LAUNCHED, POLLING and STOPPED before it is
    classified as SUCCEEDED or FAILED by the failure detector.
    """

    def __init__(
        self,
        ecs_client: Any,
        logs_client: Any,
        settings: PipelineSettings | None = None,
        detector: FailureDetector | None = None,
    ):
        self.ecs = ecs_client
        self.logs = logs_client
        self.settings = settings or PipelineSettings()
        self.detector = detector or MarkerDetector(self.settings.failure_marker)
        self.state: TaskState | None = None
        self.logger: BoundLogger = structlog.get_logger().bind(component="migration_runner")

    async def run_and_await(
        self,
        network_context: NetworkContext,
        params: DeploymentParameters,
        cancel_event: asyncio.Event | None = None,
    ) -> MigrationOutcome:
        """Launch the migration task, wait for it to stop and classify its log.

        Args:
            network_context: VPC placement for the task
            params: Deployment parameters of the run
            cancel_event: Optional event that aborts the wait when set

        Returns:
            The SUCCEEDED outcome with the captured log lines

        Raises:
            MigrationFailedError: The log contains the failure marker
            TaskWaitTimeoutError: The task did not stop within the configured wait
            PipelineCancelledError: ``cancel_event`` was set before launch or during the wait
            NotFoundError: The task's log stream does not exist
            DependencyError: An ECS or CloudWatch Logs call failed
        """
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelledError("Cancelled before launching the migration task")

        handle = await self.launch(network_context, params)
        exit_code = await self.wait_until_stopped(handle, cancel_event)

        task_id = handle.primary_task_id
        log_lines = await self.fetch_log_lines(params.log_group, params.migration_log_stream(task_id))
        self.logger.debug("Migration log", task_id=task_id, log="\n".join(log_lines))

        outcome = self.classify(log_lines, task_id=task_id, exit_code=exit_code)
        if not outcome.succeeded:
            self.logger.error(
                "Migration failed",
                task_id=task_id,
                detector=repr(self.detector),
                exit_code=exit_code,
            )
            raise MigrationFailedError(outcome)

        self.logger.info("Migration completed", task_id=task_id, log_lines=len(log_lines))
        return outcome

    async def launch(self, network_context: NetworkContext, params: DeploymentParameters) -> TaskHandle:
        """Start one migration task without a public IP."""
        response = await call_aws(
            self.ecs,
            "run_task",
            cluster=params.cluster,
            taskDefinition=params.migration_task_definition,
            launchType=LAUNCH_TYPE_FARGATE,
            startedBy=MIGRATION_STARTED_BY,
            count=1,
            networkConfiguration=network_context.awsvpc_configuration(),
            overrides={"containerOverrides": [{"name": params.container}]},
        )

        task_arns = tuple(task["taskArn"] for task in response.get("tasks", []))
        if not task_arns:
            failures = response.get("failures", [])
            reasons = ", ".join(
                f"{f.get('arn', '?')}: {f.get('reason', 'unknown')}" for f in failures
            )
            raise DependencyError(
                f"run_task started no tasks for {params.migration_task_definition}"
                + (f" ({reasons})" if reasons else ""),
                operation="run_task",
            )

        handle = TaskHandle(cluster=params.cluster, task_arns=task_arns)
        self.state = TaskState.LAUNCHED
        self.logger.info(
            "DB migration task started",
            cluster=handle.cluster,
            task_definition=params.migration_task_definition,
            task_ids=handle.task_ids,
        )
        return handle

    async def wait_until_stopped(
        self, handle: TaskHandle, cancel_event: asyncio.Event | None = None
    ) -> int | None:
        """Poll until every task in ``handle`` is STOPPED.

        Returns:
            Exit code of the first container of the primary task, if reported
        """
        self.state = TaskState.POLLING
        try:
            async with asyncio.timeout(self.settings.task_wait_timeout):
                while True:
                    if cancel_event is not None and cancel_event.is_set():
                        raise PipelineCancelledError(
                            f"Cancelled while waiting for tasks {', '.join(handle.task_ids)}"
                        )

                    tasks = await self._describe_tasks(handle)
                    stopped = {
                        t["taskArn"] for t in tasks if t.get("lastStatus") == TASK_STATUS_STOPPED
                    }
                    # A task missing from the response is still pending
                    pending = [arn for arn in handle.task_arns if arn not in stopped]
                    if not pending:
                        break

                    self.logger.debug("Waiting for migration task", pending=pending)
                    await self._pause(cancel_event)
        except TimeoutError as e:
            raise TaskWaitTimeoutError(
                f"Tasks {', '.join(handle.task_ids)} did not stop within "
                f"{self.settings.task_wait_timeout}s"
            ) from e

        self.state = TaskState.STOPPED
        exit_code = self._exit_code(tasks, handle.task_arns[0])
        self.logger.info("Migration task stopped", task_ids=handle.task_ids, exit_code=exit_code)
        return exit_code

    async def fetch_log_lines(self, log_group: str, log_stream: str) -> list[str]:
        """Read every event of ``log_stream`` from the start, in order."""
        lines: list[str] = []
        request: dict[str, Any] = {
            "logGroupName": log_group,
            "logStreamName": log_stream,
            "startFromHead": True,
        }
        while True:
            try:
                response = await call_aws(self.logs, "get_log_events", **request)
            except DependencyError as e:
                if e.error_code == ERROR_RESOURCE_NOT_FOUND:
                    raise NotFoundError(f"Log stream {log_group}/{log_stream} not found") from e
                raise

            lines.extend(event.get("message", "") for event in response.get("events", []))

            # The forward token repeats once the end of the stream is reached
            next_token = response.get("nextForwardToken")
            if not next_token or next_token == request.get("nextToken"):
                break
            request["nextToken"] = next_token

        return lines

    def classify(
        self, log_lines: list[str], task_id: str | None = None, exit_code: int | None = None
    ) -> MigrationOutcome:
        """Turn log lines into an outcome using the failure detector."""
        failed = self.detector(log_lines)
        self.state = TaskState.FAILED if failed else TaskState.SUCCEEDED
        return MigrationOutcome(
            succeeded=not failed,
            log_lines=tuple(log_lines),
            task_id=task_id,
            exit_code=exit_code,
        )

    async def _describe_tasks(self, handle: TaskHandle) -> list[dict[str, Any]]:
        response = await call_aws(
            self.ecs, "describe_tasks", cluster=handle.cluster, tasks=handle.task_ids
        )
        failures = response.get("failures", [])
        if failures:
            reasons = ", ".join(
                f"{f.get('arn', '?')}: {f.get('reason', 'unknown')}" for f in failures
            )
            raise DependencyError(f"describe_tasks reported failures: {reasons}", operation="describe_tasks")
        return response.get("tasks", [])

    async def _pause(self, cancel_event: asyncio.Event | None) -> None:
        interval = self.settings.task_poll_interval
        if cancel_event is None:
            await asyncio.sleep(interval)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=interval)
        except TimeoutError:
            return
        raise PipelineCancelledError("Cancelled while waiting for the migration task")

    @staticmethod
    def _exit_code(tasks: list[dict[str, Any]], task_arn: str) -> int | None:
        for task in tasks:
            if task.get("taskArn") != task_arn:
                continue
            for container in task.get("containers", []):
                if container.get("exitCode") is not None:
                    return int(container["exitCode"])
        return None
