"""Command line entry point for the migrate-then-redeploy pipeline."""

import argparse
import asyncio
import os
import signal
import sys

from botocore.exceptions import BotoCoreError

from ecs_deploy.core.aws_clients import create_clients
from ecs_deploy.core.exceptions import ConfigurationError
from ecs_deploy.core.logging_config import get_logger, setup_logging
from ecs_deploy.core.settings import load_parameters, load_settings
from ecs_deploy.models.deployment import DeploymentResult
from ecs_deploy.services.pipeline import DeploymentPipeline


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    from dotenv import load_dotenv

    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Run the database migration task on ECS, then redeploy the API and worker services"
    )
    parser.add_argument("--region", help="AWS region (default: INPUT_AWS_REGION)")
    parser.add_argument("--prefix", help="Resource name prefix (default: INPUT_AWS_RESOURCE_PREFIX)")
    parser.add_argument("--profile", default=os.getenv("AWS_PROFILE"), help="AWS profile name")
    parser.add_argument("--config", default=os.getenv("ECS_DEPLOY_CONFIG"), help="YAML config file")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--log-file", default=os.getenv("LOG_FILE"), help="Also write JSON logs here")
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration and exit"
    )

    return parser.parse_args(argv)


def report_failure(message: str) -> None:
    """Report a failed run through the host's status mechanism."""
    if os.getenv("GITHUB_ACTIONS") == "true":
        print(f"::error::{_escape_workflow_data(message)}", file=sys.stdout)
    print(message, file=sys.stderr)


def _escape_workflow_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _failure_message(result: DeploymentResult) -> str:
    error = result.error or {}
    return str(error.get("error") or f"Deployment failed during {result.stage.value}")


async def _run(pipeline: DeploymentPipeline) -> DeploymentResult:
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)

    def request_cancel() -> None:
        # A second signal falls through to the default handler
        cancel_event.set()
        for sig in signals:
            loop.remove_signal_handler(sig)

    for sig in signals:
        try:
            loop.add_signal_handler(sig, request_cancel)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on some platforms and threads
            pass
    try:
        return await pipeline.run(cancel_event=cancel_event)
    finally:
        for sig in signals:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_args(argv)
    setup_logging(log_level=args.log_level, log_file=args.log_file)
    logger = get_logger()

    try:
        params = load_parameters(args.region, args.prefix, args.config)
        settings = load_settings(args.config)
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        report_failure(str(e))
        return 2

    if args.validate_config:
        logger.info(
            "Configuration is valid",
            parameters=params.model_dump(),
            settings=settings.model_dump(mode="json"),
        )
        return 0

    try:
        clients = create_clients(params.region, profile=args.profile)
    except BotoCoreError as e:
        logger.error("Failed to create AWS clients", error=str(e), exc_info=True)
        report_failure(f"Failed to create AWS clients: {e}")
        return 1

    pipeline = DeploymentPipeline.from_clients(params, clients, settings=settings)
    result = asyncio.run(_run(pipeline))

    if not result.success:
        report_failure(_failure_message(result))
        return 1

    logger.info("Deployment succeeded", steps=result.steps)
    return 0


if __name__ == "__main__":
    sys.exit(main())
