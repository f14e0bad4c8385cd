"""Centralized constants for ECS deploy to eliminate duplicate strings."""

# Resource name suffixes (all names derive from the resource prefix)
VPC_SUFFIX = "-vpc"
TASK_SECURITY_GROUP_SUFFIX = "-sg-ecs-tasks"
CLUSTER_SUFFIX = "-cluster"
CONTAINER_SUFFIX = "-container"
API_SERVICE_SUFFIX = "-api-ecs-service"
WORKER_SERVICE_SUFFIX = "-worker-ecs-service"
LOG_GROUP_SUFFIX = "/ecs"
MIGRATION_TASK_DEFINITION_SUFFIX = "-task-db-migrate"

# Migration task launch
MIGRATION_STARTED_BY = "db-migrate"
MIGRATION_LOG_STREAM_PREFIX = "dbmigrate"
LAUNCH_TYPE_FARGATE = "FARGATE"
ASSIGN_PUBLIC_IP_DISABLED = "DISABLED"

# Failure detection
DEFAULT_FAILURE_MARKER = "rake aborted"

# ECS task status
TASK_STATUS_STOPPED = "STOPPED"

# EC2 filter names
FILTER_TAG_NAME = "tag:Name"
FILTER_VPC_ID = "vpc-id"
FILTER_GROUP_NAME = "group-name"

# AWS error codes
ERROR_RESOURCE_NOT_FOUND = "ResourceNotFoundException"

# GitHub Actions inputs
INPUT_AWS_REGION = "INPUT_AWS_REGION"
INPUT_AWS_RESOURCE_PREFIX = "INPUT_AWS_RESOURCE_PREFIX"
