"""Run the database migration task on ECS, then redeploy the API and worker services."""

__version__ = "0.1.0"
