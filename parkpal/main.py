"""Cloud Function Entry Point.

This module provides the entry points for Google Cloud Functions.
They're thin wrappers that load configuration and run the expiry sweep,
which purges stale parking reports on a Cloud Scheduler cadence.
"""

import logging
import os
from typing import Any

import functions_framework
from flask import Request

from parkpal.core.config import Config, validate_config
from parkpal.orchestrator import run_expiry_sweep
from parkpal.shell.config_loader import load_config, load_config_from_env
from parkpal.shell.firestore_client import FirestoreClient, FirestoreConfig
from parkpal.shell.report_store import ReportStore


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("FIRESTORE_PROJECT"):
        return load_config_from_env()
    else:
        return load_config()


def _build_report_store(config: Config) -> ReportStore:
    """Create the report store for a configuration."""
    firestore_client = FirestoreClient(
        FirestoreConfig(
            project_id=config.firestore_project,
            database=config.firestore_database,
        )
    )
    return ReportStore(
        firestore_client,
        collection=config.reports_collection,
        users_collection=config.users_collection,
    )


@functions_framework.http
def expire_reports(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function entry point.

    This function is triggered by Cloud Scheduler or direct HTTP requests.
    It deletes every report past the retention window.

    Args:
        request: Flask request object (not used, but required by framework)

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    logger.info("Starting report expiry sweep")

    try:
        config = _get_config()

        validation = validate_config(config)
        if not validation.valid:
            messages = [f"{e.field}: {e.message}" for e in validation.critical_errors]
            logger.warning("Invalid configuration: %s", "; ".join(messages))
            return {
                "status": "error",
                "message": "Invalid configuration",
                "errors": messages,
            }, 400

        result = run_expiry_sweep(_build_report_store(config), config.retention_ms)

        response = {
            "status": "success" if result.success else "partial_failure",
            "summary": result.summary,
            "reports_checked": result.reports_checked,
            "reports_deleted": len(result.deleted),
        }

        if result.errors:
            response["errors"] = result.errors

        logger.info("Completed: %s", result.summary)

        status_code = 200 if result.success else 207  # 207 = Multi-Status
        return response, status_code

    except Exception as e:
        logger.exception("Unexpected error in expiry sweep")
        return {
            "status": "error",
            "message": str(e),
        }, 500


@functions_framework.cloud_event
def expire_reports_pubsub(cloud_event: Any) -> None:
    """Pub/Sub Cloud Function entry point.

    Alternative trigger for Cloud Scheduler via Pub/Sub.

    Args:
        cloud_event: CloudEvent from Pub/Sub
    """
    logger.info("Starting report expiry sweep (Pub/Sub trigger)")

    try:
        config = _get_config()
        result = run_expiry_sweep(_build_report_store(config), config.retention_ms)

        logger.info("Completed: %s", result.summary)

        for error in result.errors:
            logger.error("Error: %s", error)

    except Exception:
        logger.exception("Unexpected error in expiry sweep")
        raise
