"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the parkpal package.
"""

from parkpal.main import (
    expire_reports,
    expire_reports_pubsub,
)

__all__ = [
    "expire_reports",
    "expire_reports_pubsub",
]
