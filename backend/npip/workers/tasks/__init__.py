"""
Celery Tasks
"""

from .ingestion_tasks import dispatch_ingestion_tick, ingest_project

__all__ = [
    "dispatch_ingestion_tick",
    "ingest_project",
]
