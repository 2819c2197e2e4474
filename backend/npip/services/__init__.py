"""
Business Logic Services
"""

from .alert_service import AlertService, is_spike
from .email_service import EmailService
from .health_service import HealthService
from .ingestion_service import IngestionOrchestrator, IngestionResult, ingest_project_by_id
from .metrics_service import MetricsService
from .project_service import ProjectService, ProjectValidationError
from .realtime_service import RealtimePublisher
from .usage_service import UsageService

__all__ = [
    "AlertService",
    "is_spike",
    "EmailService",
    "HealthService",
    "IngestionOrchestrator",
    "IngestionResult",
    "ingest_project_by_id",
    "MetricsService",
    "ProjectService",
    "ProjectValidationError",
    "RealtimePublisher",
    "UsageService",
]
