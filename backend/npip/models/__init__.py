"""
Database Models for NPIP
"""

from .database import (
    Base,
    # Enums
    ProjectStatus,
    ConnectorStatus,
    AlertType,
    SentimentLabel,
    # Models
    Account,
    Project,
    Mention,
    ConnectorHealth,
    UsageRecord,
    Alert,
    AuditLog,
)

__all__ = [
    "Base",
    # Enums
    "ProjectStatus",
    "ConnectorStatus",
    "AlertType",
    "SentimentLabel",
    # Models
    "Account",
    "Project",
    "Mention",
    "ConnectorHealth",
    "UsageRecord",
    "Alert",
    "AuditLog",
]
