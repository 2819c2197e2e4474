"""
Pydantic Schemas for API Request/Response validation
"""

from .project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    IngestionResultResponse,
)
from .monitoring import (
    ConnectorResponse,
    ConnectorHealthResponse,
    AlertResponse,
)
from .mention import (
    MentionResponse,
    MetricsResponse,
)

__all__ = [
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "IngestionResultResponse",
    "ConnectorResponse",
    "ConnectorHealthResponse",
    "AlertResponse",
    "MentionResponse",
    "MetricsResponse",
]
