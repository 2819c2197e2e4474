"""
Connector, Health & Alert Schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class ConnectorCapabilitiesResponse(BaseModel):
    realtime: bool
    search: bool
    limits: str


class ConnectorResponse(BaseModel):
    """Connector descriptor"""
    id: str
    display_name: str
    enabled_by_default: bool
    capabilities: ConnectorCapabilitiesResponse


class ConnectorHealthResponse(BaseModel):
    """Latest health of one connector for one project"""
    connector_id: str
    status: str
    last_error: Optional[str]
    last_checked_at: datetime

    class Config:
        from_attributes = True


class AlertResponse(BaseModel):
    """Alert record"""
    id: UUID
    project_id: UUID
    type: str
    message: str
    payload: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True
