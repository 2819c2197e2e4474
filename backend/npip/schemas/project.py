"""
Project Schemas
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class ProjectCreate(BaseModel):
    """Project creation request"""
    name: str = Field(..., min_length=1, max_length=255)
    keywords: List[str] = []
    boolean_query: str = ""
    sources: Dict[str, bool] = {}
    schedule_minutes: Optional[int] = Field(None, ge=1)
    geo_focus: Optional[str] = Field(None, max_length=100)

    @field_validator("keywords")
    @classmethod
    def clean_keywords(cls, v: List[str]) -> List[str]:
        return [k.strip() for k in v if k.strip()]


class ProjectUpdate(BaseModel):
    """Project update request"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    keywords: Optional[List[str]] = None
    boolean_query: Optional[str] = None
    sources: Optional[Dict[str, bool]] = None
    schedule_minutes: Optional[int] = Field(None, ge=1)
    geo_focus: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = Field(None, pattern="^(active|paused|archived)$")


class ProjectResponse(BaseModel):
    """Project response"""
    id: UUID
    name: str
    keywords: List[str]
    boolean_query: str
    sources: Dict[str, bool]
    schedule_minutes: int
    geo_focus: str
    status: str
    last_run_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class IngestionResultResponse(BaseModel):
    """Outcome of a manual ingestion run"""
    inserted: int
    reason: Optional[str] = None
