"""
Mention & Metrics Schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class MentionResponse(BaseModel):
    """Stored mention"""
    id: UUID
    project_id: UUID
    source: str
    source_label: Optional[str]
    keyword_matched: str
    title: str
    text: str
    author: str
    url: Optional[str]
    published_at: Optional[datetime]
    engagement: Dict[str, Any]
    follower_count: int
    reach_estimate: int
    lang: Optional[str]
    geo: Optional[str]
    sentiment: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True


class VolumePoint(BaseModel):
    date: str
    count: int


class SentimentShare(BaseModel):
    label: str
    count: int


class SourceCount(BaseModel):
    source: str
    count: int


class AuthorCount(BaseModel):
    author: str
    count: int


class MetricsResponse(BaseModel):
    """Project dashboard aggregates"""
    volume: List[VolumePoint]
    sentiment_share: List[SentimentShare]
    top_sources: List[SourceCount]
    top_authors: List[AuthorCount]
