"""
NPIP Database Models
SQLAlchemy ORM, portable across PostgreSQL and SQLite
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime,
    ForeignKey, Enum, JSON, Index, UniqueConstraint, Uuid
)
from sqlalchemy.orm import declarative_base, relationship

from npip.utils.timeutils import utcnow

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class ProjectStatus(str, PyEnum):
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class ConnectorStatus(str, PyEnum):
    OK = "ok"
    DEGRADED = "degraded"


class AlertType(str, PyEnum):
    NEW_MENTIONS = "new_mentions"
    SPIKE = "spike"


class SentimentLabel(str, PyEnum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


# ============================================================================
# ACCOUNTS
# ============================================================================

class Account(Base):
    """Account as supplied by the external auth service"""
    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String(255), index=True)
    # Plan key; unknown keys resolve to the default plan
    plan = Column(String(50), default="individual", nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    projects = relationship("Project", back_populates="owner", cascade="all, delete-orphan")


# ============================================================================
# PROJECTS & MENTIONS
# ============================================================================

class Project(Base):
    """A monitored project: keywords, boolean query and source selection"""
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)
    owner_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    keywords = Column(JSON, default=list, nullable=False)
    boolean_query = Column(Text, default="", nullable=False)

    # connector id -> enabled; missing ids use the connector default
    sources = Column(JSON, default=dict, nullable=False)

    schedule_minutes = Column(Integer, default=60, nullable=False)
    geo_focus = Column(String(100), default="Nepal")

    status = Column(Enum(ProjectStatus), default=ProjectStatus.ACTIVE, nullable=False, index=True)
    last_run_at = Column(DateTime)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("Account", back_populates="projects")
    mentions = relationship("Mention", back_populates="project", cascade="all, delete-orphan", passive_deletes=True)
    connector_health = relationship("ConnectorHealth", cascade="all, delete-orphan", passive_deletes=True)
    alerts = relationship("Alert", cascade="all, delete-orphan", passive_deletes=True)


class Mention(Base):
    """One piece of content matched to a project, written after enrichment"""
    __tablename__ = "mentions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    source = Column(String(50), nullable=False)
    source_label = Column(String(255))
    keyword_matched = Column(String(255), default="")

    title = Column(Text, default="")
    text = Column(Text, default="")
    author = Column(String(255), default="")
    url = Column(Text)
    published_at = Column(DateTime)

    engagement = Column(JSON, default=dict)  # {likes, comments, shares}
    follower_count = Column(Integer, default=0)
    reach_estimate = Column(Integer, default=0)

    lang = Column(String(16))
    geo = Column(String(100))
    sentiment = Column(JSON, default=dict)  # {label, confidence}
    similarity_hash = Column(String(64))

    created_at = Column(DateTime, default=utcnow, nullable=False)

    project = relationship("Project", back_populates="mentions")

    __table_args__ = (
        UniqueConstraint('project_id', 'url', name='uq_mention_project_url'),
        Index('idx_mention_project_created', 'project_id', 'created_at'),
        Index('idx_mention_project_hash', 'project_id', 'similarity_hash'),
    )


# ============================================================================
# BOOKKEEPING
# ============================================================================

class ConnectorHealth(Base):
    """Last status of one connector for one project"""
    __tablename__ = "connector_health"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    connector_id = Column(String(50), nullable=False)

    status = Column(Enum(ConnectorStatus), default=ConnectorStatus.OK, nullable=False)
    last_error = Column(Text, default="")
    last_checked_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('project_id', 'connector_id', name='uq_health_project_connector'),
    )


class UsageRecord(Base):
    """Monthly mention counter per account"""
    __tablename__ = "usage_records"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    month = Column(String(7), nullable=False)  # YYYY-MM
    mentions_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('account_id', 'month', name='uq_usage_account_month'),
    )


class Alert(Base):
    """Write-once alert record"""
    __tablename__ = "alerts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    type = Column(Enum(AlertType), nullable=False)
    message = Column(Text, nullable=False)
    payload = Column(JSON, default=dict)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_alert_account_created', 'account_id', 'created_at'),
    )


class AuditLog(Base):
    """Audit trail for connector failures"""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid4)

    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="SET NULL"))
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="SET NULL"))
    connector_id = Column(String(50))

    level = Column(String(20), default="error", nullable=False)
    message = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_audit_project', 'project_id', 'created_at'),
    )
