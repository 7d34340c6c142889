"""
Per-organization threat scoring overrides (weights, level thresholds, cache window).
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON
from sqlalchemy.sql import func

from leadradar.database import Base


class OrgScoringConfig(Base):
    __tablename__ = 'lead_scoring_config'

    organization_id = Column(Text, primary_key=True)
    scoring_weights = Column(JSON, nullable=True)
    threat_thresholds = Column(JSON, nullable=True)
    cache_duration_hours = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
