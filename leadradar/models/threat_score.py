"""
Threat score history — one row per calculation. Rows are never updated;
the freshest unexpired row doubles as the score cache.
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON, Index

from leadradar.database import Base


class ThreatScoreRecord(Base):
    __tablename__ = 'lead_threat_scores'

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Text, nullable=False)
    user_id = Column(Text, nullable=False)
    overall_score = Column(Integer, nullable=False)
    threat_level = Column(Text, nullable=False)
    scoring_factors = Column(JSON, default=dict)
    threat_indicators = Column(JSON, default=dict)
    recommended_actions = Column(JSON, default=dict)
    dynamic_follow_up = Column(JSON, default=dict)
    competitive_intelligence = Column(JSON, default=dict)
    calculated_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_lead_threat_scores_lead_user', 'lead_id', 'user_id'),
        Index('ix_lead_threat_scores_calculated_at', 'calculated_at'),
    )
