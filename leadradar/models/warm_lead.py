"""
Warm lead — one row per detected lead, re-scored in place, never deleted.
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON, Index
from sqlalchemy.sql import func

from leadradar.database import Base


class WarmLead(Base):
    __tablename__ = 'warm_leads'

    id = Column(Text, primary_key=True)  # wl_<uuid>
    user_id = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    company = Column(Text, nullable=True)
    source = Column(Text, nullable=False, default='website')
    warmth_score = Column(Integer, nullable=False, default=0)
    status = Column(Text, nullable=False, default='detected')
    behavior_data = Column(JSON, default=dict)
    seizure_history = Column(JSON, default=list)
    first_detected = Column(DateTime(timezone=True), nullable=False)
    last_activity = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_warm_leads_user_id', 'user_id'),
        Index('ix_warm_leads_user_email', 'user_id', 'email'),
    )
