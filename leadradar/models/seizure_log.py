"""
Seizure activity log — append-only record of planning and execution events.
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON, Index
from sqlalchemy.sql import func

from leadradar.database import Base


class SeizureLog(Base):
    __tablename__ = 'seizure_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    warm_lead_id = Column(Text, nullable=False)
    user_id = Column(Text, nullable=False)
    action_type = Column(Text, nullable=False)  # seizure_planned / seizure_executed / status_changed
    action_data = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_seizure_logs_user_id', 'user_id'),
        Index('ix_seizure_logs_warm_lead_id', 'warm_lead_id'),
    )
