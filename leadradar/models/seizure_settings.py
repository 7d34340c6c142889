"""
Per-user seizure settings.
"""
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, JSON
from sqlalchemy.sql import func

from leadradar.database import Base


class SeizureSettings(Base):
    __tablename__ = 'seizure_settings'

    user_id = Column(Text, primary_key=True)
    warmth_threshold = Column(Integer, nullable=False, default=65)
    ad_channels = Column(JSON, default=lambda: ['facebook', 'google'])
    ab_testing_mode = Column(Boolean, nullable=False, default=False)
    auto_dialer_enabled = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            'warmth_threshold': self.warmth_threshold,
            'ad_channels': list(self.ad_channels or []),
            'ab_testing_mode': bool(self.ab_testing_mode),
            'auto_dialer_enabled': bool(self.auto_dialer_enabled),
        }
