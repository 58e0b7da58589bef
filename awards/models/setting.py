"""
Key/value application settings (nomination window).

Values are stored as text; awards.services.settings owns the typing.
"""
from sqlalchemy import Column, Text, DateTime
from sqlalchemy.sql import func

from awards.database import Base


class AppSetting(Base):
    __tablename__ = 'app_settings'

    key = Column(Text, primary_key=True)
    value = Column(Text, nullable=False, default='')
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    updated_by = Column(Text, nullable=True)
