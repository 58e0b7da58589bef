"""
Outbox tables — one per external system, drained by the sync runners.
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON, Index
from sqlalchemy.sql import func

from awards.database import Base


class _OutboxMixin:
    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    status = Column(Text, nullable=False, default='pending')
    attempt_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'eventType': self.event_type,
            'payload': self.payload,
            'status': self.status,
            'attemptCount': self.attempt_count,
            'lastError': self.last_error,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class HubspotOutbox(_OutboxMixin, Base):
    __tablename__ = 'hubspot_outbox'
    __table_args__ = (
        Index('ix_hubspot_outbox_status_created', 'status', 'created_at'),
    )


class LoopsOutbox(_OutboxMixin, Base):
    __tablename__ = 'loops_outbox'
    __table_args__ = (
        Index('ix_loops_outbox_status_created', 'status', 'created_at'),
    )
