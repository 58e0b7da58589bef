"""
Nomination — links a nominator and a nominee to one award subcategory.

Carries the approval state machine, vote counters, upload provenance and the
outbound sync flags.
"""
from sqlalchemy import (
    Column, Integer, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from awards.database import Base


class Nomination(Base):
    __tablename__ = 'nominations'

    id = Column(Integer, primary_key=True, autoincrement=True)
    nominator_id = Column(Integer, ForeignKey('nominators.id'), nullable=False)
    nominee_id = Column(Integer, ForeignKey('nominees.id', ondelete='CASCADE'), nullable=False)
    category_group_id = Column(Text, nullable=False)
    subcategory_id = Column(Text, nullable=False)
    state = Column(Text, nullable=False, default='submitted')

    votes = Column(Integer, nullable=False, default=0)
    additional_votes = Column(Integer, nullable=False, default=0)

    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Text, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)

    upload_source = Column(Text, nullable=False, default='form')  # form | admin | bulk_upload
    bulk_upload_batch_id = Column(Text, ForeignKey('bulk_upload_batches.id'), nullable=True)
    bulk_upload_row_number = Column(Integer, nullable=True)
    uploaded_by = Column(Text, nullable=True)

    hubspot_sync_pending = Column(Boolean, nullable=False, default=False)
    hubspot_synced_at = Column(DateTime(timezone=True), nullable=True)
    loops_sync_status = Column(Text, nullable=True)  # pending | synced | failed
    loops_synced_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    nominator = relationship('Nominator', lazy='joined')
    nominee = relationship('Nominee', lazy='joined')
    batch = relationship('BulkUploadBatch', back_populates='nominations')

    __table_args__ = (
        UniqueConstraint('nominee_id', 'subcategory_id', name='uq_nomination_nominee_subcategory'),
        Index('ix_nominations_state', 'state'),
        Index('ix_nominations_subcategory_id', 'subcategory_id'),
        Index('ix_nominations_bulk_upload_batch_id', 'bulk_upload_batch_id'),
    )

    @property
    def total_votes(self):
        """Public vote total: real votes plus the admin override."""
        return (self.votes or 0) + (self.additional_votes or 0)

    def to_dict(self, include_nominator=False):
        data = {
            'id': self.id,
            'state': self.state,
            'categoryGroupId': self.category_group_id,
            'subcategoryId': self.subcategory_id,
            'votes': self.votes or 0,
            'additionalVotes': self.additional_votes or 0,
            'totalVotes': self.total_votes,
            'approvedAt': self.approved_at.isoformat() if self.approved_at else None,
            'approvedBy': self.approved_by,
            'rejectedAt': self.rejected_at.isoformat() if self.rejected_at else None,
            'rejectionReason': self.rejection_reason,
            'adminNotes': self.admin_notes,
            'uploadSource': self.upload_source,
            'bulkUploadBatchId': self.bulk_upload_batch_id,
            'bulkUploadRowNumber': self.bulk_upload_row_number,
            'hubspotSyncPending': bool(self.hubspot_sync_pending),
            'loopsSyncStatus': self.loops_sync_status,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'nominee': self.nominee.to_dict() if self.nominee else None,
        }
        if include_nominator and self.nominator:
            data['nominator'] = self.nominator.to_dict()
        return data
