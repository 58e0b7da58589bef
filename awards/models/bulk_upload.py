"""
Bulk upload batch + per-row error records.
"""
import uuid

from sqlalchemy import Column, Integer, Text, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from awards.database import Base


def _new_batch_id():
    return str(uuid.uuid4())


class BulkUploadBatch(Base):
    __tablename__ = 'bulk_upload_batches'

    id = Column(Text, primary_key=True, default=_new_batch_id)
    filename = Column(Text, nullable=False)
    upload_type = Column(Text, nullable=False)  # person | company
    status = Column(Text, nullable=False, default='processing')
    total_rows = Column(Integer, default=0)
    processed_rows = Column(Integer, default=0)
    successful_rows = Column(Integer, default=0)
    failed_rows = Column(Integer, default=0)
    draft_rows = Column(Integer, default=0)
    approved_rows = Column(Integer, default=0)
    uploaded_by = Column(Text, nullable=True)
    csv_headers = Column(JSON, nullable=True)
    error_summary = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
    approval_completed_at = Column(DateTime(timezone=True), nullable=True)

    errors = relationship(
        'BulkUploadError', back_populates='batch',
        cascade='all, delete-orphan', order_by='BulkUploadError.row_number',
    )
    nominations = relationship('Nomination', back_populates='batch')

    def to_dict(self):
        return {
            'id': self.id,
            'filename': self.filename,
            'uploadType': self.upload_type,
            'status': self.status,
            'totalRows': self.total_rows or 0,
            'processedRows': self.processed_rows or 0,
            'successfulRows': self.successful_rows or 0,
            'failedRows': self.failed_rows or 0,
            'draftRows': self.draft_rows or 0,
            'approvedRows': self.approved_rows or 0,
            'uploadedBy': self.uploaded_by,
            'errorSummary': self.error_summary or {},
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'completedAt': self.completed_at.isoformat() if self.completed_at else None,
            'approvalCompletedAt': (
                self.approval_completed_at.isoformat() if self.approval_completed_at else None
            ),
        }


class BulkUploadError(Base):
    __tablename__ = 'bulk_upload_errors'

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(Text, ForeignKey('bulk_upload_batches.id', ondelete='CASCADE'), nullable=False, index=True)
    row_number = Column(Integer, nullable=False)
    field_name = Column(Text, nullable=True)
    error_message = Column(Text, nullable=False)
    error_type = Column(Text, nullable=False)  # validation | missing_required | duplicate | processing
    raw_data = Column(JSON, nullable=True)
    suggested_fix = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    batch = relationship('BulkUploadBatch', back_populates='errors')

    def to_dict(self):
        return {
            'rowNumber': self.row_number,
            'field': self.field_name,
            'message': self.error_message,
            'type': self.error_type,
            'suggestedFix': self.suggested_fix,
            'rawData': self.raw_data,
        }
