"""
Bulk upload orchestration — CSV → validation → batch writer → batch report.

  parse (fail fast) → create batch → validate → store errors → write rows → finalize

MalformedInput and UploadRejected are raised before the batch row exists, so a
structurally bad file leaves no trace in the database.
"""
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

from awards.config import MAX_UPLOAD_BYTES, MAX_UPLOAD_ROWS, BULK_UPLOAD_INITIAL_STATE, PENDING_STATES
from awards.models.bulk_upload import BulkUploadBatch, BulkUploadError
from awards.models.nominee import Nominee
from awards.models.nomination import Nomination
from awards.services.csv_ingest import parse_csv, decode_upload, EXPECTED_HEADERS
from awards.services.validation import validate_rows, normalize_email
from awards.services.batch_writer import write_rows

logger = logging.getLogger('services.bulk_upload')


class UploadRejected(Exception):
    """The upload itself is unacceptable (size, row count, file type)."""


def check_upload(filename: str, size: int):
    if not filename or not filename.lower().endswith('.csv'):
        raise UploadRejected('Only CSV files are allowed')
    if size > MAX_UPLOAD_BYTES:
        raise UploadRejected(f'File too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)}MB')


def _existing_emails(session, emails) -> set:
    emails = [e for e in emails if e]
    if not emails:
        return set()
    found = set()
    # Chunked to stay under driver bind-parameter limits
    for i in range(0, len(emails), 500):
        chunk = emails[i:i + 500]
        rows = session.query(Nominee.email_normalized).filter(Nominee.email_normalized.in_(chunk)).all()
        found.update(r[0] for r in rows)
    return found


def _store_errors(session, batch_id: str, errors, rows_by_number: Dict[int, dict]):
    for err in errors:
        session.add(BulkUploadError(
            batch_id=batch_id,
            row_number=err.row,
            field_name=err.field,
            error_message=err.message,
            error_type=err.error_type,
            raw_data=rows_by_number.get(err.row),
            suggested_fix=err.suggested_fix,
        ))
    session.commit()


def _final_status(total: int, successful: int) -> str:
    if successful == total:
        return 'completed'
    if successful == 0:
        return 'failed'
    return 'partial'


def next_steps(summary: Dict, initial_state: str) -> List[str]:
    steps = []
    if summary['successfulUploads']:
        if initial_state == 'draft':
            steps.append(f"Review {summary['successfulUploads']} draft nominations in the admin panel")
            steps.append('Approve drafts to publish them and sync them to HubSpot and Loops')
        else:
            steps.append(f"{summary['successfulUploads']} nominations are awaiting review")
    if summary['failedUploads']:
        steps.append(f"Fix {summary['failedUploads']} rows listed in the error report and re-upload them")
    if summary['duplicatesFound']:
        steps.append('Remove or change duplicate email addresses')
    if not steps:
        steps.append('Nothing was uploaded')
    return steps


def process_upload(session, text: str, nominee_type: str, filename: str,
                   uploaded_by: Optional[str] = None, initial_state: Optional[str] = None) -> Dict:
    """
    Run a whole bulk upload and return the report.

    Raises:
        MalformedInput: header/structure problems (nothing persisted).
        UploadRejected: too many rows (nothing persisted).
    """
    initial_state = initial_state or BULK_UPLOAD_INITIAL_STATE
    rows = parse_csv(text, nominee_type)
    if len(rows) > MAX_UPLOAD_ROWS:
        raise UploadRejected(f'Too many rows. Maximum is {MAX_UPLOAD_ROWS} rows per upload')

    batch = BulkUploadBatch(
        filename=filename,
        upload_type=nominee_type,
        status='processing',
        total_rows=len(rows),
        uploaded_by=uploaded_by,
        csv_headers=EXPECTED_HEADERS[nominee_type],
    )
    session.add(batch)
    session.commit()
    batch_id = batch.id
    logger.info("Batch %s created: %s (%d %s rows)", batch_id, filename, len(rows), nominee_type,
                extra={'batch_id': batch_id})

    existing = _existing_emails(session, {normalize_email(r.email) for r in rows})
    valid_rows, validation_errors = validate_rows(rows, existing_emails=existing)

    rows_by_number = {r.row_number: r.raw for r in rows}
    _store_errors(session, batch_id, validation_errors, rows_by_number)

    result = write_rows(session, batch, valid_rows, uploaded_by=uploaded_by, initial_state=initial_state)
    _store_errors(session, batch_id, result.errors, rows_by_number)

    all_errors = validation_errors + result.errors
    failed_rows = len({e.row for e in all_errors})
    type_counts = Counter(e.error_type for e in all_errors)

    batch = session.get(BulkUploadBatch, batch_id)
    batch.processed_rows = len(rows)
    batch.successful_rows = result.successful
    batch.failed_rows = failed_rows
    batch.draft_rows = result.successful if initial_state == 'draft' else 0
    batch.status = _final_status(len(rows), result.successful)
    batch.error_summary = dict(type_counts)
    batch.completed_at = datetime.now(timezone.utc)
    session.commit()

    summary = {
        'totalRows': len(rows),
        'validationErrors': len(validation_errors),
        'successfulUploads': result.successful,
        'failedUploads': failed_rows,
        'pendingApproval': result.successful,
        'duplicatesFound': type_counts.get('duplicate', 0),
    }
    logger.info("Batch %s finished: %s (%s)", batch_id, batch.status, summary,
                extra={'batch_id': batch_id})
    return {
        'success': True,
        'batchId': batch_id,
        'status': batch.status,
        'summary': summary,
        'errors': [e.to_dict() for e in all_errors],
        'nextSteps': next_steps(summary, initial_state),
    }


def process_upload_bytes(session, data: bytes, nominee_type: str, filename: str, **kwargs) -> Dict:
    check_upload(filename, len(data))
    return process_upload(session, decode_upload(data), nominee_type, filename, **kwargs)


# ── Batch queries ────────────────────────────────────────────────────────────

def list_batches(session, limit: int = 50) -> List[Dict]:
    batches = (
        session.query(BulkUploadBatch)
        .order_by(BulkUploadBatch.created_at.desc())
        .limit(limit)
        .all()
    )
    return [b.to_dict() for b in batches]


def get_batch_detail(session, batch_id: str) -> Optional[Dict]:
    batch = session.get(BulkUploadBatch, batch_id)
    if batch is None:
        return None
    nominations = (
        session.query(Nomination)
        .filter(Nomination.bulk_upload_batch_id == batch_id)
        .order_by(Nomination.bulk_upload_row_number)
        .all()
    )
    data = batch.to_dict()
    data['errors'] = [e.to_dict() for e in batch.errors]
    data['nominations'] = [n.to_dict() for n in nominations]
    data['pendingCount'] = sum(1 for n in nominations if n.state in PENDING_STATES)
    return data
