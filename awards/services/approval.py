"""
Approval gate — the only path from draft/submitted to approved/rejected.

Approval assigns the nominee's public slug + live URL, flags the nomination for
sync and writes one `nomination_approved` row into each outbox in the same
transaction. Rejection records a reason and never syncs.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from awards.config import DECISION_STATES, PENDING_STATES, PUBLIC_BASE_URL, REALTIME_SYNC
from awards.models.bulk_upload import BulkUploadBatch
from awards.models.nominee import Nominee
from awards.models.nomination import Nomination
from awards.services import outbox

logger = logging.getLogger('services.approval')


class NominationNotFound(Exception):
    def __init__(self, nomination_id):
        self.nomination_id = nomination_id
        super().__init__(f"Nomination {nomination_id} not found")


class InvalidTransition(Exception):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move nomination from '{current}' to '{requested}'")


class ApprovalError(Exception):
    """Decision request is incomplete (e.g. rejection without a reason)."""


# ── Slugs ────────────────────────────────────────────────────────────────────

def slugify(text: str) -> str:
    slug = (text or '').lower()
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-_')


def unique_slug(session, base: str, nominee_id: Optional[int] = None) -> str:
    """First free slug among base, base-2, base-3, ... (ignoring the nominee itself)."""
    base = base or 'nominee'
    candidate = base
    suffix = 2
    while True:
        query = session.query(Nominee.id).filter(Nominee.slug == candidate)
        if nominee_id is not None:
            query = query.filter(Nominee.id != nominee_id)
        if query.first() is None:
            return candidate
        candidate = f'{base}-{suffix}'
        suffix += 1


def live_url_for(slug: str) -> str:
    return f'{PUBLIC_BASE_URL}/nominee/{slug}'


def assign_live_url(session, nominee: Nominee, requested: Optional[str] = None) -> str:
    """
    Give the nominee a slug + live URL.

    An explicit slug or URL from the admin wins; otherwise an existing slug is
    kept and a new one is derived from the display name.
    """
    if requested:
        base = slugify(requested.rstrip('/').rsplit('/', 1)[-1])
    elif nominee.slug:
        return nominee.live_url
    else:
        base = slugify(nominee.display_name)
    nominee.slug = unique_slug(session, base, nominee_id=nominee.id)
    nominee.live_url = live_url_for(nominee.slug)
    return nominee.live_url


# ── Transitions ──────────────────────────────────────────────────────────────

def _load(session, nomination_id) -> Nomination:
    nomination = session.get(Nomination, nomination_id)
    if nomination is None:
        raise NominationNotFound(nomination_id)
    return nomination


def _check_transition(nomination: Nomination, requested: str):
    if requested not in DECISION_STATES or nomination.state not in PENDING_STATES:
        raise InvalidTransition(nomination.state, requested)


def _approve(session, nomination: Nomination, approved_by: str, admin_notes=None, live_url=None):
    _check_transition(nomination, 'approved')
    nomination.state = 'approved'
    nomination.approved_at = datetime.now(timezone.utc)
    nomination.approved_by = approved_by or 'admin'
    if admin_notes is not None:
        nomination.admin_notes = admin_notes
    assign_live_url(session, nomination.nominee, requested=live_url)
    nomination.hubspot_sync_pending = True
    nomination.loops_sync_status = 'pending'
    session.flush()
    outbox.enqueue_all(session, 'nomination_approved', outbox.nomination_payload(nomination))


def approve(session, nomination_id, approved_by: str = None, admin_notes: str = None,
            live_url: str = None) -> Nomination:
    nomination = _load(session, nomination_id)
    try:
        _approve(session, nomination, approved_by, admin_notes, live_url)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Nomination %s approved by %s (%s)", nomination.id, nomination.approved_by,
                nomination.nominee.live_url, extra={'nomination_id': nomination.id})
    schedule_sync()
    return nomination


def reject(session, nomination_id, reason: str, rejected_by: str = None,
           admin_notes: str = None) -> Nomination:
    if not (reason or '').strip():
        raise ApprovalError('A rejection reason is required')
    nomination = _load(session, nomination_id)
    _check_transition(nomination, 'rejected')
    nomination.state = 'rejected'
    nomination.rejection_reason = reason.strip()
    nomination.rejected_at = datetime.now(timezone.utc)
    if admin_notes is not None:
        nomination.admin_notes = admin_notes
    session.commit()
    logger.info("Nomination %s rejected by %s", nomination.id, rejected_by or 'admin',
                extra={'nomination_id': nomination.id})
    return nomination


def decide(session, nomination_id, state: str, actor: str = None, **kwargs) -> Nomination:
    """Dispatch an admin decision by target state."""
    if state == 'approved':
        return approve(session, nomination_id, approved_by=actor,
                       admin_notes=kwargs.get('admin_notes'), live_url=kwargs.get('live_url'))
    if state == 'rejected':
        return reject(session, nomination_id, kwargs.get('rejection_reason'),
                      rejected_by=actor, admin_notes=kwargs.get('admin_notes'))
    nomination = _load(session, nomination_id)
    raise InvalidTransition(nomination.state, state)


def bulk_approve(session, nomination_ids: List[int], approved_by: str = None) -> Dict:
    """Approve each id independently; failures are reported, not raised."""
    approved, failed = [], []
    for nomination_id in nomination_ids:
        try:
            nomination = _load(session, nomination_id)
            _approve(session, nomination, approved_by)
            session.commit()
            approved.append(nomination.id)
        except Exception as e:
            session.rollback()
            logger.warning("Bulk approve skipped nomination %s: %s", nomination_id, e,
                           extra={'nomination_id': nomination_id})
            failed.append({'id': nomination_id, 'error': str(e)})
    if approved:
        schedule_sync()
    return {'approved': approved, 'failed': failed}


def approve_batch_drafts(session, batch_id: str, approved_by: str = None) -> Dict:
    """Approve every draft nomination that a bulk upload produced."""
    batch = session.get(BulkUploadBatch, batch_id)
    if batch is None:
        raise LookupError(f"Batch {batch_id} not found")

    draft_ids = [
        n.id for n in session.query(Nomination.id)
        .filter(Nomination.bulk_upload_batch_id == batch_id, Nomination.state == 'draft')
        .order_by(Nomination.bulk_upload_row_number)
        .all()
    ]
    result = bulk_approve(session, draft_ids, approved_by=approved_by)

    batch = session.get(BulkUploadBatch, batch_id)
    batch.approved_rows = (batch.approved_rows or 0) + len(result['approved'])
    batch.draft_rows = max(0, (batch.draft_rows or 0) - len(result['approved']))
    batch.approval_completed_at = datetime.now(timezone.utc)
    session.commit()
    logger.info("Batch %s: %d drafts approved, %d failed", batch_id,
                len(result['approved']), len(result['failed']), extra={'batch_id': batch_id})
    return {'batchId': batch_id, **result}


def schedule_sync():
    """Drain the outboxes right away through RQ when REALTIME_SYNC is on."""
    if not REALTIME_SYNC:
        return
    try:
        from awards.tasks import enqueue_outbox_drain
        enqueue_outbox_drain()
    except Exception as e:
        logger.warning("Could not enqueue outbox drain: %s", e)
