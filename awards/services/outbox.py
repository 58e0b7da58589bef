"""
Outbox helpers — enqueue sync events next to the domain write, claim and settle them.

Enqueue functions only add rows to the caller's session; the caller commits them
in the same transaction as the change that produced them.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import func

from awards.config import OUTBOX_MAX_ATTEMPTS, OUTBOX_STATUSES
from awards.models.outbox import HubspotOutbox, LoopsOutbox

logger = logging.getLogger('services.outbox')

EVENT_TYPES = ('nomination_submitted', 'nomination_approved', 'vote_cast')

OUTBOXES = {
    'hubspot': HubspotOutbox,
    'loops': LoopsOutbox,
}


# ── Payload builders ─────────────────────────────────────────────────────────

def nomination_payload(nomination) -> Dict:
    nominee = nomination.nominee
    nominator = nomination.nominator
    payload = {
        'nominationId': nomination.id,
        'nomineeId': nominee.id,
        'type': nominee.type,
        'email': nominee.email,
        'name': nominee.display_name,
        'firstName': nominee.first_name if nominee.type == 'person' else None,
        'lastName': nominee.last_name if nominee.type == 'person' else None,
        'company': nominee.company_name if nominee.type == 'company' else nominee.person_company,
        'jobTitle': nominee.job_title,
        'country': nominee.country,
        'linkedin': nominee.linkedin,
        'categoryGroupId': nomination.category_group_id,
        'subcategoryId': nomination.subcategory_id,
        'liveUrl': nominee.live_url,
        'state': nomination.state,
        'occurredAt': datetime.now(timezone.utc).isoformat(),
    }
    if nominator is not None:
        payload['nominator'] = {
            'email': nominator.email,
            'firstName': nominator.first_name,
            'lastName': nominator.last_name,
            'company': nominator.company,
            'jobTitle': nominator.job_title,
            'country': nominator.country,
        }
    return payload


def vote_payload(vote, voter, nomination) -> Dict:
    return {
        'voteId': vote.id,
        'nominationId': nomination.id,
        'subcategoryId': vote.subcategory_id,
        'nomineeName': nomination.nominee.display_name if nomination.nominee else None,
        'nomineeUrl': nomination.nominee.live_url if nomination.nominee else None,
        'occurredAt': datetime.now(timezone.utc).isoformat(),
        'voter': {
            'email': voter.email,
            'firstName': voter.first_name,
            'lastName': voter.last_name,
            'company': voter.company,
            'jobTitle': voter.job_title,
            'country': voter.country,
            'linkedin': voter.linkedin,
        },
    }


# ── Enqueue ──────────────────────────────────────────────────────────────────

def enqueue(session, target: str, event_type: str, payload: Dict):
    """Add one pending row to the named outbox ('hubspot' or 'loops')."""
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown outbox event type: {event_type}")
    row = OUTBOXES[target](event_type=event_type, payload=payload, status='pending', attempt_count=0)
    session.add(row)
    return row


def enqueue_all(session, event_type: str, payload: Dict) -> List:
    """Add the same event to every outbox."""
    return [enqueue(session, target, event_type, payload) for target in OUTBOXES]


# ── Claim / settle ───────────────────────────────────────────────────────────

def claim_pending(session, target: str, limit: int) -> List:
    """
    Move up to `limit` oldest pending rows to 'processing' and bump attempts.

    On Postgres the select skips rows locked by a concurrent runner.
    """
    model = OUTBOXES[target]
    query = (
        session.query(model)
        .filter(model.status == 'pending')
        .order_by(model.created_at, model.id)
        .limit(limit)
    )
    if session.get_bind().dialect.name == 'postgresql':
        query = query.with_for_update(skip_locked=True)
    rows = query.all()

    for row in rows:
        row.status = 'processing'
        row.attempt_count = (row.attempt_count or 0) + 1
    session.commit()
    return rows


def mark_done(session, row):
    row.status = 'done'
    row.last_error = None
    session.commit()


def mark_failed(session, row, error) -> str:
    """Back to 'pending' for the next run, or 'dead' once attempts run out."""
    row.last_error = str(error)[:1000]
    row.status = 'dead' if (row.attempt_count or 0) >= OUTBOX_MAX_ATTEMPTS else 'pending'
    session.commit()
    if row.status == 'dead':
        logger.error("Outbox row %s (%s) is dead after %d attempts: %s",
                     row.id, row.event_type, row.attempt_count, error,
                     extra={'outbox_id': row.id})
    return row.status


def backlog(session) -> Dict[str, Dict[str, int]]:
    """Row counts per status for each outbox."""
    result = {}
    for target, model in OUTBOXES.items():
        counts = dict(
            session.query(model.status, func.count(model.id)).group_by(model.status).all()
        )
        result[target] = {status: counts.get(status, 0) for status in OUTBOX_STATUSES}
    return result
