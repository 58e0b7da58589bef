"""
Outbox sync runner — drains one outbox into its external system.

  claim (pending → processing, attempts+1) → handle event → done
                                                   ↳ failure → pending / dead

An open circuit breaker stops the run and hands the untouched rows back to
'pending' without spending an attempt.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from awards.config import HUBSPOT_BATCH_SIZE, LOOPS_BATCH_SIZE, HUBSPOT_ACCESS_TOKEN, LOOPS_API_KEY
from awards.models.nomination import Nomination
from awards.services import outbox, hubspot, loops
from awards.services.circuit_breaker import CircuitOpenError

logger = logging.getLogger('services.sync_runner')

TARGETS = {
    'hubspot': {
        'client': hubspot.HubSpotClient,
        'handler': hubspot.handle_event,
        'batch_size': HUBSPOT_BATCH_SIZE,
    },
    'loops': {
        'client': loops.LoopsClient,
        'handler': loops.handle_event,
        'batch_size': LOOPS_BATCH_SIZE,
    },
}


def is_configured(target: str) -> bool:
    if target == 'hubspot':
        return bool(HUBSPOT_ACCESS_TOKEN)
    if target == 'loops':
        return bool(LOOPS_API_KEY)
    return False


def _release(session, rows):
    for row in rows:
        row.status = 'pending'
        row.attempt_count = max(0, (row.attempt_count or 0) - 1)
    session.commit()


def _mark_nomination_synced(session, target: str, payload: Dict):
    nomination = session.get(Nomination, payload.get('nominationId'))
    if nomination is None:
        return
    now = datetime.now(timezone.utc)
    if target == 'hubspot':
        nomination.hubspot_sync_pending = False
        nomination.hubspot_synced_at = now
    else:
        nomination.loops_sync_status = 'synced'
        nomination.loops_synced_at = now
    session.commit()


def _mark_nomination_failed(session, target: str, payload: Dict):
    nomination = session.get(Nomination, payload.get('nominationId'))
    if nomination is None or target != 'loops':
        return
    nomination.loops_sync_status = 'failed'
    session.commit()


def run_sync(session, target: str, limit: Optional[int] = None, client=None) -> Dict:
    """
    Process up to `limit` pending rows of one outbox.

    Returns counts of claimed/done/retry/dead rows plus per-row errors.
    """
    target_cfg = TARGETS[target]
    client = client or target_cfg['client']()
    limit = limit or target_cfg['batch_size']

    rows = outbox.claim_pending(session, target, limit)
    result = {'target': target, 'claimed': len(rows), 'done': 0, 'retry': 0, 'dead': 0,
              'released': 0, 'errors': []}

    for index, row in enumerate(rows):
        try:
            target_cfg['handler'](row.event_type, row.payload, client)
        except CircuitOpenError as e:
            remaining = rows[index:]
            _release(session, remaining)
            result['released'] = len(remaining)
            result['errors'].append({'id': row.id, 'error': str(e)})
            logger.warning("%s circuit open, released %d rows", target, len(remaining))
            break
        except Exception as e:
            status = outbox.mark_failed(session, row, e)
            result['retry' if status == 'pending' else 'dead'] += 1
            result['errors'].append({'id': row.id, 'error': str(e)})
            logger.warning("%s outbox row %s (%s) failed: %s", target, row.id, row.event_type, e,
                           extra={'outbox_id': row.id})
            if status == 'dead' and row.event_type == 'nomination_approved':
                _mark_nomination_failed(session, target, row.payload)
            continue

        outbox.mark_done(session, row)
        result['done'] += 1
        if row.event_type == 'nomination_approved':
            _mark_nomination_synced(session, target, row.payload)

    logger.info("%s sync: %d claimed, %d done, %d retry, %d dead", target,
                result['claimed'], result['done'], result['retry'], result['dead'])
    return result
