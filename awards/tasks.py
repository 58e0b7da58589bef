"""
RQ jobs — drain the HubSpot and Loops outboxes outside the request cycle.

Run a worker with:  rq worker --url $REDIS_URL
"""
import logging

from awards.database import get_session, load_models
from awards.services.sync_runner import run_sync, is_configured
from awards.config import LOOPS_SYNC_ENABLED

logger = logging.getLogger('awards.tasks')


# ── Lazy RQ queue (no Redis connection at import time) ───────────────────────

_queue = None


def _get_queue():
    global _queue
    if _queue is None:
        from awards.extensions import redis_client
        from rq import Queue
        _queue = Queue('sync', connection=redis_client)
    return _queue


def enqueue_outbox_drain():
    """Schedule process_outbox for both targets."""
    return _get_queue().enqueue(process_outbox, job_timeout=600)


def process_outbox(targets=('hubspot', 'loops')):
    """Job body: run each configured sync target once."""
    load_models()
    results = {}
    for target in targets:
        if not is_configured(target):
            logger.info("Skipping %s sync: not configured", target)
            continue
        if target == 'loops' and not LOOPS_SYNC_ENABLED:
            logger.info("Skipping loops sync: LOOPS_SYNC_ENABLED is off")
            continue
        session = get_session()
        try:
            results[target] = run_sync(session, target)
        except Exception:
            session.rollback()
            logger.error("Outbox drain for %s failed", target, exc_info=True)
        finally:
            session.close()
    return results
