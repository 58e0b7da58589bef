"""
Sync blueprint — cron-triggered outbox runners + integration health.
"""
import logging

from flask import Blueprint, jsonify

from awards import config
from awards.database import get_session
from awards.routes.auth import cron_authorized
from awards.services import outbox
from awards.services.circuit_breaker import get_all_breakers
from awards.services.sync_runner import run_sync, is_configured

logger = logging.getLogger('routes.sync')

bp = Blueprint('sync', __name__)


def _run(target):
    if not cron_authorized():
        return jsonify({'error': 'Unauthorized'}), 401
    if not is_configured(target):
        name = 'HubSpot' if target == 'hubspot' else 'Loops'
        return jsonify({'error': f'{name} not configured', 'configured': False}), 400
    if target == 'loops' and not config.LOOPS_SYNC_ENABLED:
        return jsonify({'ok': True, 'enabled': False, 'message': 'Loops sync is disabled'})

    session = get_session()
    try:
        result = run_sync(session, target)
        return jsonify({'ok': True, **result})
    except Exception as e:
        session.rollback()
        logger.error("%s sync run failed", target, exc_info=True)
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/sync/hubspot/run', methods=['GET', 'POST'])
def run_hubspot():
    return _run('hubspot')


@bp.route('/api/sync/loops/run', methods=['GET', 'POST'])
def run_loops():
    return _run('loops')


@bp.route('/api/health')
def integrations_health():
    """Circuit breaker state per service plus outbox backlog."""
    session = get_session()
    try:
        backlog = outbox.backlog(session)
    except Exception as e:
        logger.warning("Could not read outbox backlog: %s", e)
        backlog = {}
    finally:
        session.close()
    return jsonify({
        'services': {name: cb.get_health() for name, cb in get_all_breakers().items()},
        'configured': {
            'hubspot': is_configured('hubspot'),
            'loops': is_configured('loops'),
            'loopsSyncEnabled': config.LOOPS_SYNC_ENABLED,
        },
        'outbox': backlog,
    })
