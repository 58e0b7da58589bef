"""
Admin blueprint — login, nominations console, approval actions, manual votes, analytics.
"""
import logging

from flask import Blueprint, request, jsonify, session as web_session

from awards.database import get_session
from awards.routes import auth
from awards.config import NOMINATION_STATES
from awards.services import approval, nominations, settings, stats, voting

logger = logging.getLogger('routes.admin')

bp = Blueprint('admin', __name__)


def _error_response(e):
    """Map domain exceptions to JSON error responses."""
    if isinstance(e, approval.NominationNotFound):
        return jsonify({'error': str(e)}), 404
    if isinstance(e, approval.InvalidTransition):
        return jsonify({'error': str(e), 'currentState': e.current}), 409
    if isinstance(e, approval.ApprovalError):
        return jsonify({'error': str(e)}), 400
    if isinstance(e, nominations.NominationInvalid):
        return jsonify({'error': 'Validation failed', 'details': [err.to_dict() for err in e.errors]}), 400
    if isinstance(e, nominations.DuplicateNomination):
        return jsonify({'error': str(e)}), 409
    if isinstance(e, voting.VoteRejected):
        return jsonify({'error': str(e)}), e.status
    if isinstance(e, settings.SettingsInvalid):
        return jsonify({'error': str(e)}), 400
    logger.error("Admin request %s %s failed", request.method, request.path, exc_info=e)
    return jsonify({'error': str(e)}), 500


# ── Auth ─────────────────────────────────────────────────────────────────────

@bp.route('/api/admin/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or request.form
    if auth.login(data.get('password'), data.get('username')):
        return jsonify({'ok': True})
    return jsonify({'error': 'Wrong password'}), 401


@bp.route('/api/admin/logout', methods=['POST'])
def logout():
    web_session.clear()
    return jsonify({'ok': True})


# ── Nominations ──────────────────────────────────────────────────────────────

@bp.route('/api/admin/nominations', methods=['GET'])
def list_nominations():
    session = get_session()
    try:
        rows = nominations.list_nominations(
            session,
            state=request.args.get('state'),
            subcategory_id=request.args.get('category'),
            batch_id=request.args.get('batchId'),
            search=request.args.get('search'),
        )
        return jsonify({'nominations': [n.to_dict(include_nominator=True) for n in rows],
                        'count': len(rows)})
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nominations', methods=['POST'])
def create_nomination():
    """Admin-entered nomination, created as a draft."""
    session = get_session()
    try:
        nomination = nominations.submit_nomination(
            session, request.get_json(silent=True) or {},
            state='draft', source='admin', uploaded_by=auth.current_admin(),
        )
        return jsonify({'ok': True, 'nomination': nomination.to_dict()}), 201
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nominations', methods=['PATCH'])
def update_nomination():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    nomination_id = data.get('nominationId') or data.get('id')
    if not nomination_id:
        return jsonify({'error': 'nominationId is required'}), 400
    if data.get('state') and data['state'] not in NOMINATION_STATES:
        return jsonify({'error': f"Invalid state: {data['state']}"}), 400

    session = get_session()
    try:
        nomination = nominations.update_nomination(session, nomination_id, data, actor=auth.current_admin())
        return jsonify({'ok': True, 'nomination': nomination.to_dict()})
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nominations', methods=['DELETE'])
def delete_nomination():
    nomination_id = request.args.get('id', type=int)
    if not nomination_id:
        return jsonify({'error': 'id is required'}), 400
    session = get_session()
    try:
        if not nominations.delete_nomination(session, nomination_id):
            return jsonify({'error': 'Nomination not found'}), 404
        return jsonify({'ok': True})
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nominations/<int:nomination_id>/approve', methods=['POST'])
def approve_nomination(nomination_id):
    data = request.get_json(silent=True) or {}
    session = get_session()
    try:
        nomination = approval.approve(
            session, nomination_id, approved_by=auth.current_admin(),
            admin_notes=data.get('adminNotes'), live_url=data.get('liveUrl'),
        )
        return jsonify({'ok': True, 'nomination': nomination.to_dict()})
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nominations/<int:nomination_id>/reject', methods=['POST'])
def reject_nomination(nomination_id):
    data = request.get_json(silent=True) or {}
    session = get_session()
    try:
        nomination = approval.reject(
            session, nomination_id, data.get('rejectionReason') or data.get('reason'),
            rejected_by=auth.current_admin(), admin_notes=data.get('adminNotes'),
        )
        return jsonify({'ok': True, 'nomination': nomination.to_dict()})
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nominations/bulk-approve', methods=['POST'])
def bulk_approve():
    ids = (request.get_json(silent=True) or {}).get('ids') or []
    if not isinstance(ids, list) or not ids:
        return jsonify({'error': 'ids must be a non-empty list'}), 400
    session = get_session()
    try:
        result = approval.bulk_approve(session, ids, approved_by=auth.current_admin())
        return jsonify({'ok': True, **result})
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nominations/<int:nomination_id>/votes', methods=['PATCH'])
def set_additional_votes(nomination_id):
    body = request.get_json(silent=True) or {}
    value = body.get('additionalVotes') if isinstance(body, dict) else None
    try:
        value = int(value)
    except (TypeError, ValueError):
        return jsonify({'error': 'additionalVotes must be an integer'}), 400

    session = get_session()
    try:
        nomination = voting.set_additional_votes(session, nomination_id, value)
        return jsonify({
            'ok': True,
            'votes': nomination.votes,
            'additionalVotes': nomination.additional_votes,
            'totalVotes': nomination.total_votes,
        })
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


# ── Analytics ────────────────────────────────────────────────────────────────

@bp.route('/api/admin/analytics')
def analytics():
    session = get_session()
    try:
        days = request.args.get('days', 14, type=int)
        return jsonify(stats.admin_analytics(session, days=days))
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


# ── Nomination window ────────────────────────────────────────────────────────

@bp.route('/api/admin/nomination-deadline', methods=['GET'])
def get_nomination_deadline():
    session = get_session()
    try:
        status = settings.nomination_status(session)
        status['settings'] = settings.setting_rows(session)
        return jsonify(status)
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()


@bp.route('/api/admin/nomination-deadline', methods=['PATCH', 'POST'])
def update_nomination_deadline():
    data = request.get_json(silent=True) or {}
    updated_by = data.get('updatedBy') if isinstance(data, dict) else None
    if not isinstance(updated_by, str) or not updated_by.strip():
        updated_by = auth.current_admin()

    session = get_session()
    try:
        updates = settings.update_settings(session, data, updated_by=updated_by)
        return jsonify({
            'success': True,
            'updates': updates,
            'currentStatus': settings.nomination_status(session),
        })
    except Exception as e:
        return _error_response(e)
    finally:
        session.close()
