"""
Public blueprint — nomination form, voting, nominee directory, stats + podium.
"""
import logging

from flask import Blueprint, request, jsonify

from awards import categories
from awards.database import get_session
from awards.extensions import redis_client
from awards.services import nominations, settings, stats, voting

logger = logging.getLogger('routes.public')

bp = Blueprint('public', __name__)


def _client_ip():
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


@bp.route('/health')
def health():
    return jsonify({'status': 'healthy'})


@bp.route('/api/categories')
def list_categories():
    return jsonify({'groups': categories.list_groups()})


@bp.route('/api/nomination-status')
def nomination_status():
    session = get_session()
    try:
        return jsonify(settings.nomination_status(session))
    except Exception as e:
        logger.error("Nomination status lookup failed", exc_info=True)
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/nomination/submit', methods=['POST'])
def submit_nomination():
    session = get_session()
    try:
        if not settings.nominations_open(session):
            return jsonify({'success': False, 'error': 'Nominations are currently closed'}), 403
        nomination = nominations.submit_nomination(session, request.get_json(silent=True) or {})
        return jsonify({
            'ok': True,
            'nominationId': nomination.id,
            'state': nomination.state,
        }), 201
    except nominations.NominationInvalid as e:
        return jsonify({'error': 'Validation failed', 'details': [err.to_dict() for err in e.errors]}), 400
    except nominations.DuplicateNomination as e:
        return jsonify({'error': str(e)}), 409
    except Exception as e:
        logger.error("Nomination submission failed", exc_info=True)
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/vote', methods=['POST'])
def vote():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    nomination_id = data.get('nominationId')
    if nomination_id is None or nomination_id == '':
        return jsonify({'error': 'nominationId is required'}), 400

    try:
        voting.check_rate_limit(redis_client, _client_ip())
    except voting.RateLimited as e:
        return jsonify({'error': str(e), 'code': 'RATE_LIMITED'}), 429, {'Retry-After': str(e.retry_after)}

    voter = {
        'email': data.get('email'),
        'firstName': data.get('firstName'),
        'lastName': data.get('lastName'),
        'company': data.get('company'),
        'jobTitle': data.get('jobTitle'),
        'country': data.get('country'),
        'linkedin': data.get('linkedin'),
    }

    session = get_session()
    try:
        result = voting.cast_vote(
            session, nomination_id, data.get('subcategoryId'), voter,
            client_ip=_client_ip(), user_agent=request.headers.get('User-Agent'),
        )
        return jsonify(result)
    except voting.AlreadyVoted as e:
        return jsonify({'error': str(e), 'code': e.code}), 409
    except voting.VoteRejected as e:
        return jsonify({'error': str(e)}), e.status
    except Exception as e:
        logger.error("Vote failed", exc_info=True)
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/nominees')
def nominees():
    session = get_session()
    try:
        rows = nominations.list_public_nominees(
            session,
            subcategory_id=request.args.get('category'),
            nominee_type=request.args.get('type'),
            search=request.args.get('q'),
        )
        return jsonify({'nominees': rows, 'count': len(rows)})
    except Exception as e:
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/nominees/<slug>')
def nominee(slug):
    session = get_session()
    try:
        data = nominations.get_public_nominee(session, slug)
        if data is None:
            return jsonify({'error': 'Nominee not found'}), 404
        return jsonify(data)
    except Exception as e:
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/stats')
def public_stats():
    session = get_session()
    try:
        return jsonify(stats.public_stats(session))
    except Exception as e:
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/podium')
def podium():
    subcategory_id = request.args.get('category')
    if not subcategory_id or categories.get_subcategory(subcategory_id) is None:
        return jsonify({'error': 'A valid category is required'}), 400
    session = get_session()
    try:
        return jsonify({'category': subcategory_id, 'podium': stats.podium(session, subcategory_id)})
    except Exception as e:
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()
