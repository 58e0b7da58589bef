"""
Bulk upload blueprint — CSV upload, batch reports, draft approval, templates.
"""
import logging

from flask import Blueprint, request, jsonify, Response

from awards.config import PENDING_STATES
from awards.database import get_session
from awards.routes.auth import current_admin
from awards.services.approval import approve_batch_drafts
from awards.services.bulk_upload import (
    process_upload_bytes, list_batches, get_batch_detail, UploadRejected,
)
from awards.services.csv_ingest import MalformedInput, template_csv

logger = logging.getLogger('routes.bulk_upload')

bp = Blueprint('bulk_upload', __name__)


@bp.route('/api/admin/bulk-upload', methods=['POST'])
def upload():
    """Multipart upload: file=<csv>, type=person|company, initialState=draft|submitted."""
    file = request.files.get('file')
    if file is None or not file.filename:
        return jsonify({'error': 'No file provided'}), 400

    nominee_type = request.form.get('type') or request.form.get('uploadType')
    if nominee_type not in ('person', 'company'):
        return jsonify({'error': 'type must be "person" or "company"'}), 400

    initial_state = request.form.get('initialState') or None
    if initial_state is not None and initial_state not in PENDING_STATES:
        return jsonify({'error': 'initialState must be "draft" or "submitted"'}), 400

    session = get_session()
    try:
        report = process_upload_bytes(
            session, file.read(), nominee_type, file.filename,
            uploaded_by=current_admin(), initial_state=initial_state,
        )
        return jsonify(report)
    except (MalformedInput, UploadRejected) as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        logger.error("Bulk upload of %s failed", file.filename, exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/admin/bulk-upload', methods=['GET'])
def batches():
    session = get_session()
    try:
        limit = request.args.get('limit', 50, type=int)
        return jsonify({'batches': list_batches(session, limit=limit)})
    except Exception as e:
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/admin/bulk-upload/template')
def template():
    nominee_type = request.args.get('type', 'person')
    try:
        body = template_csv(nominee_type)
    except MalformedInput as e:
        return jsonify({'error': str(e)}), 400
    return Response(
        body,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename=wsa-2026-{nominee_type}-template.csv'},
    )


@bp.route('/api/admin/bulk-upload/<batch_id>')
def batch_detail(batch_id):
    session = get_session()
    try:
        detail = get_batch_detail(session, batch_id)
        if detail is None:
            return jsonify({'error': 'Batch not found'}), 404
        return jsonify(detail)
    except Exception as e:
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()


@bp.route('/api/admin/bulk-upload/<batch_id>/approve-drafts', methods=['POST'])
def approve_drafts(batch_id):
    session = get_session()
    try:
        result = approve_batch_drafts(session, batch_id, approved_by=current_admin())
        return jsonify({'success': True, **result})
    except LookupError as e:
        return jsonify({'error': str(e)}), 404
    except Exception as e:
        logger.error("Approving drafts of batch %s failed", batch_id, exc_info=True)
        return jsonify({'error': str(e)}), 500
    finally:
        session.close()
