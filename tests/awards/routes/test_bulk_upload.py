"""Tests for awards.routes.bulk_upload — multipart upload, reports, templates, draft approval."""
import io
from unittest.mock import patch

from awards.models.bulk_upload import BulkUploadBatch
from awards.models.nomination import Nomination
from tests.conftest import PERSON_HEADER


def _upload(client, text, filename='people.csv', **form):
    data = {'file': (io.BytesIO(text.encode('utf-8')), filename)}
    data.update(form)
    return client.post('/api/admin/bulk-upload', data=data, content_type='multipart/form-data')


class TestUpload:

    def test_three_row_scenario(self, client, db_session, person_csv):
        text = person_csv(
            ('Derek', 'Williams', 'not-an-email', 'top-recruiter'),
            ('Jane', 'Smith', 'jane@acme.io', 'top-recruiter'),
            ('Mik', 'Andersen', 'mik@acme.io', 'best-sourcer'),
        )
        resp = _upload(client, text, type='person')
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['success'] is True
        assert body['summary']['successfulUploads'] == 2
        assert body['summary']['validationErrors'] == 1
        assert body['errors'][0]['row'] == 2
        assert body['errors'][0]['field'] == 'email'
        assert body['nextSteps']

        detail = client.get(f"/api/admin/bulk-upload/{body['batchId']}").get_json()
        assert [(e['rowNumber'], e['field']) for e in detail['errors']] == [(2, 'email')]

    def test_upload_type_alias(self, client, company_csv):
        resp = _upload(client, company_csv(('Northwind', 'hi@northwind.io', 'best-recruitment-agency')),
                       uploadType='company')
        assert resp.get_json()['summary']['successfulUploads'] == 1

    def test_no_file(self, client):
        resp = client.post('/api/admin/bulk-upload', data={'type': 'person'},
                           content_type='multipart/form-data')
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'No file provided'

    def test_missing_type(self, client, person_csv):
        resp = _upload(client, person_csv(('A', 'B', 'a@acme.io', 'top-recruiter')))
        assert resp.status_code == 400

    def test_bad_initial_state(self, client, person_csv):
        resp = _upload(client, person_csv(('A', 'B', 'a@acme.io', 'top-recruiter')),
                       type='person', initialState='approved')
        assert resp.status_code == 400

    def test_non_csv_rejected(self, client, person_csv):
        resp = _upload(client, person_csv(('A', 'B', 'a@acme.io', 'top-recruiter')),
                       filename='people.xlsx', type='person')
        assert resp.status_code == 400
        assert resp.get_json() == {'success': False, 'error': 'Only CSV files are allowed'}

    def test_missing_headers_persist_nothing(self, client, db_session):
        text = PERSON_HEADER.replace('first_name,', '') + '\n' + 'x,' * 17 + 'x\n'
        resp = _upload(client, text, type='person')
        assert resp.status_code == 400
        assert 'first_name' in resp.get_json()['error']
        assert db_session.query(BulkUploadBatch).count() == 0
        assert db_session.query(Nomination).count() == 0

    def test_unexpected_error_is_500(self, client, person_csv):
        with patch('awards.routes.bulk_upload.process_upload_bytes', side_effect=RuntimeError('db gone')):
            resp = _upload(client, person_csv(('A', 'B', 'a@acme.io', 'top-recruiter')), type='person')
        assert resp.status_code == 500
        assert resp.get_json()['success'] is False

    def test_requires_admin(self, client, person_csv):
        with patch('awards.config.ADMIN_PASSWORD', 'secret'):
            resp = _upload(client, person_csv(('A', 'B', 'a@acme.io', 'top-recruiter')), type='person')
        assert resp.status_code == 401


class TestBatches:

    def test_list_and_detail(self, client, person_csv):
        batch_id = _upload(client, person_csv(('A', 'B', 'a@acme.io', 'top-recruiter')),
                           type='person').get_json()['batchId']
        listed = client.get('/api/admin/bulk-upload').get_json()['batches']
        assert [b['id'] for b in listed] == [batch_id]
        detail = client.get(f'/api/admin/bulk-upload/{batch_id}').get_json()
        assert detail['pendingCount'] == 1
        assert detail['nominations'][0]['state'] == 'draft'

    def test_unknown_batch(self, client):
        resp = client.get('/api/admin/bulk-upload/does-not-exist')
        assert resp.status_code == 404

    def test_approve_drafts(self, client, db_session, person_csv):
        batch_id = _upload(client, person_csv(('A', 'B', 'a@acme.io', 'top-recruiter'),
                                              ('C', 'D', 'c@acme.io', 'top-recruiter')),
                           type='person').get_json()['batchId']
        resp = client.post(f'/api/admin/bulk-upload/{batch_id}/approve-drafts')
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['success'] is True
        assert len(body['approved']) == 2
        assert {n.state for n in db_session.query(Nomination).all()} == {'approved'}

    def test_approve_drafts_unknown_batch(self, client):
        assert client.post('/api/admin/bulk-upload/nope/approve-drafts').status_code == 404


class TestTemplate:

    def test_person_template(self, client):
        resp = client.get('/api/admin/bulk-upload/template?type=person')
        assert resp.status_code == 200
        assert resp.mimetype == 'text/csv'
        assert resp.get_data(as_text=True).splitlines()[0] == PERSON_HEADER
        assert 'wsa-2026-person-template.csv' in resp.headers['Content-Disposition']

    def test_bad_type(self, client):
        assert client.get('/api/admin/bulk-upload/template?type=team').status_code == 400
