"""Tests for awards.services.sync_runner — draining outboxes with a fake client."""
from unittest.mock import MagicMock, patch

import pytest

from awards.models.outbox import HubspotOutbox, LoopsOutbox
from awards.services import outbox
from awards.services.approval import approve
from awards.services.circuit_breaker import CircuitOpenError
from awards.services.hubspot import HubSpotError
from awards.services.sync_runner import run_sync, is_configured


VOTE = {'voter': {'email': 'voter@acme.io', 'firstName': 'Vera'}, 'subcategoryId': 'top-recruiter'}


def _enqueue(db_session, n, target='hubspot'):
    for _ in range(n):
        outbox.enqueue(db_session, target, 'vote_cast', dict(VOTE))
    db_session.commit()


class TestRunSync:

    def test_all_rows_done(self, db_session):
        _enqueue(db_session, 3)
        client = MagicMock()
        result = run_sync(db_session, 'hubspot', client=client)
        assert result['claimed'] == 3
        assert result['done'] == 3
        assert result['errors'] == []
        assert client.upsert_contact.call_count == 3
        assert db_session.query(HubspotOutbox).filter_by(status='done').count() == 3

    def test_limit_respected(self, db_session):
        _enqueue(db_session, 4)
        result = run_sync(db_session, 'hubspot', limit=2, client=MagicMock())
        assert result['claimed'] == 2
        assert db_session.query(HubspotOutbox).filter_by(status='pending').count() == 2

    def test_failure_goes_back_to_pending(self, db_session):
        _enqueue(db_session, 2)
        client = MagicMock()
        client.upsert_contact.side_effect = [HubSpotError('HubSpot 503', status=503), 'contact-1']
        result = run_sync(db_session, 'hubspot', client=client)
        assert result['retry'] == 1
        assert result['done'] == 1
        failed = db_session.query(HubspotOutbox).filter_by(status='pending').one()
        assert failed.attempt_count == 1
        assert 'HubSpot 503' in failed.last_error

    def test_row_dies_after_three_runs(self, db_session):
        _enqueue(db_session, 1)
        client = MagicMock()
        client.upsert_contact.side_effect = HubSpotError('HubSpot 500', status=500)
        results = [run_sync(db_session, 'hubspot', client=client) for _ in range(4)]
        assert [r['dead'] for r in results] == [0, 0, 1, 0]
        assert results[3]['claimed'] == 0
        assert db_session.query(HubspotOutbox).one().status == 'dead'

    def test_open_circuit_releases_rows_without_spending_attempts(self, db_session):
        _enqueue(db_session, 3)
        client = MagicMock()
        client.upsert_contact.side_effect = ['ok', CircuitOpenError('hubspot', retry_after=60)]
        result = run_sync(db_session, 'hubspot', client=client)
        assert result['done'] == 1
        assert result['released'] == 2
        pending = db_session.query(HubspotOutbox).filter_by(status='pending').all()
        assert len(pending) == 2
        assert all(r.attempt_count == 0 for r in pending)

    def test_approved_event_marks_nomination_synced(self, db_session, make_nomination):
        nomination = make_nomination(state='submitted')
        approve(db_session, nomination.id)

        run_sync(db_session, 'hubspot', client=MagicMock())
        run_sync(db_session, 'loops', client=MagicMock())

        assert nomination.hubspot_sync_pending is False
        assert nomination.hubspot_synced_at is not None
        assert nomination.loops_sync_status == 'synced'
        assert nomination.loops_synced_at is not None

    def test_dead_loops_event_marks_nomination_failed(self, db_session, make_nomination):
        from awards.services.loops import LoopsError
        nomination = make_nomination(state='submitted')
        approve(db_session, nomination.id)
        client = MagicMock()
        client.upsert_contact.side_effect = LoopsError('Loops 500', status=500)
        for _ in range(3):
            run_sync(db_session, 'loops', client=client)
        assert db_session.query(LoopsOutbox).one().status == 'dead'
        assert nomination.loops_sync_status == 'failed'

    def test_builds_default_client(self, db_session):
        _enqueue(db_session, 1)
        with patch('awards.services.hubspot.HubSpotClient') as client_cls:
            with patch.dict('awards.services.sync_runner.TARGETS',
                            {'hubspot': {'client': client_cls, 'handler': MagicMock(), 'batch_size': 10}}):
                result = run_sync(db_session, 'hubspot')
        client_cls.assert_called_once_with()
        assert result['done'] == 1


class TestIsConfigured:

    def test_reads_credentials(self):
        with patch('awards.services.sync_runner.HUBSPOT_ACCESS_TOKEN', 'pat-token'), \
                patch('awards.services.sync_runner.LOOPS_API_KEY', None):
            assert is_configured('hubspot') is True
            assert is_configured('loops') is False

    def test_unknown_target(self):
        assert is_configured('salesforce') is False
