"""Tests for awards.services.stats — public counters, podium, admin analytics."""
from datetime import datetime, timedelta, timezone

from awards.services.stats import public_stats, podium, admin_analytics
from awards.services.voting import cast_vote


class TestPublicStats:

    def test_counts(self, db_session, make_nomination):
        make_nomination(state='approved', votes=12, additional_votes=5)
        make_nomination(state='submitted')
        make_nomination(state='draft')
        make_nomination(state='rejected')
        stats = public_stats(db_session)
        assert stats['totalNominations'] == 4
        assert stats['approvedNominations'] == 1
        assert stats['pendingNominations'] == 2
        assert stats['totalVotes'] == 17
        assert stats['uniqueVoters'] == 0
        assert stats['pollIntervalSeconds'] == 30

    def test_empty(self, db_session):
        stats = public_stats(db_session)
        assert stats['totalNominations'] == 0
        assert stats['totalVotes'] == 0


class TestPodium:

    def test_top_three_by_total(self, db_session, make_nomination):
        make_nomination(state='approved', first_name='A', votes=10)
        make_nomination(state='approved', first_name='B', votes=1, additional_votes=20)
        make_nomination(state='approved', first_name='C', votes=5)
        make_nomination(state='approved', first_name='D', votes=2)
        make_nomination(state='submitted', first_name='E', votes=99)
        make_nomination(state='approved', first_name='F', votes=50, subcategory_id='best-sourcer')
        result = podium(db_session, 'top-recruiter')
        assert [(p['rank'], p['name'], p['votes']) for p in result] == [
            (1, 'B Smith', 21), (2, 'A Smith', 10), (3, 'C Smith', 5),
        ]


class TestAdminAnalytics:

    def test_totals_and_breakdown(self, db_session, make_nomination):
        a = make_nomination(state='approved', votes=12, additional_votes=5)
        make_nomination(state='submitted', subcategory_id='best-sourcer')
        cast_vote(db_session, a.id, 'top-recruiter', {'email': 'v@acme.io', 'firstName': 'V', 'lastName': 'W'})

        data = admin_analytics(db_session)

        assert data['nominations']['total'] == 2
        assert data['nominations']['byState'] == {'draft': 0, 'submitted': 1, 'approved': 1, 'rejected': 0}
        assert data['votes'] == {'realVotes': 13, 'additionalVotes': 5, 'totalCombined': 18, 'uniqueVoters': 1}
        top = data['byCategory'][0]
        assert top['subcategoryId'] == 'top-recruiter'
        assert top['name'] == 'Top Recruiter'
        assert top['totalVotes'] == 18
        assert data['outbox']['hubspot']['pending'] == 1

    def test_velocity_window(self, db_session, make_nomination):
        make_nomination(state='submitted')
        data = admin_analytics(db_session, days=7)
        assert data['velocity']['days'] == 7
        assert sum(data['velocity']['nominationsPerDay'].values()) == 1

        later = datetime.now(timezone.utc) + timedelta(days=30)
        data = admin_analytics(db_session, days=7, now=later)
        assert data['velocity']['nominationsPerDay'] == {}
