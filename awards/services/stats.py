"""
Aggregations for the public stats/podium endpoints and the admin analytics page.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy import func

from awards import categories
from awards.config import NOMINATION_STATES, POLL_INTERVAL_SECONDS
from awards.models.nomination import Nomination
from awards.models.vote import Vote, Voter
from awards.services import outbox

logger = logging.getLogger('services.stats')


def _total_votes_expr():
    return Nomination.votes + Nomination.additional_votes


def public_stats(session) -> Dict:
    by_state = dict(
        session.query(Nomination.state, func.count(Nomination.id)).group_by(Nomination.state).all()
    )
    real, additional = session.query(
        func.coalesce(func.sum(Nomination.votes), 0),
        func.coalesce(func.sum(Nomination.additional_votes), 0),
    ).one()
    voters = session.query(func.count(Voter.id)).scalar() or 0
    return {
        'totalNominations': sum(by_state.values()),
        'approvedNominations': by_state.get('approved', 0),
        'pendingNominations': by_state.get('submitted', 0) + by_state.get('draft', 0),
        'totalVotes': int(real) + int(additional),
        'uniqueVoters': voters,
        'pollIntervalSeconds': POLL_INTERVAL_SECONDS,
    }


def podium(session, subcategory_id: str, size: int = 3) -> List[Dict]:
    """Top approved nominations in a subcategory by public total."""
    rows = (
        session.query(Nomination)
        .filter(Nomination.subcategory_id == subcategory_id, Nomination.state == 'approved')
        .order_by(_total_votes_expr().desc(), Nomination.approved_at, Nomination.id)
        .limit(size)
        .all()
    )
    return [
        {
            'rank': i,
            'nominationId': n.id,
            'name': n.nominee.display_name,
            'type': n.nominee.type,
            'imageUrl': n.nominee.image_url,
            'liveUrl': n.nominee.live_url,
            'votes': n.total_votes,
        }
        for i, n in enumerate(rows, 1)
    ]


def _daily_counts(session, column, since) -> Dict[str, int]:
    day = func.date(column)
    rows = (
        session.query(day, func.count())
        .filter(column >= since)
        .group_by(day)
        .order_by(day)
        .all()
    )
    return {str(d): c for d, c in rows}


def admin_analytics(session, days: int = 14, now: Optional[datetime] = None) -> Dict:
    """Nominations by state and category, vote totals, voter count, outbox backlog, velocity."""
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=days)
    names = categories.subcategory_names()

    by_state = dict(
        session.query(Nomination.state, func.count(Nomination.id)).group_by(Nomination.state).all()
    )

    by_category = []
    rows = (
        session.query(
            Nomination.subcategory_id,
            func.count(Nomination.id),
            func.coalesce(func.sum(Nomination.votes), 0),
            func.coalesce(func.sum(Nomination.additional_votes), 0),
        )
        .group_by(Nomination.subcategory_id)
        .all()
    )
    for sub_id, count, real, additional in rows:
        by_category.append({
            'subcategoryId': sub_id,
            'name': names.get(sub_id, sub_id),
            'nominations': count,
            'realVotes': int(real),
            'additionalVotes': int(additional),
            'totalVotes': int(real) + int(additional),
        })
    by_category.sort(key=lambda c: c['totalVotes'], reverse=True)

    real_total = sum(c['realVotes'] for c in by_category)
    additional_total = sum(c['additionalVotes'] for c in by_category)

    return {
        'nominations': {
            'total': sum(by_state.values()),
            'byState': {state: by_state.get(state, 0) for state in NOMINATION_STATES},
        },
        'votes': {
            'realVotes': real_total,
            'additionalVotes': additional_total,
            'totalCombined': real_total + additional_total,
            'uniqueVoters': session.query(func.count(Voter.id)).scalar() or 0,
        },
        'byCategory': by_category,
        'velocity': {
            'days': days,
            'nominationsPerDay': _daily_counts(session, Nomination.created_at, since),
            'votesPerDay': _daily_counts(session, Vote.created_at, since),
        },
        'outbox': outbox.backlog(session),
    }
